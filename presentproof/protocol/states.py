"""
Present-proof protocol states.

Each state is an immutable value. ``execute`` decides the follow-up state
and returns a deferred action; the action only touches the transport once
the driver has validated the transition.

Verifier states: request-sent, proposal-received, presentation-received
Prover states:   request-received, proposal-sent, presentation-sent
Common states:   start, abandoning, done, noop
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Awaitable, Callable, ClassVar, Optional

from presentproof.errors import (
    MissingDataError,
    PresentProofError,
    ThreadIDNotFound,
    UnimplementedStateError,
    is_user_cancellation,
)
from presentproof.models.enums import MessageType, ProblemCode, StateName
from presentproof.models.envelope import DIDCommMessage
from presentproof.models.messages import Ack, Code, Presentation, ProblemReport
from presentproof.protocol.metadata import ConversationMetadata
from presentproof.transport.messenger import Messenger
from presentproof.verification.presentation import verify_presentations

_logger = logging.getLogger(__name__)

CODE_INTERNAL_ERROR = ProblemCode.INTERNAL.value
CODE_REJECTED_ERROR = ProblemCode.REJECTED.value

# Deferred network effect of a transition
Action = Callable[[Messenger], Awaitable[None]]


async def zero_action(messenger: Messenger) -> None:
    """Action of a transition with no network effect."""
    return None


# Valid state transitions
VALID_TRANSITIONS: dict[StateName, frozenset[StateName]] = {
    StateName.START: frozenset({
        # Verifier
        StateName.REQUEST_SENT,
        StateName.PROPOSAL_RECEIVED,
        # Prover
        StateName.PROPOSAL_SENT,
        StateName.REQUEST_RECEIVED,
    }),
    StateName.ABANDONING: frozenset({StateName.DONE}),
    StateName.DONE: frozenset(),
    StateName.NOOP: frozenset(),
    # Verifier
    StateName.REQUEST_SENT: frozenset({
        StateName.PRESENTATION_RECEIVED,
        StateName.PROPOSAL_RECEIVED,
        StateName.ABANDONING,
    }),
    StateName.PROPOSAL_RECEIVED: frozenset({
        StateName.REQUEST_SENT,
        StateName.ABANDONING,
    }),
    StateName.PRESENTATION_RECEIVED: frozenset({
        StateName.ABANDONING,
        StateName.DONE,
    }),
    # Prover
    StateName.REQUEST_RECEIVED: frozenset({
        StateName.PRESENTATION_SENT,
        StateName.PROPOSAL_SENT,
        StateName.ABANDONING,
    }),
    StateName.PROPOSAL_SENT: frozenset({
        StateName.REQUEST_RECEIVED,
        StateName.ABANDONING,
    }),
    StateName.PRESENTATION_SENT: frozenset({
        StateName.ABANDONING,
        StateName.DONE,
    }),
}


class State(ABC):
    """A protocol state."""

    name: ClassVar[StateName]

    def can_transition_to(self, next_state: State) -> bool:
        """Whether this state allows transitioning into ``next_state``."""
        return next_state.name in VALID_TRANSITIONS[self.name]

    @abstractmethod
    async def execute(self, md: ConversationMetadata) -> tuple[State, Action]:
        """
        Execute this state, returning the follow-up state and its action.

        NoOp is returned when the state has no follow-up.
        """

    def __str__(self) -> str:
        return self.name.value


@dataclass(frozen=True)
class Start(State):
    name: ClassVar[StateName] = StateName.START

    async def execute(self, md: ConversationMetadata) -> tuple[State, Action]:
        raise UnimplementedStateError(f"{self.name.value}: is not implemented yet")


@dataclass(frozen=True)
class Abandoning(State):
    """Abandons the conversation, notifying the peer when a code is set."""

    name: ClassVar[StateName] = StateName.ABANDONING
    code: Optional[str] = None

    async def execute(self, md: ConversationMetadata) -> tuple[State, Action]:
        # No code: internal abort, the peer is not notified
        if not self.code:
            return Done(), zero_action

        code = CODE_REJECTED_ERROR if is_user_cancellation(md.err) else self.code

        try:
            thid = md.msg.thread_id()
        except ThreadIDNotFound as exc:
            raise ThreadIDNotFound(f"threadID: {exc}") from exc

        report = ProblemReport(type=MessageType.PROBLEM_REPORT.value, description=Code(code=code))

        async def action(messenger: Messenger) -> None:
            await messenger.reply_to_nested(thid, DIDCommMessage.from_model(report), md.my_did, md.their_did)

        return Done(), action


@dataclass(frozen=True)
class Done(State):
    name: ClassVar[StateName] = StateName.DONE

    async def execute(self, md: ConversationMetadata) -> tuple[State, Action]:
        return NoOp(), zero_action


@dataclass(frozen=True)
class NoOp(State):
    """Nothing left to do. Used by the driver as its stop condition only."""

    name: ClassVar[StateName] = StateName.NOOP

    async def execute(self, md: ConversationMetadata) -> tuple[State, Action]:
        raise PresentProofError("cannot execute no-op")


def forward_initial(md: ConversationMetadata) -> Action:
    """Action sending the first message of a conversation unchanged."""
    async def action(messenger: Messenger) -> None:
        await messenger.send(md.msg, md.my_did, md.their_did)

    return action


def _reply_with(md: ConversationMetadata, payload_type: MessageType, payload) -> Action:
    """Action replying on the inbound message id with ``payload`` of ``payload_type``."""
    msg_id = md.msg.id

    async def action(messenger: Messenger) -> None:
        # the type is set immediately before dispatch
        typed = payload.model_copy(update={"type": payload_type.value})
        await messenger.reply_to(msg_id, DIDCommMessage.from_model(typed))

    return action


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#  Verifier states
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


@dataclass(frozen=True)
class RequestSent(State):
    name: ClassVar[StateName] = StateName.REQUEST_SENT

    async def execute(self, md: ConversationMetadata) -> tuple[State, Action]:
        if not md.msg.has_thread():
            return NoOp(), forward_initial(md)

        if md.request is None:
            raise MissingDataError("request was not provided")

        return NoOp(), _reply_with(md, MessageType.REQUEST_PRESENTATION, md.request)


@dataclass(frozen=True)
class ProposalReceived(State):
    name: ClassVar[StateName] = StateName.PROPOSAL_RECEIVED

    async def execute(self, md: ConversationMetadata) -> tuple[State, Action]:
        # the verifier answers a counter-proposal with a new request
        return RequestSent(), zero_action


@dataclass(frozen=True)
class PresentationReceived(State):
    name: ClassVar[StateName] = StateName.PRESENTATION_RECEIVED

    async def execute(self, md: ConversationMetadata) -> tuple[State, Action]:
        presentation = md.msg.decode(Presentation)

        if md.resolver is None:
            raise MissingDataError("key resolver was not provided")

        await verify_presentations(md.resolver, presentation.presentations)
        _logger.info(
            "Accepted presentation with %d attachment(s) from %s",
            len(presentation.presentations),
            md.their_did,
        )

        msg_id = md.msg.id

        async def action(messenger: Messenger) -> None:
            await messenger.reply_to(msg_id, DIDCommMessage.from_model(Ack(type=MessageType.ACK.value)))

        return Done(), action


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#  Prover states
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


@dataclass(frozen=True)
class RequestReceived(State):
    name: ClassVar[StateName] = StateName.REQUEST_RECEIVED

    async def execute(self, md: ConversationMetadata) -> tuple[State, Action]:
        if md.presentation is not None:
            return PresentationSent(), zero_action

        return ProposalSent(), zero_action


@dataclass(frozen=True)
class ProposalSent(State):
    name: ClassVar[StateName] = StateName.PROPOSAL_SENT

    async def execute(self, md: ConversationMetadata) -> tuple[State, Action]:
        if not md.msg.has_thread():
            return NoOp(), forward_initial(md)

        if md.propose_presentation is None:
            raise MissingDataError("propose-presentation was not provided")

        return NoOp(), _reply_with(md, MessageType.PROPOSE_PRESENTATION, md.propose_presentation)


@dataclass(frozen=True)
class PresentationSent(State):
    name: ClassVar[StateName] = StateName.PRESENTATION_SENT

    async def execute(self, md: ConversationMetadata) -> tuple[State, Action]:
        if md.presentation is None:
            raise MissingDataError("presentation was not provided")

        return NoOp(), _reply_with(md, MessageType.PRESENTATION, md.presentation)
