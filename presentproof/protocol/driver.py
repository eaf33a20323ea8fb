"""
Conversation Driver

Runs one conversation's state machine for a single trigger (an inbound
message or a caller's first move):

    validate transition → run action → advance → execute → ...

until NoOp. Execution errors are turned into a forced transition to
Abandoning, which always ends in Done. Errors raised while abandoning
propagate to the caller.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from presentproof.config import get_settings
from presentproof.errors import (
    InvalidStateTransition,
    ProtocolLoopError,
    is_user_cancellation,
)
from presentproof.protocol.metadata import ConversationMetadata
from presentproof.protocol.states import (
    CODE_INTERNAL_ERROR,
    CODE_REJECTED_ERROR,
    Abandoning,
    Action,
    Done,
    NoOp,
    Start,
    State,
    zero_action,
)
from presentproof.transport.messenger import Messenger

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Transition:
    """A committed transition, kept for auditing and tests."""
    from_state: str
    to_state: str
    at: datetime


TransitionCallback = Callable[[State, State, ConversationMetadata], None]


def abandon_code(err: Optional[BaseException]) -> str:
    """Problem-report code for an error that forces abandonment."""
    return CODE_REJECTED_ERROR if is_user_cancellation(err) else CODE_INTERNAL_ERROR


class ConversationDriver:
    """
    Drives a single conversation instance.

    Holds the current state and the metadata of the trigger being
    processed. Not safe for concurrent use: callers serialize triggers per
    conversation.
    """

    def __init__(
        self,
        messenger: Messenger,
        state: Optional[State] = None,
        max_transitions: Optional[int] = None,
        on_transition: Optional[TransitionCallback] = None,
    ):
        self._messenger = messenger
        self._state: State = state or Start()
        self._metadata: Optional[ConversationMetadata] = None
        self._max_transitions = max_transitions or get_settings().max_transitions
        self._on_transition = on_transition
        self._history: list[Transition] = []

    @property
    def state(self) -> State:
        """Last state reached (NoOp is never stored)."""
        return self._state

    @property
    def metadata(self) -> Optional[ConversationMetadata]:
        return self._metadata

    @property
    def history(self) -> list[Transition]:
        return list(self._history)

    @property
    def is_done(self) -> bool:
        return isinstance(self._state, Done)

    def _record(self, from_state: State, to_state: State, md: ConversationMetadata) -> None:
        self._history.append(Transition(str(from_state), str(to_state), datetime.now(timezone.utc)))
        _logger.debug("Transition %s -> %s (their_did=%s)", from_state, to_state, md.their_did)
        if self._on_transition:
            self._on_transition(from_state, to_state, md)

    def _abandon(self, current: State, err: BaseException, md: ConversationMetadata) -> State:
        """Route an error to the abandon path; errors while abandoning are fatal."""
        if isinstance(current, (Abandoning, Done)):
            raise err

        md.err = err
        code = abandon_code(err)
        _logger.warning("Abandoning conversation in state %s with code %s: %s", current, code, err)
        return Abandoning(code=code)

    async def run(self, next_state: State, md: ConversationMetadata) -> State:
        """
        Process one trigger, moving the conversation into ``next_state`` first.

        Raises InvalidStateTransition, without any network effect, when the
        current state does not allow ``next_state``.

        Returns:
            The state the conversation rests in afterwards
        """
        if not self._state.can_transition_to(next_state):
            raise InvalidStateTransition(str(self._state), str(next_state))

        self._metadata = md
        # caller cancellation is honored once, right after the first transition
        cancel_pending = is_user_cancellation(md.err)

        current = self._state
        action: Action = zero_action
        forced = False
        steps = 0

        while True:
            steps += 1
            if steps > self._max_transitions:
                raise ProtocolLoopError(
                    f"conversation exceeded {self._max_transitions} transitions in state {current}"
                )

            if isinstance(next_state, NoOp):
                # NoOp is the stop signal, not a table transition
                await action(self._messenger)
                break

            if not forced and not current.can_transition_to(next_state):
                err = InvalidStateTransition(str(current), str(next_state))
                next_state, action, forced = self._abandon(current, err, md), zero_action, True
                continue

            await action(self._messenger)
            self._record(current, next_state, md)
            current = self._state = next_state
            forced = False

            if cancel_pending and not isinstance(current, (Abandoning, Done)):
                cancel_pending = False
                _logger.info("Conversation stopped by caller in state %s", current)
                next_state, action = Abandoning(code=CODE_REJECTED_ERROR), zero_action
                continue

            try:
                next_state, action = await current.execute(md)
            except Exception as exc:
                next_state, action, forced = self._abandon(current, exc, md), zero_action, True

        if self.is_done:
            _logger.info("Conversation with %s completed", md.their_did)

        return self._state
