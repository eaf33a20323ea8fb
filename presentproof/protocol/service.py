"""
Present-proof service.

Maps messages to their conversations (by thread id), picks the state each
message moves the conversation into, and drives it with a
``ConversationDriver``. Conversations with different thread ids run
independently; triggers of the same conversation are serialized with a
per-thread lock.
"""

import asyncio
import logging
import weakref
from dataclasses import dataclass
from typing import Optional

from presentproof.errors import UnrecognizedMessageType, UserCancelled
from presentproof.models.enums import MessageType, StateName
from presentproof.models.envelope import DIDCommMessage
from presentproof.models.messages import Presentation, ProposePresentation, RequestPresentation
from presentproof.protocol.driver import ConversationDriver, TransitionCallback
from presentproof.protocol.metadata import ConversationMetadata
from presentproof.protocol.states import (
    CODE_INTERNAL_ERROR,
    Abandoning,
    Done,
    PresentationReceived,
    ProposalReceived,
    ProposalSent,
    RequestReceived,
    RequestSent,
    Start,
    State,
)
from presentproof.resolver.base import KeyResolver
from presentproof.transport.messenger import Messenger

_logger = logging.getLogger(__name__)


@dataclass
class ContinueOptions:
    """Caller input for a trigger: payloads to send, or a reason to stop."""
    request: Optional[RequestPresentation] = None
    propose_presentation: Optional[ProposePresentation] = None
    presentation: Optional[Presentation] = None
    stop_reason: Optional[str] = None


def next_state(msg: DIDCommMessage, outbound: bool) -> State:
    """State a message moves its conversation into."""
    msg_type = msg.msg_type

    if outbound:
        if msg_type == MessageType.REQUEST_PRESENTATION.value:
            return RequestSent()
        if msg_type == MessageType.PROPOSE_PRESENTATION.value:
            return ProposalSent()
        raise UnrecognizedMessageType(msg_type, "outbound")

    if msg_type == MessageType.REQUEST_PRESENTATION.value:
        return RequestReceived()
    if msg_type == MessageType.PROPOSE_PRESENTATION.value:
        return ProposalReceived()
    if msg_type == MessageType.PRESENTATION.value:
        return PresentationReceived()
    if msg_type == MessageType.ACK.value:
        return Done()
    if msg_type == MessageType.PROBLEM_REPORT.value:
        # the peer already gave up, nothing to report back
        return Abandoning(code="")
    raise UnrecognizedMessageType(msg_type, "inbound")


class ConversationStore:
    """
    In-memory conversation state, keyed by thread id.

    States are immutable values replaced wholesale after each trigger. A
    conversation that reaches Done is removed.
    """

    def __init__(self):
        self._states: dict[str, State] = {}

    def get(self, thid: str) -> State:
        return self._states.get(thid, Start())

    def put(self, thid: str, state: State) -> None:
        self._states[thid] = state

    def delete(self, thid: str) -> None:
        self._states.pop(thid, None)

    def __contains__(self, thid: str) -> bool:
        return thid in self._states

    def __len__(self) -> int:
        return len(self._states)


class PresentProofService:
    """
    Entry point for present-proof conversations.

    Usage:
        service = PresentProofService(messenger, resolver)
        await service.handle_outbound(request_msg, my_did, their_did)
        await service.handle_inbound(presentation_msg, my_did, their_did)
    """

    def __init__(
        self,
        messenger: Messenger,
        resolver: Optional[KeyResolver] = None,
        store: Optional[ConversationStore] = None,
        max_transitions: Optional[int] = None,
        on_transition: Optional[TransitionCallback] = None,
    ):
        self._messenger = messenger
        self._resolver = resolver
        self._store = store or ConversationStore()
        self._max_transitions = max_transitions
        self._on_transition = on_transition
        # a lock lives only while a trigger of its thread holds or awaits it
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    @property
    def store(self) -> ConversationStore:
        return self._store

    def _lock_for(self, thid: str) -> asyncio.Lock:
        lock = self._locks.get(thid)
        if lock is None:
            lock = self._locks[thid] = asyncio.Lock()
        return lock

    def current_state(self, thid: str) -> StateName:
        """
        Name of the state the conversation ``thid`` rests in.

        Finished conversations are forgotten, so their thread reads as
        ``start`` again.
        """
        return self._store.get(thid).name

    async def handle_inbound(
        self,
        msg: DIDCommMessage,
        my_did: str,
        their_did: str,
        options: Optional[ContinueOptions] = None,
    ) -> StateName:
        """Process a message received from ``their_did``."""
        if not msg.has_thread():
            # a received message always belongs to a conversation: answer it, never re-send it
            msg = msg.with_thread(msg.thread_id())
        return await self._handle(msg, my_did, their_did, next_state(msg, outbound=False), options)

    async def handle_outbound(
        self,
        msg: DIDCommMessage,
        my_did: str,
        their_did: str,
        options: Optional[ContinueOptions] = None,
    ) -> StateName:
        """Start (or continue) a conversation with a locally originated message."""
        return await self._handle(msg, my_did, their_did, next_state(msg, outbound=True), options)

    async def stop(
        self,
        msg: DIDCommMessage,
        my_did: str,
        their_did: str,
        reason: str = "stopped by the user",
    ) -> StateName:
        """
        Abandon the conversation of ``msg``, reporting ``rejected`` to the peer.

        ``msg`` is the last message received in the conversation.
        """
        return await self._handle(
            msg, my_did, their_did, Abandoning(code=CODE_INTERNAL_ERROR), None, UserCancelled(reason)
        )

    async def _handle(
        self,
        msg: DIDCommMessage,
        my_did: str,
        their_did: str,
        first: State,
        options: Optional[ContinueOptions],
        err: Optional[BaseException] = None,
    ) -> StateName:
        options = options or ContinueOptions()
        thid = msg.thread_id()
        if err is None and options.stop_reason is not None:
            err = UserCancelled(options.stop_reason)

        md = ConversationMetadata(
            msg=msg,
            my_did=my_did,
            their_did=their_did,
            resolver=self._resolver,
            request=options.request,
            propose_presentation=options.propose_presentation,
            presentation=options.presentation,
            err=err,
        )

        async with self._lock_for(thid):
            driver = ConversationDriver(
                self._messenger,
                state=self._store.get(thid),
                max_transitions=self._max_transitions,
                on_transition=self._on_transition,
            )
            _logger.debug("Thread %s: %s -> %s", thid, driver.state, first)
            try:
                state = await driver.run(first, md)
            except Exception:
                # nothing is stored: a failed trigger leaves the conversation where it was
                _logger.warning("Thread %s: trigger failed in state %s", thid, driver.state)
                raise

            if isinstance(state, Done):
                self._store.delete(thid)
            else:
                self._store.put(thid, state)

        return state.name
