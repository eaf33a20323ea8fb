"""Transport capability consumed by state actions."""

from typing import Protocol, runtime_checkable

from presentproof.models.envelope import DIDCommMessage


@runtime_checkable
class Messenger(Protocol):
    """
    Narrow send/reply contract over the DIDComm transport.

    Delivery, retransmission and ordering are the transport's concern.
    """

    async def send(self, msg: DIDCommMessage, my_did: str, their_did: str) -> None:
        """Deliver the first message of a new conversation."""
        ...

    async def reply_to(self, msg_id: str, msg: DIDCommMessage) -> None:
        """Reply within the conversation of the message ``msg_id``."""
        ...

    async def reply_to_nested(
        self,
        thread_id: str,
        msg: DIDCommMessage,
        my_did: str,
        their_did: str,
    ) -> None:
        """Reply addressed by thread id rather than message id."""
        ...
