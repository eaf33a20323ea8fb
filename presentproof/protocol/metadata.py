"""Per-conversation context passed to every state executor."""

from dataclasses import dataclass
from typing import Optional

from presentproof.models.envelope import DIDCommMessage
from presentproof.models.messages import Presentation, ProposePresentation, RequestPresentation
from presentproof.resolver.base import KeyResolver


@dataclass
class ConversationMetadata:
    """
    Context for one trigger of one conversation.

    Owned by a single conversation; never shared across conversations.
    The resolver is the only shared collaborator and is read-only.
    """
    msg: DIDCommMessage
    my_did: str
    their_did: str
    resolver: Optional[KeyResolver] = None

    # Caller-supplied payloads
    request: Optional[RequestPresentation] = None
    propose_presentation: Optional[ProposePresentation] = None
    presentation: Optional[Presentation] = None

    # Error that triggered abandonment (or a caller cancellation)
    err: Optional[BaseException] = None
