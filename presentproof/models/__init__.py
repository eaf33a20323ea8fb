"""
Message models for the present-proof protocol.

All modules import message types from here.
"""

from presentproof.models.enums import (
    AckStatus,
    MessageType,
    ProblemCode,
    StateName,
)
from presentproof.models.envelope import DIDCommMessage
from presentproof.models.messages import (
    Ack,
    Attachment,
    AttachmentData,
    Code,
    Format,
    Presentation,
    ProblemReport,
    ProposePresentation,
    RequestPresentation,
    Thread,
)

__all__ = [
    # Enums
    "AckStatus",
    "MessageType",
    "ProblemCode",
    "StateName",
    # Envelope
    "DIDCommMessage",
    # Payloads
    "Ack",
    "Attachment",
    "AttachmentData",
    "Code",
    "Format",
    "Presentation",
    "ProblemReport",
    "ProposePresentation",
    "RequestPresentation",
    "Thread",
]
