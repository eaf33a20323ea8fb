"""
Error taxonomy for the present-proof engine.

Every error carries an ``ErrorKind`` discriminant. The abandon path checks
the kind (never the message text) to tell a caller cancellation apart from
an internal failure.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Discriminant attached to every engine error."""
    INTERNAL = "internal"
    DECODE = "decode"
    VERIFICATION = "verification"
    MISSING_DATA = "missing_data"
    THREAD_RESOLUTION = "thread_resolution"
    USER_CANCELLED = "user_cancelled"


class PresentProofError(Exception):
    """Base class for all engine errors."""

    kind: ErrorKind = ErrorKind.INTERNAL


class DecodeError(PresentProofError):
    """Malformed envelope or attachment payload."""

    kind = ErrorKind.DECODE


class VerificationError(PresentProofError):
    """A presentation failed structural or cryptographic verification."""

    kind = ErrorKind.VERIFICATION


class KeyResolutionError(PresentProofError):
    """A signer's public key could not be resolved."""

    kind = ErrorKind.VERIFICATION


class MissingDataError(PresentProofError):
    """A payload the current state needs was not supplied by the caller."""

    kind = ErrorKind.MISSING_DATA


class ThreadIDNotFound(PresentProofError):
    """The message carries neither a thread id nor a message id."""

    kind = ErrorKind.THREAD_RESOLUTION

    def __init__(self, message: str = "threadID not found"):
        super().__init__(message)


class InvalidStateTransition(PresentProofError):
    """Raised when a transition is not allowed by the static table."""

    def __init__(self, from_state: str, to_state: str):
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(f"invalid state transition: {from_state} -> {to_state}")


class ProtocolLoopError(PresentProofError):
    """The driver exceeded its transition budget for a single trigger."""


class UnimplementedStateError(PresentProofError):
    """The state cannot be executed directly."""


class UnrecognizedMessageType(PresentProofError):
    """The message type does not belong to the present-proof protocol."""

    def __init__(self, msg_type: Optional[str], direction: str):
        self.msg_type = msg_type
        super().__init__(f"unrecognized {direction} message type: {msg_type}")


class UserCancelled(PresentProofError):
    """The caller explicitly stopped the conversation."""

    kind = ErrorKind.USER_CANCELLED

    def __init__(self, reason: str = "stopped by the user"):
        self.reason = reason
        super().__init__(reason)


def is_user_cancellation(err: Optional[BaseException]) -> bool:
    """Check whether ``err`` or anything in its cause chain is a cancellation."""
    seen: set[int] = set()
    while err is not None and id(err) not in seen:
        seen.add(id(err))
        if getattr(err, "kind", None) == ErrorKind.USER_CANCELLED:
            return True
        err = err.__cause__ or err.__context__
    return False
