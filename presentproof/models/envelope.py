"""
DIDComm message envelope.

A thin ``dict`` subclass over the JSON object received from (or sent to)
the transport. Only the accessors the protocol engine needs are exposed:
the message id and type, the thread reference, and decoding into a typed
payload model.
"""

from typing import Any, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from presentproof.errors import DecodeError, ThreadIDNotFound
from presentproof.models.messages import Thread

T = TypeVar("T", bound=BaseModel)

JSON_ID = "@id"
JSON_TYPE = "@type"
JSON_THREAD = "~thread"


class DIDCommMessage(dict):
    """JSON-object message envelope."""

    @classmethod
    def from_model(cls, payload: BaseModel) -> "DIDCommMessage":
        """Serialize a typed payload using its wire keys."""
        return cls(payload.model_dump(by_alias=True, exclude_none=True, mode="json"))

    @property
    def id(self) -> Optional[str]:
        value = self.get(JSON_ID)
        return value if isinstance(value, str) and value else None

    @property
    def msg_type(self) -> Optional[str]:
        value = self.get(JSON_TYPE)
        return value if isinstance(value, str) and value else None

    def has_thread(self) -> bool:
        """True if the message carries a thread reference (not the first message)."""
        return JSON_THREAD in self

    def thread_id(self) -> str:
        """
        Return the conversation thread id.

        Falls back to the message's own id, since the first message of a
        conversation starts the thread. Raises ThreadIDNotFound if neither
        is present.
        """
        thread = self.get(JSON_THREAD)
        if isinstance(thread, dict):
            thid = thread.get("thid")
            if isinstance(thid, str) and thid:
                return thid

        if self.id:
            return self.id

        raise ThreadIDNotFound()

    def decode(self, model: type[T]) -> T:
        """Validate the message into ``model``; raises DecodeError on bad structure."""
        try:
            return model.model_validate(dict(self))
        except ValidationError as exc:
            raise DecodeError(f"decode {model.__name__}: {exc}") from exc

    def with_thread(self, thid: str) -> "DIDCommMessage":
        """Return a copy carrying a ``~thread`` reference to ``thid``."""
        copy: dict[str, Any] = dict(self)
        copy[JSON_THREAD] = Thread(thid=thid).model_dump(exclude_none=True)
        return DIDCommMessage(copy)
