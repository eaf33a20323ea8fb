"""Typed present-proof message payloads."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from presentproof.models.enums import AckStatus, MessageType


class _Message(BaseModel):
    """Common base: wire keys are aliases, Python names are accepted too."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")


class Thread(_Message):
    """The ``~thread`` decorator."""

    thid: Optional[str] = Field(default=None, description="Thread id")
    pthid: Optional[str] = Field(default=None, description="Parent thread id")


class AttachmentData(_Message):
    """Attachment payload. Exactly one of the encodings is normally set."""

    sha256: Optional[str] = None
    links: Optional[list[str]] = None
    base64: Optional[str] = None
    json_: Optional[Any] = Field(default=None, alias="json")


class Attachment(_Message):
    """The ``~attach`` decorator entry."""

    id: Optional[str] = Field(default=None, alias="@id")
    mime_type: Optional[str] = Field(default=None, alias="mime-type")
    filename: Optional[str] = None
    lastmod_time: Optional[str] = None
    byte_count: Optional[int] = Field(default=None, ge=0)
    description: Optional[str] = None
    data: AttachmentData = Field(default_factory=AttachmentData)


class Format(_Message):
    """Attachment format descriptor."""

    attach_id: str
    format: str


class ProposePresentation(_Message):
    """Prover's counter-proposal."""

    type: Optional[str] = Field(default=None, alias="@type")
    id: Optional[str] = Field(default=None, alias="@id")
    comment: Optional[str] = None
    formats: Optional[list[Format]] = None
    proposals: Optional[list[Attachment]] = Field(default=None, alias="proposals~attach")


class RequestPresentation(_Message):
    """Verifier's request for a presentation."""

    type: Optional[str] = Field(default=None, alias="@type")
    id: Optional[str] = Field(default=None, alias="@id")
    comment: Optional[str] = None
    will_confirm: Optional[bool] = None
    formats: Optional[list[Format]] = None
    request_presentations: Optional[list[Attachment]] = Field(
        default=None, alias="request_presentations~attach"
    )


class Presentation(_Message):
    """Prover's presentation: one attachment per verifiable presentation."""

    type: Optional[str] = Field(default=None, alias="@type")
    id: Optional[str] = Field(default=None, alias="@id")
    comment: Optional[str] = None
    formats: Optional[list[Format]] = None
    presentations: list[Attachment] = Field(default_factory=list, alias="presentations~attach")


class Code(BaseModel):
    """Problem-report description."""

    code: str


class ProblemReport(_Message):
    """Peer notification sent when a conversation is abandoned."""

    type: str = Field(default=MessageType.PROBLEM_REPORT.value, alias="@type")
    id: Optional[str] = Field(default=None, alias="@id")
    description: Code


class Ack(_Message):
    """Acknowledgment of an accepted presentation."""

    type: str = Field(default=MessageType.ACK.value, alias="@type")
    id: Optional[str] = Field(default=None, alias="@id")
    status: Optional[AckStatus] = None
