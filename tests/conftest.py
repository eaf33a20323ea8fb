"""Shared fixtures: a recording messenger, signing keys and presentation builders."""

import base64
import json
from typing import Any, Optional

import pytest
from nacl.signing import SigningKey
from pyld import jsonld

from presentproof.models import DIDCommMessage, MessageType
from presentproof.protocol import ConversationMetadata
from presentproof.resolver import StaticKeyResolver

PROVER_DID = "did:example:prover"
VERIFIER_DID = "did:example:verifier"
KEY_ID = f"{PROVER_DID}#key-1"


class RecordingMessenger:
    """Messenger that records every call instead of delivering it."""

    def __init__(self, fail_with: Optional[Exception] = None):
        self.sent: list[tuple[DIDCommMessage, str, str]] = []
        self.replies: list[tuple[str, DIDCommMessage]] = []
        self.nested: list[tuple[str, DIDCommMessage, str, str]] = []
        self.fail_with = fail_with

    async def send(self, msg, my_did, their_did):
        if self.fail_with:
            raise self.fail_with
        self.sent.append((msg, my_did, their_did))

    async def reply_to(self, msg_id, msg):
        if self.fail_with:
            raise self.fail_with
        self.replies.append((msg_id, msg))

    async def reply_to_nested(self, thread_id, msg, my_did, their_did):
        if self.fail_with:
            raise self.fail_with
        self.nested.append((thread_id, msg, my_did, their_did))

    @property
    def calls(self) -> int:
        return len(self.sent) + len(self.replies) + len(self.nested)


# inline so normalization never reaches for a remote context
VP_CONTEXT = {
    "@vocab": "https://www.w3.org/2018/credentials#",
    "type": "@type",
    "holder": {"@type": "@id"},
}


def signed_bytes(document: dict[str, Any]) -> bytes:
    unsigned = {k: v for k, v in document.items() if k != "proof"}
    normalized = jsonld.normalize(unsigned, {"algorithm": "URDNA2015", "format": "application/n-quads"})
    return normalized.encode()


def sign_presentation(document: dict[str, Any], key: SigningKey, verification_method: str = KEY_ID) -> dict[str, Any]:
    """Attach an Ed25519Signature2018 proof to ``document``."""
    signature = key.sign(signed_bytes(document)).signature
    return {
        **document,
        "proof": {
            "type": "Ed25519Signature2018",
            "verificationMethod": verification_method,
            "proofPurpose": "authentication",
            "proofValue": base64.urlsafe_b64encode(signature).rstrip(b"=").decode(),
        },
    }


def make_vp(holder: str = PROVER_DID) -> dict[str, Any]:
    return {
        "@context": [VP_CONTEXT],
        "type": ["VerifiablePresentation"],
        "holder": holder,
        "verifiableCredential": [],
    }


def attachment_for(document: dict[str, Any], attach_id: str = "vp-1") -> dict[str, Any]:
    encoded = base64.b64encode(json.dumps(document).encode()).decode()
    return {"@id": attach_id, "mime-type": "application/ld+json", "data": {"base64": encoded}}


def presentation_message(
    attachments: list[dict[str, Any]],
    msg_id: str = "pres-1",
    thid: Optional[str] = "req-1",
) -> DIDCommMessage:
    msg: dict[str, Any] = {
        "@id": msg_id,
        "@type": MessageType.PRESENTATION.value,
        "presentations~attach": attachments,
    }
    if thid:
        msg["~thread"] = {"thid": thid}
    return DIDCommMessage(msg)


def request_message(msg_id: str = "req-1", thid: Optional[str] = None) -> DIDCommMessage:
    msg: dict[str, Any] = {
        "@id": msg_id,
        "@type": MessageType.REQUEST_PRESENTATION.value,
        "comment": "please present",
    }
    if thid:
        msg["~thread"] = {"thid": thid}
    return DIDCommMessage(msg)


def proposal_message(msg_id: str = "prop-1", thid: Optional[str] = "req-1") -> DIDCommMessage:
    msg: dict[str, Any] = {
        "@id": msg_id,
        "@type": MessageType.PROPOSE_PRESENTATION.value,
        "comment": "how about this instead",
    }
    if thid:
        msg["~thread"] = {"thid": thid}
    return DIDCommMessage(msg)


@pytest.fixture
def messenger():
    return RecordingMessenger()


@pytest.fixture
def signing_key():
    return SigningKey.generate()


@pytest.fixture
def resolver(signing_key):
    return StaticKeyResolver({KEY_ID: bytes(signing_key.verify_key)})


@pytest.fixture
def signed_vp(signing_key):
    return sign_presentation(make_vp(), signing_key)


@pytest.fixture
def make_md(resolver):
    """Build metadata for a message, verifier-side by default."""
    def _make(msg: DIDCommMessage, **kwargs) -> ConversationMetadata:
        kwargs.setdefault("resolver", resolver)
        return ConversationMetadata(msg=msg, my_did=VERIFIER_DID, their_did=PROVER_DID, **kwargs)
    return _make
