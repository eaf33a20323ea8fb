"""
Presentation Verifier

Decodes each attachment of a received presentation and validates it as a
verifiable presentation, fetching signer keys through the key-resolution
capability.

Limitations:
    Only base64 attachment payloads are supported. Attachments carried as
    links or inline JSON are rejected with a DecodeError.

Signature scheme:
    A ``proof`` (object or list) is checked against the URDNA2015
    normalization (N-Quads, UTF-8) of the presentation with ``proof``
    removed. Contexts are expanded with the pyld document loader.
    ``Ed25519Signature2018`` carries a base64url ``proofValue``;
    ``Ed25519Signature2020`` carries a multibase (``z``, base58btc)
    ``proofValue``. Either may instead carry a detached base64url ``jws``
    signature. A presentation without a proof is accepted once its structure
    is valid.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from typing import Any, Iterable

import base58
from nacl.exceptions import BadSignatureError, CryptoError
from nacl.signing import VerifyKey
from pyld import jsonld

from presentproof.errors import DecodeError, KeyResolutionError, VerificationError
from presentproof.models.messages import Attachment
from presentproof.resolver.base import KeyResolver, split_verification_method

_logger = logging.getLogger(__name__)

VP_TYPE = "VerifiablePresentation"
SUPPORTED_PROOF_TYPES = frozenset({"Ed25519Signature2018", "Ed25519Signature2020"})
NORMALIZE_OPTIONS = {"algorithm": "URDNA2015", "format": "application/n-quads"}


def canonical_bytes(document: dict[str, Any]) -> bytes:
    """Bytes covered by a proof: URDNA2015 N-Quads of the document without ``proof``."""
    unsigned = {k: v for k, v in document.items() if k != "proof"}
    try:
        normalized = jsonld.normalize(unsigned, NORMALIZE_OPTIONS)
    except jsonld.JsonLdError as exc:
        raise VerificationError(f"normalize presentation: {exc}") from exc
    return normalized.encode("utf-8")


def _b64url_decode(value: str) -> bytes:
    return base64.urlsafe_b64decode(value + "=" * (-len(value) % 4))


def _decode_signature(proof: dict[str, Any]) -> bytes:
    proof_value = proof.get("proofValue")
    jws = proof.get("jws")

    try:
        if isinstance(proof_value, str) and proof_value:
            if proof.get("type") != "Ed25519Signature2020":
                return _b64url_decode(proof_value)
            if not proof_value.startswith("z"):
                raise VerificationError("Ed25519Signature2020 proofValue must be base58btc multibase")
            return base58.b58decode(proof_value[1:])
        if isinstance(jws, str) and jws:
            return _b64url_decode(jws)
    except (ValueError, binascii.Error) as exc:
        raise VerificationError(f"decode proofValue: {exc}") from exc

    raise VerificationError("proof has no proofValue")


def _check_structure(document: Any) -> list[dict[str, Any]]:
    """Validate the presentation shape and return its proofs."""
    if not isinstance(document, dict):
        raise VerificationError("verifiable presentation must be a JSON object")
    if "@context" not in document:
        raise VerificationError("verifiable presentation has no @context")

    types = document.get("type")
    if isinstance(types, str):
        types = [types]
    if not isinstance(types, list) or VP_TYPE not in types:
        raise VerificationError(f"verifiable presentation type must include {VP_TYPE}")

    proofs = document.get("proof")
    if proofs is None:
        return []
    if isinstance(proofs, dict):
        return [proofs]
    if isinstance(proofs, list) and all(isinstance(p, dict) for p in proofs):
        return proofs
    raise VerificationError("proof must be an object or a list of objects")


async def parse_presentation(raw: bytes, resolver: KeyResolver) -> dict[str, Any]:
    """
    Parse and verify a single verifiable presentation.

    Args:
        raw: JSON bytes of the presentation
        resolver: Key-resolution capability used for every proof

    Returns:
        The parsed presentation document

    Raises:
        VerificationError: on invalid JSON, invalid structure, unknown
            proof type, unresolvable key or bad signature
    """
    try:
        document = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise VerificationError(f"invalid JSON: {exc}") from exc

    proofs = _check_structure(document)
    if not proofs:
        return document

    signed = canonical_bytes(document)
    for proof in proofs:
        proof_type = proof.get("type")
        if proof_type not in SUPPORTED_PROOF_TYPES:
            raise VerificationError(f"unsupported proof type: {proof_type}")

        verification_method = proof.get("verificationMethod")
        if not isinstance(verification_method, str):
            raise VerificationError("proof has no verificationMethod")

        try:
            did, key_id = split_verification_method(verification_method)
            public_key = await resolver.resolve_public_key(did, key_id)
        except KeyResolutionError as exc:
            raise VerificationError(f"public key fetcher: {exc}") from exc

        signature = _decode_signature(proof)
        try:
            VerifyKey(public_key).verify(signed, signature)
        except BadSignatureError as exc:
            raise VerificationError(f"invalid signature for {verification_method}") from exc
        except (CryptoError, ValueError, TypeError) as exc:
            raise VerificationError(f"check signature for {verification_method}: {exc}") from exc

    return document


def decode_attachment(attachment: Attachment) -> bytes:
    """Decode the base64 payload of an attachment."""
    payload = attachment.data.base64
    if not payload:
        raise DecodeError(
            f"attachment {attachment.id or '<unnamed>'}: only base64 payloads are supported"
        )
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecodeError(f"decode string: {exc}") from exc


async def verify_presentations(resolver: KeyResolver, attachments: Iterable[Attachment]) -> None:
    """
    Verify every attachment of a presentation, stopping at the first failure.

    Raises:
        DecodeError: an attachment payload is missing or not valid base64
        VerificationError: an attachment is not a valid verifiable presentation
    """
    count = 0
    for attachment in attachments:
        raw = decode_attachment(attachment)
        try:
            await parse_presentation(raw, resolver)
        except VerificationError as exc:
            raise VerificationError(f"new presentation: {exc}") from exc
        count += 1

    _logger.debug("Verified %d presentation attachment(s)", count)
