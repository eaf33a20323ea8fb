"""
Tests for key resolution

Tests cover:
- StaticKeyResolver lookups
- HttpKeyResolver against a mocked universal resolver
"""

import base58
import httpx
import pytest
from nacl.signing import SigningKey

from presentproof.errors import KeyResolutionError
from presentproof.resolver import HttpKeyResolver, StaticKeyResolver, split_verification_method
from presentproof.resolver.http import decode_public_key, find_verification_method

DID = "did:example:123"


@pytest.fixture
def verify_key() -> bytes:
    return bytes(SigningKey.generate().verify_key)


def _document(key: bytes, encoding: str = "base58") -> dict:
    method = {"id": f"{DID}#key-1", "type": "Ed25519VerificationKey2018", "controller": DID}
    if encoding == "base58":
        method["publicKeyBase58"] = base58.b58encode(key).decode()
    else:
        method["publicKeyMultibase"] = "z" + base58.b58encode(b"\xed\x01" + key).decode()
    return {"didDocument": {"id": DID, "verificationMethod": [method]}}


def _resolver(handler, **kwargs) -> HttpKeyResolver:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpKeyResolver(base_url="http://resolver.test", client=client, **kwargs)


class TestSplitVerificationMethod:
    def test_with_fragment(self):
        assert split_verification_method(f"{DID}#key-1") == (DID, f"{DID}#key-1")

    def test_bare_did(self):
        assert split_verification_method(DID) == (DID, None)

    def test_empty(self):
        with pytest.raises(KeyResolutionError):
            split_verification_method("#key-1")


class TestStaticKeyResolver:
    @pytest.mark.asyncio
    async def test_by_method_id(self, verify_key):
        resolver = StaticKeyResolver({f"{DID}#key-1": verify_key})
        assert await resolver.resolve_public_key(DID, f"{DID}#key-1") == verify_key

    @pytest.mark.asyncio
    async def test_by_did(self, verify_key):
        resolver = StaticKeyResolver({DID: verify_key})
        assert await resolver.resolve_public_key(DID, f"{DID}#any") == verify_key

    @pytest.mark.asyncio
    async def test_unknown(self):
        with pytest.raises(KeyResolutionError, match="no public key"):
            await StaticKeyResolver({}).resolve_public_key(DID)


class TestDocumentHelpers:
    def test_relative_method_id(self, verify_key):
        document = _document(verify_key)["didDocument"]
        document["verificationMethod"][0]["id"] = "#key-1"
        assert find_verification_method(document, DID, f"{DID}#key-1")["id"] == "#key-1"

    def test_first_method_when_no_key_id(self, verify_key):
        document = _document(verify_key)["didDocument"]
        assert find_verification_method(document, DID, None) is document["verificationMethod"][0]

    def test_no_methods(self):
        with pytest.raises(KeyResolutionError, match="no verification methods"):
            find_verification_method({"id": DID}, DID, None)

    def test_wrong_key_length(self):
        with pytest.raises(KeyResolutionError, match="unexpected key length"):
            decode_public_key({"id": "k", "publicKeyBase58": base58.b58encode(b"short").decode()})

    def test_unsupported_multibase(self):
        with pytest.raises(KeyResolutionError, match="multibase"):
            decode_public_key({"id": "k", "publicKeyMultibase": "uAAAA"})

    def test_invalid_base58(self):
        with pytest.raises(KeyResolutionError):
            decode_public_key({"id": "k", "publicKeyBase58": "0OIl"})


class TestHttpKeyResolver:
    """Test HttpKeyResolver with httpx.MockTransport."""

    @pytest.mark.asyncio
    async def test_resolves_base58_key(self, verify_key):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json=_document(verify_key))

        resolver = _resolver(handler)
        assert await resolver.resolve_public_key(DID, f"{DID}#key-1") == verify_key
        assert requests[0].url.path == f"/1.0/identifiers/{DID}"

    @pytest.mark.asyncio
    async def test_resolves_multibase_key(self, verify_key):
        resolver = _resolver(lambda request: httpx.Response(200, json=_document(verify_key, "multibase")))
        assert await resolver.resolve_public_key(DID, f"{DID}#key-1") == verify_key

    @pytest.mark.asyncio
    async def test_bare_document_response(self, verify_key):
        document = _document(verify_key)["didDocument"]
        resolver = _resolver(lambda request: httpx.Response(200, json=document))
        assert await resolver.resolve_public_key(DID) == verify_key

    @pytest.mark.asyncio
    async def test_documents_are_cached(self, verify_key):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json=_document(verify_key))

        resolver = _resolver(handler)
        await resolver.resolve_public_key(DID, f"{DID}#key-1")
        await resolver.resolve_public_key(DID, f"{DID}#key-1")
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_stale_document_is_fetched_again(self, verify_key):
        """A rotated key is picked up once the cached document expires."""
        rotated = bytes(SigningKey.generate().verify_key)
        served = [_document(verify_key), _document(rotated)]
        clock = [0.0]

        def handler(request):
            return httpx.Response(200, json=served.pop(0))

        resolver = _resolver(handler, cache_ttl=60.0, timer=lambda: clock[0])
        assert await resolver.resolve_public_key(DID, f"{DID}#key-1") == verify_key

        clock[0] = 30.0
        assert await resolver.resolve_public_key(DID, f"{DID}#key-1") == verify_key

        clock[0] = 61.0
        assert await resolver.resolve_public_key(DID, f"{DID}#key-1") == rotated
        assert served == []

    @pytest.mark.asyncio
    async def test_not_found(self):
        resolver = _resolver(lambda request: httpx.Response(404, json={"error": "notFound"}))
        with pytest.raises(KeyResolutionError, match="resolve"):
            await resolver.resolve_public_key(DID)

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        resolver = _resolver(lambda request: httpx.Response(200, content=b"<html>"))
        with pytest.raises(KeyResolutionError, match="invalid JSON"):
            await resolver.resolve_public_key(DID)

    @pytest.mark.asyncio
    async def test_unknown_method(self, verify_key):
        resolver = _resolver(lambda request: httpx.Response(200, json=_document(verify_key)))
        with pytest.raises(KeyResolutionError, match="not found"):
            await resolver.resolve_public_key(DID, f"{DID}#key-9")

    @pytest.mark.asyncio
    async def test_transport_errors_are_retried(self, verify_key):
        attempts = []

        def handler(request):
            attempts.append(request)
            if len(attempts) == 1:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, json=_document(verify_key))

        resolver = _resolver(handler, max_retries=3)
        assert await resolver.resolve_public_key(DID) == verify_key
        assert len(attempts) == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self):
        attempts = []

        def handler(request):
            attempts.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        resolver = _resolver(handler, max_retries=2)
        with pytest.raises(KeyResolutionError):
            await resolver.resolve_public_key(DID)
        assert len(attempts) == 2
