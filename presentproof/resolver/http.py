"""
HTTP DID Resolver

Resolves DID documents through a universal-resolver style endpoint
(``GET {base_url}/1.0/identifiers/{did}``) and extracts Ed25519 public keys
from their verification methods.

Supported key encodings:
- publicKeyBase58
- publicKeyMultibase (``z`` prefix, base58btc, optional ed25519-pub multicodec)
"""

import logging
import time
from typing import Any, Callable, Optional

import base58
import httpx
from cachetools import TTLCache
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from presentproof.config import get_settings
from presentproof.errors import KeyResolutionError

_logger = logging.getLogger(__name__)

ED25519_KEY_LENGTH = 32
# multicodec varint for ed25519-pub
_ED25519_MULTICODEC = b"\xed\x01"


def decode_public_key(method: dict[str, Any]) -> bytes:
    """Decode the raw key bytes of a single verification method entry."""
    try:
        if method.get("publicKeyBase58"):
            raw = base58.b58decode(method["publicKeyBase58"])
        elif method.get("publicKeyMultibase"):
            encoded: str = method["publicKeyMultibase"]
            if not encoded.startswith("z"):
                raise KeyResolutionError(f"unsupported multibase prefix: {encoded[:1]!r}")
            raw = base58.b58decode(encoded[1:])
            if len(raw) == ED25519_KEY_LENGTH + 2 and raw[:2] == _ED25519_MULTICODEC:
                raw = raw[2:]
        else:
            raise KeyResolutionError(f"verification method {method.get('id')} has no supported key encoding")
    except ValueError as exc:
        raise KeyResolutionError(f"decode key of {method.get('id')}: {exc}") from exc

    if len(raw) != ED25519_KEY_LENGTH:
        raise KeyResolutionError(f"unexpected key length {len(raw)} for {method.get('id')}")
    return raw


def find_verification_method(
    document: dict[str, Any],
    did: str,
    key_id: Optional[str],
) -> dict[str, Any]:
    """Pick the verification method matching ``key_id`` (first one if not given)."""
    methods = list(document.get("verificationMethod") or []) + list(document.get("publicKey") or [])
    if not methods:
        raise KeyResolutionError(f"DID document for {did} has no verification methods")

    if key_id is None:
        return methods[0]

    fragment = key_id.partition("#")[2]
    for method in methods:
        method_id = method.get("id", "")
        # Methods may use relative ids ("#key-1")
        if method_id == key_id or (fragment and method_id == f"#{fragment}"):
            return method

    raise KeyResolutionError(f"verification method {key_id} not found in DID document")


class HttpKeyResolver:
    """
    Key resolver backed by a remote DID resolver.

    Resolved documents are cached per instance for
    ``resolver_cache_ttl_seconds``, after which the next lookup fetches the
    DID's current document again. One resolver can be shared by concurrent
    conversations.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        client: Optional[httpx.AsyncClient] = None,
        cache_ttl: Optional[float] = None,
        timer: Callable[[], float] = time.monotonic,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.resolver_url).rstrip("/")
        self.timeout = timeout or settings.resolver_timeout_seconds
        self.max_retries = max_retries or settings.resolver_max_retries
        self._client = client
        self._owns_client = client is None
        self._documents: TTLCache = TTLCache(
            maxsize=settings.resolver_cache_size,
            ttl=cache_ttl or settings.resolver_cache_ttl_seconds,
            timer=timer,
        )

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if this resolver created it."""
        if self._client and self._owns_client:
            await self._client.aclose()
        self._client = None

    async def _fetch(self, did: str) -> dict[str, Any]:
        client = await self._get_client()
        response = await client.get(f"{self.base_url}/1.0/identifiers/{did}")
        response.raise_for_status()
        return response.json()

    async def resolve_document(self, did: str) -> dict[str, Any]:
        """Fetch (or return the cached) DID document for ``did``."""
        cached = self._documents.get(did)
        if cached is not None:
            return cached

        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type(httpx.TransportError),
                stop=stop_after_attempt(self.max_retries),
                wait=wait_exponential_jitter(initial=0.2, max=2.0),
                before_sleep=before_sleep_log(_logger, logging.WARNING),
                reraise=True,
            ):
                with attempt:
                    data = await self._fetch(did)
        except httpx.HTTPError as exc:
            raise KeyResolutionError(f"resolve {did}: {exc}") from exc
        except ValueError as exc:
            raise KeyResolutionError(f"resolve {did}: invalid JSON response") from exc

        document = data.get("didDocument", data) if isinstance(data, dict) else None
        if not isinstance(document, dict):
            raise KeyResolutionError(f"resolve {did}: response has no DID document")

        _logger.debug("Resolved DID document for %s", did)
        self._documents[did] = document
        return document

    async def resolve_public_key(self, did: str, key_id: Optional[str] = None) -> bytes:
        document = await self.resolve_document(did)
        return decode_public_key(find_verification_method(document, did, key_id))
