"""Key-resolution capability and an in-memory implementation."""

from typing import Mapping, Optional, Protocol, runtime_checkable

from presentproof.errors import KeyResolutionError


@runtime_checkable
class KeyResolver(Protocol):
    """Maps a signer's DID (and optional verification method) to a raw Ed25519 key.

    Implementations are shared by every conversation of a service, so they
    must tolerate concurrent calls.
    """

    async def resolve_public_key(self, did: str, key_id: Optional[str] = None) -> bytes:
        ...


def split_verification_method(verification_method: str) -> tuple[str, Optional[str]]:
    """Split ``did:example:123#key-1`` into the DID and the full method id."""
    did, sep, fragment = verification_method.partition("#")
    if not did:
        raise KeyResolutionError(f"invalid verification method: {verification_method!r}")
    return did, (f"{did}#{fragment}" if sep and fragment else None)


class StaticKeyResolver:
    """
    Resolver backed by a fixed mapping.

    Keys may be registered under a full verification method id
    (``did#key-1``) or under a bare DID, which then serves every method of
    that DID. The mapping is copied at construction and never mutated, so one
    instance can be read from many conversations at once.
    """

    def __init__(self, keys: Mapping[str, bytes]):
        self._keys = dict(keys)

    async def resolve_public_key(self, did: str, key_id: Optional[str] = None) -> bytes:
        if key_id and key_id in self._keys:
            return self._keys[key_id]
        if did in self._keys:
            return self._keys[did]
        raise KeyResolutionError(f"no public key for {key_id or did}")
