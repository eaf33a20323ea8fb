"""Key-resolution capability consumed by the presentation verifier."""

from presentproof.resolver.base import (
    KeyResolver,
    StaticKeyResolver,
    split_verification_method,
)
from presentproof.resolver.http import HttpKeyResolver

__all__ = [
    "HttpKeyResolver",
    "KeyResolver",
    "StaticKeyResolver",
    "split_verification_method",
]
