"""
Presentation verification

Components:
    presentation — attachment decoding and verifiable presentation checks
"""

from presentproof.verification.presentation import (
    canonical_bytes,
    decode_attachment,
    parse_presentation,
    verify_presentations,
)

__all__ = [
    "canonical_bytes",
    "decode_attachment",
    "parse_presentation",
    "verify_presentations",
]
