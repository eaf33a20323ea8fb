"""
Present-proof protocol engine.

A verifier requests a verifiable presentation, a prover supplies it, with
optional counter-proposals in between. The engine decides which messages
are legal at each point, drives the resulting sends and replies, and
verifies received presentations before acknowledging them.
"""

from presentproof.protocol import (
    ContinueOptions,
    ConversationDriver,
    ConversationMetadata,
    PresentProofService,
)

__version__ = "0.1.0"

__all__ = [
    "ContinueOptions",
    "ConversationDriver",
    "ConversationMetadata",
    "PresentProofService",
    "__version__",
]
