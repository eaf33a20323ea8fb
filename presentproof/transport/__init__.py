"""Transport adapter contract."""

from presentproof.transport.messenger import Messenger

__all__ = ["Messenger"]
