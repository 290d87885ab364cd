"""
Error taxonomy for the engine.

Per-id problems (ParseFailure, InvalidPrice) never abort a batch; only store
connectivity problems (StoreUnavailable, RetrievalTimeout) fail a request.
"""


class EdgeboardError(Exception):
    """Base class for engine errors."""


class InvalidInput(EdgeboardError):
    """Malformed request input (ids, body). Answered with an empty result."""


class InvalidPrice(EdgeboardError, ValueError):
    """American price whose magnitude cannot be represented."""

    def __init__(self, price):
        super().__init__(f"Invalid American price: {price}")
        self.price = price


class ParseFailure(EdgeboardError):
    """A stored row could not be decoded."""


class InsufficientData(EdgeboardError):
    """Analytics requested on a series too short to answer."""


class StoreUnavailable(EdgeboardError):
    """Key-value store I/O failed."""


class RetrievalTimeout(StoreUnavailable):
    """Row hydration did not finish within the configured timeout."""
