"""
Exceptions raised by the leg search library.

Validation problems the caller can show to a user are reported as messages on
the search result instead; these exceptions cover programming errors and
failures of the backing store.
"""


class LegSearchError(Exception):
    """Base class for leg search errors."""


class InvalidSearchAreaError(LegSearchError, ValueError):
    """Neither a departure nor an arrival bounding box was supplied."""


class StoreError(LegSearchError):
    """A query against the leg store failed."""

    def __init__(self, message: str, operation: str = ""):
        super().__init__(message)
        self.operation = operation


class StoreUnavailableError(StoreError):
    """The store does not provide the requested operation (e.g. a missing RPC)."""


class StrategyUnavailableError(LegSearchError):
    """A spatial strategy cannot serve the given combination of inputs."""
