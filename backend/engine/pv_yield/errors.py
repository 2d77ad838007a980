"""Error taxonomy for the yield estimation engine.

Validation failures are never retried and never fall back.  Every
``RemoteServiceError`` makes the orchestrator fall back to the offline
lookup table.  ``LookupTableError`` signals a broken static table and is
a programming error, not a user-facing condition.
"""

from __future__ import annotations


class YieldEstimationError(Exception):
    """Base class for all engine errors."""


class ValidationError(YieldEstimationError, ValueError):
    """Malformed coordinates, capacity or loss assumptions."""


class LookupTableError(YieldEstimationError):
    """The static GHI table violates its coverage or normalisation invariants."""


class RemoteServiceError(YieldEstimationError):
    """The remote yield service could not produce a usable response."""


class CoverageError(RemoteServiceError):
    """The service rejected the location or parameters (HTTP 400)."""


class RemoteTimeoutError(RemoteServiceError, TimeoutError):
    """The request did not complete within the configured timeout."""


class ServiceError(RemoteServiceError):
    """Transport failure or a non-2xx response other than 400."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class MalformedResponseError(ServiceError):
    """The service answered 2xx but the payload has the wrong shape."""
