"""Error hierarchy for schedule acquisition, decoding and caching.

Transient failures (network timeouts, viewer not ready) are retried by the
tenacity decorators in acquire.py; permanent failures (a workbook that does
not look like a court schedule) are not.

Example usage with tenacity:
    @retry(retry=retry_if_exception_type(TransientError), stop=stop_after_attempt(3))
    async def download_workbook():
        ...
"""

from typing import Literal

DecodeReason = Literal["no-day-headers-found", "malformed-grid"]


class CourtScheduleError(Exception):
    """Base exception for all court schedule errors."""

    pass


class TransientError(CourtScheduleError):
    """Temporary failure that may succeed on retry."""

    pass


class PermanentError(CourtScheduleError):
    """Failure that won't succeed on retry."""

    pass


class AcquisitionFailure(TransientError):
    """The workbook could not be retrieved from the document viewer.

    Examples: viewer page failed to load, File menu never appeared,
    download did not complete.
    """

    pass


class AcquisitionTimeout(AcquisitionFailure):
    """Acquisition exceeded its overall deadline.

    Handled exactly like any other AcquisitionFailure by the cache.
    """

    pass


class DecodeFailure(PermanentError):
    """The grid does not have the shape of a court schedule."""

    def __init__(self, reason: DecodeReason, detail: str = "") -> None:
        self.reason = reason
        self.detail = detail
        message = reason if not detail else f"{reason}: {detail}"
        super().__init__(message)


class ApiRequestError(TransientError):
    """The schedule API could not be reached or answered with an error status."""

    pass


class PersistenceFailure(CourtScheduleError):
    """Reading or writing the persisted cache failed."""

    pass


class StructuralCacheMismatch(PersistenceFailure):
    """A persisted record is missing required fields.

    The stored record is discarded (and deleted) rather than partially trusted.
    """

    pass


class ScheduleUnavailable(CourtScheduleError):
    """No schedule could be fetched and no local copy exists to fall back on."""

    pass
