"""Domain exceptions raised by the generator, the codec and the URL service."""

from tinyurl.enums import ErrorCode

__all__ = [
    "ClockError",
    "ClockOutOfRangeError",
    "ClockRegressionError",
    "DomainNotFoundError",
    "InvalidCodeError",
    "LinkExpiredError",
    "RecordNotFoundError",
    "TinyUrlError",
]


class TinyUrlError(Exception):
    """Base class for errors the HTTP layer knows how to surface."""

    code: ErrorCode


class ClockError(TinyUrlError):
    """Raised when the wall clock cannot back a new identifier."""


class ClockRegressionError(ClockError):
    """Raised when the wall clock is observed behind the last issued timestamp."""

    code = ErrorCode.CLOCK_REGRESSION

    def __init__(self, last_timestamp_ms: int, now_ms: int):
        self.last_timestamp_ms = last_timestamp_ms
        self.now_ms = now_ms
        self.regression_ms = last_timestamp_ms - now_ms
        super().__init__(
            f"Clock moved backwards. Refusing to generate id for {self.regression_ms} milliseconds"
        )


class InvalidCodeError(TinyUrlError, ValueError):
    """Raised when a short code is empty, too large or uses symbols outside the alphabet."""

    code = ErrorCode.INVALID_CODE


class DomainNotFoundError(TinyUrlError):
    """Raised when a short URL is requested for an unregistered domain."""

    code = ErrorCode.DOMAIN_NOT_EXISTS

    def __init__(self, domain: str):
        self.domain = domain
        super().__init__(f"Domain '{domain}' is not registered")


class RecordNotFoundError(TinyUrlError):
    """Raised when a decoded identifier has no stored record."""

    code = ErrorCode.RECORD_NOT_EXISTS

    def __init__(self, short_code: str, record_id: int):
        self.short_code = short_code
        self.record_id = record_id
        super().__init__(f"No record for short code '{short_code}'")


class LinkExpiredError(TinyUrlError):
    """Raised when a record's expire_time has already elapsed."""

    code = ErrorCode.LINK_EXPIRED

    def __init__(self, short_code: str):
        self.short_code = short_code
        super().__init__(f"Short code '{short_code}' has expired")


class ClockOutOfRangeError(ClockError):
    """Raised when the wall clock falls outside the 41-bit window after the epoch."""

    code = ErrorCode.CLOCK_OUT_OF_RANGE

    def __init__(self, now_ms: int, epoch_ms: int):
        self.now_ms = now_ms
        self.epoch_ms = epoch_ms
        super().__init__(f"Timestamp {now_ms} is outside the range of epoch {epoch_ms}")
