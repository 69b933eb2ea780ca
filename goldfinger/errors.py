"""Error taxonomy shared across the display pipeline."""

from __future__ import annotations


class FetchError(Exception):
    """Raised when an external data source cannot be fetched or decoded."""


class FetchTimeoutError(FetchError):
    """The remote service did not answer within the configured timeout."""


class HttpStatusError(FetchError):
    """The remote service answered with a non-200 status."""

    def __init__(self, status_code: int, detail: str = "") -> None:
        message = f"Status {status_code}"
        if detail:
            message = f"{message}, Body: {detail}"
        super().__init__(message)
        self.status_code = status_code


class ParseError(FetchError):
    """The response body did not match the expected schema."""


class ValidationError(ValueError):
    """Raised when a settings update is rejected."""


class InvalidModeError(ValidationError):
    pass


class InvalidColorError(ValidationError):
    pass


class DriverError(Exception):
    """Raised when a frame could not be transmitted to the display."""


class DriverTimeoutError(DriverError):
    pass


class DeviceNackError(DriverError):
    pass


class RenderError(Exception):
    """Fatal rendering failure. Indicates a geometry or configuration bug."""


class BufferSizeMismatchError(RenderError):
    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"Frame buffer size mismatch. Expected {expected} bytes, got {actual}.")
        self.expected = expected
        self.actual = actual


__all__ = [
    "BufferSizeMismatchError",
    "DeviceNackError",
    "DriverError",
    "DriverTimeoutError",
    "FetchError",
    "FetchTimeoutError",
    "HttpStatusError",
    "InvalidColorError",
    "InvalidModeError",
    "ParseError",
    "RenderError",
    "ValidationError",
]
