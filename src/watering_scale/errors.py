"""Coded errors reported to controller firmware and API clients."""

from enum import IntEnum
from typing import Optional


class ErrorCode(IntEnum):
    """Numeric error codes understood by the controller firmware."""

    # Included with every successful response since the firmware expects a code.
    NO_ERROR = 0

    BAD_WEATHER_DATA = 1
    INSUFFICIENT_WEATHER_DATA = 10
    MISSING_WEATHER_FIELD = 11
    WEATHER_API_ERROR = 12

    LOCATION_ERROR = 2
    LOCATION_SERVICE_API_ERROR = 20
    NO_LOCATION_FOUND = 21
    INVALID_LOCATION_FORMAT = 22

    ADJUSTMENT_METHOD_ERROR = 4
    UNSUPPORTED_ADJUSTMENT_METHOD = 40
    INVALID_ADJUSTMENT_METHOD = 41

    ADJUSTMENT_OPTIONS_ERROR = 5
    MALFORMED_ADJUSTMENT_OPTIONS = 50
    MISSING_ADJUSTMENT_OPTION = 51

    UNEXPECTED_ERROR = 99


class CodedError(Exception):
    """Error with a numeric code identifying its kind.

    The message must never contain sensitive details (API keys, upstream URLs)
    since it may be forwarded to clients.
    """

    err_code: ErrorCode = ErrorCode.UNEXPECTED_ERROR
    status_code: int = 500
    retryable: bool = False

    def __init__(self, message: Optional[str] = None, err_code: Optional[ErrorCode] = None):
        if err_code is not None:
            self.err_code = err_code
        super().__init__(message or self.err_code.name.replace("_", " ").capitalize())


class InsufficientWeatherData(CodedError):
    """Data for a full 24 hour period was not available."""
    err_code = ErrorCode.INSUFFICIENT_WEATHER_DATA
    status_code = 502
    retryable = True


class MissingWeatherField(CodedError):
    """A necessary field was missing from weather data returned by the API."""
    err_code = ErrorCode.MISSING_WEATHER_FIELD
    status_code = 502
    retryable = True


class WeatherApiError(CodedError):
    """An HTTP or parsing error occurred when retrieving weather information."""
    err_code = ErrorCode.WEATHER_API_ERROR
    status_code = 502
    retryable = True


class LocationServiceApiError(CodedError):
    err_code = ErrorCode.LOCATION_SERVICE_API_ERROR
    status_code = 502
    retryable = True


class NoLocationFound(CodedError):
    err_code = ErrorCode.NO_LOCATION_FOUND
    status_code = 404


class InvalidLocationFormat(CodedError):
    err_code = ErrorCode.INVALID_LOCATION_FORMAT
    status_code = 400


class InvalidAdjustmentMethod(CodedError):
    err_code = ErrorCode.INVALID_ADJUSTMENT_METHOD
    status_code = 400


class MalformedAdjustmentOptions(CodedError):
    err_code = ErrorCode.MALFORMED_ADJUSTMENT_OPTIONS
    status_code = 400


class MissingAdjustmentOption(CodedError):
    err_code = ErrorCode.MISSING_ADJUSTMENT_OPTION
    status_code = 400


class UnexpectedError(CodedError):
    err_code = ErrorCode.UNEXPECTED_ERROR
    status_code = 500


def make_coded_error(err: BaseException) -> CodedError:
    """Return a CodedError representing any caught error.

    Errors that are already coded are returned as-is. Anything else is assumed
    to be unhandled and is replaced with a generic UnexpectedError so that
    internal details never reach the client.
    """
    if isinstance(err, CodedError):
        return err
    return UnexpectedError()


class ConfigurationError(Exception):
    """Raised when the service is configured with an unknown provider or backend."""
    pass
