"""
Error types raised by the YNAB client and the aggregation helpers.

Everything derives from YNABError so the tool layer can turn any failure
into a single user-facing message.
"""
from typing import Optional


class YNABError(Exception):
    """Base class for all YNAB client errors."""


class ValidationError(YNABError):
    """Invalid local input (dates, ranges, required arguments). Never sent upstream."""


class TransportFailure(YNABError):
    """Connection, DNS, timeout or response read failure."""

    retryable = True


class RateLimitedError(YNABError):
    """HTTP 429 from the YNAB API."""

    retryable = True

    def __init__(self, message: str = "rate limit exceeded"):
        super().__init__(message)


class APIError(YNABError):
    """Terminal HTTP error response from the YNAB API."""

    retryable = False

    def __init__(self, status_code: int, detail: Optional[str] = None):
        self.status_code = status_code
        self.detail = detail
        if detail:
            message = f"YNAB API error ({status_code}): {detail}"
        else:
            message = f"YNAB API error: status {status_code}"
        super().__init__(message)


class ClientError(APIError):
    """4xx response other than 429."""


class ServerError(APIError):
    """5xx response."""


class RetryExhaustedError(YNABError):
    """All attempts failed with retryable errors."""

    def __init__(self, attempts: int, last_error: Exception):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"request failed after {attempts} attempts: {last_error}")


class RequestCancelled(YNABError):
    """The caller cancelled the request while it was waiting to retry."""


class ResponseDecodeError(YNABError):
    """A successful response body could not be decoded."""


class NotFoundError(YNABError):
    """An entity was not present in a list response."""

    def __init__(self, kind: str, entity_id: str):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind} not found: {entity_id}")
