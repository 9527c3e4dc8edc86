"""
HTTP client and models for the YNAB API.
"""
from ynab_mcp.ynab.client import RetryPolicy, TransactionQuery, YNABClient
from ynab_mcp.ynab.errors import (
    APIError,
    ClientError,
    NotFoundError,
    RateLimitedError,
    RequestCancelled,
    ResponseDecodeError,
    RetryExhaustedError,
    ServerError,
    TransportFailure,
    ValidationError,
    YNABError,
)
from ynab_mcp.ynab.units import float_to_milliunits, format_currency, milliunits_to_float

__all__ = [
    "APIError",
    "ClientError",
    "NotFoundError",
    "RateLimitedError",
    "RequestCancelled",
    "ResponseDecodeError",
    "RetryExhaustedError",
    "RetryPolicy",
    "ServerError",
    "TransactionQuery",
    "TransportFailure",
    "ValidationError",
    "YNABClient",
    "YNABError",
    "float_to_milliunits",
    "format_currency",
    "milliunits_to_float",
]
