"""
Shared helpers for MCP tools: client lifecycle, cancellation and argument checks.
"""
import contextvars
import threading
from contextlib import contextmanager
from datetime import date
from typing import Iterator, Optional

from ynab_mcp.config import get_settings
from ynab_mcp.services.aggregation import parse_date, parse_month
from ynab_mcp.ynab.client import YNABClient
from ynab_mcp.ynab.errors import ValidationError

_cancel_event: contextvars.ContextVar[Optional[threading.Event]] = contextvars.ContextVar(
    "cancel_event",
    default=None,
)


def set_cancel_event(event: threading.Event) -> contextvars.Token:
    return _cancel_event.set(event)


def clear_cancel_event(token: contextvars.Token) -> None:
    _cancel_event.reset(token)


def get_cancel_event() -> Optional[threading.Event]:
    """Cancellation event of the tool call running in this context, if any."""
    return _cancel_event.get()


@contextmanager
def get_client() -> Iterator[YNABClient]:
    """
    Context manager for a YNAB client.
    Ensures the HTTP connection pool is closed after each tool invocation.

    Usage:
        with get_client() as client:
            accounts = client.list_accounts(budget_id, cancel=get_cancel_event())
    """
    settings = get_settings()
    client = YNABClient(
        settings.ynab_access_token,
        base_url=settings.ynab_base_url,
        policy=settings.retry_policy,
    )
    try:
        yield client
    finally:
        client.close()


def require(name: str, value: Optional[str], hint: str = "") -> str:
    """
    Ensure a required string argument is present and non-empty.

    Raises:
        ValidationError: '<name> is required' (plus the hint, if any)
    """
    if value is None or not str(value).strip():
        message = f"{name} is required"
        if hint:
            message = f"{message} ({hint})"
        raise ValidationError(message)
    return value


def validate_date(name: str, value: Optional[str]) -> Optional[date]:
    """
    Parse an optional YYYY-MM-DD argument.

    Returns:
        date object, or None when value is empty
    """
    if not value:
        return None
    try:
        return parse_date(value)
    except ValidationError as e:
        raise ValidationError(f"{name}: {e}") from e


def validate_month(value: str) -> str:
    try:
        parse_month(value)
    except ValidationError as e:
        raise ValidationError(f"Invalid month format: {e}") from e
    return value
