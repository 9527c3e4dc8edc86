"""
Tests for the YNAB HTTP client: retry, backoff, error mapping and typed operations.

Requests are served by httpx.MockTransport; backoff delays are recorded
instead of slept.
"""
import json
import os
import sys
import threading

import httpx
import pytest

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from ynab_mcp.ynab import (  # noqa: E402
    ClientError,
    NotFoundError,
    RateLimitedError,
    RequestCancelled,
    ResponseDecodeError,
    RetryExhaustedError,
    RetryPolicy,
    ServerError,
    TransactionQuery,
    TransportFailure,
    ValidationError,
    YNABClient,
)
from ynab_mcp.ynab.models import SaveTransaction  # noqa: E402


class RecordingSleep:
    """Backoff sleeper that records delays; optionally reports cancellation."""

    def __init__(self, cancel_on_call: int = 0):
        self.delays = []
        self.cancel_on_call = cancel_on_call

    def __call__(self, delay, cancel):
        self.delays.append(delay)
        return len(self.delays) == self.cancel_on_call


def _client(handler, policy=None, sleep=None) -> YNABClient:
    return YNABClient(
        "test-token",
        base_url="https://ynab.test/v1",
        policy=policy,
        transport=httpx.MockTransport(handler),
        sleep=sleep or RecordingSleep(),
    )


def _ok(data: dict) -> httpx.Response:
    return httpx.Response(200, json={"data": data})


def _transaction(tx_id: str = "t1", **fields) -> dict:
    tx = {
        "id": tx_id,
        "date": "2024-03-05",
        "amount": -45670,
        "memo": None,
        "cleared": "cleared",
        "approved": True,
        "flag_color": None,
        "account_id": "acc-1",
        "account_name": "Checking",
        "payee_id": "p1",
        "payee_name": "Grocer",
        "category_id": "c1",
        "category_name": "Groceries",
        "transfer_account_id": None,
        "deleted": False,
        "subtransactions": [],
    }
    tx.update(fields)
    return tx


# ============================================================================
# Retry and error mapping
# ============================================================================

def test_transport_errors_then_success_backs_off_one_then_two_seconds() -> None:
    calls = []

    def handler(request):
        calls.append(request)
        if len(calls) < 3:
            raise httpx.ConnectError("connection refused", request=request)
        return _ok({"budgets": [{"id": "b1", "name": "Home"}]})

    sleep = RecordingSleep()
    client = _client(handler, sleep=sleep)

    budgets = client.list_budgets()

    assert [b.id for b in budgets] == ["b1"]
    assert len(calls) == 3
    assert sleep.delays == [1.0, 2.0]
    print("✓ transport errors retried with 1s, 2s backoff")


def test_not_found_detail_surfaced_without_retry() -> None:
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(
            404,
            json={"error": {"id": "404.2", "name": "resource_not_found", "detail": "transaction not found"}},
        )

    sleep = RecordingSleep()
    client = _client(handler, sleep=sleep)

    with pytest.raises(ClientError) as exc_info:
        client.get_transaction("b1", "missing")

    assert exc_info.value.status_code == 404
    assert exc_info.value.detail == "transaction not found"
    assert "transaction not found" in str(exc_info.value)
    assert len(calls) == 1
    assert sleep.delays == []
    print("✓ 404 detail surfaced after a single attempt")


def test_error_without_body_reports_status() -> None:
    client = _client(lambda request: httpx.Response(403, text="forbidden"))

    with pytest.raises(ClientError) as exc_info:
        client.list_budgets()

    assert exc_info.value.detail is None
    assert str(exc_info.value) == "YNAB API error: status 403"
    print("✓ error without detail")


def test_rate_limit_exhausts_attempts() -> None:
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(429, json={"error": {"detail": "Too many requests"}})

    sleep = RecordingSleep()
    client = _client(handler, sleep=sleep)

    with pytest.raises(RetryExhaustedError) as exc_info:
        client.list_budgets()

    assert exc_info.value.attempts == 3
    assert isinstance(exc_info.value.last_error, RateLimitedError)
    assert "after 3 attempts" in str(exc_info.value)
    assert len(calls) == 3
    assert sleep.delays == [1.0, 2.0]
    print("✓ 429 retried until attempts exhausted")


def test_transport_exhaustion_keeps_last_error() -> None:
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    client = _client(handler, policy=RetryPolicy(max_attempts=2))

    with pytest.raises(RetryExhaustedError) as exc_info:
        client.list_budgets()

    assert exc_info.value.attempts == 2
    assert isinstance(exc_info.value.last_error, TransportFailure)
    print("✓ transport exhaustion")


def test_read_failures_retried_then_success() -> None:
    calls = []

    def handler(request):
        calls.append(request)
        if len(calls) == 1:
            raise httpx.ReadError("connection reset while reading body", request=request)
        if len(calls) == 2:
            return httpx.Response(200, headers={"Content-Encoding": "gzip"}, content=b"not gzip data")
        return _ok({"budgets": [{"id": "b1", "name": "Home"}]})

    sleep = RecordingSleep()
    client = _client(handler, sleep=sleep)

    budgets = client.list_budgets()

    assert [b.id for b in budgets] == ["b1"]
    assert len(calls) == 3
    assert sleep.delays == [1.0, 2.0]
    print("✓ read failures retried until success")


def test_undecodable_body_exhausts_as_transport_failure() -> None:
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, headers={"Content-Encoding": "gzip"}, content=b"not gzip data")

    client = _client(handler)

    with pytest.raises(RetryExhaustedError) as exc_info:
        client.list_budgets()

    assert exc_info.value.attempts == 3
    assert isinstance(exc_info.value.last_error, TransportFailure)
    assert len(calls) == 3
    print("✓ undecodable body retried as transport failure")


def test_server_errors_terminal_by_default() -> None:
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(503, json={"error": {"detail": "Service unavailable"}})

    client = _client(handler)

    with pytest.raises(ServerError) as exc_info:
        client.list_budgets()

    assert exc_info.value.status_code == 503
    assert len(calls) == 1
    print("✓ 5xx terminal by default")


def test_server_errors_retried_when_enabled() -> None:
    calls = []

    def handler(request):
        calls.append(request)
        if len(calls) == 1:
            return httpx.Response(502)
        return _ok({"budgets": []})

    sleep = RecordingSleep()
    client = _client(handler, policy=RetryPolicy(retry_server_errors=True), sleep=sleep)

    assert client.list_budgets() == []
    assert len(calls) == 2
    assert sleep.delays == [1.0]
    print("✓ 5xx retried when enabled")


def test_malformed_success_body_is_decode_error() -> None:
    client = _client(lambda request: httpx.Response(200, text="not json"))

    with pytest.raises(ResponseDecodeError):
        client.list_budgets()
    print("✓ decode error")


def test_cancel_during_backoff() -> None:
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(429)

    sleep = RecordingSleep(cancel_on_call=1)
    client = _client(handler, sleep=sleep)

    with pytest.raises(RequestCancelled):
        client.list_budgets(cancel=threading.Event())

    assert len(calls) == 1
    print("✓ cancel during backoff")


def test_cancel_before_first_attempt() -> None:
    calls = []

    def handler(request):
        calls.append(request)
        return _ok({"budgets": []})

    cancel = threading.Event()
    cancel.set()
    client = _client(handler)

    with pytest.raises(RequestCancelled):
        client.list_budgets(cancel=cancel)

    assert calls == []
    print("✓ cancel before first attempt")


def test_default_sleeper_wakes_on_cancel() -> None:
    def handler(request):
        return httpx.Response(429)

    cancel = threading.Event()
    # Long backoff, interrupted by the timer setting the event
    client = YNABClient(
        "test-token",
        base_url="https://ynab.test/v1",
        policy=RetryPolicy(base_delay=60.0),
        transport=httpx.MockTransport(handler),
    )
    timer = threading.Timer(0.05, cancel.set)
    timer.start()
    try:
        with pytest.raises(RequestCancelled):
            client.list_budgets(cancel=cancel)
    finally:
        timer.cancel()
    print("✓ default sleeper interrupted by cancel")


# ============================================================================
# Requests
# ============================================================================

def test_headers_and_query_params() -> None:
    seen = {}

    def handler(request):
        seen["request"] = request
        return _ok({"transactions": [_transaction()]})

    client = _client(handler)
    query = TransactionQuery(since_date="2024-01-01", type="unapproved")

    transactions = client.list_transactions("b1", query)

    request = seen["request"]
    assert request.headers["Authorization"] == "Bearer test-token"
    assert request.headers["Accept"] == "application/json"
    assert request.url.path == "/v1/budgets/b1/transactions"
    assert request.url.params["since_date"] == "2024-01-01"
    assert request.url.params["type"] == "unapproved"
    assert transactions[0].amount == -45670
    assert transactions[0].memo == ""
    assert transactions[0].transfer_account_id == ""
    print("✓ headers and query params")


def test_query_params_omitted_when_unset() -> None:
    seen = {}

    def handler(request):
        seen["request"] = request
        return _ok({"transactions": []})

    client = _client(handler)
    client.list_account_transactions("b1", "acc-1", TransactionQuery())

    request = seen["request"]
    assert request.url.path == "/v1/budgets/b1/accounts/acc-1/transactions"
    assert "since_date" not in request.url.params
    assert "type" not in request.url.params
    print("✓ unset query params omitted")


def test_invalid_transaction_type_rejected_locally() -> None:
    with pytest.raises(ValidationError):
        TransactionQuery(type="pending")
    print("✓ invalid transaction type")


def test_update_sends_only_supplied_fields() -> None:
    seen = {}

    def handler(request):
        seen["request"] = request
        return _ok({"transaction": _transaction(memo="lunch")})

    client = _client(handler)
    tx = client.update_transaction("b1", "t1", SaveTransaction(memo="lunch", approved=False))

    request = seen["request"]
    assert request.method == "PUT"
    assert request.url.path == "/v1/budgets/b1/transactions/t1"
    assert request.headers["Content-Type"] == "application/json"
    assert json.loads(request.content) == {"transaction": {"memo": "lunch", "approved": False}}
    assert tx.memo == "lunch"
    print("✓ update sends only supplied fields")


def test_create_posts_transaction() -> None:
    seen = {}

    def handler(request):
        seen["request"] = request
        return httpx.Response(201, json={"data": {"transaction": _transaction("new")}})

    client = _client(handler)
    tx = client.create_transaction(
        "b1",
        SaveTransaction(account_id="acc-1", date="2024-03-05", amount=-45670, cleared="uncleared", approved=True),
    )

    body = json.loads(seen["request"].content)
    assert seen["request"].method == "POST"
    assert body["transaction"]["amount"] == -45670
    assert "memo" not in body["transaction"]
    assert tx.id == "new"
    print("✓ create posts transaction")


def test_get_account_scans_list() -> None:
    def handler(request):
        return _ok({
            "accounts": [
                {"id": "a1", "name": "Checking", "type": "checking", "on_budget": True, "balance": 1000},
                {"id": "a2", "name": "Savings", "type": "savings", "on_budget": True, "balance": 2000},
            ]
        })

    client = _client(handler)

    assert client.get_account("b1", "a2").name == "Savings"
    with pytest.raises(NotFoundError) as exc_info:
        client.get_account("b1", "a3")
    assert str(exc_info.value) == "account not found: a3"
    print("✓ get_account scans list")


def test_get_category_scans_groups() -> None:
    def handler(request):
        return _ok({
            "category_groups": [
                {"id": "g1", "name": "Bills", "categories": [{"id": "c1", "name": "Rent"}]},
                {"id": "g2", "name": "Everyday", "categories": [{"id": "c2", "name": "Groceries"}]},
            ]
        })

    client = _client(handler)

    assert client.get_category("b1", "c2").name == "Groceries"
    with pytest.raises(NotFoundError):
        client.get_category("b1", "c9")
    print("✓ get_category scans groups")


def test_get_payee_and_month_category() -> None:
    def handler(request):
        if request.url.path.endswith("/payees"):
            return _ok({"payees": [{"id": "p1", "name": "Grocer", "transfer_account_id": None}]})
        assert request.url.path == "/v1/budgets/b1/months/2024-03-01/categories/c1"
        return _ok({"category": {"id": "c1", "name": "Groceries", "budgeted": 300000, "goal_target": None}})

    client = _client(handler)

    assert client.get_payee("b1", "p1").transfer_account_id == ""
    category = client.get_month_category("b1", "2024-03-01", "c1")
    assert category.budgeted == 300000
    assert category.goal_target == 0
    print("✓ payee and month category")


def test_budget_settings() -> None:
    def handler(request):
        assert request.url.path == "/v1/budgets/b1/settings"
        return _ok({"settings": {"date_format": {"format": "DD.MM.YYYY"}, "currency_format": {"iso_code": "EUR"}}})

    client = _client(handler)
    settings = client.get_budget_settings("b1")

    assert settings.date_format.format == "DD.MM.YYYY"
    assert settings.currency_format.iso_code == "EUR"
    print("✓ budget settings")


if __name__ == "__main__":
    test_transport_errors_then_success_backs_off_one_then_two_seconds()
    test_not_found_detail_surfaced_without_retry()
    test_error_without_body_reports_status()
    test_rate_limit_exhausts_attempts()
    test_transport_exhaustion_keeps_last_error()
    test_read_failures_retried_then_success()
    test_undecodable_body_exhausts_as_transport_failure()
    test_server_errors_terminal_by_default()
    test_server_errors_retried_when_enabled()
    test_malformed_success_body_is_decode_error()
    test_cancel_during_backoff()
    test_cancel_before_first_attempt()
    test_default_sleeper_wakes_on_cancel()
    test_headers_and_query_params()
    test_query_params_omitted_when_unset()
    test_invalid_transaction_type_rejected_locally()
    test_update_sends_only_supplied_fields()
    test_create_posts_transaction()
    test_get_account_scans_list()
    test_get_category_scans_groups()
    test_get_payee_and_month_category()
    test_budget_settings()
    print("All YNAB client tests passed.")
