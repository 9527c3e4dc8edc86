"""
YNAB API client.
Provides typed access to budgets, accounts, categories, payees and transactions.

Documentation: https://api.ynab.com/

Rate Limiting:
    YNAB allows 200 requests per hour per access token and answers 429
    once the budget is spent. The client does not throttle up front; it
    retries 429 and transport failures with exponential backoff
    (1s, 2s, 4s, ...) up to RetryPolicy.max_attempts attempts.

Cancellation:
    Every call accepts an optional threading.Event. Setting it while the
    client is waiting between attempts aborts the call with RequestCancelled.
"""
import json
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, List, Mapping, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

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
)
from ynab_mcp.ynab.models import (
    Account,
    AccountsPayload,
    Budget,
    BudgetPayload,
    BudgetSettings,
    BudgetSettingsPayload,
    BudgetsPayload,
    CategoriesPayload,
    Category,
    CategoryGroup,
    CategoryPayload,
    Envelope,
    ErrorBody,
    Payee,
    PayeesPayload,
    SaveTransaction,
    Transaction,
    TransactionPayload,
    TransactionsPayload,
)

logger = logging.getLogger(__name__)

ResultT = TypeVar("ResultT", bound=BaseModel)

# sleep(delay, cancel) -> True when the wait was interrupted by cancel
Sleeper = Callable[[float, Optional[threading.Event]], bool]

TRANSACTION_TYPES = ("uncategorized", "unapproved")


@dataclass(frozen=True)
class RetryPolicy:
    """Retry and timeout settings for a client instance."""
    max_attempts: int = 3
    base_delay: float = 1.0
    timeout: float = 30.0
    retry_server_errors: bool = False

    def backoff(self, attempt: int) -> float:
        """Delay before the given 1-based attempt (attempt 2 waits base_delay)."""
        return self.base_delay * (2 ** (attempt - 2))


@dataclass(frozen=True)
class TransactionQuery:
    """Optional filters for transaction list endpoints."""
    since_date: Optional[str] = None
    type: Optional[str] = None

    def __post_init__(self):
        if self.type and self.type not in TRANSACTION_TYPES:
            raise ValidationError(
                f"type must be one of {', '.join(TRANSACTION_TYPES)}, got {self.type!r}"
            )

    def to_params(self) -> dict:
        params = {}
        if self.since_date:
            params["since_date"] = self.since_date
        if self.type:
            params["type"] = self.type
        return params


def _interruptible_sleep(delay: float, cancel: Optional[threading.Event]) -> bool:
    if cancel is None:
        cancel = threading.Event()
    return cancel.wait(delay)


class YNABClient:
    """HTTP client for the YNAB API."""

    BASE_URL = "https://api.ynab.com/v1"

    def __init__(
        self,
        access_token: str,
        *,
        base_url: str = BASE_URL,
        policy: Optional[RetryPolicy] = None,
        transport: Optional[httpx.BaseTransport] = None,
        sleep: Optional[Sleeper] = None,
    ):
        """
        Initialize the client.

        Args:
            access_token: YNAB personal access token
            base_url: API base URL (tests point this at a mock transport)
            policy: Retry/timeout settings
            transport: Optional httpx transport
            sleep: Backoff sleeper, defaults to an interruptible wait
        """
        self.policy = policy or RetryPolicy()
        self._sleep = sleep or _interruptible_sleep

        self.client = httpx.Client(
            base_url=base_url,
            timeout=self.policy.timeout,
            transport=transport,
            headers={
                "Authorization": f"Bearer {access_token}",
                "Accept": "application/json",
                "User-Agent": "ynab-mcp-server/1.0",
            },
        )

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "YNABClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Request primitive
    # ------------------------------------------------------------------

    def request(
        self,
        method: str,
        path: str,
        *,
        body: Any = None,
        params: Optional[Mapping[str, Any]] = None,
        result: Optional[Type[ResultT]] = None,
        cancel: Optional[threading.Event] = None,
    ) -> Optional[ResultT]:
        """
        Make a request with retry on transient failures.

        Args:
            method: HTTP method
            path: Path relative to the base URL (e.g. '/budgets')
            body: Pydantic model or mapping sent as JSON (optional)
            params: Query parameters; None values are dropped
            result: Model type to decode the response into; None discards the body
            cancel: Event that aborts pending backoff when set

        Returns:
            Decoded result, or None when no result type was given

        Raises:
            ClientError/ServerError: terminal HTTP error
            RetryExhaustedError: every attempt failed with a retryable error
            RequestCancelled: cancel was set before or between attempts
            ResponseDecodeError: the success body did not match result
        """
        content = self._encode_body(body)
        headers = {"Content-Type": "application/json"} if content is not None else None
        query = {k: v for k, v in (params or {}).items() if v is not None}

        last_error: Optional[Exception] = None

        for attempt in range(1, self.policy.max_attempts + 1):
            if cancel is not None and cancel.is_set():
                raise RequestCancelled(f"{method} {path} cancelled")

            if attempt > 1:
                delay = self.policy.backoff(attempt)
                logger.debug(f"Retrying {method} {path} after {delay}s backoff (attempt {attempt})")
                if self._sleep(delay, cancel):
                    raise RequestCancelled(f"{method} {path} cancelled during backoff") from last_error

            try:
                response = self.client.request(
                    method, path, params=query or None, content=content, headers=headers
                )
            except httpx.RequestError as e:
                # Transport failures plus response-read failures such as a bad content encoding
                last_error = TransportFailure(f"request failed: {e}")
                logger.warning(f"HTTP request failed (attempt {attempt}/{self.policy.max_attempts}): {e}")
                continue

            if response.status_code == 429:
                last_error = RateLimitedError()
                logger.warning(f"Rate limit exceeded on {method} {path}, will retry (attempt {attempt})")
                continue

            if response.status_code >= 400:
                error = self._api_error(response)
                if isinstance(error, ServerError) and self.policy.retry_server_errors:
                    last_error = error
                    logger.warning(f"Server error on {method} {path}, will retry: {error}")
                    continue
                raise error

            return self._decode(response, result)

        raise RetryExhaustedError(self.policy.max_attempts, last_error) from last_error

    def _encode_body(self, body: Any) -> Optional[bytes]:
        if body is None:
            return None
        if isinstance(body, BaseModel):
            return body.model_dump_json(exclude_none=True).encode()
        return json.dumps(body).encode()

    @staticmethod
    def _api_error(response: httpx.Response) -> APIError:
        detail = None
        try:
            detail = ErrorBody.model_validate_json(response.content).error.detail or None
        except PydanticValidationError:
            pass

        if response.status_code >= 500:
            return ServerError(response.status_code, detail)
        return ClientError(response.status_code, detail)

    @staticmethod
    def _decode(response: httpx.Response, result: Optional[Type[ResultT]]) -> Optional[ResultT]:
        if result is None:
            return None
        try:
            return result.model_validate_json(response.content)
        except PydanticValidationError as e:
            raise ResponseDecodeError(f"failed to parse response: {e}") from e

    def get(self, path: str, result: Type[ResultT], **kwargs) -> ResultT:
        return self.request("GET", path, result=result, **kwargs)

    def post(self, path: str, body: Any, result: Type[ResultT], **kwargs) -> ResultT:
        return self.request("POST", path, body=body, result=result, **kwargs)

    def put(self, path: str, body: Any, result: Type[ResultT], **kwargs) -> ResultT:
        return self.request("PUT", path, body=body, result=result, **kwargs)

    # ------------------------------------------------------------------
    # Budgets
    # ------------------------------------------------------------------

    def list_budgets(self, cancel: Optional[threading.Event] = None) -> List[Budget]:
        resp = self.get("/budgets", Envelope[BudgetsPayload], cancel=cancel)
        return resp.data.budgets

    def get_budget(self, budget_id: str, cancel: Optional[threading.Event] = None) -> Budget:
        """Get a budget with its accounts, category groups and payees."""
        resp = self.get(f"/budgets/{budget_id}", Envelope[BudgetPayload], cancel=cancel)
        return resp.data.budget

    def get_budget_settings(
        self, budget_id: str, cancel: Optional[threading.Event] = None
    ) -> BudgetSettings:
        resp = self.get(f"/budgets/{budget_id}/settings", Envelope[BudgetSettingsPayload], cancel=cancel)
        return resp.data.settings

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def list_accounts(self, budget_id: str, cancel: Optional[threading.Event] = None) -> List[Account]:
        resp = self.get(f"/budgets/{budget_id}/accounts", Envelope[AccountsPayload], cancel=cancel)
        return resp.data.accounts

    def get_account(
        self, budget_id: str, account_id: str, cancel: Optional[threading.Event] = None
    ) -> Account:
        for account in self.list_accounts(budget_id, cancel=cancel):
            if account.id == account_id:
                return account
        raise NotFoundError("account", account_id)

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    def list_categories(
        self, budget_id: str, cancel: Optional[threading.Event] = None
    ) -> List[CategoryGroup]:
        resp = self.get(f"/budgets/{budget_id}/categories", Envelope[CategoriesPayload], cancel=cancel)
        return resp.data.category_groups

    def get_category(
        self, budget_id: str, category_id: str, cancel: Optional[threading.Event] = None
    ) -> Category:
        """Find a category across all groups of the budget."""
        for group in self.list_categories(budget_id, cancel=cancel):
            for category in group.categories:
                if category.id == category_id:
                    return category
        raise NotFoundError("category", category_id)

    def get_month_category(
        self,
        budget_id: str,
        month: str,
        category_id: str,
        cancel: Optional[threading.Event] = None,
    ) -> Category:
        """
        Get category budgeted/activity/balance for a specific month.

        Args:
            month: First day of the month (YYYY-MM-01) or 'current'
        """
        resp = self.get(
            f"/budgets/{budget_id}/months/{month}/categories/{category_id}",
            Envelope[CategoryPayload],
            cancel=cancel,
        )
        return resp.data.category

    # ------------------------------------------------------------------
    # Payees
    # ------------------------------------------------------------------

    def list_payees(self, budget_id: str, cancel: Optional[threading.Event] = None) -> List[Payee]:
        resp = self.get(f"/budgets/{budget_id}/payees", Envelope[PayeesPayload], cancel=cancel)
        return resp.data.payees

    def get_payee(
        self, budget_id: str, payee_id: str, cancel: Optional[threading.Event] = None
    ) -> Payee:
        for payee in self.list_payees(budget_id, cancel=cancel):
            if payee.id == payee_id:
                return payee
        raise NotFoundError("payee", payee_id)

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def list_transactions(
        self,
        budget_id: str,
        query: Optional[TransactionQuery] = None,
        cancel: Optional[threading.Event] = None,
    ) -> List[Transaction]:
        params = query.to_params() if query else None
        resp = self.get(
            f"/budgets/{budget_id}/transactions",
            Envelope[TransactionsPayload],
            params=params,
            cancel=cancel,
        )
        return resp.data.transactions

    def list_account_transactions(
        self,
        budget_id: str,
        account_id: str,
        query: Optional[TransactionQuery] = None,
        cancel: Optional[threading.Event] = None,
    ) -> List[Transaction]:
        params = query.to_params() if query else None
        resp = self.get(
            f"/budgets/{budget_id}/accounts/{account_id}/transactions",
            Envelope[TransactionsPayload],
            params=params,
            cancel=cancel,
        )
        return resp.data.transactions

    def get_transaction(
        self, budget_id: str, transaction_id: str, cancel: Optional[threading.Event] = None
    ) -> Transaction:
        resp = self.get(
            f"/budgets/{budget_id}/transactions/{transaction_id}",
            Envelope[TransactionPayload],
            cancel=cancel,
        )
        return resp.data.transaction

    def create_transaction(
        self,
        budget_id: str,
        transaction: SaveTransaction,
        cancel: Optional[threading.Event] = None,
    ) -> Transaction:
        resp = self.post(
            f"/budgets/{budget_id}/transactions",
            transaction.to_request(),
            Envelope[TransactionPayload],
            cancel=cancel,
        )
        return resp.data.transaction

    def update_transaction(
        self,
        budget_id: str,
        transaction_id: str,
        transaction: SaveTransaction,
        cancel: Optional[threading.Event] = None,
    ) -> Transaction:
        """Update only the fields set on `transaction`."""
        resp = self.put(
            f"/budgets/{budget_id}/transactions/{transaction_id}",
            transaction.to_request(),
            Envelope[TransactionPayload],
            cancel=cancel,
        )
        return resp.data.transaction
