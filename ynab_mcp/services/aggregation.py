"""
Spending aggregation over raw YNAB transactions and accounts.

All functions are pure: they take lists already fetched by the caller and
never touch the network. Every grouping skips deleted transactions and
transfers between accounts, since a transfer is neither income nor spending.

Amounts are summed as integer milliunits and only converted to display
units on the way out, so totals stay exact.

Split transactions are counted once, under the parent's category and payee;
their subtransactions are not broken out. A split parent usually has an
empty category, so its full amount lands in the uncategorized bucket.
"""
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, TypeVar

from ynab_mcp.ynab.errors import ValidationError
from ynab_mcp.ynab.models import Account, Transaction
from ynab_mcp.ynab.units import milliunits_to_float

UNCATEGORIZED_ID = "uncategorized"
UNCATEGORIZED_NAME = "Uncategorized"
NO_PAYEE_ID = "no-payee"
NO_PAYEE_NAME = "No Payee"

MAX_RANGE_DAYS = 730
MAX_MONTHS = 24
DEFAULT_TOP_N = 20


# ============================================================================
# Dates
# ============================================================================

def parse_date(value: str) -> date:
    """Parse a YYYY-MM-DD string."""
    if not value:
        raise ValidationError("date string is empty")
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError as e:
        raise ValidationError(f"invalid date format, expected YYYY-MM-DD: {value!r}") from e


def parse_month(value: str) -> date:
    """Parse a YYYY-MM string into the first day of that month."""
    if not value:
        raise ValidationError("month string is empty")
    try:
        return datetime.strptime(value, "%Y-%m").date()
    except ValueError as e:
        raise ValidationError(f"invalid month format, expected YYYY-MM: {value!r}") from e


def month_key(day: date) -> str:
    return day.strftime("%Y-%m")


def current_month(today: Optional[date] = None) -> str:
    return month_key(today or date.today())


def last_n_months(n: int, today: Optional[date] = None) -> List[str]:
    """
    Month keys for the last n months including the current one, oldest first.

    n is clamped to 1..24.
    """
    n = min(max(1, n), MAX_MONTHS)
    today = today or date.today()

    months = []
    year, month = today.year, today.month
    for _ in range(n):
        months.append(f"{year:04d}-{month:02d}")
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    months.reverse()
    return months


def validate_date_range(since_date: str, until_date: str) -> tuple[date, date]:
    """
    Check a since/until pair before fetching.

    Both must be valid dates, until must not precede since, and the span
    may not exceed 730 days.

    Returns:
        Parsed (since, until) dates

    Raises:
        ValidationError: describing the first problem found
    """
    try:
        since = parse_date(since_date)
    except ValidationError as e:
        raise ValidationError(f"since_date: {e}") from e
    try:
        until = parse_date(until_date)
    except ValidationError as e:
        raise ValidationError(f"until_date: {e}") from e

    if until < since:
        raise ValidationError("until_date must be after since_date")

    if until - since > timedelta(days=MAX_RANGE_DAYS):
        raise ValidationError(
            "date range too large (max 2 years), consider using a smaller range for better performance"
        )

    return since, until


def filter_until(transactions: Iterable[Transaction], until: date) -> List[Transaction]:
    """
    Keep transactions dated on or before `until`.

    The API only supports since_date, so the upper bound is applied locally.
    Transactions with unparseable dates are dropped.
    """
    kept = []
    for tx in transactions:
        try:
            tx_date = parse_date(tx.date)
        except ValidationError:
            continue
        if tx_date <= until:
            kept.append(tx)
    return kept


# ============================================================================
# Summaries
# ============================================================================

@dataclass
class _Totals:
    outflow_milliunits: int = 0
    inflow_milliunits: int = 0
    net_milliunits: int = 0
    transaction_count: int = 0

    def add(self, amount: int) -> None:
        if amount < 0:
            self.outflow_milliunits += -amount
        else:
            self.inflow_milliunits += amount
        self.net_milliunits += amount
        self.transaction_count += 1

    @property
    def total_outflow(self) -> float:
        return milliunits_to_float(self.outflow_milliunits)

    @property
    def total_inflow(self) -> float:
        return milliunits_to_float(self.inflow_milliunits)

    @property
    def net(self) -> float:
        return milliunits_to_float(self.net_milliunits)

    def _totals_dict(self) -> dict:
        return {
            "total_outflow": self.total_outflow,
            "total_inflow": self.total_inflow,
            "net": self.net,
            "transaction_count": self.transaction_count,
        }


@dataclass
class CategorySummary(_Totals):
    category_id: str = ""
    category_name: str = ""
    category_group_name: str = ""

    def to_dict(self) -> dict:
        return {
            "category_id": self.category_id,
            "category_name": self.category_name,
            "category_group_name": self.category_group_name,
            **self._totals_dict(),
        }


@dataclass
class MonthSummary(_Totals):
    month: str = ""

    def to_dict(self) -> dict:
        return {"month": self.month, **self._totals_dict()}


@dataclass
class PayeeSummary(_Totals):
    payee_id: str = ""
    payee_name: str = ""

    def to_dict(self) -> dict:
        return {"payee_id": self.payee_id, "payee_name": self.payee_name, **self._totals_dict()}


def is_transfer(tx: Transaction) -> bool:
    return tx.transfer_account_id != ""


def is_excluded(tx: Transaction) -> bool:
    """Deleted records and inter-account transfers never count as spending."""
    return tx.deleted or is_transfer(tx)


def aggregate_by_category(transactions: Iterable[Transaction]) -> Dict[str, CategorySummary]:
    """
    Group transactions by category.

    Transactions without a category land in the 'uncategorized' bucket.
    The result keeps first-seen order.
    """
    summaries: Dict[str, CategorySummary] = {}

    for tx in transactions:
        if is_excluded(tx):
            continue

        category_id = tx.category_id or UNCATEGORIZED_ID
        summary = summaries.get(category_id)
        if summary is None:
            name = UNCATEGORIZED_NAME if category_id == UNCATEGORIZED_ID else tx.category_name
            summary = CategorySummary(category_id=category_id, category_name=name)
            summaries[category_id] = summary

        summary.add(tx.amount)

    return summaries


def aggregate_by_month(
    transactions: Iterable[Transaction], months: Sequence[str]
) -> Dict[str, MonthSummary]:
    """
    Group transactions into the given YYYY-MM buckets.

    Every month in `months` appears in the result, in the given order, even
    with no activity. Transactions outside those months, or with dates that
    do not parse, are skipped.
    """
    summaries = {month: MonthSummary(month=month) for month in months}

    for tx in transactions:
        if is_excluded(tx):
            continue

        try:
            tx_date = parse_date(tx.date)
        except ValidationError:
            continue

        summary = summaries.get(month_key(tx_date))
        if summary is None:
            continue

        summary.add(tx.amount)

    return summaries


def aggregate_by_payee(transactions: Iterable[Transaction]) -> Dict[str, PayeeSummary]:
    """Group transactions by payee; missing payees go to the 'no-payee' bucket."""
    summaries: Dict[str, PayeeSummary] = {}

    for tx in transactions:
        if is_excluded(tx):
            continue

        payee_id = tx.payee_id or NO_PAYEE_ID
        summary = summaries.get(payee_id)
        if summary is None:
            name = NO_PAYEE_NAME if payee_id == NO_PAYEE_ID else tx.payee_name
            summary = PayeeSummary(payee_id=payee_id, payee_name=name)
            summaries[payee_id] = summary

        summary.add(tx.amount)

    return summaries


SummaryT = TypeVar("SummaryT", bound=_Totals)


def sort_by_outflow(summaries: Iterable[SummaryT]) -> List[SummaryT]:
    """Largest outflow first; ties keep their original order."""
    return sorted(summaries, key=lambda s: s.outflow_milliunits, reverse=True)


def top_n(items: Sequence[SummaryT], n: Optional[int] = DEFAULT_TOP_N) -> List[SummaryT]:
    if n is None or n < 1:
        n = DEFAULT_TOP_N
    return list(items[:n])


# ============================================================================
# Account balances
# ============================================================================

@dataclass
class AccountBalance:
    account_id: str
    account_name: str
    account_type: str
    on_budget: bool
    closed: bool
    cleared_balance: float
    uncleared_balance: float
    current_balance: float

    def to_dict(self) -> dict:
        return {
            "account_id": self.account_id,
            "account_name": self.account_name,
            "account_type": self.account_type,
            "on_budget": self.on_budget,
            "closed": self.closed,
            "cleared_balance": self.cleared_balance,
            "uncleared_balance": self.uncleared_balance,
            "current_balance": self.current_balance,
        }


@dataclass
class BalancesSnapshot:
    accounts: List[AccountBalance] = field(default_factory=list)
    on_budget_milliunits: int = 0
    off_budget_milliunits: int = 0

    @property
    def total_on_budget(self) -> float:
        return milliunits_to_float(self.on_budget_milliunits)

    @property
    def total_off_budget(self) -> float:
        return milliunits_to_float(self.off_budget_milliunits)

    @property
    def net_worth(self) -> float:
        return milliunits_to_float(self.on_budget_milliunits + self.off_budget_milliunits)

    def to_dict(self) -> dict:
        return {
            "accounts": [a.to_dict() for a in self.accounts],
            "total_on_budget": self.total_on_budget,
            "total_off_budget": self.total_off_budget,
            "net_worth": self.net_worth,
        }


def account_balances(accounts: Iterable[Account]) -> BalancesSnapshot:
    """
    Snapshot of every non-deleted account.

    Closed accounts are listed but left out of the on/off-budget totals.
    """
    listed = []
    on_budget = 0
    off_budget = 0

    for account in accounts:
        if account.deleted:
            continue

        listed.append(AccountBalance(
            account_id=account.id,
            account_name=account.name,
            account_type=account.type,
            on_budget=account.on_budget,
            closed=account.closed,
            cleared_balance=milliunits_to_float(account.cleared_balance),
            uncleared_balance=milliunits_to_float(account.uncleared_balance),
            current_balance=milliunits_to_float(account.balance),
        ))

        if account.closed:
            continue
        if account.on_budget:
            on_budget += account.balance
        else:
            off_budget += account.balance

    return BalancesSnapshot(
        accounts=listed,
        on_budget_milliunits=on_budget,
        off_budget_milliunits=off_budget,
    )
