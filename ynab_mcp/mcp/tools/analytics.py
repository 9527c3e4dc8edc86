"""
Analytics tools for the MCP server.

Each tool fetches raw data once and aggregates locally with
ynab_mcp.services.aggregation; no per-transaction lookups are made.
"""
from typing import Optional

from ynab_mcp.mcp.dependencies import get_cancel_event, get_client, require, validate_month
from ynab_mcp.services import aggregation
from ynab_mcp.ynab.client import TransactionQuery
from ynab_mcp.ynab.errors import ValidationError
from ynab_mcp.ynab.units import milliunits_to_float


def _fetch_transactions(client, budget_id: str, since_date: str, account_id: Optional[str]):
    query = TransactionQuery(since_date=since_date)
    if account_id:
        return client.list_account_transactions(budget_id, account_id, query, cancel=get_cancel_event())
    return client.list_transactions(budget_id, query, cancel=get_cancel_event())


def get_spending_by_category(
    budget_id: str,
    since_date: str,
    until_date: str,
    account_id: Optional[str] = None,
) -> dict:
    """
    Get total spending per category for a date range.

    Transfers and deleted transactions are excluded. The range may span at
    most 730 days.

    Args:
        budget_id: The budget's ID
        since_date: Start date, YYYY-MM-DD
        until_date: End date, YYYY-MM-DD (inclusive)
        account_id: Restrict to one account (optional)

    Returns:
        Dict with categories sorted by outflow, overall totals and the date range
    """
    require("budget_id", budget_id)
    require("since_date", since_date, "YYYY-MM-DD format")
    require("until_date", until_date, "YYYY-MM-DD format")
    _, until = aggregation.validate_date_range(since_date, until_date)

    with get_client() as client:
        transactions = _fetch_transactions(client, budget_id, since_date, account_id)

    in_range = aggregation.filter_until(transactions, until)
    categories = aggregation.sort_by_outflow(aggregation.aggregate_by_category(in_range).values())

    return {
        "categories": [c.to_dict() for c in categories],
        "total_outflow": milliunits_to_float(sum(c.outflow_milliunits for c in categories)),
        "total_inflow": milliunits_to_float(sum(c.inflow_milliunits for c in categories)),
        "date_range": {"since": since_date, "until": until_date},
    }


def get_spending_by_month(
    budget_id: str,
    num_months: int,
    category_id: Optional[str] = None,
    account_id: Optional[str] = None,
) -> dict:
    """
    Get monthly totals for the last N months, including the current month.

    Months without activity are reported with zero totals.

    Args:
        budget_id: The budget's ID
        num_months: Number of months, 1-24
        category_id: Only count this category (optional)
        account_id: Restrict to one account (optional)

    Returns:
        Dict with months in chronological order, category name and monthly averages
    """
    require("budget_id", budget_id)
    if num_months is None or not 1 <= num_months <= aggregation.MAX_MONTHS:
        raise ValidationError("num_months must be between 1 and 24")

    months = aggregation.last_n_months(num_months)
    since_date = f"{months[0]}-01"

    with get_client() as client:
        category_name = "All Categories"
        if category_id:
            category_name = client.get_category(budget_id, category_id, cancel=get_cancel_event()).name

        transactions = _fetch_transactions(client, budget_id, since_date, account_id)

    if category_id:
        transactions = [tx for tx in transactions if tx.category_id == category_id]

    summaries = aggregation.aggregate_by_month(transactions, months)
    month_data = [summaries[month] for month in months]

    total_outflow = sum(m.outflow_milliunits for m in month_data)
    total_inflow = sum(m.inflow_milliunits for m in month_data)

    return {
        "months": [m.to_dict() for m in month_data],
        "category_name": category_name,
        "average_monthly_outflow": milliunits_to_float(total_outflow) / len(months),
        "average_monthly_inflow": milliunits_to_float(total_inflow) / len(months),
    }


def get_budget_summary(budget_id: str, month: Optional[str] = None) -> dict:
    """
    Get budgeted vs. actual for every visible category.

    Args:
        budget_id: The budget's ID
        month: YYYY-MM label for the result (optional, defaults to the current month)

    Returns:
        Dict with the month and category groups holding budgeted, activity,
        available and goal fields
    """
    require("budget_id", budget_id)
    month = validate_month(month) if month else aggregation.current_month()

    with get_client() as client:
        budget = client.get_budget(budget_id, cancel=get_cancel_event())

    groups = []
    for group in budget.category_groups:
        if group.deleted or group.hidden:
            continue

        categories = [
            {
                "category_id": cat.id,
                "category_name": cat.name,
                "budgeted": milliunits_to_float(cat.budgeted),
                "activity": milliunits_to_float(cat.activity),
                "available": milliunits_to_float(cat.balance),
                "goal_target": milliunits_to_float(cat.goal_target) if cat.goal_target > 0 else None,
                "goal_type": cat.goal_type or None,
            }
            for cat in budget.group_categories(group)
            if not (cat.deleted or cat.hidden)
        ]

        if categories:
            groups.append({
                "category_group_id": group.id,
                "category_group_name": group.name,
                "categories": categories,
            })

    return {
        "month": month,
        "category_groups": groups,
        # Not part of the budget detail payload
        "age_of_money": None,
        "to_be_budgeted": None,
    }


def get_payee_summary(
    budget_id: str,
    since_date: str,
    until_date: str,
    top_n: Optional[int] = aggregation.DEFAULT_TOP_N,
) -> dict:
    """
    Get the top payees by spending for a date range.

    Args:
        budget_id: The budget's ID
        since_date: Start date, YYYY-MM-DD
        until_date: End date, YYYY-MM-DD (inclusive)
        top_n: Number of payees to return (default: 20; values below 1 use the default)

    Returns:
        Dict with payees sorted by outflow and the date range
    """
    require("budget_id", budget_id)
    require("since_date", since_date, "YYYY-MM-DD format")
    require("until_date", until_date, "YYYY-MM-DD format")
    _, until = aggregation.validate_date_range(since_date, until_date)

    with get_client() as client:
        transactions = _fetch_transactions(client, budget_id, since_date, None)

    in_range = aggregation.filter_until(transactions, until)
    payees = aggregation.sort_by_outflow(aggregation.aggregate_by_payee(in_range).values())
    payees = aggregation.top_n(payees, top_n)

    return {
        "payees": [p.to_dict() for p in payees],
        "date_range": {"since": since_date, "until": until_date},
    }


def get_account_balances(budget_id: str) -> dict:
    """
    Snapshot of all account balances with on/off budget totals and net worth.

    Closed accounts are listed but not counted in the totals.

    Args:
        budget_id: The budget's ID
    """
    require("budget_id", budget_id)

    with get_client() as client:
        accounts = client.list_accounts(budget_id, cancel=get_cancel_event())

    return aggregation.account_balances(accounts).to_dict()
