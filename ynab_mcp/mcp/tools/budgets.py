"""
Budget tools for the MCP server.
"""
from ynab_mcp.mcp.dependencies import get_cancel_event, get_client, require
from ynab_mcp.ynab.models import Budget
from ynab_mcp.ynab.units import milliunits_to_float


def _budget_summary(budget: Budget) -> dict:
    return {
        "id": budget.id,
        "name": budget.name,
        "last_modified_on": budget.last_modified_on or None,
        "first_month": budget.first_month or None,
        "last_month": budget.last_month or None,
        "currency": budget.currency_format.iso_code if budget.currency_format else None,
        "currency_symbol": budget.currency_format.currency_symbol if budget.currency_format else None,
    }


def list_budgets() -> list[dict]:
    """
    List all budgets accessible with the configured token.

    Returns:
        List of budget dictionaries with id, name, last modified date and currency
    """
    with get_client() as client:
        budgets = client.list_budgets(cancel=get_cancel_event())

    return [_budget_summary(budget) for budget in budgets]


def get_budget_details(budget_id: str) -> dict:
    """
    Get a budget with account, category group and payee summaries.

    Closed and deleted accounts are left out of the on/off budget totals;
    hidden and deleted category groups are skipped.

    Args:
        budget_id: The budget's ID

    Returns:
        Budget dictionary with accounts, totals, category groups and payee count
    """
    require("budget_id", budget_id)

    with get_client() as client:
        budget = client.get_budget(budget_id, cancel=get_cancel_event())

    on_budget = 0
    off_budget = 0
    accounts = []
    for account in budget.accounts:
        if account.deleted or account.closed:
            continue
        if account.on_budget:
            on_budget += account.balance
        else:
            off_budget += account.balance
        accounts.append({
            "id": account.id,
            "name": account.name,
            "on_budget": account.on_budget,
            "balance": milliunits_to_float(account.balance),
        })

    category_groups = [
        {
            "id": group.id,
            "name": group.name,
            "category_count": len(budget.group_categories(group)),
        }
        for group in budget.category_groups
        if not (group.deleted or group.hidden)
    ]

    return {
        **_budget_summary(budget),
        "accounts": accounts,
        "on_budget_total": milliunits_to_float(on_budget),
        "off_budget_total": milliunits_to_float(off_budget),
        "category_groups": category_groups,
        "payee_count": sum(1 for payee in budget.payees if not payee.deleted),
    }
