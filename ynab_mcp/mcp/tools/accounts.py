"""
Account tools for the MCP server.
"""
from ynab_mcp.mcp.dependencies import get_cancel_event, get_client, require
from ynab_mcp.ynab.models import Account
from ynab_mcp.ynab.units import milliunits_to_float


def _account_dict(account: Account) -> dict:
    return {
        "id": account.id,
        "name": account.name,
        "type": account.type,
        "on_budget": account.on_budget,
        "closed": account.closed,
        "balance": milliunits_to_float(account.balance),
        "cleared_balance": milliunits_to_float(account.cleared_balance),
        "uncleared_balance": milliunits_to_float(account.uncleared_balance),
        "note": account.note or None,
    }


def list_accounts(budget_id: str) -> dict:
    """
    List all non-deleted accounts in a budget.

    Args:
        budget_id: The budget's ID

    Returns:
        Dict with accounts plus on_budget_total, off_budget_total and net_worth
    """
    require("budget_id", budget_id)

    with get_client() as client:
        accounts = client.list_accounts(budget_id, cancel=get_cancel_event())

    on_budget = 0
    off_budget = 0
    listed = []
    for account in accounts:
        if account.deleted:
            continue
        if account.on_budget:
            on_budget += account.balance
        else:
            off_budget += account.balance
        listed.append(_account_dict(account))

    return {
        "accounts": listed,
        "on_budget_total": milliunits_to_float(on_budget),
        "off_budget_total": milliunits_to_float(off_budget),
        "net_worth": milliunits_to_float(on_budget + off_budget),
    }


def get_account_details(budget_id: str, account_id: str) -> dict:
    """
    Get a single account by ID, including deleted ones.

    Args:
        budget_id: The budget's ID
        account_id: The account's ID

    Returns:
        Account dictionary with balance breakdown and import status

    Raises:
        NotFoundError: if the budget has no account with that ID
    """
    require("budget_id", budget_id)
    require("account_id", account_id)

    with get_client() as client:
        account = client.get_account(budget_id, account_id, cancel=get_cancel_event())

    return {
        **_account_dict(account),
        "transfer_payee_id": account.transfer_payee_id or None,
        "direct_import_linked": account.direct_import_linked,
        "direct_import_in_error": account.direct_import_in_error,
        "deleted": account.deleted,
    }
