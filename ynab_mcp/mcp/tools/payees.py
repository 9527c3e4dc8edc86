"""
Payee tools for the MCP server.
"""
from ynab_mcp.mcp.dependencies import get_cancel_event, get_client, require


def list_payees(budget_id: str) -> dict:
    """
    List payees, separating real payees from transfer payees.

    Transfer payees stand for another account in the budget rather than a
    real-world entity. Deleted payees are skipped.

    Args:
        budget_id: The budget's ID

    Returns:
        Dict with 'payees' and 'transfer_payees' lists
    """
    require("budget_id", budget_id)

    with get_client() as client:
        payees = client.list_payees(budget_id, cancel=get_cancel_event())

    regular = []
    transfers = []
    for payee in payees:
        if payee.deleted:
            continue
        entry = {"id": payee.id, "name": payee.name}
        if payee.transfer_account_id:
            entry["transfer_account_id"] = payee.transfer_account_id
            transfers.append(entry)
        else:
            regular.append(entry)

    return {"payees": regular, "transfer_payees": transfers}
