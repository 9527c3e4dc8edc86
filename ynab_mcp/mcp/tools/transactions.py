"""
Transaction tools for the MCP server.
"""
from datetime import date
from typing import Optional

from ynab_mcp.mcp.dependencies import get_cancel_event, get_client, require, validate_date
from ynab_mcp.ynab.client import TransactionQuery
from ynab_mcp.ynab.errors import ValidationError
from ynab_mcp.ynab.models import SaveTransaction, Transaction
from ynab_mcp.ynab.units import float_to_milliunits, format_currency, milliunits_to_float

CLEARED_STATUSES = ("cleared", "uncleared", "reconciled")

MAX_LISTED_TRANSACTIONS = 50


def _transaction_dict(tx: Transaction) -> dict:
    return {
        "id": tx.id,
        "date": tx.date,
        "amount": milliunits_to_float(tx.amount),
        "amount_formatted": format_currency(tx.amount),
        "payee_name": tx.payee_name or None,
        "category_name": tx.category_name or None,
        "account_name": tx.account_name or None,
        "memo": tx.memo or None,
        "cleared": tx.cleared,
        "approved": tx.approved,
        "is_transfer": bool(tx.transfer_account_id),
    }


def _supplied(**values) -> dict:
    return {key: value for key, value in values.items() if value is not None}


def _check_cleared(cleared: Optional[str]) -> None:
    if cleared and cleared not in CLEARED_STATUSES:
        raise ValidationError(f"cleared must be one of {', '.join(CLEARED_STATUSES)}")


def list_transactions(
    budget_id: str,
    since_date: Optional[str] = None,
    type: Optional[str] = None,
    account_id: Optional[str] = None,
) -> dict:
    """
    List transactions in a budget, optionally for a single account.

    Deleted transactions are skipped and at most the 50 most recent are
    returned; total_count reports how many matched.

    Args:
        budget_id: The budget's ID
        since_date: Only transactions on or after this date, YYYY-MM-DD (optional)
        type: 'uncategorized' or 'unapproved' (optional)
        account_id: Restrict to one account (optional)

    Returns:
        Dict with transactions, total_count, returned_count and total_amount of the returned ones
    """
    require("budget_id", budget_id)
    validate_date("since_date", since_date)
    query = TransactionQuery(since_date=since_date or None, type=type or None)

    with get_client() as client:
        if account_id:
            transactions = client.list_account_transactions(
                budget_id, account_id, query, cancel=get_cancel_event()
            )
        else:
            transactions = client.list_transactions(budget_id, query, cancel=get_cancel_event())

    active = [tx for tx in transactions if not tx.deleted]
    # ISO dates sort chronologically as strings
    active.sort(key=lambda tx: tx.date, reverse=True)
    shown = active[:MAX_LISTED_TRANSACTIONS]

    return {
        "transactions": [_transaction_dict(tx) for tx in shown],
        "total_count": len(active),
        "returned_count": len(shown),
        "total_amount": milliunits_to_float(sum(tx.amount for tx in shown)),
        "total_amount_formatted": format_currency(sum(tx.amount for tx in shown)),
    }


def get_transaction_details(budget_id: str, transaction_id: str) -> dict:
    """
    Get a single transaction, including its split subtransactions.

    Args:
        budget_id: The budget's ID
        transaction_id: The transaction's ID

    Returns:
        Transaction dictionary with status fields and subtransactions
    """
    require("budget_id", budget_id)
    require("transaction_id", transaction_id)

    with get_client() as client:
        tx = client.get_transaction(budget_id, transaction_id, cancel=get_cancel_event())

    return {
        **_transaction_dict(tx),
        "account_id": tx.account_id,
        "payee_id": tx.payee_id or None,
        "category_id": tx.category_id or None,
        "flag_color": tx.flag_color or None,
        "transfer_account_id": tx.transfer_account_id or None,
        "deleted": tx.deleted,
        "subtransactions": [
            {
                "id": sub.id,
                "amount": milliunits_to_float(sub.amount),
                "payee_name": sub.payee_name or None,
                "category_id": sub.category_id or None,
                "category_name": sub.category_name or None,
                "memo": sub.memo or None,
            }
            for sub in tx.subtransactions
            if not sub.deleted
        ],
    }


def create_transaction(
    budget_id: str,
    account_id: str,
    amount: float,
    date_: Optional[str] = None,
    payee_name: Optional[str] = None,
    category_id: Optional[str] = None,
    memo: Optional[str] = None,
    cleared: Optional[str] = None,
) -> dict:
    """
    Create an approved transaction.

    Args:
        budget_id: The budget's ID
        account_id: The account to record it in
        amount: Amount in currency units; negative for an outflow (e.g. -45.67)
        date_: YYYY-MM-DD, defaults to today
        payee_name: Payee name (optional)
        category_id: Category ID (optional)
        memo: Memo (optional)
        cleared: 'cleared', 'uncleared' or 'reconciled' (default: uncleared)

    Returns:
        The created transaction
    """
    require("budget_id", budget_id)
    require("account_id", account_id)
    if amount is None:
        raise ValidationError("amount is required and must be a number")
    validate_date("date", date_)
    _check_cleared(cleared)

    request = SaveTransaction(**_supplied(
        account_id=account_id,
        date=date_ or date.today().isoformat(),
        amount=float_to_milliunits(amount),
        payee_name=payee_name or None,
        category_id=category_id or None,
        memo=memo or None,
        cleared=cleared or "uncleared",
        approved=True,
    ))

    with get_client() as client:
        tx = client.create_transaction(budget_id, request, cancel=get_cancel_event())

    return {"success": True, "transaction": _transaction_dict(tx)}


def update_transaction(
    budget_id: str,
    transaction_id: str,
    date_: Optional[str] = None,
    amount: Optional[float] = None,
    payee_name: Optional[str] = None,
    category_id: Optional[str] = None,
    memo: Optional[str] = None,
    cleared: Optional[str] = None,
    approved: Optional[bool] = None,
    flag_color: Optional[str] = None,
) -> dict:
    """
    Update an existing transaction. Only the supplied fields are changed.

    Args:
        budget_id: The budget's ID
        transaction_id: The transaction to update
        date_: New date, YYYY-MM-DD (optional)
        amount: New amount in currency units (optional)
        payee_name: New payee name (optional)
        category_id: New category ID (optional)
        memo: New memo (optional, "" clears it)
        cleared: New cleared status (optional)
        approved: Approve or unapprove (optional)
        flag_color: New flag color (optional, "" clears it)

    Returns:
        The updated transaction
    """
    require("budget_id", budget_id)
    require("transaction_id", transaction_id)
    validate_date("date", date_)
    _check_cleared(cleared)

    fields = _supplied(
        date=date_ or None,
        amount=float_to_milliunits(amount) if amount is not None else None,
        payee_name=payee_name or None,
        category_id=category_id or None,
        memo=memo,
        cleared=cleared or None,
        approved=approved,
    )
    if flag_color is not None:
        # YNAB clears the flag on an explicit null
        fields["flag_color"] = flag_color or None
    request = SaveTransaction(**fields)

    with get_client() as client:
        tx = client.update_transaction(budget_id, transaction_id, request, cancel=get_cancel_event())

    return {"success": True, "transaction": _transaction_dict(tx)}
