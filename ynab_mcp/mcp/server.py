"""
Main FastMCP server setup for YNAB.
Registers all tools from the tools modules plus the public HTTP routes.
"""
import asyncio
import logging
import threading
from typing import Callable, Literal, TypeVar

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse

from ynab_mcp.config import ConfigError, Settings
from ynab_mcp.mcp.auth import StaticTokenAuthProvider
from ynab_mcp.mcp.dependencies import clear_cancel_event, set_cancel_event
from ynab_mcp.mcp.tools import accounts, analytics, budgets, categories, payees, transactions
from ynab_mcp.ynab.errors import ValidationError, YNABError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Initialize FastMCP server
mcp = FastMCP(
    name="YNAB MCP",
    instructions="""
YNAB MCP Server - Access YNAB (You Need A Budget) budgets and manage transactions.

Every tool except `list_budgets` needs a `budget_id`; call `list_budgets` first.

## Amounts
All amounts are in currency units (e.g. -45.67). Negative amounts are outflows,
positive amounts are inflows.

## Available functionality
- **Budgets**: List budgets, view budget details
- **Accounts**: List accounts, view account details
- **Transactions**: List, view, create and update transactions
- **Categories**: List categories, view category details (optionally for a month)
- **Payees**: List payees
- **Analytics**: Spending by category/month/payee, budget summary, account balances

## Analytics notes
Analytics tools exclude transfers between accounts and deleted transactions.
Date ranges for `get_spending_by_category` and `get_payee_summary` may span at
most 730 days.
""",
)


async def _run(action: str, func: Callable[..., T], *args, **kwargs) -> T:
    """
    Run a blocking tool function in a worker thread.

    Retries inside the YNAB client sleep in that thread, not on the event
    loop. If the tool call is cancelled, the per-call event is set so the
    client stops waiting between attempts.
    """
    cancel = threading.Event()
    token = set_cancel_event(cancel)
    try:
        return await asyncio.to_thread(func, *args, **kwargs)
    except asyncio.CancelledError:
        cancel.set()
        raise
    except (ValidationError, ConfigError) as e:
        raise ToolError(str(e)) from e
    except YNABError as e:
        logger.error(f"Failed to {action}: {e}")
        raise ToolError(f"Failed to {action}: {e}") from e
    finally:
        clear_cancel_event(token)


# ============================================================================
# HTTP routes
# ============================================================================

@mcp.custom_route("/health", methods=["GET"])
async def health(request: Request) -> JSONResponse:
    return JSONResponse({"status": "healthy", "service": "ynab-mcp-server"})


@mcp.custom_route("/", methods=["GET"])
async def root(request: Request) -> PlainTextResponse:
    return PlainTextResponse(
        "YNAB MCP Server\n\n"
        "This is a Model Context Protocol (MCP) server for YNAB (You Need A Budget).\n\n"
        "Endpoints:\n"
        "  POST /mcp    - MCP protocol endpoint (streamable HTTP)\n"
        "  GET  /health - Health check\n"
    )


def build_http_app(settings: Settings):
    """
    Build the streamable HTTP ASGI app.

    When an MCP auth token is configured, the MCP route requires it as a
    bearer token; /health and / stay public.
    """
    if settings.mcp_auth_token:
        logger.info("HTTP authentication enabled")
        mcp.auth = StaticTokenAuthProvider(settings.mcp_auth_token)
    else:
        logger.warning("HTTP authentication disabled - server is open to all requests")
        mcp.auth = None
    return mcp.http_app()


# ============================================================================
# Budget Tools
# ============================================================================

@mcp.tool
async def list_budgets() -> list[dict]:
    """
    List all YNAB budgets accessible with the current token.

    Returns:
        List of budgets with id, name, last modified date and currency
    """
    return await _run("fetch budgets", budgets.list_budgets)


@mcp.tool
async def get_budget_details(budget_id: str) -> dict:
    """
    Get detailed information about a budget including accounts, category groups and payees.

    Args:
        budget_id: The ID of the budget (from list_budgets)

    Returns:
        Budget details with open accounts, on/off budget totals, category groups and payee count
    """
    return await _run("fetch budget", budgets.get_budget_details, budget_id)


# ============================================================================
# Account Tools
# ============================================================================

@mcp.tool
async def list_accounts(budget_id: str) -> dict:
    """
    List all accounts in a budget with type, balances and open/closed, on/off budget status.

    Args:
        budget_id: The ID of the budget

    Returns:
        Accounts plus on-budget total, off-budget total and net worth
    """
    return await _run("fetch accounts", accounts.list_accounts, budget_id)


@mcp.tool
async def get_account_details(budget_id: str, account_id: str) -> dict:
    """
    Get detailed information about a specific account including balance breakdown.

    Args:
        budget_id: The ID of the budget
        account_id: The ID of the account

    Returns:
        Account details with total, cleared and uncleared balances
    """
    return await _run("fetch account", accounts.get_account_details, budget_id, account_id)


# ============================================================================
# Transaction Tools
# ============================================================================

@mcp.tool
async def list_transactions(
    budget_id: str,
    since_date: str | None = None,
    type: Literal["uncategorized", "unapproved"] | None = None,
    account_id: str | None = None,
) -> dict:
    """
    List transactions in a budget (the 50 most recent matches).

    Args:
        budget_id: The ID of the budget
        since_date: Only transactions on or after this date, YYYY-MM-DD (optional)
        type: Filter by 'uncategorized' or 'unapproved' (optional)
        account_id: Only transactions for this account (optional)

    Returns:
        Transactions, total_count of matches and the total amount of those returned
    """
    return await _run(
        "fetch transactions", transactions.list_transactions, budget_id, since_date, type, account_id
    )


@mcp.tool
async def get_transaction_details(budget_id: str, transaction_id: str) -> dict:
    """
    Get all fields of a transaction, including any subtransactions (splits).

    Args:
        budget_id: The ID of the budget
        transaction_id: The ID of the transaction

    Returns:
        Transaction details
    """
    return await _run(
        "fetch transaction", transactions.get_transaction_details, budget_id, transaction_id
    )


@mcp.tool
async def create_transaction(
    budget_id: str,
    account_id: str,
    amount: float,
    date: str | None = None,
    payee_name: str | None = None,
    category_id: str | None = None,
    memo: str | None = None,
    cleared: Literal["cleared", "uncleared", "reconciled"] | None = None,
) -> dict:
    """
    Create a new transaction (WRITE).

    Args:
        budget_id: The ID of the budget
        account_id: The ID of the account for this transaction
        amount: Amount in currency units (e.g. -45.67 for an expense, 100.00 for income)
        date: Transaction date, YYYY-MM-DD (optional, defaults to today)
        payee_name: Name of the payee (optional)
        category_id: ID of the category (optional)
        memo: Memo/note (optional)
        cleared: 'cleared', 'uncleared' or 'reconciled' (default: uncleared)

    Returns:
        Dict with success status and the created transaction
    """
    return await _run(
        "create transaction",
        transactions.create_transaction,
        budget_id,
        account_id,
        amount,
        date_=date,
        payee_name=payee_name,
        category_id=category_id,
        memo=memo,
        cleared=cleared,
    )


@mcp.tool
async def update_transaction(
    budget_id: str,
    transaction_id: str,
    date: str | None = None,
    amount: float | None = None,
    payee_name: str | None = None,
    category_id: str | None = None,
    memo: str | None = None,
    cleared: Literal["cleared", "uncleared", "reconciled"] | None = None,
    approved: bool | None = None,
    flag_color: str | None = None,
) -> dict:
    """
    Update an existing transaction (WRITE). Only the fields you pass are changed.

    Args:
        budget_id: The ID of the budget
        transaction_id: The ID of the transaction to update
        date: New date, YYYY-MM-DD (optional)
        amount: New amount in currency units (optional)
        payee_name: New payee name (optional)
        category_id: New category ID (optional)
        memo: New memo (optional, "" clears it)
        cleared: New cleared status (optional)
        approved: Approve or unapprove the transaction (optional)
        flag_color: red, orange, yellow, green, blue or purple (optional, "" clears it)

    Returns:
        Dict with success status and the updated transaction
    """
    return await _run(
        "update transaction",
        transactions.update_transaction,
        budget_id,
        transaction_id,
        date_=date,
        amount=amount,
        payee_name=payee_name,
        category_id=category_id,
        memo=memo,
        cleared=cleared,
        approved=approved,
        flag_color=flag_color,
    )


# ============================================================================
# Category Tools
# ============================================================================

@mcp.tool
async def list_categories(budget_id: str) -> dict:
    """
    List category groups and categories with budgeted, activity and available amounts.

    Args:
        budget_id: The ID of the budget

    Returns:
        Visible category groups with their categories, plus totals
    """
    return await _run("fetch categories", categories.list_categories, budget_id)


@mcp.tool
async def get_category_details(budget_id: str, category_id: str, month: str | None = None) -> dict:
    """
    Get budget, activity, balance and goal information for a category.

    Args:
        budget_id: The ID of the budget
        category_id: The ID of the category
        month: Month in YYYY-MM format (optional, defaults to the current month)

    Returns:
        Category details
    """
    return await _run(
        "fetch category", categories.get_category_details, budget_id, category_id, month
    )


# ============================================================================
# Payee Tools
# ============================================================================

@mcp.tool
async def list_payees(budget_id: str) -> dict:
    """
    List payees in a budget, with transfer payees (other accounts) listed separately.

    Args:
        budget_id: The ID of the budget

    Returns:
        Dict with payees and transfer_payees
    """
    return await _run("fetch payees", payees.list_payees, budget_id)


# ============================================================================
# Analytics Tools
# ============================================================================

@mcp.tool
async def get_spending_by_category(
    budget_id: str,
    since_date: str,
    until_date: str,
    account_id: str | None = None,
) -> dict:
    """
    Get total spending per category for a date range (at most 730 days).

    Args:
        budget_id: The ID of the budget
        since_date: Start date, YYYY-MM-DD (e.g. 2024-01-01)
        until_date: End date, YYYY-MM-DD (e.g. 2024-12-31)
        account_id: Only this account (optional)

    Returns:
        Categories sorted by outflow with total outflow/inflow and the date range
    """
    return await _run(
        "fetch transactions",
        analytics.get_spending_by_category,
        budget_id,
        since_date,
        until_date,
        account_id,
    )


@mcp.tool
async def get_spending_by_month(
    budget_id: str,
    num_months: int,
    category_id: str | None = None,
    account_id: str | None = None,
) -> dict:
    """
    Get monthly spending totals for trend analysis over the last N months.

    Args:
        budget_id: The ID of the budget
        num_months: Number of months including the current one (1-24)
        category_id: Only this category (optional, all categories by default)
        account_id: Only this account (optional)

    Returns:
        Monthly totals in chronological order with monthly averages
    """
    return await _run(
        "fetch transactions",
        analytics.get_spending_by_month,
        budget_id,
        num_months,
        category_id,
        account_id,
    )


@mcp.tool
async def get_budget_summary(budget_id: str, month: str | None = None) -> dict:
    """
    Get the current budget state: budgeted vs. actual for all categories.

    Args:
        budget_id: The ID of the budget
        month: Month in YYYY-MM format (optional, defaults to the current month)

    Returns:
        Category groups with budgeted, activity, available and goal information
    """
    return await _run("fetch budget", analytics.get_budget_summary, budget_id, month)


@mcp.tool
async def get_payee_summary(
    budget_id: str,
    since_date: str,
    until_date: str,
    top_n: int = 20,
) -> dict:
    """
    See where money is going by payee for a date range (at most 730 days).

    Args:
        budget_id: The ID of the budget
        since_date: Start date, YYYY-MM-DD
        until_date: End date, YYYY-MM-DD
        top_n: Number of payees to return (default: 20)

    Returns:
        Top payees sorted by outflow and the date range
    """
    return await _run(
        "fetch transactions", analytics.get_payee_summary, budget_id, since_date, until_date, top_n
    )


@mcp.tool
async def get_account_balances(budget_id: str) -> dict:
    """
    Quick snapshot of all account balances with totals and net worth.

    Args:
        budget_id: The ID of the budget

    Returns:
        Accounts with cleared/uncleared/current balances, on/off budget totals and net worth
    """
    return await _run("fetch accounts", analytics.get_account_balances, budget_id)
