"""
Category tools for the MCP server.
"""
from typing import Optional

from ynab_mcp.mcp.dependencies import get_cancel_event, get_client, require, validate_month
from ynab_mcp.ynab.models import Category
from ynab_mcp.ynab.units import milliunits_to_float


def _category_dict(category: Category) -> dict:
    return {
        "id": category.id,
        "name": category.name,
        "category_group_id": category.category_group_id,
        "budgeted": milliunits_to_float(category.budgeted),
        "activity": milliunits_to_float(category.activity),
        "available": milliunits_to_float(category.balance),
        "overspent": category.balance < 0,
        "goal_type": category.goal_type or None,
        "goal_target": milliunits_to_float(category.goal_target) if category.goal_target > 0 else None,
        "goal_percentage_complete": category.goal_percentage_complete,
    }


def list_categories(budget_id: str) -> dict:
    """
    List visible category groups and their categories.

    Hidden or deleted groups and categories are skipped.

    Args:
        budget_id: The budget's ID

    Returns:
        Dict with category_groups (each with categories) and budgeted/activity/available totals
    """
    require("budget_id", budget_id)

    with get_client() as client:
        groups = client.list_categories(budget_id, cancel=get_cancel_event())

    total_budgeted = 0
    total_activity = 0
    total_balance = 0
    result = []

    for group in groups:
        if group.deleted or group.hidden:
            continue

        categories = []
        for category in group.categories:
            if category.deleted or category.hidden:
                continue
            total_budgeted += category.budgeted
            total_activity += category.activity
            total_balance += category.balance
            categories.append(_category_dict(category))

        result.append({
            "id": group.id,
            "name": group.name,
            "categories": categories,
        })

    return {
        "category_groups": result,
        "total_budgeted": milliunits_to_float(total_budgeted),
        "total_activity": milliunits_to_float(total_activity),
        "total_available": milliunits_to_float(total_balance),
    }


def get_category_details(budget_id: str, category_id: str, month: Optional[str] = None) -> dict:
    """
    Get a single category by ID.

    Args:
        budget_id: The budget's ID
        category_id: The category's ID
        month: Month in YYYY-MM format (optional). When given, budgeted,
            activity and available are for that month instead of the current one.

    Returns:
        Category dictionary with budget and goal information

    Raises:
        NotFoundError: if the category is not in the budget (current month lookup)
    """
    require("budget_id", budget_id)
    require("category_id", category_id)
    if month:
        validate_month(month)

    with get_client() as client:
        if month:
            category = client.get_month_category(
                budget_id, f"{month}-01", category_id, cancel=get_cancel_event()
            )
        else:
            category = client.get_category(budget_id, category_id, cancel=get_cancel_event())

    return {
        **_category_dict(category),
        "category_group_name": category.category_group_name or None,
        "month": month,
        "goal_target_month": category.goal_target_month or None,
        "goal_under_funded": (
            milliunits_to_float(category.goal_under_funded) if category.goal_under_funded > 0 else None
        ),
        "note": category.note or None,
        "hidden": category.hidden,
        "deleted": category.deleted,
    }
