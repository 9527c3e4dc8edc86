"""
MCP (Model Context Protocol) server for YNAB.
Provides access to budgets, accounts, categories and payees, with two write
operations (create and update transaction).

Usage:
    from ynab_mcp.mcp.server import mcp

Tools available:
    Budgets:
        - list_budgets
        - get_budget_details

    Accounts:
        - list_accounts
        - get_account_details

    Transactions:
        - list_transactions
        - get_transaction_details
        - create_transaction (WRITE)
        - update_transaction (WRITE)

    Categories:
        - list_categories
        - get_category_details

    Payees:
        - list_payees

    Analytics:
        - get_spending_by_category
        - get_spending_by_month
        - get_budget_summary
        - get_payee_summary
        - get_account_balances
"""
