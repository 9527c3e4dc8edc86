"""
YNAB MCP Server.
Exposes YNAB budgets, accounts, transactions, categories and payees as MCP tools.
"""
__version__ = "1.0.0"
