"""
Pydantic models for YNAB API payloads.

Field names follow the API's snake_case JSON keys. Amounts are integer
milliunits. Optional string fields that come back as null are stored as ""
so emptiness checks read the same for missing and empty values.
"""
from typing import Annotated, Generic, List, Literal, Optional, TypeVar

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field


def _none_to_empty(value):
    return "" if value is None else value


def _none_to_zero(value):
    return 0 if value is None else value


Text = Annotated[str, BeforeValidator(_none_to_empty)]
Milliunits = Annotated[int, BeforeValidator(_none_to_zero)]

ClearedStatus = Literal["cleared", "uncleared", "reconciled"]
TransactionType = Literal["uncategorized", "unapproved"]


class YNABModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class CurrencyFormat(YNABModel):
    iso_code: Text = ""
    example_format: Text = ""
    decimal_digits: int = 2
    decimal_separator: Text = "."
    symbol_first: bool = True
    group_separator: Text = ","
    currency_symbol: Text = ""
    display_symbol: bool = True


class SubTransaction(YNABModel):
    id: str
    transaction_id: Text = ""
    amount: Milliunits = 0
    memo: Text = ""
    payee_id: Text = ""
    payee_name: Text = ""
    category_id: Text = ""
    category_name: Text = ""
    transfer_account_id: Text = ""
    transfer_transaction_id: Text = ""
    deleted: bool = False


class Transaction(YNABModel):
    id: str
    date: Text = ""
    amount: Milliunits = 0
    memo: Text = ""
    cleared: Text = "uncleared"
    approved: bool = False
    flag_color: Text = ""
    account_id: Text = ""
    account_name: Text = ""
    payee_id: Text = ""
    payee_name: Text = ""
    category_id: Text = ""
    category_name: Text = ""
    transfer_account_id: Text = ""
    transfer_transaction_id: Text = ""
    matched_transaction_id: Text = ""
    import_id: Text = ""
    deleted: bool = False
    subtransactions: List[SubTransaction] = Field(default_factory=list)


class Account(YNABModel):
    id: str
    name: Text = ""
    type: Text = ""
    on_budget: bool = False
    closed: bool = False
    note: Text = ""
    balance: Milliunits = 0
    cleared_balance: Milliunits = 0
    uncleared_balance: Milliunits = 0
    transfer_payee_id: Text = ""
    direct_import_linked: bool = False
    direct_import_in_error: bool = False
    deleted: bool = False


class Category(YNABModel):
    id: str
    category_group_id: Text = ""
    category_group_name: Text = ""
    name: Text = ""
    hidden: bool = False
    note: Text = ""
    budgeted: Milliunits = 0
    activity: Milliunits = 0
    balance: Milliunits = 0
    goal_type: Text = ""
    goal_target: Milliunits = 0
    goal_target_month: Text = ""
    goal_percentage_complete: Optional[int] = None
    goal_under_funded: Milliunits = 0
    deleted: bool = False


class CategoryGroup(YNABModel):
    id: str
    name: Text = ""
    hidden: bool = False
    deleted: bool = False
    categories: List[Category] = Field(default_factory=list)


class Payee(YNABModel):
    id: str
    name: Text = ""
    transfer_account_id: Text = ""
    deleted: bool = False


class Budget(YNABModel):
    id: str
    name: Text = ""
    last_modified_on: Text = ""
    first_month: Text = ""
    last_month: Text = ""
    currency_format: Optional[CurrencyFormat] = None
    accounts: List[Account] = Field(default_factory=list)
    category_groups: List[CategoryGroup] = Field(default_factory=list)
    # The detail endpoint returns categories flat, keyed by category_group_id
    categories: List[Category] = Field(default_factory=list)
    payees: List[Payee] = Field(default_factory=list)

    def group_categories(self, group: CategoryGroup) -> List[Category]:
        """Categories of a group, from the nested list or the flat budget list."""
        if group.categories:
            return group.categories
        return [c for c in self.categories if c.category_group_id == group.id]


# Response envelopes

T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    """Successful responses are wrapped as {"data": {...}}."""
    data: T


class BudgetsPayload(YNABModel):
    budgets: List[Budget] = Field(default_factory=list)
    default_budget: Optional[Budget] = None


class BudgetPayload(YNABModel):
    budget: Budget
    server_knowledge: Optional[int] = None


class DateFormat(YNABModel):
    format: Text = ""


class BudgetSettings(YNABModel):
    date_format: Optional[DateFormat] = None
    currency_format: Optional[CurrencyFormat] = None


class BudgetSettingsPayload(YNABModel):
    settings: BudgetSettings


class AccountsPayload(YNABModel):
    accounts: List[Account] = Field(default_factory=list)
    server_knowledge: Optional[int] = None


class CategoriesPayload(YNABModel):
    category_groups: List[CategoryGroup] = Field(default_factory=list)
    server_knowledge: Optional[int] = None


class CategoryPayload(YNABModel):
    category: Category


class PayeesPayload(YNABModel):
    payees: List[Payee] = Field(default_factory=list)
    server_knowledge: Optional[int] = None


class TransactionsPayload(YNABModel):
    transactions: List[Transaction] = Field(default_factory=list)
    server_knowledge: Optional[int] = None


class TransactionPayload(YNABModel):
    transaction: Transaction
    server_knowledge: Optional[int] = None


class ErrorDetail(YNABModel):
    id: Text = ""
    name: Text = ""
    detail: Text = ""


class ErrorBody(YNABModel):
    error: ErrorDetail


# Request bodies

class SaveTransaction(BaseModel):
    """
    Fields for creating or updating a transaction.

    Only fields passed to the constructor are sent, so an update touches
    exactly the fields the caller supplied. A field set to None is sent as
    null, which clears it upstream.
    """
    account_id: Optional[str] = None
    date: Optional[str] = None
    amount: Optional[int] = None
    payee_id: Optional[str] = None
    payee_name: Optional[str] = None
    category_id: Optional[str] = None
    memo: Optional[str] = None
    cleared: Optional[ClearedStatus] = None
    approved: Optional[bool] = None
    flag_color: Optional[str] = None

    def to_request(self) -> dict:
        return {"transaction": self.model_dump(exclude_unset=True)}
