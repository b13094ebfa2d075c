"""
Mapping between account objects and their class-table-inheritance rows.

A single dispatch table keyed by AccountType drives both directions: which
subtype table and columns an account is written to, and which column group of
the flattened view a row is read back from.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from .exceptions import MalformedRecordError
from .models import (
    Account,
    AccountType,
    BusinessCheckingAccount,
    MortgageAccount,
    RegularCheckingAccount,
    SavingsAccount,
)

BASE_TABLE = "accounts"
BASE_COLUMNS = ("account_number", "account_type", "date_opened", "bank_id",
                "balance", "manager_name")


@dataclass(frozen=True)
class SubtypeMapping:
    """How one account subtype is stored and read back."""

    table: str
    columns: Tuple[str, ...]
    view_columns: Tuple[str, ...]
    to_values: Callable[[Any], Tuple]
    from_values: Callable[[Dict[str, Any], Tuple], Account]

    @property
    def insert_sql(self) -> str:
        columns = ("account_id",) + self.columns
        placeholders = ", ".join("?" for _ in columns)
        return f"INSERT INTO {self.table} ({', '.join(columns)}) VALUES ({placeholders})"


def _money(value: Decimal) -> float:
    return float(value)


def _decimal(value) -> Decimal:
    return Decimal(str(value))


SUBTYPES: Dict[AccountType, SubtypeMapping] = {
    AccountType.REGULAR_CHECKING: SubtypeMapping(
        table="regular_checking_accounts",
        columns=("credit_limit", "profit"),
        view_columns=("rca_credit_limit",),
        to_values=lambda a: (_money(a.credit_limit), _money(a.profit())),
        from_values=lambda base, v: RegularCheckingAccount(
            credit_limit=_decimal(v[0]), **base),
    ),
    AccountType.BUSINESS_CHECKING: SubtypeMapping(
        table="business_checking_accounts",
        columns=("credit_limit", "business_revenue", "profit", "management_fee"),
        view_columns=("bca_credit_limit", "business_revenue"),
        to_values=lambda a: (_money(a.credit_limit), _money(a.business_revenue),
                             _money(a.profit()), _money(a.management_fee())),
        from_values=lambda base, v: BusinessCheckingAccount(
            credit_limit=_decimal(v[0]), business_revenue=_decimal(v[1]), **base),
    ),
    AccountType.MORTGAGE: SubtypeMapping(
        table="mortgage_accounts",
        columns=("original_mortgage_amount", "monthly_payment", "years",
                 "profit", "management_fee"),
        view_columns=("original_mortgage_amount", "monthly_payment", "ma_years"),
        to_values=lambda a: (_money(a.original_amount), _money(a.monthly_payment),
                             a.years, _money(a.profit()), _money(a.management_fee())),
        from_values=lambda base, v: MortgageAccount(
            original_amount=_decimal(v[0]), monthly_payment=_decimal(v[1]),
            years=int(v[2]), **base),
    ),
    AccountType.SAVINGS: SubtypeMapping(
        table="savings_accounts",
        columns=("deposit_amount", "years"),
        view_columns=("deposit_amount", "sa_years"),
        to_values=lambda a: (_money(a.deposit_amount), a.years),
        from_values=lambda base, v: SavingsAccount(
            deposit_amount=_decimal(v[0]), years=int(v[1]), **base),
    ),
}


def resolve_type(discriminator: Optional[str]) -> AccountType:
    """Turn a stored discriminator into an AccountType."""
    try:
        return AccountType(discriminator)
    except ValueError:
        raise MalformedRecordError(f"Unknown account type: {discriminator!r}") from None


def mapping_for(account_type: AccountType) -> SubtypeMapping:
    try:
        return SUBTYPES[account_type]
    except KeyError:
        raise MalformedRecordError(f"No table mapping for {account_type!r}") from None


def base_values(account: Account) -> Tuple:
    """Values for the base table, in BASE_COLUMNS order."""
    return (
        account.account_number,
        account.discriminator,
        account.date_opened.isoformat(),
        account.bank_number,
        _money(account.balance),
        account.manager_name,
    )


def base_insert_sql() -> str:
    placeholders = ", ".join("?" for _ in BASE_COLUMNS)
    return f"INSERT INTO {BASE_TABLE} ({', '.join(BASE_COLUMNS)}) VALUES ({placeholders})"


def subtype_insert(account: Account, account_id: int) -> Tuple[str, Tuple]:
    """SQL and parameters for the one subtype row that belongs to the account."""
    mapping = mapping_for(getattr(account, "account_type", None))
    return mapping.insert_sql, (account_id,) + mapping.to_values(account)


def from_row(row: Mapping[str, Any]) -> Account:
    """
    Build the right account subtype from one row of v_all_account_details.

    Only the column group of the row's own subtype is read; the other groups
    are NULL and ignored. A missing value in that group means the subtype row
    is absent, which is as malformed as an unknown discriminator.
    """
    account_type = resolve_type(row["account_type"])
    mapping = mapping_for(account_type)

    values = tuple(row[column] for column in mapping.view_columns)
    missing = [c for c, v in zip(mapping.view_columns, values) if v is None]
    if missing:
        raise MalformedRecordError(
            f"Account #{row['account_number']} ({account_type.value}) "
            f"has no value for {', '.join(missing)}"
        )

    base = {
        "account_id": row["account_id"],
        "account_number": row["account_number"],
        "bank_number": row["bank_id"],
        "manager_name": row["manager_name"],
        "balance": _decimal(row["balance"]),
        "date_opened": date.fromisoformat(row["date_opened"]),
    }
    return mapping.from_values(base, values)
