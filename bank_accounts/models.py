"""
Data models for the bank accounts system.

This module contains the account hierarchy, the client entity and the
profit / management fee capabilities. Nothing here knows about the database.
"""

import copy
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import ClassVar, List, Optional

from . import rules

OPENING_BALANCE = Decimal('20.00')


class AccountType(Enum):
    """Account subtypes; the value is the discriminator stored in the database."""
    REGULAR_CHECKING = "Regular Checking Account"
    BUSINESS_CHECKING = "Business Checking Account"
    MORTGAGE = "Mortgage Account"
    SAVINGS = "Savings Account"


def _to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass
class Client:
    """Represents a bank client."""

    client_id: Optional[int] = None
    name: str = ""
    rank: int = 0

    def __post_init__(self):
        rules.validate_rank(self.rank)

    @property
    def is_persisted(self) -> bool:
        return self.client_id is not None


@dataclass
class RankChange:
    """One entry of the client rank audit log."""

    client_id: int
    old_rank: int
    new_rank: int
    change_time: Optional[str] = None


class ProfitAccount(ABC):
    """Accounts that produce an annual profit for the bank."""

    @abstractmethod
    def profit(self) -> Decimal:
        """Annual profit."""


class ManagementFeeAccount(ABC):
    """Accounts that charge a management fee."""

    @abstractmethod
    def management_fee(self) -> Decimal:
        """Annual management fee."""


@dataclass
class Account(ABC):
    """
    Base of the account hierarchy.

    Clients are kept in association order and are not part of equality,
    since they are stored apart from the account row.
    """

    account_type: ClassVar[AccountType]

    account_id: Optional[int] = None
    account_number: int = 0
    bank_number: int = 1
    manager_name: str = ""
    balance: Decimal = OPENING_BALANCE
    date_opened: Optional[date] = None
    clients: List[Client] = field(default_factory=list, compare=False, repr=False)

    def __post_init__(self):
        if not isinstance(getattr(type(self), "account_type", None), AccountType):
            raise TypeError(f"{type(self).__name__} is abstract; use a concrete account type")
        if self.date_opened is None:
            self.date_opened = date.today()
        self.balance = _to_decimal(self.balance)

    @property
    def is_persisted(self) -> bool:
        return self.account_id is not None

    @property
    def discriminator(self) -> str:
        return self.account_type.value

    def add_client(self, client: Client) -> None:
        """Append a client; duplicates are left to the database to reject."""
        self.clients.append(client)


@dataclass
class CheckingAccount(Account):
    """Shared base of the two checking variants."""

    credit_limit: Decimal = Decimal('0.00')

    def __post_init__(self):
        super().__post_init__()
        self.credit_limit = _to_decimal(self.credit_limit)


@dataclass
class RegularCheckingAccount(CheckingAccount, ProfitAccount):
    """Checking account whose profit is fixed when the object is built."""

    account_type: ClassVar[AccountType] = AccountType.REGULAR_CHECKING

    _profit: Decimal = field(default=Decimal('0'), init=False, repr=False, compare=False)

    def __post_init__(self):
        super().__post_init__()
        self._profit = rules.regular_checking_profit(self.credit_limit)

    def profit(self) -> Decimal:
        return self._profit


@dataclass
class BusinessCheckingAccount(CheckingAccount, ProfitAccount, ManagementFeeAccount):
    """
    Checking account for businesses.

    Profit depends on the ranks of the loaded clients, so it is computed on
    every call. Load the clients before asking for it.
    """

    account_type: ClassVar[AccountType] = AccountType.BUSINESS_CHECKING

    business_revenue: Decimal = Decimal('0.00')

    def __post_init__(self):
        super().__post_init__()
        self.business_revenue = _to_decimal(self.business_revenue)

    def client_ranks(self) -> List[int]:
        return [client.rank for client in self.clients]

    def is_vip(self) -> bool:
        return rules.is_vip(self.business_revenue, self.client_ranks())

    def profit(self) -> Decimal:
        return rules.business_checking_profit(
            self.credit_limit, self.business_revenue, self.client_ranks()
        )

    def management_fee(self) -> Decimal:
        return rules.BUSINESS_MANAGEMENT_FEE

    def snapshot(self) -> "BusinessCheckingAccount":
        """Independent deep copy, clients included."""
        return copy.deepcopy(self)

    def vip_hypothetical_profit(self) -> Decimal:
        """Profit this account would make if every client had rank 0."""
        hypothetical = self.snapshot()
        for client in hypothetical.clients:
            client.rank = rules.MIN_RANK
        return hypothetical.profit()


@dataclass
class MortgageAccount(Account, ProfitAccount, ManagementFeeAccount):
    """Mortgage account."""

    account_type: ClassVar[AccountType] = AccountType.MORTGAGE

    original_amount: Decimal = Decimal('0.00')
    monthly_payment: Decimal = Decimal('0.00')
    years: int = 1

    def __post_init__(self):
        super().__post_init__()
        self.original_amount = _to_decimal(self.original_amount)
        self.monthly_payment = _to_decimal(self.monthly_payment)
        rules.validate_years(self.years)

    def profit(self) -> Decimal:
        return rules.mortgage_profit(self.original_amount, self.years)

    def management_fee(self) -> Decimal:
        return rules.mortgage_management_fee(self.original_amount)


@dataclass
class SavingsAccount(Account):
    """Savings deposit; produces no profit and charges no fee."""

    account_type: ClassVar[AccountType] = AccountType.SAVINGS

    deposit_amount: Decimal = Decimal('0.00')
    years: int = 1

    def __post_init__(self):
        super().__post_init__()
        self.deposit_amount = _to_decimal(self.deposit_amount)
        rules.validate_years(self.years)


ACCOUNT_CLASSES = {
    AccountType.REGULAR_CHECKING: RegularCheckingAccount,
    AccountType.BUSINESS_CHECKING: BusinessCheckingAccount,
    AccountType.MORTGAGE: MortgageAccount,
    AccountType.SAVINGS: SavingsAccount,
}
