"""
Bank Accounts

Bank accounts and clients stored with class-table inheritance in SQLite.
Supports four account types, many-to-many account-client associations,
profit and management fee rules, and transactional multi-table writes.
"""

__version__ = "0.1.0"

from .models import (
    Account,
    AccountType,
    BusinessCheckingAccount,
    Client,
    MortgageAccount,
    RegularCheckingAccount,
    SavingsAccount,
)
from .database import DatabaseManager
from .repository import AccountRepository, ClientRepository
from .unit_of_work import UnitOfWork
from .bank import Bank, BankResult
from .cli import main


def create_bank(db_path: str = "bank.db", bank_number: int = 1) -> Bank:
    """
    Create a Bank instance with database.

    Args:
        db_path: Path to the database file
        bank_number: Bank number given to new accounts

    Returns:
        Bank instance
    """
    db_manager = DatabaseManager(db_path)
    return Bank(db_manager, bank_number)


__all__ = [
    "Account",
    "AccountType",
    "BusinessCheckingAccount",
    "Client",
    "MortgageAccount",
    "RegularCheckingAccount",
    "SavingsAccount",
    "DatabaseManager",
    "AccountRepository",
    "ClientRepository",
    "UnitOfWork",
    "Bank",
    "BankResult",
    "create_bank",
    "main",
]
