"""
Bank facade for the bank accounts system.

This module turns repository and unit-of-work calls into the use cases the
console needs. Expected problems (missing records, conflicts, bad input) come
back as failed BankResults with a readable message; nothing here is fatal.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional

from . import unit_of_work
from .database import DatabaseManager
from .exceptions import BankError, StorageError
from .models import (
    ACCOUNT_CLASSES,
    Account,
    AccountType,
    BusinessCheckingAccount,
    Client,
    ManagementFeeAccount,
    ProfitAccount,
    RankChange,
)
from .repository import AccountRepository, ClientRepository
from .unit_of_work import UnitOfWork


def format_currency(amount: Decimal) -> str:
    """Format an amount for display."""
    return f"{amount:,.2f} ILS"


@dataclass
class BankResult:
    """Outcome of a bank operation."""

    success: bool
    message: str
    data: Any = None


class Bank:
    """Use cases over accounts, clients and their associations."""

    def __init__(self, db_manager: DatabaseManager, bank_number: int = 1):
        """Initialize the bank with a database."""
        self.db = db_manager
        self.bank_number = bank_number
        self.accounts = AccountRepository(db_manager)
        self.clients = ClientRepository(db_manager)
        self.logger = logging.getLogger(__name__)

    def _failure(self, operation: str, error: BankError) -> BankResult:
        if isinstance(error, StorageError):
            self.logger.error(f"{operation} failed: {error}")
            return BankResult(False, f"Operation failed: {error}")
        return BankResult(False, f"Error: {error}")

    # Listings

    def list_all(self) -> List[Account]:
        """Get all accounts."""
        return self.accounts.fetch_all()

    def list_by_type(self, account_type: AccountType) -> List[Account]:
        """Get accounts of one type."""
        return self.accounts.fetch_by_type(account_type)

    def list_profit_accounts(self) -> List[Account]:
        """Get profit-producing accounts, highest current profit first.

        Business accounts get their clients loaded first, since their profit
        depends on client ranks.
        """
        with UnitOfWork(self.db) as uow:
            accounts = uow.accounts.fetch_profit_accounts(uow=uow)
            for account in accounts:
                if isinstance(account, BusinessCheckingAccount):
                    uow.load_clients(account)
        return sorted(accounts, key=lambda a: a.profit(), reverse=True)

    def list_fee_accounts(self) -> List[Account]:
        """Get accounts that charge a management fee."""
        return self.accounts.fetch_fee_accounts()

    def list_clients(self) -> List[Client]:
        """Get all clients."""
        return self.clients.fetch_all()

    def list_associations(self) -> List[Account]:
        """Get all accounts with their clients loaded."""
        with UnitOfWork(self.db) as uow:
            accounts = uow.accounts.fetch_all(uow=uow)
            for account in accounts:
                uow.load_clients(account)
        return accounts

    def client_rank_history(self, client_id: int) -> List[RankChange]:
        """Get the audit trail of a client's rank changes."""
        return self.clients.rank_history(client_id)

    # Profit reports

    def account_profit(self, account_number: int) -> BankResult:
        """Get the annual profit of one account."""
        try:
            with UnitOfWork(self.db) as uow:
                account = uow.require_account(account_number)
                if isinstance(account, BusinessCheckingAccount):
                    uow.load_clients(account)
        except BankError as e:
            return self._failure("account_profit", e)

        if not isinstance(account, ProfitAccount):
            return BankResult(False, f"Account #{account_number} does not generate profit.")

        profit = account.profit()
        return BankResult(
            True,
            f"Annual profit for account #{account_number} is: {format_currency(profit)}",
            profit,
        )

    def total_annual_profit(self) -> Decimal:
        """Sum of the current profit of every profit account."""
        return sum((account.profit() for account in self.list_profit_accounts()), Decimal('0'))

    def top_checking_account(self) -> Optional[Account]:
        """Get the checking account with the highest stored profit."""
        return self.accounts.fetch_top_checking_by_profit()

    def check_vip_profit(self, account_number: int) -> BankResult:
        """
        Check a business account's VIP status and its hypothetical profit.

        For a VIP account the result carries the profit it would make if every
        client had rank 0. The live account and its clients are left untouched.
        """
        try:
            with UnitOfWork(self.db) as uow:
                account = uow.require_account(account_number)
                if not isinstance(account, BusinessCheckingAccount):
                    return BankResult(
                        False,
                        f"Error: Account #{account_number} is not a Business Checking Account.",
                    )
                uow.load_clients(account)
        except BankError as e:
            return self._failure("check_vip_profit", e)

        if not account.is_vip():
            return BankResult(
                False,
                f"Account #{account_number} does not qualify as a VIP Business Account.",
            )

        profit = account.vip_hypothetical_profit()
        return BankResult(
            True,
            f"VIP Profit for Business Account #{account_number}: {format_currency(profit)}",
            profit,
        )

    # Changes

    def create_new_account(self, account_type: AccountType, fields: Dict[str, Any],
                           client_name: str, client_rank: int) -> BankResult:
        """
        Create an account of the given type together with its first client.

        fields holds account_number, manager_name and the subtype's own fields.
        """
        try:
            account = ACCOUNT_CLASSES[account_type](bank_number=self.bank_number, **fields)
            client = Client(name=client_name.strip(), rank=client_rank)
        except (TypeError, ValueError) as e:
            return BankResult(False, f"Error: Invalid account details: {e}")

        try:
            unit_of_work.open_account(self.db, account, client)
        except BankError as e:
            return self._failure("create_new_account", e)

        return BankResult(
            True,
            f"{account_type.value} #{account.account_number} created with ID "
            f"{account.account_id}; client '{client.name}' added with ID {client.client_id}.",
            account,
        )

    def register_client_to_account(self, account_number: int, client_name: str,
                                   client_rank: int) -> BankResult:
        """Create a new client and add it to an existing account."""
        try:
            client = Client(name=client_name.strip(), rank=client_rank)
        except ValueError as e:
            return BankResult(False, f"Error: {e}")

        try:
            unit_of_work.register_client(self.db, account_number, client)
        except BankError as e:
            return self._failure("register_client_to_account", e)

        return BankResult(
            True,
            f"Client '{client.name}' (ID {client.client_id}) added to account #{account_number}",
            client,
        )

    def link_client_to_account(self, account_number: int, client_id: int) -> BankResult:
        """Add an existing client to another account."""
        try:
            unit_of_work.link_client(self.db, account_number, client_id)
        except BankError as e:
            return self._failure("link_client_to_account", e)
        return BankResult(True, f"Client {client_id} linked to account #{account_number}")

    def update_client_rank(self, client_id: int, new_rank: int) -> BankResult:
        """Change a client's rank; the database logs the change to the audit table."""
        try:
            if not self.clients.exists(client_id):
                return BankResult(False, f"Error: Client with ID {client_id} not found.")
            updated = self.clients.update_rank(client_id, new_rank)
        except ValueError as e:
            return BankResult(False, f"Error: {e}")
        except BankError as e:
            return self._failure("update_client_rank", e)

        if not updated:
            return BankResult(False, "Failed to update rank.")
        return BankResult(
            True,
            f"Successfully updated rank for client ID {client_id}. "
            "Change has been logged to audit table.",
        )

    def remove_client_from_account(self, account_number: int, client_id: int) -> BankResult:
        """Remove a client from an account, deleting the client if no account is left."""
        try:
            outcome = unit_of_work.remove_client_from_account(self.db, account_number, client_id)
        except BankError as e:
            return self._failure("remove_client_from_account", e)

        message = f"Successfully removed client {client_id} from account #{account_number}."
        if outcome.client_deleted:
            message += (f" Client {client_id} was not associated with any other accounts "
                        "and has been completely deleted from the system.")
        else:
            message += (f" Client {client_id} remains in the system as they are "
                        "associated with other accounts.")
        return BankResult(True, message, outcome)

    @staticmethod
    def has_management_fee(account: Account) -> bool:
        return isinstance(account, ManagementFeeAccount)
