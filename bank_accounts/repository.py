"""
Repositories (DAOs) for accounts and clients.

Every method accepts an optional unit of work. Without one, the method opens
its own connection and, for multi-statement writes, its own transaction. With
one, it runs on the unit of work's connection and never commits or rolls back.
"""

import itertools
import logging
import sqlite3
from contextlib import contextmanager
from decimal import Decimal
from typing import TYPE_CHECKING, Iterable, Iterator, List, Optional

from . import mapper, rules
from .database import DatabaseManager
from .exceptions import (
    BankError,
    DuplicateAccountNumberError,
    DuplicateAssociationError,
    MalformedRecordError,
    StorageError,
)
from .models import Account, AccountType, Client, RankChange

if TYPE_CHECKING:
    from .unit_of_work import UnitOfWork

_savepoint_ids = itertools.count(1)


class Repository:
    """Connection handling shared by the repositories."""

    def __init__(self, db: DatabaseManager):
        self.db = db
        self.logger = logging.getLogger(__name__)

    @contextmanager
    def _connection(self, uow: Optional["UnitOfWork"], operation: str,
                    atomic: bool = False) -> Iterator[sqlite3.Connection]:
        """
        Yield the connection an operation should run on.

        With atomic=True the statements run all-or-nothing: in their own
        transaction, or under a savepoint when a unit of work is active.
        sqlite3 errors are logged and re-raised as StorageError.
        """
        try:
            if uow is not None:
                conn = uow.connection
                if atomic:
                    with _savepoint(conn):
                        yield conn
                else:
                    yield conn
            elif atomic:
                with self.db.transaction() as conn:
                    yield conn
            else:
                with self.db.connect() as conn:
                    yield conn
        except BankError:
            raise
        except sqlite3.Error as e:
            self.logger.error(f"Error during {operation}: {e}")
            raise StorageError(f"Database error during {operation}: {e}") from e


@contextmanager
def _savepoint(conn: sqlite3.Connection) -> Iterator[None]:
    name = f"sp_{next(_savepoint_ids)}"
    conn.execute(f"SAVEPOINT {name}")
    try:
        yield
    except BaseException:
        conn.execute(f"ROLLBACK TO SAVEPOINT {name}")
        conn.execute(f"RELEASE SAVEPOINT {name}")
        raise
    conn.execute(f"RELEASE SAVEPOINT {name}")


class AccountRepository(Repository):
    """Reads and writes accounts and account-client associations."""

    def exists(self, account_number: int, uow: Optional["UnitOfWork"] = None) -> bool:
        """Check whether an account number is taken."""
        with self._connection(uow, "account lookup") as conn:
            return self._exists(conn, account_number)

    @staticmethod
    def _exists(conn: sqlite3.Connection, account_number: int) -> bool:
        cursor = conn.execute(
            "SELECT 1 FROM accounts WHERE account_number = ?", (account_number,)
        )
        return cursor.fetchone() is not None

    def fetch_all(self, uow: Optional["UnitOfWork"] = None) -> List[Account]:
        """Get all accounts ordered by account number."""
        return self._fetch(
            "SELECT * FROM v_all_account_details ORDER BY account_number", (), uow
        )

    def fetch_by_type(self, account_type: AccountType,
                      uow: Optional["UnitOfWork"] = None) -> List[Account]:
        """Get all accounts of one subtype."""
        return self._fetch(
            "SELECT * FROM v_all_account_details WHERE account_type = ? "
            "ORDER BY account_number",
            (account_type.value,), uow,
        )

    def fetch_by_number(self, account_number: int,
                        uow: Optional["UnitOfWork"] = None) -> Optional[Account]:
        """Get an account by its number, or None when there is none."""
        accounts = self._fetch(
            "SELECT * FROM v_all_account_details WHERE account_number = ?",
            (account_number,), uow,
        )
        return accounts[0] if accounts else None

    def fetch_profit_accounts(self, uow: Optional["UnitOfWork"] = None) -> List[Account]:
        """Get accounts that produce profit, highest stored profit first."""
        return self._fetch(
            "SELECT * FROM v_all_account_details WHERE account_type != ? "
            "ORDER BY COALESCE(rca_profit, bca_profit, ma_profit) DESC, account_number",
            (AccountType.SAVINGS.value,), uow,
        )

    def fetch_fee_accounts(self, uow: Optional["UnitOfWork"] = None) -> List[Account]:
        """Get accounts that charge a management fee."""
        return self._fetch(
            "SELECT * FROM v_all_account_details WHERE account_type IN (?, ?) "
            "ORDER BY account_number",
            (AccountType.BUSINESS_CHECKING.value, AccountType.MORTGAGE.value), uow,
        )

    def fetch_top_checking_by_profit(self, uow: Optional["UnitOfWork"] = None
                                     ) -> Optional[Account]:
        """Get the checking account with the highest stored profit."""
        accounts = self._fetch(
            "SELECT * FROM v_all_account_details WHERE account_type IN (?, ?) "
            "ORDER BY COALESCE(rca_profit, bca_profit) DESC, account_number LIMIT 1",
            (AccountType.REGULAR_CHECKING.value, AccountType.BUSINESS_CHECKING.value),
            uow,
        )
        return accounts[0] if accounts else None

    def _fetch(self, sql: str, params: tuple,
               uow: Optional["UnitOfWork"]) -> List[Account]:
        with self._connection(uow, "account query") as conn:
            rows = conn.execute(sql, params).fetchall()
        return self._rows_to_accounts(rows)

    def _rows_to_accounts(self, rows: Iterable[sqlite3.Row]) -> List[Account]:
        accounts = []
        for row in rows:
            try:
                accounts.append(mapper.from_row(row))
            except MalformedRecordError as e:
                self.logger.warning(f"Skipping account row {row['account_id']}: {e}")
        return accounts

    def insert(self, account: Account, uow: Optional["UnitOfWork"] = None) -> Account:
        """
        Save a new account: base row and subtype row, both or neither.

        Raises DuplicateAccountNumberError if the number is taken. The account
        gets its account_id only once both rows are written.
        """
        if account.is_persisted:
            raise ValueError(f"Account #{account.account_number} is already saved")

        with self._connection(uow, "account insert", atomic=True) as conn:
            if self._exists(conn, account.account_number):
                raise DuplicateAccountNumberError(account.account_number)
            try:
                cursor = conn.execute(mapper.base_insert_sql(), mapper.base_values(account))
            except sqlite3.IntegrityError as e:
                if "UNIQUE" not in str(e):
                    raise
                raise DuplicateAccountNumberError(account.account_number) from e
            account_id = cursor.lastrowid

            sql, params = mapper.subtype_insert(account, account_id)
            conn.execute(sql, params)

        account.account_id = account_id
        if uow is not None:
            uow.register_new(account, "account_id")
        self.logger.info(
            f"Account #{account.account_number} ({account.discriminator}) saved with ID {account_id}"
        )
        return account

    def associate(self, account_id: int, client_id: int,
                  uow: Optional["UnitOfWork"] = None) -> None:
        """Link a client to an account; raises DuplicateAssociationError if already linked."""
        with self._connection(uow, "association insert", atomic=True) as conn:
            if self._is_associated(conn, account_id, client_id):
                raise DuplicateAssociationError(account_id, client_id)
            try:
                conn.execute(
                    "INSERT INTO account_clients (account_id, client_id) VALUES (?, ?)",
                    (account_id, client_id),
                )
            except sqlite3.IntegrityError as e:
                # unknown ids fail the foreign keys and stay storage errors
                if "UNIQUE" not in str(e):
                    raise
                raise DuplicateAssociationError(account_id, client_id) from e
        self.logger.info(f"Client {client_id} associated with account ID {account_id}")

    def is_associated(self, account_id: int, client_id: int,
                      uow: Optional["UnitOfWork"] = None) -> bool:
        with self._connection(uow, "association lookup") as conn:
            return self._is_associated(conn, account_id, client_id)

    @staticmethod
    def _is_associated(conn: sqlite3.Connection, account_id: int, client_id: int) -> bool:
        cursor = conn.execute(
            "SELECT 1 FROM account_clients WHERE account_id = ? AND client_id = ?",
            (account_id, client_id),
        )
        return cursor.fetchone() is not None

    def disassociate(self, account_id: int, client_id: int,
                     uow: Optional["UnitOfWork"] = None) -> bool:
        """Remove one account-client link; returns whether a row was removed."""
        with self._connection(uow, "association delete") as conn:
            cursor = conn.execute(
                "DELETE FROM account_clients WHERE account_id = ? AND client_id = ?",
                (account_id, client_id),
            )
            return cursor.rowcount == 1

    def update_balance(self, account_id: int, balance: Decimal,
                       uow: Optional["UnitOfWork"] = None) -> bool:
        """Update account balance."""
        with self._connection(uow, "balance update") as conn:
            cursor = conn.execute(
                "UPDATE accounts SET balance = ? WHERE account_id = ?",
                (float(balance), account_id),
            )
            return cursor.rowcount > 0


class ClientRepository(Repository):
    """Reads and writes clients."""

    COLUMNS = "c.client_id, c.name, c.rank_value"

    @staticmethod
    def _to_client(row: sqlite3.Row) -> Client:
        return Client(client_id=row["client_id"], name=row["name"], rank=row["rank_value"])

    def fetch(self, client_id: int, uow: Optional["UnitOfWork"] = None) -> Optional[Client]:
        """Get a client by ID, or None."""
        with self._connection(uow, "client query") as conn:
            row = conn.execute(
                f"SELECT {self.COLUMNS} FROM clients c WHERE c.client_id = ?", (client_id,)
            ).fetchone()
        return self._to_client(row) if row else None

    def exists(self, client_id: int, uow: Optional["UnitOfWork"] = None) -> bool:
        with self._connection(uow, "client lookup") as conn:
            cursor = conn.execute("SELECT 1 FROM clients WHERE client_id = ?", (client_id,))
            return cursor.fetchone() is not None

    def fetch_all(self, uow: Optional["UnitOfWork"] = None) -> List[Client]:
        """Get all clients ordered by ID."""
        with self._connection(uow, "client query") as conn:
            rows = conn.execute(
                f"SELECT {self.COLUMNS} FROM clients c ORDER BY c.client_id"
            ).fetchall()
        return [self._to_client(row) for row in rows]

    def fetch_for_account(self, account_id: int,
                          uow: Optional["UnitOfWork"] = None) -> List[Client]:
        """Get the clients of an account in the order they were associated."""
        with self._connection(uow, "client query") as conn:
            rows = conn.execute(
                f"SELECT {self.COLUMNS} FROM clients c "
                "JOIN account_clients ac ON c.client_id = ac.client_id "
                "WHERE ac.account_id = ? ORDER BY ac.rowid",
                (account_id,),
            ).fetchall()
        return [self._to_client(row) for row in rows]

    def insert(self, client: Client, uow: Optional["UnitOfWork"] = None) -> Client:
        """Save a new client and assign its ID."""
        if client.is_persisted:
            raise ValueError(f"Client {client.client_id} is already saved")

        with self._connection(uow, "client insert") as conn:
            cursor = conn.execute(
                "INSERT INTO clients (name, rank_value) VALUES (?, ?)",
                (client.name, client.rank),
            )
            client.client_id = cursor.lastrowid

        if uow is not None:
            uow.register_new(client, "client_id")
        self.logger.info(f"Client '{client.name}' saved with ID {client.client_id}")
        return client

    def update_rank(self, client_id: int, rank: int,
                    uow: Optional["UnitOfWork"] = None) -> bool:
        """
        Change a client's rank with a single UPDATE.

        The audit trigger fires once per statement row, so one logical change
        produces exactly one audit entry.
        """
        rules.validate_rank(rank)
        with self._connection(uow, "rank update") as conn:
            cursor = conn.execute(
                "UPDATE clients SET rank_value = ? WHERE client_id = ?", (rank, client_id)
            )
            return cursor.rowcount > 0

    def has_associations(self, client_id: int, uow: Optional["UnitOfWork"] = None) -> bool:
        """Check whether the client is linked to any account at all."""
        with self._connection(uow, "association lookup") as conn:
            cursor = conn.execute(
                "SELECT 1 FROM account_clients WHERE client_id = ? LIMIT 1", (client_id,)
            )
            return cursor.fetchone() is not None

    def delete(self, client_id: int, uow: Optional["UnitOfWork"] = None) -> bool:
        """Delete a client record; returns whether a row was removed."""
        with self._connection(uow, "client delete") as conn:
            cursor = conn.execute("DELETE FROM clients WHERE client_id = ?", (client_id,))
            return cursor.rowcount == 1

    def rank_history(self, client_id: int,
                     uow: Optional["UnitOfWork"] = None) -> List[RankChange]:
        """Get the audit log of a client's rank changes, oldest first."""
        with self._connection(uow, "rank history query") as conn:
            rows = conn.execute(
                "SELECT client_id, old_rank, new_rank, change_time "
                "FROM client_rank_audit_log WHERE client_id = ? ORDER BY log_id",
                (client_id,),
            ).fetchall()
        return [
            RankChange(
                client_id=row["client_id"],
                old_rank=row["old_rank"],
                new_rank=row["new_rank"],
                change_time=row["change_time"],
            )
            for row in rows
        ]
