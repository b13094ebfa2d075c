"""
Unit of work for composite operations.

A UnitOfWork holds one connection and one transaction for its whole lifetime.
Repository calls made with it share that connection, so everything done inside
a ``with UnitOfWork(db) as uow:`` block commits together or not at all.
"""

import logging
import sqlite3
from contextlib import ExitStack
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .database import DatabaseManager
from .exceptions import (
    AccountNotFoundError,
    AssociationNotFoundError,
    ClientNotFoundError,
    StorageError,
)
from .models import Account, Client
from .repository import AccountRepository, ClientRepository

logger = logging.getLogger(__name__)


@dataclass
class RemovalOutcome:
    """Result of removing a client from an account."""

    account_number: int
    client_id: int
    client_deleted: bool


class UnitOfWork:
    """Transaction scope shared by cooperating repository calls."""

    def __init__(self, db: DatabaseManager):
        self.db = db
        self.accounts = AccountRepository(db)
        self.clients = ClientRepository(db)
        self.connection = None
        self._stack: Optional[ExitStack] = None
        self._new: List[Tuple[object, str]] = []

    def __enter__(self) -> "UnitOfWork":
        if self.connection is not None:
            raise RuntimeError("Unit of work is already active")
        with ExitStack() as stack:
            try:
                connection = stack.enter_context(self.db.connect())
                connection.execute("BEGIN")
            except sqlite3.Error as e:
                raise StorageError(f"Could not begin transaction: {e}") from e
            self._stack = stack.pop_all()
        self.connection = connection
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        try:
            if exc_type is None:
                self.commit()
            else:
                self.rollback()
                logger.info(f"Unit of work rolled back: {exc}")
        finally:
            self._stack.close()
            self._stack = None
            self.connection = None
        return False

    def commit(self) -> None:
        try:
            self.connection.commit()
        except sqlite3.Error as e:
            logger.error(f"Error committing unit of work: {e}")
            self.rollback()
            raise StorageError(f"Commit failed: {e}") from e
        self._new.clear()
        logger.debug("Unit of work committed")

    def rollback(self) -> None:
        """Undo everything since BEGIN; objects saved in this scope lose their IDs again."""
        try:
            self.connection.rollback()
        except sqlite3.Error as e:
            logger.error(f"Error rolling back unit of work: {e}")
        for entity, id_attr in self._new:
            setattr(entity, id_attr, None)
        self._new.clear()

    def register_new(self, entity: object, id_attr: str) -> None:
        """Remember an object that received an ID inside this transaction."""
        self._new.append((entity, id_attr))

    def require_account(self, account_number: int) -> Account:
        account = self.accounts.fetch_by_number(account_number, uow=self)
        if account is None:
            raise AccountNotFoundError(account_number)
        return account

    def load_clients(self, account: Account) -> Account:
        """Fill the account's client list from the database, in association order."""
        account.clients = self.clients.fetch_for_account(account.account_id, uow=self)
        return account


def open_account(db: DatabaseManager, account: Account, first_client: Client) -> Account:
    """Save a new account together with its first client and their association."""
    with UnitOfWork(db) as uow:
        uow.accounts.insert(account, uow=uow)
        uow.clients.insert(first_client, uow=uow)
        uow.accounts.associate(account.account_id, first_client.client_id, uow=uow)
    account.add_client(first_client)
    return account


def register_client(db: DatabaseManager, account_number: int, client: Client) -> Account:
    """Save a new client and link it to an existing account."""
    with UnitOfWork(db) as uow:
        account = uow.require_account(account_number)
        uow.clients.insert(client, uow=uow)
        uow.accounts.associate(account.account_id, client.client_id, uow=uow)
    return account


def link_client(db: DatabaseManager, account_number: int, client_id: int) -> Account:
    """Link an existing client to an existing account."""
    with UnitOfWork(db) as uow:
        account = uow.require_account(account_number)
        if not uow.clients.exists(client_id, uow=uow):
            raise ClientNotFoundError(client_id)
        uow.accounts.associate(account.account_id, client_id, uow=uow)
    return account


def remove_client_from_account(db: DatabaseManager, account_number: int,
                               client_id: int) -> RemovalOutcome:
    """
    Remove a client from an account, deleting the client if it is now orphaned.

    Steps, all in one transaction:
      1. resolve the account (AccountNotFoundError)
      2. confirm the client exists (ClientNotFoundError)
      3. delete the association (AssociationNotFoundError if there was none)
      4. check for associations the client still has anywhere
      5. if none remain, delete the client record
    Any error rolls back every step, the association delete included.
    """
    with UnitOfWork(db) as uow:
        account = uow.require_account(account_number)

        if not uow.clients.exists(client_id, uow=uow):
            raise ClientNotFoundError(client_id)

        if not uow.accounts.disassociate(account.account_id, client_id, uow=uow):
            raise AssociationNotFoundError(account_number, client_id)

        client_deleted = False
        if not uow.clients.has_associations(client_id, uow=uow):
            client_deleted = uow.clients.delete(client_id, uow=uow)

    if client_deleted:
        logger.info(f"Client {client_id} had no other accounts and was deleted")
    return RemovalOutcome(account_number, client_id, client_deleted)
