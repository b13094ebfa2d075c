"""
Database manager for the bank accounts system.

This module owns the SQLite schema and hands out connections. Accounts are
stored with class-table inheritance: one base table, one table per subtype,
and a view that left-joins them into a single wide row.
"""

import logging
import sqlite3
from contextlib import contextmanager
from typing import Iterator

SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS accounts (
        account_id INTEGER PRIMARY KEY AUTOINCREMENT,
        account_number INTEGER UNIQUE NOT NULL,
        account_type TEXT NOT NULL,
        date_opened DATE NOT NULL,
        bank_id INTEGER NOT NULL,
        balance DECIMAL(15,2) NOT NULL DEFAULT 20.00,
        manager_name TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS regular_checking_accounts (
        account_id INTEGER PRIMARY KEY
            REFERENCES accounts (account_id) ON DELETE CASCADE,
        credit_limit DECIMAL(15,2) NOT NULL,
        profit DECIMAL(15,2) NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS business_checking_accounts (
        account_id INTEGER PRIMARY KEY
            REFERENCES accounts (account_id) ON DELETE CASCADE,
        credit_limit DECIMAL(15,2) NOT NULL,
        business_revenue DECIMAL(15,2) NOT NULL,
        profit DECIMAL(15,2) NOT NULL,
        management_fee DECIMAL(15,2) NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS mortgage_accounts (
        account_id INTEGER PRIMARY KEY
            REFERENCES accounts (account_id) ON DELETE CASCADE,
        original_mortgage_amount DECIMAL(15,2) NOT NULL,
        monthly_payment DECIMAL(15,2) NOT NULL,
        years INTEGER NOT NULL CHECK (years >= 1),
        profit DECIMAL(15,2) NOT NULL,
        management_fee DECIMAL(15,2) NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS savings_accounts (
        account_id INTEGER PRIMARY KEY
            REFERENCES accounts (account_id) ON DELETE CASCADE,
        deposit_amount DECIMAL(15,2) NOT NULL,
        years INTEGER NOT NULL CHECK (years >= 1)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS clients (
        client_id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        rank_value INTEGER NOT NULL CHECK (rank_value >= 0 AND rank_value <= 10)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS account_clients (
        account_id INTEGER NOT NULL REFERENCES accounts (account_id),
        client_id INTEGER NOT NULL REFERENCES clients (client_id),
        PRIMARY KEY (account_id, client_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS client_rank_audit_log (
        log_id INTEGER PRIMARY KEY AUTOINCREMENT,
        client_id INTEGER NOT NULL
            REFERENCES clients (client_id) ON DELETE CASCADE,
        old_rank INTEGER NOT NULL CHECK (old_rank >= 0 AND old_rank <= 10),
        new_rank INTEGER NOT NULL CHECK (new_rank >= 0 AND new_rank <= 10),
        change_time TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TRIGGER IF NOT EXISTS trigger_client_rank_audit
    AFTER UPDATE OF rank_value ON clients
    FOR EACH ROW WHEN OLD.rank_value IS NOT NEW.rank_value
    BEGIN
        INSERT INTO client_rank_audit_log (client_id, old_rank, new_rank)
        VALUES (NEW.client_id, OLD.rank_value, NEW.rank_value);
    END
    """,
    """
    CREATE VIEW IF NOT EXISTS v_all_account_details AS
    SELECT
        a.account_id,
        a.account_number,
        a.account_type,
        a.date_opened,
        a.bank_id,
        a.balance,
        a.manager_name,
        rca.credit_limit AS rca_credit_limit,
        rca.profit AS rca_profit,
        bca.credit_limit AS bca_credit_limit,
        bca.business_revenue,
        bca.profit AS bca_profit,
        bca.management_fee AS bca_management_fee,
        ma.original_mortgage_amount,
        ma.monthly_payment,
        ma.years AS ma_years,
        ma.profit AS ma_profit,
        ma.management_fee AS ma_management_fee,
        sa.deposit_amount,
        sa.years AS sa_years
    FROM accounts a
    LEFT JOIN regular_checking_accounts rca ON a.account_id = rca.account_id
    LEFT JOIN business_checking_accounts bca ON a.account_id = bca.account_id
    LEFT JOIN mortgage_accounts ma ON a.account_id = ma.account_id
    LEFT JOIN savings_accounts sa ON a.account_id = sa.account_id
    """,
    "CREATE INDEX IF NOT EXISTS idx_accounts_account_type ON accounts (account_type)",
    "CREATE INDEX IF NOT EXISTS idx_account_clients_client_id ON account_clients (client_id)",
    "CREATE INDEX IF NOT EXISTS idx_audit_client_id ON client_rank_audit_log (client_id)",
)


class DatabaseManager:
    """Manages the SQLite database for the bank accounts system."""

    def __init__(self, db_path: str = "bank.db"):
        """Initialize database manager and create the schema if needed."""
        self.db_path = db_path
        self.logger = logging.getLogger(__name__)
        self._init_database()

    def _init_database(self):
        """Create tables, view, trigger and indexes."""
        with self.connect() as conn:
            for statement in SCHEMA:
                conn.execute(statement)

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        """
        Open a connection for the duration of a with block.

        The connection runs in autocommit mode, so a single statement needs no
        explicit transaction. Multi-statement work goes through transaction().
        """
        conn = sqlite3.connect(self.db_path, isolation_level=None)
        try:
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON")
            yield conn
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Open a connection inside one transaction: commit on success, roll back on error."""
        with self.connect() as conn:
            conn.execute("BEGIN")
            try:
                yield conn
            except BaseException:
                conn.rollback()
                self.logger.debug("Transaction rolled back")
                raise
            conn.commit()
            self.logger.debug("Transaction committed")
