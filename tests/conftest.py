"""Pytest configuration and fixtures."""

import os
import sqlite3
import tempfile
from decimal import Decimal

import pytest

from bank_accounts.database import DatabaseManager
from bank_accounts.models import (
    BusinessCheckingAccount,
    MortgageAccount,
    RegularCheckingAccount,
    SavingsAccount,
)


@pytest.fixture
def temp_db_path():
    """Create a temporary database file."""
    fd, path = tempfile.mkstemp(suffix='.db')
    os.close(fd)
    yield path
    if os.path.exists(path):
        os.unlink(path)


@pytest.fixture
def db_manager(temp_db_path):
    """Create a DatabaseManager instance for testing."""
    return DatabaseManager(temp_db_path)


@pytest.fixture
def raw_query(temp_db_path):
    """Run a query on a separate connection and return all rows."""
    def query(sql, params=()):
        conn = sqlite3.connect(temp_db_path)
        try:
            return conn.execute(sql, params).fetchall()
        finally:
            conn.close()
    return query


@pytest.fixture
def make_account():
    """Build a transient account of any type with sensible field values."""
    def make(kind: str, account_number: int, **overrides):
        common = {'account_number': account_number, 'manager_name': 'Dana Levi'}
        if kind == 'regular':
            fields = {'credit_limit': Decimal('5000.00')}
            cls = RegularCheckingAccount
        elif kind == 'business':
            fields = {'credit_limit': Decimal('50000.00'),
                      'business_revenue': Decimal('12000000.00')}
            cls = BusinessCheckingAccount
        elif kind == 'mortgage':
            fields = {'original_amount': Decimal('1000000.00'),
                      'monthly_payment': Decimal('4500.00'), 'years': 20}
            cls = MortgageAccount
        elif kind == 'savings':
            fields = {'deposit_amount': Decimal('25000.00'), 'years': 3}
            cls = SavingsAccount
        else:
            raise ValueError(kind)
        common.update(fields)
        common.update(overrides)
        return cls(**common)
    return make
