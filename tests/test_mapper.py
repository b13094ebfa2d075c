"""Tests for mapping accounts to and from their stored rows."""

from datetime import date
from decimal import Decimal

import pytest

from bank_accounts import mapper
from bank_accounts.exceptions import MalformedRecordError
from bank_accounts.models import (
    AccountType,
    BusinessCheckingAccount,
    MortgageAccount,
    RegularCheckingAccount,
    SavingsAccount,
)

VIEW_GROUP_COLUMNS = (
    'rca_credit_limit', 'rca_profit',
    'bca_credit_limit', 'business_revenue', 'bca_profit', 'bca_management_fee',
    'original_mortgage_amount', 'monthly_payment', 'ma_years', 'ma_profit',
    'ma_management_fee',
    'deposit_amount', 'sa_years',
)


def view_row(account_type, **values):
    """A row shaped like v_all_account_details, every subtype group NULL."""
    row = {
        'account_id': 3,
        'account_number': 1003,
        'account_type': account_type,
        'date_opened': '2024-03-01',
        'bank_id': 12,
        'balance': 20.0,
        'manager_name': 'Avi Mizrahi',
    }
    row.update({column: None for column in VIEW_GROUP_COLUMNS})
    row.update(values)
    return row


class TestWriting:
    """Test base and subtype row values."""

    def test_base_values(self):
        account = SavingsAccount(account_number=1001, bank_number=12, manager_name='Dana',
                                 deposit_amount=500, years=2, date_opened=date(2024, 5, 6))

        assert mapper.base_values(account) == (
            1001, 'Savings Account', '2024-05-06', 12, 20.0, 'Dana'
        )

    def test_base_insert_sql(self):
        sql = mapper.base_insert_sql()

        assert sql.startswith("INSERT INTO accounts (account_number, account_type")
        assert sql.count("?") == len(mapper.BASE_COLUMNS)

    @pytest.mark.parametrize("account, table", [
        (RegularCheckingAccount(account_number=1, credit_limit=100),
         'regular_checking_accounts'),
        (BusinessCheckingAccount(account_number=1, credit_limit=100),
         'business_checking_accounts'),
        (MortgageAccount(account_number=1, original_amount=100, years=2), 'mortgage_accounts'),
        (SavingsAccount(account_number=1, deposit_amount=100), 'savings_accounts'),
    ])
    def test_subtype_insert_targets_one_table(self, account, table):
        sql, params = mapper.subtype_insert(account, 42)

        assert sql.startswith(f"INSERT INTO {table} (account_id")
        assert params[0] == 42
        assert sql.count("?") == len(params)

    def test_mortgage_values_include_computed_amounts(self):
        account = MortgageAccount(account_number=1, original_amount=Decimal('1000000'),
                                  monthly_payment=Decimal('4500'), years=20)

        _, params = mapper.subtype_insert(account, 9)

        assert params == (9, 1000000.0, 4500.0, 20, 4000.0, 100000.0)

    def test_unmapped_account_rejected(self):
        with pytest.raises(MalformedRecordError):
            mapper.subtype_insert(object(), 1)


class TestReading:
    """Test building accounts from view rows."""

    def test_regular_row(self):
        account = mapper.from_row(view_row('Regular Checking Account',
                                           rca_credit_limit=5000.0, rca_profit=500.0))

        assert isinstance(account, RegularCheckingAccount)
        assert account.account_id == 3
        assert account.account_number == 1003
        assert account.bank_number == 12
        assert account.date_opened == date(2024, 3, 1)
        assert account.credit_limit == Decimal('5000')
        assert account.profit() == Decimal('500')

    def test_business_row(self):
        account = mapper.from_row(view_row('Business Checking Account',
                                           bca_credit_limit=50000.0,
                                           business_revenue=12000000.0))

        assert isinstance(account, BusinessCheckingAccount)
        assert account.business_revenue == Decimal('12000000')
        assert account.clients == []

    def test_mortgage_row(self):
        account = mapper.from_row(view_row('Mortgage Account',
                                           original_mortgage_amount=300000.0,
                                           monthly_payment=2500.0, ma_years=15))

        assert isinstance(account, MortgageAccount)
        assert account.years == 15
        assert account.monthly_payment == Decimal('2500')

    def test_savings_row(self):
        account = mapper.from_row(view_row('Savings Account',
                                           deposit_amount=1000.0, sa_years=4))

        assert isinstance(account, SavingsAccount)
        assert account.years == 4

    def test_other_groups_ignored(self):
        row = view_row('Savings Account', deposit_amount=1000.0, sa_years=4,
                       rca_credit_limit=123.0, bca_credit_limit=456.0)

        assert isinstance(mapper.from_row(row), SavingsAccount)

    def test_unknown_discriminator(self):
        with pytest.raises(MalformedRecordError, match="Unknown account type"):
            mapper.from_row(view_row('Crypto Account'))

    def test_missing_subtype_values(self):
        with pytest.raises(MalformedRecordError, match="sa_years"):
            mapper.from_row(view_row('Savings Account', deposit_amount=1000.0))

    def test_resolve_type(self):
        assert mapper.resolve_type('Mortgage Account') is AccountType.MORTGAGE
        with pytest.raises(MalformedRecordError):
            mapper.resolve_type(None)
