"""
Tests for the Bank facade.

This module checks the use cases end to end against a temporary database,
including the messages the console shows for each outcome.
"""

from decimal import Decimal

import pytest

from bank_accounts import create_bank, unit_of_work
from bank_accounts.bank import Bank, BankResult, format_currency
from bank_accounts.exceptions import StorageError
from bank_accounts.models import (
    AccountType,
    BusinessCheckingAccount,
    MortgageAccount,
    RegularCheckingAccount,
    SavingsAccount,
)


@pytest.fixture
def bank(temp_db_path):
    return create_bank(temp_db_path, bank_number=12)


def regular_fields(number, credit_limit='5000'):
    return {'account_number': number, 'manager_name': 'Dana Levi',
            'credit_limit': Decimal(credit_limit)}


def business_fields(number, revenue='12000000'):
    return {'account_number': number, 'manager_name': 'Dana Levi',
            'credit_limit': Decimal('50000'), 'business_revenue': Decimal(revenue)}


@pytest.fixture
def vip_business(bank):
    """Business account #2001 whose two clients hold rank 10."""
    result = bank.create_new_account(AccountType.BUSINESS_CHECKING, business_fields(2001),
                                     "Top One", 10)
    bank.register_client_to_account(2001, "Top Two", 10)
    return result.data


class TestFormatting:
    """Test display helpers."""

    def test_format_currency(self):
        assert format_currency(Decimal('1234567.5')) == "1,234,567.50 ILS"

    def test_has_management_fee(self):
        assert Bank.has_management_fee(MortgageAccount(account_number=1)) is True
        assert Bank.has_management_fee(SavingsAccount(account_number=1)) is False


class TestCreateAccount:
    """Test account creation."""

    def test_create_regular(self, bank):
        result = bank.create_new_account(AccountType.REGULAR_CHECKING, regular_fields(1001),
                                         "  Noa Cohen ", 4)

        assert isinstance(result, BankResult)
        assert result.success is True
        assert f"ID {result.data.account_id}" in result.message
        assert result.data.bank_number == 12
        assert result.data.clients[0].name == "Noa Cohen"

    @pytest.mark.parametrize("account_type, fields", [
        (AccountType.MORTGAGE, {'original_amount': Decimal('400000'),
                                'monthly_payment': Decimal('3000'), 'years': 15}),
        (AccountType.SAVINGS, {'deposit_amount': Decimal('10000'), 'years': 2}),
    ])
    def test_create_other_types(self, bank, account_type, fields):
        fields.update({'account_number': 3001, 'manager_name': 'Avi'})

        result = bank.create_new_account(account_type, fields, "Client", 1)

        assert result.success is True
        assert bank.list_by_type(account_type)[0].account_number == 3001

    def test_duplicate_number(self, bank):
        bank.create_new_account(AccountType.REGULAR_CHECKING, regular_fields(1001), "A", 1)

        result = bank.create_new_account(AccountType.REGULAR_CHECKING, regular_fields(1001),
                                         "B", 1)

        assert result.success is False
        assert "already exists" in result.message
        assert len(bank.list_clients()) == 1

    def test_invalid_years(self, bank):
        result = bank.create_new_account(
            AccountType.SAVINGS,
            {'account_number': 1, 'deposit_amount': Decimal('100'), 'years': 0},
            "A", 1,
        )

        assert result.success is False
        assert "Invalid account details" in result.message
        assert bank.list_all() == []

    def test_unknown_field(self, bank):
        result = bank.create_new_account(
            AccountType.SAVINGS, {'account_number': 1, 'credit_limit': Decimal('1')}, "A", 1
        )

        assert result.success is False
        assert "Invalid account details" in result.message

    def test_invalid_client_rank(self, bank):
        result = bank.create_new_account(AccountType.REGULAR_CHECKING, regular_fields(1),
                                         "A", 11)

        assert result.success is False
        assert bank.list_all() == []

    def test_storage_failure_reported(self, bank, monkeypatch):
        def failing_open_account(db, account, client):
            raise StorageError("disk I/O error")

        monkeypatch.setattr(unit_of_work, "open_account", failing_open_account)

        result = bank.create_new_account(AccountType.REGULAR_CHECKING, regular_fields(1),
                                         "A", 1)

        assert result.success is False
        assert result.message.startswith("Operation failed")


class TestClients:
    """Test client use cases."""

    def test_register_client(self, bank):
        bank.create_new_account(AccountType.REGULAR_CHECKING, regular_fields(1001), "A", 1)

        result = bank.register_client_to_account(1001, "B", 5)

        assert result.success is True
        accounts = bank.list_associations()
        assert [c.name for c in accounts[0].clients] == ["A", "B"]

    def test_register_client_missing_account(self, bank):
        result = bank.register_client_to_account(404, "B", 5)

        assert result.success is False
        assert "Account #404 not found." in result.message

    def test_register_client_bad_rank(self, bank):
        result = bank.register_client_to_account(1001, "B", 12)

        assert result.success is False
        assert "between 0 and 10" in result.message

    def test_link_client(self, bank):
        created = bank.create_new_account(AccountType.REGULAR_CHECKING, regular_fields(1001),
                                          "A", 1)
        bank.create_new_account(AccountType.SAVINGS,
                                {'account_number': 1002, 'deposit_amount': Decimal('1')},
                                "B", 1)
        client_id = created.data.clients[0].client_id

        assert bank.link_client_to_account(1002, client_id).success is True
        again = bank.link_client_to_account(1002, client_id)
        assert again.success is False
        assert "already associated" in again.message

    def test_update_client_rank(self, bank):
        created = bank.create_new_account(AccountType.REGULAR_CHECKING, regular_fields(1001),
                                          "A", 1)
        client_id = created.data.clients[0].client_id

        result = bank.update_client_rank(client_id, 8)

        assert result.success is True
        assert "logged to audit table" in result.message
        history = bank.client_rank_history(client_id)
        assert [(h.old_rank, h.new_rank) for h in history] == [(1, 8)]

    def test_update_rank_missing_client(self, bank):
        result = bank.update_client_rank(999, 5)

        assert result.success is False
        assert result.message == "Error: Client with ID 999 not found."

    def test_update_rank_out_of_range(self, bank):
        created = bank.create_new_account(AccountType.REGULAR_CHECKING, regular_fields(1001),
                                          "A", 1)

        result = bank.update_client_rank(created.data.clients[0].client_id, -1)

        assert result.success is False
        assert bank.client_rank_history(created.data.clients[0].client_id) == []

    def test_remove_last_account_deletes_client(self, bank):
        created = bank.create_new_account(AccountType.REGULAR_CHECKING, regular_fields(1001),
                                          "A", 1)
        client_id = created.data.clients[0].client_id

        result = bank.remove_client_from_account(1001, client_id)

        assert result.success is True
        assert "completely deleted from the system" in result.message
        assert bank.list_clients() == []

    def test_remove_keeps_shared_client(self, bank):
        created = bank.create_new_account(AccountType.REGULAR_CHECKING, regular_fields(1001),
                                          "A", 1)
        bank.create_new_account(AccountType.SAVINGS,
                                {'account_number': 1002, 'deposit_amount': Decimal('1')},
                                "B", 1)
        client_id = created.data.clients[0].client_id
        bank.link_client_to_account(1002, client_id)

        result = bank.remove_client_from_account(1001, client_id)

        assert result.success is True
        assert "remains in the system" in result.message
        assert len(bank.list_clients()) == 2

    def test_remove_not_associated(self, bank):
        bank.create_new_account(AccountType.REGULAR_CHECKING, regular_fields(1001), "A", 1)
        other = bank.create_new_account(AccountType.SAVINGS,
                                        {'account_number': 1002,
                                         'deposit_amount': Decimal('1')},
                                        "B", 1)

        result = bank.remove_client_from_account(1001, other.data.clients[0].client_id)

        assert result.success is False
        assert "not associated" in result.message


class TestProfitReports:
    """Test profit calculations through the facade."""

    def test_business_profit_follows_client_ranks(self, bank, vip_business):
        assert bank.account_profit(2001).data == Decimal('0')

        first_client = bank.list_associations()[0].clients[0]
        bank.update_client_rank(first_client.client_id, 9)

        result = bank.account_profit(2001)
        assert result.success is True
        assert result.data == Decimal('8000')
        assert "8,000.00 ILS" in result.message

    def test_savings_has_no_profit(self, bank):
        bank.create_new_account(AccountType.SAVINGS,
                                {'account_number': 5, 'deposit_amount': Decimal('1')}, "A", 1)

        result = bank.account_profit(5)

        assert result.success is False
        assert "does not generate profit" in result.message

    def test_account_profit_missing(self, bank):
        result = bank.account_profit(404)

        assert result.success is False
        assert result.message == "Error: Account #404 not found."

    def test_check_vip_profit(self, bank, vip_business):
        result = bank.check_vip_profit(2001)

        assert result.success is True
        assert result.data == Decimal('50000') * Decimal('0.10') + Decimal('3000')
        assert [c.rank for c in bank.list_clients()] == [10, 10]
        assert bank.account_profit(2001).data == Decimal('0')

    def test_check_vip_profit_not_vip(self, bank):
        bank.create_new_account(AccountType.BUSINESS_CHECKING,
                                business_fields(2002, revenue='500000'), "A", 10)

        result = bank.check_vip_profit(2002)

        assert result.success is False
        assert "does not qualify" in result.message

    def test_check_vip_profit_wrong_type(self, bank):
        bank.create_new_account(AccountType.REGULAR_CHECKING, regular_fields(1001), "A", 10)

        result = bank.check_vip_profit(1001)

        assert result.success is False
        assert "not a Business Checking Account" in result.message

    def test_check_vip_profit_missing(self, bank):
        result = bank.check_vip_profit(404)

        assert result.success is False
        assert "not found" in result.message

    def test_profit_listing_uses_current_profit(self, bank, vip_business):
        bank.create_new_account(AccountType.REGULAR_CHECKING,
                                regular_fields(1001, credit_limit='1000'), "A", 1)
        bank.create_new_account(AccountType.SAVINGS,
                                {'account_number': 3001, 'deposit_amount': Decimal('1')},
                                "B", 1)

        listed = bank.list_profit_accounts()

        assert [a.account_number for a in listed] == [1001, 2001]
        assert bank.total_annual_profit() == Decimal('100')

    def test_fee_accounts(self, bank, vip_business):
        bank.create_new_account(AccountType.REGULAR_CHECKING, regular_fields(1001), "A", 1)

        fee_accounts = bank.list_fee_accounts()

        assert [type(a) for a in fee_accounts] == [BusinessCheckingAccount]

    def test_top_checking_account(self, bank):
        bank.create_new_account(AccountType.REGULAR_CHECKING,
                                regular_fields(1001, credit_limit='1000'), "A", 1)
        bank.create_new_account(AccountType.REGULAR_CHECKING,
                                regular_fields(1002, credit_limit='9000'), "B", 1)

        top = bank.top_checking_account()

        assert isinstance(top, RegularCheckingAccount)
        assert top.account_number == 1002
