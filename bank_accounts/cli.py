"""
CLI interface for the bank accounts system.

This module provides a command-line interface over the Bank facade.
"""

from decimal import Decimal, InvalidOperation
from typing import Optional

import click

from .bank import Bank, format_currency
from .config import BankConfig, setup_logging
from .database import DatabaseManager
from .exceptions import BankError
from .models import (
    Account,
    AccountType,
    BusinessCheckingAccount,
    Client,
    MortgageAccount,
    ProfitAccount,
    RegularCheckingAccount,
    SavingsAccount,
)

TYPE_CHOICES = {
    "regular": AccountType.REGULAR_CHECKING,
    "business": AccountType.BUSINESS_CHECKING,
    "mortgage": AccountType.MORTGAGE,
    "savings": AccountType.SAVINGS,
}

RANK = click.IntRange(0, 10)
POSITIVE = click.IntRange(min=1)


class BankCLI:
    """CLI wrapper for bank operations."""

    def __init__(self, db_path: str = "bank.db", bank_number: int = 1):
        """Initialize CLI with database."""
        self.db_manager = DatabaseManager(db_path)
        self.bank = Bank(self.db_manager, bank_number)

    def parse_currency(self, amount_str: str) -> Decimal:
        """Parse currency input."""
        try:
            clean_str = amount_str.replace('ILS', '').replace(',', '').strip()
            amount = Decimal(clean_str)
        except (InvalidOperation, ValueError):
            raise ValueError(f"Invalid amount: {amount_str}")
        if amount < 0:
            raise ValueError(f"Amount cannot be negative: {amount_str}")
        return amount

    def format_account(self, account: Account) -> str:
        """One-line account summary."""
        prefix = f"(ID:{account.account_id}) " if account.is_persisted else ""
        details = [
            f"accountNumber={account.account_number}",
            f"dateOpened={account.date_opened.isoformat()}",
            f"bankNumber={account.bank_number}",
            f"managerName='{account.manager_name}'",
            f"balance={format_currency(account.balance)}",
        ]
        if isinstance(account, RegularCheckingAccount):
            details.append(f"creditLimit={format_currency(account.credit_limit)}")
        elif isinstance(account, BusinessCheckingAccount):
            details.append(f"creditLimit={format_currency(account.credit_limit)}")
            details.append(f"businessRevenue={format_currency(account.business_revenue)}")
        elif isinstance(account, MortgageAccount):
            details.append(f"originalMortgageAmount={format_currency(account.original_amount)}")
            details.append(f"monthlyPayment={format_currency(account.monthly_payment)}")
            details.append(f"years={account.years}")
        elif isinstance(account, SavingsAccount):
            details.append(f"depositAmount={format_currency(account.deposit_amount)}")
            details.append(f"years={account.years}")
        return f"{prefix}{account.discriminator:<25} {{{', '.join(details)}}}"

    def format_client(self, client: Client) -> str:
        return f"Client{{id={client.client_id}, name='{client.name}', rank={client.rank}}}"

    def echo_accounts(self, accounts, header: str, empty: str) -> None:
        if not accounts:
            click.echo(empty)
            return
        click.echo(f"--- {header} ---\n")
        for account in accounts:
            click.echo(self.format_account(account))
            if isinstance(account, ProfitAccount):
                click.echo(f"  -> Profit: {format_currency(account.profit())}")
            if Bank.has_management_fee(account):
                click.echo(f"  -> Management fee: {format_currency(account.management_fee())}")
            click.echo()

    def echo_result(self, result) -> None:
        if result.success:
            click.echo(f"✅ {result.message}")
        else:
            click.echo(f"❌ {result.message}", err=True)


@click.group()
@click.option('--db-path', default=None, help='Database file path (default: $BANK_DB_PATH or bank.db)')
@click.option('--log-level', default=None, help='Log level (default: $LOG_LEVEL or WARNING)')
@click.pass_context
def cli(ctx, db_path, log_level):
    """Bank Accounts CLI"""
    config = BankConfig.from_env()
    if db_path:
        config.db_path = db_path
    if log_level:
        config.log_level = log_level
    setup_logging(config.log_level, config.log_format)

    ctx.ensure_object(dict)
    ctx.obj['cli'] = BankCLI(config.db_path, config.bank_number)


@cli.command()
@click.option('--type', 'account_type', type=click.Choice(list(TYPE_CHOICES)),
              default=None, help='Only show accounts of this type')
@click.pass_context
def list_accounts(ctx, account_type):
    """Display all accounts, or the accounts of one type."""
    bank_cli = ctx.obj['cli']

    try:
        if account_type:
            acc_type = TYPE_CHOICES[account_type]
            accounts = bank_cli.bank.list_by_type(acc_type)
            bank_cli.echo_accounts(accounts, f"Accounts of Type: {acc_type.value}",
                                   f"No accounts found for type: {acc_type.value}")
        else:
            accounts = bank_cli.bank.list_all()
            bank_cli.echo_accounts(accounts, "All Accounts", "No accounts in the database.")
    except BankError as e:
        click.echo(f"❌ Operation failed: {e}", err=True)


@cli.command()
@click.pass_context
def profit_accounts(ctx):
    """Display accounts with annual profit, highest first."""
    bank_cli = ctx.obj['cli']

    try:
        accounts = bank_cli.bank.list_profit_accounts()
        bank_cli.echo_accounts(accounts, "Accounts Ordered by Profit",
                               "No profit-generating accounts found.")
    except BankError as e:
        click.echo(f"❌ Operation failed: {e}", err=True)


@cli.command()
@click.pass_context
def fee_accounts(ctx):
    """Display accounts that charge a management fee."""
    bank_cli = ctx.obj['cli']

    try:
        accounts = bank_cli.bank.list_fee_accounts()
        bank_cli.echo_accounts(accounts, "Accounts with Management Fee",
                               "No fee-charging accounts found.")
    except BankError as e:
        click.echo(f"❌ Operation failed: {e}", err=True)


@cli.command()
@click.pass_context
def clients(ctx):
    """Display all clients."""
    bank_cli = ctx.obj['cli']

    try:
        all_clients = bank_cli.bank.list_clients()
        if not all_clients:
            click.echo("No clients in the database.")
            return
        click.echo("--- All Clients ---\n")
        for client in all_clients:
            click.echo(bank_cli.format_client(client))
    except BankError as e:
        click.echo(f"❌ Operation failed: {e}", err=True)


@cli.command()
@click.pass_context
def associations(ctx):
    """Display every account with its clients."""
    bank_cli = ctx.obj['cli']

    try:
        accounts = bank_cli.bank.list_associations()
    except BankError as e:
        click.echo(f"❌ Operation failed: {e}", err=True)
        return

    if not accounts:
        click.echo("No accounts in the database.")
        return

    click.echo("--- Account-Client Associations ---\n")
    with_clients = 0
    for account in accounts:
        click.echo(f"Account #{account.account_number} ({account.discriminator}) - "
                   f"Manager: {account.manager_name}:")
        if account.clients:
            with_clients += 1
            for client in account.clients:
                click.echo(f"  -> Client ID: {client.client_id}, Name: {client.name}, "
                           f"Rank: {client.rank}")
        else:
            click.echo("  -> No clients associated with this account.")
        click.echo()

    click.echo("--- Summary ---")
    click.echo(f"Total accounts: {len(accounts)}")
    click.echo(f"Accounts with clients: {with_clients}")
    click.echo(f"Accounts without clients: {len(accounts) - with_clients}")


@cli.command()
@click.pass_context
def summary(ctx):
    """Display account IDs with managers, and client IDs with ranks."""
    bank_cli = ctx.obj['cli']

    try:
        accounts = bank_cli.bank.list_all()
        all_clients = bank_cli.bank.list_clients()
    except BankError as e:
        click.echo(f"❌ Operation failed: {e}", err=True)
        return

    if accounts:
        click.echo("--- Accounts Summary ---\n")
        for account in accounts:
            click.echo(f"Account #{account.account_number} (ID: {account.account_id}) - "
                       f"{account.discriminator} - Manager: {account.manager_name}")
    else:
        click.echo("No accounts in the database.")
    click.echo()

    if all_clients:
        click.echo("--- Clients Summary ---\n")
        for client in all_clients:
            click.echo(f"Client ID: {client.client_id} - Name: {client.name} - "
                       f"Rank: {client.rank}")
    else:
        click.echo("No clients in the database.")


@cli.command()
@click.option('--type', 'account_type', type=click.Choice(list(TYPE_CHOICES)),
              prompt='Account type', help='Type of account')
@click.option('--number', 'account_number', type=POSITIVE, prompt='Account number',
              help='New, unused account number')
@click.option('--manager', prompt='Manager name', help='Account manager name')
@click.option('--credit-limit', default=None, help='Credit limit (checking accounts)')
@click.option('--business-revenue', default=None, help='Business revenue (business checking)')
@click.option('--original-amount', default=None, help='Original mortgage amount')
@click.option('--monthly-payment', default=None, help='Monthly mortgage payment')
@click.option('--deposit-amount', default=None, help='Deposit amount (savings)')
@click.option('--years', type=click.IntRange(1, 100), default=None,
              help='Term in years (mortgage, savings)')
@click.option('--client-name', prompt='First client name', help='Name of the first client')
@click.option('--client-rank', type=RANK, prompt='First client rank (0-10)',
              help='Rank of the first client')
@click.pass_context
def create_account(ctx, account_type, account_number, manager, credit_limit,
                   business_revenue, original_amount, monthly_payment, deposit_amount,
                   years, client_name, client_rank):
    """Create a new account with its first client."""
    bank_cli = ctx.obj['cli']
    acc_type = TYPE_CHOICES[account_type]

    def amount(value: Optional[str], label: str) -> Decimal:
        if value is None:
            value = click.prompt(label)
        return bank_cli.parse_currency(value)

    def term(value: Optional[int]) -> int:
        if value is None:
            value = click.prompt('Years', type=click.IntRange(1, 100))
        return value

    try:
        fields = {'account_number': account_number, 'manager_name': manager.strip()}
        if acc_type is AccountType.REGULAR_CHECKING:
            fields['credit_limit'] = amount(credit_limit, 'Credit limit')
        elif acc_type is AccountType.BUSINESS_CHECKING:
            fields['credit_limit'] = amount(credit_limit, 'Credit limit')
            fields['business_revenue'] = amount(business_revenue, 'Business revenue')
        elif acc_type is AccountType.MORTGAGE:
            fields['original_amount'] = amount(original_amount, 'Original mortgage amount')
            fields['monthly_payment'] = amount(monthly_payment, 'Monthly payment')
            fields['years'] = term(years)
        else:
            fields['deposit_amount'] = amount(deposit_amount, 'Deposit amount')
            fields['years'] = term(years)
    except ValueError as e:
        click.echo(f"❌ Error: {e}", err=True)
        return

    bank_cli.echo_result(
        bank_cli.bank.create_new_account(acc_type, fields, client_name, client_rank)
    )


@cli.command()
@click.option('--account-number', type=POSITIVE, prompt='Account number', help='Account number')
@click.option('--name', prompt='Client name', help='Client full name')
@click.option('--rank', type=RANK, prompt='Client rank (0-10)', help='Client rank')
@click.pass_context
def add_client(ctx, account_number, name, rank):
    """Add a new client to an existing account."""
    bank_cli = ctx.obj['cli']
    bank_cli.echo_result(bank_cli.bank.register_client_to_account(account_number, name, rank))


@cli.command()
@click.option('--account-number', type=POSITIVE, prompt='Account number', help='Account number')
@click.option('--client-id', type=POSITIVE, prompt='Client ID', help='Existing client ID')
@click.pass_context
def link_client(ctx, account_number, client_id):
    """Add an existing client to another account."""
    bank_cli = ctx.obj['cli']
    bank_cli.echo_result(bank_cli.bank.link_client_to_account(account_number, client_id))


@cli.command()
@click.option('--client-id', type=POSITIVE, prompt='Client ID', help='Client ID')
@click.option('--rank', type=RANK, prompt='New rank (0-10)', help='New client rank')
@click.pass_context
def update_rank(ctx, client_id, rank):
    """Update a client's rank."""
    bank_cli = ctx.obj['cli']
    bank_cli.echo_result(bank_cli.bank.update_client_rank(client_id, rank))


@cli.command()
@click.option('--account-number', type=POSITIVE, prompt='Account number', help='Account number')
@click.option('--client-id', type=POSITIVE, prompt='Client ID', help='Client ID to remove')
@click.pass_context
def remove_client(ctx, account_number, client_id):
    """Remove a client from an account; a client left without accounts is deleted."""
    bank_cli = ctx.obj['cli']
    bank_cli.echo_result(bank_cli.bank.remove_client_from_account(account_number, client_id))


@cli.command()
@click.option('--account-number', type=POSITIVE, prompt='Business account number',
              help='Business checking account number')
@click.pass_context
def vip_profit(ctx, account_number):
    """Check VIP profit status of a business checking account."""
    bank_cli = ctx.obj['cli']
    bank_cli.echo_result(bank_cli.bank.check_vip_profit(account_number))


@cli.command()
@click.option('--account-number', type=POSITIVE, prompt='Account number', help='Account number')
@click.pass_context
def account_profit(ctx, account_number):
    """Show the annual profit of one account."""
    bank_cli = ctx.obj['cli']
    bank_cli.echo_result(bank_cli.bank.account_profit(account_number))


@cli.command()
@click.pass_context
def total_profit(ctx):
    """Show the total annual profit of the bank."""
    bank_cli = ctx.obj['cli']

    try:
        total = bank_cli.bank.total_annual_profit()
        click.echo(f"Total annual profit of the bank: {format_currency(total)}")
    except BankError as e:
        click.echo(f"❌ Operation failed: {e}", err=True)


@cli.command()
@click.pass_context
def top_checking(ctx):
    """Show the checking account with the highest profit."""
    bank_cli = ctx.obj['cli']

    try:
        account = bank_cli.bank.top_checking_account()
        if account is None:
            click.echo("No checking accounts with profit found.")
            return
        click.echo("--- Top Checking Account by Profit ---")
        click.echo(bank_cli.format_account(account))
    except BankError as e:
        click.echo(f"❌ Operation failed: {e}", err=True)


@cli.command()
@click.option('--client-id', type=POSITIVE, prompt='Client ID', help='Client ID')
@click.pass_context
def rank_history(ctx, client_id):
    """Show the audit log of a client's rank changes."""
    bank_cli = ctx.obj['cli']

    try:
        changes = bank_cli.bank.client_rank_history(client_id)
    except BankError as e:
        click.echo(f"❌ Operation failed: {e}", err=True)
        return

    if not changes:
        click.echo(f"No rank changes recorded for client {client_id}.")
        return
    click.echo(f"{'Time':<20} {'Old':<5} {'New':<5}")
    click.echo(f"{'-'*30}")
    for change in changes:
        click.echo(f"{change.change_time:<20} {change.old_rank:<5} {change.new_rank:<5}")


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == '__main__':
    main()
