"""
Shared fixtures for ledger tests
"""
from datetime import date
from decimal import Decimal

from bank_accounts.models import BankAccount, Transaction


def make_account(number='1234567890', name='Operating Account', opening_balance='0.00', status='active'):
    return BankAccount.objects.create(
        account_name=name,
        account_number=number,
        bank_name='Maybank',
        opening_balance=Decimal(opening_balance),
        status=status,
    )


def make_transaction(account, amount, transaction_type='income', transaction_date=date(2024, 1, 10), **fields):
    """Insert a row directly, bypassing the write service and ledger sync"""
    fields.setdefault('main_description', f'{transaction_type.title()} {amount}')
    return Transaction.objects.create(
        bank_account=account,
        amount=Decimal(str(amount)),
        transaction_type=transaction_type,
        transaction_date=transaction_date,
        **fields
    )
