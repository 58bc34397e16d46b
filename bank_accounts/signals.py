"""
Balance cache invalidation.
Every saved or deleted transaction drops the cached balance sequences of its
account, including split children and rows moved between accounts.
"""
from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from .balance_service import balance_calculator
from .models import Transaction


def _affected_accounts(instance):
    accounts = {instance.bank_account_id}
    previous = getattr(instance, '_loaded_bank_account_id', None)
    if previous is not None:
        accounts.add(previous)
    accounts.discard(None)
    return accounts


@receiver(post_save, sender=Transaction)
def invalidate_balances_on_save(sender, instance, created, **kwargs):
    for account_id in _affected_accounts(instance):
        balance_calculator.invalidate_account(account_id)
    # The row now lives in its current account
    instance._loaded_bank_account_id = instance.bank_account_id


@receiver(post_delete, sender=Transaction)
def invalidate_balances_on_delete(sender, instance, **kwargs):
    for account_id in _affected_accounts(instance):
        balance_calculator.invalidate_account(account_id)
