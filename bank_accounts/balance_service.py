"""
Running balance calculation for paginated account statements.

The balance after each real transaction is derived from the account's
opening balance and a cached, globally ordered list of the account's real
transactions. Virtual split rows are shown without a balance.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Optional

from django.core.paginator import Paginator
from django.db.models import Q, Sum

from core.cache_system import LedgerCache
from core.config import LedgerConfig
from .models import BankAccount, Transaction

logger = logging.getLogger(__name__)

SORT_FIELDS = ('transaction_date', 'amount', 'created_at', 'transaction_number')
SORT_ORDERS = ('asc', 'desc')

ZERO = Decimal('0.00')


@dataclass
class BalancePage:
    """Balances for one displayed page, keyed by transaction id"""
    balances: Dict[int, Optional[Decimal]] = field(default_factory=dict)
    available: bool = True
    starting_balance: Optional[Decimal] = None
    reason: str = ''

    def balance_for(self, transaction_id):
        return self.balances.get(transaction_id)


def ordered_transactions(queryset, sort_field='transaction_date', sort_order='desc'):
    """Apply a statement sort with id as the stable tie-breaker"""
    if sort_field not in SORT_FIELDS:
        raise ValueError(f"Unsupported sort field: {sort_field}")
    if sort_order not in SORT_ORDERS:
        raise ValueError(f"Unsupported sort order: {sort_order}")

    prefix = '-' if sort_order == 'desc' else ''
    return queryset.order_by(f'{prefix}{sort_field}', f'{prefix}id')


def net_amount(queryset):
    """Income minus expense over a transaction queryset"""
    totals = queryset.aggregate(
        income=Sum('amount', filter=Q(transaction_type='income')),
        expense=Sum('amount', filter=Q(transaction_type='expense')),
    )
    return (totals['income'] or ZERO) - (totals['expense'] or ZERO)


class RunningBalanceCalculator:
    """
    Computes per-row balances for one page of an account statement.

    The global sequence is cached per (account, sort field, sort order) in a
    process-local cache. The per-account version lives in the shared default
    cache, so a write in any process bumps it for every worker and drops all
    of the account's sequences at once.
    """

    def __init__(self, cache=None, version_cache=None):
        self.cache = cache or LedgerCache(alias='balances', default_timeout=1800)
        self.version_cache = version_cache or LedgerCache(alias='default')

    @staticmethod
    def _namespace(account_id):
        return f"balance:account:{account_id}"

    def _sequence_key(self, account_id, sort_field, sort_order):
        version = self.version_cache.get_namespace_version(self._namespace(account_id))
        if version is None:
            return None
        return self.cache._generate_cache_key(
            'balance_seq',
            account=account_id,
            field=sort_field,
            order=sort_order,
            version=version,
        )

    def get_global_sequence(self, account_id, sort_field='transaction_date', sort_order='desc'):
        """[(transaction_id, signed_amount), ...] for every real transaction of the account"""
        cache_key = self._sequence_key(account_id, sort_field, sort_order)
        if cache_key is not None:
            sequence = self.cache.get_cache(cache_key)
            if sequence is not None:
                return sequence

        rows = ordered_transactions(
            Transaction.objects.filter(bank_account_id=account_id, is_virtual=False),
            sort_field,
            sort_order,
        ).values_list('id', 'transaction_type', 'amount')

        sequence = [
            (pk, amount if transaction_type == 'income' else -amount)
            for pk, transaction_type, amount in rows
        ]
        if cache_key is not None:
            self.cache.set_cache(cache_key, sequence)
        logger.debug(f"Built balance sequence for account {account_id} ({sort_field} {sort_order}): {len(sequence)} rows")
        return sequence

    def calculate(self, account_id, page_transactions, sort_field='transaction_date', sort_order='desc'):
        """
        Balance after each real transaction on the page.

        Args:
            account_id: BankAccount id, or None for the combined all-accounts view
            page_transactions: the displayed rows, in display order
            sort_field / sort_order: the order the page was produced with

        Returns:
            BalancePage; available is False for the combined view or when the
            page boundary is missing from the cached sequence.
        """
        page = list(page_transactions)
        balances = {txn.pk: None for txn in page}

        if account_id is None:
            return BalancePage(balances=balances, available=False, reason='all_accounts')

        if sort_field not in SORT_FIELDS or sort_order not in SORT_ORDERS:
            raise ValueError(f"Unsupported sort: {sort_field} {sort_order}")

        real_rows = [txn for txn in page if not txn.is_virtual]
        if not real_rows:
            return BalancePage(balances=balances, available=True)

        account = BankAccount.objects.filter(pk=account_id).only('opening_balance').first()
        if account is None:
            logger.warning(f"Balance requested for unknown account {account_id}")
            return BalancePage(balances=balances, available=False, reason='account_not_found')

        sequence = self.get_global_sequence(account_id, sort_field, sort_order)

        boundary_id = real_rows[-1].pk
        boundary_index = next(
            (index for index, (pk, _) in enumerate(sequence) if pk == boundary_id),
            None,
        )
        if boundary_index is None:
            # Stale or foreign page: never report a number we cannot stand behind
            self.invalidate_account(account_id)
            logger.warning(
                f"Transaction {boundary_id} not found in balance sequence for account {account_id}; "
                f"cache invalidated, balances unavailable"
            )
            return BalancePage(balances=balances, available=False, reason='stale_cache')

        starting_balance = account.opening_balance + sum(
            (signed for _, signed in sequence[boundary_index + 1:]),
            ZERO,
        )

        running = starting_balance
        for txn in reversed(page):
            if txn.is_virtual:
                continue
            running += txn.signed_amount
            balances[txn.pk] = running

        return BalancePage(balances=balances, available=True, starting_balance=starting_balance)

    def paginate(self, account_id, page_number=1, page_size=50,
                 sort_field='transaction_date', sort_order='desc', include_virtual=True):
        """Fetch one statement page together with its balances"""
        queryset = Transaction.objects.select_related('bank_account')
        if account_id is not None:
            queryset = queryset.filter(bank_account_id=account_id)
        if not include_virtual:
            queryset = queryset.filter(is_virtual=False)

        paginator = Paginator(ordered_transactions(queryset, sort_field, sort_order), page_size)
        page = paginator.get_page(page_number)
        # Evaluate once so the rows shown are exactly the rows balanced
        page.object_list = list(page.object_list)
        return page, self.calculate(account_id, page.object_list, sort_field, sort_order)

    def invalidate_account(self, account_id):
        if account_id is None:
            return
        self.version_cache.bump_namespace_version(self._namespace(account_id))

    def clear_all(self):
        self.cache.clear_all()

    def get_cache_stats(self):
        return self.cache.get_cache_stats()


class BalanceService:
    """Point-in-time balance queries over real transactions"""

    @classmethod
    def get_current_balance(cls, account):
        real = Transaction.objects.filter(bank_account=account, is_virtual=False)
        return account.opening_balance + net_amount(real)

    @classmethod
    def get_balance_before_date(cls, account, before_date):
        """Opening balance plus every real transaction dated strictly before before_date"""
        real = Transaction.objects.filter(
            bank_account=account,
            is_virtual=False,
            transaction_date__lt=before_date,
        )
        return account.opening_balance + net_amount(real)

    @classmethod
    def get_total_balance(cls):
        """Sum of current balances over active accounts"""
        total = ZERO
        for account in BankAccount.objects.filter(status='active'):
            total += cls.get_current_balance(account)
        return total

    @classmethod
    def get_transaction_statistics(cls, date_range=None, account=None, config=None):
        """
        Income and expense totals for completed real transactions,
        leaving out internal transfers between the organisation's own accounts.
        """
        config = config or LedgerConfig.from_settings()

        queryset = Transaction.objects.filter(is_virtual=False, status='completed').exclude(
            tx_account=config.internal_transfer_code
        )
        if account is not None:
            queryset = queryset.filter(bank_account=account)
        if date_range is not None:
            queryset = queryset.filter(
                transaction_date__gte=date_range.start,
                transaction_date__lte=date_range.end,
            )

        totals = queryset.aggregate(
            income=Sum('amount', filter=Q(transaction_type='income')),
            expense=Sum('amount', filter=Q(transaction_type='expense')),
        )
        total_income = totals['income'] or ZERO
        total_expense = totals['expense'] or ZERO

        return {
            'total_income': total_income,
            'total_expense': total_expense,
            'net_amount': total_income - total_expense,
            'transaction_count': queryset.count(),
        }


# Global calculator instance
balance_calculator = RunningBalanceCalculator()
