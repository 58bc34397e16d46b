"""
Internal Transfer Pair Detection

Pairs the two sides of money moved between the organisation's own accounts:
an expense on one account and an income of the same amount on another,
both carrying the internal-transfer classification code.

Detection Strategy:
1. Every candidate is tried on its own date and on each date within the
   configured tolerance, to absorb timezone rounding of stored dates
2. Candidates are grouped by (candidate date, amount)
3. Within a group the first unpaired expense/income combination on
   different accounts is paired; pairing state is global across groups
"""
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import List

from core.config import LedgerConfig
from .models import Transaction

logger = logging.getLogger(__name__)

ZERO = Decimal('0.00')


@dataclass(frozen=True)
class TransferPair:
    from_transaction: Transaction
    to_transaction: Transaction
    date: date
    amount: Decimal
    confidence: float = 1.0

    @property
    def from_account_id(self):
        return self.from_transaction.bank_account_id

    @property
    def to_account_id(self):
        return self.to_transaction.bank_account_id

    def to_dict(self):
        return {
            'from_transaction_id': self.from_transaction.pk,
            'to_transaction_id': self.to_transaction.pk,
            'from_account_id': self.from_account_id,
            'to_account_id': self.to_account_id,
            'date': self.date.isoformat(),
            'amount': str(self.amount),
            'confidence': self.confidence,
        }


@dataclass
class TransferDetectionResult:
    pairs: List[TransferPair] = field(default_factory=list)
    unpaired_expenses: List[Transaction] = field(default_factory=list)
    unpaired_income: List[Transaction] = field(default_factory=list)

    @property
    def unpaired_expense_total(self):
        return sum((txn.amount for txn in self.unpaired_expenses), ZERO)

    @property
    def unpaired_income_total(self):
        return sum((txn.amount for txn in self.unpaired_income), ZERO)

    @property
    def imbalance(self):
        return abs(self.unpaired_income_total - self.unpaired_expense_total)

    def to_dict(self):
        return {
            'pairs': [pair.to_dict() for pair in self.pairs],
            'unpaired_expense_ids': [txn.pk for txn in self.unpaired_expenses],
            'unpaired_income_ids': [txn.pk for txn in self.unpaired_income],
            'imbalance': str(self.imbalance),
        }


class TransferPairDetector:
    """Finds probable internal transfer pairs between accounts"""

    def __init__(self, config=None):
        self.config = config or LedgerConfig.from_settings()

    def candidate_transactions(self, date_range=None):
        queryset = Transaction.objects.filter(
            is_virtual=False,
            tx_account=self.config.internal_transfer_code,
        )
        if date_range is not None:
            queryset = queryset.filter(
                transaction_date__gte=date_range.start,
                transaction_date__lte=date_range.end,
            )
        return queryset.order_by('transaction_date', 'id')

    def _build_groups(self, transactions):
        tolerance = self.config.transfer_date_tolerance_days
        groups = defaultdict(list)
        for txn in transactions:
            for offset in range(-tolerance, tolerance + 1):
                groups[(txn.transaction_date + timedelta(days=offset), txn.amount)].append(txn)
        return groups

    def detect(self, date_range=None):
        """
        Pair internal transfer transactions.

        Args:
            date_range: optional core.config.DateRange restricting candidates

        Returns:
            TransferDetectionResult with the pairs, the unpaired rows on each
            side and the imbalance between them
        """
        transactions = list(self.candidate_transactions(date_range))
        groups = self._build_groups(transactions)

        paired_ids = set()
        pairs = []

        # Sorted so the first-found tie-break is stable across runs
        for group_key in sorted(groups):
            members = groups[group_key]
            expenses = [txn for txn in members if txn.transaction_type == 'expense']
            incomes = [txn for txn in members if txn.transaction_type == 'income']

            for expense in expenses:
                if expense.pk in paired_ids:
                    continue
                for income in incomes:
                    if income.pk in paired_ids:
                        continue
                    if income.pk == expense.pk or income.bank_account_id == expense.bank_account_id:
                        continue

                    paired_ids.add(expense.pk)
                    paired_ids.add(income.pk)
                    pairs.append(TransferPair(
                        from_transaction=expense,
                        to_transaction=income,
                        date=expense.transaction_date,
                        amount=expense.amount,
                        confidence=1.0,
                    ))
                    break

        result = TransferDetectionResult(
            pairs=pairs,
            unpaired_expenses=[
                txn for txn in transactions
                if txn.pk not in paired_ids and txn.transaction_type == 'expense'
            ],
            unpaired_income=[
                txn for txn in transactions
                if txn.pk not in paired_ids and txn.transaction_type == 'income'
            ],
        )

        logger.info(
            f"Transfer detection: {len(transactions)} candidates, {len(pairs)} pairs, "
            f"{len(result.unpaired_expenses)} unpaired expenses, {len(result.unpaired_income)} unpaired income, "
            f"imbalance {result.imbalance}"
        )
        return result

    def get_transfer_statistics(self, date_range=None):
        """Pair count, moved amount and per-account involvement"""
        result = self.detect(date_range)

        account_stats = {}
        total_amount = ZERO
        for pair in result.pairs:
            total_amount += pair.amount
            for account_id in (pair.from_account_id, pair.to_account_id):
                stats = account_stats.setdefault(account_id, {'transfers': 0, 'amount': ZERO})
                stats['transfers'] += 1
                stats['amount'] += pair.amount

        return {
            'total_pairs': len(result.pairs),
            'total_amount': total_amount,
            'account_stats': account_stats,
        }
