"""
Split / unsplit engine.

A split keeps the parent as the only real row and records the allocation as
virtual children, so account balances never move. Any shortfall between the
allocations and the parent amount is held by one system generated
'unallocated' child.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction

from core.config import LedgerConfig
from core.exceptions import LedgerBaseException, SplitValidationError, TransactionNotFound
from reconciliation.ledger_service import ledger_sync
from .details import CATEGORY_UNALLOCATED, category_label
from .models import Transaction

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')

SPLITTABLE_CATEGORIES = {
    choice for choice, _ in Transaction.CATEGORY_CHOICES if choice != CATEGORY_UNALLOCATED
}


@dataclass
class SplitResult:
    parent: Transaction
    children: List[Transaction] = field(default_factory=list)
    unallocated_child: Optional[Transaction] = None

    @property
    def allocated_children(self):
        return [child for child in self.children if child is not self.unallocated_child]


class SplitService:
    """Creates and removes virtual allocation rows under a real transaction"""

    UNALLOCATED_NOTE = 'System generated - remaining amount after split'

    @classmethod
    def _get_transaction(cls, transaction_id):
        try:
            return Transaction.objects.select_related('bank_account').get(pk=transaction_id)
        except Transaction.DoesNotExist:
            raise TransactionNotFound(
                f"Transaction {transaction_id} not found",
                error_code='transaction_not_found',
                context={'transaction_id': transaction_id},
            )

    @classmethod
    def _normalise_allocations(cls, allocations):
        if not allocations:
            raise SplitValidationError('At least one allocation is required', error_code='no_allocations')

        items = []
        for index, allocation in enumerate(allocations, 1):
            try:
                amount = Decimal(str(allocation.get('amount'))).quantize(CENT)
            except (InvalidOperation, TypeError, ValueError):
                raise SplitValidationError(
                    f"Allocation {index}: invalid amount {allocation.get('amount')!r}",
                    error_code='invalid_amount',
                )
            if amount <= 0:
                raise SplitValidationError(
                    f"Allocation {index}: amount must be greater than zero",
                    error_code='invalid_amount',
                )

            category = allocation.get('category') or ''
            if category not in SPLITTABLE_CATEGORIES:
                raise SplitValidationError(
                    f"Allocation {index}: unsupported category {category!r}",
                    error_code='invalid_category',
                )

            items.append({
                'amount': amount,
                'category': category,
                'notes': allocation.get('notes') or '',
                'tx_account': allocation.get('tx_account') or '',
            })
        return items

    @classmethod
    def _create_child(cls, parent, item, sequence, user, config):
        label = category_label(item['category'])
        number = f"{parent.transaction_number}-S{sequence}" if parent.transaction_number else ''
        return Transaction.objects.create(
            transaction_number=number,
            bank_account_id=parent.bank_account_id,
            transaction_date=parent.transaction_date,
            transaction_type=parent.transaction_type,
            amount=item['amount'],
            status=parent.status,
            main_description=parent.main_description,
            sub_description=f"{label} - {config.currency_label} {item['amount']:.2f}",
            payer_payee=parent.payer_payee,
            payment_method=parent.payment_method,
            notes=item['notes'],
            category=item['category'],
            tx_account=item['tx_account'],
            fiscal_year=parent.fiscal_year,
            is_virtual=True,
            parent=parent,
            created_by=user,
            updated_by=user,
        )

    @classmethod
    def split_transaction(cls, parent_id, allocations, user=None, config=None):
        """
        Split a real transaction into categorised virtual children.

        Args:
            parent_id: id of the real transaction to split
            allocations: list of {'amount', 'category', 'notes'?, 'tx_account'?}
            user: User performing the split

        Returns:
            SplitResult with the updated parent and every child created

        Raises:
            TransactionNotFound: parent does not exist
            SplitValidationError: virtual parent, bad allocation, or over-allocation
        """
        config = config or LedgerConfig.from_settings()
        parent = cls._get_transaction(parent_id)

        if parent.is_virtual or parent.parent_id:
            raise SplitValidationError(
                'Cannot split a virtual transaction',
                error_code='virtual_parent',
                context={'transaction_id': parent.pk},
            )

        items = cls._normalise_allocations(allocations)
        allocated = sum((item['amount'] for item in items), Decimal('0.00'))

        if allocated > parent.amount:
            raise SplitValidationError(
                f"Split total {config.currency_label} {allocated:.2f} exceeds transaction amount "
                f"{config.currency_label} {parent.amount:.2f}",
                error_code='over_allocated',
                context={'transaction_id': parent.pk, 'allocated': str(allocated), 'amount': str(parent.amount)},
            )

        remainder = parent.amount - allocated

        with transaction.atomic():
            if parent.is_split or parent.children.exists():
                removed, _ = parent.children.all().delete()
                logger.info(f"Re-split of transaction {parent.pk}: removed {removed} previous children")

            children = [
                cls._create_child(parent, item, sequence, user, config)
                for sequence, item in enumerate(items, 1)
            ]

            unallocated_child = None
            if remainder > 0:
                unallocated_child = cls._create_child(
                    parent,
                    {
                        'amount': remainder,
                        'category': CATEGORY_UNALLOCATED,
                        'notes': cls.UNALLOCATED_NOTE,
                        'tx_account': '',
                    },
                    len(children) + 1,
                    user,
                    config,
                )
                children.append(unallocated_child)

            parent.is_split = True
            parent.split_count = len(children)
            parent.allocated_amount = allocated
            parent.unallocated_amount = remainder
            # Each child carries its own classification from here on
            parent.category = ''
            parent.tx_account = ''
            parent.apply_details(None)
            parent.updated_by = user
            parent.save()

        logger.info(
            f"Split transaction {parent.pk} into {len(children)} children "
            f"(allocated {allocated}, unallocated {remainder})"
        )

        # The parent no longer carries a category, so it leaves every ledger
        ledger_sync.sync_transaction(parent)

        return SplitResult(parent=parent, children=children, unallocated_child=unallocated_child)

    @classmethod
    def unsplit_transaction(cls, parent_id, user=None):
        """
        Remove every child of a split transaction.

        The category cleared at split time is not restored; the parent must be
        re-categorised by the caller.
        """
        parent = cls._get_transaction(parent_id)

        if not parent.is_split:
            raise SplitValidationError(
                'Transaction is not split',
                error_code='not_split',
                context={'transaction_id': parent.pk},
            )

        with transaction.atomic():
            removed, _ = parent.children.all().delete()

            parent.is_split = False
            parent.split_count = None
            parent.allocated_amount = None
            parent.unallocated_amount = None
            parent.updated_by = user
            parent.save()

        logger.info(f"Unsplit transaction {parent.pk}: removed {removed} children")
        return parent

    @classmethod
    def batch_split_transactions(cls, transaction_ids, allocations, user=None, config=None):
        """
        Apply the same allocation to several transactions.
        One failure never stops the rest of the batch.
        """
        config = config or LedgerConfig.from_settings()
        results = []
        success_count = 0
        failed_count = 0

        for transaction_id in transaction_ids:
            try:
                cls.split_transaction(transaction_id, allocations, user=user, config=config)
            except (LedgerBaseException, DjangoValidationError) as e:
                failed_count += 1
                results.append({'transaction_id': transaction_id, 'success': False, 'error': str(e)})
                logger.warning(f"Batch split skipped transaction {transaction_id}: {e}")
            except Exception as e:
                failed_count += 1
                results.append({'transaction_id': transaction_id, 'success': False, 'error': str(e)})
                logger.exception(f"Batch split failed for transaction {transaction_id}")
            else:
                success_count += 1
                results.append({'transaction_id': transaction_id, 'success': True, 'error': None})

        logger.info(f"Batch split finished: {success_count} succeeded, {failed_count} failed")
        return {
            'success_count': success_count,
            'failed_count': failed_count,
            'results': results,
        }

    @classmethod
    def get_split_children(cls, parent_id):
        return list(Transaction.objects.filter(parent_id=parent_id).order_by('id'))
