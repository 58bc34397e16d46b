"""
Transaction write path.

Every create, update, delete and re-categorisation goes through here so that
validation, fiscal-year labelling and ledger sync happen in one place.
Balance cache invalidation is handled by the model signals.
"""
import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction

from core.config import LedgerConfig
from core.exceptions import LedgerBaseException, LedgerValidationError, TransactionNotFound
from reconciliation.ledger_service import ledger_sync
from .details import details_fields
from .models import BankAccount, Transaction

logger = logging.getLogger(__name__)


class TransactionService:
    """Validated writes to the transaction table, followed by ledger sync"""

    EDITABLE_FIELDS = {
        'bank_account', 'transaction_date', 'transaction_type', 'amount', 'status',
        'main_description', 'sub_description', 'payer_payee', 'payment_method', 'notes',
        'category', 'tx_account', 'member_id', 'event_id', 'event_name',
    }
    VIRTUAL_EDITABLE_FIELDS = {'category', 'tx_account', 'notes', 'member_id', 'event_id', 'event_name'}
    # Children inherit these from the parent, so they are frozen while split
    SPLIT_LOCKED_FIELDS = {'bank_account', 'transaction_date', 'transaction_type', 'amount'}

    def __init__(self, config=None, sync=None):
        self.config = config or LedgerConfig.from_settings()
        self.sync = sync or ledger_sync

    def _get_transaction(self, transaction_id):
        try:
            return Transaction.objects.select_related('bank_account').get(pk=transaction_id)
        except Transaction.DoesNotExist:
            raise TransactionNotFound(
                f"Transaction {transaction_id} not found",
                error_code='transaction_not_found',
                context={'transaction_id': transaction_id},
            )

    def _validate(self, txn):
        try:
            txn.full_clean()
        except DjangoValidationError as e:
            raise LedgerValidationError(
                f"Invalid transaction: {e.message_dict}",
                error_code='invalid_transaction',
                context=e.message_dict,
            )

    def generate_transaction_number(self, account, txn_date):
        """TXN-<year>-<last 4 of account number>-<sequence>"""
        prefix = f"TXN-{txn_date.year}-{account.account_number[-4:]}-"
        numbers = Transaction.objects.filter(
            transaction_number__startswith=prefix, is_virtual=False
        ).values_list('transaction_number', flat=True)

        highest = 0
        for number in numbers:
            suffix = number[len(prefix):]
            if suffix.isdigit():
                highest = max(highest, int(suffix))
        return f"{prefix}{highest + 1:04d}"

    def create_transaction(self, data, user=None):
        """
        Record a real transaction.

        Args:
            data: field values; bank_account may be a BankAccount or its id
            user: User recording the transaction

        Returns:
            The saved Transaction
        """
        data = dict(data)
        for reserved in ('is_virtual', 'parent', 'parent_id', 'is_split', 'split_count',
                         'allocated_amount', 'unallocated_amount'):
            if data.pop(reserved, None):
                raise LedgerValidationError(
                    f"'{reserved}' is managed by the split engine",
                    error_code='reserved_field',
                )

        account = data.pop('bank_account', None) or data.pop('bank_account_id', None)
        if not isinstance(account, BankAccount):
            account = BankAccount.objects.filter(pk=account).first()
        if account is None:
            raise LedgerValidationError('A valid bank account is required', error_code='missing_account')

        details = data.pop('details', None)

        txn = Transaction(bank_account=account, **data)
        if details is not None:
            txn.apply_details(details)
        txn.created_by = user
        txn.updated_by = user

        self._validate(txn)
        txn.fiscal_year = self.config.fiscal_year_label(txn.transaction_date)

        with transaction.atomic():
            if not txn.transaction_number:
                txn.transaction_number = self.generate_transaction_number(account, txn.transaction_date)
            txn.save()

        logger.info(f"Created transaction {txn.transaction_number} ({txn.transaction_type} {txn.amount})")
        self.sync.sync_transaction(txn)
        return txn

    def update_transaction(self, transaction_id, changes, user=None):
        """
        Apply a partial update. Direction, category and reference changes are
        routed through ledger sync, which moves the transaction between
        aggregate records and reconciles both sides.
        """
        txn = self._get_transaction(transaction_id)
        changes = dict(changes)

        details = changes.pop('details', None)
        if details is not None:
            changes.update(details_fields(details))

        unknown = set(changes) - self.EDITABLE_FIELDS
        if unknown:
            raise LedgerValidationError(
                f"Fields cannot be updated: {', '.join(sorted(unknown))}",
                error_code='not_editable',
            )

        if txn.is_virtual:
            blocked = set(changes) - self.VIRTUAL_EDITABLE_FIELDS
            if blocked:
                raise LedgerValidationError(
                    f"Split allocations only allow classification changes, not {', '.join(sorted(blocked))}",
                    error_code='virtual_not_editable',
                )

        if txn.is_split:
            blocked = set(changes) & self.SPLIT_LOCKED_FIELDS
            if blocked:
                raise LedgerValidationError(
                    f"Unsplit the transaction before changing {', '.join(sorted(blocked))}",
                    error_code='split_locked',
                )
            if changes.get('category'):
                raise LedgerValidationError(
                    'A split transaction is classified through its allocations',
                    error_code='split_locked',
                )

        for name, value in changes.items():
            if name == 'bank_account' and not isinstance(value, BankAccount):
                value = BankAccount.objects.filter(pk=value).first()
                if value is None:
                    raise LedgerValidationError('A valid bank account is required', error_code='missing_account')
            setattr(txn, name, value)

        # Drop references that the new category does not carry
        txn.apply_details(txn.details)
        txn.updated_by = user

        self._validate(txn)
        txn.fiscal_year = self.config.fiscal_year_label(txn.transaction_date)
        txn.save()

        logger.info(f"Updated transaction {txn.pk}: {', '.join(sorted(changes)) or 'no fields'}")
        self.sync.sync_transaction(txn)
        return txn

    def delete_transaction(self, transaction_id):
        """Delete a real transaction (and its split children), then reconcile affected ledgers"""
        txn = self._get_transaction(transaction_id)

        if txn.is_virtual:
            raise LedgerValidationError(
                'Split allocations are removed by unsplitting the parent',
                error_code='virtual_delete',
            )

        affected = self.sync.linked_keys(txn)

        with transaction.atomic():
            txn.delete()

        logger.info(f"Deleted transaction {transaction_id}; reconciling {len(affected)} ledgers")
        self.sync.reconcile_keys(affected)
        return affected

    def batch_set_category(self, transaction_ids, category, tx_account=None, details=None, user=None):
        """
        Re-categorise several transactions. Failures are recorded per item
        and never stop the batch.
        """
        changes = {'category': category}
        if tx_account is not None:
            changes['tx_account'] = tx_account
        if details is not None:
            changes['details'] = details

        results = []
        success_count = 0
        failed_count = 0

        for transaction_id in transaction_ids:
            try:
                txn = self._get_transaction(transaction_id)
                if txn.is_virtual:
                    raise LedgerValidationError(
                        'Split allocations cannot be re-categorised in batch',
                        error_code='virtual_not_editable',
                    )
                self.update_transaction(transaction_id, changes, user=user)
            except LedgerBaseException as e:
                failed_count += 1
                results.append({'transaction_id': transaction_id, 'success': False, 'error': e.message})
                logger.warning(f"Batch category update skipped transaction {transaction_id}: {e.message}")
            except Exception as e:
                failed_count += 1
                results.append({'transaction_id': transaction_id, 'success': False, 'error': str(e)})
                logger.exception(f"Batch category update failed for transaction {transaction_id}")
            else:
                success_count += 1
                results.append({'transaction_id': transaction_id, 'success': True, 'error': None})

        logger.info(f"Batch category update to {category}: {success_count} succeeded, {failed_count} failed")
        return {
            'success_count': success_count,
            'failed_count': failed_count,
            'results': results,
        }
