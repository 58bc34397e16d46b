"""
Aggregate ledger maintenance: upsert-then-reconcile.

Upsert keeps the denormalised member-fee, event and general ledgers roughly
current on every transaction write. Reconcile recomputes one record from the
transaction table and is the only operation that makes totals authoritative.
"""
import logging
from decimal import Decimal

from django.db import transaction as db_transaction
from django.db.models import Q, Sum
from django.utils import timezone
from django.utils.module_loading import import_string

from bank_accounts.details import (
    CATEGORY_EVENT_FINANCE,
    CATEGORY_GENERAL_ACCOUNTS,
    CATEGORY_MEMBER_FEES,
)
from bank_accounts.models import Transaction
from core.config import LedgerConfig
from core.exceptions import LedgerBaseException, LedgerValidationError
from .models import EventFinancialRecord, GeneralFinancialRecord, MemberFeeRecord

logger = logging.getLogger(__name__)

ZERO = Decimal('0.00')


class LedgerSyncService:
    """
    Base upsert/reconcile service. Subclasses declare the record model, the
    grouping key and which transactions match it.
    """

    kind = None
    model = None
    key_fields = ()

    def __init__(self, config=None, resolver=None):
        self.config = config or LedgerConfig.from_settings()
        self._resolver = resolver

    # Variant hooks

    def applies_to(self, txn):
        raise NotImplementedError

    def key_for_transaction(self, txn):
        """Grouping key of a transaction; LedgerValidationError when incomplete"""
        raise NotImplementedError

    def matching_transactions(self, key):
        raise NotImplementedError

    def record_defaults(self, txn):
        return {}

    def update_variant_fields(self, record, txn, identity):
        pass

    def apply_reconciled_fields(self, record, revenue, expense):
        pass

    # Shared machinery

    @property
    def resolver(self):
        if self._resolver is None:
            self._resolver = import_string(self.config.identity_resolver)()
        return self._resolver

    def resolve_identity(self, member_id):
        """Optional enrichment; a failing directory never blocks the ledger"""
        if not member_id:
            return None
        try:
            return self.resolver.resolve(member_id)
        except Exception as e:
            logger.warning(f"Identity lookup failed for member {member_id}: {e}")
            return None

    def record_key(self, record):
        return {name: getattr(record, name) for name in self.key_fields}

    def find_record(self, key):
        return self.model.objects.filter(**key).first()

    def linked_records(self, txn):
        return self.model.objects.filter(
            Q(revenue_transactions=txn) | Q(expense_transactions=txn)
        ).distinct()

    def _link(self, record, txn):
        if txn.transaction_type == 'income':
            record.expense_transactions.remove(txn)
            record.revenue_transactions.add(txn)
        else:
            record.revenue_transactions.remove(txn)
            record.expense_transactions.add(txn)

    def _unlink(self, record, txn):
        record.revenue_transactions.remove(txn)
        record.expense_transactions.remove(txn)

    def _update_descriptive_fields(self, record, txn):
        if txn.payer_payee:
            record.payer_payee = txn.payer_payee

        identity = self.resolve_identity(txn.member_id)
        if identity is not None:
            record.member_name = identity.name
            record.member_email = identity.email

        self.update_variant_fields(record, txn, identity)

    def upsert(self, txn):
        """
        Link a transaction to the record for its grouping key, moving it off
        any record it was previously linked to under a different key, then
        reconcile the record.
        """
        key = self.key_for_transaction(txn)

        record = None
        for linked in list(self.linked_records(txn)):
            old_key = self.record_key(linked)
            if old_key == key:
                record = linked
                continue
            self._unlink(linked, txn)
            logger.info(f"Transaction {txn.pk} moved off {self.kind} ledger {old_key} to {key}")
            self.reconcile(old_key)

        if record is None:
            record, created = self.model.objects.get_or_create(**key, defaults=self.record_defaults(txn))
            if created:
                logger.info(f"Created {self.kind} ledger {key} from transaction {txn.pk}")

        self._link(record, txn)
        self._update_descriptive_fields(record, txn)
        record.save()

        return self.reconcile(key)

    def reconcile(self, key):
        """
        Recompute a record from every real transaction matching its key.
        Idempotent. Returns the record, or None when no record exists yet.
        """
        record = self.find_record(key)
        if record is None:
            logger.warning(f"No {self.kind} ledger for {key}; nothing to reconcile")
            return None

        matches = list(self.matching_transactions(key).order_by('transaction_date', 'id'))
        revenue = [txn for txn in matches if txn.transaction_type == 'income']
        expense = [txn for txn in matches if txn.transaction_type == 'expense']

        record.total_revenue = sum((txn.amount for txn in revenue), ZERO)
        record.total_expense = sum((txn.amount for txn in expense), ZERO)
        record.net_income = record.total_revenue - record.total_expense
        record.transaction_count = len(matches)
        self.apply_reconciled_fields(record, revenue, expense)
        record.last_reconciled_at = timezone.now()

        with db_transaction.atomic():
            record.save()
            record.revenue_transactions.set(revenue)
            record.expense_transactions.set(expense)

        logger.info(
            f"Reconciled {self.kind} ledger {key}: revenue {record.total_revenue}, "
            f"expense {record.total_expense}, {record.transaction_count} transactions"
        )
        return record

    def detach(self, txn):
        """Drop a transaction from every record of this kind. Returns the keys touched"""
        keys = []
        for record in list(self.linked_records(txn)):
            key = self.record_key(record)
            self._unlink(record, txn)
            self.reconcile(key)
            keys.append(key)
        if keys:
            logger.info(f"Detached transaction {txn.pk} from {self.kind} ledgers {keys}")
        return keys

    def linked_keys(self, txn):
        return [self.record_key(record) for record in self.linked_records(txn)]

    def reconcile_all(self):
        count = 0
        for record in self.model.objects.all():
            self.reconcile(self.record_key(record))
            count += 1
        logger.info(f"Reconciled {count} {self.kind} ledgers")
        return count


class MemberFeeLedgerService(LedgerSyncService):
    """One record per (member, fiscal year)"""

    kind = 'member_fee'
    model = MemberFeeRecord
    key_fields = ('member_id', 'fiscal_year')

    def applies_to(self, txn):
        return txn.category == CATEGORY_MEMBER_FEES

    def key_for_transaction(self, txn):
        if not txn.member_id:
            raise LedgerValidationError(
                f"Member-fee transaction {txn.pk} has no member reference",
                error_code='missing_member_id',
                context={'transaction_id': txn.pk},
            )
        return {
            'member_id': txn.member_id,
            'fiscal_year': self.config.fiscal_year_label(txn.transaction_date),
        }

    def matching_transactions(self, key):
        # Matched on the date itself so a stale stored label cannot hide a payment
        fiscal_range = self.config.fiscal_year_range_for_label(key['fiscal_year'])
        return Transaction.objects.filter(
            is_virtual=False,
            category=CATEGORY_MEMBER_FEES,
            member_id=key['member_id'],
            transaction_date__gte=fiscal_range.start,
            transaction_date__lte=fiscal_range.end,
        )

    def record_defaults(self, txn):
        return {
            'expected_amount': txn.amount if txn.transaction_type == 'income' else ZERO,
            'due_date': self.config.fiscal_year_range(txn.transaction_date).end,
        }

    def update_variant_fields(self, record, txn, identity):
        if identity is not None and identity.category:
            record.member_category = identity.category

    def apply_reconciled_fields(self, record, revenue, expense):
        record.paid_amount = record.total_revenue
        record.remaining_amount = max(record.expected_amount - record.paid_amount, ZERO)
        record.payment_date = max((txn.transaction_date for txn in revenue), default=None)

        if record.status == 'waived':
            return
        record.status = self.resolve_status(record)

    @staticmethod
    def resolve_status(record, today=None):
        """Status from the reconciled amounts; an unpaid fee is judged against today"""
        if record.expected_amount <= 0:
            return 'unpaid'
        if record.remaining_amount <= 0:
            return 'paid'
        settled_on = record.payment_date or today or timezone.localdate()
        if record.due_date and settled_on > record.due_date:
            return 'overdue'
        if record.paid_amount <= 0:
            return 'unpaid'
        return 'partial'

    def update_overdue_status(self, as_of=None):
        """Mark unpaid and partial records past their due date as overdue. Returns the count"""
        as_of = as_of or timezone.localdate()
        updated = MemberFeeRecord.objects.filter(
            status__in=('unpaid', 'partial'),
            due_date__lt=as_of,
        ).update(status='overdue', updated_at=timezone.now())

        logger.info(f"Marked {updated} member fee records overdue (due before {as_of})")
        return updated

    def waive(self, record, reason, user=None):
        """Waive a member fee; reconcile keeps the waived status from then on"""
        if not reason or not reason.strip():
            raise LedgerValidationError('A reason is required to waive a fee', error_code='missing_reason')

        record.status = 'waived'
        record.notes = f"Waived: {reason.strip()}"
        record.save(update_fields=['status', 'notes', 'updated_at'])

        logger.info(f"Waived member fee {record.pk} ({record.member_id} {record.fiscal_year}) "
                    f"by {user or 'system'}: {reason.strip()}")
        return record

    def get_statistics(self, fiscal_year=None, as_of=None):
        """
        Collection totals over member fee records.

        total_overdue counts what remains on unsettled records already past
        their due date; collection_rate is collected over expected, in percent.
        """
        as_of = as_of or timezone.localdate()
        queryset = MemberFeeRecord.objects.all()
        if fiscal_year:
            queryset = queryset.filter(fiscal_year=fiscal_year)

        totals = queryset.aggregate(
            expected=Sum('expected_amount'),
            collected=Sum('paid_amount'),
            outstanding=Sum('remaining_amount'),
            overdue=Sum('remaining_amount', filter=~Q(status='paid') & Q(due_date__lt=as_of)),
        )
        total_expected = totals['expected'] or ZERO
        total_collected = totals['collected'] or ZERO

        collection_rate = ZERO
        if total_expected > 0:
            collection_rate = (total_collected / total_expected * 100).quantize(Decimal('0.01'))

        return {
            'total_expected': total_expected,
            'total_collected': total_collected,
            'total_outstanding': totals['outstanding'] or ZERO,
            'total_overdue': totals['overdue'] or ZERO,
            'collection_rate': collection_rate,
        }


class EventLedgerService(LedgerSyncService):
    """One record per event"""

    kind = 'event'
    model = EventFinancialRecord
    key_fields = ('event_id',)

    def applies_to(self, txn):
        return txn.category == CATEGORY_EVENT_FINANCE

    def key_for_transaction(self, txn):
        if not txn.event_id:
            raise LedgerValidationError(
                f"Event transaction {txn.pk} has no event reference",
                error_code='missing_event_id',
                context={'transaction_id': txn.pk},
            )
        return {'event_id': txn.event_id}

    def matching_transactions(self, key):
        return Transaction.objects.filter(
            is_virtual=False,
            category=CATEGORY_EVENT_FINANCE,
            event_id=key['event_id'],
        )

    def record_defaults(self, txn):
        return {
            'event_name': txn.event_name,
            'event_date': txn.transaction_date,
            'fiscal_year': txn.fiscal_year,
            'tx_account': txn.tx_account,
        }

    def update_variant_fields(self, record, txn, identity):
        if txn.event_name:
            record.event_name = txn.event_name
        if txn.tx_account:
            record.tx_account = txn.tx_account


class GeneralLedgerService(LedgerSyncService):
    """One record per (category, sub-category code)"""

    kind = 'general'
    model = GeneralFinancialRecord
    key_fields = ('category', 'sub_category')

    def applies_to(self, txn):
        return txn.category == CATEGORY_GENERAL_ACCOUNTS

    def key_for_transaction(self, txn):
        if not txn.category:
            raise LedgerValidationError(
                f"Transaction {txn.pk} has no category",
                error_code='missing_category',
                context={'transaction_id': txn.pk},
            )
        return {'category': txn.category, 'sub_category': txn.tx_account or ''}

    def matching_transactions(self, key):
        # Blank sub-category matches only transactions without a code
        return Transaction.objects.filter(
            is_virtual=False,
            category=key['category'],
            tx_account=key['sub_category'],
        )


LEDGER_SERVICES = {
    MemberFeeLedgerService.kind: MemberFeeLedgerService,
    EventLedgerService.kind: EventLedgerService,
    GeneralLedgerService.kind: GeneralLedgerService,
}


def get_ledger_service(kind, config=None):
    try:
        service_class = LEDGER_SERVICES[kind]
    except KeyError:
        raise LedgerValidationError(f"Unknown ledger kind: {kind}", error_code='unknown_ledger_kind')
    return service_class(config=config)


class LedgerSyncDispatcher:
    """
    Entry point for transaction writes. Routes a transaction to the ledger
    of its category and detaches it from every other ledger.

    Failures are logged and swallowed: a ledger is a derived view and must
    never undo the write that triggered it.
    """

    def __init__(self, config=None):
        self.config = config

    def get_services(self):
        config = self.config or LedgerConfig.from_settings()
        return [service_class(config=config) for service_class in LEDGER_SERVICES.values()]

    def sync_transaction(self, txn):
        eligible = not txn.is_virtual and not txn.is_split
        outcome = {}

        for service in self.get_services():
            try:
                with db_transaction.atomic():
                    if eligible and service.applies_to(txn):
                        service.upsert(txn)
                        outcome[service.kind] = 'upserted'
                    else:
                        detached = service.detach(txn)
                        outcome[service.kind] = 'detached' if detached else 'skipped'
            except LedgerBaseException as e:
                outcome[service.kind] = 'failed'
                logger.warning(f"Ledger sync ({service.kind}) skipped for transaction {txn.pk}: {e.message}")
            except Exception:
                outcome[service.kind] = 'failed'
                logger.exception(f"Ledger sync ({service.kind}) failed for transaction {txn.pk}")

        return outcome

    def linked_keys(self, txn):
        """[(kind, key), ...] for every record currently linking the transaction"""
        keys = []
        for service in self.get_services():
            keys.extend((service.kind, key) for key in service.linked_keys(txn))
        return keys

    def reconcile_keys(self, keys):
        for kind, key in keys:
            try:
                with db_transaction.atomic():
                    get_ledger_service(kind, config=self.config).reconcile(key)
            except Exception:
                logger.exception(f"Reconcile of {kind} ledger {key} failed")


# Global dispatcher instance
ledger_sync = LedgerSyncDispatcher()
