from django.contrib import admin, messages

from .ledger_service import EventLedgerService, GeneralLedgerService, MemberFeeLedgerService
from .models import EventFinancialRecord, GeneralFinancialRecord, MemberFeeRecord

TOTAL_FIELDS = (
    'total_revenue', 'total_expense', 'net_income', 'transaction_count',
    'last_reconciled_at', 'created_at', 'updated_at',
)


class ReconcileActionMixin:
    """Admin action that recomputes the selected records from their transactions"""
    ledger_service_class = None
    actions = ['reconcile_selected']

    @admin.action(description='Reconcile selected records')
    def reconcile_selected(self, request, queryset):
        service = self.ledger_service_class()
        for record in queryset:
            service.reconcile(service.record_key(record))
        self.message_user(request, f"Reconciled {queryset.count()} records", messages.SUCCESS)


@admin.register(MemberFeeRecord)
class MemberFeeRecordAdmin(ReconcileActionMixin, admin.ModelAdmin):
    ledger_service_class = MemberFeeLedgerService
    list_display = ('member_id', 'member_name', 'fiscal_year', 'expected_amount', 'paid_amount', 'remaining_amount', 'status')
    list_filter = ('fiscal_year', 'status', 'member_category')
    search_fields = ('member_id', 'member_name', 'member_email')
    readonly_fields = TOTAL_FIELDS + ('paid_amount', 'remaining_amount', 'payment_date')


@admin.register(EventFinancialRecord)
class EventFinancialRecordAdmin(ReconcileActionMixin, admin.ModelAdmin):
    ledger_service_class = EventLedgerService
    list_display = ('event_id', 'event_name', 'event_date', 'total_revenue', 'total_expense', 'net_income', 'status')
    list_filter = ('status', 'fiscal_year')
    search_fields = ('event_id', 'event_name')
    readonly_fields = TOTAL_FIELDS


@admin.register(GeneralFinancialRecord)
class GeneralFinancialRecordAdmin(ReconcileActionMixin, admin.ModelAdmin):
    ledger_service_class = GeneralLedgerService
    list_display = ('category', 'sub_category', 'total_revenue', 'total_expense', 'net_income', 'transaction_count', 'status')
    list_filter = ('category', 'status')
    search_fields = ('category', 'sub_category')
    readonly_fields = TOTAL_FIELDS
