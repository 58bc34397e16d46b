from django.contrib import admin

from .models import BankAccount, Transaction


@admin.register(BankAccount)
class BankAccountAdmin(admin.ModelAdmin):
    list_display = ('account_name', 'account_number', 'bank_name', 'currency', 'opening_balance', 'status')
    list_filter = ('status', 'bank_name', 'currency')
    search_fields = ('account_name', 'account_number', 'bank_name')
    readonly_fields = ('created_at', 'updated_at')


class SplitChildInline(admin.TabularInline):
    model = Transaction
    fk_name = 'parent'
    extra = 0
    can_delete = False
    fields = ('transaction_number', 'amount', 'category', 'tx_account', 'sub_description', 'notes')
    readonly_fields = fields
    show_change_link = True


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = (
        'transaction_number', 'transaction_date', 'bank_account', 'transaction_type', 'amount',
        'category', 'tx_account', 'is_virtual', 'is_split', 'status',
    )
    list_filter = ('transaction_type', 'status', 'category', 'is_virtual', 'is_split', 'bank_account')
    search_fields = ('transaction_number', 'main_description', 'sub_description', 'payer_payee', 'member_id', 'event_id')
    date_hierarchy = 'transaction_date'
    readonly_fields = (
        'fiscal_year', 'is_virtual', 'parent', 'is_split', 'split_count',
        'allocated_amount', 'unallocated_amount', 'created_at', 'updated_at', 'created_by', 'updated_by',
    )
    inlines = [SplitChildInline]

    def get_queryset(self, request):
        return super().get_queryset(request).select_related('bank_account', 'parent')
