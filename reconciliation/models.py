from decimal import Decimal

from django.db import models

from core.models import TimeStampedModel


class FinancialRecord(TimeStampedModel):
    """
    Denormalised summary of every transaction sharing a grouping key.

    Totals and linkage are a cache; reconciliation recomputes them from the
    transaction table, which is the only source of truth.
    """
    total_revenue = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    total_expense = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    net_income = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    transaction_count = models.PositiveIntegerField(default=0)

    revenue_transactions = models.ManyToManyField(
        'bank_accounts.Transaction', blank=True, related_name='%(class)s_revenue_records'
    )
    expense_transactions = models.ManyToManyField(
        'bank_accounts.Transaction', blank=True, related_name='%(class)s_expense_records'
    )

    # Display fields copied from the latest linked transaction / member directory
    payer_payee = models.CharField(max_length=200, blank=True)
    member_name = models.CharField(max_length=200, blank=True)
    member_email = models.EmailField(blank=True)

    notes = models.TextField(blank=True)
    last_reconciled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        abstract = True

    @property
    def revenue_transaction_ids(self):
        return sorted(self.revenue_transactions.values_list('id', flat=True))

    @property
    def expense_transaction_ids(self):
        return sorted(self.expense_transactions.values_list('id', flat=True))

    def links_transaction(self, transaction_id):
        return (
            self.revenue_transactions.filter(pk=transaction_id).exists()
            or self.expense_transactions.filter(pk=transaction_id).exists()
        )


class MemberFeeRecord(FinancialRecord):
    """Member fee ledger for one member in one fiscal year"""

    FEE_STATUS = [
        ('unpaid', 'Unpaid'),
        ('partial', 'Partially Paid'),
        ('paid', 'Paid'),
        ('overdue', 'Overdue'),
        ('waived', 'Waived'),
    ]

    member_id = models.CharField(max_length=50)
    fiscal_year = models.CharField(max_length=10)
    member_category = models.CharField(max_length=50, blank=True)

    expected_amount = models.DecimalField(
        max_digits=15, decimal_places=2, default=Decimal('0.00'),
        help_text="Fee due for the fiscal year; seeded from the first linked payment"
    )
    paid_amount = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    remaining_amount = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    due_date = models.DateField(null=True, blank=True)
    payment_date = models.DateField(null=True, blank=True, help_text="Date of the latest linked payment")
    status = models.CharField(max_length=20, choices=FEE_STATUS, default='unpaid')

    class Meta:
        ordering = ['-fiscal_year', 'member_id']
        constraints = [
            models.UniqueConstraint(fields=['member_id', 'fiscal_year'], name='unique_member_fee_per_year'),
        ]

    def __str__(self):
        return f"{self.member_id} {self.fiscal_year} ({self.status})"


class EventFinancialRecord(FinancialRecord):
    """Income and spending of a single event"""

    EVENT_STATUS = [
        ('draft', 'Draft'),
        ('active', 'Active'),
        ('completed', 'Completed'),
        ('reconciled', 'Reconciled'),
    ]

    event_id = models.CharField(max_length=50, unique=True)
    event_name = models.CharField(max_length=200, blank=True)
    event_date = models.DateField(null=True, blank=True)
    fiscal_year = models.CharField(max_length=10, blank=True)
    tx_account = models.CharField(max_length=30, blank=True)
    status = models.CharField(max_length=20, choices=EVENT_STATUS, default='active')

    class Meta:
        ordering = ['-event_date', 'event_id']

    def __str__(self):
        return f"{self.event_name or self.event_id} ({self.status})"


class GeneralFinancialRecord(FinancialRecord):
    """General account totals per category and sub-category code"""

    RECORD_STATUS = [
        ('active', 'Active'),
        ('archived', 'Archived'),
    ]

    category = models.CharField(max_length=30)
    sub_category = models.CharField(max_length=30, blank=True, help_text="Blank only matches transactions without a code")
    status = models.CharField(max_length=20, choices=RECORD_STATUS, default='active')

    class Meta:
        ordering = ['category', 'sub_category']
        constraints = [
            models.UniqueConstraint(fields=['category', 'sub_category'], name='unique_general_record_key'),
        ]

    def __str__(self):
        return f"{self.category} / {self.sub_category or '-'}"
