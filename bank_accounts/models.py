from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models

from core.models import TimeStampedModel, UserTrackingModel
from core.validators import validate_non_negative_amount, validate_classification_code
from .details import (
    CATEGORY_EVENT_FINANCE,
    CATEGORY_GENERAL_ACCOUNTS,
    CATEGORY_MEMBER_FEES,
    CATEGORY_UNALLOCATED,
    details_fields,
    details_for,
    missing_detail_fields,
)


class BankAccount(TimeStampedModel):
    """Organisation bank account. Opening balance anchors every running balance."""

    ACCOUNT_STATUS = [
        ('active', 'Active'),
        ('inactive', 'Inactive'),
        ('closed', 'Closed'),
    ]

    account_name = models.CharField(max_length=200)
    account_number = models.CharField(max_length=50, unique=True)
    bank_name = models.CharField(max_length=200, blank=True)
    currency = models.CharField(max_length=3, default='MYR')
    opening_balance = models.DecimalField(
        max_digits=15, decimal_places=2, default=Decimal('0.00'),
        help_text="Balance before the first recorded transaction"
    )
    status = models.CharField(max_length=20, choices=ACCOUNT_STATUS, default='active')
    description = models.TextField(blank=True)

    class Meta:
        ordering = ['account_name']

    def __str__(self):
        return f"{self.account_name} ({self.account_number})"

    @property
    def is_active(self):
        return self.status == 'active'


class Transaction(TimeStampedModel, UserTrackingModel):
    """
    Atomic ledger entry.

    Real rows move money. Virtual rows are split allocations of a real
    parent and never touch a balance.
    """

    TRANSACTION_TYPE = [
        ('income', 'Income'),
        ('expense', 'Expense'),
    ]

    TRANSACTION_STATUS = [
        ('pending', 'Pending'),
        ('completed', 'Completed'),
        ('cancelled', 'Cancelled'),
    ]

    CATEGORY_CHOICES = [
        (CATEGORY_MEMBER_FEES, 'Member Fees'),
        (CATEGORY_EVENT_FINANCE, 'Event Finance'),
        (CATEGORY_GENERAL_ACCOUNTS, 'General Accounts'),
        (CATEGORY_UNALLOCATED, 'Unallocated'),
    ]

    PAYMENT_METHOD = [
        ('bank_transfer', 'Bank Transfer'),
        ('cash', 'Cash'),
        ('cheque', 'Cheque'),
        ('card', 'Card'),
        ('online', 'Online Payment'),
        ('other', 'Other'),
    ]

    transaction_number = models.CharField(max_length=40, blank=True, db_index=True)
    bank_account = models.ForeignKey(BankAccount, on_delete=models.PROTECT, related_name='transactions')

    transaction_date = models.DateField()
    transaction_type = models.CharField(max_length=10, choices=TRANSACTION_TYPE)
    amount = models.DecimalField(max_digits=15, decimal_places=2, validators=[validate_non_negative_amount])
    status = models.CharField(max_length=20, choices=TRANSACTION_STATUS, default='completed')

    main_description = models.CharField(max_length=255)
    sub_description = models.CharField(max_length=255, blank=True)
    payer_payee = models.CharField(max_length=200, blank=True)
    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHOD, blank=True)
    notes = models.TextField(blank=True)

    # Classification
    category = models.CharField(max_length=30, choices=CATEGORY_CHOICES, blank=True)
    tx_account = models.CharField(
        max_length=30, blank=True, validators=[validate_classification_code],
        help_text="Secondary classification code, e.g. TXGA-0007 for internal transfers"
    )
    fiscal_year = models.CharField(max_length=10, blank=True, help_text="Derived from transaction date on write")

    # Category references (see details property)
    member_id = models.CharField(max_length=50, blank=True)
    event_id = models.CharField(max_length=50, blank=True)
    event_name = models.CharField(max_length=200, blank=True)

    # Split structure
    is_virtual = models.BooleanField(default=False, help_text="Split allocation; excluded from balances")
    parent = models.ForeignKey(
        'self', on_delete=models.CASCADE, null=True, blank=True, related_name='children'
    )
    is_split = models.BooleanField(default=False)
    split_count = models.PositiveIntegerField(null=True, blank=True)
    allocated_amount = models.DecimalField(max_digits=15, decimal_places=2, null=True, blank=True)
    unallocated_amount = models.DecimalField(max_digits=15, decimal_places=2, null=True, blank=True)

    class Meta:
        ordering = ['-transaction_date', '-id']
        indexes = [
            models.Index(fields=['bank_account', 'transaction_date'], name='txn_account_date_idx'),
            models.Index(fields=['tx_account'], name='txn_tx_account_idx'),
            models.Index(fields=['category', 'tx_account'], name='txn_category_idx'),
            models.Index(fields=['member_id', 'fiscal_year'], name='txn_member_fy_idx'),
            models.Index(fields=['event_id'], name='txn_event_idx'),
            models.Index(fields=['is_virtual'], name='txn_virtual_idx'),
        ]

    def __str__(self):
        return f"{self.transaction_number or self.pk} {self.transaction_type} {self.amount} - {self.main_description[:40]}"

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        # Remember the stored account so a move can invalidate both balance caches
        instance._loaded_bank_account_id = instance.__dict__.get('bank_account_id')
        return instance

    @property
    def signed_amount(self):
        """Income adds, expense subtracts"""
        if self.transaction_type == 'income':
            return self.amount
        return -self.amount

    @property
    def details(self):
        return details_for(
            self.category,
            member_id=self.member_id,
            event_id=self.event_id,
            event_name=self.event_name,
            tx_account=self.tx_account,
            fiscal_year=self.fiscal_year,
        )

    def apply_details(self, details):
        """Write a details variant onto the reference columns, clearing the rest"""
        self.member_id = ''
        self.event_id = ''
        self.event_name = ''
        for name, value in details_fields(details).items():
            setattr(self, name, value)

    def clean(self):
        errors = {}

        if self.is_virtual and not self.parent_id:
            errors['parent'] = 'Virtual transactions must reference a parent transaction.'

        if self.parent_id:
            if self.is_split:
                errors['is_split'] = 'A split child cannot be split again.'
            if self.parent and self.parent.parent_id:
                errors['parent'] = 'Nested splitting is not supported.'

        if self.event_id and self.category != CATEGORY_EVENT_FINANCE:
            errors['event_id'] = 'Only event-finance transactions may carry an event reference.'

        # Virtual rows never feed the ledgers, so their references stay optional
        if not self.is_virtual:
            for field_name in missing_detail_fields(self.details):
                errors[field_name] = f'Required for category {self.category}.'

        if errors:
            raise ValidationError(errors)
