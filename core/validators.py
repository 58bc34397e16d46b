"""
Custom validators for ledger models.
"""
import re
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.utils.translation import gettext_lazy as _


def validate_non_negative_amount(value):
    """
    Amounts are stored unsigned; direction carries the sign.
    """
    if value is not None and Decimal(value) < 0:
        raise ValidationError(
            _('Amount cannot be negative. Use the transaction type for direction.'),
            code='negative_amount'
        )


def validate_classification_code(value):
    """
    Validate a secondary classification code such as TXGA-0007.
    Letters, digits and dashes only.
    """
    if value and not re.match(r'^[A-Za-z0-9][A-Za-z0-9\-]*$', value):
        raise ValidationError(
            _('Classification codes may only contain letters, digits and dashes.'),
            code='invalid_classification_code'
        )
