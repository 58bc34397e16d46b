from django.db import models

from core.models import TimeStampedModel


class Member(TimeStampedModel):
    """Organisation member referenced by member-fee transactions"""

    MEMBER_STATUS = [
        ('active', 'Active'),
        ('inactive', 'Inactive'),
        ('suspended', 'Suspended'),
    ]

    member_id = models.CharField(max_length=50, unique=True, help_text="External member reference used on transactions")
    name = models.CharField(max_length=200)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=30, blank=True)
    category = models.CharField(max_length=50, blank=True, help_text="Membership category, e.g. official or associate")
    status = models.CharField(max_length=20, choices=MEMBER_STATUS, default='active')

    class Meta:
        ordering = ['name']
        indexes = [
            models.Index(fields=['status'], name='member_status_idx'),
        ]

    def __str__(self):
        return f"{self.member_id} - {self.name}"
