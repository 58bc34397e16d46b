"""
Explicit configuration object for the ledger engine.

Built once from settings.FINANCE_LEDGER and handed to the services that need
it, instead of being read from a shared mutable holder at call time.
"""
from dataclasses import dataclass
from datetime import date

from dateutil.relativedelta import relativedelta
from django.conf import settings


DEFAULTS = {
    'FISCAL_YEAR_START_MONTH': 10,
    'INTERNAL_TRANSFER_CODE': 'TXGA-0007',
    'TRANSFER_DATE_TOLERANCE_DAYS': 1,
    'RECONCILE_DEBOUNCE_SECONDS': 30,
    'IDENTITY_RESOLVER': 'members.services.MemberDirectory',
    'CURRENCY_LABEL': 'RM',
}


@dataclass(frozen=True)
class DateRange:
    """Inclusive date range"""
    start: date
    end: date

    def __post_init__(self):
        if self.start > self.end:
            raise ValueError(f"DateRange start {self.start} is after end {self.end}")

    def __contains__(self, value):
        return self.start <= value <= self.end


@dataclass(frozen=True)
class LedgerConfig:
    fiscal_year_start_month: int = 10
    internal_transfer_code: str = 'TXGA-0007'
    transfer_date_tolerance_days: int = 1
    reconcile_debounce_seconds: int = 30
    identity_resolver: str = 'members.services.MemberDirectory'
    currency_label: str = 'RM'

    def __post_init__(self):
        if not 1 <= self.fiscal_year_start_month <= 12:
            raise ValueError(f"Invalid fiscal year start month: {self.fiscal_year_start_month}")
        if self.transfer_date_tolerance_days < 0:
            raise ValueError("Transfer date tolerance cannot be negative")

    @classmethod
    def from_settings(cls):
        values = {**DEFAULTS, **getattr(settings, 'FINANCE_LEDGER', {})}
        return cls(
            fiscal_year_start_month=int(values['FISCAL_YEAR_START_MONTH']),
            internal_transfer_code=values['INTERNAL_TRANSFER_CODE'],
            transfer_date_tolerance_days=int(values['TRANSFER_DATE_TOLERANCE_DAYS']),
            reconcile_debounce_seconds=int(values['RECONCILE_DEBOUNCE_SECONDS']),
            identity_resolver=values['IDENTITY_RESOLVER'],
            currency_label=values['CURRENCY_LABEL'],
        )

    def fiscal_year_start(self, as_of):
        """First day of the fiscal year containing as_of"""
        start = date(as_of.year, self.fiscal_year_start_month, 1)
        if as_of < start:
            start = start - relativedelta(years=1)
        return start

    def fiscal_year_label(self, as_of):
        """
        Label such as 'FY2024'. A fiscal year starting mid-calendar is named
        by the calendar year it starts in; January starts name their own year.
        """
        return f"FY{self.fiscal_year_start(as_of).year}"

    def fiscal_year_range(self, as_of):
        start = self.fiscal_year_start(as_of)
        return DateRange(start, start + relativedelta(years=1, days=-1))

    def fiscal_year_range_for_label(self, label):
        """DateRange for a label produced by fiscal_year_label"""
        if not label or not label.startswith('FY') or not label[2:].isdigit():
            raise ValueError(f"Invalid fiscal year label: {label!r}")
        start = date(int(label[2:]), self.fiscal_year_start_month, 1)
        return DateRange(start, start + relativedelta(years=1, days=-1))
