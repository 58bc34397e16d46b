"""
Typed category details carried by a transaction.

Each primary category allows a fixed set of foreign references; the variant
is selected by the category so that, for example, an event id never rides
on a member-fee row.
"""
from dataclasses import dataclass
from typing import Optional, Union


CATEGORY_MEMBER_FEES = 'member-fees'
CATEGORY_EVENT_FINANCE = 'event-finance'
CATEGORY_GENERAL_ACCOUNTS = 'general-accounts'
CATEGORY_UNALLOCATED = 'unallocated'

CATEGORY_LABELS = {
    CATEGORY_MEMBER_FEES: 'Member Fees',
    CATEGORY_EVENT_FINANCE: 'Event Finance',
    CATEGORY_GENERAL_ACCOUNTS: 'General Accounts',
    CATEGORY_UNALLOCATED: 'Unallocated',
}


@dataclass(frozen=True)
class MemberFeeDetails:
    member_id: str
    fiscal_year: str = ''


@dataclass(frozen=True)
class EventDetails:
    event_id: str
    event_name: str = ''
    member_id: str = ''


@dataclass(frozen=True)
class GeneralDetails:
    sub_category: str = ''
    member_id: str = ''


TransactionDetails = Union[MemberFeeDetails, EventDetails, GeneralDetails]


def details_for(category, member_id='', event_id='', event_name='',
                tx_account='', fiscal_year='') -> Optional[TransactionDetails]:
    """Build the details variant for a category, None for uncategorised rows"""
    if category == CATEGORY_MEMBER_FEES:
        return MemberFeeDetails(member_id=member_id or '', fiscal_year=fiscal_year or '')
    if category == CATEGORY_EVENT_FINANCE:
        return EventDetails(event_id=event_id or '', event_name=event_name or '', member_id=member_id or '')
    if category == CATEGORY_GENERAL_ACCOUNTS:
        return GeneralDetails(sub_category=tx_account or '', member_id=member_id or '')
    return None


def missing_detail_fields(details):
    """Names of required reference fields that are empty for this variant"""
    if isinstance(details, MemberFeeDetails) and not details.member_id:
        return ['member_id']
    if isinstance(details, EventDetails) and not details.event_id:
        return ['event_id']
    return []


def category_label(category):
    return CATEGORY_LABELS.get(category, category or 'Uncategorised')


def details_fields(details):
    """Column values for a details variant, suitable for a transaction update"""
    if isinstance(details, MemberFeeDetails):
        return {'member_id': details.member_id, 'event_id': '', 'event_name': ''}
    if isinstance(details, EventDetails):
        return {'member_id': details.member_id, 'event_id': details.event_id, 'event_name': details.event_name}
    if isinstance(details, GeneralDetails):
        fields = {'member_id': details.member_id, 'event_id': '', 'event_name': ''}
        if details.sub_category:
            fields['tx_account'] = details.sub_category
        return fields
    return {}
