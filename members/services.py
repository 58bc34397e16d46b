"""
Member directory used to denormalise names onto ledger records.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from .models import Member

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MemberIdentity:
    member_id: str
    name: str
    email: str = ''
    category: str = ''


class MemberDirectory:
    """Resolves member ids to display identities"""

    def resolve(self, member_id) -> Optional[MemberIdentity]:
        if not member_id:
            return None

        member = Member.objects.filter(member_id=member_id).first()
        if member is None:
            logger.info(f"Member {member_id} not found in directory")
            return None

        return MemberIdentity(
            member_id=member.member_id,
            name=member.name,
            email=member.email,
            category=member.category,
        )
