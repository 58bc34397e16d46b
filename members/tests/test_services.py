"""
Test Member Directory
"""

from django.test import TestCase

from members.models import Member
from members.services import MemberDirectory, MemberIdentity


class MemberDirectoryTest(TestCase):

    def setUp(self):
        self.directory = MemberDirectory()
        Member.objects.create(
            member_id='M-100', name='Tan Wei Ming', email='weiming@example.org', category='associate'
        )

    def test_resolve_known_member(self):
        identity = self.directory.resolve('M-100')

        self.assertEqual(
            identity,
            MemberIdentity(member_id='M-100', name='Tan Wei Ming', email='weiming@example.org', category='associate'),
        )

    def test_resolve_unknown_member(self):
        self.assertIsNone(self.directory.resolve('M-999'))

    def test_resolve_blank_id(self):
        self.assertIsNone(self.directory.resolve(''))
        self.assertIsNone(self.directory.resolve(None))
