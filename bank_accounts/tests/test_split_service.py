"""
Test Split / Unsplit Engine

Covers allocation conservation, re-splitting, unsplitting and batch isolation.
"""

from decimal import Decimal

from django.contrib.auth.models import User
from django.core.cache import caches
from django.test import TestCase

from bank_accounts.models import Transaction
from bank_accounts.services import TransactionService
from bank_accounts.split_service import SplitService
from core.exceptions import SplitValidationError, TransactionNotFound
from reconciliation.models import GeneralFinancialRecord
from .helpers import make_account, make_transaction


class SplitTransactionTest(TestCase):
    """Test cases for SplitService.split_transaction"""

    def setUp(self):
        caches['balances'].clear()
        caches['default'].clear()
        self.user = User.objects.create_user(username='treasurer', password='testpass123')
        self.account = make_account(opening_balance='1000.00')
        self.parent = make_transaction(
            self.account, '300.00', 'income',
            category='general-accounts',
            tx_account='TXGA-0001',
            transaction_number='TXN-2024-7890-0001',
            payment_method='bank_transfer',
            payer_payee='Alumni Association',
        )
        self.allocations = [
            {'amount': 100, 'category': 'member-fees'},
            {'amount': 150, 'category': 'general-accounts'},
        ]

    def test_split_creates_children_and_unallocated_remainder(self):
        """Test 300 split as 100 + 150 leaves a 50 unallocated child"""
        result = SplitService.split_transaction(self.parent.pk, self.allocations, user=self.user)

        self.assertEqual(len(result.children), 3)
        self.assertEqual(len(result.allocated_children), 2)
        self.assertIsNotNone(result.unallocated_child)
        self.assertEqual(result.unallocated_child.category, 'unallocated')
        self.assertEqual(result.unallocated_child.amount, Decimal('50.00'))
        self.assertEqual(result.unallocated_child.notes, SplitService.UNALLOCATED_NOTE)

        parent = Transaction.objects.get(pk=self.parent.pk)
        self.assertTrue(parent.is_split)
        self.assertEqual(parent.split_count, 3)
        self.assertEqual(parent.allocated_amount, Decimal('250.00'))
        self.assertEqual(parent.unallocated_amount, Decimal('50.00'))

    def test_split_clears_parent_classification(self):
        """Test the parent loses its category and code once split"""
        SplitService.split_transaction(self.parent.pk, self.allocations)

        parent = Transaction.objects.get(pk=self.parent.pk)
        self.assertEqual(parent.category, '')
        self.assertEqual(parent.tx_account, '')

    def test_children_sum_to_parent_amount(self):
        """Test split conservation"""
        SplitService.split_transaction(self.parent.pk, [{'amount': '33.33', 'category': 'event-finance'}])

        children = SplitService.get_split_children(self.parent.pk)
        self.assertEqual(sum(child.amount for child in children), self.parent.amount)

    def test_children_inherit_parent_fields(self):
        """Test children copy ledger fields and are virtual"""
        result = SplitService.split_transaction(self.parent.pk, self.allocations, user=self.user)

        for child in result.children:
            self.assertTrue(child.is_virtual)
            self.assertEqual(child.parent_id, self.parent.pk)
            self.assertEqual(child.bank_account_id, self.parent.bank_account_id)
            self.assertEqual(child.transaction_date, self.parent.transaction_date)
            self.assertEqual(child.transaction_type, self.parent.transaction_type)
            self.assertEqual(child.main_description, self.parent.main_description)
            self.assertEqual(child.payment_method, 'bank_transfer')
            self.assertEqual(child.status, self.parent.status)
            self.assertEqual(child.created_by, self.user)

    def test_child_sub_description_names_category_and_amount(self):
        result = SplitService.split_transaction(self.parent.pk, self.allocations)

        self.assertEqual(result.children[0].sub_description, 'Member Fees - RM 100.00')
        self.assertEqual(result.children[1].sub_description, 'General Accounts - RM 150.00')
        self.assertEqual(result.children[0].transaction_number, 'TXN-2024-7890-0001-S1')

    def test_exact_allocation_creates_no_unallocated_child(self):
        result = SplitService.split_transaction(
            self.parent.pk,
            [{'amount': 200, 'category': 'member-fees'}, {'amount': 100, 'category': 'event-finance'}],
        )

        self.assertIsNone(result.unallocated_child)
        self.assertEqual(len(result.children), 2)
        parent = Transaction.objects.get(pk=self.parent.pk)
        self.assertEqual(parent.unallocated_amount, Decimal('0.00'))

    def test_over_allocation_rejected(self):
        """Test allocations above the parent amount fail without side effects"""
        with self.assertRaises(SplitValidationError) as ctx:
            SplitService.split_transaction(
                self.parent.pk,
                [{'amount': 200, 'category': 'member-fees'}, {'amount': 150, 'category': 'general-accounts'}],
            )

        self.assertEqual(ctx.exception.error_code, 'over_allocated')
        self.assertFalse(Transaction.objects.filter(parent=self.parent).exists())
        parent = Transaction.objects.get(pk=self.parent.pk)
        self.assertFalse(parent.is_split)
        self.assertEqual(parent.category, 'general-accounts')

    def test_missing_parent_raises_not_found(self):
        with self.assertRaises(TransactionNotFound):
            SplitService.split_transaction(999999, self.allocations)

    def test_virtual_transaction_cannot_be_split(self):
        result = SplitService.split_transaction(self.parent.pk, self.allocations)

        with self.assertRaises(SplitValidationError):
            SplitService.split_transaction(result.children[0].pk, [{'amount': 10, 'category': 'member-fees'}])

    def test_invalid_allocations_rejected(self):
        for allocations in (
            [],
            [{'amount': 0, 'category': 'member-fees'}],
            [{'amount': 'abc', 'category': 'member-fees'}],
            [{'amount': 10, 'category': 'unallocated'}],
            [{'amount': 10, 'category': 'travel'}],
        ):
            with self.assertRaises(SplitValidationError):
                SplitService.split_transaction(self.parent.pk, allocations)

    def test_resplit_replaces_previous_children(self):
        """Test splitting again leaves only the new children"""
        first = SplitService.split_transaction(self.parent.pk, self.allocations)
        old_ids = {child.pk for child in first.children}

        second = SplitService.split_transaction(self.parent.pk, [{'amount': 300, 'category': 'event-finance'}])

        children = SplitService.get_split_children(self.parent.pk)
        self.assertEqual([child.pk for child in children], [child.pk for child in second.children])
        self.assertFalse(Transaction.objects.filter(pk__in=old_ids).exists())

        parent = Transaction.objects.get(pk=self.parent.pk)
        self.assertEqual(parent.split_count, 1)
        self.assertEqual(parent.allocated_amount, Decimal('300.00'))
        self.assertEqual(parent.unallocated_amount, Decimal('0.00'))

    def test_split_detaches_parent_from_general_ledger(self):
        """Test a split parent stops counting towards its former ledger"""
        service = TransactionService()
        txn = service.create_transaction({
            'bank_account': self.account,
            'transaction_date': '2024-02-01',
            'transaction_type': 'income',
            'amount': '400.00',
            'main_description': 'Sponsorship',
            'category': 'general-accounts',
            'tx_account': 'TXGA-0002',
        })
        record = GeneralFinancialRecord.objects.get(category='general-accounts', sub_category='TXGA-0002')
        self.assertEqual(record.total_revenue, Decimal('400.00'))

        SplitService.split_transaction(txn.pk, [{'amount': 400, 'category': 'event-finance'}])

        record.refresh_from_db()
        self.assertEqual(record.total_revenue, Decimal('0.00'))
        self.assertEqual(record.revenue_transaction_ids, [])


class UnsplitTransactionTest(TestCase):
    """Test cases for SplitService.unsplit_transaction"""

    def setUp(self):
        caches['balances'].clear()
        caches['default'].clear()
        self.account = make_account()
        self.parent = make_transaction(self.account, '300.00', 'expense', category='general-accounts')

    def test_unsplit_removes_children_and_resets_split_fields(self):
        SplitService.split_transaction(self.parent.pk, [{'amount': 100, 'category': 'member-fees'}])

        parent = SplitService.unsplit_transaction(self.parent.pk)

        self.assertFalse(Transaction.objects.filter(parent_id=self.parent.pk).exists())
        self.assertFalse(parent.is_split)
        self.assertIsNone(parent.split_count)
        self.assertIsNone(parent.allocated_amount)
        self.assertIsNone(parent.unallocated_amount)

    def test_unsplit_does_not_restore_category(self):
        """Test the category destroyed by the split stays cleared"""
        SplitService.split_transaction(self.parent.pk, [{'amount': 100, 'category': 'member-fees'}])

        SplitService.unsplit_transaction(self.parent.pk)

        parent = Transaction.objects.get(pk=self.parent.pk)
        self.assertEqual(parent.category, '')

    def test_unsplit_unsplit_transaction_raises(self):
        with self.assertRaises(SplitValidationError) as ctx:
            SplitService.unsplit_transaction(self.parent.pk)
        self.assertEqual(ctx.exception.error_code, 'not_split')

    def test_unsplit_missing_transaction_raises(self):
        with self.assertRaises(TransactionNotFound):
            SplitService.unsplit_transaction(999999)


class BatchSplitTest(TestCase):
    """Test cases for SplitService.batch_split_transactions"""

    def setUp(self):
        caches['balances'].clear()
        caches['default'].clear()
        self.account = make_account()
        self.first = make_transaction(self.account, '100.00', 'income')
        self.second = make_transaction(self.account, '50.00', 'income')
        self.small = make_transaction(self.account, '20.00', 'income')

    def test_batch_isolates_failures(self):
        """Test one failing id does not stop the rest"""
        summary = SplitService.batch_split_transactions(
            [self.first.pk, self.small.pk, 999999, self.second.pk],
            [{'amount': 40, 'category': 'member-fees'}],
        )

        self.assertEqual(summary['success_count'], 2)
        self.assertEqual(summary['failed_count'], 2)

        by_id = {item['transaction_id']: item for item in summary['results']}
        self.assertTrue(by_id[self.first.pk]['success'])
        self.assertTrue(by_id[self.second.pk]['success'])
        self.assertFalse(by_id[self.small.pk]['success'])
        self.assertIn('exceeds', by_id[self.small.pk]['error'])
        self.assertFalse(by_id[999999]['success'])

        self.assertTrue(Transaction.objects.get(pk=self.first.pk).is_split)
        self.assertFalse(Transaction.objects.get(pk=self.small.pk).is_split)
