"""
Test Internal Transfer Pair Detection
"""

from datetime import date
from decimal import Decimal

from django.test import TestCase

from bank_accounts.split_service import SplitService
from bank_accounts.transfer_detector import TransferPairDetector
from core.config import DateRange, LedgerConfig
from .helpers import make_account, make_transaction

TRANSFER = 'TXGA-0007'


class TransferPairDetectorTest(TestCase):
    """Test cases for TransferPairDetector"""

    def setUp(self):
        self.detector = TransferPairDetector(LedgerConfig())
        self.operating = make_account(number='1111000001', name='Operating')
        self.events = make_account(number='2222000002', name='Events')
        self.reserve = make_account(number='3333000003', name='Reserve')

    def _transfer(self, account, amount, transaction_type, day, **fields):
        return make_transaction(
            account, amount, transaction_type, day, tx_account=TRANSFER, **fields
        )

    def test_single_pair_same_day(self):
        expense = self._transfer(self.operating, '500.00', 'expense', date(2024, 3, 1))
        income = self._transfer(self.events, '500.00', 'income', date(2024, 3, 1))

        result = self.detector.detect()

        self.assertEqual(len(result.pairs), 1)
        pair = result.pairs[0]
        self.assertEqual(pair.from_transaction.pk, expense.pk)
        self.assertEqual(pair.to_transaction.pk, income.pk)
        self.assertEqual(pair.from_account_id, self.operating.pk)
        self.assertEqual(pair.to_account_id, self.events.pk)
        self.assertEqual(pair.amount, Decimal('500.00'))
        self.assertEqual(pair.date, date(2024, 3, 1))
        self.assertEqual(pair.confidence, 1.0)
        self.assertEqual(result.imbalance, Decimal('0.00'))

    def test_pair_across_one_day(self):
        """Test a settlement booked the next day still pairs"""
        self._transfer(self.operating, '120.00', 'expense', date(2024, 3, 1))
        self._transfer(self.events, '120.00', 'income', date(2024, 3, 2))

        result = self.detector.detect()

        self.assertEqual(len(result.pairs), 1)
        self.assertEqual(result.pairs[0].date, date(2024, 3, 1))

    def test_rows_far_apart_do_not_pair(self):
        self._transfer(self.operating, '120.00', 'expense', date(2024, 3, 1))
        self._transfer(self.events, '120.00', 'income', date(2024, 3, 10))

        result = self.detector.detect()

        self.assertEqual(result.pairs, [])
        self.assertEqual(len(result.unpaired_expenses), 1)
        self.assertEqual(len(result.unpaired_income), 1)

    def test_same_account_never_pairs(self):
        self._transfer(self.operating, '75.00', 'expense', date(2024, 3, 1))
        self._transfer(self.operating, '75.00', 'income', date(2024, 3, 1))

        result = self.detector.detect()

        self.assertEqual(result.pairs, [])

    def test_different_amounts_do_not_pair(self):
        self._transfer(self.operating, '75.00', 'expense', date(2024, 3, 1))
        self._transfer(self.events, '75.01', 'income', date(2024, 3, 1))

        self.assertEqual(self.detector.detect().pairs, [])

    def test_each_transaction_pairs_at_most_once(self):
        """Test two expenses against one income leave one expense unpaired"""
        first = self._transfer(self.operating, '300.00', 'expense', date(2024, 3, 1))
        second = self._transfer(self.reserve, '300.00', 'expense', date(2024, 3, 1))
        income = self._transfer(self.events, '300.00', 'income', date(2024, 3, 1))

        result = self.detector.detect()

        self.assertEqual(len(result.pairs), 1)
        self.assertEqual(result.pairs[0].from_transaction.pk, first.pk)
        self.assertEqual(result.pairs[0].to_transaction.pk, income.pk)
        self.assertEqual([txn.pk for txn in result.unpaired_expenses], [second.pk])
        self.assertEqual(result.unpaired_income, [])
        self.assertEqual(result.imbalance, Decimal('300.00'))

        paired = [pair.from_transaction.pk for pair in result.pairs] + \
                 [pair.to_transaction.pk for pair in result.pairs]
        self.assertEqual(len(paired), len(set(paired)))

    def test_uncoded_and_virtual_rows_ignored(self):
        make_transaction(self.operating, '90.00', 'expense', date(2024, 3, 1))
        parent = self._transfer(self.events, '90.00', 'income', date(2024, 3, 1))
        SplitService.split_transaction(
            parent.pk, [{'amount': 90, 'category': 'general-accounts', 'tx_account': TRANSFER}]
        )

        result = self.detector.detect()

        self.assertEqual(result.pairs, [])
        # Split parent lost its code, the child is virtual, the expense was never coded
        self.assertEqual(result.unpaired_income, [])
        self.assertEqual(result.unpaired_expenses, [])

    def test_date_range_limits_candidates(self):
        self._transfer(self.operating, '40.00', 'expense', date(2024, 3, 1))
        self._transfer(self.events, '40.00', 'income', date(2024, 3, 1))
        self._transfer(self.operating, '60.00', 'expense', date(2024, 4, 1))
        self._transfer(self.events, '60.00', 'income', date(2024, 4, 1))

        result = self.detector.detect(DateRange(date(2024, 4, 1), date(2024, 4, 30)))

        self.assertEqual(len(result.pairs), 1)
        self.assertEqual(result.pairs[0].amount, Decimal('60.00'))

    def test_custom_transfer_code(self):
        detector = TransferPairDetector(LedgerConfig(internal_transfer_code='XFER'))
        make_transaction(self.operating, '10.00', 'expense', date(2024, 3, 1), tx_account='XFER')
        make_transaction(self.events, '10.00', 'income', date(2024, 3, 1), tx_account='XFER')
        self._transfer(self.operating, '20.00', 'expense', date(2024, 3, 1))

        result = detector.detect()

        self.assertEqual(len(result.pairs), 1)
        self.assertEqual(result.unpaired_expenses, [])

    def test_transfer_statistics(self):
        self._transfer(self.operating, '500.00', 'expense', date(2024, 3, 1))
        self._transfer(self.events, '500.00', 'income', date(2024, 3, 1))
        self._transfer(self.operating, '200.00', 'expense', date(2024, 3, 5))
        self._transfer(self.reserve, '200.00', 'income', date(2024, 3, 5))

        stats = self.detector.get_transfer_statistics()

        self.assertEqual(stats['total_pairs'], 2)
        self.assertEqual(stats['total_amount'], Decimal('700.00'))
        self.assertEqual(stats['account_stats'][self.operating.pk], {'transfers': 2, 'amount': Decimal('700.00')})
        self.assertEqual(stats['account_stats'][self.events.pk], {'transfers': 1, 'amount': Decimal('500.00')})
        self.assertEqual(stats['account_stats'][self.reserve.pk], {'transfers': 1, 'amount': Decimal('200.00')})

    def test_result_serialises(self):
        self._transfer(self.operating, '500.00', 'expense', date(2024, 3, 1))
        self._transfer(self.events, '500.00', 'income', date(2024, 3, 1))

        payload = self.detector.detect().to_dict()

        self.assertEqual(payload['pairs'][0]['amount'], '500.00')
        self.assertEqual(payload['pairs'][0]['date'], '2024-03-01')
        self.assertEqual(payload['imbalance'], '0.00')
