from datetime import date

from django.core.management.base import BaseCommand, CommandError

from bank_accounts.transfer_detector import TransferPairDetector
from core.config import DateRange


class Command(BaseCommand):
    help = 'List probable internal transfer pairs and the unpaired remainder'

    def add_arguments(self, parser):
        parser.add_argument('--start', help='First date to include (YYYY-MM-DD)')
        parser.add_argument('--end', help='Last date to include (YYYY-MM-DD)')

    def handle(self, *args, **options):
        date_range = None
        if options['start'] or options['end']:
            if not (options['start'] and options['end']):
                raise CommandError('--start and --end must be given together')
            try:
                date_range = DateRange(date.fromisoformat(options['start']), date.fromisoformat(options['end']))
            except ValueError as e:
                raise CommandError(f'Invalid date range: {e}')

        result = TransferPairDetector().detect(date_range)

        for pair in result.pairs:
            self.stdout.write(
                f"{pair.date} {pair.amount:>12,.2f}  "
                f"account {pair.from_account_id} (#{pair.from_transaction.pk}) -> "
                f"account {pair.to_account_id} (#{pair.to_transaction.pk})  confidence {pair.confidence:.2f}"
            )

        self.stdout.write(f"Pairs: {len(result.pairs)}")
        self.stdout.write(f"Unpaired expenses: {len(result.unpaired_expenses)} ({result.unpaired_expense_total:,.2f})")
        self.stdout.write(f"Unpaired income: {len(result.unpaired_income)} ({result.unpaired_income_total:,.2f})")

        if result.imbalance:
            self.stdout.write(self.style.WARNING(f"Imbalance: {result.imbalance:,.2f}"))
        else:
            self.stdout.write(self.style.SUCCESS("Transfers balance out"))
