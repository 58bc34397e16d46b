from django.core.management.base import BaseCommand, CommandError

from reconciliation.ledger_service import LEDGER_SERVICES, get_ledger_service
from reconciliation.tasks import schedule_reconcile


class Command(BaseCommand):
    help = 'Recompute aggregate ledger records from the transaction table'

    def add_arguments(self, parser):
        parser.add_argument(
            '--kind',
            choices=sorted(LEDGER_SERVICES),
            help='Only reconcile one ledger kind (default: all)',
        )
        parser.add_argument(
            '--async',
            action='store_true',
            dest='run_async',
            help='Queue debounced celery reconciles instead of running inline',
        )

    def handle(self, *args, **options):
        kinds = [options['kind']] if options['kind'] else sorted(LEDGER_SERVICES)

        for kind in kinds:
            service = get_ledger_service(kind)

            if options['run_async']:
                queued = 0
                for record in service.model.objects.all():
                    if schedule_reconcile(kind, service.record_key(record), config=service.config):
                        queued += 1
                self.stdout.write(f"{kind}: queued {queued} reconciles")
                continue

            try:
                count = service.reconcile_all()
            except Exception as e:
                raise CommandError(f"Reconcile of {kind} ledgers failed: {e}")
            self.stdout.write(self.style.SUCCESS(f"{kind}: reconciled {count} records"))
