"""
Background ledger reconciliation
Debounces bursts of reconcile requests for the same grouping key
"""
from typing import Any, Dict

from celery import shared_task
from celery.utils.log import get_task_logger

from core.cache_system import LedgerCache
from core.config import LedgerConfig

logger = get_task_logger(__name__)

debounce_cache = LedgerCache(alias='default')


def _debounce_key(kind, key):
    return debounce_cache._generate_cache_key(f"reconcile_debounce:{kind}", **key)


def schedule_reconcile(kind: str, key: Dict[str, Any], config=None) -> bool:
    """
    Queue a reconcile for (kind, key) unless one is already pending.

    The first request opens a debounce window and enqueues the task to run at
    the end of it; requests inside the window are dropped since the pending
    run will see their writes. Returns True when a task was enqueued.
    """
    config = config or LedgerConfig.from_settings()
    window = config.reconcile_debounce_seconds

    if not debounce_cache.add_cache(_debounce_key(kind, key), 1, window):
        logger.debug(f"Reconcile for {kind} {key} already pending")
        return False

    reconcile_ledger.apply_async(args=[kind, key], countdown=window)
    return True


@shared_task(bind=True, max_retries=3, default_retry_delay=60)
def reconcile_ledger(self, kind: str, key: Dict[str, Any]) -> Dict[str, Any]:
    """Reconcile one aggregate ledger record"""
    from .ledger_service import get_ledger_service

    debounce_cache.delete_cache(_debounce_key(kind, key))

    try:
        record = get_ledger_service(kind).reconcile(key)
    except Exception as exc:
        logger.error(f"Reconcile of {kind} ledger {key} failed: {exc}")
        raise self.retry(exc=exc)

    if record is None:
        return {'status': 'missing', 'kind': kind, 'key': key}

    return {
        'status': 'success',
        'kind': kind,
        'key': key,
        'total_revenue': str(record.total_revenue),
        'total_expense': str(record.total_expense),
        'transaction_count': record.transaction_count,
    }


@shared_task
def reconcile_all_ledgers() -> Dict[str, int]:
    """Nightly backstop: recompute every ledger record from the transactions"""
    from .ledger_service import LEDGER_SERVICES, get_ledger_service

    summary = {}
    for kind in LEDGER_SERVICES:
        summary[kind] = get_ledger_service(kind).reconcile_all()

    logger.info(f"Nightly reconcile finished: {summary}")
    return summary


@shared_task
def update_overdue_member_fees() -> Dict[str, int]:
    """Daily sweep: member fees still unsettled after their due date become overdue"""
    from .ledger_service import MemberFeeLedgerService

    updated = MemberFeeLedgerService().update_overdue_status()
    return {'updated': updated}
