"""
AJAX endpoints for aggregate ledger records
"""

import json

from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.views.decorators.http import require_http_methods

from core.exceptions import LedgerValidationError
from .ledger_service import LEDGER_SERVICES, get_ledger_service
from .tasks import schedule_reconcile


def _record_payload(service, record):
    return {
        'id': record.pk,
        'key': service.record_key(record),
        'status': record.status,
        'total_revenue': str(record.total_revenue),
        'total_expense': str(record.total_expense),
        'net_income': str(record.net_income),
        'transaction_count': record.transaction_count,
        'revenue_transaction_ids': record.revenue_transaction_ids,
        'expense_transaction_ids': record.expense_transaction_ids,
        'last_reconciled_at': record.last_reconciled_at.isoformat() if record.last_reconciled_at else None,
    }


@login_required
@require_http_methods(["GET"])
def ledger_records(request, kind):
    """List the aggregate records of one ledger kind"""
    if kind not in LEDGER_SERVICES:
        return JsonResponse({'success': False, 'error': f'Unknown ledger kind: {kind}'}, status=404)

    service = get_ledger_service(kind)
    records = [_record_payload(service, record) for record in service.model.objects.all()]
    return JsonResponse({'success': True, 'kind': kind, 'records': records})


@login_required
@require_http_methods(["POST"])
def reconcile_record(request, kind):
    """
    Reconcile one grouping key now, or queue a debounced reconcile when
    'async' is true in the request body.
    """
    if kind not in LEDGER_SERVICES:
        return JsonResponse({'success': False, 'error': f'Unknown ledger kind: {kind}'}, status=404)

    try:
        data = json.loads(request.body or b'{}')
    except json.JSONDecodeError:
        return JsonResponse({'success': False, 'error': 'Request body is not valid JSON'}, status=400)

    service = get_ledger_service(kind)
    key = data.get('key') or {}
    if set(key) != set(service.key_fields):
        return JsonResponse({
            'success': False,
            'error': f"Key must contain exactly: {', '.join(service.key_fields)}"
        }, status=400)

    if data.get('async'):
        queued = schedule_reconcile(kind, key, config=service.config)
        return JsonResponse({'success': True, 'queued': queued})

    try:
        record = service.reconcile(key)
    except LedgerValidationError as e:
        return JsonResponse({'success': False, 'error': e.message}, status=400)

    if record is None:
        return JsonResponse({'success': True, 'record': None})
    return JsonResponse({'success': True, 'record': _record_payload(service, record)})
