"""
AJAX endpoints for split transactions, statement balances and transfer pairs
"""

import json
from datetime import date

from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_http_methods

from core.config import DateRange
from core.exceptions import LedgerValidationError, TransactionNotFound
from .balance_service import SORT_FIELDS, SORT_ORDERS, BalanceService, balance_calculator
from .models import BankAccount
from .split_service import SplitService
from .transfer_detector import TransferPairDetector


def _load_json(request):
    try:
        return json.loads(request.body or b'{}')
    except json.JSONDecodeError:
        raise LedgerValidationError('Request body is not valid JSON', error_code='invalid_json')


def _error(message, status):
    return JsonResponse({'success': False, 'error': message}, status=status)


@login_required
@require_http_methods(["POST"])
def split_transaction(request, transaction_id):
    """Split one transaction into categorised allocations"""
    try:
        data = _load_json(request)
        result = SplitService.split_transaction(transaction_id, data.get('allocations', []), user=request.user)
    except TransactionNotFound as e:
        return _error(e.message, 404)
    except LedgerValidationError as e:
        return _error(e.message, 400)

    parent = result.parent
    return JsonResponse({
        'success': True,
        'parent_id': parent.pk,
        'split_count': parent.split_count,
        'allocated_amount': str(parent.allocated_amount),
        'unallocated_amount': str(parent.unallocated_amount),
        'children': [
            {
                'id': child.pk,
                'amount': str(child.amount),
                'category': child.category,
                'sub_description': child.sub_description,
            }
            for child in result.children
        ],
    })


@login_required
@require_http_methods(["POST"])
def unsplit_transaction(request, transaction_id):
    try:
        parent = SplitService.unsplit_transaction(transaction_id, user=request.user)
    except TransactionNotFound as e:
        return _error(e.message, 404)
    except LedgerValidationError as e:
        return _error(e.message, 400)

    return JsonResponse({'success': True, 'parent_id': parent.pk, 'category': parent.category})


@login_required
@require_http_methods(["POST"])
def batch_split_transactions(request):
    try:
        data = _load_json(request)
    except LedgerValidationError as e:
        return _error(e.message, 400)

    transaction_ids = data.get('transaction_ids') or []
    if not transaction_ids:
        return _error('Missing required field: transaction_ids', 400)

    summary = SplitService.batch_split_transactions(
        transaction_ids, data.get('allocations', []), user=request.user
    )
    return JsonResponse({'success': True, **summary})


@login_required
@require_http_methods(["GET"])
def account_balances(request, account_id):
    """One statement page with the running balance of each row"""
    account = get_object_or_404(BankAccount, pk=account_id)

    sort_field = request.GET.get('sort', 'transaction_date')
    sort_order = request.GET.get('order', 'desc')
    if sort_field not in SORT_FIELDS or sort_order not in SORT_ORDERS:
        return _error(f'Unsupported sort: {sort_field} {sort_order}', 400)

    try:
        page_size = min(int(request.GET.get('page_size', 50)), 500)
    except ValueError:
        return _error('page_size must be a number', 400)

    page, balance_page = balance_calculator.paginate(
        account.pk,
        page_number=request.GET.get('page', 1),
        page_size=page_size,
        sort_field=sort_field,
        sort_order=sort_order,
    )

    rows = []
    for txn in page.object_list:
        balance = balance_page.balance_for(txn.pk)
        rows.append({
            'id': txn.pk,
            'transaction_number': txn.transaction_number,
            'date': txn.transaction_date.isoformat(),
            'type': txn.transaction_type,
            'amount': str(txn.amount),
            'is_virtual': txn.is_virtual,
            'balance': None if balance is None else str(balance),
            'negative_balance': balance is not None and balance < 0,
        })

    return JsonResponse({
        'success': True,
        'account_id': account.pk,
        'page': page.number,
        'num_pages': page.paginator.num_pages,
        'balance_available': balance_page.available,
        'current_balance': str(BalanceService.get_current_balance(account)),
        'rows': rows,
    })


@login_required
@require_http_methods(["GET"])
def transfer_pairs(request):
    """Detected internal transfer pairs, optionally limited to ?start=&end="""
    date_range = None
    start, end = request.GET.get('start'), request.GET.get('end')
    if start and end:
        try:
            date_range = DateRange(date.fromisoformat(start), date.fromisoformat(end))
        except ValueError as e:
            return _error(f'Invalid date range: {e}', 400)

    result = TransferPairDetector().detect(date_range)
    return JsonResponse({'success': True, **result.to_dict()})
