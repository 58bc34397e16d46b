from django.urls import path

from . import ajax_views

app_name = 'bank_accounts'

urlpatterns = [
    path('<int:account_id>/balances/', ajax_views.account_balances, name='account_balances'),
    path('transactions/<int:transaction_id>/split/', ajax_views.split_transaction, name='split_transaction'),
    path('transactions/<int:transaction_id>/unsplit/', ajax_views.unsplit_transaction, name='unsplit_transaction'),
    path('transactions/batch-split/', ajax_views.batch_split_transactions, name='batch_split_transactions'),
    path('transfers/', ajax_views.transfer_pairs, name='transfer_pairs'),
]
