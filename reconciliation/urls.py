from django.urls import path

from . import ajax_views

app_name = 'reconciliation'

urlpatterns = [
    path('ledgers/<str:kind>/', ajax_views.ledger_records, name='ledger_records'),
    path('ledgers/<str:kind>/reconcile/', ajax_views.reconcile_record, name='reconcile_record'),
]
