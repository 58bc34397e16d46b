"""
URL configuration for orgledger project.
"""
from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('admin/', admin.site.urls),
    path('bank-accounts/', include('bank_accounts.urls')),
    path('reconciliation/', include('reconciliation.urls')),
]
