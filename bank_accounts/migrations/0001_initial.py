from decimal import Decimal

import core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='BankAccount',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('account_name', models.CharField(max_length=200)),
                ('account_number', models.CharField(max_length=50, unique=True)),
                ('bank_name', models.CharField(blank=True, max_length=200)),
                ('currency', models.CharField(default='MYR', max_length=3)),
                ('opening_balance', models.DecimalField(decimal_places=2, default=Decimal('0.00'), help_text='Balance before the first recorded transaction', max_digits=15)),
                ('status', models.CharField(choices=[('active', 'Active'), ('inactive', 'Inactive'), ('closed', 'Closed')], default='active', max_length=20)),
                ('description', models.TextField(blank=True)),
            ],
            options={
                'ordering': ['account_name'],
            },
        ),
        migrations.CreateModel(
            name='Transaction',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('transaction_number', models.CharField(blank=True, db_index=True, max_length=40)),
                ('transaction_date', models.DateField()),
                ('transaction_type', models.CharField(choices=[('income', 'Income'), ('expense', 'Expense')], max_length=10)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=15, validators=[core.validators.validate_non_negative_amount])),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('completed', 'Completed'), ('cancelled', 'Cancelled')], default='completed', max_length=20)),
                ('main_description', models.CharField(max_length=255)),
                ('sub_description', models.CharField(blank=True, max_length=255)),
                ('payer_payee', models.CharField(blank=True, max_length=200)),
                ('payment_method', models.CharField(blank=True, choices=[('bank_transfer', 'Bank Transfer'), ('cash', 'Cash'), ('cheque', 'Cheque'), ('card', 'Card'), ('online', 'Online Payment'), ('other', 'Other')], max_length=20)),
                ('notes', models.TextField(blank=True)),
                ('category', models.CharField(blank=True, choices=[('member-fees', 'Member Fees'), ('event-finance', 'Event Finance'), ('general-accounts', 'General Accounts'), ('unallocated', 'Unallocated')], max_length=30)),
                ('tx_account', models.CharField(blank=True, help_text='Secondary classification code, e.g. TXGA-0007 for internal transfers', max_length=30, validators=[core.validators.validate_classification_code])),
                ('fiscal_year', models.CharField(blank=True, help_text='Derived from transaction date on write', max_length=10)),
                ('member_id', models.CharField(blank=True, max_length=50)),
                ('event_id', models.CharField(blank=True, max_length=50)),
                ('event_name', models.CharField(blank=True, max_length=200)),
                ('is_virtual', models.BooleanField(default=False, help_text='Split allocation; excluded from balances')),
                ('is_split', models.BooleanField(default=False)),
                ('split_count', models.PositiveIntegerField(blank=True, null=True)),
                ('allocated_amount', models.DecimalField(blank=True, decimal_places=2, max_digits=15, null=True)),
                ('unallocated_amount', models.DecimalField(blank=True, decimal_places=2, max_digits=15, null=True)),
                ('bank_account', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='transactions', to='bank_accounts.bankaccount')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='transaction_created', to=settings.AUTH_USER_MODEL)),
                ('parent', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='children', to='bank_accounts.transaction')),
                ('updated_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='transaction_updated', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-transaction_date', '-id'],
                'indexes': [
                    models.Index(fields=['bank_account', 'transaction_date'], name='txn_account_date_idx'),
                    models.Index(fields=['tx_account'], name='txn_tx_account_idx'),
                    models.Index(fields=['category', 'tx_account'], name='txn_category_idx'),
                    models.Index(fields=['member_id', 'fiscal_year'], name='txn_member_fy_idx'),
                    models.Index(fields=['event_id'], name='txn_event_idx'),
                    models.Index(fields=['is_virtual'], name='txn_virtual_idx'),
                ],
            },
        ),
    ]
