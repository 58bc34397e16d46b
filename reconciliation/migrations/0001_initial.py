from decimal import Decimal

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('bank_accounts', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='EventFinancialRecord',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('total_revenue', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15)),
                ('total_expense', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15)),
                ('net_income', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15)),
                ('transaction_count', models.PositiveIntegerField(default=0)),
                ('payer_payee', models.CharField(blank=True, max_length=200)),
                ('member_name', models.CharField(blank=True, max_length=200)),
                ('member_email', models.EmailField(blank=True, max_length=254)),
                ('notes', models.TextField(blank=True)),
                ('last_reconciled_at', models.DateTimeField(blank=True, null=True)),
                ('event_id', models.CharField(max_length=50, unique=True)),
                ('event_name', models.CharField(blank=True, max_length=200)),
                ('event_date', models.DateField(blank=True, null=True)),
                ('fiscal_year', models.CharField(blank=True, max_length=10)),
                ('tx_account', models.CharField(blank=True, max_length=30)),
                ('status', models.CharField(choices=[('draft', 'Draft'), ('active', 'Active'), ('completed', 'Completed'), ('reconciled', 'Reconciled')], default='active', max_length=20)),
                ('expense_transactions', models.ManyToManyField(blank=True, related_name='eventfinancialrecord_expense_records', to='bank_accounts.transaction')),
                ('revenue_transactions', models.ManyToManyField(blank=True, related_name='eventfinancialrecord_revenue_records', to='bank_accounts.transaction')),
            ],
            options={
                'ordering': ['-event_date', 'event_id'],
            },
        ),
        migrations.CreateModel(
            name='GeneralFinancialRecord',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('total_revenue', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15)),
                ('total_expense', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15)),
                ('net_income', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15)),
                ('transaction_count', models.PositiveIntegerField(default=0)),
                ('payer_payee', models.CharField(blank=True, max_length=200)),
                ('member_name', models.CharField(blank=True, max_length=200)),
                ('member_email', models.EmailField(blank=True, max_length=254)),
                ('notes', models.TextField(blank=True)),
                ('last_reconciled_at', models.DateTimeField(blank=True, null=True)),
                ('category', models.CharField(max_length=30)),
                ('sub_category', models.CharField(blank=True, help_text='Blank only matches transactions without a code', max_length=30)),
                ('status', models.CharField(choices=[('active', 'Active'), ('archived', 'Archived')], default='active', max_length=20)),
                ('expense_transactions', models.ManyToManyField(blank=True, related_name='generalfinancialrecord_expense_records', to='bank_accounts.transaction')),
                ('revenue_transactions', models.ManyToManyField(blank=True, related_name='generalfinancialrecord_revenue_records', to='bank_accounts.transaction')),
            ],
            options={
                'ordering': ['category', 'sub_category'],
            },
        ),
        migrations.CreateModel(
            name='MemberFeeRecord',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('total_revenue', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15)),
                ('total_expense', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15)),
                ('net_income', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15)),
                ('transaction_count', models.PositiveIntegerField(default=0)),
                ('payer_payee', models.CharField(blank=True, max_length=200)),
                ('member_name', models.CharField(blank=True, max_length=200)),
                ('member_email', models.EmailField(blank=True, max_length=254)),
                ('notes', models.TextField(blank=True)),
                ('last_reconciled_at', models.DateTimeField(blank=True, null=True)),
                ('member_id', models.CharField(max_length=50)),
                ('fiscal_year', models.CharField(max_length=10)),
                ('member_category', models.CharField(blank=True, max_length=50)),
                ('expected_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), help_text='Fee due for the fiscal year; seeded from the first linked payment', max_digits=15)),
                ('paid_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15)),
                ('remaining_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=15)),
                ('due_date', models.DateField(blank=True, null=True)),
                ('payment_date', models.DateField(blank=True, help_text='Date of the latest linked payment', null=True)),
                ('status', models.CharField(choices=[('unpaid', 'Unpaid'), ('partial', 'Partially Paid'), ('paid', 'Paid'), ('overdue', 'Overdue'), ('waived', 'Waived')], default='unpaid', max_length=20)),
                ('expense_transactions', models.ManyToManyField(blank=True, related_name='memberfeerecord_expense_records', to='bank_accounts.transaction')),
                ('revenue_transactions', models.ManyToManyField(blank=True, related_name='memberfeerecord_revenue_records', to='bank_accounts.transaction')),
            ],
            options={
                'ordering': ['-fiscal_year', 'member_id'],
            },
        ),
        migrations.AddConstraint(
            model_name='memberfeerecord',
            constraint=models.UniqueConstraint(fields=('member_id', 'fiscal_year'), name='unique_member_fee_per_year'),
        ),
        migrations.AddConstraint(
            model_name='generalfinancialrecord',
            constraint=models.UniqueConstraint(fields=('category', 'sub_category'), name='unique_general_record_key'),
        ),
    ]
