"""
Celery configuration for the ledger engine
Runs debounced ledger reconciliation, the nightly reconcile sweep
and the daily overdue member fee sweep
"""
import os

from celery import Celery
from celery.schedules import crontab

# Set default Django settings module for celery
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'orgledger.settings')

app = Celery('orgledger')

# Configure celery using Django settings
app.config_from_object('django.conf:settings', namespace='CELERY')

# Auto-discover tasks from all apps
app.autodiscover_tasks()

app.conf.task_routes = {
    'reconciliation.tasks.reconcile_ledger': {'queue': 'high_priority'},
    'reconciliation.tasks.reconcile_all_ledgers': {'queue': 'low_priority'},
    'reconciliation.tasks.update_overdue_member_fees': {'queue': 'low_priority'},
}

app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,
    task_track_started=True,
    task_time_limit=30 * 60,  # 30 minutes
    task_soft_time_limit=25 * 60,  # 25 minutes
    worker_hijack_root_logger=False,
    worker_log_format="[%(asctime)s: %(levelname)s/%(processName)s] %(message)s",
    worker_task_log_format="[%(asctime)s: %(levelname)s/%(processName)s][%(task_name)s(%(task_id)s)] %(message)s",
)

app.conf.task_default_queue = 'default'
app.conf.task_queues = {
    'high_priority': {
        'routing_key': 'high_priority',
    },
    'low_priority': {
        'routing_key': 'low_priority',
    },
}

# Periodic tasks
app.conf.beat_schedule = {
    'reconcile-all-ledgers-nightly': {
        'task': 'reconciliation.tasks.reconcile_all_ledgers',
        'schedule': crontab(hour=2, minute=0),
        'options': {'queue': 'low_priority'}
    },
    'mark-overdue-member-fees-daily': {
        'task': 'reconciliation.tasks.update_overdue_member_fees',
        'schedule': crontab(hour=1, minute=0),
        'options': {'queue': 'low_priority'}
    },
}


@app.task(bind=True)
def debug_task(self):
    """Debug task to test celery configuration"""
    print(f'Request: {self.request!r}')
    return 'Celery is working!'
