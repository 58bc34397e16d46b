"""
WSGI config for orgledger project.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'orgledger.settings')

application = get_wsgi_application()
