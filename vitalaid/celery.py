# vitalaid/celery.py
"""
Celery app for donor matching that runs outside the request cycle
(enabled with VITALAID['ASYNC_MATCHING'])
"""
import os
from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'vitalaid.settings')

app = Celery('vitalaid')

# All CELERY_* names in settings.py configure the app
app.config_from_object('django.conf:settings', namespace='CELERY')

# Picks up donors/tasks.py
app.autodiscover_tasks()
