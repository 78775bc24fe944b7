# matching/conf.py
from django.conf import settings

DEFAULTS = {
    'MAX_RADIUS_KM': 50,
    'TOP_K': 5,
    # Bangalore city centre, used when a hospital has no coordinates on file
    'DEFAULT_COORDINATE': (12.9716, 77.5946),
    'ASYNC_MATCHING': False,
    'NOTIFICATION_WORKERS': 3,
    'SMS_BACKEND': 'matching.notifiers.ConsoleSMSBackend',
    'SMS_MAX_LENGTH': 160,
}


def get_setting(name):
    """Read a matching setting from settings.VITALAID, falling back to DEFAULTS"""
    overrides = getattr(settings, 'VITALAID', None) or {}
    return overrides.get(name, DEFAULTS[name])
