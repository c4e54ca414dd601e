"""Production settings for the venue booking engine.

Ensure that sensitive values are provided via environment variables. The
admission lock gets a timeout so a stuck worker cannot hold a venue day
forever.
"""

from .base import *  # noqa: F401,F403

# Never run with debug enabled in production
DEBUG = False

# Allowed hosts should be defined explicitly via environment variable
ALLOWED_HOSTS = os.environ.get('DJANGO_ALLOWED_HOSTS', '').split(',')  # noqa: F405

DATABASES['default']['CONN_MAX_AGE'] = int(os.environ.get('DB_CONN_MAX_AGE', 60))  # noqa: F405

if BOOKING_LOCK_TIMEOUT is None:  # noqa: F405
    BOOKING_LOCK_TIMEOUT = 10.0
