"""Test settings: in-memory SQLite, eager Celery, sequential recurrence."""

from .base import *  # noqa: F401,F403

DEBUG = False

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = 'memory://'
CELERY_RESULT_BACKEND = 'cache+memory://'

# Worker threads open their own connections, which cannot see the test transaction
BOOKING_RECURRENCE_WORKERS = 1
BOOKING_LOCK_TIMEOUT = 5.0
