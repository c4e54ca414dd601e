"""Top-level package for Django configuration.

This package exposes the configuration of the venue booking engine: the
settings modules for each environment and the Celery application.
"""

# Import the Celery application as soon as Django starts. Without this
# the shared task registry will not be populated.
from .celery import app as celery_app  # noqa: F401
