"""Development settings for the venue booking engine.

Debug on, human-friendly console logs instead of JSON. Do not use these
settings in production!
"""

import structlog

from .base import *  # noqa: F401,F403

DEBUG = True

ALLOWED_HOSTS = ['*']

LOGGING["formatters"]["json"]["processor"] = structlog.dev.ConsoleRenderer()  # noqa: F405
