"""
Django Test Settings for the Brokerage Portal

Uses an in-memory SQLite database and a local-memory session store.
The remote brokerage API is never contacted; tests inject an httpx mock
transport instead.
"""
from .base import *  # noqa: F401, F403

# =============================================================================
# Debug Mode for Tests
# =============================================================================

DEBUG = False

# =============================================================================
# Database - In-memory SQLite
# =============================================================================

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

# =============================================================================
# Speed Optimizations for Tests
# =============================================================================

# Use faster password hasher for tests
PASSWORD_HASHERS = [
    'django.contrib.auth.hashers.MD5PasswordHasher',
]

# Disable logging during tests
LOGGING = {
    'version': 1,
    'disable_existing_loggers': True,
    'handlers': {
        'null': {
            'class': 'logging.NullHandler',
        },
    },
    'root': {
        'handlers': ['null'],
        'level': 'CRITICAL',
    },
}

# =============================================================================
# REST Framework Test Settings
# =============================================================================

REST_FRAMEWORK = {
    **REST_FRAMEWORK,  # noqa: F405
    'DEFAULT_THROTTLE_RATES': {
        'auth': '1000/minute',
    },
}

# =============================================================================
# Brokerage API Mock Configuration
# =============================================================================

BROKERAGE_API_BASE_URL = 'http://brokerage.test'
BROKERAGE_API_TIMEOUT = 5.0
FILTERS_MAX_WORKERS = 4

# =============================================================================
# CORS - Allow all for tests
# =============================================================================

CORS_ALLOW_ALL_ORIGINS = True
