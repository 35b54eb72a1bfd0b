"""
Test settings for the Billable platform
Fast, isolated testing environment.
"""

import os

TEST_SECRET_KEY = 'django-test-key-not-secure'  # noqa: S105

# Provide the key before base.py checks for it
os.environ.setdefault('DJANGO_SECRET_KEY', TEST_SECRET_KEY)

from .base import *  # noqa: E402

# ===============================================================================
# TEST FLAGS
# ===============================================================================

DEBUG = False

# ===============================================================================
# TEST DATABASE (In-memory for speed)
# ===============================================================================

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
        'OPTIONS': {
            'timeout': 20,
        }
    }
}

# ===============================================================================
# PASSWORD HASHER (Fast for tests)
# ===============================================================================

PASSWORD_HASHERS = [
    'django.contrib.auth.hashers.MD5PasswordHasher',  # Fast but insecure (test only)
]

# ===============================================================================
# LOGGING (Minimal for tests)
# ===============================================================================

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
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

# ===============================================================================
# SECURITY (Relaxed for tests)
# ===============================================================================

SECRET_KEY = TEST_SECRET_KEY
ALLOWED_HOSTS = ['testserver', 'localhost', '127.0.0.1']

# ===============================================================================
# EXTERNAL SERVICES (Disabled in tests)
# ===============================================================================

# Disable external API calls
STRIPE_PUBLISHABLE_KEY = 'pk_test_fake_key'
STRIPE_SECRET_KEY = 'sk_test_fake_key'
STRIPE_API_VERSION = None

BILLING_CURRENCY = 'usd'
