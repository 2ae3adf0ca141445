"""
With these settings, tests run faster.
"""

import os

# Test-safe provider keys; the SDK and HTTP client are mocked in tests.
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_dummy_test_key_for_testing")
os.environ.setdefault("STRIPE_PUBLIC_KEY", "pk_test_dummy_test_key_for_testing")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_dummy_test_secret")
os.environ.setdefault("PADDLE_API_KEY", "pdl_test_dummy_api_key")
os.environ.setdefault("PADDLE_WEBHOOK_SECRET", "pdl_ntfset_dummy_test_secret")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from .base import *  # noqa: F403
from .base import DATABASES
from .base import env

# GENERAL
# ------------------------------------------------------------------------------
# https://docs.djangoproject.com/en/dev/ref/settings/#secret-key
SECRET_KEY = env(
    "DJANGO_SECRET_KEY",
    default="q8cJ0yL5kZfT2hWmR9nV3bXe6sPaD1uGiK4oQ7tYwE0zMjHcFvNrLxSdBgUlOpAi",
)
# https://docs.djangoproject.com/en/dev/ref/settings/#test-runner
TEST_RUNNER = "django.test.runner.DiscoverRunner"
DATABASES["default"]["CONN_MAX_AGE"] = 0  # type: ignore[name-defined]
# https://docs.djangoproject.com/en/dev/ref/settings/#allowed-hosts
ALLOWED_HOSTS = ["localhost", "127.0.0.1", "testserver"]

# PASSWORDS
# ------------------------------------------------------------------------------
# https://docs.djangoproject.com/en/dev/ref/settings/#password-hashers
PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

# Your stuff...
# ------------------------------------------------------------------------------

# Upstream key checks are exercised explicitly with override_settings.
PAYGATE_UPSTREAM_API_KEY = ""
PADDLE_ENVIRONMENT = "sandbox"
PADDLE_PRICE_IDS = {
    "pay-as-you-go": "pri_test_payg",
    "monthly": "pri_test_monthly",
    "quarterly": "pri_test_quarterly",
    "3-month-quarterly": "pri_test_quarterly",
    "semi-annual": "pri_test_semi_annual",
    "6-month-semi-annual": "pri_test_semi_annual",
    "annual": "pri_test_annual",
    "yearly": "pri_test_annual",
}
FRONTEND_URL = "https://app.example.test"
