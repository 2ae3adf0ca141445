from .base import *  # noqa: F403
from .base import LOGGING
from .base import REST_FRAMEWORK
from .base import env

# GENERAL
# ------------------------------------------------------------------------------
# https://docs.djangoproject.com/en/dev/ref/settings/#debug
DEBUG = True
# https://docs.djangoproject.com/en/dev/ref/settings/#secret-key
SECRET_KEY = env(
    "DJANGO_SECRET_KEY",
    default="Xr7pW2nQeV9sLk4TfJ1bHc6yMzA0uGoD3iRtNaSlEwPqBvKdYhZmC8xUjF5gOw2e",
)
# https://docs.djangoproject.com/en/dev/ref/settings/#allowed-hosts
ALLOWED_HOSTS = ["localhost", "0.0.0.0", "127.0.0.1"]  # noqa: S104

# CACHES
# ------------------------------------------------------------------------------
# https://docs.djangoproject.com/en/dev/ref/settings/#caches
CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "",
    },
}

# django-rest-framework
# ------------------------------------------------------------------------------
# Browsable API is handy when poking at endpoints locally.
REST_FRAMEWORK["DEFAULT_RENDERER_CLASSES"] = (
    "rest_framework.renderers.JSONRenderer",
    "rest_framework.renderers.BrowsableAPIRenderer",
)

# Your stuff...
# ------------------------------------------------------------------------------
# Route payment logs to the console at DEBUG while developing.
LOGGING["loggers"] = {
    "paygate": {"level": "DEBUG", "handlers": ["console"], "propagate": False},
}
