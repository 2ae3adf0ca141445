"""
Constants shared across apps: caller roles and system setting keys.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class UserRole(models.TextChoices):
    """Roles forwarded by the upstream gateway in the x-user-role header."""

    USER = "user", _("User")
    MANAGER = "manager", _("Manager")
    ADMIN = "admin", _("Admin")


class SystemConfigKey(models.TextChoices):
    PAYMENT_PROCESSING_FEE = "payment_processing_fee", _("Payment processing fee (%)")
