from django.db import models
from django.utils.translation import gettext_lazy as _
from model_utils.models import TimeStampedModel

from paygate.core.constants import SystemConfigKey


class SystemConfig(TimeStampedModel):
    """
    Key/value store for system-wide billing settings.

    Values are stored as text; callers own parsing. Currently holds the
    global payment processing fee percentage.
    """

    key = models.CharField(
        max_length=100,
        unique=True,
        choices=SystemConfigKey.choices,
        help_text=_("Setting identifier."),
    )
    value = models.CharField(
        max_length=255,
        help_text=_("Raw setting value."),
    )

    class Meta:
        ordering = ["key"]
        verbose_name = _("system setting")

    def __str__(self):
        return f"{self.key}={self.value}"
