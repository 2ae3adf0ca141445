from django.apps import AppConfig


class RegionsConfig(AppConfig):
    """
    Country to region mapping, per-region gateway policy and regional price
    overrides. Read on every routing decision; never cached in process.
    """

    default_auto_field = "django.db.models.BigAutoField"
    name = "paygate.regions"
