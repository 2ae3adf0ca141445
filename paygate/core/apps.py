from django.apps import AppConfig


class CoreConfig(AppConfig):
    """
    Shared plumbing for the payment service: the error taxonomy, upstream
    identity authentication and the system-wide key/value settings table.
    """

    default_auto_field = "django.db.models.BigAutoField"
    name = "paygate.core"
