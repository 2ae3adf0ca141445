import logging

from rest_framework.response import Response
from rest_framework.views import exception_handler

from paygate.core.exceptions import PaygateError

logger = logging.getLogger(__name__)

SERVER_ERROR_STATUS = 500


def paygate_exception_handler(exc, context):
    """
    Render PaygateError subclasses as ``{"success": false, "error", "code"}``.

    Anything else is left to DRF's default handler, which returns None for
    unexpected exceptions so Django's 500 handling (and Sentry) sees them.
    """
    if isinstance(exc, PaygateError):
        if exc.status_code >= SERVER_ERROR_STATUS:
            logger.error("%s: %s", exc.__class__.__name__, exc.detail)
        return Response(
            {"success": False, "error": exc.detail, "code": exc.code},
            status=exc.status_code,
        )
    return exception_handler(exc, context)
