"""
Upstream identity authentication.

The payment API is never called by browsers directly. A trusted gateway in
front of it authenticates the end user and forwards the result as headers::

    x-user-id: 1842
    x-user-email: voter@example.com
    x-user-role: manager

Because anything on the network could forge those headers, deployments
that are not isolated at the infrastructure level set
PAYGATE_UPSTREAM_API_KEY. The gateway must then also send::

    Authorization: Upstream-Key <key>

The key is compared with Django's constant_time_compare(). When the setting
is empty the check is skipped (private network and test environments).
"""

import logging
from dataclasses import dataclass

from django.conf import settings
from django.utils.crypto import constant_time_compare
from rest_framework.authentication import BaseAuthentication
from rest_framework.exceptions import AuthenticationFailed

from paygate.core.constants import UserRole

logger = logging.getLogger(__name__)

UPSTREAM_KEY_HEADER_KEYWORD = "Upstream-Key"


@dataclass(frozen=True)
class UpstreamIdentity:
    """The end user on whose behalf the gateway is calling."""

    user_id: str
    email: str = ""
    role: str = UserRole.USER

    is_authenticated = True

    def has_role(self, *roles: str) -> bool:
        return self.role in roles


class UpstreamIdentityAuthentication(BaseAuthentication):
    """
    Build an UpstreamIdentity from the x-user-* headers.

    Returns None when x-user-id is absent so that permission classes decide
    whether the endpoint needs a caller. Raises AuthenticationFailed when an
    upstream key is configured and the request does not carry it.
    """

    def authenticate(self, request):
        self._check_upstream_key(request)

        user_id = request.headers.get("x-user-id", "").strip()
        if not user_id:
            return None

        identity = UpstreamIdentity(
            user_id=user_id,
            email=request.headers.get("x-user-email", "").strip(),
            role=request.headers.get("x-user-role", UserRole.USER).strip().lower(),
        )
        return (identity, "upstream")

    def authenticate_header(self, request):
        # Makes DRF answer 401 rather than 403 for unauthenticated callers.
        return UPSTREAM_KEY_HEADER_KEYWORD

    def _check_upstream_key(self, request) -> None:
        configured_key = getattr(settings, "PAYGATE_UPSTREAM_API_KEY", "")
        if not configured_key:
            return

        auth_header = request.META.get("HTTP_AUTHORIZATION", "")
        parts = auth_header.split(" ", 1)
        expected_parts = 2
        if len(parts) != expected_parts or parts[0] != UPSTREAM_KEY_HEADER_KEYWORD:
            logger.warning("Payment API called without a valid upstream key header")
            raise AuthenticationFailed(
                "Invalid authorization header. Expected: "
                "Authorization: Upstream-Key <key>",
            )

        if not constant_time_compare(parts[1], configured_key):
            logger.warning("Payment API called with invalid upstream key")
            raise AuthenticationFailed("Invalid upstream API key.")
