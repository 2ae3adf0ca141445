from rest_framework.permissions import SAFE_METHODS
from rest_framework.permissions import BasePermission

from paygate.core.constants import UserRole


class HasUpstreamIdentity(BasePermission):
    """Caller must have been identified by the upstream gateway."""

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated)


class RolePermission(HasUpstreamIdentity):
    """Caller must hold one of ``allowed_roles``."""

    allowed_roles: tuple[str, ...] = ()
    message = "Forbidden"

    def has_permission(self, request, view):
        if not super().has_permission(request, view):
            return False
        return request.user.has_role(*self.allowed_roles)


class IsAdmin(RolePermission):
    allowed_roles = (UserRole.ADMIN,)


class IsManager(RolePermission):
    allowed_roles = (UserRole.MANAGER,)


class IsManagerOrAdmin(RolePermission):
    allowed_roles = (UserRole.MANAGER, UserRole.ADMIN)


class IsAdminOrReadOnly(HasUpstreamIdentity):
    """Any identified caller may read; writes need the admin role."""

    message = "Forbidden"

    def has_permission(self, request, view):
        if not super().has_permission(request, view):
            return False
        if request.method in SAFE_METHODS:
            return True
        return request.user.has_role(UserRole.ADMIN)
