from rest_framework.permissions import BasePermission

from core.errors import Forbidden
from projects.policies import is_admin


class IsAdminRole(BasePermission):
    """
    Only users whose role is admin. Other authenticated users get forbidden,
    anonymous requests fall through to missing_token.
    """
    message = Forbidden.default_detail

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        return is_admin(user)
