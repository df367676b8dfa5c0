"""
Permission Classes for the Brokerage Portal

Provides role-based access control for deal authoring.
"""
from rest_framework import permissions

from .authentication import Role, SessionUser


# =============================================================================
# Deal authoring rules
# =============================================================================

def can_create_deal(role: Role) -> bool:
    """Compliance may view deals and upload media, never create."""
    match role:
        case Role.COMPLIANCE:
            return False
        case Role.AGENT | Role.FINANCE | Role.CEO | Role.ADMIN | Role.SALES_ADMIN:
            return True


def can_edit_deal(role: Role) -> bool:
    """Agents create deals but cannot edit them; compliance cannot edit."""
    match role:
        case Role.AGENT | Role.COMPLIANCE:
            return False
        case Role.FINANCE | Role.CEO | Role.ADMIN | Role.SALES_ADMIN:
            return True


def deal_permission_message(role: Role, editing: bool) -> str:
    """Explanation shown in the permission-denied toast."""
    match role:
        case Role.AGENT if editing:
            return 'Agents can create deals, but cannot edit an existing deal.'
        case Role.COMPLIANCE if editing:
            return 'Compliance users can view deals and upload media, but cannot edit deal data.'
        case Role.COMPLIANCE:
            return 'Compliance users can view deals and upload media, but cannot create new deals.'
        case _:
            return 'You do not have permission to perform this action.'


def is_read_only(role: Role, editing: bool) -> bool:
    """Whether the deal form renders view-only for this role and mode."""
    return editing and not can_edit_deal(role)


# =============================================================================
# DRF permission classes
# =============================================================================

class IsAuthenticated(permissions.BasePermission):
    """
    Allows access only to requests carrying a signed-in session.
    """
    message = 'Authentication required'

    def has_permission(self, request, view):
        user = getattr(request, 'user', None)
        return isinstance(user, SessionUser)

