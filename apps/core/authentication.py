"""
Session Authentication for Django REST Framework

The portal signs users in against the remote brokerage API and keeps the
returned identity, role and bearer token in the Django session. This module
turns that session into a typed user context for views and services.
"""
import logging
from dataclasses import dataclass
from enum import StrEnum

from rest_framework import authentication

from .constants import ROLE_NAME_MAP, SESSION_KEYS

logger = logging.getLogger(__name__)


class Role(StrEnum):
    """Closed set of portal roles."""
    AGENT = 'agent'
    FINANCE = 'finance'
    CEO = 'ceo'
    ADMIN = 'admin'
    COMPLIANCE = 'compliance'
    SALES_ADMIN = 'sales_admin'

    @classmethod
    def from_role_name(cls, role_name: str | None) -> 'Role':
        """Map the remote API's roleName onto a portal role (unknown -> agent)."""
        value = ROLE_NAME_MAP.get((role_name or '').strip())
        if value is None:
            logger.warning(f'Unknown roleName {role_name!r}, defaulting to agent')
            return cls.AGENT
        return cls(value)

    @classmethod
    def parse(cls, value: str | None) -> 'Role':
        """Parse a stored role value, tolerating the legacy SALES_ADMIN spelling."""
        normalized = (value or '').strip().lower()
        try:
            return cls(normalized)
        except ValueError:
            return cls.from_role_name(value)

    @property
    def home_path(self) -> str:
        """Landing page after login."""
        match self:
            case Role.ADMIN:
                return '/users'
            case Role.COMPLIANCE:
                return '/deals'
            case Role.AGENT | Role.FINANCE | Role.CEO | Role.SALES_ADMIN:
                return '/dashboard'


@dataclass(frozen=True)
class SessionUser:
    """
    Represents the signed-in user of the current browser session.

    This is NOT a Django User model - it's a lightweight container
    built from the session keys written at login.
    """
    user_id: str
    username: str
    role: Role
    role_name: str
    token: str
    commission_type_id: str | None = None   # pinned at login for agents
    commission_value: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return True

    @property
    def is_agent(self) -> bool:
        return self.role is Role.AGENT


def get_session_user(request) -> SessionUser | None:
    """
    Build the session user from request.session.

    Returns None unless the session carries isAuthenticated == "true".
    """
    session = getattr(request, 'session', None)
    if session is None:
        return None

    if session.get(SESSION_KEYS['is_authenticated']) != 'true':
        return None

    return SessionUser(
        user_id=session.get(SESSION_KEYS['user_id'], '') or '',
        username=session.get(SESSION_KEYS['username'], '') or '',
        role=Role.parse(session.get(SESSION_KEYS['role'])),
        role_name=session.get(SESSION_KEYS['role_name'], '') or '',
        token=session.get(SESSION_KEYS['token'], '') or '',
        commission_type_id=session.get(SESSION_KEYS['commission_type']) or None,
        commission_value=session.get(SESSION_KEYS['commission_value']) or None,
    )


def _commission_type_id(raw) -> str | None:
    """The login payload sends the commission type as an id or an {id, name} object."""
    if not raw:
        return None
    if isinstance(raw, dict):
        type_id = raw.get('id')
        return str(type_id) if type_id else None
    return str(raw)


def store_login(session, token: str, user: dict) -> SessionUser:
    """
    Write the login response into the session.

    Args:
        session: Django session
        token: Bearer token returned by the brokerage API
        user: The "user" object of the login response

    Returns:
        The SessionUser now stored in the session
    """
    role = Role.from_role_name(user.get('roleName'))
    username = user.get('name') or user.get('username') or ''

    # Start from a clean session so nothing leaks from a previous login
    session.flush()

    session[SESSION_KEYS['is_authenticated']] = 'true'
    session[SESSION_KEYS['role']] = role.value
    session[SESSION_KEYS['username']] = username
    session[SESSION_KEYS['user_id']] = str(user.get('id') or '')
    session[SESSION_KEYS['role_name']] = user.get('roleName') or ''
    session[SESSION_KEYS['token']] = token

    commission_type_id = _commission_type_id(user.get('commissionType'))
    if commission_type_id:
        session[SESSION_KEYS['commission_type']] = commission_type_id

    commission_value = user.get('commissionValue')
    if commission_value is not None:
        session[SESSION_KEYS['commission_value']] = str(commission_value)

    return SessionUser(
        user_id=str(user.get('id') or ''),
        username=username,
        role=role,
        role_name=user.get('roleName') or '',
        token=token,
        commission_type_id=commission_type_id,
        commission_value=str(commission_value) if commission_value is not None else None,
    )


def clear_session(session) -> None:
    """Remove every auth key and any draft state (logout)."""
    session.flush()


class PortalSessionAuthentication(authentication.BaseAuthentication):
    """
    Authenticates requests from the Django session populated at login.

    Returns (SessionUser, token) when the session is signed in, else None so
    that DRF treats the request as anonymous.
    """

    def authenticate(self, request):
        user = get_session_user(request)
        if user is None:
            return None
        return (user, user.token)

    def authenticate_header(self, request):
        """
        Return the WWW-Authenticate header value for 401 responses.
        """
        return 'Session realm="portal"'
