"""
Authentication Middleware for the Brokerage Portal

Gates protected routes on the session written at login.
"""
import logging
import re
from collections.abc import Callable

from django.http import JsonResponse

from .authentication import get_session_user

logger = logging.getLogger(__name__)

LOGIN_PATH = '/login'


class SessionAuthMiddleware:
    """
    Middleware that requires a signed-in session on protected routes.

    This middleware:
    1. Skips the check for public routes
    2. Requires isAuthenticated == "true" in the session otherwise
    3. Attaches the SessionUser to request.session_user
    4. Returns 401 with a login redirect hint for anonymous requests

    Token expiry is not checked here; it surfaces when a brokerage API
    call fails.
    """

    # Routes that don't require authentication
    PUBLIC_ROUTES: list[str] = [
        r'^/api/health$',
        r'^/api/auth/login$',
        r'^/api/auth/logout$',
    ]

    def __init__(self, get_response: Callable):
        self.get_response = get_response
        # Compile regex patterns for efficiency
        self._public_patterns = [re.compile(pattern) for pattern in self.PUBLIC_ROUTES]

    def __call__(self, request):
        request.session_user = get_session_user(request)

        if self._is_public_route(request.path):
            return self.get_response(request)

        if request.session_user is None:
            logger.debug(f'Anonymous request to {request.path}, redirecting to login')
            return JsonResponse(
                {
                    'error': 'Unauthorized',
                    'message': 'Authentication required',
                    'redirect': LOGIN_PATH,
                },
                status=401
            )

        logger.debug(
            f'Session user {request.session_user.user_id} '
            f'({request.session_user.role}) accessing {request.path}'
        )
        return self.get_response(request)

    def _is_public_route(self, path: str) -> bool:
        """Check if the given path matches any public route pattern."""
        return any(pattern.match(path) for pattern in self._public_patterns)
