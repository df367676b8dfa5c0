"""
Core View Mixins

Provides standardized authentication, error handling, and response patterns
for all API views in the application.
"""
from rest_framework.response import Response

from .authentication import SessionUser, get_session_user
from .exceptions import AuthenticationError
from .notifications import Notification


class AuthenticatedAPIView:
    """
    Mixin providing standardized session access and responses.

    Usage:
        class MyView(AuthenticatedAPIView, APIView):
            def get(self, request):
                user = self.get_user(request)  # Raises if not authenticated
                # ... view logic
    """

    def get_user(self, request) -> SessionUser:
        """
        Get the session user or raise 401.

        Raises:
            AuthenticationError if the session is not signed in
        """
        user = request.user if isinstance(request.user, SessionUser) else get_session_user(request)
        if not user:
            raise AuthenticationError()
        return user

    def success_response(
        self,
        data=None,
        status_code: int = 200,
        notification: Notification | None = None,
    ) -> Response:
        """Build standardized success response."""
        if data is None:
            data = {"success": True}
        if notification is not None:
            data = {**data, "notification": notification.as_dict()}
        return Response(data, status=status_code)
