"""
Authentication API Views

Signs users in against the brokerage API and keeps the result in the
Django session.
"""
import logging

from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.core.api_client import BrokerageAPIClient
from apps.core.authentication import clear_session, store_login
from apps.core.exceptions import BackendAPIError
from apps.core.mixins import AuthenticatedAPIView
from apps.core.throttles import AuthRateThrottle

logger = logging.getLogger(__name__)


class LoginView(APIView):
    """
    POST /api/auth/login

    Authenticate user with username/password via the brokerage API.

    Request Body:
        {
            "username": "jdoe",
            "password": "password123"
        }

    Response (200):
        {
            "user": {
                "id": "uuid",
                "username": "jdoe",
                "role": "agent",
                "roleName": "Agent"
            },
            "redirect": "/dashboard"
        }

    Errors:
        400: Invalid request body
        401: Invalid credentials
        503: Brokerage API unreachable
    """
    authentication_classes = []
    permission_classes = [AllowAny]
    throttle_classes = [AuthRateThrottle]

    def post(self, request):
        username = str(request.data.get('username', '')).strip()
        password = request.data.get('password', '')

        if not username or not password:
            return Response(
                {'error': 'ValidationError', 'message': 'Username and password required'},
                status=status.HTTP_400_BAD_REQUEST
            )

        try:
            with BrokerageAPIClient() as client:
                auth_data = client.post(
                    '/api/auth/login',
                    json={'username': username, 'password': password},
                )
        except BackendAPIError as e:
            if e.upstream_status == 0:
                return Response(
                    {'error': 'ServiceError', 'message': 'Authentication service unavailable'},
                    status=status.HTTP_503_SERVICE_UNAVAILABLE
                )
            return Response(
                {'error': 'AuthenticationError', 'message': e.message or 'Invalid username or password'},
                status=status.HTTP_401_UNAUTHORIZED
            )

        token = (auth_data or {}).get('token')
        user_data = (auth_data or {}).get('user') or {}
        if not token or not user_data.get('id'):
            return Response(
                {'error': 'AuthenticationError', 'message': 'Invalid auth response'},
                status=status.HTTP_401_UNAUTHORIZED
            )

        user = store_login(request.session, token, user_data)
        logger.info(f'User {user.user_id} signed in as {user.role}')

        return Response({
            'user': {
                'id': user.user_id,
                'username': user.username,
                'role': user.role.value,
                'roleName': user.role_name,
            },
            'redirect': user.role.home_path,
        })


class LogoutView(APIView):
    """
    POST /api/auth/logout

    Clears every session key, including any deal draft in progress.

    Response (200):
        {"message": "Logged out successfully", "redirect": "/login"}
    """
    authentication_classes = []
    permission_classes = [AllowAny]

    def post(self, request):
        clear_session(request.session)
        return Response({'message': 'Logged out successfully', 'redirect': '/login'})


class SessionView(AuthenticatedAPIView, APIView):
    """
    GET /api/auth/session

    Returns the signed-in user as stored in the session.
    """

    def get(self, request):
        user = self.get_user(request)
        return Response({
            'user': {
                'id': user.user_id,
                'username': user.username,
                'role': user.role.value,
                'roleName': user.role_name,
                'commissionTypeId': user.commission_type_id,
                'commissionValue': user.commission_value,
            },
            'home': user.role.home_path,
        })
