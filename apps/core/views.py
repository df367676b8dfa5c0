"""
Core Views for the Brokerage Portal

Contains health check and other utility endpoints.
"""
from django.conf import settings
from django.http import JsonResponse
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny

from .authentication import PortalSessionAuthentication


@api_view(['GET'])
@authentication_classes([PortalSessionAuthentication])
@permission_classes([AllowAny])
def health_check(request):
    """
    Health check endpoint for deployment verification.

    Returns:
        - 200: Service is healthy
        - 503: Brokerage API base URL is not configured

    Response includes:
        - status: 'healthy' or 'unhealthy'
        - brokerage_api: the configured base URL
        - authenticated: True if the session is signed in
        - role: session role when signed in
    """
    response_data = {
        'status': 'healthy',
        'service': 'brokerage-portal',
        'brokerage_api': settings.BROKERAGE_API_BASE_URL or None,
    }

    if not settings.BROKERAGE_API_BASE_URL:
        response_data['status'] = 'unhealthy'
        return JsonResponse(response_data, status=503)

    user = getattr(request, 'user', None)
    if user and getattr(user, 'is_authenticated', False):
        response_data['authenticated'] = True
        response_data['user_id'] = user.user_id
        response_data['role'] = user.role.value
    else:
        response_data['authenticated'] = False

    return JsonResponse(response_data)
