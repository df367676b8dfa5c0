"""
Reference Data API Views

Endpoints:
- GET /api/filters/ - Every dropdown list, normalized (?refetch=1 to reload)
"""
import logging

from rest_framework import status
from rest_framework.views import APIView

from apps.core.api_client import get_api_client
from apps.core.constants import FILTERS_SESSION_KEY
from apps.core.mixins import AuthenticatedAPIView
from apps.core.notifications import Notification
from apps.core.permissions import IsAuthenticated

from .selectors import ReferenceData, ReferenceDataLoader

logger = logging.getLogger(__name__)


class FilterOptionsView(AuthenticatedAPIView, APIView):
    """
    GET /api/filters/

    Query Parameters:
        refetch: "1" to ignore the bundle cached in the session

    Response (200):
        {
            "options": {"developers": [{"id": "...", "name": "..."}], ...},
            "isLoading": false,
            "error": null
        }

    Errors:
        502: a category failed to load ("Failed to fetch filters")
    """

    permission_classes = [IsAuthenticated]

    def get(self, request):
        user = self.get_user(request)
        refetch = request.query_params.get('refetch') in ('1', 'true')

        cached = request.session.get(FILTERS_SESSION_KEY)
        if cached and not refetch:
            return self.success_response(ReferenceData.from_dict(cached).as_dict())

        with get_api_client(user) as client:
            loader = ReferenceDataLoader(client)
            data = loader.refetch() if refetch else loader.load()

        if loader.error:
            request.session.pop(FILTERS_SESSION_KEY, None)
            return self.success_response(
                data.as_dict(),
                status_code=status.HTTP_502_BAD_GATEWAY,
                notification=Notification.error('Error loading filters', loader.error),
            )

        request.session[FILTERS_SESSION_KEY] = data.as_dict()
        return self.success_response(data.as_dict())
