"""
URL Configuration for the Brokerage Portal API

All routes are prefixed with /api/ to match the frontend's API paths.
"""
from django.urls import include, path

from apps.core.views import health_check

urlpatterns = [
    # Health check endpoint (public)
    path('api/health', health_check, name='health_check'),

    # Authentication endpoints
    path('api/auth/', include('apps.auth_api.urls')),

    # Reference data (dropdown options)
    path('api/filters/', include('apps.filters.urls')),

    # Deal form workflow
    path('api/deals/', include('apps.deals.urls')),
]
