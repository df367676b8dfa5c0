"""
Deals URL Configuration
"""
from django.urls import path

from .views import (
    CurrentDraftView,
    DraftFiltersRefetchView,
    DraftStartView,
    DraftSubmitView,
    PreviewCancelView,
    PreviewConfirmView,
)

urlpatterns = [
    path('drafts', DraftStartView.as_view(), name='deal_draft_start'),
    path('drafts/current', CurrentDraftView.as_view(), name='deal_draft_current'),
    path('drafts/current/submit', DraftSubmitView.as_view(), name='deal_draft_submit'),
    path('drafts/current/preview/confirm', PreviewConfirmView.as_view(), name='deal_preview_confirm'),
    path('drafts/current/preview/cancel', PreviewCancelView.as_view(), name='deal_preview_cancel'),
    path('drafts/current/filters/refetch', DraftFiltersRefetchView.as_view(), name='deal_filters_refetch'),
]
