"""
Filters URL Configuration
"""
from django.urls import path

from .views import FilterOptionsView

urlpatterns = [
    path('', FilterOptionsView.as_view(), name='filter_options'),
]
