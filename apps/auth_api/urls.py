"""
Authentication API URLs

All routes are relative to /api/auth/
"""
from django.urls import path

from . import views

urlpatterns = [
    # Public auth endpoints
    path('login', views.LoginView.as_view(), name='auth_login'),
    path('logout', views.LogoutView.as_view(), name='auth_logout'),

    # Session management
    path('session', views.SessionView.as_view(), name='auth_session'),
]
