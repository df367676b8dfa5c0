"""
Pytest Configuration for Brokerage Portal Tests

Key Features:
- Routes every outbound brokerage API call to an in-process fake
- Provides fixtures for signed-in sessions and API clients
- Sets up factory_boy factories for users, forms and deal records
"""
from unittest.mock import patch

import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from apps.core.authentication import Role
from apps.core.constants import SESSION_KEYS
from tests.factories import SessionUserFactory
from tests.fakes import FakeBrokerageAPI, build_reference_data


@pytest.fixture(autouse=True)
def clear_cache():
    """Sessions and throttle counters live in the local-memory cache."""
    cache.clear()
    yield
    cache.clear()


# =============================================================================
# Brokerage API Fake
# =============================================================================

@pytest.fixture
def brokerage_api():
    """
    Fake brokerage API wired into every BrokerageAPIClient.

    Patches default_transport so clients built by views and services talk
    to the fake instead of the network.
    """
    api = FakeBrokerageAPI()
    with patch('apps.core.api_client.default_transport', return_value=api.transport):
        yield api


@pytest.fixture
def reference_data():
    """Normalized reference data matching the fake API's filter lists."""
    return build_reference_data()


# =============================================================================
# Session User Fixtures
# =============================================================================

@pytest.fixture
def agent_user():
    return SessionUserFactory(role=Role.AGENT, username='Sara Lee', commission_type_id='ct-std', commission_value='2')


@pytest.fixture
def finance_user():
    return SessionUserFactory(role=Role.FINANCE)


@pytest.fixture
def compliance_user():
    return SessionUserFactory(role=Role.COMPLIANCE)


@pytest.fixture
def sales_admin_user():
    return SessionUserFactory(role=Role.SALES_ADMIN)


# =============================================================================
# API Client Fixtures
# =============================================================================

@pytest.fixture
def api_client():
    """Basic API client without a signed-in session."""
    return APIClient()


def write_session(client: APIClient, user) -> None:
    """Store a SessionUser in the client's session, as login would."""
    session = client.session
    session[SESSION_KEYS['is_authenticated']] = 'true'
    session[SESSION_KEYS['role']] = user.role.value
    session[SESSION_KEYS['username']] = user.username
    session[SESSION_KEYS['user_id']] = user.user_id
    session[SESSION_KEYS['role_name']] = user.role_name
    session[SESSION_KEYS['token']] = user.token
    if user.commission_type_id:
        session[SESSION_KEYS['commission_type']] = user.commission_type_id
    if user.commission_value:
        session[SESSION_KEYS['commission_value']] = user.commission_value
    session.save()


@pytest.fixture
def login_as(api_client):
    """
    Sign the api_client in as the given SessionUser.

    Usage:
        client = login_as(agent_user)
    """
    def _login(user):
        write_session(api_client, user)
        return api_client
    return _login
