"""
Integration Test Fixtures

Signed-in API clients whose outbound brokerage API calls all land on the
in-process fake.
"""
import pytest
from rest_framework.test import APIClient

from tests.conftest import write_session
from tests.factories import DealFormDataFactory


@pytest.fixture
def signed_in(brokerage_api):
    """
    Build an APIClient signed in as the given SessionUser.

    Usage:
        client = signed_in(finance_user)
    """
    def _signed_in(user) -> APIClient:
        client = APIClient()
        write_session(client, user)
        return client
    return _signed_in


@pytest.fixture
def valid_values():
    """camelCase field values for a complete, valid form."""
    return DealFormDataFactory().as_dict()
