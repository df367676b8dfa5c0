"""
Permission Unit Tests

Tests for the deal authoring rules and the DRF permission class.
"""
from django.test import RequestFactory, SimpleTestCase
from rest_framework.views import APIView

from apps.core.authentication import Role, SessionUser
from apps.core.permissions import (
    IsAuthenticated,
    can_create_deal,
    can_edit_deal,
    deal_permission_message,
    is_read_only,
)


class MockView(APIView):
    """Mock view for testing permissions."""
    pass


def create_session_user(role: Role = Role.AGENT) -> SessionUser:
    """Helper to create a SessionUser for tests."""
    return SessionUser(
        user_id='user-1',
        username='Test User',
        role=role,
        role_name=role.value,
        token='token',
    )


class IsAuthenticatedTests(SimpleTestCase):
    """Tests for IsAuthenticated permission."""

    def setUp(self):
        self.factory = RequestFactory()
        self.permission = IsAuthenticated()
        self.view = MockView()

    def test_session_user_allowed(self):
        """Signed-in session passes permission check."""
        request = self.factory.get('/')
        request.user = create_session_user()

        self.assertTrue(self.permission.has_permission(request, self.view))

    def test_anonymous_user_denied(self):
        """Anonymous request fails permission check."""
        request = self.factory.get('/')
        request.user = None

        self.assertFalse(self.permission.has_permission(request, self.view))

    def test_other_user_type_denied(self):
        """Anything but a SessionUser fails permission check."""
        request = self.factory.get('/')
        request.user = {'id': 'fake'}

        self.assertFalse(self.permission.has_permission(request, self.view))


class DealAuthoringRuleTests(SimpleTestCase):
    """Tests for who may create and edit deals."""

    def test_everyone_but_compliance_creates(self):
        for role in Role:
            with self.subTest(role=role):
                self.assertEqual(can_create_deal(role), role is not Role.COMPLIANCE)

    def test_agent_and_compliance_cannot_edit(self):
        self.assertFalse(can_edit_deal(Role.AGENT))
        self.assertFalse(can_edit_deal(Role.COMPLIANCE))
        for role in (Role.FINANCE, Role.CEO, Role.ADMIN, Role.SALES_ADMIN):
            with self.subTest(role=role):
                self.assertTrue(can_edit_deal(role))

    def test_read_only_only_applies_to_edits(self):
        self.assertTrue(is_read_only(Role.AGENT, editing=True))
        self.assertFalse(is_read_only(Role.AGENT, editing=False))
        self.assertFalse(is_read_only(Role.FINANCE, editing=True))

    def test_denial_messages(self):
        self.assertEqual(
            deal_permission_message(Role.AGENT, editing=True),
            'Agents can create deals, but cannot edit an existing deal.',
        )
        self.assertEqual(
            deal_permission_message(Role.COMPLIANCE, editing=True),
            'Compliance users can view deals and upload media, but cannot edit deal data.',
        )
        self.assertEqual(
            deal_permission_message(Role.COMPLIANCE, editing=False),
            'Compliance users can view deals and upload media, but cannot create new deals.',
        )
