"""
Unit Tests for Deal Submission

Covers permission gating (with zero network calls), payload transformation,
create/update dispatch, notifications and the completion callback.
"""
import httpx
import pytest
from django.contrib.sessions.backends.cache import SessionStore

from apps.core.api_client import BrokerageAPIClient
from apps.core.authentication import Role
from apps.core.exceptions import ConflictError
from apps.deals.services import (
    SubmissionOutcome,
    build_deal_payload,
    completion_redirect,
    handle_form_submit,
    submission_in_flight,
    submit_deal,
)
from apps.deals.state import AdditionalAgent, AgentKind, DealDraft, DealFormData, FormMode, load_draft
from apps.filters.selectors import ReferenceData
from tests.factories import DealFormDataFactory, SessionUserFactory
from tests.fakes import FakeBrokerageAPI


@pytest.fixture
def api():
    return FakeBrokerageAPI()


@pytest.fixture
def client(api):
    with BrokerageAPIClient(token='tok', transport=api.transport) as client:
        yield client


class TestPermissions:
    """A denied submission never reaches the network."""

    def test_compliance_cannot_create(self, api, client, compliance_user, reference_data):
        result = submit_deal(DealFormDataFactory(), compliance_user, client, reference=reference_data)

        assert result.outcome is SubmissionOutcome.PERMISSION_DENIED
        assert result.notification.title == 'Permission denied'
        assert 'cannot create new deals' in result.notification.description
        assert api.calls == []

    @pytest.mark.parametrize('role', [Role.AGENT, Role.COMPLIANCE])
    def test_agent_and_compliance_cannot_update(self, role, api, client, reference_data):
        user = SessionUserFactory(role=role)
        callback_calls = []

        result = submit_deal(DealFormDataFactory(), user, client, deal_id='abc123',
                             reference=reference_data, on_complete=lambda *a: callback_calls.append(a))

        assert result.outcome is SubmissionOutcome.PERMISSION_DENIED
        assert api.calls == []
        assert callback_calls == []

    def test_form_submit_denied_before_validation(self, api, client, compliance_user, reference_data):
        draft = DealDraft(form=DealFormData(), reference=reference_data)

        result = handle_form_submit(draft, compliance_user, client)

        assert result.outcome is SubmissionOutcome.PERMISSION_DENIED
        assert result.errors == {}
        assert draft.pending is None
        assert api.calls == []


class TestPayload:
    """Tests for build_deal_payload()."""

    def test_numbers_and_defaults(self, finance_user, reference_data):
        form = DealFormDataFactory(sales_value='1200000', size='', downpayment='', comm_rate='2.5')

        payload = build_deal_payload(form, finance_user, finance_user.user_id, reference=reference_data)

        assert payload['dealValue'] == 1200000
        assert payload['size'] == 0
        assert 'downpayment' not in payload
        assert payload['agentCommissionValue'] == 2.5
        assert 'totalCommissionValue' not in payload
        assert payload['statusId'] == 'st-new'

    def test_dates_are_utc_timestamps(self, finance_user):
        form = DealFormDataFactory(booking_date='2024-03-01', cf_expiry='', close_date='2024-06-30')

        payload = build_deal_payload(form, finance_user, finance_user.user_id)

        assert payload['bookingDate'] == '2024-03-01T00:00:00.000Z'
        assert payload['closeDate'] == '2024-06-30T00:00:00.000Z'
        assert payload['cfExpiry'].endswith('Z')

    def test_agent_create_omits_close_date(self, agent_user, reference_data):
        payload = build_deal_payload(DealFormDataFactory(close_date='2024-06-30'), agent_user,
                                     agent_user.user_id, reference=reference_data)
        assert 'closeDate' not in payload

    def test_finance_create_defaults_close_date(self, finance_user):
        payload = build_deal_payload(DealFormDataFactory(close_date=''), finance_user, finance_user.user_id)
        assert payload['closeDate'].endswith('Z')

    def test_agent_commission_type_falls_back_to_login(self, agent_user):
        payload = build_deal_payload(DealFormDataFactory(agent_commission_type_id=''), agent_user, agent_user.user_id)
        assert payload['agentCommissionTypeId'] == 'ct-std'

    def test_booking_purchase_status_fallback(self, agent_user, reference_data):
        form = DealFormDataFactory(booking_date='2024-03-01', purchase_status_id='')
        payload = build_deal_payload(form, agent_user, agent_user.user_id, reference=reference_data)
        assert payload['purchaseStatusId'] == 'ps-booking'

    def test_optional_ids_omitted(self, finance_user):
        form = DealFormDataFactory(area_id='', team_id='', bedroom_id='', total_commission_type_id='', buyer_email='')
        payload = build_deal_payload(form, finance_user, finance_user.user_id)

        for key in ('areaId', 'teamId', 'bedroomId', 'totalCommissionTypeId', 'additionalAgents', 'purchaseStatusId'):
            assert key not in payload
        assert 'email' not in payload['buyer']

    def test_additional_agents_mapping(self, finance_user):
        form = DealFormDataFactory(additional_agents=(
            AdditionalAgent(agent_id='agent-2', commission_type_id='ct-std', commission_value='1.5'),
            AdditionalAgent(type=AgentKind.EXTERNAL, agency_name='Acme Realty', commission_type_id='ct-std'),
        ))

        payload = build_deal_payload(form, finance_user, finance_user.user_id)

        assert payload['additionalAgents'] == [
            {'agentId': 'agent-2', 'commissionTypeId': 'ct-std', 'commissionValue': 1.5, 'isInternal': True},
            {'externalAgentName': 'Acme Realty', 'commissionTypeId': 'ct-std', 'commissionValue': 0,
             'isInternal': False},
        ]


class TestCreate:
    """New deals are POSTed to /api/deals."""

    def test_create_success(self, api, client, agent_user, reference_data):
        api.add('POST', '/api/deals', json={'id': 'deal-77'})
        completed = []

        result = submit_deal(DealFormDataFactory(), agent_user, client,
                             reference=reference_data, on_complete=completed.append)

        assert result.outcome is SubmissionOutcome.CREATED
        assert result.deal_id == 'deal-77'
        assert result.redirect == '/deals/deal-77/media'
        assert result.notification.title == 'Deal Created'
        assert completed == ['deal-77']

        [request] = api.calls_to('POST', '/api/deals')
        body = api.body(request)
        assert body['agentId'] == agent_user.user_id
        assert 'closeDate' not in body
        assert request.headers['Authorization'] == 'Bearer tok'

    def test_create_failure_keeps_message(self, api, client, agent_user, reference_data):
        api.add('POST', '/api/deals', json={'message': 'Unit already sold'}, status_code=422)
        completed = []

        result = submit_deal(DealFormDataFactory(), agent_user, client,
                             reference=reference_data, on_complete=completed.append)

        assert result.outcome is SubmissionOutcome.FAILED
        assert result.notification.title == 'Error Creating Deal'
        assert result.notification.description == 'Unit already sold'
        assert completed == []
        assert len(api.calls_to('POST', '/api/deals')) == 1

    def test_sales_admin_without_agent(self, api, client, sales_admin_user):
        result = submit_deal(DealFormDataFactory(agent_id=''), sales_admin_user, client)

        assert result.outcome is SubmissionOutcome.AUTHENTICATION_ERROR
        assert result.notification.description == 'Please select an agent.'
        assert api.calls == []

    def test_missing_user_id(self, api, client):
        user = SessionUserFactory(user_id='')
        result = submit_deal(DealFormDataFactory(), user, client)

        assert result.outcome is SubmissionOutcome.AUTHENTICATION_ERROR
        assert result.notification.description == 'Agent ID not found. Please log in again.'

    def test_sales_admin_acts_for_selected_agent(self, api, client, sales_admin_user):
        api.add('POST', '/api/deals', json={'id': 'deal-5'})
        submit_deal(DealFormDataFactory(agent_id='agent-1'), sales_admin_user, client)

        [request] = api.calls_to('POST', '/api/deals')
        assert api.body(request)['agentId'] == 'agent-1'


class TestUpdate:
    """Edits are PUT to /api/deals/{id}/finance."""

    def test_finance_update(self, api, client, finance_user, reference_data):
        api.add('PUT', '/api/deals/abc123/finance', json={'id': 'abc123'})
        completed = []

        result = submit_deal(DealFormDataFactory(close_date=''), finance_user, client, deal_id='abc123',
                             reference=reference_data, on_complete=lambda *a: completed.append(a))

        assert result.outcome is SubmissionOutcome.UPDATED
        assert result.notification.title == 'Deal Updated'
        assert result.redirect == '/deals'
        assert completed == [()]

        [request] = api.calls_to('PUT', '/api/deals/abc123/finance')
        assert 'closeDate' in api.body(request)

    def test_update_network_failure(self, api, client, finance_user):
        def refuse(request):
            raise httpx.ConnectError('connection refused', request=request)

        api.add_handler('PUT', '/api/deals/abc123/finance', refuse)

        result = submit_deal(DealFormDataFactory(), finance_user, client, deal_id='abc123')

        assert result.outcome is SubmissionOutcome.FAILED
        assert result.notification.title == 'Error Updating Deal'
        assert result.notification.description == 'Network error or server unavailable'

    def test_sales_admin_returns_to_dashboard(self):
        assert completion_redirect(Role.SALES_ADMIN) == '/dashboard'
        assert completion_redirect(Role.CEO) == '/deals'


class TestHandleFormSubmit:
    """The submit button: preview for new deals, direct dispatch for edits."""

    def test_new_deal_opens_preview(self, api, client, agent_user, reference_data):
        form = DealFormDataFactory()
        draft = DealDraft(form=form, reference=reference_data)

        result = handle_form_submit(draft, agent_user, client)

        assert result.outcome is SubmissionOutcome.PREVIEW
        assert result.preview['propertyDetails']['developer'] == 'Emaar'
        assert draft.pending == form
        assert api.calls == []

    def test_invalid_form_reports_errors(self, api, client, agent_user, reference_data):
        draft = DealDraft(form=DealFormDataFactory(buyer_name=''), reference=reference_data)

        result = handle_form_submit(draft, agent_user, client)

        assert result.outcome is SubmissionOutcome.INVALID
        assert result.errors == {'buyerName': ['Buyer name is required']}
        assert draft.pending is None

    def test_blocked_while_filters_failed(self, api, client, agent_user):
        draft = DealDraft(form=DealFormDataFactory(), reference=ReferenceData(error='Failed to fetch filters'))

        result = handle_form_submit(draft, agent_user, client)

        assert result.outcome is SubmissionOutcome.INVALID
        assert 'filters' in result.errors

    def test_edit_dispatches_directly(self, api, client, finance_user, reference_data):
        api.add('PUT', '/api/deals/abc123/finance', json={})
        draft = DealDraft(mode=FormMode.EDIT, deal_id='abc123', form=DealFormDataFactory(), reference=reference_data)

        result = handle_form_submit(draft, finance_user, client)

        assert result.outcome is SubmissionOutcome.UPDATED
        assert draft.pending is None
        assert len(api.calls_to('PUT', '/api/deals/abc123/finance')) == 1


class TestSubmissionInFlight:
    """Only one submission per draft at a time."""

    def test_flag_set_during_and_cleared_after(self, reference_data):
        session = SessionStore()
        draft = DealDraft(form=DealFormDataFactory(), reference=reference_data)

        with submission_in_flight(session, draft):
            stored = load_draft(SessionStore(session.session_key))
            assert stored.is_submitting

        assert not draft.is_submitting
        assert not load_draft(session).is_submitting

    def test_second_submission_rejected(self, reference_data):
        session = SessionStore()
        draft = DealDraft(form=DealFormDataFactory(), reference=reference_data, is_submitting=True)

        with pytest.raises(ConflictError):
            with submission_in_flight(session, draft):
                pass

    def test_cleared_flag_written_to_store_on_exit(self, reference_data):
        session = SessionStore()
        draft = DealDraft(form=DealFormDataFactory(), reference=reference_data)
        draft.pending = draft.form

        with submission_in_flight(session, draft):
            draft.pending = None

        stored = load_draft(SessionStore(session.session_key))
        assert not stored.is_submitting
        assert stored.pending is None

    def test_flag_cleared_in_store_when_dispatch_raises(self, reference_data):
        session = SessionStore()
        draft = DealDraft(form=DealFormDataFactory(), reference=reference_data)

        with pytest.raises(RuntimeError):
            with submission_in_flight(session, draft):
                raise RuntimeError('boom')

        assert not load_draft(SessionStore(session.session_key)).is_submitting
