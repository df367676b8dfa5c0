"""
Deal Submission Services

Turns a validated form snapshot into a create or update call against the
brokerage API and reports the outcome as a notification.

Usage:
    result = submit_deal(snapshot, user, client, deal_id=None,
                         reference=reference, on_complete=redirect_to_media)
    if result.outcome is SubmissionOutcome.CREATED:
        ...

Every path checks permissions first; a denied submission makes no network
call and leaves the draft untouched.
"""
import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from apps.core.api_client import BrokerageAPIClient
from apps.core.authentication import Role, SessionUser
from apps.core.exceptions import BackendAPIError, ConflictError
from apps.core.notifications import Notification
from apps.core.permissions import can_create_deal, can_edit_deal, deal_permission_message
from apps.core.utils import parse_number, to_timestamp
from apps.filters.selectors import ReferenceData

from .derivations import booking_purchase_status_id, default_status_id, submits_for_review
from .preview import build_preview, open_preview
from .state import DealDraft, DealFormData, FormMode, save_draft
from .validation import validate_deal_form

logger = logging.getLogger(__name__)


class SubmissionOutcome(StrEnum):
    PERMISSION_DENIED = 'permission_denied'
    INVALID = 'invalid'
    PREVIEW = 'preview'
    AUTHENTICATION_ERROR = 'authentication_error'
    CREATED = 'created'
    UPDATED = 'updated'
    FAILED = 'failed'


@dataclass
class SubmissionResult:
    outcome: SubmissionOutcome
    notification: Notification | None = None
    deal_id: str | None = None
    redirect: str | None = None
    errors: dict = field(default_factory=dict)
    preview: dict | None = None

    @property
    def succeeded(self) -> bool:
        return self.outcome in (SubmissionOutcome.CREATED, SubmissionOutcome.UPDATED)

    def as_dict(self) -> dict:
        data: dict[str, Any] = {'outcome': self.outcome.value}
        if self.notification is not None:
            data['notification'] = self.notification.as_dict()
        if self.deal_id:
            data['dealId'] = self.deal_id
        if self.redirect:
            data['redirect'] = self.redirect
        if self.errors:
            data['errors'] = self.errors
        if self.preview is not None:
            data['preview'] = self.preview
        return data


# =============================================================================
# Permissions and navigation
# =============================================================================

def check_submission_permission(role: Role, deal_id: str | None) -> SubmissionResult | None:
    """Return a PERMISSION_DENIED result, or None when the role may proceed."""
    editing = bool(deal_id)
    allowed = can_edit_deal(role) if editing else can_create_deal(role)
    if allowed:
        return None

    logger.info(f'Deal {"update" if editing else "create"} denied for role {role}')
    return SubmissionResult(
        SubmissionOutcome.PERMISSION_DENIED,
        notification=Notification.error('Permission denied', deal_permission_message(role, editing)),
    )


def completion_redirect(role: Role, created_deal_id: str | None = None) -> str:
    """Where the UI goes after a successful save."""
    if created_deal_id:
        return f'/deals/{created_deal_id}/media'
    match role:
        case Role.SALES_ADMIN:
            return '/dashboard'
        case Role.AGENT | Role.FINANCE | Role.CEO | Role.ADMIN | Role.COMPLIANCE:
            return '/deals'


# =============================================================================
# Payload
# =============================================================================

def _number(value: str | None) -> int | float | None:
    number = parse_number(value)
    if number is not None and number.is_integer():
        return int(number)
    return number


def resolve_agent_id(form: DealFormData, user: SessionUser) -> str:
    """The agent the deal is recorded against."""
    match user.role:
        case Role.SALES_ADMIN:
            return form.agent_id
        case _:
            return user.user_id


def _agent_commission_type_id(form: DealFormData, user: SessionUser) -> str | None:
    if user.role is Role.AGENT:
        return form.agent_commission_type_id or user.commission_type_id or None
    return form.agent_commission_type_id or None


def _purchase_status_id(form: DealFormData, role: Role, deal_id: str | None, reference: ReferenceData) -> str | None:
    if submits_for_review(role) and not deal_id and form.booking_date and not form.purchase_status_id:
        return booking_purchase_status_id(reference.get('purchase_statuses')) or None
    return form.purchase_status_id or None


def _party(form: DealFormData, prefix: str) -> dict:
    party = {
        'name': getattr(form, f'{prefix}_name'),
        'phone': getattr(form, f'{prefix}_phone'),
        'nationalityId': getattr(form, f'{prefix}_nationality_id'),
        'sourceId': getattr(form, f'{prefix}_source_id'),
    }
    email = getattr(form, f'{prefix}_email')
    if email:
        party['email'] = email
    return party


def _additional_agents(form: DealFormData) -> list[dict]:
    agents = []
    for agent in form.additional_agents:
        entry = {
            'commissionTypeId': agent.commission_type_id,
            'commissionValue': _number(agent.commission_value) or 0,
            'isInternal': agent.is_internal,
        }
        if agent.is_internal:
            entry['agentId'] = agent.agent_id
        else:
            entry['externalAgentName'] = agent.agency_name
        agents.append(entry)
    return agents


def build_deal_payload(
    form: DealFormData,
    user: SessionUser,
    agent_id: str,
    deal_id: str | None = None,
    reference: ReferenceData | None = None,
) -> dict:
    """
    Transform a form snapshot into the wire payload.

    Empty optional values are left out rather than sent as blanks.
    """
    reference = reference or ReferenceData()
    role = user.role
    mode = FormMode.EDIT if deal_id else FormMode.CREATE

    payload: dict[str, Any] = {
        'dealValue': _number(form.sales_value) or 0,
        'developerId': form.developer_id,
        'projectId': form.project_id,
        'agentId': agent_id,
        'cfExpiry': to_timestamp(form.cf_expiry, default_now=True),
        'dealTypeId': form.deal_type_id,
        'propertyName': form.property_name,
        'propertyTypeId': form.property_type_id,
        'unitNumber': form.unit_number,
        'unitTypeId': form.unit_type_id,
        'size': _number(form.size) or 0,
        'buyer': _party(form, 'buyer'),
        'seller': _party(form, 'seller'),
    }

    optional = {
        'bookingDate': to_timestamp(form.booking_date),
        'statusId': form.status_id or default_status_id(role, mode, reference.get('statuses')),
        'areaId': form.area_id,
        'teamId': form.team_id,
        'bedroomId': form.bedroom_id,
        'downpayment': _number(form.downpayment),
        'agentCommissionTypeId': _agent_commission_type_id(form, user),
        'agentCommissionValue': _number(form.comm_rate),
        'totalCommissionTypeId': form.total_commission_type_id,
        'totalCommissionValue': _number(form.total_commission_value),
        'purchaseStatusId': _purchase_status_id(form, role, deal_id, reference),
        'additionalAgents': _additional_agents(form),
        'notes': form.notes,
    }
    payload.update({key: value for key, value in optional.items() if value not in (None, '', [])})

    # Agents and sales admins never set the close date on a new deal
    if deal_id or not submits_for_review(role):
        payload['closeDate'] = to_timestamp(form.close_date, default_now=True)

    return payload


def _created_deal_id(response: Any) -> str | None:
    if not isinstance(response, dict):
        return None
    deal_id = response.get('id')
    if deal_id is None and isinstance(response.get('data'), dict):
        deal_id = response['data'].get('id')
    return str(deal_id) if deal_id is not None else None


# =============================================================================
# Dispatch
# =============================================================================

def submit_deal(
    form: DealFormData,
    user: SessionUser,
    client: BrokerageAPIClient,
    deal_id: str | None = None,
    reference: ReferenceData | None = None,
    on_complete: Callable[..., None] | None = None,
) -> SubmissionResult:
    """
    Create (no deal_id) or update a deal from a validated snapshot.

    on_complete is called with the new deal id after a create, and with no
    arguments after an update. It is not called on failure.
    """
    denied = check_submission_permission(user.role, deal_id)
    if denied is not None:
        return denied

    agent_id = resolve_agent_id(form, user)
    if not agent_id:
        description = (
            'Please select an agent.' if user.role is Role.SALES_ADMIN
            else 'Agent ID not found. Please log in again.'
        )
        return SubmissionResult(
            SubmissionOutcome.AUTHENTICATION_ERROR,
            notification=Notification.error('Authentication Error', description),
        )

    payload = build_deal_payload(form, user, agent_id, deal_id=deal_id, reference=reference)

    try:
        if deal_id:
            client.put(f'/api/deals/{deal_id}/finance', json=payload)
        else:
            response = client.post('/api/deals', json=payload)
    except BackendAPIError as e:
        logger.warning(f'Deal {"update" if deal_id else "create"} failed for {user.user_id}: {e.message}')
        if deal_id:
            notification = Notification.error('Error Updating Deal', e.message or 'Failed to update deal')
        else:
            notification = Notification.error('Error Creating Deal', e.message or 'Failed to create deal')
        return SubmissionResult(SubmissionOutcome.FAILED, notification=notification, deal_id=deal_id)

    if deal_id:
        logger.info(f'Deal {deal_id} updated by {user.user_id}')
        if on_complete is not None:
            on_complete()
        return SubmissionResult(
            SubmissionOutcome.UPDATED,
            notification=Notification.success('Deal Updated', 'Deal has been updated successfully!'),
            deal_id=deal_id,
            redirect=completion_redirect(user.role),
        )

    created_id = _created_deal_id(response)
    logger.info(f'Deal {created_id} created by {user.user_id}')
    if on_complete is not None:
        on_complete(created_id)
    return SubmissionResult(
        SubmissionOutcome.CREATED,
        notification=Notification.success('Deal Created', 'Deal has been created successfully!'),
        deal_id=created_id,
        redirect=completion_redirect(user.role, created_id) if created_id else '/deals',
    )


def handle_form_submit(
    draft: DealDraft,
    user: SessionUser,
    client: BrokerageAPIClient,
    on_complete: Callable[..., None] | None = None,
) -> SubmissionResult:
    """
    The form's submit action.

    New deals go to the preview gate; edits are dispatched directly.
    """
    denied = check_submission_permission(user.role, draft.deal_id)
    if denied is not None:
        return denied

    if not draft.reference.is_ready:
        return SubmissionResult(
            SubmissionOutcome.INVALID,
            notification=Notification.error('Reference data unavailable', draft.reference.error or 'Filters are still loading'),
            errors={'filters': [draft.reference.error or 'Filters are still loading']},
        )

    errors = validate_deal_form(draft.form, user.role, draft.reference)
    if errors:
        return SubmissionResult(SubmissionOutcome.INVALID, errors=errors)

    if not draft.is_edit:
        snapshot = open_preview(draft)
        status_default = default_status_id(user.role, draft.mode, draft.reference.get('statuses'))
        return SubmissionResult(
            SubmissionOutcome.PREVIEW,
            preview=build_preview(snapshot, draft.reference, user, status_default),
        )

    return submit_deal(draft.form, user, client, deal_id=draft.deal_id,
                       reference=draft.reference, on_complete=on_complete)


@contextmanager
def submission_in_flight(session, draft: DealDraft) -> Iterator[None]:
    """
    Mark the draft as submitting for the duration of a dispatch.

    The flag is written through to the session store immediately so a
    second request from the same tab sees it.

    Raises:
        ConflictError: a submission is already in progress
    """
    if draft.is_submitting:
        raise ConflictError(
            'A submission is already in progress',
            notification=Notification.warning('Please wait', 'This deal is already being submitted.'),
        )

    draft.is_submitting = True
    save_draft(session, draft)
    session.save()
    try:
        yield
    finally:
        draft.is_submitting = False
        save_draft(session, draft)
        # SessionMiddleware skips saving on 5xx responses
        session.save()
