"""
Preview / confirmation gate for new deals.

On first submit a new deal is not sent straight away: the form is frozen
into a pending snapshot and rendered as a read-only summary with every id
resolved to its label. The user then confirms (submit the snapshot) or goes
back to editing (drop the snapshot). The live form is never touched.
"""
import logging
from collections.abc import Callable

from apps.core.authentication import Role, SessionUser
from apps.core.constants import UNRESOLVED_LABEL
from apps.core.exceptions import ConflictError
from apps.filters.selectors import ReferenceData

from .derivations import submits_for_review
from .state import AdditionalAgent, DealDraft, DealFormData

logger = logging.getLogger(__name__)

DEFAULT_MAIN_AGENT_NAME = 'Current Agent'


def main_agent_name(form: DealFormData, reference: ReferenceData, user: SessionUser) -> str:
    """Sales admins act for the agent they picked; everyone else for themselves."""
    match user.role:
        case Role.SALES_ADMIN if form.agent_id:
            return reference.label('agents', form.agent_id)
        case _:
            return user.username or DEFAULT_MAIN_AGENT_NAME


def _agent_summary(agent: AdditionalAgent, reference: ReferenceData) -> dict:
    if agent.is_internal:
        name = reference.label('agents', agent.agent_id)
    else:
        name = agent.agency_name or UNRESOLVED_LABEL
    return {
        'type': agent.type.value,
        'name': name,
        'commissionType': reference.label('commission_types', agent.commission_type_id),
        'commissionValue': agent.commission_value,
    }


def build_preview(
    form: DealFormData,
    reference: ReferenceData,
    user: SessionUser,
    default_status_id: str = '',
) -> dict:
    """Read-only summary of a form snapshot, grouped the way the confirmation screen shows it."""
    return {
        'dealInfo': {
            'bookingDate': form.booking_date,
            'cfExpiry': form.cf_expiry,
            # agent and sales-admin creates never send a close date
            'closeDate': None if submits_for_review(user.role) else form.close_date,
            'dealType': reference.label('deal_types', form.deal_type_id),
            'status': reference.label('statuses', form.status_id or default_status_id),
            'purchaseStatus': reference.label('purchase_statuses', form.purchase_status_id),
            'downpayment': form.downpayment,
        },
        'propertyDetails': {
            'developer': reference.label('developers', form.developer_id),
            'project': reference.label('projects', form.project_id),
            'propertyName': form.property_name,
            'propertyType': reference.label('property_types', form.property_type_id),
            'unitNumber': form.unit_number,
            'unitType': reference.label('unit_types', form.unit_type_id),
            'size': form.size,
            'bedrooms': reference.label('bedrooms', form.bedroom_id),
        },
        'buyer': {
            'name': form.buyer_name,
            'phone': form.buyer_phone,
            'email': form.buyer_email,
            'nationality': reference.label('nationalities', form.buyer_nationality_id),
            'source': reference.label('lead_sources', form.buyer_source_id),
        },
        'seller': {
            'name': form.seller_name,
            'phone': form.seller_phone,
            'email': form.seller_email,
            'nationality': reference.label('nationalities', form.seller_nationality_id),
            'source': reference.label('lead_sources', form.seller_source_id),
        },
        'financialSummary': {
            'salesValue': form.sales_value,
            'downpayment': form.downpayment,
        },
        'dealCommission': {
            'type': reference.label('commission_types', form.total_commission_type_id),
            'value': form.total_commission_value or UNRESOLVED_LABEL,
        },
        'mainAgentCommission': {
            'agentName': main_agent_name(form, reference, user),
            'type': reference.label('commission_types', form.agent_commission_type_id),
            'value': form.comm_rate,
        },
        'additionalAgents': [_agent_summary(agent, reference) for agent in form.additional_agents],
    }


def open_preview(draft: DealDraft) -> DealFormData:
    """Freeze the current form as the pending snapshot."""
    draft.pending = draft.form
    return draft.pending


def cancel_preview(draft: DealDraft) -> None:
    """Back to editing: drop the snapshot, keep the form."""
    draft.pending = None


def confirm_preview(draft: DealDraft, submit: Callable[[DealFormData], object]):
    """
    Submit the pending snapshot, then close the preview.

    The snapshot is cleared whatever the outcome; the form keeps its values
    so a failed submission can be retried from the form.

    Raises:
        ConflictError: no preview is open
    """
    snapshot = draft.pending
    if snapshot is None:
        raise ConflictError('No deal preview is open')
    try:
        return submit(snapshot)
    finally:
        draft.pending = None
