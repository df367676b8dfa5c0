"""
Deal Form State

The draft a user edits while authoring a deal, plus the workflow state that
travels with it in the session (mode, loaded reference data, pending
preview snapshot, in-flight flag).

DealFormData is frozen: every edit produces a new instance, so a snapshot
taken for the preview can never be mutated by later edits.
"""
import logging
import re
from dataclasses import asdict, dataclass, field, fields, replace
from enum import StrEnum
from typing import Any

from apps.core.constants import DRAFT_SESSION_KEY
from apps.core.utils import decimal_only, digits_only
from apps.filters.selectors import ReferenceData

logger = logging.getLogger(__name__)


class FormMode(StrEnum):
    CREATE = 'create'
    EDIT = 'edit'


class AgentKind(StrEnum):
    INTERNAL = 'internal'
    EXTERNAL = 'external'


# Inputs that accept digits only
DIGIT_FIELDS = frozenset({'sales_value', 'downpayment', 'size', 'unit_number'})

# Inputs that accept digits and one decimal point
DECIMAL_FIELDS = frozenset({'comm_rate', 'total_commission_value'})


def snake_to_camel(name: str) -> str:
    head, *rest = name.split('_')
    return head + ''.join(part.capitalize() for part in rest)


def camel_to_snake(name: str) -> str:
    return re.sub(r'(?<!^)(?=[A-Z])', '_', name).lower()


@dataclass(frozen=True)
class AdditionalAgent:
    """A secondary commission recipient: an internal user or an external agency."""
    type: AgentKind = AgentKind.INTERNAL
    agent_id: str = ''      # internal agents
    agency_name: str = ''   # external agents
    commission_type_id: str = ''
    commission_value: str = ''

    @property
    def is_internal(self) -> bool:
        return self.type is AgentKind.INTERNAL

    @classmethod
    def from_dict(cls, data: dict) -> 'AdditionalAgent':
        kind = str(data.get('type') or AgentKind.INTERNAL).lower()
        return cls(
            type=AgentKind.EXTERNAL if kind == AgentKind.EXTERNAL else AgentKind.INTERNAL,
            agent_id=str(data.get('agentId') or ''),
            agency_name=str(data.get('agencyName') or ''),
            commission_type_id=str(data.get('commissionTypeId') or ''),
            commission_value=decimal_only(str(data.get('commissionValue') or '')),
        )

    def as_dict(self) -> dict:
        return {
            'type': self.type.value,
            'agentId': self.agent_id,
            'agencyName': self.agency_name,
            'commissionTypeId': self.commission_type_id,
            'commissionValue': self.commission_value,
        }


@dataclass(frozen=True)
class DealFormData:
    """Every editable field of a deal. Empty string means unset."""
    # Deal information
    booking_date: str = ''
    cf_expiry: str = ''
    close_date: str = ''
    deal_type_id: str = ''
    status_id: str = ''
    purchase_status_id: str = ''
    downpayment: str = ''
    agent_id: str = ''  # chosen by sales admins only
    area_id: str = ''
    team_id: str = ''

    # Property details
    developer_id: str = ''
    project_id: str = ''
    property_name: str = ''
    property_type_id: str = ''
    unit_number: str = ''
    unit_type_id: str = ''
    size: str = ''
    bedroom_id: str = ''

    # Seller
    seller_name: str = ''
    seller_phone: str = ''
    seller_email: str = ''
    seller_nationality_id: str = ''
    seller_source_id: str = ''

    # Buyer
    buyer_name: str = ''
    buyer_phone: str = ''
    buyer_email: str = ''
    buyer_nationality_id: str = ''
    buyer_source_id: str = ''

    # Commission details
    sales_value: str = ''
    comm_rate: str = ''
    agent_commission_type_id: str = ''
    total_commission_type_id: str = ''
    total_commission_value: str = ''
    additional_agents: tuple[AdditionalAgent, ...] = ()

    notes: str = ''

    @classmethod
    def field_names(cls) -> set[str]:
        return {f.name for f in fields(cls)}

    def as_dict(self) -> dict:
        """camelCase representation used by the UI and the session."""
        data = {
            snake_to_camel(name): value
            for name, value in asdict(self).items()
            if name != 'additional_agents'
        }
        data['additionalAgents'] = [agent.as_dict() for agent in self.additional_agents]
        return data

    @classmethod
    def from_dict(cls, data: dict | None) -> 'DealFormData':
        form = cls()
        if data:
            form = apply_field_updates(form, data)
        return form


def sanitize_field(name: str, value: Any) -> Any:
    """Strip characters a field does not accept."""
    if name == 'additional_agents':
        return tuple(
            agent if isinstance(agent, AdditionalAgent) else AdditionalAgent.from_dict(agent)
            for agent in (value or [])
        )
    text = '' if value is None else str(value)
    if name in DIGIT_FIELDS:
        return digits_only(text)
    if name in DECIMAL_FIELDS:
        return decimal_only(text)
    return text


def apply_field_updates(form: DealFormData, updates: dict) -> DealFormData:
    """
    Apply camelCase (or snake_case) field updates, sanitizing each value.

    Changing the developer always clears the project, unless the same
    update sets a project explicitly.
    """
    known = DealFormData.field_names()
    changes: dict[str, Any] = {}
    for key, value in updates.items():
        name = key if key in known else camel_to_snake(key)
        if name not in known:
            logger.debug(f'Ignoring unknown deal form field {key!r}')
            continue
        changes[name] = sanitize_field(name, value)

    if 'developer_id' in changes and 'project_id' not in changes:
        changes['project_id'] = ''

    return replace(form, **changes)


def changed_fields(before: DealFormData, after: DealFormData) -> set[str]:
    return {
        f.name for f in fields(DealFormData)
        if getattr(before, f.name) != getattr(after, f.name)
    }


# =============================================================================
# Draft workflow state (session-backed)
# =============================================================================

@dataclass
class DealDraft:
    """Everything the deal form workflow keeps between requests."""
    mode: FormMode = FormMode.CREATE
    deal_id: str | None = None
    form: DealFormData = field(default_factory=DealFormData)
    reference: ReferenceData = field(default_factory=ReferenceData)
    pending: DealFormData | None = None  # snapshot under preview
    is_submitting: bool = False

    @property
    def is_edit(self) -> bool:
        return self.mode is FormMode.EDIT

    def as_dict(self) -> dict:
        return {
            'mode': self.mode.value,
            'dealId': self.deal_id,
            'form': self.form.as_dict(),
            'reference': self.reference.as_dict(),
            'pending': self.pending.as_dict() if self.pending is not None else None,
            'isSubmitting': self.is_submitting,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'DealDraft':
        pending = data.get('pending')
        return cls(
            mode=FormMode(data.get('mode') or FormMode.CREATE),
            deal_id=data.get('dealId'),
            form=DealFormData.from_dict(data.get('form')),
            reference=ReferenceData.from_dict(data.get('reference')),
            pending=DealFormData.from_dict(pending) if pending is not None else None,
            is_submitting=bool(data.get('isSubmitting')),
        )


def load_draft(session) -> DealDraft | None:
    data = session.get(DRAFT_SESSION_KEY)
    if not data:
        return None
    return DealDraft.from_dict(data)


def save_draft(session, draft: DealDraft) -> None:
    session[DRAFT_SESSION_KEY] = draft.as_dict()


def discard_draft(session) -> None:
    session.pop(DRAFT_SESSION_KEY, None)
