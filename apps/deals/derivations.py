"""
Deal Form Derivations

Pure functions computing the values the form fills in on its own. Each one
takes the current form plus context and returns a patch (snake_case field
-> value); nothing here mutates state or talks to the network.

Triggers passed in `changed`:
    MOUNT      the form was just opened
    REFERENCE  reference data finished (re)loading
    <field>    a form field changed
"""
import logging
from dataclasses import dataclass, field

from apps.core.authentication import Role, SessionUser
from apps.filters.selectors import Option, ReferenceData

from .state import DealFormData, FormMode

logger = logging.getLogger(__name__)

MOUNT = 'mount'
REFERENCE = 'reference'

OVERRIDE_TYPE_MISSING = 'No "override" commission type is configured; commission type left unchanged.'


@dataclass
class DerivationResult:
    patch: dict[str, str] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)


def find_option_containing(options: list[Option], needle: str) -> Option | None:
    """First option whose name contains needle, case-insensitive."""
    needle = needle.lower()
    return next((o for o in options if needle in str(o.get('name', '')).lower()), None)


def submits_for_review(role: Role) -> bool:
    """Roles whose new deals start as "submitted" and get booking auto-fill."""
    match role:
        case Role.AGENT | Role.SALES_ADMIN:
            return True
        case Role.FINANCE | Role.CEO | Role.ADMIN | Role.COMPLIANCE:
            return False


def default_status_id(role: Role, mode: FormMode, statuses: list[Option]) -> str:
    """
    Status a new deal falls back to when none was picked.

    Agents and sales admins prefer "submitted", then "new"; everyone else
    prefers "new". The first status is the last resort. Edits have no
    default.
    """
    if mode is FormMode.EDIT or not statuses:
        return ''

    if submits_for_review(role):
        preferred = find_option_containing(statuses, 'submitted') or find_option_containing(statuses, 'new')
    else:
        preferred = find_option_containing(statuses, 'new')

    return (preferred or statuses[0])['id']


def booking_purchase_status_id(purchase_statuses: list[Option]) -> str:
    option = find_option_containing(purchase_statuses, 'booking')
    return option['id'] if option else ''


def override_commission_type_id(commission_types: list[Option]) -> str:
    option = find_option_containing(commission_types, 'override')
    return option['id'] if option else ''


def derive_defaults(
    role: Role,
    mode: FormMode,
    form: DealFormData,
    reference: ReferenceData,
    user: SessionUser,
    changed: set[str] | frozenset[str] = frozenset({MOUNT}),
) -> DerivationResult:
    """Compute every default that applies after `changed`."""
    result = DerivationResult()
    creating = mode is FormMode.CREATE
    mounting = MOUNT in changed

    # Status default
    statuses = reference.get('statuses')
    if submits_for_review(role) and creating and statuses and not form.status_id:
        result.patch['status_id'] = default_status_id(role, mode, statuses)

    # Commission type recorded at login
    if role is Role.AGENT and creating and mounting and user.commission_type_id:
        result.patch['agent_commission_type_id'] = user.commission_type_id

    # Booking date implies the "booking" purchase status
    purchase_statuses = reference.get('purchase_statuses')
    booking_trigger = changed & {MOUNT, REFERENCE, 'booking_date'}
    if submits_for_review(role) and creating and booking_trigger and form.booking_date and purchase_statuses:
        booking_id = booking_purchase_status_id(purchase_statuses)
        if booking_id:
            result.patch['purchase_status_id'] = booking_id

    # A manual rate switches the agent onto the override commission type
    commission_types = reference.get('commission_types')
    if role is Role.AGENT and 'comm_rate' in changed and form.comm_rate and commission_types:
        override_id = override_commission_type_id(commission_types)
        if override_id:
            result.patch['agent_commission_type_id'] = override_id
        else:
            logger.warning(f'Manual commission rate entered by {user.user_id} but no override type exists')
            result.warnings.append(OVERRIDE_TYPE_MISSING)

    return result
