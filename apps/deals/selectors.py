"""
Deal Selectors

Read-side helpers: fetch an existing deal and flatten it into form fields
for edit mode. Records arrive either in the nested shape (buyer/seller,
property, unit, totalCommission, agentCommissions objects) or the older
flat shape with *Id fields; both are accepted.
"""
import logging
from typing import Any

from apps.core.api_client import BrokerageAPIClient
from apps.core.exceptions import BackendAPIError, NotFoundError
from apps.core.notifications import Notification
from apps.core.utils import decimal_only, digits_only, parse_number, to_date_input

from .state import AdditionalAgent, AgentKind, DealFormData

logger = logging.getLogger(__name__)


def get_deal(client: BrokerageAPIClient, deal_id: str) -> dict:
    """
    Fetch one deal record.

    Raises:
        NotFoundError: the deal does not exist
        BackendAPIError: any other remote failure
    """
    try:
        response = client.get(f'/api/deals/{deal_id}')
    except BackendAPIError as e:
        if e.upstream_status == 404:
            raise NotFoundError(f'Deal {deal_id} not found') from e
        raise BackendAPIError(
            e.message,
            upstream_status=e.upstream_status,
            notification=Notification.error('Failed to load deal', e.message),
        ) from e

    if isinstance(response, dict) and isinstance(response.get('data'), dict):
        response = response['data']
    if not isinstance(response, dict):
        raise BackendAPIError('Invalid deal response')
    return response


def _text(value: Any) -> str:
    if value is None:
        return ''
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value)


def _whole_number(value: Any) -> str:
    """Amounts arrive as numbers or decimal strings; the form holds whole digits."""
    number = parse_number(_text(value))
    if number is None:
        return digits_only(_text(value))
    return str(int(number))


def _nested_id(record: dict, key: str, flat_key: str) -> str:
    """Id from a nested {"id", "name"} object, falling back to the flat *Id field."""
    nested = record.get(key)
    if isinstance(nested, dict) and nested.get('id'):
        return _text(nested['id'])
    return _text(record.get(flat_key))


def _party(record: dict, role: str) -> dict:
    """Buyer or seller, from the nested object or the legacy buyerSellerDetails list."""
    party = record.get(role)
    if isinstance(party, dict):
        return party
    is_buyer = role == 'buyer'
    for detail in record.get('buyerSellerDetails') or []:
        if isinstance(detail, dict) and bool(detail.get('isBuyer')) == is_buyer:
            return detail
    return {}


def _party_fields(record: dict, role: str) -> dict[str, str]:
    party = _party(record, role)
    return {
        f'{role}_name': _text(party.get('name')),
        f'{role}_phone': _text(party.get('phone')),
        f'{role}_email': _text(party.get('email')),
        f'{role}_nationality_id': _nested_id(party, 'nationality', 'nationalityId'),
        f'{role}_source_id': _nested_id(party, 'source', 'sourceId'),
    }


def _additional_agents(record: dict) -> tuple[AdditionalAgent, ...]:
    commissions = record.get('agentCommissions') or {}
    agents = []
    for entry in commissions.get('additionalAgents') or []:
        agent = entry.get('agent') or {}
        is_internal = entry.get('isInternal', agent.get('isInternal', True))
        agents.append(AdditionalAgent(
            type=AgentKind.INTERNAL if is_internal else AgentKind.EXTERNAL,
            agent_id=_text(agent.get('id')) if is_internal else '',
            agency_name='' if is_internal else _text(agent.get('name') or entry.get('externalAgentName')),
            commission_type_id=_nested_id(entry, 'commissionType', 'commissionTypeId'),
            commission_value=decimal_only(_text(entry.get('commissionValue'))),
        ))
    return tuple(agents)


def deal_to_form(record: dict) -> DealFormData:
    """Flatten a deal record into the form's fields."""
    prop = record.get('property') or {}
    unit = record.get('unit') or {}
    total = record.get('totalCommission') or {}
    main_agent = (record.get('agentCommissions') or {}).get('mainAgent') or {}

    values = {
        'booking_date': to_date_input(record.get('bookingDate')),
        'cf_expiry': to_date_input(record.get('cfExpiry')),
        'close_date': to_date_input(record.get('closeDate')),
        'deal_type_id': _nested_id(record, 'dealType', 'dealTypeId'),
        'status_id': _nested_id(record, 'status', 'statusId'),
        'purchase_status_id': _nested_id(record, 'purchaseStatus', 'purchaseStatusId'),
        'downpayment': _whole_number(record.get('downpayment')),
        'agent_id': _nested_id(record, 'agent', 'agentId'),
        'area_id': _nested_id(record, 'area', 'areaId'),
        'team_id': _nested_id(record, 'team', 'teamId'),
        'developer_id': _nested_id(record, 'developer', 'developerId'),
        'project_id': _nested_id(record, 'project', 'projectId'),
        'property_name': _text(prop.get('name') or record.get('propertyName')),
        'property_type_id': _nested_id(prop, 'type', 'typeId') or _text(record.get('propertyTypeId')),
        'unit_number': digits_only(_text(unit.get('number') or record.get('unitNumber'))),
        'unit_type_id': _nested_id(unit, 'type', 'typeId') or _text(record.get('unitTypeId')),
        'size': _whole_number(unit.get('size') or record.get('size')),
        'bedroom_id': _nested_id(unit, 'bedroom', 'bedroomId') or _text(record.get('bedroomId')),
        'sales_value': _whole_number(record.get('dealValue')),
        'comm_rate': decimal_only(_text(main_agent.get('commissionValue'))),
        'agent_commission_type_id': _nested_id(main_agent, 'commissionType', 'commissionTypeId'),
        'total_commission_type_id': (
            _nested_id(total, 'type', 'typeId') or _text(record.get('totalCommissionTypeId'))
        ),
        'total_commission_value': decimal_only(
            _text(total.get('commissionValue') or record.get('totalCommissionValue'))
        ),
        'additional_agents': _additional_agents(record),
        'notes': _text(record.get('notes')),
        **_party_fields(record, 'buyer'),
        **_party_fields(record, 'seller'),
    }
    return DealFormData(**values)


def load_deal_form(client: BrokerageAPIClient, deal_id: str) -> DealFormData:
    record = get_deal(client, deal_id)
    logger.debug(f'Hydrating deal form from deal {deal_id}')
    return deal_to_form(record)
