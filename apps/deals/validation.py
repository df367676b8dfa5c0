"""
Deal form validation.

Runs when the user submits the form. Field errors come back keyed by the
camelCase field names the UI uses.
"""
from dataclasses import asdict

from rest_framework import serializers

from apps.core.authentication import Role
from apps.filters.selectors import ReferenceData

from .state import AgentKind, DealFormData, snake_to_camel

PHONE_REGEX = r'^[+]?[(]?[0-9]{1,4}[)]?[-\s.]?[(]?[0-9]{1,4}[)]?[-\s.]?[0-9]{1,5}[-\s.]?[0-9]{1,5}$'
EMAIL_REGEX = r'^[^\s@]+@[^\s@]+\.[^\s@]+$'

# Required ids that must exist in the loaded reference lists
REFERENCE_FIELDS = {
    'developer_id': ('developers', 'Developer'),
    'project_id': ('projects', 'Project'),
    'property_type_id': ('property_types', 'Property type'),
    'unit_type_id': ('unit_types', 'Unit type'),
}


def required_text(message: str, **kwargs) -> serializers.CharField:
    return serializers.CharField(
        error_messages={'required': message, 'blank': message, 'null': message},
        **kwargs,
    )


def phone_field(message: str) -> serializers.RegexField:
    return serializers.RegexField(
        PHONE_REGEX,
        error_messages={
            'required': message,
            'blank': message,
            'invalid': 'Invalid phone number format',
        },
    )


def email_field() -> serializers.RegexField:
    return serializers.RegexField(
        EMAIL_REGEX,
        required=False,
        allow_blank=True,
        error_messages={'invalid': 'Invalid email format'},
    )


class AdditionalAgentSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=[kind.value for kind in AgentKind])
    agent_id = serializers.CharField(required=False, allow_blank=True)
    agency_name = serializers.CharField(required=False, allow_blank=True)
    commission_type_id = serializers.CharField(required=False, allow_blank=True)
    commission_value = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        if attrs['type'] == AgentKind.INTERNAL and not attrs.get('agent_id'):
            raise serializers.ValidationError({'agentId': 'Agent is required'})
        if attrs['type'] == AgentKind.EXTERNAL and not attrs.get('agency_name'):
            raise serializers.ValidationError({'agencyName': 'Agency name is required'})
        return attrs


class DealFormSerializer(serializers.Serializer):
    """
    Validates a DealFormData snapshot.

    Context:
        role: Role of the submitting user
        reference: ReferenceData the form was filled from
    """
    developer_id = required_text('Developer is required')
    project_id = required_text('Project is required')
    property_type_id = required_text('Property type is required')
    unit_type_id = required_text('Unit type is required')

    seller_name = required_text('Seller name is required')
    seller_phone = phone_field('Seller phone is required')
    seller_email = email_field()
    buyer_name = required_text('Buyer name is required')
    buyer_phone = phone_field('Buyer phone is required')
    buyer_email = email_field()

    sales_value = required_text('Sales value is required')
    agent_id = serializers.CharField(required=False, allow_blank=True)
    additional_agents = AdditionalAgentSerializer(many=True, required=False)

    def validate(self, attrs):
        errors = {}
        role = self.context.get('role')
        reference: ReferenceData | None = self.context.get('reference')

        if role is Role.SALES_ADMIN and not attrs.get('agent_id'):
            errors['agent_id'] = ['Agent selection is required for Sales Admin']

        if reference is not None and reference.is_ready:
            for name, (category, label) in REFERENCE_FIELDS.items():
                if not reference.contains(category, attrs.get(name)):
                    errors[name] = [f'Selected {label.lower()} is not available']
            if role is Role.SALES_ADMIN and attrs.get('agent_id') and not reference.contains('agents', attrs['agent_id']):
                errors['agent_id'] = ['Selected agent is not available']

        if errors:
            raise serializers.ValidationError(errors)
        return attrs


def _camelize_errors(errors):
    if isinstance(errors, dict) and errors and all(isinstance(key, int) for key in errors):
        # newer DRF keys list item errors by index; render them as a list
        return [_camelize_errors(errors.get(index, {})) for index in range(max(errors) + 1)]
    if isinstance(errors, dict):
        return {snake_to_camel(key): _camelize_errors(value) for key, value in errors.items()}
    if isinstance(errors, list):
        return [_camelize_errors(item) for item in errors]
    return str(errors)


def validate_deal_form(form: DealFormData, role: Role, reference: ReferenceData | None = None) -> dict:
    """
    Validate a form snapshot.

    Returns:
        {} when valid, else {camelCaseField: [messages]}
    """
    data = asdict(form)
    # ListSerializer only accepts lists
    data['additional_agents'] = [asdict(agent) for agent in form.additional_agents]
    serializer = DealFormSerializer(data=data, context={'role': role, 'reference': reference})
    if serializer.is_valid():
        return {}
    return _camelize_errors(serializer.errors)
