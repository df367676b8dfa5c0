"""
Core Constants

Centralized configuration values for the application.
"""

# Session storage keys (mirrors the browser tab's sessionStorage contract)
SESSION_KEYS = {
    "is_authenticated": "isAuthenticated",
    "role": "userRole",
    "username": "username",
    "user_id": "userId",
    "role_name": "userRoleName",
    "token": "authToken",
    "commission_type": "userCommissionType",
    "commission_value": "userCommissionValue",
}

# Draft workflow state, stored next to the auth keys in the session
DRAFT_SESSION_KEY = "dealDraft"

# Remote API roleName -> portal role value
ROLE_NAME_MAP = {
    "Agent": "agent",
    "Finance": "finance",
    "CEO": "ceo",
    "Admin": "admin",
    "Compliance": "compliance",
    "Sales Admin": "sales_admin",
    "SALES_ADMIN": "sales_admin",
    "SalesAdmin": "sales_admin",
}

# Reference-data categories: key in the loaded bundle -> /api/filters/<path>
FILTER_CATEGORIES = {
    "developers": "developers",
    "agents": "agents",
    "projects": "projects",
    "statuses": "statuses",
    "commission_types": "commission-types",
    "deal_types": "deal-types",
    "property_types": "property-types",
    "unit_types": "unit-types",
    "lead_sources": "lead-sources",
    "nationalities": "nationalities",
    "purchase_statuses": "purchase-statuses",
    "roles": "user-roles",
    "bedrooms": "bedrooms",
    "media_types": "media-types",
    "areas": "areas",
    "teams": "teams",
    "managers": "managers",
}

# Fields tried, in order, when deriving an option's display name
OPTION_NAME_FIELDS = ["name", "status", "title", "label", "value"]

# Role options come back with their label under "status"
ROLE_OPTION_NAME_FIELDS = ["status", "name", "title", "label", "value"]

# Characters of the id appended to a duplicated label
LABEL_ID_SUFFIX_LENGTH = 6

# Fallback label for a reference that cannot be resolved
UNRESOLVED_LABEL = "N/A"

FILTERS_ERROR_MESSAGE = "Failed to fetch filters"
NETWORK_ERROR_MESSAGE = "Network error or server unavailable"

# Last reference-data bundle served by /api/filters/
FILTERS_SESSION_KEY = "filterOptions"
