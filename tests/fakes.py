"""
In-process stand-in for the remote brokerage API.

Serves every /api/filters/<category> list plus whatever routes a test adds,
through an httpx.MockTransport, and records each request it receives.
"""
import copy
import json
from collections.abc import Callable

import httpx

from apps.core.constants import FILTER_CATEGORIES
from apps.filters.selectors import ReferenceData, normalize_options

# Raw filter payloads keyed by bundle category
DEFAULT_FILTERS = {
    'developers': [
        {'id': 'dev-emaar', 'name': 'Emaar'},
        {'id': 'dev-damac', 'name': 'Damac'},
    ],
    'agents': [
        {'id': 'agent-1', 'name': 'Sara Lee'},
        {'id': 'agent-2', 'name': 'Tom Reed'},
    ],
    'projects': [
        {'id': 'proj-marina-1', 'name': 'Marina View', 'developerId': 'dev-emaar'},
        {'id': 'proj-marina-2', 'name': 'Marina View', 'developerId': 'dev-emaar'},
        {'id': 'proj-lagoons', 'name': 'Damac Lagoons', 'developerId': 'dev-damac'},
    ],
    'statuses': [
        {'id': 'st-new', 'name': 'New'},
        {'id': 'st-submitted', 'name': 'Submitted'},
        {'id': 'st-closed', 'name': 'Closed'},
    ],
    'commission_types': [
        {'id': 'ct-std', 'name': 'Standard'},
        {'id': 'ct-override', 'name': 'Agent Override'},
    ],
    'deal_types': [
        {'id': 'dt-off-plan', 'name': 'Off Plan'},
        {'id': 'dt-secondary', 'name': 'Secondary'},
    ],
    'property_types': [
        {'id': 'pt-apartment', 'name': 'Apartment'},
        {'id': 'pt-villa', 'name': 'Villa'},
    ],
    'unit_types': [
        {'id': 'ut-residential', 'name': 'Residential'},
    ],
    'lead_sources': [
        {'id': 'src-referral', 'name': 'Referral'},
        {'id': 'src-portal', 'name': 'Property Portal'},
    ],
    'nationalities': [
        {'id': 'nat-ae', 'name': 'Emirati'},
        {'id': 'nat-gb', 'name': 'British'},
    ],
    'purchase_statuses': [
        {'id': 'ps-offplan', 'name': 'Off Plan Sale'},
        {'id': 'ps-booking', 'name': 'Booking Confirmed'},
    ],
    'roles': [
        {'id': 'role-agent', 'status': 'Agent'},
        {'id': 'role-finance', 'status': 'Finance'},
    ],
    'bedrooms': [
        {'id': 'bed-1', 'name': '1 BR'},
        {'id': 'bed-2', 'name': '2 BR'},
    ],
    'media_types': [{'id': 'mt-spa', 'name': 'SPA'}],
    'areas': [{'id': 'area-marina', 'name': 'Dubai Marina'}],
    'teams': [{'id': 'team-a', 'name': 'Team A'}],
    'managers': [{'id': 'mgr-1', 'name': 'Lina Park'}],
}

_CATEGORY_BY_PATH = {path: key for key, path in FILTER_CATEGORIES.items()}


def build_reference_data(filters: dict | None = None) -> ReferenceData:
    """Normalize raw filter payloads the same way the loader does."""
    filters = filters if filters is not None else DEFAULT_FILTERS
    developers = normalize_options('developers', filters.get('developers', []))
    options = {
        key: developers if key == 'developers'
        else normalize_options(key, filters.get(key, []), developers)
        for key in FILTER_CATEGORIES
    }
    return ReferenceData(options=options)


Handler = Callable[[httpx.Request], httpx.Response]


class FakeBrokerageAPI:
    """
    Usage:
        api = FakeBrokerageAPI()
        api.add('POST', '/api/deals', json={'id': 'deal-9'})
        client = BrokerageAPIClient(token='t', transport=api.transport)
        ...
        assert api.calls_to('POST', '/api/deals')
    """

    def __init__(self, filters: dict | None = None):
        self.filters = copy.deepcopy(filters if filters is not None else DEFAULT_FILTERS)
        self.routes: dict[tuple[str, str], Handler] = {}
        self.failing_filters: set[str] = set()
        self.filter_failure_status = 500
        self.calls: list[httpx.Request] = []
        self.transport = httpx.MockTransport(self.handle)

    def add(self, method: str, path: str, json=None, status_code: int = 200, text: str | None = None):
        def handler(request):
            if text is not None:
                return httpx.Response(status_code, text=text)
            return httpx.Response(status_code, json=json)

        self.routes[(method.upper(), path)] = handler

    def add_handler(self, method: str, path: str, handler: Handler):
        self.routes[(method.upper(), path)] = handler

    def fail_filter(self, category: str, status_code: int = 500):
        self.failing_filters.add(category)
        self.filter_failure_status = status_code

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        key = (request.method, request.url.path)
        if key in self.routes:
            return self.routes[key](request)

        if request.method == 'GET' and request.url.path.startswith('/api/filters/'):
            category = _CATEGORY_BY_PATH.get(request.url.path.removeprefix('/api/filters/'))
            if category is None:
                return httpx.Response(404, json={'message': 'Unknown filter'})
            if category in self.failing_filters:
                return httpx.Response(self.filter_failure_status, json={'message': f'{category} unavailable'})
            return httpx.Response(200, json=self.filters.get(category, []))

        return httpx.Response(404, json={'message': f'No route for {request.method} {request.url.path}'})

    def calls_to(self, method: str, path: str) -> list[httpx.Request]:
        return [c for c in self.calls if c.method == method.upper() and c.url.path == path]

    def non_filter_calls(self) -> list[httpx.Request]:
        return [c for c in self.calls if not c.url.path.startswith('/api/filters/')]

    @staticmethod
    def body(request: httpx.Request) -> dict:
        return json.loads(request.content)
