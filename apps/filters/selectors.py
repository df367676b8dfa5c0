"""
Reference Data Selectors

Loads the lookup lists that populate the deal form's dropdowns
(developers, projects, statuses, commission types, ...).

All categories are fetched as one concurrent batch. Each list is normalized
to {"id": str, "name": str, ...extra}; options without an id are dropped and
duplicate labels are disambiguated with a short id suffix. A failure in any
category fails the whole batch with a generic error; nothing is retried.
"""
import logging
from collections import Counter
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any

from django.conf import settings

from apps.core.api_client import BrokerageAPIClient
from apps.core.constants import (
    FILTER_CATEGORIES,
    FILTERS_ERROR_MESSAGE,
    LABEL_ID_SUFFIX_LENGTH,
    OPTION_NAME_FIELDS,
    ROLE_OPTION_NAME_FIELDS,
    UNRESOLVED_LABEL,
)
from apps.core.exceptions import BackendAPIError

logger = logging.getLogger(__name__)

Option = dict[str, Any]


# =============================================================================
# Normalization
# =============================================================================

def normalize_option(raw: Any, name_fields: list[str] = OPTION_NAME_FIELDS) -> Option | None:
    """
    Normalize one wire record into an option.

    Returns None when the record has no id.
    """
    if not isinstance(raw, dict):
        return None

    raw_id = raw.get('id')
    if raw_id is None or str(raw_id).strip() == '':
        return None
    option_id = str(raw_id)

    name = next(
        (str(raw[key]) for key in name_fields if raw.get(key) not in (None, '')),
        option_id,
    )
    return {**raw, 'id': option_id, 'name': name}


def disambiguate_labels(options: list[Option]) -> list[Option]:
    """
    Give every option a distinct label.

    The first option with a given label keeps it; later ones get
    " (#<id prefix>)" appended. Ids are never touched.
    """
    counts = Counter(option['name'] for option in options)
    seen: set[str] = set()
    result = []
    for option in options:
        label = option['name']
        if counts[label] > 1 and label in seen:
            option = {**option, 'name': f"{label} (#{option['id'][:LABEL_ID_SUFFIX_LENGTH]})"}
        seen.add(label)
        result.append(option)
    return result


def _developer_name(project: Option, developers_by_id: dict[str, str]) -> str | None:
    developer = project.get('developer')
    if isinstance(developer, dict) and developer.get('name'):
        return str(developer['name'])
    if project.get('developerName'):
        return str(project['developerName'])
    developer_id = project.get('developerId')
    if developer_id is not None:
        return developers_by_id.get(str(developer_id))
    return None


def label_projects(projects: list[Option], developers: list[Option]) -> list[Option]:
    """Label projects "<project> — <developer>" when the developer is known."""
    developers_by_id = {d['id']: d['name'] for d in developers}
    labelled = []
    for project in projects:
        developer_name = _developer_name(project, developers_by_id)
        if developer_name:
            project = {
                **project,
                'projectName': project['name'],
                'name': f"{project['name']} — {developer_name}",
            }
        labelled.append(project)
    return labelled


def normalize_options(category: str, items: Any, developers: list[Option] | None = None) -> list[Option]:
    """Normalize a whole category list."""
    if isinstance(items, dict):
        items = items.get('data', [])
    if not isinstance(items, list):
        raise ValueError(f'Expected a list for {category}, got {type(items).__name__}')

    name_fields = ROLE_OPTION_NAME_FIELDS if category == 'roles' else OPTION_NAME_FIELDS
    options = [opt for opt in (normalize_option(item, name_fields) for item in items) if opt]

    if category == 'projects':
        options = label_projects(options, developers or [])

    return disambiguate_labels(options)


def projects_for_developer(projects: list[Option], developer_id: str | None) -> list[Option]:
    """
    Projects selectable for a developer.

    Nothing until a developer is chosen; all projects when none of them
    carry the developer's id.
    """
    if not developer_id:
        return []
    matching = [p for p in projects if str(p.get('developerId') or '') == developer_id]
    return matching or list(projects)


# =============================================================================
# Reference data bundle
# =============================================================================

@dataclass
class ReferenceData:
    """Loaded lookup lists plus the loader's status flags."""
    options: dict[str, list[Option]] = field(
        default_factory=lambda: {key: [] for key in FILTER_CATEGORIES}
    )
    is_loading: bool = False
    error: str | None = None

    def get(self, category: str) -> list[Option]:
        return self.options.get(category, [])

    def find(self, category: str, option_id: str | None) -> Option | None:
        if not option_id:
            return None
        return next((o for o in self.get(category) if o['id'] == option_id), None)

    def label(self, category: str, option_id: str | None) -> str:
        """Display name for an id, "N/A" when it cannot be resolved."""
        option = self.find(category, option_id)
        return option['name'] if option else UNRESOLVED_LABEL

    def contains(self, category: str, option_id: str | None) -> bool:
        return self.find(category, option_id) is not None

    @property
    def is_ready(self) -> bool:
        return not self.is_loading and self.error is None

    def as_dict(self) -> dict:
        return {'options': self.options, 'isLoading': self.is_loading, 'error': self.error}

    @classmethod
    def from_dict(cls, data: dict | None) -> 'ReferenceData':
        if not data:
            return cls()
        options = {key: [] for key in FILTER_CATEGORIES}
        options.update(data.get('options') or {})
        return cls(options=options, is_loading=bool(data.get('isLoading')), error=data.get('error'))


def fetch_reference_data(client: BrokerageAPIClient, max_workers: int | None = None) -> ReferenceData:
    """
    Fetch every category in one concurrent batch.

    Returns a ReferenceData with error set (and empty lists) if any single
    category fails.
    """
    workers = max_workers or settings.FILTERS_MAX_WORKERS
    raw: dict[str, Any] = {}

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {
            executor.submit(client.get, f'/api/filters/{path}'): key
            for key, path in FILTER_CATEGORIES.items()
        }
        failed = False
        for future in as_completed(futures):
            key = futures[future]
            try:
                raw[key] = future.result()
            except BackendAPIError as e:
                logger.error(f'Error fetching filter {key}: {e.message}')
                failed = True

    if failed:
        return ReferenceData(error=FILTERS_ERROR_MESSAGE)

    try:
        developers = normalize_options('developers', raw['developers'])
        options = {
            key: developers if key == 'developers' else normalize_options(key, raw[key], developers)
            for key in FILTER_CATEGORIES
        }
    except ValueError as e:
        logger.error(f'Malformed filter response: {e}')
        return ReferenceData(error=FILTERS_ERROR_MESSAGE)

    return ReferenceData(options=options)


class ReferenceDataLoader:
    """
    Holds one ReferenceData and knows how to (re)load it.

    Usage:
        loader = ReferenceDataLoader(client)
        loader.load()
        if loader.error:
            ...
        loader.refetch()
    """

    def __init__(self, client: BrokerageAPIClient, data: ReferenceData | None = None):
        self.client = client
        self.data = data or ReferenceData(is_loading=True)

    @property
    def is_loading(self) -> bool:
        return self.data.is_loading

    @property
    def error(self) -> str | None:
        return self.data.error

    def load(self) -> ReferenceData:
        self.data = ReferenceData(is_loading=True)
        self.data = fetch_reference_data(self.client)
        return self.data

    def refetch(self) -> ReferenceData:
        """Re-run the whole batch; there is no per-category retry."""
        return self.load()
