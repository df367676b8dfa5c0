"""
DealFormState: the editable deal form for one request.

Wraps the session draft and applies derivations after every change, so
callers only ever see a consistent form.
"""
import logging

from apps.core.authentication import Role, SessionUser
from apps.core.exceptions import PermissionDeniedError
from apps.core.notifications import Notification
from apps.core.permissions import deal_permission_message, is_read_only
from apps.filters.selectors import Option, ReferenceData, projects_for_developer

from .derivations import MOUNT, REFERENCE, default_status_id, derive_defaults
from .state import DealDraft, DealFormData, apply_field_updates, changed_fields

logger = logging.getLogger(__name__)


class DealFormState:
    """
    Usage:
        state = DealFormState(draft, request.user)
        warnings = state.update({'developerId': 'dev-1'})
        state.form.project_id  # '' after a developer change
    """

    def __init__(self, draft: DealDraft, user: SessionUser):
        self.draft = draft
        self.user = user
        self.warnings: list[str] = []

    @property
    def role(self) -> Role:
        return self.user.role

    @property
    def form(self) -> DealFormData:
        return self.draft.form

    @property
    def reference(self) -> ReferenceData:
        return self.draft.reference

    @property
    def read_only(self) -> bool:
        return is_read_only(self.role, self.draft.is_edit)

    @property
    def default_status_id(self) -> str:
        return default_status_id(self.role, self.draft.mode, self.reference.get('statuses'))

    @property
    def available_projects(self) -> list[Option]:
        return projects_for_developer(self.reference.get('projects'), self.form.developer_id)

    def get(self, name: str):
        return getattr(self.form, name)

    def _derive(self, changed: set[str]) -> list[str]:
        result = derive_defaults(self.role, self.draft.mode, self.form, self.reference, self.user, changed)
        if result.patch:
            self.draft.form = apply_field_updates(self.form, result.patch)
        self.warnings = result.warnings
        return result.warnings

    def mount(self) -> list[str]:
        """Apply the defaults a freshly opened form gets."""
        return self._derive({MOUNT})

    def set_field(self, name: str, value) -> list[str]:
        return self.update({name: value})

    def update(self, updates: dict) -> list[str]:
        """
        Apply field updates, then the derivations they trigger.

        Raises:
            PermissionDeniedError: the form is view-only for this role
        """
        if self.read_only:
            message = deal_permission_message(self.role, editing=True)
            raise PermissionDeniedError(message, notification=Notification.error('Permission denied', message))

        before = self.form
        self.draft.form = apply_field_updates(before, updates)
        changed = changed_fields(before, self.form)
        if not changed:
            self.warnings = []
            return []
        return self._derive(changed)

    def replace_reference(self, reference: ReferenceData) -> list[str]:
        """Swap in freshly loaded reference data and re-run dependent defaults."""
        self.draft.reference = reference
        if not reference.is_ready:
            self.warnings = []
            return []
        return self._derive({REFERENCE})

    def as_dict(self) -> dict:
        draft = self.draft
        return {
            'mode': draft.mode.value,
            'dealId': draft.deal_id,
            'role': self.role.value,
            'readOnly': self.read_only,
            'isSubmitting': draft.is_submitting,
            'values': self.form.as_dict(),
            'defaultStatusId': self.default_status_id,
            'availableProjects': self.available_projects,
            'filters': {
                'options': self.reference.options,
                'isLoading': self.reference.is_loading,
                'error': self.reference.error,
            },
            'previewOpen': draft.pending is not None,
            'warnings': self.warnings,
        }
