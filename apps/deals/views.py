"""
Deal Draft API Views

Endpoints:
- POST   /api/deals/drafts                             - Open the deal form (create or edit)
- GET    /api/deals/drafts/current                     - Current form state
- PATCH  /api/deals/drafts/current                     - Update form fields
- DELETE /api/deals/drafts/current                     - Discard the draft
- POST   /api/deals/drafts/current/submit              - Submit (preview for new deals)
- POST   /api/deals/drafts/current/preview/confirm     - Confirm the preview and create
- POST   /api/deals/drafts/current/preview/cancel      - Back to editing
- POST   /api/deals/drafts/current/filters/refetch     - Reload reference data
"""
import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.core.api_client import get_api_client
from apps.core.exceptions import NotFoundError, ValidationError
from apps.core.mixins import AuthenticatedAPIView
from apps.core.notifications import Notification
from apps.core.permissions import IsAuthenticated
from apps.filters.selectors import ReferenceDataLoader

from .forms import DealFormState
from .preview import cancel_preview, confirm_preview
from .selectors import load_deal_form
from .services import SubmissionOutcome, handle_form_submit, submission_in_flight, submit_deal
from .state import DealDraft, DealFormData, FormMode, discard_draft, load_draft, save_draft

logger = logging.getLogger(__name__)

OUTCOME_STATUS = {
    SubmissionOutcome.PERMISSION_DENIED: status.HTTP_403_FORBIDDEN,
    SubmissionOutcome.INVALID: status.HTTP_400_BAD_REQUEST,
    SubmissionOutcome.PREVIEW: status.HTTP_200_OK,
    SubmissionOutcome.AUTHENTICATION_ERROR: status.HTTP_401_UNAUTHORIZED,
    SubmissionOutcome.CREATED: status.HTTP_201_CREATED,
    SubmissionOutcome.UPDATED: status.HTTP_200_OK,
    SubmissionOutcome.FAILED: status.HTTP_502_BAD_GATEWAY,
}


def _filters_notification(reference) -> Notification | None:
    if reference.error:
        return Notification.error('Error loading filters', reference.error)
    return None


class DraftAPIView(AuthenticatedAPIView, APIView):
    """Shared helpers for views operating on the session draft."""

    permission_classes = [IsAuthenticated]

    def get_state(self, request) -> DealFormState:
        """
        Raises:
            NotFoundError: no draft is open in this session
        """
        user = self.get_user(request)
        draft = load_draft(request.session)
        if draft is None:
            raise NotFoundError('No deal draft in progress')
        return DealFormState(draft, user)

    def state_response(self, request, state: DealFormState, status_code: int = 200, notification=None) -> Response:
        save_draft(request.session, state.draft)
        return self.success_response(state.as_dict(), status_code=status_code, notification=notification)

    def result_response(self, request, state: DealFormState, result) -> Response:
        """Render a SubmissionResult; a successful save consumes the draft."""
        data = result.as_dict()
        if result.succeeded:
            discard_draft(request.session)
        else:
            save_draft(request.session, state.draft)
            data['draft'] = state.as_dict()
        return Response(data, status=OUTCOME_STATUS[result.outcome])


class DraftStartView(DraftAPIView):
    """
    POST /api/deals/drafts

    Open the deal form. Loads reference data and, when dealId is given,
    the deal being edited. Replaces any draft already in the session.

    Request Body:
        {"dealId": "abc123"}   // optional, omit to create a new deal
    """

    def post(self, request):
        user = self.get_user(request)
        deal_id = str(request.data.get('dealId') or '').strip() or None

        with get_api_client(user) as client:
            reference = ReferenceDataLoader(client).load()
            form = load_deal_form(client, deal_id) if deal_id else DealFormData()

        draft = DealDraft(
            mode=FormMode.EDIT if deal_id else FormMode.CREATE,
            deal_id=deal_id,
            form=form,
            reference=reference,
        )
        state = DealFormState(draft, user)
        state.mount()

        logger.info(f'User {user.user_id} opened deal form ({draft.mode}{" " + deal_id if deal_id else ""})')
        return self.state_response(
            request, state,
            status_code=status.HTTP_201_CREATED,
            notification=_filters_notification(reference),
        )


class CurrentDraftView(DraftAPIView):
    """
    GET/PATCH/DELETE /api/deals/drafts/current

    PATCH Request Body (camelCase field names):
        {"values": {"developerId": "dev-1", "salesValue": "1200000"}}
    """

    def get(self, request):
        return self.state_response(request, self.get_state(request))

    def patch(self, request):
        state = self.get_state(request)
        updates = request.data.get('values', request.data)
        if not isinstance(updates, dict):
            raise ValidationError('Expected an object of field values')

        state.update(updates)
        return self.state_response(request, state)

    def delete(self, request):
        self.get_user(request)
        discard_draft(request.session)
        return self.success_response()


class DraftSubmitView(DraftAPIView):
    """
    POST /api/deals/drafts/current/submit

    New deals: validates and opens the preview.
    Edits: validates and sends the update.
    """

    def post(self, request):
        state = self.get_state(request)

        with get_api_client(state.user) as client, submission_in_flight(request.session, state.draft):
            result = handle_form_submit(state.draft, state.user, client)

        return self.result_response(request, state, result)


class PreviewConfirmView(DraftAPIView):
    """POST /api/deals/drafts/current/preview/confirm - Create the deal from the previewed snapshot."""

    def post(self, request):
        state = self.get_state(request)
        draft = state.draft

        with get_api_client(state.user) as client, submission_in_flight(request.session, draft):
            result = confirm_preview(
                draft,
                lambda snapshot: submit_deal(snapshot, state.user, client, deal_id=draft.deal_id,
                                             reference=draft.reference),
            )

        return self.result_response(request, state, result)


class PreviewCancelView(DraftAPIView):
    """POST /api/deals/drafts/current/preview/cancel - Close the preview, keep the form."""

    def post(self, request):
        state = self.get_state(request)
        cancel_preview(state.draft)
        return self.state_response(request, state)


class DraftFiltersRefetchView(DraftAPIView):
    """POST /api/deals/drafts/current/filters/refetch - Reload every reference list."""

    def post(self, request):
        state = self.get_state(request)
        with get_api_client(state.user) as client:
            reference = ReferenceDataLoader(client, state.reference).refetch()
        state.replace_reference(reference)
        return self.state_response(request, state, notification=_filters_notification(reference))
