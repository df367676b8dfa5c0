"""
Brokerage API Client

Thin httpx wrapper around the remote brokerage REST API. Every call except
login carries the session's bearer token. Failures surface as
BackendAPIError with the best message the server (or transport) gave us.
"""
import logging
from typing import Any

import httpx
from django.conf import settings

from .constants import NETWORK_ERROR_MESSAGE
from .exceptions import BackendAPIError

logger = logging.getLogger(__name__)


def default_transport() -> httpx.BaseTransport:
    """Transport used for outbound calls. Requests are never retried."""
    return httpx.HTTPTransport(retries=0)


def extract_error_message(response: httpx.Response) -> str:
    """
    Pick the most useful error text from a failed response.

    Order: JSON "message", "error", "detail", then the raw body, then a
    generic status line.
    """
    try:
        data = response.json()
    except ValueError:
        data = None

    if isinstance(data, dict):
        for key in ('message', 'error', 'detail'):
            value = data.get(key)
            if value:
                return str(value)

    text = response.text.strip()
    if text:
        return text
    return f'HTTP error! status: {response.status_code}'


class BrokerageAPIClient:
    """
    Synchronous client for the brokerage API.

    Usage:
        with BrokerageAPIClient(token=user.token) as client:
            deal = client.get(f'/api/deals/{deal_id}')

    The underlying httpx.Client is safe to share across threads, which the
    reference-data loader relies on.
    """

    def __init__(
        self,
        token: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.token = token
        self.base_url = (base_url or settings.BROKERAGE_API_BASE_URL).rstrip('/')
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout if timeout is not None else settings.BROKERAGE_API_TIMEOUT,
            transport=transport if transport is not None else default_transport(),
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self) -> None:
        self._client.close()

    def _headers(self) -> dict[str, str]:
        headers = {
            'Content-Type': 'application/json',
            'Accept': 'application/json',
        }
        if self.token:
            headers['Authorization'] = f'Bearer {self.token}'
        return headers

    def request(self, method: str, endpoint: str, json: Any = None) -> Any:
        """
        Send a request and return the decoded JSON body.

        Raises:
            BackendAPIError: non-2xx response or transport failure
        """
        path = endpoint if endpoint.startswith('/') else f'/{endpoint}'

        try:
            response = self._client.request(method, path, json=json, headers=self._headers())
        except httpx.RequestError as e:
            logger.error(f'Brokerage API request {method} {path} failed: {e}')
            raise BackendAPIError(NETWORK_ERROR_MESSAGE) from e

        if response.is_error:
            message = extract_error_message(response)
            logger.warning(
                f'Brokerage API {method} {path} returned {response.status_code}: {message}'
            )
            raise BackendAPIError(message, upstream_status=response.status_code)

        if not response.content:
            return None

        try:
            return response.json()
        except ValueError as e:
            logger.error(f'Brokerage API {method} {path} returned invalid JSON')
            raise BackendAPIError('Invalid response from server', upstream_status=response.status_code) from e

    def get(self, endpoint: str) -> Any:
        return self.request('GET', endpoint)

    def post(self, endpoint: str, json: Any = None) -> Any:
        return self.request('POST', endpoint, json=json)

    def put(self, endpoint: str, json: Any = None) -> Any:
        return self.request('PUT', endpoint, json=json)


def get_api_client(user=None) -> BrokerageAPIClient:
    """Build a client authenticated as the given SessionUser (or anonymous)."""
    return BrokerageAPIClient(token=getattr(user, 'token', None))
