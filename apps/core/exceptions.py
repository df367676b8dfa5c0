"""
Custom Exception Handling for the Brokerage Portal

Provides consistent error response format across all API endpoints.
"""
import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


def custom_exception_handler(exc, context):
    """
    Custom exception handler that provides consistent error format.

    Error Response Format:
    {
        "error": "ErrorType",
        "message": "Human-readable error message",
        "details": {...},       // Optional, additional context
        "notification": {...}   // Optional, toast to show the user
    }
    """
    if isinstance(exc, APIException):
        return _portal_error_response(exc)

    # Call REST framework's default exception handler first
    response = exception_handler(exc, context)

    if response is not None:
        # Standardize the response format
        error_data = {
            'error': exc.__class__.__name__,
            'message': str(exc.detail) if hasattr(exc, 'detail') else str(exc),
        }

        # Add status code to error data
        if hasattr(exc, 'status_code'):
            error_data['status_code'] = exc.status_code

        # Handle DRF validation errors specially
        if hasattr(exc, 'detail'):
            if isinstance(exc.detail, dict):
                error_data['details'] = exc.detail
                # Create a summary message from field errors
                messages = []
                for field, errors in exc.detail.items():
                    if isinstance(errors, list):
                        messages.append(f"{field}: {', '.join(str(e) for e in errors)}")
                    else:
                        messages.append(f"{field}: {errors}")
                error_data['message'] = '; '.join(messages)
            elif isinstance(exc.detail, list):
                error_data['message'] = ', '.join(str(e) for e in exc.detail)

        response.data = error_data

    else:
        # Handle unexpected exceptions
        logger.exception(f'Unhandled exception: {exc}')

        error_data = {
            'error': 'InternalServerError',
            'message': 'An unexpected error occurred',
        }

        response = Response(
            error_data,
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    return response


def _portal_error_response(exc: 'APIException') -> Response:
    error_data = {
        'error': exc.__class__.__name__,
        'message': exc.message,
        'status_code': exc.status_code,
    }
    if exc.details:
        error_data['details'] = exc.details
    if exc.notification is not None:
        error_data['notification'] = exc.notification.as_dict()
    return Response(error_data, status=exc.status_code)


class APIException(Exception):
    """
    Base exception class for API errors.

    Usage:
        raise APIException('Something went wrong', status_code=400)
    """
    def __init__(
        self,
        message: str,
        status_code: int = 400,
        details: dict | None = None,
        notification=None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.notification = notification
        super().__init__(message)


class ValidationError(APIException):
    """Raised when request validation fails."""
    def __init__(self, message: str, details: dict | None = None, notification=None):
        super().__init__(message, status_code=400, details=details, notification=notification)


class AuthenticationError(APIException):
    """Raised when authentication fails."""
    def __init__(self, message: str = 'Authentication required', notification=None):
        super().__init__(message, status_code=401, notification=notification)


class PermissionDeniedError(APIException):
    """Raised when user lacks permission."""
    def __init__(self, message: str = 'Permission denied', notification=None):
        super().__init__(message, status_code=403, notification=notification)


class NotFoundError(APIException):
    """Raised when a resource is not found."""
    def __init__(self, message: str = 'Resource not found'):
        super().__init__(message, status_code=404)


class ConflictError(APIException):
    """Raised when there's a conflict (e.g., a submission already in flight)."""
    def __init__(self, message: str = 'Resource conflict', notification=None):
        super().__init__(message, status_code=409, notification=notification)


class BackendAPIError(APIException):
    """
    Raised when the remote brokerage API fails or cannot be reached.

    upstream_status is the remote HTTP status (0 for transport failures).
    """
    def __init__(self, message: str, upstream_status: int = 0, notification=None):
        super().__init__(
            message,
            status_code=status.HTTP_502_BAD_GATEWAY,
            details={'upstream_status': upstream_status},
            notification=notification,
        )
        self.upstream_status = upstream_status
