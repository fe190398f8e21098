"""
Service-layer exceptions and their mapping to API responses.

Services raise these without knowing about HTTP; the DRF exception handler
below turns them into ``{"error": ..., "detail": ...}`` responses.
"""
import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    """Base exception for all business-rule violations."""
    status_code = status.HTTP_400_BAD_REQUEST
    error = 'Bad Request'


class ValidationError(ServiceError):
    """Raised when input is malformed, missing or out of range."""
    error = 'Validation Error'


class NotFoundError(ServiceError):
    """Raised when a referenced entity does not exist."""
    status_code = status.HTTP_404_NOT_FOUND
    error = 'Not Found'


class AuthorizationError(ServiceError):
    """Raised when the caller lacks the role or ownership for an action."""
    status_code = status.HTTP_403_FORBIDDEN
    error = 'Forbidden'


class ConflictError(ServiceError):
    """Raised when the current state of an entity forbids the action."""
    error = 'Conflict'


class InsufficientStockError(ConflictError):
    """Raised when there's not enough stock for an order item."""

    def __init__(self, product_id: int, requested: int, available: int, name: str = ''):
        self.product_id = product_id
        self.requested = requested
        self.available = available
        label = name or f"product {product_id}"
        super().__init__(
            f"Insufficient stock for {label}: "
            f"requested {requested}, available {available}"
        )


def api_exception_handler(exc, context):
    """
    DRF exception handler.

    ServiceError subclasses map to their status code; DRF's own exceptions
    keep the default handling; anything else becomes a generic 500.
    """
    if isinstance(exc, ServiceError):
        logger.warning(f"{type(exc).__name__}: {exc}")
        return Response(
            {'error': exc.error, 'detail': str(exc)},
            status=exc.status_code
        )

    response = exception_handler(exc, context)
    if response is not None:
        return response

    view = context.get('view')
    logger.exception(f"Unexpected error in {type(view).__name__}: {exc}")
    return Response(
        {'error': 'Server Error', 'detail': 'An unexpected error occurred'},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR
    )
