"""
Custom exceptions and DRF exception handler for the Water Billing System.

Every billing-core failure is an APIException subclass so the API layer
can render it with a distinct status code and error code. None of them
are fatal; retry policy belongs to the caller.
"""

import logging

from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class ValidationError(APIException):
    """Raised when numeric or date input to the billing core is malformed."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid billing input.'
    default_code = 'validation_error'


class InvalidAmountError(APIException):
    """Raised when a credit amount is not positive or exceeds the balance."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Credit amount must be greater than zero.'
    default_code = 'invalid_amount'


class StateConflictError(APIException):
    """Raised when a bill changed concurrently or is already archived."""

    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Bill was modified by another operation.'
    default_code = 'state_conflict'


class ConcurrencyConflictError(APIException):
    """Raised when a credit-balance write lost its optimistic lock."""

    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Credit balance was modified concurrently. Re-read and retry.'
    default_code = 'concurrency_conflict'


class CustomerNotFoundError(APIException):
    """Raised when a customer does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Customer not found.'
    default_code = 'customer_not_found'


class BillNotFoundError(APIException):
    """Raised when a bill does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Bill not found.'
    default_code = 'bill_not_found'


class PaymentSubmissionNotFoundError(APIException):
    """Raised when a payment proof submission does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Payment submission not found.'
    default_code = 'payment_submission_not_found'


class DataIngestionError(Exception):
    """Raised when data ingestion fails."""

    pass


def custom_exception_handler(exc, context):
    """
    Custom DRF exception handler that returns consistent error responses.

    Handles all DRF exceptions and adds logging for server errors.
    """
    response = exception_handler(exc, context)

    if response is not None:
        error_data = {
            'error': True,
            'status_code': response.status_code,
            'code': getattr(exc, 'default_code', 'error'),
            'detail': response.data,
        }
        response.data = error_data
    else:
        # Unhandled exceptions — log and return 500
        logger.exception(
            "Unhandled exception in %s",
            context.get('view', 'unknown'),
            exc_info=exc,
        )
        response = Response(
            {
                'error': True,
                'status_code': 500,
                'code': 'server_error',
                'detail': 'An unexpected error occurred. Please try again later.',
            },
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    return response
