"""
Staff API key middleware.

Every /api/ endpoint requires a key in the X-API-KEY header. The health
probe and the Django admin are left open.
"""

import logging

from django.conf import settings
from django.http import JsonResponse

logger = logging.getLogger(__name__)

PROTECTED_PREFIX = '/api/'


def _reject(status_code, code, detail):
    return JsonResponse(
        {
            'error': True,
            'status_code': status_code,
            'code': code,
            'detail': detail,
        },
        status=status_code,
    )


class APIKeyMiddleware:
    """
    Checks the X-API-KEY header on API requests.

    With API_KEYS empty (local development) every request passes.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        api_keys = getattr(settings, 'API_KEYS', [])
        if not api_keys or not request.path.startswith(PROTECTED_PREFIX):
            return self.get_response(request)

        provided_key = request.META.get('HTTP_X_API_KEY', '')

        if not provided_key:
            logger.warning("Request to %s rejected: missing API key", request.path)
            return _reject(
                401,
                'authentication_required',
                'Authentication required. Provide X-API-KEY header.',
            )

        if provided_key not in api_keys:
            logger.warning("Request to %s rejected: invalid API key", request.path)
            return _reject(403, 'invalid_api_key', 'Invalid API key.')

        return self.get_response(request)
