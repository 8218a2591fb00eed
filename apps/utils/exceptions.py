# apps/utils/exceptions.py
"""
REST framework exception handler.

Every error response has the shape ``{'message': ..., 'code': ...}``;
validation failures add ``"errors": [{"field": ..., 'message': ...}]``.
"""
import logging

from django.conf import settings
from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


def flatten_errors(detail, field=None):
    """Turn DRF's nested ValidationError detail into a flat list of field/message pairs."""
    if isinstance(detail, dict):
        errors = []
        for key, value in detail.items():
            name = key if field is None else f"{field}.{key}"
            errors.extend(flatten_errors(value, name))
        return errors
    if isinstance(detail, list):
        errors = []
        for item in detail:
            errors.extend(flatten_errors(item, field))
        return errors
    return [{'field': field or 'non_field_errors', 'message': str(detail)}]


def api_exception_handler(exc, context):
    response = exception_handler(exc, context)

    if response is None:
        view = context.get('view')
        logger.error(
            f"Unhandled error in {view.__class__.__name__ if view else 'unknown view'}: {exc}",
            exc_info=exc,
        )
        data = {'message': 'Internal server error', 'code': 'internal_error'}
        if settings.DEBUG:
            data['error'] = str(exc)
        return Response(data, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    if isinstance(exc, ValidationError):
        errors = flatten_errors(exc.detail)
        response.data = {
            'message': 'Validation failed',
            'code': 'invalid_input',
            'errors': errors,
        }
        return response

    detail = response.data.get('detail', response.data) if isinstance(response.data, dict) else response.data
    code = getattr(detail, 'code', None)
    if isinstance(response.data, dict) and response.data.get('code'):
        code = str(response.data['code'])
    response.data = {
        'message': str(detail),
        'code': code or getattr(exc, 'default_code', 'error'),
    }
    return response
