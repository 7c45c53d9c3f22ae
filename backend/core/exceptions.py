"""
Error envelope for API responses

Every error leaves the API as ``{"success": false, "message": ...}``, with
field-level details under ``errors`` for validation failures.
"""
import logging

from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


def _first_message(detail):
    """Pull a readable message out of a DRF error detail structure"""
    if isinstance(detail, dict):
        for key, value in detail.items():
            message = _first_message(value)
            if key in ('detail', 'non_field_errors'):
                return message
            return f"{key}: {message}"
        return 'Invalid request'
    if isinstance(detail, (list, tuple)):
        return _first_message(detail[0]) if detail else 'Invalid request'
    return str(detail)


def error_response(message, status_code=status.HTTP_400_BAD_REQUEST, errors=None):
    data = {'success': False, 'message': message}
    if errors:
        data['errors'] = errors
    return Response(data, status=status_code)


def envelope_exception_handler(exc, context):
    response = exception_handler(exc, context)

    if response is None:
        view = context.get('view')
        logger.error(f"Unhandled error in {view.__class__.__name__ if view else 'unknown view'}: {exc}", exc_info=exc)
        return error_response('Server Error', status.HTTP_500_INTERNAL_SERVER_ERROR)

    if isinstance(exc, exceptions.ValidationError):
        response.data = {
            'success': False,
            'message': _first_message(exc.detail),
            'errors': exc.detail,
        }
    else:
        response.data = {
            'success': False,
            'message': _first_message(response.data),
        }
    return response
