import logging

from rest_framework import status
from rest_framework.exceptions import ParseError
from rest_framework.response import Response
from rest_framework.views import exception_handler

from ..errors import BadRequest, ServiceError, http_status_for

logger = logging.getLogger(__name__)


def request_body(request) -> dict:
    """Тело POST-запроса; всё, что не JSON-объект, считается ошибкой клиента"""
    try:
        data = request.data
    except ParseError as exc:
        raise BadRequest() from exc
    if not isinstance(data, dict):
        raise BadRequest()
    return data


def error_response(exc: Exception) -> Response:
    """Ответ с ошибкой в формате {'error': {'code', 'message'}}"""
    if isinstance(exc, ParseError):
        exc = BadRequest()
    if isinstance(exc, ServiceError):
        code, message, http_status = exc.code, exc.message, http_status_for(exc)
        # Детали внутренних ошибок наружу не отдаём
        if http_status == status.HTTP_500_INTERNAL_SERVER_ERROR:
            message = 'internal error'
    else:
        logger.exception('unhandled error')
        code, message, http_status = 'INTERNAL', 'internal error', status.HTTP_500_INTERNAL_SERVER_ERROR
    return Response({
        'error': {
            'code': code,
            'message': message,
        }
    }, status=http_status)


def api_exception_handler(exc, context):
    """EXCEPTION_HANDLER для DRF: ошибки разбора тела отдаются в общем формате"""
    if isinstance(exc, (ParseError, ServiceError)):
        return error_response(exc)
    return exception_handler(exc, context)


def validation_response(errors) -> Response:
    return Response({
        'error': {
            'code': 'VALIDATION',
            'message': 'invalid request',
            'details': errors,
        }
    }, status=status.HTTP_400_BAD_REQUEST)
