import logging

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware:
    """Пишет в лог каждый входящий запрос"""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        logger.info('request', extra={
            'method': request.method,
            'url': request.get_full_path(),
            'remote_addr': request.META.get('REMOTE_ADDR'),
        })
        return self.get_response(request)
