import logging
import traceback

from .logs import record_system_log
from .models import SystemLog

logger = logging.getLogger(__name__)


class SystemLogMiddleware:
    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        return self.get_response(request)

    def process_exception(self, request, exception):
        logger.error("Erro não tratado em %s: %s", request.path, exception)
        record_system_log(
            str(exception),
            level=SystemLog.LEVEL_ERROR,
            details=f"{request.method} {request.path}\n{traceback.format_exc()}",
        )
        return None
