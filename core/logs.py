import logging

from .models import SystemLog

logger = logging.getLogger(__name__)


def record_system_log(message, *, level=SystemLog.LEVEL_ERROR, details="", source=SystemLog.SOURCE_BACKEND):
    """Grava um SystemLog sem nunca propagar falhas do próprio registro."""
    try:
        return SystemLog.objects.create(
            level=level,
            source=source,
            message=(message or "Erro interno no servidor")[:255],
            details=details,
        )
    except Exception as e:
        logger.error("Falha ao criar SystemLog: %s", e)
        return None
