from loguru import logger
import sys
import os

from gift_checkout_api.app.core.config import settings

# Remove a configuração padrão
logger.remove()

# Configuração para logs no console
logger.add(
    sys.stderr,
    format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
    level=settings.LOG_LEVEL,
)

# Logs em arquivo rotativo apenas quando LOG_DIR estiver configurado
if settings.LOG_DIR:
    os.makedirs(settings.LOG_DIR, exist_ok=True)
    logger.add(
        os.path.join(settings.LOG_DIR, "checkout.log"),
        rotation="10 MB",
        retention="10 days",
        compression="zip",
        level="DEBUG",
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
    )
