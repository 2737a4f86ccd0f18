import sys
from pathlib import Path

from loguru import logger

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)


def setup_logging(environment: str = "development") -> None:
    logger.remove()
    if environment == "production":
        logger.add(sys.stdout, level="INFO", serialize=True)
        return

    level = "WARNING" if environment == "test" else "DEBUG"
    logger.add(sys.stdout, format=LOG_FORMAT, level=level)
    if environment == "test":
        return
    try:
        Path("logs").mkdir(exist_ok=True)
        logger.add("logs/cuentas.log", rotation="100 MB", retention="10 days", compression="zip", level="DEBUG")
    except OSError as e:
        logger.warning(f"No se pudo crear archivo de logs: {e}")
