# ================== LOGURU LOGGER CONFIG =====================
import os
import sys

from loguru import logger

LOG_DIR = os.environ.get("LOG_DIR") or "logs"

os.makedirs(LOG_DIR, exist_ok=True)

log_format = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[channel]}</cyan> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)

logger.remove()
logger.configure(extra={"channel": "app"})
logger.add(sys.stderr, colorize=True, format=log_format, level="INFO")
logger.add(
    os.path.join(LOG_DIR, "meallink_service.json"),
    rotation="100 MB",
    retention="10 days",
    compression="zip",
    serialize=True,
    level="DEBUG",
    enqueue=True,
    catch=True,
)
logger.add(
    os.path.join(LOG_DIR, "webhook.log"),
    rotation="50 MB",
    retention="30 days",
    level="DEBUG",
    filter=lambda record: record["extra"].get("channel") == "webhook",
    enqueue=True,
    catch=True,
)

webhook_logger = logger.bind(channel="webhook")


def log_webhook_message(message, level="INFO"):
    webhook_logger.log(level, message)
