import uvicorn
import os
from logging_config import setup_logging

# Setup logging before importing app
log_level = os.getenv("LOG_LEVEL", "DEBUG")
log_file = os.getenv("LOG_FILE", None)
setup_logging(log_level=log_level, log_file=log_file)

from app import app
from constants import ROOM_TTL_SECONDS, TOKEN_SECRET_FROM_ENV
from logging_config import get_logger

logger = get_logger(__name__)


def main():
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", 8000))
    if not TOKEN_SECRET_FROM_ENV:
        logger.warning("TOKEN_SECRET is not set, using a random key; tokens will not survive a restart")
    logger.info(f"Starting BurnRoom server on {host}:{port}, room lifetime {ROOM_TTL_SECONDS}s")
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    main()
