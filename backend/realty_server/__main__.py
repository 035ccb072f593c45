"""Run the server: ``python -m realty_server``."""

import logging

import uvicorn

from realty_server.config import get_settings

logger = logging.getLogger("realty_server")


def main():
    settings = get_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )
    logger.info(f"Server running on port {settings.PORT}")
    logger.info(f"User frontend: http://localhost:{settings.PORT}")
    logger.info(f"Admin frontend: http://localhost:{settings.PORT}{settings.ADMIN_PATH_PREFIX}")
    uvicorn.run(
        "realty_server.main:create_app",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
        log_config=None,
    )


if __name__ == "__main__":
    main()
