import logging

import uvicorn

from rastro.config import settings

logger = logging.getLogger(__name__)


def main() -> None:
    logger.info(f"Starting Rastro on {settings.host}:{settings.port}")
    uvicorn.run("rastro.main:app", host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
