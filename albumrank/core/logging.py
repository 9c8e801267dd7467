import logging

from albumrank.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | None = None) -> None:
    # no-op for handlers if the root logger is already configured (uvicorn, pytest)
    logging.basicConfig(format=LOG_FORMAT)
    logging.getLogger().setLevel(level or settings.log_level)
