import logging

from .config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    settings = get_settings()
    logging.basicConfig(level=(level or settings.log_level).upper(), format=LOG_FORMAT)
    # keep SQL echo controlled by db_echo only
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
