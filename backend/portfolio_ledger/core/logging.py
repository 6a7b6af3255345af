import logging
import sys
from typing import Optional

from portfolio_ledger.config import LedgerSettings, get_settings

logger = logging.getLogger(__name__)

_HANDLER_NAME = "portfolio_ledger.stdout"


def setup_logging(settings: Optional[LedgerSettings] = None, level: Optional[str] = None) -> None:
    """Send ledger logs to stdout with timestamps.

    ``level`` wins over ``settings.log_level``; the effective settings are
    logged once at INFO so a run records what it was configured with.
    Calling it again only changes the level.
    """
    settings = settings or get_settings()
    root_logger = logging.getLogger()
    if not any(h.get_name() == _HANDLER_NAME for h in root_logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.set_name(_HANDLER_NAME)
        handler.setFormatter(
            logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S',
            )
        )
        root_logger.addHandler(handler)
    root_logger.setLevel((level or settings.log_level).upper())

    # Exporter chatter is not useful at INFO
    logging.getLogger("opentelemetry").setLevel(logging.WARNING)
    logging.getLogger("grpc").setLevel(logging.WARNING)
    logger.info("Ledger settings: %s", settings.dict_for_logging())
