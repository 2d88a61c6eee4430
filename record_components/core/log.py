import logging
import sys

from record_components.core.config import get_settings


def configure_logging(level: str | None = None) -> None:
    """Basic structured logging to stdout for ops visibility."""
    logging.basicConfig(
        level=(level or get_settings().log_level).upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
