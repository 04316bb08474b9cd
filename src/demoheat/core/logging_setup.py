"""Logging setup driven by LoggingConfig."""

import logging
from logging.handlers import RotatingFileHandler

from demoheat.core.config import LoggingConfig


def setup_logging(config: LoggingConfig | None = None, verbose: bool = False) -> None:
    """
    Configure the root logger once for CLI / service entry points.

    Library modules only ever call ``logging.getLogger(__name__)``.

    Args:
        config: Logging section of the loaded configuration
        verbose: Force DEBUG regardless of the configured level
    """
    config = config or LoggingConfig()
    level = logging.DEBUG if verbose else getattr(logging, str(config.level).upper(), logging.INFO)

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if config.file:
        handlers.append(
            RotatingFileHandler(
                config.file,
                maxBytes=config.file_max_bytes,
                backupCount=config.file_backup_count,
                encoding="utf-8",
            )
        )

    logging.basicConfig(level=level, format=config.format, handlers=handlers, force=True)
