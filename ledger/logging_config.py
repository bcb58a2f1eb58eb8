"""Logging setup for the wallet ledger service."""

import logging


def configure_logging(level: str = "INFO") -> None:
    log_level = getattr(logging, level.upper(), None)
    if not isinstance(log_level, int):
        log_level = logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
