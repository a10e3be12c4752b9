"""Logging setup for the analytics services."""

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(log_level: str = "INFO") -> None:
    """Install a single stdout handler on the root logger."""
    level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        format=LOG_FORMAT,
        stream=sys.stdout,
        level=level,
        force=True,
    )

    # aiohttp and yfinance are chatty at DEBUG
    for noisy in ("aiohttp", "yfinance", "urllib3"):
        logging.getLogger(noisy).setLevel(max(level, logging.WARNING))
