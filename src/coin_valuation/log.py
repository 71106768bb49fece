"""Logging setup shared by the CLI and services."""

from __future__ import annotations

import logging
import os

from rich.console import Console
from rich.logging import RichHandler

LOG_LEVEL_ENV = "COIN_VALUATION_LOG_LEVEL"


def configure_logging(level: str | None = None) -> None:
    resolved = (level or os.getenv(LOG_LEVEL_ENV, "WARNING")).upper()
    logging.basicConfig(
        level=resolved,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=False)],
        force=True,
    )
