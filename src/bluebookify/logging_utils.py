from __future__ import annotations

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "bluebookify"
FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(log_path: Path | None = None, *, verbose: bool = False) -> logging.Logger:
    """Send bluebookify logs to a rich console on stderr and, optionally, to a file.

    stdout stays free for command output. Other libraries keep the WARNING
    threshold; only the bluebookify logger is raised to INFO (DEBUG with
    `verbose`, which also logs per-batch id ranges).
    """
    handlers: list[logging.Handler] = [
        RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=False, markup=False)
    ]
    if log_path is not None:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_path, encoding="utf-8")
        fh.setFormatter(logging.Formatter(FILE_FORMAT, "%Y-%m-%d %H:%M:%S"))
        handlers.append(fh)

    logging.basicConfig(level=logging.WARNING, handlers=handlers, format="%(message)s", force=True)
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    return logger
