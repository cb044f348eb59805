"""
Logging configuration for unsafe-census.

Log records go to stderr through rich so that stdout stays clean for the
report itself (tree text or JSON). Recoverable problems of an audit
(skipped files, unknown edge kinds, dependency cycles) are WARNING records;
a ``WarningTally`` counts them so the CLI can close with a summary line.
"""

import logging
from collections import Counter
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "unsafe_census"


class WarningTally(logging.Handler):
    """Counts WARNING and ERROR records per emitting module."""

    def __init__(self) -> None:
        super().__init__(level=logging.WARNING)
        self.by_module: Counter = Counter()

    def emit(self, record: logging.LogRecord) -> None:
        self.by_module[record.name.rsplit(".", 1)[-1]] += 1

    @property
    def total(self) -> int:
        return sum(self.by_module.values())

    def summary(self) -> str:
        """E.g. ``3 warnings (scanner: 2, walker: 1)``; empty when none."""
        if not self.total:
            return ""
        noun = "warning" if self.total == 1 else "warnings"
        parts = ", ".join(f"{name}: {count}" for name, count in sorted(self.by_module.items()))
        return f"{self.total} {noun} ({parts})"


def setup_logging(
    verbose: bool = False, quiet: bool = False, log_file: Optional[str] = None
) -> WarningTally:
    """
    Configure logging with a rich handler on stderr.

    Args:
        verbose: Enable DEBUG level logging with timestamps and source paths
        quiet: Suppress all but ERROR level logging
        log_file: Optional file path to append logs to

    Returns:
        The WarningTally attached to the unsafe_census logger
    """
    if quiet:
        level = logging.ERROR
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.WARNING

    handlers: list[logging.Handler] = [
        RichHandler(
            console=Console(stderr=True),
            rich_tracebacks=True,
            tracebacks_show_locals=verbose,
            markup=False,
            show_time=verbose,
            show_path=verbose,
        )
    ]

    if log_file:
        file_handler = logging.FileHandler(log_file, mode="a")
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
            )
        )
        handlers.append(file_handler)

    logging.basicConfig(level=level, format="%(message)s", handlers=handlers, force=True)

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    for handler in list(logger.handlers):
        if isinstance(handler, WarningTally):
            logger.removeHandler(handler)
    tally = WarningTally()
    logger.addHandler(tally)
    return tally


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Logger under the ``unsafe_census`` namespace (the root one for None)."""
    if name is None:
        return logging.getLogger(ROOT_LOGGER)
    if not name.startswith(ROOT_LOGGER):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)
