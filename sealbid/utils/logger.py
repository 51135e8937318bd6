"""
Logging for sealbid.

All loggers live under the ``sealbid`` namespace (``sealbid.ledger``,
``sealbid.auction.contract``, ``sealbid.client``, ...). Until something
configures logging explicitly, records go to a colored console handler
only, so importing the library never creates files. The CLI calls
configure_logging() with the node's ProtocolConfig to add the
``sealbid.log`` file under the configured log directory.
"""

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional

import colorlog

if TYPE_CHECKING:
    from sealbid.core.config import ProtocolConfig

ROOT_LOGGER = "sealbid"
LOG_FILE = "sealbid.log"

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)-8s %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LEVEL_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "red,bg_white",
}

_configured = False


def _console_handler(level: int) -> logging.Handler:
    handler = colorlog.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(
        colorlog.ColoredFormatter(
            "%(log_color)s" + LOG_FORMAT.replace("%(message)s", "%(reset)s%(message)s"),
            datefmt=DATE_FORMAT,
            log_colors=LEVEL_COLORS,
        )
    )
    return handler


def _file_handler(log_dir: Path, level: int) -> logging.Handler:
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_dir / LOG_FILE)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    return handler


def _install(handlers: List[logging.Handler], level: int) -> None:
    global _configured

    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(level)
    # Close replaced handlers so reconfiguring does not leak open log files
    for old in list(root.handlers):
        root.removeHandler(old)
        old.close()
    for handler in handlers:
        root.addHandler(handler)
    _configured = True


def setup_logging(
    level: int = logging.INFO,
    log_dir: Optional[str] = None,
    log_to_file: bool = True,
    force: bool = False,
):
    """
    Setup logging configuration.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_dir: Directory for sealbid.log. If None, uses ./logs
        log_to_file: Whether to write logs to file
        force: Replace the handlers of an earlier setup
    """
    if _configured and not force:
        return

    handlers = [_console_handler(level)]
    if log_to_file:
        handlers.append(_file_handler(Path(log_dir) if log_dir else Path("logs"), level))
    _install(handlers, level)


def configure_logging(config: "ProtocolConfig", debug: bool = False) -> None:
    """Apply the logging section of a node configuration, replacing any earlier setup."""
    setup_logging(
        level=logging.DEBUG if debug else config.log_level,
        log_dir=str(config.log_dir),
        log_to_file=config.log_to_file,
        force=True,
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a specific subsystem.

    Args:
        name: Subsystem name (e.g., 'ledger', 'auction.contract', 'client')

    Returns:
        Logger instance
    """
    if not _configured:
        setup_logging(log_to_file=False)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
