"""
Logging for SNR.

All loggers hang off the "snr" logger, one child per subsystem:

    snr.registry          operations accepted (INFO) and rejected (WARNING),
                          audit imbalances (ERROR)
    snr.registry.guard    re-entry attempts (WARNING)
    snr.registry.events   published notifications (DEBUG)
    snr.balances          minting (DEBUG)
    snr.storage.sqlite    rollbacks (DEBUG)
    snr.cli               command line

Library code only calls get_logger(). Until a process calls setup_logging()
(the CLI does, from its config), output goes to the console at INFO.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import colorlog

LOG_FILE = "snr.log"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "red,bg_white",
}


class SNRLogger:
    """Owner of the handlers attached to the "snr" logger."""

    _initialized = False
    _log_dir: Optional[Path] = None

    @classmethod
    def setup(
        cls,
        level: int = logging.INFO,
        log_dir: Optional[str] = None,
        log_to_file: bool = True,
        force: bool = False,
    ):
        """
        Attach console (and optionally file) handlers.

        Args:
            level: Threshold for the "snr" logger and its handlers
            log_dir: Directory of snr.log. None = ./logs
            log_to_file: Also write to <log_dir>/snr.log
            force: Replace handlers from an earlier setup
        """
        if cls._initialized and not force:
            return

        cls._log_dir = None
        if log_to_file:
            cls._log_dir = Path(log_dir) if log_dir else Path("logs")
            cls._log_dir.mkdir(exist_ok=True, parents=True)

        root_logger = logging.getLogger("snr")
        root_logger.setLevel(level)
        for handler in list(root_logger.handlers):
            handler.close()
        root_logger.handlers.clear()

        console_handler = colorlog.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(colorlog.ColoredFormatter(
            "%(log_color)s%(asctime)s [%(name)s] %(levelname)-8s%(reset)s %(message)s",
            datefmt=DATE_FORMAT,
            log_colors=LOG_COLORS,
        ))
        root_logger.addHandler(console_handler)

        if cls._log_dir is not None:
            file_handler = logging.FileHandler(cls._log_dir / LOG_FILE)
            file_handler.setLevel(level)
            file_handler.setFormatter(logging.Formatter(
                "%(asctime)s [%(name)s] %(levelname)-8s %(message)s",
                datefmt=DATE_FORMAT,
            ))
            root_logger.addHandler(file_handler)

        cls._initialized = True

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """Logger "snr.<name>"; sets up console-only logging on first use."""
        if not cls._initialized:
            cls.setup(log_to_file=False)

        return logging.getLogger(f"snr.{name}")


def get_logger(name: str) -> logging.Logger:
    return SNRLogger.get_logger(name)


def setup_logging(
    level: int = logging.INFO,
    log_dir: Optional[str] = None,
    log_to_file: bool = True,
):
    """Configure logging from node settings, replacing any earlier setup."""
    SNRLogger.setup(level=level, log_dir=log_dir, log_to_file=log_to_file, force=True)
