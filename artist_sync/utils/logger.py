"""
Logging configuration and utilities for artist-sync

Two audiences read the logs:
- the console shows user-facing lines only (warnings, errors and records
  flagged ``console_output``), colored with colorama and written through
  tqdm so progress bars are redrawn underneath
- the optional rotating log file receives every technical detail
"""

import logging
import logging.handlers
import re
import sys
import time
from pathlib import Path
from typing import Optional

import colorama
from colorama import Fore, Style
from tqdm import tqdm

from ..config.settings import get_settings


# Initialize colorama for Windows compatibility
colorama.init()

# Record attribute marking a line for the console
CONSOLE_FLAG = 'console_output'

# Third-party loggers silenced on every handler
QUIET_LOGGERS = (
    'aiohttp', 'aiohttp.access', 'aiohttp.client', 'asyncio',
    'spotipy', 'requests', 'urllib3', 'urllib3.connectionpool',
)

FILE_FORMAT = '%(asctime)s | %(name)-30s | %(levelname)-8s | %(funcName)-20s | %(message)s'

SIZE_UNITS = {'': 1, 'K': 1024, 'M': 1024 ** 2, 'G': 1024 ** 3, 'T': 1024 ** 4}


class ConsoleMessageFilter(logging.Filter):
    """Let through warnings and errors plus records flagged for the user"""

    passthrough_level = logging.WARNING

    def filter(self, record):
        if record.levelno >= self.passthrough_level:
            return True
        return bool(getattr(record, CONSOLE_FLAG, False))


class VerboseConsoleFilter(ConsoleMessageFilter):
    """--verbose: technical INFO lines reach the console as well"""

    passthrough_level = logging.INFO


class ColoredFormatter(logging.Formatter):
    """Console formatter coloring each line by severity"""

    COLORS = {
        logging.DEBUG: Fore.CYAN,
        logging.WARNING: Fore.YELLOW,
        logging.ERROR: Fore.RED,
        logging.CRITICAL: Fore.RED + Style.BRIGHT,
    }

    def __init__(self, fmt: Optional[str] = None, use_colors: bool = True):
        super().__init__(fmt or '%(message)s')
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        color = self.COLORS.get(record.levelno) if self.use_colors else None
        if not color:
            return message
        return f"{color}{message}{Style.RESET_ALL}"


class ProgressHandler(logging.Handler):
    """Console handler writing through tqdm so active progress bars survive"""

    def __init__(self, stream=None):
        super().__init__()
        self.stream = stream

    def emit(self, record: logging.LogRecord) -> None:
        try:
            tqdm.write(self.format(record), file=self.stream or sys.stdout)
        except Exception:
            self.handleError(record)


def _console_handler(colored_output: bool, verbose: bool) -> logging.Handler:
    handler = ProgressHandler()
    handler.setLevel(logging.DEBUG)
    handler.addFilter(VerboseConsoleFilter() if verbose else ConsoleMessageFilter())
    handler.setFormatter(ColoredFormatter(use_colors=colored_output))
    return handler


def _file_handler(log_file: str, level: int, max_size: str, backup_count: int) -> logging.Handler:
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    handler = logging.handlers.RotatingFileHandler(
        log_path,
        maxBytes=parse_size(max_size),
        backupCount=backup_count,
        encoding='utf-8'
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
    return handler


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    console_output: bool = True,
    colored_output: bool = True,
    max_size: str = "10MB",
    backup_count: int = 3,
    verbose: bool = False
) -> None:
    """
    Replace the root handlers with the console and file handlers

    Args:
        level: Level of the file handler (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to the log file, None disables file logging
        console_output: Enable the console handler
        colored_output: Color console lines by severity
        max_size: Size at which the log file rotates, e.g. "10MB"
        backup_count: Rotated files to keep
        verbose: Show technical INFO lines on the console
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # Handlers decide what is kept

    for handler in list(root_logger.handlers):
        handler.close()
        root_logger.removeHandler(handler)

    if console_output:
        root_logger.addHandler(_console_handler(colored_output, verbose))

    if log_file:
        file_level = getattr(logging, level.upper(), logging.INFO)
        root_logger.addHandler(_file_handler(log_file, file_level, max_size, backup_count))

    for name in QUIET_LOGGERS:
        quiet = logging.getLogger(name)
        quiet.setLevel(logging.CRITICAL)
        quiet.propagate = False

    logging.getLogger(__name__).debug(
        f"Logging initialized - Level: {level}, Console: {console_output}, File: {log_file}"
    )


def parse_size(size_str: str) -> int:
    """
    Convert a human size such as "10MB" or "1.5 GB" to bytes

    Raises:
        ValueError: If the string is not a number followed by B, KB, MB, GB or TB
    """
    match = re.fullmatch(r'(\d+(?:\.\d+)?)\s*([KMGT]?)B', size_str.strip().upper())
    if not match:
        raise ValueError(f"Invalid size format: {size_str}")

    number, unit = match.groups()
    return int(float(number) * SIZE_UNITS[unit])


def get_logger(name: str) -> logging.Logger:
    """
    Module logger with a ``console_info`` shortcut

    ``logger.console_info(msg)`` logs at INFO and flags the record for the console.
    """
    logger = logging.getLogger(name)

    def console_info(message: str):
        logger.info(message, extra={CONSOLE_FLAG: True})

    logger.console_info = console_info
    return logger


def configure_from_settings(verbose: bool = False) -> None:
    """Configure logging from the ``logging`` settings section"""
    settings = get_settings()
    config = settings.logging

    log_file = None
    if config.file:
        log_path = Path(config.file).expanduser()
        if not log_path.is_absolute():
            log_path = settings.get_config_directory() / log_path
        log_file = str(log_path)

    setup_logging(
        level=config.level,
        log_file=log_file,
        console_output=config.console_output,
        colored_output=config.colored_output,
        max_size=config.max_size,
        backup_count=config.backup_count,
        verbose=verbose
    )


class OperationLogger:
    """
    Tracks one long-running operation

    Start and completion lines go to the console; numeric progress drives a
    tqdm bar (when enabled) and a technical log line per step.
    """

    def __init__(self, logger: logging.Logger, operation_name: str, show_progress: bool = True):
        self.logger = logger
        self.operation_name = operation_name
        self.show_progress = show_progress
        self.started_at: Optional[float] = None
        self._bar: Optional[tqdm] = None

    def start(self, message: Optional[str] = None) -> None:
        self.started_at = time.monotonic()
        self.logger.info(message or f"Starting {self.operation_name}", extra={CONSOLE_FLAG: True})

    def progress(self, message: str, current: Optional[int] = None, total: Optional[int] = None) -> None:
        """Record a step; with ``current``/``total`` the progress bar advances"""
        if current is None or total is None:
            self.logger.info(f"{self.operation_name}: {message}")
            return

        self.logger.info(f"{self.operation_name}: {message} ({current}/{total})")
        if not self.show_progress:
            return

        if self._bar is None:
            self._bar = tqdm(
                total=total,
                desc=self.operation_name,
                bar_format="{desc} {n}/{total} {bar} {percentage:3.0f}%",
                ncols=100,
                leave=False
            )
        self._bar.n = current
        self._bar.refresh()

    def _close_bar(self) -> None:
        if self._bar is not None:
            self._bar.close()
            self._bar = None

    def complete(self, message: Optional[str] = None) -> None:
        self._close_bar()
        self.logger.info(message or f"{self.operation_name} completed", extra={CONSOLE_FLAG: True})
        if self.started_at is not None:
            self.logger.debug(f"{self.operation_name} took {time.monotonic() - self.started_at:.2f}s")

    def error(self, message: str, exception: Optional[Exception] = None) -> None:
        self._close_bar()
        self.logger.error(f"{self.operation_name} failed: {message}", exc_info=exception)

    def warning(self, message: str) -> None:
        self.logger.warning(f"{self.operation_name}: {message}")


def create_operation_logger(name: str, operation: str, show_progress: bool = True) -> OperationLogger:
    """OperationLogger bound to the module logger ``name``"""
    return OperationLogger(get_logger(name), operation, show_progress)
