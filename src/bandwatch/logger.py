"""
Logging infrastructure for the bandwatch market sync system.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional


class ColoredFormatter(logging.Formatter):
    """Colored formatter for console output."""

    COLORS = {
        'DEBUG': '\033[36m',    # Cyan
        'INFO': '\033[32m',     # Green
        'WARNING': '\033[33m',  # Yellow
        'ERROR': '\033[31m',    # Red
        'CRITICAL': '\033[35m', # Magenta
    }
    RESET = '\033[0m'

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


class StructuredFormatter(logging.Formatter):
    """Structured formatter for file output."""

    def format(self, record: logging.LogRecord) -> str:
        # Market context attached through SyncLoggerAdapter
        prefix = ""
        if getattr(record, 'provider', None):
            prefix += f"[{record.provider}] "
        if getattr(record, 'symbol', None):
            prefix += f"[{record.symbol}] "
        if getattr(record, 'period', None):
            prefix += f"[{record.period}] "

        message = super().format(record)
        if not prefix:
            return message
        head, sep, tail = message.rpartition(" | ")
        return f"{head}{sep}{prefix}{tail}" if sep else f"{prefix}{message}"


def setup_logger(
    name: str,
    level: str = "INFO",
    log_file: Optional[str] = None,
    max_size: str = "10MB",
    backup_count: int = 5,
    console_output: bool = True
) -> logging.Logger:
    """
    Set up a logger with file rotation and optional console output.

    Args:
        name: Logger name
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file (optional)
        max_size: Maximum log file size before rotation
        backup_count: Number of backup files to keep
        console_output: Whether to output to console

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Clear existing handlers
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    log_level = getattr(logging, level.upper(), logging.INFO)
    logger.setLevel(log_level)

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(log_level)
        console_handler.setFormatter(ColoredFormatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        ))
        logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=_parse_size(max_size),
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(StructuredFormatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(funcName)s:%(lineno)d | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        ))
        logger.addHandler(file_handler)

    # Prevent propagation to root logger
    logger.propagate = False

    return logger


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """
    Get a logger instance with default configuration.

    Without an explicit ``level`` the logger stays NOTSET and follows the
    level chosen by configure_logging() for the 'bandwatch' parent.
    """
    logger = logging.getLogger(name)
    if logger.handlers or level is None:
        return logger
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    return logger


def configure_logging(
    level: str = "INFO",
    log_file: Optional[str] = "./logs/bandwatch.log",
    max_size: str = "10MB",
    backup_count: int = 5,
    console_output: bool = True
) -> logging.Logger:
    """Configure the package-level 'bandwatch' logger that every module logger inherits from."""
    return setup_logger(
        name="bandwatch",
        level=level,
        log_file=log_file,
        max_size=max_size,
        backup_count=backup_count,
        console_output=console_output
    )


def _parse_size(size_str: str) -> int:
    """
    Parse size string (e.g., '10MB', '1GB') to bytes.

    Args:
        size_str: Size string with unit

    Returns:
        Size in bytes
    """
    size_str = size_str.upper().strip()

    # Longest units first so 'MB' is not matched as 'B'
    size_map = {
        'GB': 1024 * 1024 * 1024,
        'MB': 1024 * 1024,
        'KB': 1024,
        'B': 1,
    }

    for unit, multiplier in size_map.items():
        if size_str.endswith(unit):
            number = size_str[:-len(unit)].strip()
            try:
                return int(float(number) * multiplier)
            except ValueError:
                break

    try:
        return int(size_str)
    except ValueError:
        return 10 * 1024 * 1024  # Default 10MB


class SyncLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter carrying market context (symbol, period, provider)."""

    def process(self, msg: str, kwargs: dict) -> tuple:
        extra = dict(self.extra)
        extra.update(kwargs.get('extra', {}))
        kwargs['extra'] = extra
        return msg, kwargs


def get_sync_adapter(
    logger: logging.Logger,
    symbol: Optional[str] = None,
    period: Optional[str] = None,
    provider: Optional[str] = None
) -> SyncLoggerAdapter:
    """
    Wrap a logger with market context.

    Args:
        logger: Underlying logger
        symbol: Trading pair (e.g., 'BTCUSDT')
        period: Candle period (e.g., '1m')
        provider: Upstream data provider name

    Returns:
        Logger adapter with context
    """
    extra = {}
    if symbol:
        extra['symbol'] = symbol
    if period:
        extra['period'] = period
    if provider:
        extra['provider'] = provider

    return SyncLoggerAdapter(logger, extra)
