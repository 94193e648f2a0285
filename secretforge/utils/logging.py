"""Logging configuration for SecretForge.

Console output goes through Rich on stderr so exports written to stdout
stay clean. Log calls carry secret names, IDs and counts only; as a
backstop every handler installed here scrubs base64 runs long enough to
be an envelope or key before a record is emitted.
"""

import logging
import re
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler


console = Console(stderr=True)

ROOT_LOGGER = "secretforge"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
SIMPLE_FORMAT = "%(message)s"

REDACTED = "[REDACTED]"

# A 32-byte key encodes to 44 base64 chars; envelopes are longer
_KEY_OR_ENVELOPE = re.compile(r"[A-Za-z0-9+/]{40,}={0,2}")


def redact(text: str) -> str:
    """Replace key- or envelope-shaped base64 runs with a placeholder."""
    return _KEY_OR_ENVELOPE.sub(REDACTED, text)


class RedactingFilter(logging.Filter):
    """Scrubs key material and envelopes from log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        scrubbed = redact(message)
        if scrubbed != message:
            record.msg = scrubbed
            record.args = None
        return True


def _console_handler(rich_output: bool) -> logging.Handler:
    if rich_output:
        handler = RichHandler(
            console=console,
            show_time=True,
            show_path=False,
            rich_tracebacks=True,
        )
        handler.setFormatter(logging.Formatter(SIMPLE_FORMAT))
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
    return handler


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    rich_output: bool = True,
) -> logging.Logger:
    """
    Configure the secretforge logger.

    Calling this again replaces the previously installed handlers.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional file that receives every record at DEBUG
        rich_output: Whether to use Rich for console output

    Returns:
        The configured package logger
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(log_level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    redactor = RedactingFilter()

    console_handler = _console_handler(rich_output)
    console_handler.setLevel(log_level)
    console_handler.addFilter(redactor)
    logger.addHandler(console_handler)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        file_handler.setLevel(logging.DEBUG)
        file_handler.addFilter(redactor)
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a module (e.g., "secretforge.vault.store")."""
    return logging.getLogger(name)


class ProgressLogger:
    """Per-secret progress for batch operations such as key rotation."""

    def __init__(self, total: int, description: str = "Processing"):
        """
        Args:
            total: Number of secrets the operation will touch
            description: Operation name shown in progress lines
        """
        self.total = total
        self.description = description
        self.current = 0
        self.logger = get_logger(f"{ROOT_LOGGER}.progress")

    @property
    def percent(self) -> float:
        if self.total <= 0:
            return 100.0
        return min(self.current / self.total, 1.0) * 100

    def update(self, secret_id: str = "") -> None:
        """Record one processed secret."""
        self.current += 1
        label = secret_id or f"{self.percent:.0f}%"
        console.print(f"  [dim]{self.description}[/dim] [{self.current}/{self.total}] {label}")

    def complete(self) -> None:
        """Report successful completion."""
        console.print(
            f"[green]✓ {self.description} complete: {self.current}/{self.total} secrets[/green]"
        )
        self.logger.debug(f"{self.description} processed {self.current} secret(s)")

    def error(self, message: str) -> None:
        """Report a failure that aborted the operation."""
        console.print(f"[red]✗ {self.description} failed: {message}[/red]")
        self.logger.error(f"{self.description} failed after {self.current} secret(s): {message}")
