"""Utility modules for SecretForge.

Provides common utilities:
- Logging configuration with secret redaction
"""

from .logging import (
    ProgressLogger,
    RedactingFilter,
    console,
    get_logger,
    redact,
    setup_logging,
)


__all__ = [
    "setup_logging",
    "get_logger",
    "console",
    "redact",
    "RedactingFilter",
    "ProgressLogger",
]
