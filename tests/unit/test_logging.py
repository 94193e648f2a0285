"""Unit tests for logging setup."""

import logging

import pytest

from rich.logging import RichHandler

from secretforge.utils.logging import (
    REDACTED,
    ProgressLogger,
    RedactingFilter,
    get_logger,
    redact,
    setup_logging,
)


@pytest.fixture(autouse=True)
def restore_package_logger():
    """Drop handlers installed by a test so they don't outlive captured streams."""
    logger = logging.getLogger("secretforge")
    level = logger.level
    yield
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(level)


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_rich_handler_by_default(self):
        """Console output goes through Rich."""
        logger = setup_logging("WARNING")

        assert logger.name == "secretforge"
        assert logger.level == logging.WARNING
        assert any(isinstance(h, RichHandler) for h in logger.handlers)

    def test_plain_handler(self):
        """rich_output=False falls back to a plain stream handler."""
        logger = setup_logging("INFO", rich_output=False)

        assert len(logger.handlers) == 1
        assert not isinstance(logger.handlers[0], RichHandler)

    def test_repeated_setup_does_not_stack_handlers(self):
        """Calling setup twice replaces handlers."""
        setup_logging("INFO")
        logger = setup_logging("INFO")

        assert len(logger.handlers) == 1

    def test_log_file(self, tmp_path):
        """A log file receives module log records."""
        log_file = tmp_path / "logs" / "secretforge.log"
        logger = setup_logging("DEBUG", log_file=log_file, rich_output=False)

        get_logger("secretforge.vault.store").debug("Opened store")
        for handler in logger.handlers:
            handler.flush()

        assert "Opened store" in log_file.read_text()

        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)

    def test_unknown_level_defaults_to_info(self):
        """Unrecognized level names fall back to INFO."""
        assert setup_logging("chatty").level == logging.INFO


class TestProgressLogger:
    """Tests for ProgressLogger."""

    def test_counts_updates(self):
        """update() advances the counter."""
        progress = ProgressLogger(3, "Rotation")

        progress.update("one")
        progress.update()

        assert progress.current == 2

    def test_error_logs(self, caplog):
        """error() also reaches the logging system."""
        progress = ProgressLogger(1)

        with caplog.at_level(logging.ERROR, logger="secretforge.progress"):
            progress.error("went wrong")

        assert "went wrong" in caplog.text

    def test_error_reports_progress_so_far(self, caplog):
        """The error record says how far the operation got."""
        progress = ProgressLogger(3, "Key rotation")
        progress.update("sec_a")

        with caplog.at_level(logging.ERROR, logger="secretforge.progress"):
            progress.error("bad envelope")

        assert "Key rotation failed after 1 secret(s): bad envelope" in caplog.text


class TestRedaction:
    """Tests for scrubbing key material from log output."""

    def test_redact_key(self):
        """A generated key is never logged verbatim."""
        from secretforge.vault import generate_key

        key = generate_key()

        assert redact(f"using key {key}") == f"using key {REDACTED}"

    def test_redact_envelope(self, crypto_provider):
        """Envelopes are scrubbed."""
        envelope = crypto_provider.encrypt("value")

        assert envelope not in redact(f"stored {envelope}")

    def test_short_tokens_untouched(self):
        """Secret IDs, names and counts pass through."""
        message = "Updated secret sec_0123456789abcdef0123456789abcdef (DB_PASS)"

        assert redact(message) == message

    def test_filter_applies_to_handlers(self, tmp_path, encryption_key):
        """Records reaching the log file are scrubbed."""
        log_file = tmp_path / "redacted.log"
        logger = setup_logging("DEBUG", log_file=log_file, rich_output=False)

        get_logger("secretforge.test").warning("key=%s", encryption_key)
        for handler in list(logger.handlers):
            handler.flush()
            handler.close()
            logger.removeHandler(handler)

        content = log_file.read_text()
        assert encryption_key not in content
        assert REDACTED in content

    def test_filter_keeps_record(self):
        """The filter scrubs but never drops records."""
        record = logging.LogRecord("secretforge", logging.INFO, __file__, 1, "plain %s", ("text",), None)

        assert RedactingFilter().filter(record)
        assert record.getMessage() == "plain text"


class TestSettingsLogging:
    """Tests for applying process settings to logging."""

    def test_settings_setup_logging(self):
        """Settings.setup_logging uses the configured level."""
        from secretforge.config import Settings

        logger = Settings(log_level="ERROR").setup_logging(rich_output=False)

        assert logger.level == logging.ERROR
