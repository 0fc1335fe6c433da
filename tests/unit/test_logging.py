"""Unit tests for logging_audit module."""

import logging
from logging.handlers import RotatingFileHandler

import pytest

from saml_sp_util.logging_audit import (
    PIIRedactingFormatter,
    configure_logging,
    get_logger,
    log_audit_event,
)


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Restore root logger handlers after each test."""
    root_logger = logging.getLogger()
    handlers = list(root_logger.handlers)
    level = root_logger.level
    yield
    for handler in list(root_logger.handlers):
        if handler not in handlers:
            root_logger.removeHandler(handler)
            handler.close()
    root_logger.setLevel(level)


def _record(message: str) -> logging.LogRecord:
    return logging.LogRecord("test", logging.INFO, __file__, 1, message, None, None)


class TestConfigureLogging:
    """Test logging configuration."""

    def test_configure_logging_creates_file(self, tmp_path):
        """Test logging configuration creates log file."""
        # Arrange
        log_file = tmp_path / "logs" / "test.log"

        # Act
        configure_logging(level="INFO", log_file=log_file, redact_pii=False)
        get_logger(__name__).info("Test message")

        # Assert
        assert log_file.exists()
        assert "Test message" in log_file.read_text()

    def test_console_level_and_file_debug(self, tmp_path):
        """Test console uses the given level while the file keeps DEBUG."""
        configure_logging(level="WARNING", log_file=tmp_path / "test.log")

        root_logger = logging.getLogger()
        file_handlers = [h for h in root_logger.handlers if isinstance(h, RotatingFileHandler)]
        console_handlers = [
            h for h in root_logger.handlers
            if isinstance(h.formatter, PIIRedactingFormatter)
            and not isinstance(h, logging.FileHandler)
        ]
        assert file_handlers[0].level == logging.DEBUG
        assert console_handlers[0].level == logging.WARNING

    def test_reconfigure_does_not_duplicate_handlers(self, tmp_path):
        configure_logging(level="INFO", log_file=tmp_path / "a.log")
        configure_logging(level="DEBUG", log_file=tmp_path / "b.log")

        file_handlers = [
            h for h in logging.getLogger().handlers if isinstance(h, RotatingFileHandler)
        ]
        assert len(file_handlers) == 1
        assert file_handlers[0].baseFilename.endswith("b.log")

    def test_invalid_level(self, tmp_path):
        with pytest.raises(ValueError):
            configure_logging(level="LOUD", log_file=tmp_path / "test.log")

    def test_env_log_file(self, tmp_path, monkeypatch):
        log_file = tmp_path / "env.log"
        monkeypatch.setenv("SAML_SP_LOG_FILE", str(log_file))

        configure_logging(level="INFO")
        get_logger(__name__).info("From env")

        assert "From env" in log_file.read_text()

    def test_signxml_debug_quieted(self, tmp_path):
        configure_logging(level="DEBUG", log_file=tmp_path / "test.log")

        assert logging.getLogger("signxml").level == logging.INFO


class TestPIIRedactingFormatter:
    """Test PII redaction."""

    def test_redacts_email(self):
        formatter = PIIRedactingFormatter(fmt="%(message)s", redact_pii=True)

        output = formatter.format(_record("Subject jdoe@example.com verified"))

        assert "jdoe@example.com" not in output
        assert "[EMAIL-REDACTED]" in output

    def test_redacts_name_id_element(self):
        formatter = PIIRedactingFormatter(fmt="%(message)s", redact_pii=True)

        output = formatter.format(
            _record('<saml:NameID Format="format">jdoe</saml:NameID>')
        )

        assert ">jdoe<" not in output
        assert "[NAMEID-REDACTED]" in output

    def test_redacts_name_id_field(self):
        formatter = PIIRedactingFormatter(fmt="%(message)s", redact_pii=True)

        output = formatter.format(_record("name_id='jdoe' | issuer=alice"))

        assert "jdoe" not in output
        assert "issuer=alice" in output

    def test_no_redaction_when_disabled(self):
        formatter = PIIRedactingFormatter(fmt="%(message)s", redact_pii=False)

        assert formatter.format(_record("jdoe@example.com")) == "jdoe@example.com"


class TestAuditEvents:
    """Test audit trail events."""

    def test_failure_logged_at_error(self, caplog):
        with caplog.at_level(logging.INFO):
            log_audit_event(
                "SAML_RESPONSE_REJECTED",
                {"status": "failure", "failure_kind": "SIGNATURE", "error_message": "bad"},
            )

        record = caplog.records[-1]
        assert record.levelno == logging.ERROR
        assert record.getMessage().startswith(
            "AUDIT [SAML_RESPONSE_REJECTED] | status=failure | failure_kind=SIGNATURE"
        )

    def test_success_logged_at_info(self, caplog):
        with caplog.at_level(logging.INFO):
            log_audit_event("SAML_RESPONSE_VERIFIED", {"status": "success", "issuer": "alice"})

        record = caplog.records[-1]
        assert record.levelno == logging.INFO
        assert "issuer=alice" in record.getMessage()
        assert "correlation_id=" in record.getMessage()
        assert "timestamp=" not in record.getMessage()

    def test_extra_fields_appended(self, caplog):
        with caplog.at_level(logging.INFO):
            log_audit_event("SAML_RESPONSE_REJECTED", {"status": "failure", "clause": "X"})

        assert caplog.records[-1].getMessage().endswith("clause=X")

    def test_details_not_mutated(self):
        details = {"status": "success"}

        log_audit_event("SAML_RESPONSE_VERIFIED", details)

        assert details == {"status": "success"}
