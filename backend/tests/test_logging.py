"""Tests for logging configuration."""

import json
import logging

from sessionauth.core.logging import (
    REDACTED,
    JSONFormatter,
    TokenRedactionFilter,
    get_logger,
    redact_tokens,
    setup_logging,
)


def _record(message: str, level: int = logging.INFO) -> logging.LogRecord:
    return logging.LogRecord(
        name="sessionauth.test",
        level=level,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )


class TestJSONFormatter:
    def test_fields(self):
        entry = json.loads(JSONFormatter().format(_record("Issued token abc")))

        assert entry["level"] == "INFO"
        assert entry["logger"] == "sessionauth.test"
        assert entry["message"] == "Issued token abc"
        assert "timestamp" in entry

    def test_special_characters_escaped(self):
        """Quotes and newlines must not break the JSON line."""
        line = JSONFormatter().format(_record('bad "user"\nname'))

        assert "\n" not in line
        assert json.loads(line)["message"] == 'bad "user"\nname'

    def test_exception_included(self):
        try:
            raise ValueError("boom")
        except ValueError:
            import sys

            record = _record("failed", logging.ERROR)
            record.exc_info = sys.exc_info()

        entry = json.loads(JSONFormatter().format(record))
        assert "ValueError: boom" in entry["exception"]


    def test_context_fields_from_extra(self):
        record = _record("Issued token")
        record.token_id = "jti-123"
        record.user_id = "42"

        entry = json.loads(JSONFormatter().format(record))

        assert entry["token_id"] == "jti-123"
        assert entry["user_id"] == "42"
        assert entry["service"] == "sessionauth"

    def test_context_fields_absent_by_default(self):
        entry = json.loads(JSONFormatter().format(_record("plain")))
        assert "token_id" not in entry
        assert "user_id" not in entry


class TestTokenRedaction:
    def test_signed_token_masked(self, codec, alice):
        token = codec.issue(alice)
        record = _record(f"rejected {token}")

        TokenRedactionFilter().filter(record)

        assert token not in record.getMessage()
        assert record.getMessage() == f"rejected {REDACTED}"

    def test_masked_when_passed_as_argument(self, codec, alice):
        token = codec.issue(alice)
        record = _record("rejected %s")
        record.args = (token,)

        assert TokenRedactionFilter().filter(record) is True
        assert token not in record.getMessage()

    def test_plain_message_untouched(self):
        record = _record("Token %s rejected")
        record.args = ("jti-123",)

        TokenRedactionFilter().filter(record)

        assert record.args == ("jti-123",)
        assert record.getMessage() == "Token jti-123 rejected"

    def test_redact_tokens_leaves_dotted_text(self):
        assert redact_tokens("version 1.2.3 of a.b.c") == "version 1.2.3 of a.b.c"


class TestSetupLogging:
    def test_get_logger_prefix(self):
        assert get_logger("ledger").name == "sessionauth.ledger"

    def test_structured_installs_json_formatter(self):
        original = logging.root.handlers[:]
        original_level = logging.root.level
        try:
            setup_logging(level="WARNING", format_type="structured")
            assert isinstance(logging.root.handlers[0].formatter, JSONFormatter)
            assert logging.root.level == logging.WARNING
        finally:
            logging.root.handlers = original
            logging.root.setLevel(original_level)

    def test_dev_format_also_redacts(self):
        original = logging.root.handlers[:]
        original_level = logging.root.level
        try:
            setup_logging(level="INFO", format_type="dev")
            handler = logging.root.handlers[0]
            assert any(isinstance(f, TokenRedactionFilter) for f in handler.filters)
            assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
        finally:
            logging.root.handlers = original
            logging.root.setLevel(original_level)
