import json
import logging

import pytest

from campaign_backend.app.domains.regeneration.errors import (
    CandidateShapeError,
    MissingCredentialError,
    ProviderRequestError,
    ProviderTruncatedError,
    ResponseParseError,
)
from campaign_backend.app.domains.regeneration.validation_schemas import FailureType
from campaign_backend.app.infrastructure.errors import (
    ErrorCategory,
    ErrorSeverity,
    RecoveryAction,
    StructuredError,
    ValidationExhaustedRecord,
    get_error_by_code,
)
from campaign_backend.app.logging_config import (
    LogContext,
    StructuredJSONFormatter,
    campaign_name_var,
    clear_context,
    content_type_var,
    correlation_id_var,
    set_correlation_id,
)


def make_record(msg: str = "Test message", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="app.domains.regeneration.service",
        level=logging.INFO,
        pathname="service.py",
        lineno=10,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredErrors:
    def test_error_category_values(self):
        assert ErrorCategory.CONFIGURATION.value == "CONFIGURATION"
        assert ErrorCategory.PROVIDER.value == "PROVIDER"
        assert ErrorCategory.PARSING.value == "PARSING"
        assert ErrorCategory.VALIDATION.value == "VALIDATION"
        assert len(ErrorCategory) == 4

    def test_recovery_actions_cover_emitted_records(self):
        assert {action.value for action in RecoveryAction} == {
            "RETRY",
            "NARROW_SCOPE",
            "PROVIDE_CREDENTIAL",
            "NONE",
        }

    def test_structured_error_to_log_dict(self):
        error = StructuredError(
            category=ErrorCategory.PARSING,
            severity=ErrorSeverity.HIGH,
            code="ERR_PARSE",
            message="Parsing failed",
            details={},
            recovery_action=RecoveryAction.RETRY,
        )

        error_dict = error.to_log_dict()

        assert error_dict["error_code"] == "ERR_PARSE"
        assert error_dict["error_category"] == "PARSING"
        assert error_dict["error_severity"] == "HIGH"
        assert error_dict["error_message"] == "Parsing failed"
        assert error_dict["recovery_action"] == "RETRY"

    def test_missing_credential_record(self):
        record = MissingCredentialError().to_structured_error(correlation_id="regen-abc")

        assert record.code == "CONFIGURATION_MISSING_CREDENTIAL"
        assert record.recovery_action == RecoveryAction.PROVIDE_CREDENTIAL
        assert record.correlation_id == "regen-abc"
        assert record.attempts_made == 0

    def test_truncation_suggests_narrower_scope(self):
        error = ProviderTruncatedError(model="gpt-4o", max_tokens=8000)
        record = error.to_structured_error(attempts_made=1)

        assert error.failure_type == FailureType.PROVIDER_TRUNCATED
        assert record.code == "PROVIDER_TRUNCATED"
        assert record.recovery_action == RecoveryAction.NARROW_SCOPE
        assert record.attempts_made == 1

    def test_provider_error_keeps_status_code(self):
        error = ProviderRequestError("Incorrect API key provided", model="gpt-4o", status_code=401)

        assert error.to_dict()["details"]["status_code"] == 401
        assert error.failure_type == FailureType.PROVIDER_ERROR

    def test_shape_error_is_a_parse_failure(self):
        error = CandidateShapeError("themes: Input should be a valid list")

        assert isinstance(error, ResponseParseError)
        assert error.failure_type == FailureType.PARSE_FAILURE
        assert error.to_structured_error().code == "PARSING_INVALID_JSON"

    def test_exhaustion_record_is_retryable(self):
        record = ValidationExhaustedRecord(last_reason="Too many duplicate keywords", max_attempts=3)

        assert record.is_retryable
        assert record.details == {"max_attempts": 3}

    @pytest.mark.parametrize(
        "code",
        [
            "CONFIGURATION_MISSING_CREDENTIAL",
            "PROVIDER_EMPTY_RESPONSE",
            "PROVIDER_TRUNCATED",
            "PROVIDER_REQUEST_FAILED",
            "PARSING_INVALID_JSON",
            "VALIDATION_RETRY_EXHAUSTED",
        ],
    )
    def test_error_codes_stable(self, code):
        assert get_error_by_code(code) is not None

    def test_unknown_code(self):
        assert get_error_by_code("NOPE") is None


class TestStructuredLogging:
    def test_correlation_id_context_var(self):
        set_correlation_id("test-correlation-123")
        assert correlation_id_var.get() == "test-correlation-123"
        clear_context()
        assert correlation_id_var.get() is None

    def test_generated_correlation_id(self):
        cid = set_correlation_id()
        assert cid.startswith("regen-")
        clear_context()

    def test_log_context_manager(self):
        with LogContext(correlation_id="ctx-1", campaign_name="Spring Sale", content_type="rsa"):
            assert correlation_id_var.get() == "ctx-1"
            assert campaign_name_var.get() == "Spring Sale"
            assert content_type_var.get() == "rsa"
        assert correlation_id_var.get() is None
        assert campaign_name_var.get() is None
        assert content_type_var.get() is None

    def test_log_context_with_auto_generate(self):
        clear_context()
        with LogContext(auto_generate_correlation_id=True):
            cid = correlation_id_var.get()
            assert cid
        assert correlation_id_var.get() is None

    def test_nested_context_keeps_outer_correlation_id(self):
        with LogContext(correlation_id="outer"):
            with LogContext(auto_generate_correlation_id=True, content_type="keywords"):
                assert correlation_id_var.get() == "outer"
                assert content_type_var.get() == "keywords"
            assert content_type_var.get() is None
            assert correlation_id_var.get() == "outer"

    def test_structured_json_formatter_format(self):
        formatter = StructuredJSONFormatter()

        with LogContext(correlation_id="test-corr-id", campaign_name="Spring Sale"):
            formatted = json.loads(formatter.format(make_record()))

        assert formatted["message"] == "Test message"
        assert formatted["level"] == "INFO"
        assert formatted["logger"] == "app.domains.regeneration.service"
        assert formatted["correlation_id"] == "test-corr-id"
        assert formatted["campaign_name"] == "Spring Sale"
        assert "content_type" not in formatted

    def test_formatter_includes_extra_fields(self):
        formatter = StructuredJSONFormatter()

        formatted = json.loads(
            formatter.format(make_record(attempt_number=2, error_codes={"THEME_COUNT_MISMATCH"}))
        )

        assert formatted["attempt_number"] == 2
        assert formatted["error_codes"] == "{'THEME_COUNT_MISMATCH'}"
