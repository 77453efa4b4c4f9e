from typing import Any

from campaign_backend.app.domains.regeneration.validation_schemas import FailureType
from campaign_backend.app.infrastructure.errors import (
    MissingCredentialRecord,
    ParseFailureRecord,
    ProviderFailureRecord,
    RecoveryAction,
    StructuredError,
)


class RegenerationError(Exception):
    """Terminal failure of a regeneration request. Never retried."""

    failure_type: FailureType = FailureType.PROVIDER_ERROR

    def __init__(self, message: str, code: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }

    def to_structured_error(
        self, attempts_made: int = 0, correlation_id: str | None = None
    ) -> StructuredError:
        return ProviderFailureRecord(
            code=self.code,
            reason=self.message,
            model=self.details.get("model"),
            attempts_made=attempts_made,
            correlation_id=correlation_id,
        )


class MissingCredentialError(RegenerationError):
    failure_type = FailureType.MISSING_CREDENTIAL

    def __init__(self):
        super().__init__(
            message="OpenAI API key is required",
            code="CONFIGURATION_MISSING_CREDENTIAL",
        )

    def to_structured_error(
        self, attempts_made: int = 0, correlation_id: str | None = None
    ) -> StructuredError:
        return MissingCredentialRecord(correlation_id=correlation_id)


class ProviderRequestError(RegenerationError):
    failure_type = FailureType.PROVIDER_ERROR

    def __init__(self, reason: str, model: str | None = None, status_code: int | None = None):
        super().__init__(
            message=f"Completion request failed: {reason}",
            code="PROVIDER_REQUEST_FAILED",
            details={"model": model, "status_code": status_code},
        )
        self.status_code = status_code


class ProviderEmptyResponseError(RegenerationError):
    failure_type = FailureType.PROVIDER_EMPTY_RESPONSE

    def __init__(self, model: str | None = None, finish_reason: str | None = None):
        super().__init__(
            message="No response from AI",
            code="PROVIDER_EMPTY_RESPONSE",
            details={"model": model, "finish_reason": finish_reason},
        )


class ProviderTruncatedError(RegenerationError):
    failure_type = FailureType.PROVIDER_TRUNCATED

    def __init__(self, model: str | None = None, max_tokens: int | None = None):
        super().__init__(
            message=(
                "Response was cut off due to token limit. Please try reducing Max Tokens "
                "or using a simpler request."
            ),
            code="PROVIDER_TRUNCATED",
            details={"model": model, "max_tokens": max_tokens},
        )

    def to_structured_error(
        self, attempts_made: int = 0, correlation_id: str | None = None
    ) -> StructuredError:
        return ProviderFailureRecord(
            code=self.code,
            reason=self.message,
            model=self.details.get("model"),
            recovery_action=RecoveryAction.NARROW_SCOPE,
            recovery_hint="Regenerate one theme or ad group at a time, or raise the token budget",
            attempts_made=attempts_made,
            correlation_id=correlation_id,
        )


class ResponseParseError(RegenerationError):
    failure_type = FailureType.PARSE_FAILURE

    def __init__(self, reason: str, parser_error: str | None = None):
        super().__init__(
            message=reason,
            code="PARSING_INVALID_JSON",
            details={"parser_error": parser_error},
        )
        self.parser_error = parser_error

    def to_structured_error(
        self, attempts_made: int = 0, correlation_id: str | None = None
    ) -> StructuredError:
        return ParseFailureRecord(
            reason=self.message,
            parser_error=self.parser_error,
            attempts_made=attempts_made,
            correlation_id=correlation_id,
        )


class CandidateShapeError(ResponseParseError):
    """JSON parsed, but its fields have types no campaign could have."""

    def __init__(self, reason: str):
        super().__init__(
            reason=f"AI response does not match the campaign structure: {reason}",
            parser_error=reason,
        )
