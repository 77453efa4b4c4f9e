"""
Structured error records for observability and API responses.

Provides:
- Structured error models with codes and contexts
- Error classification and categorization
- Recovery and retry guidance
"""

from enum import Enum as PyEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ErrorCategory(str, PyEnum):
    """High-level error categories for classification."""

    CONFIGURATION = "CONFIGURATION"
    PROVIDER = "PROVIDER"
    PARSING = "PARSING"
    VALIDATION = "VALIDATION"


class ErrorSeverity(str, PyEnum):
    """Error severity levels."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class RecoveryAction(str, PyEnum):
    """Suggested recovery actions."""

    RETRY = "RETRY"
    NARROW_SCOPE = "NARROW_SCOPE"
    PROVIDE_CREDENTIAL = "PROVIDE_CREDENTIAL"
    NONE = "NONE"


class StructuredError(BaseModel):
    """
    Structured error with full context for debugging and observability.

    Designed to be:
    - Understandable without reading code
    - Queryable for patterns
    - Actionable with recovery guidance
    """

    code: str = Field(description="Unique error code for identification")
    category: ErrorCategory
    severity: ErrorSeverity
    message: str = Field(description="Human-readable error message")
    details: dict[str, Any] = Field(default_factory=dict, description="Additional error context")

    correlation_id: str | None = None

    recovery_action: RecoveryAction = RecoveryAction.NONE
    recovery_hint: str | None = None
    is_retryable: bool = False
    attempts_made: int = 0

    model_config = ConfigDict(from_attributes=True)

    def to_log_dict(self) -> dict[str, Any]:
        """Convert to dictionary suitable for logging."""
        return {
            "error_code": self.code,
            "error_category": self.category.value,
            "error_severity": self.severity.value,
            "error_message": self.message,
            "error_details": self.details,
            "correlation_id": self.correlation_id,
            "recovery_action": self.recovery_action.value,
            "is_retryable": self.is_retryable,
            "attempts_made": self.attempts_made,
        }


class MissingCredentialRecord(StructuredError):
    def __init__(self, correlation_id: str | None = None):
        super().__init__(
            code="CONFIGURATION_MISSING_CREDENTIAL",
            category=ErrorCategory.CONFIGURATION,
            severity=ErrorSeverity.LOW,
            message="OpenAI API key is required",
            correlation_id=correlation_id,
            recovery_action=RecoveryAction.PROVIDE_CREDENTIAL,
            recovery_hint="Enter an API key in the AI settings or set OPENAI_API_KEY",
        )


class ProviderFailureRecord(StructuredError):
    """Completion provider returned nothing usable (empty, truncated, or HTTP error)."""

    def __init__(
        self,
        code: str,
        reason: str,
        model: str | None = None,
        recovery_action: RecoveryAction = RecoveryAction.RETRY,
        recovery_hint: str | None = None,
        attempts_made: int = 0,
        correlation_id: str | None = None,
    ):
        super().__init__(
            code=code,
            category=ErrorCategory.PROVIDER,
            severity=ErrorSeverity.MEDIUM,
            message=reason,
            details={"model": model},
            correlation_id=correlation_id,
            recovery_action=recovery_action,
            recovery_hint=recovery_hint,
            attempts_made=attempts_made,
        )


class ParseFailureRecord(StructuredError):
    def __init__(
        self,
        reason: str,
        parser_error: str | None = None,
        attempts_made: int = 0,
        correlation_id: str | None = None,
    ):
        super().__init__(
            code="PARSING_INVALID_JSON",
            category=ErrorCategory.PARSING,
            severity=ErrorSeverity.MEDIUM,
            message=reason,
            details={"parser_error": parser_error},
            correlation_id=correlation_id,
            recovery_action=RecoveryAction.RETRY,
            recovery_hint="Retry the request; smaller scopes produce shorter, cleaner JSON",
            attempts_made=attempts_made,
        )


class ValidationExhaustedRecord(StructuredError):
    def __init__(
        self,
        last_reason: str,
        max_attempts: int,
        correlation_id: str | None = None,
    ):
        super().__init__(
            code="VALIDATION_RETRY_EXHAUSTED",
            category=ErrorCategory.VALIDATION,
            severity=ErrorSeverity.LOW,
            message=last_reason,
            details={"max_attempts": max_attempts},
            correlation_id=correlation_id,
            recovery_action=RecoveryAction.RETRY,
            recovery_hint="Try again with different instructions or a narrower target",
            is_retryable=True,
            attempts_made=max_attempts,
        )


ERROR_CODE_MAP: dict[str, type[StructuredError]] = {
    "CONFIGURATION_MISSING_CREDENTIAL": MissingCredentialRecord,
    "PROVIDER_EMPTY_RESPONSE": ProviderFailureRecord,
    "PROVIDER_TRUNCATED": ProviderFailureRecord,
    "PROVIDER_REQUEST_FAILED": ProviderFailureRecord,
    "PARSING_INVALID_JSON": ParseFailureRecord,
    "VALIDATION_RETRY_EXHAUSTED": ValidationExhaustedRecord,
}


def get_error_by_code(code: str) -> type[StructuredError] | None:
    """Get error record class by code."""
    return ERROR_CODE_MAP.get(code)
