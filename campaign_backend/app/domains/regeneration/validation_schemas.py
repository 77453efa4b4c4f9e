from enum import Enum as PyEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class FailureType(str, PyEnum):
    MISSING_CREDENTIAL = "MISSING_CREDENTIAL"
    PROVIDER_ERROR = "PROVIDER_ERROR"
    PROVIDER_EMPTY_RESPONSE = "PROVIDER_EMPTY_RESPONSE"
    PROVIDER_TRUNCATED = "PROVIDER_TRUNCATED"
    PARSE_FAILURE = "PARSE_FAILURE"
    VALIDATION_FAILURE = "VALIDATION_FAILURE"
    RETRY_EXHAUSTION = "RETRY_EXHAUSTION"


class ValidationErrorCode(str, PyEnum):
    MISSING_THEMES = "MISSING_THEMES"
    THEME_COUNT_MISMATCH = "THEME_COUNT_MISMATCH"
    AD_GROUP_COUNT_MISMATCH = "AD_GROUP_COUNT_MISMATCH"
    HEADLINE_TOO_LONG = "HEADLINE_TOO_LONG"
    DESCRIPTION_TOO_LONG = "DESCRIPTION_TOO_LONG"
    DUPLICATE_KEYWORDS = "DUPLICATE_KEYWORDS"
    DUPLICATE_HEADLINES = "DUPLICATE_HEADLINES"
    DUPLICATE_DESCRIPTIONS = "DUPLICATE_DESCRIPTIONS"


class RetryEligibility(str, PyEnum):
    ELIGIBLE = "ELIGIBLE"
    NOT_ELIGIBLE = "NOT_ELIGIBLE"
    EXHAUSTED = "EXHAUSTED"


class RetryPolicy(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Maximum number of prompt/validate attempts, first one included",
    )
    eligible_failure_types: frozenset[FailureType] = Field(
        default=frozenset({FailureType.VALIDATION_FAILURE}),
        description="Failure types that trigger another attempt",
    )


class ValidationLimits(BaseModel):
    model_config = ConfigDict(frozen=True)

    headline_max_length: int = Field(default=30, ge=1)
    description_max_length: int = Field(default=90, ge=1)
    max_duplication_ratio: float = Field(
        default=0.20,
        ge=0.0,
        le=1.0,
        description="Share of regenerated items allowed to repeat existing ones",
    )
    headlines_per_ad: int = Field(
        default=15,
        ge=1,
        description="Expected headlines per responsive ad, used as ratio denominator",
    )
    descriptions_per_ad: int = Field(
        default=4,
        ge=1,
        description="Expected descriptions per responsive ad, used as ratio denominator",
    )


class StructureCheckResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_valid: bool
    has_themes: bool = True
    counts_enforced: bool = False
    expected_theme_count: int = 0
    actual_theme_count: int = 0
    expected_ad_group_count: int = 0
    actual_ad_group_count: int = 0
    error_codes: list[ValidationErrorCode] = Field(default_factory=list)
    error_message: str | None = None


class LengthCheckResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_valid: bool
    invalid_headlines: list[str] = Field(default_factory=list)
    invalid_descriptions: list[str] = Field(default_factory=list)
    error_codes: list[ValidationErrorCode] = Field(default_factory=list)
    error_message: str | None = None


class DuplicationCheckResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_valid: bool
    total_keywords: int = 0
    total_ads: int = 0
    duplicate_keywords: int = 0
    duplicate_headlines: int = 0
    duplicate_descriptions: int = 0
    keyword_ratio: float = 0.0
    headline_ratio: float = 0.0
    description_ratio: float = 0.0
    error_codes: list[ValidationErrorCode] = Field(default_factory=list)
    error_message: str | None = None


class ValidationOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    accepted: bool
    reason: str
    error_codes: list[ValidationErrorCode] = Field(default_factory=list)
    structure_result: StructureCheckResult | None = None
    length_result: LengthCheckResult | None = None
    duplication_result: DuplicationCheckResult | None = None
    validation_metadata: dict[str, Any] = Field(default_factory=dict)
