from enum import Enum as PyEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from campaign_backend.app.domains.campaign.schemas import Campaign, MatchType
from campaign_backend.app.domains.campaign.targeting import RegenerationTarget
from campaign_backend.app.domains.regeneration.validation_schemas import FailureType


class RegenerationContentType(str, PyEnum):
    KEYWORDS = "keywords"
    ADS = "rsa"
    BOTH = "both"

    @property
    def regenerates_keywords(self) -> bool:
        return self in (RegenerationContentType.KEYWORDS, RegenerationContentType.BOTH)

    @property
    def regenerates_ads(self) -> bool:
        return self in (RegenerationContentType.ADS, RegenerationContentType.BOTH)


class ModelSettings(BaseModel):
    model_config = ConfigDict(frozen=True, protected_namespaces=())

    model_id: str = Field(..., min_length=1, description="Completion model identifier")
    token_budget: int = Field(
        default=8000,
        ge=1,
        description="Upper bound on generated tokens for one completion",
    )
    credential: str | None = Field(
        default=None,
        repr=False,
        description="Provider API key, passed through untouched",
    )
    temperature: float | None = Field(
        default=0.95,
        ge=0.0,
        le=2.0,
        description="Sampling temperature; ignored for reasoning model families",
    )


class ChatMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: str
    content: str


class TokenUsage(BaseModel):
    model_config = ConfigDict(frozen=True)

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def combine(self, other: "TokenUsage") -> "TokenUsage":
        return TokenUsage(
            prompt_tokens=self.prompt_tokens + other.prompt_tokens,
            completion_tokens=self.completion_tokens + other.completion_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
        )


class CostBreakdown(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    input_tokens: int
    output_tokens: int
    total_tokens: int
    input_cost: float
    output_cost: float
    total_cost: float
    model: str


class CompletionRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    model: str
    messages: list[ChatMessage]
    max_tokens: int
    temperature: float | None = None
    credential: str | None = Field(default=None, repr=False)
    attempt_number: int = 1


class CompletionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str | None = None
    finish_reason: str | None = None
    usage: TokenUsage = Field(default_factory=TokenUsage)
    model: str | None = None
    invocation_metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def truncated(self) -> bool:
        return self.finish_reason == "length"


# Candidate models describe what the model sent back. Every field is optional
# so that acceptance is decided by the validator, not by parsing.


def known_match_type_or_none(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip().lower()
        return value if value in {m.value for m in MatchType} else None
    return value


class CandidateModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class CandidateKeyword(CandidateModel):
    text: str = Field(alias="keyword")
    match_type: MatchType | None = Field(default=None, alias="matchType")

    @model_validator(mode="before")
    @classmethod
    def accept_bare_strings(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"keyword": data}
        return data

    @field_validator("match_type", mode="before")
    @classmethod
    def drop_unknown_match_types(cls, v: Any) -> Any:
        return known_match_type_or_none(v)


class CandidateAd(CandidateModel):
    headlines: list[str] = Field(default_factory=list)
    descriptions: list[str] = Field(default_factory=list)

    @field_validator("headlines", "descriptions", mode="before")
    @classmethod
    def null_as_empty(cls, v: Any) -> Any:
        return [] if v is None else v


class CandidateAdGroup(CandidateModel):
    name: str | None = None
    match_type: MatchType | None = Field(default=None, alias="matchType")
    keywords: list[CandidateKeyword] | None = None
    ads: list[CandidateAd] | None = None

    @field_validator("match_type", mode="before")
    @classmethod
    def drop_unknown_match_types(cls, v: Any) -> Any:
        return known_match_type_or_none(v)


class CandidateTheme(CandidateModel):
    name: str | None = Field(default=None, alias="theme")
    ad_groups: list[CandidateAdGroup] | None = Field(default=None, alias="adGroups")

    @property
    def ad_group_list(self) -> list[CandidateAdGroup]:
        return self.ad_groups or []


class CandidateDocument(CandidateModel):
    themes: list[CandidateTheme] | None = None

    @property
    def theme_count(self) -> int:
        return len(self.themes or [])

    @property
    def ad_group_count(self) -> int:
        return sum(len(theme.ad_group_list) for theme in self.themes or [])


class RegenerationRequest(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    campaign: Campaign
    content_type: RegenerationContentType
    target: RegenerationTarget = Field(default_factory=RegenerationTarget.entire_campaign)
    model_settings: ModelSettings
    user_instructions: str | None = None
    target_warnings: list[str] = Field(
        default_factory=list,
        description="Warnings produced while resolving loose addressing to the target",
    )
    correlation_id: str | None = None


class AttemptRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    attempt_number: int
    accepted: bool = False
    failure_type: FailureType | None = None
    reason: str | None = None
    finish_reason: str | None = None
    usage: TokenUsage = Field(default_factory=TokenUsage)


class RegenerationResult(BaseModel):
    success: bool
    campaign: Campaign | None = None
    content_type: RegenerationContentType
    target: RegenerationTarget
    error: str | None = None
    error_code: str | None = None
    failure_type: FailureType | None = None
    error_details: dict[str, Any] | None = None
    warnings: list[str] = Field(default_factory=list)
    attempts: list[AttemptRecord] = Field(default_factory=list)
    usage: TokenUsage = Field(default_factory=TokenUsage)
    cost: CostBreakdown | None = None
    duration_ms: float = 0.0
    correlation_id: str | None = None

    @property
    def attempt_count(self) -> int:
        return len(self.attempts)
