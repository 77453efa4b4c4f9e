from enum import Enum as PyEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

HEADLINE_MAX_LENGTH = 30
DESCRIPTION_MAX_LENGTH = 90


class MatchType(str, PyEnum):
    EXACT = "exact"
    PHRASE = "phrase"
    BROAD = "broad"


def normalize_match_type(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().lower()
    return value


class CampaignModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class Keyword(CampaignModel):
    text: str = Field(alias="keyword")
    match_type: MatchType = Field(alias="matchType")

    @field_validator("match_type", mode="before")
    @classmethod
    def validate_match_type(cls, v: Any) -> Any:
        return normalize_match_type(v)


class ResponsiveAd(CampaignModel):
    headlines: list[str] = Field(default_factory=list)
    descriptions: list[str] = Field(default_factory=list)


class AdGroup(CampaignModel):
    name: str
    match_type: MatchType = Field(alias="matchType")
    keywords: list[Keyword] = Field(default_factory=list)
    ads: list[ResponsiveAd] = Field(default_factory=list)

    @field_validator("match_type", mode="before")
    @classmethod
    def validate_match_type(cls, v: Any) -> Any:
        return normalize_match_type(v)


class Theme(CampaignModel):
    name: str = Field(alias="theme")
    ad_groups: list[AdGroup] = Field(default_factory=list, alias="adGroups")


class AdExtensions(CampaignModel):
    sitelinks: list[str] | None = None
    callouts: list[str] | None = None


class Campaign(CampaignModel):
    """Root of the generated Search campaign document."""

    name: str = Field(alias="campaignName")
    final_url: str | None = Field(default=None, alias="finalUrl")
    themes: list[Theme] = Field(default_factory=list)
    negative_keywords: list[str] = Field(default_factory=list, alias="negativeKeywords")
    bid_strategy: str | None = Field(default=None, alias="bidStrategy")
    ad_extensions: AdExtensions | None = Field(default=None, alias="adExtensions")

    @property
    def theme_count(self) -> int:
        return len(self.themes)

    @property
    def ad_group_count(self) -> int:
        return sum(len(theme.ad_groups) for theme in self.themes)

    def to_payload(self) -> dict[str, Any]:
        """Serialize using the camelCase field names exchanged with clients."""
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)
