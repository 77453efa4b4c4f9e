"""
Addressing of regeneration targets inside a campaign document.

A target is always index based. Theme and ad group names are exactly the
fields a regeneration may rewrite, so name-based requests are converted to
indices once, before any prompt is built or any candidate is compared.
"""

from enum import Enum as PyEnum

from pydantic import BaseModel, ConfigDict, Field

from campaign_backend.app.domains.campaign.errors import TargetResolutionError
from campaign_backend.app.domains.campaign.schemas import AdGroup, Campaign, Theme
from campaign_backend.app.logging_config import get_logger

logger = get_logger("app.domains.campaign.targeting")

FALLBACK_WARNING = "Falling back to regenerating the entire campaign"


class TargetKind(str, PyEnum):
    CAMPAIGN = "CAMPAIGN"
    THEME = "THEME"
    AD_GROUP = "AD_GROUP"


class RegenerationTarget(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: TargetKind = TargetKind.CAMPAIGN
    theme_index: int | None = None
    ad_group_index: int | None = None

    @classmethod
    def entire_campaign(cls) -> "RegenerationTarget":
        return cls(kind=TargetKind.CAMPAIGN)

    @classmethod
    def theme(cls, theme_index: int) -> "RegenerationTarget":
        return cls(kind=TargetKind.THEME, theme_index=theme_index)

    @classmethod
    def ad_group(cls, theme_index: int, ad_group_index: int) -> "RegenerationTarget":
        return cls(
            kind=TargetKind.AD_GROUP,
            theme_index=theme_index,
            ad_group_index=ad_group_index,
        )

    @property
    def is_entire_campaign(self) -> bool:
        return self.kind == TargetKind.CAMPAIGN

    def includes_theme(self, theme_index: int) -> bool:
        if self.kind == TargetKind.CAMPAIGN:
            return True
        return self.theme_index == theme_index

    def includes_ad_group(self, theme_index: int, ad_group_index: int) -> bool:
        if not self.includes_theme(theme_index):
            return False
        if self.kind == TargetKind.AD_GROUP:
            return self.ad_group_index == ad_group_index
        return True

    def describe(self, campaign: Campaign | None = None) -> str:
        if self.kind == TargetKind.CAMPAIGN:
            return "entire campaign"
        if self.kind == TargetKind.THEME:
            label = f"theme #{self.theme_index + 1}"
            if campaign is not None:
                label += f' "{campaign.themes[self.theme_index].name}"'
            return label
        label = f"ad group #{self.ad_group_index + 1} of theme #{self.theme_index + 1}"
        if campaign is not None:
            ad_group = campaign.themes[self.theme_index].ad_groups[self.ad_group_index]
            label += f' "{ad_group.name}"'
        return label


class TargetResolution(BaseModel):
    model_config = ConfigDict(frozen=True)

    target: RegenerationTarget
    warnings: list[str] = Field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return bool(self.warnings)


def locate_theme(campaign: Campaign, target: RegenerationTarget) -> Theme:
    if target.theme_index is None:
        raise TargetResolutionError("no theme index given")
    if not 0 <= target.theme_index < len(campaign.themes):
        raise TargetResolutionError(
            f"theme index {target.theme_index} is out of range "
            f"(campaign has {len(campaign.themes)} themes)",
            theme_index=target.theme_index,
        )
    return campaign.themes[target.theme_index]


def locate_ad_group(campaign: Campaign, target: RegenerationTarget) -> AdGroup:
    theme = locate_theme(campaign, target)
    if target.ad_group_index is None:
        raise TargetResolutionError(
            "no ad group index given", theme_index=target.theme_index
        )
    if not 0 <= target.ad_group_index < len(theme.ad_groups):
        raise TargetResolutionError(
            f"ad group index {target.ad_group_index} is out of range "
            f"(theme #{target.theme_index + 1} has {len(theme.ad_groups)} ad groups)",
            theme_index=target.theme_index,
            ad_group_index=target.ad_group_index,
        )
    return theme.ad_groups[target.ad_group_index]


def validate_target(campaign: Campaign, target: RegenerationTarget) -> RegenerationTarget:
    """Return ``target`` unchanged or raise TargetResolutionError if it points nowhere."""
    if target.kind == TargetKind.THEME:
        locate_theme(campaign, target)
    elif target.kind == TargetKind.AD_GROUP:
        locate_ad_group(campaign, target)
    return target


def parse_ad_group_key(key: str | None) -> tuple[int, int] | None:
    """Parse the ``"<themeIndex>-<adGroupIndex>"`` form used by the UI."""
    if not key:
        return None
    parts = key.strip().split("-")
    if len(parts) != 2:
        return None
    try:
        return int(parts[0]), int(parts[1])
    except ValueError:
        return None


def _find_theme_by_name(campaign: Campaign, name: str) -> int | None:
    for theme_index, theme in enumerate(campaign.themes):
        if theme.name == name:
            return theme_index
    return None


def _find_ad_group_by_name(
    campaign: Campaign, name: str, theme_index: int | None = None
) -> tuple[int, int] | None:
    for t_index, theme in enumerate(campaign.themes):
        if theme_index is not None and t_index != theme_index:
            continue
        for a_index, ad_group in enumerate(theme.ad_groups):
            if ad_group.name == name:
                return t_index, a_index
    return None


def resolve_target(
    campaign: Campaign,
    theme_index: int | None = None,
    ad_group_index: int | None = None,
    theme_name: str | None = None,
    ad_group_name: str | None = None,
) -> TargetResolution:
    """
    Turn the loose addressing a caller supplies into one canonical target.

    Precedence: ad group index, ad group name, theme index, theme name.
    A target that cannot be located degrades to the entire campaign and the
    reason is reported in ``warnings``.
    """
    warnings: list[str] = []
    requested: RegenerationTarget | None = None

    if ad_group_index is not None:
        if theme_index is None:
            warnings.append("Ad group index given without a theme index")
        else:
            requested = RegenerationTarget.ad_group(theme_index, ad_group_index)
    elif ad_group_name:
        theme_scope = None
        if theme_index is not None:
            theme_scope = theme_index
        elif theme_name:
            theme_scope = _find_theme_by_name(campaign, theme_name)
        position = _find_ad_group_by_name(campaign, ad_group_name, theme_scope)
        if position is None:
            warnings.append(f'No ad group named "{ad_group_name}"')
        else:
            requested = RegenerationTarget.ad_group(*position)
    elif theme_index is not None:
        requested = RegenerationTarget.theme(theme_index)
    elif theme_name:
        found = _find_theme_by_name(campaign, theme_name)
        if found is None:
            warnings.append(f'No theme named "{theme_name}"')
        else:
            requested = RegenerationTarget.theme(found)

    if requested is not None:
        try:
            return TargetResolution(target=validate_target(campaign, requested))
        except TargetResolutionError as e:
            warnings.append(e.message)

    if warnings:
        warnings.append(FALLBACK_WARNING)
        logger.warning(f"Target degraded to entire campaign: {'; '.join(warnings)}")

    return TargetResolution(target=RegenerationTarget.entire_campaign(), warnings=warnings)
