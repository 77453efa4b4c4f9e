"""
Campaign document domain.

Holds the campaign tree (themes -> ad groups -> keywords / responsive ads)
and the index-based addressing used to scope a regeneration.
"""

from campaign_backend.app.domains.campaign.errors import (
    CampaignDocumentError,
    TargetResolutionError,
)
from campaign_backend.app.domains.campaign.schemas import (
    DESCRIPTION_MAX_LENGTH,
    HEADLINE_MAX_LENGTH,
    AdExtensions,
    AdGroup,
    Campaign,
    Keyword,
    MatchType,
    ResponsiveAd,
    Theme,
)
from campaign_backend.app.domains.campaign.targeting import (
    RegenerationTarget,
    TargetKind,
    TargetResolution,
    parse_ad_group_key,
    resolve_target,
)

__all__ = [
    "AdExtensions",
    "AdGroup",
    "Campaign",
    "CampaignDocumentError",
    "DESCRIPTION_MAX_LENGTH",
    "HEADLINE_MAX_LENGTH",
    "Keyword",
    "MatchType",
    "RegenerationTarget",
    "ResponsiveAd",
    "TargetKind",
    "TargetResolution",
    "TargetResolutionError",
    "Theme",
    "parse_ad_group_key",
    "resolve_target",
]
