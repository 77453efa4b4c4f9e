"""
Apply an accepted candidate onto the original campaign.

The original is never mutated; every merge works on a deep copy. Positional
merges only write into theme/ad group positions that exist in the original.
"""

from campaign_backend.app.domains.campaign.schemas import (
    AdGroup,
    Campaign,
    Keyword,
    MatchType,
    ResponsiveAd,
    Theme,
)
from campaign_backend.app.domains.campaign.targeting import RegenerationTarget
from campaign_backend.app.domains.regeneration.schemas import (
    CandidateAd,
    CandidateAdGroup,
    CandidateDocument,
    CandidateKeyword,
    CandidateTheme,
    RegenerationContentType,
)
from campaign_backend.app.logging_config import get_logger

logger = get_logger("app.domains.regeneration.merger")


def _to_keywords(
    candidates: list[CandidateKeyword], fallback_match_type: MatchType
) -> list[Keyword]:
    return [
        Keyword(text=k.text, match_type=k.match_type or fallback_match_type)
        for k in candidates
        if k.text and k.text.strip()
    ]


def _to_ads(candidates: list[CandidateAd]) -> list[ResponsiveAd]:
    return [
        ResponsiveAd(headlines=list(ad.headlines), descriptions=list(ad.descriptions))
        for ad in candidates
    ]


class CampaignMerger:
    def merge(
        self,
        original: Campaign,
        candidate: CandidateDocument,
        content_type: RegenerationContentType,
        target: RegenerationTarget,
    ) -> Campaign:
        merged = original.model_copy(deep=True)
        if not candidate.themes:
            return merged

        if content_type == RegenerationContentType.ADS:
            self._merge_ads(merged, candidate, target)
        elif target.is_entire_campaign:
            merged.themes = self._replace_themes(original, candidate)
        else:
            self._merge_targeted(merged, candidate, content_type, target)

        return merged

    def _merge_ads(
        self,
        merged: Campaign,
        candidate: CandidateDocument,
        target: RegenerationTarget,
    ) -> None:
        replaced = 0
        for theme_index, (theme, candidate_theme) in enumerate(
            zip(merged.themes, candidate.themes or [])
        ):
            if not target.includes_theme(theme_index):
                continue
            for ad_group_index, (ad_group, candidate_ad_group) in enumerate(
                zip(theme.ad_groups, candidate_theme.ad_group_list)
            ):
                if not target.includes_ad_group(theme_index, ad_group_index):
                    continue
                if candidate_ad_group.ads is None:
                    continue
                ad_group.ads = _to_ads(candidate_ad_group.ads)
                replaced += 1
        logger.debug(f"Replaced ads in {replaced} ad group(s)")

    def _merge_targeted(
        self,
        merged: Campaign,
        candidate: CandidateDocument,
        content_type: RegenerationContentType,
        target: RegenerationTarget,
    ) -> None:
        candidate_themes = candidate.themes or []
        theme_index = target.theme_index
        if theme_index is None or theme_index >= len(candidate_themes):
            logger.warning(f"Candidate has no theme at position {theme_index}; nothing merged")
            return

        theme = merged.themes[theme_index]
        candidate_theme = candidate_themes[theme_index]

        if candidate_theme.name:
            theme.name = candidate_theme.name

        for ad_group_index, (ad_group, candidate_ad_group) in enumerate(
            zip(theme.ad_groups, candidate_theme.ad_group_list)
        ):
            if not target.includes_ad_group(theme_index, ad_group_index):
                continue
            self._overwrite_ad_group(ad_group, candidate_ad_group, content_type)

    def _overwrite_ad_group(
        self,
        ad_group: AdGroup,
        candidate_ad_group: CandidateAdGroup,
        content_type: RegenerationContentType,
    ) -> None:
        if candidate_ad_group.name:
            ad_group.name = candidate_ad_group.name
        if candidate_ad_group.keywords is not None:
            ad_group.keywords = _to_keywords(candidate_ad_group.keywords, ad_group.match_type)
        if content_type.regenerates_ads and candidate_ad_group.ads is not None:
            ad_group.ads = _to_ads(candidate_ad_group.ads)

    def _replace_themes(self, original: Campaign, candidate: CandidateDocument) -> list[Theme]:
        themes: list[Theme] = []
        for theme_index, candidate_theme in enumerate(candidate.themes or []):
            original_theme = (
                original.themes[theme_index] if theme_index < len(original.themes) else None
            )
            themes.append(self._build_theme(candidate_theme, original_theme))
        return themes

    def _build_theme(self, candidate_theme: CandidateTheme, original_theme: Theme | None) -> Theme:
        ad_groups: list[AdGroup] = []
        for ad_group_index, candidate_ad_group in enumerate(candidate_theme.ad_group_list):
            original_ad_group = None
            if original_theme is not None and ad_group_index < len(original_theme.ad_groups):
                original_ad_group = original_theme.ad_groups[ad_group_index]

            match_type = (
                candidate_ad_group.match_type
                or (original_ad_group.match_type if original_ad_group else None)
                or MatchType.BROAD
            )
            if candidate_ad_group.ads is not None:
                ads = _to_ads(candidate_ad_group.ads)
            elif original_ad_group is not None:
                ads = [ad.model_copy(deep=True) for ad in original_ad_group.ads]
            else:
                ads = []

            ad_groups.append(
                AdGroup(
                    name=candidate_ad_group.name
                    or (original_ad_group.name if original_ad_group else ""),
                    match_type=match_type,
                    keywords=_to_keywords(candidate_ad_group.keywords or [], match_type),
                    ads=ads,
                )
            )

        return Theme(
            name=candidate_theme.name or (original_theme.name if original_theme else ""),
            ad_groups=ad_groups,
        )
