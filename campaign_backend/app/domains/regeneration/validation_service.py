from collections.abc import Iterator
from typing import Any

from campaign_backend.app.domains.campaign.schemas import Campaign
from campaign_backend.app.domains.campaign.targeting import RegenerationTarget
from campaign_backend.app.domains.regeneration.schemas import (
    CandidateAdGroup,
    CandidateDocument,
    RegenerationContentType,
)
from campaign_backend.app.domains.regeneration.validation_schemas import (
    DuplicationCheckResult,
    FailureType,
    LengthCheckResult,
    RetryEligibility,
    RetryPolicy,
    StructureCheckResult,
    ValidationErrorCode,
    ValidationLimits,
    ValidationOutcome,
)


def _normalize(text: str) -> str:
    return text.strip().lower()


def in_scope_candidate_ad_groups(
    candidate: CandidateDocument, target: RegenerationTarget
) -> Iterator[tuple[int, int, CandidateAdGroup]]:
    """Yield ``(theme_index, ad_group_index, ad_group)`` for candidate positions the target covers."""
    for theme_index, theme in enumerate(candidate.themes or []):
        if not target.includes_theme(theme_index):
            continue
        for ad_group_index, ad_group in enumerate(theme.ad_group_list):
            if target.includes_ad_group(theme_index, ad_group_index):
                yield theme_index, ad_group_index, ad_group


class StructureValidator:
    def validate(
        self,
        original: Campaign,
        candidate: CandidateDocument,
        content_type: RegenerationContentType,
    ) -> StructureCheckResult:
        if candidate.themes is None or (
            content_type == RegenerationContentType.ADS and not candidate.themes
        ):
            return StructureCheckResult(
                is_valid=False,
                has_themes=False,
                error_codes=[ValidationErrorCode.MISSING_THEMES],
                error_message="No themes found in regenerated content",
            )

        # Ads are merged by position and may echo a subset of the tree.
        if content_type == RegenerationContentType.ADS:
            return StructureCheckResult(is_valid=True)

        expected_themes = original.theme_count
        expected_ad_groups = original.ad_group_count
        actual_themes = candidate.theme_count
        actual_ad_groups = candidate.ad_group_count

        error_codes: list[ValidationErrorCode] = []
        error_message = None
        if actual_themes != expected_themes:
            error_codes.append(ValidationErrorCode.THEME_COUNT_MISMATCH)
            error_message = (
                f"Theme count mismatch. Original: {expected_themes}, "
                f"Regenerated: {actual_themes}. "
                f"Please ensure you create exactly {expected_themes} themes."
            )
        elif actual_ad_groups != expected_ad_groups:
            error_codes.append(ValidationErrorCode.AD_GROUP_COUNT_MISMATCH)
            error_message = (
                f"Ad group count mismatch. Original: {expected_ad_groups}, "
                f"Regenerated: {actual_ad_groups}. "
                f"Please ensure you create exactly {expected_ad_groups} ad groups."
            )

        return StructureCheckResult(
            is_valid=not error_codes,
            counts_enforced=True,
            expected_theme_count=expected_themes,
            actual_theme_count=actual_themes,
            expected_ad_group_count=expected_ad_groups,
            actual_ad_group_count=actual_ad_groups,
            error_codes=error_codes,
            error_message=error_message,
        )


class LengthValidator:
    def __init__(self, headline_max_length: int = 30, description_max_length: int = 90):
        self.headline_max_length = headline_max_length
        self.description_max_length = description_max_length

    def validate(self, candidate: CandidateDocument) -> LengthCheckResult:
        invalid_headlines: list[str] = []
        invalid_descriptions: list[str] = []

        for theme in candidate.themes or []:
            for ad_group in theme.ad_group_list:
                for ad in ad_group.ads or []:
                    invalid_headlines.extend(
                        f'"{h}" ({len(h)} characters)'
                        for h in ad.headlines
                        if len(h) > self.headline_max_length
                    )
                    invalid_descriptions.extend(
                        f'"{d}" ({len(d)} characters)'
                        for d in ad.descriptions
                        if len(d) > self.description_max_length
                    )

        error_codes: list[ValidationErrorCode] = []
        error_message = None
        if invalid_headlines:
            error_codes.append(ValidationErrorCode.HEADLINE_TOO_LONG)
            error_message = (
                f"Headlines exceed {self.headline_max_length} character limit: "
                f"{', '.join(invalid_headlines)}. Please regenerate with shorter headlines."
            )
        elif invalid_descriptions:
            error_codes.append(ValidationErrorCode.DESCRIPTION_TOO_LONG)
            error_message = (
                f"Descriptions exceed {self.description_max_length} character limit: "
                f"{', '.join(invalid_descriptions)}. Please regenerate with shorter descriptions."
            )

        return LengthCheckResult(
            is_valid=not error_codes,
            invalid_headlines=invalid_headlines,
            invalid_descriptions=invalid_descriptions,
            error_codes=error_codes,
            error_message=error_message,
        )


class DuplicationValidator:
    def __init__(self, limits: ValidationLimits | None = None):
        self.limits = limits or ValidationLimits()

    def _existing_content(
        self,
        original: Campaign,
        content_type: RegenerationContentType,
        target: RegenerationTarget,
    ) -> tuple[set[str], set[str], set[str]]:
        keywords: set[str] = set()
        headlines: set[str] = set()
        descriptions: set[str] = set()

        for theme_index, theme in enumerate(original.themes):
            for ad_group_index, ad_group in enumerate(theme.ad_groups):
                if not target.includes_ad_group(theme_index, ad_group_index):
                    continue
                if content_type.regenerates_keywords:
                    keywords.update(_normalize(k.text) for k in ad_group.keywords)
                if content_type.regenerates_ads:
                    for ad in ad_group.ads:
                        headlines.update(_normalize(h) for h in ad.headlines)
                        descriptions.update(_normalize(d) for d in ad.descriptions)

        return keywords, headlines, descriptions

    def validate(
        self,
        original: Campaign,
        candidate: CandidateDocument,
        content_type: RegenerationContentType,
        target: RegenerationTarget,
    ) -> DuplicationCheckResult:
        existing_keywords, existing_headlines, existing_descriptions = self._existing_content(
            original, content_type, target
        )

        total_keywords = 0
        total_ads = 0
        duplicate_keywords = 0
        duplicate_headlines = 0
        duplicate_descriptions = 0

        for _, _, ad_group in in_scope_candidate_ad_groups(candidate, target):
            if content_type.regenerates_keywords:
                for keyword in ad_group.keywords or []:
                    # blank keywords are dropped on merge
                    if not keyword.text or not keyword.text.strip():
                        continue
                    total_keywords += 1
                    if _normalize(keyword.text) in existing_keywords:
                        duplicate_keywords += 1
            if content_type.regenerates_ads:
                for ad in ad_group.ads or []:
                    total_ads += 1
                    duplicate_headlines += sum(
                        1 for h in ad.headlines if _normalize(h) in existing_headlines
                    )
                    duplicate_descriptions += sum(
                        1 for d in ad.descriptions if _normalize(d) in existing_descriptions
                    )

        keyword_ratio = duplicate_keywords / total_keywords if total_keywords else 0.0
        headline_ratio = (
            duplicate_headlines / (total_ads * self.limits.headlines_per_ad) if total_ads else 0.0
        )
        description_ratio = (
            duplicate_descriptions / (total_ads * self.limits.descriptions_per_ad)
            if total_ads
            else 0.0
        )

        error_codes: list[ValidationErrorCode] = []
        error_message = None
        threshold = self.limits.max_duplication_ratio
        for code, label, ratio in (
            (ValidationErrorCode.DUPLICATE_KEYWORDS, "keywords", keyword_ratio),
            (ValidationErrorCode.DUPLICATE_HEADLINES, "headlines", headline_ratio),
            (ValidationErrorCode.DUPLICATE_DESCRIPTIONS, "descriptions", description_ratio),
        ):
            if ratio > threshold:
                error_codes.append(code)
                error_message = (
                    f"Too many duplicate {label} ({ratio * 100:.1f}% similar). "
                    "Please try again with different instructions."
                )
                break

        return DuplicationCheckResult(
            is_valid=not error_codes,
            total_keywords=total_keywords,
            total_ads=total_ads,
            duplicate_keywords=duplicate_keywords,
            duplicate_headlines=duplicate_headlines,
            duplicate_descriptions=duplicate_descriptions,
            keyword_ratio=keyword_ratio,
            headline_ratio=headline_ratio,
            description_ratio=description_ratio,
            error_codes=error_codes,
            error_message=error_message,
        )


class RetryManager:
    def __init__(self, policy: RetryPolicy | None = None):
        self.policy = policy or RetryPolicy()

    def determine_eligibility(
        self,
        failure_type: FailureType,
        current_attempt: int,
    ) -> RetryEligibility:
        if failure_type not in self.policy.eligible_failure_types:
            return RetryEligibility.NOT_ELIGIBLE

        if current_attempt >= self.policy.max_attempts:
            return RetryEligibility.EXHAUSTED

        return RetryEligibility.ELIGIBLE

    def is_retryable(self, failure_type: FailureType, current_attempt: int) -> bool:
        return self.determine_eligibility(failure_type, current_attempt) == RetryEligibility.ELIGIBLE


class RegenerationValidationService:
    """
    Accept or reject a parsed candidate before it may be merged.

    Checks run in a fixed order and the first failing one decides the
    reason: themes present, exact counts (keywords and both only),
    headline/description lengths, then duplication against the in-scope
    original content.
    """

    def __init__(
        self,
        limits: ValidationLimits | None = None,
        retry_policy: RetryPolicy | None = None,
    ):
        self.limits = limits or ValidationLimits()
        self.structure_validator = StructureValidator()
        self.length_validator = LengthValidator(
            headline_max_length=self.limits.headline_max_length,
            description_max_length=self.limits.description_max_length,
        )
        self.duplication_validator = DuplicationValidator(self.limits)
        self.retry_manager = RetryManager(retry_policy)

    def validate(
        self,
        original: Campaign,
        candidate: CandidateDocument,
        content_type: RegenerationContentType,
        target: RegenerationTarget,
    ) -> ValidationOutcome:
        structure_result = self.structure_validator.validate(original, candidate, content_type)
        if not structure_result.is_valid:
            return ValidationOutcome(
                accepted=False,
                reason=structure_result.error_message or "Invalid structure",
                error_codes=structure_result.error_codes,
                structure_result=structure_result,
            )

        length_result = self.length_validator.validate(candidate)
        if not length_result.is_valid:
            return ValidationOutcome(
                accepted=False,
                reason=length_result.error_message or "Content exceeds length limits",
                error_codes=length_result.error_codes,
                structure_result=structure_result,
                length_result=length_result,
            )

        duplication_result = self.duplication_validator.validate(
            original, candidate, content_type, target
        )
        if not duplication_result.is_valid:
            return ValidationOutcome(
                accepted=False,
                reason=duplication_result.error_message or "Too much duplicated content",
                error_codes=duplication_result.error_codes,
                structure_result=structure_result,
                length_result=length_result,
                duplication_result=duplication_result,
            )

        return ValidationOutcome(
            accepted=True,
            reason="Content validation passed",
            structure_result=structure_result,
            length_result=length_result,
            duplication_result=duplication_result,
            validation_metadata=self.create_validation_metadata(duplication_result),
        )

    def create_validation_metadata(self, duplication_result: DuplicationCheckResult) -> dict[str, Any]:
        return {
            "total_keywords": duplication_result.total_keywords,
            "total_ads": duplication_result.total_ads,
            "keyword_ratio": round(duplication_result.keyword_ratio, 4),
            "headline_ratio": round(duplication_result.headline_ratio, 4),
            "description_ratio": round(duplication_result.description_ratio, 4),
        }
