"""
Instruction text for one regeneration attempt.

Every theme and ad group of the campaign is listed so the model can tell
what to regenerate from what to echo unchanged. In-scope content is shown as
a "do not repeat" list, the exact theme/ad group counts are repeated several
times, and later attempts open with an escalation notice.
"""

from campaign_backend.app.domains.campaign.schemas import AdGroup, Campaign
from campaign_backend.app.domains.campaign.targeting import RegenerationTarget, TargetKind
from campaign_backend.app.domains.regeneration.schemas import (
    ChatMessage,
    RegenerationContentType,
)

REASONING_MODEL_PREFIXES = ("o1", "o3", "o4", "gpt-5")

REASONING_SYSTEM_PROMPT = (
    "You are a Google Ads expert specializing in creative and diverse campaign generation. "
    "You MUST respond with ONLY valid JSON, no explanations or text before/after. "
    "Ensure all arrays have commas between elements and all JSON syntax is correct. "
    "Double-check your JSON is valid before responding. "
    "CRITICAL: You must generate COMPLETELY DIFFERENT content from any examples provided. "
    "Use creative thinking and avoid repetition at all costs. "
    "ALWAYS include the 'themes' array in your response. "
    "You MUST prioritize and follow any user-provided custom instructions above all else."
)

CHAT_SYSTEM_PROMPT = (
    "You are a Google Ads expert specializing in creating high-performing Search campaigns "
    "with creative and diverse content. You understand keyword research, match types, ad copy "
    "best practices, and local market preferences. You excel at generating unique, varied "
    "content that avoids repetition. "
    "CRITICAL: You must generate COMPLETELY DIFFERENT content from any examples provided. "
    "Always respond with valid JSON structure as requested. "
    "ALWAYS include the 'themes' array in your response. "
    "You MUST prioritize and follow any user-provided custom instructions above all else."
)

JSON_STRUCTURE_EXAMPLE = """JSON STRUCTURE REQUIRED:
{
  "themes": [
    {
      "theme": "Theme Name",
      "adGroups": [
        {
          "name": "Ad Group Name",
          "matchType": "broad",
          "keywords": [
            {"keyword": "keyword text", "matchType": "exact"}
          ],
          "ads": [
            {
              "headlines": ["headline 1", "headline 2", ...],
              "descriptions": ["description 1", "description 2", ...]
            }
          ]
        }
      ]
    }
  ]
}"""


def is_reasoning_model(model_id: str | None) -> bool:
    """Reasoning families take ``max_completion_tokens`` and a fixed temperature."""
    if not model_id:
        return False
    return model_id.strip().lower().startswith(REASONING_MODEL_PREFIXES)


def _ordinal(n: int) -> str:
    if 10 <= n % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


class RegenerationPromptBuilder:
    def __init__(self, headline_max_length: int = 30, description_max_length: int = 90):
        self.headline_max_length = headline_max_length
        self.description_max_length = description_max_length

    def system_prompt(self, model_id: str | None) -> str:
        if is_reasoning_model(model_id):
            return REASONING_SYSTEM_PROMPT
        return CHAT_SYSTEM_PROMPT

    def build_messages(
        self,
        campaign: Campaign,
        content_type: RegenerationContentType,
        target: RegenerationTarget,
        attempt: int,
        model_id: str | None,
        user_instructions: str | None = None,
        previous_failure: str | None = None,
    ) -> list[ChatMessage]:
        prompt = self.build(
            campaign,
            content_type,
            target,
            attempt,
            user_instructions=user_instructions,
            previous_failure=previous_failure,
        )
        if user_instructions:
            prompt = f"{prompt}\n\nAdditional Instructions: {user_instructions}"
        return [
            ChatMessage(role="system", content=self.system_prompt(model_id)),
            ChatMessage(role="user", content=prompt),
        ]

    def build(
        self,
        campaign: Campaign,
        content_type: RegenerationContentType,
        target: RegenerationTarget,
        attempt: int = 1,
        user_instructions: str | None = None,
        previous_failure: str | None = None,
    ) -> str:
        theme_count = campaign.theme_count
        ad_group_count = campaign.ad_group_count

        parts: list[str] = []

        if user_instructions:
            parts.append(f"USER CUSTOM INSTRUCTIONS: {user_instructions}\n")

        if attempt > 1:
            parts.append(
                self._escalation_notice(attempt, theme_count, ad_group_count, previous_failure)
            )

        if campaign.final_url:
            parts.append(f"Campaign Name: {campaign.name}")
            parts.append(f"Final URL: {campaign.final_url}\n")
        else:
            parts.append(f"Campaign Name: {campaign.name}\n")

        parts.extend(self._campaign_listing(campaign, content_type, target))

        parts.append("")
        parts.append("CRITICAL INSTRUCTIONS FOR DIFFERENT CONTENT:")
        parts.extend(
            [
                "- You MUST generate COMPLETELY NEW and DIFFERENT content",
                "- DO NOT reuse any existing keywords or ad copy",
                "- Use different synonyms, variations, and approaches",
                "- Think creatively and generate fresh alternatives",
                '- If current keywords are about "quality", focus on "price" or "features"',
                '- If current ads mention "best", try "affordable" or "premium"',
                "- Use different emotional triggers and value propositions",
                f"- MANDATORY: You MUST create EXACTLY {theme_count} themes - NO MORE, NO LESS",
                f"- MANDATORY: You MUST create EXACTLY {ad_group_count} total ad groups"
                " - NO MORE, NO LESS",
                "- FAILURE TO MATCH THESE COUNTS WILL RESULT IN REJECTION",
                "",
            ]
        )

        parts.extend(self._content_type_block(campaign, content_type, target))
        parts.append(
            f"- MANDATORY: Count your themes and ad groups before responding. If you don't "
            f"have exactly {theme_count} themes and {ad_group_count} ad groups, "
            "regenerate until you do."
        )
        if user_instructions:
            parts.append(
                "- MANDATORY: Follow ALL custom instructions provided in the additional "
                "prompt field, they take priority over the instructions above"
            )

        parts.append("")
        parts.append(self._shape_notice(content_type))
        parts.append("")
        parts.append(JSON_STRUCTURE_EXAMPLE)
        parts.append("")
        parts.extend(
            [
                "FINAL VERIFICATION:",
                "Before responding, count your themes and ad groups:",
                f"- You must have EXACTLY {theme_count} themes",
                f"- You must have EXACTLY {ad_group_count} total ad groups",
                f"- Every headline must be {self.headline_max_length} characters or fewer",
                f"- Every description must be {self.description_max_length} characters or fewer",
                "- If these counts don't match, regenerate your response",
                "",
                "Respond with ONLY the JSON object containing the regenerated content. "
                "For keywords, include the keyword text and match type. "
                "For RSA ads, include headlines and descriptions arrays.",
            ]
        )

        return "\n".join(parts)

    def _escalation_notice(
        self,
        attempt: int,
        theme_count: int,
        ad_group_count: int,
        previous_failure: str | None,
    ) -> str:
        notice = (
            f"ATTEMPT {attempt}: Your previous response was rejected because it did not "
            f"match the required structure. You MUST create EXACTLY {theme_count} themes "
            f"and EXACTLY {ad_group_count} ad groups. This is your {_ordinal(attempt)} "
            "attempt - please be extremely careful with the structure."
        )
        if previous_failure:
            notice += f"\nRejection reason: {previous_failure}"
        return notice + "\n"

    def _campaign_listing(
        self,
        campaign: Campaign,
        content_type: RegenerationContentType,
        target: RegenerationTarget,
    ) -> list[str]:
        if content_type == RegenerationContentType.ADS:
            theme_markers = (" (REGENERATE ADS IN THIS THEME)", " (KEEP EXISTING ADS)")
            ad_group_markers = (" (REGENERATE ADS IN THIS AD GROUP)", " (KEEP EXISTING ADS)")
        else:
            theme_markers = (" (REGENERATE THIS THEME)", " (KEEP EXISTING)")
            ad_group_markers = (" (REGENERATE THIS AD GROUP)", " (KEEP EXISTING)")

        lines: list[str] = []
        for theme_index, theme in enumerate(campaign.themes):
            theme_in_scope = target.includes_theme(theme_index)
            marker = theme_markers[0] if theme_in_scope else theme_markers[1]
            lines.append(f"Theme {theme_index + 1}: {theme.name}{marker}")

            for ad_group_index, ad_group in enumerate(theme.ad_groups):
                in_scope = target.includes_ad_group(theme_index, ad_group_index)
                marker = ad_group_markers[0] if in_scope else ad_group_markers[1]
                lines.append(
                    f"  Ad Group: {ad_group.name} ({ad_group.match_type.value} match){marker}"
                )
                lines.extend(self._ad_group_content(ad_group, content_type, in_scope))
                lines.append("")
        return lines

    def _ad_group_content(
        self,
        ad_group: AdGroup,
        content_type: RegenerationContentType,
        in_scope: bool,
    ) -> list[str]:
        lines: list[str] = []

        show_keywords_as_negative = in_scope and content_type.regenerates_keywords
        if show_keywords_as_negative:
            lines.append(
                "  CURRENT KEYWORDS (DO NOT REPEAT THESE - USE COMPLETELY DIFFERENT TERMS):"
            )
        else:
            lines.append("  EXISTING KEYWORDS (ECHO UNCHANGED):")
        lines.extend(
            f"    - {keyword.text} ({keyword.match_type.value})" for keyword in ad_group.keywords
        )

        if content_type.regenerates_ads and in_scope:
            lines.append(
                "  CURRENT RSA ADS (DO NOT REPEAT THESE - USE COMPLETELY DIFFERENT MESSAGING):"
            )
        elif content_type.regenerates_ads:
            lines.append("  EXISTING RSA ADS (ECHO UNCHANGED):")
        else:
            return lines

        for ad_index, ad in enumerate(ad_group.ads):
            lines.append(f"    RSA {ad_index + 1}:")
            lines.append(f"      Headlines: {', '.join(ad.headlines)}")
            lines.append(f"      Descriptions: {', '.join(ad.descriptions)}")
        return lines

    def _content_type_block(
        self,
        campaign: Campaign,
        content_type: RegenerationContentType,
        target: RegenerationTarget,
    ) -> list[str]:
        theme_count = campaign.theme_count
        ad_group_count = campaign.ad_group_count
        scope_label = target.describe(campaign)

        if content_type == RegenerationContentType.KEYWORDS:
            lines = [
                "REGENERATE KEYWORDS AND NAMES:",
                "- Generate 5-15 NEW keywords per ad group",
                "- Use DIFFERENT synonyms, variations, and search terms",
                "- Include a mix of exact, phrase, and broad match keywords",
                "- Focus on relevant, high-intent keywords",
                "- AVOID any keywords that already exist in the current list",
                "- Try different search intents (buying vs researching, specific vs general)",
                "- IMPORTANT: Also generate NEW theme names and ad group names that best "
                "reflect the new keyword focus. Do NOT reuse the old names.",
            ]
            if target.kind == TargetKind.AD_GROUP:
                lines.extend(
                    [
                        f"- CRITICAL: You are regenerating keywords for ONE specific ad group "
                        f"only: {scope_label}",
                        "- For that ad group, generate completely new keywords and a new ad "
                        "group name",
                        "- For ALL OTHER ad groups, keep the existing keywords and names "
                        "exactly as they are",
                    ]
                )
            elif target.kind == TargetKind.THEME:
                lines.extend(
                    [
                        f"- CRITICAL: You are regenerating keywords for ONE specific theme "
                        f"only: {scope_label}",
                        "- For that theme, generate completely new keywords, theme name, and "
                        "ad group names",
                        "- For ALL OTHER themes, keep the existing keywords and names exactly "
                        "as they are",
                    ]
                )
            lines.append(
                f"- CRITICAL: You MUST create EXACTLY {theme_count} themes and EXACTLY "
                f"{ad_group_count} total ad groups."
            )
            return lines

        if content_type == RegenerationContentType.ADS:
            lines = ["REGENERATE RESPONSIVE SEARCH ADS:"]
            if target.kind == TargetKind.AD_GROUP:
                lines.extend(
                    [
                        f"- Generate 2 NEW RSAs ONLY for {scope_label} marked with "
                        '"(REGENERATE ADS IN THIS AD GROUP)"',
                        '- For all OTHER ad groups marked with "(KEEP EXISTING ADS)", keep the '
                        "existing ads exactly as they are",
                    ]
                )
            elif target.kind == TargetKind.THEME:
                lines.extend(
                    [
                        f"- Generate 2 NEW RSAs for all ad groups in {scope_label} marked "
                        'with "(REGENERATE ADS IN THIS THEME)"',
                        '- For all OTHER themes marked with "(KEEP EXISTING ADS)", keep the '
                        "existing ads exactly as they are",
                    ]
                )
            else:
                lines.append("- Generate 2 NEW RSAs per ad group for ALL themes and ad groups")
            lines.extend(
                [
                    f"- Each RSA should have 15 NEW headlines (max {self.headline_max_length} "
                    "characters each)",
                    f"- Each RSA should have 4 NEW descriptions (max "
                    f"{self.description_max_length} characters each)",
                    "- Use DIFFERENT messaging, benefits, and calls-to-action",
                    "- AVOID any headlines or descriptions that already exist",
                    "- Try different value propositions (quality, price, convenience, etc.)",
                    "- CRITICAL: Keep the EXACT SAME theme names, ad group names, and keywords "
                    "as shown above - DO NOT change them",
                    "- CRITICAL: Only regenerate the ads content (headlines and descriptions), "
                    "preserve all other structure",
                    f"- CRITICAL: You MUST create EXACTLY {theme_count} themes and EXACTLY "
                    f"{ad_group_count} total ad groups.",
                ]
            )
            return lines

        lines = [
            "REGENERATE BOTH KEYWORDS, ADS, AND NAMES:",
            "- Generate 5-15 NEW keywords per ad group",
            f"- Generate 2 NEW RSAs per ad group with 15 headlines (max "
            f"{self.headline_max_length} characters) and 4 descriptions (max "
            f"{self.description_max_length} characters) each",
            "- Use COMPLETELY DIFFERENT keywords and messaging",
            "- Ensure keywords and ad copy work well together",
            "- AVOID any existing keywords, headlines, or descriptions",
            "- Try different approaches and search intents",
            "- IMPORTANT: Also generate NEW theme names and ad group names that best reflect "
            "the new keyword focus. Do NOT reuse the old names.",
        ]
        if not target.is_entire_campaign:
            lines.extend(
                [
                    f"- CRITICAL: Only regenerate {scope_label}",
                    "- For everything marked (KEEP EXISTING), echo names, keywords and ads "
                    "exactly as they are",
                ]
            )
        lines.extend(
            [
                f"- CRITICAL: You MUST create EXACTLY {theme_count} themes and EXACTLY "
                f"{ad_group_count} ad groups total.",
                "- MANDATORY: Aim for 100+ total keywords across all ad groups",
            ]
        )
        return lines

    def _shape_notice(self, content_type: RegenerationContentType) -> str:
        if content_type == RegenerationContentType.ADS:
            return (
                'IMPORTANT: You MUST respond with a valid JSON object that includes the "themes" '
                "array with the same structure as the original campaign. For RSA regeneration, "
                "keep the EXACT SAME theme names, ad group names, and keywords as shown above - "
                'ONLY change the ads (headlines and descriptions) for ad groups marked with '
                '"(REGENERATE ADS".'
            )
        return (
            'IMPORTANT: You MUST respond with a valid JSON object that includes the "themes" '
            "array with the same structure as the original campaign. For keywords, theme, and "
            'ad group regeneration, the "theme" and "adGroups.name" fields should be NEW and '
            "relevant to the new keywords for the parts being regenerated. Do NOT reuse the "
            "old names there."
        )
