"""
Campaign regeneration endpoint.

Accepts the camelCase request body the campaign UI sends and answers with
either the updated campaign or a single human-readable error.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from campaign_backend.app.api.deps import (
    SettingsDep,
    get_credential_provider,
    get_regeneration_service,
)
from campaign_backend.app.domains.campaign.schemas import Campaign
from campaign_backend.app.domains.campaign.targeting import (
    FALLBACK_WARNING,
    parse_ad_group_key,
    resolve_target,
)
from campaign_backend.app.domains.regeneration.schemas import (
    CostBreakdown,
    ModelSettings,
    RegenerationContentType,
    RegenerationRequest,
    RegenerationResult,
    TokenUsage,
)
from campaign_backend.app.domains.regeneration.service import CampaignRegenerationService
from campaign_backend.app.domains.regeneration.validation_schemas import FailureType
from campaign_backend.app.infrastructure.credentials import CredentialProvider
from campaign_backend.app.logging_config import get_logger

router = APIRouter()
logger = get_logger("app.api.v1.campaigns")

RegenerationServiceDep = Annotated[
    CampaignRegenerationService, Depends(get_regeneration_service)
]
CredentialProviderDep = Annotated[CredentialProvider, Depends(get_credential_provider)]

CLIENT_ERROR_FAILURES = {FailureType.MISSING_CREDENTIAL, FailureType.RETRY_EXHAUSTION}


class CampaignRegenerationRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    campaign: Campaign
    regeneration_type: RegenerationContentType
    api_key: str | None = Field(default=None, repr=False)
    ai_model: str | None = None
    max_tokens: int | None = Field(default=None, ge=1)
    custom_prompt: str | None = None
    target_theme: str | None = Field(default=None, description="Deprecated: theme name")
    target_ad_group: str | None = Field(default=None, description="Deprecated: ad group name")
    target_theme_index: int | None = None
    target_ad_group_index: str | None = Field(
        default=None,
        description='Ad group position as "<themeIndex>-<adGroupIndex>"',
    )


class CampaignRegenerationResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool
    campaign: dict[str, Any] | None = None
    error: str | None = None
    error_code: str | None = None
    error_details: dict[str, Any] | None = None
    warnings: list[str] = Field(default_factory=list)
    attempts: int = 0
    usage: TokenUsage | None = None
    cost: CostBreakdown | None = None

    @classmethod
    def from_result(cls, result: RegenerationResult) -> "CampaignRegenerationResponse":
        return cls(
            success=result.success,
            campaign=result.campaign.to_payload() if result.campaign else None,
            error=result.error,
            error_code=result.error_code,
            error_details=result.error_details,
            warnings=result.warnings,
            attempts=result.attempt_count,
            usage=result.usage if result.attempt_count else None,
            cost=result.cost,
        )


def build_regeneration_request(
    body: CampaignRegenerationRequest,
    settings: SettingsDep,
    credential: str | None,
) -> RegenerationRequest:
    warnings: list[str] = []
    theme_index = body.target_theme_index
    ad_group_index = None

    if body.target_ad_group_index:
        position = parse_ad_group_key(body.target_ad_group_index)
        if position is None:
            warnings.append(f'Ignoring malformed ad group key "{body.target_ad_group_index}"')
        else:
            theme_index, ad_group_index = position

    resolution = resolve_target(
        body.campaign,
        theme_index=theme_index,
        ad_group_index=ad_group_index,
        theme_name=body.target_theme,
        ad_group_name=body.target_ad_group,
    )
    if warnings and resolution.target.is_entire_campaign and not resolution.warnings:
        warnings.append(FALLBACK_WARNING)

    return RegenerationRequest(
        campaign=body.campaign,
        content_type=body.regeneration_type,
        target=resolution.target,
        model_settings=ModelSettings(
            model_id=body.ai_model or settings.openai_model,
            token_budget=body.max_tokens or settings.openai_max_tokens,
            credential=credential,
            temperature=settings.regeneration_temperature,
        ),
        user_instructions=body.custom_prompt or None,
        target_warnings=warnings + resolution.warnings,
    )


@router.post(
    "/regenerate",
    response_model=CampaignRegenerationResponse,
    status_code=status.HTTP_200_OK,
    summary="Regenerate part of a campaign",
    description=(
        "Regenerate keywords, responsive search ads, or both for the whole campaign, "
        "one theme, or one ad group."
    ),
)
async def regenerate_campaign_part(
    body: CampaignRegenerationRequest,
    response: Response,
    settings: SettingsDep,
    service: RegenerationServiceDep,
    credentials: CredentialProviderDep,
) -> CampaignRegenerationResponse:
    request = build_regeneration_request(body, settings, credentials.resolve(body.api_key))

    logger.info(
        f"Regeneration requested for campaign {body.campaign.name!r}: "
        f"type={body.regeneration_type.value}, target={request.target.kind.value}"
    )

    result = await service.regenerate(request)

    if not result.success:
        response.status_code = (
            status.HTTP_400_BAD_REQUEST
            if result.failure_type in CLIENT_ERROR_FAILURES
            else status.HTTP_500_INTERNAL_SERVER_ERROR
        )
        logger.warning(f"Regeneration failed for campaign {body.campaign.name!r}: {result.error}")

    return CampaignRegenerationResponse.from_result(result)
