from typing import Annotated

from fastapi import Depends, Request

from campaign_backend.app.config import Settings, get_settings
from campaign_backend.app.domains.regeneration.llm_client import BaseCompletionClient
from campaign_backend.app.domains.regeneration.service import CampaignRegenerationService
from campaign_backend.app.domains.regeneration.validation_schemas import (
    RetryPolicy,
    ValidationLimits,
)
from campaign_backend.app.domains.regeneration.validation_service import (
    RegenerationValidationService,
)
from campaign_backend.app.infrastructure.credentials import CredentialProvider

SettingsDep = Annotated[Settings, Depends(get_settings)]


def get_credential_provider(request: Request) -> CredentialProvider:
    return request.app.state.credential_provider


def get_completion_client(request: Request) -> BaseCompletionClient:
    return request.app.state.completion_client


def get_validation_service(settings: SettingsDep) -> RegenerationValidationService:
    return RegenerationValidationService(
        limits=ValidationLimits(max_duplication_ratio=settings.max_duplication_percent / 100),
        retry_policy=RetryPolicy(max_attempts=settings.regeneration_max_attempts),
    )


def get_regeneration_service(
    client: Annotated[BaseCompletionClient, Depends(get_completion_client)],
    validation_service: Annotated[
        RegenerationValidationService, Depends(get_validation_service)
    ],
) -> CampaignRegenerationService:
    return CampaignRegenerationService(client, validation_service=validation_service)
