"""
Regeneration domain module.

Provides the regeneration-validation-retry loop:
- Prompt building per content type and target
- Completion client for chat and reasoning model families
- Tolerant JSON parsing of model output
- Structural, length and duplication validation
- Positional merge back into the original campaign
"""

from campaign_backend.app.domains.regeneration.cost import calculate_cost, format_cost
from campaign_backend.app.domains.regeneration.errors import (
    CandidateShapeError,
    MissingCredentialError,
    ProviderEmptyResponseError,
    ProviderRequestError,
    ProviderTruncatedError,
    RegenerationError,
    ResponseParseError,
)
from campaign_backend.app.domains.regeneration.llm_client import (
    BaseCompletionClient,
    MockCompletionClient,
    OpenAICompletionClient,
)
from campaign_backend.app.domains.regeneration.merger import CampaignMerger
from campaign_backend.app.domains.regeneration.parser import ResponseParser
from campaign_backend.app.domains.regeneration.prompt_builder import (
    RegenerationPromptBuilder,
    is_reasoning_model,
)
from campaign_backend.app.domains.regeneration.schemas import (
    ModelSettings,
    RegenerationContentType,
    RegenerationRequest,
    RegenerationResult,
)
from campaign_backend.app.domains.regeneration.service import CampaignRegenerationService
from campaign_backend.app.domains.regeneration.validation_service import (
    RegenerationValidationService,
    RetryManager,
)

__all__ = [
    "BaseCompletionClient",
    "CampaignMerger",
    "CampaignRegenerationService",
    "CandidateShapeError",
    "MissingCredentialError",
    "MockCompletionClient",
    "ModelSettings",
    "OpenAICompletionClient",
    "ProviderEmptyResponseError",
    "ProviderRequestError",
    "ProviderTruncatedError",
    "RegenerationContentType",
    "RegenerationError",
    "RegenerationPromptBuilder",
    "RegenerationRequest",
    "RegenerationResult",
    "RegenerationValidationService",
    "ResponseParseError",
    "ResponseParser",
    "RetryManager",
    "calculate_cost",
    "format_cost",
    "is_reasoning_model",
]
