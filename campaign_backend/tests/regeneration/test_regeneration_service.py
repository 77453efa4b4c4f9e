"""
Tests for the regeneration retry controller.

Verifies:
- Accepted candidates are merged and returned with usage and cost
- Validation failures retry with an escalated prompt, up to the limit
- Exhaustion reports the last rejection reason
- Missing credential, empty, truncated, provider and parse failures are terminal
- Out-of-range targets degrade with a warning
"""

import json

import pytest

from campaign_backend.app.domains.campaign.targeting import RegenerationTarget
from campaign_backend.app.domains.regeneration.errors import ProviderRequestError
from campaign_backend.app.domains.regeneration.llm_client import MockCompletionClient
from campaign_backend.app.domains.regeneration.schemas import (
    CompletionResult,
    ModelSettings,
    RegenerationContentType,
    RegenerationRequest,
    TokenUsage,
)
from campaign_backend.app.domains.regeneration.service import CampaignRegenerationService
from campaign_backend.app.domains.regeneration.validation_schemas import (
    FailureType,
    RetryPolicy,
)
from campaign_backend.app.domains.regeneration.validation_service import (
    RegenerationValidationService,
)


def make_request(campaign, model_settings, content_type, target=None, **kwargs):
    return RegenerationRequest(
        campaign=campaign,
        content_type=content_type,
        target=target or RegenerationTarget.entire_campaign(),
        model_settings=model_settings,
        **kwargs,
    )


def theme_mismatch_text(campaign) -> str:
    return json.dumps({"themes": [{"theme": "Only one", "adGroups": []}]})


class TestSuccessfulRegeneration:
    @pytest.mark.asyncio
    async def test_first_attempt_accepted(self, sample_campaign, model_settings, candidate_text):
        client = MockCompletionClient(responses=[candidate_text(sample_campaign)])
        service = CampaignRegenerationService(client)

        result = await service.regenerate(
            make_request(sample_campaign, model_settings, RegenerationContentType.BOTH)
        )

        assert result.success
        assert result.error is None
        assert result.campaign.themes[0].name == "New Theme 0"
        assert result.attempt_count == 1
        assert result.attempts[0].accepted
        assert client.invocation_count == 1
        assert result.usage.total_tokens == 150
        assert result.cost is not None
        assert result.correlation_id is not None
        # Original document untouched
        assert sample_campaign.themes[0].name == "Theme 0"

    @pytest.mark.asyncio
    async def test_scenario_ads_for_one_ad_group(self, scenario_campaign, model_settings):
        response = json.dumps(
            {
                "themes": [
                    {"theme": "A", "adGroups": [{"name": "A1", "ads": [{"headlines": ["Fresh A"], "descriptions": ["Fresh DA"]}]}]},
                    {"theme": "B", "adGroups": [{"name": "B1", "ads": [{"headlines": ["Fresh B"], "descriptions": ["Fresh DB"]}]}]},
                ]
            }
        )
        service = CampaignRegenerationService(MockCompletionClient(responses=[response]))

        result = await service.regenerate(
            make_request(
                scenario_campaign,
                model_settings,
                RegenerationContentType.ADS,
                RegenerationTarget.ad_group(0, 0),
            )
        )

        assert result.success
        theme_a, theme_b = result.campaign.themes
        assert theme_a.ad_groups[0].ads[0].headlines == ["Fresh A"]
        assert theme_b.ad_groups[0].ads[0].headlines == ["HB"]
        assert [k.text for k in theme_a.ad_groups[0].keywords] == ["x", "y"]
        assert [k.text for k in theme_b.ad_groups[0].keywords] == ["z"]

    @pytest.mark.asyncio
    async def test_completion_request_carries_model_settings(
        self, sample_campaign, candidate_text
    ):
        client = MockCompletionClient(responses=[candidate_text(sample_campaign)])
        settings = ModelSettings(
            model_id="o4-mini-2025-04-16", token_budget=12000, credential="sk-abc", temperature=0.95
        )
        service = CampaignRegenerationService(client)

        await service.regenerate(
            make_request(
                sample_campaign,
                settings,
                RegenerationContentType.KEYWORDS,
                user_instructions="Focus on students",
            )
        )

        sent = client.invocations[0]
        assert sent.model == "o4-mini-2025-04-16"
        assert sent.max_tokens == 12000
        assert sent.credential == "sk-abc"
        assert sent.messages[0].role == "system"
        assert sent.messages[1].content.startswith("USER CUSTOM INSTRUCTIONS: Focus on students")


class TestRetry:
    @pytest.mark.asyncio
    async def test_always_mismatched_terminates_after_three_attempts(
        self, sample_campaign, model_settings
    ):
        client = MockCompletionClient(default_response=theme_mismatch_text(sample_campaign))
        service = CampaignRegenerationService(client)

        result = await service.regenerate(
            make_request(sample_campaign, model_settings, RegenerationContentType.KEYWORDS)
        )

        assert not result.success
        assert client.invocation_count == 3
        assert result.attempt_count == 3
        assert result.failure_type == FailureType.RETRY_EXHAUSTION
        assert result.error_code == "VALIDATION_RETRY_EXHAUSTED"
        assert result.error == (
            "Generated content is too similar to existing content. "
            "Theme count mismatch. Original: 3, Regenerated: 1. "
            "Please ensure you create exactly 3 themes."
        )
        assert result.usage.total_tokens == 450

    @pytest.mark.asyncio
    async def test_later_attempts_escalate(self, sample_campaign, model_settings):
        client = MockCompletionClient(default_response=theme_mismatch_text(sample_campaign))
        service = CampaignRegenerationService(client)

        await service.regenerate(
            make_request(sample_campaign, model_settings, RegenerationContentType.KEYWORDS)
        )

        prompts = [request.messages[1].content for request in client.invocations]
        assert "ATTEMPT" not in prompts[0]
        assert prompts[1].startswith("ATTEMPT 2:")
        assert prompts[2].startswith("ATTEMPT 3:")
        assert "Rejection reason: Theme count mismatch" in prompts[1]
        assert [request.attempt_number for request in client.invocations] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_succeeds_on_second_attempt(self, sample_campaign, model_settings, candidate_text):
        client = MockCompletionClient(
            responses=[theme_mismatch_text(sample_campaign), candidate_text(sample_campaign)]
        )
        service = CampaignRegenerationService(client)

        result = await service.regenerate(
            make_request(sample_campaign, model_settings, RegenerationContentType.BOTH)
        )

        assert result.success
        assert result.attempt_count == 2
        assert result.attempts[0].failure_type == FailureType.VALIDATION_FAILURE
        assert result.attempts[1].accepted

    @pytest.mark.asyncio
    async def test_attempt_limit_from_policy(self, sample_campaign, model_settings):
        client = MockCompletionClient(default_response=theme_mismatch_text(sample_campaign))
        service = CampaignRegenerationService(
            client,
            validation_service=RegenerationValidationService(
                retry_policy=RetryPolicy(max_attempts=1)
            ),
        )

        result = await service.regenerate(
            make_request(sample_campaign, model_settings, RegenerationContentType.KEYWORDS)
        )

        assert client.invocation_count == 1
        assert result.failure_type == FailureType.RETRY_EXHAUSTION


class TestTerminalFailures:
    @pytest.mark.asyncio
    async def test_missing_credential_makes_no_attempt(self, sample_campaign):
        client = MockCompletionClient()
        service = CampaignRegenerationService(client)

        result = await service.regenerate(
            make_request(
                sample_campaign,
                ModelSettings(model_id="gpt-4o"),
                RegenerationContentType.ADS,
            )
        )

        assert not result.success
        assert result.error == "OpenAI API key is required"
        assert result.failure_type == FailureType.MISSING_CREDENTIAL
        assert result.error_details["recovery_action"] == "PROVIDE_CREDENTIAL"
        assert client.invocation_count == 0
        assert result.cost is None

    @pytest.mark.asyncio
    async def test_empty_response_not_retried(self, sample_campaign, model_settings):
        client = MockCompletionClient(default_response="   ")
        service = CampaignRegenerationService(client)

        result = await service.regenerate(
            make_request(sample_campaign, model_settings, RegenerationContentType.ADS)
        )

        assert result.failure_type == FailureType.PROVIDER_EMPTY_RESPONSE
        assert result.error == "No response from AI"
        assert client.invocation_count == 1

    @pytest.mark.asyncio
    async def test_truncation_not_retried(self, sample_campaign, model_settings, candidate_text):
        client = MockCompletionClient(
            responses=[
                CompletionResult(
                    text=candidate_text(sample_campaign)[:200],
                    finish_reason="length",
                    usage=TokenUsage(prompt_tokens=10, completion_tokens=8000, total_tokens=8010),
                )
            ]
        )
        service = CampaignRegenerationService(client)

        result = await service.regenerate(
            make_request(sample_campaign, model_settings, RegenerationContentType.BOTH)
        )

        assert result.failure_type == FailureType.PROVIDER_TRUNCATED
        assert result.error.startswith("Response was cut off due to token limit.")
        assert result.error_details["recovery_action"] == "NARROW_SCOPE"
        assert result.attempts[0].finish_reason == "length"
        assert result.usage.completion_tokens == 8000
        assert client.invocation_count == 1

    @pytest.mark.asyncio
    async def test_parse_failure_not_retried(self, sample_campaign, model_settings):
        client = MockCompletionClient(default_response="no json here")
        service = CampaignRegenerationService(client)

        result = await service.regenerate(
            make_request(sample_campaign, model_settings, RegenerationContentType.KEYWORDS)
        )

        assert result.failure_type == FailureType.PARSE_FAILURE
        assert result.error == "No JSON structure found in AI response"
        assert result.error_code == "PARSING_INVALID_JSON"
        assert result.error_details["details"]["parser_error"]
        assert client.invocation_count == 1

    @pytest.mark.asyncio
    async def test_provider_error_not_retried(self, sample_campaign, model_settings):
        client = MockCompletionClient(
            error=ProviderRequestError("rate limited", model="gpt-4o", status_code=429)
        )
        service = CampaignRegenerationService(client)

        result = await service.regenerate(
            make_request(sample_campaign, model_settings, RegenerationContentType.KEYWORDS)
        )

        assert result.failure_type == FailureType.PROVIDER_ERROR
        assert result.error == "Completion request failed: rate limited"
        assert result.attempt_count == 1
        assert client.invocation_count == 1


class TestTargetHandling:
    @pytest.mark.asyncio
    async def test_out_of_range_target_degrades_with_warning(
        self, sample_campaign, model_settings, candidate_text
    ):
        service = CampaignRegenerationService(
            MockCompletionClient(responses=[candidate_text(sample_campaign)])
        )

        result = await service.regenerate(
            make_request(
                sample_campaign,
                model_settings,
                RegenerationContentType.KEYWORDS,
                RegenerationTarget.theme(12),
            )
        )

        assert result.success
        assert result.target.is_entire_campaign
        assert result.warnings[-1] == "Falling back to regenerating the entire campaign"

    @pytest.mark.asyncio
    async def test_resolution_warnings_passed_through(
        self, sample_campaign, model_settings, candidate_text
    ):
        service = CampaignRegenerationService(
            MockCompletionClient(responses=[candidate_text(sample_campaign)])
        )

        result = await service.regenerate(
            make_request(
                sample_campaign,
                model_settings,
                RegenerationContentType.KEYWORDS,
                target_warnings=['No theme named "Gone"'],
            )
        )

        assert result.warnings == ['No theme named "Gone"']
