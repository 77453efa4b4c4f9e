import time

from campaign_backend.app.domains.campaign.errors import TargetResolutionError
from campaign_backend.app.domains.campaign.targeting import (
    FALLBACK_WARNING,
    RegenerationTarget,
    validate_target,
)
from campaign_backend.app.domains.regeneration.cost import calculate_cost
from campaign_backend.app.domains.regeneration.errors import (
    MissingCredentialError,
    ProviderEmptyResponseError,
    ProviderTruncatedError,
    RegenerationError,
)
from campaign_backend.app.domains.regeneration.llm_client import BaseCompletionClient
from campaign_backend.app.domains.regeneration.merger import CampaignMerger
from campaign_backend.app.domains.regeneration.parser import ResponseParser
from campaign_backend.app.domains.regeneration.prompt_builder import RegenerationPromptBuilder
from campaign_backend.app.domains.regeneration.schemas import (
    AttemptRecord,
    CompletionRequest,
    CompletionResult,
    RegenerationRequest,
    RegenerationResult,
    TokenUsage,
)
from campaign_backend.app.domains.regeneration.validation_schemas import (
    FailureType,
    RetryEligibility,
)
from campaign_backend.app.domains.regeneration.validation_service import (
    RegenerationValidationService,
)
from campaign_backend.app.infrastructure.errors import ValidationExhaustedRecord
from campaign_backend.app.logging_config import LogContext, get_correlation_id, get_logger

logger = get_logger("app.domains.regeneration.service")

EXHAUSTION_PREFIX = "Generated content is too similar to existing content."


class CampaignRegenerationService:
    """
    Prompt, complete, parse, validate and merge, with bounded retries.

    Attempts run strictly one after another. Only validation rejections are
    retried, each time with an escalated prompt carrying the previous
    rejection reason. Provider, truncation and parse failures end the request
    immediately.
    """

    def __init__(
        self,
        llm_client: BaseCompletionClient,
        prompt_builder: RegenerationPromptBuilder | None = None,
        parser: ResponseParser | None = None,
        validation_service: RegenerationValidationService | None = None,
        merger: CampaignMerger | None = None,
    ):
        self.llm_client = llm_client
        self.validation_service = validation_service or RegenerationValidationService()
        self.prompt_builder = prompt_builder or RegenerationPromptBuilder(
            headline_max_length=self.validation_service.limits.headline_max_length,
            description_max_length=self.validation_service.limits.description_max_length,
        )
        self.parser = parser or ResponseParser()
        self.merger = merger or CampaignMerger()
        self.retry_manager = self.validation_service.retry_manager

    async def regenerate(self, request: RegenerationRequest) -> RegenerationResult:
        with LogContext(
            correlation_id=request.correlation_id,
            campaign_name=request.campaign.name,
            content_type=request.content_type.value,
            auto_generate_correlation_id=True,
        ):
            return await self._regenerate(request)

    async def _regenerate(self, request: RegenerationRequest) -> RegenerationResult:
        start_time = time.time()
        correlation_id = get_correlation_id()
        warnings = list(request.target_warnings)
        target = self._checked_target(request, warnings)
        attempts: list[AttemptRecord] = []
        usage = TokenUsage()

        logger.info(
            f"Regenerating {request.content_type.value} for {target.describe(request.campaign)} "
            f"with model {request.model_settings.model_id}"
        )

        def finish(**fields) -> RegenerationResult:
            duration_ms = (time.time() - start_time) * 1000
            return RegenerationResult(
                content_type=request.content_type,
                target=target,
                warnings=warnings,
                attempts=attempts,
                usage=usage,
                cost=calculate_cost(usage, request.model_settings.model_id) if attempts else None,
                duration_ms=duration_ms,
                correlation_id=correlation_id,
                **fields,
            )

        try:
            if not request.model_settings.credential:
                raise MissingCredentialError()

            max_attempts = self.retry_manager.policy.max_attempts
            last_reason: str | None = None

            for attempt in range(1, max_attempts + 1):
                try:
                    completion = await self._complete(request, target, attempt, last_reason)
                except RegenerationError as e:
                    attempts.append(
                        AttemptRecord(
                            attempt_number=attempt, failure_type=e.failure_type, reason=e.message
                        )
                    )
                    raise
                usage = usage.combine(completion.usage)

                try:
                    self._check_completion(completion, request)
                    candidate = self.parser.parse_candidate(completion.text or "")
                except RegenerationError as e:
                    attempts.append(
                        AttemptRecord(
                            attempt_number=attempt,
                            failure_type=e.failure_type,
                            reason=e.message,
                            finish_reason=completion.finish_reason,
                            usage=completion.usage,
                        )
                    )
                    raise

                outcome = self.validation_service.validate(
                    request.campaign, candidate, request.content_type, target
                )

                if outcome.accepted:
                    attempts.append(
                        AttemptRecord(
                            attempt_number=attempt,
                            accepted=True,
                            finish_reason=completion.finish_reason,
                            usage=completion.usage,
                        )
                    )
                    merged = self.merger.merge(
                        request.campaign, candidate, request.content_type, target
                    )
                    logger.info(
                        f"Attempt {attempt} accepted; tokens used: {usage.total_tokens}",
                        extra={"attempt_number": attempt, **outcome.validation_metadata},
                    )
                    return finish(success=True, campaign=merged)

                last_reason = outcome.reason
                attempts.append(
                    AttemptRecord(
                        attempt_number=attempt,
                        failure_type=FailureType.VALIDATION_FAILURE,
                        reason=outcome.reason,
                        finish_reason=completion.finish_reason,
                        usage=completion.usage,
                    )
                )
                logger.warning(
                    f"Attempt {attempt} failed validation: {outcome.reason}",
                    extra={
                        "attempt_number": attempt,
                        "error_codes": [c.value for c in outcome.error_codes],
                    },
                )

                eligibility = self.retry_manager.determine_eligibility(
                    FailureType.VALIDATION_FAILURE, attempt
                )
                if eligibility != RetryEligibility.ELIGIBLE:
                    break
                logger.info(f"Retrying with escalated prompt (attempt {attempt + 1})")

        except RegenerationError as e:
            record = e.to_structured_error(
                attempts_made=len(attempts), correlation_id=correlation_id
            )
            logger.error(
                f"Regeneration failed: {e.message}",
                extra={"failure_type": e.failure_type.value, **record.to_log_dict()},
            )
            return finish(
                success=False,
                error=e.message,
                error_code=e.code,
                failure_type=e.failure_type,
                error_details=record.model_dump(mode="json"),
            )

        record = ValidationExhaustedRecord(
            last_reason=last_reason or "Validation failed",
            max_attempts=len(attempts),
            correlation_id=correlation_id,
        )
        logger.error(
            f"Regeneration gave up after {len(attempts)} attempts: {last_reason}",
            extra=record.to_log_dict(),
        )
        return finish(
            success=False,
            error=f"{EXHAUSTION_PREFIX} {last_reason}",
            error_code=record.code,
            failure_type=FailureType.RETRY_EXHAUSTION,
            error_details=record.model_dump(mode="json"),
        )

    def _checked_target(
        self, request: RegenerationRequest, warnings: list[str]
    ) -> RegenerationTarget:
        try:
            return validate_target(request.campaign, request.target)
        except TargetResolutionError as e:
            warnings.append(e.message)
            warnings.append(FALLBACK_WARNING)
            logger.warning(f"Target degraded to entire campaign: {e.message}")
            return RegenerationTarget.entire_campaign()

    async def _complete(
        self,
        request: RegenerationRequest,
        target: RegenerationTarget,
        attempt: int,
        previous_failure: str | None,
    ) -> CompletionResult:
        settings = request.model_settings
        messages = self.prompt_builder.build_messages(
            request.campaign,
            request.content_type,
            target,
            attempt,
            model_id=settings.model_id,
            user_instructions=request.user_instructions,
            previous_failure=previous_failure,
        )
        logger.debug(
            f"Prompt for attempt {attempt}:\n{messages[-1].content}",
            extra={"attempt_number": attempt},
        )

        completion = await self.llm_client.complete(
            CompletionRequest(
                model=settings.model_id,
                messages=messages,
                max_tokens=settings.token_budget,
                temperature=settings.temperature,
                credential=settings.credential,
                attempt_number=attempt,
            )
        )
        logger.info(
            f"Attempt {attempt}: model={settings.model_id}, "
            f"finish_reason={completion.finish_reason}, truncated={completion.truncated}",
            extra={"attempt_number": attempt, "total_tokens": completion.usage.total_tokens},
        )
        return completion

    @staticmethod
    def _check_completion(completion: CompletionResult, request: RegenerationRequest) -> None:
        if not completion.text or not completion.text.strip():
            raise ProviderEmptyResponseError(
                model=request.model_settings.model_id,
                finish_reason=completion.finish_reason,
            )
        if completion.truncated:
            raise ProviderTruncatedError(
                model=request.model_settings.model_id,
                max_tokens=request.model_settings.token_budget,
            )
