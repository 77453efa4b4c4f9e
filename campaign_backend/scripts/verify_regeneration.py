import asyncio
import json
import sys

from campaign_backend.app.config import get_settings
from campaign_backend.app.domains.campaign.schemas import Campaign
from campaign_backend.app.domains.campaign.targeting import RegenerationTarget
from campaign_backend.app.domains.regeneration.cost import format_cost
from campaign_backend.app.domains.regeneration.llm_client import (
    MockCompletionClient,
    OpenAICompletionClient,
)
from campaign_backend.app.domains.regeneration.schemas import (
    ModelSettings,
    RegenerationContentType,
    RegenerationRequest,
)
from campaign_backend.app.domains.regeneration.service import CampaignRegenerationService

SAMPLE_CAMPAIGN = {
    "campaignName": "Verify Regeneration",
    "finalUrl": "https://example.com/running-shoes",
    "themes": [
        {
            "theme": "Trail Running Shoes",
            "adGroups": [
                {
                    "name": "Waterproof Trail Shoes",
                    "matchType": "phrase",
                    "keywords": [
                        {"keyword": "waterproof trail shoes", "matchType": "phrase"},
                        {"keyword": "gore-tex running shoes", "matchType": "exact"},
                    ],
                    "ads": [
                        {
                            "headlines": ["Waterproof Trail Shoes", "Stay Dry On Every Run"],
                            "descriptions": ["Grip and comfort for muddy trails. Free returns."],
                        }
                    ],
                }
            ],
        },
        {
            "theme": "Road Running Shoes",
            "adGroups": [
                {
                    "name": "Cushioned Road Shoes",
                    "matchType": "broad",
                    "keywords": [{"keyword": "cushioned running shoes", "matchType": "broad"}],
                    "ads": [
                        {
                            "headlines": ["Cushioned Road Shoes"],
                            "descriptions": ["Soft landings mile after mile."],
                        }
                    ],
                }
            ],
        },
    ],
}

OFFLINE_RESPONSE = json.dumps(
    {
        "themes": [
            {
                "theme": "Trail Running Shoes",
                "adGroups": [
                    {
                        "name": "Waterproof Trail Shoes",
                        "ads": [
                            {
                                "headlines": ["Conquer Wet Trails", "Dry Feet, Fast Miles"],
                                "descriptions": ["Sealed uppers and lugged soles for rain runs."],
                            }
                        ],
                    }
                ],
            },
            {"theme": "Road Running Shoes", "adGroups": [{"name": "Cushioned Road Shoes"}]},
        ]
    }
)


async def verify_regeneration(offline: bool):
    print("Starting regeneration verification...")
    settings = get_settings()

    if offline:
        client = MockCompletionClient(responses=[OFFLINE_RESPONSE])
        credential = "offline"
    else:
        client = OpenAICompletionClient(
            api_base_url=settings.openai_api_base_url,
            timeout_seconds=settings.openai_timeout_seconds,
        )
        credential = settings.openai_api_key

    service = CampaignRegenerationService(client)
    request = RegenerationRequest(
        campaign=Campaign.model_validate(SAMPLE_CAMPAIGN),
        content_type=RegenerationContentType.ADS,
        target=RegenerationTarget.ad_group(0, 0),
        model_settings=ModelSettings(
            model_id=settings.openai_model,
            token_budget=settings.openai_max_tokens,
            credential=credential,
            temperature=settings.regeneration_temperature,
        ),
    )

    try:
        result = await service.regenerate(request)
    finally:
        if isinstance(client, OpenAICompletionClient):
            await client.aclose()

    print(f"Success: {result.success} after {result.attempt_count} attempt(s)")
    for attempt in result.attempts:
        status = "accepted" if attempt.accepted else f"{attempt.failure_type.value}: {attempt.reason}"
        print(f"  Attempt {attempt.attempt_number}: {status}")
    for warning in result.warnings:
        print(f"Warning: {warning}")

    if not result.success:
        print(f"Error: {result.error}")
        return False

    print(f"Tokens used: {result.usage.total_tokens}")
    if result.cost is not None:
        print(f"Cost: {format_cost(result.cost.total_cost)}")
    print(json.dumps(result.campaign.to_payload(), indent=2))

    # The untargeted theme must come back exactly as sent
    assert result.campaign.to_payload()["themes"][1] == SAMPLE_CAMPAIGN["themes"][1]
    print("Verified untargeted theme is unchanged")
    return True


if __name__ == "__main__":
    ok = asyncio.run(verify_regeneration(offline="--offline" in sys.argv))
    sys.exit(0 if ok else 1)
