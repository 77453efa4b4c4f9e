"""
Pytest configuration and shared fixtures for all tests.

This module provides:
- Test settings
- Sample campaign factories
- Candidate payload helpers
- Scripted completion client
"""

import json
import os
import sys
from collections.abc import Callable
from typing import Any

import pytest

# Add the workspace root to the Python path for absolute imports
workspace_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.insert(0, workspace_root)

# Set test environment variables BEFORE importing app modules
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("LOG_DIR", "/tmp/test_logs")

from campaign_backend.app.config import Settings  # noqa: E402
from campaign_backend.app.domains.campaign.schemas import (  # noqa: E402
    AdExtensions,
    AdGroup,
    Campaign,
    Keyword,
    MatchType,
    ResponsiveAd,
    Theme,
)
from campaign_backend.app.domains.regeneration.llm_client import MockCompletionClient  # noqa: E402
from campaign_backend.app.domains.regeneration.schemas import ModelSettings  # noqa: E402

# ============================================================================
# Test Settings
# ============================================================================


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        app_env="test",
        log_dir="/tmp/test_logs",
        openai_api_key=None,
        openai_model="gpt-4o-2024-08-06",
        openai_max_tokens=8000,
    )


@pytest.fixture
def model_settings() -> ModelSettings:
    return ModelSettings(model_id="gpt-4o-2024-08-06", token_budget=8000, credential="sk-test")


# ============================================================================
# Campaign Factories
# ============================================================================


def build_ad(prefix: str) -> ResponsiveAd:
    return ResponsiveAd(
        headlines=[f"{prefix} Headline {i}" for i in range(1, 16)],
        descriptions=[f"{prefix} description number {i}." for i in range(1, 5)],
    )


def build_campaign(shape: list[int], keywords_per_ad_group: int = 3) -> Campaign:
    """Build a campaign with ``shape[i]`` ad groups in theme ``i``."""
    themes = []
    for t, ad_group_count in enumerate(shape):
        ad_groups = []
        for a in range(ad_group_count):
            prefix = f"T{t}A{a}"
            ad_groups.append(
                AdGroup(
                    name=f"Ad Group {t}-{a}",
                    match_type=MatchType.PHRASE,
                    keywords=[
                        Keyword(text=f"{prefix.lower()} keyword {k}", match_type=MatchType.EXACT)
                        for k in range(keywords_per_ad_group)
                    ],
                    ads=[build_ad(f"{prefix}R1"), build_ad(f"{prefix}R2")],
                )
            )
        themes.append(Theme(name=f"Theme {t}", ad_groups=ad_groups))

    return Campaign(
        name="Spring Sale",
        final_url="https://example.com/spring",
        themes=themes,
        negative_keywords=["free", "jobs"],
        bid_strategy="Maximize Conversions",
        ad_extensions=AdExtensions(sitelinks=["Shop Now"], callouts=["Free Shipping"]),
    )


@pytest.fixture
def campaign_factory() -> Callable[..., Campaign]:
    return build_campaign


@pytest.fixture
def sample_campaign() -> Campaign:
    """Three themes with 2, 1 and 2 ad groups."""
    return build_campaign([2, 1, 2])


@pytest.fixture
def scenario_campaign() -> Campaign:
    """Two themes of one ad group each; theme A has a single short ad."""
    return Campaign(
        name="Scenario",
        final_url="https://example.com",
        themes=[
            Theme(
                name="A",
                ad_groups=[
                    AdGroup(
                        name="A1",
                        match_type=MatchType.BROAD,
                        keywords=[
                            Keyword(text="x", match_type=MatchType.BROAD),
                            Keyword(text="y", match_type=MatchType.BROAD),
                        ],
                        ads=[ResponsiveAd(headlines=["H1"], descriptions=["D1"])],
                    )
                ],
            ),
            Theme(
                name="B",
                ad_groups=[
                    AdGroup(
                        name="B1",
                        match_type=MatchType.EXACT,
                        keywords=[Keyword(text="z", match_type=MatchType.EXACT)],
                        ads=[ResponsiveAd(headlines=["HB"], descriptions=["DB"])],
                    )
                ],
            ),
        ],
    )


# ============================================================================
# Candidate Payload Helpers
# ============================================================================


def fresh_candidate_payload(campaign: Campaign, tag: str = "new") -> dict[str, Any]:
    """A candidate mirroring the campaign's shape with entirely new content."""
    themes = []
    for t, theme in enumerate(campaign.themes):
        ad_groups = []
        for a, ad_group in enumerate(theme.ad_groups):
            prefix = f"{tag}{t}{a}"
            ad_groups.append(
                {
                    "name": f"{tag.title()} Group {t}-{a}",
                    "matchType": "broad",
                    "keywords": [
                        {"keyword": f"{prefix} term {k}", "matchType": "phrase"}
                        for k in range(len(ad_group.keywords) or 3)
                    ],
                    "ads": [
                        {
                            "headlines": [f"{prefix} Fresh {r}-{i}" for i in range(15)],
                            "descriptions": [f"{prefix} fresh copy {r}-{i}." for i in range(4)],
                        }
                        for r in range(2)
                    ],
                }
            )
        themes.append({"theme": f"{tag.title()} Theme {t}", "adGroups": ad_groups})
    return {"themes": themes}


@pytest.fixture
def candidate_payload() -> Callable[..., dict[str, Any]]:
    return fresh_candidate_payload


@pytest.fixture
def candidate_text() -> Callable[..., str]:
    def _candidate_text(campaign: Campaign, tag: str = "new") -> str:
        return json.dumps(fresh_candidate_payload(campaign, tag))

    return _candidate_text


# ============================================================================
# Completion Client
# ============================================================================


@pytest.fixture
def mock_completion_client() -> MockCompletionClient:
    return MockCompletionClient()
