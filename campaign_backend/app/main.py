from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from campaign_backend.app.api.v1 import router as api_v1_router
from campaign_backend.app.config import get_settings
from campaign_backend.app.domains.regeneration.llm_client import OpenAICompletionClient
from campaign_backend.app.infrastructure.credentials import CredentialProvider
from campaign_backend.app.logging_config import get_logger, setup_logging

try:
    settings = get_settings()
except ValidationError as e:
    invalid_fields = [str(err["loc"][0]).upper() for err in e.errors() if err.get("loc")]
    raise SystemExit(
        f"Invalid environment configuration: {', '.join(invalid_fields)}. "
        f"Please check your .env file or environment configuration."
    ) from e

setup_logging(settings.log_dir)
logger = get_logger("app.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting Campaign Regeneration Service in {settings.app_env} environment")
    app.state.credential_provider = CredentialProvider(fallback=settings.openai_api_key)
    app.state.completion_client = OpenAICompletionClient(
        api_base_url=settings.openai_api_base_url,
        timeout_seconds=settings.openai_timeout_seconds,
    )
    if not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY not set; requests must carry their own API key")
    yield
    await app.state.completion_client.aclose()
    logger.info("Shutting down Campaign Regeneration Service")


app = FastAPI(
    title="Campaign Regeneration Service",
    description="Selective regeneration of Google Ads Search campaigns",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_v1_router)


@app.get("/health")
async def health_check() -> dict:
    return {"status": "healthy"}
