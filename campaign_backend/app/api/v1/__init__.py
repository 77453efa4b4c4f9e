from fastapi import APIRouter

from campaign_backend.app.api.v1 import campaigns

router = APIRouter(prefix="/api/v1")

router.include_router(campaigns.router, prefix="/campaigns", tags=["campaigns"])

__all__ = ["router"]
