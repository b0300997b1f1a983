from __future__ import annotations

from app.core.config import settings
from fastapi import APIRouter

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    return {"status": "ok", "service": settings.api_name, "store": settings.social_store}
