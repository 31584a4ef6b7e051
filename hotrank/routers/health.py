from fastapi import APIRouter

from hotrank.core.config import settings

router = APIRouter(prefix="/api/v1/health", tags=["health"])

@router.get("")
async def health():
    return {"status": "ok", "backend": settings.storage_backend}
