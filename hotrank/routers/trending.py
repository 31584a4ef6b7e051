import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from hotrank.models import InteractionEvent, TrackResponse, TrendingAction, TrendingResponse
from hotrank.services.engine import TrendingEngine, utcnow
from hotrank.services.store import StorageError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/trending", tags=["trending"])


def get_engine(request: Request) -> TrendingEngine:
    return request.app.state.engine


@router.get("", response_model=TrendingResponse, response_model_exclude_none=True)
async def get_trending(
    limit: int = Query(5, ge=1, le=100),
    brand: Optional[str] = None,
    force: bool = False,
    engine: TrendingEngine = Depends(get_engine),
):
    try:
        return await engine.get_trending(limit=limit, brand=brand, force=force)
    except Exception as e:
        # trending must never break the storefront
        logger.exception("[trending] Unexpected failure: %s", e)
        return TrendingResponse(lastUpdated=utcnow(), error="Failed to get trending products")


@router.post("/track", response_model=TrackResponse)
async def track(event: InteractionEvent, engine: TrendingEngine = Depends(get_engine)):
    try:
        accepted = await engine.track(event)
    except StorageError as e:
        logger.warning("[track] Dropped interaction, storage unavailable: %s", e)
        accepted = False
    return TrackResponse(accepted=accepted)


@router.post("")
async def trending_action(body: TrendingAction, engine: TrendingEngine = Depends(get_engine)):
    action = body.action or "sync"
    try:
        if action == "sync":
            interactions = body.interactions or []
            accepted = await engine.sync(interactions)
            return {"success": True, "synced": len(interactions), "accepted": accepted}

        if action == "updateConfig":
            config = await engine.update_config(update_interval=body.updateInterval, is_enabled=body.isEnabled)
            return {"success": True, "config": config}

        if action == "getConfig":
            return {"success": True, **(await engine.describe())}

        if action == "forceUpdate":
            updated, total = await engine.force_recompute()
            return {"success": updated == total, "updated": updated, "total": total}

        if action == "clearData":
            cleared, total = await engine.clear_all()
            return {"success": cleared == total, "cleared": cleared, "total": total}

        if action == "forceClear":
            cleared, total = await engine.force_clear()
            return {"success": cleared == total, "forceCleared": True, "cleared": cleared, "total": total}

        if action == "testCalculation":
            return {"success": True, "test": engine.sample_calculation()}

        if action == "debugMetrics":
            return {"success": True, "debug": await engine.debug_snapshot()}
    except StorageError as e:
        logger.error("[admin] %s failed: %s", action, e)
        raise HTTPException(status_code=500, detail=f"Failed to process {action}")

    raise HTTPException(status_code=400, detail=f"Unknown action: {action}")
