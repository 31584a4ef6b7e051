"""Trending engine: wires ingestion, scoring, badges, enrichment and the
result cache over a pluggable :class:`TrendingStorage`.

Store reads/writes and the catalog fetch are the only awaits. Scoring and
badge reconciliation run synchronously on a snapshot, and their result is
persisted afterwards. Badge expiry is lazy: a cached list is dropped once
one of the badges it shows runs out, and the next
:meth:`TrendingEngine.get_trending` call reconciles again.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol, Tuple

from hotrank.core.cache import TrendingCache, fingerprint
from hotrank.models import (
    CachedTrendingResult,
    CatalogItem,
    InteractionEvent,
    InteractionKind,
    ProductMetrics,
    TrendingConfig,
    TrendingResponse,
)
from hotrank.services import badges as badge_manager
from hotrank.services.enrichment import enrich_all, refresh_badge_timers
from hotrank.services.ingestion import normalize_event
from hotrank.services.scoring import WEIGHTS, compute_score, record, recompute, score_breakdown
from hotrank.services.store import StorageError, TrendingStorage

logger = logging.getLogger(__name__)


class CatalogProvider(Protocol):
    async def get_catalog(self) -> List[CatalogItem]: ...


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TrendingEngine:
    def __init__(
        self,
        storage: TrendingStorage,
        catalog: CatalogProvider,
        cache_ttl_seconds: Optional[int] = None,
        update_interval: int = 5,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.storage = storage
        self.catalog = catalog
        self.cache = TrendingCache(ttl_seconds=cache_ttl_seconds)
        self.clock = clock
        self._default_interval = update_interval
        self._lock = asyncio.Lock()

    # ingestion

    async def track(self, event: InteractionEvent) -> bool:
        interaction = normalize_event(event, self.clock())
        if interaction is None:
            return False
        if interaction.kind is InteractionKind.CATEGORY_VIEW:
            return False

        async with self._lock:
            await self.storage.metrics.apply(interaction.product_key, lambda existing: record(existing, interaction))
        self.cache.invalidate()
        return True

    async def sync(self, events: Iterable[InteractionEvent]) -> int:
        accepted = 0
        for event in events:
            if await self.track(event):
                accepted += 1
        return accepted

    # config

    def _default_config(self) -> TrendingConfig:
        return TrendingConfig(isEnabled=True, updateInterval=self._default_interval, lastUpdate=self.clock())

    async def get_config(self) -> TrendingConfig:
        try:
            config = await self.storage.config.load()
        except StorageError as e:
            logger.warning("[config] Load failed, assuming enabled: %s", e)
            return self._default_config()
        return config or self._default_config()

    async def update_config(
        self,
        update_interval: Optional[int] = None,
        is_enabled: Optional[bool] = None,
    ) -> TrendingConfig:
        config = await self.get_config()
        if update_interval is not None:
            config.updateInterval = update_interval
        if is_enabled is not None:
            config.isEnabled = is_enabled
        config.lastUpdate = self.clock()
        await self.storage.config.save(config)
        return config

    @staticmethod
    def _public_config(config: TrendingConfig) -> Dict[str, Any]:
        return {"updateInterval": config.updateInterval, "isEnabled": config.isEnabled}

    # reads

    async def get_trending(
        self,
        limit: int = 5,
        brand: Optional[str] = None,
        force: bool = False,
    ) -> TrendingResponse:
        config = await self.get_config()
        if not config.isEnabled:
            return TrendingResponse(trending=[], totalProducts=0, lastUpdated=config.lastUpdate, disabled=True)

        brand = brand.strip() if brand else None
        now = self.clock()
        try:
            all_metrics = await self.storage.metrics.list_all()
        except StorageError as e:
            logger.error("[trending] Could not read metrics: %s", e)
            return TrendingResponse(lastUpdated=now, error="Failed to get trending products")

        current = fingerprint(all_metrics)
        cache_key = (limit, brand.lower() if brand else None)

        if not force:
            hit = self.cache.get(cache_key, current, now)
            if hit is not None:
                logger.debug("[trending] Cache hit for %s", cache_key)
                entries = refresh_badge_timers(hit.entries, hit.badge_until, now)
                return TrendingResponse(
                    trending=entries,
                    totalProducts=len(entries),
                    lastUpdated=hit.built_at,
                    cached=True,
                    config=self._public_config(config),
                )

        logger.info("[trending] Rebuilding trending list (force=%s)", force)
        try:
            existing_badges = await self.storage.badges.list_all()
            result = badge_manager.reconcile(all_metrics, existing_badges, now)
            await self._persist_badges(result)
        except StorageError as e:
            logger.error("[trending] Badge reconciliation failed: %s", e)
            return TrendingResponse(lastUpdated=now, error="Failed to get trending products")

        selected = [
            m for m in badge_manager.rank(all_metrics)
            if not brand or m.brand.lower() == brand.lower()
        ][:limit]
        catalog = await self.catalog.get_catalog()
        entries = enrich_all(selected, catalog, result.active, now)
        badge_until = {e.productId: result.active[e.productId].active_until for e in entries if e.hasFireBadge}

        self.cache.set(
            cache_key,
            CachedTrendingResult(entries=entries, fingerprint=current, built_at=now, badge_until=badge_until),
        )

        config.lastUpdate = now
        try:
            await self.storage.config.save(config)
        except StorageError as e:
            logger.warning("[config] Could not stamp last update: %s", e)

        return TrendingResponse(
            trending=entries,
            totalProducts=len(entries),
            lastUpdated=now,
            cached=False,
            config=self._public_config(config),
        )

    async def _persist_badges(self, result: badge_manager.BadgeReconciliation) -> None:
        for key in result.removed:
            await self.storage.badges.delete(key)
        for key in result.changed:
            await self.storage.badges.set(key, result.active[key])

    # admin

    async def force_recompute(self) -> Tuple[int, int]:
        now = self.clock()
        updated = 0
        async with self._lock:
            all_metrics = await self.storage.metrics.list_all()
            for metrics in all_metrics:
                recompute(metrics, now)
                try:
                    await self.storage.metrics.set(metrics.product_key, metrics)
                    updated += 1
                except StorageError as e:
                    logger.warning("[admin] Recompute failed for %s: %s", metrics.product_key, e)
        # scores moved without any counter changing, so the fingerprint would not notice
        self.cache.invalidate()
        await self._touch_config()
        return updated, len(all_metrics)

    async def clear_all(self) -> Tuple[int, int]:
        cleared = 0
        async with self._lock:
            all_metrics = await self.storage.metrics.list_all()
            for metrics in all_metrics:
                try:
                    if await self.storage.metrics.delete(metrics.product_key):
                        cleared += 1
                except StorageError as e:
                    logger.warning("[admin] Delete failed for %s: %s", metrics.product_key, e)
        await self._touch_config()
        logger.info("[admin] Cleared %d/%d product metrics", cleared, len(all_metrics))
        return cleared, len(all_metrics)

    async def force_clear(self) -> Tuple[int, int]:
        cleared, total = await self.clear_all()
        try:
            for badge in await self.storage.badges.list_all():
                try:
                    await self.storage.badges.delete(badge.product_key)
                except StorageError as e:
                    logger.warning("[admin] Badge delete failed for %s: %s", badge.product_key, e)
        except StorageError as e:
            logger.error("[admin] Could not list badges after clearing %d/%d metrics: %s", cleared, total, e)
        self.cache.invalidate()
        logger.info("[admin] Force cleared trending data, badges and cache")
        return cleared, total

    async def _touch_config(self) -> None:
        try:
            config = await self.get_config()
            config.lastUpdate = self.clock()
            await self.storage.config.save(config)
        except StorageError as e:
            logger.warning("[config] Could not stamp last update: %s", e)

    async def describe(self) -> Dict[str, Any]:
        config = await self.get_config()
        all_metrics = await self.storage.metrics.list_all()
        return {
            "config": config.model_dump(mode="json"),
            "metricsCount": len(all_metrics),
            "sampleMetrics": [m.model_dump(mode="json") for m in all_metrics[:3]],
            "weights": WEIGHTS,
        }

    def sample_calculation(self, views: int = 7, clicks: int = 3, searches: int = 0) -> Dict[str, Any]:
        now = self.clock()
        sample = ProductMetrics(
            product_key="test-product",
            brand="Test",
            name="Test Product",
            total_views=views,
            total_clicks=clicks,
            total_searches=searches,
            last_interaction_at=now,
        )
        return {
            "views": views,
            "clicks": clicks,
            "searches": searches,
            "score": compute_score(sample, now),
            "breakdown": score_breakdown(views, clicks, searches),
        }

    async def debug_snapshot(self) -> Dict[str, Any]:
        all_metrics = await self.storage.metrics.list_all()
        active_badges = await self.storage.badges.list_all()
        current = fingerprint(all_metrics)
        cached = self.cache.fingerprints()
        return {
            "totalProducts": len(all_metrics),
            "products": [
                {
                    "key": m.product_key,
                    "brand": m.brand,
                    "name": m.name,
                    "views": m.total_views,
                    "clicks": m.total_clicks,
                    "searches": m.total_searches,
                    "score": m.score,
                    "lastInteraction": m.last_interaction_at.isoformat(),
                }
                for m in all_metrics
            ],
            "fireBadges": [b.model_dump(mode="json") for b in active_badges],
            "cacheStatus": {
                "hasCachedData": bool(cached),
                "currentHash": current,
                "cachedHashes": cached,
                "cacheIsValid": bool(cached) and all(h == current for h in cached.values()),
            },
        }
