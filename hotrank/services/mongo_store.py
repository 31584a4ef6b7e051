import logging
from typing import Any, Callable, Dict, List, Optional

from pymongo.errors import DuplicateKeyError, PyMongoError

from hotrank.core.db import get_database, trending_collections
from hotrank.models import FireBadge, ProductMetrics, TrendingConfig
from hotrank.services.store import StorageError, TrendingStorage

logger = logging.getLogger(__name__)

CONFIG_ID = "default"
MAX_APPLY_ATTEMPTS = 5


def _metrics_doc(m: ProductMetrics) -> Dict[str, Any]:
    return {
        "_id": m.product_key,
        "brand": m.brand,
        "name": m.name,
        "total_views": m.total_views,
        "total_clicks": m.total_clicks,
        "total_searches": m.total_searches,
        "trending_score": m.score,
        "last_interaction": m.last_interaction_at,
    }


def _metrics_from(doc: Dict[str, Any]) -> ProductMetrics:
    return ProductMetrics(
        product_key=doc["_id"],
        brand=doc.get("brand") or "Unknown",
        name=doc.get("name") or doc["_id"],
        total_views=doc.get("total_views", 0),
        total_clicks=doc.get("total_clicks", 0),
        total_searches=doc.get("total_searches", 0),
        score=doc.get("trending_score", 0),
        last_interaction_at=doc["last_interaction"],
    )


def _badge_doc(b: FireBadge) -> Dict[str, Any]:
    return {
        "_id": b.product_key,
        "position": b.position.value,
        "start_time": b.active_from,
        "end_time": b.active_until,
        "is_active": b.is_active,
    }


def _badge_from(doc: Dict[str, Any]) -> FireBadge:
    return FireBadge(
        product_key=doc["_id"],
        position=doc["position"],
        active_from=doc["start_time"],
        active_until=doc["end_time"],
        is_active=doc.get("is_active", True),
    )


class MongoRepository:
    """Keyed table on a motor collection; the document ``_id`` is the product key."""

    def __init__(
        self,
        coll,
        to_doc: Callable[[Any], Dict[str, Any]],
        from_doc: Callable[[Dict[str, Any]], Any],
    ) -> None:
        self._coll = coll
        self._to_doc = to_doc
        self._from_doc = from_doc

    async def get(self, key: str):
        try:
            doc = await self._coll.find_one({"_id": key})
        except PyMongoError as e:
            raise StorageError(f"find_one failed for {key}: {e}") from e
        return self._from_doc(doc) if doc else None

    async def set(self, key: str, value) -> None:
        doc = self._to_doc(value)
        doc.pop("_id", None)
        try:
            await self._coll.update_one({"_id": key}, {"$set": doc, "$inc": {"version": 1}}, upsert=True)
        except PyMongoError as e:
            raise StorageError(f"update_one failed for {key}: {e}") from e

    async def apply(self, key: str, mutate: Callable[[Optional[Any]], Any]):
        """Optimistic read-modify-write: the write only lands if ``version`` is unchanged.

        Another process writing the same key in between makes the replace
        match nothing, and the whole read-mutate-write is retried on fresh data.
        """
        for attempt in range(1, MAX_APPLY_ATTEMPTS + 1):
            try:
                doc = await self._coll.find_one({"_id": key})
                value = mutate(self._from_doc(doc) if doc else None)
                new_doc = self._to_doc(value)
                if doc is None:
                    new_doc["version"] = 1
                    await self._coll.insert_one(new_doc)
                    return value
                version = doc.get("version")
                new_doc["version"] = (version or 0) + 1
                res = await self._coll.replace_one({"_id": key, "version": version}, new_doc)
                if res.matched_count:
                    return value
            except DuplicateKeyError:
                # inserted concurrently; retry as an update
                pass
            except PyMongoError as e:
                raise StorageError(f"apply failed for {key}: {e}") from e
            logger.debug("[storage] Write conflict on %s, attempt %d", key, attempt)
        raise StorageError(f"gave up on {key} after {MAX_APPLY_ATTEMPTS} conflicting writes")

    async def delete(self, key: str) -> bool:
        try:
            res = await self._coll.delete_one({"_id": key})
        except PyMongoError as e:
            raise StorageError(f"delete_one failed for {key}: {e}") from e
        return res.deleted_count > 0

    async def list_all(self) -> List[Any]:
        try:
            docs = await self._coll.find({}).to_list(length=None)
        except PyMongoError as e:
            raise StorageError(f"find failed: {e}") from e
        return [self._from_doc(d) for d in docs]


class MongoConfigRepository:
    def __init__(self, coll) -> None:
        self._coll = coll

    async def load(self) -> Optional[TrendingConfig]:
        try:
            doc = await self._coll.find_one({"_id": CONFIG_ID})
        except PyMongoError as e:
            raise StorageError(f"config load failed: {e}") from e
        if not doc:
            return None
        return TrendingConfig(
            isEnabled=doc.get("is_enabled", True),
            updateInterval=doc.get("update_interval", 5),
            lastUpdate=doc["last_update"],
        )

    async def save(self, config: TrendingConfig) -> None:
        doc = {
            "_id": CONFIG_ID,
            "is_enabled": config.isEnabled,
            "update_interval": config.updateInterval,
            "last_update": config.lastUpdate,
        }
        try:
            await self._coll.replace_one({"_id": CONFIG_ID}, doc, upsert=True)
        except PyMongoError as e:
            raise StorageError(f"config save failed: {e}") from e


def mongo_storage(db=None) -> TrendingStorage:
    if db is None:
        db = get_database()
    products_coll, badges_coll, config_coll = trending_collections(db)
    logger.info("[storage] Using mongo collections in %s", db.name)
    return TrendingStorage(
        metrics=MongoRepository(products_coll, _metrics_doc, _metrics_from),
        badges=MongoRepository(badges_coll, _badge_doc, _badge_from),
        config=MongoConfigRepository(config_coll),
    )
