# hotrank/core/http_client.py
import csv
import io
import logging
import re
from typing import List, Optional

import httpx

from hotrank.models import CatalogItem
from .cache import TTLCache
from .config import settings

logger = logging.getLogger(__name__)

_WS = re.compile(r"\s+")


def _first(row: dict, *names: str) -> str:
    for n in names:
        v = (row.get(n) or "").strip()
        if v:
            return v
    return ""


def _to_int(raw: str, default: int = 1) -> int:
    try:
        return int(raw)
    except ValueError:
        return default


def _to_price(raw: str) -> float:
    try:
        return float(raw.replace("$", "").replace(",", ""))
    except ValueError:
        return 0.0


def parse_catalog_csv(text: str) -> List[CatalogItem]:
    """Rows without brand, sku or description are skipped."""
    reader = csv.DictReader(io.StringIO(text.strip()))
    if reader.fieldnames:
        reader.fieldnames = [h.strip().lower() for h in reader.fieldnames]

    items: List[CatalogItem] = []
    for row in reader:
        brand = _first(row, "brand")
        sku = _first(row, "sku")
        description = _first(row, "product description", "productdescription")
        if not (brand and sku and description):
            continue
        items.append(
            CatalogItem(
                id=_WS.sub("-", f"{brand}-{sku}".lower()),
                brand=brand,
                name=sku,
                description=description,
                grade=_first(row, "grade") or "Standard",
                min_qty=_to_int(_first(row, "qty")) or 1,
                price=_to_price(_first(row, "wholesale price")),
                category=_first(row, "category") or None,
            )
        )
    return items


class CatalogClient:

    def __init__(self, csv_url: Optional[str] = None, ttl_seconds: Optional[int] = None) -> None:
        self.csv_url = settings.catalog_csv_url if csv_url is None else csv_url
        self._timeout = httpx.Timeout(
            connect=settings.http_connect_timeout,
            read=settings.http_read_timeout,
            write=settings.http_write_timeout,
            pool=settings.http_pool_timeout,
        )
        self._client = httpx.AsyncClient(timeout=self._timeout, follow_redirects=True)
        self._cache = TTLCache(ttl_seconds=settings.catalog_ttl_seconds if ttl_seconds is None else ttl_seconds)

    async def _fetch(self) -> List[CatalogItem]:
        if not self.csv_url:
            return []
        resp = await self._client.get(self.csv_url)
        resp.raise_for_status()
        items = parse_catalog_csv(resp.text)
        logger.info("[catalog] Loaded %d items", len(items))
        return items

    async def get_catalog(self) -> List[CatalogItem]:
        try:
            return await self._cache.get_or_set("catalog", self._fetch)
        except httpx.HTTPError as e:
            logger.warning("[catalog] Fetch failed, enriching without catalog: %s", e)
            return []

    async def aclose(self):
        await self._client.aclose()
