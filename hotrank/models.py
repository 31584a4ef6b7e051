from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


UNKNOWN_BRAND = "Unknown"
MISSING_SENTINEL = "undefined"


class InteractionKind(str, Enum):
    PAGE_VIEW = "page_view"
    CATEGORY_VIEW = "category_view"
    PRODUCT_VIEW = "product_view"
    RESULT_CLICK = "result_click"
    SEARCH = "search"


class BadgePosition(str, Enum):
    FIRST = "first"
    SECOND = "second"
    THIRD = "third"
    NEW = "new"


TOP_POSITIONS = (BadgePosition.FIRST, BadgePosition.SECOND, BadgePosition.THIRD)


class InteractionEvent(BaseModel):
    """Raw tracking beacon payload. Every field is optional on purpose:
    bots and page-unload races send partial events and those must be
    absorbed by ingestion, not rejected by validation."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    type: Optional[str] = None
    productId: Optional[str] = None
    brand: Optional[str] = None
    searchTerm: Optional[str] = None
    category: Optional[str] = None
    sessionId: Optional[str] = None
    userId: Optional[str] = None


class NormalizedInteraction(BaseModel):
    kind: InteractionKind
    product_key: str
    brand: Optional[str] = None
    search_term: Optional[str] = None
    occurred_at: datetime


class ProductMetrics(BaseModel):
    product_key: str
    brand: str = UNKNOWN_BRAND
    name: str
    total_views: int = 0
    total_clicks: int = 0
    total_searches: int = 0
    last_interaction_at: datetime
    score: int = 0


class FireBadge(BaseModel):
    product_key: str
    position: BadgePosition
    active_from: datetime
    active_until: datetime
    is_active: bool = True


class CatalogItem(BaseModel):
    id: str
    name: str
    brand: str
    description: Optional[str] = None
    grade: Optional[str] = None
    min_qty: Optional[int] = None
    price: Optional[float] = None
    category: Optional[str] = None


class EnrichedEntry(BaseModel):
    productId: str
    brand: str
    name: str
    description: Optional[str] = None
    grade: Optional[str] = None
    minQty: Optional[int] = None
    totalViews: int
    totalClicks: int
    totalSearches: int
    lastInteraction: datetime
    trendingScore: int
    hasFireBadge: bool = False
    fireBadgePosition: Optional[BadgePosition] = None
    fireBadgeTimeRemaining: Optional[int] = None


class TrendingConfig(BaseModel):
    isEnabled: bool = True
    updateInterval: int = 5
    lastUpdate: datetime


class CachedTrendingResult(BaseModel):
    entries: List[EnrichedEntry]
    fingerprint: str
    built_at: datetime
    badge_until: Dict[str, datetime] = Field(default_factory=dict)


class TrendingResponse(BaseModel):
    trending: List[EnrichedEntry] = Field(default_factory=list)
    totalProducts: int = 0
    lastUpdated: datetime
    cached: Optional[bool] = None
    config: Optional[Dict[str, Any]] = None
    disabled: Optional[bool] = None
    error: Optional[str] = None


class TrackResponse(BaseModel):
    accepted: bool


class TrendingAction(BaseModel):
    model_config = ConfigDict(extra="ignore")

    action: Optional[str] = None
    interactions: Optional[List[InteractionEvent]] = None
    updateInterval: Optional[int] = None
    isEnabled: Optional[bool] = None
