import asyncio
from typing import Callable, Dict, Generic, List, Optional, Protocol, TypeVar

from pydantic import BaseModel

from hotrank.models import FireBadge, ProductMetrics, TrendingConfig

T = TypeVar("T", bound=BaseModel)


class StorageError(RuntimeError):
    """Raised by a backend when the underlying store cannot be reached."""


class Repository(Protocol[T]):
    async def get(self, key: str) -> Optional[T]: ...

    async def set(self, key: str, value: T) -> None: ...

    async def apply(self, key: str, mutate: Callable[[Optional[T]], T]) -> T: ...

    async def delete(self, key: str) -> bool: ...

    async def list_all(self) -> List[T]: ...


class ConfigRepository(Protocol):
    async def load(self) -> Optional[TrendingConfig]: ...

    async def save(self, config: TrendingConfig) -> None: ...


class InMemoryRepository(Generic[T]):
    """Process-local table. Lost on restart; iteration follows insertion order."""

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._items: Dict[str, T] = {}

    async def get(self, key: str) -> Optional[T]:
        async with self._lock:
            item = self._items.get(key)
            return item.model_copy(deep=True) if item is not None else None

    async def set(self, key: str, value: T) -> None:
        async with self._lock:
            self._items[key] = value.model_copy(deep=True)

    async def apply(self, key: str, mutate: Callable[[Optional[T]], T]) -> T:
        """Read-modify-write under the table lock; ``mutate`` gets a private copy."""
        async with self._lock:
            current = self._items.get(key)
            value = mutate(current.model_copy(deep=True) if current is not None else None)
            self._items[key] = value.model_copy(deep=True)
            return value

    async def delete(self, key: str) -> bool:
        async with self._lock:
            return self._items.pop(key, None) is not None

    async def list_all(self) -> List[T]:
        async with self._lock:
            return [v.model_copy(deep=True) for v in self._items.values()]


class InMemoryConfigRepository:
    def __init__(self) -> None:
        self._config: Optional[TrendingConfig] = None

    async def load(self) -> Optional[TrendingConfig]:
        return self._config.model_copy() if self._config else None

    async def save(self, config: TrendingConfig) -> None:
        self._config = config.model_copy()


class TrendingStorage:
    def __init__(
        self,
        metrics: Repository[ProductMetrics],
        badges: Repository[FireBadge],
        config: ConfigRepository,
    ) -> None:
        self.metrics = metrics
        self.badges = badges
        self.config = config


def memory_storage() -> TrendingStorage:
    return TrendingStorage(
        metrics=InMemoryRepository[ProductMetrics](),
        badges=InMemoryRepository[FireBadge](),
        config=InMemoryConfigRepository(),
    )
