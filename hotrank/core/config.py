from typing import Optional

from pydantic import BaseModel
import os
from dotenv import load_dotenv

load_dotenv()


def _optional_int(name: str) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    return int(raw)


class Settings(BaseModel):
    port: int = int(os.getenv("PORT", "8080"))

    storage_backend: str = os.getenv("STORAGE_BACKEND", "memory")

    mongo_uri: str = os.getenv("MONGO_URI", "mongodb://localhost:27017")
    mongo_db: str = os.getenv("MONGO_DB", "hotrank")

    catalog_csv_url: str = os.getenv("CATALOG_CSV_URL", "")
    catalog_ttl_seconds: int = int(os.getenv("CATALOG_TTL_SECONDS", "60"))

    # None means "pick by backend": no TTL in memory, 2 minutes for mongo
    trending_cache_ttl_seconds: Optional[int] = _optional_int("TRENDING_CACHE_TTL_SECONDS")
    trending_update_interval: int = int(os.getenv("TRENDING_UPDATE_INTERVAL", "5"))

    http_connect_timeout: float = float(os.getenv("HTTP_CONNECT_TIMEOUT", "5"))
    http_read_timeout: float = float(os.getenv("HTTP_READ_TIMEOUT", "15"))
    http_write_timeout: float = float(os.getenv("HTTP_WRITE_TIMEOUT", "15"))
    http_pool_timeout: float = float(os.getenv("HTTP_POOL_TIMEOUT", "5"))

    def cache_ttl(self) -> Optional[int]:
        if self.trending_cache_ttl_seconds is not None:
            return self.trending_cache_ttl_seconds
        if self.storage_backend == "mongo":
            return 120
        return None


settings = Settings()
