"""
Column cache - Short-lived memo of table column lists.

Row listing validates filter and sort columns against the table's real
columns on every call. The lists are cached with TTL expiration and dropped
whenever the datasource is reconfigured.
"""
from typing import Callable, List
from cachetools import TTLCache
import threading

from ..constants import COLUMN_CACHE_MAXSIZE, COLUMN_CACHE_TTL_S


class ColumnCache:
    """
    TTL cache of column names keyed by driver, schema and table.

    Usage:
        cache = ColumnCache()
        names = cache.get_columns("postgres", "public", "orders", loader)
        cache.invalidate()  # after switching datasource
    """

    def __init__(self, ttl: int = COLUMN_CACHE_TTL_S, maxsize: int = COLUMN_CACHE_MAXSIZE):
        self._cache = TTLCache(maxsize=maxsize, ttl=ttl)
        self._lock = threading.RLock()

    @staticmethod
    def _cache_key(driver: str, schema: str, table: str) -> str:
        return f"{driver}:{schema.lower()}:{table.lower()}"

    def get_columns(self, driver: str, schema: str, table: str,
                    loader: Callable[[], List[str]]) -> List[str]:
        """Return cached column names, calling ``loader`` on a miss."""
        key = self._cache_key(driver, schema, table)
        with self._lock:
            if key in self._cache:
                return list(self._cache[key])
            result = loader()
            self._cache[key] = list(result)
            return list(result)

    def invalidate(self, driver: str = "", schema: str = "", table: str = "") -> None:
        """
        Drop cached entries.

        Args:
            driver: Limit to one driver (all entries when empty)
            schema: Together with ``table``, drop a single entry
            table: Table name
        """
        with self._lock:
            if not driver:
                self._cache.clear()
                return
            if table:
                self._cache.pop(self._cache_key(driver, schema, table), None)
                return
            prefix = f"{driver}:"
            for key in [k for k in self._cache.keys() if k.startswith(prefix)]:
                self._cache.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)
