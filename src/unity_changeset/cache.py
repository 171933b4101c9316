from __future__ import annotations

import json
import time
from typing import Any, Callable, Dict, Optional, Tuple


def cache_key(query: str, variables: Dict[str, Any]) -> str:
    return json.dumps({"query": query, "variables": variables}, sort_keys=True, default=str)


class ResponseCache:
    """
    One entry per key, valid for ``ttl_seconds`` after it was stored.
    Expired entries are dropped when read; nothing else evicts.
    """

    def __init__(self, ttl_seconds: float = 300.0, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._entries: Dict[str, Tuple[float, Any]] = {}

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if self.clock() - stored_at < self.ttl_seconds:
            return value
        self._entries.pop(key, None)
        return None

    def put(self, key: str, value: Any, timestamp: Optional[float] = None) -> None:
        self._entries[key] = (self.clock() if timestamp is None else timestamp, value)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
