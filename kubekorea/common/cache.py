import re
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Optional

DEFAULT_TTL = 5 * 60
DEFAULT_MAX_ENTRIES = 512


@dataclass
class CacheEntry:
    key: str
    data: Any
    timestamp: float
    ttl: float


class TTLCache:
    """
    목록/상세 조회 결과를 메모이즈하는 캐시.

    항목마다 TTL을 가지며, 조회 시 만료된 항목은 제거하고 None을 반환한다.
    최대 항목 수를 넘으면 가장 오래 사용되지 않은 항목부터 밀어낸다.
    """

    def __init__(
        self,
        default_ttl: float = DEFAULT_TTL,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.default_ttl = default_ttl
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()

    def _is_expired(self, entry: CacheEntry) -> bool:
        return self._clock() - entry.timestamp > entry.ttl

    def set(self, key: str, data: Any, ttl: Optional[float] = None) -> None:
        if key in self._entries:
            del self._entries[key]
        self._entries[key] = CacheEntry(
            key=key,
            data=data,
            timestamp=self._clock(),
            ttl=self.default_ttl if ttl is None else ttl,
        )
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def get(self, key: str) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return None

        if self._is_expired(entry):
            del self._entries[key]
            return None

        self._entries.move_to_end(key)
        return entry.data

    def get_or_set(self, key: str, factory: Callable[[], Any], ttl: Optional[float] = None) -> Any:
        cached = self.get(key)
        if cached is not None:
            return cached
        value = factory()
        if value is not None:
            self.set(key, value, ttl)
        return value

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)

    def invalidate_pattern(self, pattern: str) -> int:
        """정규식에 매칭되는 키만 제거하고 제거한 개수를 반환"""
        regex = re.compile(pattern)
        matched = [key for key in self._entries if regex.search(key)]
        for key in matched:
            del self._entries[key]
        return len(matched)

    def purge_expired(self) -> int:
        expired = [key for key, entry in self._entries.items() if self._is_expired(entry)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.has(key)
