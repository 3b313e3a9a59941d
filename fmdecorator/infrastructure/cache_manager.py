#!/usr/bin/env python3
"""Rule file source cache for fmdecorator.

This module provides the cache shared by the loader and the function
rule evaluator:
- Keys are rule file paths, used exactly as configured (no normalization)
- Values are the source text last read for that path
- Entries are never evicted or expired; a later write replaces the value
- Thread-safe operations (background loads write from worker threads)
- Hit/miss statistics

Example:
    >>> cache = RuleFileCache()
    >>> cache.set("rules/status.py", "lambda metadata: None")
    >>> cache.get("rules/status.py")
    'lambda metadata: None'
"""

import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from fmdecorator.core.constants import RuleFilePath, SourceText


@dataclass(frozen=True)
class CacheEntry:
    """Cached source text with the time it was stored."""

    path: RuleFilePath
    source: SourceText
    timestamp: float = field(default_factory=time.time)


class RuleFileCache:
    """Process-wide mapping of rule file path to source text.

    Constructed once per engine and passed by reference to every
    component that reads or fills it.
    """

    def __init__(self):
        self._entries: Dict[RuleFilePath, CacheEntry] = {}
        self._lock = threading.RLock()

        # Statistics
        self._hits = 0
        self._misses = 0
        self._writes = 0

    def get(self, path: RuleFilePath) -> Optional[SourceText]:
        """Get cached source.

        Args:
            path: Rule file path, as configured

        Returns:
            Source text or None if the path was never loaded
        """
        with self._lock:
            entry = self._entries.get(path)
            if entry is None:
                self._misses += 1
                return None
            self._hits += 1
            return entry.source

    def set(self, path: RuleFilePath, source: SourceText) -> None:
        """Store source text for a path, replacing any earlier value.

        Args:
            path: Rule file path
            source: Source text read for that path
        """
        with self._lock:
            self._entries[path] = CacheEntry(path=path, source=source)
            self._writes += 1

    def contains(self, path: RuleFilePath) -> bool:
        """Check presence without touching statistics."""
        with self._lock:
            return path in self._entries

    def __contains__(self, path: object) -> bool:
        return isinstance(path, str) and self.contains(path)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def keys(self) -> List[RuleFilePath]:
        """Get cached paths in insertion order."""
        with self._lock:
            return list(self._entries.keys())

    def get_entry(self, path: RuleFilePath) -> Optional[CacheEntry]:
        """Get the full entry (source and timestamp) for a path."""
        with self._lock:
            return self._entries.get(path)

    def clear(self) -> None:
        """Drop all entries. Only used on engine shutdown and in tests."""
        with self._lock:
            self._entries.clear()

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics.

        Returns:
            Dictionary with entries, hits, misses, writes and hit_rate
        """
        with self._lock:
            total_requests = self._hits + self._misses
            return {
                "entries": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
                "writes": self._writes,
                "hit_rate": self._hits / total_requests if total_requests > 0 else 0,
            }
