"""
DEDUPLICATOR

Bounded seen-set of token mints shared across autopost cycles.

Once the set grows past max_size the oldest entries are evicted first, so
a token that dropped out long ago can be offered again.
"""

import threading
from collections import OrderedDict
from datetime import datetime
from typing import Dict


class Deduplicator:
    """Tracks recently offered mints to suppress cross-recipient repeats."""

    def __init__(self, config: Dict = None):
        self.config = config or {}
        self.max_size = self.config.get('max_seen_tokens', 500)

        # mint -> first seen
        self._seen: "OrderedDict[str, datetime]" = OrderedDict()
        self._lock = threading.Lock()

        self.stats = {
            'duplicates': 0,
            'evictions': 0,
        }

    def is_seen(self, mint: str) -> bool:
        with self._lock:
            if mint in self._seen:
                self.stats['duplicates'] += 1
                return True
            return False

    def mark_seen(self, mint: str):
        with self._lock:
            if mint in self._seen:
                return
            self._seen[mint] = datetime.now()
            while len(self._seen) > self.max_size:
                self._seen.popitem(last=False)
                self.stats['evictions'] += 1

    def clear(self):
        with self._lock:
            self._seen.clear()

    def __contains__(self, mint: str) -> bool:
        return mint in self._seen

    def __len__(self) -> int:
        return len(self._seen)

    def get_stats(self) -> Dict:
        return {
            'tracked_tokens': len(self._seen),
            'max_size': self.max_size,
            **self.stats,
        }
