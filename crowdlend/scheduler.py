"""
scheduler.py - Threshold-Expiry Index

Day-bucketed index of campaigns whose funding window closes on a given day.

Design:
- A campaign id is registered once, when its funding window opens, under
  day ``floor(now / day_length) + max_funding_days``
- The index holds ids only; it never owns or reads campaign records
- drain() removes every bucket up to and including ``today`` and returns
  the ids in day order, so a second drain for the same day returns nothing
- Buckets for days the external trigger skipped are drained on the next call
"""

from __future__ import annotations
from typing import Dict, List, Optional


class ExpiryIndex:
    """Map of day number -> campaign ids expected to expire that day."""

    def __init__(self):
        self._buckets: Dict[int, List[int]] = {}

    @staticmethod
    def day_of(timestamp: int, day_length: int) -> int:
        return timestamp // day_length

    def register(self, campaign_id: int, day: int) -> None:
        if day < 0:
            raise ValueError(f"day cannot be negative, got {day}")
        bucket = self._buckets.setdefault(day, [])
        if campaign_id not in bucket:
            bucket.append(campaign_id)

    def bucket(self, day: int) -> List[int]:
        return list(self._buckets.get(day, []))

    def due_days(self, today: int) -> List[int]:
        """Days with a non-empty bucket at or before ``today``, oldest first."""
        return sorted(day for day, ids in self._buckets.items() if day <= today and ids)

    def has_due(self, today: int) -> bool:
        return bool(self.due_days(today))

    def drain(self, today: int) -> List[int]:
        """Remove and return every id due at or before ``today``."""
        drained: List[int] = []
        for day in self.due_days(today):
            drained.extend(self._buckets.pop(day))
        return drained

    def pending_count(self) -> int:
        return sum(len(ids) for ids in self._buckets.values())

    def peek_next_day(self) -> Optional[int]:
        """Earliest day with a registered id, or None."""
        days = [day for day, ids in self._buckets.items() if ids]
        return min(days) if days else None
