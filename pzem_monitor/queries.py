# pzem_monitor/queries.py
from datetime import datetime, timedelta
from typing import Optional

from .config import HISTORY_DEFAULT_LIMIT, HISTORY_MAX_LIMIT
from .store import MeasurementStore

DAY = timedelta(hours=24)
MONTH = timedelta(days=30)

# Keeps (page - 1) * limit inside a 64-bit OFFSET
MAX_PAGE = 10 ** 12


def clamp_page(page: Optional[int]) -> int:
    if not page or page < 1:
        return 1
    return min(page, MAX_PAGE)


def clamp_limit(limit: Optional[int], default: int = HISTORY_DEFAULT_LIMIT,
                maximum: int = HISTORY_MAX_LIMIT) -> int:
    if not limit:
        return default
    return max(1, min(maximum, limit))


class QueryEngine:
    def __init__(self, store: MeasurementStore, default_limit: int = HISTORY_DEFAULT_LIMIT,
                 max_limit: int = HISTORY_MAX_LIMIT):
        self.store = store
        self.default_limit = default_limit
        self.max_limit = max_limit

    def latest(self, device_id: Optional[str] = None):
        return self.store.latest(device_id)

    # Older dashboards still call /last-one
    last_one = latest

    def history(self, device_id: Optional[str] = None, start: Optional[datetime] = None,
                end: Optional[datetime] = None, page: Optional[int] = None,
                limit: Optional[int] = None) -> dict:
        """
        Newest-first page of measurements. `total` is counted with the same
        filter but in a separate query, so a concurrent insert can make it
        disagree with the page by one.
        """
        page = clamp_page(page)
        limit = clamp_limit(limit, self.default_limit, self.max_limit)

        total = self.store.count(device_id, start, end)
        records = self.store.find(device_id, start, end, skip=(page - 1) * limit, limit=limit)
        return {"page": page, "limit": limit, "total": total, "records": records}

    def usage(self, now: Optional[datetime] = None, device_id: Optional[str] = None) -> dict:
        """Energy booked over the last 24 hours and last 30 days, by insertion time."""
        now = now or self.store.clock()
        return {
            "last24hUsage": self.store.sum_energy(now - DAY, now, device_id),
            "last30dUsage": self.store.sum_energy(now - MONTH, now, device_id),
        }
