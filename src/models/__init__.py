"""Church portal models - re-exports all public model classes.

The models are organized by concern:
    - cache.py      - Cached data accessor envelope and observable state
    - dashboard.py  - Admin dashboard statistics
"""

from __future__ import annotations

from src.models.cache import AccessorState, CacheEntry
from src.models.dashboard import DashboardStat, DashboardStats, DetailedStats

__all__ = [
    "AccessorState",
    "CacheEntry",
    "DashboardStat",
    "DashboardStats",
    "DetailedStats",
]
