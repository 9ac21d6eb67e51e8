"""Admin dashboard statistics models.

Field names are snake_case in Python and camelCase on the wire (the admin
panel reads ``totalMembers.count``), via ``alias_generator=to_camel``.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class DashboardStat(_CamelModel):
    """One dashboard card: a number, its caption and a short trend line."""

    count: int
    label: str
    change: str


class DetailedStats(_CamelModel):
    total_sermons: int = 0
    total_devotionals: int = 0
    total_testimonies: int = 0
    recent_members_count: int = 0
    recent_sermons_count: int = 0
    recent_devotionals_count: int = 0


class DashboardStats(_CamelModel):
    """Full payload of ``GET /api/admin/dashboard-stats``."""

    total_members: DashboardStat
    pending_testimonies: DashboardStat
    active_events: DashboardStat
    recent_content: DashboardStat
    total_departments: DashboardStat
    detailed_stats: DetailedStats
