"""Admin dashboard statistics.

Pulls six collections from the backend in parallel and reduces them to the
five dashboard cards plus a detailed breakdown.  A collection the backend
refuses (non-2xx) counts as empty rather than failing the whole dashboard;
only a transport failure aborts it.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta, timezone
from typing import Any

import structlog

from src.models.dashboard import DashboardStat, DashboardStats, DetailedStats
from src.providers.backend.church_api_client import ChurchApiClient, extract_results
from src.utils.errors import BackendError, BackendUnavailableError
from src.utils.logging import get_logger

DEFAULT_PENDING_STATUSES = ("pending", "submitted", "draft", "new", "waiting", "review")

_COLLECTION_PATHS: dict[str, str] = {
    "members": "/admin-panel/members/",
    "testimonies": "/admin-panel/testimonies/",
    "events": "/admin-panel/events/",
    "sermons": "/admin-panel/sermons/",
    "devotionals": "/admin-panel/devotionals/",
    "departments": "/departments/",
}


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)  # noqa: UP017


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 date or datetime string; naive values are taken as UTC.

    Returns ``None`` for anything unparseable so it never counts as recent.
    """
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)  # noqa: UP017
    return parsed


def _first_timestamp(item: dict[str, Any], *keys: str) -> datetime | None:
    # Mirrors "created_at || upload_date": the first non-empty field wins.
    for key in keys:
        if item.get(key):
            return parse_timestamp(item[key])
    return None


def _count_since(items: Iterable[Any], since: datetime, *keys: str) -> int:
    count = 0
    for item in items:
        if not isinstance(item, dict):
            continue
        stamp = _first_timestamp(item, *keys)
        if stamp is not None and stamp >= since:
            count += 1
    return count


class DashboardService:
    """Computes :class:`DashboardStats` for an authenticated admin.

    Parameters
    ----------
    api_client:
        Backend client used for the six collection fetches.
    recent_window_days:
        How far back "recent" members and content reach.
    pending_statuses:
        Testimony statuses counted as awaiting review.  A testimony with no
        status at all is also counted.
    clock:
        Returns the current aware datetime; injectable for tests.
    """

    def __init__(
        self,
        api_client: ChurchApiClient,
        recent_window_days: int = 30,
        pending_statuses: Iterable[str] = DEFAULT_PENDING_STATUSES,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._api = api_client
        self._recent_window = timedelta(days=recent_window_days)
        self._pending_statuses = frozenset(s.lower() for s in pending_statuses)
        self._clock = clock
        self._logger: structlog.BoundLogger = get_logger(__name__)

    async def compute(self, authorization: str) -> DashboardStats:
        """Fetch every collection and build the dashboard payload.

        Raises
        ------
        BackendError
            When the backend cannot be reached at all (status 500,
            "Failed to fetch dashboard statistics").
        """
        try:
            collections = await self._fetch_all(authorization)
        except BackendUnavailableError as exc:
            self._logger.error("dashboard_fetch_failed", error=str(exc))
            raise BackendError(
                message="Failed to fetch dashboard statistics",
                provider_name=exc.provider_name,
                status_code=500,
            ) from exc

        stats = self.summarize(collections)
        self._logger.info(
            "dashboard_computed",
            members=stats.total_members.count,
            pending_testimonies=stats.pending_testimonies.count,
            active_events=stats.active_events.count,
        )
        return stats

    def summarize(self, collections: dict[str, list[Any]]) -> DashboardStats:
        """Reduce already-fetched collections to dashboard statistics."""
        now = self._clock()
        since = now - self._recent_window

        members = collections.get("members", [])
        testimonies = collections.get("testimonies", [])
        events = collections.get("events", [])
        sermons = collections.get("sermons", [])
        devotionals = collections.get("devotionals", [])
        departments = collections.get("departments", [])

        pending = sum(1 for t in testimonies if self._is_pending(t))
        active_events = 0
        for event in events:
            event_date = parse_timestamp(event.get("event_date")) if isinstance(event, dict) else None
            if event_date is not None and event_date >= now:
                active_events += 1

        recent_members = _count_since(members, since, "created_at")
        recent_sermons = _count_since(sermons, since, "created_at", "upload_date")
        recent_devotionals = _count_since(devotionals, since, "created_at", "publish_date")

        return DashboardStats(
            total_members=DashboardStat(
                count=len(members),
                label="Total Members",
                change=f"+{recent_members} this month" if recent_members > 0 else "No new members",
            ),
            pending_testimonies=DashboardStat(
                count=pending,
                label="Pending Testimonies",
                change="Awaiting review" if pending > 0 else "All reviewed",
            ),
            active_events=DashboardStat(
                count=active_events,
                label="Active Events",
                change=f"{active_events} upcoming",
            ),
            recent_content=DashboardStat(
                count=recent_sermons + recent_devotionals,
                label="Recent Content",
                change=f"{recent_sermons} sermons, {recent_devotionals} devotionals",
            ),
            total_departments=DashboardStat(
                count=len(departments),
                label="Departments",
                change="Church departments",
            ),
            detailed_stats=DetailedStats(
                total_sermons=len(sermons),
                total_devotionals=len(devotionals),
                total_testimonies=len(testimonies),
                recent_members_count=recent_members,
                recent_sermons_count=recent_sermons,
                recent_devotionals_count=recent_devotionals,
            ),
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _fetch_all(self, authorization: str) -> dict[str, list[Any]]:
        names = list(_COLLECTION_PATHS)
        responses = await asyncio.gather(
            *(
                self._api.request("GET", _COLLECTION_PATHS[name], authorization=authorization)
                for name in names
            )
        )
        collections: dict[str, list[Any]] = {}
        for name, upstream in zip(names, responses):
            if not upstream.ok:
                self._logger.warning(
                    "dashboard_collection_unavailable",
                    collection=name,
                    status=upstream.status_code,
                )
                collections[name] = []
                continue
            collections[name] = extract_results(upstream.payload)
        return collections

    def _is_pending(self, testimony: Any) -> bool:
        if not isinstance(testimony, dict):
            return False
        status = testimony.get("status")
        if not status:
            return True
        return str(status).lower() in self._pending_statuses
