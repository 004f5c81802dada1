"""
Chat analytics.

Summaries are recomputed from a single store snapshot on every request.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from app.core.config import Settings, get_settings
from app.core.logger import setup_logger
from app.interfaces.chat_session_repository import IChatSessionRepository
from app.models.analytics import (
    UNASSIGNED_BUCKET,
    AnalyticsSnapshot,
    AnalyticsSummary,
    DepartmentStat,
    TopRatedChat,
)
from app.models.enums import OPEN_STATUSES, TERMINAL_STATUSES
from app.utils.datetime_utils import ensure_utc, now_utc, seconds_between, window_start

logger = setup_logger(__name__)

RATING_VALUES = range(1, 6)
TOP_RATED_MIN = 4


def _mean(values: list[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def build_summary(
    snapshot: AnalyticsSnapshot,
    since: datetime,
    top_limit: int = 10,
) -> AnalyticsSummary:
    """Fold a snapshot into a summary. Pure; no store access."""
    sessions = snapshot.sessions
    total = len(sessions)
    active = sum(1 for s in sessions if s.status in OPEN_STATUSES)
    resolved = sum(1 for s in sessions if s.status in TERMINAL_STATUSES)

    ratings = [s.rating for s in sessions if s.rating is not None]
    rating_distribution = {value: 0 for value in RATING_VALUES}
    for rating in ratings:
        rating_distribution[rating] += 1

    response_times: list[float] = []
    resolution_times: list[float] = []
    message_total = 0
    for s in sessions:
        stats = snapshot.message_stats.get(s.id)
        if stats is not None:
            message_total += stats.message_count
            if stats.first_admin_at is not None:
                response_times.append(seconds_between(s.created_at, stats.first_admin_at))
        if s.resolved_at is not None and s.resolved_at <= snapshot.as_of:
            resolution_times.append(seconds_between(s.created_at, s.resolved_at))

    department_stats: dict[str, DepartmentStat] = {}
    for s in sessions:
        department = snapshot.departments.get(s.department_id) if s.department_id else None
        if department is None:
            if s.department_id is not None:
                logger.warning(f"Session {s.id} references missing department {s.department_id}")
            key = UNASSIGNED_BUCKET
            stat = department_stats.setdefault(key, DepartmentStat(name="Unassigned"))
        else:
            key = department.slug
            stat = department_stats.setdefault(
                key, DepartmentStat(department_id=department.id, name=department.name)
            )
        stat.count += 1
        if s.status in TERMINAL_STATUSES:
            stat.resolved += 1

    daily_volume: dict[str, int] = {}
    for s in sorted(sessions, key=lambda item: item.created_at):
        day = ensure_utc(s.created_at).date().isoformat()
        daily_volume[day] = daily_volume.get(day, 0) + 1

    top_rated = sorted(
        (s for s in sessions if s.rating is not None and s.rating >= TOP_RATED_MIN),
        key=lambda s: (s.rating, s.last_message_at),
        reverse=True,
    )[:top_limit]

    return AnalyticsSummary(
        since=since,
        generated_at=snapshot.as_of,
        total_chats=total,
        active_chats=active,
        resolved_chats=resolved,
        resolution_rate=round(resolved / total, 4) if total else 0.0,
        avg_rating=round(_mean(ratings), 1),
        avg_response_time=round(_mean(response_times)),
        avg_resolution_time=round(_mean(resolution_times)),
        avg_messages_per_chat=round(message_total / total, 1) if total else 0.0,
        department_stats=department_stats,
        daily_volume=daily_volume,
        rating_distribution=rating_distribution,
        top_rated_chats=[
            TopRatedChat(
                session_id=s.id,
                visitor_name=s.visitor_name,
                rating=s.rating,
                comment=s.rating_comment,
                last_message_at=s.last_message_at,
            )
            for s in top_rated
        ],
    )


class AnalyticsService:
    """Service for the admin chat dashboard."""

    def __init__(
        self,
        session_repo: IChatSessionRepository,
        settings: Optional[Settings] = None,
    ):
        self.session_repo = session_repo
        self.settings = settings or get_settings()

    async def summarize(
        self,
        days: Optional[int] = None,
        since: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> AnalyticsSummary:
        """
        Summarize sessions created in the trailing window.

        Args:
            days: Window length; defaults to ANALYTICS_DEFAULT_DAYS
            since: Explicit window start, overrides ``days``
            now: Snapshot time (tests pin this)
        """
        as_of = ensure_utc(now) if now else now_utc()
        if since is None:
            since = window_start(days or self.settings.ANALYTICS_DEFAULT_DAYS, now=as_of)
        since = ensure_utc(since)

        snapshot = await self.session_repo.load_analytics_snapshot(since=since, as_of=as_of)
        summary = build_summary(snapshot, since, top_limit=self.settings.ANALYTICS_TOP_RATED_LIMIT)
        logger.info(f"Analytics computed over {summary.total_chats} sessions since {since.isoformat()}")
        return summary
