"""Per-plan quotas. ``None`` means unlimited."""
from __future__ import annotations

from dataclasses import dataclass

from podhost.errors import AppError
from podhost.models import Plan


@dataclass(frozen=True)
class PlanLimits:
    max_podcasts: int | None
    max_episodes_per_podcast: int | None
    max_episode_duration_seconds: int | None
    max_monthly_plays: int | None


@dataclass(frozen=True)
class LimitCheck:
    allowed: bool
    reason: str | None = None
    current: int | None = None
    limit: int | None = None


PLAN_LIMITS: dict[str, PlanLimits] = {
    Plan.free.value: PlanLimits(
        max_podcasts=2,
        max_episodes_per_podcast=10,
        max_episode_duration_seconds=1800,
        max_monthly_plays=10_000,
    ),
    Plan.starter.value: PlanLimits(
        max_podcasts=5,
        max_episodes_per_podcast=50,
        max_episode_duration_seconds=7200,
        max_monthly_plays=100_000,
    ),
    Plan.pro.value: PlanLimits(
        max_podcasts=None,
        max_episodes_per_podcast=None,
        max_episode_duration_seconds=None,
        max_monthly_plays=None,
    ),
}

ANALYTICS_PLANS = {Plan.starter.value, Plan.pro.value}

_ALLOWED = LimitCheck(True)


def get_plan_limits(plan: str) -> PlanLimits:
    # Unknown plans get the most restrictive table.
    return PLAN_LIMITS.get(plan, PLAN_LIMITS[Plan.free.value])


def _plan_label(plan: str) -> str:
    return plan.capitalize() if plan in PLAN_LIMITS else "Free"


def check_podcast_limit(current_count: int, plan: str) -> LimitCheck:
    limit = get_plan_limits(plan).max_podcasts
    if limit is not None and current_count >= limit:
        return LimitCheck(False, f"{_plan_label(plan)} plan allows up to {limit} podcasts", current_count, limit)
    return _ALLOWED


def check_episode_limit(current_count: int, plan: str) -> LimitCheck:
    limit = get_plan_limits(plan).max_episodes_per_podcast
    if limit is not None and current_count >= limit:
        return LimitCheck(
            False, f"{_plan_label(plan)} plan allows up to {limit} episodes per podcast", current_count, limit
        )
    return _ALLOWED


def check_episode_duration(duration_seconds: int, plan: str) -> LimitCheck:
    limit = get_plan_limits(plan).max_episode_duration_seconds
    if limit is not None and duration_seconds > limit:
        return LimitCheck(
            False,
            f"{_plan_label(plan)} plan allows episodes up to {limit // 60} minutes",
            duration_seconds,
            limit,
        )
    return _ALLOWED


def check_monthly_play_limit(current_plays: int, plan: str) -> LimitCheck:
    limit = get_plan_limits(plan).max_monthly_plays
    if limit is not None and current_plays >= limit:
        return LimitCheck(False, f"Monthly play limit of {limit:,} reached", current_plays, limit)
    return _ALLOWED


def can_access_analytics(plan: str) -> bool:
    return plan in ANALYTICS_PLANS


def enforce(check: LimitCheck, field: str) -> None:
    """Raise 403 ``plan_limit_exceeded`` for a failed check."""
    if check.allowed:
        return
    raise AppError(
        403,
        "plan_limit_exceeded",
        check.reason or "Plan limit exceeded",
        [{"field": field, "reason": "limit_exceeded", "current": check.current, "limit": check.limit}],
    )
