"""Weekly-hours capacity accounting for organization members."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING, Literal

from app.core.config import settings
from app.core.logging import get_logger
from app.services.errors import CapacityExceededError

if TYPE_CHECKING:
    from uuid import UUID

    from app.models.engagements import ProjectEngagement
    from app.models.organization_members import OrganizationMember

logger = get_logger(__name__)

EngagementStatus = Literal["inactive", "upcoming", "active", "completed"]


@dataclass(frozen=True)
class AvailabilitySummary:
    """Point-in-time utilization of one member."""

    total_hours: float
    engaged_hours: float
    available_hours: float
    active_engagements_count: int
    utilization_percentage: float


def member_capacity(member: OrganizationMember) -> float:
    """Return declared weekly hours, falling back to the configured default."""
    if member.working_hours_per_week is None:
        return settings.default_working_hours_per_week
    return float(member.working_hours_per_week)


def committed_hours(
    engagements: Iterable[ProjectEngagement],
    *,
    exclude_engagement_id: UUID | None = None,
) -> float:
    return sum(
        engagement.hours_per_week
        for engagement in engagements
        if engagement.is_active and engagement.id != exclude_engagement_id
    )


def check_capacity(
    member: OrganizationMember,
    proposed_hours: float,
    active_engagements: Iterable[ProjectEngagement],
    *,
    exclude_engagement_id: UUID | None = None,
) -> float:
    """Validate `proposed_hours` fits in the member's remaining capacity.

    Returns the hours left over after the proposal. Raises
    `CapacityExceededError` carrying the deficit when it does not fit.
    """
    capacity = member_capacity(member)
    available = capacity - committed_hours(
        active_engagements,
        exclude_engagement_id=exclude_engagement_id,
    )
    if proposed_hours > available:
        deficit = proposed_hours - available
        logger.info(
            "engagement.capacity.exceeded",
            extra={
                "member_id": str(member.id),
                "proposed_hours": proposed_hours,
                "available_hours": available,
                "deficit": deficit,
            },
        )
        raise CapacityExceededError(
            f"Engagement hours ({proposed_hours:g}) would exceed available capacity. "
            f"Available: {available:g} hours, total capacity: {capacity:g} hours",
            deficit=deficit,
            available=available,
            capacity=capacity,
        )
    return available - proposed_hours


def check_capacity_change(
    member: OrganizationMember,
    working_hours_per_week: float | None,
    active_engagements: Iterable[ProjectEngagement],
) -> float:
    """Validate a new weekly capacity still covers the member's committed hours.

    `None` falls back to the configured default. Returns the hours left free
    under the new capacity.
    """
    if working_hours_per_week is None:
        capacity = settings.default_working_hours_per_week
    else:
        capacity = float(working_hours_per_week)
    committed = committed_hours(active_engagements)
    if committed > capacity:
        deficit = committed - capacity
        logger.info(
            "member.capacity.below_committed",
            extra={
                "member_id": str(member.id),
                "capacity": capacity,
                "committed_hours": committed,
                "deficit": deficit,
            },
        )
        raise CapacityExceededError(
            f"Active engagements commit {committed:g} hours per week, "
            f"more than the new capacity of {capacity:g} hours",
            deficit=deficit,
            available=0.0,
            capacity=capacity,
        )
    return capacity - committed


def is_running(engagement: ProjectEngagement, today: date) -> bool:
    if not engagement.is_active or engagement.start_date > today:
        return False
    return engagement.end_date is None or engagement.end_date >= today


def engagement_status(engagement: ProjectEngagement, today: date) -> EngagementStatus:
    if not engagement.is_active:
        return "inactive"
    if engagement.start_date > today:
        return "upcoming"
    if engagement.end_date is not None and engagement.end_date < today:
        return "completed"
    return "active"


def availability_summary(
    member: OrganizationMember,
    engagements: Iterable[ProjectEngagement],
    today: date,
) -> AvailabilitySummary:
    """Summarize capacity use over engagements running on `today`."""
    total = member_capacity(member)
    running = [engagement for engagement in engagements if is_running(engagement, today)]
    engaged = sum(engagement.hours_per_week for engagement in running)
    utilization = (engaged / total) * 100 if total > 0 else 0.0
    return AvailabilitySummary(
        total_hours=total,
        engaged_hours=engaged,
        available_hours=max(0.0, total - engaged),
        active_engagements_count=len(running),
        utilization_percentage=round(utilization, 2),
    )
