# ruff: noqa: INP001
"""Unit tests for weekly-hours capacity checks and availability summaries."""

from __future__ import annotations

from datetime import date
from uuid import uuid4

import pytest

from app.core.config import settings
from app.models.engagements import ProjectEngagement
from app.models.organization_members import OrganizationMember
from app.services.capacity import (
    availability_summary,
    check_capacity,
    check_capacity_change,
    committed_hours,
    engagement_status,
    member_capacity,
)
from app.services.errors import CapacityExceededError

TODAY = date(2024, 6, 15)


def _member(hours: float | None = 40) -> OrganizationMember:
    return OrganizationMember(
        organization_id=uuid4(),
        user_id=uuid4(),
        working_hours_per_week=hours,
    )


def _engagement(
    hours: float,
    *,
    start: date = date(2024, 1, 1),
    end: date | None = None,
    is_active: bool = True,
) -> ProjectEngagement:
    return ProjectEngagement(
        organization_member_id=uuid4(),
        project_id=uuid4(),
        hours_per_week=hours,
        start_date=start,
        end_date=end,
        is_active=is_active,
    )


def test_member_capacity_falls_back_to_configured_default() -> None:
    assert member_capacity(_member(None)) == settings.default_working_hours_per_week
    assert member_capacity(_member(32)) == 32


def test_committed_hours_skips_inactive_and_excluded() -> None:
    keep = _engagement(10)
    excluded = _engagement(20)
    inactive = _engagement(30, is_active=False)

    assert committed_hours([keep, excluded, inactive], exclude_engagement_id=excluded.id) == 10


def test_check_capacity_rejects_with_deficit() -> None:
    member = _member(40)

    with pytest.raises(CapacityExceededError) as exc_info:
        check_capacity(member, 15, [_engagement(30)])

    err = exc_info.value
    assert err.status_code == 422
    assert err.deficit == 5
    assert err.available == 10
    assert err.capacity == 40
    assert err.detail["code"] == "capacity_exceeded"
    assert err.detail["deficit"] == 5


def test_check_capacity_accepts_exact_fit_and_returns_remainder() -> None:
    assert check_capacity(_member(40), 10, [_engagement(30)]) == 0
    assert check_capacity(_member(40), 5, [_engagement(30)]) == 5


def test_check_capacity_excludes_the_engagement_being_updated() -> None:
    current = _engagement(30)

    assert check_capacity(_member(40), 35, [current], exclude_engagement_id=current.id) == 5


def test_engagement_status_follows_dates_and_flag() -> None:
    assert engagement_status(_engagement(1, is_active=False), TODAY) == "inactive"
    assert engagement_status(_engagement(1, start=date(2024, 7, 1)), TODAY) == "upcoming"
    assert (
        engagement_status(_engagement(1, start=date(2024, 1, 1), end=date(2024, 6, 1)), TODAY)
        == "completed"
    )
    assert engagement_status(_engagement(1, end=TODAY), TODAY) == "active"


def test_availability_summary_counts_only_running_engagements() -> None:
    engagements = [
        _engagement(10),
        _engagement(5, end=date(2024, 12, 31)),
        _engagement(20, start=date(2024, 9, 1)),
        _engagement(8, is_active=False),
    ]

    summary = availability_summary(_member(40), engagements, TODAY)

    assert summary.total_hours == 40
    assert summary.engaged_hours == 15
    assert summary.available_hours == 25
    assert summary.active_engagements_count == 2
    assert summary.utilization_percentage == 37.5


def test_availability_summary_never_reports_negative_availability() -> None:
    summary = availability_summary(_member(10), [_engagement(12)], TODAY)

    assert summary.available_hours == 0
    assert summary.utilization_percentage == 120.0


def test_capacity_change_rejects_dropping_below_committed_hours() -> None:
    engagements = [_engagement(20), _engagement(10), _engagement(50, is_active=False)]

    with pytest.raises(CapacityExceededError) as exc_info:
        check_capacity_change(_member(40), 25, engagements)

    assert exc_info.value.deficit == 5
    assert exc_info.value.capacity == 25
    assert exc_info.value.available == 0
    assert check_capacity_change(_member(40), 30, engagements) == 0
    assert check_capacity_change(_member(20), None, engagements) == (
        settings.default_working_hours_per_week - 30
    )
