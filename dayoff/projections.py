"""
Read-side views over the application collection.

Every function here is pure: it takes a snapshot of applications and
returns a new list, never mutating the input.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from dayoff.models import ApprovalStatus, CollegeClass, LeaveApplication, User, UserRole
from dayoff.workflow import can_review


@dataclass(frozen=True)
class ApplicationFilter:
    """
    Secondary filters shared by every listing.

    Unset fields do not narrow. Set fields combine with logical AND.
    """

    search: str | None = None
    student_class: CollegeClass | None = None
    applicant_role: UserRole | None = None
    status: ApprovalStatus | None = None

    def matches(self, application: LeaveApplication) -> bool:
        if self.search:
            needle = self.search.strip().lower()
            if (
                needle not in application.applicant_name.lower()
                and needle not in application.reason.lower()
            ):
                return False
        if self.student_class is not None and application.student_class != self.student_class:
            return False
        if self.applicant_role is not None and application.applicant_role != self.applicant_role:
            return False
        if self.status is not None and application.status != self.status:
            return False
        return True

    def apply(self, applications: Iterable[LeaveApplication]) -> list[LeaveApplication]:
        return [app for app in applications if self.matches(app)]


NO_FILTER = ApplicationFilter()


def pending_inbox(
    applications: Iterable[LeaveApplication],
    reviewer: User,
    filters: ApplicationFilter = NO_FILTER,
) -> list[LeaveApplication]:
    """Applications currently awaiting this reviewer's decision."""
    return [
        app
        for app in applications
        if app.applicant_id != reviewer.id
        and app.status is ApprovalStatus.PENDING
        and can_review(app, reviewer)
        and filters.matches(app)
    ]


def _has_passed_stage(application: LeaveApplication, reviewer: User) -> bool:
    if reviewer.role is UserRole.NORMAL_FACULTY:
        return True
    stage = reviewer.role.stage
    if stage is None:
        return False
    return application.stage_status(stage) is not ApprovalStatus.PENDING


def executed_archive(
    applications: Iterable[LeaveApplication],
    reviewer: User,
    filters: ApplicationFilter = NO_FILTER,
) -> list[LeaveApplication]:
    """
    Others' applications this reviewer no longer needs to act on.

    Includes terminal applications and applications whose stage for this
    reviewer is already decided. Normal Faculty see every application.
    Students have no review view and always get an empty archive.
    """
    if reviewer.role.stage is None and reviewer.role is not UserRole.NORMAL_FACULTY:
        return []
    return [
        app
        for app in applications
        if app.applicant_id != reviewer.id
        and (app.is_terminal or _has_passed_stage(app, reviewer))
        and filters.matches(app)
    ]


def my_applications(
    applications: Iterable[LeaveApplication],
    user: User,
    filters: ApplicationFilter = NO_FILTER,
) -> list[LeaveApplication]:
    """Applications authored by user, regardless of status."""
    return [app for app in applications if app.applicant_id == user.id and filters.matches(app)]


def sort_recent(
    applications: Iterable[LeaveApplication], limit: int | None = None
) -> list[LeaveApplication]:
    """
    Reverse chronological by applied date.

    Input is expected in insertion order, so same-day applications come
    out newest first.
    """
    ordered = sorted(
        reversed(list(applications)), key=lambda app: app.applied_date, reverse=True
    )
    return ordered if limit is None else ordered[:limit]


def reviewer_overview(
    applications: Iterable[LeaveApplication], reviewer: User, recent: int = 3
) -> dict:
    """Dashboard counters for a reviewer plus the most recent activity."""
    snapshot = list(applications)
    return {
        "pending_for_me": len(pending_inbox(snapshot, reviewer)),
        "total_approved": sum(1 for app in snapshot if app.status is ApprovalStatus.APPROVED),
        "total_rejected": sum(1 for app in snapshot if app.status is ApprovalStatus.REJECTED),
        "recent": sort_recent(snapshot, limit=recent),
    }
