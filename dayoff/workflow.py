"""
Approval workflow engine.

Pure decision logic: given an application, a reviewer role and a proposed
decision, decide legality and compute the resulting record. No I/O.

Pipelines
---------
Student:  Class Coordinator -> Course Coordinator -> Principal
Staff:    Principal only. The two coordinator stages start APPROVED so
          both pipelines share the same three-stage shape.

Overall status is always a pure function of the three stage statuses:
- APPROVED  iff every stage is APPROVED
- REJECTED  iff any stage is REJECTED
- PENDING   otherwise
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Mapping
from datetime import datetime

from dayoff.errors import InvalidDecisionError, NotReviewerTurnError, WorkflowInvariantError
from dayoff.models import (
    STAGE_FIELDS,
    ApprovalStatus,
    CollegeClass,
    LeaveApplication,
    Pipeline,
    Stage,
    StageDecision,
    User,
    UserRole,
)
from dayoff.observability import trace_span

logger = logging.getLogger(__name__)

PENDING = ApprovalStatus.PENDING
APPROVED = ApprovalStatus.APPROVED
REJECTED = ApprovalStatus.REJECTED


def initial_stage_statuses(pipeline: Pipeline) -> dict[Stage, ApprovalStatus]:
    """Starting stage statuses for a freshly submitted application."""
    coordinator_start = PENDING if pipeline is Pipeline.STUDENT else APPROVED
    return {
        Stage.CLASS_COORDINATOR: coordinator_start,
        Stage.COURSE_COORDINATOR: coordinator_start,
        Stage.PRINCIPAL: PENDING,
    }


def derive_overall_status(stage_statuses: Mapping[Stage, ApprovalStatus]) -> ApprovalStatus:
    statuses = list(stage_statuses.values())
    if any(s is REJECTED for s in statuses):
        return REJECTED
    if all(s is APPROVED for s in statuses):
        return APPROVED
    return PENDING


def check_invariant(application: LeaveApplication) -> None:
    """
    Raise WorkflowInvariantError if the record is inconsistent.

    Checks that the class is present exactly for student applicants, that the
    period does not end before it starts, and that the overall status matches
    the stages.
    """
    has_class = application.student_class is not None
    if has_class != application.applicant_role.is_student:
        raise WorkflowInvariantError(
            f"Application {application.id}: student_class must be set only for students"
        )
    if application.end_date < application.start_date:
        raise WorkflowInvariantError(
            f"Application {application.id}: end_date {application.end_date} "
            f"is before start_date {application.start_date}"
        )

    expected = derive_overall_status(application.stage_statuses)
    if application.status is not expected:
        raise WorkflowInvariantError(
            f"Application {application.id}: overall status {application.status.value} "
            f"but stages imply {expected.value}"
        )


def _turn_block_reason(
    application: LeaveApplication,
    reviewer_role: UserRole,
    assigned_class: CollegeClass | None,
) -> str | None:
    """Return why the reviewer cannot act now, or None if it is their turn."""
    if application.is_terminal:
        return f"application is already {application.status.value}"

    stage = reviewer_role.stage
    if stage is None:
        return f"{reviewer_role.label} owns no approval stage"

    if application.stage_status(stage) is not PENDING:
        return f"{stage.value} stage already decided"

    student = application.applicant_role.is_student

    if stage is Stage.CLASS_COORDINATOR:
        if not student:
            return "staff applications skip the class coordinator"
        if assigned_class is None or application.student_class != assigned_class:
            return "application belongs to a different class"
        return None

    if stage is Stage.COURSE_COORDINATOR:
        if not student:
            return "staff applications skip the course coordinator"
        if application.cc_status is not APPROVED:
            return "awaiting class coordinator approval"
        return None

    # Principal
    if student and application.coc_status is not APPROVED:
        return "awaiting course coordinator approval"
    return None


def is_reviewer_turn(
    application: LeaveApplication,
    reviewer_role: UserRole,
    assigned_class: CollegeClass | None = None,
) -> bool:
    """
    Whether the stage owned by reviewer_role is currently awaiting action.

    Terminal applications are never actionable. Normal Faculty and Students
    never have a turn. A Class Coordinator only has a turn on applications
    from their own assigned class.
    """
    return _turn_block_reason(application, reviewer_role, assigned_class) is None


def can_review(application: LeaveApplication, reviewer: User) -> bool:
    """is_reviewer_turn for a concrete user."""
    return is_reviewer_turn(application, reviewer.role, reviewer.assigned_class)


def apply_decision(
    application: LeaveApplication,
    reviewer_role: UserRole,
    decision: ApprovalStatus,
    *,
    assigned_class: CollegeClass | None = None,
    reviewer: User | None = None,
    comment: str | None = None,
    decided_at: datetime | None = None,
) -> LeaveApplication:
    """
    Apply a reviewer's decision to the stage they own.

    Returns a new LeaveApplication; the input record is left untouched.

    Raises:
        InvalidDecisionError: decision is not APPROVED or REJECTED
        NotReviewerTurnError: the stage is not awaiting this reviewer
    """
    try:
        decision = ApprovalStatus(decision)
    except ValueError:
        raise InvalidDecisionError(f"Unknown decision: {decision!r}") from None
    if decision is PENDING:
        raise InvalidDecisionError("A decision must be APPROVED or REJECTED")

    with trace_span(
        "apply_decision",
        application=application.id,
        role=reviewer_role.value,
        decision=decision.value,
    ):
        blocked = _turn_block_reason(application, reviewer_role, assigned_class)
        if blocked is not None:
            logger.warning(
                f"Rejected out-of-turn decision: application={application.id} "
                f"role={reviewer_role.value} reason={blocked}"
            )
            raise NotReviewerTurnError(application.id, reviewer_role.value, blocked)

        stage = reviewer_role.stage
        stages = application.stage_statuses
        stages[stage] = decision

        entry = StageDecision(
            stage=stage,
            decision=decision,
            reviewer_id=reviewer.id if reviewer else None,
            reviewer_name=reviewer.name if reviewer else None,
            decided_at=decided_at or datetime.now(),
            comment=comment,
        )

        updated = dataclasses.replace(
            application,
            status=derive_overall_status(stages),
            decisions=application.decisions + (entry,),
            **{STAGE_FIELDS[stage]: decision},
        )
        check_invariant(updated)

        logger.info(
            f"Application {application.id}: {stage.value} -> {decision.value}, "
            f"overall={updated.status.value}"
        )
        return updated
