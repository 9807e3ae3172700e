"""
Domain vocabulary for the leave approval workflow.

Pure data declarations: roles, classes, statuses, stages and the
leave application record. Behaviour lives in workflow.py.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum


class Pipeline(Enum):
    """Approval path, fixed at creation by the applicant's supertype."""

    STUDENT = "student"  # CC -> CoC -> Principal
    STAFF = "staff"  # Principal only


class Stage(Enum):
    """One gate in the approval pipeline, declared in pipeline order."""

    CLASS_COORDINATOR = "class_coordinator"
    COURSE_COORDINATOR = "course_coordinator"
    PRINCIPAL = "principal"


class UserRole(str, Enum):
    STUDENT = "STUDENT"
    CLASS_COORDINATOR = "CLASS_COORDINATOR"
    COURSE_COORDINATOR = "COURSE_COORDINATOR"
    PRINCIPAL = "PRINCIPAL"
    NORMAL_FACULTY = "NORMAL_FACULTY"

    @property
    def is_student(self) -> bool:
        return self is UserRole.STUDENT

    @property
    def pipeline(self) -> Pipeline:
        return Pipeline.STUDENT if self.is_student else Pipeline.STAFF

    @property
    def stage(self) -> Stage | None:
        """Stage this role reviews, or None for roles that own no gate."""
        return _ROLE_STAGES.get(self)

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()


_ROLE_STAGES = {
    UserRole.CLASS_COORDINATOR: Stage.CLASS_COORDINATOR,
    UserRole.COURSE_COORDINATOR: Stage.COURSE_COORDINATOR,
    UserRole.PRINCIPAL: Stage.PRINCIPAL,
}


class CourseType(str, Enum):
    BSC_NURSING = "BSc Nursing"
    GNM = "GNM"


class CollegeClass(str, Enum):
    """Closed set of classes: 4 year levels x 2 program tracks."""

    BSC_NURSING_1 = "1yr BSc Nursing"
    BSC_NURSING_2 = "2yr BSc Nursing"
    BSC_NURSING_3 = "3yr BSc Nursing"
    BSC_NURSING_4 = "4yr BSc Nursing"
    GNM_1 = "1yr GNM"
    GNM_2 = "2yr GNM"
    GNM_3 = "3yr GNM"
    GNM_4 = "4yr GNM"

    @property
    def year(self) -> int:
        return int(self.value[0])

    @property
    def course(self) -> CourseType:
        return CourseType(self.value.split(" ", 1)[1])


class LeaveType(str, Enum):
    MEDICAL = "Medical Leave"
    PERSONAL_EMERGENCY = "Personal Emergency"
    FAMILY_EVENT = "Family Event"
    ACADEMIC_WORK = "Academic Work"
    OTHER = "Other"


class ApprovalStatus(str, Enum):
    """Tri-state used for every stage and for the overall status."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"

    @property
    def is_terminal(self) -> bool:
        return self is not ApprovalStatus.PENDING


@dataclass(frozen=True)
class User:
    id: str
    name: str
    role: UserRole
    email: str = ""
    assigned_class: CollegeClass | None = None  # Class Coordinators
    course_type: CourseType | None = None  # Course Coordinators


@dataclass(frozen=True)
class StageDecision:
    """Audit entry recorded for every accepted reviewer decision."""

    stage: Stage
    decision: ApprovalStatus
    reviewer_id: str | None
    reviewer_name: str | None
    decided_at: datetime
    comment: str | None = None


@dataclass(frozen=True)
class LeaveApplication:
    """
    A single leave request and its approval state.

    Records are immutable; the workflow engine produces a new record for
    every accepted decision and the registry swaps it in.
    """

    id: str
    applicant_id: str
    applicant_name: str
    applicant_role: UserRole
    start_date: date
    end_date: date
    leave_type: LeaveType
    reason: str
    applied_date: date
    cc_status: ApprovalStatus
    coc_status: ApprovalStatus
    principal_status: ApprovalStatus
    status: ApprovalStatus = ApprovalStatus.PENDING
    student_class: CollegeClass | None = None
    ai_summary: str | None = None
    ai_letter: str | None = None
    decisions: tuple[StageDecision, ...] = field(default_factory=tuple)

    @property
    def pipeline(self) -> Pipeline:
        return self.applicant_role.pipeline

    @property
    def duration_days(self) -> int:
        """Inclusive number of calendar days covered."""
        return (self.end_date - self.start_date).days + 1

    @property
    def stage_statuses(self) -> dict[Stage, ApprovalStatus]:
        return {
            Stage.CLASS_COORDINATOR: self.cc_status,
            Stage.COURSE_COORDINATOR: self.coc_status,
            Stage.PRINCIPAL: self.principal_status,
        }

    def stage_status(self, stage: Stage) -> ApprovalStatus:
        return self.stage_statuses[stage]

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


# Field names on LeaveApplication holding each stage's status.
STAGE_FIELDS = {
    Stage.CLASS_COORDINATOR: "cc_status",
    Stage.COURSE_COORDINATOR: "coc_status",
    Stage.PRINCIPAL: "principal_status",
}
