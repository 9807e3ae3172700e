"""
Demo directory for the nursing college.
In production, users would come from the institution's identity provider.
"""

from datetime import date

from dayoff.models import (
    ApprovalStatus,
    CollegeClass,
    CourseType,
    LeaveApplication,
    LeaveType,
    User,
    UserRole,
)

# Keyed by login key (the X-User-Id header value)
DEMO_USERS = {
    "PR_ADMIN": User(
        id="PR", name="Dr. Elizabeth", email="principal@dayoff.edu", role=UserRole.PRINCIPAL
    ),
    "COC_ALL": User(
        id="COC",
        name="Dr. Robert",
        email="coc@dayoff.edu",
        role=UserRole.COURSE_COORDINATOR,
        course_type=CourseType.BSC_NURSING,
    ),
    "CC_1BSC": User(
        id="CC1",
        name="Mrs. Anita",
        email="cc1@dayoff.edu",
        role=UserRole.CLASS_COORDINATOR,
        assigned_class=CollegeClass.BSC_NURSING_1,
    ),
    "FAC_1": User(
        id="F1", name="Prof. Wilson", email="wilson@dayoff.edu", role=UserRole.NORMAL_FACULTY
    ),
    "STUDENT_TEMP": User(
        id="STUDENT_TEMP",
        name="Priya Sharma",
        email="student@college.edu",
        role=UserRole.STUDENT,
    ),
}


def seed_applications() -> list[LeaveApplication]:
    """Applications present when the demo service starts."""
    return [
        LeaveApplication(
            id="L-1001",
            applicant_id="STUDENT_TEMP",
            applicant_name="Priya Sharma",
            applicant_role=UserRole.STUDENT,
            student_class=CollegeClass.BSC_NURSING_1,
            start_date=date(2024, 6, 1),
            end_date=date(2024, 6, 3),
            leave_type=LeaveType.MEDICAL,
            reason="Suffering from high fever.",
            applied_date=date(2024, 5, 30),
            cc_status=ApprovalStatus.PENDING,
            coc_status=ApprovalStatus.PENDING,
            principal_status=ApprovalStatus.PENDING,
            status=ApprovalStatus.PENDING,
            ai_summary="Student requests medical leave for fever.",
        )
    ]


def get_user(login_key: str) -> User | None:
    """Look up a demo user by login key."""
    return DEMO_USERS.get(login_key)
