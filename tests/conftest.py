"""
Pytest configuration and fixtures.
Shared users, application factories and fake text generators.
"""

import asyncio
from datetime import date

import pytest
from fastapi.testclient import TestClient

from dayoff.models import (
    CollegeClass,
    CourseType,
    LeaveApplication,
    LeaveType,
    Stage,
    User,
    UserRole,
)
from dayoff.registry import ApplicationRegistry
from dayoff.submission import SubmissionBuilder
from dayoff.text_generation import TextGenerator
from dayoff.workflow import derive_overall_status, initial_stage_statuses


class FakeTextGenerator(TextGenerator):
    """Returns fixed text and records every call."""

    def __init__(self, letter="Formal letter body.", summary="One line summary."):
        self.letter = letter
        self.summary = summary
        self.calls = []

    async def draft_letter(self, reason, leave_type, duration_days):
        self.calls.append(("draft_letter", reason, leave_type, duration_days))
        return self.letter

    async def summarize(self, reason, letter_or_context):
        self.calls.append(("summarize", reason, letter_or_context))
        return self.summary


class FailingTextGenerator(TextGenerator):
    async def draft_letter(self, reason, leave_type, duration_days):
        raise ConnectionError("text generation backend unreachable")

    async def summarize(self, reason, letter_or_context):
        raise ConnectionError("text generation backend unreachable")


class SlowTextGenerator(TextGenerator):
    async def draft_letter(self, reason, leave_type, duration_days):
        await asyncio.sleep(5)
        return "too late"

    async def summarize(self, reason, letter_or_context):
        await asyncio.sleep(5)
        return "too late"


@pytest.fixture
def priya():
    return User(id="S100", name="Priya", role=UserRole.STUDENT, email="priya@college.edu")


@pytest.fixture
def gnm_student():
    return User(id="S200", name="Rahul", role=UserRole.STUDENT)


@pytest.fixture
def class_coordinator():
    return User(
        id="CC1",
        name="Mrs. Anita",
        role=UserRole.CLASS_COORDINATOR,
        assigned_class=CollegeClass.BSC_NURSING_1,
    )


@pytest.fixture
def other_class_coordinator():
    return User(
        id="CC2",
        name="Mr. Thomas",
        role=UserRole.CLASS_COORDINATOR,
        assigned_class=CollegeClass.BSC_NURSING_2,
    )


@pytest.fixture
def course_coordinator():
    return User(
        id="COC",
        name="Dr. Robert",
        role=UserRole.COURSE_COORDINATOR,
        course_type=CourseType.BSC_NURSING,
    )


@pytest.fixture
def principal():
    return User(id="PR", name="Dr. Elizabeth", role=UserRole.PRINCIPAL)


@pytest.fixture
def wilson():
    return User(id="F1", name="Prof. Wilson", role=UserRole.NORMAL_FACULTY)


@pytest.fixture
def make_application():
    """Factory building a freshly submitted application for an applicant."""
    counter = {"n": 0}

    def _make(
        applicant: User,
        student_class: CollegeClass | None = None,
        applied_date: date = date(2024, 5, 30),
        reason: str = "Suffering from high fever.",
        leave_type: LeaveType = LeaveType.MEDICAL,
    ) -> LeaveApplication:
        counter["n"] += 1
        stages = initial_stage_statuses(applicant.role.pipeline)
        if applicant.role.is_student and student_class is None:
            student_class = CollegeClass.BSC_NURSING_1
        return LeaveApplication(
            id=f"L-T{counter['n']}",
            applicant_id=applicant.id,
            applicant_name=applicant.name,
            applicant_role=applicant.role,
            student_class=student_class,
            start_date=date(2024, 6, 1),
            end_date=date(2024, 6, 3),
            leave_type=leave_type,
            reason=reason,
            applied_date=applied_date,
            cc_status=stages[Stage.CLASS_COORDINATOR],
            coc_status=stages[Stage.COURSE_COORDINATOR],
            principal_status=stages[Stage.PRINCIPAL],
            status=derive_overall_status(stages),
        )

    return _make


@pytest.fixture
def registry():
    return ApplicationRegistry()


@pytest.fixture
def fake_generator():
    return FakeTextGenerator()


@pytest.fixture
def builder(registry, fake_generator):
    return SubmissionBuilder(
        registry,
        fake_generator,
        timeout=1.0,
        today=lambda: date(2024, 5, 30),
        allow_display_name_override=False,
    )


@pytest.fixture
def test_client():
    """FastAPI test client bound to a fresh, seeded service."""
    from dayoff import main
    from dayoff.service import LeaveService

    svc = LeaveService(registry=None, text_generator=FakeTextGenerator(), seed=True)
    main.app.dependency_overrides[main.service] = lambda: svc
    try:
        with TestClient(main.app) as client:
            client.service = svc
            yield client
    finally:
        main.app.dependency_overrides.clear()
