"""
Submission builder.

Turns a leave request form plus the submitting user's identity into a new,
correctly initialised LeaveApplication.

Submission is two-phase:
1. stage()  - validate identity, class and period; nothing is created on failure
2. commit() - fetch the AI letter and summary concurrently, each bounded by a
              timeout and replaced by a fixed fallback on any failure, then
              build the record

submit() runs both phases and inserts the record into the registry.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import date

from dateutil import parser
from dateutil.parser import ParserError
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from dayoff.config import settings
from dayoff.errors import InvalidClassError, UnknownApplicantError
from dayoff.models import (
    CollegeClass,
    LeaveApplication,
    LeaveType,
    Pipeline,
    Stage,
    User,
    UserRole,
)
from dayoff.observability import trace_span
from dayoff.registry import ApplicationRegistry
from dayoff.text_generation import TextGenerator
from dayoff.workflow import derive_overall_status, initial_stage_statuses

logger = logging.getLogger(__name__)

LETTER_FALLBACK = "Error generating AI letter. Please draft manually."
SUMMARY_FALLBACK = "Summary unavailable."


class LeaveRequestForm(BaseModel):
    """Raw form input. Identity fields come from the authenticated user, not from here."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "leave_type": "Medical Leave",
                "start_date": "2024-06-01",
                "end_date": "2024-06-03",
                "reason": "Suffering from high fever.",
                "student_class": "1yr BSc Nursing",
            }
        }
    )

    leave_type: LeaveType = Field(..., description="Category of leave")
    start_date: date = Field(..., description="First day of leave")
    end_date: date = Field(..., description="Last day of leave (inclusive)")
    reason: str = Field(..., min_length=1, description="Free-text reason")
    student_class: str | None = Field(None, description="Class, required for students")
    applicant_name: str | None = Field(
        None, description="Display name override, honoured only when enabled"
    )

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def parse_date(cls, value):
        if isinstance(value, str):
            try:
                return parser.parse(value).date()
            except (ParserError, ValueError, OverflowError) as e:
                raise ValueError(f"Invalid date: {value}") from e
        return value

    @field_validator("reason")
    @classmethod
    def reason_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Reason must not be blank")
        return value.strip()

    @model_validator(mode="after")
    def end_not_before_start(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        return self


@dataclass(frozen=True)
class StagedSubmission:
    """A validated submission awaiting AI enrichment."""

    id: str
    applicant_id: str
    applicant_name: str
    applicant_role: UserRole
    student_class: CollegeClass | None
    start_date: date
    end_date: date
    leave_type: LeaveType
    reason: str
    applied_date: date

    @property
    def pipeline(self) -> Pipeline:
        return self.applicant_role.pipeline

    @property
    def duration_days(self) -> int:
        return (self.end_date - self.start_date).days + 1


def new_application_id() -> str:
    return f"L-{uuid.uuid4().hex}"


class SubmissionBuilder:
    def __init__(
        self,
        registry: ApplicationRegistry,
        text_generator: TextGenerator,
        timeout: float | None = None,
        id_factory: Callable[[], str] = new_application_id,
        today: Callable[[], date] = date.today,
        allow_display_name_override: bool | None = None,
    ):
        self.registry = registry
        self.text_generator = text_generator
        self.timeout = settings.ai_timeout_seconds if timeout is None else timeout
        self.id_factory = id_factory
        self.today = today
        self.allow_display_name_override = (
            settings.allow_display_name_override
            if allow_display_name_override is None
            else allow_display_name_override
        )

    def _validate_identity(self, user: User | None) -> None:
        if user is None:
            raise UnknownApplicantError("No authenticated user for submission")
        if not isinstance(user.role, UserRole):
            raise UnknownApplicantError(f"User {user.id!r} has unknown role {user.role!r}")
        if not (user.id and user.id.strip()) or not (user.name and user.name.strip()):
            raise UnknownApplicantError("Applicant id and name are required")

    def _resolve_class(self, form: LeaveRequestForm, user: User) -> CollegeClass | None:
        if user.role.is_student:
            if not form.student_class:
                raise InvalidClassError("Students must select their class")
            try:
                return CollegeClass(form.student_class)
            except ValueError:
                raise InvalidClassError(f"Unknown class: {form.student_class!r}") from None

        if form.student_class:
            raise InvalidClassError(f"{user.role.label} applications do not carry a class")
        return None

    def _display_name(self, form: LeaveRequestForm, user: User) -> str:
        override = (form.applicant_name or "").strip()
        if override and self.allow_display_name_override and user.role.is_student:
            return override
        if override and override != user.name:
            logger.warning(f"Ignoring display name override for applicant {user.id}")
        return user.name

    def stage(self, form: LeaveRequestForm, user: User) -> StagedSubmission:
        """
        Validate a submission without creating anything.

        Raises:
            UnknownApplicantError: identity missing or malformed
            InvalidClassError: class missing/unknown for a student, or set for staff
        """
        self._validate_identity(user)
        student_class = self._resolve_class(form, user)

        return StagedSubmission(
            id=self.id_factory(),
            applicant_id=user.id,
            applicant_name=self._display_name(form, user),
            applicant_role=user.role,
            student_class=student_class,
            start_date=form.start_date,
            end_date=form.end_date,
            leave_type=form.leave_type,
            reason=form.reason,
            applied_date=self.today(),
        )

    async def _enrich(
        self, label: str, call: Callable[[], Awaitable[str]], fallback: str
    ) -> str:
        try:
            return await asyncio.wait_for(call(), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"AI {label} timed out after {self.timeout}s, using fallback")
        except Exception as e:
            logger.warning(f"AI {label} generation failed, using fallback: {e!r}")
        return fallback

    async def commit(self, staged: StagedSubmission) -> LeaveApplication:
        """Enrich a staged submission and build the application record."""
        context = f"{staged.applicant_role.label} request for {staged.leave_type.value}"

        with trace_span("enrich_submission", application=staged.id):
            letter, summary = await asyncio.gather(
                self._enrich(
                    "letter",
                    functools.partial(
                        self.text_generator.draft_letter,
                        staged.reason,
                        staged.leave_type.value,
                        staged.duration_days,
                    ),
                    LETTER_FALLBACK,
                ),
                self._enrich(
                    "summary",
                    functools.partial(self.text_generator.summarize, staged.reason, context),
                    SUMMARY_FALLBACK,
                ),
            )

        stages = initial_stage_statuses(staged.pipeline)
        return LeaveApplication(
            id=staged.id,
            applicant_id=staged.applicant_id,
            applicant_name=staged.applicant_name,
            applicant_role=staged.applicant_role,
            student_class=staged.student_class,
            start_date=staged.start_date,
            end_date=staged.end_date,
            leave_type=staged.leave_type,
            reason=staged.reason,
            applied_date=staged.applied_date,
            cc_status=stages[Stage.CLASS_COORDINATOR],
            coc_status=stages[Stage.COURSE_COORDINATOR],
            principal_status=stages[Stage.PRINCIPAL],
            status=derive_overall_status(stages),
            ai_letter=letter,
            ai_summary=summary,
        )

    async def submit(self, form: LeaveRequestForm, user: User) -> LeaveApplication:
        """Validate, enrich and register a new leave application."""
        with trace_span("submit_leave", applicant=getattr(user, "id", None)):
            staged = self.stage(form, user)
            application = await self.commit(staged)
            self.registry.add(application)

        logger.info(
            f"Leave submitted: id={application.id} applicant={application.applicant_id} "
            f"pipeline={application.pipeline.value} days={application.duration_days}"
        )
        return application
