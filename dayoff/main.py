"""
FastAPI application serving the leave approval workflow.

A thin presentation seam: every route delegates to LeaveService and never
decides workflow legality itself. The caller is identified by the
X-User-Id header, resolved against the demo directory.
"""

import logging
import os
from contextlib import asynccontextmanager
from datetime import date, datetime

import uvicorn
from fastapi import Depends, FastAPI, Header, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from data.directory import get_user
from dayoff.config import settings
from dayoff.errors import (
    ApplicationNotFoundError,
    InvalidClassError,
    InvalidDecisionError,
    NotReviewerTurnError,
    UnknownApplicantError,
)
from dayoff.models import ApprovalStatus, CollegeClass, LeaveApplication, User, UserRole
from dayoff.projections import ApplicationFilter
from dayoff.service import LeaveService, get_service
from dayoff.submission import LeaveRequestForm

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# Pydantic models for API
class StageDecisionResponse(BaseModel):
    stage: str
    decision: ApprovalStatus
    reviewer_id: str | None
    reviewer_name: str | None
    decided_at: datetime
    comment: str | None


class ApplicationResponse(BaseModel):
    """Leave application as returned to clients."""

    id: str
    applicant_id: str
    applicant_name: str
    applicant_role: UserRole
    student_class: CollegeClass | None
    start_date: date
    end_date: date
    duration_days: int
    leave_type: str
    reason: str
    status: ApprovalStatus
    cc_status: ApprovalStatus
    coc_status: ApprovalStatus
    principal_status: ApprovalStatus
    pipeline: str
    applied_date: date
    ai_summary: str | None
    ai_letter: str | None
    decisions: list[StageDecisionResponse]

    @classmethod
    def from_application(cls, app: LeaveApplication) -> "ApplicationResponse":
        return cls(
            id=app.id,
            applicant_id=app.applicant_id,
            applicant_name=app.applicant_name,
            applicant_role=app.applicant_role,
            student_class=app.student_class,
            start_date=app.start_date,
            end_date=app.end_date,
            duration_days=app.duration_days,
            leave_type=app.leave_type.value,
            reason=app.reason,
            status=app.status,
            cc_status=app.cc_status,
            coc_status=app.coc_status,
            principal_status=app.principal_status,
            pipeline=app.pipeline.value,
            applied_date=app.applied_date,
            ai_summary=app.ai_summary,
            ai_letter=app.ai_letter,
            decisions=[
                StageDecisionResponse(
                    stage=d.stage.value,
                    decision=d.decision,
                    reviewer_id=d.reviewer_id,
                    reviewer_name=d.reviewer_name,
                    decided_at=d.decided_at,
                    comment=d.comment,
                )
                for d in app.decisions
            ],
        )


class DecisionRequest(BaseModel):
    """Reviewer decision on the stage they own."""

    model_config = ConfigDict(
        json_schema_extra={"example": {"decision": "APPROVED", "comment": "Medical note seen."}}
    )

    decision: ApprovalStatus = Field(..., description="APPROVED or REJECTED")
    comment: str | None = Field(None, description="Optional reviewer comment")


class TurnResponse(BaseModel):
    application_id: str
    can_review: bool


class OverviewResponse(BaseModel):
    pending_for_me: int
    total_approved: int
    total_rejected: int
    recent: list[ApplicationResponse]


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    environment: str
    applications: int
    text_generation_circuit_breaker: dict | None


# Lifespan context manager for startup/shutdown
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle startup and shutdown events."""
    logger.info("Starting DayOff leave workflow API")
    logger.info(f"Environment: {settings.environment}")
    get_service()

    yield

    logger.info("Shutting down DayOff leave workflow API")


app = FastAPI(
    title="DayOff Leave Workflow API",
    description="Multi-stage leave approval for students and staff",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


@app.exception_handler(NotReviewerTurnError)
async def not_reviewer_turn_handler(request: Request, exc: NotReviewerTurnError):
    return _error(status.HTTP_409_CONFLICT, exc)


@app.exception_handler(ApplicationNotFoundError)
async def not_found_handler(request: Request, exc: ApplicationNotFoundError):
    return _error(status.HTTP_404_NOT_FOUND, exc)


@app.exception_handler(InvalidClassError)
async def invalid_class_handler(request: Request, exc: InvalidClassError):
    return _error(status.HTTP_422_UNPROCESSABLE_ENTITY, exc)


@app.exception_handler(InvalidDecisionError)
async def invalid_decision_handler(request: Request, exc: InvalidDecisionError):
    return _error(status.HTTP_422_UNPROCESSABLE_ENTITY, exc)


@app.exception_handler(UnknownApplicantError)
async def unknown_applicant_handler(request: Request, exc: UnknownApplicantError):
    return _error(status.HTTP_401_UNAUTHORIZED, exc)


# Dependencies


def current_user(x_user_id: str = Header(..., alias="X-User-Id")) -> User:
    user = get_user(x_user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="ID not found. Use a demo key (e.g. CC_1BSC, FAC_1, PR_ADMIN)",
        )
    return user


def service() -> LeaveService:
    return get_service()


def listing_filter(
    search: str | None = None,
    student_class: CollegeClass | None = None,
    applicant_role: UserRole | None = None,
    status: ApprovalStatus | None = None,
) -> ApplicationFilter:
    return ApplicationFilter(
        search=search,
        student_class=student_class,
        applicant_role=applicant_role,
        status=status,
    )


def _responses(apps: list[LeaveApplication]) -> list[ApplicationResponse]:
    return [ApplicationResponse.from_application(app) for app in apps]


# API Endpoints


@app.get("/", tags=["Root"])
async def root():
    return {"message": "DayOff Leave Workflow API", "version": "1.0.0", "docs": "/docs"}


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(svc: LeaveService = Depends(service)):
    """Service status and text generation circuit breaker state."""
    return HealthResponse(
        status="healthy",
        environment=settings.environment,
        applications=len(svc.registry),
        text_generation_circuit_breaker=svc.get_circuit_breaker_state(),
    )


@app.post(
    "/applications",
    response_model=ApplicationResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Applications"],
)
async def submit_application(
    form: LeaveRequestForm,
    user: User = Depends(current_user),
    svc: LeaveService = Depends(service),
):
    """
    Submit a leave application.

    Students enter the three-stage pipeline; staff go straight to the
    Principal. AI letter and summary failures never block submission.
    """
    logger.info(f"Submission request from {user.id} ({user.role.value})")
    application = await svc.submit(form, user)
    return ApplicationResponse.from_application(application)


@app.get("/applications/mine", response_model=list[ApplicationResponse], tags=["Applications"])
async def list_my_applications(
    user: User = Depends(current_user),
    filters: ApplicationFilter = Depends(listing_filter),
    svc: LeaveService = Depends(service),
):
    return _responses(svc.mine(user, filters))


@app.get("/applications/pending", response_model=list[ApplicationResponse], tags=["Review"])
async def list_pending(
    user: User = Depends(current_user),
    filters: ApplicationFilter = Depends(listing_filter),
    svc: LeaveService = Depends(service),
):
    """Applications awaiting the caller's decision."""
    return _responses(svc.pending(user, filters))


@app.get("/applications/executed", response_model=list[ApplicationResponse], tags=["Review"])
async def list_executed(
    user: User = Depends(current_user),
    filters: ApplicationFilter = Depends(listing_filter),
    svc: LeaveService = Depends(service),
):
    """Applications the caller already acted on, or that are closed."""
    return _responses(svc.executed(user, filters))


@app.get("/applications/{application_id}", response_model=ApplicationResponse, tags=["Applications"])
async def get_application(
    application_id: str,
    user: User = Depends(current_user),
    svc: LeaveService = Depends(service),
):
    return ApplicationResponse.from_application(svc.get(application_id))


@app.get("/applications/{application_id}/turn", response_model=TurnResponse, tags=["Review"])
async def check_turn(
    application_id: str,
    user: User = Depends(current_user),
    svc: LeaveService = Depends(service),
):
    return TurnResponse(
        application_id=application_id, can_review=svc.can_review(application_id, user)
    )


@app.post(
    "/applications/{application_id}/decision",
    response_model=ApplicationResponse,
    tags=["Review"],
)
async def decide(
    application_id: str,
    request: DecisionRequest,
    user: User = Depends(current_user),
    svc: LeaveService = Depends(service),
):
    """Approve or reject the stage the caller owns. Out-of-turn decisions get 409."""
    application = svc.decide(application_id, user, request.decision, request.comment)
    return ApplicationResponse.from_application(application)


@app.get("/overview", response_model=OverviewResponse, tags=["Review"])
async def overview(user: User = Depends(current_user), svc: LeaveService = Depends(service)):
    stats = svc.overview(user)
    return OverviewResponse(
        pending_for_me=stats["pending_for_me"],
        total_approved=stats["total_approved"],
        total_rejected=stats["total_rejected"],
        recent=_responses(stats["recent"]),
    )


if __name__ == "__main__":
    uvicorn.run(
        "dayoff.main:app",
        host="0.0.0.0",
        port=int(os.environ.get("PORT", 8080)),
        reload=settings.environment == "development",
        log_level=settings.log_level.lower(),
    )
