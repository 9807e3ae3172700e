"""
Leave workflow service.

Wires the registry, submission builder and text generator together and
exposes the create / list / decide operations the presentation layer uses.
"""

import logging

from data.directory import seed_applications
from dayoff.config import settings
from dayoff.models import ApprovalStatus, LeaveApplication, User
from dayoff.projections import (
    NO_FILTER,
    ApplicationFilter,
    executed_archive,
    my_applications,
    pending_inbox,
    reviewer_overview,
    sort_recent,
)
from dayoff.registry import ApplicationRegistry
from dayoff.submission import LeaveRequestForm, SubmissionBuilder
from dayoff.text_generation import TextGenerator, build_text_generator
from dayoff.workflow import can_review

logger = logging.getLogger(__name__)


class LeaveService:
    def __init__(
        self,
        registry: ApplicationRegistry | None = None,
        text_generator: TextGenerator | None = None,
        seed: bool | None = None,
    ):
        if registry is None:
            seed = settings.seed_demo_data if seed is None else seed
            registry = ApplicationRegistry(seed_applications() if seed else ())
        self.registry = registry
        self.text_generator = text_generator or build_text_generator()
        self.builder = SubmissionBuilder(self.registry, self.text_generator)

        logger.info(f"LeaveService initialized with {len(self.registry)} applications")

    async def submit(self, form: LeaveRequestForm, user: User) -> LeaveApplication:
        return await self.builder.submit(form, user)

    def get(self, application_id: str) -> LeaveApplication:
        return self.registry.get(application_id)

    def can_review(self, application_id: str, reviewer: User) -> bool:
        application = self.registry.get(application_id)
        return application.applicant_id != reviewer.id and can_review(application, reviewer)

    def decide(
        self,
        application_id: str,
        reviewer: User,
        decision: ApprovalStatus,
        comment: str | None = None,
    ) -> LeaveApplication:
        return self.registry.decide(application_id, reviewer, decision, comment)

    def pending(
        self, reviewer: User, filters: ApplicationFilter = NO_FILTER
    ) -> list[LeaveApplication]:
        return sort_recent(pending_inbox(self.registry.snapshot(), reviewer, filters))

    def executed(
        self, reviewer: User, filters: ApplicationFilter = NO_FILTER
    ) -> list[LeaveApplication]:
        return sort_recent(executed_archive(self.registry.snapshot(), reviewer, filters))

    def mine(self, user: User, filters: ApplicationFilter = NO_FILTER) -> list[LeaveApplication]:
        return sort_recent(my_applications(self.registry.snapshot(), user, filters))

    def overview(self, reviewer: User) -> dict:
        return reviewer_overview(self.registry.snapshot(), reviewer)

    def get_circuit_breaker_state(self) -> dict | None:
        return self.text_generator.get_circuit_breaker_state()


# Global service instance
leave_service = None


def get_service() -> LeaveService:
    """Get or create the global service instance."""
    global leave_service
    if leave_service is None:
        leave_service = LeaveService()
    return leave_service
