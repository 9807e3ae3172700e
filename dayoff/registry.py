"""
In-memory application registry.

Sole owner of LeaveApplication records. Submissions are inserted through
add(); existing records change only through decide(), which runs the
workflow engine under a per-application lock so racing reviewers cannot
both act on the same turn.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from collections.abc import Iterable

from dayoff.errors import (
    ApplicationNotFoundError,
    DuplicateApplicationError,
    NotReviewerTurnError,
)
from dayoff.models import ApprovalStatus, LeaveApplication, User
from dayoff.workflow import apply_decision, check_invariant

logger = logging.getLogger(__name__)


class ApplicationRegistry:
    def __init__(self, applications: Iterable[LeaveApplication] = ()):
        self._applications: OrderedDict[str, LeaveApplication] = OrderedDict()
        self._lock = threading.Lock()
        self._application_locks: dict[str, threading.Lock] = {}

        for application in applications:
            self.add(application)

    def __len__(self) -> int:
        return len(self._applications)

    def __contains__(self, application_id: object) -> bool:
        return application_id in self._applications

    def add(self, application: LeaveApplication) -> LeaveApplication:
        check_invariant(application)
        with self._lock:
            if application.id in self._applications:
                raise DuplicateApplicationError(f"Application {application.id} already exists")
            self._applications[application.id] = application
            self._application_locks[application.id] = threading.Lock()

        logger.info(
            f"Registered application {application.id} "
            f"applicant={application.applicant_id} pipeline={application.pipeline.value}"
        )
        return application

    def get(self, application_id: str) -> LeaveApplication:
        try:
            return self._applications[application_id]
        except KeyError:
            raise ApplicationNotFoundError(f"Application {application_id} not found") from None

    def snapshot(self) -> tuple[LeaveApplication, ...]:
        """Consistent point-in-time view of every application, in insertion order."""
        with self._lock:
            return tuple(self._applications.values())

    def decide(
        self,
        application_id: str,
        reviewer: User,
        decision: ApprovalStatus,
        comment: str | None = None,
    ) -> LeaveApplication:
        """
        Apply reviewer's decision to a registered application.

        Raises:
            ApplicationNotFoundError: unknown id
            NotReviewerTurnError: not this reviewer's turn (including terminal
                and the reviewer's own application)
            InvalidDecisionError: decision is PENDING or unknown
        """
        with self._lock:
            if application_id not in self._applications:
                raise ApplicationNotFoundError(f"Application {application_id} not found")
            application_lock = self._application_locks[application_id]

        with application_lock:
            current = self._applications[application_id]
            if current.applicant_id == reviewer.id:
                logger.warning(f"Refused self-review: reviewer={reviewer.id} application={application_id}")
                raise NotReviewerTurnError(
                    application_id, reviewer.role.value, "reviewers cannot decide their own application"
                )
            updated = apply_decision(
                current,
                reviewer.role,
                decision,
                assigned_class=reviewer.assigned_class,
                reviewer=reviewer,
                comment=comment,
            )
            with self._lock:
                self._applications[application_id] = updated

        logger.info(
            f"Reviewer {reviewer.id} decided {application_id}: "
            f"{updated.decisions[-1].decision.value}"
        )
        return updated
