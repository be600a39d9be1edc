"""
Appeal lifecycle - state machine over the appeal store

    New -> InProgress -> Completed
    New -> Cancelled
    InProgress -> Cancelled

Completed and Cancelled are terminal. Every operation runs in its own
transaction; concurrency control is the conditional UPDATE in the store,
there is no in-process locking.
"""
import logging
from dataclasses import dataclass
from datetime import date
from typing import Dict, FrozenSet, List, Optional, Tuple

from app.core.database import Database
from app.core.exceptions import AppealNotFoundError, AppealValidationError
from app.models.appeal import Appeal, AppealResponse, AppealStatus
from app.services import appeal_store

logger = logging.getLogger(__name__)


COMPLETE_MESSAGE = "Appeal completed. Solution: {solution}"
CANCEL_MESSAGE = "Appeal cancelled. Reason: {reason}"


@dataclass(frozen=True)
class Transition:
    expected: FrozenSet[AppealStatus]
    target: AppealStatus
    records_response: bool


TRANSITIONS: Dict[str, Transition] = {
    "take": Transition(frozenset({AppealStatus.NEW}), AppealStatus.IN_PROGRESS, False),
    "complete": Transition(frozenset({AppealStatus.IN_PROGRESS}), AppealStatus.COMPLETED, True),
    "cancel": Transition(frozenset({AppealStatus.NEW, AppealStatus.IN_PROGRESS}), AppealStatus.CANCELLED, True),
    "cancel-all-in-work": Transition(frozenset({AppealStatus.IN_PROGRESS}), AppealStatus.CANCELLED, True),
}


class AppealLifecycle:
    """Submit, list and transition appeals"""

    def __init__(
        self,
        database: Database,
        require_response_message: bool = False,
        bulk_cancel_default_reason: str = "Cancel all appeals"
    ):
        self.database = database
        self.require_response_message = require_response_message
        self.bulk_cancel_default_reason = bulk_cancel_default_reason

    def submit(self, topic: Optional[str], message: Optional[str]) -> Appeal:
        if not topic or not topic.strip():
            raise AppealValidationError("topic is required")
        if not message or not message.strip():
            raise AppealValidationError("message is required")
        
        with self.database.session() as db:
            appeal = appeal_store.create_appeal(db, topic, message)
        
        logger.info("Appeal %s submitted", appeal.id)
        return appeal

    def get(self, appeal_id: int) -> Appeal:
        with self.database.session() as db:
            appeal = appeal_store.get_appeal(db, appeal_id)
        if appeal is None:
            raise AppealNotFoundError(appeal_id)
        return appeal

    def list(
        self,
        on_date: Optional[date] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        status: Optional[AppealStatus] = None
    ) -> List[Appeal]:
        with self.database.session() as db:
            return appeal_store.list_appeals(
                db,
                on_date=on_date,
                start_date=start_date,
                end_date=end_date,
                status=status
            )

    def responses(self, appeal_id: int) -> List[AppealResponse]:
        """Audit history of one appeal, oldest first"""
        with self.database.session() as db:
            if appeal_store.get_appeal(db, appeal_id) is None:
                raise AppealNotFoundError(appeal_id)
            return appeal_store.list_appeal_responses(db, appeal_id)

    def take(self, appeal_id: int) -> Appeal:
        return self._transition("take", appeal_id)

    def complete(self, appeal_id: int, solution: Optional[str] = None) -> Appeal:
        solution = self._response_text(solution, "solution")
        return self._transition(
            "complete",
            appeal_id,
            COMPLETE_MESSAGE.format(solution=solution)
        )

    def cancel(self, appeal_id: int, cancellation_reason: Optional[str] = None) -> Appeal:
        reason = self._response_text(cancellation_reason, "cancellation_reason")
        return self._transition(
            "cancel",
            appeal_id,
            CANCEL_MESSAGE.format(reason=reason)
        )

    def cancel_all_in_work(self, reason: Optional[str] = None) -> Tuple[int, List[Appeal]]:
        """Cancel every appeal currently InProgress in one transaction"""
        transition = TRANSITIONS["cancel-all-in-work"]
        (from_status,) = transition.expected
        
        with self.database.session() as db:
            count, appeals = appeal_store.bulk_transition(
                db,
                from_status,
                transition.target,
                CANCEL_MESSAGE,
                operation="cancel-all-in-work",
                reason=reason or self.bulk_cancel_default_reason
            )
        
        logger.info("Cancelled %s appeals in progress", count)
        return count, appeals

    def _transition(self, operation: str, appeal_id: int, response_message: Optional[str] = None) -> Appeal:
        transition = TRANSITIONS[operation]
        try:
            with self.database.session() as db:
                appeal = appeal_store.conditional_transition(
                    db,
                    appeal_id,
                    transition.expected,
                    transition.target,
                    response_message=response_message if transition.records_response else None,
                    operation=operation
                )
        except AppealNotFoundError:
            logger.info("Rejected %s for appeal %s", operation, appeal_id)
            raise
        
        logger.info("Appeal %s moved to %s by %s", appeal_id, appeal.status.value, operation)
        return appeal

    def _response_text(self, value: Optional[str], field: str) -> str:
        if value is None or not value.strip():
            if self.require_response_message:
                raise AppealValidationError(f"{field} is required")
            # Missing value is stored as an empty string
            return value or ""
        return value
