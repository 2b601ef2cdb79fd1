import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Optional, Sequence, Tuple

from healthcare_pro.utils.exceptions import (
    ContentRefusedError,
    InvalidTransitionError,
)

logger = logging.getLogger("healthcare_pro")


class WorkflowState(str, Enum):
    INITIAL = "initial"
    VALIDATING = "validating"
    ANALYZING = "analyzing"
    FOLLOWUP = "followup"
    REFINING = "refining"
    COMPLETE = "complete"
    EMERGENCY = "emergency"
    ERROR = "error"


class SyncStatus(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    SYNCED = "synced"
    FAILED = "failed"


# (substrings, user message); a None message passes the underlying text through
ErrorTable = Sequence[Tuple[Tuple[str, ...], Optional[str]]]


def user_message(exc: Exception, table: ErrorTable, generic: str) -> str:
    """Pick the message shown to the user for a failed step."""
    if isinstance(exc, ContentRefusedError):
        return exc.message
    text = str(exc)
    for needles, message in table:
        if any(needle in text for needle in needles):
            return message or text
    return generic


class Workflow:
    """A single run of one feature, held in memory between requests.

    Subclasses declare ``transitions``; any move not listed there raises
    InvalidTransitionError and leaves the state untouched.
    """

    kind = "workflow"
    transitions: Dict[WorkflowState, FrozenSet[WorkflowState]] = {}

    def __init__(self, user_id: str):
        self.id = str(uuid.uuid4())
        self.user_id = str(user_id)
        self.state = WorkflowState.INITIAL
        self.message: Optional[str] = None
        self.error: Optional[str] = None
        self.failed_step: Optional[str] = None
        self.sync_status = SyncStatus.IDLE
        self.sync_error: Optional[str] = None
        self.created_at = datetime.now(timezone.utc)
        self.updated_at = self.created_at

    def can_transition(self, target: WorkflowState) -> bool:
        return target in self.transitions.get(self.state, frozenset())

    def transition(self, target: WorkflowState) -> None:
        if not self.can_transition(target):
            raise InvalidTransitionError(self.state.value, target.value)
        logger.info({"workflow": self.kind, "id": self.id, "from": self.state.value, "to": target.value})
        self.state = target
        self.updated_at = datetime.now(timezone.utc)

    def require(self, *states: WorkflowState, action: str) -> None:
        if self.state not in states:
            raise InvalidTransitionError(self.state.value, action)

    def fail(self, message: str, step: str) -> None:
        self.transition(WorkflowState.ERROR)
        self.error = message
        self.failed_step = step

    def clear_error(self) -> None:
        self.error = None
        self.failed_step = None

    def persist(self, write: Callable[[], Any], what: str) -> Any:
        """Run a store write without letting its failure reach the user.

        The outcome is recorded on ``sync_status`` so the client can show a
        "not saved" indicator.
        """
        self.sync_status = SyncStatus.PENDING
        try:
            result = write()
        except Exception as exc:
            # Any store failure, including transport errors the store did not wrap
            self.sync_status = SyncStatus.FAILED
            self.sync_error = getattr(exc, "message", None) or str(exc)
            logger.warning({"workflow": self.kind, "id": self.id, "persist": what, "error": self.sync_error})
            return None
        self.sync_status = SyncStatus.SYNCED
        self.sync_error = None
        return result

    def snapshot(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind,
            "state": self.state.value,
            "message": self.message,
            "error": self.error,
            "failed_step": self.failed_step,
            "sync_status": self.sync_status.value,
            "sync_error": self.sync_error,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
