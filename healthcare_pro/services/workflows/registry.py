"""Per-process store of live workflows, keyed by user id and workflow id."""
import logging
from collections import OrderedDict
from typing import Dict, Optional, Type, TypeVar

from healthcare_pro import config
from healthcare_pro.services.workflows.base import Workflow
from healthcare_pro.utils.exceptions import RowNotFoundError

logger = logging.getLogger("healthcare_pro")

W = TypeVar("W", bound=Workflow)


class WorkflowRegistry:
    """Holds at most ``per_user`` workflows per user; the oldest is dropped first."""

    def __init__(self, per_user: Optional[int] = None):
        self.per_user = per_user or config.WORKFLOWS_PER_USER
        self._by_user: Dict[str, "OrderedDict[str, Workflow]"] = {}

    def add(self, workflow: W) -> W:
        bucket = self._by_user.setdefault(workflow.user_id, OrderedDict())
        bucket[workflow.id] = workflow
        while len(bucket) > self.per_user:
            dropped, _ = bucket.popitem(last=False)
            logger.info({"function": "workflow_registry", "evicted": dropped, "user_id": workflow.user_id})
        return workflow

    def get(self, user_id: str, workflow_id: str, kind: Type[W] = Workflow) -> W:
        workflow = self._by_user.get(str(user_id), {}).get(workflow_id)
        if workflow is None or not isinstance(workflow, kind):
            raise RowNotFoundError("Workflow not found", {"id": workflow_id})
        return workflow

    def discard(self, user_id: str, workflow_id: str) -> None:
        self._by_user.get(str(user_id), {}).pop(workflow_id, None)

    def clear(self) -> None:
        self._by_user.clear()

    def __len__(self) -> int:
        return sum(len(b) for b in self._by_user.values())


registry = WorkflowRegistry()


def get_registry() -> WorkflowRegistry:
    return registry
