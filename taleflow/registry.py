"""In-memory registry of workflows that are currently executing."""

from __future__ import annotations

from typing import Dict, List, Optional

from .contracts import StepRecord
from .errors import DuplicateWorkflowError


class ActiveWorkflowRegistry:
    """Live step lists keyed by workflow id.

    Entries exist only while a workflow runs; nothing is persisted.
    """

    def __init__(self) -> None:
        self._workflows: Dict[str, List[StepRecord]] = {}

    def __len__(self) -> int:
        return len(self._workflows)

    def __contains__(self, workflow_id: object) -> bool:
        return workflow_id in self._workflows

    def register(self, workflow_id: str, steps: List[StepRecord]) -> None:
        if workflow_id in self._workflows:
            raise DuplicateWorkflowError(workflow_id)
        self._workflows[workflow_id] = steps

    def get(self, workflow_id: str) -> Optional[List[StepRecord]]:
        return self._workflows.get(workflow_id)

    def remove(self, workflow_id: str) -> None:
        self._workflows.pop(workflow_id, None)

    def list_ids(self) -> List[str]:
        return list(self._workflows)
