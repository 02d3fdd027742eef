"""
Workflow event entity.

A domain occurrence (module + event name + payload) emitted by business
logic after a tenant-scoped mutation, e.g. ("tasks", "task_completed").
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class WorkflowEvent:
    """Event fed to the workflow engine. Module/event names are case-sensitive."""

    module: str
    event: str
    tenant_id: str
    data: dict[str, Any] = field(default_factory=dict)
    user_id: str | None = None

    def __post_init__(self):
        if not self.module or not self.event:
            raise ValueError("Workflow events need a module and an event name")
        if not self.tenant_id:
            raise ValueError("Workflow events must be tenant-scoped")
