"""Domain entities."""

from src.domain.entities.workflow import WorkflowEvent

__all__ = ["WorkflowEvent"]
