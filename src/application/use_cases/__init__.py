"""Application use cases."""

from src.application.use_cases.workflows.action_handlers import (
    ActionContext, ActionHandler, ActionHandlerRegistry, ActionResult)
from src.application.use_cases.workflows.trigger_matcher import (TriggerMatch,
                                                                 TriggerMatcher)
from src.application.use_cases.workflows.workflow_engine import WorkflowEngine

__all__ = [
    "ActionContext",
    "ActionHandler",
    "ActionHandlerRegistry",
    "ActionResult",
    "TriggerMatch",
    "TriggerMatcher",
    "WorkflowEngine",
]
