"""
Application layer - Application Business Rules.

This layer contains application-specific business rules, including:
- Interfaces (ports) for the practice-management collaborators
- Use cases that match events to workflows and execute their actions
"""

from src.application.interfaces import (IEmailService, INotificationService,
                                        IPracticeStorage)
from src.application.use_cases import (ActionContext, ActionHandler,
                                       ActionHandlerRegistry, ActionResult,
                                       TriggerMatch, TriggerMatcher,
                                       WorkflowEngine)

__all__ = [
    # Interfaces
    "IPracticeStorage",
    "INotificationService",
    "IEmailService",
    # Use Cases
    "ActionContext",
    "ActionHandler",
    "ActionHandlerRegistry",
    "ActionResult",
    "TriggerMatch",
    "TriggerMatcher",
    "WorkflowEngine",
]
