"""
Domain layer - Enterprise Business Rules.

This is the innermost layer containing business entities, workflow rules,
and domain exceptions. It has no dependencies on other layers.
"""

from src.domain.entities import WorkflowEvent
from src.domain.enums import (ActionType, ConditionOperator, TenantStatus,
                              WorkflowExecutionStatus, WorkflowStatus)
from src.domain.exceptions import (ActionConfigurationError,
                                   ConditionParseError, PracticeFlowException,
                                   ResourceNotFoundException,
                                   TenantNotFoundException,
                                   ValidationException,
                                   WorkflowConfigurationException,
                                   WorkflowNotFoundException)

__all__ = [
    # Entities
    "WorkflowEvent",
    # Enums
    "ActionType",
    "ConditionOperator",
    "TenantStatus",
    "WorkflowExecutionStatus",
    "WorkflowStatus",
    # Exceptions
    "PracticeFlowException",
    "ValidationException",
    "TenantNotFoundException",
    "ResourceNotFoundException",
    "WorkflowNotFoundException",
    "WorkflowConfigurationException",
    "ConditionParseError",
    "ActionConfigurationError",
]
