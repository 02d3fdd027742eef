"""
Domain exceptions for the PracticeFlow application.

This module defines domain-level exceptions that represent business rule violations.
These exceptions are independent of infrastructure concerns.
"""

from typing import Any


class PracticeFlowException(Exception):
    """
    Base exception for all PracticeFlow application errors.

    All custom exceptions should inherit from this class to allow
    for consistent error handling and logging.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable error code for API responses
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ValidationException(PracticeFlowException):
    """Raised when input validation fails."""

    def __init__(self, message: str, field: str | None = None):
        details = {"field": field} if field else {}
        super().__init__(message, "VALIDATION_ERROR", details)


class TenantNotFoundException(PracticeFlowException):
    """Raised when tenant is not found."""

    def __init__(self, tenant_id: str):
        super().__init__(
            f"Tenant not found: {tenant_id}",
            "TENANT_NOT_FOUND",
            {"tenant_id": tenant_id},
        )


class ResourceNotFoundException(PracticeFlowException):
    """Raised when a requested resource is not found."""

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            "RESOURCE_NOT_FOUND",
            {"resource_type": resource_type, "resource_id": resource_id},
        )


class WorkflowNotFoundException(ResourceNotFoundException):
    """Raised when a workflow does not exist for the tenant."""

    def __init__(self, workflow_id: str):
        super().__init__("Workflow", workflow_id)


class WorkflowConfigurationException(PracticeFlowException):
    """Raised when a workflow definition cannot be run as configured."""

    def __init__(self, workflow_id: str, reason: str):
        super().__init__(
            f"Workflow {workflow_id} is misconfigured: {reason}",
            "WORKFLOW_CONFIGURATION_ERROR",
            {"workflow_id": workflow_id, "reason": reason},
        )


class ConditionParseError(PracticeFlowException):
    """Raised when stored trigger conditions cannot be parsed."""

    def __init__(self, reason: str):
        super().__init__(
            f"Invalid trigger conditions: {reason}",
            "CONDITION_PARSE_ERROR",
            {"reason": reason},
        )


class ActionConfigurationError(PracticeFlowException):
    """Raised by an action handler when its configuration is incomplete."""

    def __init__(self, message: str, action_type: str | None = None):
        details = {"action_type": action_type} if action_type else {}
        super().__init__(message, "ACTION_CONFIGURATION_ERROR", details)
