# Mixins for model composition
from src.infrastructure.persistence.models.mixins import (
    AuditedMultiTenantModel, CuidMixin, MultiTenantModel, TenantMixin,
    TimestampMixin, UserAuditMixin)
from src.infrastructure.persistence.models.tenant import Tenant
from src.infrastructure.persistence.models.workflow import (
    Workflow, WorkflowAction, WorkflowExecutionLog, WorkflowTrigger)

__all__ = [
    # Models
    "Tenant",
    "Workflow",
    "WorkflowTrigger",
    "WorkflowAction",
    "WorkflowExecutionLog",
    # Mixins
    "CuidMixin",
    "TenantMixin",
    "TimestampMixin",
    "UserAuditMixin",
    "MultiTenantModel",
    "AuditedMultiTenantModel",
]
