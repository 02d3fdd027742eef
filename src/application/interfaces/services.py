"""
Service interfaces (ports) for the application layer.

The workflow engine drives these collaborators but does not own them:
task/client/entity/invoice persistence belongs to the practice-management
modules, notification and email delivery to their own services.
Following Dependency Inversion Principle (DIP).
"""

from __future__ import annotations

from typing import Any, Protocol


class IPracticeStorage(Protocol):
    """Narrow tenant-scoped CRUD operations consumed by action handlers"""

    async def create_task(self, tenant_id: str, data: dict[str, Any]) -> Any:
        """Create a task and return it"""
        ...

    async def update_task(self, tenant_id: str, task_id: str, updates: dict[str, Any]) -> Any:
        """Apply field updates to a task and return it"""
        ...

    async def assign_task(self, tenant_id: str, task_id: str, assignee_id: str) -> Any:
        """Assign a task to a user and return it"""
        ...

    async def update_client(self, tenant_id: str, client_id: str, updates: dict[str, Any]) -> Any:
        """Apply field updates to a client and return it"""
        ...

    async def update_entity(self, tenant_id: str, entity_id: str, updates: dict[str, Any]) -> Any:
        """Apply field updates to a client entity and return it"""
        ...

    async def create_invoice(self, tenant_id: str, data: dict[str, Any]) -> Any:
        """Create an invoice and return it"""
        ...


class INotificationService(Protocol):
    """In-app notification delivery"""

    async def notify(
        self,
        tenant_id: str,
        *,
        recipient: str | None,
        message: str,
        notification_type: str = "info",
        title: str | None = None,
    ) -> Any:
        """Dispatch a notification, returning delivery details"""
        ...


class IEmailService(Protocol):
    """Outbound email delivery"""

    async def send(
        self,
        tenant_id: str,
        *,
        to: list[str],
        subject: str,
        body: str,
        cc: list[str] | None = None,
        bcc: list[str] | None = None,
        is_html: bool = False,
    ) -> Any:
        """Dispatch an email, returning delivery details"""
        ...
