"""
Workflow action handlers.

Each handler executes one kind of workflow step against its collaborator and
reports a uniform `ActionResult`. Handlers never raise past `handle()`: any
exception (including a timeout) becomes a failed result so that the
orchestrator can carry on with the next action.
"""

from __future__ import annotations

import asyncio
import re
import time
from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, ClassVar

import httpx

from src.domain.enums import ActionType
from src.domain.exceptions import ActionConfigurationError
from src.shared.telemetry.logging import get_logger
from src.shared.utils import utc_now

if TYPE_CHECKING:
    from src.application.interfaces.services import (IEmailService,
                                                      INotificationService,
                                                      IPracticeStorage)

logger = get_logger(__name__)

DEFAULT_TASK_DUE_OFFSET = "+7 days"
DEFAULT_INVOICE_DUE_OFFSET = "+30 days"

_DUE_OFFSET_PATTERN = re.compile(r"([+-]?)\s*(\d+)\s*(day|week|month)s?", re.IGNORECASE)
_UNIT_DAYS = {"day": 1, "week": 7, "month": 30}


@dataclass(frozen=True)
class ActionContext:
    """What a handler knows about the run it belongs to"""

    trigger_data: dict[str, Any]
    tenant_id: str
    user_id: str | None = None
    storage: "IPracticeStorage | None" = None


@dataclass
class ActionResult:
    """Uniform result envelope for every action"""

    success: bool
    data: Any = None
    error: str | None = None
    execution_time_ms: int = 0

    @classmethod
    def ok(cls, data: Any = None) -> "ActionResult":
        return cls(success=True, data=data)

    @classmethod
    def failed(cls, error: str, data: Any = None) -> "ActionResult":
        return cls(success=False, data=data, error=error)


@dataclass(frozen=True)
class ConfigField:
    """Describes one configuration key of an action type (for admin UIs)"""

    name: str
    type: str = "text"
    required: bool = False
    description: str | None = None
    options: tuple[str, ...] = field(default_factory=tuple)
    default: Any = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name, "type": self.type, "required": self.required}
        if self.description:
            data["description"] = self.description
        if self.options:
            data["options"] = list(self.options)
        if self.default is not None:
            data["defaultValue"] = self.default
        return data


def parse_due_date_offset(offset: str, now: datetime | None = None) -> datetime:
    """
    Turn a relative offset such as "+3 days", "-1 week" or "+2 months"
    into an absolute datetime. Months count as 30 days.

    Raises:
        ActionConfigurationError: If the offset is not in that form
    """
    match = _DUE_OFFSET_PATTERN.fullmatch(offset.strip()) if isinstance(offset, str) else None
    if not match:
        raise ActionConfigurationError(
            f"Invalid due date offset '{offset}', expected e.g. '+7 days', '+2 weeks' or '+1 month'"
        )

    sign, amount, unit = match.groups()
    days = int(amount) * _UNIT_DAYS[unit.lower()]
    if sign == "-":
        days = -days
    return (now or utc_now()) + timedelta(days=days)


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


def _require(config: dict[str, Any], key: str, message: str) -> Any:
    value = config.get(key)
    if value is None or value == "":
        raise ActionConfigurationError(message)
    return value


def _as_list(value: Any) -> list[str]:
    """Accept a list or a comma-separated string of addresses"""
    if value is None or value == "":
        return []
    if isinstance(value, list | tuple):
        return [str(item).strip() for item in value if str(item).strip()]
    return [part.strip() for part in str(value).split(",") if part.strip()]


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("yes", "true", "1")
    return bool(value)


class ActionHandler(ABC):
    """
    Base class for action handlers.

    Subclasses implement `execute()` and either return the action's data
    (reported as success) or an explicit `ActionResult`. `handle()` wraps
    it with timing, a timeout and exception containment.
    """

    action_type: ClassVar[ActionType]
    display_name: ClassVar[str]
    description: ClassVar[str] = ""
    config_fields: ClassVar[tuple[ConfigField, ...]] = ()

    async def handle(
        self,
        config: Any,
        context: ActionContext,
        *,
        timeout: float | None = None,
    ) -> ActionResult:
        """Run the handler; always returns a result, never raises"""
        started = time.perf_counter()
        try:
            if not isinstance(config, dict):
                raise ActionConfigurationError(
                    "Action configuration must be an object", self.action_type.value
                )
            if timeout is None:
                outcome = await self.execute(config, context)
            else:
                outcome = await asyncio.wait_for(self.execute(config, context), timeout)
            result = outcome if isinstance(outcome, ActionResult) else ActionResult.ok(outcome)
        except TimeoutError:
            result = ActionResult.failed("timeout")
        except Exception as e:
            logger.debug("Action %s raised", self.action_type.value, exc_info=True)
            result = ActionResult.failed(str(e) or type(e).__name__)

        result.execution_time_ms = _elapsed_ms(started)
        return result

    @abstractmethod
    async def execute(self, config: dict[str, Any], context: ActionContext) -> Any:
        """Perform the action with resolved configuration"""

    def describe(self) -> dict[str, Any]:
        return {
            "name": self.action_type.value,
            "displayName": self.display_name,
            "description": self.description,
            "configFields": [config_field.to_dict() for config_field in self.config_fields],
        }

    @staticmethod
    def _storage(context: ActionContext) -> "IPracticeStorage":
        if context.storage is None:
            raise ActionConfigurationError("Practice storage is not configured")
        return context.storage


class CreateTaskHandler(ActionHandler):
    action_type = ActionType.CREATE_TASK
    display_name = "Create Task"
    description = "Create a task, optionally due relative to when the workflow runs"
    config_fields = (
        ConfigField("title", default="Automated Task"),
        ConfigField("description", "textarea"),
        ConfigField("clientId"),
        ConfigField("entityId"),
        ConfigField("taskCategoryId"),
        ConfigField("assigneeId"),
        ConfigField("dueDateOffset", description="e.g. +7 days, +2 weeks, +1 month", default=DEFAULT_TASK_DUE_OFFSET),
        ConfigField("priority", "select", options=("Low", "Medium", "High", "Urgent"), default="Medium"),
        ConfigField("status", default="Pending"),
        ConfigField("isRevenue", "select", options=("Yes", "No"), default="No"),
    )

    async def execute(self, config: dict[str, Any], context: ActionContext) -> Any:
        storage = self._storage(context)
        task_data = {
            "title": config.get("title") or "Automated Task",
            "description": config.get("description") or "",
            "client_id": config.get("clientId"),
            "entity_id": config.get("entityId"),
            "task_category_id": config.get("taskCategoryId"),
            "assignee_id": config.get("assigneeId"),
            "due_date": parse_due_date_offset(config.get("dueDateOffset") or DEFAULT_TASK_DUE_OFFSET),
            "priority": config.get("priority") or "Medium",
            "status": config.get("status") or "Pending",
            "is_revenue": _as_bool(config.get("isRevenue", False)),
            "created_by": context.user_id,
        }
        return await storage.create_task(context.tenant_id, task_data)


class UpdateTaskHandler(ActionHandler):
    action_type = ActionType.UPDATE_TASK
    display_name = "Update Task"
    description = "Apply field updates to an existing task"
    config_fields = (
        ConfigField("taskId", required=True, description="e.g. {{trigger.task.id}}"),
        ConfigField("updates", "json", required=True, description='e.g. {"status": "Completed"}'),
    )

    async def execute(self, config: dict[str, Any], context: ActionContext) -> Any:
        task_id = _require(config, "taskId", "Task ID is required for update task action")
        updates = config.get("updates") or {}
        if not isinstance(updates, dict) or not updates:
            raise ActionConfigurationError("At least one task field to update is required")
        return await self._storage(context).update_task(context.tenant_id, str(task_id), updates)


class _FieldUpdateHandler(ActionHandler):
    """Shared logic for single-field updates on a client or entity"""

    id_key: ClassVar[str]
    record_label: ClassVar[str]

    async def execute(self, config: dict[str, Any], context: ActionContext) -> Any:
        record_id = _require(
            config, self.id_key, f"{self.record_label} ID is required for {self.action_type.value}"
        )
        field_name = _require(
            config, "fieldName", f"Field name is required for {self.action_type.value}"
        )
        updates = {str(field_name): config.get("fieldValue")}
        return await self._apply(self._storage(context), context.tenant_id, str(record_id), updates)

    @abstractmethod
    async def _apply(
        self, storage: "IPracticeStorage", tenant_id: str, record_id: str, updates: dict[str, Any]
    ) -> Any:
        """Persist the update"""


class UpdateClientFieldHandler(_FieldUpdateHandler):
    action_type = ActionType.UPDATE_CLIENT_FIELD
    display_name = "Update Client Field"
    description = "Set one field on a client record"
    config_fields = (
        ConfigField("clientId", required=True),
        ConfigField("fieldName", required=True),
        ConfigField("fieldValue"),
    )
    id_key = "clientId"
    record_label = "Client"

    async def _apply(self, storage, tenant_id, record_id, updates):
        return await storage.update_client(tenant_id, record_id, updates)


class UpdateEntityFieldHandler(_FieldUpdateHandler):
    action_type = ActionType.UPDATE_ENTITY_FIELD
    display_name = "Update Entity Field"
    description = "Set one field on a client entity record"
    config_fields = (
        ConfigField("entityId", required=True),
        ConfigField("fieldName", required=True),
        ConfigField("fieldValue"),
    )
    id_key = "entityId"
    record_label = "Entity"

    async def _apply(self, storage, tenant_id, record_id, updates):
        return await storage.update_entity(tenant_id, record_id, updates)


class AssignUserHandler(ActionHandler):
    action_type = ActionType.ASSIGN_USER
    display_name = "Assign User"
    description = "Assign a task to a user"
    config_fields = (
        ConfigField("taskId", required=True),
        ConfigField("assigneeId", required=True),
    )

    async def execute(self, config: dict[str, Any], context: ActionContext) -> Any:
        task_id = _require(config, "taskId", "Task ID is required for assign_user")
        assignee_id = config.get("assigneeId") or config.get("userId")
        if not assignee_id:
            raise ActionConfigurationError("Assignee ID is required for assign_user")
        return await self._storage(context).assign_task(
            context.tenant_id, str(task_id), str(assignee_id)
        )


class CreateInvoiceHandler(ActionHandler):
    action_type = ActionType.CREATE_INVOICE
    display_name = "Create Invoice"
    description = "Raise an invoice for a client"
    config_fields = (
        ConfigField("clientId", required=True),
        ConfigField("entityId"),
        ConfigField("taskId"),
        ConfigField("amount", "number"),
        ConfigField("currency"),
        ConfigField("description", "textarea"),
        ConfigField("lineItems", "json"),
        ConfigField("dueDateOffset", default=DEFAULT_INVOICE_DUE_OFFSET),
        ConfigField("status", default="Draft"),
    )

    async def execute(self, config: dict[str, Any], context: ActionContext) -> Any:
        client_id = _require(config, "clientId", "Client ID is required for create_invoice")
        line_items = config.get("lineItems") or []
        if not isinstance(line_items, list):
            raise ActionConfigurationError("lineItems must be a list")

        invoice_data = {
            "client_id": client_id,
            "entity_id": config.get("entityId"),
            "task_id": config.get("taskId"),
            "amount": config.get("amount"),
            "currency": config.get("currency"),
            "description": config.get("description") or "",
            "line_items": line_items,
            "due_date": parse_due_date_offset(config.get("dueDateOffset") or DEFAULT_INVOICE_DUE_OFFSET),
            "status": config.get("status") or "Draft",
            "created_by": context.user_id,
        }
        return await self._storage(context).create_invoice(context.tenant_id, invoice_data)


class SendNotificationHandler(ActionHandler):
    action_type = ActionType.SEND_NOTIFICATION
    display_name = "Send Notification"
    description = "Send an in-app notification to a user or role"
    config_fields = (
        ConfigField("recipientId"),
        ConfigField("recipientRole"),
        ConfigField("title"),
        ConfigField("message", "textarea", required=True),
        ConfigField("type", "select", options=("info", "success", "warning", "error"), default="info"),
    )

    def __init__(self, notifier: "INotificationService"):
        self.notifier = notifier

    async def execute(self, config: dict[str, Any], context: ActionContext) -> Any:
        message = _require(config, "message", "Message is required for send_notification")
        recipient = config.get("recipientId") or config.get("recipientRole")
        delivery = await self.notifier.notify(
            context.tenant_id,
            recipient=str(recipient) if recipient else None,
            message=str(message),
            notification_type=config.get("type") or "info",
            title=config.get("title"),
        )
        data: dict[str, Any] = {"notificationSent": True, "recipient": recipient}
        if delivery is not None:
            data["delivery"] = delivery
        return data


class SendEmailHandler(ActionHandler):
    action_type = ActionType.SEND_EMAIL
    display_name = "Send Email"
    description = "Send an email"
    config_fields = (
        ConfigField("to", required=True, description="Address or comma-separated list, e.g. {{trigger.client.email}}"),
        ConfigField("cc"),
        ConfigField("bcc"),
        ConfigField("subject", required=True),
        ConfigField("body", "textarea", required=True),
        ConfigField("isHtml", "select", options=("Yes", "No"), default="No"),
    )

    def __init__(self, mailer: "IEmailService"):
        self.mailer = mailer

    async def execute(self, config: dict[str, Any], context: ActionContext) -> Any:
        recipients = _as_list(config.get("to"))
        if not recipients:
            raise ActionConfigurationError("Recipient ('to') is required for send_email")
        subject = _require(config, "subject", "Subject is required for send_email")

        delivery = await self.mailer.send(
            context.tenant_id,
            to=recipients,
            subject=str(subject),
            body=str(config.get("body") or ""),
            cc=_as_list(config.get("cc")) or None,
            bcc=_as_list(config.get("bcc")) or None,
            is_html=_as_bool(config.get("isHtml", False)),
        )
        data: dict[str, Any] = {"emailSent": True, "to": recipients}
        if delivery is not None:
            data["delivery"] = delivery
        return data


class CallWebhookHandler(ActionHandler):
    """
    Call an external HTTP endpoint.

    Success follows the response status (2xx), not merely the absence of a
    network error.
    """

    action_type = ActionType.CALL_WEBHOOK
    display_name = "Call Webhook"
    description = "Send the configured payload to an HTTP endpoint"
    config_fields = (
        ConfigField("url", required=True),
        ConfigField("method", "select", options=("POST", "PUT", "PATCH", "GET", "DELETE"), default="POST"),
        ConfigField("headers", "json"),
        ConfigField("payload", "json", description='e.g. {"invoice": "{{trigger.invoice.id}}"}'),
    )

    def __init__(
        self,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout = timeout
        self.transport = transport

    async def execute(self, config: dict[str, Any], context: ActionContext) -> Any:
        url = str(_require(config, "url", "URL is required for call_webhook"))
        try:
            scheme = httpx.URL(url).scheme
        except httpx.InvalidURL as e:
            raise ActionConfigurationError(f"Invalid webhook URL: {url}") from e
        if scheme not in ("http", "https"):
            raise ActionConfigurationError(f"Webhook URL must be http(s): {url}")

        method = str(config.get("method") or "POST").upper()
        custom_headers = config.get("headers") or {}
        if not isinstance(custom_headers, dict):
            raise ActionConfigurationError("Webhook headers must be an object")
        headers = {"Content-Type": "application/json", **{k: str(v) for k, v in custom_headers.items()}}
        payload = config.get("payload")
        send_body = method not in ("GET", "HEAD") and payload is not None

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.request(
                    method, url, headers=headers, json=payload if send_body else None
                )
        except httpx.TimeoutException:
            return ActionResult.failed("timeout")

        try:
            body: Any = response.json()
        except ValueError:
            body = response.text

        data = {"statusCode": response.status_code, "body": body}
        if response.is_success:
            return ActionResult.ok(data)
        return ActionResult.failed(f"Webhook responded with HTTP {response.status_code}", data)


class ActionHandlerRegistry:
    """
    Action type -> handler mapping, built once and read-only afterwards.

    Lookups of unregistered types return None; the orchestrator records
    those as failed actions.
    """

    def __init__(self, handlers: Iterable[ActionHandler]):
        registry: dict[str, ActionHandler] = {}
        for handler in handlers:
            key = handler.action_type.value
            if key in registry:
                raise ValueError(f"Duplicate handler for action type '{key}'")
            registry[key] = handler
        self._handlers = MappingProxyType(registry)

    @classmethod
    def default(
        cls,
        *,
        notifier: "INotificationService",
        mailer: "IEmailService",
        webhook_timeout: float = 10.0,
        webhook_transport: httpx.AsyncBaseTransport | None = None,
    ) -> "ActionHandlerRegistry":
        """Registry with a handler for every ActionType"""
        return cls(
            [
                CreateTaskHandler(),
                UpdateTaskHandler(),
                SendNotificationHandler(notifier),
                UpdateClientFieldHandler(),
                CreateInvoiceHandler(),
                SendEmailHandler(mailer),
                CallWebhookHandler(timeout=webhook_timeout, transport=webhook_transport),
                UpdateEntityFieldHandler(),
                AssignUserHandler(),
            ]
        )

    def get(self, action_type: str) -> ActionHandler | None:
        return self._handlers.get(action_type)

    def __contains__(self, action_type: object) -> bool:
        return action_type in self._handlers

    def registered_types(self) -> list[str]:
        return sorted(self._handlers)

    def describe(self) -> list[dict[str, Any]]:
        """Registered action types with their configuration fields"""
        return [self._handlers[name].describe() for name in self.registered_types()]
