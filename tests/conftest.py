"""Shared test fixtures for pytest"""
import os

# Settings are read when main is imported; point them at a throwaway database
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from src.application.use_cases.workflows.action_handlers import \
    ActionHandlerRegistry
from src.application.use_cases.workflows.workflow_engine import WorkflowEngine
from src.infrastructure.config.settings import Settings
from src.infrastructure.persistence.database import (Base,
                                                     build_session_factory)
from src.infrastructure.persistence.models import (Tenant, Workflow,
                                                   WorkflowAction,
                                                   WorkflowTrigger)
from src.infrastructure.persistence.repositories import WorkflowRepository

TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture
async def test_engine():
    """In-memory database shared by every session of a test"""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return build_session_factory(test_engine)


@pytest.fixture
async def test_db(session_factory):
    """Create test database session"""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def test_tenant(test_db):
    """Create test tenant"""
    tenant = Tenant(
        id="test-tenant-id",
        code="TEST",
        name="Test Tenant",
        status="active",
        is_active=True,
    )
    test_db.add(tenant)
    await test_db.commit()
    await test_db.refresh(tenant)
    return tenant


@pytest.fixture
async def second_tenant(test_db):
    """Create second tenant for isolation tests"""
    tenant = Tenant(
        id="tenant-2", code="TENANT2", name="Second Tenant", status="active", is_active=True
    )
    test_db.add(tenant)
    await test_db.commit()
    await test_db.refresh(tenant)
    return tenant


@pytest.fixture
def practice_storage():
    """Practice storage double; every call succeeds with a small record"""
    storage = AsyncMock()
    storage.create_task.return_value = {"id": "task-1"}
    storage.update_task.return_value = {"id": "task-1"}
    storage.assign_task.return_value = {"id": "task-1"}
    storage.update_client.return_value = {"id": "client-1"}
    storage.update_entity.return_value = {"id": "entity-1"}
    storage.create_invoice.return_value = {"id": "invoice-1"}
    return storage


@pytest.fixture
def notifier():
    service = AsyncMock()
    service.notify.return_value = {"id": "notification-1", "status": "queued"}
    return service


@pytest.fixture
def mailer():
    service = AsyncMock()
    service.send.return_value = {"message_id": "message-1", "status": "queued"}
    return service


@pytest.fixture
def action_registry(notifier, mailer):
    return ActionHandlerRegistry.default(notifier=notifier, mailer=mailer)


@pytest.fixture
def workflow_engine(session_factory, action_registry, practice_storage):
    """Engine that processes events inline so tests can assert on the outcome"""
    return WorkflowEngine(
        session_factory,
        action_registry,
        practice_storage,
        action_timeout=5.0,
        background_dispatch=False,
    )


@pytest.fixture
def make_workflow(session_factory):
    """
    Persist a workflow with its triggers and actions.

    Triggers/actions are given as dicts of column values.
    """

    async def _make(
        tenant_id: str,
        triggers: list[dict] | None = None,
        actions: list[dict] | None = None,
        name: str = "Test Workflow",
        status: str = "active",
        is_active: bool = True,
    ) -> Workflow:
        async with session_factory() as session:
            workflow = await WorkflowRepository(session).create_with_definition(
                Workflow(tenant_id=tenant_id, name=name, status=status, is_active=is_active),
                [WorkflowTrigger(**trigger) for trigger in triggers or []],
                [WorkflowAction(**action) for action in actions or []],
            )
            await session.commit()
            return workflow

    return _make


@pytest.fixture
def test_settings():
    return Settings(
        database_url=TEST_DATABASE_URL,
        workflow_background_dispatch=False,
        workflow_action_timeout_seconds=5.0,
    )


@pytest.fixture
def app(test_settings, session_factory, practice_storage, notifier, mailer):
    from main import create_app

    return create_app(
        settings=test_settings,
        session_factory=session_factory,
        practice_storage=practice_storage,
        notifier=notifier,
        mailer=mailer,
    )


@pytest.fixture
async def client(app):
    """HTTP client for API testing"""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def tenant_headers(test_tenant):
    return {"X-Tenant-ID": test_tenant.id, "X-User-ID": "user-1"}
