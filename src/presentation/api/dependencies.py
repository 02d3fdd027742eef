from collections.abc import AsyncGenerator

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.application.use_cases.workflows.action_handlers import \
    ActionHandlerRegistry
from src.application.use_cases.workflows.workflow_engine import WorkflowEngine
from src.infrastructure.config.settings import Settings
from src.infrastructure.persistence.models.tenant import Tenant
from src.infrastructure.persistence.repositories import (
    TenantRepository, WorkflowExecutionLogRepository, WorkflowRepository)
from src.shared.context import clear_current_user, set_current_user
from src.shared.enums import ActorType


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Database session dependency for read operations.

    No automatic commit - use for GET requests.
    """
    async with request.app.state.session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


async def get_db_transactional(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Database session dependency with automatic transaction management.

    Commits on success, rolls back on exception - use for POST/PUT/DELETE requests.
    """
    async with request.app.state.session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


def get_app_settings(request: Request) -> Settings:
    """Settings the application was created with"""
    return request.app.state.settings


def get_workflow_engine(request: Request) -> WorkflowEngine:
    """Workflow engine singleton built by create_app"""
    return request.app.state.workflow_engine


def get_action_registry(
    engine: WorkflowEngine = Depends(get_workflow_engine),
) -> ActionHandlerRegistry:
    return engine.registry


async def get_current_tenant(
    request: Request,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> Tenant:
    """
    Resolve the calling tenant from the tenant header.

    The tenant must exist and be active; anything else is treated as
    access denied rather than not found.
    """
    tenant_id = request.headers.get(settings.tenant_header_name)
    if not tenant_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Missing {settings.tenant_header_name} header",
        )

    tenant = await TenantRepository(db).get_active_by_id(tenant_id)
    if not tenant:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Tenant not found or access denied",
        )
    return tenant


async def get_current_user_id(
    request: Request,
    settings: Settings = Depends(get_app_settings),
) -> AsyncGenerator[str | None, None]:
    """
    Acting user from the user header, published to the actor context so
    events emitted during the request carry it.
    """
    user_id = request.headers.get(settings.user_header_name) or None
    set_current_user(user_id, ActorType.USER if user_id else ActorType.SYSTEM)
    try:
        yield user_id
    finally:
        clear_current_user()


async def get_workflow_repo(db: AsyncSession = Depends(get_db)) -> WorkflowRepository:
    """Workflow repository dependency"""
    return WorkflowRepository(db)


async def get_workflow_repo_transactional(
    db: AsyncSession = Depends(get_db_transactional),
) -> WorkflowRepository:
    """Workflow repository dependency with transaction management"""
    return WorkflowRepository(db)


async def get_execution_log_repo(
    db: AsyncSession = Depends(get_db),
) -> WorkflowExecutionLogRepository:
    """Execution log repository dependency"""
    return WorkflowExecutionLogRepository(db)
