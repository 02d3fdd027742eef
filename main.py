import logging
from contextlib import asynccontextmanager
from typing import Any

import httpx
from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.application.interfaces.services import (IEmailService,
                                                  INotificationService,
                                                  IPracticeStorage)
from src.application.use_cases.workflows.action_handlers import \
    ActionHandlerRegistry
from src.application.use_cases.workflows.workflow_engine import WorkflowEngine
from src.domain.exceptions import (ActionConfigurationError,
                                   ConditionParseError, PracticeFlowException,
                                   ResourceNotFoundException,
                                   TenantNotFoundException,
                                   ValidationException,
                                   WorkflowConfigurationException)
from src.infrastructure.config.settings import Settings, get_settings
from src.infrastructure.external.notifications import (
    LoggingEmailService, LoggingNotificationService)
from src.infrastructure.persistence.database import (build_engine,
                                                     build_session_factory)
from src.presentation.api.dependencies import get_db
from src.presentation.api.v1.routes import workflows
from src.shared.telemetry.logging import setup_logging

logger = logging.getLogger(__name__)

_STATUS_BY_EXCEPTION: list[tuple[type[PracticeFlowException], int]] = [
    (ResourceNotFoundException, status.HTTP_404_NOT_FOUND),
    (TenantNotFoundException, status.HTTP_403_FORBIDDEN),
    (ValidationException, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (WorkflowConfigurationException, status.HTTP_400_BAD_REQUEST),
    (ConditionParseError, status.HTTP_400_BAD_REQUEST),
    (ActionConfigurationError, status.HTTP_400_BAD_REQUEST),
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan events for application initialization and cleanup"""
    setup_logging()
    logger.info(
        "Workflow engine ready: %d action types, background dispatch %s",
        len(app.state.workflow_engine.registry.registered_types()),
        "on" if app.state.workflow_engine.background_dispatch else "off",
    )

    yield

    # Let in-flight workflow runs finish before the database goes away
    await app.state.workflow_engine.drain()
    logger.info("Workflow engine drained")

    if app.state.db_engine is not None:
        await app.state.db_engine.dispose()
        logger.info("Database engine disposed")


async def practiceflow_exception_handler(request: Request, exc: PracticeFlowException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    for exc_type, code in _STATUS_BY_EXCEPTION:
        if isinstance(exc, exc_type):
            status_code = code
            break

    if status_code >= 500:
        logger.error("Unhandled application error on %s: %s", request.url.path, exc.message)
    return JSONResponse(status_code=status_code, content=exc.to_dict())


def create_app(
    settings: Settings | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    practice_storage: IPracticeStorage | None = None,
    notifier: INotificationService | None = None,
    mailer: IEmailService | None = None,
    webhook_transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """
    Build the application and its single workflow engine.

    Collaborators default to the production wiring; tests pass their own
    session factory, storage and delivery services.
    """
    settings = settings or get_settings()

    db_engine = None
    if session_factory is None:
        db_engine = build_engine(settings.database_url, echo=settings.database_echo)
        session_factory = build_session_factory(db_engine)

    registry = ActionHandlerRegistry.default(
        notifier=notifier or LoggingNotificationService(),
        mailer=mailer or LoggingEmailService(),
        webhook_timeout=settings.workflow_webhook_timeout_seconds,
        webhook_transport=webhook_transport,
    )
    engine = WorkflowEngine(
        session_factory,
        registry,
        practice_storage,
        action_timeout=settings.workflow_action_timeout_seconds,
        background_dispatch=settings.workflow_background_dispatch,
    )

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.db_engine = db_engine
    app.state.session_factory = session_factory
    app.state.workflow_engine = engine

    app.add_exception_handler(PracticeFlowException, practiceflow_exception_handler)

    # Security: Using allow_credentials=True requires specific origins (not wildcard)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[origin.strip() for origin in settings.allowed_origins.split(",")],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(workflows.router, prefix="/workflows", tags=["workflows"])

    @app.get("/")
    async def root():
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "status": "running",
        }

    @app.get("/health")
    async def health_check(db: AsyncSession = Depends(get_db)):
        """
        Health check endpoint for load balancers and monitoring.

        Returns:
        - 200 OK if the database answers
        - 503 Service Unavailable otherwise
        """
        checks: dict[str, Any] = {
            "api": True,
            "database": False,
        }

        try:
            await db.execute(text("SELECT 1"))
            checks["database"] = True
            return {"status": "healthy", "checks": checks}
        except Exception as e:
            checks["error"] = str(e)
            return JSONResponse(
                status_code=503, content={"status": "unhealthy", "checks": checks}
            )

    return app


app = create_app()
