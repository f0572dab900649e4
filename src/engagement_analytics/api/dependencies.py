"""Dependency injection configuration for FastAPI app.

Uses FastAPI's app.state pattern for storing service instances.

Pattern:
    - Services stored in app.state during lifespan
    - Dependency functions retrieve from request.app.state
    - Clean separation, no global mutable state
"""

import logging
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, Request

from engagement_analytics.config import settings
from engagement_analytics.handlers import AnalyticsHandler
from engagement_analytics.protocols import ResultStore
from engagement_analytics.repositories import (
    HttpxRestTransport,
    InMemoryResultStore,
    RedisResultStore,
    RestUserDirectory,
    SnapshotDocumentStore,
)
from engagement_analytics.services import AnalyticsService

logger = logging.getLogger(__name__)


def get_analytics_service(request: Request) -> AnalyticsService:
    """Dependency injection for AnalyticsService from app.state.

    Raises:
        RuntimeError: If service is not initialized
    """
    service = getattr(request.app.state, "analytics_service", None)
    if service is None:
        raise RuntimeError("AnalyticsService not initialized. Check lifespan setup.")
    return service


def get_handler(request: Request) -> AnalyticsHandler:
    """Dependency injection for AnalyticsHandler from app.state.

    Args:
        request: FastAPI Request object

    Returns:
        The AnalyticsHandler instance from app.state

    Raises:
        RuntimeError: If handler is not initialized
    """
    handler = getattr(request.app.state, "analytics_handler", None)
    if handler is None:
        raise RuntimeError("AnalyticsHandler not initialized. Check lifespan setup.")
    return handler


def create_result_store() -> ResultStore:
    """Pick the result store named by CACHE_BACKEND."""
    if settings.uses_redis:
        return RedisResultStore.create()
    return InMemoryResultStore.create()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for FastAPI app.

    Initializes all layers and stores in app.state:
    1. Repositories (REST transport, user directory, document store, result store)
    2. Service (business logic) - stored in app.state.analytics_service
    3. Handler (HTTP endpoints) - stored in app.state.analytics_handler

    Cleanup:
        Closes the HTTP client and removes all services from app.state on shutdown
    """
    transport = HttpxRestTransport.create()
    store = create_result_store()
    analytics_service = AnalyticsService.create(
        transport=transport,
        documents=SnapshotDocumentStore.create(),
        users=RestUserDirectory.create(transport),
        store=store,
    )
    analytics_handler = AnalyticsHandler(analytics_service=analytics_service)

    app.state.analytics_service = analytics_service
    app.state.analytics_handler = analytics_handler
    app.state.transport = transport

    logger.info("Analytics service initialized (backend %s, cache %s)", settings.api_base_url, type(store).__name__)
    logger.info("Result store healthy: %s", store.health_check())

    yield

    await transport.close()
    del app.state.analytics_handler
    del app.state.analytics_service
    del app.state.transport
    logger.info("Analytics service shut down")


# Type aliases for cleaner dependency injection
HandlerDep = Annotated[AnalyticsHandler, Depends(get_handler)]
ServiceDep = Annotated[AnalyticsService, Depends(get_analytics_service)]
