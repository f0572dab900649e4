"""Engagement Analytics - community engagement metrics with resilient data access.

This package provides a layered architecture for engagement analytics:

Layers:
    - protocols: Interface contracts (RestTransport, DocumentStore, UserDirectory, ResultStore)
    - repositories: Data access implementations
    - services: Business logic (caching, endpoint fallback, pair accumulation, metrics)
    - handlers: HTTP endpoint handlers
    - dto: Data transfer objects (API contracts)
    - entities: Domain models (internal)

Usage:
    ```python
    from engagement_analytics.repositories import (
        HttpxRestTransport,
        InMemoryResultStore,
        RestUserDirectory,
        SnapshotDocumentStore,
    )
    from engagement_analytics.services import AnalyticsService

    transport = HttpxRestTransport.create()
    service = AnalyticsService.create(
        transport=transport,
        documents=SnapshotDocumentStore.create(),
        users=RestUserDirectory.create(transport),
        store=InMemoryResultStore.create(),
    )
    ```

For HTTP API:
    ```python
    from engagement_analytics.api.app import app
    ```
"""

from engagement_analytics.config import get_redis_client, settings
from engagement_analytics.entities import DateRange, DrilldownQuery, MatchRecord, MatchType, Member, Resolution
from engagement_analytics.errors import (
    AnalyticsError,
    InvalidDataError,
    NotFoundError,
    TransientError,
    TransportError,
    UnauthorizedError,
)
from engagement_analytics.handlers import AnalyticsHandler
from engagement_analytics.protocols import DocumentStore, RestTransport, ResultStore, UserDirectory
from engagement_analytics.repositories import (
    HttpxRestTransport,
    InMemoryResultStore,
    RedisResultStore,
    RestUserDirectory,
    SnapshotDocumentStore,
)
from engagement_analytics.services import AnalyticsService

__all__ = [
    # Configuration
    "settings",
    "get_redis_client",
    # Protocols (interfaces)
    "DocumentStore",
    "RestTransport",
    "ResultStore",
    "UserDirectory",
    # Services (business logic)
    "AnalyticsService",
    # Handlers (HTTP)
    "AnalyticsHandler",
    # Repositories (data access)
    "HttpxRestTransport",
    "InMemoryResultStore",
    "RedisResultStore",
    "RestUserDirectory",
    "SnapshotDocumentStore",
    # Entities (domain models)
    "DateRange",
    "DrilldownQuery",
    "MatchRecord",
    "MatchType",
    "Member",
    "Resolution",
    # Errors
    "AnalyticsError",
    "InvalidDataError",
    "NotFoundError",
    "TransientError",
    "TransportError",
    "UnauthorizedError",
]
