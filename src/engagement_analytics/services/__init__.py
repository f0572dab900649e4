"""Service layer for business logic.

Services depend on protocols (interfaces), not concrete implementations,
so every collaborator can be swapped for a fake in tests.

Architecture:
    Handler -> AnalyticsService -> EndpointResolver / ConversationIndex -> Repository
    (HTTP)  -> (Orchestration)  -> (Fallback, caching, computation)     -> (Data Access)

Usage:
    ```python
    from engagement_analytics.services import AnalyticsService

    service = AnalyticsService.create(transport=transport, documents=documents, users=users, store=store)
    summary = await service.get_users_with_connections(42)
    ```
"""

from .analytics_service import AnalyticsService
from .attribute_fallback import AttributeFallbackEngine
from .community_directory import CommunityDirectory
from .conversation_index import ConversationIndex
from .endpoint_resolver import EndpointCandidate, EndpointResolver, ResolverOutcome
from .engagement_calculator import EngagementCalculator, engagement_rate
from .pair_accumulator import PairSetAccumulator, group_key, pair_key
from .request_coordinator import RequestCoordinator
from .result_cache import ResultCache

__all__ = [
    "AnalyticsService",
    "AttributeFallbackEngine",
    "CommunityDirectory",
    "ConversationIndex",
    "EndpointCandidate",
    "EndpointResolver",
    "EngagementCalculator",
    "PairSetAccumulator",
    "RequestCoordinator",
    "ResolverOutcome",
    "ResultCache",
    "engagement_rate",
    "group_key",
    "pair_key",
]
