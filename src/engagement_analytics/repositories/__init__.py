"""Repository layer for data access.

This layer abstracts external dependencies (community REST backend,
conversation document store, Redis) behind protocol-based interfaces.
This enables:
- Swapping implementations (snapshot → live document store, memory → Redis)
- Unit testing with fake implementations
- Clear separation of concerns

The repositories are protocol-based (structural typing), not inheritance-based.
Any class implementing the required methods will satisfy the protocol.
"""

from engagement_analytics.protocols import DocumentStore, RestTransport, ResultStore, UserDirectory

from .httpx_transport import HttpxRestTransport
from .memory_result_store import InMemoryResultStore
from .redis_result_store import RedisResultStore
from .rest_user_directory import RestUserDirectory
from .snapshot_document_store import SnapshotDocumentStore

__all__ = [
    "DocumentStore",
    "RestTransport",
    "ResultStore",
    "UserDirectory",
    "HttpxRestTransport",
    "InMemoryResultStore",
    "RedisResultStore",
    "RestUserDirectory",
    "SnapshotDocumentStore",
]
