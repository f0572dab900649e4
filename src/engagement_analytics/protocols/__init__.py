"""Protocol interfaces for swappable implementations.

This package contains protocol definitions using structural typing.
Protocols enable:
- Swapping collaborators (Firestore snapshot → live document store, memory → Redis)
- Unit testing with fake implementations
- Clear separation of concerns

Usage:
    ```python
    from engagement_analytics.protocols import DocumentStore, RestTransport

    transport: RestTransport = HttpxRestTransport.create()
    documents: DocumentStore = SnapshotDocumentStore.from_file("messages.json")
    ```
"""

from .document_store import DocumentStore
from .rest_transport import RestTransport
from .result_store import ResultStore
from .user_directory import UserDirectory

__all__ = [
    "DocumentStore",
    "RestTransport",
    "ResultStore",
    "UserDirectory",
]
