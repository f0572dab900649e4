"""Document store protocol.

Defines read access to the conversation collection: one document per
conversation, each with a message sub-collection.

Implementations can include:
- JSON snapshot export (default, offline)
- Firestore, MongoDB or any other document database
"""

from datetime import datetime
from typing import Protocol, runtime_checkable

from engagement_analytics.entities import ConversationDocument, MessageDocument


@runtime_checkable
class DocumentStore(Protocol):
    """Protocol for the conversation document store."""

    async def conversation_ids(self, community_id: int) -> list[str]:
        """List ids of every conversation belonging to a community."""
        ...

    async def get_conversation(self, conversation_id: str) -> ConversationDocument | None:
        """Fetch one conversation document.

        Returns:
            The document, or None if it does not exist
        """
        ...

    async def list_messages(
        self,
        conversation_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[MessageDocument]:
        """List messages of a conversation.

        Args:
            conversation_id: The conversation
            start: Inclusive lower bound on message timestamp
            end: Exclusive upper bound on message timestamp

        Returns:
            Messages in timestamp order
        """
        ...
