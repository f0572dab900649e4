"""JSON snapshot implementation of DocumentStore.

Reads an export of the ``messages`` collection:

    ```json
    {
      "messages": {
        "conv-1": {
          "communityId": 42,
          "users": [1, 2],
          "lastMessage": "See you at the Trova meetup",
          "messageTitle": "",
          "createdAt": "2024-03-01T10:00:00Z",
          "conv": [
            {"id": "m1", "message": "hello", "senderId": 1, "timestamp": "2024-03-01T10:00:00Z"}
          ]
        }
      }
    }
    ```

``conv`` may also be an object keyed by message id.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from engagement_analytics.config import settings
from engagement_analytics.entities import ConversationDocument, MessageDocument, parse_timestamp

logger = logging.getLogger(__name__)

_EARLIEST = datetime.min.replace(tzinfo=timezone.utc)


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _conversation(conversation_id: str, data: dict[str, Any]) -> ConversationDocument:
    users = tuple(uid for uid in (_as_int(u) for u in data.get("users") or []) if uid is not None)
    return ConversationDocument(
        id=conversation_id,
        community_id=_as_int(data.get("communityId", data.get("community_id"))),
        users=users,
        last_message=str(data.get("lastMessage") or ""),
        message_title=str(data.get("messageTitle") or ""),
        created_at=parse_timestamp(data.get("createdAt", data.get("timestamp"))),
        updated_at=parse_timestamp(data.get("updatedAt", data.get("timestamp"))),
        data=data,
    )


def _messages(data: dict[str, Any]) -> list[MessageDocument]:
    raw = data.get("conv") or []
    if isinstance(raw, dict):
        raw = [{"id": key, **value} for key, value in raw.items() if isinstance(value, dict)]

    messages = []
    for index, item in enumerate(raw):
        if not isinstance(item, dict):
            continue
        messages.append(
            MessageDocument(
                id=str(item.get("id", index)),
                text=str(item.get("message") or item.get("text") or ""),
                sender_id=_as_int(item.get("senderId", item.get("sender_id"))),
                timestamp=parse_timestamp(item.get("timestamp", item.get("createdAt"))),
            )
        )
    return messages


class SnapshotDocumentStore:
    """DocumentStore backed by an in-memory JSON export.

    This class satisfies the DocumentStore protocol through structural
    typing - no explicit inheritance needed.
    """

    def __init__(self, documents: dict[str, dict[str, Any]] | None = None) -> None:
        """Initialize the store.

        Args:
            documents: Mapping of conversation id to conversation document
        """
        self._documents = documents or {}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SnapshotDocumentStore":
        """Build a store from a parsed export (with or without the ``messages`` wrapper)."""
        documents = data.get("messages", data)
        if not isinstance(documents, dict):
            raise ValueError("snapshot must map conversation ids to documents")
        return cls({str(key): value for key, value in documents.items() if isinstance(value, dict)})

    @classmethod
    def from_file(cls, path: str | Path) -> "SnapshotDocumentStore":
        """Load an export from disk."""
        with open(path, encoding="utf-8") as f:
            store = cls.from_dict(json.load(f))
        logger.info("Loaded %d conversations from %s", len(store._documents), path)
        return store

    @classmethod
    def create(cls, path: str | None = None) -> "SnapshotDocumentStore":
        """Factory method using settings.snapshot_path.

        An empty store is returned when no snapshot is configured.
        """
        path = path or settings.snapshot_path
        if not path:
            logger.warning("No SNAPSHOT_PATH configured, conversation metrics will be empty")
            return cls()
        return cls.from_file(path)

    async def conversation_ids(self, community_id: int) -> list[str]:
        return [
            conversation_id
            for conversation_id, data in self._documents.items()
            if _as_int(data.get("communityId", data.get("community_id"))) == community_id
        ]

    async def get_conversation(self, conversation_id: str) -> ConversationDocument | None:
        data = self._documents.get(conversation_id)
        if data is None:
            return None
        return _conversation(conversation_id, data)

    async def list_messages(
        self,
        conversation_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[MessageDocument]:
        data = self._documents.get(conversation_id)
        if data is None:
            return []

        messages = []
        for message in _messages(data):
            if start or end:
                if message.timestamp is None:
                    continue
                if start and message.timestamp < start:
                    continue
                if end and message.timestamp >= end:
                    continue
            messages.append(message)
        return sorted(messages, key=lambda m: m.timestamp or _EARLIEST)
