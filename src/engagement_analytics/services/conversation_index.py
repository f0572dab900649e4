"""Conversation-derived indexes.

Builds, once per community and cached with the long TTL, the set of
conversation ids, the participants of each conversation and the set of
co-participant pairs used to decide whether a match led to a
conversation. Also counts messages and
platform-initiated chats.
"""

import logging
from typing import Any

from engagement_analytics.config import settings
from engagement_analytics.entities import ConversationDocument, ConversationParticipantSet, DateRange, parse_timestamp
from engagement_analytics.protocols import DocumentStore
from engagement_analytics.utils import gather_in_chunks

from .pair_accumulator import PairKey, participant_pairs
from .request_coordinator import RequestCoordinator
from .result_cache import CONVERSATION_IDS, CONVERSATION_PAIRS, ResultCache

logger = logging.getLogger(__name__)


class ConversationIndex:
    """Cached views over a community's conversations.

    Example:
        ```python
        index = ConversationIndex.create(documents, cache, coordinator)
        pairs = await index.pair_index(42)
        "3-7" in pairs  # users 3 and 7 share a conversation
        ```
    """

    def __init__(
        self,
        documents: DocumentStore,
        cache: ResultCache,
        coordinator: RequestCoordinator,
        batch_size: int | None = None,
    ) -> None:
        """Initialize the index.

        Args:
            documents: Conversation document store (required).
            cache: Result cache (required).
            coordinator: Request coordinator shared with the other services (required).
            batch_size: Documents fetched concurrently. Defaults to settings.
        """
        self._documents = documents
        self._cache = cache
        self._coordinator = coordinator
        self._batch_size = batch_size or settings.document_batch_size

    @classmethod
    def create(
        cls,
        documents: DocumentStore,
        cache: ResultCache,
        coordinator: RequestCoordinator,
        batch_size: int | None = None,
    ) -> "ConversationIndex":
        return cls(documents=documents, cache=cache, coordinator=coordinator, batch_size=batch_size)

    async def conversation_ids(self, community_id: int) -> set[str]:
        """Ids of every conversation of the community."""
        key = f"conversations_{community_id}"
        cached = self._cache.get(CONVERSATION_IDS, key)
        if cached is not None:
            return set(cached)

        async def produce() -> list[str]:
            ids = sorted(set(await self._documents.conversation_ids(community_id)))
            self._cache.put(CONVERSATION_IDS, key, ids)
            logger.info("Found %d conversations for community %s", len(ids), community_id)
            return ids

        return set(await self._coordinator.run_deduped(f"{CONVERSATION_IDS}:{key}", produce))

    async def _conversations(self, community_id: int) -> list[ConversationDocument]:
        ids = sorted(await self.conversation_ids(community_id))
        fetched = await gather_in_chunks(ids, self._documents.get_conversation, self._batch_size)
        return [document for _, document in fetched if document is not None]

    async def participant_sets(self, community_id: int) -> list[ConversationParticipantSet]:
        """Participants and last activity of each readable conversation.

        Unreadable conversations are left out. Cached with the long TTL.
        """
        key = f"conversationParticipants_{community_id}"
        cached = self._cache.get(CONVERSATION_PAIRS, key)
        if cached is None:

            async def produce() -> list[dict[str, Any]]:
                rows = []
                for conversation in await self._conversations(community_id):
                    participants = conversation.participants
                    active = participants.last_active_at
                    rows.append(
                        {
                            "id": participants.conversation_id,
                            "users": sorted(participants.participant_ids),
                            "lastActiveAt": active.isoformat() if active else None,
                        }
                    )
                self._cache.put(CONVERSATION_PAIRS, key, rows)
                return rows

            cached = await self._coordinator.run_deduped(f"{CONVERSATION_PAIRS}:{key}", produce)

        return [
            ConversationParticipantSet(
                conversation_id=row["id"],
                participant_ids=frozenset(row["users"]),
                last_active_at=parse_timestamp(row["lastActiveAt"]),
            )
            for row in cached
        ]

    async def pair_index(self, community_id: int) -> set[PairKey]:
        """Every pair of users who share at least one conversation."""
        key = f"conversationPairs_{community_id}"
        cached = self._cache.get(CONVERSATION_PAIRS, key)
        if cached is not None:
            return set(cached)

        async def produce() -> list[str]:
            pairs: set[PairKey] = set()
            for participants in await self.participant_sets(community_id):
                pairs |= participant_pairs(participants.participant_ids)
            result = sorted(pairs)
            self._cache.put(CONVERSATION_PAIRS, key, result)
            logger.info("Indexed %d conversation pairs for community %s", len(result), community_id)
            return result

        return set(await self._coordinator.run_deduped(f"{CONVERSATION_PAIRS}:{key}", produce))

    async def count_messages(self, community_id: int, date_range: DateRange | None = None) -> int:
        """Messages sent in any conversation of the community within the range."""
        date_range = date_range or DateRange()
        ids = sorted(await self.conversation_ids(community_id))

        async def count(conversation_id: str) -> int:
            messages = await self._documents.list_messages(
                conversation_id, date_range.start_at, date_range.end_before
            )
            return len(messages)

        counted = await gather_in_chunks(ids, count, self._batch_size)
        total = sum(n for _, n in counted)
        logger.info("Counted %d messages in %d conversations", total, len(ids))
        return total

    async def count_platform_chats(
        self,
        community_id: int,
        date_range: DateRange | None = None,
        marker: str = "trova",
    ) -> int:
        """Conversations started by the platform, recognised by a marker word.

        The conversation's last message and title are checked first; when
        they do not carry the marker, its messages in the range are scanned.
        """
        date_range = date_range or DateRange()
        marker = marker.lower()
        ids = sorted(await self.conversation_ids(community_id))
        bounded = date_range.start is not None or date_range.end is not None

        async def is_platform_chat(conversation_id: str) -> bool:
            conversation = await self._documents.get_conversation(conversation_id)
            if conversation is None:
                return False

            if marker in conversation.last_message.lower() or marker in conversation.message_title.lower():
                if not bounded:
                    return True
                if conversation.created_at is not None and date_range.contains(conversation.created_at):
                    return True

            messages = await self._documents.list_messages(
                conversation_id, date_range.start_at, date_range.end_before
            )
            return any(marker in message.text.lower() for message in messages)

        checked = await gather_in_chunks(ids, is_platform_chat, self._batch_size)
        return sum(1 for _, found in checked if found)
