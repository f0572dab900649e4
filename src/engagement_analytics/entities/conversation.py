"""Conversation domain entities."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class ConversationParticipantSet:
    """The users taking part in one conversation thread.

    Attributes:
        conversation_id: Document id of the conversation
        participant_ids: Numeric user ids found on the conversation
        last_active_at: Last update of the conversation, if known
    """

    conversation_id: str
    participant_ids: frozenset[int] = field(default_factory=frozenset)
    last_active_at: datetime | None = field(default=None, compare=False)


@dataclass(frozen=True)
class ConversationDocument:
    """A conversation as read from the document store.

    Attributes:
        id: Document id
        community_id: Owning community, if recorded
        users: Participant ids (non-numeric entries are dropped)
        last_message: Text of the last message
        message_title: Conversation title
        created_at: Creation time in UTC
        updated_at: Last update in UTC
        data: The untouched document
    """

    id: str
    community_id: int | None = None
    users: tuple[int, ...] = ()
    last_message: str = ""
    message_title: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None
    data: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def participants(self) -> ConversationParticipantSet:
        return ConversationParticipantSet(self.id, frozenset(self.users), self.updated_at or self.created_at)


@dataclass(frozen=True)
class MessageDocument:
    """A single message of a conversation's message sub-collection."""

    id: str
    text: str = ""
    sender_id: int | None = None
    timestamp: datetime | None = None
