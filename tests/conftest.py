"""Shared fakes and fixtures.

The fakes satisfy the package protocols structurally, so services can be
exercised without a backend, a document store or Redis.
"""

from collections.abc import Callable
from datetime import datetime
from typing import Any

import pytest

from engagement_analytics.entities import ConversationDocument, Member, MessageDocument
from engagement_analytics.errors import NotFoundError
from engagement_analytics.repositories import InMemoryResultStore
from engagement_analytics.services import AnalyticsService

_MISSING = object()

Route = Any  # a payload, an exception instance, or a callable(params, headers, body) returning either


class FakeTransport:
    """RestTransport fake answering from a (method, path) routing table.

    Unknown routes answer 404; a route mapped to None answers an empty
    body. Every call is recorded in ``calls``.
    """

    def __init__(self, routes: dict[tuple[str, str], Route] | None = None) -> None:
        self.routes = dict(routes or {})
        self.calls: list[dict[str, Any]] = []

    def count(self, method: str, path: str) -> int:
        return sum(1 for c in self.calls if c["method"] == method and c["path"] == path)

    async def _answer(self, method: str, path: str, params=None, body=None, headers=None) -> Any:
        self.calls.append({"method": method, "path": path, "params": params, "body": body, "headers": headers})
        route = self.routes.get((method, path), _MISSING)
        if route is _MISSING:
            raise NotFoundError(f"{method} {path} failed with status 404", status=404, url=path)
        if callable(route) and not isinstance(route, Exception):
            route = route(params, headers, body)
        if isinstance(route, Exception):
            raise route
        return route

    async def get(self, path: str, params=None, headers=None) -> Any:
        return await self._answer("GET", path, params=params, headers=headers)

    async def post(self, path: str, body=None, headers=None) -> Any:
        return await self._answer("POST", path, body=body, headers=headers)

    async def put(self, path: str, body=None, headers=None) -> Any:
        return await self._answer("PUT", path, body=body, headers=headers)

    async def patch(self, path: str, body=None, headers=None) -> Any:
        return await self._answer("PATCH", path, body=body, headers=headers)

    async def delete(self, path: str, headers=None) -> Any:
        return await self._answer("DELETE", path, headers=headers)


class FakeDocumentStore:
    """DocumentStore fake over in-memory conversations and messages."""

    def __init__(
        self,
        conversations: list[ConversationDocument] | None = None,
        messages: dict[str, list[MessageDocument]] | None = None,
        failing: set[str] | None = None,
    ) -> None:
        self.conversations = {c.id: c for c in conversations or []}
        self.messages = messages or {}
        self.failing = failing or set()
        self.id_calls = 0
        self.reads = 0

    async def conversation_ids(self, community_id: int) -> list[str]:
        self.id_calls += 1
        return [c.id for c in self.conversations.values() if c.community_id == community_id]

    async def get_conversation(self, conversation_id: str) -> ConversationDocument | None:
        self.reads += 1
        if conversation_id in self.failing:
            raise RuntimeError(f"cannot read {conversation_id}")
        return self.conversations.get(conversation_id)

    async def list_messages(
        self,
        conversation_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[MessageDocument]:
        found = []
        for message in self.messages.get(conversation_id, []):
            if start is not None and (message.timestamp is None or message.timestamp < start):
                continue
            if end is not None and (message.timestamp is None or message.timestamp >= end):
                continue
            found.append(message)
        return found


class FakeUserDirectory:
    """UserDirectory fake returning the known members among the asked ids."""

    def __init__(self, users: dict[int, Member] | None = None, error: Exception | None = None) -> None:
        self.users = users or {}
        self.error = error
        self.requested: list[list[int]] = []

    async def get_users_by_ids(self, ids: list[int]) -> dict[int, Member]:
        self.requested.append(list(ids))
        if self.error is not None:
            raise self.error
        return {uid: self.users[uid] for uid in ids if uid in self.users}


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def conversation(conversation_id: str, users: list[int], community_id: int = 42, **kwargs: Any) -> ConversationDocument:
    return ConversationDocument(id=conversation_id, community_id=community_id, users=tuple(users), **kwargs)


def profile(uid: int, name: str, **fields: Any) -> dict[str, Any]:
    first, _, last = name.partition(" ")
    return {"userId": uid, "fname": first, "lname": last, "email": f"{first.lower()}@example.com", **fields}


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def documents() -> FakeDocumentStore:
    return FakeDocumentStore()


@pytest.fixture
def users() -> FakeUserDirectory:
    return FakeUserDirectory()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_service(transport, documents, users) -> Callable[..., AnalyticsService]:
    """Build an AnalyticsService over the fakes; keyword arguments override them."""

    def build(**overrides: Any) -> AnalyticsService:
        return AnalyticsService.create(
            transport=overrides.pop("transport", transport),
            documents=overrides.pop("documents", documents),
            users=overrides.pop("users", users),
            store=overrides.pop("store", InMemoryResultStore()),
            **overrides,
        )

    return build
