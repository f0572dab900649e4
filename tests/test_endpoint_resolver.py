"""
Tests for ordered endpoint fallback.
"""

import pytest

from engagement_analytics.errors import InvalidDataError, NotFoundError, TransientError, UnauthorizedError
from engagement_analytics.services import EndpointCandidate, EndpointResolver
from engagement_analytics.services.endpoint_resolver import is_empty, rows_of

from .conftest import FakeTransport

CANDIDATES = [
    EndpointCandidate("/a"),
    EndpointCandidate("/b"),
    EndpointCandidate("/c"),
]


async def test_skips_missing_and_empty_endpoints():
    transport = FakeTransport({("GET", "/b"): [], ("GET", "/c"): [{"id": 1}, {"id": 2}, {"id": 3}]})
    outcome = await EndpointResolver(transport).resolve(CANDIDATES)

    assert outcome.found
    assert len(outcome.data) == 3
    assert outcome.candidate.path == "/c"
    assert outcome.attempts == ["GET /a", "GET /b", "GET /c"]


async def test_stops_at_first_answer():
    transport = FakeTransport({("GET", "/a"): {"ok": True}, ("GET", "/b"): {"ok": False}})
    outcome = await EndpointResolver(transport).resolve(CANDIDATES)

    assert outcome.data == {"ok": True}
    assert transport.count("GET", "/b") == 0


async def test_unauthorized_propagates_immediately():
    transport = FakeTransport(
        {
            ("GET", "/a"): UnauthorizedError("nope", status=401),
            ("GET", "/b"): [{"id": 1}],
        }
    )
    with pytest.raises(UnauthorizedError):
        await EndpointResolver(transport).resolve(CANDIDATES)
    assert transport.count("GET", "/b") == 0


async def test_last_error_is_raised_when_nothing_answers():
    transport = FakeTransport({("GET", "/a"): [], ("GET", "/b"): TransientError("boom", status=500)})
    with pytest.raises(NotFoundError):
        await EndpointResolver(transport).resolve(CANDIDATES)


async def test_all_empty_is_an_empty_outcome():
    transport = FakeTransport({("GET", "/a"): [], ("GET", "/b"): {}, ("GET", "/c"): None})
    outcome = await EndpointResolver(transport).resolve(CANDIDATES)

    assert not outcome.found
    assert not outcome.degraded
    assert outcome.data is None


async def test_resolve_or_empty_keeps_the_error():
    transport = FakeTransport({("GET", "/a"): TransientError("boom", status=503)})
    outcome = await EndpointResolver(transport).resolve_or_empty([EndpointCandidate("/a")])

    assert not outcome.found
    assert outcome.degraded
    assert isinstance(outcome.error, TransientError)


async def test_resolve_or_empty_still_raises_unauthorized():
    transport = FakeTransport({("GET", "/a"): UnauthorizedError("forbidden", status=403)})
    with pytest.raises(UnauthorizedError):
        await EndpointResolver(transport).resolve_or_empty([EndpointCandidate("/a")])


async def test_malformed_payload_falls_through():
    transport = FakeTransport({("GET", "/a"): {"unexpected": 1}, ("GET", "/b"): [{"id": 9}]})
    candidates = [EndpointCandidate("/a", extract=rows_of), EndpointCandidate("/b", extract=rows_of)]
    outcome = await EndpointResolver(transport).resolve(candidates)

    assert outcome.data == [{"id": 9}]
    assert outcome.candidate.path == "/b"


async def test_extract_key_error_becomes_invalid_data():
    transport = FakeTransport({("GET", "/a"): {"other": 1}})
    candidate = EndpointCandidate("/a", extract=lambda payload: payload["total"])
    with pytest.raises(InvalidDataError):
        await EndpointResolver(transport).resolve([candidate])


async def test_pages_are_concatenated():
    def members(params, headers, body):
        page = (params or {}).get("page", 1)
        return {"data": [{"id": page}], "currentPage": page, "totalPages": 3}

    transport = FakeTransport({("GET", "/members"): members})
    outcome = await EndpointResolver(transport).resolve([EndpointCandidate("/members", params={"q": "x"})])

    assert [row["id"] for row in outcome.data] == [1, 2, 3]
    assert transport.calls[-1]["params"] == {"q": "x", "page": 3}


async def test_failed_page_is_skipped():
    def members(params, headers, body):
        page = (params or {}).get("page", 1)
        if page == 2:
            return TransientError("page 2 timed out", status=504)
        return {"data": [{"id": page}], "currentPage": page, "totalPages": 3}

    transport = FakeTransport({("GET", "/members"): members})
    outcome = await EndpointResolver(transport).resolve([EndpointCandidate("/members")])

    assert [row["id"] for row in outcome.data] == [1, 3]
    assert transport.count("GET", "/members") == 3


async def test_pages_keyed_by_resource_name():
    def matches(params, headers, body):
        page = (params or {}).get("page", 1)
        return {"matches": [{"id": page * 10}], "currentPage": page, "totalPages": 2}

    transport = FakeTransport({("GET", "/matches"): matches})
    candidate = EndpointCandidate("/matches", extract=lambda rows: rows_of(rows, "matches"), item_keys=("matches",))
    outcome = await EndpointResolver(transport).resolve([candidate])

    assert outcome.found
    assert [row["id"] for row in outcome.data] == [10, 20]


async def test_paginated_payload_without_item_list_goes_to_extract():
    payload = {"summary": {"count": 4}, "currentPage": 1, "totalPages": 2}
    transport = FakeTransport({("GET", "/stats"): payload})
    candidate = EndpointCandidate("/stats", extract=lambda data: data["summary"]["count"])
    outcome = await EndpointResolver(transport).resolve([candidate])

    assert outcome.data == 4
    assert transport.count("GET", "/stats") == 1


async def test_post_candidates_send_the_body():
    transport = FakeTransport({("POST", "/profiles"): [{"userId": 1}]})
    candidate = EndpointCandidate("/profiles", method="POST", body={"communityId": 42})
    await EndpointResolver(transport).resolve([candidate])

    assert transport.calls[0]["body"] == {"communityId": 42}


def test_is_empty():
    assert is_empty(None)
    assert is_empty([])
    assert is_empty({})
    assert not is_empty(0)
    assert not is_empty([{}])


def test_rows_of_unwraps_known_keys():
    assert rows_of({"items": [{"id": 1}, "junk"]}) == [{"id": 1}]
    assert rows_of({"profiles": [{"id": 2}]}, "profiles") == [{"id": 2}]
    with pytest.raises(InvalidDataError):
        rows_of({"count": 3})
