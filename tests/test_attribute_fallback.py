"""
Tests for the users-by-attribute fallback tiers.
"""

import pytest

from engagement_analytics.entities import Resolution
from engagement_analytics.errors import TransientError, UnauthorizedError
from engagement_analytics.repositories import InMemoryResultStore
from engagement_analytics.services import (
    AttributeFallbackEngine,
    CommunityDirectory,
    EndpointResolver,
    RequestCoordinator,
    ResultCache,
)
from engagement_analytics.services.attribute_fallback import check_consolidated

from .conftest import FakeTransport, profile

PROFILES = ("POST", "/communities/getProfilesForUserAndCommunity")
ATTRIBUTE_USERS = ("GET", "/communities/42/attribute/users")


@pytest.fixture
def make_engine():
    def build(routes):
        transport = FakeTransport(routes)
        resolver = EndpointResolver(transport)
        cache = ResultCache.create(store=InMemoryResultStore())
        directory = CommunityDirectory.create(resolver, cache, RequestCoordinator())
        return AttributeFallbackEngine.create(resolver, directory), transport

    return build


async def test_primary_answer_wins(make_engine):
    engine, transport = make_engine(
        {
            ATTRIBUTE_USERS: {"data": [profile(1, "Ann Lee"), profile(2, "Ben Ng")]},
            PROFILES: [profile(3, "Cid Roe", interests=["Chess"])],
        }
    )
    lookup = await engine.resolve_users_by_attribute(42, "interest", "Chess")

    assert lookup.resolution is Resolution.PRIMARY
    assert [m.id for m in lookup.members] == [1, 2]
    assert transport.count(*PROFILES) == 0
    assert transport.calls[0]["params"] == {"type": "interest", "value": "Chess", "onlyActive": "true"}


async def test_profile_scan_when_primary_is_empty(make_engine):
    engine, _ = make_engine(
        {
            ATTRIBUTE_USERS: [],
            PROFILES: [
                profile(1, "Ann Lee", interests=["chess", "Go"]),
                profile(2, "Ben Ng", interests=["Tennis"]),
                profile(3, "Cid Roe", interests=["Chess"], enabled=False),
            ],
        }
    )
    lookup = await engine.resolve_users_by_attribute(42, "interests", "CHESS")

    assert lookup.resolution is Resolution.FALLBACK
    assert [m.id for m in lookup.members] == [1]


async def test_inactive_members_kept_when_requested(make_engine):
    engine, _ = make_engine({PROFILES: [profile(3, "Cid Roe", interests=["Chess"], enabled=False)]})
    lookup = await engine.resolve_users_by_attribute(42, "interest", "chess", only_active=False)

    assert [m.id for m in lookup.members] == [3]


async def test_member_roster_is_scanned_after_profiles(make_engine):
    engine, _ = make_engine(
        {
            PROFILES: [profile(1, "Ann Lee")],
            ("GET", "/communities/42/members"): [profile(5, "Eve Ray", occupation="Nurse")],
        }
    )
    lookup = await engine.resolve_users_by_attribute(42, "occupation", "nurse")

    assert lookup.resolution is Resolution.FALLBACK
    assert [m.id for m in lookup.members] == [5]


async def test_aggregate_recovery_is_marked_unverified(make_engine):
    engine, _ = make_engine(
        {
            PROFILES: [profile(1, "Ann Lee"), profile(2, "Ben Ng")],
            ("GET", "/communities/42/attribute"): [
                {"name": "Chess", "userIds": [2, 77]},
                {"name": "Tennis", "userIds": [1]},
            ],
        }
    )
    lookup = await engine.resolve_users_by_attribute(42, "interest", "chess")

    assert lookup.resolution is Resolution.RECOVERED
    assert [m.id for m in lookup.members] == [2]


async def test_disabled_profile_matches_fall_through_to_the_roster(make_engine):
    engine, _ = make_engine(
        {
            PROFILES: [profile(3, "Cid Roe", occupation="Nurse", enabled=False)],
            ("GET", "/communities/42/members"): [profile(5, "Eve Ray", occupation="Nurse")],
        }
    )
    lookup = await engine.resolve_users_by_attribute(42, "occupation", "nurse")

    assert lookup.resolution is Resolution.FALLBACK
    assert [m.id for m in lookup.members] == [5]


async def test_recovered_members_that_are_all_disabled_are_empty(make_engine):
    engine, _ = make_engine(
        {
            PROFILES: [profile(1, "Ann Lee"), profile(3, "Cid Roe", interests=["Chess"], enabled=False)],
            ("GET", "/communities/42/attribute"): [{"name": "Chess", "userIds": [3]}],
        }
    )
    lookup = await engine.resolve_users_by_attribute(42, "interest", "chess")

    assert lookup.resolution is Resolution.EMPTY
    assert lookup.members == []


async def test_skill_lookup_carries_skills(make_engine):
    engine, transport = make_engine(
        {
            ("GET", "/communities/42/skills/Data%20Science/users"): [
                profile(4, "Dee Fox", skills=[{"name": "Data Science"}, "SQL"])
            ],
        }
    )
    lookup = await engine.resolve_users_by_attribute(42, "skill", "Data Science")

    assert lookup.resolution is Resolution.PRIMARY
    assert lookup.members[0].skills == ("Data Science", "SQL")
    assert transport.calls[0]["params"]["type"] == "general"


async def test_custom_field_uses_its_own_endpoint(make_engine):
    engine, transport = make_engine(
        {("GET", "/communities/42/custom-field/17/users"): [profile(6, "Flo Kim")]},
    )
    lookup = await engine.resolve_users_by_attribute(42, "customField", "Engineering", custom_field=17)

    assert [m.id for m in lookup.members] == [6]
    assert transport.calls[0]["path"] == "/communities/42/custom-field/17/users"


async def test_everything_failing_is_degraded(make_engine):
    engine, _ = make_engine(
        {
            ATTRIBUTE_USERS: TransientError("boom", status=500),
            PROFILES: TransientError("boom", status=500),
            ("GET", "/communities/42/members"): TransientError("boom", status=500),
        }
    )
    lookup = await engine.resolve_users_by_attribute(42, "interest", "chess")

    assert lookup.resolution is Resolution.DEGRADED
    assert lookup.members == []


async def test_nothing_found_is_empty(make_engine):
    engine, _ = make_engine({PROFILES: [profile(1, "Ann Lee", interests=["Go"])]})
    lookup = await engine.resolve_users_by_attribute(42, "interest", "chess")

    assert lookup.resolution is Resolution.EMPTY


async def test_unknown_type_is_rejected(make_engine):
    engine, _ = make_engine({})
    with pytest.raises(ValueError):
        await engine.resolve_users_by_attribute(42, "shoe_size", "44")


async def test_unauthorized_is_not_swallowed(make_engine):
    engine, _ = make_engine({ATTRIBUTE_USERS: [], PROFILES: UnauthorizedError("denied", status=401)})
    with pytest.raises(UnauthorizedError):
        await engine.resolve_users_by_attribute(42, "interest", "chess")


@pytest.mark.parametrize(
    "rows,consolidated,per_user_rows,all_ones",
    [
        ([{"name": "ChatGPT", "value": 5}, {"name": "Midjourney", "value": 1}], True, 0, False),
        ([{"name": "Claude|midjourney|runway", "value": 1}, {"name": "ChatGPT", "value": 4}], False, 1, False),
        ([{"name": "skill:Chess:42", "value": 2}, {"name": "lang:Go", "value": 3}], False, 1, False),
        ([{"name": "Chess", "value": 1}, {"name": "Go", "value": 1}], False, 0, True),
        ([{"name": "Chess", "value": 1}], True, 0, False),
    ],
)
def test_check_consolidated(rows, consolidated, per_user_rows, all_ones):
    check = check_consolidated(rows, "skill")

    assert check.consolidated is consolidated
    assert check.per_user_rows == per_user_rows
    assert check.all_ones is all_ones
    assert check.total == sum(row["value"] for row in rows)
