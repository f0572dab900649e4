#!/usr/bin/env python3
"""
Demo script for engagement analytics.

Runs the analytics service against an in-process mock backend that only
knows the legacy endpoint shapes, so the fallback paths are exercised
without a real deployment.
"""

import asyncio
import time
from datetime import date

import httpx

from engagement_analytics import DateRange, HttpxRestTransport, InMemoryResultStore, RestUserDirectory
from engagement_analytics.repositories import SnapshotDocumentStore
from engagement_analytics.services import AnalyticsService

COMMUNITY_ID = 42

PROFILES = [
    {"userId": 1, "fname": "Ann", "lname": "Lee", "bio": "Designer", "interests": ["Chess"], "isMentor": True},
    {"userId": 2, "fname": "Ben", "lname": "Ng", "interests": ["Chess", "Hiking"], "isMentee": True},
    {"userId": 3, "fname": "Cid", "lname": "Roe", "locations": [{"primaryName": "San Francisco, CA"}]},
    {"userId": 4, "fname": "Dee", "lname": "Fox", "skills": "Python, SQL"},
]

MATCHES = [
    {"id": 1, "userId": 1, "matchedUserId": 2, "type": "trova_magic", "createdAt": "2024-03-01T09:00:00Z"},
    {"id": 2, "userId": 2, "matchedUserId": 1, "type": "trova_magic", "createdAt": "2024-03-01T12:00:00Z"},
    {"id": 3, "userId": 3, "matchedUserId": 4, "type": "trova_magic", "createdAt": "2024-03-02T09:00:00Z"},
    {"id": 4, "userId": 1, "matchedUserId": 3, "groupId": 9, "type": "channel_pairing", "isOnDemand": True},
    {"id": 5, "userId": 3, "matchedUserId": 4, "groupId": 9, "type": "channel_pairing"},
    {"id": 6, "userId": 7, "matchedUserId": 8, "type": "trova_magic", "communityId": 99},
]

SNAPSHOT = {
    "messages": {
        "conv-1": {
            "communityId": COMMUNITY_ID,
            "users": [1, 2],
            "lastMessage": "Your Trova intro is here",
            "conv": [
                {"id": "m1", "message": "Hi Ben!", "senderId": 1, "timestamp": "2024-03-01T10:00:00Z"},
                {"id": "m2", "message": "Hi Ann", "senderId": 2, "timestamp": "2024-03-01T10:05:00Z"},
            ],
        },
        "conv-2": {"communityId": COMMUNITY_ID, "users": [3, 4], "conv": []},
    }
}


def legacy_backend(request: httpx.Request) -> httpx.Response:
    """A deployment that predates the community-scoped endpoints."""
    path = request.url.path
    if path == "/communities/getProfilesForUserAndCommunity":
        return httpx.Response(200, json={"data": PROFILES})
    if path == "/matches" and request.url.params.get("communityId") == str(COMMUNITY_ID):
        return httpx.Response(200, json={"data": MATCHES})
    if path == "/users/batch":
        ids = {int(uid) for uid in request.url.params.get("ids", "").split(",") if uid}
        return httpx.Response(200, json=[p for p in PROFILES if p["userId"] in ids])
    return httpx.Response(404, json={"message": f"{path} not found"})


def print_section(title: str) -> None:
    """Print a section header."""
    print("\n" + "=" * 70)
    print(f"  {title}")
    print("=" * 70)


def build_service() -> tuple[AnalyticsService, HttpxRestTransport]:
    client = httpx.AsyncClient(transport=httpx.MockTransport(legacy_backend), base_url="http://legacy.test")
    transport = HttpxRestTransport(base_url="http://legacy.test", token="", client=client)
    service = AnalyticsService.create(
        transport=transport,
        documents=SnapshotDocumentStore.from_dict(SNAPSHOT),
        users=RestUserDirectory.create(transport),
        store=InMemoryResultStore.create(),
    )
    return service, transport


async def demo_fallback(service: AnalyticsService) -> None:
    """Demonstrate endpoint fallback and provenance."""
    print_section("Endpoint Fallback")

    matches = await service.get_matches(COMMUNITY_ID)
    print(f"\n🔀 Matches: {len(matches.records)} records, resolution={matches.resolution.value}")

    members = await service.get_community_members(COMMUNITY_ID)
    print(f"👥 Members: {len(members.members)}, resolution={members.resolution.value}")

    start = time.time()
    await service.get_matches(COMMUNITY_ID)
    print(f"⚡ Cached matches read in {(time.time() - start) * 1000:.2f}ms")


async def demo_engagement(service: AnalyticsService) -> None:
    """Demonstrate headline engagement metrics."""
    print_section("Engagement")

    stats = await service.get_engagement_stats(COMMUNITY_ID, DateRange(date(2024, 3, 1), date(2024, 3, 31)))
    print(f"\n  Members:              {stats.total_members}")
    print(f"  Connections made:     {stats.connections_made}")
    print(f"  Users connected:      {stats.users_with_connections}")
    print(f"  Match response rate:  {stats.match_response_rate}%")
    print(f"  Messages sent:        {stats.messages_sent}")
    print(f"  Profile completion:   {stats.profile_completion_rate}%")
    print(f"  Source:               {stats.diagnostics.get('source')} ({stats.resolution.value})")

    breakdown = await service.get_magic_intros_by_date(COMMUNITY_ID)
    print(f"\n📅 Direct intros by date ({breakdown.engagement_rate}% engaged overall):")
    for row in breakdown.dates:
        print(f"  {row.date_display:<16} {row.engaged_pairings}/{row.total_pairings} engaged")

    for pairing in await service.get_magic_intro_pairings(COMMUNITY_ID, date(2024, 3, 1)):
        left = pairing.user.full_name if pairing.user else pairing.user_id
        right = pairing.matched_user.full_name if pairing.matched_user else pairing.matched_user_id
        print(f"  🤝 {left} & {right} engaged={pairing.is_engaged}")

    channel = await service.get_channel_pairing_stats(COMMUNITY_ID)
    print(f"\n🧩 Group pairings: {channel.unique_groups} groups, {channel.on_demand_groups} on demand")


async def demo_attributes(service: AnalyticsService) -> None:
    """Demonstrate users-by-attribute lookups."""
    print_section("Users by Attribute")

    for attribute_type, value in [("interest", "chess"), ("location", "francisco"), ("skill", "sql")]:
        lookup = await service.get_users_by_attribute(COMMUNITY_ID, attribute_type, value)
        names = ", ".join(m.full_name for m in lookup.members) or "-"
        print(f"  {attribute_type}={value!r}: {names} ({lookup.resolution.value})")

    mentors = await service.get_mentor_mentee_users(COMMUNITY_ID, "can")
    print(f"\n🎓 Mentors: {', '.join(m.full_name for m in mentors.members)} ({mentors.resolution.value})")


async def run() -> None:
    service, transport = build_service()
    try:
        await demo_fallback(service)
        await demo_engagement(service)
        await demo_attributes(service)

        print_section("Cache")
        stats = service.cache_stats()
        print(f"\n  Entries: {stats['entries']}")
        print(f"  Hits: {stats['hits']}, misses: {stats['misses']}")
    finally:
        await transport.close()


def main() -> None:
    """Run all demos."""
    print("\n🚀 Engagement Analytics Demo")
    print("=" * 70)
    print("This demo runs the analytics service against a mock legacy backend")

    try:
        asyncio.run(run())

        print("\n" + "=" * 70)
        print("✅ Demo completed successfully!")
        print("=" * 70)

    except Exception as e:
        print(f"\n❌ Error: {e}")


if __name__ == "__main__":
    main()
