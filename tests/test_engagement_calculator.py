"""
Tests for engagement metrics.
"""

from datetime import date, datetime, timezone

import pytest

from engagement_analytics.entities import ConversationParticipantSet, DateRange, MatchRecord, MatchType, Member
from engagement_analytics.services import EngagementCalculator, engagement_rate
from engagement_analytics.services.engagement_calculator import format_date_display, in_reporting_range, is_on_demand


def intro(user_id, matched_user_id, created_at=None, **fields):
    return MatchRecord.from_raw(
        {
            "userId": user_id,
            "matchedUserId": matched_user_id,
            "type": "trova_magic",
            "createdAt": created_at,
            **fields,
        }
    )


def member(uid, name):
    return Member(id=uid, full_name=name)


@pytest.fixture
def calculator():
    return EngagementCalculator(anomaly_threshold=1000)


@pytest.mark.parametrize(
    "engaged,total,expected",
    [(5, 10, 50.0), (1, 3, 33.3), (0, 0, 0.0), (3, 0, 0.0), (12, 10, 100.0), (-1, 10, 0.0)],
)
def test_engagement_rate(engaged, total, expected):
    assert engagement_rate(engaged, total) == expected


def test_classify_counts_engaged_pairs(calculator):
    groups = {"1-2": {1, 2}, "3-4": {3, 4}}
    stats = calculator.classify(groups, {"1-2"})

    assert (stats.total, stats.engaged, stats.rate) == (2, 1, 50.0)


def test_group_is_engaged_when_any_two_members_talk(calculator):
    stats = calculator.classify({"group:7": {1, 2, 3}}, {"2-3"})
    assert stats.engaged == 1


def test_engagement_by_category(calculator):
    matches = [
        intro(1, 2),
        MatchRecord.from_raw({"userId": 3, "matchedUserId": 4, "type": "channel_pairing", "groupId": 9}),
        MatchRecord.from_raw({"userId": 5, "matchedUserId": 6, "type": "unheard_of"}),
    ]
    by_category = calculator.engagement_by_category(matches, {"1-2"})

    assert by_category[MatchType.DIRECT_INTRO].rate == 100.0
    assert by_category[MatchType.GROUP_PAIRING].total == 1
    assert by_category[MatchType.MENTOR_MENTEE].total == 0


def test_breakdown_by_date_newest_first(calculator):
    matches = [
        intro(1, 2, "2024-03-01T09:00:00Z"),
        intro(2, 1, "2024-03-01T18:00:00Z"),
        intro(3, 4, "2024-03-02T23:30:00-02:00"),
        intro(5, 6, None),
    ]
    result = calculator.breakdown_by_date(matches, {"1-2"})

    assert [row.date for row in result.dates] == ["2024-03-03", "2024-03-01"]
    assert result.dates[1].total_pairings == 1
    assert result.dates[1].engagement_rate == 100.0
    assert result.dates[1].date_display == "March 1, 2024"
    assert result.invalid_dates == 1
    assert result.total_pairings == 2
    assert result.engagement_rate == 50.0


def test_anomalous_dates_are_excluded_from_totals():
    calculator = EngagementCalculator(anomaly_threshold=2)
    flood = [intro(i, i + 100, "2024-05-01T00:00:00Z") for i in range(3)]
    normal = [intro(1, 2, "2024-05-02T00:00:00Z")]
    result = calculator.breakdown_by_date(flood + normal, {"1-2"})

    assert result.excluded_dates == ["2024-05-01"]
    assert result.dates[1].anomalous is True
    assert result.total_pairings == 1
    assert result.engagement_rate == 100.0


def test_explicit_zero_threshold_is_kept():
    calculator = EngagementCalculator(anomaly_threshold=0)
    result = calculator.breakdown_by_date([intro(1, 2, "2024-05-02T00:00:00Z")], {"1-2"})

    assert calculator.anomaly_threshold == 0
    assert result.excluded_dates == ["2024-05-02"]
    assert result.total_pairings == 0


def test_format_date_display():
    assert format_date_display(date(2024, 12, 25)) == "December 25, 2024"


def test_match_summary_counts_live_member_pairs(calculator):
    members = [member(1, "bob"), member(2, "Alice"), member(3, "Carol"), member(4, "Dan")]
    matches = [
        intro(1, 2),
        intro(2, 1),
        intro(1, 3),
        intro(3, 4, removed=True),
        intro(2, 4, isActive=False),
        intro(1, 99),
    ]
    summary = calculator.match_summary(matches, members)

    assert summary.total_pairs == 2
    assert [(u.member.id, u.connections) for u in summary.per_user] == [(1, 2), (2, 1), (3, 1)]


def test_match_partners(calculator):
    members = [member(1, "A"), member(2, "B"), member(3, "C")]
    partners = calculator.match_partners([intro(1, 2), intro(3, 1), intro(2, 3)], members, 1)

    assert [m.id for m in partners] == [2, 3]


def test_channel_pairing_breakdown(calculator):
    matches = [
        MatchRecord.from_raw({"userId": 1, "matchedUserId": 2, "groupId": 5, "type": "channel_pairing"}),
        MatchRecord.from_raw(
            {"userId": 2, "matchedUserId": 3, "groupId": 5, "type": "channel_pairing", "triggerType": "manual"}
        ),
        MatchRecord.from_raw({"userId": 4, "matchedUserId": 5, "type": "channel_pairing", "cadence": True}),
    ]
    stats = calculator.channel_pairing_breakdown(matches)

    assert stats.total_matches == 3
    assert stats.unique_groups == 2
    assert stats.unique_users == 5
    assert stats.on_demand_groups == 1
    assert stats.cadence_groups == 1


@pytest.mark.parametrize(
    "raw,expected",
    [
        ({"isOnDemand": True}, True),
        ({"triggerType": "scheduled", "triggeredAt": "2024-01-01"}, False),
        ({"triggeredAt": "2024-01-01"}, True),
        ({}, False),
    ],
)
def test_is_on_demand(raw, expected):
    assert is_on_demand(raw) is expected


def test_profile_completion():
    profiles = [
        {"bio": "Hi"},
        {"interests": ["Chess"]},
        {"currentLocationName": "  "},
        {"locations": []},
    ]
    assert EngagementCalculator.profile_completion(profiles) == (2, 50.0)


def test_created_at_is_read_as_utc():
    match = intro(1, 2, "2024-03-01T23:00:00-05:00")
    assert match.created_at == datetime(2024, 3, 2, 4, 0, tzinfo=timezone.utc)


MARCH = DateRange(date(2024, 3, 1), date(2024, 3, 31))


@pytest.mark.parametrize(
    "row,date_range,expected",
    [
        ({"createdAt": "2024-03-10T08:00:00Z"}, MARCH, True),
        ({"createdAt": "2024-04-01T00:00:00Z"}, MARCH, False),
        ({}, MARCH, True),
        ({"createdAt": "not a date"}, MARCH, False),
        ({"createdAt": "not a date"}, DateRange(), True),
    ],
)
def test_in_reporting_range(row, date_range, expected):
    assert in_reporting_range(row, ("createdAt",), date_range) is expected


def test_event_activity():
    events = [
        {"startDateTimeUTC": "2024-03-05T18:00:00Z", "attendeeCount": 12, "attendees": [1, 2]},
        {"startDate": "2024-03-20", "attendees": [{"id": 1}, {"id": 3}]},
        {"name": "undated", "attendeeCount": 4},
        {"startDate": "2024-02-27", "attendeeCount": 50},
        {"startDate": "someday", "attendeeCount": 50},
    ]

    assert EngagementCalculator.event_activity(events, MARCH) == (3, 18)
    assert EngagementCalculator.event_activity(events, DateRange()) == (5, 118)


def test_group_activity_prefers_unique_members():
    groups = [
        {"createdAt": "2024-03-02", "users": [{"id": 1}, {"id": 2}]},
        {"createdAt": "2024-03-03", "users": [{"id": 2}, {"id": 3}]},
        {"createdAt": "2024-01-01", "users": [{"id": 9}]},
    ]

    assert EngagementCalculator.group_activity(groups, MARCH) == (2, 3)


def test_group_activity_sums_member_counts_without_member_ids():
    groups = [{"createdAt": "2024-03-02", "memberCount": 7}, {"memberCount": 5}]

    assert EngagementCalculator.group_activity(groups, MARCH) == (2, 12)


def test_active_users_windows():
    matches = [
        intro(1, 2, "2024-03-30T09:00:00Z"),
        intro(3, 4, "2024-03-25T00:00:00Z"),
        intro(5, 6, "2024-03-23T23:59:00Z"),
        intro(7, 8, "2024-04-01T00:00:00Z"),
    ]
    events = [{"startDate": "2024-03-31T10:00:00Z", "userId": 10, "attendees": [{"id": 11}, 12, "x"]}]
    groups = [{"updatedAt": "2024-03-28T10:00:00Z", "users": [{"id": 20}, {"userId": 21}]}]
    conversations = [
        ConversationParticipantSet("c1", frozenset({30, 1}), datetime(2024, 3, 31, 5, tzinfo=timezone.utc)),
        ConversationParticipantSet("c2", frozenset({31})),
    ]

    stats = EngagementCalculator.active_users(date(2024, 3, 31), matches, events, groups, conversations)

    assert stats.daily == 6  # 1, 2, 10, 11, 12, 30
    assert stats.weekly == 10  # daily plus 3, 4, 20, 21


def test_skills_summary():
    chart = [{"name": "Python", "value": 3}, {"name": "SQL", "value": 1}, {"name": "Python", "value": 2}, {"name": ""}]
    profiles = [
        {"userId": 1, "skills": ["Python"]},
        {"userId": 2, "skills": {"general": ["SQL"]}},
        {"userId": 3, "skills": " Go "},
        {"userId": 4, "skills": []},
        {"userId": 5, "skills": "  "},
        {"skills": ["Orphan"]},
    ]

    assert EngagementCalculator.skills_summary(chart, profiles) == (2, 3)
