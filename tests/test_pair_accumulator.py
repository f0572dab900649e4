"""
Tests for unique pair and group accumulation.
"""

from engagement_analytics.entities import MatchRecord
from engagement_analytics.services import PairSetAccumulator, group_key, pair_key
from engagement_analytics.services.pair_accumulator import participant_pairs


def record(user_id, matched_user_id, group_id=None):
    return MatchRecord(id=None, user_id=user_id, matched_user_id=matched_user_id, group_id=group_id)


def test_pair_key_is_order_independent():
    assert pair_key(7, 3) == pair_key(3, 7) == "3-7"


def test_groups_and_pairs_are_deduplicated():
    matches = [
        record(1, 2, group_id=7),
        record(2, 3, group_id=7),
        record(1, 3, group_id=7),
        record(4, 5),
        record(5, 4),
    ]
    groups = PairSetAccumulator().accumulate(matches)

    assert groups == {"group:7": {1, 2, 3}, "4-5": {4, 5}}


def test_unusable_records_are_skipped_and_counted():
    accumulator = PairSetAccumulator()
    groups = accumulator.accumulate([record(None, 2), record(3, 3), record(1, 2)])

    assert groups == {"1-2": {1, 2}}
    assert accumulator.skipped == 2


def test_group_zero_is_treated_as_no_group():
    raw = MatchRecord.from_raw({"userId": 1, "matchedUserId": 2, "groupId": 0})
    assert PairSetAccumulator().key_for(raw) == "1-2"
    assert group_key(9) == "group:9"


def test_participant_pairs():
    assert participant_pairs([3, 1, 2, 1]) == {"1-2", "1-3", "2-3"}
    assert participant_pairs([1]) == set()


def test_incomplete_records_fall_back_to_their_own_key():
    accumulator = PairSetAccumulator()
    matches = [
        MatchRecord(id=11, user_id=4, matched_user_id=None),
        MatchRecord(id=12, user_id=6, matched_user_id=6),
        MatchRecord(id=11, user_id=None, matched_user_id=5),
    ]
    groups = accumulator.accumulate(matches)

    assert groups == {"record:11": {4, 5}, "record:12": {6}}
    assert accumulator.skipped == 0
