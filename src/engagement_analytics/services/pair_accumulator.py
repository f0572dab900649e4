"""Unique pair and group accumulation.

The one deduplication primitive behind every connection count: match
records are folded into order-independent keys, each key collecting the
distinct participants seen under it.

Key derivation, per record:
1. ``group_id`` when present and nonzero: every record of the group
   lands on the same key, so three people matched together count once
2. otherwise the normalized pair of the two participants
3. otherwise the record itself, by its id, so an incomplete row still
   counts as one (never engaged) unit

Records with none of these are skipped and counted.
"""

import logging
from collections.abc import Iterable
from itertools import combinations

from engagement_analytics.entities import MatchRecord

logger = logging.getLogger(__name__)

PairKey = str


def pair_key(a: int, b: int) -> PairKey:
    """Order-independent key for two participants: ``"min-max"``."""
    low, high = (a, b) if a <= b else (b, a)
    return f"{low}-{high}"


def group_key(group_id: int) -> PairKey:
    """Key shared by every record of a multi-person group."""
    return f"group:{group_id}"


def record_key(record_id: object) -> PairKey:
    """Key of a record that has neither a group nor a usable pair."""
    return f"record:{record_id}"


def participant_pairs(participant_ids: Iterable[int]) -> set[PairKey]:
    """Every 2-subset of a participant set, as pair keys."""
    return {pair_key(a, b) for a, b in combinations(sorted(set(participant_ids)), 2)}


class PairSetAccumulator:
    """Folds match records into unique pairs and groups.

    Example:
        ```python
        accumulator = PairSetAccumulator()
        groups = accumulator.accumulate(matches)
        print(len(groups), accumulator.skipped)
        ```
    """

    def __init__(self) -> None:
        self.skipped = 0

    def key_for(self, match: MatchRecord) -> PairKey | None:
        """Derive the dedup key of a record, or None if it has none."""
        if match.group_id:
            return group_key(match.group_id)
        if match.user_id is not None and match.matched_user_id is not None and match.user_id != match.matched_user_id:
            return pair_key(match.user_id, match.matched_user_id)
        if match.id is not None:
            return record_key(match.id)
        return None

    def accumulate(self, matches: Iterable[MatchRecord]) -> dict[PairKey, set[int]]:
        """Group records by key.

        Args:
            matches: Match records, in any order

        Returns:
            Mapping of pair/group key to the distinct participant ids seen
            under it. ``self.skipped`` holds the number of unusable records.
        """
        groups: dict[PairKey, set[int]] = {}
        skipped = 0
        for match in matches:
            key = self.key_for(match)
            if key is None:
                skipped += 1
                continue
            groups.setdefault(key, set()).update(match.participants)

        self.skipped = skipped
        if skipped:
            logger.debug("Skipped %d match records without participants or group", skipped)
        return groups
