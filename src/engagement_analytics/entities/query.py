"""Query parameter entities."""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone


@dataclass(frozen=True)
class DateRange:
    """Inclusive range of calendar dates; either end may be open."""

    start: date | None = None
    end: date | None = None

    def __post_init__(self) -> None:
        if self.start and self.end and self.start > self.end:
            raise ValueError("start date must not be after end date")

    @property
    def start_key(self) -> str:
        return self.start.isoformat() if self.start else "all"

    @property
    def end_key(self) -> str:
        return self.end.isoformat() if self.end else "all"

    @property
    def start_at(self) -> datetime | None:
        """Start of the first day, UTC."""
        if self.start is None:
            return None
        return datetime.combine(self.start, time.min, tzinfo=timezone.utc)

    @property
    def end_before(self) -> datetime | None:
        """Start of the day after the last day, UTC (exclusive bound)."""
        if self.end is None:
            return None
        return datetime.combine(self.end + timedelta(days=1), time.min, tzinfo=timezone.utc)

    def contains(self, moment: datetime | None) -> bool:
        """Check whether a timestamp falls inside the range.

        Unknown timestamps are kept so they can be reported as invalid.
        """
        if moment is None:
            return True
        start_at, end_before = self.start_at, self.end_before
        if start_at and moment < start_at:
            return False
        if end_before and moment >= end_before:
            return False
        return True


@dataclass(frozen=True)
class DrilldownQuery:
    """Parameters of a paginated member drilldown.

    Attributes:
        community_id: The community
        type: Attribute type (interest, skill, location, custom_field:<id>, ...)
        value: Attribute value to match
        only_active: Skip disabled members
        search: Case-insensitive filter on name and email
        sort_by: Member field to sort by
        sort_order: "asc" or "desc"
        page: 1-based page number
        page_size: Members per page
    """

    community_id: int
    type: str
    value: str
    only_active: bool = True
    search: str = ""
    sort_by: str = "full_name"
    sort_order: str = "asc"
    page: int = 1
    page_size: int = 25

    @property
    def cache_key(self) -> str:
        return "|".join(
            str(part)
            for part in (
                self.community_id,
                self.type,
                self.value,
                self.only_active,
                self.search,
                self.sort_by,
                self.sort_order,
                self.page,
                self.page_size,
            )
        )
