# ABOUTME: Fixed date-range buckets used to split recent-additions lists.
# ABOUTME: Ranges are ordered most-recent first and looked up by age in days.

from datetime import datetime
from enum import Enum


class DateRange(Enum):
    """Age buckets, declared from the most recent to the oldest.

    Each value is (upper bound in days, display label). The natural order
    (declaration order) is by range start descending, i.e. newest first.
    """

    ONEDAY = (1, "Today")
    ONEWEEK = (7, "Last 7 days")
    ONEMONTH = (31, "Last month")
    TWOMONTHS = (62, "Last two months")
    THREEMONTHS = (92, "Last three months")
    SIXMONTHS = (183, "Last six months")
    ONEYEAR = (365, "Last year")
    MORE = (None, "More than a year ago")

    def __init__(self, days: int | None, label: str) -> None:
        self.days = days
        self.label = label

    def __lt__(self, other: "DateRange") -> bool:
        if not isinstance(other, DateRange):
            return NotImplemented
        members = list(DateRange)
        return members.index(self) < members.index(other)

    @classmethod
    def find(cls, when: datetime | None, now: datetime) -> "DateRange":
        """Return the bucket containing a timestamp relative to `now`.

        Missing timestamps and timestamps in the future land in ONEDAY, the
        same bucket as "just added".
        """
        if when is None:
            return cls.ONEDAY
        if when.tzinfo is not None and now.tzinfo is None:
            when = when.replace(tzinfo=None)
        elif when.tzinfo is None and now.tzinfo is not None:
            when = when.replace(tzinfo=now.tzinfo)
        age_days = (now - when).days
        for bucket in cls:
            if bucket.days is None or age_days < bucket.days:
                return bucket
        return cls.MORE
