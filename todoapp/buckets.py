# PURPOSE: task buckets: which views a task shows up in, and how many tasks each view holds.
# A bucket is a read-only view over the owner's tasks (Today, Scheduled, Flagged, Completed,
# All, a custom list, Recently Deleted), derived from category, due date and flags. The stored
# category only changes through the completion transition below.
# Everything works on plain attribute access, so ORM rows and simple test objects are
# interchangeable. Datetimes are naive UTC, matching storage.

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta, timezone, tzinfo
from enum import Enum
from typing import Any, Iterable
from zoneinfo import ZoneInfo

TODAY = "Today"
SCHEDULED = "Scheduled"
FLAGGED = "Flagged"
COMPLETED = "Completed"
ALL = "All"
RECENTLY_DELETED = "Recently Deleted"


class Bucket(str, Enum):
    TODAY = "today"
    SCHEDULED = "scheduled"
    FLAGGED = "flagged"
    COMPLETED = "completed"
    ALL = "all"
    DELETED = "deleted"

    @property
    def label(self) -> str:
        return _LABELS[self]


_LABELS = {
    Bucket.TODAY: TODAY,
    Bucket.SCHEDULED: SCHEDULED,
    Bucket.FLAGGED: FLAGGED,
    Bucket.COMPLETED: COMPLETED,
    Bucket.ALL: ALL,
    Bucket.DELETED: RECENTLY_DELETED,
}


# --- Time windows -------------------------------------------------------------


def _zone(name: str) -> tzinfo:
    if name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


def day_bounds(now: datetime, tz_name: str = "UTC") -> tuple[datetime, datetime]:
    """Return [start of today, start of tomorrow) in `tz_name`, as naive UTC."""
    zone = _zone(tz_name)
    local = now.replace(tzinfo=UTC).astimezone(zone)
    start = datetime.combine(local.date(), datetime.min.time(), tzinfo=zone)
    end = datetime.combine(local.date() + timedelta(days=1), datetime.min.time(), tzinfo=zone)
    return (
        start.astimezone(UTC).replace(tzinfo=None),
        end.astimezone(UTC).replace(tzinfo=None),
    )


def deleted_cutoff(now: datetime, retention_days: int = 30) -> datetime:
    return now - timedelta(days=retention_days)


# --- Membership rules ---------------------------------------------------------


def is_active(task: Any) -> bool:
    return not task.is_deleted and not task.is_completed


def is_today(task: Any, window: tuple[datetime, datetime]) -> bool:
    if task.category == TODAY:
        return True
    start, end = window
    return task.due_date is not None and start <= task.due_date < end


def is_scheduled(task: Any) -> bool:
    return task.category in (SCHEDULED, TODAY) or task.due_date is not None


def is_flagged(task: Any) -> bool:
    return bool(task.is_flagged) or task.category == FLAGGED


def is_recently_deleted(task: Any, cutoff: datetime) -> bool:
    return bool(task.is_deleted) and task.updated_at is not None and task.updated_at >= cutoff


def matches(
    task: Any,
    bucket: Bucket,
    *,
    window: tuple[datetime, datetime],
    cutoff: datetime,
) -> bool:
    """True if `task` belongs in `bucket`.

    Active buckets (Today, Scheduled, Flagged, All) never include completed or
    deleted tasks; Completed excludes deleted ones.
    """
    if bucket is Bucket.DELETED:
        return is_recently_deleted(task, cutoff)
    if task.is_deleted:
        return False
    if bucket is Bucket.COMPLETED:
        return bool(task.is_completed)
    if task.is_completed:
        return False
    if bucket is Bucket.TODAY:
        return is_today(task, window)
    if bucket is Bucket.SCHEDULED:
        return is_scheduled(task)
    if bucket is Bucket.FLAGGED:
        return is_flagged(task)
    return True


# --- Completion transition ----------------------------------------------------


def set_completed(task: Any, completed: bool) -> None:
    """Move a task into or out of the Completed state.

    Completing keeps original_category untouched; un-completing restores it
    (or "All" when it was never recorded).
    """
    task.is_completed = completed
    if completed:
        task.category = COMPLETED
    else:
        task.category = task.original_category or ALL


def toggle_completion(task: Any) -> None:
    set_completed(task, not task.is_completed)


# --- Counting -----------------------------------------------------------------


@dataclass
class BucketCounts:
    builtin: dict[str, int] = field(default_factory=dict)
    categories: dict[str, int] = field(default_factory=dict)
    lists: dict[str, int] = field(default_factory=dict)

    def as_mapping(self) -> dict[str, int]:
        """Flatten into the single name -> count mapping used by the sidebar.

        Raw category tallies come first, custom-list tallies overwrite any
        same-named entry, then the date-driven and pseudo buckets win.
        """
        result: dict[str, int] = dict(self.categories)
        result.update(self.lists)
        for name in (TODAY, SCHEDULED, ALL, COMPLETED, RECENTLY_DELETED):
            result[name] = self.builtin[name]
        return result


def count_buckets(
    tasks: Iterable[Any],
    *,
    now: datetime,
    tz_name: str = "UTC",
    retention_days: int = 30,
) -> BucketCounts:
    """Count every bucket in a single pass over an owner's tasks (deleted ones included)."""
    window = day_bounds(now, tz_name)
    cutoff = deleted_cutoff(now, retention_days)

    categories: Counter[str] = Counter()
    lists: Counter[str] = Counter()
    builtin: Counter[str] = Counter(
        {TODAY: 0, SCHEDULED: 0, FLAGGED: 0, ALL: 0, COMPLETED: 0, RECENTLY_DELETED: 0}
    )

    for task in tasks:
        if task.is_deleted:
            if is_recently_deleted(task, cutoff):
                builtin[RECENTLY_DELETED] += 1
            continue
        if task.is_completed:
            builtin[COMPLETED] += 1
            continue
        builtin[ALL] += 1
        categories[task.category] += 1
        if task.custom_list:
            lists[task.custom_list] += 1
        if is_today(task, window):
            builtin[TODAY] += 1
        if is_scheduled(task):
            builtin[SCHEDULED] += 1
        if is_flagged(task):
            builtin[FLAGGED] += 1

    return BucketCounts(builtin=dict(builtin), categories=dict(categories), lists=dict(lists))
