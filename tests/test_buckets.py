# tests/test_buckets.py
# PURPOSE: bucket membership rules, completion transition and counting, on plain objects.

from datetime import datetime, timedelta
from types import SimpleNamespace

from todoapp import buckets
from todoapp.buckets import Bucket, count_buckets, day_bounds, deleted_cutoff, matches

NOW = datetime(2026, 3, 10, 12, 0, 0)
WINDOW = day_bounds(NOW)
CUTOFF = deleted_cutoff(NOW)


def make(**kw):
    fields = dict(
        category="All",
        original_category="All",
        custom_list="",
        due_date=None,
        is_flagged=False,
        is_completed=False,
        is_deleted=False,
        updated_at=NOW,
    )
    fields.update(kw)
    return SimpleNamespace(**fields)


def in_bucket(task, bucket):
    return matches(task, bucket, window=WINDOW, cutoff=CUTOFF)


def test_day_bounds_utc():
    start, end = WINDOW
    assert start == datetime(2026, 3, 10)
    assert end == datetime(2026, 3, 11)


def test_bucket_accepts_labels():
    assert Bucket.DELETED.label == "Recently Deleted"
    assert Bucket("today").label == "Today"


def test_scheduled_category_without_due_date():
    task = make(category="Scheduled")
    assert in_bucket(task, Bucket.SCHEDULED)
    assert not in_bucket(task, Bucket.TODAY)


def test_all_category_due_today_is_today_and_scheduled():
    task = make(category="All", due_date=NOW.replace(hour=18))
    assert in_bucket(task, Bucket.TODAY)
    assert in_bucket(task, Bucket.SCHEDULED)
    assert in_bucket(task, Bucket.ALL)


def test_today_window_is_half_open():
    assert in_bucket(make(due_date=datetime(2026, 3, 10, 0, 0)), Bucket.TODAY)
    tomorrow = make(due_date=datetime(2026, 3, 11, 0, 0))
    assert not in_bucket(tomorrow, Bucket.TODAY)
    assert in_bucket(tomorrow, Bucket.SCHEDULED)


def test_today_category_counts_as_scheduled():
    task = make(category="Today")
    assert in_bucket(task, Bucket.TODAY)
    assert in_bucket(task, Bucket.SCHEDULED)


def test_flagged_by_flag_or_category():
    assert in_bucket(make(is_flagged=True), Bucket.FLAGGED)
    assert in_bucket(make(category="Flagged"), Bucket.FLAGGED)
    assert not in_bucket(make(), Bucket.FLAGGED)


def test_completed_tasks_leave_active_buckets():
    task = make(category="Completed", original_category="Today", is_completed=True, is_flagged=True)
    for bucket in (Bucket.TODAY, Bucket.SCHEDULED, Bucket.FLAGGED, Bucket.ALL):
        assert not in_bucket(task, bucket)
    assert in_bucket(task, Bucket.COMPLETED)


def test_deleted_tasks_only_in_recently_deleted():
    task = make(is_deleted=True, is_completed=True, updated_at=NOW - timedelta(days=2))
    assert not in_bucket(task, Bucket.COMPLETED)
    assert not in_bucket(task, Bucket.ALL)
    assert in_bucket(task, Bucket.DELETED)


def test_recently_deleted_window():
    assert in_bucket(make(is_deleted=True, updated_at=NOW - timedelta(days=30)), Bucket.DELETED)
    assert not in_bucket(make(is_deleted=True, updated_at=NOW - timedelta(days=31)), Bucket.DELETED)
    assert not in_bucket(make(updated_at=NOW), Bucket.DELETED)


def test_toggle_round_trip_restores_category():
    task = make(category="Work", original_category="Work")
    buckets.toggle_completion(task)
    assert task.is_completed and task.category == "Completed"
    assert task.original_category == "Work"
    buckets.toggle_completion(task)
    assert not task.is_completed and task.category == "Work"


def test_uncomplete_without_snapshot_falls_back_to_all():
    task = make(category="Completed", original_category="", is_completed=True)
    buckets.set_completed(task, False)
    assert task.category == "All"


def test_counts_single_pass():
    tasks = [
        make(category="Today"),
        make(category="All", due_date=NOW),
        make(category="Scheduled"),
        make(category="Work", is_flagged=True, custom_list="Groceries"),
        make(category="Completed", original_category="Work", is_completed=True),
        make(is_deleted=True, updated_at=NOW - timedelta(days=1)),
        make(is_deleted=True, updated_at=NOW - timedelta(days=40)),
    ]
    counts = count_buckets(tasks, now=NOW)
    assert counts.builtin == {
        "Today": 2,
        "Scheduled": 3,
        "Flagged": 1,
        "All": 4,
        "Completed": 1,
        "Recently Deleted": 1,
    }
    assert counts.categories == {"Today": 1, "All": 1, "Scheduled": 1, "Work": 1}
    assert counts.lists == {"Groceries": 1}

    flat = counts.as_mapping()
    assert flat["Today"] == 2
    assert flat["Scheduled"] == 3
    assert flat["All"] == 4
    assert flat["Completed"] == 1
    assert flat["Recently Deleted"] == 1
    assert flat["Work"] == 1
    assert flat["Groceries"] == 1
    # Completed is never a raw category tally of active tasks
    assert "Completed" not in counts.categories


def test_all_ignores_category_distribution():
    tasks = [make(category=c) for c in ("Work", "Work", "Family Tasks", "Assigned", "All")]
    counts = count_buckets(tasks, now=NOW)
    assert counts.builtin["All"] == 5
    assert sum(counts.categories.values()) == 5


def test_list_name_collision_overwrites_category_in_flat_mapping():
    tasks = [
        make(category="Work"),
        make(category="Work"),
        make(category="All", custom_list="Work"),
    ]
    counts = count_buckets(tasks, now=NOW)
    assert counts.as_mapping()["Work"] == 1
    # the namespaced form keeps both
    assert counts.categories["Work"] == 2
    assert counts.lists["Work"] == 1


def test_list_named_today_does_not_override_builtin():
    tasks = [make(category="All", custom_list="Today"), make(category="All", custom_list="Today")]
    counts = count_buckets(tasks, now=NOW)
    assert counts.lists["Today"] == 2
    assert counts.as_mapping()["Today"] == 0


def test_empty_owner_has_zero_builtin_counts():
    flat = count_buckets([], now=NOW).as_mapping()
    assert flat == {"Today": 0, "Scheduled": 0, "All": 0, "Completed": 0, "Recently Deleted": 0}


def test_day_bounds_follow_local_timezone():
    # 02:00 UTC on Mar 10 is still Mar 9 in New York (EDT, UTC-4)
    start, end = day_bounds(datetime(2026, 3, 10, 2, 0), "America/New_York")
    assert start == datetime(2026, 3, 9, 4, 0)
    assert end == datetime(2026, 3, 10, 4, 0)


def test_day_bounds_on_dst_change_day():
    # clocks spring forward on Mar 8 2026: local midnight to midnight is 23 hours
    start, end = day_bounds(datetime(2026, 3, 8, 12, 0), "America/New_York")
    assert start == datetime(2026, 3, 8, 5, 0)
    assert end == datetime(2026, 3, 9, 4, 0)
    assert end - start == timedelta(hours=23)


def test_today_count_uses_local_window():
    now = datetime(2026, 3, 10, 2, 0)
    tasks = [
        make(due_date=datetime(2026, 3, 9, 4, 0)),  # local midnight, inside
        make(due_date=datetime(2026, 3, 10, 3, 59)),  # 23:59 local, inside
        make(due_date=datetime(2026, 3, 10, 4, 0)),  # next local day
        make(due_date=datetime(2026, 3, 9, 3, 59)),  # previous local day
    ]
    counts = count_buckets(tasks, now=now, tz_name="America/New_York")
    assert counts.builtin["Today"] == 2
    window = day_bounds(now, "America/New_York")
    inside = [matches(t, Bucket.TODAY, window=window, cutoff=CUTOFF) for t in tasks]
    assert inside == [True, True, False, False]
    # the same instant in UTC selects a different pair
    utc_window = day_bounds(now)
    assert [matches(t, Bucket.TODAY, window=utc_window, cutoff=CUTOFF) for t in tasks] == [False, True, True, False]
