# PURPOSE: owner-scoped persistence for tasks and lists (SQLAlchemy ORM).
# Every query filters by owner_id; a row owned by someone else is reported
# exactly like a missing one (None / 0).

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, List, Optional, Sequence

from sqlalchemy import case, or_
from sqlalchemy.orm import Session

from . import buckets
from .buckets import Bucket, BucketCounts
from .config import settings
from .db_models import ListDB, TaskDB, now_utc

logger = logging.getLogger(__name__)

TASK_FIELDS = (
    "title",
    "description",
    "emoji",
    "image",
    "assigned_to",
    "category",
    "custom_list",
    "is_flagged",
    "due_date",
    "due_time",
    "repeat",
    "priority",
)


# --- Session dependency ----------------------------------------------------


def get_db():
    """Yield a SQLAlchemy session (used as a FastAPI dependency)."""
    from .db import SessionLocal

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# --- Helpers ---------------------------------------------------------------


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _apply_common_filters(
    query,
    *,
    owner_id: int,
    category: Optional[str] = None,
    custom_list: Optional[str] = None,
    assigned_to: Optional[str] = None,
    q: Optional[str] = None,
    exclude_completed: bool = False,
    deleted: bool = False,
):
    """Apply shared filters to a TaskDB query."""
    query = query.filter(TaskDB.owner_id == owner_id, TaskDB.is_deleted.is_(deleted))
    # "All" is the absence of a category filter
    if category and category != buckets.ALL:
        query = query.filter(TaskDB.category == category)
    if custom_list:
        query = query.filter(TaskDB.custom_list == custom_list)
    if assigned_to:
        query = query.filter(TaskDB.assigned_to == assigned_to)
    if q:
        like = f"%{_escape_like(q)}%"
        query = query.filter(
            or_(
                TaskDB.title.ilike(like, escape="\\"),
                TaskDB.description.ilike(like, escape="\\"),
            )
        )
    if exclude_completed:
        query = query.filter(TaskDB.is_completed.is_(False))
    return query


def _apply_ordering(query, *, order_by: str, order_dir: str):
    """
    Apply ordering with a safe allow-list of columns.
    Allowed: created_at, updated_at, priority, due_date (undated last).
    Includes stable secondary ordering for deterministic results.
    """
    if order_by == "priority":
        # low(0) < medium(1) < high(2)
        primary: Any = case(
            (TaskDB.priority == "low", 0),
            (TaskDB.priority == "medium", 1),
            (TaskDB.priority == "high", 2),
            else_=1,
        )
    elif order_by == "updated_at":
        primary = TaskDB.updated_at
    elif order_by == "due_date":
        primary = TaskDB.due_date
    else:
        primary = TaskDB.created_at

    if order_dir == "asc":
        ordered = [primary.asc(), TaskDB.created_at.asc(), TaskDB.id.asc()]
    else:
        ordered = [primary.desc(), TaskDB.created_at.desc(), TaskDB.id.desc()]
    if order_by == "due_date":
        ordered.insert(0, TaskDB.due_date.is_(None))
    return query.order_by(*ordered)


def _owned(db: Session, task_ids: Sequence[int], owner_id: int):
    return db.query(TaskDB).filter(TaskDB.id.in_(list(task_ids)), TaskDB.owner_id == owner_id)


# --- Queries: Tasks --------------------------------------------------------


def list_tasks(
    db: Session,
    *,
    owner_id: int,
    category: Optional[str] = None,
    custom_list: Optional[str] = None,
    assigned_to: Optional[str] = None,
    q: Optional[str] = None,
    exclude_completed: bool = False,
    deleted: bool = False,
    limit: Optional[int] = None,
    offset: int = 0,
    order_by: str = "created_at",
    order_dir: str = "desc",
) -> List[TaskDB]:
    """Return the owner's tasks with filters and ordering applied (newest first by default)."""
    query = _apply_common_filters(
        db.query(TaskDB),
        owner_id=owner_id,
        category=category,
        custom_list=custom_list,
        assigned_to=assigned_to,
        q=q,
        exclude_completed=exclude_completed,
        deleted=deleted,
    )
    query = _apply_ordering(query, order_by=order_by, order_dir=order_dir)
    if offset:
        query = query.offset(offset)
    if limit:
        query = query.limit(limit)
    return query.all()


def count_tasks(
    db: Session,
    *,
    owner_id: int,
    category: Optional[str] = None,
    custom_list: Optional[str] = None,
    assigned_to: Optional[str] = None,
    q: Optional[str] = None,
    exclude_completed: bool = False,
    deleted: bool = False,
) -> int:
    """Return total count for the given filters (no pagination)."""
    query = _apply_common_filters(
        db.query(TaskDB),
        owner_id=owner_id,
        category=category,
        custom_list=custom_list,
        assigned_to=assigned_to,
        q=q,
        exclude_completed=exclude_completed,
        deleted=deleted,
    )
    return query.count()


def list_bucket_tasks(
    db: Session,
    *,
    owner_id: int,
    bucket: Bucket,
    category: Optional[str] = None,
    custom_list: Optional[str] = None,
    assigned_to: Optional[str] = None,
    q: Optional[str] = None,
    exclude_completed: bool = False,
    now: Optional[datetime] = None,
    order_by: Optional[str] = None,
    order_dir: str = "desc",
) -> List[TaskDB]:
    """Return the tasks that belong in `bucket`, after the plain filters.

    Recently Deleted is ordered by updated_at (most recently deleted first),
    every other bucket by created_at.
    """
    now = now or now_utc()
    is_trash = bucket is Bucket.DELETED
    rows = list_tasks(
        db,
        owner_id=owner_id,
        category=category,
        custom_list=custom_list,
        assigned_to=assigned_to,
        q=q,
        exclude_completed=exclude_completed,
        deleted=is_trash,
        order_by=order_by or ("updated_at" if is_trash else "created_at"),
        order_dir=order_dir,
    )
    window = buckets.day_bounds(now, settings.TIMEZONE)
    cutoff = buckets.deleted_cutoff(now, settings.RECENTLY_DELETED_DAYS)
    return [t for t in rows if buckets.matches(t, bucket, window=window, cutoff=cutoff)]


def task_counts(db: Session, *, owner_id: int, now: Optional[datetime] = None) -> BucketCounts:
    """Per-bucket counts for one owner, computed from a full scan of their tasks."""
    rows = db.query(TaskDB).filter(TaskDB.owner_id == owner_id).all()
    return buckets.count_buckets(
        rows,
        now=now or now_utc(),
        tz_name=settings.TIMEZONE,
        retention_days=settings.RECENTLY_DELETED_DAYS,
    )


def get_task(db: Session, task_id: int, *, owner_id: int) -> Optional[TaskDB]:
    """Fetch a single task (deleted ones included) owned by `owner_id`."""
    return (
        db.query(TaskDB)
        .filter(TaskDB.id == task_id, TaskDB.owner_id == owner_id)
        .one_or_none()
    )


# --- Mutations: Tasks ------------------------------------------------------


def _save(db: Session, row: TaskDB, now: datetime) -> TaskDB:
    row.updated_at = now
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def _set_category(row: TaskDB, category: str) -> None:
    # An active task's snapshot follows its category so un-completing returns here.
    if row.is_completed:
        row.original_category = category
    else:
        row.category = category
        row.original_category = category


def create_task(db: Session, data, *, owner_id: int, now: Optional[datetime] = None) -> TaskDB:
    """Create a task from a Pydantic-like object; original_category snapshots category."""
    now = now or now_utc()
    category = getattr(data, "category", None) or buckets.ALL
    row = TaskDB(
        owner_id=owner_id,
        title=data.title,
        description=getattr(data, "description", "") or "",
        emoji=getattr(data, "emoji", "") or "",
        image=getattr(data, "image", "") or "",
        assigned_to=getattr(data, "assigned_to", None) or "Danny",
        category=category,
        original_category=category,
        custom_list=getattr(data, "custom_list", "") or "",
        is_flagged=bool(getattr(data, "is_flagged", False)),
        due_date=getattr(data, "due_date", None),
        due_time=getattr(data, "due_time", "") or "",
        repeat=getattr(data, "repeat", None) or "none",
        priority=getattr(data, "priority", None) or "medium",
        created_at=now,
        updated_at=now,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def replace_task(db: Session, task_id: int, data, *, owner_id: int, now: Optional[datetime] = None):
    """Full replace of the editable fields (PUT). Returns updated row or None if not found."""
    row = get_task(db, task_id, owner_id=owner_id)
    if not row:
        return None
    for field in TASK_FIELDS:
        if field == "category":
            _set_category(row, data.category)
        else:
            setattr(row, field, getattr(data, field))
    return _save(db, row, now or now_utc())


def update_task(db: Session, task_id: int, data, *, owner_id: int, now: Optional[datetime] = None):
    """Partial update (PATCH). Only fields the client sent are touched."""
    row = get_task(db, task_id, owner_id=owner_id)
    if not row:
        return None
    changes = data.model_dump(exclude_unset=True)
    for field in TASK_FIELDS:
        if field not in changes:
            continue
        value = changes[field]
        if value is None and field != "due_date":
            continue
        if field == "category":
            _set_category(row, value)
        else:
            setattr(row, field, value)
    completed = changes.get("is_completed")
    if completed is not None and completed != row.is_completed:
        buckets.set_completed(row, completed)
    return _save(db, row, now or now_utc())


def toggle_task(db: Session, task_id: int, *, owner_id: int, now: Optional[datetime] = None):
    """Flip completion (Active(C) <-> Completed). Returns updated row or None."""
    row = get_task(db, task_id, owner_id=owner_id)
    if not row:
        return None
    buckets.toggle_completion(row)
    return _save(db, row, now or now_utc())


def soft_delete_task(db: Session, task_id: int, *, owner_id: int, now: Optional[datetime] = None):
    """Move a task to Recently Deleted. Returns updated row or None."""
    row = get_task(db, task_id, owner_id=owner_id)
    if not row:
        return None
    row.is_deleted = True
    return _save(db, row, now or now_utc())


def restore_task(db: Session, task_id: int, *, owner_id: int, now: Optional[datetime] = None):
    """Bring a soft-deleted task back. Returns updated row or None."""
    row = get_task(db, task_id, owner_id=owner_id)
    if not row:
        return None
    row.is_deleted = False
    return _save(db, row, now or now_utc())


def purge_task(db: Session, task_id: int, *, owner_id: int) -> bool:
    """Permanently delete a task, whatever its age or state."""
    row = get_task(db, task_id, owner_id=owner_id)
    if not row:
        return False
    db.delete(row)
    db.commit()
    return True


# --- Bulk ops --------------------------------------------------------------


def bulk_delete_tasks(
    db: Session, ids: Sequence[int], *, owner_id: int, now: Optional[datetime] = None
) -> int:
    """Soft-delete many owned tasks; returns how many changed."""
    if not ids:
        return 0
    deleted = (
        _owned(db, ids, owner_id)
        .filter(TaskDB.is_deleted.is_(False))
        .update({TaskDB.is_deleted: True, TaskDB.updated_at: now or now_utc()}, synchronize_session=False)
    )
    db.commit()
    logger.info("bulk delete owner_id=%s requested=%s deleted=%s", owner_id, len(ids), deleted)
    return deleted


def bulk_complete_tasks(
    db: Session, ids: Sequence[int], *, owner_id: int, now: Optional[datetime] = None
) -> int:
    """Complete many owned, live tasks; returns how many changed."""
    if not ids:
        return 0
    now = now or now_utc()
    rows = (
        _owned(db, ids, owner_id)
        .filter(TaskDB.is_deleted.is_(False), TaskDB.is_completed.is_(False))
        .all()
    )
    for row in rows:
        buckets.set_completed(row, True)
        row.updated_at = now
        db.add(row)
    db.commit()
    return len(rows)


def trash_completed_tasks(db: Session, *, owner_id: int, now: Optional[datetime] = None) -> int:
    """Move every completed, live task of the owner to Recently Deleted."""
    moved = (
        db.query(TaskDB)
        .filter(
            TaskDB.owner_id == owner_id,
            TaskDB.is_completed.is_(True),
            TaskDB.is_deleted.is_(False),
        )
        .update({TaskDB.is_deleted: True, TaskDB.updated_at: now or now_utc()}, synchronize_session=False)
    )
    db.commit()
    logger.info("trash completed owner_id=%s moved=%s", owner_id, moved)
    return moved


def purge_deleted_tasks(db: Session, *, owner_id: int) -> int:
    """Permanently delete every soft-deleted task of the owner, regardless of age."""
    removed = (
        db.query(TaskDB)
        .filter(TaskDB.owner_id == owner_id, TaskDB.is_deleted.is_(True))
        .delete(synchronize_session=False)
    )
    db.commit()
    logger.info("purge deleted owner_id=%s removed=%s", owner_id, removed)
    return removed


# --- Lists -----------------------------------------------------------------


def list_lists(db: Session, *, owner_id: int) -> List[ListDB]:
    return (
        db.query(ListDB)
        .filter(ListDB.owner_id == owner_id)
        .order_by(ListDB.created_at.desc(), ListDB.id.desc())
        .all()
    )


def get_list(db: Session, list_id: int, *, owner_id: int) -> Optional[ListDB]:
    return (
        db.query(ListDB)
        .filter(ListDB.id == list_id, ListDB.owner_id == owner_id)
        .one_or_none()
    )


def find_list_by_name(db: Session, name: str, *, owner_id: int) -> Optional[ListDB]:
    return (
        db.query(ListDB)
        .filter(ListDB.owner_id == owner_id, ListDB.name == name)
        .one_or_none()
    )


def create_list(db: Session, data, *, owner_id: int, now: Optional[datetime] = None) -> ListDB:
    row = ListDB(
        owner_id=owner_id,
        name=data.name,
        color=data.color,
        emoji=data.emoji,
        created_at=now or now_utc(),
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def update_list(db: Session, list_id: int, data, *, owner_id: int, now: Optional[datetime] = None):
    """Partial update. Renaming also renames custom_list on the owner's tasks."""
    row = get_list(db, list_id, owner_id=owner_id)
    if not row:
        return None
    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    new_name = changes.get("name")
    if new_name and new_name != row.name:
        tasks = db.query(TaskDB).filter(TaskDB.owner_id == owner_id, TaskDB.custom_list == row.name)
        renamed = tasks.filter(TaskDB.is_deleted.is_(False)).update(
            {TaskDB.custom_list: new_name, TaskDB.updated_at: now or now_utc()},
            synchronize_session=False,
        )
        # trashed tasks follow the rename; updated_at keeps their deletion time
        renamed += tasks.filter(TaskDB.is_deleted.is_(True)).update(
            {TaskDB.custom_list: new_name, TaskDB.updated_at: TaskDB.updated_at},
            synchronize_session=False,
        )
        logger.info("list rename owner_id=%s old=%r new=%r tasks=%s", owner_id, row.name, new_name, renamed)
    for field, value in changes.items():
        setattr(row, field, value)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def delete_list(db: Session, list_id: int, *, owner_id: int) -> bool:
    """Delete a list; tasks that reference it by name are left as they are."""
    row = get_list(db, list_id, owner_id=owner_id)
    if not row:
        return False
    db.delete(row)
    db.commit()
    return True
