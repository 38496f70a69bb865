# PURPOSE: /tasks: CRUD, bucket views, counts, completion toggle, trash and bulk ops.

from typing import Optional, List, Dict
from fastapi import APIRouter, HTTPException, Query, Response, status, Depends
from sqlalchemy.orm import Session

from ..buckets import Bucket
from ..models import (
    BucketCountsOut,
    Category,
    Task,
    TaskCreate,
    TaskIdList,
    TaskPut,
    TaskUpdate,
    UserPublic,
)
from ..store_db import (
    get_db,
    list_tasks as db_list_tasks,
    list_bucket_tasks as db_list_bucket_tasks,
    count_tasks as db_count_tasks,
    task_counts as db_task_counts,
    create_task as db_create_task,
    get_task as db_get_task,
    replace_task as db_replace_task,
    update_task as db_update_task,
    toggle_task as db_toggle_task,
    soft_delete_task as db_soft_delete,
    restore_task as db_restore_task,
    purge_task as db_purge_task,
    bulk_delete_tasks as db_bulk_delete,
    bulk_complete_tasks as db_bulk_complete,
    trash_completed_tasks as db_trash_completed,
    purge_deleted_tasks as db_purge_deleted,
)
from ..auth import get_current_user

from ..api.deps import (
    OrderBy,
    OrderDir,
    parse_assigned_to,
    parse_bucket,
    parse_category,
    parse_order_by,
    parse_order_dir,
    parse_search,
)

router = APIRouter(prefix="/tasks", tags=["tasks"])

NOT_FOUND = "Task not found"


def _paginate(items: list, limit: Optional[int], offset: int) -> list:
    items = items[offset:] if offset else items
    return items[:limit] if limit else items


@router.get("/", response_model=List[Task])
def list_tasks(
    response: Response,
    category: Optional[Category] = Depends(parse_category),
    custom_list: Optional[str] = None,
    assigned_to: Optional[str] = Depends(parse_assigned_to),
    search: Optional[str] = Depends(parse_search),
    exclude_completed: bool = False,
    bucket: Optional[Bucket] = Depends(parse_bucket),
    limit: Optional[int] = Query(None, ge=1),
    offset: int = Query(0, ge=0),
    order_by: Optional[OrderBy] = Depends(parse_order_by),
    order_dir: OrderDir = Depends(parse_order_dir),
    db: Session = Depends(get_db),
    user: UserPublic = Depends(get_current_user),
):
    """List the caller's live tasks, newest first.

    `bucket` switches to a derived view (today, scheduled, flagged, completed,
    all, deleted); the plain filters still narrow it down.
    """
    if bucket is not None:
        rows = db_list_bucket_tasks(
            db,
            owner_id=user.id,
            bucket=bucket,
            category=category,
            custom_list=custom_list,
            assigned_to=assigned_to,
            q=search,
            exclude_completed=exclude_completed,
            order_by=order_by,
            order_dir=order_dir,
        )
        response.headers["X-Total-Count"] = str(len(rows))
        return _paginate(rows, limit, offset)

    filters = dict(
        category=category,
        custom_list=custom_list,
        assigned_to=assigned_to,
        q=search,
        exclude_completed=exclude_completed,
    )
    total = db_count_tasks(db, owner_id=user.id, **filters)
    items = db_list_tasks(
        db,
        owner_id=user.id,
        limit=limit,
        offset=offset,
        order_by=order_by or "created_at",
        order_dir=order_dir,
        **filters,
    )
    response.headers["X-Total-Count"] = str(total)
    return items


@router.get("/deleted", response_model=List[Task])
def list_recently_deleted(
    response: Response,
    db: Session = Depends(get_db),
    user: UserPublic = Depends(get_current_user),
):
    """Recently Deleted view: soft-deleted within the retention window, latest first."""
    rows = db_list_bucket_tasks(db, owner_id=user.id, bucket=Bucket.DELETED)
    response.headers["X-Total-Count"] = str(len(rows))
    return rows


@router.get("/stats/counts")
def task_counts(
    db: Session = Depends(get_db),
    user: UserPublic = Depends(get_current_user),
) -> Dict[str, int]:
    """Bucket name -> count, as shown in the sidebar."""
    return db_task_counts(db, owner_id=user.id).as_mapping()


@router.get("/stats/buckets", response_model=BucketCountsOut)
def bucket_counts(
    db: Session = Depends(get_db),
    user: UserPublic = Depends(get_current_user),
):
    """Same counts with built-in buckets, raw categories and custom lists kept apart."""
    counts = db_task_counts(db, owner_id=user.id)
    return BucketCountsOut(builtin=counts.builtin, categories=counts.categories, lists=counts.lists)


@router.delete("/completed/all", status_code=status.HTTP_200_OK)
def trash_completed(
    db: Session = Depends(get_db), user: UserPublic = Depends(get_current_user)
) -> Dict[str, int]:
    return {"count": db_trash_completed(db, owner_id=user.id)}


@router.delete("/deleted/all", status_code=status.HTTP_200_OK)
def purge_deleted(
    db: Session = Depends(get_db), user: UserPublic = Depends(get_current_user)
) -> Dict[str, int]:
    return {"count": db_purge_deleted(db, owner_id=user.id)}


@router.post("/bulk_delete", status_code=status.HTTP_200_OK)
def bulk_delete(payload: TaskIdList, db: Session = Depends(get_db), user: UserPublic = Depends(get_current_user)) -> Dict[str, int]:
    deleted = db_bulk_delete(db, payload.ids, owner_id=user.id)
    return {"deleted": deleted}


@router.post("/bulk_complete", status_code=status.HTTP_200_OK)
def bulk_complete(payload: TaskIdList, db: Session = Depends(get_db), user: UserPublic = Depends(get_current_user)) -> Dict[str, int]:
    updated = db_bulk_complete(db, payload.ids, owner_id=user.id)
    return {"updated": updated}


@router.post("/", response_model=Task, status_code=status.HTTP_201_CREATED)
def create_task(
    item: TaskCreate,
    response: Response,
    db: Session = Depends(get_db),
    user: UserPublic = Depends(get_current_user),
):
    task = db_create_task(db, item, owner_id=user.id)
    response.headers["Location"] = f"/api/v1/tasks/{task.id}"
    return task


@router.get("/{task_id}", response_model=Task)
def get_task(
    task_id: int,
    db: Session = Depends(get_db),
    user: UserPublic = Depends(get_current_user),
):
    task = db_get_task(db, task_id, owner_id=user.id)
    if not task:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return task


@router.put("/{task_id}", response_model=Task)
def put_task(
    task_id: int,
    item: TaskPut,
    db: Session = Depends(get_db),
    user: UserPublic = Depends(get_current_user),
):
    updated = db_replace_task(db, task_id, item, owner_id=user.id)
    if not updated:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return updated


@router.patch("/{task_id}", response_model=Task)
def patch_task(
    task_id: int,
    item: TaskUpdate,
    db: Session = Depends(get_db),
    user: UserPublic = Depends(get_current_user),
):
    updated = db_update_task(db, task_id, item, owner_id=user.id)
    if not updated:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return updated


@router.patch("/{task_id}/toggle", response_model=Task)
def toggle_task(
    task_id: int,
    db: Session = Depends(get_db),
    user: UserPublic = Depends(get_current_user),
):
    updated = db_toggle_task(db, task_id, owner_id=user.id)
    if not updated:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return updated


@router.patch("/{task_id}/restore", response_model=Task)
def restore_task(
    task_id: int,
    db: Session = Depends(get_db),
    user: UserPublic = Depends(get_current_user),
):
    updated = db_restore_task(db, task_id, owner_id=user.id)
    if not updated:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return updated


@router.delete("/{task_id}", response_model=Task)
def delete_task(
    task_id: int,
    db: Session = Depends(get_db),
    user: UserPublic = Depends(get_current_user),
):
    """Soft delete: the task moves to Recently Deleted and can be restored."""
    updated = db_soft_delete(db, task_id, owner_id=user.id)
    if not updated:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return updated


@router.delete("/{task_id}/permanent", status_code=status.HTTP_200_OK)
def purge_task(
    task_id: int,
    db: Session = Depends(get_db),
    user: UserPublic = Depends(get_current_user),
) -> Dict[str, int]:
    if not db_purge_task(db, task_id, owner_id=user.id):
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return {"deleted": 1}
