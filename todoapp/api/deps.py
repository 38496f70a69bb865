from typing import Literal, get_args

from fastapi import HTTPException, Query

from ..buckets import Bucket
from ..models import Assignee, Category

# Shared order types
OrderBy = Literal["created_at", "updated_at", "priority", "due_date"]
OrderDir = Literal["asc", "desc"]


def _literal_error(param: str, allowed, value: str) -> HTTPException:
    return HTTPException(
        status_code=422,
        detail=[
            {
                "type": "literal_error",
                "loc": ["query", param],
                "msg": f"{param} must be one of: {', '.join(allowed)}",
                "input": value,
            }
        ],
    )


def parse_category(category: str | None = Query(None)) -> Category | None:
    if category is None or category == "":
        return None
    if category in get_args(Category):
        return category  # type: ignore[return-value]
    raise _literal_error("category", get_args(Category), category)


def parse_assigned_to(assigned_to: str | None = Query(None)) -> Assignee | None:
    if assigned_to is None or assigned_to == "":
        return None
    if assigned_to in get_args(Assignee):
        return assigned_to  # type: ignore[return-value]
    raise _literal_error("assigned_to", get_args(Assignee), assigned_to)


def parse_bucket(bucket: str | None = Query(None)) -> Bucket | None:
    if bucket is None or bucket == "":
        return None
    # accept both the slug ("deleted") and the display name ("Recently Deleted")
    for member in Bucket:
        if bucket.lower() in (member.value, member.label.lower()):
            return member
    raise _literal_error("bucket", [m.value for m in Bucket], bucket)


def parse_search(
    search: str | None = Query(None),
    q: str | None = Query(None),
) -> str | None:
    value = (search or q or "").strip()
    return value or None


def parse_order_by(order_by: str | None = Query(None)) -> OrderBy | None:
    if not order_by:
        return None
    if order_by in get_args(OrderBy):
        return order_by  # type: ignore[return-value]
    raise _literal_error("order_by", get_args(OrderBy), order_by)


def parse_order_dir(order_dir: str | None = Query(None)) -> OrderDir:
    if not order_dir:
        return "desc"
    if order_dir in ("asc", "desc"):
        return order_dir  # type: ignore[return-value]
    raise _literal_error("order_dir", ("asc", "desc"), order_dir)
