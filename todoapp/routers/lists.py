# PURPOSE: /lists: user-defined lists that tasks reference by name.

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..models import ListCreate, ListUpdate, TaskList, UserPublic
from ..store_db import (
    get_db,
    list_lists as db_list_lists,
    get_list as db_get_list,
    find_list_by_name as db_find_list,
    create_list as db_create_list,
    update_list as db_update_list,
    delete_list as db_delete_list,
)
from ..welcome import SAMPLE_PROJECT, create_sample_project

router = APIRouter(prefix="/lists", tags=["lists"])

NOT_FOUND = "List not found"
NAME_TAKEN = "A list with this name already exists"


@router.get("/", response_model=List[TaskList])
def list_lists(db: Session = Depends(get_db), user: UserPublic = Depends(get_current_user)):
    return db_list_lists(db, owner_id=user.id)


@router.post("/", response_model=TaskList, status_code=status.HTTP_201_CREATED)
def create_list(
    item: ListCreate,
    response: Response,
    db: Session = Depends(get_db),
    user: UserPublic = Depends(get_current_user),
):
    if db_find_list(db, item.name, owner_id=user.id):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=NAME_TAKEN)
    row = db_create_list(db, item, owner_id=user.id)
    response.headers["Location"] = f"/api/v1/lists/{row.id}"
    return row


@router.post("/sample-project", response_model=TaskList, status_code=status.HTTP_201_CREATED)
def add_sample_project(db: Session = Depends(get_db), user: UserPublic = Depends(get_current_user)):
    if db_find_list(db, SAMPLE_PROJECT[0], owner_id=user.id):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=NAME_TAKEN)
    return create_sample_project(db, user.id)


@router.get("/{list_id}", response_model=TaskList)
def get_list(list_id: int, db: Session = Depends(get_db), user: UserPublic = Depends(get_current_user)):
    row = db_get_list(db, list_id, owner_id=user.id)
    if not row:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return row


@router.patch("/{list_id}", response_model=TaskList)
def update_list(
    list_id: int,
    item: ListUpdate,
    db: Session = Depends(get_db),
    user: UserPublic = Depends(get_current_user),
):
    if item.name:
        clash = db_find_list(db, item.name, owner_id=user.id)
        if clash and clash.id != list_id:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=NAME_TAKEN)
    row = db_update_list(db, list_id, item, owner_id=user.id)
    if not row:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return row


@router.delete("/{list_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_list(list_id: int, db: Session = Depends(get_db), user: UserPublic = Depends(get_current_user)):
    if not db_delete_list(db, list_id, owner_id=user.id):
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
