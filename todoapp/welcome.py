# PURPOSE: starter content for new accounts: a few lists and tasks to explore.

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from . import buckets
from .db_models import ListDB, TaskDB, now_utc

logger = logging.getLogger(__name__)

WELCOME_LISTS = [
    ("Welcome! 👋", "#fb923c"),
    ("Work 💼", "#3b82f6"),
    ("Personal 🏠", "#10b981"),
]

# (title, description, priority, due in days, list index, completed)
WELCOME_TASKS = [
    ("Welcome to TodoApp! 🎉", "This is your first task. You can edit or delete it.", "high", 0, 0, False),
    ("Explore Features", "Try creating new tasks, flagging them and organising them by date.", "medium", 1, 0, False),
    ("Set Up Your First List", "Create a new list for your projects.", "low", 2, 1, False),
    ("Complete Sample Task", 'Mark a task as completed to see it in the "Completed" view.', "medium", 0, 2, True),
]

SAMPLE_PROJECT = ("Sample Project 📋", "#8b5cf6")
SAMPLE_PROJECT_TASKS = [
    ("Plan Project", "Define project goals and scope", "high", 0),
    ("Design Interface", "Create wireframes and mockups for the project", "medium", 3),
    ("Develop Features", "Code the main features of the project", "high", 7),
    ("Test and Debug", "Test and fix bugs before deployment", "medium", 10),
]


def _task(owner_id: int, title: str, description: str, priority: str, due: datetime, list_name: str, now: datetime) -> TaskDB:
    return TaskDB(
        owner_id=owner_id,
        title=title,
        description=description,
        priority=priority,
        due_date=due,
        custom_list=list_name,
        category=buckets.ALL,
        original_category=buckets.ALL,
        created_at=now,
        updated_at=now,
    )


def seed_welcome_data(db: Session, owner_id: int, *, now: datetime | None = None) -> tuple[list[ListDB], list[TaskDB]]:
    """Create the welcome lists and tasks for a freshly confirmed account."""
    now = now or now_utc()
    lists = [
        ListDB(owner_id=owner_id, name=name, color=color, created_at=now)
        for name, color in WELCOME_LISTS
    ]
    tasks = []
    for title, description, priority, days, list_index, completed in WELCOME_TASKS:
        task = _task(owner_id, title, description, priority, now + timedelta(days=days), lists[list_index].name, now)
        if completed:
            buckets.set_completed(task, True)
        tasks.append(task)
    db.add_all(lists + tasks)
    db.commit()
    logger.info("welcome data owner_id=%s lists=%s tasks=%s", owner_id, len(lists), len(tasks))
    return lists, tasks


def create_sample_project(db: Session, owner_id: int, *, now: datetime | None = None) -> ListDB:
    """Add the "Sample Project" list with a handful of dated tasks."""
    now = now or now_utc()
    name, color = SAMPLE_PROJECT
    project = ListDB(owner_id=owner_id, name=name, color=color, created_at=now)
    tasks = [
        _task(owner_id, title, description, priority, now + timedelta(days=days), name, now)
        for title, description, priority, days in SAMPLE_PROJECT_TASKS
    ]
    db.add(project)
    db.add_all(tasks)
    db.commit()
    db.refresh(project)
    logger.info("sample project owner_id=%s tasks=%s", owner_id, len(tasks))
    return project
