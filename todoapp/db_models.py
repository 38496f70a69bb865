# PURPOSE: define how users, tasks, lists and one-time codes look in the database.
# All timestamps are stored as naive UTC.

from datetime import UTC, datetime

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base


def now_utc() -> datetime:
    """Return the current UTC time without tzinfo (the storage convention)."""
    return datetime.now(UTC).replace(tzinfo=None)


class TaskDB(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    emoji = Column(String, nullable=False, default="")
    image = Column(String, nullable=False, default="")
    assigned_to = Column(String, nullable=False, default="Danny")
    category = Column(String, nullable=False, default="All")
    original_category = Column(String, nullable=False, default="All")  # restored on un-complete
    custom_list = Column(String, nullable=False, default="")  # List.name, not an FK
    is_completed = Column(Boolean, nullable=False, default=False)
    is_flagged = Column(Boolean, nullable=False, default=False)
    is_deleted = Column(Boolean, nullable=False, default=False)
    due_date = Column(DateTime, nullable=True)
    due_time = Column(String, nullable=False, default="")
    repeat = Column(String, nullable=False, default="none")  # none | daily | weekly | monthly
    priority = Column(String, nullable=False, default="medium")  # low | medium | high
    created_at = Column(DateTime, default=now_utc)
    updated_at = Column(DateTime, default=now_utc, onupdate=now_utc)


class ListDB(Base):
    __tablename__ = "lists"
    __table_args__ = (UniqueConstraint("owner_id", "name", name="ux_lists_owner_name"),)

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    name = Column(String, nullable=False)
    color = Column(String, nullable=False, default="#3B82F6")
    emoji = Column(String, nullable=False, default="📝")
    created_at = Column(DateTime, default=now_utc)


class UserDB(Base):
    __tablename__ = "users"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    username: Mapped[str] = mapped_column(String, unique=True, index=True, nullable=False)
    email: Mapped[str] = mapped_column(String, unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_utc)
    tasks = relationship("TaskDB", backref="owner")
    lists = relationship("ListDB", backref="owner")


class OTPDB(Base):
    __tablename__ = "otps"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String, nullable=False)  # lowercased
    code: Mapped[str] = mapped_column(String(6), nullable=False)
    type: Mapped[str] = mapped_column(String, nullable=False)  # registration | password_reset
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    is_used: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_utc)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=now_utc, onupdate=now_utc)


# Helpful indexes for filtering/sorting
Index("ix_tasks_owner_deleted", TaskDB.owner_id, TaskDB.is_deleted)
Index("ix_tasks_category", TaskDB.category)
Index("ix_tasks_custom_list", TaskDB.custom_list)
Index("ix_tasks_due_date", TaskDB.due_date)
Index("ix_otps_lookup", OTPDB.email, OTPDB.type, OTPDB.code)
Index("ix_otps_expires_at", OTPDB.expires_at)
