"""
SQLAlchemy models for the backlog database.

Schema includes:
- Activity templates with a self-referencing parent pointer (hierarchy)
- Containers: annual / monthly / weekly / daily backlogs
- Container activities: the junction that places an activity in a container
  and carries its per-container order and completion state

Enum-valued columns store the lowercase string values of the enums in
``lifesprint.models``.
"""

from datetime import datetime, date
from typing import Optional
from sqlalchemy import (
    String,
    Text,
    Integer,
    Boolean,
    DateTime,
    Date,
    ForeignKey,
    Index,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


# ==================== ACTIVITIES ====================

class ActivityTemplateDB(Base):
    """Task or goal definition, independent of any time period."""
    __tablename__ = "activity_templates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_id: Mapped[str] = mapped_column(String(100), nullable=False)

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    activity_type: Mapped[str] = mapped_column(String(20), nullable=False, default="task")

    # Hierarchy is addressed by id only; walk it through the repository
    parent_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("activity_templates.id"), nullable=True
    )

    is_recurring: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    recurrence: Mapped[str] = mapped_column(String(20), default="none", nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    archived_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    __table_args__ = (
        Index("idx_activities_owner", "owner_id"),
        Index("idx_activities_owner_type", "owner_id", "activity_type"),
        Index("idx_activities_owner_recurring", "owner_id", "is_recurring"),
        Index("idx_activities_parent", "parent_id"),
        Index("idx_activities_archived", "archived_at"),
    )


# ==================== CONTAINERS ====================

class ContainerDB(Base):
    """Time-bounded backlog of a given period kind."""
    __tablename__ = "containers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_id: Mapped[str] = mapped_column(String(100), nullable=False)
    kind: Mapped[str] = mapped_column(String(20), nullable=False)  # annual, monthly, weekly, daily

    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")  # active, completed, archived
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    archived_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    __table_args__ = (
        Index("idx_containers_owner", "owner_id"),
        Index("idx_containers_owner_kind_status", "owner_id", "kind", "status"),
        Index("idx_containers_owner_period", "owner_id", "start_date", "end_date"),
        # One active container per owner, kind and period
        Index(
            "uq_containers_active_period",
            "owner_id",
            "kind",
            "start_date",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
    )


class ContainerActivityDB(Base):
    """Placement of an activity in a container (many-to-many junction)."""
    __tablename__ = "container_activities"

    container_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("containers.id", ondelete="CASCADE"), primary_key=True
    )
    activity_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("activity_templates.id", ondelete="CASCADE"), primary_key=True
    )

    added_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)  # Completion is per container

    # "order" is reserved in SQL
    order: Mapped[int] = mapped_column("sort_order", Integer, nullable=False)
    is_rolled_over: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    __table_args__ = (
        UniqueConstraint("container_id", "sort_order", name="uq_container_activities_order"),
        Index("idx_container_activities_container", "container_id"),
        Index("idx_container_activities_activity", "activity_id"),
        Index("idx_container_activities_completed", "completed_at"),
    )
