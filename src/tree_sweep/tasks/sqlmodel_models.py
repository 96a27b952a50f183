"""SQLModel ORM tables for task metadata and item outcomes."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, Text
from sqlmodel import Field, SQLModel


class SweepTask(SQLModel, table=True):
    __tablename__ = "sweep_tasks"  # type: ignore[bad-override]

    task_id: str = Field(primary_key=True)
    path: str = Field(sa_column=Column(Text, nullable=False))
    processor: str = Field(sa_column=Column(Text, nullable=False))
    directory_first: bool = Field(default=False)
    marker: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    last_status: str | None = Field(default=None)
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))


class SweepItemEvent(SQLModel, table=True):
    __tablename__ = "sweep_item_events"  # type: ignore[bad-override]
    __table_args__ = (Index("ix_sweep_item_events_task_kind", "task_id", "kind"),)

    id: int | None = Field(default=None, primary_key=True)
    task_id: str = Field(
        sa_column=Column(
            ForeignKey("sweep_tasks.task_id", ondelete="CASCADE"),
            nullable=False,
        ),
    )
    kind: str
    name: str = Field(sa_column=Column(Text, nullable=False))
    detail: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
