"""Persistent store for sweep task markers and item outcomes."""

from __future__ import annotations

import sqlite3
from datetime import UTC, datetime
from pathlib import Path

from sqlalchemy import delete as sa_delete
from sqlalchemy import event, func
from sqlalchemy import update as sa_update
from sqlmodel import Session, SQLModel, col, create_engine, select

from tree_sweep.engine.models import RunSummary
from tree_sweep.tasks.identity import TaskIdentity
from tree_sweep.tasks.models import ItemKind, SweepTaskView
from tree_sweep.tasks.sqlmodel_models import SweepItemEvent, SweepTask


def utc_now() -> datetime:
    """Current UTC timestamp."""

    return datetime.now(tz=UTC)


class TaskRepository:
    """Task persistence facade backed by SQLModel + SQLite."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        db_url = f"sqlite:///{db_path}"
        self.engine = create_engine(db_url, connect_args={"check_same_thread": False})
        event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)

    def close(self) -> None:
        """Close underlying DB resources."""

        self.engine.dispose()

    def init_schema(self) -> None:
        """Create tables if they do not exist yet."""

        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        SQLModel.metadata.create_all(
            self.engine,
            tables=[SweepTask.__table__, SweepItemEvent.__table__],  # type: ignore[attr-defined]
        )

    def ensure_task(self, identity: TaskIdentity) -> SweepTaskView:
        """Return the task for ``identity``, creating it on first use."""

        task_id = identity.task_id
        with Session(self.engine) as session:
            row = session.get(SweepTask, task_id)
            if row is None:
                now = utc_now()
                row = SweepTask(
                    task_id=task_id,
                    path=identity.path,
                    processor=identity.processor,
                    directory_first=identity.directory_first,
                    marker=None,
                    last_status=None,
                    created_at=now,
                    updated_at=now,
                )
                session.add(row)
                session.commit()
                session.refresh(row)
            return _to_task_view(row)

    def get_task(self, task_id: str) -> SweepTaskView | None:
        with Session(self.engine) as session:
            row = session.get(SweepTask, task_id)
            return _to_task_view(row) if row is not None else None

    def list_tasks(self) -> list[SweepTaskView]:
        with Session(self.engine) as session:
            rows = session.exec(select(SweepTask).order_by(col(SweepTask.updated_at).desc())).all()
            return [_to_task_view(row) for row in rows]

    def save_marker(self, task_id: str, marker: str | None) -> None:
        self._update_task(task_id, marker=marker)

    def record_run(self, task_id: str, summary: RunSummary) -> None:
        """Store the outcome of the latest run."""

        self._update_task(task_id, last_status="completed" if summary.completed else "stopped")

    def record_item(
        self,
        task_id: str,
        *,
        kind: ItemKind,
        name: str,
        detail: str | None = None,
    ) -> None:
        with Session(self.engine) as session:
            session.add(
                SweepItemEvent(
                    task_id=task_id,
                    kind=kind.value,
                    name=name,
                    detail=detail,
                    created_at=utc_now(),
                ),
            )
            session.commit()

    def count_items(self, task_id: str) -> dict[str, int]:
        with Session(self.engine) as session:
            rows = session.exec(
                select(SweepItemEvent.kind, func.count())
                .where(col(SweepItemEvent.task_id) == task_id)
                .group_by(col(SweepItemEvent.kind))
                .order_by(col(SweepItemEvent.kind)),
            ).all()
            return {kind: int(count) for kind, count in rows}

    def begin_refill(self, task_id: str) -> list[str]:
        """Move ignored items to the refill set and return every refill name.

        Rows left over from an interrupted refill are included, so a crashed
        ``--fill`` run loses nothing.
        """

        with Session(self.engine) as session:
            session.exec(  # type: ignore[call-overload]
                sa_update(SweepItemEvent)
                .where(
                    col(SweepItemEvent.task_id) == task_id,
                    col(SweepItemEvent.kind) == ItemKind.IGNORED.value,
                )
                .values(kind=ItemKind.REFILL.value),
            )
            session.commit()
            names = session.exec(
                select(SweepItemEvent.name)
                .where(
                    col(SweepItemEvent.task_id) == task_id,
                    col(SweepItemEvent.kind) == ItemKind.REFILL.value,
                )
                .distinct()
                .order_by(col(SweepItemEvent.name)),
            ).all()
            return [name for name in names if name]

    def finish_refill(self, task_id: str) -> int:
        """Drop the refill set once a refill run completed."""

        with Session(self.engine) as session:
            result = session.exec(  # type: ignore[call-overload]
                sa_delete(SweepItemEvent).where(
                    col(SweepItemEvent.task_id) == task_id,
                    col(SweepItemEvent.kind) == ItemKind.REFILL.value,
                ),
            )
            session.commit()
            return int(result.rowcount or 0)

    def _update_task(self, task_id: str, **values: object) -> None:
        with Session(self.engine) as session:
            result = session.exec(  # type: ignore[call-overload]
                sa_update(SweepTask)
                .where(col(SweepTask.task_id) == task_id)
                .values(updated_at=_to_db_datetime(utc_now()), **values),
            )
            session.commit()
            if not result.rowcount:
                raise ValueError(f"Unknown task_id: {task_id}")


def _enable_sqlite_foreign_keys(dbapi_connection: sqlite3.Connection, _: object) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _to_db_datetime(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


def _to_utc_aware_datetime(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _to_task_view(row: SweepTask) -> SweepTaskView:
    return SweepTaskView(
        task_id=row.task_id,
        path=row.path,
        processor=row.processor,
        directory_first=row.directory_first,
        marker=row.marker,
        last_status=row.last_status,
        created_at=_to_utc_aware_datetime(row.created_at),
        updated_at=_to_utc_aware_datetime(row.updated_at),
    )
