"""
Database abstraction for Postgres and an in-memory test implementation.

Both clients share the public query methods in `_GardenQueries`; they differ
only in the small set of table primitives (`_insert`, `_get`, `_update`,
`_find`, `_delete`).
"""

from __future__ import annotations

import abc
import copy
import time
import uuid
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Iterable, List, Optional, Protocol, Type, TypeVar

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Float,
    Integer,
    String,
    Text,
    UniqueConstraint,
    create_engine,
    delete,
    select,
)
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from shared.types import GrowInstanceStatus, ImportStatus, ProfileStatus


def _new_id() -> str:
    return uuid.uuid4().hex


def _now() -> float:
    return time.time()


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass
class ImportJobRecord:
    job_id: str
    user_id: str
    url: str
    status: ImportStatus = ImportStatus.WAITING
    stage: str = "WAITING"
    progress_percent: float = 0.0
    result: Optional[dict] = None
    locked_at: Optional[float] = None
    created_at: float = field(default_factory=_now)
    updated_at: float = field(default_factory=_now)

    def __post_init__(self):
        self.status = ImportStatus(self.status)


@dataclass
class ImportLogRecord:
    user_id: str
    url: str
    id: str = field(default_factory=_new_id)
    vendor_name: Optional[str] = None
    status_code: int = 0
    identity_key_generated: Optional[str] = None
    error_message: Optional[str] = None
    hero_image_url: Optional[str] = None
    created_at: float = field(default_factory=_now)


@dataclass
class PlantProfileRecord:
    user_id: str
    name: str
    id: str = field(default_factory=_new_id)
    variety_name: Optional[str] = None
    status: str = ProfileStatus.IN_STOCK.value
    sun: Optional[str] = None
    plant_spacing: Optional[str] = None
    days_to_germination: Optional[str] = None
    harvest_days: Optional[int] = None
    sowing_method: Optional[str] = None
    planting_window: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    hero_image_url: Optional[str] = None
    hero_image_path: Optional[str] = None
    created_at: float = field(default_factory=_now)
    updated_at: float = field(default_factory=_now)
    deleted_at: Optional[float] = None


@dataclass
class SeedPacketRecord:
    user_id: str
    plant_profile_id: str
    id: str = field(default_factory=_new_id)
    vendor_name: Optional[str] = None
    purchase_url: Optional[str] = None
    purchase_date: Optional[str] = None
    qty_status: int = 100
    tags: List[str] = field(default_factory=list)
    storage_location: Optional[str] = None
    packet_rating: Optional[int] = None
    is_archived: bool = False
    created_at: float = field(default_factory=_now)
    deleted_at: Optional[float] = None


@dataclass
class GrowInstanceRecord:
    user_id: str
    plant_profile_id: str
    sown_date: str
    id: str = field(default_factory=_new_id)
    seed_packet_id: Optional[str] = None
    expected_harvest_date: Optional[str] = None
    status: str = GrowInstanceStatus.GROWING.value
    sow_method: Optional[str] = None
    location: Optional[str] = None
    ended_at: Optional[float] = None
    end_reason: Optional[str] = None
    created_at: float = field(default_factory=_now)
    deleted_at: Optional[float] = None


@dataclass
class JournalEntryRecord:
    user_id: str
    entry_type: str
    id: str = field(default_factory=_new_id)
    plant_profile_id: Optional[str] = None
    grow_instance_id: Optional[str] = None
    seed_packet_id: Optional[str] = None
    note: Optional[str] = None
    harvest_weight: Optional[float] = None
    harvest_unit: Optional[str] = None
    harvest_quantity: Optional[float] = None
    created_at: float = field(default_factory=_now)
    deleted_at: Optional[float] = None


@dataclass
class TaskRecord:
    user_id: str
    category: str
    title: str
    id: str = field(default_factory=_new_id)
    plant_profile_id: Optional[str] = None
    grow_instance_id: Optional[str] = None
    due_date: Optional[str] = None
    completed_at: Optional[float] = None
    created_at: float = field(default_factory=_now)
    deleted_at: Optional[float] = None


@dataclass
class ShoppingListItemRecord:
    user_id: str
    plant_profile_id: str
    id: str = field(default_factory=_new_id)
    is_purchased: bool = False
    created_at: float = field(default_factory=_now)


R = TypeVar("R")


# ---------------------------------------------------------------------------
# Interface
# ---------------------------------------------------------------------------


class DbClient(Protocol):
    """Interface for database access."""

    def create_import_job(self, user_id: str, url: str) -> ImportJobRecord:
        ...

    def get_job(self, job_id: str) -> Optional[ImportJobRecord]:
        ...

    def claim_job(self, job_id: str) -> Optional[ImportJobRecord]:
        ...

    def claim_next_waiting_job(self) -> Optional[ImportJobRecord]:
        ...

    def update_job_progress(
        self,
        job_id: str,
        *,
        status: Optional[ImportStatus] = None,
        stage: Optional[str] = None,
        progress_percent: Optional[float] = None,
        result: Optional[dict] = None,
    ) -> None:
        ...

    def requeue_stale_locks(self, lock_timeout_seconds: float = 600) -> int:
        ...

    def insert_import_log(self, log: ImportLogRecord) -> None:
        ...

    def list_import_logs(self, user_id: str, limit: int = 500) -> List[ImportLogRecord]:
        ...

    def create_profile(self, profile: PlantProfileRecord) -> PlantProfileRecord:
        ...

    def get_profile(self, user_id: str, profile_id: str) -> Optional[PlantProfileRecord]:
        ...

    def list_profiles(self, user_id: str) -> List[PlantProfileRecord]:
        ...

    def update_profile(self, user_id: str, profile_id: str, **changes) -> Optional[PlantProfileRecord]:
        ...

    def create_packet(self, packet: SeedPacketRecord) -> SeedPacketRecord:
        ...

    def get_packet(self, user_id: str, packet_id: str) -> Optional[SeedPacketRecord]:
        ...

    def list_packets(
        self, user_id: str, profile_id: str, include_archived: bool = False
    ) -> List[SeedPacketRecord]:
        ...

    def update_packet(self, user_id: str, packet_id: str, **changes) -> Optional[SeedPacketRecord]:
        ...

    def create_grow_instance(self, grow: GrowInstanceRecord) -> GrowInstanceRecord:
        ...

    def get_grow_instance(self, user_id: str, grow_id: str) -> Optional[GrowInstanceRecord]:
        ...

    def update_grow_instance(self, user_id: str, grow_id: str, **changes) -> Optional[GrowInstanceRecord]:
        ...

    def create_journal_entry(self, entry: JournalEntryRecord) -> JournalEntryRecord:
        ...

    def list_journal_entries(
        self,
        user_id: str,
        *,
        plant_profile_id: Optional[str] = None,
        grow_instance_id: Optional[str] = None,
        limit: int = 200,
    ) -> List[JournalEntryRecord]:
        ...

    def create_task(self, task: TaskRecord) -> TaskRecord:
        ...

    def get_task(self, user_id: str, task_id: str) -> Optional[TaskRecord]:
        ...

    def update_task(self, user_id: str, task_id: str, **changes) -> Optional[TaskRecord]:
        ...

    def list_tasks(self, user_id: str, include_completed: bool = False) -> List[TaskRecord]:
        ...

    def soft_delete_tasks(
        self,
        user_id: str,
        *,
        plant_profile_ids: Optional[Iterable[str]] = None,
        grow_instance_id: Optional[str] = None,
    ) -> int:
        ...

    def upsert_shopping_item(
        self, user_id: str, plant_profile_id: str, is_purchased: bool = False
    ) -> ShoppingListItemRecord:
        ...

    def list_shopping_items(self, user_id: str) -> List[ShoppingListItemRecord]:
        ...

    def delete_shopping_items(self, user_id: str, plant_profile_ids: Iterable[str]) -> int:
        ...


# ---------------------------------------------------------------------------
# Shared query layer
# ---------------------------------------------------------------------------


class _GardenQueries(abc.ABC):
    """Public query methods written against the table primitives."""

    @abc.abstractmethod
    def _insert(self, record: R) -> R:
        raise NotImplementedError

    @abc.abstractmethod
    def _get(self, record_cls: Type[R], record_id: str) -> Optional[R]:
        raise NotImplementedError

    @abc.abstractmethod
    def _update(self, record_cls: Type[R], record_id: str, changes: Dict[str, Any]) -> Optional[R]:
        raise NotImplementedError

    @abc.abstractmethod
    def _find(
        self,
        record_cls: Type[R],
        where: Dict[str, Any],
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[R]:
        """Equality filters; list/tuple/set values mean IN."""
        raise NotImplementedError

    @abc.abstractmethod
    def _delete(self, record_cls: Type[R], record_ids: Iterable[str]) -> int:
        raise NotImplementedError

    def _owned(self, record_cls: Type[R], user_id: str, record_id: str) -> Optional[R]:
        record = self._get(record_cls, record_id)
        if record is None or record.user_id != user_id:
            return None
        if getattr(record, "deleted_at", None) is not None:
            return None
        return record

    def _update_owned(
        self, record_cls: Type[R], user_id: str, record_id: str, changes: Dict[str, Any]
    ) -> Optional[R]:
        if self._owned(record_cls, user_id, record_id) is None:
            return None
        return self._update(record_cls, record_id, changes)

    # Import logs

    def insert_import_log(self, log: ImportLogRecord) -> None:
        self._insert(log)

    def list_import_logs(self, user_id: str, limit: int = 500) -> List[ImportLogRecord]:
        return self._find(
            ImportLogRecord,
            {"user_id": user_id},
            order_by="created_at",
            descending=True,
            limit=limit,
        )

    # Profiles

    def create_profile(self, profile: PlantProfileRecord) -> PlantProfileRecord:
        return self._insert(profile)

    def get_profile(self, user_id: str, profile_id: str) -> Optional[PlantProfileRecord]:
        return self._owned(PlantProfileRecord, user_id, profile_id)

    def list_profiles(self, user_id: str) -> List[PlantProfileRecord]:
        return self._find(
            PlantProfileRecord,
            {"user_id": user_id, "deleted_at": None},
            order_by="created_at",
        )

    def update_profile(self, user_id: str, profile_id: str, **changes) -> Optional[PlantProfileRecord]:
        changes.setdefault("updated_at", _now())
        return self._update_owned(PlantProfileRecord, user_id, profile_id, changes)

    # Packets

    def create_packet(self, packet: SeedPacketRecord) -> SeedPacketRecord:
        return self._insert(packet)

    def get_packet(self, user_id: str, packet_id: str) -> Optional[SeedPacketRecord]:
        return self._owned(SeedPacketRecord, user_id, packet_id)

    def list_packets(
        self, user_id: str, profile_id: str, include_archived: bool = False
    ) -> List[SeedPacketRecord]:
        where: Dict[str, Any] = {
            "user_id": user_id,
            "plant_profile_id": profile_id,
            "deleted_at": None,
        }
        if not include_archived:
            where["is_archived"] = False
        return self._find(SeedPacketRecord, where, order_by="created_at")

    def update_packet(self, user_id: str, packet_id: str, **changes) -> Optional[SeedPacketRecord]:
        return self._update_owned(SeedPacketRecord, user_id, packet_id, changes)

    # Grow instances

    def create_grow_instance(self, grow: GrowInstanceRecord) -> GrowInstanceRecord:
        return self._insert(grow)

    def get_grow_instance(self, user_id: str, grow_id: str) -> Optional[GrowInstanceRecord]:
        return self._owned(GrowInstanceRecord, user_id, grow_id)

    def update_grow_instance(self, user_id: str, grow_id: str, **changes) -> Optional[GrowInstanceRecord]:
        return self._update_owned(GrowInstanceRecord, user_id, grow_id, changes)

    # Journal

    def create_journal_entry(self, entry: JournalEntryRecord) -> JournalEntryRecord:
        return self._insert(entry)

    def list_journal_entries(
        self,
        user_id: str,
        *,
        plant_profile_id: Optional[str] = None,
        grow_instance_id: Optional[str] = None,
        limit: int = 200,
    ) -> List[JournalEntryRecord]:
        where: Dict[str, Any] = {"user_id": user_id, "deleted_at": None}
        if plant_profile_id:
            where["plant_profile_id"] = plant_profile_id
        if grow_instance_id:
            where["grow_instance_id"] = grow_instance_id
        return self._find(
            JournalEntryRecord, where, order_by="created_at", descending=True, limit=limit
        )

    # Tasks

    def create_task(self, task: TaskRecord) -> TaskRecord:
        return self._insert(task)

    def get_task(self, user_id: str, task_id: str) -> Optional[TaskRecord]:
        return self._owned(TaskRecord, user_id, task_id)

    def update_task(self, user_id: str, task_id: str, **changes) -> Optional[TaskRecord]:
        return self._update_owned(TaskRecord, user_id, task_id, changes)

    def list_tasks(self, user_id: str, include_completed: bool = False) -> List[TaskRecord]:
        tasks = self._find(
            TaskRecord, {"user_id": user_id, "deleted_at": None}, order_by="created_at"
        )
        if not include_completed:
            tasks = [t for t in tasks if t.completed_at is None]
        return sorted(tasks, key=lambda t: (t.due_date is None, t.due_date or ""))

    def soft_delete_tasks(
        self,
        user_id: str,
        *,
        plant_profile_ids: Optional[Iterable[str]] = None,
        grow_instance_id: Optional[str] = None,
    ) -> int:
        where: Dict[str, Any] = {"user_id": user_id, "deleted_at": None}
        if plant_profile_ids is not None:
            where["plant_profile_id"] = list(plant_profile_ids)
        if grow_instance_id is not None:
            where["grow_instance_id"] = grow_instance_id
        now = _now()
        tasks = self._find(TaskRecord, where)
        for task in tasks:
            self._update(TaskRecord, task.id, {"deleted_at": now})
        return len(tasks)

    # Shopping list

    def upsert_shopping_item(
        self, user_id: str, plant_profile_id: str, is_purchased: bool = False
    ) -> ShoppingListItemRecord:
        existing = self._find(
            ShoppingListItemRecord,
            {"user_id": user_id, "plant_profile_id": plant_profile_id},
            limit=1,
        )
        if existing:
            return self._update(
                ShoppingListItemRecord, existing[0].id, {"is_purchased": is_purchased}
            )
        return self._insert(
            ShoppingListItemRecord(
                user_id=user_id,
                plant_profile_id=plant_profile_id,
                is_purchased=is_purchased,
            )
        )

    def list_shopping_items(self, user_id: str) -> List[ShoppingListItemRecord]:
        return self._find(ShoppingListItemRecord, {"user_id": user_id}, order_by="created_at")

    def delete_shopping_items(self, user_id: str, plant_profile_ids: Iterable[str]) -> int:
        ids = list(plant_profile_ids)
        if not ids:
            return 0
        rows = self._find(
            ShoppingListItemRecord, {"user_id": user_id, "plant_profile_id": ids}
        )
        return self._delete(ShoppingListItemRecord, [r.id for r in rows])


def _matches(record: Any, where: Dict[str, Any]) -> bool:
    for key, expected in where.items():
        value = getattr(record, key)
        if isinstance(expected, (list, tuple, set)):
            if value not in expected:
                return False
        elif value != expected:
            return False
    return True


def _record_key(record: Any) -> str:
    return record.job_id if isinstance(record, ImportJobRecord) else record.id


class InMemoryDbClient(_GardenQueries):
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.tables: Dict[type, Dict[str, Any]] = {}
        self.locked: set[str] = set()
        self.fail_on: set[str] = set()

    @property
    def jobs(self) -> Dict[str, ImportJobRecord]:
        return self.tables.setdefault(ImportJobRecord, {})

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.tables.clear()
        self.locked.clear()
        self.fail_on.clear()

    def _check(self, operation: str) -> None:
        # Tests mark operations as failing to exercise backend error paths.
        if operation in self.fail_on:
            raise RuntimeError(f"{operation} failed")

    def _insert(self, record: R) -> R:
        self._check(f"insert:{type(record).__name__}")
        stored = copy.deepcopy(record)
        self.tables.setdefault(type(record), {})[_record_key(stored)] = stored
        return copy.deepcopy(stored)

    def _get(self, record_cls: Type[R], record_id: str) -> Optional[R]:
        record = self.tables.get(record_cls, {}).get(record_id)
        return copy.deepcopy(record) if record is not None else None

    def _update(self, record_cls: Type[R], record_id: str, changes: Dict[str, Any]) -> Optional[R]:
        record = self.tables.get(record_cls, {}).get(record_id)
        if record is None:
            return None
        for key, value in changes.items():
            setattr(record, key, value)
        return copy.deepcopy(record)

    def _find(
        self,
        record_cls: Type[R],
        where: Dict[str, Any],
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[R]:
        self._check(f"find:{record_cls.__name__}")
        rows = [r for r in self.tables.get(record_cls, {}).values() if _matches(r, where)]
        if order_by:
            # Ties keep insertion order, newest first when descending.
            source = list(reversed(rows)) if descending else rows
            rows = sorted(source, key=lambda r: getattr(r, order_by), reverse=descending)
        if limit is not None:
            rows = rows[:limit]
        return [copy.deepcopy(r) for r in rows]

    def _delete(self, record_cls: Type[R], record_ids: Iterable[str]) -> int:
        table = self.tables.get(record_cls, {})
        removed = 0
        for record_id in record_ids:
            if table.pop(record_id, None) is not None:
                removed += 1
        return removed

    # Import jobs

    def create_import_job(self, user_id: str, url: str) -> ImportJobRecord:
        return self._insert(ImportJobRecord(job_id=_new_id(), user_id=user_id, url=url))

    def get_job(self, job_id: str) -> Optional[ImportJobRecord]:
        return self._get(ImportJobRecord, job_id)

    def claim_job(self, job_id: str) -> Optional[ImportJobRecord]:
        job = self.jobs.get(job_id)
        if not job or job.status != ImportStatus.WAITING or job_id in self.locked:
            return None
        job.status = ImportStatus.SCRAPING
        job.stage = "CLAIMED"
        job.locked_at = _now()
        job.updated_at = job.locked_at
        self.locked.add(job_id)
        return copy.deepcopy(job)

    def claim_next_waiting_job(self) -> Optional[ImportJobRecord]:
        waiting = sorted(
            (j for j in self.jobs.values() if j.status == ImportStatus.WAITING),
            key=lambda j: j.created_at,
        )
        for job in waiting:
            claimed = self.claim_job(job.job_id)
            if claimed:
                return claimed
        return None

    def update_job_progress(
        self,
        job_id: str,
        *,
        status: Optional[ImportStatus] = None,
        stage: Optional[str] = None,
        progress_percent: Optional[float] = None,
        result: Optional[dict] = None,
    ) -> None:
        job = self.jobs.get(job_id)
        if not job:
            return
        if status:
            job.status = status
        if stage:
            job.stage = stage
        if progress_percent is not None:
            job.progress_percent = progress_percent
        if result is not None:
            job.result = copy.deepcopy(result)
        job.updated_at = _now()

    def requeue_stale_locks(self, lock_timeout_seconds: float = 600) -> int:
        now = _now()
        requeued = 0
        for job in self.jobs.values():
            if (
                job.status == ImportStatus.SCRAPING
                and job.stage == "CLAIMED"
                and job.locked_at
                and now - job.locked_at > lock_timeout_seconds
            ):
                job.status = ImportStatus.WAITING
                job.stage = "WAITING"
                job.progress_percent = 0.0
                job.locked_at = None
                job.updated_at = now
                self.locked.discard(job.job_id)
                requeued += 1
        return requeued


class PostgresDbClient(_GardenQueries):
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for PostgresDbClient")
        engine_kwargs: Dict[str, Any] = {"future": True, "pool_pre_ping": True}
        if not database_url.startswith("sqlite"):
            engine_kwargs["pool_recycle"] = 1800
        self.engine = create_engine(database_url, **engine_kwargs)
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    @staticmethod
    def _to_record(record_cls: Type[R], row: Any) -> R:
        return record_cls(**{f.name: copy.deepcopy(getattr(row, f.name)) for f in fields(record_cls)})

    @staticmethod
    def _to_row(record: Any) -> Any:
        row_cls = ROW_BY_RECORD[type(record)]
        values = {f.name: copy.deepcopy(getattr(record, f.name)) for f in fields(record)}
        if isinstance(record, ImportJobRecord):
            values["status"] = record.status.value
        return row_cls(**values)

    def _insert(self, record: R) -> R:
        with self.Session() as session:
            row = self._to_row(record)
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_record(type(record), row)

    def _get(self, record_cls: Type[R], record_id: str) -> Optional[R]:
        with self.Session() as session:
            row = session.get(ROW_BY_RECORD[record_cls], record_id)
            return self._to_record(record_cls, row) if row else None

    def _update(self, record_cls: Type[R], record_id: str, changes: Dict[str, Any]) -> Optional[R]:
        with self.Session() as session:
            row = session.get(ROW_BY_RECORD[record_cls], record_id)
            if not row:
                return None
            for key, value in changes.items():
                setattr(row, key, copy.deepcopy(value))
            session.commit()
            session.refresh(row)
            return self._to_record(record_cls, row)

    def _find(
        self,
        record_cls: Type[R],
        where: Dict[str, Any],
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[R]:
        row_cls = ROW_BY_RECORD[record_cls]
        stmt = select(row_cls)
        for key, expected in where.items():
            column = getattr(row_cls, key)
            if isinstance(expected, (list, tuple, set)):
                stmt = stmt.where(column.in_(list(expected)))
            elif expected is None:
                stmt = stmt.where(column.is_(None))
            else:
                stmt = stmt.where(column == expected)
        if order_by:
            column = getattr(row_cls, order_by)
            stmt = stmt.order_by(column.desc() if descending else column.asc())
        if limit is not None:
            stmt = stmt.limit(limit)
        with self.Session() as session:
            rows = session.execute(stmt).scalars().all()
            return [self._to_record(record_cls, row) for row in rows]

    def _delete(self, record_cls: Type[R], record_ids: Iterable[str]) -> int:
        ids = list(record_ids)
        if not ids:
            return 0
        row_cls = ROW_BY_RECORD[record_cls]
        with self.Session() as session:
            result = session.execute(delete(row_cls).where(row_cls.id.in_(ids)))
            session.commit()
            return result.rowcount or 0

    # Shopping list

    def upsert_shopping_item(
        self, user_id: str, plant_profile_id: str, is_purchased: bool = False
    ) -> ShoppingListItemRecord:
        """Single INSERT ... ON CONFLICT so concurrent adds keep one row per profile."""
        insert = _UPSERT_INSERTS.get(self.engine.dialect.name)
        if insert is None:
            return super().upsert_shopping_item(user_id, plant_profile_id, is_purchased)
        record = ShoppingListItemRecord(
            user_id=user_id, plant_profile_id=plant_profile_id, is_purchased=is_purchased
        )
        stmt = insert(ShoppingListItemRow).values(
            **{f.name: getattr(record, f.name) for f in fields(record)}
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "plant_profile_id"],
            set_={"is_purchased": stmt.excluded.is_purchased},
        )
        with self.Session() as session:
            session.execute(stmt)
            session.commit()
            row = session.execute(
                select(ShoppingListItemRow).where(
                    ShoppingListItemRow.user_id == user_id,
                    ShoppingListItemRow.plant_profile_id == plant_profile_id,
                )
            ).scalar_one()
            return self._to_record(ShoppingListItemRecord, row)

    # Import jobs

    def create_import_job(self, user_id: str, url: str) -> ImportJobRecord:
        return self._insert(ImportJobRecord(job_id=_new_id(), user_id=user_id, url=url))

    def get_job(self, job_id: str) -> Optional[ImportJobRecord]:
        return self._get(ImportJobRecord, job_id)

    def _claim(self, session: Session, job: "ImportJobRow") -> ImportJobRecord:
        now = _now()
        job.status = ImportStatus.SCRAPING.value
        job.stage = "CLAIMED"
        job.locked_at = now
        job.updated_at = now
        session.commit()
        session.refresh(job)
        return self._to_record(ImportJobRecord, job)

    def claim_job(self, job_id: str) -> Optional[ImportJobRecord]:
        with self.Session() as session:
            stmt = (
                select(ImportJobRow)
                .where(
                    ImportJobRow.job_id == job_id,
                    ImportJobRow.status == ImportStatus.WAITING.value,
                )
                .with_for_update(skip_locked=True)
            )
            job = session.execute(stmt).scalar_one_or_none()
            if not job:
                return None
            return self._claim(session, job)

    def claim_next_waiting_job(self) -> Optional[ImportJobRecord]:
        with self.Session() as session:
            stmt = (
                select(ImportJobRow)
                .where(ImportJobRow.status == ImportStatus.WAITING.value)
                .order_by(ImportJobRow.created_at.asc())
                .limit(1)
                .with_for_update(skip_locked=True)
            )
            job = session.execute(stmt).scalar_one_or_none()
            if not job:
                return None
            return self._claim(session, job)

    def requeue_stale_locks(self, lock_timeout_seconds: float = 600) -> int:
        cutoff = _now() - lock_timeout_seconds
        with self.Session() as session:
            updated = (
                session.query(ImportJobRow)
                .filter(
                    ImportJobRow.status == ImportStatus.SCRAPING.value,
                    ImportJobRow.stage == "CLAIMED",
                    ImportJobRow.locked_at != None,
                    ImportJobRow.locked_at < cutoff,
                )
                .update(
                    {
                        ImportJobRow.status: ImportStatus.WAITING.value,
                        ImportJobRow.stage: "WAITING",
                        ImportJobRow.progress_percent: 0.0,
                        ImportJobRow.locked_at: None,
                        ImportJobRow.updated_at: _now(),
                    },
                    synchronize_session=False,
                )
            )
            session.commit()
            return updated or 0

    def update_job_progress(
        self,
        job_id: str,
        *,
        status: Optional[ImportStatus] = None,
        stage: Optional[str] = None,
        progress_percent: Optional[float] = None,
        result: Optional[dict] = None,
    ) -> None:
        with self.Session() as session:
            job = session.get(ImportJobRow, job_id)
            if not job:
                return
            if status:
                job.status = status.value
            if stage:
                job.stage = stage
            if progress_percent is not None:
                job.progress_percent = progress_percent
            if result is not None:
                job.result = result
            job.updated_at = _now()
            session.commit()


Base = declarative_base()


class ImportJobRow(Base):
    __tablename__ = "import_jobs"

    job_id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    url = Column(Text, nullable=False)
    status = Column(String, nullable=False, index=True)
    stage = Column(String, nullable=False, default="WAITING")
    progress_percent = Column(Float, nullable=False, default=0.0)
    result = Column(JSON, nullable=True)
    locked_at = Column(Float, nullable=True)
    created_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)


class ImportLogRow(Base):
    __tablename__ = "seed_import_logs"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    url = Column(Text, nullable=False)
    vendor_name = Column(String, nullable=True)
    status_code = Column(Integer, nullable=False, default=0)
    identity_key_generated = Column(String, nullable=True)
    error_message = Column(Text, nullable=True)
    hero_image_url = Column(Text, nullable=True)
    created_at = Column(Float, nullable=False, index=True)


class PlantProfileRow(Base):
    __tablename__ = "plant_profiles"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    variety_name = Column(String, nullable=True)
    status = Column(String, nullable=False, default=ProfileStatus.IN_STOCK.value)
    sun = Column(String, nullable=True)
    plant_spacing = Column(String, nullable=True)
    days_to_germination = Column(String, nullable=True)
    harvest_days = Column(Integer, nullable=True)
    sowing_method = Column(String, nullable=True)
    planting_window = Column(String, nullable=True)
    tags = Column(JSON, nullable=False, default=list)
    hero_image_url = Column(Text, nullable=True)
    hero_image_path = Column(Text, nullable=True)
    created_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)
    deleted_at = Column(Float, nullable=True)


class SeedPacketRow(Base):
    __tablename__ = "seed_packets"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    plant_profile_id = Column(String, nullable=False, index=True)
    vendor_name = Column(String, nullable=True)
    purchase_url = Column(Text, nullable=True)
    purchase_date = Column(String, nullable=True)
    qty_status = Column(Integer, nullable=False, default=100)
    tags = Column(JSON, nullable=False, default=list)
    storage_location = Column(String, nullable=True)
    packet_rating = Column(Integer, nullable=True)
    is_archived = Column(Boolean, nullable=False, default=False)
    created_at = Column(Float, nullable=False)
    deleted_at = Column(Float, nullable=True)


class GrowInstanceRow(Base):
    __tablename__ = "grow_instances"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    plant_profile_id = Column(String, nullable=False, index=True)
    seed_packet_id = Column(String, nullable=True)
    sown_date = Column(String, nullable=False)
    expected_harvest_date = Column(String, nullable=True)
    status = Column(String, nullable=False)
    sow_method = Column(String, nullable=True)
    location = Column(String, nullable=True)
    ended_at = Column(Float, nullable=True)
    end_reason = Column(String, nullable=True)
    created_at = Column(Float, nullable=False)
    deleted_at = Column(Float, nullable=True)


class JournalEntryRow(Base):
    __tablename__ = "journal_entries"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    plant_profile_id = Column(String, nullable=True, index=True)
    grow_instance_id = Column(String, nullable=True, index=True)
    seed_packet_id = Column(String, nullable=True)
    note = Column(Text, nullable=True)
    entry_type = Column(String, nullable=False)
    harvest_weight = Column(Float, nullable=True)
    harvest_unit = Column(String, nullable=True)
    harvest_quantity = Column(Float, nullable=True)
    created_at = Column(Float, nullable=False)
    deleted_at = Column(Float, nullable=True)


class TaskRow(Base):
    __tablename__ = "tasks"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    plant_profile_id = Column(String, nullable=True, index=True)
    grow_instance_id = Column(String, nullable=True, index=True)
    category = Column(String, nullable=False)
    title = Column(String, nullable=False)
    due_date = Column(String, nullable=True)
    completed_at = Column(Float, nullable=True)
    created_at = Column(Float, nullable=False)
    deleted_at = Column(Float, nullable=True)


class ShoppingListItemRow(Base):
    __tablename__ = "shopping_list"
    __table_args__ = (UniqueConstraint("user_id", "plant_profile_id"),)

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    plant_profile_id = Column(String, nullable=False)
    is_purchased = Column(Boolean, nullable=False, default=False)
    created_at = Column(Float, nullable=False)


ROW_BY_RECORD: Dict[type, Any] = {
    ImportJobRecord: ImportJobRow,
    ImportLogRecord: ImportLogRow,
    PlantProfileRecord: PlantProfileRow,
    SeedPacketRecord: SeedPacketRow,
    GrowInstanceRecord: GrowInstanceRow,
    JournalEntryRecord: JournalEntryRow,
    TaskRecord: TaskRow,
    ShoppingListItemRecord: ShoppingListItemRow,
}

_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}
