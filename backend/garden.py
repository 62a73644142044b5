"""
Garden workflows: planting, task completion, harvests and profile cascades.

Each function takes the DB client and the caller's user id and performs the
multi-table writes for one user action. Missing records raise the
`LookupError` subclasses below; routes map them to 404.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from backend.db import (
    DbClient,
    GrowInstanceRecord,
    JournalEntryRecord,
    PlantProfileRecord,
    SeedPacketRecord,
    TaskRecord,
)
from import_pipeline.identity import parse_variety_with_modifiers
from import_pipeline.vendors import to_canonical_display
from shared.inventory import (
    PacketUpdate,
    consume_selected_packets,
    decrement_packet,
    draw_down_fifo,
    has_remaining_stock,
)
from shared.profiles import display_name, find_existing_profile_by_canonical
from shared.schedule import (
    apply_schedule_to_profile,
    expected_harvest_date,
    suggests_greenhouse,
)
from shared.string_utils import to_title_case
from shared.types import (
    GrowInstanceStatus,
    JournalEntryType,
    ProfileStatus,
    SowingMethod,
    TaskCategory,
    SOW_TASK_CATEGORIES,
)

logger = logging.getLogger(__name__)

END_REASON_PLANT_DIED = "plant_died"


class ProfileNotFound(LookupError):
    pass


class TaskNotFound(LookupError):
    pass


class GrowInstanceNotFound(LookupError):
    pass


class PacketNotFound(LookupError):
    pass


@dataclass
class PlantRequest:
    profile_id: str
    selected_packet_ids: Optional[List[str]] = None
    use_percent_by_packet_id: Dict[str, float] = field(default_factory=dict)
    # None picks greenhouse or direct sow from the profile's sowing method.
    sowing_method: Optional[str] = None


@dataclass
class PlantBatchResult:
    grow_instance_ids: List[str] = field(default_factory=list)
    skipped_profile_ids: List[str] = field(default_factory=list)
    out_of_stock_profile_ids: List[str] = field(default_factory=list)


@dataclass
class NewPacket:
    name: str
    variety: Optional[str] = None
    vendor_name: Optional[str] = None
    purchase_url: Optional[str] = None
    purchase_date: Optional[str] = None
    qty_status: int = 100
    tags: List[str] = field(default_factory=list)
    storage_location: Optional[str] = None
    harvest_days: Optional[int] = None
    hero_image_url: Optional[str] = None


def _apply_packet_updates(db: DbClient, user_id: str, updates: Iterable[PacketUpdate]) -> None:
    now = time.time()
    for update in updates:
        changes: Dict[str, object] = {"qty_status": update.qty_status}
        if update.is_archived:
            changes.update(is_archived=True, deleted_at=now)
        db.update_packet(user_id, update.packet_id, **changes)


def _check_profile_stock(db: DbClient, user_id: str, profile_id: str) -> bool:
    """Marks the profile out of stock and lists it for purchase when no packet is left."""
    if has_remaining_stock(db.list_packets(user_id, profile_id)):
        return True
    db.update_profile(user_id, profile_id, status=ProfileStatus.OUT_OF_STOCK.value)
    db.upsert_shopping_item(user_id, profile_id, is_purchased=False)
    logger.info("Profile %s is out of stock; added to shopping list", profile_id)
    return False


def _default_sowing_method(profile: PlantProfileRecord) -> str:
    if suggests_greenhouse(profile.sowing_method):
        return SowingMethod.GREENHOUSE.value
    return SowingMethod.DIRECT_SOW.value


def _planting_note(sowing_method: str, user_note: Optional[str]) -> str:
    label = "Greenhouse" if sowing_method == SowingMethod.GREENHOUSE else "Direct Sow"
    parts = [f"Planted via {label}.", (user_note or "").strip()]
    return " ".join(p for p in parts if p)


def _create_harvest_task(
    db: DbClient,
    user_id: str,
    profile: PlantProfileRecord,
    grow_id: str,
    harvest_date: Optional[date],
) -> Optional[TaskRecord]:
    if harvest_date is None:
        return None
    return db.create_task(
        TaskRecord(
            user_id=user_id,
            plant_profile_id=profile.id,
            grow_instance_id=grow_id,
            category=TaskCategory.HARVEST.value,
            title=f"Harvest {display_name(profile.name, profile.variety_name)}",
            due_date=harvest_date.isoformat(),
        )
    )


def plant_batch(
    db: DbClient,
    user_id: str,
    requests: Sequence[PlantRequest],
    plant_date: date,
    *,
    location: Optional[str] = None,
    note: Optional[str] = None,
) -> PlantBatchResult:
    """
    Plants several profiles at once.

    Packets are consumed per request; a profile with nothing consumed is
    skipped. All profiles are resolved before anything is written.
    """
    profiles: List[Tuple[PlantRequest, PlantProfileRecord]] = []
    for request in requests:
        profile = db.get_profile(user_id, request.profile_id)
        if profile is None:
            raise ProfileNotFound(request.profile_id)
        profiles.append((request, profile))

    result = PlantBatchResult()
    for request, profile in profiles:
        packets = db.list_packets(user_id, profile.id)
        selected = request.selected_packet_ids
        if selected is None:
            selected = [packets[0].id] if len(packets) == 1 else []
        use_percent = {pid: request.use_percent_by_packet_id.get(pid, 100) for pid in selected}

        updates, total_used = consume_selected_packets(packets, selected, use_percent)
        if total_used <= 0:
            result.skipped_profile_ids.append(profile.id)
            continue
        _apply_packet_updates(db, user_id, updates)

        harvest_date = expected_harvest_date(plant_date, profile.harvest_days)
        method = request.sowing_method or _default_sowing_method(profile)
        grow = db.create_grow_instance(
            GrowInstanceRecord(
                user_id=user_id,
                plant_profile_id=profile.id,
                seed_packet_id=updates[0].packet_id,
                sown_date=plant_date.isoformat(),
                expected_harvest_date=harvest_date.isoformat() if harvest_date else None,
                status=GrowInstanceStatus.GROWING.value,
                sow_method=method,
                location=(location or "").strip() or None,
            )
        )
        db.create_journal_entry(
            JournalEntryRecord(
                user_id=user_id,
                plant_profile_id=profile.id,
                grow_instance_id=grow.id,
                note=_planting_note(method, note),
                entry_type=JournalEntryType.PLANTING.value,
            )
        )
        db.create_task(
            TaskRecord(
                user_id=user_id,
                plant_profile_id=profile.id,
                grow_instance_id=grow.id,
                category=TaskCategory.SOW.value,
                title=f"Sow {display_name(profile.name, profile.variety_name)}",
                due_date=plant_date.isoformat(),
                completed_at=time.time(),
            )
        )
        _create_harvest_task(db, user_id, profile, grow.id, harvest_date)
        if not _check_profile_stock(db, user_id, profile.id):
            result.out_of_stock_profile_ids.append(profile.id)
        result.grow_instance_ids.append(grow.id)
    return result


def complete_task(
    db: DbClient,
    user_id: str,
    task_id: str,
    today: date,
    *,
    packet_usage: Optional[Sequence[Tuple[str, float]]] = None,
    default_use_percent: float = 50,
) -> TaskRecord:
    """
    Marks a task done.

    Completing a sow or start-seed task for a profile that has not been
    planted yet also draws down packets, creates the grow instance, logs a
    journal entry and schedules the harvest task.
    """
    task = db.get_task(user_id, task_id)
    if task is None:
        raise TaskNotFound(task_id)
    if task.completed_at is not None:
        return task

    profile = None
    if (
        task.category in (TaskCategory.SOW, TaskCategory.START_SEED)
        and task.plant_profile_id
        and not task.grow_instance_id
    ):
        profile = db.get_profile(user_id, task.plant_profile_id)

    updates: List[PacketUpdate] = []
    if profile is not None:
        packets = db.list_packets(user_id, profile.id)
        if packet_usage:
            by_id = {p.id: p for p in packets}
            for packet_id, percent in packet_usage:
                packet = by_id.get(packet_id)
                if packet is None:
                    raise PacketNotFound(packet_id)
                new_qty = decrement_packet(packet.qty_status, percent)
                updates.append(PacketUpdate(packet_id, new_qty, is_archived=new_qty <= 0))
        else:
            updates = draw_down_fifo(packets, default_use_percent)

    changes: Dict[str, object] = {"completed_at": time.time()}
    if task.category in SOW_TASK_CATEGORIES:
        changes["due_date"] = today.isoformat()
    if profile is None:
        return db.update_task(user_id, task_id, **changes)

    # The task is marked done last so a failed write leaves it retryable.
    primary_packet_id = updates[0].packet_id if updates else None
    harvest_date = expected_harvest_date(today, profile.harvest_days)
    grow = db.create_grow_instance(
        GrowInstanceRecord(
            user_id=user_id,
            plant_profile_id=profile.id,
            seed_packet_id=primary_packet_id,
            sown_date=today.isoformat(),
            expected_harvest_date=harvest_date.isoformat() if harvest_date else None,
            status=GrowInstanceStatus.GROWING.value,
        )
    )
    db.create_journal_entry(
        JournalEntryRecord(
            user_id=user_id,
            plant_profile_id=profile.id,
            grow_instance_id=grow.id,
            seed_packet_id=primary_packet_id,
            note=f"Sowed {display_name(profile.name, profile.variety_name)}",
            entry_type=JournalEntryType.PLANTING.value,
        )
    )
    _apply_packet_updates(db, user_id, updates)
    _check_profile_stock(db, user_id, profile.id)
    _create_harvest_task(db, user_id, profile, grow.id, harvest_date)
    changes["grow_instance_id"] = grow.id
    return db.update_task(user_id, task_id, **changes)


def log_harvest(
    db: DbClient,
    user_id: str,
    grow_id: str,
    *,
    note: Optional[str] = None,
    weight: Optional[float] = None,
    unit: Optional[str] = None,
    quantity: Optional[float] = None,
) -> JournalEntryRecord:
    grow = db.get_grow_instance(user_id, grow_id)
    if grow is None:
        raise GrowInstanceNotFound(grow_id)
    text = (note or "").strip()
    if not text:
        profile = db.get_profile(user_id, grow.plant_profile_id)
        label = display_name(profile.name, profile.variety_name) if profile else "plant"
        text = f"Harvested {label}"
    return db.create_journal_entry(
        JournalEntryRecord(
            user_id=user_id,
            plant_profile_id=grow.plant_profile_id,
            grow_instance_id=grow.id,
            seed_packet_id=grow.seed_packet_id,
            note=text,
            entry_type=JournalEntryType.HARVEST.value,
            harvest_weight=weight,
            harvest_unit=(unit or "").strip() or None,
            harvest_quantity=quantity,
        )
    )


def end_grow_instance(
    db: DbClient,
    user_id: str,
    grow_id: str,
    reason: str,
    note: Optional[str] = None,
) -> GrowInstanceRecord:
    """Ends a planting as dead or archived and clears its calendar tasks."""
    grow = db.get_grow_instance(user_id, grow_id)
    if grow is None:
        raise GrowInstanceNotFound(grow_id)
    died = reason == END_REASON_PLANT_DIED
    status = GrowInstanceStatus.DEAD if died else GrowInstanceStatus.ARCHIVED
    grow = db.update_grow_instance(
        user_id,
        grow_id,
        status=status.value,
        ended_at=time.time(),
        end_reason=reason,
    )
    text = (note or "").strip()
    if text or died:
        db.create_journal_entry(
            JournalEntryRecord(
                user_id=user_id,
                plant_profile_id=grow.plant_profile_id,
                grow_instance_id=grow.id,
                note=text or ("Plant died" if died else "Batch ended"),
                entry_type=(JournalEntryType.DEATH if died else JournalEntryType.NOTE).value,
            )
        )
    removed = db.soft_delete_tasks(user_id, grow_instance_id=grow.id)
    logger.info("Ended grow instance %s (%s); removed %d tasks", grow.id, reason, removed)
    return grow


def delete_profiles(db: DbClient, user_id: str, profile_ids: Iterable[str]) -> List[str]:
    """Soft-deletes profiles, soft-deletes their tasks, drops their shopping rows."""
    now = time.time()
    deleted: List[str] = []
    for profile_id in dict.fromkeys(profile_ids):
        if db.update_profile(user_id, profile_id, deleted_at=now) is not None:
            deleted.append(profile_id)
    if deleted:
        db.soft_delete_tasks(user_id, plant_profile_ids=deleted)
        db.delete_shopping_items(user_id, deleted)
    return deleted


def create_profile(
    db: DbClient,
    user_id: str,
    name: str,
    variety: Optional[str] = None,
    *,
    harvest_days: Optional[int] = None,
    tags: Sequence[str] = (),
    hero_image_url: Optional[str] = None,
) -> PlantProfileRecord:
    """New profile with modifiers split into tags and zone schedule defaults."""
    plant = to_title_case((name or "").strip()) or "Unknown"
    core, modifier_tags = parse_variety_with_modifiers(variety)
    schedule = apply_schedule_to_profile(plant, harvest_days=harvest_days)
    merged_tags: List[str] = []
    for tag in list(tags) + modifier_tags:
        if tag and tag not in merged_tags:
            merged_tags.append(tag)
    return db.create_profile(
        PlantProfileRecord(
            user_id=user_id,
            name=plant,
            variety_name=core or (variety or "").strip() or None,
            sun=schedule.sun,
            plant_spacing=schedule.plant_spacing,
            days_to_germination=schedule.days_to_germination,
            harvest_days=schedule.harvest_days,
            sowing_method=schedule.sowing_method,
            planting_window=schedule.planting_window,
            tags=merged_tags,
            hero_image_url=hero_image_url,
        )
    )


def add_packet(
    db: DbClient,
    user_id: str,
    packet: NewPacket,
    profile_id: Optional[str] = None,
) -> Tuple[PlantProfileRecord, SeedPacketRecord, bool]:
    """
    Stores a packet, attaching it to `profile_id` or to the canonically
    matching profile, creating the profile when none matches.

    Returns (profile, packet, profile_created).
    """
    created = False
    if profile_id:
        profile = db.get_profile(user_id, profile_id)
        if profile is None:
            raise ProfileNotFound(profile_id)
    else:
        profile = find_existing_profile_by_canonical(
            db.list_profiles(user_id), packet.name, packet.variety
        )
        if profile is None:
            profile = create_profile(
                db,
                user_id,
                packet.name,
                packet.variety,
                harvest_days=packet.harvest_days,
                tags=packet.tags,
                hero_image_url=packet.hero_image_url,
            )
            created = True

    stored = db.create_packet(
        SeedPacketRecord(
            user_id=user_id,
            plant_profile_id=profile.id,
            vendor_name=to_canonical_display(packet.vendor_name) or None,
            purchase_url=(packet.purchase_url or "").strip() or None,
            purchase_date=packet.purchase_date,
            qty_status=max(0, min(100, packet.qty_status)),
            tags=list(packet.tags),
            storage_location=(packet.storage_location or "").strip() or None,
        )
    )
    profile = db.update_profile(user_id, profile.id, status=ProfileStatus.IN_STOCK.value)
    return profile, stored, created
