"""
HTTP routes for the Plant Vault API.
"""

from __future__ import annotations

import logging
import math
from datetime import date, datetime, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query

from backend import garden
from backend.auth import AuthUser
from backend.config import Settings, get_settings
from backend.db import (
    DbClient,
    ImportLogRecord,
    JournalEntryRecord,
    PlantProfileRecord,
    SeedPacketRecord,
)
from backend.dependencies import (
    get_current_user,
    get_db_client,
    get_queue_client,
    get_storage_client,
)
from backend.queue import JobQueue
from backend.schemas import (
    AddPacketResponse,
    CompleteTaskRequest,
    CreateProfileRequest,
    DeleteProfilesRequest,
    DeleteProfilesResponse,
    EndGrowRequest,
    GrowInstanceResponse,
    HarvestRequest,
    ImportJobStatusResponse,
    ImportLogEntry,
    ImportLogsResponse,
    ImportUrlRequest,
    ImportUrlResponse,
    JournalEntryResponse,
    JournalRequest,
    ListJournalResponse,
    ListPacketsResponse,
    ListProfilesResponse,
    ListTasksResponse,
    OkResponse,
    PacketRequest,
    PacketQtyOptionsResponse,
    PacketResponse,
    ParseUrlResponse,
    PlantProfileResponse,
    PlantRequestBody,
    PlantResponse,
    QtyOption,
    ReviewGroup,
    ReviewRequest,
    ReviewResponse,
    ShoppingListItemResponse,
    ShoppingListResponse,
    SignUrlResponse,
    SowingWindowResponse,
    TaskResponse,
)
from backend.storage import StorageClient
from import_pipeline.golden_record import merge_import_items
from import_pipeline.identity import clean_variety_for_display, identity_key_from_variety
from import_pipeline.image_utils import HERO_IMAGE_PREFIX
from import_pipeline.url_parse import is_importable_url, parse_seed_from_import_url
from import_pipeline.vendors import dedupe_vendors_for_suggestions, to_canonical_display
from shared.inventory import (
    QTY_STANDARD_VALUES,
    USED_STANDARD_VALUES,
    qty_status_to_label,
    used_percent_to_label,
)
from shared.profiles import display_name, find_existing_profile_by_canonical, profile_status_label
from shared.schedule import is_plantable_in_month, sow_months_for_profile, sowing_window_label
from shared.types import ScrapedSeed

logger = logging.getLogger(__name__)

router = APIRouter()


def _iso(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()


def _trimmed(body: Dict[str, Any], key: str) -> str:
    value = body.get(key)
    return value.strip() if isinstance(value, str) else ""


def _profile_response(profile: PlantProfileRecord) -> PlantProfileResponse:
    return PlantProfileResponse(
        id=profile.id,
        name=profile.name,
        variety_name=profile.variety_name,
        display_name=display_name(profile.name, profile.variety_name),
        status=profile.status,
        status_label=profile_status_label(profile.status),
        sun=profile.sun,
        plant_spacing=profile.plant_spacing,
        days_to_germination=profile.days_to_germination,
        harvest_days=profile.harvest_days,
        sowing_method=profile.sowing_method,
        planting_window=profile.planting_window,
        tags=list(profile.tags or []),
        hero_image_url=profile.hero_image_url,
        hero_image_path=profile.hero_image_path,
    )


def _packet_response(packet: SeedPacketRecord) -> PacketResponse:
    return PacketResponse(
        id=packet.id,
        plant_profile_id=packet.plant_profile_id,
        vendor_name=packet.vendor_name,
        purchase_url=packet.purchase_url,
        purchase_date=packet.purchase_date,
        qty_status=packet.qty_status,
        qty_label=qty_status_to_label(packet.qty_status),
        tags=list(packet.tags or []),
        storage_location=packet.storage_location,
        is_archived=packet.is_archived,
    )


def _journal_response(entry: JournalEntryRecord) -> JournalEntryResponse:
    return JournalEntryResponse(
        id=entry.id,
        entry_type=entry.entry_type,
        note=entry.note,
        plant_profile_id=entry.plant_profile_id,
        grow_instance_id=entry.grow_instance_id,
        seed_packet_id=entry.seed_packet_id,
        harvest_weight=entry.harvest_weight,
        harvest_unit=entry.harvest_unit,
        harvest_quantity=entry.harvest_quantity,
        created_at=entry.created_at,
    )


def _require_profile(db: DbClient, user: AuthUser, profile_id: str) -> PlantProfileRecord:
    profile = db.get_profile(user.id, profile_id)
    if profile is None:
        raise HTTPException(status_code=404, detail="Profile not found")
    return profile


# ---------------------------------------------------------------------------
# Import logs
# ---------------------------------------------------------------------------


@router.get("/settings/import-logs", response_model=ImportLogsResponse)
def list_import_logs(
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    settings: Settings = Depends(get_settings),
):
    try:
        rows = db.list_import_logs(user.id, limit=settings.import_log_limit)
    except Exception as e:
        logger.warning("[import-logs] GET failed: %s", e)
        raise HTTPException(status_code=500, detail=str(e) or "Internal server error") from e
    return ImportLogsResponse(
        logs=[
            ImportLogEntry(
                id=row.id,
                created_at=_iso(row.created_at),
                url=row.url,
                vendor_name=row.vendor_name,
                status_code=row.status_code,
                identity_key_generated=row.identity_key_generated,
                error_message=row.error_message,
                hero_image_url=row.hero_image_url,
            )
            for row in rows
        ]
    )


@router.post("/settings/import-logs", response_model=OkResponse)
def create_import_log(
    body: Dict[str, Any] = Body(...),
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    """
    Append one import log row. `error_message` carries the diagnostic trace
    and is mandatory.
    """
    url = _trimmed(body, "url")
    if not url:
        raise HTTPException(status_code=400, detail="url required")
    error_message = _trimmed(body, "error_message")
    if not error_message:
        raise HTTPException(
            status_code=400,
            detail="error_message required (mandatory diagnostic trace)",
        )

    hero_image_url = _trimmed(body, "hero_image_url")
    status_code = body.get("status_code")
    if (
        isinstance(status_code, bool)
        or not isinstance(status_code, (int, float))
        or not math.isfinite(status_code)
        or not 0 <= status_code <= 999
    ):
        status_code = 0

    record = ImportLogRecord(
        user_id=user.id,
        url=url,
        vendor_name=_trimmed(body, "vendor_name") or None,
        status_code=int(status_code),
        identity_key_generated=_trimmed(body, "identity_key_generated") or None,
        error_message=error_message,
        hero_image_url=hero_image_url if hero_image_url.startswith("http") else None,
    )
    try:
        db.insert_import_log(record)
    except Exception as e:
        logger.warning("[import-logs] insert failed: %s", e)
        raise HTTPException(status_code=500, detail=str(e) or "Internal server error") from e
    return OkResponse()


# ---------------------------------------------------------------------------
# Seed import
# ---------------------------------------------------------------------------


@router.post("/seed/import-url", response_model=ImportUrlResponse, status_code=202)
def request_seed_import(
    payload: ImportUrlRequest,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    queue: JobQueue = Depends(get_queue_client),
):
    """
    Enqueue a link import. The worker scrapes the page and writes the log row.
    """
    url = payload.url.strip()
    if not is_importable_url(url):
        raise HTTPException(status_code=400, detail="Invalid URL")
    job = db.create_import_job(user.id, url)
    queue.enqueue(job.job_id)
    logger.info("Queued import job %s for %s", job.job_id, url)
    return ImportUrlResponse(job_id=job.job_id, status=job.status.value)


@router.get("/seed/import-jobs/{job_id}", response_model=ImportJobStatusResponse)
def import_job_status(
    job_id: str,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    job = db.get_job(job_id)
    if not job or job.user_id != user.id:
        raise HTTPException(status_code=404, detail="Job not found")
    return ImportJobStatusResponse(
        job_id=job.job_id,
        url=job.url,
        status=job.status.value,
        stage=job.stage,
        progress_percent=job.progress_percent,
        result=job.result,
    )


@router.post("/seed/parse-url", response_model=ParseUrlResponse)
def parse_url(
    payload: ImportUrlRequest,
    user: AuthUser = Depends(get_current_user),
):
    prefill = parse_seed_from_import_url(payload.url)
    clean, _ = clean_variety_for_display(prefill.variety, prefill.name)
    return ParseUrlResponse(
        source_url=prefill.source_url,
        vendor=prefill.vendor,
        name=prefill.name,
        variety=prefill.variety,
        harvest_days=prefill.harvest_days,
        tags=prefill.tags,
        image_fallback_url=prefill.image_fallback_url,
        details_blocked=prefill.details_blocked,
        identity_key=identity_key_from_variety(prefill.name, clean),
    )


@router.post("/seed/review", response_model=ReviewResponse)
def review_import(
    payload: ReviewRequest,
    user: AuthUser = Depends(get_current_user),
):
    """Merge reviewed items that describe the same variety into golden records."""
    seeds = []
    for item in payload.items:
        clean, display_tags = clean_variety_for_display(item.variety, item.name)
        seeds.append(
            ScrapedSeed(
                id=item.id,
                source_url=item.source_url,
                name=item.name.strip(),
                variety=item.variety.strip(),
                clean_variety=clean,
                vendor=to_canonical_display(item.vendor),
                identity_key=identity_key_from_variety(item.name, clean),
                tags=list(dict.fromkeys(item.tags + display_tags)),
                harvest_days=item.harvest_days,
                hero_image_url=item.hero_image_url,
            )
        )
    groups = merge_import_items(seeds)
    return ReviewResponse(
        groups=[
            ReviewGroup(
                identity_key=group.identity_key,
                item_ids=[i.id for i in group.items],
                name=group.items[0].name,
                golden_variety=group.golden_variety,
                golden_vendor=group.golden_vendor,
                golden_source_id=group.golden_source_id,
                tags=group.tags,
            )
            for group in groups
        ],
        vendors=dedupe_vendors_for_suggestions(s.vendor for s in seeds),
    )


# ---------------------------------------------------------------------------
# Profiles and packets
# ---------------------------------------------------------------------------


@router.get("/garden/plant-profiles", response_model=ListProfilesResponse)
def list_profiles(
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    return ListProfilesResponse(
        profiles=[_profile_response(p) for p in db.list_profiles(user.id)]
    )


@router.post("/garden/plant-profiles", response_model=PlantProfileResponse, status_code=201)
def create_profile(
    payload: CreateProfileRequest,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    existing = find_existing_profile_by_canonical(
        db.list_profiles(user.id), payload.name, payload.variety
    )
    if existing:
        raise HTTPException(status_code=409, detail="Profile already exists")
    profile = garden.create_profile(
        db,
        user.id,
        payload.name,
        payload.variety,
        harvest_days=payload.harvest_days,
        tags=payload.tags,
        hero_image_url=payload.hero_image_url,
    )
    return _profile_response(profile)


@router.delete("/garden/plant-profiles", response_model=DeleteProfilesResponse)
def delete_profiles(
    payload: DeleteProfilesRequest,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    return DeleteProfilesResponse(deleted=garden.delete_profiles(db, user.id, payload.ids))


@router.get(
    "/garden/plant-profiles/{profile_id}/sowing-window",
    response_model=SowingWindowResponse,
)
def sowing_window(
    profile_id: str,
    month: Optional[int] = Query(None, ge=1, le=12),
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    profile = _require_profile(db, user, profile_id)
    month_index = (month or date.today().month) - 1
    return SowingWindowResponse(
        profile_id=profile.id,
        label=sowing_window_label(profile),
        months=sow_months_for_profile(profile),
        plantable_this_month=is_plantable_in_month(profile, month_index),
    )


@router.get("/garden/plant-profiles/{profile_id}/packets", response_model=ListPacketsResponse)
def list_packets(
    profile_id: str,
    include_archived: bool = Query(False),
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    _require_profile(db, user, profile_id)
    packets = db.list_packets(user.id, profile_id, include_archived=include_archived)
    return ListPacketsResponse(packets=[_packet_response(p) for p in packets])


@router.get("/garden/packet-qty-options", response_model=PacketQtyOptionsResponse)
def packet_qty_options(user: AuthUser = Depends(get_current_user)):
    """Preset choices for the packet amount left and the amount used when sowing."""
    return PacketQtyOptionsResponse(
        remaining=[
            QtyOption(value=v, label=qty_status_to_label(v)) for v in QTY_STANDARD_VALUES
        ],
        used=[QtyOption(value=v, label=used_percent_to_label(v)) for v in USED_STANDARD_VALUES],
    )


def _new_packet(payload: PacketRequest, name: str) -> garden.NewPacket:
    return garden.NewPacket(
        name=name,
        variety=payload.variety,
        vendor_name=payload.vendor_name,
        purchase_url=payload.purchase_url,
        purchase_date=payload.purchase_date.isoformat() if payload.purchase_date else None,
        qty_status=payload.qty_status,
        tags=payload.tags,
        storage_location=payload.storage_location,
        harvest_days=payload.harvest_days,
        hero_image_url=payload.hero_image_url,
    )


@router.post(
    "/garden/plant-profiles/{profile_id}/packets",
    response_model=AddPacketResponse,
    status_code=201,
)
def add_packet_to_profile(
    profile_id: str,
    payload: PacketRequest,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    try:
        profile, packet, created = garden.add_packet(
            db, user.id, _new_packet(payload, payload.name or ""), profile_id=profile_id
        )
    except garden.ProfileNotFound:
        raise HTTPException(status_code=404, detail="Profile not found")
    return AddPacketResponse(
        profile=_profile_response(profile),
        packet=_packet_response(packet),
        profile_created=created,
    )


@router.post("/garden/packets", response_model=AddPacketResponse, status_code=201)
def add_packet(
    payload: PacketRequest,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    """Add a packet to the matching profile, creating the profile if needed."""
    if not (payload.name or "").strip():
        raise HTTPException(status_code=400, detail="name required")
    profile, packet, created = garden.add_packet(db, user.id, _new_packet(payload, payload.name))
    return AddPacketResponse(
        profile=_profile_response(profile),
        packet=_packet_response(packet),
        profile_created=created,
    )


# ---------------------------------------------------------------------------
# Planting, tasks, grow instances
# ---------------------------------------------------------------------------


@router.post("/garden/plant", response_model=PlantResponse)
def plant(
    payload: PlantRequestBody,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    requests = [
        garden.PlantRequest(
            profile_id=item.profile_id,
            selected_packet_ids=item.packet_ids,
            use_percent_by_packet_id=item.use_percent_by_packet_id,
            sowing_method=item.sowing_method,
        )
        for item in payload.items
    ]
    try:
        result = garden.plant_batch(
            db,
            user.id,
            requests,
            payload.plant_date or date.today(),
            location=payload.location,
            note=payload.note,
        )
    except garden.ProfileNotFound:
        raise HTTPException(status_code=404, detail="Profile not found")
    return PlantResponse(
        grow_instance_ids=result.grow_instance_ids,
        skipped_profile_ids=result.skipped_profile_ids,
        out_of_stock_profile_ids=result.out_of_stock_profile_ids,
    )


def _task_response(task) -> TaskResponse:
    return TaskResponse(
        id=task.id,
        category=task.category,
        title=task.title,
        plant_profile_id=task.plant_profile_id,
        grow_instance_id=task.grow_instance_id,
        due_date=task.due_date,
        completed_at=task.completed_at,
    )


@router.get("/garden/tasks", response_model=ListTasksResponse)
def list_tasks(
    include_completed: bool = Query(False),
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    tasks = db.list_tasks(user.id, include_completed=include_completed)
    return ListTasksResponse(tasks=[_task_response(t) for t in tasks])


@router.post("/garden/tasks/{task_id}/complete", response_model=TaskResponse)
def complete_task(
    task_id: str,
    payload: Optional[CompleteTaskRequest] = None,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    settings: Settings = Depends(get_settings),
):
    usage = None
    if payload and payload.packet_usage:
        usage = [(u.packet_id, u.percent_used) for u in payload.packet_usage]
    try:
        task = garden.complete_task(
            db,
            user.id,
            task_id,
            date.today(),
            packet_usage=usage,
            default_use_percent=settings.default_sow_use_percent,
        )
    except garden.TaskNotFound:
        raise HTTPException(status_code=404, detail="Task not found")
    except garden.PacketNotFound:
        raise HTTPException(status_code=404, detail="Packet not found")
    return _task_response(task)


def _grow_response(grow) -> GrowInstanceResponse:
    return GrowInstanceResponse(
        id=grow.id,
        plant_profile_id=grow.plant_profile_id,
        seed_packet_id=grow.seed_packet_id,
        sown_date=grow.sown_date,
        expected_harvest_date=grow.expected_harvest_date,
        status=grow.status,
        sow_method=grow.sow_method,
        location=grow.location,
        ended_at=grow.ended_at,
        end_reason=grow.end_reason,
    )


@router.post(
    "/garden/grow-instances/{grow_id}/harvest",
    response_model=JournalEntryResponse,
    status_code=201,
)
def harvest(
    grow_id: str,
    payload: HarvestRequest,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    try:
        entry = garden.log_harvest(
            db,
            user.id,
            grow_id,
            note=payload.note,
            weight=payload.weight,
            unit=payload.unit,
            quantity=payload.quantity,
        )
    except garden.GrowInstanceNotFound:
        raise HTTPException(status_code=404, detail="Grow instance not found")
    return _journal_response(entry)


@router.post("/garden/grow-instances/{grow_id}/end", response_model=GrowInstanceResponse)
def end_grow(
    grow_id: str,
    payload: EndGrowRequest,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    try:
        grow = garden.end_grow_instance(db, user.id, grow_id, payload.reason, payload.note)
    except garden.GrowInstanceNotFound:
        raise HTTPException(status_code=404, detail="Grow instance not found")
    return _grow_response(grow)


# ---------------------------------------------------------------------------
# Journal and shopping list
# ---------------------------------------------------------------------------


@router.post("/journal", response_model=JournalEntryResponse, status_code=201)
def create_journal_entry(
    payload: JournalRequest,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    if payload.plant_profile_id:
        _require_profile(db, user, payload.plant_profile_id)
    if payload.grow_instance_id and not db.get_grow_instance(user.id, payload.grow_instance_id):
        raise HTTPException(status_code=404, detail="Grow instance not found")
    if payload.seed_packet_id and not db.get_packet(user.id, payload.seed_packet_id):
        raise HTTPException(status_code=404, detail="Packet not found")
    if not (payload.note or "").strip() and payload.entry_type != "harvest":
        raise HTTPException(status_code=400, detail="note required")
    entry = db.create_journal_entry(
        JournalEntryRecord(
            user_id=user.id,
            entry_type=payload.entry_type,
            note=(payload.note or "").strip() or None,
            plant_profile_id=payload.plant_profile_id,
            grow_instance_id=payload.grow_instance_id,
            seed_packet_id=payload.seed_packet_id,
            harvest_weight=payload.harvest_weight,
            harvest_unit=payload.harvest_unit,
            harvest_quantity=payload.harvest_quantity,
        )
    )
    return _journal_response(entry)


@router.get("/journal", response_model=ListJournalResponse)
def list_journal(
    plant_profile_id: Optional[str] = Query(None),
    grow_instance_id: Optional[str] = Query(None),
    limit: int = Query(200, ge=1, le=1000),
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    entries = db.list_journal_entries(
        user.id,
        plant_profile_id=plant_profile_id,
        grow_instance_id=grow_instance_id,
        limit=limit,
    )
    return ListJournalResponse(entries=[_journal_response(e) for e in entries])


@router.get("/shopping-list", response_model=ShoppingListResponse)
def shopping_list(
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    items = []
    for row in db.list_shopping_items(user.id):
        profile = db.get_profile(user.id, row.plant_profile_id)
        items.append(
            ShoppingListItemResponse(
                id=row.id,
                plant_profile_id=row.plant_profile_id,
                display_name=display_name(profile.name, profile.variety_name) if profile else None,
                is_purchased=row.is_purchased,
            )
        )
    return ShoppingListResponse(items=items)


def _owns_storage_path(user: AuthUser, path: str) -> bool:
    prefix = f"{HERO_IMAGE_PREFIX}/{user.id}/"
    if not path.startswith(prefix) or "\\" in path:
        return False
    return all(part not in ("", ".", "..") for part in path[len(prefix):].split("/"))


@router.get("/sign-url", response_model=SignUrlResponse)
def sign_url(
    path: str = Query(..., description="Object path in storage"),
    op: str = Query("get", pattern="^(get|put)$"),
    expires_in: int = Query(3600, ge=60, le=86400),
    user: AuthUser = Depends(get_current_user),
    storage: StorageClient = Depends(get_storage_client),
):
    """Signs object paths under the caller's own hero image folder only."""
    if not _owns_storage_path(user, path):
        raise HTTPException(status_code=403, detail="Forbidden")
    if op == "get":
        url = storage.presign_get(path, expires_in=expires_in)
    else:
        url = storage.presign_put(path, expires_in=expires_in)
    return SignUrlResponse(url=url)
