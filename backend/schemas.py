"""
Pydantic schemas for the Plant Vault FastAPI backend.
"""

from __future__ import annotations

from datetime import date
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class ImportLogEntry(BaseModel):
    id: str
    created_at: str
    url: str
    vendor_name: Optional[str] = None
    status_code: int = 0
    identity_key_generated: Optional[str] = None
    error_message: Optional[str] = None
    hero_image_url: Optional[str] = None


class ImportLogsResponse(BaseModel):
    logs: List[ImportLogEntry]


class OkResponse(BaseModel):
    ok: Literal[True] = True


class ImportUrlRequest(BaseModel):
    url: str = Field(..., min_length=1, max_length=2048)


class ImportUrlResponse(BaseModel):
    job_id: str
    status: str


class ImportJobStatusResponse(BaseModel):
    job_id: str
    url: str
    status: str
    stage: Optional[str] = None
    progress_percent: Optional[float] = None
    result: Optional[dict] = None


class ParseUrlResponse(BaseModel):
    source_url: Optional[str] = None
    vendor: str = ""
    name: str = ""
    variety: str = ""
    harvest_days: Optional[int] = None
    tags: List[str] = Field(default_factory=list)
    image_fallback_url: Optional[str] = None
    details_blocked: bool = False
    identity_key: str = ""


class ReviewItem(BaseModel):
    id: str
    source_url: str = ""
    name: str = ""
    variety: str = ""
    vendor: str = ""
    tags: List[str] = Field(default_factory=list)
    harvest_days: Optional[int] = None
    hero_image_url: Optional[str] = None


class ReviewRequest(BaseModel):
    items: List[ReviewItem]


class ReviewGroup(BaseModel):
    identity_key: str
    item_ids: List[str]
    name: str
    golden_variety: Optional[str] = None
    golden_vendor: Optional[str] = None
    golden_source_id: Optional[str] = None
    tags: List[str] = Field(default_factory=list)


class ReviewResponse(BaseModel):
    groups: List[ReviewGroup]
    vendors: List[str]


class PlantProfileResponse(BaseModel):
    id: str
    name: str
    variety_name: Optional[str] = None
    display_name: str
    status: str
    status_label: str
    sun: Optional[str] = None
    plant_spacing: Optional[str] = None
    days_to_germination: Optional[str] = None
    harvest_days: Optional[int] = None
    sowing_method: Optional[str] = None
    planting_window: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    hero_image_url: Optional[str] = None
    hero_image_path: Optional[str] = None


class ListProfilesResponse(BaseModel):
    profiles: List[PlantProfileResponse]


class CreateProfileRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    variety: Optional[str] = Field(default=None, max_length=200)
    harvest_days: Optional[int] = Field(default=None, ge=1, le=1000)
    tags: List[str] = Field(default_factory=list)
    hero_image_url: Optional[str] = None


class DeleteProfilesRequest(BaseModel):
    ids: List[str] = Field(..., min_length=1)


class DeleteProfilesResponse(BaseModel):
    deleted: List[str]


class SowingWindowResponse(BaseModel):
    profile_id: str
    label: Optional[str] = None
    months: List[bool]
    plantable_this_month: bool


class PacketRequest(BaseModel):
    name: Optional[str] = Field(default=None, max_length=200)
    variety: Optional[str] = Field(default=None, max_length=200)
    vendor_name: Optional[str] = None
    purchase_url: Optional[str] = None
    purchase_date: Optional[date] = None
    qty_status: int = Field(default=100, ge=0, le=100)
    tags: List[str] = Field(default_factory=list)
    storage_location: Optional[str] = None
    harvest_days: Optional[int] = Field(default=None, ge=1, le=1000)
    hero_image_url: Optional[str] = None


class PacketResponse(BaseModel):
    id: str
    plant_profile_id: str
    vendor_name: Optional[str] = None
    purchase_url: Optional[str] = None
    purchase_date: Optional[str] = None
    qty_status: int
    qty_label: str
    tags: List[str] = Field(default_factory=list)
    storage_location: Optional[str] = None
    is_archived: bool = False


class AddPacketResponse(BaseModel):
    profile: PlantProfileResponse
    packet: PacketResponse
    profile_created: bool


class ListPacketsResponse(BaseModel):
    packets: List[PacketResponse]


class QtyOption(BaseModel):
    value: int
    label: str


class PacketQtyOptionsResponse(BaseModel):
    remaining: List[QtyOption]
    used: List[QtyOption]


class PlantItem(BaseModel):
    profile_id: str
    packet_ids: Optional[List[str]] = None
    use_percent_by_packet_id: Dict[str, float] = Field(default_factory=dict)
    sowing_method: Optional[Literal["direct_sow", "greenhouse"]] = None


class PlantRequestBody(BaseModel):
    items: List[PlantItem] = Field(..., min_length=1)
    plant_date: Optional[date] = None
    location: Optional[str] = None
    note: Optional[str] = None


class PlantResponse(BaseModel):
    grow_instance_ids: List[str]
    skipped_profile_ids: List[str]
    out_of_stock_profile_ids: List[str]


class PacketUsage(BaseModel):
    packet_id: str
    percent_used: float = Field(..., gt=0, le=100)


class CompleteTaskRequest(BaseModel):
    packet_usage: Optional[List[PacketUsage]] = None


class TaskResponse(BaseModel):
    id: str
    category: str
    title: str
    plant_profile_id: Optional[str] = None
    grow_instance_id: Optional[str] = None
    due_date: Optional[str] = None
    completed_at: Optional[float] = None


class ListTasksResponse(BaseModel):
    tasks: List[TaskResponse]


class HarvestRequest(BaseModel):
    note: Optional[str] = None
    weight: Optional[float] = Field(default=None, ge=0)
    unit: Optional[str] = None
    quantity: Optional[float] = Field(default=None, ge=0)


class EndGrowRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=64)
    note: Optional[str] = None


class GrowInstanceResponse(BaseModel):
    id: str
    plant_profile_id: str
    seed_packet_id: Optional[str] = None
    sown_date: str
    expected_harvest_date: Optional[str] = None
    status: str
    sow_method: Optional[str] = None
    location: Optional[str] = None
    ended_at: Optional[float] = None
    end_reason: Optional[str] = None


class JournalRequest(BaseModel):
    entry_type: Literal[
        "planting", "growth", "harvest", "note", "care", "pest", "death", "quick"
    ] = "note"
    note: Optional[str] = None
    plant_profile_id: Optional[str] = None
    grow_instance_id: Optional[str] = None
    seed_packet_id: Optional[str] = None
    harvest_weight: Optional[float] = None
    harvest_unit: Optional[str] = None
    harvest_quantity: Optional[float] = None


class JournalEntryResponse(BaseModel):
    id: str
    entry_type: str
    note: Optional[str] = None
    plant_profile_id: Optional[str] = None
    grow_instance_id: Optional[str] = None
    seed_packet_id: Optional[str] = None
    harvest_weight: Optional[float] = None
    harvest_unit: Optional[str] = None
    harvest_quantity: Optional[float] = None
    created_at: float


class ListJournalResponse(BaseModel):
    entries: List[JournalEntryResponse]


class ShoppingListItemResponse(BaseModel):
    id: str
    plant_profile_id: str
    display_name: Optional[str] = None
    is_purchased: bool


class ShoppingListResponse(BaseModel):
    items: List[ShoppingListItemResponse]


class SignUrlResponse(BaseModel):
    url: str
