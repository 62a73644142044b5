# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

from dataclasses import dataclass, field
from enum import StrEnum
from typing import List, Optional


class ImportStatus(StrEnum):
    WAITING = "WAITING"
    SCRAPING = "SCRAPING"
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"


class GrowInstanceStatus(StrEnum):
    PENDING = "pending"
    GROWING = "growing"
    HARVESTED = "harvested"
    DEAD = "dead"
    ARCHIVED = "archived"


class JournalEntryType(StrEnum):
    PLANTING = "planting"
    GROWTH = "growth"
    HARVEST = "harvest"
    NOTE = "note"
    CARE = "care"
    PEST = "pest"
    DEATH = "death"
    QUICK = "quick"


class TaskCategory(StrEnum):
    SOW = "sow"
    HARVEST = "harvest"
    START_SEED = "start_seed"
    TRANSPLANT = "transplant"
    DIRECT_SOW = "direct_sow"
    MAINTENANCE = "maintenance"
    FERTILIZE = "fertilize"
    PRUNE = "prune"
    GENERAL = "general"


SOW_TASK_CATEGORIES = (
    TaskCategory.SOW,
    TaskCategory.START_SEED,
    TaskCategory.DIRECT_SOW,
)


class ProfileStatus(StrEnum):
    IN_STOCK = "in_stock"
    OUT_OF_STOCK = "out_of_stock"
    VAULT = "vault"
    ACTIVE = "active"
    LOW_INVENTORY = "low_inventory"
    ARCHIVED = "archived"


class SowingMethod(StrEnum):
    DIRECT_SOW = "direct_sow"
    GREENHOUSE = "greenhouse"


@dataclass
class ScheduleDefaults:
    """Biological and scheduling fields filled from the zone reference table."""

    sun: Optional[str] = None
    plant_spacing: Optional[str] = None
    days_to_germination: Optional[str] = None
    harvest_days: Optional[int] = None
    sowing_method: Optional[str] = None
    planting_window: Optional[str] = None


@dataclass
class ScrapedSeed:
    """One seed packet as read from a vendor page or import URL."""

    id: str
    source_url: str
    name: str = ""
    variety: str = ""
    clean_variety: str = ""
    vendor: str = ""
    identity_key: str = ""
    tags: List[str] = field(default_factory=list)
    harvest_days: Optional[int] = None
    hero_image_url: Optional[str] = None
    image_candidates: List[str] = field(default_factory=list)
    scientific_name: Optional[str] = None
    description: Optional[str] = None
    details_blocked: bool = False
    schedule: ScheduleDefaults = field(default_factory=ScheduleDefaults)
