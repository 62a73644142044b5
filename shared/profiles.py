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

import re
from typing import Optional, Protocol, Sequence, TypeVar

from import_pipeline.identity import parse_variety_with_modifiers
from shared.string_utils import canonical_key
from shared.types import ProfileStatus

PROFILE_STATUS_OPTIONS = (
    (ProfileStatus.IN_STOCK, "In stock"),
    (ProfileStatus.OUT_OF_STOCK, "Out of stock"),
    (ProfileStatus.VAULT, "In storage"),
    (ProfileStatus.ACTIVE, "Active (in garden)"),
    (ProfileStatus.LOW_INVENTORY, "Low inventory"),
    (ProfileStatus.ARCHIVED, "Archived"),
)


class ProfileForMatch(Protocol):
    id: str
    name: Optional[str]
    variety_name: Optional[str]


P = TypeVar("P", bound=ProfileForMatch)


def profile_status_label(status: str) -> str:
    for value, label in PROFILE_STATUS_OPTIONS:
        if value == status:
            return label
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), status.replace("_", " "))


def display_name(name: str | None, variety: str | None) -> str:
    """Formats "Tomato (Cherokee Purple)", or just the name without a variety."""
    plant = (name or "").strip()
    v = (variety or "").strip()
    return f"{plant} ({v})" if v else plant


def find_existing_profile_by_canonical(
    profiles: Sequence[P], plant_name: str | None, variety: str | None
) -> Optional[P]:
    """
    First profile whose canonical (name, variety) matches.

    The variety is compared without modifiers, so "Dragon's Egg F1" finds a
    "Dragon's Egg" profile. Callers pass only live (not deleted) profiles.
    """
    name = (plant_name or "").strip() or "Unknown"
    core, _ = parse_variety_with_modifiers(variety)
    variety_name = core or (variety or "").strip()
    name_key = canonical_key(name)
    variety_key = canonical_key(variety_name)
    for profile in profiles:
        if (
            canonical_key(profile.name or "") == name_key
            and canonical_key(profile.variety_name or "") == variety_key
        ):
            return profile
    return None
