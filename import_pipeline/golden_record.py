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

"""
Golden record selection for scraped duplicates.

When several vendors describe the same plant (same identity key), the
variety name and vendor shown to the user come from the highest-priority
vendor in the group.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from shared.types import ScrapedSeed

# Johnny's has the cleanest names; Rare Seeds is the fallback.
GOLDEN_RECORD_VENDOR_PRIORITY = (
    "Johnny's",
    "Select Seeds",
    "Botanical Interests",
    "Rare Seeds",
)

_PRIORITY_NEEDLES = {
    "Johnny's": "johnny",
    "Select Seeds": "select",
    "Botanical Interests": "botanical",
    "Rare Seeds": "rare",
}


@dataclass
class MergedGroup:
    identity_key: str
    items: List[ScrapedSeed]
    golden_variety: Optional[str]
    golden_vendor: Optional[str]
    golden_source_id: Optional[str]
    tags: List[str] = field(default_factory=list)


def vendor_matches_priority(vendor_label: str | None, priority: str) -> bool:
    v = (vendor_label or "").strip().lower()
    needle = _PRIORITY_NEEDLES.get(priority, priority.lower())
    return needle in v


def _group_for(items: Sequence[ScrapedSeed], identity_key: str | None) -> List[ScrapedSeed]:
    key = (identity_key or "").strip()
    if not key:
        return []
    return [i for i in items if (i.identity_key or "").strip() == key]


def _display_variety(item: ScrapedSeed) -> str:
    return (item.clean_variety or item.variety or "").strip()


def golden_variety_for_group(
    items: Sequence[ScrapedSeed], identity_key: str | None
) -> Optional[str]:
    group = _group_for(items, identity_key)
    if not group:
        return None
    for priority in GOLDEN_RECORD_VENDOR_PRIORITY:
        match = next((i for i in group if vendor_matches_priority(i.vendor, priority)), None)
        if match and _display_variety(match):
            return _display_variety(match)
    return _display_variety(group[0]) or None


def golden_vendor_for_group(
    items: Sequence[ScrapedSeed], identity_key: str | None
) -> Optional[str]:
    group = _group_for(items, identity_key)
    if not group:
        return None
    for priority in GOLDEN_RECORD_VENDOR_PRIORITY:
        match = next((i for i in group if vendor_matches_priority(i.vendor, priority)), None)
        if match and (match.vendor or "").strip():
            return match.vendor.strip()
    return (group[0].vendor or "").strip() or None


def golden_source_item(
    items: Sequence[ScrapedSeed], identity_key: str | None
) -> Optional[ScrapedSeed]:
    """The item whose variety is shown for the group."""
    group = _group_for(items, identity_key)
    if not group:
        return None
    for priority in GOLDEN_RECORD_VENDOR_PRIORITY:
        for item in group:
            if vendor_matches_priority(item.vendor, priority) and (item.variety or "").strip():
                return item
    return group[0]


def merge_import_items(items: Sequence[ScrapedSeed]) -> List[MergedGroup]:
    """
    Group scraped items by identity key in first-seen order.

    Items without an identity key are never merged and form their own group.
    """
    keyed: Dict[str, List[ScrapedSeed]] = {}
    order: List[tuple[str, Optional[ScrapedSeed]]] = []
    for item in items:
        key = (item.identity_key or "").strip()
        if not key:
            order.append(("", item))
            continue
        if key not in keyed:
            keyed[key] = []
            order.append((key, None))
        keyed[key].append(item)

    groups: List[MergedGroup] = []
    for key, single in order:
        if not key:
            groups.append(
                MergedGroup(
                    identity_key="",
                    items=[single],
                    golden_variety=_display_variety(single) or None,
                    golden_vendor=(single.vendor or "").strip() or None,
                    golden_source_id=single.id,
                    tags=list(single.tags),
                )
            )
            continue
        group = keyed[key]
        source = golden_source_item(group, key)
        tags: List[str] = []
        for item in group:
            for tag in item.tags:
                if tag not in tags:
                    tags.append(tag)
        groups.append(
            MergedGroup(
                identity_key=key,
                items=group,
                golden_variety=golden_variety_for_group(group, key),
                golden_vendor=golden_vendor_for_group(group, key),
                golden_source_id=source.id if source else None,
                tags=tags,
            )
        )
    return groups
