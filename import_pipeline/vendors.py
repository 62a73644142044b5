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
from typing import Dict, Iterable, List
from urllib.parse import urlparse

from shared.string_utils import canonical_key, to_title_case

# Stripped from the end of vendor names when building the match key.
VENDOR_KEY_SUFFIXES = (
    "seeds",
    "seed",
    "company",
    "co",
    "inc",
    "llc",
    "garden",
    "heirloom",
    "selected",
    "organic",
    "store",
    "shop",
)

# Keyed by normalize_vendor_key() of any known variant.
CANONICAL_BY_KEY: Dict[str, str] = {
    "bakercreek": "Baker Creek Heirloom Seeds",
    "johnnysselectedseeds": "Johnny's Selected Seeds",
    "johnnysseeds": "Johnny's Selected Seeds",
    "johnnys": "Johnny's Selected Seeds",
    "johnny": "Johnny's Selected Seeds",
    "marysheirloomseeds": "Mary's Heirloom Seeds",
    "marys": "Mary's Heirloom Seeds",
    "territorial": "Territorial Seed Company",
    "territorialseed": "Territorial Seed Company",
    "edenbrothers": "Eden Brothers",
    "outsidepride": "Outsidepride",
    "parkseed": "Park Seed",
    "park": "Park Seed",
    "burpee": "Burpee",
    "botanicalinterests": "Botanical Interests",
    "highmowing": "High Mowing Seeds",
    "highmowingseeds": "High Mowing Seeds",
    "floretflowers": "Floret Flowers",
    "floret": "Floret Flowers",
    "reneesgarden": "Renee's Garden",
    "renees": "Renee's Garden",
    "southernexposure": "Southern Exposure",
    "fedco": "Fedco Seeds",
    "fedcoseeds": "Fedco Seeds",
    "hudsonvalley": "Hudson Valley Seed",
    "hudsonvalleyseed": "Hudson Valley Seed",
    "victory": "Victory Seeds",
    "victoryseeds": "Victory Seeds",
    "swallowtail": "Swallowtail Garden Seeds",
    "swallowtailgardenseeds": "Swallowtail Garden Seeds",
    "swallowtailgarden": "Swallowtail Garden Seeds",
    "select": "Select Seeds",
    "selectseeds": "Select Seeds",
    "rare": "Rare Seeds",
    "rareseeds": "Rare Seeds",
    "opencircle": "Open Circle Seeds",
    "opencircleseeds": "Open Circle Seeds",
}

VENDOR_BY_HOST: Dict[str, str] = {
    "rareseeds.com": "Rare Seeds",
    "johnnyseeds.com": "Johnny's Selected Seeds",
    "selectseeds.com": "Select Seeds",
    "botanicalinterests.com": "Botanical Interests",
    "marysheirloomseeds.com": "Mary's Heirloom Seeds",
    "territorialseed.com": "Territorial Seed Company",
    "edenbrothers.com": "Eden Brothers",
    "outsidepride.com": "Outsidepride",
    "parkseed.com": "Park Seed",
    "burpee.com": "Burpee",
    "highmowingseeds.com": "High Mowing Seeds",
    "floretflowers.com": "Floret Flowers",
    "reneesgarden.com": "Renee's Garden",
    "southernexposure.com": "Southern Exposure",
    "fedcoseeds.com": "Fedco Seeds",
    "hudsonvalleyseed.com": "Hudson Valley Seed",
    "victoryseeds.com": "Victory Seeds",
    "swallowtailgardenseeds.com": "Swallowtail Garden Seeds",
    "opencircleseeds.com": "Open Circle Seeds",
}

_SUFFIX_PATTERNS = [
    re.compile(rf"\s+{re.escape(suffix)}\s*$", re.IGNORECASE)
    for suffix in VENDOR_KEY_SUFFIXES
]


def normalize_vendor_key(vendor: str | None) -> str:
    """
    Stable vendor key for matching.

    "Territorial Seed", "Territorial Seed Company" and "TerritorialSeed" map
    to the same key.
    """
    if not vendor or not isinstance(vendor, str):
        return ""
    s = re.sub(r"[^a-z0-9\s]", " ", vendor.strip().lower())
    s = re.sub(r"\s+", " ", s).strip()
    if not s:
        return ""

    changed = True
    while changed:
        changed = False
        for pattern in _SUFFIX_PATTERNS:
            if pattern.search(s):
                s = pattern.sub("", s).strip()
                changed = True
                break

    # "johnnyseeds" -> "johnny"
    s = re.sub(r"([a-z0-9])seeds?$", r"\1", s).strip()
    return canonical_key(s) or canonical_key(vendor.strip())


def to_canonical_display(vendor: str | None) -> str:
    v = (vendor or "").strip()
    if not v:
        return ""
    return CANONICAL_BY_KEY.get(normalize_vendor_key(v), v)


def pick_canonical_vendor_display(variants: Iterable[str | None]) -> str:
    """Prefer a known canonical name; otherwise the longest variant."""
    trimmed = [(v or "").strip() for v in variants]
    trimmed = [v for v in trimmed if v]
    if not trimmed:
        return ""
    if len(trimmed) == 1:
        return to_canonical_display(trimmed[0])

    first_key = normalize_vendor_key(trimmed[0])
    group = [v for v in trimmed if normalize_vendor_key(v) == first_key] or trimmed
    canonical = CANONICAL_BY_KEY.get(first_key)
    if canonical:
        return canonical
    return sorted(group, key=lambda v: (-len(v), v))[0]


def dedupe_vendors_for_suggestions(vendor_names: Iterable[str | None]) -> List[str]:
    """Collapse vendor spellings to one display name each, sorted A-Z."""
    by_key: Dict[str, List[str]] = {}
    for name in vendor_names:
        t = (name or "").strip()
        if not t:
            continue
        key = normalize_vendor_key(t) or t
        group = by_key.setdefault(key, [])
        if t not in group:
            group.append(t)
    names = [pick_canonical_vendor_display(group) for group in by_key.values()]
    return sorted((n for n in names if n), key=str.lower)


def vendor_from_url(url: str | None) -> str:
    """Display vendor name for a product URL, derived from its host."""
    raw = (url or "").strip()
    if not raw:
        return ""
    if not raw.startswith(("http://", "https://")):
        raw = "https://" + raw
    try:
        host = (urlparse(raw).hostname or "").lower()
    except ValueError:
        return ""
    if host.startswith("www."):
        host = host[4:]
    if not host:
        return ""
    for known_host, vendor in VENDOR_BY_HOST.items():
        if host == known_host or host.endswith("." + known_host):
            return vendor
    label = host.split(".")[0].replace("-", " ")
    return to_canonical_display(to_title_case(label))
