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
Variety normalization and identity keys.

Link import, the import worker, profile matching and the import log all build
identity keys through `identity_key_from_variety` so the same plant variety
scraped from different vendors lands on the same key.
"""

import re
from typing import List, Tuple

from shared.string_utils import canonical_key, collapse_whitespace

# Longer entries first so "Selected Seeds" wins over "Seeds".
VARIETY_SUFFIXES = (
    "Drought Tolerant",
    "Selected Seeds",
    "Non-GMO",
    "Seeds",
    "Seed",
    "Organic",
    "Heirloom",
)

# Variety values too generic to identify a plant; keys built from them would
# merge unrelated items.
GENERIC_NAME_TRAP = frozenset({"vegetables", "seeds", "cool season", "shop"})

VARIETY_MODIFIERS = (
    "f1",
    "f2",
    "organic",
    "heirloom",
    "open pollinated",
    "open-pollinated",
    "hybrid",
    "non-gmo",
    "non gmo",
)

_MODIFIER_PATTERN = re.compile(
    r"\b(" + "|".join(re.escape(m) for m in VARIETY_MODIFIERS) + r")\b",
    re.IGNORECASE,
)

_DISPLAY_TAG_WORDS = ("F1", "Hybrid", "Heirloom", "Pelleted")


def _suffix_patterns(suffix: str) -> Tuple[re.Pattern, re.Pattern]:
    escaped = re.escape(suffix)
    trailing = re.compile(rf"\s*\b{escaped}\s*$", re.IGNORECASE)
    leading = re.compile(rf"^\s*{escaped}\b\s*", re.IGNORECASE)
    return trailing, leading


_SUFFIX_PATTERNS = [_suffix_patterns(s) for s in VARIETY_SUFFIXES]


def strip_variety_suffixes(value: str | None) -> str:
    """Strip marketing suffixes/prefixes such as "Seeds" or "Organic"."""
    out = (value or "").strip().replace("_", " ")
    if not out:
        return out

    # "Baker Creek Seeds Cherokee Purple" -> "Cherokee Purple"
    parts = re.split(r"\bSeeds\b", out, flags=re.IGNORECASE)
    if len(parts) > 1 and parts[-1].strip():
        out = parts[-1].strip()

    changed = True
    while changed:
        changed = False
        for trailing, leading in _SUFFIX_PATTERNS:
            if trailing.search(out):
                out = trailing.sub("", out).strip()
                changed = True
                break
            if leading.search(out):
                out = leading.sub("", out).strip()
                changed = True
                break

    out = collapse_whitespace(out)
    out = re.sub(r"\(\s*\)", "", out)
    out = re.sub(r"[^a-zA-Z0-9]+$", "", out).strip()
    out = re.sub(r"^[-._,\s]+", "", out)
    out = re.sub(r"[-._,\s]+$", "", out)
    return collapse_whitespace(out)


def is_generic_trap_name(variety: str | None) -> bool:
    v = (variety or "").strip().lower()
    return bool(v) and v in GENERIC_NAME_TRAP


def identity_key_from_variety(plant_type: str | None, variety: str | None) -> str:
    """
    Identity key used for merging scraped records and cache lookups.

    Format is canonical(type)_canonical(variety); either half alone when the
    other is empty. Generic trap varieties yield "".
    """
    stripped = strip_variety_suffixes((variety or "").strip())
    if is_generic_trap_name(stripped):
        return ""
    type_key = canonical_key((plant_type or "").strip())
    variety_key = canonical_key(stripped)
    if type_key and variety_key:
        return f"{type_key}_{variety_key}"
    return type_key or variety_key


def parse_variety_with_modifiers(variety: str | None) -> Tuple[str, List[str]]:
    """
    Split a variety into its core name and modifier tags.

    "Bulls Blood F1 Organic" -> ("Bulls Blood", ["F1", "Organic"])
    """
    raw = (variety or "").strip()
    if not raw:
        return "", []

    tags: List[str] = []
    seen: set[str] = set()
    for match in _MODIFIER_PATTERN.finditer(raw):
        normalized = match.group(1).lower()
        if normalized in ("open-pollinated", "open pollinated"):
            normalized, label = "open pollinated", "Open Pollinated"
        else:
            label = match.group(1)[0].upper() + match.group(1)[1:].lower()
        if normalized not in seen:
            seen.add(normalized)
            tags.append(label)

    core = collapse_whitespace(_MODIFIER_PATTERN.sub(" ", raw))
    return core, tags


def normalize_for_match(value: str | None) -> str:
    return (value or "").strip().lower()


def clean_variety_for_display(
    variety: str | None, plant_type: str | None
) -> Tuple[str, List[str]]:
    """
    Clean a variety for display and return the tags pulled out of it.

    Genetic/marketing words (F1, Hybrid, Heirloom, Pelleted) move to tags,
    maturity noise like "65 Days" is dropped, and a trailing word equal to
    the plant type is removed.
    """
    s = strip_variety_suffixes(variety)
    tags_to_add: List[str] = []

    for word in _DISPLAY_TAG_WORDS:
        pattern = re.compile(rf"\b{word}\b", re.IGNORECASE)
        if pattern.search(s):
            tags_to_add.append(word)
            s = pattern.sub("", s)

    s = re.sub(r"\b\d+-\d+\s*Days?\b", "", s, flags=re.IGNORECASE)
    s = re.sub(r"\b\d+\s*Days?\b", "", s, flags=re.IGNORECASE)
    s = collapse_whitespace(s)

    type_norm = (plant_type or "").strip().lower()
    if type_norm:
        words = s.split()
        if len(words) >= 2 and words[-1].lower() == type_norm:
            s = " ".join(words[:-1]).strip()

    return s, tags_to_add


def _plural_of(plant_type: str) -> str:
    p = (plant_type or "").strip().lower()
    if not p:
        return ""
    if p.endswith(("s", "x", "z", "ch", "sh")):
        return p + "es"
    if p.endswith("y") and len(p) > 1 and p[-2] not in "aeiou":
        return p[:-1] + "ies"
    if p.endswith("o"):
        return p + "es"
    return p + "s"


def strip_plant_from_variety(variety: str | None, plant_type: str | None) -> str:
    """Remove a redundant plant type prefix or suffix, word boundaries only."""
    v = (variety or "").strip()
    p = (plant_type or "").strip()
    if not p or not v:
        return v
    v_lower = v.lower()
    p_lower = p.lower()
    plural = _plural_of(p)

    if v_lower.startswith(p_lower + " "):
        return v[len(p) + 1:].strip()
    if v_lower.startswith(plural + " "):
        return v[len(plural) + 1:].strip()

    noise = re.search(r"\s+(Seeds?)\s*$", v, flags=re.IGNORECASE)
    noise_word = noise.group(1) if noise else ""
    core = v[: noise.start()].strip() if noise else v
    core_lower = core.lower()
    for candidate in (p_lower, plural):
        if core_lower.endswith(" " + candidate):
            without = core[: len(core) - (len(candidate) + 1)].strip()
            return f"{without} {noise_word}" if noise_word else without
    return v
