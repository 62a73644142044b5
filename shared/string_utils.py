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

import html
import re

_NON_ALNUM = re.compile(r"[^a-z0-9]")
_TAG_PATTERN = re.compile(r"<[^>]*>")
_ATTRIBUTE_PATTERN = re.compile(r"\s*[a-zA-Z][a-zA-Z0-9_-]*\s*=\s*[\"'][^\"']*[\"']")


def canonical_key(name: str | None) -> str:
    """
    Matching key for plant and variety names across vendors.

    "Benary's Giant", "benary-s-giant" and "Benarys Giant" all yield
    "benarysgiant".
    """
    if not name:
        return ""
    return _NON_ALNUM.sub("", name.lower())


def to_title_case(value: str | None) -> str:
    """Capitalize the first letter of each word, leaving the rest untouched."""
    if not value or not value.strip():
        return value or ""
    return re.sub(
        r"(^|\s)(\w)",
        lambda m: m.group(1) + m.group(2).upper(),
        value.strip(),
    )


def collapse_whitespace(value: str | None) -> str:
    return re.sub(r"\s+", " ", value or "").strip()


def decode_html_entities(value: str | None) -> str:
    if not value:
        return ""
    return html.unescape(value.strip())


def strip_html_for_display(value: str | None) -> str:
    """Remove tags and attr="..." fragments left behind by scrapers."""
    if not value:
        return ""
    out = _TAG_PATTERN.sub("", value)
    out = _ATTRIBUTE_PATTERN.sub("", out)
    return decode_html_entities(collapse_whitespace(out))


def looks_like_scientific_name(value: str | None) -> bool:
    raw = (value or "").strip()
    if len(raw) < 2 or len(raw) > 120:
        return False
    if re.search(r"class\s*=\s*[\"']|id\s*=\s*[\"']|__|<\s*\w|>\s*\w", raw, re.I):
        return False
    stripped = strip_html_for_display(raw)
    if len(stripped) < 2:
        return False
    if re.fullmatch(r'"[^"]*"', stripped):
        return False
    if " " not in stripped and stripped[0] in "\"-":
        return False
    return True
