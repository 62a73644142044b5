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

import ipaddress
import re
from dataclasses import dataclass, field
from typing import List, Optional
from urllib.parse import parse_qs, quote, unquote, urlparse

from import_pipeline.vendors import vendor_from_url
from shared.string_utils import to_title_case

# Functional tags detected in URL slugs and plant names.
TAG_KEYWORDS = (
    (re.compile(r"slope\s*stabilizer|ceanothus|carex|cistus|erosion", re.I), "Slope Stabilizer"),
    (re.compile(r"groundcover|ground\s*cover|kurapia|dymondia", re.I), "Groundcover"),
    (re.compile(r"low\s*chill|chill\s*hours|<\s*400|under\s*400|less\s*than\s*400", re.I), "Low Chill"),
    (re.compile(r"edible\s*flower|flowers\s*edible|edible\s*bloom", re.I), "Edible Flower"),
    (re.compile(r"pollinator|bee\s*friendly|attract\s*pollinator", re.I), "Pollinator"),
    (re.compile(r"cutting\s*garden|cut\s*flower", re.I), "Cutting Garden"),
    (re.compile(r"drought\s*tolerant|drought\s*resistant|drought", re.I), "Drought Tolerant"),
    (re.compile(r"heat\s*lover|heat\s*tolerant|heat\s*resistant", re.I), "Heat Lover"),
    (re.compile(r"fruit\s*tree|tree\s*fruit", re.I), "Fruit Tree"),
    (re.compile(r"winter\s*sow|winter\s*sowing|winter\s*sown", re.I), "Winter Sower"),
    (re.compile(r"zone\s*10|10a|10b", re.I), "Zone 10a Optimized"),
)

_DAYS_PATTERN = re.compile(r"(\d{2,3})-?day", re.I)


@dataclass
class UrlPrefill:
    """Fields recovered from an import URL without fetching it."""

    source_url: Optional[str] = None
    vendor: str = ""
    name: str = ""
    variety: str = ""
    harvest_days: Optional[int] = None
    tags: List[str] = field(default_factory=list)
    image_fallback_url: Optional[str] = None
    details_blocked: bool = False


def tags_from_text(text: str | None) -> List[str]:
    tags: List[str] = []
    if not text or not text.strip():
        return tags
    for pattern, tag in TAG_KEYWORDS:
        if pattern.search(text) and tag not in tags:
            tags.append(tag)
    return tags


def image_fallback_url(url: str) -> str:
    """Favicon URL used when the product image cannot be scraped."""
    full = url if url.startswith("http") else "https://" + url
    return f"https://t1.gstatic.com/faviconV2?url={quote(full, safe='')}&size=128"


def is_private_host(host: str | None) -> bool:
    """True for localhost names and non-public IP literals."""
    name = (host or "").strip().strip("[]").rstrip(".").lower()
    if not name:
        return True
    if name == "localhost" or name.endswith((".localhost", ".local", ".internal")):
        return True
    try:
        address = ipaddress.ip_address(name)
    except ValueError:
        return False
    return not address.is_global


def is_importable_url(url_string: str | None) -> bool:
    """True for http(s) URLs, or bare hosts, with a dotted public host name."""
    trimmed = (url_string or "").strip()
    if not trimmed or re.search(r"\s", trimmed):
        return False
    try:
        parsed = urlparse(trimmed if re.match(r"https?://", trimmed, re.I) else "https://" + trimmed)
        host = parsed.hostname or ""
    except ValueError:
        return False
    if parsed.scheme.lower() not in ("http", "https"):
        return False
    return "." in host.strip(".") and not is_private_host(host)


def _clean_path(pathname: str) -> str:
    path = re.sub(r"/products/?", "/", pathname, flags=re.I)
    path = re.sub(r"\.html$", "", path, flags=re.I)
    path = re.sub(r"/+", "/", path)
    return path.rstrip("/")


def _slug_to_words(slug: str) -> List[str]:
    return unquote(slug.replace("-", " ")).split()


def parse_seed_from_import_url(url_string: str | None) -> UrlPrefill:
    """
    Best-effort prefill from a vendor product URL.

    Never raises; fields stay blank when the URL cannot be parsed.
    """
    trimmed = (url_string or "").strip()
    out = UrlPrefill()
    if not trimmed:
        return out

    try:
        parsed = urlparse(trimmed if trimmed.startswith("http") else "https://" + trimmed)
        if not parsed.hostname:
            return out
    except ValueError:
        return out

    out.source_url = parsed.geturl()
    out.image_fallback_url = image_fallback_url(out.source_url)
    out.vendor = vendor_from_url(out.source_url)

    pathname = _clean_path(parsed.path)
    parts = [p for p in pathname.split("/") if p]
    combined_slug = " ".join(parts)

    if parts:
        last_slug = parts[-1]
        words = [w for w in _slug_to_words(last_slug) if not w.isdigit()]
        if words:
            if out.vendor == "Mary's Heirloom Seeds":
                out.name = to_title_case(words[-1])
                if len(words) > 1:
                    out.variety = to_title_case(" ".join(words[:-1]))
            else:
                out.name = to_title_case(words[0])
                if len(words) > 1:
                    out.variety = to_title_case(" ".join(words[1:]))
        days = _DAYS_PATTERN.search(last_slug) or _DAYS_PATTERN.search(pathname)
        if days:
            out.harvest_days = int(days.group(1))

    if len(parts) >= 2 and not out.variety:
        decoded = unquote(parts[-2].replace("-", " "))
        if decoded and not decoded.isdigit():
            out.variety = to_title_case(decoded)

    params = parse_qs(parsed.query)
    if params.get("name", [""])[0]:
        out.name = to_title_case(params["name"][0])
    if params.get("variety", [""])[0]:
        out.variety = to_title_case(params["variety"][0])
    if params.get("vendor", [""])[0]:
        out.vendor = params["vendor"][0]
    harvest_param = params.get("harvest_days", [""])[0]
    if harvest_param.isdigit():
        out.harvest_days = int(harvest_param)

    for text in (combined_slug, out.name, out.variety):
        for tag in tags_from_text(text):
            if tag not in out.tags:
                out.tags.append(tag)

    has_details = bool(out.name or out.variety or out.harvest_days or out.tags)
    out.details_blocked = not has_details
    return out
