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

import logging
import re
from dataclasses import dataclass, field
from typing import List, Tuple

import requests

from import_pipeline import fetch_utils
from import_pipeline.identity import (
    clean_variety_for_display,
    identity_key_from_variety,
    parse_variety_with_modifiers,
    strip_plant_from_variety,
    strip_variety_suffixes,
)
from import_pipeline.url_parse import parse_seed_from_import_url, tags_from_text
from import_pipeline.vendors import to_canonical_display
from shared.schedule import ZONE_10B_SCHEDULE, apply_schedule_to_profile
from shared.string_utils import collapse_whitespace, to_title_case
from shared.types import ScrapedSeed
from shared.utils import get_unique_id

logger = logging.getLogger(__name__)

# "Cherokee Purple Tomato Seeds | Baker Creek" -> "Cherokee Purple Tomato Seeds"
_TITLE_SEPARATORS = re.compile(r"\s+[|–—]\s+|\s+-\s+")


@dataclass
class ImportResult:
    seed: ScrapedSeed
    status_code: int
    trace: List[str] = field(default_factory=list)

    @property
    def trace_text(self) -> str:
        return "; ".join(self.trace)


def strip_title_noise(title: str | None) -> str:
    parts = _TITLE_SEPARATORS.split((title or "").strip())
    return strip_variety_suffixes(parts[0] if parts else "")


def parse_plant_variety_from_title(title: str | None) -> Tuple[str, str]:
    """
    Splits a product title into (plant, variety).

    A known plant name anywhere in the title wins; otherwise the last word is
    taken as the plant, which is how most vendors order their titles.
    """
    cleaned = strip_title_noise(title)
    if not cleaned:
        return "", ""
    lower = cleaned.lower()
    best_key, best_start, best_end = None, -1, -1
    for key in sorted(ZONE_10B_SCHEDULE, key=len, reverse=True):
        for match in re.finditer(rf"(?<!\w){re.escape(key.lower())}s?(?!\w)", lower):
            if match.end() > best_end:
                best_key, best_start, best_end = key, match.start(), match.end()
    if best_key:
        before = cleaned[:best_start].strip()
        after = cleaned[best_end:].strip(" ,-")
        variety = before or after
        return best_key, to_title_case(collapse_whitespace(variety))

    words = cleaned.split()
    if len(words) == 1:
        return to_title_case(words[0]), ""
    return to_title_case(words[-1]), to_title_case(" ".join(words[:-1]))


def _merge_tags(*groups: List[str]) -> List[str]:
    tags: List[str] = []
    for group in groups:
        for tag in group:
            if tag and tag not in tags:
                tags.append(tag)
    return tags


def import_seed_from_url(
    url: str, timeout: float = fetch_utils.REQUEST_TIMEOUT
) -> ImportResult:
    """
    Scrapes one vendor product URL into a ScrapedSeed.

    Never raises for network or parse problems: the URL slug is the fallback
    source and the reason ends up in the trace. The trace is never empty.
    """
    prefill = parse_seed_from_import_url(url)
    trace: List[str] = []
    seed = ScrapedSeed(
        id=get_unique_id(),
        source_url=prefill.source_url or (url or "").strip(),
        name=prefill.name,
        variety=prefill.variety,
        vendor=to_canonical_display(prefill.vendor),
        tags=list(prefill.tags),
        harvest_days=prefill.harvest_days,
        details_blocked=prefill.details_blocked,
    )
    if not prefill.source_url:
        trace.append("invalid url")
        return ImportResult(seed=seed, status_code=0, trace=trace)

    status_code = 0
    meta = None
    try:
        logger.info("Import pipeline: fetching %s", prefill.source_url)
        page = fetch_utils.fetch_page(prefill.source_url, timeout=timeout)
        status_code = page.status_code
        trace.append(f"fetch {status_code}")
        if 200 <= status_code < 300:
            meta = fetch_utils.extract_page_metadata(page.html, page.url)
        else:
            trace.append("using url slug")
    except requests.RequestException as e:
        logger.warning("Import pipeline: fetch failed for %s: %s", prefill.source_url, e)
        trace.append(f"fetch failed: {type(e).__name__}")
        trace.append("using url slug")

    if meta:
        title = meta.product_name or meta.title
        if title:
            plant, variety = parse_plant_variety_from_title(title)
            if plant:
                seed.name, seed.variety = plant, variety or seed.variety
                trace.append(f"title: {collapse_whitespace(title)[:80]}")
        if meta.site_name:
            seed.vendor = to_canonical_display(meta.site_name)
        seed.hero_image_url = meta.image_url
        seed.image_candidates = meta.image_urls
        seed.scientific_name = meta.scientific_name
        seed.description = meta.description
        if seed.harvest_days is None and meta.maturity_days:
            seed.harvest_days = meta.maturity_days
        seed.tags = _merge_tags(
            seed.tags, tags_from_text(title), tags_from_text(meta.description)
        )
        seed.details_blocked = not (seed.name or seed.variety)

    variety = strip_plant_from_variety(seed.variety, seed.name)
    _, modifier_tags = parse_variety_with_modifiers(variety)
    clean, display_tags = clean_variety_for_display(variety, seed.name)
    seed.variety = variety
    seed.clean_variety = clean
    seed.tags = _merge_tags(seed.tags, modifier_tags, display_tags)
    seed.identity_key = identity_key_from_variety(seed.name, clean)

    seed.schedule = apply_schedule_to_profile(
        seed.name,
        sun=meta.sun if meta else None,
        plant_spacing=meta.plant_spacing if meta else None,
        days_to_germination=meta.days_to_germination if meta else None,
        harvest_days=seed.harvest_days,
    )
    if seed.harvest_days is None:
        seed.harvest_days = seed.schedule.harvest_days

    trace.append(f"hero image: {'found' if seed.hero_image_url else 'none'}")
    trace.append(f"identity: {seed.identity_key or 'none'}")
    logger.info(
        "Import pipeline: %s -> %s (%s) status=%d",
        prefill.source_url,
        seed.name,
        seed.clean_variety,
        status_code,
    )
    return ImportResult(seed=seed, status_code=status_code, trace=trace)
