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
Sowing schedule reference and sowing-window math.

The reference table covers USDA zone 10b (coastal southern California). It is
the fallback whenever a profile has no planting window of its own.
"""

import re
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, List, Optional, Protocol

from shared.types import ScheduleDefaults

MONTH_ABBREVS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)

# Scraped growing details longer than this are paragraphs, not data points.
MAX_DETAIL_LEN = 25


@dataclass(frozen=True)
class PlantingData:
    sowing_method: str
    planting_window: str
    sun: Optional[str] = None
    spacing: Optional[str] = None
    germination_time: Optional[str] = None
    days_to_maturity: Optional[str] = None


def _p(method, window, sun=None, spacing=None, germ=None, maturity=None) -> PlantingData:
    return PlantingData(method, window, sun, spacing, germ, maturity)


ZONE_10B_SCHEDULE: Dict[str, PlantingData] = {
    # Warm season edibles
    "Tomato": _p("Start Indoors / Transplant", "Spring: Feb-May (Soil 72°F+)", "Full Sun", "24-36 inches", "7-14 days", "75-90 days"),
    "Pepper": _p("Start Indoors / Transplant", "Spring: Feb-Apr", "Full Sun", "12-18 inches", "10-21 days", "70-90 days"),
    "Eggplant": _p("Start Indoors / Transplant", "Spring: Mar-May", "Full Sun", "18-24 inches", "7-14 days", "70-85 days"),
    "Squash": _p("Direct Sow", "Spring: Mar-Aug", "Full Sun", "24-36 inches", "7-10 days", "50-60 days"),
    "Zucchini": _p("Direct Sow", "Spring: Mar-Aug", "Full Sun", "24-36 inches", None, "45-55 days"),
    "Cucumber": _p("Direct Sow or Transplant", "Spring: Mar-Jul", "Full Sun", "12 inches", "3-10 days", "55-70 days"),
    "Melon": _p("Direct Sow", "Spring: Mar-Jun", "Full Sun", "36-48 inches", None, "70-100 days"),
    "Watermelon": _p("Direct Sow", "Spring: Mar-Jun", "Full Sun", "36-60 inches", None, "80-100 days"),
    "Corn": _p("Direct Sow", "Spring: Mar-Jul", "Full Sun", "12 inches", "7-14 days", "75-90 days"),
    "Beans": _p("Direct Sow", "Spring: Mar-Aug (Soil 75-85°F)", "Full Sun", "4-6 inches", "7-10 days", "50-65 days"),
    "Sweet Potato": _p("Transplant (Slips)", "Late Spring: Apr-Jun", "Full Sun", "12-18 inches", None, "90-120 days"),
    "Okra": _p("Direct Sow", "Spring: Apr-Jul", "Full Sun", "12-18 inches", "10-14 days", "50-65 days"),
    "Pumpkin": _p("Direct Sow", "Spring/Summer: Apr-Jun", "Full Sun", "36-60 inches", None, "90-120 days"),
    "Tomatillo": _p("Start Indoors / Transplant", "Spring: Feb-Apr", "Full Sun", "24-36 inches", "7-14 days", "75-100 days"),
    # Cool season edibles
    "Lettuce": _p("Direct Sow / Transplant", "Fall/Spring: Sep-May", "Part Shade / Full Sun", "6-10 inches", "7-14 days", "45-60 days"),
    "Kale": _p("Direct Sow / Transplant", "Fall/Spring: Sep-May", "Full Sun / Part Shade", "12-18 inches", "5-10 days", "50-65 days"),
    "Swiss Chard": _p("Direct Sow / Transplant", "Year Round", "Full Sun / Part Shade", "8-12 inches", None, "50-60 days"),
    "Spinach": _p("Direct Sow", "Coolest Months: Oct-Feb", "Part Shade", "4-6 inches", "7-14 days", "40-50 days"),
    "Arugula": _p("Direct Sow", "Sep-May", "Full Sun / Part Shade", "4-6 inches", None, "30-40 days"),
    "Carrot": _p("Direct Sow", "Year-Round (Avoid peak heat Jul/Aug)", "Full Sun", "2-3 inches", "14-21 days", "60-80 days"),
    "Beet": _p("Direct Sow", "Fall/Spring: Sep-May", "Full Sun", "3-4 inches", "5-10 days", "50-70 days"),
    "Radish": _p("Direct Sow", "Year-Round (Except peak heat)", "Full Sun", "2-3 inches", "3-5 days", "25-30 days"),
    "Broccoli": _p("Start Indoors / Transplant", "Fall/Winter: Aug-Feb", "Full Sun", "18-24 inches", "7-10 days", "60-80 days"),
    "Cauliflower": _p("Start Indoors / Transplant", "Fall/Winter: Aug-Jan", "Full Sun", "18-24 inches", None, "60-80 days"),
    "Brussels Sprouts": _p("Start Indoors / Transplant", "Fall: Aug-Oct", "Full Sun", "18-24 inches", None, "90-110 days"),
    "Cabbage": _p("Start Indoors / Transplant", "Fall/Winter: Aug-Feb", "Full Sun", "12-18 inches", "5-10 days", "70-90 days"),
    "Fennel": _p("Direct Sow or Transplant", "Fall/Spring: Sep-Nov, Feb-Mar", "Full Sun", "8-12 inches", "7-14 days", "65-90 days"),
    "Kohlrabi": _p("Direct Sow / Transplant", "Fall/Winter: Sep-Feb", "Full Sun", "6-8 inches", "5-10 days", "45-60 days"),
    "Leeks": _p("Start Indoors / Transplant", "Fall/Winter: Oct-Feb", "Full Sun", "6 inches", "10-14 days", "90-120 days"),
    "Bok Choy": _p("Direct Sow / Transplant", "Fall/Spring: Sep-Nov, Feb-Apr", "Full Sun / Part Shade", "6-10 inches", "5-7 days", "45-60 days"),
    "Turnips": _p("Direct Sow", "Fall/Winter: Sep-Feb", "Full Sun", "3-4 inches", "5-10 days", "40-60 days"),
    "Artichoke": _p("Transplant", "Fall/Winter: Oct-Feb", "Full Sun", "36-48 inches"),
    "Peas": _p("Direct Sow", "Fall/Winter: Sep-Feb", "Full Sun", "2-4 inches", "7-14 days", "60-70 days"),
    "Onion": _p("Start Indoors / Transplant", "Fall: Oct-Jan", "Full Sun", "4-6 inches", None, "100-120 days"),
    "Garlic": _p("Direct Sow (Cloves)", "Fall: Oct-Nov", "Full Sun", "4-6 inches", None, "240 days"),
    "Asparagus": _p("Transplant (Crowns) or Seed", "Winter/Spring: Jan-Mar", "Full Sun", "12-18 inches"),
    "Potato": _p("Direct Sow (Tubers)", "Fall: Sep-Nov", "Full Sun", "12 inches", None, "90-110 days"),
    # Herbs
    "Basil": _p("Direct Sow / Transplant", "Spring/Summer: Mar-Sep", "Full Sun", "10-12 inches", "5-10 days"),
    "Cilantro": _p("Direct Sow", "Fall/Winter: Oct-Mar", "Full Sun / Part Shade", "4-8 inches", "7-10 days"),
    "Dill": _p("Direct Sow", "Fall/Winter: Oct-Mar", "Full Sun", "8-12 inches", "10-14 days"),
    "Parsley": _p("Direct Sow or Transplant", "Year Round", "Full Sun / Part Shade", "6-10 inches", "14-28 days"),
    "Chives": _p("Direct Sow or Transplant", "Fall/Spring: Sep-Nov, Jan-Mar", "Full Sun", "6-8 inches", "10-14 days"),
    # Flowers
    "Celosia": _p("Start Indoors / Transplant", "Spring: Mar-Jun", "Full Sun", "9-12 inches", "7-14 days", "90-100 days"),
    "Zinnia": _p("Direct Sow / Transplant", "Spring/Summer: Mar-Aug", "Full Sun", "9-12 inches", "5-7 days"),
    "Sunflower": _p("Direct Sow", "Spring/Summer: Mar-Jul", "Full Sun", "18-24 inches", "7-14 days"),
    "Cosmos": _p("Direct Sow", "Spring/Summer: Mar-Aug", "Full Sun", "9-12 inches", "5-10 days"),
    "Marigold": _p("Direct Sow / Transplant", "Spring/Summer: Mar-Aug", "Full Sun", "8-12 inches", "5-7 days"),
    "Dahlia": _p("Tubers / Seeds", "Spring: Mar-May", "Full Sun", "12-24 inches"),
    "Poppy": _p("Direct Sow", "Fall: Oct-Dec", "Full Sun", "6-8 inches", "10-20 days"),
    "Nasturtium": _p("Direct Sow", "Spring/Summer: Mar-Jun", "Full Sun / Part Shade", "8-12 inches", "7-14 days", "50-60 days"),
    "Calendula": _p("Direct Sow / Transplant", "Fall/Spring: Sep-Nov, Feb-Apr", "Full Sun", "8-12 inches", "7-14 days", "45-60 days"),
    "Lisianthus": _p("Start Indoors (Very Early)", "Start: Dec-Jan, Transplant: Mar-Apr", "Full Sun", "6-8 inches", "14-20 days"),
    "Snapdragon": _p("Direct Sow or Transplant", "Fall/Spring: Sep-Mar", "Full Sun", "6-10 inches", "10-14 days"),
    "Strawberry": _p("Transplant", "Fall/Winter: Dec-Feb", "Full Sun", "12 inches"),
}

_MONTH_ALT = "|".join(MONTH_ABBREVS)
_RANGE_PATTERN = re.compile(
    rf"\b({_MONTH_ALT})[a-z]*\s*[-–—]\s*(?:({_MONTH_ALT})[a-z]*|(\d{{1,2}})\b)",
    re.IGNORECASE,
)
_YEAR_ROUND_PATTERN = re.compile(r"year[\s-]*round", re.IGNORECASE)


class ProfileLike(Protocol):
    name: Optional[str]
    planting_window: Optional[str]


def to_schedule_key(name: str | None) -> str:
    """Title-cases a plant name ("tomato" -> "Tomato") to match the reference table keys."""
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), (name or "").strip())


def schedule_for_plant(plant_name: str | None) -> Optional[PlantingData]:
    """Exact title-case match, then first word, then longest contained key."""
    key = to_schedule_key(plant_name)
    if not key:
        return None
    if key in ZONE_10B_SCHEDULE:
        return ZONE_10B_SCHEDULE[key]
    first_word = key.split()[0]
    if first_word in ZONE_10B_SCHEDULE:
        return ZONE_10B_SCHEDULE[first_word]
    for candidate in sorted(ZONE_10B_SCHEDULE, key=len, reverse=True):
        if candidate in key:
            return ZONE_10B_SCHEDULE[candidate]
    return None


def _month_index(abbrev: str) -> int:
    return [m.lower() for m in MONTH_ABBREVS].index(abbrev[:3].lower())


def sow_months_from_window(planting_window: str | None) -> List[bool]:
    """
    Twelve-entry sow mask (January first) from a planting window string.

    Handles "Mon-Mon" and "Mon-N" ranges, several ranges per string, ranges
    that wrap past December, and "Year Round".
    """
    months = [False] * 12
    window = (planting_window or "").strip()
    if not window:
        return months
    if _YEAR_ROUND_PATTERN.search(window):
        return [True] * 12

    for match in _RANGE_PATTERN.finditer(window):
        start = _month_index(match.group(1))
        if match.group(2):
            end = _month_index(match.group(2))
        else:
            end = min(11, int(match.group(3)) - 1)
            if end < 0:
                continue
        i = start
        while True:
            months[i] = True
            if i == end:
                break
            i = (i + 1) % 12
    return months


def sow_months_for_profile(profile: ProfileLike) -> List[bool]:
    window = (profile.planting_window or "").strip()
    if window:
        return sow_months_from_window(window)
    schedule = _schedule_for_profile_name(profile.name)
    return sow_months_from_window(schedule.planting_window if schedule else None)


def is_plantable_in_month(profile: ProfileLike, month_index: int) -> bool:
    """month_index is 0-based (0 = January)."""
    if not 0 <= month_index < 12:
        return False
    return sow_months_for_profile(profile)[month_index]


def sow_months_label(months: List[bool]) -> Optional[str]:
    """Collapse a 12-month mask into "Jan–Mar, Oct" style ranges."""
    indices = [i for i, on in enumerate(months[:12]) if on]
    if not indices:
        return None
    runs: List[List[int]] = [[indices[0]]]
    for i in indices[1:]:
        if i == runs[-1][-1] + 1:
            runs[-1].append(i)
        else:
            runs.append([i])
    return ", ".join(
        f"{MONTH_ABBREVS[r[0]]}–{MONTH_ABBREVS[r[-1]]}" if len(r) >= 2 else MONTH_ABBREVS[r[0]]
        for r in runs
    )


def _schedule_for_profile_name(name: str | None) -> Optional[PlantingData]:
    first_word = (name or "").strip().split()
    return schedule_for_plant(first_word[0] if first_word else "")


def sowing_window_label(profile: ProfileLike) -> Optional[str]:
    window = (profile.planting_window or "").strip()
    if window:
        return window
    schedule = _schedule_for_profile_name(profile.name)
    if schedule and schedule.planting_window.strip():
        return schedule.planting_window.strip()
    return sow_months_label(sow_months_for_profile(profile))


def parse_days_to_maturity(value: str | None) -> Optional[int]:
    """Days from a maturity string: "75-90 days" -> 83 (rounded midpoint), "240 days" -> 240."""
    if not value or not value.strip():
        return None
    rng = re.search(r"(\d+)\s*[-–]\s*(\d+)", value)
    if rng:
        total = int(rng.group(1)) + int(rng.group(2))
        return (total + 1) // 2
    single = re.search(r"(\d+)", value)
    return int(single.group(1)) if single else None


def _usable_detail(value) -> bool:
    if value is None or not isinstance(value, str):
        return False
    text = value.strip()
    return bool(text) and bool(re.search(r"\d", text)) and len(text) <= MAX_DETAIL_LEN


def apply_schedule_to_profile(
    plant_name: str | None,
    *,
    sun: str | None = None,
    plant_spacing: str | None = None,
    days_to_germination: str | None = None,
    harvest_days: int | None = None,
) -> ScheduleDefaults:
    """
    Merge scraped biology with the reference schedule.

    Sowing method and planting window always come from the schedule. Scraped
    sun/spacing/germination win only when they look like data points.
    """
    schedule = schedule_for_plant(plant_name)
    return ScheduleDefaults(
        sun=sun.strip() if _usable_detail(sun) else (schedule.sun if schedule else None),
        plant_spacing=(
            plant_spacing.strip()
            if _usable_detail(plant_spacing)
            else (schedule.spacing if schedule else None)
        ),
        days_to_germination=(
            days_to_germination.strip()
            if _usable_detail(days_to_germination)
            else (schedule.germination_time if schedule else None)
        ),
        harvest_days=(
            harvest_days
            if isinstance(harvest_days, int)
            else (parse_days_to_maturity(schedule.days_to_maturity) if schedule else None)
        ),
        sowing_method=schedule.sowing_method if schedule else None,
        planting_window=schedule.planting_window if schedule else None,
    )


def expected_harvest_date(sown_date: date, harvest_days: int | None) -> Optional[date]:
    if harvest_days is None or harvest_days <= 0:
        return None
    return sown_date + timedelta(days=harvest_days)


def suggests_greenhouse(sowing_method: str | None) -> bool:
    """True when the sowing method points at starting indoors."""
    method = (sowing_method or "").lower()
    return bool(re.search(r"indoors|greenhouse|transplant", method)) and not re.search(
        r"direct sow|direct_sow", method
    )
