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

import unittest
from dataclasses import dataclass
from datetime import date
from typing import Optional

from shared import schedule


@dataclass
class FakeProfile:
    name: Optional[str]
    planting_window: Optional[str] = None


def _months(*abbrevs):
    return [m in abbrevs for m in schedule.MONTH_ABBREVS]


class ScheduleLookupTest(unittest.TestCase):
    def test_exact_match_is_case_insensitive(self):
        self.assertIs(schedule.schedule_for_plant("tomato"), schedule.ZONE_10B_SCHEDULE["Tomato"])

    def test_first_word_match(self):
        self.assertIs(
            schedule.schedule_for_plant("Tomato Cherry"), schedule.ZONE_10B_SCHEDULE["Tomato"]
        )

    def test_contained_key_match(self):
        self.assertIs(
            schedule.schedule_for_plant("Cherry Tomato"), schedule.ZONE_10B_SCHEDULE["Tomato"]
        )
        self.assertIs(
            schedule.schedule_for_plant("Sweet Basil"), schedule.ZONE_10B_SCHEDULE["Basil"]
        )

    def test_multi_word_key(self):
        self.assertEqual(schedule.to_schedule_key("sweet potato"), "Sweet Potato")
        self.assertIs(
            schedule.schedule_for_plant("sweet potato"),
            schedule.ZONE_10B_SCHEDULE["Sweet Potato"],
        )

    def test_unknown_or_blank(self):
        self.assertIsNone(schedule.schedule_for_plant("Xyzzy"))
        self.assertIsNone(schedule.schedule_for_plant(""))
        self.assertIsNone(schedule.schedule_for_plant(None))


class SowMonthsTest(unittest.TestCase):
    def test_simple_range(self):
        self.assertEqual(
            schedule.sow_months_from_window("Spring: Feb-May (Soil 72°F+)"),
            _months("Feb", "Mar", "Apr", "May"),
        )

    def test_range_wraps_past_december(self):
        self.assertEqual(
            schedule.sow_months_from_window("Coolest Months: Oct-Feb"),
            _months("Oct", "Nov", "Dec", "Jan", "Feb"),
        )

    def test_several_ranges_are_unioned(self):
        self.assertEqual(
            schedule.sow_months_from_window("Fall/Spring: Sep-Nov, Feb-Mar"),
            _months("Sep", "Oct", "Nov", "Feb", "Mar"),
        )

    def test_month_to_number_range(self):
        self.assertEqual(
            schedule.sow_months_from_window("Mar-6"),
            _months("Mar", "Apr", "May", "Jun"),
        )

    def test_full_month_names_and_en_dash(self):
        self.assertEqual(
            schedule.sow_months_from_window("September – November"),
            _months("Sep", "Oct", "Nov"),
        )

    def test_year_round(self):
        self.assertEqual(schedule.sow_months_from_window("Year Round"), [True] * 12)
        self.assertEqual(
            schedule.sow_months_from_window("Year-Round (Avoid peak heat Jul/Aug)"),
            [True] * 12,
        )

    def test_blank_or_unparseable(self):
        self.assertEqual(schedule.sow_months_from_window(""), [False] * 12)
        self.assertEqual(schedule.sow_months_from_window(None), [False] * 12)
        self.assertEqual(schedule.sow_months_from_window("whenever"), [False] * 12)

    def test_profile_window_wins_over_reference(self):
        profile = FakeProfile(name="Tomato", planting_window="Oct-Nov")
        self.assertEqual(schedule.sow_months_for_profile(profile), _months("Oct", "Nov"))

    def test_profile_falls_back_to_reference(self):
        profile = FakeProfile(name="Tomato")
        self.assertEqual(
            schedule.sow_months_for_profile(profile), _months("Feb", "Mar", "Apr", "May")
        )

    def test_is_plantable_in_month(self):
        profile = FakeProfile(name="Tomato")
        self.assertTrue(schedule.is_plantable_in_month(profile, 2))
        self.assertFalse(schedule.is_plantable_in_month(profile, 8))
        self.assertFalse(schedule.is_plantable_in_month(profile, 12))
        self.assertFalse(schedule.is_plantable_in_month(profile, -1))


class SowMonthsLabelTest(unittest.TestCase):
    def test_runs_and_singles(self):
        self.assertEqual(
            schedule.sow_months_label(_months("Jan", "Feb", "Mar", "Oct")), "Jan–Mar, Oct"
        )

    def test_all_months(self):
        self.assertEqual(schedule.sow_months_label([True] * 12), "Jan–Dec")

    def test_no_months(self):
        self.assertIsNone(schedule.sow_months_label([False] * 12))

    def test_december_and_january_are_not_merged(self):
        self.assertEqual(schedule.sow_months_label(_months("Jan", "Dec")), "Jan, Dec")

    def test_sowing_window_label_order(self):
        self.assertEqual(
            schedule.sowing_window_label(FakeProfile(name="Tomato", planting_window=" Mar-Apr ")),
            "Mar-Apr",
        )
        self.assertEqual(
            schedule.sowing_window_label(FakeProfile(name="Tomato")),
            "Spring: Feb-May (Soil 72°F+)",
        )
        self.assertIsNone(schedule.sowing_window_label(FakeProfile(name="Xyzzy")))


class ScheduleDefaultsTest(unittest.TestCase):
    def test_parse_days_to_maturity(self):
        self.assertEqual(schedule.parse_days_to_maturity("75-90 days"), 83)
        self.assertEqual(schedule.parse_days_to_maturity("50-55 days"), 53)
        self.assertEqual(schedule.parse_days_to_maturity("240 days"), 240)
        self.assertIsNone(schedule.parse_days_to_maturity("n/a"))
        self.assertIsNone(schedule.parse_days_to_maturity(""))

    def test_reference_fills_everything(self):
        defaults = schedule.apply_schedule_to_profile("Tomato")
        self.assertEqual(defaults.sowing_method, "Start Indoors / Transplant")
        self.assertEqual(defaults.planting_window, "Spring: Feb-May (Soil 72°F+)")
        self.assertEqual(defaults.sun, "Full Sun")
        self.assertEqual(defaults.plant_spacing, "24-36 inches")
        self.assertEqual(defaults.days_to_germination, "7-14 days")
        self.assertEqual(defaults.harvest_days, 83)

    def test_scraped_values_need_a_digit_and_short_length(self):
        defaults = schedule.apply_schedule_to_profile(
            "Tomato",
            sun="6+ hours direct",
            plant_spacing="Space plants generously apart, about 18 inches",
            days_to_germination="fast",
            harvest_days=70,
        )
        self.assertEqual(defaults.sun, "6+ hours direct")
        self.assertEqual(defaults.plant_spacing, "24-36 inches")
        self.assertEqual(defaults.days_to_germination, "7-14 days")
        self.assertEqual(defaults.harvest_days, 70)

    def test_unknown_plant_keeps_usable_scraped_values(self):
        defaults = schedule.apply_schedule_to_profile("Xyzzy", plant_spacing="10 inches")
        self.assertEqual(defaults.plant_spacing, "10 inches")
        self.assertIsNone(defaults.sun)
        self.assertIsNone(defaults.sowing_method)
        self.assertIsNone(defaults.planting_window)
        self.assertIsNone(defaults.harvest_days)

    def test_expected_harvest_date(self):
        self.assertEqual(
            schedule.expected_harvest_date(date(2025, 3, 1), 83), date(2025, 5, 23)
        )
        self.assertIsNone(schedule.expected_harvest_date(date(2025, 3, 1), None))
        self.assertIsNone(schedule.expected_harvest_date(date(2025, 3, 1), 0))

    def test_suggests_greenhouse(self):
        self.assertTrue(schedule.suggests_greenhouse("Start Indoors / Transplant"))
        self.assertFalse(schedule.suggests_greenhouse("Direct Sow"))
        self.assertFalse(schedule.suggests_greenhouse("Direct Sow / Transplant"))
        self.assertFalse(schedule.suggests_greenhouse(None))


if __name__ == "__main__":
    unittest.main()
