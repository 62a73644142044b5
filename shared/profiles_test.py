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
from typing import Optional

from shared import profiles


@dataclass
class FakeProfile:
    id: str
    name: Optional[str]
    variety_name: Optional[str] = None


class ProfilesTest(unittest.TestCase):
    def test_status_labels(self):
        self.assertEqual(profiles.profile_status_label("in_stock"), "In stock")
        self.assertEqual(profiles.profile_status_label("vault"), "In storage")
        self.assertEqual(profiles.profile_status_label("custom_state"), "Custom State")

    def test_display_name(self):
        self.assertEqual(
            profiles.display_name("Tomato", "Cherokee Purple"), "Tomato (Cherokee Purple)"
        )
        self.assertEqual(profiles.display_name("Basil", None), "Basil")
        self.assertEqual(profiles.display_name(" Basil ", "  "), "Basil")

    def test_canonical_match_ignores_punctuation_and_modifiers(self):
        existing = [
            FakeProfile("1", "Pepper", "Jalapeno"),
            FakeProfile("2", "Tomato", "Dragon's Egg"),
        ]
        match = profiles.find_existing_profile_by_canonical(existing, "tomato", "Dragons Egg F1")
        self.assertIsNotNone(match)
        self.assertEqual(match.id, "2")

    def test_blank_name_matches_unknown(self):
        existing = [FakeProfile("1", "Unknown")]
        match = profiles.find_existing_profile_by_canonical(existing, "  ", None)
        self.assertEqual(match.id, "1")

    def test_variety_must_match(self):
        existing = [FakeProfile("1", "Tomato", "Cherokee Purple")]
        self.assertIsNone(
            profiles.find_existing_profile_by_canonical(existing, "Tomato", "Brandywine")
        )
        self.assertIsNone(profiles.find_existing_profile_by_canonical(existing, "Tomato", None))


if __name__ == "__main__":
    unittest.main()
