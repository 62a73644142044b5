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

from import_pipeline import golden_record
from shared.types import ScrapedSeed


def _seed(seed_id, vendor, variety, key, tags=()):
    return ScrapedSeed(
        id=seed_id,
        source_url=f"https://example.com/{seed_id}",
        name="Tomato",
        variety=variety,
        clean_variety=variety,
        vendor=vendor,
        identity_key=key,
        tags=list(tags),
    )


class GoldenRecordTest(unittest.TestCase):
    def setUp(self):
        self.rare = _seed("a", "Rare Seeds", "Cherokee Purple Organic", "tomato_cherokeepurple", ["Organic"])
        self.johnnys = _seed("b", "Johnny's Selected Seeds", "Cherokee Purple", "tomato_cherokeepurple", ["Heirloom"])
        self.eden = _seed("c", "Eden Brothers", "Mystery Mix", "")

    def test_vendor_matches_priority(self):
        self.assertTrue(golden_record.vendor_matches_priority("Johnny's Selected Seeds", "Johnny's"))
        self.assertFalse(golden_record.vendor_matches_priority("Eden Brothers", "Johnny's"))
        self.assertFalse(golden_record.vendor_matches_priority(None, "Rare Seeds"))

    def test_highest_priority_vendor_wins(self):
        items = [self.rare, self.johnnys]
        self.assertEqual(
            golden_record.golden_variety_for_group(items, "tomato_cherokeepurple"),
            "Cherokee Purple",
        )
        self.assertEqual(
            golden_record.golden_vendor_for_group(items, "tomato_cherokeepurple"),
            "Johnny's Selected Seeds",
        )
        self.assertIs(golden_record.golden_source_item(items, "tomato_cherokeepurple"), self.johnnys)

    def test_group_without_priority_vendor_uses_first_item(self):
        first = _seed("x", "Eden Brothers", "Brandywine", "tomato_brandywine")
        second = _seed("y", "Local Farm", "Brandywine Red", "tomato_brandywine")
        self.assertEqual(
            golden_record.golden_variety_for_group([first, second], "tomato_brandywine"),
            "Brandywine",
        )
        self.assertIs(golden_record.golden_source_item([first, second], "tomato_brandywine"), first)

    def test_blank_key_has_no_group(self):
        self.assertIsNone(golden_record.golden_variety_for_group([self.rare], ""))
        self.assertIsNone(golden_record.golden_vendor_for_group([self.rare], None))
        self.assertIsNone(golden_record.golden_source_item([self.rare], "missing"))

    def test_merge_import_items(self):
        groups = golden_record.merge_import_items([self.rare, self.eden, self.johnnys])
        self.assertEqual(len(groups), 2)

        merged, solo = groups
        self.assertEqual(merged.identity_key, "tomato_cherokeepurple")
        self.assertEqual([i.id for i in merged.items], ["a", "b"])
        self.assertEqual(merged.golden_variety, "Cherokee Purple")
        self.assertEqual(merged.golden_source_id, "b")
        self.assertEqual(merged.tags, ["Organic", "Heirloom"])

        self.assertEqual(solo.identity_key, "")
        self.assertEqual(solo.golden_source_id, "c")
        self.assertEqual(solo.golden_vendor, "Eden Brothers")

    def test_items_without_keys_are_never_merged(self):
        other = _seed("d", "Eden Brothers", "Mystery Mix", "")
        groups = golden_record.merge_import_items([self.eden, other])
        self.assertEqual([g.golden_source_id for g in groups], ["c", "d"])


if __name__ == "__main__":
    unittest.main()
