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

from import_pipeline import vendors


class VendorKeyTest(unittest.TestCase):
    def test_suffix_variants_share_a_key(self):
        keys = {
            vendors.normalize_vendor_key("Territorial Seed"),
            vendors.normalize_vendor_key("Territorial Seed Company"),
            vendors.normalize_vendor_key("TerritorialSeed"),
        }
        self.assertEqual(keys, {"territorial"})

    def test_punctuation_is_ignored(self):
        self.assertEqual(vendors.normalize_vendor_key("Johnny's Selected Seeds"), "johnnys")

    def test_blank(self):
        self.assertEqual(vendors.normalize_vendor_key(None), "")
        self.assertEqual(vendors.normalize_vendor_key("  "), "")


class CanonicalDisplayTest(unittest.TestCase):
    def test_known_vendor(self):
        self.assertEqual(vendors.to_canonical_display("baker creek"), "Baker Creek Heirloom Seeds")
        self.assertEqual(vendors.to_canonical_display("Johnnys"), "Johnny's Selected Seeds")

    def test_unknown_vendor_is_kept(self):
        self.assertEqual(vendors.to_canonical_display(" Local Farm "), "Local Farm")
        self.assertEqual(vendors.to_canonical_display(None), "")

    def test_pick_prefers_longest_unknown_variant(self):
        self.assertEqual(
            vendors.pick_canonical_vendor_display(["Foo Seeds", "Foo Seed Co", None]),
            "Foo Seed Co",
        )
        self.assertEqual(vendors.pick_canonical_vendor_display([" ", None]), "")

    def test_dedupe_for_suggestions(self):
        self.assertEqual(
            vendors.dedupe_vendors_for_suggestions(
                ["Johnny's Selected Seeds", "johnnys", "Zeta Farm", "Baker Creek", " ", None]
            ),
            ["Baker Creek Heirloom Seeds", "Johnny's Selected Seeds", "Zeta Farm"],
        )


class VendorFromUrlTest(unittest.TestCase):
    def test_known_hosts(self):
        self.assertEqual(
            vendors.vendor_from_url("https://www.rareseeds.com/tomato-cherokee-purple"),
            "Rare Seeds",
        )
        self.assertEqual(
            vendors.vendor_from_url("johnnyseeds.com/vegetables/beans"),
            "Johnny's Selected Seeds",
        )

    def test_unknown_host_uses_first_label(self):
        self.assertEqual(vendors.vendor_from_url("https://www.green-acres.com/p/1"), "Green Acres")

    def test_blank(self):
        self.assertEqual(vendors.vendor_from_url(""), "")

    def test_malformed_url(self):
        self.assertEqual(vendors.vendor_from_url("http://[bad"), "")


if __name__ == "__main__":
    unittest.main()
