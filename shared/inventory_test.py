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

from shared import inventory
from shared.inventory import PacketUpdate


@dataclass
class FakePacket:
    id: str
    qty_status: int
    created_at: float
    is_archived: bool = False
    deleted_at: Optional[float] = None


class QtyLabelTest(unittest.TestCase):
    def test_round_half_up(self):
        self.assertEqual(inventory.round_half_up(2.5), 3)
        self.assertEqual(inventory.round_half_up(2.4), 2)
        self.assertEqual(inventory.round_half_up(-0.5), 0)

    def test_remaining_labels(self):
        self.assertEqual(inventory.qty_status_to_label(100), "Full")
        self.assertEqual(inventory.qty_status_to_label(50), "Half")
        self.assertEqual(inventory.qty_status_to_label(25), "Low")
        self.assertEqual(inventory.qty_status_to_label(0), "Empty")
        self.assertEqual(inventory.qty_status_to_label(37.5), "38%")

    def test_used_labels(self):
        self.assertEqual(inventory.used_percent_to_label(100), "Whole")
        self.assertEqual(inventory.used_percent_to_label(50), "Half")
        self.assertEqual(inventory.used_percent_to_label(25), "Some")
        self.assertEqual(inventory.used_percent_to_label(10), "10%")

    def test_standard_values_have_word_labels(self):
        for value in inventory.QTY_STANDARD_VALUES:
            self.assertFalse(inventory.qty_status_to_label(value).endswith("%"))
        for value in inventory.USED_STANDARD_VALUES:
            self.assertFalse(inventory.used_percent_to_label(value).endswith("%"))

    def test_clamp(self):
        self.assertEqual(inventory.clamp_qty(120), 100)
        self.assertEqual(inventory.clamp_qty(-5), 0)
        self.assertEqual(inventory.clamp_qty(49.5), 50)


class ConsumeSelectedPacketsTest(unittest.TestCase):
    def setUp(self):
        self.older = FakePacket("a", qty_status=50, created_at=1.0)
        self.newer = FakePacket("b", qty_status=100, created_at=2.0)

    def test_uses_share_of_what_is_left(self):
        updates, total = inventory.consume_selected_packets(
            [self.newer, self.older], ["a", "b"], {"a": 50, "b": 100}
        )
        self.assertEqual(
            updates,
            [PacketUpdate("a", 25, is_archived=False), PacketUpdate("b", 0, is_archived=True)],
        )
        self.assertAlmostEqual(total, 1.25)

    def test_unselected_and_zero_percent_are_skipped(self):
        updates, total = inventory.consume_selected_packets(
            [self.older, self.newer], ["a"], {"a": 0, "b": 100}
        )
        self.assertEqual(updates, [])
        self.assertEqual(total, 0)

    def test_archived_packets_are_not_consumed(self):
        self.older.is_archived = True
        updates, total = inventory.consume_selected_packets(
            [self.older], ["a"], {"a": 100}
        )
        self.assertEqual(updates, [])
        self.assertEqual(total, 0)


class DrawDownTest(unittest.TestCase):
    def test_decrement_floors_at_zero(self):
        self.assertEqual(inventory.decrement_packet(100, 25), 75)
        self.assertEqual(inventory.decrement_packet(30, 50), 0)

    def test_spills_into_next_packet(self):
        packets = [
            FakePacket("new", qty_status=100, created_at=2.0),
            FakePacket("old", qty_status=20, created_at=1.0),
        ]
        self.assertEqual(
            inventory.draw_down_fifo(packets, 50),
            [PacketUpdate("old", 0, is_archived=True), PacketUpdate("new", 70)],
        )

    def test_skips_empty_and_deleted_packets(self):
        packets = [
            FakePacket("empty", qty_status=0, created_at=1.0),
            FakePacket("gone", qty_status=100, created_at=1.5, deleted_at=5.0),
            FakePacket("live", qty_status=100, created_at=2.0),
        ]
        self.assertEqual(
            inventory.draw_down_fifo(packets, 50), [PacketUpdate("live", 50)]
        )

    def test_nothing_to_draw(self):
        self.assertEqual(inventory.draw_down_fifo([], 50), [])
        self.assertEqual(
            inventory.draw_down_fifo([FakePacket("a", 100, 1.0)], 0), []
        )

    def test_has_remaining_stock(self):
        self.assertFalse(inventory.has_remaining_stock([]))
        self.assertFalse(
            inventory.has_remaining_stock(
                [FakePacket("a", 100, 1.0, is_archived=True), FakePacket("b", 0, 2.0)]
            )
        )
        self.assertTrue(inventory.has_remaining_stock([FakePacket("c", 25, 1.0)]))


if __name__ == "__main__":
    unittest.main()
