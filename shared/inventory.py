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
Seed packet quantity math.

A packet's `qty_status` is the percentage (0-100) of the packet left. Packets
of a profile are consumed oldest first.
"""

import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Protocol, Sequence, Tuple

QTY_STANDARD_VALUES = (100, 50, 25, 0)
USED_STANDARD_VALUES = (100, 50, 25)

_REMAINING_LABELS = {100: "Full", 50: "Half", 25: "Low", 0: "Empty"}
_USED_LABELS = {100: "Whole", 50: "Half", 25: "Some"}


class PacketLike(Protocol):
    id: str
    qty_status: int
    is_archived: bool
    created_at: float
    deleted_at: Optional[float]


@dataclass
class PacketUpdate:
    packet_id: str
    qty_status: int
    is_archived: bool = False


def round_half_up(value: float) -> int:
    """Rounds .5 towards +infinity, matching what the UI shows."""
    return math.floor(value + 0.5)


def qty_status_to_label(value: float) -> str:
    v = round_half_up(value)
    return _REMAINING_LABELS.get(v, f"{v}%")


def used_percent_to_label(value: float) -> str:
    v = round_half_up(value)
    return _USED_LABELS.get(v, f"{v}%")


def clamp_qty(value: float) -> int:
    return max(0, min(100, round_half_up(value)))


def fifo_order(packets: Iterable[PacketLike]) -> List[PacketLike]:
    """Usable packets, oldest first."""
    usable = [p for p in packets if not p.is_archived and p.deleted_at is None]
    return sorted(usable, key=lambda p: p.created_at or 0.0)


def consume_selected_packets(
    packets: Sequence[PacketLike],
    selected_ids: Sequence[str],
    use_percent_by_id: Dict[str, float],
) -> Tuple[List[PacketUpdate], float]:
    """
    Use part of each selected packet.

    `use_percent_by_id` is the share of what is left in the packet, so using
    50% of a half-full packet leaves it at 25. Returns the per-packet updates
    and the total amount used, in packets.
    """
    selected = set(selected_ids)
    updates: List[PacketUpdate] = []
    total_used = 0.0
    for packet in fifo_order(packets):
        if packet.id not in selected:
            continue
        use_pct = use_percent_by_id.get(packet.id, 0) or 0
        if use_pct <= 0:
            continue
        packet_value = packet.qty_status / 100
        take = packet_value * (min(use_pct, 100) / 100)
        total_used += take
        new_qty = clamp_qty((packet_value - take) * 100)
        updates.append(PacketUpdate(packet.id, new_qty, is_archived=new_qty <= 0))
    return updates, total_used


def decrement_packet(qty_status: int, percent: float) -> int:
    """Subtract percentage points from a packet, floored at 0."""
    return clamp_qty(qty_status - percent)


def draw_down_fifo(packets: Sequence[PacketLike], percent: float) -> List[PacketUpdate]:
    """
    Subtract `percent` points across packets oldest first.

    When a packet runs out the remainder carries into the next one; emptied
    packets are archived.
    """
    remaining = max(0.0, percent)
    updates: List[PacketUpdate] = []
    for packet in fifo_order(packets):
        if remaining <= 0:
            break
        if packet.qty_status <= 0:
            continue
        take = min(packet.qty_status, remaining)
        remaining -= take
        new_qty = decrement_packet(packet.qty_status, take)
        updates.append(PacketUpdate(packet.id, new_qty, is_archived=new_qty <= 0))
    return updates


def has_remaining_stock(packets: Iterable[PacketLike]) -> bool:
    return any(p.qty_status > 0 for p in fifo_order(packets))
