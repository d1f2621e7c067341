"""Queue of mostly consecutive packet-numbered entries.

Entries are appended at (or past) the end in increasing packet number order
and may be removed in any order. Removed slots are marked absent and the
front is trimmed of absent slots. Appending in order keeps every operation
amortised O(1); a large gap between numbers allocates a slot for each one,
so this is not a general-purpose container.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

from hycore.congestion.ringbuffer import RingBuffer

INVALID_PACKET_NUMBER = -1

T = TypeVar("T")


@dataclass
class _Slot(Generic[T]):
    present: bool
    entry: T | None = None


class PacketNumberIndexedQueue(Generic[T]):
    """Entries indexed by packet number, held in a contiguous deque."""

    def __init__(self, capacity: int) -> None:
        self._entries: RingBuffer[_Slot[T]] = RingBuffer(capacity)
        self._present = 0
        self._first_packet = INVALID_PACKET_NUMBER

    def emplace(self, packet_number: int, entry: T | None) -> bool:
        """Insert an entry at or past the end; False if out of order or invalid."""
        if packet_number == INVALID_PACKET_NUMBER or entry is None:
            return False

        if self.is_empty():
            self._entries.push_back(_Slot(True, entry))
            self._present = 1
            self._first_packet = packet_number
            return True

        if packet_number <= self.last_packet():
            return False

        gap = packet_number - self._first_packet - len(self._entries)
        for _ in range(gap):
            self._entries.push_back(_Slot(False))

        self._entries.push_back(_Slot(True, entry))
        self._present += 1
        return True

    def get_entry(self, packet_number: int) -> T | None:
        """Return the entry for packet_number, or None if it is not present."""
        slot = self._slot(packet_number)
        return None if slot is None else slot.entry

    def remove(self, packet_number: int, callback: Callable[[T], None] | None = None) -> bool:
        """Remove an entry, passing it to callback first; False if absent."""
        slot = self._slot(packet_number)
        if slot is None:
            return False
        if callback is not None:
            callback(slot.entry)
        slot.present = False
        slot.entry = None
        self._present -= 1
        if packet_number == self._first_packet:
            self._trim_front()
        return True

    def remove_up_to(self, packet_number: int) -> None:
        """Remove every entry below packet_number, then trim absent slots."""
        while (
            not self._entries.empty()
            and self._first_packet != INVALID_PACKET_NUMBER
            and self._first_packet < packet_number
        ):
            if self._entries.front().present:
                self._present -= 1
            self._entries.pop_front()
            self._first_packet += 1
        self._trim_front()

    def is_empty(self) -> bool:
        return self._present == 0

    def number_of_present_entries(self) -> int:
        return self._present

    def entry_slots_used(self) -> int:
        """Number of slots allocated, present or not."""
        return len(self._entries)

    def first_packet(self) -> int:
        """Packet number of the first slot, or INVALID_PACKET_NUMBER."""
        return self._first_packet

    def last_packet(self) -> int:
        """Highest packet number ever inserted, or INVALID_PACKET_NUMBER if empty."""
        if self.is_empty():
            return INVALID_PACKET_NUMBER
        return self._first_packet + len(self._entries) - 1

    def _trim_front(self) -> None:
        while not self._entries.empty() and not self._entries.front().present:
            self._entries.pop_front()
            self._first_packet += 1
        if self._entries.empty():
            self._first_packet = INVALID_PACKET_NUMBER

    def _slot(self, packet_number: int) -> _Slot[T] | None:
        if (
            packet_number == INVALID_PACKET_NUMBER
            or self.is_empty()
            or packet_number < self._first_packet
        ):
            return None
        offset = packet_number - self._first_packet
        if offset >= len(self._entries):
            return None
        slot = self._entries[offset]
        return slot if slot.present else None