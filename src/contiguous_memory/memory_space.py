from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Set, Tuple

from .process import Process


class LedgerInvariantError(ValueError):
    """Raised when the partition list no longer describes the whole pool."""


@dataclass(slots=True)
class Partition:
    start: int
    size: int
    occupant: Optional[str] = None

    @property
    def end(self) -> int:
        return self.start + self.size

    @property
    def is_free(self) -> bool:
        return self.occupant is None

    def split(self, size: int) -> Tuple["Partition", Optional["Partition"]]:
        """Return the leading partition of `size` plus the free remainder, if any."""
        head = Partition(start=self.start, size=size, occupant=self.occupant)
        remainder_size = self.size - size
        if remainder_size <= 0:
            return head, None
        return head, Partition(start=self.start + size, size=remainder_size)


class MemorySpace:
    """
    Simulated contiguous memory pool carved into variable-size partitions.

    Free and occupied partitions live in one list kept in ascending address
    order, so the list always covers [0, capacity) without gaps or overlaps.
    Releasing a partition never merges it with its neighbours; call
    coalesce() for that.
    """

    def __init__(self, capacity: int) -> None:
        if capacity <= 0:
            raise ValueError(f"Memory capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._partitions: List[Partition] = [Partition(0, capacity)]

    def reset(self) -> None:
        self._partitions = [Partition(0, self.capacity)]

    def __len__(self) -> int:
        return len(self._partitions)

    def __getitem__(self, index: int) -> Partition:
        return self._partitions[index]

    # -- Mutation ------------------------------------------------------------------
    def allocate(self, process: Process, hole: Partition) -> Optional[Partition]:
        """
        Place `process` at the start of `hole`.

        The hole must be one of this ledger's partitions, free and large
        enough. Any leftover space stays free directly after the new
        partition. Returns the occupied partition or None if the hole was
        rejected.
        """
        index = self._index_of(hole)
        if index is None or not hole.is_free or hole.size < process.size:
            return None
        occupied, remainder = hole.split(process.size)
        occupied.occupant = process.id
        self._partitions[index] = occupied
        if remainder:
            self._partitions.insert(index + 1, remainder)
        return occupied

    def reclaim(self, process_id: str) -> int:
        """Mark every partition held by `process_id` free. Returns KB released."""
        released = 0
        for partition in self._partitions:
            if partition.occupant == process_id:
                partition.occupant = None
                released += partition.size
        return released

    def coalesce(self) -> int:
        """Merge runs of adjacent free partitions. Returns the number of merges."""
        merged: List[Partition] = []
        merges = 0
        for partition in self._partitions:
            prev = merged[-1] if merged else None
            if prev is not None and prev.is_free and partition.is_free:
                prev.size += partition.size
                merges += 1
            else:
                merged.append(partition)
        self._partitions = merged
        return merges

    # -- Introspection -------------------------------------------------------------
    def partitions(self) -> List[Partition]:
        """Return a copy of the partition list for inspection."""
        return list(self._partitions)

    def free_partitions(self) -> List[Partition]:
        return [partition for partition in self._partitions if partition.is_free]

    def occupied_ids(self) -> Set[str]:
        return {p.occupant for p in self._partitions if p.occupant is not None}

    def available(self) -> int:
        return sum(partition.size for partition in self.free_partitions())

    def allocated(self) -> int:
        return self.capacity - self.available()

    def hole_count(self) -> int:
        return len(self.free_partitions())

    def largest_hole(self) -> int:
        return max((partition.size for partition in self.free_partitions()), default=0)

    def fragmentation(self) -> float:
        free = self.available()
        if free == 0:
            return 0.0
        return 1.0 - (self.largest_hole() / free)

    def stats(self) -> Dict[str, float]:
        holes = self.hole_count()
        free = self.available()
        return {
            "holes": holes,
            "avg_hole_size": free / holes if holes else 0.0,
            "total_free": free,
            "free_percent": free * 100.0 / self.capacity,
            "largest_hole": self.largest_hole(),
            "fragmentation": self.fragmentation(),
        }

    def snapshot(self) -> List[Tuple[int, int, Optional[str]]]:
        """Expose the current partition map for diagnostics."""
        return [(p.start, p.size, p.occupant) for p in self._partitions]

    def check_invariants(self, *, require_coalesced: bool = False) -> None:
        expected_start = 0
        for index, partition in enumerate(self._partitions):
            if partition.size <= 0:
                raise LedgerInvariantError(
                    f"Partition {index} at {partition.start} has non-positive size {partition.size}"
                )
            if partition.start != expected_start:
                raise LedgerInvariantError(
                    f"Partition {index} starts at {partition.start}, expected {expected_start}"
                )
            if require_coalesced and index > 0:
                if partition.is_free and self._partitions[index - 1].is_free:
                    raise LedgerInvariantError(
                        f"Partitions {index - 1} and {index} are both free after coalescing"
                    )
            expected_start = partition.end
        if expected_start != self.capacity:
            raise LedgerInvariantError(
                f"Partitions cover {expected_start} KB of {self.capacity} KB"
            )

    def _index_of(self, partition: Partition) -> Optional[int]:
        # Identity lookup: two free holes of the same size compare equal.
        for index, candidate in enumerate(self._partitions):
            if candidate is partition:
                return index
        return None
