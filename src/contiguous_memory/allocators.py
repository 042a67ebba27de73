from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Dict, List, Optional

from .memory_space import MemorySpace, Partition
from .process import Process


class Allocator(ABC):
    """Abstract placement strategy."""

    name: str

    @abstractmethod
    def select(self, space: MemorySpace, process: Process) -> Optional[Partition]:
        """Pick a free partition that can hold `process` without touching the space."""

    def allocate(self, space: MemorySpace, process: Process) -> Optional[Partition]:
        hole = self.select(space, process)
        if hole is None:
            return None
        return space.allocate(process, hole)


def _candidates(space: MemorySpace, process: Process) -> List[Partition]:
    return [
        partition
        for partition in space.partitions()
        if partition.is_free and partition.size >= process.size
    ]


class BestFitAllocator(Allocator):
    """
    Best-fit allocator: choose the smallest free partition that can hold the
    process. Ties go to the lowest address.
    """

    name = "best_fit"

    def select(self, space: MemorySpace, process: Process) -> Optional[Partition]:
        candidates = _candidates(space, process)
        if not candidates:
            return None
        # min() keeps the first of equal keys, i.e. the lowest address.
        return min(candidates, key=lambda part: part.size)


class WorstFitAllocator(Allocator):
    """
    Worst-fit allocator: choose the largest free partition so the leftover
    hole stays as usable as possible. Ties go to the lowest address.
    """

    name = "worst_fit"

    def select(self, space: MemorySpace, process: Process) -> Optional[Partition]:
        candidates = _candidates(space, process)
        if not candidates:
            return None
        return max(candidates, key=lambda part: part.size)


class NextFitAllocator(Allocator):
    """
    Next-fit allocator: scan circularly from where the previous search
    succeeded.

    The cursor is left on the partition that was picked, not the one after
    it, and is untouched when a full lap finds nothing.
    """

    name = "next_fit"

    def __init__(self) -> None:
        self.cursor = 0

    def select(self, space: MemorySpace, process: Process) -> Optional[Partition]:
        count = len(space)
        for offset in range(count):
            index = (self.cursor + offset) % count
            partition = space[index]
            if partition.is_free and partition.size >= process.size:
                self.cursor = index
                return partition
        return None


class Strategy(Enum):
    BEST = "BEST"
    WORST = "WORST"
    NEXT = "NEXT"

    @classmethod
    def parse(cls, name: str) -> "Strategy":
        key = name.strip().upper()
        if key.endswith("_FIT"):
            key = key[: -len("_FIT")]
        try:
            return cls[key]
        except KeyError:
            choices = ", ".join(member.value for member in cls)
            raise ValueError(f"Unknown strategy {name!r}; expected one of {choices}") from None


ALLOCATORS: Dict[Strategy, Callable[[], Allocator]] = {
    Strategy.BEST: BestFitAllocator,
    Strategy.WORST: WorstFitAllocator,
    Strategy.NEXT: NextFitAllocator,
}


def make_allocator(strategy: Strategy) -> Allocator:
    return ALLOCATORS[strategy]()
