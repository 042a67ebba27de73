from __future__ import annotations

import random
from typing import List, Optional

from .process import Process


class WorkloadGenerator:
    """
    Generate batches of processes with random size and lifetime.

    Sizes and lifetimes are drawn uniformly from [1, max]. With
    legacy_ranges=True the upper bound is max - 1, matching the classic
    Java simulator this workload model comes from.
    """

    def __init__(self, seed: Optional[int] = None, *, legacy_ranges: bool = False) -> None:
        self.seed = seed
        self.random = random.Random(seed)
        self.legacy_ranges = legacy_ranges

    def generate(self, count: int, max_size: int, max_lifetime: int) -> List[Process]:
        if count < 0:
            raise ValueError(f"Process count must not be negative, got {count}")
        size_high = self._upper_bound(max_size, "size")
        lifetime_high = self._upper_bound(max_lifetime, "lifetime")
        return [
            Process(
                id=f"P{index}",
                size=self.random.randint(1, size_high),
                lifetime=self.random.randint(1, lifetime_high),
            )
            for index in range(1, count + 1)
        ]

    def _upper_bound(self, maximum: int, label: str) -> int:
        high = maximum - 1 if self.legacy_ranges else maximum
        if high < 1:
            raise ValueError(f"Maximum {label} {maximum} leaves no value to draw from")
        return high
