from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class Process:
    """
    A unit of work that occupies one contiguous partition while it runs.

    Sizes are in KB. Lifetime is counted in simulation ticks and only the
    simulator decrements it.
    """

    id: str
    size: int
    lifetime: int

    def age(self, ticks: int = 1) -> int:
        """Consume lifetime and return what is left."""
        self.lifetime -= ticks
        return self.lifetime

    def finished(self) -> bool:
        return self.lifetime <= 0
