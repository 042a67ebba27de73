from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Iterable, Mapping

from .memory_space import MemorySpace
from .process import Process

if TYPE_CHECKING:
    from .simulator import MemorySimulator

RULE = "=" * 38


def render_memory(space: MemorySpace, running: Iterable[Process]) -> str:
    """Draw the partitions left to right, with remaining lifetime for occupants."""
    lookup: Mapping[str, Process] = {process.id: process for process in running}
    cells = []
    for partition in space.partitions():
        if partition.is_free:
            cells.append(f"| Free ({partition.size}KB) |")
            continue
        process = lookup.get(partition.occupant)
        if process is not None:
            cells.append(f"| {partition.occupant} [{process.lifetime}s] ({partition.size}KB) |")
        else:
            cells.append(f"| {partition.occupant} ({partition.size}KB) |")
    return "".join(cells)


def format_stats(stats: Dict[str, float]) -> str:
    return (
        f"Stats -> Holes: {int(stats['holes'])} | "
        f"Avg Hole Size: {stats['avg_hole_size']:.2f} KB | "
        f"Total Free: {int(stats['total_free'])} KB | "
        f"Free: {stats['free_percent']:.2f}%"
    )


def render_tick(simulator: "MemorySimulator") -> str:
    return "\n".join(
        [
            f"Time: {simulator.time}s",
            render_memory(simulator.space, simulator.running),
            RULE,
            format_stats(simulator.space.stats()),
        ]
    )


def print_tick(simulator: "MemorySimulator") -> None:
    print()
    print(render_tick(simulator))
