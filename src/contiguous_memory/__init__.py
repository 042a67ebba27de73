"""
Contiguous memory allocation simulator.

Compares best-fit, worst-fit and next-fit placement of randomly generated
processes in a fixed pool of variable-size partitions.
"""

from .process import Process
from .memory_space import LedgerInvariantError, MemorySpace, Partition
from .allocators import (
    ALLOCATORS,
    Allocator,
    BestFitAllocator,
    NextFitAllocator,
    Strategy,
    WorstFitAllocator,
    make_allocator,
)
from .workload import WorkloadGenerator
from .simulator import MemorySimulator, RunSummary, SimulationState, StarvationError, TickRecord

__all__ = [
    "Process",
    "Partition",
    "MemorySpace",
    "LedgerInvariantError",
    "Allocator",
    "BestFitAllocator",
    "WorstFitAllocator",
    "NextFitAllocator",
    "Strategy",
    "ALLOCATORS",
    "make_allocator",
    "WorkloadGenerator",
    "MemorySimulator",
    "RunSummary",
    "SimulationState",
    "StarvationError",
    "TickRecord",
]
