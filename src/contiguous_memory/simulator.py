from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, List, Optional, Tuple

from .allocators import Strategy, make_allocator
from .memory_space import LedgerInvariantError, MemorySpace
from .process import Process

if TYPE_CHECKING:
    from experiments.instrumentation import SimulationProfiler


class StarvationError(RuntimeError):
    """Raised when pending processes can never be placed."""

    def __init__(self, message: str, process_ids: List[str]) -> None:
        super().__init__(message)
        self.process_ids = process_ids


class SimulationState(Enum):
    RUNNING = "running"
    DONE = "done"


@dataclass
class TickRecord:
    time: int
    placed: List[str]
    deferred: List[str]
    finished: List[str]
    merges: int
    stats: Dict[str, float]


@dataclass
class RunSummary:
    strategy: str
    processes: int
    ticks: int
    placements: int
    deferrals: int
    avg_wait: float
    max_wait: int
    avg_holes: float
    peak_holes: int
    avg_free_percent: float
    avg_fragmentation: float
    history: List[TickRecord] = field(default_factory=list, repr=False)

    def as_row(self) -> Dict[str, Any]:
        row = asdict(self)
        row.pop("history")
        return row


ReportCallback = Callable[["MemorySimulator"], None]


class MemorySimulator:
    """
    Discrete-time driver for one placement strategy over one workload.

    Each tick runs four steps in a fixed order: place pending processes,
    report, age running processes (reclaiming the finished ones), coalesce.
    A fresh allocator is built on every initialize(), which also resets the
    next-fit cursor.
    """

    def __init__(
        self,
        capacity: int,
        strategy: Strategy,
        *,
        profiler: Optional["SimulationProfiler"] = None,
        max_ticks: Optional[int] = None,
        strict: bool = False,
    ) -> None:
        self.space = MemorySpace(capacity)
        self.strategy = strategy
        self.allocator = make_allocator(strategy)
        self.profiler = profiler
        self.max_ticks = max_ticks
        self.strict = strict

        self.pending: List[Process] = []
        self.running: List[Process] = []
        self.finished: List[Process] = []
        self.history: List[TickRecord] = []
        self.placed_at: Dict[str, int] = {}
        self.time = 0
        self.state: Optional[SimulationState] = None
        self._process_count = 0
        self._deferrals = 0

    # -- Lifecycle -----------------------------------------------------------------
    def initialize(self, processes: Iterable[Process]) -> None:
        self.space.reset()
        self.allocator = make_allocator(self.strategy)
        self.pending = list(processes)
        self.running = []
        self.finished = []
        self.history = []
        self.placed_at = {}
        self.time = 0
        self._process_count = len(self.pending)
        self._deferrals = 0
        self.state = SimulationState.RUNNING if self.pending else SimulationState.DONE

    def tick(self, on_report: Optional[ReportCallback] = None) -> TickRecord:
        if self.state is not SimulationState.RUNNING:
            raise RuntimeError(f"Cannot tick a simulation in state {self.state}")
        if self.max_ticks is not None and self.time >= self.max_ticks:
            stuck = [process.id for process in self.pending]
            raise StarvationError(
                f"{self.strategy.value} run exceeded {self.max_ticks} ticks "
                f"with {len(stuck)} pending and {len(self.running)} running",
                stuck,
            )
        self.time += 1

        placed, deferred = self._place_pending()
        if self.strict:
            self.check_consistency()
        if on_report:
            on_report(self)
        self._detect_starvation()

        finished = self._age_running()
        if self.strict:
            self.check_consistency()

        merges = self.space.coalesce()
        if self.strict:
            self.check_consistency(require_coalesced=True)

        record = TickRecord(
            time=self.time,
            placed=placed,
            deferred=deferred,
            finished=finished,
            merges=merges,
            stats=self.space.stats(),
        )
        self.history.append(record)
        if self.profiler:
            self.profiler.record_event(
                "tick",
                {
                    "strategy": self.strategy.value,
                    "tick": self.time,
                    "pending": len(self.pending),
                    "running": len(self.running),
                    "merges": merges,
                    **record.stats,
                },
            )
        if not self.pending and not self.running:
            self.state = SimulationState.DONE
        return record

    def run(self, on_report: Optional[ReportCallback] = None, *, tick_delay: float = 0.0) -> RunSummary:
        if self.state is None:
            raise RuntimeError("initialize() must be called before run()")
        while self.state is SimulationState.RUNNING:
            self.tick(on_report)
            if tick_delay > 0:
                time.sleep(tick_delay)
        return self.summary()

    # -- Tick steps ----------------------------------------------------------------
    def _place_pending(self) -> Tuple[List[str], List[str]]:
        still_pending: List[Process] = []
        placed: List[str] = []
        for process in self.pending:
            partition = self.allocator.allocate(self.space, process)
            if partition is None:
                still_pending.append(process)
                self._deferrals += 1
                if self.profiler:
                    self.profiler.record_event(
                        "deferred",
                        {
                            "strategy": self.strategy.value,
                            "tick": self.time,
                            "process_id": process.id,
                            "size": process.size,
                            "largest_hole": self.space.largest_hole(),
                        },
                    )
                continue
            self.running.append(process)
            self.placed_at[process.id] = self.time
            placed.append(process.id)
            if self.profiler:
                self.profiler.record_event(
                    "placement",
                    {
                        "strategy": self.strategy.value,
                        "tick": self.time,
                        "process_id": process.id,
                        "size": process.size,
                        "start": partition.start,
                        "lifetime": process.lifetime,
                    },
                )
        self.pending = still_pending
        return placed, [process.id for process in still_pending]

    def _age_running(self) -> List[str]:
        done: List[Process] = []
        for process in self.running:
            process.age()
            if process.finished():
                done.append(process)
        for process in done:
            self.space.reclaim(process.id)
            self.finished.append(process)
            if self.profiler:
                self.profiler.record_event(
                    "finish",
                    {
                        "strategy": self.strategy.value,
                        "tick": self.time,
                        "process_id": process.id,
                        "size": process.size,
                    },
                )
        finished_ids = {process.id for process in done}
        self.running = [process for process in self.running if process.id not in finished_ids]
        return [process.id for process in done]

    def _detect_starvation(self) -> None:
        # With nothing running the pool is a single free hole of full size,
        # so whatever did not fit now never will.
        if self.running or not self.pending:
            return
        stuck = [process.id for process in self.pending]
        largest = max(process.size for process in self.pending)
        raise StarvationError(
            f"{self.strategy.value} run starved at tick {self.time}: "
            f"{len(stuck)} process(es) need up to {largest} KB of {self.space.capacity} KB",
            stuck,
        )

    # -- Introspection -------------------------------------------------------------
    def check_consistency(self, *, require_coalesced: bool = False) -> None:
        self.space.check_invariants(require_coalesced=require_coalesced)
        running_ids = {process.id for process in self.running}
        occupied = self.space.occupied_ids()
        if running_ids != occupied:
            raise LedgerInvariantError(
                f"Running set {sorted(running_ids)} does not match occupants {sorted(occupied)}"
            )

    def summary(self) -> RunSummary:
        ticks = len(self.history)
        waits = [placed - 1 for placed in self.placed_at.values()]
        return RunSummary(
            strategy=self.strategy.value,
            processes=self._process_count,
            ticks=ticks,
            placements=len(self.placed_at),
            deferrals=self._deferrals,
            avg_wait=sum(waits) / len(waits) if waits else 0.0,
            max_wait=max(waits, default=0),
            avg_holes=sum(r.stats["holes"] for r in self.history) / ticks if ticks else 0.0,
            peak_holes=int(max((r.stats["holes"] for r in self.history), default=0)),
            avg_free_percent=(
                sum(r.stats["free_percent"] for r in self.history) / ticks if ticks else 0.0
            ),
            avg_fragmentation=(
                sum(r.stats["fragmentation"] for r in self.history) / ticks if ticks else 0.0
            ),
            history=list(self.history),
        )
