from __future__ import annotations

import argparse
import copy
import csv
import os
import sys
from typing import Iterable, List, Optional, Sequence

import matplotlib.pyplot as plt  # type: ignore

from contiguous_memory import MemorySimulator, Process, RunSummary, StarvationError, Strategy, WorkloadGenerator
from contiguous_memory.report import print_tick
from experiments.config import SimulationConfig, load_config
from experiments.instrumentation import SimulationProfiler

STRATEGY_ORDER = (Strategy.BEST, Strategy.WORST, Strategy.NEXT)


def run_strategy(
    config: SimulationConfig,
    strategy: Strategy,
    processes: Sequence[Process],
    *,
    verbose: bool = True,
    tick_delay: float = 0.0,
    max_ticks: Optional[int] = None,
    strict: bool = False,
    profiler: Optional[SimulationProfiler] = None,
) -> RunSummary:
    simulator = MemorySimulator(
        config.memory_max,
        strategy,
        profiler=profiler,
        max_ticks=max_ticks,
        strict=strict,
    )
    simulator.initialize(processes)
    if verbose:
        print(f"\n--- Running {strategy.value} FIT Simulation ---")
    return simulator.run(print_tick if verbose else None, tick_delay=tick_delay)


def run_comparison(
    config: SimulationConfig,
    *,
    seed: Optional[int] = None,
    legacy_ranges: bool = False,
    same_workload: bool = False,
    strategies: Iterable[Strategy] = STRATEGY_ORDER,
    verbose: bool = True,
    tick_delay: float = 0.0,
    max_ticks: Optional[int] = None,
    strict: bool = False,
    trace_dir: Optional[str] = None,
) -> List[RunSummary]:
    """Run each strategy back to back, each on its own freshly generated workload."""
    generator = WorkloadGenerator(seed, legacy_ranges=legacy_ranges)
    shared: Optional[List[Process]] = None
    if same_workload:
        shared = generator.generate(config.num_proc, config.proc_size_max, config.max_proc_time_s)

    summaries: List[RunSummary] = []
    for strategy in strategies:
        if shared is not None:
            processes = copy.deepcopy(shared)
        else:
            processes = generator.generate(config.num_proc, config.proc_size_max, config.max_proc_time_s)
        profiler = SimulationProfiler(run_id=f"{strategy.value.lower()}_fit", output_dir=trace_dir)
        try:
            summary = run_strategy(
                config,
                strategy,
                processes,
                verbose=verbose,
                tick_delay=tick_delay,
                max_ticks=max_ticks,
                strict=strict,
                profiler=profiler,
            )
        finally:
            profiler.flush()
        summaries.append(summary)
    return summaries


def write_summary(path: str, summaries: Iterable[RunSummary]) -> None:
    records = [summary.as_row() for summary in summaries]
    if not records:
        return
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "w", newline="") as handle:
        writer = csv.DictWriter(handle, fieldnames=list(records[0].keys()))
        writer.writeheader()
        writer.writerows(records)


def plot_results(summaries: Sequence[RunSummary], path: str) -> None:
    fig, (holes_ax, free_ax) = plt.subplots(2, 1, figsize=(10, 8), sharex=True)
    for summary in summaries:
        ticks = [record.time for record in summary.history]
        holes_ax.plot(ticks, [record.stats["holes"] for record in summary.history], label=f"{summary.strategy} FIT")
        free_ax.plot(ticks, [record.stats["free_percent"] for record in summary.history], label=f"{summary.strategy} FIT")
    holes_ax.set_ylabel("Holes")
    holes_ax.set_title("Fragmentation by Placement Strategy")
    holes_ax.grid(True)
    holes_ax.legend()
    free_ax.set_xlabel("Tick")
    free_ax.set_ylabel("Free memory (%)")
    free_ax.grid(True)

    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    fig.savefig(path, bbox_inches="tight")
    plt.close(fig)


def format_comparison(summaries: Sequence[RunSummary]) -> str:
    header = f"{'Strategy':<10}{'Ticks':>7}{'Deferred':>10}{'Avg wait':>10}{'Avg holes':>11}{'Peak':>6}{'Avg free %':>12}"
    lines = ["\n===== COMPARISON =====", header]
    for summary in summaries:
        lines.append(
            f"{summary.strategy + ' FIT':<10}{summary.ticks:>7}{summary.deferrals:>10}"
            f"{summary.avg_wait:>10.2f}{summary.avg_holes:>11.2f}{summary.peak_holes:>6}"
            f"{summary.avg_free_percent:>12.2f}"
        )
    return "\n".join(lines)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Compare best, worst and next fit contiguous allocation.")
    parser.add_argument("--config", type=str, default="config.txt", help="Path to the KEY=VALUE configuration file.")
    parser.add_argument("--seed", type=int, default=None, help="Seed for the workload generator.")
    parser.add_argument(
        "--strategies",
        nargs="+",
        default=[strategy.value for strategy in STRATEGY_ORDER],
        help="Strategies to run, in order (BEST, WORST, NEXT).",
    )
    parser.add_argument("--tick-delay", type=float, default=0.0, help="Seconds to pause after each reported tick.")
    parser.add_argument("--max-ticks", type=int, default=None, help="Abort a run that exceeds this many ticks.")
    parser.add_argument(
        "--legacy-ranges",
        action="store_true",
        help="Draw sizes and lifetimes from [1, max - 1] like the classic simulator.",
    )
    parser.add_argument(
        "--same-workload",
        action="store_true",
        help="Give every strategy a copy of the same workload instead of a fresh one.",
    )
    parser.add_argument("--quiet", action="store_true", help="Skip the per-tick memory map.")
    parser.add_argument("--strict", action="store_true", help="Check ledger invariants after every step.")
    parser.add_argument("--output", type=str, default=None, help="Optional path to a CSV summary.")
    parser.add_argument("--trace-dir", type=str, default=None, help="Optional directory for per-run event traces.")
    parser.add_argument("--plot", type=str, default=None, help="Optional path for a comparison plot (PNG).")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    try:
        config = load_config(args.config)
        strategies = [Strategy.parse(name) for name in args.strategies]
    except (FileNotFoundError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    print(config.describe())
    try:
        summaries = run_comparison(
            config,
            seed=args.seed,
            legacy_ranges=args.legacy_ranges,
            same_workload=args.same_workload,
            strategies=strategies,
            verbose=not args.quiet,
            tick_delay=args.tick_delay,
            max_ticks=args.max_ticks,
            strict=args.strict,
            trace_dir=args.trace_dir,
        )
    except (StarvationError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    print(format_comparison(summaries))
    if args.output:
        write_summary(args.output, summaries)
        print("Summary written to", args.output)
    if args.plot:
        plot_results(summaries, args.plot)
        print("Plot written to", args.plot)
    return 0


if __name__ == "__main__":
    sys.exit(main())
