import csv
import io
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path

from contiguous_memory import Strategy
from experiments.config import SimulationConfig
from experiments.run_simulation import STRATEGY_ORDER, main, run_comparison

CONFIG_TEXT = "MEMORY_MAX=512KB\nPROC_SIZE_MAX=128KB\nNUM_PROC=12\nMAX_PROC_TIME=4000ms\n"


class RunComparisonTests(unittest.TestCase):
    def setUp(self) -> None:
        self.config = SimulationConfig(memory_max=512, proc_size_max=128, num_proc=12, max_proc_time_ms=4000)

    def test_runs_strategies_in_order(self) -> None:
        summaries = run_comparison(self.config, seed=4, verbose=False, strict=True)
        self.assertEqual([s.strategy for s in summaries], [s.value for s in STRATEGY_ORDER])
        for summary in summaries:
            self.assertEqual(summary.processes, 12)
            self.assertEqual(summary.placements, 12)
            self.assertGreaterEqual(summary.ticks, 1)

    def test_same_workload_gives_identical_single_strategy_runs(self) -> None:
        summaries = run_comparison(
            self.config,
            seed=9,
            same_workload=True,
            strategies=[Strategy.BEST, Strategy.BEST],
            verbose=False,
        )
        self.assertEqual(summaries[0].as_row(), summaries[1].as_row())

    def test_verbose_run_prints_ticks(self) -> None:
        buffer = io.StringIO()
        with redirect_stdout(buffer):
            run_comparison(self.config, seed=2, strategies=[Strategy.NEXT])
        output = buffer.getvalue()
        self.assertIn("--- Running NEXT FIT Simulation ---", output)
        self.assertIn("Time: 1s", output)
        self.assertIn("Stats -> Holes:", output)


class MainTests(unittest.TestCase):
    def test_writes_summary_traces_and_plot(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            config_path = root / "config.txt"
            config_path.write_text(CONFIG_TEXT, encoding="utf-8")
            summary_path = root / "out" / "summary.csv"
            plot_path = root / "out" / "comparison.png"
            with redirect_stdout(io.StringIO()):
                code = main(
                    [
                        "--config", str(config_path),
                        "--seed", "3",
                        "--quiet",
                        "--strict",
                        "--output", str(summary_path),
                        "--trace-dir", str(root / "traces"),
                        "--plot", str(plot_path),
                    ]
                )
            self.assertEqual(code, 0)
            with summary_path.open(newline="") as handle:
                rows = list(csv.DictReader(handle))
            self.assertEqual([row["strategy"] for row in rows], ["BEST", "WORST", "NEXT"])
            self.assertNotIn("history", rows[0])
            for name in ("best_fit", "worst_fit", "next_fit"):
                self.assertTrue((root / "traces" / f"{name}.jsonl").exists())
            self.assertTrue(plot_path.exists())

    def test_missing_config_exits_with_error(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            with redirect_stderr(io.StringIO()) as err:
                code = main(["--config", str(Path(tmpdir) / "nope.txt")])
        self.assertEqual(code, 2)
        self.assertIn("not found", err.getvalue())

    def test_starved_run_exits_with_error(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "config.txt"
            config_path.write_text(
                "MEMORY_MAX=10KB\nPROC_SIZE_MAX=500KB\nNUM_PROC=5\nMAX_PROC_TIME=3000ms\n",
                encoding="utf-8",
            )
            with redirect_stdout(io.StringIO()), redirect_stderr(io.StringIO()) as err:
                code = main(["--config", str(config_path), "--seed", "1", "--quiet"])
        self.assertEqual(code, 1)
        self.assertIn("starved", err.getvalue())


if __name__ == "__main__":
    unittest.main()
