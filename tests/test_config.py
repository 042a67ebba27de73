import tempfile
import unittest
from pathlib import Path

from experiments.config import ConfigError, load_config, parse_config

SAMPLE = """\
# pool settings
MEMORY_MAX = 1024KB
PROC_SIZE_MAX=256 KB
NUM_PROC=10

MAX_PROC_TIME=10500ms
COLOR=blue1
"""


class ParseConfigTests(unittest.TestCase):
    def test_strips_units_and_converts_time(self) -> None:
        config = parse_config(SAMPLE)
        self.assertEqual(config.memory_max, 1024)
        self.assertEqual(config.proc_size_max, 256)
        self.assertEqual(config.num_proc, 10)
        self.assertEqual(config.max_proc_time_ms, 10500)
        self.assertEqual(config.max_proc_time_s, 10)

    def test_missing_key(self) -> None:
        with self.assertRaises(ConfigError) as ctx:
            parse_config("MEMORY_MAX=10\nNUM_PROC=2\n")
        self.assertIn("PROC_SIZE_MAX", str(ctx.exception))
        self.assertIn("MAX_PROC_TIME", str(ctx.exception))

    def test_malformed_value(self) -> None:
        with self.assertRaises(ConfigError):
            parse_config(SAMPLE.replace("1024KB", "lots"))

    def test_sub_second_lifetime_rejected(self) -> None:
        with self.assertRaises(ConfigError):
            parse_config(SAMPLE.replace("10500ms", "900ms"))

    def test_config_error_is_value_error(self) -> None:
        self.assertTrue(issubclass(ConfigError, ValueError))

    def test_describe_lists_every_setting(self) -> None:
        text = parse_config(SAMPLE).describe()
        self.assertIn("MEMORY_MAX = 1024 KB", text)
        self.assertIn("MAX_PROC_TIME = 10 s", text)


class LoadConfigTests(unittest.TestCase):
    def test_reads_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "config.txt"
            path.write_text(SAMPLE, encoding="utf-8")
            self.assertEqual(load_config(str(path)).memory_max, 1024)

    def test_missing_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            with self.assertRaises(FileNotFoundError):
                load_config(str(Path(tmpdir) / "absent.txt"))


if __name__ == "__main__":
    unittest.main()
