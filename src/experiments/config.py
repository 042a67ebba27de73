from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict

REQUIRED_KEYS = ("MEMORY_MAX", "PROC_SIZE_MAX", "NUM_PROC", "MAX_PROC_TIME")


class ConfigError(ValueError):
    """Raised when the simulation configuration is malformed or incomplete."""


@dataclass
class SimulationConfig:
    memory_max: int
    proc_size_max: int
    num_proc: int
    max_proc_time_ms: int

    @property
    def max_proc_time_s(self) -> int:
        # Whole seconds only; sub-second precision is dropped.
        return self.max_proc_time_ms // 1000

    def describe(self) -> str:
        return "\n".join(
            [
                "===== CONFIGURATION =====",
                f"MEMORY_MAX = {self.memory_max} KB",
                f"PROC_SIZE_MAX = {self.proc_size_max} KB",
                f"NUM_PROC = {self.num_proc}",
                f"MAX_PROC_TIME = {self.max_proc_time_s} s",
                "=========================",
            ]
        )


def parse_config(text: str) -> SimulationConfig:
    """
    Parse KEY=VALUE lines such as ``MEMORY_MAX=1024KB``.

    Every non-digit character of a value is stripped before conversion, so
    unit suffixes like KB or ms are accepted. Lines without '=' and lines
    starting with '#' are ignored, as are unknown keys.
    """
    values: Dict[str, int] = {}
    for line_number, line in enumerate(text.splitlines(), start=1):
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, raw_value = line.split("=", 1)
        key = key.strip()
        digits = re.sub(r"[^0-9]", "", raw_value)
        if not digits:
            raise ConfigError(f"Line {line_number}: no numeric value for {key!r} in {raw_value.strip()!r}")
        values[key] = int(digits)

    missing = [key for key in REQUIRED_KEYS if key not in values]
    if missing:
        raise ConfigError(f"Missing configuration keys: {', '.join(missing)}")

    config = SimulationConfig(
        memory_max=values["MEMORY_MAX"],
        proc_size_max=values["PROC_SIZE_MAX"],
        num_proc=values["NUM_PROC"],
        max_proc_time_ms=values["MAX_PROC_TIME"],
    )
    validate_config(config)
    return config


def validate_config(config: SimulationConfig) -> None:
    if config.memory_max <= 0:
        raise ConfigError(f"MEMORY_MAX must be positive, got {config.memory_max}")
    if config.proc_size_max <= 0:
        raise ConfigError(f"PROC_SIZE_MAX must be positive, got {config.proc_size_max}")
    if config.max_proc_time_s <= 0:
        raise ConfigError(
            f"MAX_PROC_TIME must be at least 1000 ms, got {config.max_proc_time_ms} ms"
        )


def load_config(path: str) -> SimulationConfig:
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found at {path}")
    return parse_config(config_path.read_text(encoding="utf-8"))
