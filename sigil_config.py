from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

DEFAULT_STATS_PATH = Path(__file__).resolve().parent / "sigil_stats.csv"


def _env_bool(value: str | None, default: bool = True) -> bool:
    if value is None:
        return default
    return value.strip().lower() not in {"", "0", "false", "no", "off"}


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


@dataclass(frozen=True)
class Settings:
    """Runtime settings loaded from environment variables.

    Keep this minimal and explicit. Command-line flags on sigil.py take
    precedence over anything read here.
    """

    fps: float = 12.0
    time_step: float = 0.15
    cell_min: int = 11
    cell_divisor: int = 34
    tick_hz: float = 60.0
    theme: str = "terminal"
    reduced_motion: bool = False
    stats_log: bool = True
    stats_path: Path = DEFAULT_STATS_PATH

    def __post_init__(self) -> None:
        if self.fps <= 0:
            raise ValueError(f"fps must be positive, got {self.fps}")
        if self.tick_hz <= 0:
            raise ValueError(f"tick_hz must be positive, got {self.tick_hz}")
        if self.cell_min < 1 or self.cell_divisor < 1:
            raise ValueError("cell_min and cell_divisor must be >= 1")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ
        stats_path = env.get("SIGILRY_STATS_PATH")
        return cls(
            fps=_env_float(env, "SIGILRY_FPS", cls.fps),
            time_step=_env_float(env, "SIGILRY_TIME_STEP", cls.time_step),
            cell_min=_env_int(env, "SIGILRY_CELL_MIN", cls.cell_min),
            cell_divisor=_env_int(env, "SIGILRY_CELL_DIVISOR", cls.cell_divisor),
            tick_hz=_env_float(env, "SIGILRY_TICK_HZ", cls.tick_hz),
            theme=env.get("SIGILRY_THEME", cls.theme),
            reduced_motion=_env_bool(env.get("SIGILRY_REDUCED_MOTION"), default=False),
            stats_log=_env_bool(env.get("SIGILRY_STATS_LOG"), default=True),
            stats_path=Path(stats_path).expanduser() if stats_path else DEFAULT_STATS_PATH,
        )

