"""
Seeded sigil generator.

A sigil is a small symmetric ASCII glyph grid grown from a single 32-bit
seed. The same seed always yields the same characters and the same
whitespace, so a seed is all you need to share one.

Generation runs in three phases, each reading from the same Mulberry32
stream in a fixed order:

  1. mirror   rows top to bottom, columns left edge to centre; one draw
              decides fill, a second picks the glyph; written to both halves
  2. spine    centre column, rows 1..H-2; one draw decides, a second picks
  3. corners  the four corners forced to the marker

Reordering any phase changes every sigil ever shared, so don't.
"""

from __future__ import annotations

import random
import time
from collections.abc import Iterator, Sequence
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

# ═══════════════════════════════════════════════════════════════════════
#  Constants
# ═══════════════════════════════════════════════════════════════════════

MASK32: int = 0xFFFFFFFF
TWO_32: float = 4294967296.0
MULBERRY_INCREMENT: int = 0x6D2B79F5

SIGIL_WIDTH: int = 23
SIGIL_HEIGHT: int = 11
SIGIL_GLYPHS: str = "/\\|_-+=*#@"
SPINE_GLYPHS: str = "|+"
CORNER_MARK: str = "+"
BLANK: str = " "

BASE_FILL: float = 0.08     # fill chance at the extremes
CENTER_FILL: float = 0.48   # extra fill chance at the centre
SPINE_CHANCE: float = 0.55


# ═══════════════════════════════════════════════════════════════════════
#  Mulberry32
# ═══════════════════════════════════════════════════════════════════════

class Mulberry32:
    """Additive counter + avalanche mixing, 32-bit wraparound throughout."""

    __slots__ = ("_t",)

    def __init__(self, seed: int) -> None:
        self._t: int = seed & MASK32

    @property
    def state(self) -> int:
        return self._t

    def next_u32(self) -> int:
        t = (self._t + MULBERRY_INCREMENT) & MASK32
        self._t = t
        x = ((t ^ (t >> 15)) * (t | 1)) & MASK32
        x ^= (x + (((x ^ (x >> 7)) * (x | 61)) & MASK32)) & MASK32
        return (x ^ (x >> 14)) & MASK32

    def next(self) -> float:
        """Next uniform value in [0, 1)."""
        return self.next_u32() / TWO_32

    def choice(self, seq: Sequence[str]) -> str:
        return seq[int(self.next() * len(seq))]

    def __iter__(self) -> Iterator[float]:
        while True:
            yield self.next()


def new_seed() -> int:
    """Fresh seed from wall-clock milliseconds mixed with 32 random bits."""
    return (int(time.time() * 1000) ^ random.getrandbits(32)) & MASK32


# ═══════════════════════════════════════════════════════════════════════
#  Sigils
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SigilConfig:
    width: int = SIGIL_WIDTH
    height: int = SIGIL_HEIGHT
    glyphs: str = SIGIL_GLYPHS
    spine_glyphs: str = SPINE_GLYPHS
    corner: str = CORNER_MARK
    base_fill: float = BASE_FILL
    center_fill: float = CENTER_FILL
    spine_chance: float = SPINE_CHANCE

    def __post_init__(self) -> None:
        # Odd width gives a true centre column; >= 3 keeps the half-extents
        # non-zero for the radial weight.
        if self.width < 3 or self.width % 2 == 0:
            raise ValueError(f"sigil width must be odd and >= 3, got {self.width}")
        if self.height < 3:
            raise ValueError(f"sigil height must be >= 3, got {self.height}")
        if not self.glyphs:
            raise ValueError("sigil glyph set is empty")
        if not self.spine_glyphs:
            raise ValueError("spine glyph set is empty")
        if len(self.corner) != 1:
            raise ValueError(f"corner marker must be one character, got {self.corner!r}")


@dataclass(frozen=True)
class Sigil:
    seed: int
    rows: tuple[str, ...]

    @property
    def height(self) -> int:
        return len(self.rows)

    @property
    def width(self) -> int:
        return len(self.rows[0]) if self.rows else 0

    @property
    def text(self) -> str:
        return "\n".join(self.rows)

    def cell(self, y: int, x: int) -> str:
        return self.rows[y][x]

    def __str__(self) -> str:
        return self.text


class SigilGenerator:
    """Grows symmetric glyph grids from seeds. See the module docstring."""

    def __init__(self, config: SigilConfig | None = None) -> None:
        self.config: SigilConfig = config or SigilConfig()
        w, h = self.config.width, self.config.height
        self._cx: float = (w - 1) / 2
        self._cy: float = (h - 1) / 2
        self._weights: NDArray[np.float64] = self._radial_weights()

    def _radial_weights(self) -> NDArray[np.float64]:
        """Fill weight for the left half (centre column included)."""
        cfg = self.config
        xs = np.arange(cfg.width // 2 + 1, dtype=np.float64)
        ys = np.arange(cfg.height, dtype=np.float64)
        wx = np.maximum(0.0, 1.0 - np.abs(xs - self._cx) / self._cx)
        wy = np.maximum(0.0, 1.0 - np.abs(ys - self._cy) / self._cy)
        return np.outer(wy, wx)

    def generate(self, seed: int) -> Sigil:
        cfg = self.config
        rng = Mulberry32(seed)
        grid: NDArray[np.str_] = np.full((cfg.height, cfg.width), BLANK, dtype="<U1")

        self._mirror_phase(grid, rng)
        self._spine_phase(grid, rng)
        self._corner_phase(grid)

        rows = tuple("".join(row) for row in grid.tolist())
        return Sigil(seed=seed & MASK32, rows=rows)

    # ── Phases (order is part of the output contract) ──────────────

    def _mirror_phase(self, grid: NDArray[np.str_], rng: Mulberry32) -> None:
        cfg = self.config
        w = cfg.width
        # .tolist avoids numpy scalar overhead in the per-cell loop
        chances = (cfg.base_fill + cfg.center_fill * self._weights).tolist()
        for y in range(cfg.height):
            row_chance = chances[y]
            for x in range(w // 2 + 1):
                if rng.next() < row_chance[x]:
                    ch = rng.choice(cfg.glyphs)
                else:
                    ch = BLANK
                grid[y, x] = ch
                grid[y, w - 1 - x] = ch

    def _spine_phase(self, grid: NDArray[np.str_], rng: Mulberry32) -> None:
        cfg = self.config
        spine_x = int(self._cx)
        for y in range(1, cfg.height - 1):
            if rng.next() < cfg.spine_chance:
                grid[y, spine_x] = rng.choice(cfg.spine_glyphs)

    def _corner_phase(self, grid: NDArray[np.str_]) -> None:
        mark = self.config.corner
        grid[0, 0] = mark
        grid[0, -1] = mark
        grid[-1, 0] = mark
        grid[-1, -1] = mark


def generate_sigil(seed: int, config: SigilConfig | None = None) -> str:
    """Newline-joined text form of the sigil for ``seed``."""
    return SigilGenerator(config).generate(seed).text
