"""
Braided-band scalar field for the live glyph backdrop.

Three sine/cosine terms over coordinates normalised by FIELD_SCALE, each
drifting with time at its own rate, averaged. Smooth in space and time,
no randomness. Values land in [-1, 1] and are discretised onto RAMP.
"""

from __future__ import annotations

import math

import numpy as np
from numpy.typing import ArrayLike, NDArray

FIELD_SCALE: float = 220.0
RATE_A: float = 0.8
RATE_B: float = -0.7
RATE_C: float = 1.2

RAMP: str = " .:-=+*#%@"
VIGNETTE_STRENGTH: float = 2.1


def clamp01(x: float) -> float:
    return max(0.0, min(1.0, x))


class FieldSampler:
    """Stateless sampler; the class only groups the scalar and grid forms."""

    def __init__(self, ramp: str = RAMP, scale: float = FIELD_SCALE) -> None:
        if not ramp:
            raise ValueError("glyph ramp is empty")
        self.ramp: str = ramp
        self.scale: float = scale
        self._ramp_arr: NDArray[np.str_] = np.array(list(ramp), dtype="<U1")

    # ── Field ───────────────────────────────────────────────────────

    def sample(self, x: float, y: float, t: float) -> float:
        nx = x / self.scale
        ny = y / self.scale
        a = math.sin((nx * 7.0 + t * RATE_A) + math.sin(ny * 2.2))
        b = math.cos((ny * 6.5 + t * RATE_B) + math.cos(nx * 2.0))
        c = math.sin((nx + ny) * 6.0 + t * RATE_C)
        return (a + b + c) / 3

    def sample_grid(self, xs: ArrayLike, ys: ArrayLike, t: float) -> NDArray[np.float64]:
        """Field over the cartesian product, shape (len(ys), len(xs))."""
        nx = np.asarray(xs, dtype=np.float64)[np.newaxis, :] / self.scale
        ny = np.asarray(ys, dtype=np.float64)[:, np.newaxis] / self.scale
        a = np.sin((nx * 7.0 + t * RATE_A) + np.sin(ny * 2.2))
        b = np.cos((ny * 6.5 + t * RATE_B) + np.cos(nx * 2.0))
        c = np.sin((nx + ny) * 6.0 + t * RATE_C)
        return (a + b + c) / 3

    # ── Ramp ────────────────────────────────────────────────────────

    def glyph_index(self, v: float) -> int:
        v01 = clamp01((v + 1) / 2)
        return math.floor(v01 * (len(self.ramp) - 1))

    def glyph_for(self, v: float) -> str:
        return self.ramp[self.glyph_index(v)]

    def glyph_indices(self, values: ArrayLike) -> NDArray[np.intp]:
        v01 = np.clip((np.asarray(values, dtype=np.float64) + 1) / 2, 0.0, 1.0)
        return np.floor(v01 * (len(self.ramp) - 1)).astype(np.intp)

    def glyphs(self, values: ArrayLike) -> NDArray[np.str_]:
        return self._ramp_arr[self.glyph_indices(values)]


# ── Vignette ────────────────────────────────────────────────────────────

def vignette(x: float, y: float, w: float, h: float,
             strength: float = VIGNETTE_STRENGTH) -> float:
    """Edge fade: 0 on the border, 1 once `1/strength` of the way in."""
    w = max(w, 1.0)
    h = max(h, 1.0)
    edge_x = min(x / w, 1 - x / w)
    edge_y = min(y / h, 1 - y / h)
    return clamp01(min(edge_x, edge_y) * strength)


def vignette_grid(xs: ArrayLike, ys: ArrayLike, w: float, h: float,
                  strength: float = VIGNETTE_STRENGTH) -> NDArray[np.float64]:
    w = max(w, 1.0)
    h = max(h, 1.0)
    fx = np.asarray(xs, dtype=np.float64)[np.newaxis, :] / w
    fy = np.asarray(ys, dtype=np.float64)[:, np.newaxis] / h
    edge_x = np.minimum(fx, 1 - fx)
    edge_y = np.minimum(fy, 1 - fy)
    return np.clip(np.minimum(edge_x, edge_y) * strength, 0.0, 1.0)
