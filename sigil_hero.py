"""
The hero backdrop: a throttled, pausable, visibility-aware glyph animation.

The Renderer owns every piece of control state (running, visible, reduced
motion) and surface state (size, pixel ratio, cell size, time). The host
wires it up with explicit collaborators:

  surface     where glyphs go (curses window, test recorder, ...)
  theme       token -> colour / font lookup, re-queried every draw
  ticker      per-frame tick source, one outstanding request at most
  visibility  optional Signal emitting bool
  resize      optional Signal emitting (width, height, dpr)

Everything runs on the host loop thread. Ticks, visibility and resize
callbacks may interleave in any order; the flags are checked at the top of
every tick, so suspension is cooperative and there is no catch-up.
"""

from __future__ import annotations

import logging
import math
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import Path
from typing import IO, ClassVar

import numpy as np

from sigil_field import RAMP, FieldSampler, vignette_grid

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════════
#  Constants
# ═══════════════════════════════════════════════════════════════════════

TARGET_FPS: float = 12.0
TIME_STEP: float = 0.15          # per accepted frame, not wall-clock scaled
CELL_MIN: int = 11               # px; keeps glyphs legible on tiny surfaces
CELL_DIVISOR: int = 34

TINT_ALPHA: float = 0.18
BASE_ALPHA: float = 0.12
VIGNETTE_ALPHA: float = 0.78

DEFAULT_ACCENT: str = "#6dff95"
DEFAULT_MUTED: str = "#88b39a"
DEFAULT_FONT: str = "monospace"

# ── Palettes (one per landing-page "take") ──────────────────────────────
THEMES: dict[str, dict[str, str]] = {
    "terminal": {
        "label": "Terminal Cathedral",
        "accent": "#6dff95",
        "muted": "#88b39a",
        "font-mono": "monospace",
    },
    "obsidian": {
        "label": "Obsidian Atelier",
        "accent": "#c9a7ff",
        "muted": "#7d7394",
        "font-mono": "monospace",
    },
    "zine": {
        "label": "Zine Workshop",
        "accent": "#ff5c8a",
        "muted": "#b08968",
        "font-mono": "monospace",
    },
}
THEME_ORDER: list[str] = list(THEMES)
DEFAULT_THEME: str = "terminal"


# ═══════════════════════════════════════════════════════════════════════
#  Collaborators
# ═══════════════════════════════════════════════════════════════════════

class Surface(ABC):
    """2-D drawing context. Coordinates are logical pixels."""

    @abstractmethod
    def size(self) -> tuple[float, float, float]:
        """Current logical (width, height, device pixel ratio)."""
        raise NotImplementedError

    @abstractmethod
    def configure(self, backing_w: int, backing_h: int, dpr: int) -> None:
        raise NotImplementedError

    @abstractmethod
    def clear_rect(self, x: float, y: float, w: float, h: float) -> None:
        raise NotImplementedError

    @abstractmethod
    def set_fill(self, color: str, alpha: float) -> None:
        raise NotImplementedError

    @abstractmethod
    def fill_rect(self, x: float, y: float, w: float, h: float) -> None:
        raise NotImplementedError

    @abstractmethod
    def fill_text(self, text: str, x: float, y: float, size: int, font: str) -> None:
        raise NotImplementedError


class ThemeProvider:
    """Named-token lookup over one of the built-in palettes."""

    def __init__(self, name: str = DEFAULT_THEME) -> None:
        self.name: str = DEFAULT_THEME
        self.select(name)

    def select(self, name: str) -> str:
        self.name = name if name in THEMES else DEFAULT_THEME
        return self.name

    def cycle(self) -> str:
        idx = THEME_ORDER.index(self.name)
        return self.select(THEME_ORDER[(idx + 1) % len(THEME_ORDER)])

    @property
    def label(self) -> str:
        return THEMES[self.name]["label"]

    def get(self, token: str) -> str | None:
        return THEMES[self.name].get(token)


class FrameTicker:
    """requestAnimationFrame-style tick source driven by the host loop."""

    def __init__(self) -> None:
        self._pending: dict[int, Callable[[float], None]] = {}
        self._next_handle: int = 1

    def request(self, callback: Callable[[float], None]) -> int:
        handle = self._next_handle
        self._next_handle += 1
        self._pending[handle] = callback
        return handle

    def cancel(self, handle: int) -> None:
        self._pending.pop(handle, None)

    @property
    def pending(self) -> int:
        return len(self._pending)

    def fire(self, ts_ms: float) -> int:
        """Run callbacks pending at call time; new requests wait for the next fire."""
        batch = self._pending
        self._pending = {}
        for callback in batch.values():
            callback(ts_ms)
        return len(batch)


class Signal:
    """Minimal listener registry for host events."""

    def __init__(self) -> None:
        self._listeners: list[Callable[..., None]] = []

    def subscribe(self, callback: Callable[..., None]) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def emit(self, *args: object) -> None:
        for callback in list(self._listeners):
            callback(*args)

    def __len__(self) -> int:
        return len(self._listeners)


# ═══════════════════════════════════════════════════════════════════════
#  Stats logger
# ═══════════════════════════════════════════════════════════════════════

class StatsLogger:
    """Writes renderer telemetry to CSV for post-hoc tuning."""

    HEADER: ClassVar[str] = "frame,time_s,t,cell,width,height,event\n"
    EVERY: ClassVar[int] = 12

    def __init__(self, path: Path) -> None:
        self._path = path
        self._fh: IO[str] | None = None
        self._t0: float = time.monotonic()

    def open(self) -> None:
        try:
            self._fh = open(self._path, "w")
            self._fh.write(self.HEADER)
            self._fh.flush()
        except OSError:
            self._fh = None

    @property
    def active(self) -> bool:
        return self._fh is not None

    def log(
        self,
        frame: int,
        t: float,
        cell: int,
        width: float,
        height: float,
        event: str = "",
    ) -> None:
        if self._fh is None:
            return
        if not event and frame % self.EVERY != 0:
            return
        elapsed = time.monotonic() - self._t0
        try:
            self._fh.write(
                f"{frame},{elapsed:.1f},{t:.2f},{cell},{width:g},{height:g},{event}\n"
            )
            if event:
                self._fh.flush()
        except OSError:
            self.close()

    def close(self) -> None:
        if self._fh is not None:
            try:
                self._fh.close()
            except OSError:
                pass
            self._fh = None


# ═══════════════════════════════════════════════════════════════════════
#  Renderer
# ═══════════════════════════════════════════════════════════════════════

class Renderer:
    """Drives the field animation onto a surface. See the module docstring."""

    def __init__(
        self,
        surface: Surface,
        theme: ThemeProvider,
        ticker: FrameTicker,
        visibility: Signal | None = None,
        resize: Signal | None = None,
        reduced_motion: bool = False,
        fps: float = TARGET_FPS,
        time_step: float = TIME_STEP,
        cell_min: int = CELL_MIN,
        cell_divisor: int = CELL_DIVISOR,
        sampler: FieldSampler | None = None,
        stats: StatsLogger | None = None,
    ) -> None:
        self.surface = surface
        self.theme = theme
        self.ticker = ticker
        self.sampler: FieldSampler = sampler or FieldSampler(RAMP)
        self.stats = stats

        self.frame_budget_ms: float = 1000.0 / fps
        self.time_step: float = time_step
        self.cell_min: int = max(1, cell_min)
        self.cell_divisor: int = max(1, cell_divisor)

        # Control state
        self.reduced_motion: bool = reduced_motion
        self.pause_enabled: bool = not reduced_motion
        self.running: bool = not reduced_motion
        self.visible: bool = True

        # Surface state
        self.width: float = 1.0
        self.height: float = 1.0
        self.dpr: int = 1
        self.cell: int = self.cell_min
        self.t: float = 0.0

        self.frames: int = 0       # throttled frames accepted
        self.draws: int = 0        # every draw, including static and resize
        self._last_ts: float = 0.0
        self._frame_handle: int | None = None
        self._unsubscribers: list[Callable[[], None]] = []
        self._torn_down: bool = False

        if visibility is not None:
            self._unsubscribers.append(visibility.subscribe(self.on_visibility_change))
        else:
            logger.debug("no visibility source; renderer stays visible")
        if resize is not None:
            self._unsubscribers.append(resize.subscribe(self.on_resize))
        else:
            logger.debug("no resize source; surface size fixed at start")

    @classmethod
    def attach(cls, surface: Surface | None, *args: object, **kwargs: object) -> Renderer | None:
        """Build a renderer, or None when there is nothing to draw on."""
        if surface is None:
            logger.debug("no drawing surface; hero animation inactive")
            return None
        return cls(surface, *args, **kwargs)  # type: ignore[arg-type]

    # ── Lifecycle ───────────────────────────────────────────────────

    def start(self, visible: bool | None = None) -> None:
        """Begin drawing. ``visible`` seeds the initial state without an event row."""
        if visible is not None:
            self.visible = visible
        w, h, dpr = self.surface.size()
        self._apply_size(w, h, dpr)
        self.note("start")
        if self.running and self.visible:
            self._schedule()
        else:
            self.draw()

    def teardown(self) -> None:
        if self._torn_down:
            return
        self._torn_down = True
        self._cancel()
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()

    @property
    def active(self) -> bool:
        return self.running and self.visible and not self._torn_down

    def status_string(self) -> str:
        if self.reduced_motion:
            return "still"
        if not self.running:
            return "paused"
        if not self.visible:
            return "hidden"
        return "running"

    # ── Host events ─────────────────────────────────────────────────

    def set_running(self, running: bool) -> bool:
        if not self.pause_enabled or self._torn_down or running == self.running:
            return self.running
        self.running = running
        self.note("resume" if running else "pause")
        if self.active:
            self._schedule()
        return self.running

    def toggle_running(self) -> bool:
        return self.set_running(not self.running)

    def on_visibility_change(self, visible: bool) -> None:
        if self._torn_down or visible == self.visible:
            return
        self.visible = visible
        self.note("shown" if visible else "hidden")
        if self.active:
            self._schedule()

    def on_resize(self, width: float, height: float, dpr: float = 1.0) -> None:
        if self._torn_down:
            return
        self._apply_size(width, height, dpr)
        self.note("resize")
        # Bypasses the throttle and leaves t alone; paused frames refresh too
        if self.visible:
            self.draw()

    # ── Scheduling ──────────────────────────────────────────────────

    def _schedule(self) -> None:
        if self._frame_handle is None:
            self._frame_handle = self.ticker.request(self._frame)

    def _cancel(self) -> None:
        if self._frame_handle is not None:
            self.ticker.cancel(self._frame_handle)
            self._frame_handle = None

    def _frame(self, ts: float) -> None:
        self._frame_handle = None
        if not self.active:
            return
        if ts - self._last_ts < self.frame_budget_ms:
            self._schedule()
            return
        self._last_ts = ts
        self.t += self.time_step
        self.frames += 1
        self.draw()
        self.note()
        self._schedule()

    # ── Drawing ─────────────────────────────────────────────────────

    def _apply_size(self, width: float, height: float, dpr: float) -> None:
        self.dpr = max(1, math.floor(dpr or 1))
        self.width = max(0.0, float(width))
        self.height = max(0.0, float(height))
        backing_w = max(1, math.floor(self.width * self.dpr))
        backing_h = max(1, math.floor(self.height * self.dpr))
        self.surface.configure(backing_w, backing_h, self.dpr)
        self.cell = self.cell_size(self.width, self.height)

    def cell_size(self, width: float, height: float) -> int:
        return max(self.cell_min, math.floor(min(width, height) / self.cell_divisor))

    def draw(self) -> None:
        if self._torn_down:
            return
        w, h = self.width, self.height
        surface = self.surface
        accent = self.theme.get("accent") or DEFAULT_ACCENT
        muted = self.theme.get("muted") or DEFAULT_MUTED
        font = self.theme.get("font-mono") or DEFAULT_FONT

        surface.clear_rect(0, 0, w, h)
        cell = self.cell = self.cell_size(w, h)

        surface.set_fill(muted, TINT_ALPHA)
        surface.fill_rect(0, 0, w, h)

        # One extra row and column so the field bleeds past the edges
        xs = np.arange(0, w + cell, cell, dtype=np.float64)
        ys = np.arange(0, h + cell, cell, dtype=np.float64)

        glyphs = self.sampler.glyphs(self.sampler.sample_grid(xs, ys, self.t))
        alphas = BASE_ALPHA + VIGNETTE_ALPHA * vignette_grid(xs, ys, w, h)

        # .tolist avoids per-element numpy scalar conversion in the loop
        gl = glyphs.tolist()
        al = alphas.tolist()
        xl = xs.tolist()
        yl = ys.tolist()
        _set_fill = surface.set_fill
        _fill_text = surface.fill_text
        for j, y in enumerate(yl):
            row_g = gl[j]
            row_a = al[j]
            for i, x in enumerate(xl):
                _set_fill(accent, row_a[i])
                _fill_text(row_g[i], x, y, cell, font)

        self.draws += 1

    def note(self, event: str = "") -> None:
        if self.stats is not None:
            self.stats.log(self.frames, self.t, self.cell, self.width, self.height, event)
