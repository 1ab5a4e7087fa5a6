#!/usr/bin/env python3
"""
  +  S I G I L R Y  +
  Seeded sigils over a braided glyph field.

  The top panel holds a sigil: a mirrored ASCII mark grown from one 32-bit
  seed. Share the seed and anyone can grow the same mark. Below it the hero
  field ripples along at a dozen frames a second, fading toward the edges.

  Controls:
    q         quit               SPACE     pause / resume the field
    r         new sigil          t         cycle theme
    s         toggle stats overlay

  Usage:
    python3 sigil.py                      # interactive
    python3 sigil.py --seed 1234          # start from a known sigil
    python3 sigil.py --print --seed 1234  # print the sigil and exit
    python3 sigil.py --reduced-motion     # one still frame, pause disabled

  Frame telemetry goes to sigil_stats.csv beside this script unless
  SIGILRY_STATS_LOG=0.
"""

from __future__ import annotations

import argparse
import curses
import math
import sys
import time
from dataclasses import dataclass, field

from sigil_config import Settings
from sigil_gen import MASK32, Sigil, SigilGenerator, new_seed
from sigil_hero import (
    THEMES,
    FrameTicker,
    Renderer,
    Signal,
    StatsLogger,
    Surface,
    ThemeProvider,
)

PX_PER_CELL: int = 11      # logical pixels per terminal character
MIN_HERO_ROWS: int = 3     # below this the field counts as scrolled away
DIM_BELOW: float = 0.35
BOLD_FROM: float = 0.75


# ═══════════════════════════════════════════════════════════════════════
#  Colour management
# ═══════════════════════════════════════════════════════════════════════

def hex_to_xterm256(color: str) -> int:
    """Nearest xterm-256 colour-cube index for ``#rrggbb`` / ``#rgb``."""
    h = color.strip().lstrip("#")
    if len(h) == 3:
        h = "".join(c * 2 for c in h)
    if len(h) != 6:
        raise ValueError(f"not a hex colour: {color!r}")
    r, g, b = (int(h[i:i + 2], 16) for i in (0, 2, 4))
    r6, g6, b6 = (round(v / 255 * 5) for v in (r, g, b))
    return 16 + 36 * r6 + 6 * g6 + b6


def alpha_attr(alpha: float) -> int:
    if alpha < DIM_BELOW:
        return curses.A_DIM
    if alpha >= BOLD_FROM:
        return curses.A_BOLD
    return curses.A_NORMAL


@dataclass
class PaletteMap:
    """Lazily allocates one curses colour pair per theme colour."""

    enabled: bool = False
    _pairs: dict[int, int] = field(default_factory=dict)
    _next_pair: int = 1

    def setup(self) -> None:
        if not curses.has_colors():
            return
        curses.start_color()
        try:
            curses.use_default_colors()
        except curses.error:
            pass
        self.enabled = curses.COLORS >= 256

    def attr(self, color: str) -> int:
        if not self.enabled:
            return 0
        try:
            idx = hex_to_xterm256(color)
        except ValueError:
            return 0
        pair_id = self._pairs.get(idx)
        if pair_id is None:
            if self._next_pair >= curses.COLOR_PAIRS:
                return 0
            pair_id = self._next_pair
            curses.init_pair(pair_id, idx, -1)
            self._pairs[idx] = pair_id
            self._next_pair += 1
        return curses.color_pair(pair_id)


# ═══════════════════════════════════════════════════════════════════════
#  Curses surface
# ═══════════════════════════════════════════════════════════════════════

class CursesSurface(Surface):
    """Maps logical pixels onto a curses window, PX_PER_CELL per character."""

    def __init__(
        self,
        window: curses.window | None,
        palette: PaletteMap | None = None,
        px: int = PX_PER_CELL,
    ) -> None:
        self.window = window
        self.palette = palette
        self.px = px
        self.backing: tuple[int, int] = (1, 1)
        self.dpr: int = 1
        self._attr: int = 0

    def size(self) -> tuple[float, float, float]:
        if self.window is None:
            return 0.0, 0.0, 1.0
        rows, cols = self.window.getmaxyx()
        return float(cols * self.px), float(rows * self.px), 1.0

    def configure(self, backing_w: int, backing_h: int, dpr: int) -> None:
        self.backing = (backing_w, backing_h)
        self.dpr = dpr

    def _cells(self, x: float, y: float, w: float, h: float) -> tuple[int, int, int, int]:
        rows, cols = self.window.getmaxyx()  # type: ignore[union-attr]
        c0 = max(0, int(x // self.px))
        r0 = max(0, int(y // self.px))
        c1 = min(cols, math.ceil((x + w) / self.px))
        r1 = min(rows, math.ceil((y + h) / self.px))
        return r0, c0, r1, c1

    def clear_rect(self, x: float, y: float, w: float, h: float) -> None:
        if self.window is None:
            return
        r0, c0, r1, c1 = self._cells(x, y, w, h)
        rows, cols = self.window.getmaxyx()
        if (r0, c0, r1, c1) == (0, 0, rows, cols):
            self.window.erase()
            return
        self._paint(r0, c0, r1, c1, curses.A_NORMAL)

    def set_fill(self, color: str, alpha: float) -> None:
        base = self.palette.attr(color) if self.palette is not None else 0
        self._attr = base | alpha_attr(alpha)

    def fill_rect(self, x: float, y: float, w: float, h: float) -> None:
        if self.window is None:
            return
        r0, c0, r1, c1 = self._cells(x, y, w, h)
        self._paint(r0, c0, r1, c1, self._attr)

    def _paint(self, r0: int, c0: int, r1: int, c1: int, attr: int) -> None:
        if c1 <= c0:
            return
        blank = " " * (c1 - c0)
        for row in range(r0, r1):
            try:
                self.window.addstr(row, c0, blank, attr)  # type: ignore[union-attr]
            except curses.error:
                # Writing the bottom-right cell moves the cursor off-window
                pass

    def fill_text(self, text: str, x: float, y: float, size: int, font: str) -> None:
        """Repeat the glyph over every character its cell covers."""
        if self.window is None:
            return
        r0, c0, r1, c1 = self._cells(x, y, size, size)
        if c1 <= c0:
            return
        strip = text * (c1 - c0)
        for row in range(r0, r1):
            try:
                self.window.addstr(row, c0, strip, self._attr)
            except curses.error:
                pass


# ═══════════════════════════════════════════════════════════════════════
#  Layout + panels
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Layout:
    rows: int
    cols: int
    panel_rows: int
    hero_top: int
    hero_rows: int

    @property
    def hero_visible(self) -> bool:
        return self.hero_rows >= MIN_HERO_ROWS and self.cols > 0


def compute_layout(max_y: int, max_x: int, sigil_height: int) -> Layout:
    """Sigil panel on top (sigil + seed line + gap), field below, status bar last."""
    usable = max(0, max_y - 1)
    panel_rows = min(usable, sigil_height + 2)
    return Layout(
        rows=max_y,
        cols=max_x,
        panel_rows=panel_rows,
        hero_top=panel_rows,
        hero_rows=usable - panel_rows,
    )


def hero_window(stdscr: curses.window, layout: Layout) -> curses.window | None:
    if not layout.hero_visible:
        return None
    try:
        return stdscr.derwin(layout.hero_rows, layout.cols, layout.hero_top, 0)
    except curses.error:
        return None


def draw_sigil_panel(
    stdscr: curses.window, sigil: Sigil, layout: Layout, attr: int = 0
) -> None:
    lines = list(sigil.rows) + [f"seed: {sigil.seed}"]
    for i, line in enumerate(lines[: layout.panel_rows]):
        col = max(0, (layout.cols - len(line)) // 2)
        try:
            stdscr.addstr(i, 0, " " * max(0, layout.cols - 1))
            stdscr.addstr(i, col, line[: max(0, layout.cols - col - 1)], attr)
        except curses.error:
            pass


def status_line(sigil: Sigil, theme: ThemeProvider, renderer: Renderer | None) -> tuple[str, str]:
    state = renderer.status_string() if renderer is not None else "off"
    frames = renderer.frames if renderer is not None else 0
    left = f"  seed {sigil.seed}  {theme.label}  field {state}  frame {frames:,}"
    right = "q spc r t s  "
    return left, right


def draw_status(stdscr: curses.window, layout: Layout, left: str, right: str) -> None:
    row = layout.rows - 1
    if row < 0:
        return
    width = layout.cols - 1
    gap = width - len(left) - len(right)
    text = left + " " * gap + right if gap > 0 else left
    try:
        stdscr.addstr(row, 0, text[:width].ljust(width), curses.A_DIM)
    except curses.error:
        pass


def draw_stats_overlay(
    stdscr: curses.window, layout: Layout, renderer: Renderer, measured_fps: float
) -> None:
    """Renderer telemetry in the bottom-right of the field."""
    panel_w = 28
    lines = [
        f"{'':─<{panel_w - 2}}",
        " hero field",
        f" t         : {renderer.t:.2f}",
        f" cell      : {renderer.cell}px",
        f" surface   : {renderer.width:g}x{renderer.height:g}",
        f" draws     : {renderer.draws:,}",
        f" fps       : {measured_fps:.1f}",
    ]
    x0 = layout.cols - panel_w - 2
    y0 = layout.rows - len(lines) - 2
    if x0 < 0 or y0 < layout.hero_top:
        return
    for i, line in enumerate(lines):
        try:
            stdscr.addstr(y0 + i, x0, f" {line:<{panel_w - 1}}"[:panel_w], curses.A_DIM)
        except curses.error:
            pass


# ═══════════════════════════════════════════════════════════════════════
#  Main loop
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class AppOptions:
    seed: int | None = None
    theme: str = "terminal"
    reduced_motion: bool = False
    settings: Settings = field(default_factory=Settings)


def main(stdscr: curses.window, options: AppOptions) -> None:
    cfg = options.settings
    try:
        curses.curs_set(0)
    except curses.error:
        pass
    stdscr.nodelay(True)
    stdscr.timeout(0)

    palette = PaletteMap()
    palette.setup()

    theme = ThemeProvider(options.theme)
    generator = SigilGenerator()
    sigil = generator.generate(options.seed if options.seed is not None else new_seed())

    stats: StatsLogger | None = None
    if cfg.stats_log:
        stats = StatsLogger(cfg.stats_path)
        stats.open()

    max_y, max_x = stdscr.getmaxyx()
    layout = compute_layout(max_y, max_x, generator.config.height)

    ticker = FrameTicker()
    visibility = Signal()
    resize = Signal()
    surface = CursesSurface(hero_window(stdscr, layout), palette)
    renderer = Renderer.attach(
        surface,
        theme,
        ticker,
        visibility=visibility,
        resize=resize,
        reduced_motion=options.reduced_motion,
        fps=cfg.fps,
        time_step=cfg.time_step,
        cell_min=cfg.cell_min,
        cell_divisor=cfg.cell_divisor,
        stats=stats,
    )
    if renderer is not None:
        renderer.start(visible=layout.hero_visible)

    show_stats = False
    panel_dirty = True
    tick_s = 1.0 / cfg.tick_hz
    fps_frames0 = 0
    fps_t0 = time.monotonic()
    measured_fps = 0.0

    try:
        while True:
            # ── Input ──────────────────────────────────────────────
            try:
                key = stdscr.getch()
            except curses.error:
                key = -1

            if key in (ord("q"), ord("Q")):
                break
            elif key == ord(" "):
                if renderer is not None:
                    renderer.toggle_running()
            elif key in (ord("r"), ord("R")):
                sigil = generator.generate(new_seed())
                panel_dirty = True
                if renderer is not None:
                    renderer.note("regen")
            elif key in (ord("t"), ord("T")):
                theme.cycle()
                panel_dirty = True
                # A live field picks the theme up on its next frame
                if renderer is not None and not renderer.active and renderer.visible:
                    renderer.draw()
            elif key in (ord("s"), ord("S")):
                show_stats = not show_stats
                if renderer is not None and not renderer.active and renderer.visible:
                    renderer.draw()
            elif key == curses.KEY_RESIZE:
                max_y, max_x = stdscr.getmaxyx()
                stdscr.erase()
                layout = compute_layout(max_y, max_x, generator.config.height)
                surface.window = hero_window(stdscr, layout)
                visibility.emit(surface.window is not None)
                w, h, dpr = surface.size()
                resize.emit(w, h, dpr)
                panel_dirty = True

            # ── Tick ───────────────────────────────────────────────
            now_ms = time.monotonic() * 1000.0
            ticker.fire(now_ms)

            now_s = now_ms / 1000.0
            if renderer is not None and now_s - fps_t0 >= 1.0:
                measured_fps = (renderer.frames - fps_frames0) / (now_s - fps_t0)
                fps_frames0 = renderer.frames
                fps_t0 = now_s

            # ── Panels ─────────────────────────────────────────────
            if panel_dirty:
                accent = theme.get("accent") or THEMES["terminal"]["accent"]
                draw_sigil_panel(stdscr, sigil, layout, palette.attr(accent) | curses.A_BOLD)
                panel_dirty = False
            draw_status(stdscr, layout, *status_line(sigil, theme, renderer))
            if show_stats and renderer is not None and surface.window is not None:
                draw_stats_overlay(stdscr, layout, renderer, measured_fps)
            stdscr.refresh()

            time.sleep(tick_s)

    finally:
        if renderer is not None:
            renderer.teardown()
        if stats is not None:
            stats.close()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seeded sigils over a braided glyph field")
    parser.add_argument("--seed", type=int, default=None,
                        help="Sigil seed (any integer, masked to 32 bits)")
    parser.add_argument("--print", dest="print_only", action="store_true",
                        help="Print the sigil and its seed, then exit")
    parser.add_argument("--theme", choices=sorted(THEMES), default=None,
                        help="Palette (default: $SIGILRY_THEME or terminal)")
    parser.add_argument("--reduced-motion", action="store_true",
                        help="Draw a single still frame and disable pause")
    return parser.parse_args(argv)


def run(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    seed = args.seed & MASK32 if args.seed is not None else new_seed()

    if args.print_only:
        sigil = SigilGenerator().generate(seed)
        sys.stdout.write(f"{sigil.text}\nseed: {sigil.seed}\n")
        return 0

    settings = Settings.from_env()
    options = AppOptions(
        seed=seed,
        theme=args.theme or settings.theme,
        reduced_motion=args.reduced_motion or settings.reduced_motion,
        settings=settings,
    )
    try:
        curses.wrapper(main, options)
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(run())
