import curses

import pytest

import sigil
from sigil import (
    MIN_HERO_ROWS,
    PX_PER_CELL,
    CursesSurface,
    alpha_attr,
    compute_layout,
    draw_sigil_panel,
    draw_status,
    hex_to_xterm256,
    status_line,
)
from sigil_gen import SigilGenerator, generate_sigil
from sigil_hero import FrameTicker, Renderer, ThemeProvider


class FakeWindow:
    """Minimal curses.window stub that records addstr calls."""

    def __init__(self, rows, cols):
        self._rows = rows
        self._cols = cols
        self.calls = []
        self.erased = 0

    def getmaxyx(self):
        return self._rows, self._cols

    def addstr(self, row, col, text, attr=0):
        if not (0 <= row < self._rows and 0 <= col < self._cols):
            raise curses.error("out of window")
        self.calls.append((row, col, text, attr))

    def erase(self):
        self.erased += 1

    def text_at(self, row):
        return [c for c in self.calls if c[0] == row]


def test_hex_to_xterm256():
    assert hex_to_xterm256("#000000") == 16
    assert hex_to_xterm256("#ffffff") == 231
    assert hex_to_xterm256("#f00") == 196
    assert hex_to_xterm256("6dff95") == 16 + 36 * 2 + 6 * 5 + 3
    with pytest.raises(ValueError):
        hex_to_xterm256("#12345")


def test_alpha_attr_bands():
    assert alpha_attr(0.12) == curses.A_DIM
    assert alpha_attr(0.5) == curses.A_NORMAL
    assert alpha_attr(0.9) == curses.A_BOLD


def test_layout_splits_panel_and_field():
    layout = compute_layout(50, 120, 11)
    assert layout.panel_rows == 13
    assert layout.hero_top == 13
    assert layout.hero_rows == 36
    assert layout.hero_visible

    tiny = compute_layout(14, 80, 11)
    assert tiny.hero_rows < MIN_HERO_ROWS
    assert not tiny.hero_visible


def test_surface_maps_pixels_to_cells():
    win = FakeWindow(10, 40)
    surface = CursesSurface(win)
    assert surface.size() == (40.0 * PX_PER_CELL, 10.0 * PX_PER_CELL, 1.0)

    surface.set_fill("#6dff95", 0.9)
    surface.fill_text("@", 3 * PX_PER_CELL, 2 * PX_PER_CELL, 11, "monospace")
    assert win.calls == [(2, 3, "@", curses.A_BOLD)]

    before = len(win.calls)
    surface.fill_text("#", 40 * PX_PER_CELL, 0, 11, "monospace")
    surface.fill_text("#", 0, 10 * PX_PER_CELL, 11, "monospace")
    assert len(win.calls) == before


def test_large_cell_repeats_glyph_over_covered_characters():
    win = FakeWindow(10, 40)
    surface = CursesSurface(win)
    surface.fill_text("#", 14, 14, 14, "monospace")
    assert win.calls == [(1, 1, "##", 0), (2, 1, "##", 0)]


def test_surface_clear_and_fill():
    win = FakeWindow(4, 8)
    surface = CursesSurface(win)
    w, h, _ = surface.size()
    surface.clear_rect(0, 0, w, h)
    assert win.erased == 1

    surface.set_fill("#88b39a", 0.18)
    surface.fill_rect(0, 0, w, h)
    rows = [c for c in win.calls if c[2] == " " * 8]
    assert len(rows) == 4
    assert all(c[3] == curses.A_DIM for c in rows)


def test_surface_without_window_is_inert():
    surface = CursesSurface(None)
    assert surface.size() == (0.0, 0.0, 1.0)
    surface.clear_rect(0, 0, 10, 10)
    surface.fill_rect(0, 0, 10, 10)
    surface.fill_text("x", 0, 0, 11, "monospace")


def test_renderer_draws_into_curses_window():
    win = FakeWindow(12, 30)
    surface = CursesSurface(win)
    renderer = Renderer(surface, ThemeProvider(), FrameTicker())
    renderer.start()
    renderer.draw()
    glyphs = [c for c in win.calls if len(c[2]) == 1]
    assert len(glyphs) == 12 * 30
    assert {c[2] for c in glyphs} <= set(" .:-=+*#%@")


def test_tall_terminal_field_has_no_blank_rows_or_columns():
    layout = compute_layout(60, 120, 11)
    win = FakeWindow(layout.hero_rows, layout.cols)
    renderer = Renderer(CursesSurface(win), ThemeProvider(), FrameTicker())
    renderer.start()
    assert renderer.cell > PX_PER_CELL
    renderer.draw()

    tint = win.calls[: layout.hero_rows]
    assert all(c[2] == " " * layout.cols for c in tint)
    covered = set()
    for row, col, text, _ in win.calls[layout.hero_rows :]:
        assert len(set(text)) == 1
        covered.update((row, c) for c in range(col, col + len(text)))
    assert covered == {
        (row, col) for row in range(layout.hero_rows) for col in range(layout.cols)
    }


def test_sigil_panel_and_status():
    win = FakeWindow(20, 60)
    layout = compute_layout(20, 60, 11)
    mark = SigilGenerator().generate(1234)
    draw_sigil_panel(win, mark, layout)
    assert any("seed: 1234" in c[2] for c in win.text_at(11))
    assert any(mark.rows[0] in c[2] for c in win.text_at(0))

    left, right = status_line(mark, ThemeProvider(), None)
    assert "seed 1234" in left
    assert "field off" in left
    draw_status(win, layout, left, right)
    status = win.text_at(19)[-1]
    assert len(status[2]) == 59
    assert status[3] == curses.A_DIM


def test_print_mode_writes_sigil(capsys):
    assert sigil.run(["--print", "--seed", "42"]) == 0
    out = capsys.readouterr().out
    assert out == generate_sigil(42) + "\nseed: 42\n"


def test_print_mode_masks_seed(capsys):
    sigil.run(["--print", "--seed", str(2**32 + 7)])
    out = capsys.readouterr().out
    assert out.endswith("seed: 7\n")
    assert out.startswith(generate_sigil(7))


def test_print_mode_ignores_malformed_environment(monkeypatch, capsys):
    monkeypatch.setenv("SIGILRY_FPS", "fast")
    assert sigil.run(["--print", "--seed", "1"]) == 0
    assert capsys.readouterr().out.endswith("seed: 1\n")


def test_interactive_mode_reads_environment_at_run(monkeypatch):
    seen = []
    monkeypatch.setattr(curses, "wrapper", lambda fn, options: seen.append(options))
    monkeypatch.setenv("SIGILRY_THEME", "zine")
    monkeypatch.setenv("SIGILRY_FPS", "24")
    assert sigil.run(["--seed", "5"]) == 0
    assert seen[0].theme == "zine"
    assert seen[0].settings.fps == 24.0
    assert seen[0].seed == 5

    monkeypatch.setenv("SIGILRY_FPS", "fast")
    with pytest.raises(ValueError):
        sigil.run(["--seed", "5"])
    assert len(seen) == 1

