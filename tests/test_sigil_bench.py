from sigil_bench import FakeSurface, build_renderer, run_benchmark


def test_fake_surface_counts_glyphs():
    renderer, surface, ticker = build_renderer(10, 20)
    assert ticker.pending == 1
    renderer.draw()
    assert surface.clears == 1
    assert surface.glyphs == 11 * 21


def test_line_timing_report(capsys):
    run_benchmark(n_frames=5, n_sigils=5, term_rows=8, term_cols=16, line_timing=True)
    out = capsys.readouterr().out
    assert "Frames over budget" in out
    assert "sigil" in out


def test_fake_surface_reports_size():
    assert FakeSurface(100, 50).size() == (100, 50, 1.0)
