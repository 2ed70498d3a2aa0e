"""Tests for termbridge.tui.render (frames fitted to the viewport)."""

from __future__ import annotations

from rich.text import Text

from termbridge.pty.geometry import Viewport
from termbridge.tui.render import (
    RenderedFrame,
    connecting_frame,
    fit_lines,
    header_for,
    render_frame,
)

from conftest import FakeEngine


class TestHeader:
    def test_name_and_host(self) -> None:
        assert header_for("web-1", "10.0.0.5") == "Connected to: web-1  |  Host: 10.0.0.5"

    def test_name_equals_host(self) -> None:
        assert header_for("10.0.0.5", "10.0.0.5") == "Connected to: 10.0.0.5"


class TestFitLines:
    def test_pads_short_screen(self) -> None:
        lines = fit_lines([Text("hi")], Viewport(rows=3, cols=5))
        assert [line.plain for line in lines] == ["hi   ", "     ", "     "]

    def test_truncates_wide_lines(self) -> None:
        lines = fit_lines([Text("0123456789")], Viewport(rows=1, cols=4))
        assert lines[0].plain == "0123"

    def test_keeps_most_recent_rows(self) -> None:
        source = [Text(f"line{i}") for i in range(10)]
        lines = fit_lines(source, Viewport(rows=3, cols=6))
        assert [line.plain for line in lines] == ["line7 ", "line8 ", "line9 "]

    def test_single_trailing_empty_line_dropped(self) -> None:
        lines = fit_lines([Text("a"), Text("b"), Text("")], Viewport(rows=2, cols=1))
        assert [line.plain for line in lines] == ["a", "b"]

    def test_input_not_mutated(self) -> None:
        original = Text("abcdef")
        fit_lines([original], Viewport(rows=1, cols=2))
        assert original.plain == "abcdef"


class TestFrames:
    def test_render_frame_from_engine(self) -> None:
        engine = FakeEngine(8, 4)
        engine.advance(b"hello\r\nworld\r\n")
        frame = render_frame(engine, Viewport(rows=4, cols=8), "box", "10.0.0.9")
        assert isinstance(frame, RenderedFrame)
        assert frame.header == "Connected to: box  |  Host: 10.0.0.9"
        assert frame.plain == ["hello   ", "world   ", " " * 8, " " * 8]
        assert frame.to_text().plain.count("\n") == 3

    def test_connecting_frame(self) -> None:
        frame = connecting_frame(Viewport(rows=5, cols=40), "box", "10.0.0.9")
        assert frame.plain[0].startswith("Connecting to box (10.0.0.9)...")
        assert len(frame.plain) == 5
