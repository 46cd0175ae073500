"""Tests for mdv.monitor -- file reading and change-triggered re-rendering."""

from __future__ import annotations

import io
import threading
from pathlib import Path

import pytest

from mdv.errors import InputError, MonitorError
from mdv.monitor import FileMonitor, read_markdown, strip_bom, watch_file

from .helpers import make_config


@pytest.fixture
def doc(tmp_path: Path) -> Path:
    path = tmp_path / "doc.md"
    path.write_text("# Watched\n", encoding="utf-8")
    return path


class TestReading:
    def test_strip_bom(self) -> None:
        assert strip_bom("\ufeff\ufeffabc") == "abc"
        assert strip_bom("abc\ufeff") == "abc\ufeff"

    def test_read_markdown_strips_bom(self, tmp_path: Path) -> None:
        path = tmp_path / "bom.md"
        path.write_text("\ufeff# T", encoding="utf-8")
        assert read_markdown(path) == "# T"

    def test_read_markdown_missing(self, tmp_path: Path) -> None:
        with pytest.raises(InputError):
            read_markdown(tmp_path / "missing.md")


class TestFileMonitor:
    def make_monitor(self, path: Path) -> tuple[FileMonitor, io.StringIO]:
        out = io.StringIO()
        return FileMonitor(path, make_config(no_colors=True), out=out), out

    def test_render_once(self, doc: Path) -> None:
        monitor, out = self.make_monitor(doc)
        monitor.render_once()
        assert out.getvalue() == "Watched\n"

    def test_on_change_announces(self, doc: Path) -> None:
        monitor, out = self.make_monitor(doc)
        doc.write_text("# Changed\n", encoding="utf-8")
        monitor.on_change()
        assert "--- File changed, re-rendering ---" in out.getvalue()
        assert "Changed" in out.getvalue()

    def test_render_error_is_reported(self, doc: Path) -> None:
        monitor, out = self.make_monitor(doc)
        doc.unlink()
        monitor.render_once()
        assert out.getvalue().startswith("Error rendering file:")

    def test_matches(self, doc: Path, tmp_path: Path) -> None:
        monitor, _ = self.make_monitor(doc)
        assert monitor.matches(str(doc))
        assert not monitor.matches(str(tmp_path / "other.md"))

    def test_schedule_debounces(self, doc: Path) -> None:
        monitor, _ = self.make_monitor(doc)
        calls: list[int] = []
        done = threading.Event()

        def record() -> None:
            calls.append(1)
            done.set()

        monitor.schedule(record)
        monitor.schedule(record)
        assert done.wait(2)
        monitor.stop()
        assert calls == [1]


class TestWatchFile:
    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(MonitorError):
            watch_file(tmp_path / "missing.md", make_config())

    def test_stops_on_interrupt(self, doc: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        def interrupt(_seconds: float) -> None:
            raise KeyboardInterrupt

        monkeypatch.setattr("mdv.monitor.time.sleep", interrupt)
        out = io.StringIO()
        watch_file(doc, make_config(no_colors=True), out=out)
        text = out.getvalue()
        assert text.startswith(f"Monitoring file: {doc}")
        assert "Watched" in text
        assert text.endswith("Stopped monitoring.\n")
