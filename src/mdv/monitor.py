"""Re-render a markdown file whenever it changes on disk."""

from __future__ import annotations

import logging
import sys
import threading
import time
from pathlib import Path
from typing import Any, Callable, TextIO

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from mdv.config import Config
from mdv.errors import InputError, MdvError, MonitorError
from mdv.renderer import TerminalRenderer

logger = logging.getLogger(__name__)

_DEBOUNCE_S = 0.1  # 100 ms


def strip_bom(text: str) -> str:
    while text.startswith("\ufeff"):
        text = text[1:]
    return text


def read_markdown(path: Path) -> str:
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise InputError(f"{path}: {exc}") from exc
    return strip_bom(content)


class FileMonitor:
    """Watch one file and re-render it after each burst of changes."""

    def __init__(
        self,
        path: str | Path,
        config: Config,
        renderer: TerminalRenderer | None = None,
        out: TextIO | None = None,
    ) -> None:
        self.path = Path(path).resolve()
        self.config = config
        self.renderer = renderer or TerminalRenderer(config)
        self.out = out or sys.stdout
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self._observer: Any = None

    def render_once(self) -> None:
        """Render the file, reporting failures without stopping the monitor."""
        with self._lock:
            try:
                output = self.renderer.render_markdown(read_markdown(self.path))
            except MdvError as exc:
                self.out.write(f"Error rendering file: {exc}\n")
                self.out.flush()
                return
            self.out.write(output)
            self.out.flush()

    def on_change(self) -> None:
        self.out.write("\n--- File changed, re-rendering ---\n\n")
        self.render_once()

    def schedule(self, fn: Callable[[], None] | None = None) -> None:
        """Run *fn* (default :meth:`on_change`) once no event arrived for 100 ms."""
        if self._timer is not None:
            self._timer.cancel()
        self._timer = threading.Timer(_DEBOUNCE_S, fn or self.on_change)
        self._timer.daemon = True
        self._timer.start()

    def matches(self, src_path: str) -> bool:
        try:
            return Path(src_path).resolve() == self.path
        except OSError:
            return False

    def start(self) -> None:
        monitor = self

        class _Handler(FileSystemEventHandler):
            def on_modified(self, event: Any) -> None:
                if not event.is_directory and monitor.matches(event.src_path):
                    monitor.schedule()

            def on_created(self, event: Any) -> None:
                if not event.is_directory and monitor.matches(event.src_path):
                    monitor.schedule()

            def on_moved(self, event: Any) -> None:
                # Editors that save by renaming a temp file over the original
                dest = getattr(event, "dest_path", "")
                if not event.is_directory and dest and monitor.matches(dest):
                    monitor.schedule()

        self._observer = Observer()
        self._observer.schedule(_Handler(), str(self.path.parent), recursive=False)
        self._observer.start()
        logger.debug("Watching %s", self.path)

    def stop(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._observer is not None:
            self._observer.stop()
            self._observer.join()
            self._observer = None


def watch_file(path: str | Path, config: Config, out: TextIO | None = None) -> None:
    """Render *path*, then keep re-rendering it on change until Ctrl+C."""
    target = Path(path)
    if not target.is_file():
        raise MonitorError(f"File not found: {target}")

    monitor = FileMonitor(target, config, out=out)
    monitor.out.write(f"Monitoring file: {target} (Press Ctrl+C to stop)\n\n")
    monitor.render_once()
    monitor.start()
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        monitor.out.write("\nStopped monitoring.\n")
    finally:
        monitor.stop()
