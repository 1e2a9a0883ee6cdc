"""Template watcher — emits lifecycle events for collection-route templates.

Monitors the pages directory and reports ``added`` / ``changed`` /
``removed`` events for files whose names look like collection routes:

- On start, a full scan emits a synthetic ``added`` for every existing
  template, before any live event.
- Live changes are grouped by watchfiles within ``debounce_ms`` and
  coalesced to one event per path.
- I/O failures put the watcher in ``degraded`` status; it retries with
  exponential backoff and rescans on recovery.
"""

from __future__ import annotations

import asyncio
import fnmatch
import queue
import sys
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from watchfiles import Change, DefaultFilter

from collate._errors import WatcherIOError

# How long the notifier waits before yielding an empty batch.
_ARM_TIMEOUT_MS = 100

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterable

    from collate._types import TemplatePath, WatcherStatus, WatchKind
    from collate.config import CollateConfig
    from collate.observability.collector import StackCollector


@dataclass(frozen=True, slots=True)
class WatchEvent:
    """A template lifecycle event.

    Attributes:
        path: Template identity (POSIX path relative to the pages directory).
        kind: What happened to the file.

    """

    path: TemplatePath
    kind: WatchKind


def is_template_candidate(rel_path: str, config: CollateConfig) -> bool:
    """Whether a relative path should be handed to the pattern parser.

    Private (``_``) and hidden (``.``) files and directories, files with
    other extensions, and paths matching ``config.ignore`` are skipped.
    Only names containing a brace are candidates; malformed ones still pass
    so the parser can report them.

    """
    parts = rel_path.split("/")
    if any(part.startswith(("_", ".")) for part in parts):
        return False
    if not parts[-1].endswith(tuple(config.extensions)):
        return False
    if any(fnmatch.fnmatchcase(rel_path, pattern) for pattern in config.ignore):
        return False
    return "{" in rel_path or "}" in rel_path


def relative_template_path(path: Path, config: CollateConfig) -> TemplatePath | None:
    """Return *path* relative to the pages directory, or None if outside it."""
    try:
        rel = path.relative_to(config.pages_path)
    except ValueError:
        return None
    if not rel.parts:
        return None
    return rel.as_posix()


def scan_templates(config: CollateConfig, base: Path | None = None) -> list[TemplatePath]:
    """List every template candidate under *base* (default: the pages directory).

    Raises:
        WatcherIOError: If the pages directory is missing or unreadable.

    """
    pages = config.pages_path
    base = base if base is not None else pages
    if not pages.is_dir():
        raise WatcherIOError(pages)

    found: list[TemplatePath] = []
    try:
        for path in sorted(base.rglob("*")):
            if not path.is_file():
                continue
            rel = path.relative_to(pages).as_posix()
            if is_template_candidate(rel, config):
                found.append(rel)
    except OSError as exc:
        raise WatcherIOError(pages, exc) from exc
    return found


def coalesce_changes(
    raw_changes: Iterable[tuple[Change, str]],
    known: set[TemplatePath],
    config: CollateConfig,
) -> list[WatchEvent]:
    """Collapse one batch of raw notifications into one event per template.

    The final kind is decided by the file's state at delivery time, not by
    the order of raw notifications: an editor's delete-then-write save is a
    ``changed``, a create-then-delete within one window is nothing at all.
    Deleted or added directories expand to the templates beneath them.
    *known* is updated in place.

    """
    touched: dict[TemplatePath, None] = {}
    for change, path_str in sorted(raw_changes, key=lambda c: c[1]):
        path = Path(path_str)
        rel = relative_template_path(path, config)
        if rel is None:
            continue
        if is_template_candidate(rel, config):
            touched[rel] = None
        elif change == Change.deleted:
            prefix = rel + "/"
            for existing in sorted(known):
                if existing.startswith(prefix):
                    touched[existing] = None
        elif change == Change.added and path.is_dir():
            for nested in scan_templates(config, base=path):
                touched[nested] = None

    events: list[WatchEvent] = []
    for rel in touched:
        exists = (config.pages_path / rel).is_file()
        if exists and rel not in known:
            known.add(rel)
            events.append(WatchEvent(path=rel, kind="added"))
        elif exists:
            events.append(WatchEvent(path=rel, kind="changed"))
        elif rel in known:
            known.discard(rel)
            events.append(WatchEvent(path=rel, kind="removed"))
    return events


class _TemplateFilter(DefaultFilter):
    """watchfiles filter: default ignores, then template candidates and directory moves."""

    def __init__(self, config: CollateConfig) -> None:
        super().__init__()
        self._config = config

    def __call__(self, change: Change, path: str) -> bool:
        if not super().__call__(change, path):
            return False
        rel = relative_template_path(Path(path), self._config)
        if rel is None:
            return False
        if is_template_candidate(rel, self._config):
            return True
        # Directory removals and additions may carry templates beneath them.
        return change == Change.deleted or (change == Change.added and Path(path).is_dir())


class TemplateWatcher:
    """Watches the pages directory and queues template lifecycle events.

    Runs watchfiles in a background thread. Events are delivered through a
    thread-safe queue, either synchronously via :meth:`get` or as an async
    iterator via :meth:`changes`. After :meth:`stop`, no further events are
    delivered.

    Args:
        config: Engine configuration (pages directory, debounce, backoff).
        collector: Optional event collector for degraded-status reporting.

    """

    def __init__(
        self,
        config: CollateConfig,
        *,
        collector: StackCollector | None = None,
    ) -> None:
        self._config = config
        self._collector = collector
        self._queue: queue.Queue[WatchEvent] = queue.Queue()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._known: set[TemplatePath] = set()
        self._status: WatcherStatus = "stopped"
        self._baseline_done = threading.Event()
        self._retry_delay = config.retry_initial_s

    @property
    def is_running(self) -> bool:
        """Whether the watcher background thread is active."""
        return self._thread is not None and self._thread.is_alive()

    @property
    def status(self) -> WatcherStatus:
        """``running``, ``degraded`` (retrying after an I/O failure) or ``stopped``."""
        return self._status

    @property
    def known_templates(self) -> frozenset[TemplatePath]:
        """Templates currently known to exist."""
        return frozenset(self._known)

    def start(self) -> None:
        """Start watching for file changes in a background thread."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._baseline_done.clear()
        self._thread = threading.Thread(
            target=self._watch_loop,
            name="collate-watcher",
            daemon=True,
        )
        self._thread.start()

    def wait_for_baseline(self, timeout: float | None = None) -> bool:
        """Block until the initial scan has been queued (or failed)."""
        return self._baseline_done.wait(timeout)

    def stop(self) -> None:
        """Signal the watcher to stop and wait for the thread to finish."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=5.0)
            self._thread = None
        self._status = "stopped"

    def get(self, timeout: float | None = None) -> WatchEvent | None:
        """Return the next event, or None on timeout or after stop."""
        if self._stop_event.is_set():
            return None
        try:
            event = self._queue.get(timeout=timeout)
        except queue.Empty:
            return None
        if self._stop_event.is_set():
            return None
        return event

    async def changes(self) -> AsyncIterator[WatchEvent]:
        """Async iterator that yields WatchEvent objects as they occur.

        Ends once the watcher is stopped.

        """
        while self.is_running or not self._queue.empty():
            if self._stop_event.is_set():
                break
            event = await asyncio.to_thread(self.get, 0.5)
            if event is not None:
                yield event

    # ------------------------------------------------------------------
    # Background thread
    # ------------------------------------------------------------------

    def _emit(self, event: WatchEvent) -> None:
        if not self._stop_event.is_set():
            self._queue.put(event)

    def _sync_known(self) -> None:
        """Rescan and emit events for templates that appeared or vanished."""
        current = set(scan_templates(self._config))
        for rel in sorted(current - self._known):
            self._emit(WatchEvent(path=rel, kind="added"))
        for rel in sorted(self._known - current):
            self._emit(WatchEvent(path=rel, kind="removed"))
        self._known = current

    def _watch_loop(self) -> None:
        """Background thread: run watchfiles until stopped, retrying on I/O errors."""
        self._retry_delay = self._config.retry_initial_s
        while not self._stop_event.is_set():
            try:
                self._watch_once()
            except WatcherIOError as exc:
                delay = self._retry_delay
                self._status = "degraded"
                self._baseline_done.set()
                print(f"  Watcher degraded: {exc} (retrying in {delay:.1f}s)", file=sys.stderr)
                if self._collector is not None:
                    self._collector.record_degraded(
                        str(self._config.pages_path), str(exc), retry_in_s=delay
                    )
                if self._stop_event.wait(delay):
                    break
                self._retry_delay = min(delay * 2, self._config.retry_max_s)

    def _watch_once(self) -> None:
        """Run one watchfiles session; returns on stop, raises WatcherIOError on failure.

        The notifier is armed before the baseline scan: the scan runs on the
        first (timeout) yield, so a template created in between shows up in
        the scan or in a later batch.
        """
        from watchfiles import watch

        pages = self._config.pages_path
        if not pages.is_dir():
            raise WatcherIOError(pages)
        synced = False
        try:
            for raw_changes in watch(
                pages,
                watch_filter=_TemplateFilter(self._config),
                stop_event=self._stop_event,
                debounce=self._config.debounce_ms,
                step=self._config.step_ms,
                rust_timeout=_ARM_TIMEOUT_MS,
                yield_on_timeout=True,
                raise_interrupt=False,
            ):
                if not synced:
                    raw_changes = self._sync_baseline(raw_changes)
                    synced = True
                for event in coalesce_changes(raw_changes, self._known, self._config):
                    self._emit(event)
                if not pages.is_dir():
                    raise WatcherIOError(pages)
        except (OSError, RuntimeError) as exc:
            raise WatcherIOError(pages, exc) from exc

    def _sync_baseline(self, raw_changes: set[tuple[Change, str]]) -> set[tuple[Change, str]]:
        """Scan, mark the watcher running, and filter the batch that preceded the scan.

        Those changes are already reflected in the scan, except edits to
        templates that were known before it (after a degraded spell).
        """
        previously_known = set(self._known)
        self._sync_known()
        self._status = "running"
        self._baseline_done.set()
        self._retry_delay = self._config.retry_initial_s
        return {
            (change, path) for change, path in raw_changes
            if relative_template_path(Path(path), self._config) in previously_known
        }
