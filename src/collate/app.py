"""Collate application — wires watcher, reconciler and data layer together.

RouteEngine owns one of each component. The two public functions are the
primary entry points:

    build(root, query, sink)   # one full scan + reconciliation
    watch(root, query, sink)   # keep pages in sync until interrupted
"""

from __future__ import annotations

import asyncio
import sys
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any

from collate._errors import ConfigError
from collate.config_loader import load_config
from collate.content.watcher import TemplateWatcher, scan_templates
from collate.observability.collector import StackCollector
from collate.observability.events import ReconcileCompleted
from collate.reactive.pipeline import ReconcilePipeline
from collate.reactive.reconciler import PageReconciler

if TYPE_CHECKING:
    from collate.config import CollateConfig
    from collate.data.protocols import DataQuery, PageSink
    from collate.observability.events import StackEvent
    from collate.reactive.pipeline import ResultCallback
    from collate.reactive.reconciler import ReconcileResult


class RouteEngine:
    """Collection route engine for one pages directory.

    Args:
        config: Engine configuration.
        query: Data layer supplying records.
        sink: Page collaborator receiving create/delete calls.
        collector: Event collector (a fresh one by default).
        on_result: Called with every watch-mode message and its result.

    """

    def __init__(
        self,
        config: CollateConfig,
        query: DataQuery,
        sink: PageSink | None = None,
        *,
        collector: StackCollector | None = None,
        on_result: ResultCallback | None = None,
    ) -> None:
        self.config = config
        self.collector = collector if collector is not None else StackCollector()
        self.reconciler = PageReconciler(
            query, sink, config=config, collector=self.collector
        )
        self.watcher = TemplateWatcher(config, collector=self.collector)
        self.pipeline = ReconcilePipeline(self.reconciler, query, on_result=on_result)

    def build(self) -> ReconcileResult:
        """Scan the pages directory and reconcile every template in it."""
        return self.reconciler.reconcile_paths(scan_templates(self.config))

    def rebuild(self) -> ReconcileResult:
        """Drop all state, rescan, and reconcile from scratch."""
        return self.reconciler.rebuild(scan_templates(self.config))

    async def run(self) -> None:
        """Watch templates and records until :meth:`stop` is called."""
        self.watcher.start()
        try:
            await self.pipeline.run(self.watcher)
        finally:
            self.watcher.stop()

    def stop(self) -> None:
        """Stop watching; the event in flight finishes, nothing further is emitted."""
        self.watcher.stop()
        self.pipeline.close()

    def status(self) -> dict[str, Any]:
        status = self.reconciler.status()
        status["watcher"] = self.watcher.status
        status["events"] = self.collector.log.stats()
        last = self.collector.log.last(ReconcileCompleted)
        status["last_pass"] = None
        if isinstance(last, ReconcileCompleted):
            status["last_pass"] = {
                "trigger": last.trigger_path,
                "created": last.created,
                "updated": last.updated,
                "deleted": last.deleted,
                "duration_ms": round(last.duration_ms, 3),
            }
        return status

    def history(self, path: str, limit: int = 50) -> list[StackEvent]:
        """Recent events about one template or output page, newest first."""
        return self.collector.log.query(path=path, limit=limit)


def _default_query(config: CollateConfig) -> DataQuery:
    """Seed an in-memory store from ``config.data_file``."""
    from collate.data.loader import load_store

    data_path = config.data_path
    if data_path is None:
        msg = "No data source: pass query= or set data_file in collate.yaml"
        raise ConfigError(msg)
    return load_store(data_path)


def _print_summary(result: ReconcileResult, load_ms: float) -> None:
    """Print a reconciliation summary to stderr."""
    diff = result.diff
    pages = len(diff.created) + len(diff.updated)
    lines = [
        f"  Resolved {pages} page{'s' if pages != 1 else ''} in {load_ms:.0f}ms",
    ]
    if result.skipped:
        lines.append(f"  Skipped {len(result.skipped)} record(s)")
    for error in result.errors:
        lines.append(f"  Error: {error}")
    print("\n".join(lines), file=sys.stderr)


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------


def build(
    root: str | Path = ".",
    query: DataQuery | None = None,
    sink: PageSink | None = None,
    **kwargs: object,
) -> ReconcileResult:
    """Resolve every collection route under *root* once.

    Args:
        root: Project root directory.
        query: Data layer; defaults to a store loaded from ``data_file``.
        sink: Page collaborator; when None only the diff is computed.
        **kwargs: Override CollateConfig fields.

    """
    config = load_config(Path(root), **kwargs)
    t0 = time.perf_counter()
    engine = RouteEngine(config, query if query is not None else _default_query(config), sink)
    result = engine.build()
    _print_summary(result, (time.perf_counter() - t0) * 1000)
    return result


def watch(
    root: str | Path = ".",
    query: DataQuery | None = None,
    sink: PageSink | None = None,
    **kwargs: object,
) -> None:
    """Keep pages in sync with templates and records until interrupted.

    Args:
        root: Project root directory.
        query: Data layer; defaults to a store loaded from ``data_file``.
        sink: Page collaborator receiving create/delete calls.
        **kwargs: Override CollateConfig fields.

    """
    config = load_config(Path(root), **kwargs)
    engine = RouteEngine(config, query if query is not None else _default_query(config), sink)
    print(f"  Watching {config.pages_path}", file=sys.stderr)
    try:
        asyncio.run(engine.run())
    except KeyboardInterrupt:
        engine.stop()
