"""Reconcile pipeline — one consumer loop for watcher and data-layer events.

Orchestrates change propagation:
    1. TemplateWatcher detects a template change (WatchEvent)
    2. The data layer announces a record change (RecordChange), bridged
       onto the same queue from whatever thread it fires on
    3. A single consumer applies each message to the PageReconciler in
       arrival order, so ReconciliationState has exactly one writer

Reconciler calls run in a worker thread because data queries may block;
the loop itself only moves messages.
"""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Callable
from typing import TYPE_CHECKING

from collate.content.watcher import WatchEvent
from collate.data.records import RecordChange
from collate.reactive.reconciler import PageDiff, ReconcileResult

if TYPE_CHECKING:
    from collate._types import Unsubscribe
    from collate.content.watcher import TemplateWatcher
    from collate.data.protocols import DataQuery
    from collate.reactive.reconciler import PageReconciler

type PipelineMessage = WatchEvent | RecordChange

type ResultCallback = Callable[[PipelineMessage, ReconcileResult], None]


class ReconcilePipeline:
    """Serializes watcher and data-layer events into the reconciler.

    Keeps one data-layer subscription per record type bound by a
    registered template, adding and dropping subscriptions as templates
    come and go.

    Args:
        reconciler: The single writer of reconciliation state.
        query: Data layer to subscribe to for record changes.
        on_result: Called with every message and its ReconcileResult.

    """

    def __init__(
        self,
        reconciler: PageReconciler,
        query: DataQuery,
        *,
        on_result: ResultCallback | None = None,
    ) -> None:
        self._reconciler = reconciler
        self._query = query
        self._on_result = on_result
        self._queue: asyncio.Queue[PipelineMessage | None] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._subscriptions: dict[str, Unsubscribe] = {}
        self._closing = False

    @property
    def subscribed_types(self) -> frozenset[str]:
        return frozenset(self._subscriptions)

    async def handle(self, message: PipelineMessage) -> ReconcileResult:
        """Apply a single message to the reconciler."""
        if isinstance(message, WatchEvent):
            result = await asyncio.to_thread(self._reconciler.apply, message)
        else:
            result = await asyncio.to_thread(self._reconciler.record_changed, message)

        result = await self._catch_up(result)
        _log_result(message, result)
        if self._on_result is not None:
            self._on_result(message, result)
        return result

    def submit(self, message: PipelineMessage) -> None:
        """Queue a message from any thread. Dropped if the pipeline is not running."""
        loop, q = self._loop, self._queue
        if self._closing or loop is None or q is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(q.put_nowait, message)

    def close(self) -> None:
        """Stop after the message in flight; anything still queued is dropped."""
        self._closing = True
        loop, q = self._loop, self._queue
        if loop is None or q is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(q.put_nowait, None)

    def sync_subscriptions(self) -> tuple[str, ...]:
        """Subscribe to newly bound record types and drop unused ones.

        Returns the record types subscribed to by this call.
        """
        wanted = self._reconciler.record_types()
        added = tuple(sorted(wanted - self._subscriptions.keys()))
        for type_name in added:
            self._subscriptions[type_name] = self._query.subscribe(type_name, self.submit)
        for type_name in sorted(self._subscriptions.keys() - wanted):
            self._subscriptions.pop(type_name)()
        return added

    def unsubscribe_all(self) -> None:
        for unsubscribe in self._subscriptions.values():
            unsubscribe()
        self._subscriptions.clear()

    async def _catch_up(self, result: ReconcileResult) -> ReconcileResult:
        """Subscribe to new record types, then re-resolve them once.

        Records written after a type was last queried but before its
        subscription existed produced no notification; the extra pass
        picks them up.
        """
        for type_name in self.sync_subscriptions():
            later = await asyncio.to_thread(self._reconciler.records_changed, type_name)
            result = result.merge(later)
        return result

    async def run(self, watcher: TemplateWatcher) -> None:
        """Consume events until :meth:`close` is called or the watcher stops."""
        self._closing = False
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        queue = self._queue

        async def _pump() -> None:
            async for event in watcher.changes():
                await queue.put(event)
            await queue.put(None)

        pump = asyncio.create_task(_pump())
        try:
            try:
                _log_result(None, await self._catch_up(ReconcileResult(diff=PageDiff())))
            except Exception as exc:
                print(f"  Pipeline error (startup): {exc}", file=sys.stderr)
            while not self._closing:
                message = await queue.get()
                if message is None or self._closing:
                    break
                try:
                    await self.handle(message)
                except Exception as exc:
                    print(f"  Pipeline error ({_describe(message)}): {exc}", file=sys.stderr)
        finally:
            pump.cancel()
            self.unsubscribe_all()
            self._queue = None
            self._loop = None


def _describe(message: PipelineMessage | None) -> str:
    if message is None:
        return "startup"
    if isinstance(message, WatchEvent):
        return f"{message.kind} {message.path}"
    return f"{message.kind} {message.record.type}#{message.record.id}"


def _log_result(message: PipelineMessage | None, result: ReconcileResult) -> None:
    """Log a one-line summary of a non-empty pass to stderr."""
    diff = result.diff
    if diff.is_empty and not result.errors:
        return
    print(
        f"  {_describe(message)} -> "
        f"{len(diff.created)} created, {len(diff.updated)} updated, "
        f"{len(diff.deleted)} deleted"
        + (f", {len(result.errors)} error(s)" if result.errors else ""),
        file=sys.stderr,
    )
