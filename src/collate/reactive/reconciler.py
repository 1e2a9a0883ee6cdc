"""Page reconciler — computes and applies the minimal page diff.

Every ``(template, record)`` pair moves through ``absent -> resolved ->
stale -> absent``:

- A descriptor not yet in the state is **created**.
- A pair whose path or context changed is **deleted** at its old path and
  **created** at the new one; downstream routing treats paths as identity,
  so there is never an in-place rename.
- A pair whose template file changed but whose descriptor did not is
  **updated** (re-sent to the sink so it re-renders).
- A pair that no longer resolves (template removed, record removed, field
  missing) is **deleted**.

Output paths claimed by two pairs are collisions. Every template involved
is blocked: it keeps what it already published and publishes nothing new
until the collision is gone.
"""

from __future__ import annotations

import sys
import threading
import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from collate._errors import InvalidPatternError, RouteCollisionError, RouteError
from collate.reactive.state import ReconciliationState
from collate.routes.pattern import NotACollectionRoute, parse
from collate.routes.resolver import PageDescriptor, SkippedRecord, TemplateFile, resolve

if TYPE_CHECKING:
    from collate._types import PageKey, TemplatePath
    from collate.config import CollateConfig
    from collate.content.watcher import WatchEvent
    from collate.data.protocols import DataQuery, PageSink
    from collate.data.records import RecordChange
    from collate.observability.collector import StackCollector


@dataclass(frozen=True, slots=True)
class PageDiff:
    """Page lifecycle changes produced by one reconciliation pass."""

    created: tuple[PageDescriptor, ...] = ()
    updated: tuple[PageDescriptor, ...] = ()
    deleted: tuple[PageDescriptor, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.created or self.updated or self.deleted)

    def __bool__(self) -> bool:
        return not self.is_empty


@dataclass(frozen=True, slots=True)
class ReconcileResult:
    """Outcome of a reconciliation pass.

    Attributes:
        diff: Pages created, updated and deleted by this pass.
        skipped: Records that produced no page (per-record errors).
        errors: Template-level errors: malformed names and collisions.

    """

    diff: PageDiff
    skipped: tuple[SkippedRecord, ...] = ()
    errors: tuple[RouteError, ...] = ()

    @property
    def collisions(self) -> tuple[RouteCollisionError, ...]:
        return tuple(e for e in self.errors if isinstance(e, RouteCollisionError))

    @property
    def ok(self) -> bool:
        return not self.errors

    def raise_for_errors(self) -> None:
        """Raise the first template-level error, if any."""
        if self.errors:
            raise self.errors[0]

    def merge(self, later: ReconcileResult) -> ReconcileResult:
        """Combine with a pass that ran right after this one.

        Side effects add up. Skips and errors reported by both passes are
        kept once.
        """
        skipped = {(s.template, s.record_id): s for s in (*self.skipped, *later.skipped)}
        errors = {str(e): e for e in (*self.errors, *later.errors)}
        return ReconcileResult(
            diff=PageDiff(
                created=self.diff.created + later.diff.created,
                updated=self.diff.updated + later.diff.updated,
                deleted=self.diff.deleted + later.diff.deleted,
            ),
            skipped=tuple(skipped.values()),
            errors=tuple(errors.values()),
        )


def load_template(
    path: TemplatePath,
    *,
    known_types: Iterable[str] | None = None,
) -> TemplateFile | None:
    """Parse a template path into a TemplateFile.

    Returns None for names without binding syntax.

    Raises:
        InvalidPatternError: On a malformed name.

    """
    pattern = parse(path, known_types=tuple(known_types) if known_types else None)
    if pattern is NotACollectionRoute:
        return None
    return TemplateFile(path=path, pattern=pattern)  # type: ignore[arg-type]


class PageReconciler:
    """Owns the ReconciliationState and drives the page sink.

    All mutations happen under a single re-entrant lock, so the reconciler
    is the only writer even when called from several threads.

    Args:
        query: Data layer used to enumerate records.
        sink: Page collaborator receiving create/delete calls. When None,
            diffs are computed and recorded but nothing is emitted.
        config: Supplies ``preserve_slashes`` and ``record_types``.
        collector: Optional event collector.
        state: Existing state to adopt (a fresh one by default).

    """

    def __init__(
        self,
        query: DataQuery,
        sink: PageSink | None = None,
        *,
        config: CollateConfig | None = None,
        collector: StackCollector | None = None,
        state: ReconciliationState | None = None,
    ) -> None:
        self._query = query
        self._sink = sink
        self._collector = collector
        self._state = state if state is not None else ReconciliationState()
        self._preserve_slashes = config.preserve_slashes if config is not None else False
        self._known_types: tuple[str, ...] = config.record_types if config is not None else ()
        self._templates: dict[TemplatePath, TemplateFile] = {}
        self._rejected: dict[TemplatePath, InvalidPatternError] = {}
        self._blocked: dict[TemplatePath, RouteCollisionError] = {}
        self._lock = threading.RLock()

    @property
    def state(self) -> ReconciliationState:
        return self._state

    @property
    def templates(self) -> Mapping[TemplatePath, TemplateFile]:
        """Registered collection-route templates."""
        with self._lock:
            return dict(self._templates)

    @property
    def blocked(self) -> Mapping[TemplatePath, RouteCollisionError]:
        """Templates held back by an unresolved collision."""
        with self._lock:
            return dict(self._blocked)

    @property
    def rejected(self) -> Mapping[TemplatePath, InvalidPatternError]:
        """Templates excluded for malformed names."""
        with self._lock:
            return dict(self._rejected)

    def record_types(self) -> frozenset[str]:
        """Record types bound by the registered templates."""
        with self._lock:
            return frozenset(t.pattern.record_type for t in self._templates.values())

    # ------------------------------------------------------------------
    # Full reconciliation
    # ------------------------------------------------------------------

    def reconcile(self, templates: Iterable[TemplateFile]) -> ReconcileResult:
        """Reconcile against exactly *templates*.

        Templates registered earlier but missing from *templates* lose all
        their pages. Calling this twice with no intervening change yields an
        empty diff.

        """
        with self._lock:
            wanted = {t.path: t for t in templates}
            gone = (set(self._templates) | self._state.templates()) - set(wanted)
            if self._collector is not None:
                for path in sorted(wanted.keys() - self._templates.keys()):
                    self._collector.record_template(path, wanted[path].pattern.record_type)
            self._templates = wanted
            for path in gone:
                self._blocked.pop(path, None)
            return self._run(set(wanted) | gone, trigger="full")

    def reconcile_paths(self, paths: Iterable[TemplatePath]) -> ReconcileResult:
        """Parse template *paths* and reconcile against the collection routes among them.

        Malformed names are excluded and reported in ``errors`` the first
        time they are seen.

        """
        with self._lock:
            templates: list[TemplateFile] = []
            new_errors: list[RouteError] = []
            seen: set[TemplatePath] = set()
            for path in paths:
                seen.add(path)
                try:
                    template = load_template(path, known_types=self._known_types)
                except InvalidPatternError as exc:
                    if self._reject(path, exc):
                        new_errors.append(exc)
                    continue
                self._rejected.pop(path, None)
                if template is not None:
                    templates.append(template)
            for path in set(self._rejected) - seen:
                del self._rejected[path]

            result = self.reconcile(templates)
            if not new_errors:
                return result
            return ReconcileResult(
                diff=result.diff,
                skipped=result.skipped,
                errors=(*new_errors, *result.errors),
            )

    def rebuild(self, paths: Iterable[TemplatePath]) -> ReconcileResult:
        """Forget all state and reconcile from scratch.

        Used to recover from inconsistency: every resolvable page is
        re-created.

        """
        with self._lock:
            self._state.clear()
            self._templates.clear()
            self._rejected.clear()
            self._blocked.clear()
            return self.reconcile_paths(paths)

    # ------------------------------------------------------------------
    # Incremental reconciliation
    # ------------------------------------------------------------------

    def template_added(self, path: TemplatePath) -> ReconcileResult:
        """A template file appeared (or was renamed into place)."""
        return self._template_event(path, touched=False)

    def template_changed(self, path: TemplatePath) -> ReconcileResult:
        """A template file's content changed; unchanged pages are re-sent as updates."""
        return self._template_event(path, touched=True)

    def template_removed(self, path: TemplatePath) -> ReconcileResult:
        """A template file disappeared; all of its pages are deleted."""
        with self._lock:
            self._templates.pop(path, None)
            self._rejected.pop(path, None)
            self._blocked.pop(path, None)
            return self._run({path}, trigger=path)

    def records_changed(self, type_name: str) -> ReconcileResult:
        """Records of *type_name* were added, updated or removed."""
        with self._lock:
            targets = {
                path for path, t in self._templates.items()
                if t.pattern.record_type == type_name
            }
            return self._run(targets, trigger=f"type:{type_name}")

    def record_changed(self, change: RecordChange) -> ReconcileResult:
        """Data-layer notification hook; re-resolves the record's type."""
        return self.records_changed(change.record.type)

    def apply(self, event: WatchEvent) -> ReconcileResult:
        """Dispatch a watcher event to the matching incremental variant."""
        if event.kind == "added":
            return self.template_added(event.path)
        if event.kind == "changed":
            return self.template_changed(event.path)
        return self.template_removed(event.path)

    def status(self) -> dict[str, Any]:
        """Consistent snapshot of the reconciler for status reporting."""
        with self._lock:
            snapshot = self._state.snapshot()
            return {
                "pages": len(snapshot),
                "templates": sorted(self._templates),
                "blocked": {path: str(err) for path, err in sorted(self._blocked.items())},
                "rejected": {path: str(err) for path, err in sorted(self._rejected.items())},
            }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _reject(self, path: TemplatePath, exc: InvalidPatternError) -> bool:
        """Remember a rejection; returns True if it is new (and reports it)."""
        previous = self._rejected.get(path)
        self._rejected[path] = exc
        self._templates.pop(path, None)
        if previous is not None and str(previous) == str(exc):
            return False
        print(f"  Template excluded: {exc}", file=sys.stderr)
        if self._collector is not None:
            self._collector.record_rejected(path, segment=exc.segment, reason=exc.reason)
        return True

    def _template_event(self, path: TemplatePath, *, touched: bool) -> ReconcileResult:
        with self._lock:
            errors: tuple[RouteError, ...] = ()
            try:
                template = load_template(path, known_types=self._known_types)
            except InvalidPatternError as exc:
                if self._reject(path, exc):
                    errors = (exc,)
                template = None
            else:
                self._rejected.pop(path, None)
                if template is None:
                    self._templates.pop(path, None)
                else:
                    self._templates[path] = template
                    if self._collector is not None:
                        self._collector.record_template(path, template.pattern.record_type)

            result = self._run(
                {path},
                trigger=path,
                touched=frozenset({path}) if touched else frozenset(),
            )
            if not errors:
                return result
            return ReconcileResult(
                diff=result.diff,
                skipped=result.skipped,
                errors=(*errors, *result.errors),
            )

    def _resolve_targets(
        self,
        targets: set[TemplatePath],
    ) -> tuple[dict[TemplatePath, dict[PageKey, PageDescriptor]], list[SkippedRecord]]:
        desired: dict[TemplatePath, dict[PageKey, PageDescriptor]] = {}
        skipped: list[SkippedRecord] = []
        for path in sorted(targets):
            template = self._templates.get(path)
            pages: dict[PageKey, PageDescriptor] = {}
            if template is not None:
                report = resolve(
                    template, self._query, preserve_slashes=self._preserve_slashes
                ).collect()
                skipped.extend(report.skipped)
                for descriptor in report.pages:
                    pages[descriptor.key] = descriptor
            desired[path] = pages
        return desired, skipped

    def _find_blocked(
        self,
        targets: set[TemplatePath],
        desired: dict[TemplatePath, dict[PageKey, PageDescriptor]],
    ) -> dict[TemplatePath, RouteCollisionError]:
        """Block colliding targets until the published set is collision-free.

        Non-target templates keep their published pages. A blocked target
        falls back to its published pages too, which can in turn block
        another target; iterate until nothing new is blocked.

        """
        published = self._state.snapshot().pages
        fixed: dict[TemplatePath, dict[PageKey, PageDescriptor]] = {}
        for key, descriptor in published.items():
            fixed.setdefault(key[0], {})[key] = descriptor

        blocked: dict[TemplatePath, RouteCollisionError] = {}
        while True:
            effective: dict[TemplatePath, dict[PageKey, PageDescriptor]] = {
                path: pages for path, pages in fixed.items() if path not in targets
            }
            for path in targets:
                effective[path] = fixed.get(path, {}) if path in blocked else desired[path]

            claims: dict[str, PageKey] = {}
            newly_blocked = False
            for path in sorted(effective):
                for key, descriptor in sorted(effective[path].items()):
                    owner = claims.setdefault(descriptor.path, key)
                    if owner == key:
                        continue
                    error = RouteCollisionError(descriptor.path, owner, key)
                    for template in sorted(error.templates):
                        if template in targets and template not in blocked:
                            blocked[template] = error
                            newly_blocked = True
            if not newly_blocked:
                return blocked

    def _run(
        self,
        targets: set[TemplatePath],
        *,
        trigger: str,
        touched: frozenset[TemplatePath] = frozenset(),
    ) -> ReconcileResult:
        t0 = time.perf_counter()
        # Templates blocked by an earlier collision are retried on every pass.
        targets = targets | set(self._blocked)

        desired, skipped = self._resolve_targets(targets)
        blocked = self._find_blocked(targets, desired)

        errors: dict[int, RouteCollisionError] = {}
        for path in sorted(targets):
            error = blocked.get(path)
            if error is None:
                self._blocked.pop(path, None)
                continue
            if path not in self._blocked or str(self._blocked[path]) != str(error):
                print(f"  Template blocked ({path}): {error}", file=sys.stderr)
                if self._collector is not None:
                    self._collector.record_collision(error.path, error.first, error.second)
            self._blocked[path] = error
            errors[id(error)] = error

        created: list[PageDescriptor] = []
        updated: list[PageDescriptor] = []
        deleted: list[PageDescriptor] = []
        for path in sorted(targets):
            if path in blocked:
                continue
            old = self._state.pages_for(path)
            new = desired[path]
            for key, descriptor in sorted(old.items()):
                if new.get(key) != descriptor:
                    deleted.append(descriptor)
            for key, descriptor in sorted(new.items()):
                previous = old.get(key)
                if previous != descriptor:
                    created.append(descriptor)
                elif path in touched:
                    updated.append(descriptor)

        self._emit(created, updated, deleted)

        for record in skipped:
            if self._collector is not None:
                self._collector.record_skip(record.template, record.record_id, str(record.error))

        result = ReconcileResult(
            diff=PageDiff(created=tuple(created), updated=tuple(updated), deleted=tuple(deleted)),
            skipped=tuple(skipped),
            errors=tuple(errors.values()),
        )
        if self._collector is not None:
            self._collector.record_reconcile(
                trigger,
                created=len(created),
                updated=len(updated),
                deleted=len(deleted),
                skipped=len(skipped),
                errors=len(result.errors),
                duration_ms=(time.perf_counter() - t0) * 1000,
            )
        return result

    def _emit(
        self,
        created: list[PageDescriptor],
        updated: list[PageDescriptor],
        deleted: list[PageDescriptor],
    ) -> None:
        """Send side effects to the sink (deletes first) and commit each to state."""
        sink = self._sink
        collector = self._collector
        for descriptor in deleted:
            if sink is not None:
                sink.delete_page(descriptor.path)
            self._state.remove(descriptor.key)
            if collector is not None:
                collector.record_page(
                    "deleted", descriptor.path,
                    template=descriptor.template, record_id=descriptor.record_id,
                )
        for kind, batch in (("created", created), ("updated", updated)):
            for descriptor in batch:
                if sink is not None:
                    sink.create_page(descriptor.path, descriptor.template, descriptor.context)
                self._state.put(descriptor)
                if collector is not None:
                    collector.record_page(
                        kind, descriptor.path,  # type: ignore[arg-type]
                        template=descriptor.template, record_id=descriptor.record_id,
                    )
