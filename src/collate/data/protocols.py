"""Collaborator protocols — the narrow seams to the data layer and page sink."""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collate._types import ChangeCallback, OutputPath, PageContext, TemplatePath, Unsubscribe
    from collate.data.records import Record


@runtime_checkable
class DataQuery(Protocol):
    """Read access to records, plus change notifications.

    ``all_of_type`` may block; the data layer owns its own timeout policy.
    """

    def all_of_type(self, type_name: str) -> Iterable[Record]: ...

    def subscribe(
        self,
        type_name: str,
        on_change: ChangeCallback,
    ) -> Unsubscribe:
        """Register *on_change* for records of *type_name*; returns an unsubscribe callable."""
        ...


@runtime_checkable
class PageSink(Protocol):
    """The collaborator that renders and serves pages."""

    def create_page(
        self,
        path: OutputPath,
        template: TemplatePath,
        context: PageContext,
    ) -> None: ...

    def delete_page(self, path: OutputPath) -> None: ...
