"""Shared type definitions for collate."""

from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any, Literal

if TYPE_CHECKING:
    from collate.data.records import RecordChange

# Template identity: POSIX path relative to the pages directory
type TemplatePath = str

# Identity of a record within its type
type RecordId = str

# Output path of a generated page (e.g. "blog/my-first-post")
type OutputPath = str

# Reconciliation key for one page
type PageKey = tuple[TemplatePath, RecordId]

# Context handed opaquely to the page-creation collaborator
type PageContext = Mapping[str, Any]

# Filesystem lifecycle of a template file
type WatchKind = Literal["added", "changed", "removed"]

# Lifecycle of a record in the data layer
type RecordChangeKind = Literal["added", "updated", "removed"]

# Watcher health
type WatcherStatus = Literal["stopped", "running", "degraded"]

# Callback used by the data layer to announce record changes
type ChangeCallback = Callable[[RecordChange], None]

# Returned by a subscription; cancels it
type Unsubscribe = Callable[[], None]
