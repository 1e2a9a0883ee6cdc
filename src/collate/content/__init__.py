"""Content layer — template discovery and file watching."""

from collate.content.watcher import (
    TemplateWatcher,
    WatchEvent,
    coalesce_changes,
    is_template_candidate,
    scan_templates,
)

__all__ = [
    "TemplateWatcher",
    "WatchEvent",
    "coalesce_changes",
    "is_template_candidate",
    "scan_templates",
]
