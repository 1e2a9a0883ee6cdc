"""Reactive layer — reconciliation state, the reconciler, and its event loop."""

from collate.reactive.pipeline import ReconcilePipeline
from collate.reactive.reconciler import (
    PageDiff,
    PageReconciler,
    ReconcileResult,
    load_template,
)
from collate.reactive.state import ReconciliationState, StateSnapshot

__all__ = [
    "PageDiff",
    "PageReconciler",
    "ReconcilePipeline",
    "ReconcileResult",
    "ReconciliationState",
    "StateSnapshot",
    "load_template",
]
