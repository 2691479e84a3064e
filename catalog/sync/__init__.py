"""Spreadsheet-to-store reconciliation."""

from catalog.sync.reconciler import Reconciler, RowInput, RowState, SyncOutcome, SyncResult
from catalog.sync.service import SYNC_ORDER, sync_catalog

__all__ = [
    "SYNC_ORDER",
    "Reconciler",
    "RowInput",
    "RowState",
    "SyncOutcome",
    "SyncResult",
    "sync_catalog",
]
