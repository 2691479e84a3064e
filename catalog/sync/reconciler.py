"""Reconciliation engine.

One Reconciler run converges one entity's store to one source snapshot:

    Seed   existing natural keys are marked PENDING_DELETE
    Scan   rows are converged strictly in source order
    Sweep  keys still PENDING_DELETE are deleted
    Report {added, updated, deleted} (plus skipped rows)

Rows are never processed concurrently: later rows may depend on records
created by earlier ones. A failure mid-run leaves earlier rows converged;
the outcome carries the checkpoint so a rerun can resume with start_row.
"""

import inspect
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Hashable, Protocol

from catalog.core.errors import CatalogError, NotFoundError
from catalog.infra.logging import get_logger
from catalog.sources.layout import SheetLayout
from catalog.sources.snapshot import SheetSource

logger = get_logger(__name__)


class RowState(str, Enum):
    """Convergence state of one natural key within a run."""

    PENDING_DELETE = "pending_delete"
    NEW = "new"
    UPDATED = "updated"
    # Seen before start_row on a resumed run; protected from the sweep
    RETAINED = "retained"


@dataclass(frozen=True)
class RowInput:
    """One record derived from a source row.

    Attributes:
        key: Natural key matched across runs
        payload: camelCase repository input
        extra: Handler-specific data that is not a repository field
    """

    key: Hashable
    payload: dict[str, Any]
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass
class SyncResult:
    """Aggregate counts of one run."""

    added: int = 0
    updated: int = 0
    deleted: int = 0
    skipped: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "added": self.added,
            "updated": self.updated,
            "deleted": self.deleted,
            "skipped": self.skipped,
        }


@dataclass
class SyncOutcome:
    """Result of one run: counts plus the error that stopped it, if any.

    Attributes:
        entity: Handler name
        result: Counts accumulated until the run finished or stopped
        error: Catalog error that aborted the run, None on success
        checkpoint: Index of the last fully converged row, None if none
        duration_ms: Wall time of the run
    """

    entity: str
    result: SyncResult = field(default_factory=SyncResult)
    error: CatalogError | None = None
    checkpoint: int | None = None
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "entity": self.entity,
            "ok": self.ok,
            **self.result.to_dict(),
            "checkpoint": self.checkpoint,
            "error": self.error.to_dict() if self.error else None,
            "duration_ms": self.duration_ms,
        }


class SyncHandler(Protocol):
    """Entity-specific half of a run.

    The reconciler owns ordering, state and counting; the handler knows
    how a row maps to repository input and how to apply it.
    """

    name: str
    layout: SheetLayout
    # False keeps records whose key is absent from the source
    prune: bool

    async def seed(self) -> dict[Hashable, str]:
        """Existing natural keys mapped to record ids."""
        ...

    async def prepare(self, row: dict[str, Any]) -> list[RowInput]:
        """Inputs derived from a row; empty for blank or unusable rows.

        Raises:
            UnresolvedReferenceError: A mandatory parent does not exist
        """
        ...

    def row_keys(self, row: dict[str, Any]) -> list[Hashable]:
        """Natural keys of a row without touching the store."""
        ...

    async def lookup(self, item: RowInput) -> str | None:
        """Id of an existing record for item's key (used when prune is off)."""
        ...

    async def create(self, item: RowInput) -> str:
        ...

    async def update(self, entity_id: str, item: RowInput) -> None:
        ...

    async def delete(self, entity_id: str) -> None:
        ...


CheckpointCallback = Callable[[str, int], Awaitable[None] | None]


class Reconciler:
    """Runs one handler against one source."""

    def __init__(
        self,
        handler: SyncHandler,
        source: SheetSource,
        on_checkpoint: CheckpointCallback | None = None,
    ) -> None:
        self.handler = handler
        self.source = source
        self.on_checkpoint = on_checkpoint

    async def run(self, start_row: int = 0) -> SyncOutcome:
        """Converge the store to the current source snapshot.

        Args:
            start_row: Rows before this index are treated as already
                converged: nothing is written for them, but their keys
                are kept out of the sweep

        Returns:
            SyncOutcome; catalog errors are captured in outcome.error
        """
        name = self.handler.name
        outcome = SyncOutcome(entity=name, checkpoint=start_row - 1 if start_row > 0 else None)
        start = time.perf_counter()

        logger.info("Sync started", entity=name, start_row=start_row, prune=self.handler.prune)
        try:
            await self._run(outcome, start_row)
        except CatalogError as e:
            outcome.error = e
        outcome.duration_ms = int((time.perf_counter() - start) * 1000)

        if outcome.ok:
            logger.info(
                "Sync completed",
                entity=name,
                **outcome.result.to_dict(),
                duration_ms=outcome.duration_ms,
            )
        else:
            logger.error(
                "Sync aborted",
                entity=name,
                code=outcome.error.code,
                error=outcome.error.message,
                checkpoint=outcome.checkpoint,
                **outcome.result.to_dict(),
            )
        return outcome

    async def _run(self, outcome: SyncOutcome, start_row: int) -> None:
        handler = self.handler
        result = outcome.result
        snapshot = await self.source.fetch(handler.layout)

        states: dict[Hashable, RowState] = {}
        ids: dict[Hashable, str] = {}

        # Seed
        if handler.prune:
            for key, entity_id in (await handler.seed()).items():
                states[key] = RowState.PENDING_DELETE
                ids[key] = entity_id
            logger.debug("Sync seeded", entity=handler.name, existing=len(states))

        # Scan
        for index, row in enumerate(snapshot):
            if index < start_row:
                for key in handler.row_keys(row):
                    if states.get(key) is RowState.PENDING_DELETE:
                        states[key] = RowState.RETAINED
                continue

            inputs = await handler.prepare(row)
            if not inputs:
                result.skipped += 1
            for item in inputs:
                await self._converge(item, states, ids, result)

            outcome.checkpoint = index
            await self._checkpoint(index)

        # Sweep
        for key, state in states.items():
            if state is not RowState.PENDING_DELETE:
                continue
            try:
                await handler.delete(ids[key])
            except NotFoundError:
                # Already removed during the scan, e.g. a replaced twin
                logger.debug("Sweep target already gone", entity=handler.name, id=ids[key])
            result.deleted += 1

    async def _converge(
        self,
        item: RowInput,
        states: dict[Hashable, RowState],
        ids: dict[Hashable, str],
        result: SyncResult,
    ) -> None:
        handler = self.handler
        state = states.get(item.key)

        if state is None:
            existing = None if handler.prune else await handler.lookup(item)
            if existing is not None:
                await handler.update(existing, item)
                states[item.key] = RowState.UPDATED
                ids[item.key] = existing
                result.updated += 1
            else:
                ids[item.key] = await handler.create(item)
                states[item.key] = RowState.NEW
                result.added += 1
        elif state in (RowState.PENDING_DELETE, RowState.RETAINED):
            try:
                await handler.update(ids[item.key], item)
            except NotFoundError:
                # Removed earlier in this run; the row brings it back
                ids[item.key] = await handler.create(item)
                states[item.key] = RowState.NEW
                result.added += 1
                return
            states[item.key] = RowState.UPDATED
            result.updated += 1
        else:
            # Repeated key within the run: last write wins on the first record
            await handler.update(ids[item.key], item)

    async def _checkpoint(self, index: int) -> None:
        if self.on_checkpoint is None:
            return
        maybe = self.on_checkpoint(self.handler.name, index)
        if inspect.isawaitable(maybe):
            await maybe
