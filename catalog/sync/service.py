"""Catalog sync orchestration.

Runs the entity handlers in dependency order (parents before children)
and stops at the first run that fails, since later entities would look
up parents that did not converge.
"""

from typing import Iterable

from catalog.core.context import CatalogContext
from catalog.core.errors import ValidationError
from catalog.infra.logging import get_logger
from catalog.sources.layout import catalog_layouts
from catalog.sources.sheets import GoogleSheetSource, SheetsClient
from catalog.sources.snapshot import SheetSource
from catalog.sync.handlers import HANDLERS
from catalog.sync.reconciler import CheckpointCallback, Reconciler, SyncOutcome

logger = get_logger(__name__)

SYNC_ORDER: tuple[str, ...] = (
    "fruit_categories",
    "presentation_categories",
    "fruits",
    "fruit_varieties",
    "presentations",
    "products",
    "prices",
    "harvests",
)


def select_entities(entities: Iterable[str] | None) -> list[str]:
    """Requested entities in dependency order; all of them when None.

    Raises:
        ValidationError: If a name is not a known sync entity
    """
    if entities is None:
        return list(SYNC_ORDER)
    requested = set(entities)
    unknown = sorted(requested - set(SYNC_ORDER))
    if unknown:
        raise ValidationError(
            f"Unknown sync entities: {', '.join(unknown)}",
            code="SYNC_UNKNOWN_ENTITY",
            entities=unknown,
            allowed=list(SYNC_ORDER),
        )
    return [name for name in SYNC_ORDER if name in requested]


async def sync_catalog(
    ctx: CatalogContext,
    entities: Iterable[str] | None = None,
    start_row: int = 0,
    source: SheetSource | None = None,
    on_checkpoint: CheckpointCallback | None = None,
) -> list[SyncOutcome]:
    """Reconcile the catalog against the spreadsheets.

    Args:
        ctx: Catalog context
        entities: Handler names to run; all when None
        start_row: Resume point for the first entity run (rows before it
            are kept but not rewritten); later entities start at 0
        source: Sheet source; the Google Sheets API when None
        on_checkpoint: Called with (entity, row_index) after each row

    Returns:
        One outcome per entity that ran, in run order. The last one is
        the failure when a run aborted.
    """
    names = select_entities(entities)
    layouts = catalog_layouts(ctx.settings)

    google_source: GoogleSheetSource | None = None
    if source is None:
        google_source = GoogleSheetSource(SheetsClient.from_settings(ctx.settings))
        source = google_source

    outcomes: list[SyncOutcome] = []
    try:
        for position, name in enumerate(names):
            handler = HANDLERS[name](ctx, layouts[name])
            reconciler = Reconciler(handler, source, on_checkpoint=on_checkpoint)
            outcome = await reconciler.run(start_row=start_row if position == 0 else 0)
            outcomes.append(outcome)
            if not outcome.ok:
                break
    finally:
        if google_source is not None:
            await google_source.close()

    logger.info(
        "Catalog sync finished",
        entities=[o.entity for o in outcomes],
        ok=all(o.ok for o in outcomes),
    )
    return outcomes
