#!/usr/bin/env python
"""Run a catalog sync locally or against a deployed worker.

Locally the sync runs in-process with settings from the environment / .env.
With --url the script posts a simulated Cloud Tasks request to /tasks/sync.

Usage:
    # Full sync in-process
    python scripts/run_sync.py

    # Only some entities (always run in dependency order)
    python scripts/run_sync.py --entity fruits --entity fruit_varieties

    # Resume an aborted run from the row after its checkpoint
    python scripts/run_sync.py --entity products --entity prices --start-row 42

    # Trigger a deployed or local worker
    python scripts/run_sync.py --url http://localhost:8080
"""

import argparse
import asyncio
import json
import sys
import uuid
from pathlib import Path

import httpx

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from catalog.config import get_settings
from catalog.core.context import CatalogContext
from catalog.infra.database import create_schema
from catalog.infra.logging import setup_logging
from catalog.sync.service import SYNC_ORDER, sync_catalog

# Cloud Tasks headers that would be sent in production
CLOUD_TASKS_HEADERS = {
    "X-CloudTasks-TaskName": "simulated-sync-{task_id}",
    "X-CloudTasks-QueueName": "local-sync-queue",
    "X-CloudTasks-TaskRetryCount": "0",
    "X-CloudTasks-TaskExecutionCount": "1",
}


def print_results(results: dict) -> None:
    print(f"\n{'='*60}")
    print(f"{'Entity':<26}{'added':>8}{'updated':>9}{'deleted':>9}{'skipped':>9}")
    print(f"{'-'*60}")
    for entity, counts in results.items():
        print(
            f"{entity:<26}{counts['added']:>8}{counts['updated']:>9}"
            f"{counts['deleted']:>9}{counts['skipped']:>9}"
        )
    print(f"{'='*60}\n")


async def run_local(entities: list[str] | None, start_row: int, create_tables: bool) -> dict:
    """Run the sync in this process."""
    settings = get_settings()
    setup_logging(settings)
    ctx = CatalogContext.create(settings)
    try:
        if create_tables and ctx.engine is not None:
            await create_schema(ctx.engine)
        outcomes = await sync_catalog(ctx, entities=entities, start_row=start_row)
    finally:
        await ctx.close()

    failed = next((o for o in outcomes if not o.ok), None)
    return {
        "success": failed is None,
        "results": {o.entity: o.result.to_dict() for o in outcomes},
        "failed_entity": failed.entity if failed else None,
        "error": failed.error.message if failed and failed.error else None,
        "error_code": failed.error.code if failed and failed.error else None,
        "checkpoint": failed.checkpoint if failed else None,
    }


async def run_remote(base_url: str, entities: list[str] | None, start_row: int) -> dict:
    """Send a simulated Cloud Tasks request to /tasks/sync."""
    task_id = str(uuid.uuid4())[:8]
    headers = {k: v.format(task_id=task_id) for k, v in CLOUD_TASKS_HEADERS.items()}

    payload: dict = {"start_row": start_row}
    if entities:
        payload["entities"] = entities

    print(f"Simulating Cloud Task {task_id} against {base_url}")
    async with httpx.AsyncClient(timeout=900.0) as client:
        response = await client.post(f"{base_url}/tasks/sync", json=payload, headers=headers)

    print(f"Status: {response.status_code}")
    if response.status_code != 200:
        print(f"Error: {response.text}")
        return {"success": False, "error": response.text, "status_code": response.status_code}
    return response.json()


def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Reconcile the fruit catalog with its spreadsheets",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    parser.add_argument(
        "--entity",
        action="append",
        choices=SYNC_ORDER,
        default=None,
        help="Entity to sync (repeatable, default: all)",
    )
    parser.add_argument(
        "--start-row",
        type=int,
        default=0,
        help="Resume the first entity from this row (default: 0)",
    )
    parser.add_argument(
        "--url",
        default=None,
        help="Worker base URL; runs in-process when omitted",
    )
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create missing tables before a local run",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Save result JSON to file",
    )

    return parser.parse_args()


async def main() -> int:
    """Main entry point."""
    args = parse_args()

    if args.start_row < 0:
        print("Error: --start-row must be >= 0")
        return 1

    if args.url:
        result = await run_remote(args.url, args.entity, args.start_row)
    else:
        result = await run_local(args.entity, args.start_row, args.create_tables)

    if result.get("results"):
        print_results(result["results"])

    if args.output:
        args.output.write_text(json.dumps(result, indent=2, default=str))
        print(f"Result saved to: {args.output}")

    if result.get("success"):
        print("Sync completed successfully!")
        return 0

    print(f"Sync failed: {result.get('error_code')} {result.get('error')}")
    if result.get("checkpoint") is not None:
        print(
            f"Resume with: --entity {result['failed_entity']} ... "
            f"--start-row {result['checkpoint'] + 1}"
        )
    return 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
