#!/usr/bin/env python
"""Seed the countries table.

Countries are not part of the spreadsheet sync; prices and harvests look
them up by English name, so they must exist before those entities run.

Usage:
    # Seed from a JSON file: [{"nameEs": "Perú", "nameEn": "Peru", "dialCode": "+51"}, ...]
    python scripts/seed_countries.py --file countries.json

    # Create tables first (local SQLite / fresh database)
    python scripts/seed_countries.py --file countries.json --create-tables

    # List stored countries
    python scripts/seed_countries.py --list
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from catalog.config import get_settings
from catalog.core.context import CatalogContext
from catalog.core.errors import CatalogError
from catalog.infra.database import create_schema
from catalog.infra.logging import get_logger, setup_logging
from catalog.repositories import Page

settings = get_settings()
setup_logging(settings)
logger = get_logger(__name__)


async def seed(ctx: CatalogContext, countries: list[dict]) -> tuple[int, int]:
    """Create countries missing by English name. Returns (created, existing)."""
    repo = ctx.repositories.countries
    created = existing = 0
    for country in countries:
        if await repo.get_by_name(country["nameEn"], "en") is not None:
            existing += 1
            continue
        try:
            await repo.create(country)
            created += 1
        except CatalogError as e:
            logger.error("Country rejected", name=country.get("nameEn"), **e.to_dict())
    return created, existing


async def list_countries(ctx: CatalogContext) -> None:
    for country in await ctx.repositories.countries.list(page=Page(num=-1), locale="en"):
        print(f"{country['id']:<12}{country['nameEn']:<30}{country.get('dialCode') or ''}")


def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Seed catalog countries",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--file", type=Path, default=None, help="JSON list of countries")
    parser.add_argument("--create-tables", action="store_true", help="Create missing tables first")
    parser.add_argument("--list", action="store_true", help="List stored countries")
    return parser.parse_args()


async def main() -> int:
    """Main entry point."""
    args = parse_args()
    if not args.file and not args.list:
        print("Nothing to do: pass --file and/or --list")
        return 1

    ctx = CatalogContext.create(settings)
    try:
        if args.create_tables and ctx.engine is not None:
            await create_schema(ctx.engine)

        if args.file:
            if not args.file.exists():
                print(f"Error: File not found: {args.file}")
                return 1
            try:
                countries = json.loads(args.file.read_text(encoding="utf-8"))
            except json.JSONDecodeError as e:
                print(f"Error parsing countries JSON: {e}")
                return 1
            created, existing = await seed(ctx, countries)
            print(f"Countries created: {created}, already present: {existing}")

        if args.list:
            await list_countries(ctx)
    finally:
        await ctx.close()
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
