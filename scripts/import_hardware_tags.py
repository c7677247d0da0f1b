#!/usr/bin/env python
"""Script to import a batch of manufactured NFC tags.

This script:
1. Reads a CSV with ``chip_uid`` and optional ``claim_code`` columns
2. Normalizes both codes the way the API looks them up (trimmed, uppercase)
3. Inserts new tags as ``unclaimed``; tags already present are left alone

Usage:
    python scripts/import_hardware_tags.py tags.csv

Requirements:
    - SUPABASE_URL and SUPABASE_SECRET_KEY environment variables must be set
    - The hardware_tags table must exist (see supabase/migrations)
"""

import asyncio
import csv
import logging
import sys
from pathlib import Path

# Add the project root to the path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.core.supabase import get_supabase_client
from src.models.linket import TagStatus
from src.services.linket_service import normalize_tag_code

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

BATCH_SIZE = 500


def read_tags(path: Path) -> list[dict[str, str | None]]:
    """Read and normalize tag rows, dropping blanks and duplicate UIDs."""
    rows: dict[str, dict[str, str | None]] = {}
    with path.open(newline="", encoding="utf-8") as handle:
        for line_number, record in enumerate(csv.DictReader(handle), start=2):
            chip_uid = normalize_tag_code(record.get("chip_uid"))
            if not chip_uid:
                logger.warning("Line %d: missing chip_uid, skipped", line_number)
                continue
            if chip_uid in rows:
                logger.warning("Line %d: duplicate chip_uid %s, skipped", line_number, chip_uid)
                continue
            rows[chip_uid] = {
                "chip_uid": chip_uid,
                "claim_code": normalize_tag_code(record.get("claim_code")) or None,
                "status": TagStatus.UNCLAIMED.value,
            }
    return list(rows.values())


async def import_tags(path: Path) -> dict[str, int]:
    """Insert the tags from ``path`` in batches."""
    client = get_supabase_client()
    rows = read_tags(path)
    results = {"read": len(rows), "inserted": 0, "failed": 0}

    for start in range(0, len(rows), BATCH_SIZE):
        batch = rows[start : start + BATCH_SIZE]
        try:
            response = (
                client.table("hardware_tags")
                .upsert(batch, on_conflict="chip_uid", ignore_duplicates=True)
                .execute()
            )
            results["inserted"] += len(response.data or [])
        except Exception as e:
            logger.error("Batch starting at row %d failed: %s", start, e)
            results["failed"] += len(batch)

    return results


async def main() -> None:
    """Main entry point for the import script."""
    if len(sys.argv) != 2:
        logger.error("Usage: python scripts/import_hardware_tags.py <tags.csv>")
        sys.exit(2)

    path = Path(sys.argv[1])
    if not path.exists():
        logger.error("File not found: %s", path)
        sys.exit(2)

    results = await import_tags(path)
    logger.info("=" * 60)
    logger.info("Tags read: %d", results["read"])
    logger.info("Tags inserted: %d", results["inserted"])
    logger.info("Failed: %d", results["failed"])
    logger.info("=" * 60)

    if results["failed"] > 0:
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
