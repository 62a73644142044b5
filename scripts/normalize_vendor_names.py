"""
Normalize stored vendor names to their canonical display spelling.

Older packets and import log rows may carry vendor spellings such as
"Baker Creek" or "johnnys"; this rewrites them to the canonical name
("Baker Creek Heirloom Seeds") so vendor suggestions and filters group correctly.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Iterable, Optional

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backend.dependencies import get_db_client
from backend.db import (
    ImportLogRecord,
    ImportLogRow,
    InMemoryDbClient,
    PostgresDbClient,
    SeedPacketRecord,
    SeedPacketRow,
)
from import_pipeline.vendors import to_canonical_display


logger = logging.getLogger(__name__)


def canonical_vendor_change(vendor_name: Optional[str]) -> Optional[str]:
    """The canonical spelling when it differs from `vendor_name`, else None."""
    if not vendor_name or not vendor_name.strip():
        return None
    canonical = to_canonical_display(vendor_name)
    if canonical == vendor_name:
        return None
    return canonical


def _normalize_records(records: Iterable[Any], *, dry_run: bool) -> int:
    updated = 0
    for record in records:
        canonical = canonical_vendor_change(record.vendor_name)
        if canonical is None:
            continue
        updated += 1
        if not dry_run:
            record.vendor_name = canonical
    return updated


def normalize_in_memory(db: InMemoryDbClient, *, dry_run: bool) -> int:
    updated = 0
    for record_cls in (SeedPacketRecord, ImportLogRecord):
        updated += _normalize_records(
            db.tables.get(record_cls, {}).values(), dry_run=dry_run
        )
    return updated


def normalize_postgres(
    db: PostgresDbClient,
    *,
    dry_run: bool,
    batch_size: int,
    limit: Optional[int],
) -> int:
    updated = 0
    for row_cls in (SeedPacketRow, ImportLogRow):
        remaining = limit
        offset = 0
        with db.Session() as session:
            while True:
                query = (
                    session.query(row_cls)
                    .filter(row_cls.vendor_name.isnot(None))
                    .order_by(row_cls.id.asc())
                    .offset(offset)
                )
                query = query.limit(
                    batch_size if remaining is None else min(batch_size, remaining)
                )
                rows = query.all()
                if not rows:
                    break

                updated += _normalize_records(rows, dry_run=dry_run)
                if not dry_run:
                    session.commit()

                if remaining is not None:
                    remaining -= len(rows)
                    if remaining <= 0:
                        break
                offset += len(rows)
        logger.info("Scanned %s", row_cls.__tablename__)
    return updated


def main() -> int:
    parser = argparse.ArgumentParser(description="Normalize stored vendor names")
    parser.add_argument(
        "--batch-size",
        type=int,
        default=200,
        help="Batch size for Postgres updates",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Max number of rows to scan per table (Postgres only)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report how many rows would change without saving",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(message)s")
    db = get_db_client()

    if isinstance(db, InMemoryDbClient):
        updated = normalize_in_memory(db, dry_run=args.dry_run)
    elif isinstance(db, PostgresDbClient):
        updated = normalize_postgres(
            db,
            dry_run=args.dry_run,
            batch_size=args.batch_size,
            limit=args.limit,
        )
    else:
        logger.error("Unsupported DB client: %s", type(db).__name__)
        return 1

    logger.info("Updated %d vendor names", updated)
    return 0


if __name__ == "__main__":
    sys.exit(main())
