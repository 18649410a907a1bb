#!/usr/bin/env python3
"""Alembic bootstrap for databases created by Base.metadata.create_all().

If the RMA tables already exist but alembic_version is missing, stamp the
initial revision so later upgrades apply cleanly.
"""

from __future__ import annotations

import logging
import os
import subprocess

from sqlalchemy import inspect

from rma_tracker.database import engine

logger = logging.getLogger("alembic_bootstrap")

BASELINE_REVISION = os.getenv("ALEMBIC_BASELINE_REVISION", "001")
BUSINESS_TABLES = ("customers", "rmas", "service_cycles", "users")


def needs_baseline_stamp(has_alembic_version: bool, existing_tables: set[str]) -> bool:
    return not has_alembic_version and any(table in existing_tables for table in BUSINESS_TABLES)


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    inspector = inspect(engine)
    existing_tables = set(inspector.get_table_names())

    if needs_baseline_stamp("alembic_version" in existing_tables, existing_tables):
        logger.info("Existing schema detected without alembic_version; stamping %s", BASELINE_REVISION)
        subprocess.run(["alembic", "stamp", BASELINE_REVISION], check=True)
    else:
        logger.info("Alembic bootstrap check: no baseline stamp required")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
