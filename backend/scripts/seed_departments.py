"""
Seed default departments and agent pools.

Usage:
    cd backend
    python -m scripts.seed_departments          # Dry-run (shows what will be created)
    python -m scripts.seed_departments --apply  # Actually insert data
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Suppress noisy SQLAlchemy logs during seed
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

# Ensure backend root is on sys.path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app.infrastructure.local.database import init_db
from app.infrastructure.local.department_repository import SqliteDepartmentRepository
from app.models.department import DepartmentCreate

DEPARTMENTS = [
    (DepartmentCreate(name="General", slug="general", sort_order=0), ["dev_agent"]),
    (DepartmentCreate(name="Sales", slug="sales", sort_order=10), []),
    (DepartmentCreate(name="Technical", slug="technical", sort_order=20), ["dev_agent"]),
    (DepartmentCreate(name="Billing", slug="billing", sort_order=30), []),
]


async def seed(dry_run: bool) -> None:
    if dry_run:
        for department, agents in DEPARTMENTS:
            print(f"Department {department.slug!r} ({department.name}) agents={agents or '-'}")
        print("\n-> run with --apply to insert")
        return

    await init_db()
    repo = SqliteDepartmentRepository()
    for data, agents in DEPARTMENTS:
        department = await repo.get_by_slug(data.slug)
        if department is None:
            department = await repo.create(data)
            print(f"Created {department.slug}")
        else:
            print(f"Exists  {department.slug}")
        for agent_id in agents:
            await repo.add_agent(department.id, agent_id)


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed default chat departments.")
    parser.add_argument(
        "--apply",
        action="store_true",
        help="Actually insert data. Default is dry-run.",
    )
    args = parser.parse_args()
    asyncio.run(seed(dry_run=not args.apply))


if __name__ == "__main__":
    main()
