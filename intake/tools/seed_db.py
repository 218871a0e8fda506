"""Seed database from CSV/JSON files.

Usage:
    python -m intake.tools.seed_db
    python -m intake.tools.seed_db --data-dir data
    python -m intake.tools.seed_db --drop  # drop users, mappings and rules first

Files are discovered by name: ``*users*.csv`` / ``*directory*.csv`` for the
user directory, ``*mapping*.csv`` for SA-to-AM rows and ``rules.json`` for
processing rules.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from intake.adapters.csv_loader.loader import load_mappings, load_users
from intake.adapters.persistence.database import async_session_factory
from intake.adapters.persistence.models import (
    DirectoryUserModel,
    ProcessingRuleModel,
    SAMappingModel,
)
from intake.config import settings
from intake.domain.value_objects.enums import RuleAction

logger = logging.getLogger(__name__)


def _find_file(data_dir: Path, pattern: str, name_hints: list[str]) -> Path | None:
    """Find a file matching any of the name hints."""
    for f in sorted(data_dir.glob(pattern)):
        fname_lower = f.stem.lower()
        for hint in name_hints:
            if hint in fname_lower:
                logger.info("Found %s (matched hint '%s')", f.name, hint)
                return f
    return None


def load_rules(file_path: Path) -> list[dict]:
    """Read processing rules from JSON, validating actions and mappings."""
    raw = json.loads(file_path.read_text(encoding="utf-8"))
    if not isinstance(raw, list):
        raise ValueError(f"{file_path} must contain a JSON list of rules")

    rules = []
    for position, item in enumerate(raw):
        name = (item.get("name") or "").strip()
        if not name:
            raise ValueError(f"Rule #{position} in {file_path} has no name")
        mappings = [
            {
                "keyword": m["keyword"],
                "field": m["field"],
                "required": bool(m.get("required", True)),
            }
            for m in item.get("keyword_mappings", [])
        ]
        rules.append({
            "name": name,
            "position": int(item.get("position", position)),
            "action": RuleAction(item.get("action", RuleAction.RESOURCE_ASSIGNMENT.value)).value,
            "sender_pattern": item.get("sender_pattern"),
            "subject_pattern": item.get("subject_pattern"),
            "body_pattern": item.get("body_pattern"),
            "keyword_mappings": mappings,
            "enabled": bool(item.get("enabled", True)),
        })
    logger.info("Parsed %d processing rules", len(rules))
    return rules


async def _drop_data(session: AsyncSession) -> None:
    for model in [SAMappingModel, DirectoryUserModel, ProcessingRuleModel]:
        await session.execute(delete(model))
    await session.commit()
    logger.info("Dropped users, mappings and rules")


async def seed(data_dir: Path, drop: bool = False) -> dict[str, int]:
    """Main seed function. Returns counts of seeded records."""
    counts = {"users": 0, "mappings": 0, "rules": 0}

    users_csv = _find_file(data_dir, "*.csv", ["users", "directory"])
    mappings_csv = _find_file(data_dir, "*.csv", ["mapping", "sa_to_am", "sa-to-am"])
    rules_json = _find_file(data_dir, "*.json", ["rules"])

    if not users_csv and not mappings_csv and not rules_json:
        raise FileNotFoundError(
            f"Nothing to seed in {data_dir}. Expected users.csv, sa_mappings.csv or rules.json"
        )

    async with async_session_factory() as session:
        if drop:
            await _drop_data(session)

        # 1. Directory users (upsert by email)
        if users_csv:
            for ud in load_users(users_csv):
                result = await session.execute(
                    select(DirectoryUserModel).where(func.lower(DirectoryUserModel.email) == ud["email"])
                )
                existing = result.scalar_one_or_none()
                if existing:
                    existing.name = ud["name"]
                    existing.role = ud["role"]
                    existing.practices = ud["practices"]
                    continue
                session.add(DirectoryUserModel(**ud))
                counts["users"] += 1
            await session.commit()

        # 2. SA-to-AM mappings (skip exact duplicates)
        if mappings_csv:
            for md in load_mappings(mappings_csv):
                result = await session.execute(
                    select(SAMappingModel).where(
                        SAMappingModel.specialist_name == md["specialist_name"],
                        SAMappingModel.owner_email == md["owner_email"],
                    )
                )
                if any(sorted(m.practices) == sorted(md["practices"]) for m in result.scalars()):
                    logger.debug("Mapping %s → %s already exists, skipping", md["specialist_name"], md["owner_email"])
                    continue
                session.add(SAMappingModel(**md))
                counts["mappings"] += 1
            await session.commit()

        # 3. Processing rules (upsert by name)
        if rules_json:
            for rd in load_rules(rules_json):
                result = await session.execute(
                    select(ProcessingRuleModel).where(ProcessingRuleModel.name == rd["name"])
                )
                existing = result.scalar_one_or_none()
                if existing:
                    for key, value in rd.items():
                        setattr(existing, key, value)
                    continue
                session.add(ProcessingRuleModel(**rd))
                counts["rules"] += 1
            await session.commit()

    logger.info(
        "Seed complete: %d users, %d mappings, %d rules added",
        counts["users"], counts["mappings"], counts["rules"],
    )
    return counts


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s | %(message)s")

    parser = argparse.ArgumentParser(description="Seed PRISM database from CSV/JSON files")
    parser.add_argument(
        "--data-dir", type=str, default=settings.csv_data_path,
        help="Directory containing the seed files (default: CSV_DATA_PATH)",
    )
    parser.add_argument(
        "--drop", action="store_true",
        help="Drop existing users, mappings and rules before seeding",
    )
    args = parser.parse_args()

    data_dir = Path(args.data_dir)
    if not data_dir.exists():
        logger.error("Data directory not found: %s", data_dir)
        sys.exit(1)

    asyncio.run(seed(data_dir, drop=args.drop))


if __name__ == "__main__":
    main()
