"""CSV loader — reads and normalizes directory and SA mapping exports."""

from __future__ import annotations

import csv
import logging
from pathlib import Path

from intake.adapters.csv_loader.normalizer import (
    clean_email,
    clean_string,
    normalize_column_name,
    parse_practices,
)

logger = logging.getLogger(__name__)


def _sniff_dialect(sample: str) -> type[csv.Dialect]:
    """Pick the delimiter (``;``, ``,`` or tab) that occurs most in the header line."""
    if not sample:
        return csv.excel

    first_line = sample.splitlines()[0]
    counts = {d: first_line.count(d) for d in (";", ",", "\t")}
    best_delim = max(counts, key=counts.get)

    if counts[best_delim] > 0:
        class DynamicDialect(csv.excel):
            delimiter = best_delim
        return DynamicDialect
    return csv.excel


def _read_csv(file_path: Path, encoding: str = "utf-8-sig") -> list[dict[str, str | None]]:
    """Read a CSV file with BOM handling and column normalization.

    Returns:
        List of dicts keyed by normalized column names.
    """
    with open(file_path, encoding=encoding, newline="") as f:
        sample = f.read(4096)
        f.seek(0)
        reader = csv.DictReader(f, dialect=_sniff_dialect(sample))
        if reader.fieldnames is None:
            raise ValueError(f"CSV file {file_path} has no header row")

        col_map = {col: normalize_column_name(col) for col in reader.fieldnames}
        rows = [
            {col_map[k]: clean_string(v) for k, v in raw_row.items() if k is not None}
            for raw_row in reader
        ]

    logger.info("Loaded %d rows from %s (columns: %s)", len(rows), file_path.name, list(col_map.values()))
    return rows


def load_users(file_path: Path) -> list[dict]:
    """Load the directory users CSV.

    Expected columns (after normalization):
        name, email, role, practices (comma or semicolon separated)
    """
    users = []
    for row in _read_csv(file_path):
        email = clean_email(row.get("email") or row.get("email_address"))
        name = clean_string(row.get("name") or row.get("full_name") or row.get("display_name"))
        if not email or not name:
            logger.warning("Skipping user row without name/email: %s", row)
            continue
        users.append({
            "name": name,
            "email": email,
            "role": clean_string(row.get("role")),
            "practices": parse_practices(row.get("practices") or row.get("practice")),
        })
    logger.info("Parsed %d users", len(users))
    return users


def load_mappings(file_path: Path) -> list[dict]:
    """Load the SA-to-AM mapping CSV.

    Expected columns (after normalization):
        sa_name, sa_email, am_name, am_email, region, practices
    """
    mappings = []
    for row in _read_csv(file_path):
        specialist = clean_string(row.get("sa_name") or row.get("specialist_name") or row.get("sa"))
        owner_email = clean_email(row.get("am_email") or row.get("owner_email"))
        if not specialist or not owner_email:
            logger.warning("Skipping mapping row without SA name/AM email: %s", row)
            continue
        region = clean_string(row.get("region"))
        mappings.append({
            "specialist_name": specialist,
            "specialist_email": clean_email(row.get("sa_email") or row.get("specialist_email")),
            "owner_name": clean_string(row.get("am_name") or row.get("owner_name")),
            "owner_email": owner_email,
            "region": region.upper() if region else None,
            "practices": parse_practices(row.get("practices") or row.get("practice")),
        })
    logger.info("Parsed %d SA mappings", len(mappings))
    return mappings
