"""CSV column normalization — handles BOM, trailing spaces, encoding quirks."""

from __future__ import annotations

import re


def normalize_column_name(name: str) -> str:
    """Normalize a CSV column name.

    - Removes BOM characters (\\ufeff)
    - Replaces runs of spaces / non-breaking spaces / dashes with one underscore
    - Lowercases
    - Strips anything that is not alphanumeric or underscore

    ``"SA Name"`` → ``"sa_name"``, ``" AM-Email "`` → ``"am_email"``.
    """
    name = name.replace("\ufeff", "").strip()
    name = re.sub(r"[\s\u00a0\-]+", "_", name)
    name = name.lower()
    name = re.sub(r"[^\w]", "", name, flags=re.UNICODE)
    return name


def clean_string(value: str | None) -> str | None:
    """Strip whitespace and return None for empty strings."""
    if value is None:
        return None
    value = value.strip()
    return value if value else None


def clean_email(value: str | None) -> str | None:
    value = clean_string(value)
    return value.lower() if value else None


def parse_practices(raw: str | None) -> list[str]:
    """Parse ``"Collaboration; Security, Data Center"`` into an ordered, de-duplicated list.

    Practice names contain spaces, so only commas and semicolons separate them.
    """
    if not raw:
        return []
    seen: set[str] = set()
    practices = []
    for part in re.split(r"[,;]", raw):
        name = " ".join(part.split())
        if name and name.casefold() not in seen:
            seen.add(name.casefold())
            practices.append(name)
    return practices
