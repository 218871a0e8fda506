"""Practice name helpers — one normalization used for every comparison."""

from __future__ import annotations

PENDING_PRACTICE = "Pending"


def normalize_practice(name: str | None) -> str:
    """Case-insensitive, trimmed comparison key for a practice name."""
    return " ".join((name or "").split()).casefold()


def same_practice(a: str | None, b: str | None) -> bool:
    return normalize_practice(a) == normalize_practice(b)


def parse_practices(raw: str | list[str] | None) -> list[str]:
    """Split a comma-separated practice string (or clean a list), keeping order."""
    if not raw:
        return []
    items = raw if isinstance(raw, list) else raw.split(",")
    seen: set[str] = set()
    practices = []
    for item in items:
        name = item.strip()
        if name and normalize_practice(name) not in seen:
            seen.add(normalize_practice(name))
            practices.append(name)
    return practices


def is_unclassified(practices: list[str]) -> bool:
    return not practices or all(same_practice(p, PENDING_PRACTICE) for p in practices)
