"""Field extraction — keyword-positional parsing of forwarded business emails.

Forwarded intake emails are semi-structured: a label ("Opportunity ID:",
"Region", "Technologies") followed by a value on the same line or on one of the
next few lines. Exchange bodies frequently carry line breaks as ``&#xD;``/``&#xA;``
entities instead of literal newlines, so those are folded into ``\\n`` before any
scanning happens.

Three keywords get dedicated handling:
  * ``To:`` — recipient list, parsed into ``Recipient`` pairs.
  * ``Submitted By:`` — tolerant of the "Submited" spelling used by the source form.
  * ``Technologies`` — block capture up to the "Submitted By:" sentinel; the
    block is a fixed-schema table parsed by ``parse_technology_table``.
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Union

from intake.domain.entities.directory_user import DirectoryUser
from intake.domain.entities.processing_rule import KeywordMapping
from intake.domain.value_objects.enums import RegionCode
from intake.domain.value_objects.recipient import Recipient


class _Missing(Enum):
    NOT_FOUND = "not_found"

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NOT_FOUND"


# Extraction ran but found nothing. Distinct from "" and from an absent key
# (which means the field was never configured).
NOT_FOUND = _Missing.NOT_FOUND

FieldValue = Union[str, list[Recipient], _Missing]

MAX_SCAN_LINES = 10
MAX_REGION_LENGTH = 20
MIN_PARTIAL_REGION_LENGTH = 3

RECIPIENT_KEYWORD = "to:"
BLOCK_KEYWORD = "technologies"
REGION_FIELD = "region"
OPPORTUNITY_NAME_FIELD = "opportunityName"

REGION_CODES: tuple[str, ...] = tuple(code.value for code in RegionCode)

_BREAK_ENTITY = r"&#x0*[da](?:;|(?![0-9a-f]))"
LINE_BREAK_RE = re.compile(rf"(?:{_BREAK_ENTITY}){{1,2}}|&#0*1[03];|\r\n?", re.IGNORECASE)
SEPARATOR_PREFIX_RE = re.compile(r"^[:\-\s]+")
SEPARATOR_ONLY_RE = re.compile(r"[\s\-:]*")
MAILTO_RE = re.compile(r"<mailto:[^>]*>", re.IGNORECASE)
LINK_RE = re.compile(r"<https?://[^>]+>", re.IGNORECASE)
EMAIL_RE = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")
FROM_HEADER_RE = re.compile(r"(?<![\w-])from:", re.IGNORECASE)
TO_HEADER_RE = re.compile(r"(?<![\w-])to:", re.IGNORECASE)
SUBMITTED_BY_KEYWORD_RE = re.compile(r"submit+e?d\s+by\s*:?", re.IGNORECASE)
SUBMITTED_BY_VALUE_RE = re.compile(r"\bsubmit+e?d\s+by\s*:\s*([^\n]*)", re.IGNORECASE)
BLOCK_END_RE = re.compile(r"\bsubmit+e?d\s+by\s*:", re.IGNORECASE)
COLUMN_SPLIT_RE = re.compile(r"\s{2,}|\t")


@dataclass
class ExtractedFields:
    """Transient field name → value mapping built for one email."""

    values: dict[str, FieldValue] = field(default_factory=dict)
    rejected: set[str] = field(default_factory=set)

    def set(self, name: str, value: FieldValue) -> None:
        self.values[name] = value if value else NOT_FOUND

    def is_configured(self, name: str) -> bool:
        return name in self.values

    def found(self, name: str) -> bool:
        return bool(self.values.get(name, NOT_FOUND))

    def get(self, name: str, default: str | None = None) -> str | None:
        value = self.values.get(name, NOT_FOUND)
        return value if isinstance(value, str) and value else default

    def recipients(self, name: str) -> list[Recipient]:
        value = self.values.get(name, NOT_FOUND)
        return list(value) if isinstance(value, list) else []

    def missing(self) -> list[str]:
        return [name for name, value in self.values.items() if value is NOT_FOUND]

    def as_strings(self) -> dict[str, str]:
        """Every found string value (recipient lists excluded)."""
        return {k: v for k, v in self.values.items() if isinstance(v, str) and v}


@dataclass(frozen=True)
class TechnologyRow:
    technology: str
    specialist: str | None
    requested: bool


# ─── Text helpers ────────────────────────────────────────────────────


def normalize_line_breaks(text: str) -> str:
    return LINE_BREAK_RE.sub("\n", text or "")


def clean_value(value: str | None) -> str:
    """Strip mailto links and decode HTML entities from one candidate."""
    if not value:
        return ""
    value = MAILTO_RE.sub("", value)
    value = html.unescape(value).replace("\xa0", " ")
    return value.strip()


def strip_links(value: str) -> str:
    return LINK_RE.sub("", value).strip()


def clean_documentation_link(link: str | None) -> str:
    """Pull the URL out of text like ``job documentation <https://...>``."""
    if not link:
        return ""
    match = re.search(r"<(https?://[^>]+)>", link)
    return match.group(1) if match else link.strip()


def split_name_email(text: str | None) -> tuple[str, str | None]:
    """Split ``Keith Arnst <karnst@example.com>`` into a title-cased name and email."""
    if not text:
        return "", None
    email_match = EMAIL_RE.search(text)
    email = email_match.group(0) if email_match else None
    name = text.split("<", 1)[0] if "<" in text else text
    if email and name.strip() == email:
        name = ""
    name = " ".join(word.capitalize() for word in name.strip(" \"'").split())
    return name, email


def validate_region(candidate: str | None) -> str | None:
    """Map a candidate onto one of the canonical region codes, or reject it."""
    if not candidate:
        return None
    value = candidate.strip().upper()
    if not value or len(value) > MAX_REGION_LENGTH:
        return None
    if value in REGION_CODES:
        return value

    contained = [code for code in REGION_CODES if code in value]
    if len(contained) == 1:
        return contained[0]

    if len(value) >= MIN_PARTIAL_REGION_LENGTH:
        containing = [code for code in REGION_CODES if value in code]
        if len(containing) == 1:
            return containing[0]
    return None


# ─── Positional scanning ─────────────────────────────────────────────


def _value_after(content: str, start: int) -> str | None:
    """Rest of the line after ``start``; else the first usable line among the next few non-blank ones."""
    lines = content[start:].split("\n")
    first = clean_value(SEPARATOR_PREFIX_RE.sub("", lines[0]))
    if first:
        return first

    scanned = 0
    for line in lines[1:]:
        if not line.strip():
            continue
        scanned += 1
        if scanned > MAX_SCAN_LINES:
            break
        if SEPARATOR_ONLY_RE.fullmatch(line):
            continue
        cleaned = clean_value(line)
        if cleaned:
            return cleaned
    return None


def _locate(content: str, keyword: str) -> int | None:
    """End offset of the first case-insensitive occurrence of ``keyword``."""
    match = re.search(re.escape(keyword), content, re.IGNORECASE)
    return match.end() if match else None


def _find_user_by_name(name: str, users: Iterable[DirectoryUser]) -> DirectoryUser | None:
    key = " ".join(name.split()).casefold()
    return next((u for u in users if " ".join(u.name.split()).casefold() == key), None)


def _find_user_by_email(email: str, users: Iterable[DirectoryUser]) -> DirectoryUser | None:
    key = email.strip().lower()
    return next((u for u in users if u.email.strip().lower() == key), None)


def parse_recipients(line: str, users: Iterable[DirectoryUser] = ()) -> list[Recipient]:
    """Parse a To: line into recipients.

    Each entry is matched against an email regex first; entries without an
    address fall back to a directory lookup by name and are dropped if that
    fails too.
    """
    users = list(users)
    parts = line.split(";") if ";" in line else line.split(",")
    recipients: list[Recipient] = []
    seen: set[str] = set()

    for part in parts:
        entry = part.strip().strip("\"'")
        if not entry:
            continue

        match = EMAIL_RE.search(entry)
        if match:
            email = match.group(0)
            name = entry[: match.start()].rstrip(" <[(\"'").strip(" \"'")
            if not name:
                user = _find_user_by_email(email, users)
                name = user.name if user else email
        else:
            user = _find_user_by_name(entry, users)
            if user is None:
                continue
            name, email = user.name, user.email

        if email.lower() in seen:
            continue
        seen.add(email.lower())
        recipients.append(Recipient(name=name, email=email))

    return recipients


def _extract_recipients(content: str, users: list[DirectoryUser]) -> list[Recipient]:
    # Prefer the forwarded header's To: (the first one after a From:)
    from_match = FROM_HEADER_RE.search(content)
    to_match = TO_HEADER_RE.search(content, from_match.end()) if from_match else None
    if to_match is None:
        to_match = TO_HEADER_RE.search(content)
    if to_match is None:
        return []

    line = _value_after(content, to_match.end())
    return parse_recipients(line, users) if line else []


def _extract_submitted_by(content: str) -> str | None:
    match = SUBMITTED_BY_VALUE_RE.search(content)
    if not match:
        return None
    return clean_value(match.group(1)) or None


def _extract_block(content: str, start: int) -> str | None:
    end_match = BLOCK_END_RE.search(content, start)
    block = content[start : end_match.start() if end_match else len(content)]

    lines = []
    for raw in block.split("\n"):
        line = SEPARATOR_PREFIX_RE.sub("", clean_value(raw))
        if line and not SEPARATOR_ONLY_RE.fullmatch(line):
            lines.append(line)
    return "\n".join(lines) or None


# ─── Public API ──────────────────────────────────────────────────────


def extract_fields(
    subject: str,
    body: str,
    mappings: Iterable[KeywordMapping],
    users: Iterable[DirectoryUser] = (),
) -> ExtractedFields:
    """Run every keyword mapping over ``subject + body``.

    Pure transform: the inputs are not modified and nothing outside the
    returned ``ExtractedFields`` is touched.
    """
    users = list(users)
    content = normalize_line_breaks(f"{subject}\n{body}")
    fields = ExtractedFields()

    for mapping in mappings:
        keyword = (mapping.keyword or "").strip()
        if not keyword or not mapping.field:
            continue
        lowered = keyword.lower()

        if lowered == RECIPIENT_KEYWORD:
            fields.set(mapping.field, _extract_recipients(content, users) or NOT_FOUND)
            continue

        if SUBMITTED_BY_KEYWORD_RE.fullmatch(lowered):
            fields.set(mapping.field, _extract_submitted_by(content) or NOT_FOUND)
            continue

        start = _locate(content, keyword)
        if start is None:
            fields.set(mapping.field, NOT_FOUND)
            continue

        if lowered.rstrip(":").strip() == BLOCK_KEYWORD:
            fields.set(mapping.field, _extract_block(content, start) or NOT_FOUND)
            continue

        value = _value_after(content, start)
        if value and mapping.field == REGION_FIELD:
            region = validate_region(value)
            if region is None:
                fields.rejected.add(mapping.field)
            value = region
        elif value and mapping.field == OPPORTUNITY_NAME_FIELD:
            value = strip_links(value)

        fields.set(mapping.field, value or NOT_FOUND)

    return fields


def parse_technology_table(block: str | None) -> list[TechnologyRow]:
    """Parse ``Technology Name   SA Name   SA requested`` rows.

    Columns are separated by runs of two or more spaces (or tabs). A row with
    only two columns has no specialist; the last column is always the
    requested flag.
    """
    if not block:
        return []

    rows = []
    for raw in block.split("\n"):
        line = raw.strip()
        lowered = line.lower()
        if not line or "technology name" in lowered or lowered.startswith(BLOCK_KEYWORD):
            continue

        parts = [p.strip() for p in COLUMN_SPLIT_RE.split(line) if p.strip()]
        if len(parts) < 2:
            continue

        specialist = parts[1] if len(parts) >= 3 and len(parts[1]) > 2 else None
        rows.append(
            TechnologyRow(
                technology=parts[0],
                specialist=specialist,
                requested=parts[-1].lower() == "yes",
            )
        )
    return rows
