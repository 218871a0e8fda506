"""PracticeMatchingPolicy — fuzzy-map free-text technology names onto canonical practices.

Score of a candidate against one practice:

    score = 0.4 × edit_similarity + 0.6 × semantic_similarity

edit_similarity compares the whole strings (Damerau-Levenshtein, adjacent
transpositions cost 1). semantic_similarity compares token sets after
abbreviation expansion, with Soundex as a phonetic fallback.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable

from intake.domain.value_objects.practice import normalize_practice

DEFAULT_THRESHOLD = 0.4
TABLE_THRESHOLD = 0.2

EDIT_WEIGHT = 0.4
SEMANTIC_WEIGHT = 0.6

EXACT_TOKEN_SCORE = 1.0
SOUNDEX_TOKEN_SCORE = 0.8
EDIT_TOKEN_FACTOR = 0.6

ABBREVIATIONS: dict[str, str] = {
    "av": "audio visual",
    "uc": "unified communications",
    "dc": "data center",
    "en": "enterprise networking",
    "sd": "software defined",
    "ai": "artificial intelligence",
    "ml": "machine learning",
    "iot": "internet of things",
    "collab": "collaboration",
    "sec": "security",
    "ps": "professional services",
    "cx": "customer experience",
    "msp": "managed services",
}

STOP_WORDS = frozenset({"and", "the", "of", "for", "a", "an", "with", "or", "to", "in"})

TOKEN_RE = re.compile(r"[a-z0-9]+")
PARENTHETICAL_RE = re.compile(r"\([^)]*\)")

_SOUNDEX_CODES = {
    **dict.fromkeys("bfpv", "1"),
    **dict.fromkeys("cgjkqsxz", "2"),
    **dict.fromkeys("dt", "3"),
    "l": "4",
    **dict.fromkeys("mn", "5"),
    "r": "6",
}


@dataclass(frozen=True)
class PracticeMatch:
    practice: str
    score: float


# ─── String metrics ──────────────────────────────────────────────────


def damerau_levenshtein(a: str, b: str) -> int:
    """Optimal string alignment distance: insert, delete, substitute, adjacent swap."""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    rows = [[0] * (len(b) + 1) for _ in range(len(a) + 1)]
    for i in range(len(a) + 1):
        rows[i][0] = i
    for j in range(len(b) + 1):
        rows[0][j] = j

    for i in range(1, len(a) + 1):
        for j in range(1, len(b) + 1):
            cost = 0 if a[i - 1] == b[j - 1] else 1
            rows[i][j] = min(
                rows[i - 1][j] + 1,
                rows[i][j - 1] + 1,
                rows[i - 1][j - 1] + cost,
            )
            if i > 1 and j > 1 and a[i - 1] == b[j - 2] and a[i - 2] == b[j - 1]:
                rows[i][j] = min(rows[i][j], rows[i - 2][j - 2] + 1)

    return rows[len(a)][len(b)]


def edit_similarity(a: str, b: str) -> float:
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1.0 - damerau_levenshtein(a, b) / longest


def soundex(word: str) -> str:
    """American Soundex code; empty string for input without letters."""
    letters = [c for c in word.lower() if c.isalpha()]
    if not letters:
        return ""

    first = letters[0]
    code = first.upper()
    previous = _SOUNDEX_CODES.get(first, "")
    for char in letters[1:]:
        digit = _SOUNDEX_CODES.get(char, "")
        if digit and digit != previous:
            code += digit
            if len(code) == 4:
                break
        # h and w do not separate letters with the same code
        if char not in "hw":
            previous = digit
    return code.ljust(4, "0")


# ─── Tokenization ────────────────────────────────────────────────────


def edit_text(text: str) -> str:
    """Lower-cased text with parenthetical abbreviations removed."""
    return " ".join(PARENTHETICAL_RE.sub(" ", text.lower()).split())


def tokenize(text: str) -> list[str]:
    """Alphanumeric tokens, abbreviations expanded, stop words dropped.

    Parenthetical content such as ``(UC)`` is kept here as abbreviation tokens.
    """
    tokens: list[str] = []
    for raw in TOKEN_RE.findall(text.lower()):
        for token in ABBREVIATIONS.get(raw, raw).split():
            if token not in STOP_WORDS and token not in tokens:
                tokens.append(token)
    return tokens


def _token_score(token: str, other: str) -> float:
    if token == other:
        return EXACT_TOKEN_SCORE
    code = soundex(token)
    if code and code == soundex(other):
        return SOUNDEX_TOKEN_SCORE
    return EDIT_TOKEN_FACTOR * edit_similarity(token, other)


def semantic_similarity(a: str, b: str) -> float:
    tokens_a, tokens_b = tokenize(a), tokenize(b)
    if not tokens_a or not tokens_b:
        return 0.0

    larger, smaller = (tokens_a, tokens_b) if len(tokens_a) >= len(tokens_b) else (tokens_b, tokens_a)
    total = sum(max(_token_score(token, other) for other in smaller) for token in larger)
    return total / len(larger)


def similarity(candidate: str, practice: str) -> float:
    return EDIT_WEIGHT * edit_similarity(
        edit_text(candidate), edit_text(practice)
    ) + SEMANTIC_WEIGHT * semantic_similarity(candidate, practice)


# ─── Public API ──────────────────────────────────────────────────────


def match_practice(
    candidate: str | None,
    practices: Iterable[str],
    threshold: float = DEFAULT_THRESHOLD,
) -> PracticeMatch | None:
    """Best canonical practice for ``candidate`` scoring at least ``threshold``.

    Ties keep the earlier practice. Returns None when nothing clears the
    threshold; callers fall back to the "Pending" placeholder.
    """
    if not candidate or not candidate.strip():
        return None

    best: PracticeMatch | None = None
    for practice in practices:
        score = similarity(candidate, practice)
        if best is None or score > best.score:
            best = PracticeMatch(practice=practice, score=score)

    if best is None or best.score < threshold:
        return None
    return best


def canonical_practices(configured: Iterable[str], user_practices: Iterable[Iterable[str]] = ()) -> list[str]:
    """Configured practice list, else the union of directory users' practices."""
    names = [p.strip() for p in configured if p and p.strip()]
    if not names:
        names = [p.strip() for practices in user_practices for p in practices if p and p.strip()]

    seen: set[str] = set()
    result = []
    for name in names:
        key = normalize_practice(name)
        if key not in seen:
            seen.add(key)
            result.append(name)
    return result
