"""Tests for fuzzy practice matching."""

import pytest

from intake.domain.policies.practice_matching import (
    canonical_practices,
    damerau_levenshtein,
    edit_similarity,
    edit_text,
    match_practice,
    similarity,
    soundex,
    tokenize,
)

PRACTICES = ["Cyber Security", "Audio Visual & Unified Communications", "Data Center"]


# ─── String metrics ─────────────────────────────────────────────────


def test_damerau_levenshtein_counts_transposition_once():
    assert damerau_levenshtein("ca", "ac") == 1
    assert damerau_levenshtein("kitten", "sitting") == 3
    assert damerau_levenshtein("", "abc") == 3


def test_edit_similarity_bounds():
    assert edit_similarity("", "") == 1.0
    assert edit_similarity("abc", "abc") == 1.0
    assert edit_similarity("abc", "xyz") == 0.0


@pytest.mark.parametrize("word, code", [
    ("Robert", "R163"),
    ("Rupert", "R163"),
    ("Tymczak", "T522"),
    ("Ashcraft", "A261"),
    ("Pfister", "P236"),
])
def test_soundex(word, code):
    assert soundex(word) == code


def test_soundex_without_letters():
    assert soundex("123") == ""


# ─── Tokenization ───────────────────────────────────────────────────


def test_tokenize_expands_abbreviations():
    assert tokenize("AV & UC") == ["audio", "visual", "unified", "communications"]


def test_tokenize_drops_stop_words_and_duplicates():
    assert tokenize("The Data and the Center data") == ["data", "center"]


def test_edit_text_strips_parentheticals():
    assert edit_text("AV/Video (UC)") == "av/video"


# ─── Matching ───────────────────────────────────────────────────────


def test_exact_name_scores_one():
    match = match_practice("data center", PRACTICES)
    assert match.practice == "Data Center"
    assert match.score == pytest.approx(1.0)


def test_abbreviated_candidate_matches_long_practice():
    match = match_practice("av/video (uc)", PRACTICES)
    assert match is not None
    assert match.practice == "Audio Visual & Unified Communications"
    assert match.score > 0.5


def test_unrelated_candidate_has_no_match():
    assert match_practice("zzzz", PRACTICES) is None


def test_empty_candidate_has_no_match():
    assert match_practice("  ", PRACTICES) is None
    assert match_practice("Security", []) is None


def test_ties_keep_earlier_practice():
    match = match_practice("Security", ["Security", "security"])
    assert match.practice == "Security"


def test_threshold_is_inclusive_floor():
    score = similarity("Cyber Sec", "Cyber Security")
    assert match_practice("Cyber Sec", ["Cyber Security"], threshold=score) is not None
    assert match_practice("Cyber Sec", ["Cyber Security"], threshold=score + 0.01) is None


# ─── Canonical list ─────────────────────────────────────────────────


def test_canonical_practices_prefers_configured():
    assert canonical_practices(["Security", " ", "Data Center"], [["Collab"]]) == ["Security", "Data Center"]


def test_canonical_practices_falls_back_to_directory_union():
    assert canonical_practices([], [["Security", "Data Center"], ["security", "Collab"]]) == [
        "Security",
        "Data Center",
        "Collab",
    ]
