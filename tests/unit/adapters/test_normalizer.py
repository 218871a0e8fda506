"""Tests for CSV normalizer functions."""

from intake.adapters.csv_loader.normalizer import (
    clean_email,
    clean_string,
    normalize_column_name,
    parse_practices,
)

# ─── normalize_column_name ───────────────────────────────────────────


def test_strip_trailing_spaces():
    assert normalize_column_name("  Region  ") == "region"


def test_remove_bom():
    assert normalize_column_name("\ufeffName") == "name"


def test_replace_spaces_with_underscore():
    assert normalize_column_name("SA Name") == "sa_name"


def test_non_breaking_space():
    assert normalize_column_name("AM\u00a0Email") == "am_email"


def test_dash_becomes_underscore():
    assert normalize_column_name(" AM-Email ") == "am_email"


def test_punctuation_is_dropped():
    assert normalize_column_name("Practice(s)") == "practices"


def test_bom_plus_trailing_space():
    """Combined BOM + trailing spaces (common in Excel exports)."""
    assert normalize_column_name("\ufeff  Email Address  ") == "email_address"


# ─── clean_string / clean_email ──────────────────────────────────────


def test_clean_string_strips():
    assert clean_string("  hello  ") == "hello"


def test_clean_string_empty_returns_none():
    assert clean_string("   ") is None
    assert clean_string("") is None


def test_clean_string_none():
    assert clean_string(None) is None


def test_clean_email_lowercases():
    assert clean_email("  Jane.Doe@Example.COM ") == "jane.doe@example.com"
    assert clean_email(" ") is None


# ─── parse_practices ─────────────────────────────────────────────────


def test_parse_practices_mixed_separators():
    assert parse_practices("Collaboration; Security, Data Center") == [
        "Collaboration", "Security", "Data Center",
    ]


def test_parse_practices_collapses_inner_whitespace():
    assert parse_practices("Data   Center") == ["Data Center"]


def test_parse_practices_deduplicates_case_insensitively():
    assert parse_practices("Security, security; SECURITY") == ["Security"]


def test_parse_practices_empty():
    assert parse_practices("") == []
    assert parse_practices(None) == []
    assert parse_practices(" ; , ") == []
