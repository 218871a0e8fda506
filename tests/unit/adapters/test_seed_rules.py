"""Tests for reading processing rules from the seed JSON file."""

from __future__ import annotations

import json

import pytest

from intake.tools.seed_db import _find_file, load_rules


def _write_rules(path, rules) -> None:
    path.write_text(json.dumps(rules), encoding="utf-8")


def test_load_rules_defaults(tmp_path):
    path = tmp_path / "rules.json"
    _write_rules(path, [
        {
            "name": " SA request ",
            "action": "sa_assignment",
            "subject_pattern": "SA Request",
            "keyword_mappings": [
                {"keyword": "Opportunity ID:", "field": "opportunityId"},
                {"keyword": "Notes:", "field": "notes", "required": False},
            ],
        },
        {"name": "Resource request"},
    ])

    rules = load_rules(path)

    assert [r["name"] for r in rules] == ["SA request", "Resource request"]
    assert rules[0]["position"] == 0
    assert rules[1]["position"] == 1
    assert rules[0]["keyword_mappings"][0]["required"] is True
    assert rules[0]["keyword_mappings"][1]["required"] is False
    assert rules[1]["action"] == "resource_assignment"
    assert rules[1]["enabled"] is True
    assert rules[1]["keyword_mappings"] == []


def test_load_rules_rejects_non_list(tmp_path):
    path = tmp_path / "rules.json"
    _write_rules(path, {"name": "single"})
    with pytest.raises(ValueError):
        load_rules(path)


def test_load_rules_rejects_unnamed_rule(tmp_path):
    path = tmp_path / "rules.json"
    _write_rules(path, [{"action": "sa_assignment"}])
    with pytest.raises(ValueError):
        load_rules(path)


def test_load_rules_rejects_unknown_action(tmp_path):
    path = tmp_path / "rules.json"
    _write_rules(path, [{"name": "bad", "action": "delete_everything"}])
    with pytest.raises(ValueError):
        load_rules(path)


def test_find_file_by_name_hint(tmp_path):
    (tmp_path / "directory_export.csv").write_text("Name,Email\n", encoding="utf-8")
    (tmp_path / "sa_to_am.csv").write_text("SA Name\n", encoding="utf-8")

    assert _find_file(tmp_path, "*.csv", ["users", "directory"]).name == "directory_export.csv"
    assert _find_file(tmp_path, "*.csv", ["mapping", "sa_to_am"]).name == "sa_to_am.csv"
    assert _find_file(tmp_path, "*.json", ["rules"]) is None
