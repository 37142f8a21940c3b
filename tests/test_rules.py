"""Tests for loading product rules and building the per-venue catalog."""

import json

import pytest

from pos_reports.exceptions import ConfigError
from pos_reports.rules import (
    JsonRuleSource,
    Rule,
    RuleCatalog,
    load_rules_from_json,
    rule_from_record,
)


def _write(tmp_path, data):
    path = tmp_path / "product_rules.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_load_flat_list(tmp_path) -> None:
    path = _write(
        tmp_path,
        [
            {"location_id": "auckland", "product_name": "Go Kart", "category": "combo"},
            {
                "location_id": "auckland",
                "product_name": "Spend 50 Get 75",
                "category": "ARCADE",
                "arcade_group_label": "Spend $50",
            },
        ],
    )
    rules = load_rules_from_json(path)
    assert rules == [
        Rule("auckland", "Go Kart", "combo"),
        Rule("auckland", "Spend 50 Get 75", "arcade", "Spend $50"),
    ]


def test_load_mapping_by_location(tmp_path) -> None:
    path = _write(
        tmp_path,
        {
            "auckland": [{"product_name": "Go Kart", "category": "combo"}],
            "wellington": [{"product_name": "Laser Tag", "category": "combo"}],
        },
    )
    rules = load_rules_from_json(path)
    assert [(r.location_id, r.product_name) for r in rules] == [
        ("auckland", "Go Kart"),
        ("wellington", "Laser Tag"),
    ]


def test_invalid_category(tmp_path) -> None:
    path = _write(tmp_path, [{"location_id": "a", "product_name": "X", "category": "food"}])
    with pytest.raises(ConfigError, match="category"):
        load_rules_from_json(path)


def test_missing_file(tmp_path) -> None:
    with pytest.raises(ConfigError):
        load_rules_from_json(tmp_path / "nope.json")


def test_record_without_name() -> None:
    with pytest.raises(ConfigError):
        rule_from_record({"location_id": "a", "category": "combo"})


@pytest.mark.parametrize("value", ["false", "true", 0, None])
def test_is_active_must_be_boolean(value) -> None:
    """A quoted "false" must not silently leave the rule active."""
    with pytest.raises(ConfigError, match="is_active"):
        rule_from_record(
            {"location_id": "a", "product_name": "X", "category": "combo", "is_active": value}
        )


def test_is_active_defaults_to_true() -> None:
    rule = rule_from_record({"location_id": "a", "product_name": "X", "category": "combo"})
    assert rule.is_active


def test_blank_arcade_label_is_none() -> None:
    rule = rule_from_record(
        {"location_id": "a", "product_name": "X", "category": "other", "arcade_group_label": ""}
    )
    assert rule.arcade_group_label is None


def test_source_returns_active_exact_rules_for_location(tmp_path) -> None:
    path = _write(
        tmp_path,
        [
            {"location_id": "auckland", "product_name": "Go Kart", "category": "combo"},
            {
                "location_id": "auckland",
                "product_name": "Old Item",
                "category": "combo",
                "is_active": False,
            },
            {
                "location_id": "auckland",
                "product_name": "Kart",
                "category": "combo",
                "match_type": "contains",
            },
            {"location_id": "wellington", "product_name": "Laser Tag", "category": "combo"},
        ],
    )
    rules = JsonRuleSource(path).fetch_rules("auckland")
    assert [r.product_name for r in rules] == ["Go Kart"]
    assert JsonRuleSource(path).fetch_rules("hamilton") == []


def test_source_rereads_file(tmp_path) -> None:
    """Edits to the file are seen by the next fetch."""
    path = _write(tmp_path, [{"location_id": "a", "product_name": "X", "category": "combo"}])
    source = JsonRuleSource(path)
    assert len(source.fetch_rules("a")) == 1
    _write(tmp_path, [])
    assert source.fetch_rules("a") == []


class TestRuleCatalog:
    def test_lookup_normalizes(self) -> None:
        catalog = RuleCatalog("a", [Rule("a", "Go Kart", "combo")])
        assert catalog.lookup("  GO KART ").category == "combo"
        assert catalog.lookup("Go  Kart") is None
        assert len(catalog) == 1

    def test_first_rule_wins_on_duplicates(self) -> None:
        catalog = RuleCatalog(
            "a",
            [Rule("a", "Go Kart", "combo"), Rule("a", "go kart ", "non_combo")],
        )
        assert catalog.lookup("Go Kart").category == "combo"
        assert catalog.duplicates == ["go kart"]
        assert len(catalog) == 2

    def test_product_pattern_is_also_matched(self) -> None:
        catalog = RuleCatalog(
            "a", [Rule("a", "Go Kart", "combo", product_pattern="Go-Kart 10min")]
        )
        assert catalog.lookup("go-kart 10min").product_name == "Go Kart"

    def test_inactive_rules_ignored(self) -> None:
        catalog = RuleCatalog("a", [Rule("a", "Go Kart", "combo", is_active=False)])
        assert len(catalog) == 0
        assert catalog.lookup("Go Kart") is None
