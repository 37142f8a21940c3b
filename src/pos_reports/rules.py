"""Product rule catalog for classifying POS export rows.

This module loads per-venue product rules from a product_rules.json file and
builds the in-memory catalog the classifier matches against. A catalog is a
snapshot: it is built once per venue before row classification starts, so
rule edits made while a venue is being parsed never affect that parse.

Two JSON shapes are supported. A flat list of rule records:

    [
      {"location_id": "auckland", "product_name": "Go Kart",
       "category": "combo", "arcade_group_label": null,
       "match_type": "exact", "is_active": true}
    ]

or a mapping from location id to its rules:

    {"auckland": [{"product_name": "Go Kart", "category": "combo"}]}
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from pos_reports.exceptions import ConfigError
from pos_reports.ingest.cleaning_utils import normalize_product_name

logger = logging.getLogger(__name__)

COMBO = "combo"
NON_COMBO = "non_combo"
ARCADE = "arcade"
OTHER = "other"

VALID_CATEGORIES = (COMBO, NON_COMBO, ARCADE, OTHER)

MATCH_EXACT = "exact"


@dataclass(frozen=True)
class Rule:
    """One product classification rule for a venue.

    Attributes:
        location_id: Venue the rule belongs to.
        product_name: Product name as it appears in the POS export.
        category: One of combo, non_combo, arcade, other.
        arcade_group_label: Sub-grouping for arcade products (e.g. "Spend $50").
        match_type: Only "exact" rules are used for classification.
        is_active: Inactive rules are ignored.
        product_pattern: Legacy alternative name, matched like product_name.
    """

    location_id: str
    product_name: str
    category: str
    arcade_group_label: Optional[str] = None
    match_type: str = MATCH_EXACT
    is_active: bool = True
    product_pattern: Optional[str] = None

    def match_keys(self) -> List[str]:
        """Normalized names this rule answers to, product_name first."""
        keys = []
        for raw in (self.product_name, self.product_pattern):
            key = normalize_product_name(raw)
            if key and key not in keys:
                keys.append(key)
        return keys


def rule_from_record(rec: Dict[str, Any], location_id: Optional[str] = None) -> Rule:
    """Build a Rule from one JSON record, validating its category.

    Raises:
        ConfigError: If the record has no product name/pattern, no location,
            an unknown category, or a non-boolean is_active.
    """
    loc = rec.get("location_id", location_id)
    if loc is None:
        raise ConfigError(f"Rule has no location_id: {rec!r}")

    name = rec.get("product_name") or rec.get("product_pattern")
    if not name:
        raise ConfigError(f"Rule has no product_name or product_pattern: {rec!r}")

    category = str(rec.get("category", "")).strip().lower()
    if category not in VALID_CATEGORIES:
        raise ConfigError(
            f"Rule for {name!r} has category {rec.get('category')!r}; "
            f"must be one of: {', '.join(VALID_CATEGORIES)}"
        )

    is_active = rec.get("is_active", True)
    if not isinstance(is_active, bool):
        raise ConfigError(f"Rule for {name!r} has is_active {is_active!r}; must be true or false")

    label = rec.get("arcade_group_label")
    return Rule(
        location_id=str(loc),
        product_name=str(name),
        category=category,
        arcade_group_label=str(label) if label not in (None, "") else None,
        match_type=str(rec.get("match_type") or MATCH_EXACT).lower(),
        is_active=is_active,
        product_pattern=rec.get("product_pattern"),
    )


def load_rules_from_json(rules_path: Path) -> List[Rule]:
    """Load every rule (any venue, any status) from product_rules.json.

    Args:
        rules_path: Path to the rules JSON file.

    Returns:
        Rules in file order. File order is the tie-break order used by
        RuleCatalog when two rules share a product name.

    Raises:
        ConfigError: If the file is missing, is not valid JSON, or contains
            an invalid rule.
    """
    try:
        data = json.loads(rules_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Failed to load product rules from {rules_path}: {e}") from e

    rules: List[Rule] = []
    if isinstance(data, list):
        for rec in data:
            rules.append(rule_from_record(rec))
    elif isinstance(data, dict):
        for loc, recs in data.items():
            if not isinstance(recs, list):
                raise ConfigError(f"Rules for location {loc!r} must be a list")
            for rec in recs:
                rules.append(rule_from_record(rec, location_id=str(loc)))
    else:
        raise ConfigError("product_rules.json must be a list or an object")

    return rules


class JsonRuleSource:
    """Reads venue rules from a product_rules.json file.

    The file is re-read on every fetch so each venue ingestion sees the
    rules as they are when that venue starts.

    Example:
        >>> source = JsonRuleSource(Path("utils/product_rules.json"))
        >>> rules = source.fetch_rules("auckland")
    """

    def __init__(self, rules_path: Path) -> None:
        self.rules_path = rules_path

    def fetch_rules(self, location_id: str) -> List[Rule]:
        """Return active exact-match rules for one venue, in file order."""
        return [
            r
            for r in load_rules_from_json(self.rules_path)
            if r.location_id == location_id and r.is_active and r.match_type == MATCH_EXACT
        ]


class RuleCatalog:
    """In-memory, per-venue product rule lookup.

    Matching is exact on the trimmed, case-folded product name. When two
    rules answer to the same name, the first one (in fetch order) wins and
    the collision is logged.

    Example:
        >>> catalog = RuleCatalog("auckland", source.fetch_rules("auckland"))
        >>> catalog.lookup("  go kart ").category
        'combo'
    """

    def __init__(self, location_id: str, rules: Iterable[Rule]) -> None:
        self.location_id = location_id
        self._index: Dict[str, Rule] = {}
        self.duplicates: List[str] = []
        self.rule_count = 0

        for rule in rules:
            if not rule.is_active or rule.match_type != MATCH_EXACT:
                continue
            self.rule_count += 1
            for key in rule.match_keys():
                if key in self._index:
                    self.duplicates.append(key)
                    continue
                self._index[key] = rule

        if self.duplicates:
            logger.warning(
                "Location %s has %d duplicate product rules; first rule wins for: %s",
                location_id,
                len(self.duplicates),
                sorted(set(self.duplicates)),
            )

    def __len__(self) -> int:
        return self.rule_count

    def lookup(self, product_name: str) -> Optional[Rule]:
        """Return the rule for a product name, or None."""
        return self._index.get(normalize_product_name(product_name))
