"""Shared fixtures: a temporary data root with rules, uploads and CSVs."""

import json
from collections.abc import Callable
from pathlib import Path

import pytest

from pos_reports import DataPaths
from pos_reports.storage.uploads import ReportUpload, register_upload

RULES = [
    {"location_id": "auckland", "product_name": "Go Kart", "category": "combo"},
    {"location_id": "auckland", "product_name": "Soda", "category": "non_combo"},
    {
        "location_id": "auckland",
        "product_name": "Arcade Card 10",
        "category": "arcade",
        "arcade_group_label": "$10 Card",
    },
    {
        "location_id": "auckland",
        "product_name": "Spend 50 Get 75",
        "category": "arcade",
        "arcade_group_label": "Spend $50",
    },
    {"location_id": "auckland", "product_name": "Booking Fee", "category": "other"},
    {"location_id": "wellington", "product_name": "Laser Tag", "category": "combo"},
]

AUCKLAND_CSV = """Name,Category,Volume In-Store,Volume Online
Go Kart,Activities,3,1
Soda,Drinks,2,0
Self-Serve,Kiosk,9,0
Total,,14,1
Alice,,,
Name,Category,Volume In-Store,Volume Online
Go Kart,Activities,1,0
Arcade Card 10,Arcade,5,0
Spend 50 Get 75,Arcade,2,0
Booking Fee,Fees,1,0
Mystery Item,Misc,4,0
,,,
Bob,,,
Name,Category,Volume In-Store,Volume Online
Soda,Drinks,"$1,234.50",0
"""

WELLINGTON_CSV = """Name,Volume In-Store
Laser Tag,6
"""


@pytest.fixture
def paths(tmp_path: Path) -> DataPaths:
    """DataPaths rooted in a temp dir, with the product rules written."""
    rules_json = tmp_path / "product_rules.json"
    rules_json.write_text(json.dumps(RULES), encoding="utf-8")
    data_paths = DataPaths.from_root(tmp_path / "data", rules_json)
    data_paths.ensure_dirs()
    return data_paths


@pytest.fixture
def add_upload(paths: DataPaths) -> Callable[[str, str, str], ReportUpload]:
    """Store a venue CSV under a_raw/uploads and register it for a report."""

    def _add(report_id: str, location_id: str, content: str) -> ReportUpload:
        storage_path = f"{report_id}/{location_id}.csv"
        target = paths.raw_uploads / storage_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        upload = ReportUpload(report_id, location_id, storage_path)
        register_upload(paths, upload)
        return upload

    return _add


@pytest.fixture
def auckland_csv() -> str:
    """Location block plus two staff blocks (Alice, Bob)."""
    return AUCKLAND_CSV


@pytest.fixture
def wellington_csv() -> str:
    """Location block only."""
    return WELLINGTON_CSV
