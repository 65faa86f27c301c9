"""
Pytest configuration and shared fixtures for cost report tests.

This module provides common fixtures and configurations used across
all test modules: raw cost records, normalized fact rows, indexes and
explorer sessions.
"""

import json
import tempfile
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest

from src.engine.index import DimensionIndex
from src.engine.session import CostExplorer
from src.utils.data_normalizer import FactNormalizer, FactRow

SUB_A = "11111111-aaaa-4000-8000-000000000001"
SUB_B = "22222222-bbbb-4000-8000-000000000002"
VM_WEB = f"/subscriptions/{SUB_A}/resourceGroups/rg-web/providers/Microsoft.Compute/virtualMachines/vm-web"
VM_API = f"/subscriptions/{SUB_B}/resourceGroups/rg-api/providers/Microsoft.Compute/virtualMachines/vm-api"
DISK_WEB = f"/subscriptions/{SUB_A}/resourceGroups/rg-web/providers/Microsoft.Compute/disks/disk-web"


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "dashboard: mark test as needing the Dash stack")
    config.addinivalue_line("markers", "slow: mark test as slow running")


# Temporary directory fixture
@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


def make_record(
    day: str,
    category: str,
    cost: float,
    subscription_id: str = SUB_A,
    subscription_name: str = "Production",
    subcategory: str = "General",
    meter: str = "Usage",
    resource_id: str | None = None,
    resource_name: str | None = None,
    resource_group: str | None = "rg-web",
    cost_usd: float | None = None,
    currency: str = "USD",
) -> dict[str, Any]:
    """Build a raw record dict in Azure export column naming."""
    record = {
        "Date": day,
        "SubscriptionId": subscription_id,
        "SubscriptionName": subscription_name,
        "ResourceId": resource_id,
        "ResourceName": resource_name,
        "ResourceGroup": resource_group,
        "MeterCategory": category,
        "MeterSubCategory": subcategory,
        "MeterName": meter,
        "CostInBillingCurrency": cost,
        "BillingCurrency": currency,
    }
    if cost_usd is not None:
        record["CostInUsd"] = cost_usd
    return record


@pytest.fixture
def four_row_records() -> list[dict[str, Any]]:
    """Two days, two categories: Compute 10+8, Storage 5+2."""
    return [
        make_record("2024-01-01", "Compute", 10.0),
        make_record("2024-01-01", "Storage", 5.0),
        make_record("2024-01-02", "Compute", 8.0),
        make_record("2024-01-02", "Storage", 2.0),
    ]


@pytest.fixture
def four_rows(four_row_records) -> list[FactRow]:
    return FactNormalizer().normalize(four_row_records).rows


@pytest.fixture
def four_row_explorer(four_row_records) -> CostExplorer:
    return CostExplorer.from_records(four_row_records)


@pytest.fixture
def sample_records() -> list[dict[str, Any]]:
    """
    Two subscriptions over three days with resources, a non-resource line
    and a meter name shared across categories.
    """
    records = []
    for day, scale in (("2024-03-01", 1.0), ("2024-03-02", 1.5), ("2024-03-03", 2.0)):
        records.extend(
            [
                make_record(
                    day,
                    "Virtual Machines",
                    40.0 * scale,
                    subcategory="Dv3 Series",
                    meter="D2s v3",
                    resource_id=VM_WEB,
                    resource_name="vm-web",
                ),
                make_record(
                    day,
                    "Virtual Machines",
                    25.0 * scale,
                    subscription_id=SUB_B,
                    subscription_name="Development",
                    subcategory="Dv3 Series",
                    meter="D2s v3",
                    resource_id=VM_API,
                    resource_name="vm-api",
                    resource_group="rg-api",
                ),
                make_record(
                    day,
                    "Storage",
                    6.0 * scale,
                    subcategory="Premium SSD",
                    meter="P10 Disks",
                    resource_id=DISK_WEB,
                    resource_name="disk-web",
                ),
                make_record(
                    day,
                    "Bandwidth",
                    3.0 * scale,
                    subscription_id=SUB_B,
                    subscription_name="Development",
                    subcategory="Inter-Region",
                    meter="Data Transfer Out",
                    resource_group=None,
                ),
                make_record(
                    day,
                    "Storage",
                    1.0 * scale,
                    subscription_id=SUB_B,
                    subscription_name="Development",
                    subcategory="Tables",
                    meter="Usage",
                    resource_group="rg-api",
                ),
            ]
        )
    return records


@pytest.fixture
def sample_rows(sample_records) -> list[FactRow]:
    return FactNormalizer().normalize(sample_records).rows


@pytest.fixture
def sample_index(sample_rows) -> DimensionIndex:
    return DimensionIndex.build(sample_rows)


@pytest.fixture
def sample_explorer(sample_records) -> CostExplorer:
    return CostExplorer.from_records(sample_records)


@pytest.fixture
def many_entity_records() -> list[dict[str, Any]]:
    """Twenty categories with distinct costs on two days, for top-N tests."""
    records = []
    for position in range(20):
        category = f"Category {position:02d}"
        records.append(make_record("2024-02-01", category, float(100 - position)))
        records.append(make_record("2024-02-02", category, float(50 - position)))
    return records


@pytest.fixture
def json_export_file(temp_dir, sample_records) -> Path:
    path = temp_dir / "costs.json"
    path.write_text(json.dumps({"records": sample_records}), encoding="utf-8")
    return path
