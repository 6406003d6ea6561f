"""Shared test fixtures."""

from __future__ import annotations

import datetime
from pathlib import Path

import pytest

from counterbase.config.settings import EcoVisioSettings, HalifaxTransitSettings
from counterbase.utils.logging import setup_logging

ECO_VISIO_BASE = "https://eco.test/api"
RIDERSHIP_URL = "https://ridership.test/routes.csv"


@pytest.fixture(autouse=True, scope="session")
def quiet_logging() -> None:
    """Keep info logs out of CLI output captured by the tests."""
    setup_logging("WARNING")


@pytest.fixture
def now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc).replace(microsecond=0)


@pytest.fixture
def eco_visio_settings() -> EcoVisioSettings:
    return EcoVisioSettings(base_url=ECO_VISIO_BASE, timezone="America/Halifax")


@pytest.fixture
def hfxtransit_settings() -> HalifaxTransitSettings:
    return HalifaxTransitSettings(csv_url=RIDERSHIP_URL, timezone="America/Halifax")


@pytest.fixture
def duckdb_path(tmp_path: Path) -> Path:
    return tmp_path / "counterbase.duckdb"


@pytest.fixture
def ridership_csv() -> str:
    """Two live routes and one that stopped reporting in January."""
    return """Route_Number,Route_Name,Route_Date,Ridership_Total
1,Spring Garden,2024/03/01 00:00:00+00,1200
1,Spring Garden,2024/03/02 00:00:00+00,1100
1,Spring Garden,2024/03/03 00:00:00+00,900
90,Larry Uteck,2024/03/02 00:00:00+00,300
90,Larry Uteck,2024/03/03 00:00:00+00,310
9A,Herring Cove,2024/01/10 00:00:00+00,80
9A,Herring Cove,2024/01/11 00:00:00+00,75
"""
