"""Pytest configuration and shared fixtures."""

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from domain.overrides.models import Editor, PoiEntry  # noqa: E402
from domain.overrides.services import ScoreOverrideService  # noqa: E402
from domain.overrides.store import InMemoryScoreStore  # noqa: E402


# ============================================================================
# Pytest Configuration
# ============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )


# ============================================================================
# Shared Fixtures - Project Fields
# ============================================================================


@pytest.fixture
def canonical_fields():
    """Raw fields using canonical keys; scores to a Moderate project."""
    return {
        "legacy_cod": 2003,            # -> 2
        "capacity_factor": 0.18,       # -> 2
        "iso": "PJM",                  # -> 3
        "transactability": 1,          # -> 1
        "thermal_optimization": 0,     # -> 0, floored to 1 in the thermal formula
        "environmental_score": 2,      # -> 2
        "market_score": 3,             # -> 3
        "infra": 2,                    # -> 2
        "ix": 3,                       # -> 3
        "co_locate_repower": "Repower",
    }


@pytest.fixture
def legacy_label_fields():
    """Spreadsheet export row using legacy display labels."""
    return {
        "Legacy COD": "1998",
        "2024 Capacity Factor": "0.05",
        "ISO": "ERCOT",
        "Process (P) or Bilateral (B)": "Bilateral - developed asset",
        "Thermal Optimization": "Upgrades readily apparent",
        "Envionmental Score": "3",
        "Market Score": "2",
        "Infra": "2.6",
        "IX": "1.4",
        "Co-Locate/Repower": "Co-Locate",
    }


@pytest.fixture
def sparse_fields():
    """Fields with spreadsheet sentinels where data is missing."""
    return {
        "legacy_cod": "#N/A",
        "iso": "MISO North",
        "transactability": "",
        "environmental_score": 1,
        "market_score": 2,
        "infra": "#VALUE!",
        "ix": 2,
    }


# ============================================================================
# Shared Fixtures - Lifecycle
# ============================================================================


@pytest.fixture
def fixed_time():
    return datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def editor():
    return Editor(user_id="user-123", email="analyst@example.com")


@pytest.fixture
def memory_store():
    return InMemoryScoreStore()


@pytest.fixture
def override_service(memory_store, fixed_time):
    return ScoreOverrideService(memory_store, clock=lambda: fixed_time)


@pytest.fixture
def poi_entries():
    return [
        PoiEntry(name=f"Substation {index}", voltage_kv=138.0, capacity_mw=50.0 * index)
        for index in range(1, 4)
    ]
