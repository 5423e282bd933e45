"""Shared fixtures."""

from datetime import date

import pytest

from ai_tools_catalog.catalog import CatalogStore
from ai_tools_catalog.models import NewTool


@pytest.fixture
def store(tmp_path):
    """Initialised catalog in a throwaway SQLite file."""
    catalog = CatalogStore(tmp_path / "catalog.db")
    catalog.initialize()
    return catalog


@pytest.fixture
def make_tool():
    """Factory for insert payloads with sensible defaults."""

    def _make(name="Widget", url="https://widget.example.com", **overrides):
        payload = {
            "name": name,
            "url": url,
            "description": f"{name} does useful things",
            "category": "Other",
            "tags": ["ai"],
            "release_date": date(2024, 5, 1),
            "source": "Test",
        }
        payload.update(overrides)
        return NewTool(**payload)

    return _make
