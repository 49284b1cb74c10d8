"""Pytest fixtures: a temporary database per test."""

import pytest
from fastapi.testclient import TestClient

from church_bms.api.main import app, get_store
from church_bms.relations import RelationshipManager
from church_bms.store import EntityStore

from factories import family_attrs, head_attrs


@pytest.fixture
def store(tmp_path):
    """EntityStore on a fresh database file."""
    return EntityStore(db_path=str(tmp_path / "test.db"))


@pytest.fixture
def manager(store):
    return RelationshipManager(store)


@pytest.fixture
def family(manager):
    """A family with its head; returns (family, head)."""
    return manager.create_family_with_head(family_attrs(), head_attrs())


@pytest.fixture
def client(store):
    """TestClient wired to the temporary store (lifespan not run)."""
    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()
