"""
Shared pytest fixtures.

Every app is built from TestingConfig: an in-memory SQLite database backs the
key-value store, so nothing touches the instance directory's data.
"""

import pytest

from estateview.app import create_app
from estateview.app.container import (
    get_editor_service,
    get_project_service,
    get_viewer_service,
)
from estateview.domain.entities import Entity


@pytest.fixture
def app():
    app = create_app("testing")
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def project_service(app):
    return get_project_service()


@pytest.fixture
def editor_service(app):
    return get_editor_service()


@pytest.fixture
def viewer_service(app):
    return get_viewer_service()


@pytest.fixture
def compound(project_service):
    """
    Project "Sunrise" with this tree:

        sunrise-compound (residential compound)
          tower-a (residential building)
            a-101 (Apartment, 2 rooms, 150000, available)
            a-102 (Apartment, 3 rooms, 250000, sold)
          villa-7 (house, 4 rooms, 400000, available)
    """
    project_service.create_project("Sunrise")
    project_service.add_entity("sunrise", "Sunrise Compound", "residential compound")
    project_service.add_entity(
        "sunrise", "Tower A", "residential building", parent_id="sunrise-compound"
    )
    project_service.add_entity("sunrise", "A 101", "Apartment", parent_id="tower-a")
    project_service.add_entity("sunrise", "A 102", "Apartment", parent_id="tower-a")
    project_service.add_entity("sunrise", "Villa 7", "house", parent_id="sunrise-compound")

    project_service.update_entity(
        "sunrise", "a-101", {"rooms": 2, "price": 150000, "houseArea": 80, "status": "available"}
    )
    project_service.update_entity(
        "sunrise", "a-102", {"rooms": 3, "price": 250000, "houseArea": 110, "status": "sold"}
    )
    project_service.update_entity(
        "sunrise", "villa-7", {"rooms": 4, "price": 400000, "houseArea": 220, "status": "available"}
    )
    return "sunrise"


@pytest.fixture
def make_entity():
    """Factory for bare entities used by the pure domain tests."""

    def _make(entity_id, entity_type="Apartment", parent_id=None, **fields):
        return Entity(
            id=entity_id,
            name=entity_id,
            entity_type=entity_type,
            parent_id=parent_id,
            **fields,
        )

    return _make
