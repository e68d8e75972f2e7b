"""Tests for category API endpoints."""

import asyncio

import pytest
from catalog.api.deps import get_reorder_engine
from catalog.models.category import Category
from catalog.services.category_reorder import ReorderEngine
from catalog.services.category_store import SqlAlchemyCategoryStore
from tests.conftest import block_updates


class HeldLock(asyncio.Lock):
    """Lock that reports a batch already in flight."""

    def locked(self):
        return True


def orders_in_db(db_session):
    db_session.expire_all()
    return {c.id: c.order for c in db_session.query(Category).all()}


@pytest.mark.unit
class TestPublicCategoriesAPI:
    """Test public category endpoints."""

    def test_get_categories(self, client, seeded_categories):
        """Test getting list of active categories."""
        response = client.get("/api/categories/")

        assert response.status_code == 200
        data = response.json()
        assert [c["id"] for c in data] == ["r1", "c1", "c2", "r2"]
        assert data[0]["name"] == "Redes"

    def test_get_categories_excludes_inactive(
        self, client, db_session, seeded_categories
    ):
        """Test that inactive categories are excluded."""
        seeded_categories["c2"].is_active = False
        db_session.commit()

        response = client.get("/api/categories/")

        assert response.status_code == 200
        assert not any(cat["id"] == "c2" for cat in response.json())

    def test_get_tree(self, client, seeded_categories):
        response = client.get("/api/categories/tree")

        assert response.status_code == 200
        data = response.json()
        assert [node["id"] for node in data["roots"]] == ["r1", "r2"]
        assert [child["id"] for child in data["roots"][0]["children"]] == ["c1", "c2"]
        assert data["invalid_ids"] == []

    def test_get_descendants(self, client, seeded_categories):
        response = client.get("/api/categories/r1/descendants")

        assert response.status_code == 200
        data = response.json()
        assert data["ids"] == ["c1", "c2", "r1"]
        assert data["cycle_detected"] is False

    def test_get_descendants_unknown(self, client, seeded_categories):
        response = client.get("/api/categories/nope/descendants")

        assert response.status_code == 404
        assert response.json()["error"] == "CategoryNotFoundError"

    def test_correlation_id_echoed(self, client):
        response = client.get("/health", headers={"X-Correlation-ID": "abc-123"})

        assert response.headers["X-Correlation-ID"] == "abc-123"


@pytest.mark.unit
class TestAdminCategoriesAPI:
    """Test admin category endpoints."""

    def test_list_includes_inactive(self, client, db_session, seeded_categories):
        seeded_categories["r2"].is_active = False
        db_session.commit()

        response = client.get("/api/admin/categories/")

        assert response.status_code == 200
        assert "r2" in [c["id"] for c in response.json()]

    def test_list_search(self, client, seeded_categories):
        response = client.get("/api/admin/categories/", params={"search": "switch"})

        assert response.status_code == 200
        assert [c["id"] for c in response.json()] == ["c1"]

    def test_get_category(self, client, seeded_categories):
        response = client.get("/api/admin/categories/c1")

        assert response.status_code == 200
        assert response.json()["parent_id"] == "r1"

    def test_create_category(self, client, seeded_categories):
        """Test creating a new category."""
        category_data = {
            "name": "Cámaras Térmicas",
            "parent_id": "r2",
            "icon": "thermometer",
        }

        response = client.post("/api/admin/categories/", json=category_data)

        assert response.status_code == 201
        data = response.json()
        assert data["slug"] == "camaras-termicas"
        assert data["parent_id"] == "r2"
        assert data["is_active"] is True
        assert data["icon"] == "thermometer"

    def test_create_duplicate_slug(self, client, seeded_categories):
        response = client.post(
            "/api/admin/categories/", json={"name": "Redes", "slug": "Redes"}
        )

        assert response.status_code == 409

    def test_create_blank_name(self, client):
        response = client.post("/api/admin/categories/", json={"name": ""})

        assert response.status_code == 422
        assert response.json()["field"] == "name"

    def test_create_under_child_rejected(self, client, seeded_categories):
        response = client.post(
            "/api/admin/categories/", json={"name": "PoE", "parent_id": "c1"}
        )

        assert response.status_code == 422
        assert response.json()["field"] == "parent_id"

    def test_update_category(self, client, seeded_categories):
        response = client.patch(
            "/api/admin/categories/c2",
            json={"name": "Routers Empresariales", "description": "Enterprise"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Routers Empresariales"
        assert data["slug"] == "routers"
        assert data["description"] == "Enterprise"

    def test_update_missing(self, client):
        response = client.patch("/api/admin/categories/nope", json={"name": "X"})

        assert response.status_code == 404

    def test_delete_with_children_refused(self, client, db_session, seeded_categories):
        response = client.delete("/api/admin/categories/r1")

        assert response.status_code == 409
        assert response.json()["error"] == "HasChildrenError"
        db_session.expire_all()
        assert db_session.get(Category, "r1") is not None

    def test_delete_leaf(self, client, db_session, seeded_categories):
        response = client.delete("/api/admin/categories/r2")

        assert response.status_code == 200
        db_session.expire_all()
        assert db_session.get(Category, "r2") is None

    def test_reorder_children(self, client, db_session, seeded_categories):
        """Test moving Routers before Switches."""
        response = client.post(
            "/api/admin/categories/reorder",
            json={"moved_id": "c2", "target_id": "c1"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["parent_id"] == "r1"
        assert [(c["id"], c["order"]) for c in data["items"]] == [("c2", 1), ("c1", 2)]

        orders = orders_in_db(db_session)
        assert (orders["c2"], orders["c1"]) == (1, 2)

        tree = client.get("/api/categories/tree").json()
        assert [child["id"] for child in tree["roots"][0]["children"]] == ["c2", "c1"]

    def test_reorder_cross_level_rejected(self, client, db_session, seeded_categories):
        before = orders_in_db(db_session)

        response = client.post(
            "/api/admin/categories/reorder",
            json={"moved_id": "r2", "target_id": "c1"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "ReorderPreconditionError"
        assert orders_in_db(db_session) == before

    def test_reorder_partial_failure(self, client, db_session, seeded_categories):
        block_updates(db_session, "c1")

        response = client.post(
            "/api/admin/categories/reorder",
            json={"moved_id": "c2", "target_id": "c1"},
        )

        assert response.status_code == 503
        data = response.json()
        assert data["error"] == "PersistencePartialFailure"
        assert data["succeeded"] == ["c2"]
        assert list(data["failed"]) == ["c1"]

        orders = orders_in_db(db_session)
        assert (orders["c2"], orders["c1"]) == (1, 1)

    def test_reorder_while_busy(self, client, test_app, db_session, seeded_categories):
        before = orders_in_db(db_session)
        test_app.dependency_overrides[get_reorder_engine] = lambda: ReorderEngine(
            SqlAlchemyCategoryStore(db_session), lock=HeldLock()
        )

        response = client.post(
            "/api/admin/categories/reorder",
            json={"moved_id": "c2", "target_id": "c1"},
        )

        assert response.status_code == 409
        assert response.json()["error"] == "ReorderInProgressError"
        assert orders_in_db(db_session) == before

    def test_reorder_unknown_category(self, client, seeded_categories):
        response = client.post(
            "/api/admin/categories/reorder",
            json={"moved_id": "nope", "target_id": "c1"},
        )

        assert response.status_code == 404

    def test_admin_tree_flags_invalid(self, client, db_session, seeded_categories):
        db_session.add(Category(id="g1", parent_id="c1", name="Nested", slug="nested"))
        db_session.commit()

        response = client.get("/api/admin/categories/tree")

        assert response.status_code == 200
        assert response.json()["invalid_ids"] == ["g1"]
