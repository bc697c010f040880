"""
API tests for the import endpoints.

The app's service and catalog dependencies are overridden with the test
fixtures, so nothing touches the configured database or staging store.
"""
import pytest
from fastapi.testclient import TestClient

from catalog_import.dependencies import get_catalog, get_service
from catalog_import.main import app
from catalog_import.services.catalog_store import SqlCatalogStore

CSV = "title,author,price,sku\nDune,Frank Herbert,12.50,B-1\n,Nobody,abc,B-2\n"


# ===== FIXTURES =====

@pytest.fixture
def client(service, session_factory):
    def override_catalog():
        db = session_factory()
        try:
            yield SqlCatalogStore(db)
        finally:
            db.close()

    app.dependency_overrides[get_service] = lambda: service
    app.dependency_overrides[get_catalog] = override_catalog
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def import_id(client):
    response = client.post(
        "/api/import/stage",
        files={"file": ("books.csv", CSV.encode("utf-8"), "text/csv")},
        data={"vendor_id": "7", "user_id": "u-1"},
    )
    assert response.status_code == 200
    return response.json()["import_id"]


class TestStageEndpoint:

    def test_upload_file(self, client):
        response = client.post(
            "/api/import/stage",
            files={"file": ("books.csv", CSV.encode("utf-8"), "text/csv")},
            data={"vendor_id": "7"},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["suggested_mappings"]["sku"] == "sku"
        assert body["stats"]["valid_rows"] == 1
        assert body["stats"]["invalid_rows"] == 1

    def test_text_content(self, client):
        response = client.post(
            "/api/import/stage", data={"csv_content": CSV, "vendor_id": "7"}
        )
        assert response.status_code == 200
        assert response.json()["stats"]["total_rows"] == 2

    def test_missing_content(self, client):
        response = client.post("/api/import/stage", data={"vendor_id": "7"})
        assert response.status_code == 400

    def test_vendor_id_required_for_vendors(self, client):
        response = client.post("/api/import/stage", data={"csv_content": CSV})
        assert response.status_code == 400

    def test_admin_without_vendor(self, client):
        response = client.post("/api/import/stage", data={"csv_content": CSV, "role": "admin"})
        assert response.status_code == 200

    def test_bad_extension(self, client):
        response = client.post(
            "/api/import/stage",
            files={"file": ("books.pdf", b"%PDF", "application/pdf")},
            data={"vendor_id": "7"},
        )
        assert response.status_code == 400

    def test_parse_error_format(self, client):
        response = client.post(
            "/api/import/stage",
            files={"file": ("books.csv", b"title,price\n", "text/csv")},
            data={"vendor_id": "7"},
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "IMPORT_PARSE_ERROR"


class TestReviewEndpoints:

    def test_fields(self, client):
        response = client.get("/api/import/fields")
        assert response.status_code == 200
        assert response.json()[0]["key"] == "title"

    def test_rows_filter(self, client, import_id):
        response = client.get(f"/api/import/{import_id}/rows", params={"filter": "invalid"})
        assert response.status_code == 200
        body = response.json()
        assert body["pagination"]["total"] == 1
        assert body["rows"][0]["_row_index"] == 2

    def test_rows_bad_filter(self, client, import_id):
        response = client.get(f"/api/import/{import_id}/rows", params={"filter": "broken"})
        assert response.status_code == 422

    def test_unknown_import(self, client):
        response = client.get("/api/import/imp_nope/rows")
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "IMPORT_NOT_FOUND"

    def test_remap(self, client, import_id):
        response = client.post("/api/import/remap", json={
            "import_id": import_id,
            "mappings": {"title": "title", "author": "author", "price": "__ignore__", "sku": "sku"},
        })
        assert response.status_code == 200
        assert response.json()["stats"]["valid_rows"] == 0

    def test_remap_duplicate_target(self, client, import_id):
        response = client.post("/api/import/remap", json={
            "import_id": import_id,
            "mappings": {"title": "title", "author": "title"},
        })
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "IMPORT_INVALID_MAPPING"

    def test_update_row(self, client, import_id):
        response = client.patch(
            f"/api/import/{import_id}/rows/2", json={"title": "Fixed", "price": "3"}
        )
        assert response.status_code == 200
        assert response.json()["stats"]["invalid_rows"] == 0

    def test_error_csv(self, client, import_id):
        response = client.get(f"/api/import/{import_id}/errors.csv")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert f"import-errors-{import_id}.csv" in response.headers["content-disposition"]
        assert "Title is required" in response.text


class TestCommitEndpoint:

    def test_commit_and_status(self, client, import_id):
        response = client.post("/api/import/commit", json={"import_id": import_id})
        assert response.status_code == 200
        body = response.json()
        assert body["created_count"] == 1
        assert body["failed_count"] == 0

        status = client.get(f"/api/import/{import_id}/status").json()
        assert status["status"] == "committed"

    def test_double_commit(self, client, import_id):
        client.post("/api/import/commit", json={"import_id": import_id})
        response = client.post("/api/import/commit", json={"import_id": import_id})
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "IMPORT_ALREADY_COMMITTED"

    def test_invalid_mode(self, client, import_id):
        response = client.post("/api/import/commit", json={"import_id": import_id, "mode": "merge"})
        assert response.status_code == 422

    def test_invalid_default_status(self, client, import_id):
        response = client.post(
            "/api/import/commit", json={"import_id": import_id, "default_status": "live"}
        )
        assert response.status_code == 422

    def test_other_vendor_forbidden(self, client, import_id):
        response = client.post("/api/import/commit", json={"import_id": import_id, "vendor_id": 99})
        assert response.status_code == 403


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}
