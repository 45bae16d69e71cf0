import io

import pytest

from app import create_app
from web.views import decode_upload
from tests.conftest import closure_files, file_name


@pytest.fixture
def client():
    app = create_app()
    app.config["TESTING"] = True
    return app.test_client()


def _upload(files):
    return {"files": [(io.BytesIO(f.content.encode("utf-8")), f.name) for f in files]}


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.get_json() == {"status": "ok"}


def test_docs_describe_validate_endpoint(client):
    docs = client.get("/api/docs").get_json()
    assert docs["endpoint"] == "/api/validate"
    assert docs["method"] == "POST"
    assert docs["params"][0]["name"] == "files"


def test_validate_clean_batch(client):
    response = client.post("/api/validate", data=_upload(closure_files()), content_type="multipart/form-data")
    assert response.status_code == 200
    body = response.get_json()
    assert list(body) == ["certified", "timestamp", "summary", "results", "totals"]
    assert body["certified"] is True
    assert body["summary"] == {"totalFiles": 6, "errors": 0, "warnings": 0}
    assert [r["stage"] for r in body["results"]] == ["SYNTAX", "COHERENCE", "SEQUENCE"]


def test_validate_without_files(client):
    response = client.post("/api/validate", data={}, content_type="multipart/form-data")
    assert response.status_code == 400
    assert "error" in response.get_json()


def test_validate_missing_summary(client):
    files = [f for f in closure_files() if "11008" not in f.name]
    response = client.post("/api/validate", data=_upload(files), content_type="multipart/form-data")
    assert response.status_code == 400
    assert "11008" in response.get_json()["error"]


def test_validate_reports_truncated_file_as_finding(client):
    data = _upload(closure_files())
    data["files"].append((io.BytesIO(b"11002|x"), file_name("11002", 7)))
    response = client.post("/api/validate", data=data, content_type="multipart/form-data")
    assert response.status_code == 200
    body = response.get_json()
    assert body["certified"] is False
    assert body["results"][0]["stage"] == "PARSE"
    assert body["results"][0]["message"] == f"Unreadable File: {file_name('11002', 7)}"


def test_decode_upload_falls_back_to_latin1():
    assert decode_upload("Pañuelo".encode("utf-8")) == "Pañuelo"
    assert decode_upload("Pañuelo".encode("latin-1")) == "Pañuelo"
