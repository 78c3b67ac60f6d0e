"""
Protocol Layer Tests
====================

Exercises every route through FastAPI's TestClient, including the
error-kind to status mapping and the permissive CORS headers.
"""

import asyncio
import hashlib
import json

import pytest
from fastapi.testclient import TestClient

from mdhost.api import create_app
from mdhost.config import ServiceConfig
from mdhost.contracts.base import ContentAddress, ErrorCode, Result
from mdhost.engine import RevisionOrchestrator
from mdhost.render import PageTemplate
from mdhost.storage import InMemoryContentStore, InMemoryFileRegistry, StorageConfig
from mdhost.api.server import build_orchestrator


def make_client(store=None, registry=None, config=None):
    orchestrator = RevisionOrchestrator(
        store if store is not None else InMemoryContentStore(),
        registry if registry is not None else InMemoryFileRegistry(),
    )
    return TestClient(create_app(orchestrator, config))


@pytest.fixture
def client():
    return make_client()


class BrokenRegistry(InMemoryFileRegistry):

    def exists(self, name):
        return Result.fail(ErrorCode.STORAGE_ERROR, "backend down")


class RaisingRegistry(InMemoryFileRegistry):

    def get(self, name):
        raise RuntimeError("unexpected")


class BrokenStore(InMemoryContentStore):

    def put(self, data):
        return Result.fail(ErrorCode.STORAGE_ERROR, "backend down")


class TestReadmeScenario:

    def test_create_put_render_fetch(self, client):
        created = client.post("/c/readme")
        assert created.status_code == 200
        assert created.json()["name"] == "readme"
        assert created.json()["content_type"] == "text/markdown"
        assert created.json()["revisions"] == []

        put = client.put("/c/readme", content=b"# Hi")
        assert put.status_code == 200
        sha = hashlib.sha1(b"# Hi").hexdigest()
        assert put.json() == {"sha": sha}

        page = client.get("/f/readme")
        assert page.status_code == 200
        assert page.headers["content-type"].startswith("text/html")
        assert "<h1>Hi</h1>" in page.text

        raw = client.get(f"/r/{sha}")
        assert raw.status_code == 200
        assert raw.content == b"# Hi"

    def test_meta_lists_history(self, client):
        client.post("/c/notes")
        first = client.put("/c/notes", content=b"one").json()["sha"]
        second = client.put("/c/notes", content=b"two").json()["sha"]

        meta = client.get("/x/meta/notes")
        assert meta.status_code == 200
        assert meta.json()["revisions"] == [first, second]

    def test_latest_follows_newest_put(self, client):
        client.post("/c/doc")
        client.put("/c/doc", content=b"# Old")
        client.put("/c/doc", content=b"# New")
        assert "<h1>New</h1>" in client.get("/f/doc").text

    def test_nested_names(self, client):
        assert client.post("/c/docs/guide").status_code == 200
        client.put("/c/docs/guide", content=b"# Guide")
        assert "<h1>Guide</h1>" in client.get("/f/docs/guide").text
        assert client.get("/x/exists/docs/guide").json() == {"exists": True}

    def test_custom_content_type(self, client):
        created = client.post("/c/plain", params={"content_type": "text/plain"})
        assert created.json()["content_type"] == "text/plain"

    def test_custom_template(self):
        config = ServiceConfig(template=PageTemplate("<div id='$filename'>$content</div>"))
        client = make_client(config=config)
        client.post("/c/t")
        client.put("/c/t", content=b"# T")
        assert client.get("/f/t").text == "<div id='t'><h1>T</h1></div>"

    def test_binary_revision_served_as_octet_stream(self, client):
        client.post("/c/bin")
        sha = client.put("/c/bin", content=b"\xff\xfe\x00").json()["sha"]
        raw = client.get(f"/r/{sha}")
        assert raw.content == b"\xff\xfe\x00"
        assert raw.headers["content-type"] == "application/octet-stream"


class TestExists:

    def test_missing(self, client):
        r = client.get("/x/exists/missing")
        assert r.status_code == 200
        assert r.json() == {"exists": False}

    def test_backend_error(self):
        client = make_client(registry=BrokenRegistry())
        r = client.get("/x/exists/anything")
        assert r.status_code == 500
        assert r.json()["error_code"] == "exists_err"


class TestErrorMapping:

    def assert_error(self, response, status, code):
        assert response.status_code == status
        body = response.json()
        assert body["error_code"] == code
        assert body["error_message"]

    def test_latest_file_not_found(self, client):
        self.assert_error(client.get("/f/missing"), 404, "file_notfound")

    def test_latest_no_revisions(self, client):
        client.post("/c/empty")
        self.assert_error(client.get("/f/empty"), 500, "file_norevisions")

    def test_latest_revision_not_found(self):
        registry = InMemoryFileRegistry()
        client = make_client(registry=registry)
        client.post("/c/f")
        registry.append_revision("f", ContentAddress.compute(b"never stored"))
        self.assert_error(client.get("/f/f"), 500, "rev_notfound")

    def test_revision_unknown_sha(self, client):
        sha = hashlib.sha1(b"nothing").hexdigest()
        self.assert_error(client.get(f"/r/{sha}"), 500, "rev_notfound")

    def test_revision_malformed_sha(self, client):
        self.assert_error(client.get("/r/not-hex"), 500, "rev_notfound")

    def test_revision_sha_missing(self, client):
        self.assert_error(client.get("/r/"), 500, "sha_missing")

    def test_meta_not_found(self, client):
        self.assert_error(client.get("/x/meta/missing"), 404, "file_notfound")

    def test_create_twice(self, client):
        client.post("/c/once")
        self.assert_error(client.post("/c/once"), 404, "file_creation")

    def test_put_unknown_file(self, client):
        self.assert_error(client.put("/c/missing", content=b"x"), 404, "file_notfound")

    def test_put_storage_failure(self):
        client = make_client(store=BrokenStore())
        client.post("/c/f")
        self.assert_error(client.put("/c/f", content=b"x"), 500, "storage")

    @pytest.mark.parametrize("content_type", ["", "  "])
    def test_create_blank_content_type(self, client, content_type):
        r = client.post("/c/readme", params={"content_type": content_type})
        self.assert_error(r, 404, "file_creation")
        assert r.headers["access-control-allow-origin"] == "*"
        assert client.get("/x/exists/readme").json() == {"exists": False}

    def test_wrong_method_uses_error_body(self, client):
        r = client.get("/c/readme")
        self.assert_error(r, 405, "method_not_allowed")
        assert r.headers["access-control-allow-origin"] == "*"

    def test_unknown_route_uses_error_body(self, client):
        r = client.get("/r/abc/def")
        self.assert_error(r, 404, "not_found")
        assert r.headers["access-control-allow-origin"] == "*"

    def test_unexpected_exception_uses_error_body(self):
        orchestrator = RevisionOrchestrator(InMemoryContentStore(), RaisingRegistry())
        client = TestClient(create_app(orchestrator), raise_server_exceptions=False)
        r = client.get("/x/meta/anything")
        self.assert_error(r, 500, "internal")
        assert r.headers["access-control-allow-origin"] == "*"

    def test_put_body_disconnect_is_io_error(self):
        orchestrator = RevisionOrchestrator(InMemoryContentStore(), InMemoryFileRegistry())
        orchestrator.create_file("f")
        app = create_app(orchestrator)
        scope = {
            "type": "http",
            "asgi": {"version": "3.0"},
            "http_version": "1.1",
            "method": "PUT",
            "scheme": "http",
            "path": "/c/f",
            "raw_path": b"/c/f",
            "root_path": "",
            "query_string": b"",
            "headers": [(b"host", b"testserver"), (b"content-length", b"10")],
            "client": ("testclient", 50000),
            "server": ("testserver", 80),
        }
        sent = []

        async def receive():
            return {"type": "http.disconnect"}

        async def send(message):
            sent.append(message)

        asyncio.run(app(scope, receive, send))

        start = next(m for m in sent if m["type"] == "http.response.start")
        body = b"".join(m.get("body", b"") for m in sent if m["type"] == "http.response.body")
        assert start["status"] == 500
        assert json.loads(body)["error_code"] == "io"
        assert (b"access-control-allow-origin", b"*") in start["headers"]
        assert orchestrator.get_file("f").value.revisions == ()

    def test_error_content_type(self, client):
        r = client.get("/f/missing")
        assert r.headers["content-type"].startswith("application/json")


class TestCors:

    @pytest.mark.parametrize("method,path", [
        ("get", "/f/missing"),
        ("get", "/x/exists/a"),
        ("post", "/c/cors"),
        ("get", "/health"),
    ])
    def test_headers_on_every_response(self, client, method, path):
        r = getattr(client, method)(path)
        assert r.headers["access-control-allow-origin"] == "*"
        assert r.headers["access-control-allow-headers"] == "accept, content-type"
        assert r.headers["access-control-allow-methods"] == "GET, POST, PUT, PATCH"

    def test_options_preflight_is_noop(self, client):
        r = client.options("/c/anything")
        assert r.status_code == 200
        assert r.content == b""
        assert r.headers["access-control-allow-origin"] == "*"
        assert client.get("/x/exists/anything").json() == {"exists": False}


class TestWiring:

    def test_build_orchestrator_file_backend(self, tmp_path):
        config = ServiceConfig(storage=StorageConfig(backend_type="file", storage_dir=str(tmp_path)))
        client = TestClient(create_app(build_orchestrator(config), config))
        client.post("/c/persisted")
        sha = client.put("/c/persisted", content=b"# Kept").json()["sha"]

        # A second app over the same directory sees the same data
        again = TestClient(create_app(build_orchestrator(config), config))
        assert again.get(f"/r/{sha}").content == b"# Kept"
        assert "<h1>Kept</h1>" in again.get("/f/persisted").text

    def test_build_orchestrator_audit_log_size(self):
        orchestrator = build_orchestrator(ServiceConfig(audit_log_size=5))
        assert orchestrator.audit_log.max_entries == 5

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "online"}
