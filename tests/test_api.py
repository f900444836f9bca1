from pathlib import Path

from fastapi.testclient import TestClient

from vardec.main import app
from vardec.services import hints

EXAMPLE = "let a = 1;\n\n\nconsole.log(a);\n"


def test_api_status() -> None:
    with TestClient(app) as client:
        resp = client.get("/api-status")

    assert resp.status_code == 200
    assert "running" in resp.json()["message"]


def test_supported_languages() -> None:
    with TestClient(app) as client:
        resp = client.get("/api/hints/languages")

    assert resp.status_code == 200
    assert resp.json() == ["go", "javascript", "javascriptreact", "typescript", "typescriptreact"]


def test_analyze_snapshot() -> None:
    with TestClient(app) as client:
        resp = client.post(
            "/api/hints/analyze",
            json={"text": EXAMPLE, "language_id": "typescript", "show_use_counts": True},
        )

    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ok"
    assert body["decorations"] == [
        {"line": 2, "column": 0, "text": "↳ a(1)", "indent": 0, "variables": ["a"]}
    ]


def test_analyze_rejects_bad_tab_size() -> None:
    with TestClient(app) as client:
        resp = client.post(
            "/api/hints/analyze",
            json={"text": EXAMPLE, "language_id": "typescript", "tab_size": 0},
        )

    assert resp.status_code == 422


def test_document_events_flush_and_close() -> None:
    with TestClient(app) as client:
        resp = client.post(
            "/api/hints/documents/doc-1/events",
            json={"kind": "change", "text": EXAMPLE, "language_id": "typescript"},
        )
        assert resp.status_code == 202
        assert resp.json()["scheduled"] is True

        resp = client.post("/api/hints/documents/doc-1/flush")
        assert resp.status_code == 200
        assert [d["text"] for d in resp.json()["decorations"]] == ["↳ a"]

        resp = client.get("/api/hints/documents/doc-1")
        assert resp.status_code == 200
        assert resp.json()["document_id"] == "doc-1"

        resp = client.delete("/api/hints/documents/doc-1")
        assert resp.status_code == 204

        resp = client.get("/api/hints/documents/doc-1")
        assert resp.status_code == 404


def test_unknown_document() -> None:
    with TestClient(app) as client:
        assert client.get("/api/hints/documents/missing").status_code == 404
        assert client.delete("/api/hints/documents/missing").status_code == 404


def test_unsupported_language_event_is_not_scheduled() -> None:
    with TestClient(app) as client:
        resp = client.post(
            "/api/hints/documents/notes/events",
            json={"kind": "open", "text": "hello", "language_id": "markdown"},
        )
        assert resp.status_code == 202
        assert resp.json()["scheduled"] is False

        resp = client.get("/api/hints/documents/notes")
        assert resp.json()["status"] == "unsupported"
        assert resp.json()["decorations"] == []


def test_events_need_running_sessions() -> None:
    client = TestClient(app)

    resp = client.post(
        "/api/hints/documents/doc-1/events",
        json={"kind": "change", "text": EXAMPLE, "language_id": "typescript"},
    )

    assert resp.status_code == 503


def test_file_hints(tmp_path: Path) -> None:
    source = tmp_path / "main.go"
    source.write_text("package main\n\nfunc main() {\n\tx := 1\n\n\tprintln(x)\n}\n", encoding="utf-8")

    with TestClient(app) as client:
        resp = client.get("/api/files/hints", params={"path": str(source)})

    assert resp.status_code == 200
    body = resp.json()
    assert body["language_id"] == "go"
    assert [(d["line"], d["text"], d["indent"]) for d in body["decorations"]] == [(4, "↳ x", 4)]


def test_file_hints_use_configured_count_default(tmp_path: Path, monkeypatch) -> None:
    source = tmp_path / "example.ts"
    source.write_text(EXAMPLE, encoding="utf-8")
    monkeypatch.setattr(hints, "SHOW_USE_COUNTS", True)

    with TestClient(app) as client:
        default = client.get("/api/files/hints", params={"path": str(source)})
        explicit = client.get(
            "/api/files/hints", params={"path": str(source), "show_use_counts": "false"}
        )

    assert [d["text"] for d in default.json()["decorations"]] == ["↳ a(1)"]
    assert [d["text"] for d in explicit.json()["decorations"]] == ["↳ a"]


def test_file_hints_errors(tmp_path: Path) -> None:
    notes = tmp_path / "notes.txt"
    notes.write_text("hello\n", encoding="utf-8")

    with TestClient(app) as client:
        missing = client.get("/api/files/hints", params={"path": str(tmp_path / "missing.ts")})
        directory = client.get("/api/files/hints", params={"path": str(tmp_path)})
        unsupported = client.get("/api/files/hints", params={"path": str(notes)})

    assert missing.status_code == 404
    assert missing.json()["detail"] == "File not found"
    assert directory.status_code == 400
    assert unsupported.status_code == 415
