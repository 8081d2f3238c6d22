import pytest
from fastapi.testclient import TestClient

from log_analyzer.main import app, get_config

TRACE_ID = "fa6e0000-0000-0000-0000-000000000000"
TRACE_ID_UNDERSCORE = "fa6e0000_0000_0000_0000_000000000000"
REQUEST_PATH = f"Raw/Inbound/20250101100000_request_v1_BusinessWorkspace_Search_{TRACE_ID}.txt"
RESPONSE_PATH = f"Raw/Inbound/20250101100000_response_v1_BusinessWorkspace_Search_{TRACE_ID}.txt"


@pytest.fixture
def client(config, write_file, map_row):
    write_file(
        "app.log",
        "2025-01-01 10:00:00.000 [INFO] Calling business workspace search, "
        f"trace {TRACE_ID} boType BUS1006_000123\n",
    )
    write_file(
        f"Raw/Maps/Map_{TRACE_ID}.txt",
        map_row("2025-01-01T10:00:00Z", 1, "Request", REQUEST_PATH)
        + "\n"
        + map_row("2025-01-01T10:00:00.500Z", 2, "Response", RESPONSE_PATH, duration="500", status="500")
        + "\n",
    )
    write_file(REQUEST_PATH, f"SimpleMDG_TraceLogID: {TRACE_ID}\n")

    app.dependency_overrides[get_config] = lambda: config
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_list_traces(client):
    r = client.get("/loganalyzer/api/traces")
    assert r.status_code == 200
    traces = r.json()["traces"]
    assert len(traces) == 1
    assert traces[0]["trace_id"] == TRACE_ID
    assert traces[0]["bo_type"] == "BUS1006"
    assert traces[0]["has_errors"] is True
    assert traces[0]["total_duration_ms"] == 500.0
    assert traces[0]["start_time"].startswith("2025-01-01T10:00:00")


def test_list_traces_with_filters(client):
    r = client.get("/loganalyzer/api/traces", params={"search": "BUS2000"})
    assert r.json()["traces"] == []

    r = client.get("/loganalyzer/api/traces", params={"has_errors": "true", "operation": "BusinessWorkspace"})
    assert len(r.json()["traces"]) == 1

    r = client.get("/loganalyzer/api/traces", params={"from": "2025-01-02T00:00:00Z"})
    assert r.json()["traces"] == []


def test_list_traces_bad_timestamp(client):
    r = client.get("/loganalyzer/api/traces", params={"from": "not-a-date"})
    assert r.status_code == 400


def test_trace_details(client):
    r = client.get(f"/loganalyzer/api/trace/{TRACE_ID_UNDERSCORE}")
    assert r.status_code == 200
    body = r.json()
    assert body["trace_id"] == TRACE_ID
    assert [e["type"] for e in body["entries"]] == ["Request", "Request", "Response"]
    assert body["entries"][-1]["status_code"] == 500
    assert body["entries"][-1]["level"] == "ERROR"


def test_trace_not_found(client):
    r = client.get("/loganalyzer/api/trace/0b1c0000-0000-0000-0000-000000000001")
    assert r.status_code == 404
    assert r.json()["detail"] == "Trace not found"


def test_trace_files_and_stats(client):
    files = client.get(f"/loganalyzer/api/trace/{TRACE_ID}/files").json()["files"]
    assert [f["type"] for f in files] == ["request", "map", "response"]

    stats = client.get(f"/loganalyzer/api/trace/{TRACE_ID}/stats").json()
    assert stats["total_steps"] == 2
    assert [s["step"] for s in stats["step_breakdown"]] == [1, 2]
    assert stats["step_breakdown"][1]["type"] == "Response"

    assert client.get("/loganalyzer/api/trace/unknown-trace-identifier/stats").status_code == 404


def test_filters(client):
    body = client.get("/loganalyzer/api/filters").json()
    assert body == {"bo_types": ["BUS1006"], "operations": ["BusinessWorkspace"], "directions": ["Inbound"]}


def test_file_content(client):
    r = client.get(f"/loganalyzer/api/file/{REQUEST_PATH}")
    assert r.status_code == 200
    assert r.json()["content"].startswith("SimpleMDG_TraceLogID")
    assert r.json()["file_name"] == REQUEST_PATH.rsplit("/", 1)[-1]


def test_file_missing(client):
    assert client.get("/loganalyzer/api/file/Raw/Inbound/missing.txt").status_code == 404


def test_file_escape(client):
    assert client.get("/loganalyzer/api/file/..%2F..%2Fsecret.txt").status_code == 400


def test_debug(client):
    body = client.get("/loganalyzer/debug").json()
    assert body["directory_exists"] is True
    assert body["log_files"] == ["app.log"]
    assert body["map_files"] == 1
