from fastapi.testclient import TestClient

from vidtube.main import app


def test_metrics_route_present_once():
    metrics_routes = [r for r in app.routes if getattr(r, "path", None) == "/metrics"]
    assert len(metrics_routes) == 1


def test_custom_histograms_are_exposed():
    """Custom histograms are listed even before any sample was observed."""

    client = TestClient(app)
    resp = client.get("/metrics")
    assert resp.status_code == 200
    body = resp.text

    for name in (
        "astra_db_query_duration_seconds",
        "media_storage_duration_seconds",
        "video_cascade_delete_duration_seconds",
    ):
        assert f"# TYPE {name} histogram" in body or f"{name}_bucket" in body, name
