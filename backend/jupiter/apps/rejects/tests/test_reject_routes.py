from __future__ import annotations

from jupiter.apps.rejects.router import router as rejects_router


def _has(method: str, path: str) -> bool:
    return any(route.path == path and method in (route.methods or []) for route in rejects_router.routes)


def test_router_has_expected_routes():
    assert _has("GET", "/api/reject-logs")
    assert _has("POST", "/api/reject-logs")
    assert _has("PUT", "/api/reject-logs/{log_id}")
    assert _has("DELETE", "/api/reject-logs/{log_id}")
    assert _has("GET", "/api/reject-logs/{log_id}/summary")
    assert _has("GET", "/api/reject-logs/export")
    assert _has("GET", "/api/reject-master")
    assert _has("POST", "/api/reject-master")
    assert _has("PUT", "/api/reject-master/{master_id}")
    assert _has("DELETE", "/api/reject-master/{master_id}")
    assert _has("POST", "/api/reject-master/sync")
    assert _has("POST", "/api/reject-master/import")
    assert _has("GET", "/api/reject-master/template")
