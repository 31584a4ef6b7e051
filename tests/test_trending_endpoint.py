# tests/test_trending_endpoint.py

from fastapi.testclient import TestClient

from hotrank.main import app
from hotrank.routers.trending import get_engine
from hotrank.services.engine import TrendingEngine
from hotrank.services.store import memory_storage

from conftest import CATALOG, FakeCatalog, FakeClock


def _mount_client():
    clock = FakeClock()
    engine = TrendingEngine(storage=memory_storage(), catalog=FakeCatalog(list(CATALOG)), clock=clock)
    app.dependency_overrides[get_engine] = lambda: engine
    return TestClient(app), clock


def teardown_function():
    app.dependency_overrides.clear()


def test_health():
    client, _ = _mount_client()
    r = client.get("/api/v1/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


def test_track_then_read():
    client, _ = _mount_client()
    for _ in range(3):
        r = client.post("/api/v1/trending/track", json={"type": "product_view", "productId": "google-pixel-8", "brand": "Google"})
        assert r.status_code == 200
        assert r.json() == {"accepted": True}
    client.post("/api/v1/trending/track", json={"type": "result_click", "productId": "google-pixel-8", "brand": "Google"})

    r = client.get("/api/v1/trending", params={"limit": 5})
    assert r.status_code == 200
    data = r.json()
    assert data["cached"] is False
    assert data["totalProducts"] == 1
    item = data["trending"][0]
    assert item["productId"] == "pixel-8"
    assert item["trendingScore"] == 14
    assert item["hasFireBadge"] is True
    assert item["fireBadgePosition"] == "first"
    assert data["config"] == {"updateInterval": 5, "isEnabled": True}

    again = client.get("/api/v1/trending", params={"limit": 5}).json()
    assert again["cached"] is True


def test_malformed_beacons_are_absorbed():
    client, _ = _mount_client()
    for body in (
        {"type": "product_view", "productId": "undefined-unknown"},
        {"type": "page_view"},
        {"type": "bogus", "productId": "x"},
        {},
    ):
        r = client.post("/api/v1/trending/track", json=body)
        assert r.status_code == 200
        assert r.json() == {"accepted": False}
    assert client.get("/api/v1/trending").json()["trending"] == []


def test_sync_action_and_admin_actions():
    client, _ = _mount_client()
    r = client.post(
        "/api/v1/trending",
        json={
            "action": "sync",
            "interactions": [
                {"type": "product_view", "productId": "google-pixel-8", "brand": "Google"},
                {"type": "page_view"},
                {"type": "search", "productId": "apple-iphone-13", "brand": "Apple", "searchTerm": "iphone"},
            ],
        },
    )
    assert r.json() == {"success": True, "synced": 3, "accepted": 2}

    cfg = client.post("/api/v1/trending", json={"action": "getConfig"}).json()
    assert cfg["metricsCount"] == 2
    assert cfg["weights"] == {"productView": 3.0, "resultClick": 5.0, "search": 1.5}

    assert client.post("/api/v1/trending", json={"action": "forceUpdate"}).json() == {
        "success": True,
        "updated": 2,
        "total": 2,
    }

    debug = client.post("/api/v1/trending", json={"action": "debugMetrics"}).json()["debug"]
    assert {p["key"] for p in debug["products"]} == {"pixel-8", "iphone-13"}

    calc = client.post("/api/v1/trending", json={"action": "testCalculation"}).json()
    assert calc["test"]["score"] == 36

    cleared = client.post("/api/v1/trending", json={"action": "forceClear"}).json()
    assert cleared["forceCleared"] is True
    assert cleared["cleared"] == 2
    assert client.get("/api/v1/trending").json()["totalProducts"] == 0


def test_default_action_is_sync():
    client, _ = _mount_client()
    r = client.post("/api/v1/trending", json={"interactions": [{"type": "product_view", "productId": "pixel-8", "brand": "Google"}]})
    assert r.json()["accepted"] == 1


def test_update_config_disables_reads():
    client, _ = _mount_client()
    client.post("/api/v1/trending/track", json={"type": "product_view", "productId": "google-pixel-8", "brand": "Google"})
    r = client.post("/api/v1/trending", json={"action": "updateConfig", "isEnabled": False, "updateInterval": 10})
    assert r.status_code == 200
    assert r.json()["config"]["isEnabled"] is False

    data = client.get("/api/v1/trending").json()
    assert data["disabled"] is True
    assert data["trending"] == []


def test_unknown_action():
    client, _ = _mount_client()
    r = client.post("/api/v1/trending", json={"action": "explode"})
    assert r.status_code == 400


def test_brand_filter_and_limit_validation():
    client, _ = _mount_client()
    client.post("/api/v1/trending/track", json={"type": "product_view", "productId": "google-pixel-8", "brand": "Google"})
    client.post("/api/v1/trending/track", json={"type": "product_view", "productId": "apple-iphone-13", "brand": "Apple"})

    data = client.get("/api/v1/trending", params={"brand": "GOOGLE"}).json()
    assert [t["productId"] for t in data["trending"]] == ["pixel-8"]
    assert client.get("/api/v1/trending", params={"limit": 0}).status_code == 422
