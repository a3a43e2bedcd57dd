"""Tests for the HTTP API."""

from collections.abc import Generator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from woolmap.core.backend_frontend_shared_schema import RenderTarget
from woolmap.core.scene import MapScene
from woolmap.core.session_state import SessionState
from woolmap.main import _app_instance, app

CONTAINER = {"left": 0, "top": 0, "width": 300, "height": 200}


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """A client against a fresh, empty session."""
    previous = _app_instance.session_state
    _app_instance.session_state = SessionState()
    try:
        yield TestClient(app)
    finally:
        _app_instance.session_state = previous


@pytest.fixture
def client_with_data(client: TestClient, sample_sales_path: Path) -> TestClient:
    response = client.post(
        "/api/auction/load",
        json={"file_path": str(sample_sales_path), "auction_label": "Week 12"},
    )
    assert response.status_code == 200
    return client


def test_root_serves_page(client: TestClient) -> None:
    response = client.get("/")
    assert response.status_code == 200
    assert "plotly" in response.text


def test_page_ends_hover_only_when_leaving_the_map(client: TestClient) -> None:
    page = client.get("/").text
    assert "plotly_unhover" not in page
    assert 'addEventListener("mouseleave"' in page
    assert 'addEventListener("mousemove"' in page
    assert "function enqueue" in page


def test_session_without_data(client: TestClient) -> None:
    data = client.get("/api/session").json()
    assert data["has_data"] is False
    assert data["sale_count"] == 0
    assert data["region_count"] == 9
    assert data["regions_with_data"] == 0


def test_load_auction(client: TestClient, sample_sales_path: Path) -> None:
    response = client.post(
        "/api/auction/load",
        json={"file_path": str(sample_sales_path), "auction_label": "Week 12"},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["message"] == "Successfully loaded 20 sales"
    assert data["session_state"]["auction_label"] == "Week 12"
    assert data["session_state"]["regions_with_data"] == 4


def test_load_missing_file(client: TestClient, tmp_path: Path) -> None:
    response = client.post(
        "/api/auction/load", json={"file_path": str(tmp_path / "missing.jsonl")}
    )
    assert response.status_code == 404


def test_load_invalid_file(client: TestClient, tmp_path: Path) -> None:
    path = tmp_path / "bad.jsonl"
    path.write_text("{not json\n")
    response = client.post("/api/auction/load", json={"file_path": str(path)})
    assert response.status_code == 500
    assert "Error loading sales" in response.json()["detail"]


def test_upload_nested_sales(client: TestClient) -> None:
    response = client.put(
        "/api/auction/sales",
        json={
            "auction_label": "Week 13",
            "sales": [
                {
                    "province": "Eastern Cape",
                    "producers": [
                        {"position": 1, "name": "A", "price": 100, "certified": "RWS"},
                        {"position": 2, "name": "B", "price": 200, "certified": "RWS"},
                        {"position": 3, "name": "C", "price": 50, "certified": ""},
                    ],
                },
                {"region": "Lesotho", "position": 1, "price": 300, "certified": "RWS"},
            ],
        },
    )
    assert response.status_code == 200
    regions = client.get("/api/region_stats").json()["regions"]
    assert regions["Eastern Cape"] == {
        "certified_avg": 150.0,
        "non_certified_avg": 50.0,
        "has_non_certified": True,
    }
    assert regions["Free State"]["has_non_certified"] is False
    assert "Lesotho" not in regions
    assert len(regions) == 9


def test_upload_invalid_sales(client: TestClient) -> None:
    response = client.put(
        "/api/auction/sales", json={"sales": [{"region": "Gauteng", "price": -5}]}
    )
    assert response.status_code == 400


@pytest.mark.parametrize("target", ["desktop", "mobile"])
def test_map_plot(client_with_data: TestClient, target: str) -> None:
    response = client_with_data.get(f"/api/plots/map/{target}")
    assert response.status_code == 200
    data = response.json()
    assert data["target"] == target
    assert data["region_count"] == 9
    assert data["regions_with_data"] == 4
    assert data["min_price"] == 115.0
    assert data["max_price"] == 180.0
    region_ids = {
        trace["meta"] for trace in data["plotly_plot"]["data"] if "meta" in trace
    }
    assert "ZA-EC" in region_ids
    assert "LS" not in region_ids


def test_map_plot_builds_one_scene(
    client_with_data: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    session_state = _app_instance.session_state
    build_scene = session_state.build_scene
    built = []

    def counting_build_scene(target: RenderTarget) -> MapScene:
        built.append(target)
        return build_scene(target)

    monkeypatch.setattr(session_state, "build_scene", counting_build_scene)
    assert client_with_data.get("/api/plots/map/desktop").status_code == 200
    assert built == [RenderTarget.DESKTOP]


def test_map_plot_without_data(client: TestClient) -> None:
    data = client.get("/api/plots/map/desktop").json()
    assert data["min_price"] is None
    assert data["regions_with_data"] == 0


def test_unknown_target(client: TestClient) -> None:
    assert client.get("/api/plots/map/tablet").status_code == 422


def test_scene(client_with_data: TestClient) -> None:
    data = client_with_data.get("/api/scene/mobile").json()
    assert data["view_box"] == [0, 0, 300, 250]
    assert len(data["regions"]) == 9
    assert all(region["svg_path"].startswith("M ") for region in data["regions"])


def test_desktop_hover(client_with_data: TestClient) -> None:
    response = client_with_data.post(
        "/api/interaction/desktop/pointer-move",
        json={"region_id": "ZA-EC", "client_x": 295, "client_y": 10, "container": CONTAINER},
    )
    data = response.json()
    assert data["accepted"] is True
    assert data["mode"] == "hovering"
    assert data["tooltip"]["left"] == 150.0
    assert data["tooltip"]["top"] == 20.0

    scene = client_with_data.get("/api/scene/desktop").json()
    opacities = {region["region_id"]: region["opacity"] for region in scene["regions"]}
    assert opacities["ZA-EC"] == 1.0
    assert opacities["ZA-WC"] == 0.5

    data = client_with_data.post("/api/interaction/desktop/pointer-leave").json()
    assert data["mode"] == "idle"
    assert data["tooltip"] is None


def test_desktop_hover_follows_cursor_across_provinces(
    client_with_data: TestClient,
) -> None:
    def move(region_id: str, client_x: float) -> dict:
        return client_with_data.post(
            "/api/interaction/desktop/pointer-move",
            json={
                "region_id": region_id,
                "client_x": client_x,
                "client_y": 150,
                "container": CONTAINER,
            },
        ).json()

    first = move("ZA-EC", 100)
    second = move("ZA-EC", 160)
    assert second["hovered_region_id"] == "ZA-EC"
    assert second["tooltip"]["left"] == first["tooltip"]["left"] + 60

    # Crossing a border is a move onto the next province, with no idle state between.
    third = move("ZA-FS", 160)
    assert third["mode"] == "hovering"
    assert third["hovered_region_id"] == "ZA-FS"


def test_desktop_hover_unknown_region(client_with_data: TestClient) -> None:
    data = client_with_data.post(
        "/api/interaction/desktop/pointer-move",
        json={"region_id": "LS", "client_x": 10, "client_y": 10, "container": CONTAINER},
    ).json()
    assert data["accepted"] is False
    assert data["mode"] == "idle"


def test_invalid_container_is_rejected(client_with_data: TestClient) -> None:
    response = client_with_data.post(
        "/api/interaction/desktop/pointer-move",
        json={
            "region_id": "ZA-EC",
            "client_x": 10,
            "client_y": 10,
            "container": {"left": 0, "top": 0, "width": 0, "height": 200},
        },
    )
    assert response.status_code == 422


def test_mobile_tap_toggle(client_with_data: TestClient) -> None:
    first = client_with_data.post("/api/interaction/mobile/tap", json={"region_id": "ZA-EC"})
    assert first.json()["region_id"] == "ZA-EC"
    second = client_with_data.post("/api/interaction/mobile/tap", json={"region_id": "ZA-WC"})
    assert second.json()["region_id"] == "ZA-WC"
    third = client_with_data.post("/api/interaction/mobile/tap", json={"region_id": "ZA-WC"})
    assert third.json()["region_id"] is None
    assert third.json()["mode"] == "idle"


def test_mobile_hover_keeps_selection(client_with_data: TestClient) -> None:
    client_with_data.post("/api/interaction/mobile/tap", json={"region_id": "ZA-EC"})
    data = client_with_data.post(
        "/api/interaction/mobile/hover",
        json={"region_id": "ZA-NC", "client_x": 100, "client_y": 100, "container": CONTAINER},
    ).json()
    assert data["region_id"] == "ZA-EC"
    assert data["hovered_region_id"] == "ZA-NC"

    plot = client_with_data.get("/api/plots/map/mobile").json()["plotly_plot"]
    table = next(trace for trace in plot["data"] if trace["type"] == "table")
    assert table["cells"]["values"][0][0] == "Eastern Cape"

    data = client_with_data.post("/api/interaction/mobile/hover-leave").json()
    assert data["hovered_region_id"] is None
    assert data["region_id"] == "ZA-EC"
