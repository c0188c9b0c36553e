import pytest
from fastapi.testclient import TestClient

from agri_eo_api.gateway import SOIL_MOISTURE


def test_soil_moisture_in_phoenix_is_cached_on_repeat(client: TestClient) -> None:
    params = {"lat": "33.4484", "lon": "-112.0740"}

    first = client.get("/soil-moisture", params=params)
    second = client.get("/soil-moisture", params=params)

    assert first.status_code == 200
    body = first.json()
    assert body["quality"] in {"interpolated", "fallback"}
    assert 0.18 <= body["surface_moisture"] <= 0.38
    assert second.json()["cached"] is True
    assert second.json()["surface_moisture"] == body["surface_moisture"]


def test_soil_moisture_response_shape(client: TestClient) -> None:
    body = client.get("/soil-moisture", params={"lat": 45, "lon": 7, "date": "2024-06-01"}).json()

    assert set(body) >= {
        "surface_moisture",
        "root_zone_moisture",
        "moisture_error",
        "surface_temperature",
        "vegetation_opacity",
        "retrieval_quality",
        "timestamp",
        "source",
        "coordinates",
        "resolution",
        "quality",
    }


def test_vegetation_index_response_shape(client: TestClient) -> None:
    response = client.get("/vegetation-index", params={"lat": 10, "lon": 20})

    assert response.status_code == 200
    body = response.json()
    assert body["location"] == {"lat": 10.0, "lon": 20.0}
    assert body["resolution"] == 250
    assert 0.50 <= body["ndvi"] <= 0.85
    assert body["quality"] == "interpolated"


def test_imagery_endpoint(client: TestClient) -> None:
    body = client.get("/imagery", params={"lat": 51.5, "lon": -0.1}).json()

    assert body["resolution"] == "30m"
    assert body["source"] == "Landsat 8/9"
    assert "nir" in body["bands"]


def test_field_grid_at_modis_resolution(client: TestClient) -> None:
    response = client.get("/field-grid", params={"lat": 40, "lon": -100, "resolution": 250})

    assert response.status_code == 200
    body = response.json()
    assert body["gridSize"] == 8
    assert body["pixelCount"] == 64
    assert len(body["pixels"]) == 64
    assert body["center"] == {"lat": 40.0, "lon": -100.0}
    pixel = body["pixels"][0]
    assert set(pixel) == {
        "id",
        "x",
        "y",
        "lat",
        "lon",
        "ndvi",
        "moisture",
        "temperature",
        "cropType",
        "health",
        "irrigation",
        "source",
    }

    lats = [pixel["lat"] for pixel in body["pixels"]]
    assert (max(lats) - min(lats)) * 111_000 == pytest.approx(1750, rel=0.01)


def test_field_grid_default_resolution(client: TestClient) -> None:
    body = client.get("/field-grid", params={"lat": 40, "lon": -100}).json()

    assert body["resolution"] == 30
    assert body["gridSize"] == 12


@pytest.mark.parametrize(
    ("path", "params"),
    [
        ("/api/smap/soil-moisture", {"lat": 1, "lon": 2}),
        ("/api/modis/ndvi", {"lat": 1, "lon": 2}),
        ("/api/landsat/imagery", {"lat": 1, "lon": 2}),
        ("/api/pixel-hunt/data", {"lat": 1, "lon": 2, "resolution": 10}),
    ],
)
def test_legacy_paths_are_served(client: TestClient, path: str, params: dict) -> None:
    response = client.get(path, params=params)

    assert response.status_code == 200
    assert "quality" in response.json()


def test_legacy_paths_are_hidden_from_openapi(client: TestClient) -> None:
    paths = client.get("/openapi.json").json()["paths"]

    assert "/soil-moisture" in paths
    assert "/api/smap/soil-moisture" not in paths


@pytest.mark.parametrize(
    ("path", "params", "fragment"),
    [
        ("/soil-moisture", {"lat": 91, "lon": 0}, "lat"),
        ("/soil-moisture", {"lat": 0, "lon": -181}, "lon"),
        ("/soil-moisture", {"lon": 0}, "lat is required"),
        ("/vegetation-index", {"lat": "north", "lon": 0}, "lat must be a number"),
        ("/imagery", {"lat": "nan", "lon": 0}, "lat"),
        ("/soil-moisture", {"lat": 0, "lon": 0, "date": "yesterday"}, "date"),
        ("/soil-moisture", {"lat": 0, "lon": 0, "date": "2024-01-01garbage"}, "date"),
        ("/vegetation-index", {"lat": 0, "lon": 0, "date": "2024-01-01Tnoon"}, "date"),
        ("/field-grid", {"lat": 0, "lon": 0, "resolution": 0}, "resolution"),
        ("/field-grid", {"lat": 0, "lon": 0, "resolution": "fine"}, "resolution"),
    ],
)
def test_invalid_parameters_are_rejected(client: TestClient, path: str, params: dict, fragment: str) -> None:
    response = client.get(path, params=params)

    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["code"] == "InvalidParameterValue"
    assert fragment in detail["description"]


def test_bearer_token_is_forwarded_and_selects_cache_slot(client: TestClient, gateway) -> None:
    params = {"lat": 12.5, "lon": 8}

    client.get("/soil-moisture", params=params)
    response = client.get("/soil-moisture", params=params, headers={"Authorization": "Bearer caller-secret"})

    assert "cached" not in response.json()
    archive = gateway.chains[SOIL_MOISTURE][0]
    assert archive.calls[-1].credential == "caller-secret"
    assert archive.calls[0].credential is None


def test_boundary_coordinates_are_accepted(client: TestClient) -> None:
    response = client.get("/soil-moisture", params={"lat": -90, "lon": 180})

    assert response.status_code == 200
    assert response.json()["coordinates"] == {"lat": -90.0, "lon": 180.0}


def test_timestamp_date_shares_the_plain_date_cache_slot(client: TestClient) -> None:
    params = {"lat": 20, "lon": 30}

    client.get("/soil-moisture", params={**params, "date": "2024-01-01"})
    response = client.get("/soil-moisture", params={**params, "date": "2024-01-01T06:30:00Z"})

    assert response.status_code == 200
    assert response.json()["cached"] is True


def test_field_grid_at_pole_and_antimeridian_has_valid_coordinates(client: TestClient) -> None:
    body = client.get("/field-grid", params={"lat": 90, "lon": 180, "resolution": 250}).json()

    assert body["pixelCount"] == 64
    assert max(pixel["lat"] for pixel in body["pixels"]) <= 90.0
    assert all(-180.0 <= pixel["lon"] <= 180.0 for pixel in body["pixels"])


def test_recent_precipitation_is_accepted_on_soil_moisture(client: TestClient) -> None:
    params = {"lat": 45, "lon": 7}

    client.get("/soil-moisture", params=params)
    response = client.get("/api/smap/soil-moisture", params={**params, "recent_precipitation_mm": "12"})

    assert response.status_code == 200
    assert "cached" not in response.json()


@pytest.mark.parametrize("value", ["-1", "lots", "inf"])
def test_bad_recent_precipitation_is_rejected(client: TestClient, value: str) -> None:
    response = client.get("/soil-moisture", params={"lat": 45, "lon": 7, "recent_precipitation_mm": value})

    assert response.status_code == 400
    assert "recent_precipitation_mm" in response.json()["detail"]["description"]
