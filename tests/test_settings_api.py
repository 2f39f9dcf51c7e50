from urllib.parse import parse_qs, urlparse

import pytest

import routers.settings as settings_router
from conftest import make_override, make_ship, set_sensor_active
from models import AppConfig, Project, Sensor, ShipSensorOverride


def redirect_query(res):
    assert res.status_code == 303
    loc = urlparse(res.headers["location"])
    return loc.path, {k: v[0] for k, v in parse_qs(loc.query).items()}


# ============================================================================
# Sensor registry
# ============================================================================


class TestSensorRegistry:

    def test_list_seeded_sensors(self, client):
        body = client.get("/settings").json()
        assert [s["code"] for s in body["sensors"]][:2] == ["device_condition", "gps"]
        assert len(body["sensors"]) == 7
        assert body["success"] is None

    def test_create_sensor_slug_and_order(self, client, db):
        res = client.post("/settings/sensors", data={"name": "Engine Temp"}, follow_redirects=False)
        path, query = redirect_query(res)
        assert path == "/settings"
        assert "success" in query

        row = db.query(Sensor).filter(Sensor.code == "engine_temp").one()
        assert row.name == "Engine Temp"
        assert row.is_active is True
        assert row.display_order == 8

    def test_create_sensor_collision_gets_suffix(self, client, db):
        client.post("/settings/sensors", data={"name": "GPS"}, follow_redirects=False)
        client.post("/settings/sensors", data={"name": "gps!"}, follow_redirects=False)

        codes = {c for (c,) in db.query(Sensor.code).all()}
        assert {"gps", "gps_2", "gps_3"} <= codes

    def test_create_sensor_requires_name(self, client):
        res = client.post("/settings/sensors", data={"name": "  "}, follow_redirects=False)
        assert res.status_code == 400

    def test_toggle_sensor(self, client, db):
        gps = db.query(Sensor).filter(Sensor.code == "gps").one()

        res = client.post(f"/settings/sensors/{gps.id}/toggle", follow_redirects=False)
        assert res.status_code == 303

        db.expire_all()
        assert db.get(Sensor, gps.id).is_active is False
        sensors = client.get("/api/form-sensors").json()["sensors"]
        assert "gps" not in [s["code"] for s in sensors]

    def test_toggle_unknown_sensor(self, client):
        assert client.post("/settings/sensors/999/toggle", follow_redirects=False).status_code == 404

    def test_mutations_require_auth(self, anon_client):
        res = anon_client.post("/settings/sensors", data={"name": "X"}, follow_redirects=False)
        assert res.status_code == 401


# ============================================================================
# Projects
# ============================================================================


class TestProjects:

    def test_create_project_uppercases_code(self, client, db):
        res = client.post("/settings/projects", data={"code": "ops", "name": "Operations"},
                          follow_redirects=False)
        _, query = redirect_query(res)
        assert "success" in query
        assert db.query(Project).filter(Project.code == "OPS").one().name == "Operations"

    def test_duplicate_project_redirects_with_error(self, client):
        res = client.post("/settings/projects", data={"code": "fms", "name": "Again"},
                          follow_redirects=False)
        path, query = redirect_query(res)
        assert path == "/settings/projects"
        assert "already exists" in query["error"]

    def test_missing_fields(self, client):
        res = client.post("/settings/projects", data={"code": "X"}, follow_redirects=False)
        _, query = redirect_query(res)
        assert query["error"] == "Code and Name are required"

    def test_flash_is_echoed(self, client):
        body = client.get("/settings/projects", params={"error": "boom"}).json()
        assert body["error"] == "boom"
        assert [p["code"] for p in body["projects"]] == ["FMS"]


# ============================================================================
# Logo
# ============================================================================


class TestLogo:

    @pytest.fixture
    def fake_cloudinary(self, monkeypatch):
        calls = []

        def fake_upload(data, **kwargs):
            calls.append(kwargs)
            return {"secure_url": "https://res.cloudinary.com/demo/company_logo.png"}

        monkeypatch.setattr(settings_router, "init_cloudinary", lambda: None)
        monkeypatch.setattr(settings_router, "cld_upload", fake_upload)
        return calls

    def test_upload_updates_config_and_cache(self, client, db, fake_cloudinary):
        assert client.get("/settings/general").json()["logo"] == "/static/images/logo-placeholder.png"

        res = client.post(
            "/settings/logo",
            files={"logo": ("logo.png", b"\x89PNG fake", "image/png")},
            follow_redirects=False,
        )
        _, query = redirect_query(res)
        assert "success" in query
        assert fake_cloudinary[0]["public_id"] == "company_logo"

        url = "https://res.cloudinary.com/demo/company_logo.png"
        assert client.get("/settings/general").json()["logo"] == url
        assert client.get("/").json()["logo"] == url
        assert db.get(AppConfig, "company_logo").value == url

    def test_rejects_other_extensions(self, client, fake_cloudinary):
        res = client.post(
            "/settings/logo",
            files={"logo": ("logo.gif", b"GIF89a", "image/gif")},
            follow_redirects=False,
        )
        _, query = redirect_query(res)
        assert query["error"] == "Only PNG or JPG allowed"
        assert fake_cloudinary == []

    def test_rejects_large_file(self, client, fake_cloudinary):
        big = b"0" * (settings_router.MAX_LOGO_MB * 1024 * 1024 + 1)
        res = client.post(
            "/settings/logo",
            files={"logo": ("logo.jpg", big, "image/jpeg")},
            follow_redirects=False,
        )
        _, query = redirect_query(res)
        assert query["error"].startswith("File too large")
        assert fake_cloudinary == []

    def test_upload_failure_keeps_previous_logo(self, client, monkeypatch):
        def broken_upload(data, **kwargs):
            raise RuntimeError("network down")

        monkeypatch.setattr(settings_router, "init_cloudinary", lambda: None)
        monkeypatch.setattr(settings_router, "cld_upload", broken_upload)

        res = client.post(
            "/settings/logo",
            files={"logo": ("logo.png", b"\x89PNG", "image/png")},
            follow_redirects=False,
        )
        _, query = redirect_query(res)
        assert query["error"] == "Failed to save file"
        assert client.get("/settings/general").json()["logo"] == "/static/images/logo-placeholder.png"


# ============================================================================
# Ships and per-ship sensor overrides
# ============================================================================


class TestShips:

    def test_create_and_list(self, client):
        res = client.post("/settings/ships", data={"name": "KM A", "code": "KM01"}, follow_redirects=False)
        assert res.status_code == 303

        ships = client.get("/settings/ships").json()["ships"]
        assert [(s["name"], s["code"]) for s in ships] == [("KM A", "KM01")]

    def test_duplicate_ship(self, client, db):
        make_ship(db, "KM A")
        res = client.post("/settings/ships", data={"name": "KM A"}, follow_redirects=False)
        _, query = redirect_query(res)
        assert "already exists" in query["error"]

    def test_toggle_creates_then_flips_override(self, client, db):
        ship = make_ship(db, "KM A")

        res = client.post(f"/settings/ships/{ship.id}/toggle", data={"sensor_code": "gps"},
                          follow_redirects=False)
        path, _ = redirect_query(res)
        assert path == f"/settings/ships/{ship.id}"

        row = db.query(ShipSensorOverride).filter_by(ship_id=ship.id, sensor_code="gps").one()
        assert row.is_active is False
        codes = [s["code"] for s in client.get("/api/form-sensors", params={"ship_id": ship.id}).json()["sensors"]]
        assert "gps" not in codes

        client.post(f"/settings/ships/{ship.id}/toggle", data={"sensor_code": "gps"}, follow_redirects=False)
        db.expire_all()
        row = db.query(ShipSensorOverride).filter_by(ship_id=ship.id, sensor_code="gps").one()
        assert row.is_active is True
        codes = [s["code"] for s in client.get("/api/form-sensors", params={"ship_id": ship.id}).json()["sensors"]]
        assert "gps" in codes

    def test_override_enables_globally_inactive_sensor(self, client, db):
        ship = make_ship(db, "KM A")
        set_sensor_active(db, "flowmeter_bunker", False)

        client.post(f"/settings/ships/{ship.id}/toggle", data={"sensor_code": "flowmeter_bunker"},
                    follow_redirects=False)

        config = {s["code"]: s for s in client.get(f"/settings/ships/{ship.id}").json()["sensors"]}
        assert config["flowmeter_bunker"]["global_active"] is False
        assert config["flowmeter_bunker"]["ship_active"] is True
        assert config["flowmeter_bunker"]["is_override"] is True

    def test_toggle_unknown_sensor_rejected(self, client, db):
        ship = make_ship(db, "KM A")
        res = client.post(f"/settings/ships/{ship.id}/toggle", data={"sensor_code": "nope"},
                          follow_redirects=False)
        assert res.status_code == 404
        assert db.query(ShipSensorOverride).count() == 0

    def test_toggle_unknown_ship(self, client):
        res = client.post("/settings/ships/999/toggle", data={"sensor_code": "gps"}, follow_redirects=False)
        assert res.status_code == 404

    def test_orphaned_override_is_ignored_on_read(self, client, db):
        ship = make_ship(db, "KM A")
        make_override(db, ship.id, "deleted_sensor", True)

        sensors = client.get("/api/form-sensors", params={"ship_id": ship.id}).json()["sensors"]
        assert len(sensors) == 7
        assert "deleted_sensor" not in [s["code"] for s in sensors]

    def test_form_sensors_unknown_ship(self, client):
        assert client.get("/api/form-sensors", params={"ship_id": 999}).status_code == 404

    def test_input_form_defaults(self, client, db):
        make_ship(db, "KM A")
        body = client.get("/input").json()
        assert body["default_code"].startswith("FMS ")
        assert body["ships"][0]["name"] == "KM A"
        assert body["projects"] == [{"code": "FMS", "name": "Fuel Monitoring System"}]
