import httpx
import pytest
from fastapi.testclient import TestClient

from main import create_app

from conftest import StaticSource, TS_2024_01_02


@pytest.fixture
def session(make_session, feed_json):
    return make_session(StaticSource(feed_json))


@pytest.fixture
def client(session):
    return TestClient(create_app(session))


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"


def test_data_payload(client):
    body = client.get("/api/data").json()
    assert body["range"] == "ALL"
    assert [s["id"] for s in body["series"]] == ["WRESBAL_MLN_USD", "BITCOIN", "SOFR"]
    assert body["layout"]["order"] == ["WRESBAL_MLN_USD", "BITCOIN", "SOFR"]

    cards = {c["id"]: c for c in body["cards"]}
    assert cards["WRESBAL_MLN_USD"]["value"] == "$3.30T"
    assert cards["WRESBAL_MLN_USD"]["change"]["value"] == 50_000.0
    assert cards["SOFR"]["value"] == "5.32%"
    assert body["status"]["loaded"] is True


def test_unknown_range_rejected(client):
    assert client.get("/api/data", params={"range": "5Y"}).status_code == 422


def test_range_switch_updates_session(session, client):
    client.get("/api/data", params={"range": "1Y"})
    assert session.range.value == "1Y"


def test_retrieval_failure_is_502(make_session):
    session = make_session(StaticSource(httpx.ConnectError("refused"), name="primary"))
    client = TestClient(create_app(session))

    resp = client.get("/api/data")
    assert resp.status_code == 502
    assert resp.json()["status"] == "error"
    assert resp.json()["detail"].startswith("Could not reach the data server")

    status = client.get("/api/status").json()
    assert status["status"] == "error"
    assert status["data_sources"]["primary"].startswith("primary:")


def test_format_failure_is_422(make_session):
    session = make_session(StaticSource('[{"data": "2024-01-01", ', fmt="json"))
    resp = TestClient(create_app(session)).get("/api/data")
    assert resp.status_code == 422


def test_refresh_refetches(session, client):
    client.get("/api/data")
    client.post("/api/refresh")
    assert session.cache.fetch_count == 2
    assert session.cache.parse_count == 2


def test_failed_refresh_does_not_serve_stale_data(make_session):
    csv_text = "date,WRESBAL\n2024-01-01,100\n2024-01-02,105\n"
    session = make_session(StaticSource(csv_text, httpx.ConnectError("down"), fmt="csv"))
    client = TestClient(create_app(session))

    assert client.get("/api/data").status_code == 200
    assert client.post("/api/refresh").status_code == 502
    assert session.last_result is None

    resp = client.get("/api/data")
    assert resp.status_code == 502
    assert resp.json()["status"] == "error"
    assert session.last_result is None


def test_cache_clear(session, client):
    client.get("/api/data")
    assert client.get("/api/cache/clear").json()["status"] == "success"
    assert session.cache.catalog is None
    assert session.loaded is False


def test_table_and_filter(client):
    rows = client.get("/api/table").json()["rows"]
    assert [r["date"] for r in rows] == ["2024-01-03", "2024-01-02", "2024-01-01"]

    filtered = client.get("/api/table", params={"filter": "01-02"}).json()["rows"]
    assert filtered[0]["values"]["BITCOIN"] == "$43,000"
    assert len(filtered) == 1


def test_export_csv(client):
    resp = client.get("/api/export.csv")
    assert resp.status_code == 200
    assert 'filename="us-liquidity-' in resp.headers["content-disposition"]
    lines = resp.text.split("\n")
    assert lines[0] == "Date,WRESBAL,Bitcoin,SOFR"
    assert lines[1] == "2024-01-01,3200000,42000,5.31"


def test_layout_endpoints(client):
    client.get("/api/data")
    order = client.post("/api/layout/move", json={"from_index": 2, "to_index": 0}).json()["order"]
    assert order == ["SOFR", "WRESBAL_MLN_USD", "BITCOIN"]

    body = client.post("/api/layout/visibility", json={"series_id": "SOFR", "visible": False}).json()
    assert body["visibility"]["SOFR"] is False
    assert [c["id"] for c in client.get("/api/data").json()["cards"]] == ["WRESBAL_MLN_USD", "BITCOIN"]

    assert client.post("/api/layout/visibility", json={"series_id": "NOPE", "visible": True}).status_code == 404
    assert client.post("/api/layout/move", json={"from_index": 0, "to_index": 7}).status_code == 400

    reset = client.post("/api/layout/reset").json()
    assert reset["order"] == ["WRESBAL_MLN_USD", "BITCOIN", "SOFR"]


def test_builder_flow(client):
    state = client.get("/api/builder").json()
    assert [b["seriesId"] for b in state["bindings"]] == ["WRESBAL_MLN_USD", "BITCOIN"]
    assert state["chart"] is None

    chart = client.get("/api/charts/builder").json()
    assert len(chart["traces"]) == 2

    state = client.post("/api/builder/bindings", json={"series_id": "SOFR", "axis": "right"}).json()
    assert [t["seriesId"] for t in state["chart"]["traces"]] == ["WRESBAL_MLN_USD", "BITCOIN", "SOFR"]

    state = client.patch("/api/builder/bindings/0", json={"field": "invertAxis", "value": True}).json()
    assert state["chart"]["leftPriceScale"]["invertScale"] is True

    state = client.post("/api/builder/type", json={"render_type": "bar"}).json()
    assert {t["type"] for t in state["chart"]["traces"]} == {"bar"}
    assert state["defaultType"] == "bar"

    state = client.post("/api/builder/select", json={"series_id": "SOFR"}).json()
    assert state["selectedSeriesId"] == "SOFR"

    state = client.delete("/api/builder/bindings/2").json()
    assert state["selectedSeriesId"] is None
    assert len(state["chart"]["traces"]) == 2


def test_builder_errors(client):
    client.get("/api/builder")
    assert client.post("/api/builder/bindings", json={"series_id": "NOPE"}).status_code == 404
    assert client.post("/api/builder/bindings", json={"series_id": "SOFR", "axis": "up"}).status_code == 400
    assert client.delete("/api/builder/bindings/9").status_code == 404
    assert client.patch("/api/builder/bindings/0", json={"field": "width", "value": 1}).status_code == 400
    assert client.patch("/api/builder/bindings/0", json={"field": "invertAxis", "value": "false"}).status_code == 400
    assert client.post("/api/builder/type", json={"render_type": "pie"}).status_code == 400


def test_builder_choices(client):
    choices = client.get("/api/builder/choices", params={"q": "sofr"}).json()["choices"]
    assert choices == [{"id": "SOFR", "label": "SOFR", "unit": "%", "color": "#f97316", "added": False}]


def test_chart_surfaces(client):
    overview = client.get("/api/charts/overview", params={"type": "area"}).json()
    assert overview["title"] == "Bitcoin vs WRESBAL"
    assert overview["traces"][0]["data"][0] == {"time": 1704067200, "value": 42000.0}

    popup = client.get("/api/charts/popup", params={"series": "SOFR"}).json()
    assert popup["traces"][0]["label"] == "SOFR"

    assert client.get("/api/charts/popup").status_code == 400
    assert client.get("/api/charts/popup", params={"series": "NOPE"}).status_code == 404
    assert client.get("/api/charts/radar").status_code == 404
    assert client.get("/api/charts/overview", params={"type": "pie"}).status_code == 400


def test_tooltip_and_close(client):
    client.get("/api/charts/mini", params={"series": "BITCOIN"})
    tip = client.get("/api/charts/mini/tooltip", params={"time": TS_2024_01_02, "series": "BITCOIN"}).json()
    assert tip["items"][0]["formatted"] == "$43,000"

    assert client.delete("/api/charts/mini", params={"series": "BITCOIN"}).json() == {"closed": 1}
    assert client.delete("/api/charts/mini").json() == {"closed": 0}
