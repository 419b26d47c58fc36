"""Tests for the metric store REST API."""

from __future__ import annotations

from backend.app.extensions import db
from backend.app.models.metric import Metric, MetricEntry


def _create_metric(client, user, **overrides) -> dict[str, object]:
    payload = {"name": "Weight", "type": "NUMBER", "unit": "kg", "category": "health"}
    payload.update(overrides)
    response = client.post("/api/metrics", json=payload, headers=user.headers)
    assert response.status_code == 201
    return response.get_json()


def _log(client, user, metric_id: str, value, date: str | None = None):
    payload: dict[str, object] = {"value": value}
    if date is not None:
        payload["date"] = date
    return client.post(f"/api/metrics/{metric_id}/entries", json=payload, headers=user.headers)


def test_create_metric_defaults(client, alice):
    created = _create_metric(client, alice, target=75)
    assert created["name"] == "Weight"
    assert created["type"] == "NUMBER"
    assert created["target"] == 75
    assert created["isArchived"] is False
    assert created["entries"] == []
    assert created["trend"] is None


def test_create_metric_validation(client, alice):
    missing_name = client.post(
        "/api/metrics", json={"name": "  ", "type": "NUMBER"}, headers=alice.headers
    )
    assert missing_name.status_code == 400
    assert "name is required" in missing_name.get_json()["errors"]

    bad_type = client.post(
        "/api/metrics", json={"name": "Mood", "type": "VIBES"}, headers=alice.headers
    )
    assert bad_type.status_code == 400

    bad_target = client.post(
        "/api/metrics",
        json={"name": "Mood", "type": "NUMBER", "target": "lots"},
        headers=alice.headers,
    )
    assert bad_target.status_code == 400


def test_update_is_partial(client, alice):
    created = _create_metric(client, alice, description="Morning weight")

    response = client.patch(
        f"/api/metrics/{created['id']}", json={"unit": "lb"}, headers=alice.headers
    )
    assert response.status_code == 200
    updated = response.get_json()
    assert updated["unit"] == "lb"
    assert updated["name"] == "Weight"
    assert updated["description"] == "Morning weight"
    assert updated["category"] == "health"

    cleared = client.patch(
        f"/api/metrics/{created['id']}", json={"description": None}, headers=alice.headers
    )
    assert cleared.get_json()["description"] is None
    assert cleared.get_json()["unit"] == "lb"

    invalid = client.patch(
        f"/api/metrics/{created['id']}", json={"name": ""}, headers=alice.headers
    )
    assert invalid.status_code == 400


def test_archived_metric_leaves_active_listing(client, alice):
    kept = _create_metric(client, alice, name="Steps")
    archived = _create_metric(client, alice, name="Old")

    response = client.post(f"/api/metrics/{archived['id']}/archive", headers=alice.headers)
    assert response.status_code == 200
    assert response.get_json()["isArchived"] is True

    listed = client.get("/api/metrics", headers=alice.headers).get_json()
    assert [metric["id"] for metric in listed] == [kept["id"]]

    still_queryable = client.get(f"/api/metrics/{archived['id']}", headers=alice.headers)
    assert still_queryable.status_code == 200
    assert still_queryable.get_json()["isArchived"] is True


def test_listing_is_newest_first_with_entry_limit(client, alice):
    first = _create_metric(client, alice, name="First")
    second = _create_metric(client, alice, name="Second")
    for day in range(1, 5):
        assert _log(client, alice, first["id"], day * 10, f"2024-01-0{day}T08:00:00Z").status_code == 201

    listed = client.get("/api/metrics?entries=2", headers=alice.headers).get_json()
    assert [metric["id"] for metric in listed] == [second["id"], first["id"]]
    entries = listed[1]["entries"]
    assert [entry["value"] for entry in entries] == [40, 30]
    assert listed[1]["trend"] == (40 - 30) / 30 * 100


def test_log_entry_defaults_and_validation(client, alice):
    metric = _create_metric(client, alice)

    response = _log(client, alice, metric["id"], "81.5")
    assert response.status_code == 201
    entry = response.get_json()
    assert entry["value"] == 81.5
    assert entry["date"] is not None
    assert entry["note"] is None

    assert _log(client, alice, metric["id"], "heavy").status_code == 400
    assert _log(client, alice, metric["id"], None).status_code == 400
    assert _log(client, alice, metric["id"], True).status_code == 400
    assert _log(client, alice, metric["id"], 80, "yesterday").status_code == 400

    array_body = client.post(
        f"/api/metrics/{metric['id']}/entries", json=[5], headers=alice.headers
    )
    assert array_body.status_code == 400
    assert array_body.get_json()["errors"] == ["request body must be a JSON object"]


def test_entry_history_newest_first(client, alice):
    metric = _create_metric(client, alice)
    _log(client, alice, metric["id"], 100, "2024-02-01T00:00:00Z")
    _log(client, alice, metric["id"], 80, "2024-03-01T00:00:00Z")
    _log(client, alice, metric["id"], 90, "2024-01-01T00:00:00Z")

    history = client.get(
        f"/api/metrics/{metric['id']}/entries?limit=2", headers=alice.headers
    ).get_json()
    assert [entry["value"] for entry in history] == [80, 100]
    assert history[0]["date"] == "2024-03-01T00:00:00Z"


def test_trend_reported_on_detail(client, alice):
    metric = _create_metric(client, alice)
    _log(client, alice, metric["id"], 80, "2024-01-01T00:00:00Z")
    _log(client, alice, metric["id"], 100, "2024-01-02T00:00:00Z")

    detail = client.get(f"/api/metrics/{metric['id']}", headers=alice.headers).get_json()
    assert detail["trend"] == 25.0


def test_delete_cascades_entries(client, alice):
    metric = _create_metric(client, alice)
    for value in (1, 2, 3):
        _log(client, alice, metric["id"], value)

    response = client.delete(f"/api/metrics/{metric['id']}", headers=alice.headers)
    assert response.status_code == 204
    assert db.session.get(Metric, metric["id"]) is None
    assert MetricEntry.query.filter_by(metric_id=metric["id"]).count() == 0

    assert client.get(f"/api/metrics/{metric['id']}", headers=alice.headers).status_code == 404


def test_other_users_metrics_are_not_found(client, alice, bob):
    metric = _create_metric(client, alice)
    metric_id = metric["id"]

    assert client.get(f"/api/metrics/{metric_id}", headers=bob.headers).status_code == 404
    assert (
        client.patch(f"/api/metrics/{metric_id}", json={"name": "Mine"}, headers=bob.headers).status_code
        == 404
    )
    assert client.post(f"/api/metrics/{metric_id}/archive", headers=bob.headers).status_code == 404
    assert client.delete(f"/api/metrics/{metric_id}", headers=bob.headers).status_code == 404
    assert _log(client, bob, metric_id, 1).status_code == 404
    assert client.get(f"/api/metrics/{metric_id}/entries", headers=bob.headers).status_code == 404
    assert client.get("/api/metrics", headers=bob.headers).get_json() == []

    not_found = client.get(f"/api/metrics/{metric_id}", headers=bob.headers).get_json()
    assert not_found == {"error": "metric not found"}

    untouched = client.get(f"/api/metrics/{metric_id}", headers=alice.headers).get_json()
    assert untouched["name"] == "Weight"
    assert untouched["entries"] == []
