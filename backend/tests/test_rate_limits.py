"""Rate limiting of the public webhook endpoint."""

from __future__ import annotations

import pytest

from conftest import TestConfig, create_app, db


class RateLimitedConfig(TestConfig):
    WEBHOOK_RATE_LIMIT = "3 per minute"


@pytest.fixture(scope="module")
def app():
    app = create_app(RateLimitedConfig)
    ctx = app.app_context()
    ctx.push()
    yield app
    db.session.remove()
    ctx.pop()


def test_webhook_calls_are_rate_limited(client, alice):
    created = client.post(
        "/api/workflows",
        json={"name": "Hook", "trigger": "WEBHOOK", "actions": []},
        headers=alice.headers,
    )
    workflow_id = created.get_json()["id"]

    for _ in range(3):
        response = client.post(f"/api/webhooks/{workflow_id}", json={})
        assert response.status_code == 200

    blocked = client.post(f"/api/webhooks/{workflow_id}", json={})
    assert blocked.status_code == 429
