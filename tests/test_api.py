"""
Tests for the attribution HTTP endpoints
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from attribution_worker.api.v1.attribution import router
from attribution_worker.domains.attribution.models import AttributionStatus
from tests.conftest import FIXED_NOW, USER_ID, make_click

BASE = "/api/v1/attribution"


def sale_payload(sale_id: str = "sale_1", **overrides) -> dict:
    sale = {
        "id": sale_id,
        "user_id": USER_ID,
        "amount": 4900,
        "created_at": FIXED_NOW.isoformat(),
        "customer_ip": "1.2.3.4",
    }
    sale.update(overrides)
    return {"sale": sale}


@pytest.fixture
def app(service):
    app = FastAPI()
    app.include_router(router)
    app.state.attribution_service = service
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


def post_click(client, store, click):
    store.add_click(click)
    return client.post(f"{BASE}/clicks", json=click.model_dump(mode="json"))


class TestClicks:
    def test_record_click(self, client, store):
        response = post_click(client, store, make_click("c1", ip_address="1.2.3.4"))

        assert response.status_code == 200
        assert response.json() == {"click_id": "c1", "recorded": True}

    def test_invalid_click_is_rejected(self, client):
        response = client.post(f"{BASE}/clicks", json={"id": "c1"})

        assert response.status_code == 422

    def test_stats_and_unattributed(self, client, store):
        post_click(client, store, make_click("c1", ip_address="1.2.3.4"))

        stats = client.get(f"{BASE}/clicks/stats").json()
        clicks = client.get(f"{BASE}/clicks/unattributed/{USER_ID}").json()

        assert stats["total_clicks"] == 1
        assert stats["unique_ips"] == 1
        assert [c["id"] for c in clicks] == ["c1"]


class TestSales:
    def test_attribute_sale(self, client, store):
        post_click(client, store, make_click("c1", ip_address="1.2.3.4"))

        response = client.post(f"{BASE}/sales", json=sale_payload())

        body = response.json()
        assert response.status_code == 200
        assert body["attributed"] is True
        assert body["match_type"] == "ip"
        assert body["matched_click"]["id"] == "c1"
        assert body["attribution"]["matched_by"]["kind"] == "exact"

    def test_unattributed_sale(self, client):
        response = client.post(f"{BASE}/sales", json=sale_payload())

        assert response.status_code == 200
        assert response.json()["attributed"] is False

    def test_options_are_validated(self, client):
        payload = sale_payload()
        payload["options"] = {"window_minutes": 0}

        assert client.post(f"{BASE}/sales", json=payload).status_code == 422

    def test_persistence_failure_is_503(self, client, store):
        post_click(client, store, make_click("c1", ip_address="1.2.3.4"))
        store.fail_attribution_writes = True

        response = client.post(f"{BASE}/sales", json=sale_payload())

        assert response.status_code == 503
        assert response.json()["detail"]["error_code"] == "ATTRIBUTION_PERSISTENCE_ERROR"

    def test_service_not_ready(self):
        app = FastAPI()
        app.include_router(router)

        response = TestClient(app).post(f"{BASE}/sales", json=sale_payload())

        assert response.status_code == 503


class TestFeedback:
    def _attribution_id(self, client, store) -> str:
        post_click(client, store, make_click("c1", ip_address="1.2.3.4"))
        return client.post(f"{BASE}/sales", json=sale_payload()).json()["attribution"]["id"]

    def test_confirm(self, client, store):
        attribution_id = self._attribution_id(client, store)

        response = client.post(f"{BASE}/{attribution_id}/feedback", json={"confirmed": True})

        assert response.status_code == 200
        assert response.json()["status"] == AttributionStatus.CONFIRMED.value

    def test_already_reviewed_is_409(self, client, store):
        attribution_id = self._attribution_id(client, store)
        client.post(f"{BASE}/{attribution_id}/feedback", json={"confirmed": False})

        response = client.post(f"{BASE}/{attribution_id}/feedback", json={"confirmed": True})

        assert response.status_code == 409
        assert response.json()["detail"]["error_code"] == "ATTRIBUTION_INVALID_TRANSITION"

    def test_unknown_is_404(self, client):
        response = client.post(f"{BASE}/missing/feedback", json={"confirmed": True})

        assert response.status_code == 404

    def test_store_outage_is_503(self, client, store):
        attribution_id = self._attribution_id(client, store)
        store.fail_attribution_writes = True

        response = client.post(f"{BASE}/{attribution_id}/feedback", json={"confirmed": True})

        assert response.status_code == 503
        assert response.json()["detail"]["details"] == {"attribution_id": attribution_id}


class TestModel:
    def test_model_status(self, client):
        body = client.get(f"{BASE}/model").json()

        assert body["model"]["weights"]["version"] == "v1.0.0"
        assert body["model"]["is_learning"] is False
        assert body["health"]["healthy"] is False
        assert body["cache"] is None

    def test_extended_status_includes_cache(self, client):
        body = client.get(f"{BASE}/model/extended").json()

        assert body["cache"]["connected"] is True
        assert body["cache"]["total_operations"] >= 1

    def test_health(self, client):
        body = client.get(f"{BASE}/model/health").json()

        assert any("training samples" in w for w in body["warnings"])


class TestContent:
    def test_attribute_content(self, client):
        payload = {
            "content": {
                "id": "content_1",
                "platform": "twitter",
                "author_id": "author_1",
                "text": "gm $WOLF",
                "posted_at": FIXED_NOW.isoformat(),
            },
            "projects": [
                {
                    "id": "proj_wolf",
                    "name": "Wolf Pack",
                    "token_symbol": "WOLF",
                    "social_links": [
                        {
                            "id": "link_wolf",
                            "project_id": "proj_wolf",
                            "platform": "twitter",
                            "account_id": "author_1",
                        }
                    ],
                }
            ],
        }

        response = client.post(f"{BASE}/content", json=payload)

        assert response.status_code == 200
        match = response.json()["matches"][0]
        assert match["reason"] == "cashtag"
        assert match["confidence"] == 1.0
