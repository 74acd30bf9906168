"""
Integration tests for the HTTP API.

The app runs through FastAPI's TestClient against a temporary DuckDB
store installed as the shared store instance.
"""
import asyncio
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock, patch
from urllib.parse import quote

import pytest
from fastapi.testclient import TestClient

import origin_tracker.store as store_module
from origin_tracker.exceptions import QueryTimeoutError, StoreError
from origin_tracker.store import OriginStore
from web.main import app
from web.routes.api._deps import limiter

COOKIE = "wc_order_origin"
HTML = {"Accept": "text/html,application/xhtml+xml,*/*;q=0.8"}


@pytest.fixture
def api_store(tmp_path, monkeypatch):
    """Temporary store with every optional table, used as the app's store."""
    origin_store = OriginStore(
        db_path=tmp_path / "api.duckdb",
        create_hpos_tables=True,
        create_attribution_table=True,
    )
    asyncio.run(origin_store.connect())
    monkeypatch.setattr(store_module, "_store_instance", origin_store)
    monkeypatch.setattr(limiter, "enabled", False)
    yield origin_store
    asyncio.run(origin_store.close())


@pytest.fixture
def client(api_store):
    return TestClient(app)


def seed(coro):
    asyncio.run(coro)


class TestHealth:
    """Health, stats and metrics endpoints."""

    def test_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["store"]["status"] == "connected"
        assert data["scheme"] == "legacy_origin"
        assert "X-Request-ID" in response.headers

    def test_request_id_is_echoed(self, client):
        response = client.get("/api/health", headers={"X-Request-ID": "abc123"})
        assert response.headers["X-Request-ID"] == "abc123"

    def test_store_stats(self, client, api_store):
        seed(api_store.upsert_attribution(1, "direct"))

        data = client.get("/api/store/stats").json()

        assert data["status"] == "connected"
        assert data["attribution_rows"] == 1
        assert data["availability"]["wc_attribution"] == 1
        assert data["connection"]["status"] == "active"

    def test_metrics(self, client):
        client.get("/api/origin/resolve", params={"url": "https://shop.example/"})
        data = client.get("/api/metrics").json()

        assert "GET /api/origin/resolve" in data["requests"]
        assert "schemes" in data


class TestOriginResolve:
    """Landing page origin resolution used by tracker.js."""

    def test_utm(self, client):
        response = client.get(
            "/api/origin/resolve",
            params={"url": "https://shop.example/p?utm_source=google&utm_medium=cpc"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["origin"] == "UTM: google / cpc"
        assert data["cookie_name"] == COOKIE
        assert data["max_age_seconds"] == 30 * 24 * 60 * 60

    def test_referral(self, client):
        data = client.get(
            "/api/origin/resolve",
            params={"url": "https://shop.example/", "referrer": "https://blog.example/post"},
        ).json()
        assert data["origin"] == "Referral: blog.example"

    def test_same_site_referrer_is_direct(self, client):
        data = client.get(
            "/api/origin/resolve",
            params={"url": "https://shop.example/", "referrer": "https://www.shop.example/cart"},
        ).json()
        assert data["origin"] == "Direct"

    def test_url_required(self, client):
        assert client.get("/api/origin/resolve").status_code == 422


class TestCheckoutHook:
    """Persisting the origin when an order is created."""

    def test_saves_cookie_value(self, client, api_store):
        seed(api_store.upsert_post_order(7, datetime(2026, 3, 10, 9)))
        client.cookies.set(COOKIE, quote("Referral: blog.example", safe=""))

        response = client.post("/api/checkout/orders/7/origin")

        assert response.status_code == 200
        assert response.json() == {"order_id": 7, "saved": True, "origin": "Referral: blog.example"}

    def test_body_wins_over_cookie(self, client, api_store):
        seed(api_store.upsert_post_order(7, datetime(2026, 3, 10, 9)))
        client.cookies.set(COOKIE, "Direct")

        data = client.post("/api/checkout/orders/7/origin", json={"origin": "UTM: google"}).json()
        assert data["origin"] == "UTM: google"

    def test_no_origin(self, client, api_store):
        seed(api_store.upsert_post_order(7, datetime(2026, 3, 10, 9)))

        data = client.post("/api/checkout/orders/7/origin").json()
        assert data == {"order_id": 7, "saved": False, "origin": None}

    def test_unknown_order(self, client):
        response = client.post("/api/checkout/orders/999/origin", json={"origin": "Direct"})
        assert response.status_code == 404


class TestOrders:
    """Order detail and recent-orders list."""

    def test_order_detail(self, client, api_store):
        seed(api_store.upsert_post_order(3, datetime(2026, 3, 10, 9)))
        seed(api_store.upsert_post_meta(3, "_order_origin", "Direct"))

        data = client.get("/api/orders/3/origin").json()
        assert data["custom_origin"] == "Direct"
        assert data["attribution"] is None

    def test_order_detail_not_found(self, client):
        assert client.get("/api/orders/404/origin").status_code == 404

    def test_recent(self, client, api_store):
        seed(api_store.upsert_post_order(3, datetime(2026, 3, 10, 9)))
        seed(api_store.upsert_post_meta(3, "_order_origin", "Direct"))

        data = client.get("/api/orders/recent", params={"limit": 5}).json()
        assert data["count"] == 1
        assert data["orders"][0]["origin"] == "Direct"

    def test_recent_limit_bounds(self, client):
        assert client.get("/api/orders/recent", params={"limit": 0}).status_code == 422


class TestSettings:
    """Ad spend and manual date override."""

    def test_ad_spend_by_dates(self, client):
        response = client.post(
            "/api/ad-spend",
            json={"start_date": "2026-03-01", "end_date": "2026-03-07", "amount": "120.50"},
        )

        assert response.status_code == 200
        assert response.json()["date_range_key"] == "2026-03-01_to_2026-03-07"
        assert client.get("/api/ad-spend").json()["ad_spend"] == {"2026-03-01_to_2026-03-07": 120.5}

    def test_ad_spend_by_key(self, client):
        response = client.post(
            "/api/ad-spend", json={"date_range_key": "2026-03-08_to_2026-03-10", "amount": 40}
        )
        assert response.status_code == 200
        assert response.json()["amount"] == 40.0

    def test_negative_ad_spend_rejected(self, client):
        response = client.post("/api/ad-spend", json={"date_range_key": "2026-03-08_to_2026-03-10", "amount": -1})
        assert response.status_code == 400

    def test_date_override_set_and_clear(self, client):
        data = client.post("/api/settings/date-override", json={"date": "2025-07-08"}).json()
        assert data == {"date": "2025-07-08", "today": "2025-07-08", "date_source": "manual_override"}
        assert client.get("/api/settings/date-override").json()["date"] == "2025-07-08"

        data = client.post("/api/settings/date-override", json={"date": ""}).json()
        assert data["date"] is None
        assert data["date_source"] == "system"

    def test_invalid_date_override(self, client):
        response = client.post("/api/settings/date-override", json={"date": "08.07.2025"})
        assert response.status_code == 400


class TestReport:
    """Origin report endpoint."""

    def test_today_report(self, client, api_store):
        """Today's report counts orders without attribution as Direct."""
        client.post("/api/settings/date-override", json={"date": "2026-03-10"})
        seed(api_store.upsert_post_order(1, datetime(2026, 3, 10, 9)))
        seed(api_store.upsert_attribution(1, "utm", source="facebook", medium="paid"))
        seed(api_store.upsert_post_order(2, datetime(2026, 3, 10, 10)))

        response = client.post("/api/report", json={"period": "today"})

        assert response.status_code == 200
        data = response.json()
        assert data["is_today"] is True
        assert data["scheme"] == "wc_attribution"
        counts = {row["origin"]: row["order_count"] for row in data["results"]}
        assert counts == {"Sales from FB ADS": 3, "Direct": 1}
        assert data["comparison"]["today_orders"] == 2

    def test_report_with_spend(self, client, api_store):
        seed(api_store.upsert_post_order(1, datetime(2026, 3, 8, 9)))
        seed(api_store.upsert_attribution(1, "utm", source="120226527565230138", medium="paid"))
        client.post("/api/ad-spend", json={"date_range_key": "2026-03-08_to_2026-03-09", "amount": 19})

        data = client.post(
            "/api/report", json={"start_date": "2026-03-08", "end_date": "2026-03-09"}
        ).json()

        assert data["ad_spend_key"] == "2026-03-08_to_2026-03-09"
        assert data["roas"]["facebook_orders"] == 3
        assert data["roas"]["ad_spend"] == 19.0
        assert data["roas"]["roas"] == 3.0

    def test_report_without_body(self, client):
        response = client.post("/api/report")
        assert response.status_code == 200
        assert response.json()["results"] == []

    def test_invalid_dates(self, client):
        response = client.post("/api/report", json={"start_date": "2026-03-09", "end_date": "2026-03-01"})
        assert response.status_code == 400

    def test_invalid_filter_values(self, client):
        response = client.post("/api/report", json={"utm_sources": ["x" * 300]})
        assert response.status_code == 400

    @pytest.mark.parametrize("error, status", [
        (StoreError("PixelYourSite enrich data is not available", table="postmeta"), 503),
        (QueryTimeoutError("SELECT * FROM postmeta", 30.0), 504),
    ])
    def test_storage_failures(self, client, error, status):
        """Storage errors map to 503 and query timeouts to 504."""
        service = MagicMock()
        service.build_report = AsyncMock(side_effect=error)
        with patch("web.routes.api.report.get_report_service", AsyncMock(return_value=service)):
            response = client.post("/api/report", json={"period": "week"})
        assert response.status_code == status


class TestStorefront:
    """Tracker script and the server-side first-touch cookie."""

    def test_tracker_script(self, client):
        response = client.get("/tracker.js")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/javascript")
        assert COOKIE in response.text

    def test_first_touch_cookie_set(self, client):
        response = client.get("/landing", params={"utm_source": "google", "utm_medium": "cpc"}, headers=HTML)
        assert response.cookies.get(COOKIE) == quote("UTM: google / cpc", safe="")

    def test_existing_cookie_kept(self, client):
        client.cookies.set(COOKIE, "Direct")
        response = client.get("/landing", params={"utm_source": "google"}, headers=HTML)
        assert COOKIE not in response.cookies

    def test_api_requests_never_record(self, client):
        response = client.get("/api/health", params={"utm_source": "google"}, headers=HTML)
        assert COOKIE not in response.cookies

    @pytest.mark.parametrize("path", ["/favicon.ico", "/robots.txt", "/wp-content/theme/style.css"])
    def test_asset_requests_never_record(self, client, path):
        response = client.get(path, params={"utm_source": "google"}, headers=HTML)
        assert COOKIE not in response.cookies

    def test_non_html_requests_never_record(self, client):
        """Only requests that accept HTML are page loads."""
        response = client.get("/landing", params={"utm_source": "google"}, headers={"Accept": "application/json"})
        assert COOKIE not in response.cookies
