"""Integration tests for analytics and vCard settings endpoints."""

from fastapi.testclient import TestClient

from src.schemas.common import utc_now
from tests.fakes import ACCOUNT_ID, OTHER_ACCOUNT_ID, FakeSupabase

PHOTO = "data:image/png;base64,iVBORw0KGgo="


class TestAnalyticsRoutes:
    """Tests for /api/v1/analytics."""

    def test_rollup(self, authed_client: TestClient, fake_db: FakeSupabase) -> None:
        fake_db.seed("leads", {"user_id": ACCOUNT_ID, "handle": "jess", "name": "Ann", "email": "ann@x.io"})

        response = authed_client.get("/api/v1/analytics", params={"accountId": ACCOUNT_ID, "days": 7})

        assert response.status_code == 200
        data = response.json()
        assert data["days"] == 7
        assert data["totals"]["leads"] == 1
        assert data["totals"]["conversion"] == 0.0
        assert len(data["timeline"]) == 7
        assert data["timeline"][-1] == {"date": utc_now().date().isoformat(), "scans": 0, "leads": 1}

    def test_days_out_of_range(self, authed_client: TestClient) -> None:
        response = authed_client.get("/api/v1/analytics", params={"days": 0})

        assert response.status_code == 422

    def test_csv_export(self, authed_client: TestClient) -> None:
        response = authed_client.get("/api/v1/analytics/export", params={"days": 14})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert response.headers["content-disposition"] == 'attachment; filename="linket-analytics-14d.csv"'
        lines = response.text.splitlines()
        assert lines[0] == "date,scans,leads"
        assert len(lines) == 15

    def test_other_account_is_forbidden(self, authed_client: TestClient) -> None:
        response = authed_client.get("/api/v1/analytics", params={"accountId": OTHER_ACCOUNT_ID})

        assert response.status_code == 403


class TestVCardProfileRoutes:
    """Tests for /api/v1/vcard/profile."""

    def test_empty_by_default(self, authed_client: TestClient) -> None:
        response = authed_client.get("/api/v1/vcard/profile", params={"accountId": ACCOUNT_ID})

        assert response.status_code == 200
        assert response.json()["full_name"] is None

    def test_save_and_load(self, authed_client: TestClient) -> None:
        response = authed_client.put(
            "/api/v1/vcard/profile",
            json={
                "accountId": ACCOUNT_ID,
                "fields": {"fullName": "Jess Lee", "company": "Acme", "photoData": PHOTO, "photoName": "me.png"},
            },
        )

        assert response.status_code == 200
        loaded = authed_client.get("/api/v1/vcard/profile").json()
        assert loaded["full_name"] == "Jess Lee"
        assert loaded["company"] == "Acme"
        assert loaded["photo_name"] == "me.png"

    def test_bad_photo(self, authed_client: TestClient) -> None:
        response = authed_client.put(
            "/api/v1/vcard/profile",
            json={"accountId": ACCOUNT_ID, "fields": {"photoData": "https://x/y.png"}},
        )

        assert response.status_code == 422
        assert response.json()["details"][0]["loc"] == ["photo_data"]

    def test_other_account_is_forbidden(self, authed_client: TestClient) -> None:
        response = authed_client.put("/api/v1/vcard/profile", json={"userId": OTHER_ACCOUNT_ID, "fields": {}})

        assert response.status_code == 403
