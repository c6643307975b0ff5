"""Integration tests for /users endpoints (app/routers/users.py)"""
from datetime import datetime, timezone
from unittest.mock import patch

from app.integrations.chain import CreatorInfo


class TestMe:
    def test_profile(self, client_with_creator):
        client, _, creator = client_with_creator

        response = client.get("/users/me")

        assert response.status_code == 200
        assert response.json()["referral_code"] == "CREATOR1"
        assert response.json()["is_creator"] is True


class TestSyncCreator:
    def test_registered_on_chain_sets_flag_and_timestamp(self, client_with_buyer):
        client, mock_db, buyer = client_with_buyer

        with patch("app.routers.users.chain.is_registered_creator", return_value=True), \
                patch("app.routers.users.chain.get_creator_info",
                      return_value=CreatorInfo(registered=True, paid_usd=25, paid_at=1700000000)):
            response = client.post("/users/me/sync-creator")

        assert response.status_code == 200
        assert response.json()["is_creator"] is True
        assert buyer.is_creator is True
        assert buyer.creator_registered_at == datetime.fromtimestamp(1700000000, tz=timezone.utc)
        mock_db.commit.assert_called_once()

    def test_registry_without_details_uses_now(self, client_with_buyer):
        client, _, buyer = client_with_buyer

        with patch("app.routers.users.chain.is_registered_creator", return_value=True), \
                patch("app.routers.users.chain.get_creator_info", return_value=None):
            response = client.post("/users/me/sync-creator")

        assert response.json()["is_creator"] is True
        assert buyer.creator_registered_at is not None

    def test_not_registered_clears_flag(self, client_with_creator):
        client, mock_db, creator = client_with_creator

        with patch("app.routers.users.chain.is_registered_creator", return_value=False):
            response = client.post("/users/me/sync-creator")

        assert response.json() == {"is_creator": False, "registered_at": None}
        assert creator.is_creator is False
        mock_db.commit.assert_called_once()

    def test_not_registered_member_untouched(self, client_with_buyer):
        client, mock_db, _ = client_with_buyer

        with patch("app.routers.users.chain.is_registered_creator", return_value=False):
            response = client.post("/users/me/sync-creator")

        assert response.json()["is_creator"] is False
        mock_db.commit.assert_not_called()

    def test_out_of_range_registry_timestamp_falls_back_to_now(self, client_with_buyer):
        client, _, buyer = client_with_buyer

        with patch("app.routers.users.chain.is_registered_creator", return_value=True), \
                patch("app.routers.users.chain.get_creator_info",
                      return_value=CreatorInfo(registered=True, paid_usd=25, paid_at=2 ** 255)):
            response = client.post("/users/me/sync-creator")

        assert response.status_code == 200
        assert response.json()["is_creator"] is True
        assert buyer.creator_registered_at.tzinfo is not None
        assert buyer.creator_registered_at.year < 3000
