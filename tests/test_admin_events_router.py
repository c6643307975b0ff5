"""Integration tests for /admin/events endpoints (app/routers/admin_events.py)"""
from datetime import datetime
from unittest.mock import Mock, patch

from app.models.event import Event, EventStatus
from app.services.purchases import EVENT_CREATOR_STATS, EVENT_REFERRAL_CREDIT


def _mock_event(id=1, status=EventStatus.PROCESSED, event_type=EVENT_REFERRAL_CREDIT, target_id=None):
    ev = Mock(spec=Event)
    ev.id = id
    ev.type = event_type
    ev.status = status
    ev.target_id = target_id
    ev.actor_id = 2
    ev.purchase_id = 100
    ev.payload = {}
    ev.error_message = None
    ev.attempts = 1
    ev.created_at = datetime(2024, 1, 1, 0, 0, 0)
    ev.resolved_at = None
    return ev


class TestListEvents:
    def test_admin_gets_event_list(self, client_with_admin):
        client, mock_db, _ = client_with_admin
        mock_db.count.return_value = 2
        mock_db.all.return_value = [_mock_event(id=1), _mock_event(id=2)]

        response = client.get("/admin/events")

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert data["failed_total"] == 2
        assert data["items"][0]["purchase_id"] == 100

    def test_filter_by_status_failed(self, client_with_admin):
        client, mock_db, _ = client_with_admin
        mock_db.count.return_value = 1
        mock_db.all.return_value = [_mock_event(id=3, status=EventStatus.FAILED)]

        response = client.get("/admin/events?status=failed")

        assert response.status_code == 200
        assert response.json()["items"][0]["status"] == "failed"

    def test_invalid_status_returns_400(self, client_with_admin):
        client, _, _ = client_with_admin

        response = client.get("/admin/events?status=not_a_real_status")

        assert response.status_code == 400

    def test_non_admin_forbidden(self, client_with_buyer):
        client, _, _ = client_with_buyer

        response = client.get("/admin/events")

        assert response.status_code == 403


class TestRetryEvent:
    def test_retry_failed_referral_credit(self, client_with_admin):
        client, mock_db, admin = client_with_admin
        mock_db.first.return_value = _mock_event(id=5, status=EventStatus.FAILED, target_id=7)

        # Local import in the router: patch where the task lives
        with patch("app.tasks.credit_referral_for_event") as task:
            response = client.post("/admin/events/5/retry")

        assert response.status_code == 200
        task.delay.assert_called_once_with(5)
        audit = mock_db.add.call_args[0][0]
        assert audit.type == "admin.manual_retry"
        assert audit.actor_id == admin.id
        mock_db.commit.assert_called_once()

    def test_processed_event_returns_400(self, client_with_admin):
        client, mock_db, _ = client_with_admin
        mock_db.first.return_value = _mock_event(id=6, status=EventStatus.PROCESSED)

        with patch("app.tasks.credit_referral_for_event") as task:
            response = client.post("/admin/events/6/retry")

        assert response.status_code == 400
        task.delay.assert_not_called()

    def test_stats_event_not_retryable(self, client_with_admin):
        client, mock_db, _ = client_with_admin
        mock_db.first.return_value = _mock_event(id=7, status=EventStatus.FAILED, event_type=EVENT_CREATOR_STATS)

        response = client.post("/admin/events/7/retry")

        assert response.status_code == 400

    def test_missing_event_returns_404(self, client_with_admin):
        client, _, _ = client_with_admin

        response = client.post("/admin/events/999/retry")

        assert response.status_code == 404
