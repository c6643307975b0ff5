"""Tests for course entitlement resolution"""
from unittest.mock import Mock, patch

from app.models.purchase import Purchase
from app.services.entitlement import has_access, resolve_access

from conftest import make_course

VIEWER_ADDRESS = "0x" + "b" * 40


class TestResolveAccess:
    def test_free_course_open_to_anonymous(self, mock_db):
        course = make_course(is_free=True)

        decision = resolve_access(mock_db, course)

        assert decision.has_access is True
        assert decision.reason == "free"
        mock_db.query.assert_not_called()

    def test_creator_sees_own_paid_course(self, mock_db):
        course = make_course(creator_id=1)

        decision = resolve_access(mock_db, course, viewer_id=1)

        assert decision.reason == "creator"
        mock_db.query.assert_not_called()

    def test_buyer_with_purchase(self, mock_db):
        purchase = Mock(spec=Purchase)
        mock_db.first.return_value = purchase

        decision = resolve_access(mock_db, make_course(), viewer_id=2)

        assert decision.has_access is True
        assert decision.reason == "purchase"
        assert decision.purchase is purchase

    def test_anonymous_paid_course_denied(self, mock_db):
        assert has_access(mock_db, make_course()) is False

    def test_purchase_checked_before_chain(self, mock_db):
        mock_db.first.return_value = Mock(spec=Purchase)
        course = make_course(on_chain_id=4)

        with patch("app.services.entitlement.chain.has_on_chain_access") as on_chain:
            decision = resolve_access(mock_db, course, viewer_id=2, viewer_address=VIEWER_ADDRESS)

        assert decision.reason == "purchase"
        on_chain.assert_not_called()

    def test_on_chain_ownership_grants_access(self, mock_db):
        course = make_course(on_chain_id=4)

        with patch("app.services.entitlement.chain.has_on_chain_access", return_value=True) as on_chain:
            decision = resolve_access(mock_db, course, viewer_id=2, viewer_address=VIEWER_ADDRESS)

        assert decision.reason == "on_chain"
        on_chain.assert_called_once_with(4, VIEWER_ADDRESS)

    def test_on_chain_checked_for_anonymous_wallet(self, mock_db):
        course = make_course(on_chain_id=4)

        with patch("app.services.entitlement.chain.has_on_chain_access", return_value=True):
            assert has_access(mock_db, course, viewer_address=VIEWER_ADDRESS) is True

    def test_course_without_chain_id_skips_oracle(self, mock_db):
        with patch("app.services.entitlement.chain.has_on_chain_access") as on_chain:
            assert has_access(mock_db, make_course(), viewer_id=2, viewer_address=VIEWER_ADDRESS) is False

        on_chain.assert_not_called()

    def test_oracle_failure_denies_access(self, mock_db):
        course = make_course(on_chain_id=4)

        with patch("app.services.entitlement.chain.has_on_chain_access", side_effect=RuntimeError("node down")):
            decision = resolve_access(mock_db, course, viewer_id=2, viewer_address=VIEWER_ADDRESS)

        assert decision.has_access is False
        assert not decision
