"""Tests for user provisioning (app/services/users.py)"""
import pytest
from sqlalchemy.exc import IntegrityError

from app.models.referral_stats import ReferralStats
from app.models.user import User, UserRole
from app.services import users
from app.services.errors import CodeAllocationError

from conftest import make_user

WALLET = "0x" + "Ab" * 20


def _added(mock_db, cls):
    return [c[0][0] for c in mock_db.add.call_args_list if isinstance(c[0][0], cls)]


class TestGetOrCreate:
    def test_existing_user_returned_untouched(self, mock_db):
        existing = make_user(id=4, address=WALLET.lower())
        mock_db.first.return_value = existing

        user, created = users.get_or_create(mock_db, WALLET, referral_code="FRIEND01")

        assert user is existing
        assert created is False
        mock_db.add.assert_not_called()

    def test_new_user_gets_code_stats_row_and_referrer(self, mock_db):
        referrer = make_user(id=7, address="0x" + "f" * 40, referral_code="FRIEND01")
        mock_db.first.side_effect = [None, referrer]

        user, created = users.get_or_create(mock_db, WALLET, referral_code="friend01")

        assert created is True
        assert isinstance(user, User)
        assert user.address == WALLET.lower()
        assert user.referred_by == 7
        assert len(user.referral_code) == 8
        assert len(_added(mock_db, ReferralStats)) == 1
        mock_db.commit.assert_called_once()

    def test_unknown_code_signs_up_without_referrer(self, mock_db):
        mock_db.first.side_effect = [None, None]

        user, created = users.get_or_create(mock_db, WALLET, referral_code="NOPE0000")

        assert created is True
        assert user.referred_by is None

    def test_own_wallet_code_ignored(self, mock_db):
        same_wallet = make_user(id=7, address=WALLET.lower(), referral_code="SELF0001")
        mock_db.first.side_effect = [None, same_wallet]

        user, _ = users.get_or_create(mock_db, WALLET, referral_code="SELF0001")

        assert user.referred_by is None

    def test_role_applied_on_creation(self, mock_db):
        user, _ = users.get_or_create(mock_db, WALLET, role=UserRole.ADMIN)

        assert user.role == UserRole.ADMIN

    def test_code_collision_retries(self, mock_db):
        mock_db.flush.side_effect = [IntegrityError("INSERT INTO users", {}, Exception("uq")), None]

        user, created = users.get_or_create(mock_db, WALLET)

        assert created is True
        assert len(_added(mock_db, User)) == 2
        mock_db.commit.assert_called_once()

    def test_concurrent_sign_up_returns_winner(self, mock_db):
        winner = make_user(id=11, address=WALLET.lower())
        mock_db.first.side_effect = [None, winner]
        mock_db.flush.side_effect = IntegrityError("INSERT INTO users", {}, Exception("uq_address"))

        user, created = users.get_or_create(mock_db, WALLET)

        assert user is winner
        assert created is False
        mock_db.commit.assert_not_called()

    def test_gives_up_after_repeated_collisions(self, mock_db):
        mock_db.flush.side_effect = IntegrityError("INSERT INTO users", {}, Exception("uq"))

        with pytest.raises(CodeAllocationError):
            users.get_or_create(mock_db, WALLET)
