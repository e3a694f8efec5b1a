"""Unit tests for the access evaluator and request workflow (repositories mocked)."""

from unittest.mock import MagicMock

import pytest

from models.card_request import (
    APPROVED,
    PENDING,
    REJECTED,
    CardRequest,
    InvalidStatusError,
    validate_status,
)
from services.access_service import AccessService
from services.request_service import RequestService


# ── Access control ────────────────────────────────────────

class TestAccessService:

    def test_admin_bypass_skips_lookup(self):
        repo = MagicMock()
        service = AccessService(repo)
        assert service.has_access(user_id=1, card_id=99, is_admin=True) is True
        repo.exists.assert_not_called()

    def test_default_deny(self):
        repo = MagicMock()
        repo.exists.return_value = False
        assert AccessService(repo).has_access(1, 99, is_admin=False) is False
        repo.exists.assert_called_once_with(99, 1)

    def test_grant_row_allows(self):
        repo = MagicMock()
        repo.exists.return_value = True
        assert AccessService(repo).has_access(1, 99, is_admin=False) is True

    def test_grant_and_revoke_delegate(self):
        repo = MagicMock()
        repo.grant.return_value = True
        repo.revoke.return_value = False
        service = AccessService(repo)
        assert service.grant_access(5, 2) is True
        assert service.revoke_access(5, 2) is False
        repo.grant.assert_called_once_with(5, 2)
        repo.revoke.assert_called_once_with(5, 2)


# ── Request statuses ──────────────────────────────────────

class TestValidateStatus:

    @pytest.mark.parametrize("raw, expected", [
        ("pending", PENDING),
        ("APPROVED", APPROVED),
        (" rejected ", REJECTED),
    ])
    def test_accepted(self, raw, expected):
        assert validate_status(raw) == expected

    @pytest.mark.parametrize("raw", ["done", "", None, "approve"])
    def test_rejected(self, raw):
        with pytest.raises(InvalidStatusError):
            validate_status(raw)

    def test_invalid_status_is_a_value_error(self):
        assert issubclass(InvalidStatusError, ValueError)


class TestRequestService:

    def test_update_status_rejects_unknown_status(self):
        repo = MagicMock()
        service = RequestService(MagicMock(), repo)
        with pytest.raises(InvalidStatusError):
            service.update_status(1, "archived")
        repo.update_status.assert_not_called()

    def test_update_status_normalizes(self):
        repo = MagicMock()
        repo.update_status.return_value = CardRequest(title="x", id=1, status=APPROVED)
        service = RequestService(MagicMock(), repo)
        assert service.update_status(1, "Approved").status == APPROVED
        repo.update_status.assert_called_once_with(1, APPROVED)

    def test_update_missing_request(self):
        repo = MagicMock()
        repo.update_status.return_value = None
        assert RequestService(MagicMock(), repo).update_status(404, "rejected") is None

    def test_list_filters_by_validated_status(self):
        repo = MagicMock()
        repo.get_all.return_value = []
        service = RequestService(MagicMock(), repo)
        service.list_requests("PENDING")
        repo.get_all.assert_called_once_with(PENDING)
        with pytest.raises(InvalidStatusError):
            service.list_requests("nope")

    def test_list_without_filter(self):
        repo = MagicMock()
        RequestService(MagicMock(), repo).list_requests()
        repo.get_all.assert_called_once_with(None)

    def test_create_requires_title(self):
        executor = MagicMock()
        with pytest.raises(ValueError):
            RequestService(executor, MagicMock()).create_request("   ", 1)
        executor.run.assert_not_called()
