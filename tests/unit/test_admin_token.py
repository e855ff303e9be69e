"""Tests for the admin token dependency."""

import os
from unittest.mock import MagicMock, patch

import pytest
from fastapi import HTTPException

from app.deps.security import require_admin_token


def _request(headers=None, host="api.example.com"):
    request = MagicMock()
    request.headers = {"host": host, **(headers or {})}
    request.url.path = "/admin/seo/stats"
    request.client.host = "10.0.0.1"
    return request


class TestRequireAdminToken:
    def test_valid_token(self):
        with patch.dict(os.environ, {"ADMIN_TOKEN": "secret"}, clear=True):
            assert require_admin_token(_request({"X-Admin-Token": "secret"})) is True

    def test_missing_header_401(self):
        with patch.dict(os.environ, {"ADMIN_TOKEN": "secret"}, clear=True):
            with pytest.raises(HTTPException) as exc:
                require_admin_token(_request())
        assert exc.value.status_code == 401

    def test_wrong_token_403(self):
        with patch.dict(os.environ, {"ADMIN_TOKEN": "secret"}, clear=True):
            with pytest.raises(HTTPException) as exc:
                require_admin_token(_request({"X-Admin-Token": "guess"}))
        assert exc.value.status_code == 403

    def test_unconfigured_token_403(self):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(HTTPException) as exc:
                require_admin_token(_request({"X-Admin-Token": "anything"}))
        assert exc.value.status_code == 403
        assert "not configured" in exc.value.detail

    def test_localhost_bypass_requires_opt_in(self):
        env = {"ALLOW_LOCALHOST_ADMIN": "true"}
        with patch.dict(os.environ, env, clear=True):
            assert require_admin_token(_request(host="localhost:8000")) is True
            with pytest.raises(HTTPException):
                require_admin_token(_request(host="api.example.com"))
