# tests/test_tokens.py
from __future__ import annotations

import time
from datetime import timedelta

import pytest
from jose import jwt

from vidshare import auth
from vidshare.errors import AuthError
from vidshare.models import User


def _user(role="creator") -> User:
    return User(id="user-1", username="kate", password_hash="x", role=role)


def test_verify_token_rejects_expired_token(settings):
    token = auth.create_access_token(_user(), settings, expires_delta=timedelta(seconds=-5))
    with pytest.raises(AuthError) as exc_info:
        auth.verify_token(token, settings)
    assert exc_info.value.status_code == 403


def test_verify_token_rejects_token_signed_with_other_secret(settings):
    forged = auth.create_access_token(_user(), settings.model_copy(update={"JWT_SECRET": "attacker"}))
    with pytest.raises(AuthError):
        auth.verify_token(forged, settings)


def test_verify_token_rejects_missing_token(settings):
    with pytest.raises(AuthError) as exc_info:
        auth.verify_token(None, settings)
    assert exc_info.value.status_code == 401


def test_token_expires_after_one_hour_by_default(settings):
    token = auth.create_access_token(_user(), settings)
    claims = jwt.get_unverified_claims(token)
    issued_for = claims["exp"] - int(time.time())
    assert 3590 <= issued_for <= 3600
