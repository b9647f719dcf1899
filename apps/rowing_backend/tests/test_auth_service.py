"""
Unit tests for access-token verification and the auth dependency.
"""
import pytest
from datetime import timedelta
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials
from jose import jwt

from rowing_backend.api import auth_dependencies
from rowing_backend.services import auth_service


class TestJWTTokens:
    """Tests for JWT token creation and verification."""

    def test_create_and_verify_access_token(self):
        token = auth_service.create_access_token({"athlete_id": 7, "name": "Sam"})
        assert isinstance(token, str)

        payload = auth_service.verify_token(token)
        assert payload["athlete_id"] == 7
        assert payload["name"] == "Sam"
        assert payload["type"] == "access"
        assert "exp" in payload

    def test_expired_token_rejected(self):
        token = auth_service.create_access_token(
            {"athlete_id": 7}, expires_delta=timedelta(seconds=-10)
        )
        assert auth_service.verify_token(token) is None

    def test_tampered_token_rejected(self):
        token = auth_service.create_access_token({"athlete_id": 7})
        assert auth_service.verify_token(token + "x") is None

    def test_garbage_rejected(self):
        assert auth_service.verify_token("not-a-jwt") is None

    def test_non_access_token_rejected(self):
        token = jwt.encode(
            {"athlete_id": 7, "type": "refresh"},
            auth_service.JWT_SECRET_KEY,
            algorithm=auth_service.JWT_ALGORITHM,
        )
        assert auth_service.verify_token(token) is None


class TestCurrentUser:
    """Tests for the get_current_user dependency."""

    @pytest.mark.asyncio
    async def test_valid_token(self):
        token = auth_service.create_access_token({"athlete_id": 3, "name": "Alex"})
        credentials = HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)

        user = await auth_dependencies.get_current_user(credentials)
        assert user == {"athlete_id": 3, "name": "Alex"}

    @pytest.mark.asyncio
    async def test_invalid_token(self):
        credentials = HTTPAuthorizationCredentials(scheme="Bearer", credentials="bad")

        with pytest.raises(HTTPException) as exc_info:
            await auth_dependencies.get_current_user(credentials)
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_token_without_athlete(self):
        token = auth_service.create_access_token({"name": "Nobody"})
        credentials = HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)

        with pytest.raises(HTTPException) as exc_info:
            await auth_dependencies.get_current_user(credentials)
        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == "Invalid token payload"
