"""
Tests for authentication endpoints and the identity service.
"""
from datetime import timedelta

import pytest

from eventsync.auth import create_access_token, create_refresh_token
from eventsync.errors import DuplicateEmail, InvalidCredentials, InvalidToken, TokenExpired
from eventsync.models.user import User
from eventsync.services import IdentityService

from conftest import TEST_PASSWORD, service_logger


class TestAuthEndpoints:
    """Test auth endpoints."""

    def test_register_user(self, client):
        """Test user registration."""
        response = client.post(
            "/api/auth/register",
            json={
                "email": "newuser@example.com",
                "password": "securepassword123",
                "first_name": "New",
            },
        )
        assert response.status_code == 201
        data = response.json()
        assert data["user"]["email"] == "newuser@example.com"
        assert data["user"]["first_name"] == "New"
        assert data["user"]["last_name"] == ""
        assert data["user"]["company_name"] == ""
        assert data["token_type"] == "bearer"
        assert "access_token" in data

    def test_register_duplicate_email(self, client, test_user):
        """Test registration with existing email fails."""
        response = client.post(
            "/api/auth/register",
            json={"email": "test@example.com", "password": "anotherpassword"},
        )
        assert response.status_code == 409
        assert response.json()["error_code"] == "DUPLICATE_EMAIL"

    def test_register_short_password(self, client):
        response = client.post(
            "/api/auth/register",
            json={"email": "short@example.com", "password": "abc"},
        )
        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR"

    def test_login_success(self, client, test_user):
        """Test successful login."""
        response = client.post(
            "/api/auth/login/json",
            json={"email": "test@example.com", "password": TEST_PASSWORD},
        )
        assert response.status_code == 200
        data = response.json()
        assert "access_token" in data
        assert "refresh_token" in data
        assert data["user"]["id"] == test_user.id
        assert data["user"]["last_login_at"] is not None

    def test_login_form(self, client, test_user):
        """OAuth2 form login uses the email as username."""
        response = client.post(
            "/api/auth/login",
            data={"username": "test@example.com", "password": TEST_PASSWORD},
        )
        assert response.status_code == 200
        assert response.json()["user"]["email"] == "test@example.com"

    def test_login_wrong_password_and_unknown_email_look_alike(self, client, test_user):
        wrong_password = client.post(
            "/api/auth/login/json",
            json={"email": "test@example.com", "password": "wrongpassword"},
        )
        unknown_email = client.post(
            "/api/auth/login/json",
            json={"email": "nobody@example.com", "password": "anypassword"},
        )
        assert wrong_password.status_code == 401
        assert unknown_email.status_code == 401
        assert wrong_password.json()["error"] == unknown_email.json()["error"]
        assert wrong_password.headers["WWW-Authenticate"] == "Bearer"

    def test_get_current_user(self, client, test_user):
        """Test getting current user info."""
        login_response = client.post(
            "/api/auth/login/json",
            json={"email": "test@example.com", "password": TEST_PASSWORD},
        )
        token = login_response.json()["access_token"]

        response = client.get(
            "/api/auth/me",
            headers={"Authorization": f"Bearer {token}"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["email"] == test_user.email
        assert data["id"] == test_user.id

    def test_get_current_user_unauthenticated(self, client):
        """Test getting current user without auth fails."""
        response = client.get("/api/auth/me")
        assert response.status_code == 401

    def test_malformed_token(self, client):
        response = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401
        assert response.json()["error_code"] == "INVALID_TOKEN"

    def test_expired_token(self, client, test_user):
        token = create_access_token({"sub": test_user.id}, expires_delta=timedelta(seconds=-10))
        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json()["error_code"] == "TOKEN_EXPIRED"

    def test_refresh_token_rejected_as_access_token(self, client, test_user):
        token = create_refresh_token({"sub": test_user.id})
        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_refresh_token(self, client, test_user):
        """Test token refresh."""
        login_response = client.post(
            "/api/auth/login/json",
            json={"email": "test@example.com", "password": TEST_PASSWORD},
        )
        refresh_token = login_response.json()["refresh_token"]

        response = client.post(
            "/api/auth/refresh",
            json={"refresh_token": refresh_token},
        )
        assert response.status_code == 200
        data = response.json()
        assert "access_token" in data
        assert "refresh_token" in data

    def test_deactivated_user_loses_access(self, client, test_user, auth_headers, db):
        """An unexpired token stops working once the account is deactivated."""
        assert client.get("/api/auth/me", headers=auth_headers).status_code == 200

        test_user.is_active = False
        db.commit()

        response = client.get("/api/auth/me", headers=auth_headers)
        assert response.status_code == 401

    def test_deleted_user_loses_access(self, client, test_user, auth_headers, db):
        db.delete(test_user)
        db.commit()

        response = client.get("/api/auth/me", headers=auth_headers)
        assert response.status_code == 401


class TestIdentityService:
    """Test the identity service directly."""

    def test_register_returns_user_and_tokens(self, db):
        identity = IdentityService(db, service_logger)
        user, (access_token, refresh_token) = identity.register("a@x.com", "password1")

        assert user.email == "a@x.com"
        assert user.password_hash != "password1"
        assert user.password_hash.startswith("$2b$12$")
        assert identity.verify_token(access_token).id == user.id

    def test_register_duplicate(self, db):
        identity = IdentityService(db, service_logger)
        identity.register("a@x.com", "password1")
        with pytest.raises(DuplicateEmail):
            identity.register("a@x.com", "password2")

    def test_register_race_is_duplicate_email(self, db, monkeypatch):
        identity = IdentityService(db, service_logger)
        identity.register("a@x.com", "password1")
        # Another registration commits after the existence check
        monkeypatch.setattr(identity, "email_taken", lambda email: False)

        with pytest.raises(DuplicateEmail):
            identity.register("a@x.com", "password2")
        assert db.query(User).filter(User.email == "a@x.com").count() == 1

    def test_email_is_case_sensitive_as_stored(self, db):
        identity = IdentityService(db, service_logger)
        identity.register("a@x.com", "password1")
        user, _ = identity.register("A@x.com", "password1")
        assert user.email == "A@x.com"

    def test_login_invalid_credentials(self, db, test_user):
        identity = IdentityService(db, service_logger)
        with pytest.raises(InvalidCredentials):
            identity.login("test@example.com", "wrongpassword")
        with pytest.raises(InvalidCredentials):
            identity.login("missing@example.com", TEST_PASSWORD)

    def test_verify_expired_token(self, db, test_user):
        identity = IdentityService(db, service_logger)
        token = create_access_token({"sub": test_user.id}, expires_delta=timedelta(seconds=-10))
        with pytest.raises(TokenExpired):
            identity.verify_token(token)

    def test_verify_token_for_inactive_user(self, db, test_user):
        identity = IdentityService(db, service_logger)
        token = create_access_token({"sub": test_user.id})
        test_user.is_active = False
        db.commit()
        with pytest.raises(InvalidToken):
            identity.verify_token(token)

    def test_refresh_requires_refresh_token(self, db, test_user):
        identity = IdentityService(db, service_logger)
        with pytest.raises(InvalidToken):
            identity.refresh(create_access_token({"sub": test_user.id}))
        access_token, _ = identity.refresh(create_refresh_token({"sub": test_user.id}))
        assert identity.verify_token(access_token).id == test_user.id
