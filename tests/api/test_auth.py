"""
Tests for registration, login, logout, profile and the token guard.
"""

from api.auth import TokenManager


class TestRegistration:
    """Test account creation."""

    def test_register_success(self, client):
        response = client.post(
            "/register",
            json={"username": "carol", "email": "carol@example.com", "password": "secret"},
        )
        assert response.status_code == 201
        data = response.json()
        assert data["message"] == "User registered successfully!"
        assert len(data["userId"]) == 24

    def test_register_legacy_path(self, client):
        response = client.post(
            "/users/register",
            json={"username": "dave", "email": "dave@example.com", "password": "secret"},
        )
        assert response.status_code == 201

    def test_register_duplicate_username(self, client, alice):
        response = client.post(
            "/register",
            json={"username": "alice", "email": "other@example.com", "password": "secret"},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Username or email already exists."

    def test_register_duplicate_email(self, client, alice):
        response = client.post(
            "/register",
            json={"username": "alice2", "email": "alice@example.com", "password": "secret"},
        )
        assert response.status_code == 400

    def test_register_missing_fields(self, client):
        response = client.post("/register", json={"username": "erin"})
        assert response.status_code == 400
        assert response.json()["error"] == "Validation failed"

    def test_register_invalid_email(self, client):
        response = client.post(
            "/register",
            json={"username": "erin", "email": "not-an-email", "password": "secret"},
        )
        assert response.status_code == 400


class TestLogin:
    """Test login by username or email."""

    def test_login_by_username(self, client, alice):
        response = client.post("/login", json={"username": "alice", "password": "password123"})
        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Logged in successfully"
        assert data["userId"] == alice["id"]
        assert data["username"] == "alice"
        assert data["token"]
        assert "jwt" in response.cookies

    def test_login_by_email(self, client, alice):
        response = client.post("/login", json={"email": "alice@example.com", "password": "password123"})
        assert response.status_code == 200
        assert response.json()["userId"] == alice["id"]

    def test_login_legacy_path(self, client, alice):
        response = client.post("/users/login", json={"username": "alice", "password": "password123"})
        assert response.status_code == 200

    def test_login_failures_are_indistinguishable(self, client, alice):
        """Unknown user and wrong password produce the same response."""
        unknown = client.post("/login", json={"username": "nobody", "password": "password123"})
        wrong = client.post("/login", json={"username": "alice", "password": "wrong"})

        assert unknown.status_code == wrong.status_code == 401
        assert unknown.json() == wrong.json()
        assert unknown.json()["error"] == "Authentication failed: invalid credentials."

    def test_login_requires_identity(self, client):
        response = client.post("/login", json={"password": "password123"})
        assert response.status_code == 400


class TestLogout:

    def test_logout_clears_cookie(self, client, alice):
        client.post("/login", json={"username": "alice", "password": "password123"})
        assert client.get("/profile").status_code == 200

        response = client.get("/logout")
        assert response.status_code == 200
        assert response.json()["message"] == "Logged out successfully."
        assert client.get("/profile").status_code == 401

    def test_logout_legacy_path(self, client):
        assert client.get("/users/logout").status_code == 200


class TestTokenGuard:
    """Test the authentication guard on protected endpoints."""

    def test_profile_with_bearer_token(self, client, alice):
        response = client.get("/profile", headers=alice["headers"])
        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Successfully retrieved profile data."
        assert data["user"] == {"id": alice["id"], "username": "alice"}

    def test_profile_with_cookie_fallback(self, client, alice):
        client.cookies.set("jwt", alice["token"])
        response = client.get("/profile")
        assert response.status_code == 200
        assert response.json()["user"]["id"] == alice["id"]

    def test_missing_token(self, client):
        response = client.get("/profile")
        assert response.status_code == 401
        assert response.json()["error"] == "Access denied. A valid login token is required."

    def test_literal_undefined_token(self, client):
        response = client.get("/profile", headers={"Authorization": "Bearer undefined"})
        assert response.status_code == 401

    def test_garbage_token(self, client):
        response = client.get("/profile", headers={"Authorization": "Bearer not.a.token"})
        assert response.status_code == 401
        assert response.json()["error"] == "Access denied. Invalid or expired token."

    def test_token_signed_with_other_secret(self, client, alice):
        token = TokenManager("another-secret").create_access_token(alice["id"], "alice")
        response = client.get("/profile", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_expired_token(self, client, alice, api_settings):
        token = TokenManager(api_settings.secret_key, expire_minutes=-1).create_access_token(alice["id"], "alice")
        response = client.get("/profile", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_header_takes_precedence_over_cookie(self, client, alice, bob):
        client.cookies.set("jwt", bob["token"])
        response = client.get("/profile", headers=alice["headers"])
        assert response.json()["user"]["id"] == alice["id"]
