"""
Pytest configuration and shared fixtures.
"""

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from api.config import APIConfig
from api.main import create_app
from storage.repositories import Repositories

TEST_SECRET = "test-secret-key"


@pytest.fixture
def api_settings():
    """API settings isolated from the environment."""
    return APIConfig(
        secret_key=TEST_SECRET,
        github_client_id=None,
        github_client_secret=None,
        debug=False,
    )


@pytest.fixture
def database():
    """Fresh in-memory MongoDB database for each test."""
    return AsyncMongoMockClient()["bookclub_test"]


@pytest.fixture
def repositories(database):
    return Repositories(database)


@pytest.fixture
def app(api_settings, database):
    return create_app(settings=api_settings, database=database)


@pytest.fixture
def client(app):
    """Test client; entering it runs the lifespan so indexes exist."""
    with TestClient(app) as test_client:
        yield test_client


def register_and_login(client, username, email=None, password="password123"):
    """
    Register a user, log in and return its id, token and auth headers.

    The cookie set by /login is cleared so that requests without headers stay
    anonymous.
    """
    email = email or f"{username}@example.com"
    response = client.post("/register", json={"username": username, "email": email, "password": password})
    assert response.status_code == 201, response.text

    response = client.post("/login", json={"username": username, "password": password})
    assert response.status_code == 200, response.text
    client.cookies.clear()

    data = response.json()
    return {
        "id": data["userId"],
        "username": username,
        "token": data["token"],
        "headers": {"Authorization": f"Bearer {data['token']}"},
    }


@pytest.fixture
def alice(client):
    return register_and_login(client, "alice")


@pytest.fixture
def bob(client):
    return register_and_login(client, "bob")


@pytest.fixture
def sample_club_payload():
    return {
        "name": "Mystery Readers",
        "description": "Whodunits every month",
        "genre": "Mystery",
        "schedule": "Monthly",
        "membersLimit": 12,
    }


@pytest.fixture
def sample_book_payload():
    return {
        "title": "The Hound of the Baskervilles",
        "author": "Arthur Conan Doyle",
        "pages": 256,
        "summary": "A legendary hound haunts the moors.",
        "publishedMonth": "April",
        "publishedYear": 1902,
    }


@pytest.fixture
def club(client, alice, sample_club_payload):
    """A club owned by alice."""
    response = client.post("/clubs", json=sample_club_payload, headers=alice["headers"])
    assert response.status_code == 201, response.text
    return response.json()["club"]


@pytest.fixture
def book(client, alice, sample_book_payload):
    response = client.post("/books", json=sample_book_payload, headers=alice["headers"])
    assert response.status_code == 201, response.text
    return response.json()["book"]
