"""
Tests for the reading progress upsert and lookups.
"""

from unittest.mock import AsyncMock, patch

import pytest
from bson import ObjectId

from storage.repositories import ProgressRepository
from utilities.errors import Conflict


@pytest.fixture
def record(client, book, club):
    """Helper: record(user, **fields) posts progress for `book` in `club`."""
    def _record(user, **fields):
        payload = {"bookId": book["id"], "clubId": club["id"]}
        payload.update(fields)
        return client.post("/progress", json=payload, headers=user["headers"])
    return _record


class TestProgressUpsert:
    """One record per (user, book, club)."""

    def test_first_post_creates(self, record, alice, book, club):
        response = record(alice, percentage=10, currentPage=25)
        assert response.status_code == 201
        data = response.json()
        assert data["user"] == alice["id"]
        assert data["book"] == book["id"]
        assert data["club"] == club["id"]
        assert data["percentage"] == 10
        assert data["currentPage"] == 25

    def test_second_post_updates_same_record(self, record, alice):
        created = record(alice, percentage=10)
        updated = record(alice, percentage=40, notes="Picking up pace")

        assert created.status_code == 201
        assert updated.status_code == 200
        assert updated.json()["id"] == created.json()["id"]
        assert updated.json()["percentage"] == 40
        assert updated.json()["notes"] == "Picking up pace"

    def test_omitted_fields_are_kept(self, record, alice):
        record(alice, percentage=30, currentPage=80)
        response = record(alice, notes="Only a note")
        assert response.json()["percentage"] == 30
        assert response.json()["currentPage"] == 80

    def test_defaults_on_create(self, record, alice):
        data = record(alice).json()
        assert data["percentage"] == 0
        assert data["currentPage"] == 0

    def test_different_users_get_different_records(self, record, alice, bob):
        first = record(alice, percentage=10)
        second = record(bob, percentage=20)
        assert second.status_code == 201
        assert first.json()["id"] != second.json()["id"]

    def test_progress_without_club(self, client, alice, book):
        payload = {"bookId": book["id"], "percentage": 5}
        first = client.post("/progress", json=payload, headers=alice["headers"])
        second = client.post("/progress", json=dict(payload, percentage=6), headers=alice["headers"])
        assert first.status_code == 201
        assert second.status_code == 200
        assert second.json()["club"] is None

    @pytest.mark.parametrize("percentage", [0, 100])
    def test_percentage_bounds_accepted(self, record, alice, percentage):
        assert record(alice, percentage=percentage).status_code == 201

    @pytest.mark.parametrize("percentage", [-1, 101])
    def test_percentage_out_of_range(self, client, record, alice, club, percentage):
        response = record(alice, percentage=percentage)
        assert response.status_code == 400
        assert client.get(f"/progress/club/{club['id']}").json() == []

    def test_negative_page_rejected(self, record, alice):
        assert record(alice, currentPage=-1).status_code == 400

    def test_malformed_book_id(self, client, alice):
        response = client.post("/progress", json={"bookId": "nope", "percentage": 5}, headers=alice["headers"])
        assert response.status_code == 400

    def test_requires_auth(self, client, book, club):
        response = client.post("/progress", json={"bookId": book["id"], "clubId": club["id"], "percentage": 5})
        assert response.status_code == 401
        assert client.get(f"/progress/club/{club['id']}").json() == []


class TestProgressQueries:

    def test_club_progress_sorted_by_percentage(self, client, record, alice, bob, club):
        record(alice, percentage=10)
        record(bob, percentage=90)

        response = client.get(f"/progress/club/{club['id']}")
        assert response.status_code == 200
        assert [p["percentage"] for p in response.json()] == [90, 10]

    def test_lookup_by_keys(self, client, record, alice, book, club):
        created = record(alice, percentage=55).json()
        response = client.get(f"/progress/user/{alice['id']}/book/{book['id']}/club/{club['id']}")
        assert response.status_code == 200
        assert response.json()["id"] == created["id"]

    def test_lookup_by_keys_not_found(self, client, alice, book, club):
        response = client.get(f"/progress/user/{alice['id']}/book/{book['id']}/club/{club['id']}")
        assert response.status_code == 200
        assert response.json() == {"message": "No progress found for this combination.", "progress": None}

    def test_owner_can_read_entry(self, client, record, alice):
        created = record(alice, percentage=20).json()
        response = client.get(f"/progress/{created['id']}", headers=alice["headers"])
        assert response.status_code == 200
        assert response.json()["percentage"] == 20

    def test_other_user_cannot_read_entry(self, client, record, alice, bob):
        created = record(alice, percentage=20).json()
        response = client.get(f"/progress/{created['id']}", headers=bob["headers"])
        assert response.status_code == 403
        assert response.json()["error"] == "Access denied. You can only view your own progress."

    def test_unknown_entry(self, client, alice):
        response = client.get(f"/progress/{ObjectId()}", headers=alice["headers"])
        assert response.status_code == 404


class TestProgressDeletion:

    def test_owner_can_delete(self, client, record, alice):
        created = record(alice, percentage=20).json()
        response = client.delete(f"/progress/{created['id']}", headers=alice["headers"])
        assert response.status_code == 200
        assert response.json()["message"] == "Reading progress deleted successfully"
        assert client.get(f"/progress/{created['id']}", headers=alice["headers"]).status_code == 404

    def test_other_user_cannot_delete(self, client, record, alice, bob):
        created = record(alice, percentage=20).json()
        response = client.delete(f"/progress/{created['id']}", headers=bob["headers"])
        assert response.status_code == 403
        assert response.json()["error"] == "You can only delete your own progress records."
        assert client.get(f"/progress/{created['id']}", headers=alice["headers"]).status_code == 200

    def test_record_again_after_delete_creates(self, client, record, alice):
        created = record(alice, percentage=20).json()
        client.delete(f"/progress/{created['id']}", headers=alice["headers"])
        response = record(alice, percentage=25)
        assert response.status_code == 201
        assert response.json()["id"] != created["id"]


class TestProgressReads:
    """Reads resolve the reader, the book and the club."""

    def test_club_progress_is_populated(self, client, record, alice, book, club):
        record(alice, percentage=42)
        entry = client.get(f"/progress/club/{club['id']}").json()[0]
        assert entry["user"] == {"id": alice["id"], "username": "alice"}
        assert entry["book"] == {
            "id": book["id"],
            "title": "The Hound of the Baskervilles",
            "author": "Arthur Conan Doyle",
        }
        assert entry["club"] == {"id": club["id"], "name": "Mystery Readers"}

    def test_lookup_by_keys_is_populated(self, client, record, alice, book, club):
        record(alice, percentage=42)
        entry = client.get(f"/progress/user/{alice['id']}/book/{book['id']}/club/{club['id']}").json()
        assert entry["user"]["username"] == "alice"
        assert entry["club"]["name"] == "Mystery Readers"

    def test_owner_read_is_populated(self, client, record, alice):
        created = record(alice, percentage=42).json()
        entry = client.get(f"/progress/{created['id']}", headers=alice["headers"]).json()
        assert entry["user"]["username"] == "alice"
        assert entry["book"]["title"] == "The Hound of the Baskervilles"

    def test_deleted_book_stays_an_id(self, client, record, alice, book, club):
        record(alice, percentage=42)
        client.delete(f"/books/{book['id']}", headers=alice["headers"])
        entry = client.get(f"/progress/club/{club['id']}").json()[0]
        assert entry["book"] == book["id"]


class TestProgressConflict:

    def test_concurrent_insert_returns_409(self, client, alice, book):
        conflict = Conflict("Reading progress was recorded concurrently for this book and club. Retry the request.")
        with patch.object(ProgressRepository, "record_progress", AsyncMock(side_effect=conflict)):
            response = client.post("/progress", json={"bookId": book["id"], "percentage": 5}, headers=alice["headers"])

        assert response.status_code == 409
        assert response.json()["error"].startswith("Reading progress was recorded concurrently")
