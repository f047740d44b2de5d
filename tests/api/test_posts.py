"""
Tests for discussion posts, replies and likes.
"""

import pytest
from bson import ObjectId


@pytest.fixture
def post(client, alice, club):
    """A post written by alice."""
    response = client.post(
        "/posts",
        json={"clubId": club["id"], "title": "First impressions", "content": "Loved the opening."},
        headers=alice["headers"],
    )
    assert response.status_code == 201, response.text
    return response.json()["post"]


class TestPosts:

    def test_create_post(self, client, alice, club, post):
        assert post["author"] == alice["id"]
        assert post["club"] == club["id"]
        assert post["parentPost"] is None
        assert post["likes"] == []

    def test_reply_to_post(self, client, bob, club, post):
        response = client.post(
            "/posts",
            json={"clubId": club["id"], "title": "Re: First impressions", "content": "Same here.",
                  "parentPost": post["id"]},
            headers=bob["headers"],
        )
        assert response.status_code == 201
        assert response.json()["post"]["parentPost"] == post["id"]

    def test_title_length_limit(self, client, alice, club):
        response = client.post(
            "/posts",
            json={"clubId": club["id"], "title": "x" * 151, "content": "Too long a title."},
            headers=alice["headers"],
        )
        assert response.status_code == 400

    def test_create_requires_auth(self, client, club):
        response = client.post("/posts", json={"clubId": club["id"], "title": "Anon", "content": "Hi"})
        assert response.status_code == 401
        assert client.get(f"/posts/club/{club['id']}").json() == []

    def test_list_by_club_in_writing_order(self, client, alice, bob, club, post):
        client.post(
            "/posts",
            json={"clubId": club["id"], "title": "Second", "content": "Later thoughts."},
            headers=bob["headers"],
        )
        titles = [p["title"] for p in client.get(f"/posts/club/{club['id']}").json()]
        assert titles == ["First impressions", "Second"]

    def test_author_can_update(self, client, alice, post):
        response = client.put(f"/posts/{post['id']}", json={"content": "Edited."}, headers=alice["headers"])
        assert response.status_code == 200
        assert client.get(f"/posts/{post['id']}").json()["content"] == "Edited."

    def test_other_user_cannot_update(self, client, bob, post):
        response = client.put(f"/posts/{post['id']}", json={"content": "Mine now."}, headers=bob["headers"])
        assert response.status_code == 403
        assert response.json()["error"] == "You can only edit your own posts."
        assert client.get(f"/posts/{post['id']}").json()["content"] == "Loved the opening."

    def test_other_user_cannot_delete(self, client, bob, post):
        response = client.delete(f"/posts/{post['id']}", headers=bob["headers"])
        assert response.status_code == 403
        assert client.get(f"/posts/{post['id']}").status_code == 200

    def test_author_can_delete(self, client, alice, post):
        assert client.delete(f"/posts/{post['id']}", headers=alice["headers"]).status_code == 200
        assert client.get(f"/posts/{post['id']}").status_code == 404

    def test_unknown_post(self, client):
        assert client.get(f"/posts/{ObjectId()}").status_code == 404


class TestLikes:

    def test_like_is_idempotent(self, client, bob, post):
        client.post(f"/posts/{post['id']}/like", headers=bob["headers"])
        response = client.post(f"/posts/{post['id']}/like", headers=bob["headers"])
        assert response.status_code == 200
        assert response.json()["message"] == "Post liked."
        assert response.json()["post"]["likes"] == [bob["id"]]

    def test_unlike(self, client, bob, post):
        client.post(f"/posts/{post['id']}/like", headers=bob["headers"])
        response = client.delete(f"/posts/{post['id']}/like", headers=bob["headers"])
        assert response.status_code == 200
        assert response.json()["post"]["likes"] == []

        response = client.delete(f"/posts/{post['id']}/like", headers=bob["headers"])
        assert response.status_code == 200

    def test_like_requires_auth(self, client, post):
        assert client.post(f"/posts/{post['id']}/like").status_code == 401


class TestPostReads:

    def test_get_includes_author_username(self, client, alice, post):
        author = client.get(f"/posts/{post['id']}").json()["author"]
        assert author == {"id": alice["id"], "username": "alice"}

    def test_list_by_club_includes_author_username(self, client, alice, bob, club, post):
        client.post(
            "/posts",
            json={"clubId": club["id"], "title": "Second", "content": "Later thoughts."},
            headers=bob["headers"],
        )
        authors = [p["author"]["username"] for p in client.get(f"/posts/club/{club['id']}").json()]
        assert authors == ["alice", "bob"]


class TestPostNullUpdates:

    @pytest.mark.parametrize("body", [{"title": None}, {"content": None}])
    def test_null_field_rejected(self, client, alice, club, post, body):
        response = client.put(f"/posts/{post['id']}", json=body, headers=alice["headers"])
        assert response.status_code == 400

        stored = client.get(f"/posts/{post['id']}").json()
        assert stored["title"] == "First impressions"
        assert stored["content"] == "Loved the opening."
        assert client.get(f"/posts/club/{club['id']}").status_code == 200
