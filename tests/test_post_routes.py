"""
tests/test_post_routes.py -- Integration tests for /api/posts/*.

Coverage:
  - full lifecycle: create draft -> hidden publicly -> visible to admin ->
    publish -> visible publicly -> delete -> gone everywhere
  - drafts never leak through GET /posts or GET /posts/{id}
  - admin listing is the public listing plus exactly the drafts
  - write routes: 401 without token, 403 for non-admins (even for missing posts)
  - pagination order and shape
"""

from __future__ import annotations

import pytest

from posts.models import Post

_POSTS = "/api/posts"
_ADMIN_ALL = "/api/posts/admin/all"


def _create(client, admin, title, status=None):
    body = {"title": title, "content": f"{title} content"}
    if status is not None:
        body["status"] = status
    resp = client.post(_POSTS, json=body, headers=admin.headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]["post"]


def _ids(resp) -> set[int]:
    assert resp.status_code == 200, resp.text
    return {p["id"] for p in resp.json()["data"]["posts"]}


def test_end_to_end_lifecycle(client):
    reg = client.post(
        "/api/auth/register",
        json={"username": "editor", "email": "editor@test.com", "password": "password123", "role": "admin"},
    )
    assert reg.status_code == 201
    login = client.post("/api/auth/login", json={"email": "editor@test.com", "password": "password123"})
    headers = {"Authorization": f"Bearer {login.json()['data']['token']}"}

    created = client.post(_POSTS, json={"title": "My First Post", "content": "Hello."}, headers=headers)
    assert created.status_code == 201
    post = created.json()["data"]["post"]
    assert post["status"] == "draft"
    assert post["author"]["username"] == "editor"
    post_id = post["id"]

    assert post_id not in _ids(client.get(_POSTS))
    assert client.get(f"{_POSTS}/{post_id}").status_code == 404
    assert post_id in _ids(client.get(_ADMIN_ALL, headers=headers))

    updated = client.put(f"{_POSTS}/{post_id}", json={"status": "published"}, headers=headers)
    assert updated.status_code == 200
    assert updated.json()["data"]["post"]["status"] == "published"
    assert updated.json()["data"]["post"]["title"] == "My First Post"

    assert post_id in _ids(client.get(_POSTS))
    assert client.get(f"{_POSTS}/{post_id}").json()["data"]["post"]["title"] == "My First Post"

    deleted = client.delete(f"{_POSTS}/{post_id}", headers=headers)
    assert deleted.status_code == 200
    assert deleted.json() == {"success": True, "message": "Post deleted successfully"}

    assert post_id not in _ids(client.get(_POSTS))
    assert post_id not in _ids(client.get(_ADMIN_ALL, headers=headers))


@pytest.mark.parametrize(
    "statuses",
    [
        ["draft"],
        ["published"],
        ["draft", "published", "draft"],
        ["published", "draft", "published", "draft", "published"],
    ],
)
def test_drafts_never_public(client, post_store, admin, reader, statuses):
    for i, status in enumerate(statuses):
        post_store.create_post(Post(title=f"Post {i}", content="x", status=status, author_id=admin.user.id))

    anonymous = client.get(_POSTS, params={"limit": 100}).json()["data"]["posts"]
    as_reader = client.get(_POSTS, params={"limit": 100}, headers=reader.headers).json()["data"]["posts"]
    assert all(p["status"] == "published" for p in anonymous + as_reader)
    assert len(anonymous) == statuses.count("published")

    everything = client.get(_ADMIN_ALL, params={"limit": 100}, headers=admin.headers).json()["data"]["posts"]
    for p in everything:
        resp = client.get(f"{_POSTS}/{p['id']}", headers=reader.headers)
        assert resp.status_code == (200 if p["status"] == "published" else 404)

    public_ids = {p["id"] for p in anonymous}
    draft_ids = {p["id"] for p in everything if p["status"] == "draft"}
    assert {p["id"] for p in everything} == public_ids | draft_ids
    assert not public_ids & draft_ids


def test_pagination_second_page(client, admin):
    for title in ("Oldest post", "Middle post", "Newest post"):
        _create(client, admin, title, status="published")

    resp = client.get(_POSTS, params={"page": 2, "limit": 1})
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert [p["title"] for p in data["posts"]] == ["Middle post"]
    assert data["pagination"] == {"total": 3, "page": 2, "limit": 1, "total_pages": 3}


def test_pagination_rejects_bad_params(client):
    assert client.get(_POSTS, params={"page": 0}).status_code == 400
    assert client.get(_POSTS, params={"limit": 1000}).status_code == 400


class TestWriteGate:
    @pytest.mark.parametrize(
        ("method", "path", "body"),
        [
            ("post", _POSTS, {"title": "Nope", "content": "Nope"}),
            ("put", f"{_POSTS}/1", {"title": "Nope"}),
            ("delete", f"{_POSTS}/1", None),
            ("get", _ADMIN_ALL, None),
        ],
    )
    def test_non_admin_forbidden(self, client, reader, method, path, body):
        kwargs = {"headers": reader.headers}
        if body is not None:
            kwargs["json"] = body
        resp = client.request(method.upper(), path, **kwargs)
        assert resp.status_code == 403
        assert resp.json() == {"success": False, "message": "Access denied. Admin privileges required."}

    @pytest.mark.parametrize(
        ("method", "path"),
        [("post", _POSTS), ("put", f"{_POSTS}/1"), ("delete", f"{_POSTS}/1"), ("get", _ADMIN_ALL)],
    )
    def test_anonymous_unauthorized(self, client, method, path):
        kwargs = {"json": {"title": "Nope", "content": "Nope"}} if method in ("post", "put") else {}
        resp = client.request(method.upper(), path, **kwargs)
        assert resp.status_code == 401

    def test_forbidden_write_does_not_touch_store(self, client, post_store, admin, reader):
        post = _create(client, admin, "Keep me", status="published")
        resp = client.delete(f"{_POSTS}/{post['id']}", headers=reader.headers)
        assert resp.status_code == 403
        assert post_store.get_post(post["id"]) is not None


class TestAdminWrites:
    def test_create_requires_title_and_content(self, client, admin):
        resp = client.post(_POSTS, json={"title": "ab"}, headers=admin.headers)
        assert resp.status_code == 400
        assert len(resp.json()["errors"]) == 2

    def test_any_admin_may_edit_any_post(self, client, user_store, admin):
        post = _create(client, admin, "Shared post")
        other = user_store.create_user("second", "second@test.com", "password123", role="admin")
        from auth.tokens import create_access_token

        headers = {"Authorization": f"Bearer {create_access_token(other)}"}
        resp = client.put(f"{_POSTS}/{post['id']}", json={"content": "Edited"}, headers=headers)
        assert resp.status_code == 200
        assert resp.json()["data"]["post"]["content"] == "Edited"
        assert resp.json()["data"]["post"]["author_id"] == admin.user.id

    def test_unpublish(self, client, admin):
        post = _create(client, admin, "Going back", status="published")
        resp = client.put(f"{_POSTS}/{post['id']}", json={"status": "draft"}, headers=admin.headers)
        assert resp.status_code == 200
        assert client.get(f"{_POSTS}/{post['id']}").status_code == 404

    def test_update_missing_post(self, client, admin):
        resp = client.put(f"{_POSTS}/9999", json={"title": "Ghost"}, headers=admin.headers)
        assert resp.status_code == 404
        assert resp.json() == {"success": False, "message": "Post not found"}

    def test_delete_missing_post(self, client, admin):
        assert client.delete(f"{_POSTS}/9999", headers=admin.headers).status_code == 404

    def test_invalid_status(self, client, admin):
        resp = client.post(_POSTS, json={"title": "Bad", "content": "x", "status": "archived"}, headers=admin.headers)
        assert resp.status_code == 400

    def test_content_stored_as_given(self, client, admin):
        content = "    indented code\n\nparagraph\n"
        resp = client.post(_POSTS, json={"title": "  Spaced title  ", "content": content}, headers=admin.headers)
        assert resp.status_code == 201
        post = resp.json()["data"]["post"]
        assert post["title"] == "Spaced title"
        assert post["content"] == content

        edited = "\tfirst line\n"
        resp = client.put(f"{_POSTS}/{post['id']}", json={"content": edited}, headers=admin.headers)
        assert resp.json()["data"]["post"]["content"] == edited
