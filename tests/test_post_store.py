"""Unit tests for posts/store.py.

Covers:
- create_post returns the joined row with author info
- list_posts / get_post only return rows whose status is in the given set
- newest-first ordering and offset/limit paging
- update_post leaves None fields alone and allows either status transition
- CHECK constraint rejects statuses outside draft/published
- deleting the author keeps the post (author becomes None)
"""

import pytest
from sqlalchemy.exc import IntegrityError

from posts.models import Post

_PUBLISHED = {"published"}
_ALL = {"draft", "published"}


@pytest.fixture
def author(user_store):
    return user_store.create_user("author", "author@test.com", "password123", role="admin")


def _create(store, author, title, status="draft"):
    return store.create_post(Post(title=title, content=f"{title} body", status=status, author_id=author.id))


class TestCreate:
    def test_returns_post_with_author(self, post_store, author):
        post = _create(post_store, author, "Hello world")
        assert post.id is not None
        assert post.status == "draft"
        assert post.author.id == author.id
        assert post.author.username == "author"
        assert post.created_at == post.updated_at

    def test_rejects_unknown_status(self, post_store, author):
        with pytest.raises(IntegrityError):
            _create(post_store, author, "Archived", status="archived")


class TestVisibilityFilter:
    def test_list_excludes_statuses_outside_set(self, post_store, author):
        _create(post_store, author, "Draft one")
        published = _create(post_store, author, "Published one", status="published")
        posts, total = post_store.list_posts(_PUBLISHED, limit=10, offset=0)
        assert total == 1
        assert [p.id for p in posts] == [published.id]

    def test_list_all_statuses(self, post_store, author):
        _create(post_store, author, "Draft one")
        _create(post_store, author, "Published one", status="published")
        posts, total = post_store.list_posts(_ALL, limit=10, offset=0)
        assert total == 2
        assert {p.status for p in posts} == _ALL

    def test_get_post_hides_draft_from_published_scope(self, post_store, author):
        draft = _create(post_store, author, "Secret draft")
        assert post_store.get_post(draft.id, statuses=_PUBLISHED) is None
        assert post_store.get_post(draft.id).title == "Secret draft"


def test_paging_is_newest_first(post_store, author):
    first = _create(post_store, author, "First", status="published")
    second = _create(post_store, author, "Second", status="published")
    third = _create(post_store, author, "Third", status="published")

    page, total = post_store.list_posts(_PUBLISHED, limit=1, offset=1)
    assert total == 3
    assert [p.id for p in page] == [second.id]

    everything, _ = post_store.list_posts(_PUBLISHED, limit=10, offset=0)
    assert [p.id for p in everything] == [third.id, second.id, first.id]


class TestUpdate:
    def test_none_fields_unchanged(self, post_store, author):
        post = _create(post_store, author, "Original")
        updated = post_store.update_post(post.id, title="Renamed", content=None, status=None)
        assert updated.title == "Renamed"
        assert updated.content == "Original body"
        assert updated.status == "draft"

    def test_status_moves_both_ways(self, post_store, author):
        post = _create(post_store, author, "Flip flop")
        assert post_store.update_post(post.id, status="published").status == "published"
        assert post_store.update_post(post.id, status="draft").status == "draft"

    def test_missing_post(self, post_store):
        assert post_store.update_post(9999, title="Nope") is None

    def test_unknown_field_rejected(self, post_store, author):
        post = _create(post_store, author, "Original")
        with pytest.raises(ValueError):
            post_store.update_post(post.id, author_id=42)


def test_delete(post_store, author):
    post = _create(post_store, author, "Short lived")
    assert post_store.delete_post(post.id) is True
    assert post_store.get_post(post.id) is None
    assert post_store.delete_post(post.id) is False


def test_post_survives_author_deletion(post_store, user_store, author):
    post = _create(post_store, author, "Orphan", status="published")
    user_store.delete_user(author.id)
    orphan = post_store.get_post(post.id)
    assert orphan is not None
    assert orphan.author is None
    assert orphan.author_id == author.id
