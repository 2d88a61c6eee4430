"""
Tests for model-aware paging and the next-page lookahead.

Property: has_next_page(options) is true exactly when the store holds at
least one row at offset ``limit + offset`` under the same filters.
"""

import pytest
from hypothesis import given, strategies as st, settings
from sqlalchemy.orm import sessionmaker

from record_components.services import finders, paging
from record_components.services.paging import PagedResult, next_page_lookahead
from conftest import create_test_engine
from sample_models import Note, Post, Tag, User


def test_model_context_defaults_to_quoted_primary_key():
    options = User.build_paging_options()

    assert options.order == 'users."id" DESC'
    assert options.limit == User.DEFAULT_LIMIT
    assert options.offset == User.DEFAULT_OFFSET


def test_model_context_uses_non_integer_primary_key():
    assert Tag.build_paging_options({"order_desc": "false"}).order == 'tags."code" ASC'


def test_model_context_qualifies_unqualified_columns():
    assert Post.build_paging_options({"order_col": "name"}).order == 'posts."name" DESC'


def test_model_context_keeps_qualified_columns():
    options = Post.build_paging_options({"order_by": "users.username", "order_desc": False})

    assert options.order == "users.username ASC"


def test_model_defaults_can_be_overridden():
    options = Note.build_paging_options({"page": 2})

    assert options.order == 'notes."id" ASC'
    assert (options.limit, options.offset) == (3, 3)
    assert next_page_lookahead({}, model=Note)["offset"] == 3


def test_next_page_lookahead_moves_past_the_window():
    lookahead = next_page_lookahead({"limit": 10, "offset": 20, "include": ["author"], "conditions": {"user_id": 1}})

    assert lookahead == {"limit": 1, "offset": 30, "include": None, "conditions": {"user_id": 1}}


def test_next_page_lookahead_uses_defaults_for_missing_window():
    assert next_page_lookahead({})["offset"] == paging.DEFAULT_LIMIT + paging.DEFAULT_OFFSET


def test_has_next_page_issues_one_bounded_query(monkeypatch):
    calls = []

    def fake_list_entities(session, model, options=None):
        calls.append(dict(options))
        return ["row"]

    monkeypatch.setattr(finders, "list_entities", fake_list_entities)

    original = {"limit": 10, "offset": 0, "order": "id DESC", "conditions": {"user_id": 7}}
    assert paging.has_next_page(object(), Post, original) is True

    assert calls == [
        {"limit": 1, "offset": 10, "order": "id DESC", "conditions": {"user_id": 7}, "include": None}
    ]
    assert original["offset"] == 0


def test_has_next_page_false_when_lookahead_is_empty(monkeypatch):
    monkeypatch.setattr(finders, "list_entities", lambda session, model, options=None: [])

    assert paging.has_next_page(object(), Post, {"limit": 10, "offset": 0}) is False


def test_has_next_page_propagates_store_errors(monkeypatch):
    def broken(session, model, options=None):
        raise RuntimeError("connection lost")

    monkeypatch.setattr(finders, "list_entities", broken)

    with pytest.raises(RuntimeError, match="connection lost"):
        paging.has_next_page(object(), Post, {"limit": 10})


@settings(max_examples=50, deadline=None)
@given(
    total=st.integers(min_value=0, max_value=30),
    limit=st.integers(min_value=1, max_value=15),
    offset=st.integers(min_value=0, max_value=30),
)
def test_has_next_page_matches_row_count(total: int, limit: int, offset: int):
    """
    Property: For any table size and window, has_next_page is true exactly
    when total > limit + offset.
    """
    engine = create_test_engine()
    session = sessionmaker(bind=engine)()
    try:
        session.add_all([Tag(code=f"T{i:03d}", label=f"Tag {i}") for i in range(total)])
        session.commit()

        assert Tag.has_next_page(session, {"limit": limit, "offset": offset}) is (total > limit + offset)
    finally:
        session.close()


def test_has_next_page_respects_conditions(db_session, posts, test_user):
    other = User(username="bob")
    db_session.add(other)
    db_session.commit()
    db_session.add_all([Post(name=f"Bob {i}", user_id=other.id) for i in range(3)])
    db_session.commit()

    assert Post.has_next_page(db_session, {"limit": 2, "offset": 0, "conditions": {"user_id": other.id}}) is True
    assert Post.has_next_page(db_session, {"limit": 2, "offset": 1, "conditions": {"user_id": other.id}}) is False
    assert Post.has_next_page(db_session, {"limit": 25, "offset": 0, "conditions": {"user_id": test_user.id}}) is False
    assert Post.has_next_page(db_session, {"limit": 24, "offset": 0, "conditions": {"user_id": test_user.id}}) is True


def test_find_page_returns_window_and_next_page_flag(db_session, posts):
    first = Post.find_page(db_session, {"per_page": 10})

    assert isinstance(first, PagedResult)
    assert [post.name for post in first.data] == [f"Post {i}" for i in range(25, 15, -1)]
    assert first.page == 1
    assert first.has_next_page is True
    assert (first.limit, first.offset) == (10, 0)
    assert first.is_descending_order() is True

    last = Post.find_page(db_session, {"per_page": 10, "order_desc": "false"}, page=3)

    assert [post.name for post in last.data] == [f"Post {i}" for i in range(21, 26)]
    assert last.page == 3
    assert last.has_next_page is False
    assert last.is_descending_order() is False


def test_find_page_passes_conditions_and_include(db_session, posts):
    db_session.query(Post).filter(Post.id <= 3).update({"is_published": True})
    db_session.commit()

    result = Post.find_page(db_session, {"conditions": "posts.is_published = 1", "include": "author", "per_page": 2})

    assert len(result.data) == 2
    assert result.has_next_page is True
    assert all(post.author.username == "alice" for post in result.data)


def test_list_and_count_with_conditions(db_session, posts):
    assert Post.count_all(db_session) == 25
    assert Post.count_all(db_session, {"conditions": {"id": [1, 2, 3]}}) == 3
    assert [p.id for p in Post.list_all(db_session, {"conditions": [Post.id > 22], "order": "id ASC"})] == [23, 24, 25]


def test_paged_result_direction_counts_terms():
    assert PagedResult(order="a DESC, b ASC, c desc").is_descending_order() is True
    assert PagedResult(order="a DESC, b ASC").is_descending_order() is False
    assert PagedResult(order="description ASC").is_descending_order() is False
    assert PagedResult().is_descending_order() is False


def test_paged_result_from_options():
    result = PagedResult.from_options([1, 2], "2", True, {"order": "id DESC", "limit": "2", "offset": 2})

    assert result.page == 2
    assert result.limit == 2
    assert result.offset == 2
    assert result.has_next_page is True
