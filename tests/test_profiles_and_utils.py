"""Tests for profile projection and the small value helpers."""

from datetime import date, datetime
from decimal import Decimal

import pytest
from hypothesis import given, strategies as st, settings

from record_components.services.introspection import is_numeric, quote_identifier
from record_components.services.profiles import models_to_profiles
from record_components.services.utils import (
    camelize,
    coerce_int,
    date_to_sql_timestamp_string,
    escape_parameter_wildcards,
    underscore,
    validate_sql_timestamp_string,
)
from sample_models import Post, User


class TestModelsToProfiles:
    def test_none_gives_empty_list(self):
        assert models_to_profiles() == []
        assert models_to_profiles(None) == []

    def test_profiles_with_included_relation(self):
        author = User(id=1, username="alice")
        post = Post(name="Hello", body="...", slug="HELLO", is_published=True)
        post.author = author
        orphan = Post(name="Orphan")

        profiles = models_to_profiles([post, orphan], includes=["author"])

        assert profiles[0] == {
            "name": "Hello",
            "body": "...",
            "slug": "HELLO",
            "is_published": True,
            "author": author.get_profile(),
        }
        assert "author" not in profiles[1]

    def test_objects_without_profiles_are_rejected(self):
        with pytest.raises(TypeError):
            models_to_profiles([User(username="bob"), object()])

    def test_included_relation_must_provide_a_profile(self):
        post = Post(name="Hello")
        post.body = "text"

        with pytest.raises(TypeError):
            models_to_profiles([post], includes=["body"])


@settings(max_examples=100)
@given(value=st.floats(allow_nan=False, allow_infinity=False, min_value=-1e12, max_value=1e12))
def test_coerce_int_truncates_floats(value: float):
    """
    Property: For any finite float, coerce_int truncates toward zero.
    """
    assert coerce_int(value) == int(value)
    assert coerce_int(str(value)) == int(Decimal(str(value)))


def test_coerce_int_never_raises():
    assert coerce_int("42") == 42
    assert coerce_int(" -7.9 ") == -7
    assert coerce_int("12abc") == 12
    assert coerce_int("abc") == 0
    assert coerce_int("") == 0
    assert coerce_int(None) == 0
    assert coerce_int(True) == 1
    assert coerce_int(float("nan")) == 0
    assert coerce_int(Decimal("Infinity")) == 0
    assert coerce_int(b"15") == 15
    assert coerce_int("1e3") == 1000
    assert coerce_int(object()) == 0


def test_is_numeric():
    assert is_numeric(3) is True
    assert is_numeric(Decimal("1.5")) is True
    assert is_numeric(" 2.5 ") is True
    assert is_numeric("1e5") is True
    assert is_numeric("12abc") is False
    assert is_numeric(True) is False
    assert is_numeric(None) is False


def test_quote_identifier():
    assert quote_identifier("order") == '"order"'
    assert quote_identifier("order", "`") == "`order`"
    assert quote_identifier('we"ird') == '"we""ird"'


@settings(max_examples=100)
@given(name=st.from_regex(r"[a-z]+(_[a-z]{2,})*", fullmatch=True))
def test_camelize_and_underscore_are_inverse(name: str):
    """
    Property: For any snake_case name whose words after the first have at
    least two letters, underscore(camelize(name)) == name. Single-letter
    words collapse into a run of capitals ("a_b_c" -> "aBC"), which
    underscore() reads back as one word.
    """
    assert underscore(camelize(name)) == name


def test_single_letter_words_do_not_round_trip():
    assert camelize("a_b_c") == "aBC"
    assert underscore("aBC") == "a_bc"


def test_case_conversion_examples():
    assert camelize("last_login_at") == "lastLoginAt"
    assert underscore("lastLoginAt") == "last_login_at"
    assert camelize("id") == "id"


def test_escape_parameter_wildcards():
    assert escape_parameter_wildcards("100%") == "100\\%"
    assert escape_parameter_wildcards("a_b") == "a\\_b"
    assert escape_parameter_wildcards("plain") == "plain"


def test_date_to_sql_timestamp_string():
    assert date_to_sql_timestamp_string(datetime(2024, 3, 4, 5, 6, 7)) == "2024-03-04 05:06:07"
    assert date_to_sql_timestamp_string(date(2024, 3, 4)) == "2024-03-04 00:00:00"
    assert date_to_sql_timestamp_string("2024-03-04T05:06:07") == "2024-03-04 05:06:07"
    assert validate_sql_timestamp_string(date_to_sql_timestamp_string())


def test_validate_sql_timestamp_string():
    assert validate_sql_timestamp_string("2024-03-04 05:06:07") is True
    assert validate_sql_timestamp_string("2024-03-04") is False
    assert validate_sql_timestamp_string("2024-13-04 05:06:07") is False
    assert validate_sql_timestamp_string("not a date") is False
