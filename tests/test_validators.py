from __future__ import annotations

import pytest

from charmref.validators import (
    DEFAULT_SERIES,
    SUPPORTED_SERIES,
    SeriesVocabulary,
    is_series_token,
    is_valid_name,
    is_valid_series,
    is_valid_user,
)


@pytest.mark.parametrize("name", ["a", "wordpress", "n0-n0-n0", "n0-0n-n0", "mediawiki-single", "foo-1bar"])
def test_valid_names(name: str) -> None:
    assert is_valid_name(name)


@pytest.mark.parametrize(
    "name",
    ["", "0foo", "Foo", "foo-", "-foo", "foo--bar", "foo-1", "name-1-name", "bad.wolf", "foo_bar", "~blah"],
)
def test_invalid_names(name: str) -> None:
    assert not is_valid_name(name)


@pytest.mark.parametrize("user", ["joe", "bob-smith", "a.b+c", "joe@example.com", "x1", "99"])
def test_valid_users(user: str) -> None:
    assert is_valid_user(user)


@pytest.mark.parametrize("user", ["", "1", "~joe", "-joe", "joe-", "joe@", "@joe", "jo e", "jo/e"])
def test_invalid_users(user: str) -> None:
    assert not is_valid_user(user)


def test_default_vocabulary() -> None:
    for series in SUPPORTED_SERIES:
        assert series in DEFAULT_SERIES
        assert is_valid_series(series)
    assert "bundle" in DEFAULT_SERIES
    assert not is_valid_series("")
    assert not is_valid_series("badwolf")
    assert 42 not in DEFAULT_SERIES


def test_vocabulary_always_contains_bundle() -> None:
    vocab = SeriesVocabulary.of(["alpha"])
    assert vocab.is_valid("alpha")
    assert vocab.is_valid("bundle")
    assert not vocab.is_valid("trusty")


def test_extended_vocabulary_does_not_mutate_original() -> None:
    vocab = DEFAULT_SERIES.extended(["mything"])
    assert "mything" in vocab
    assert "trusty" in vocab
    assert "mything" not in DEFAULT_SERIES


@pytest.mark.parametrize(("token", "ok"), [("mything", True), ("win10", True), ("Bad", False), ("a-b", False), ("", False)])
def test_series_token(token: str, ok: bool) -> None:
    assert is_series_token(token) is ok
