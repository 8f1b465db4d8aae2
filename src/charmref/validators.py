"""Syntax and membership checks for reference components.

Every predicate here is pure. The series vocabulary is a frozen set assembled
once at import time; parsers receive a ``SeriesVocabulary`` instead of
consulting the module constant so tests can swap in alternate vocabularies.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass

BUNDLE_SERIES = "bundle"

_VALID_NAME = re.compile(r"[a-z][a-z0-9]*(-[a-z0-9]*[a-z][a-z0-9]*)*")

# <name>[@<domain>] where both halves are at least two characters long.
_USER_PART = r"[a-zA-Z0-9][a-zA-Z0-9.+-]*[a-zA-Z0-9]"
_VALID_USER = re.compile(rf"{_USER_PART}(?:@{_USER_PART})?")

_SERIES_TOKEN = re.compile(r"[a-z][a-z0-9]*")

SUPPORTED_SERIES: tuple[str, ...] = (
    # Ubuntu
    "oneiric",
    "precise",
    "quantal",
    "raring",
    "saucy",
    "trusty",
    "utopic",
    "vivid",
    "wily",
    "xenial",
    "yakkety",
    "zesty",
    "artful",
    "bionic",
    "cosmic",
    "disco",
    "eoan",
    "focal",
    "groovy",
    "hirsute",
    "impish",
    "jammy",
    "kinetic",
    "lunar",
    "mantic",
    "noble",
    # Windows
    "win2012hvr2",
    "win2012hv",
    "win2012r2",
    "win2012",
    "win2016",
    "win2016hv",
    "win2016nano",
    "win7",
    "win8",
    "win81",
    "win10",
    # Other
    "centos7",
    "opensuseleap",
    "genericlinux",
    "kubernetes",
)


def is_valid_name(name: str) -> bool:
    """Report whether ``name`` is a valid charm or bundle name.

    Lowercase alphanumerics separated by single hyphens; the name starts with
    a letter and no hyphen-separated token is purely numeric.
    """

    return _VALID_NAME.fullmatch(name) is not None


def is_valid_user(user: str) -> bool:
    """Report whether ``user`` is a syntactically valid owner handle."""

    return _VALID_USER.fullmatch(user) is not None


def is_series_token(series: str) -> bool:
    """Report whether ``series`` could name a series (used to vet config)."""

    return _SERIES_TOKEN.fullmatch(series) is not None


@dataclass(frozen=True, slots=True)
class SeriesVocabulary:
    """Closed-world set of recognized platform series.

    The pseudo-series ``"bundle"`` is always a member.
    """

    names: frozenset[str]

    @classmethod
    def of(cls, names: Iterable[str]) -> SeriesVocabulary:
        return cls(frozenset(names) | {BUNDLE_SERIES})

    def __contains__(self, series: object) -> bool:
        return isinstance(series, str) and series in self.names

    def is_valid(self, series: str) -> bool:
        return series in self

    def extended(self, extra: Iterable[str]) -> SeriesVocabulary:
        """Return a new vocabulary with ``extra`` added."""

        return SeriesVocabulary.of(self.names | frozenset(extra))


DEFAULT_SERIES = SeriesVocabulary.of(SUPPORTED_SERIES)


def is_valid_series(series: str) -> bool:
    """Report whether ``series`` is in the default series vocabulary."""

    return DEFAULT_SERIES.is_valid(series)
