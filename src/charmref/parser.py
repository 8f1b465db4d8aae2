"""Reference parsing entry points.

``ReferenceParser.parse`` accepts every supported spelling of a charm or
bundle reference and normalizes it::

    cs:~joe/oneiric/wordpress       (compact)
    cs:precise/wordpress-20         (compact)
    local:oneiric/wordpress         (compact)
    joe/wordpress/trusty/1          (slash)
    wordpress/saucy                 (slash)
    https://jujucharms.com/u/joe/wordpress/trusty/1   (web)

A missing schema is assumed to be ``cs``.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable

from charmref.errors import (
    ParseError,
    UnrecognizedPartsError,
    UnresolvedSeriesError,
)
from charmref.grammars import (
    GrammarRules,
    ParseResult,
    parse_compact,
    parse_slash,
    parse_web,
    split_uri,
)
from charmref.reference import STORE_SCHEMA, Reference
from charmref.validators import DEFAULT_SERIES, SeriesVocabulary, is_valid_user


class ReferenceParser:
    """Parser bound to a series vocabulary and a user-name oracle."""

    def __init__(
        self,
        series: SeriesVocabulary = DEFAULT_SERIES,
        *,
        valid_user: Callable[[str], bool] = is_valid_user,
    ) -> None:
        self._rules = GrammarRules(series=series, valid_user=valid_user)

    @property
    def series(self) -> SeriesVocabulary:
        return self._rules.series

    def parse_result(self, raw: str) -> ParseResult:
        """Parse ``raw``, returning the error instead of raising it."""

        if not isinstance(raw, str):
            raise TypeError("charm or bundle URL must be a str")

        split = split_uri(raw)
        if isinstance(split, ParseError):
            return split
        if split.has_query or split.has_fragment or split.has_userinfo:
            return UnrecognizedPartsError(raw)

        if split.opaque or not split.is_web:
            result = self._parse_legacy(split.scheme, split.path, raw)
        else:
            result = parse_web(split.path, raw, self._rules)

        if isinstance(result, Reference) and not result.schema:
            result = dataclasses.replace(result, schema=STORE_SCHEMA)
        return result

    def _parse_legacy(self, scheme: str, path: str, raw: str) -> ParseResult:
        # "precise/wordpress" reads as series/name in the compact grammar and
        # as user/name in the slash grammar; a leading series always wins.
        first = path.split("/", 1)[0]
        if first in self._rules.series:
            return parse_compact(scheme, path, raw, self._rules)

        result = parse_slash(scheme, path, raw, self._rules)
        if isinstance(result, Reference):
            return result
        return parse_compact(scheme, path, raw, self._rules)

    def parse(self, raw: str) -> Reference:
        """Parse ``raw`` into a :class:`Reference`.

        Raises a :class:`ParseError` subclass naming the first rule the input
        breaks.
        """

        result = self.parse_result(raw)
        if isinstance(result, ParseError):
            raise result
        return result

    def must_parse(self, raw: str) -> Reference:
        """Like :meth:`parse`, but treats failure as a programming error.

        Only use this on literal constants known to be valid.
        """

        try:
            return self.parse(raw)
        except ParseError as e:
            raise RuntimeError(str(e)) from e

    def infer(self, raw: str, default_series: str) -> Reference:
        """Parse ``raw`` and fill an unset series from ``default_series``."""

        ref = self.parse(raw)
        if ref.series:
            return ref
        if not default_series:
            raise UnresolvedSeriesError(raw)
        return ref.with_series(default_series)


_DEFAULT_PARSER = ReferenceParser()


def default_parser() -> ReferenceParser:
    return _DEFAULT_PARSER


def parse(raw: str) -> Reference:
    return _DEFAULT_PARSER.parse(raw)


def must_parse(raw: str) -> Reference:
    return _DEFAULT_PARSER.must_parse(raw)


def infer(raw: str, default_series: str) -> Reference:
    return _DEFAULT_PARSER.infer(raw, default_series)


__all__ = [
    "ReferenceParser",
    "default_parser",
    "infer",
    "must_parse",
    "parse",
]
