"""The textual grammars accepted for charm or bundle references.

Each parser is a pure function returning either a :class:`Reference` or the
:class:`ParseError` describing why the text does not fit that grammar. The
errors are returned rather than raised so the dispatcher can try one grammar,
inspect the outcome and fall back to another.

Grammars (any of schema, user, series and revision may be omitted)::

    compact:  cs:~user/series/name-revision
    slash:    cs:user/name/series/revision
    web:      https://host/u/user/name/series/revision
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, field
from urllib.parse import unquote, urlsplit

from charmref.errors import (
    InvalidFormError,
    InvalidNameError,
    InvalidSchemaError,
    InvalidSeriesError,
    InvalidUserNameError,
    LocalURLWithUserError,
    MalformedInputError,
    MalformedRevisionError,
    MalformedUserPathError,
    NoNameInURLError,
    ParseError,
    UnrecognizedPartsError,
)
from charmref.reference import (
    LOCAL_SCHEMA,
    SCHEMAS,
    STORE_SCHEMA,
    UNSET_REVISION,
    Reference,
)
from charmref.validators import DEFAULT_SERIES, SeriesVocabulary, is_valid_name, is_valid_user

ParseResult = Reference | ParseError

_DIGITS = re.compile(r"[0-9]+")
# Revisions have at most this many digits.
_MAX_REVISION_DIGITS = 18
_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")
_CONTROL = re.compile(r"[\x00-\x20\x7f]")


@dataclass(frozen=True, slots=True)
class GrammarRules:
    """Validation oracles shared by all grammars."""

    series: SeriesVocabulary = DEFAULT_SERIES
    valid_user: Callable[[str], bool] = field(default=is_valid_user)


@dataclass(frozen=True, slots=True)
class SplitURI:
    """Generic URI shape of a raw reference."""

    scheme: str
    path: str
    opaque: bool
    has_query: bool
    has_fragment: bool
    has_userinfo: bool

    @property
    def is_web(self) -> bool:
        return self.scheme in ("http", "https")


def split_uri(raw: str) -> SplitURI | ParseError:
    """Split ``raw`` into its URI components, or report it as malformed."""

    if _CONTROL.search(raw):
        return MalformedInputError(raw)
    try:
        parts = urlsplit(raw)
        has_userinfo = parts.username is not None
    except ValueError:
        return MalformedInputError(raw)

    scheme = parts.scheme
    path = parts.path
    if not scheme:
        # "a:b/c" without a valid scheme (e.g. ":foo") is ambiguous with a
        # scheme and is rejected outright.
        if ":" in path.split("/", 1)[0]:
            return MalformedInputError(raw)

    opaque = bool(scheme) and not parts.netloc and not path.startswith("/")
    if not opaque:
        if _BAD_ESCAPE.search(path):
            return MalformedInputError(raw)
        path = unquote(path)

    return SplitURI(
        scheme=scheme,
        path=path,
        opaque=opaque,
        has_query=bool(parts.query),
        has_fragment=bool(parts.fragment),
        has_userinfo=has_userinfo,
    )


def is_revision(segment: str) -> bool:
    return len(segment) <= _MAX_REVISION_DIGITS and _DIGITS.fullmatch(segment) is not None


def split_name_revision(segment: str) -> tuple[str, int]:
    """Split a compact ``name-revision`` segment.

    Scans right to left over trailing digits; only a hyphen that directly
    precedes them (and is neither first nor last) splits the segment. The
    left part is not validated here. A digit run too long to be a revision
    leaves the segment unsplit.
    """

    for i in range(len(segment) - 1, 0, -1):
        c = segment[i]
        if "0" <= c <= "9":
            continue
        if c == "-" and i != len(segment) - 1:
            if len(segment) - 1 - i > _MAX_REVISION_DIGITS:
                break
            return segment[:i], int(segment[i + 1 :])
        break
    return segment, UNSET_REVISION


def _check_schema(scheme: str, raw: str) -> str | ParseError:
    if not scheme:
        return ""
    if scheme not in SCHEMAS:
        return InvalidSchemaError(raw)
    return scheme


def parse_compact(scheme: str, path: str, raw: str, rules: GrammarRules) -> ParseResult:
    """Parse ``[~user/][series/]name[-revision]``."""

    schema = _check_schema(scheme, raw)
    if isinstance(schema, ParseError):
        return schema

    parts = path.split("/")
    if len(parts) > 4:
        return InvalidFormError(raw)

    user: str | None = None
    if parts[0].startswith("~"):
        if schema == LOCAL_SCHEMA:
            return LocalURLWithUserError(raw)
        user, parts = parts[0][1:], parts[1:]

    if len(parts) > 2:
        return InvalidFormError(raw)

    series = ""
    if len(parts) == 2:
        series, parts = parts[0], parts[1:]
        if series not in rules.series:
            return InvalidSeriesError(raw)
    if not parts:
        return NoNameInURLError(raw)

    name, revision = split_name_revision(parts[0])
    if user is not None and not rules.valid_user(user):
        return InvalidUserNameError(raw)
    if not is_valid_name(name):
        return InvalidNameError(raw)
    return Reference(
        schema=schema,
        user=user or "",
        name=name,
        revision=revision,
        series=series,
    )


def parse_slash(scheme: str, path: str, raw: str, rules: GrammarRules) -> ParseResult:
    """Parse ``[user/]name[/series][/revision]``, consuming from the end."""

    schema = _check_schema(scheme, raw)
    if isinstance(schema, ParseError):
        return schema

    parts = path.split("/")
    if len(parts) > 4:
        return UnrecognizedPartsError(raw)

    last = len(parts) - 1
    revision = UNSET_REVISION
    if is_revision(parts[last]):
        revision = int(parts[last])
        last -= 1

    series = ""
    if last >= 0 and parts[last] in rules.series:
        series = parts[last]
        last -= 1

    # Name is required.
    if last < 0 or not is_valid_name(parts[last]):
        return InvalidNameError(raw)
    name = parts[last]
    last -= 1

    user = ""
    if last >= 0:
        if not rules.valid_user(parts[last]):
            return InvalidUserNameError(raw)
        user = parts[last]
        last -= 1

    if last != -1:
        return UnrecognizedPartsError(raw)
    if user and schema == LOCAL_SCHEMA:
        return LocalURLWithUserError(raw)

    return Reference(schema=schema, user=user, name=name, revision=revision, series=series)


def parse_web(path: str, raw: str, rules: GrammarRules) -> ParseResult:
    """Parse the path of a store web URL: ``[/u/<user>]/<name>[/<series>][/<revision>]``."""

    parts = path.strip("/").split("/")
    user = ""
    if parts[0] == "u":
        if len(parts) < 3:
            return MalformedUserPathError(raw)
        user, parts = parts[1], parts[2:]

    name, parts = parts[0], parts[1:]
    revision = UNSET_REVISION
    series = ""
    if parts:
        if _DIGITS.fullmatch(parts[0]):
            if not is_revision(parts[0]):
                return MalformedRevisionError(raw, parts[0])
            revision, parts = int(parts[0]), parts[1:]
        else:
            series, parts = parts[0], parts[1:]
            if series not in rules.series:
                return InvalidSeriesError(raw)
            if parts:
                if not is_revision(parts[0]):
                    return MalformedRevisionError(raw, parts[0])
                revision, parts = int(parts[0]), parts[1:]
        if parts:
            return UnrecognizedPartsError(raw)

    if user and not rules.valid_user(user):
        return InvalidUserNameError(raw)
    if not is_valid_name(name):
        return InvalidNameError(raw)
    return Reference(schema=STORE_SCHEMA, user=user, name=name, revision=revision, series=series)
