"""charmref exception hierarchy.

Keep this module small and dependency-free: it is imported broadly across the
project and by tests.
"""

from __future__ import annotations

import json


def _q(raw: str) -> str:
    # Double-quoted, escaped form of the offending input for diagnostics.
    return json.dumps(raw, ensure_ascii=False)


class CharmRefError(Exception):
    """Base exception for all charmref errors."""


class CharmRefConfigError(CharmRefError):
    """Raised for invalid user configuration."""


class StoreError(CharmRefError):
    """Raised when the charm store cannot satisfy a request."""


class DigestMismatchError(StoreError):
    """Raised when an archive does not match the store-reported SHA-256."""

    def __init__(self, path: str, expected: str, actual: str) -> None:
        self.path = path
        self.expected = expected
        self.actual = actual
        super().__init__(f"bad SHA256 of {_q(path)}: expected {expected}, got {actual}")


class ParseError(CharmRefError):
    """Base class for reference parse failures.

    Every subclass carries the offending raw input in ``raw`` and a stable
    ``kind`` tag naming the failure.
    """

    kind = "ParseError"
    template = "cannot parse charm or bundle URL: {raw}"

    def __init__(self, raw: str, **details: str) -> None:
        self.raw = raw
        quoted = {k: _q(v) for k, v in details.items()}
        super().__init__(self.template.format(raw=_q(raw), **quoted))


class MalformedInputError(ParseError):
    kind = "MalformedInput"
    template = "cannot parse charm or bundle URL: {raw}"


class UnrecognizedPartsError(ParseError):
    kind = "UnrecognizedParts"
    template = "charm or bundle URL {raw} has unrecognized parts"


class InvalidSchemaError(ParseError):
    kind = "InvalidSchema"
    template = "charm or bundle URL has invalid schema: {raw}"


class LocalURLWithUserError(ParseError):
    kind = "LocalURLWithUser"
    template = "local charm or bundle URL with user name: {raw}"


class InvalidFormError(ParseError):
    kind = "InvalidForm"
    template = "charm or bundle URL has invalid form: {raw}"


class InvalidSeriesError(ParseError):
    kind = "InvalidSeries"
    template = "charm or bundle URL has invalid series: {raw}"


class InvalidUserNameError(ParseError):
    kind = "InvalidUserName"
    template = "charm or bundle URL has invalid user name: {raw}"


class InvalidNameError(ParseError):
    kind = "InvalidName"
    template = "URL has invalid charm or bundle name: {raw}"


class MalformedRevisionError(ParseError):
    """A segment that must be a revision is not a valid revision number."""

    kind = "MalformedRevision"
    template = "charm or bundle URL has malformed revision: {revision} in {raw}"

    def __init__(self, raw: str, revision: str) -> None:
        self.revision = revision
        super().__init__(raw, revision=revision)


class MalformedUserPathError(ParseError):
    kind = "MalformedUserPath"
    template = 'charm or bundle URL {raw} malformed, expected "/u/<user>/<name>"'


class UnresolvedSeriesError(ParseError):
    kind = "UnresolvedSeries"
    template = (
        "cannot infer charm or bundle URL for {raw}: charm or bundle url series is not resolved"
    )


class NoNameInURLError(ParseError):
    kind = "NoNameInURL"
    template = "URL without charm or bundle name: {raw}"
