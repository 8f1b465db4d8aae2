from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

from charmref.codec import marshal, unmarshal
from charmref.errors import (
    CharmRefConfigError,
    CharmRefError,
    DigestMismatchError,
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
    StoreError,
    UnrecognizedPartsError,
    UnresolvedSeriesError,
)
from charmref.parser import ReferenceParser, infer, must_parse, parse
from charmref.reference import LOCAL_SCHEMA, STORE_SCHEMA, UNSET_REVISION, Reference, quote
from charmref.validators import (
    DEFAULT_SERIES,
    SeriesVocabulary,
    is_valid_name,
    is_valid_series,
    is_valid_user,
)


def _package_version() -> str:
    try:
        return version("charmref")
    except PackageNotFoundError:
        # Running from a source checkout, or otherwise not installed.
        return "0.0.0"


__version__ = _package_version()

__all__ = [
    "DEFAULT_SERIES",
    "LOCAL_SCHEMA",
    "STORE_SCHEMA",
    "UNSET_REVISION",
    "CharmRefConfigError",
    "CharmRefError",
    "DigestMismatchError",
    "InvalidFormError",
    "InvalidNameError",
    "InvalidSchemaError",
    "InvalidSeriesError",
    "InvalidUserNameError",
    "LocalURLWithUserError",
    "MalformedInputError",
    "MalformedRevisionError",
    "MalformedUserPathError",
    "NoNameInURLError",
    "ParseError",
    "Reference",
    "ReferenceParser",
    "SeriesVocabulary",
    "StoreError",
    "UnrecognizedPartsError",
    "UnresolvedSeriesError",
    "__version__",
    "infer",
    "is_valid_name",
    "is_valid_series",
    "is_valid_user",
    "marshal",
    "must_parse",
    "parse",
    "quote",
    "unmarshal",
]
