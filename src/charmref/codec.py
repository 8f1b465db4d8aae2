"""Text and JSON serialization for references.

A reference always travels as its canonical string. An absent reference is
kept absent: ``None`` marshals to ``None`` and documents omit the field, so
decoding never produces a zero-valued reference.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from typing import Any

from charmref.parser import ReferenceParser, default_parser
from charmref.reference import Reference


def marshal(ref: Reference | None) -> str | None:
    if ref is None:
        return None
    return ref.string()


def unmarshal(value: str | None, *, parser: ReferenceParser | None = None) -> Reference | None:
    """Parse a marshalled reference; ``None`` stays ``None``."""

    if value is None:
        return None
    if not isinstance(value, str):
        raise TypeError(f"charm or bundle URL must be a str, got {type(value).__name__}")
    return (parser or default_parser()).parse(value)


class ReferenceJSONEncoder(json.JSONEncoder):
    """JSON encoder that writes references as canonical strings."""

    def default(self, o: Any) -> Any:
        if isinstance(o, Reference):
            return o.string()
        return super().default(o)


def _omit_absent(value: object) -> object:
    if isinstance(value, Mapping):
        return {str(k): _omit_absent(v) for k, v in value.items() if v is not None}
    if isinstance(value, (list, tuple)):
        return [_omit_absent(v) for v in value]
    return value


def dump_document(doc: Mapping[str, object], *, indent: int | None = None) -> str:
    """Serialize ``doc`` to JSON, dropping ``None`` fields."""

    return json.dumps(_omit_absent(doc), cls=ReferenceJSONEncoder, sort_keys=True, indent=indent)


def load_document(
    text: str,
    reference_fields: Iterable[str],
    *,
    parser: ReferenceParser | None = None,
) -> dict[str, object]:
    """Load a JSON object, parsing the named fields into references.

    Fields that are missing from the document stay missing.
    """

    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError("expected a JSON object")
    for key in reference_fields:
        if key not in data:
            continue
        data[key] = unmarshal(data[key], parser=parser)
    return data
