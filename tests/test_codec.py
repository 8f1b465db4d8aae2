from __future__ import annotations

import json

import pytest

from charmref.codec import (
    ReferenceJSONEncoder,
    dump_document,
    load_document,
    marshal,
    unmarshal,
)
from charmref.errors import InvalidSeriesError, ParseError
from charmref.parser import ReferenceParser
from charmref.reference import Reference
from charmref.validators import DEFAULT_SERIES

REF = Reference("cs", "", "wordpress", -1, "precise")


def test_marshal_uses_canonical_string() -> None:
    assert marshal(REF) == "cs:wordpress/precise"
    assert marshal(Reference("cs", "joe", "foo", 3)) == "cs:joe/foo/3"


def test_absent_reference_stays_absent() -> None:
    assert marshal(None) is None
    assert unmarshal(None) is None


def test_unmarshal_parses_any_spelling() -> None:
    assert unmarshal("precise/wordpress") == REF
    assert unmarshal("cs:wordpress/precise") == REF


def test_unmarshal_rejects_non_strings() -> None:
    with pytest.raises(TypeError):
        unmarshal(42)  # type: ignore[arg-type]


@pytest.mark.parametrize("garbage", ["", "cs:{}+<", "cs:~_~/f00^^&^/baaaar$%-?", ":{"])
def test_unmarshal_garbage_fails(garbage: str) -> None:
    with pytest.raises(ParseError):
        unmarshal(garbage)


def test_unmarshal_with_custom_parser() -> None:
    parser = ReferenceParser(DEFAULT_SERIES.extended(["mything"]))
    with pytest.raises(InvalidSeriesError):
        unmarshal("cs:mything/foo")
    assert unmarshal("cs:mything/foo", parser=parser) == Reference("cs", "", "foo", -1, "mything")


def test_json_encoder_writes_strings() -> None:
    assert json.dumps({"u": REF}, cls=ReferenceJSONEncoder) == '{"u": "cs:wordpress/precise"}'


def test_json_encoder_rejects_other_objects() -> None:
    with pytest.raises(TypeError):
        json.dumps({"u": object()}, cls=ReferenceJSONEncoder)


class TestDocuments:
    def test_dump_omits_absent_fields(self) -> None:
        assert dump_document({"url": REF, "other": None}) == '{"url": "cs:wordpress/precise"}'
        assert dump_document({"url": None}) == "{}"

    def test_dump_omits_absent_fields_in_nested_values(self) -> None:
        doc = {"refs": [{"url": REF, "user": None}], "meta": {"x": None, "y": 1}}
        assert json.loads(dump_document(doc)) == {
            "meta": {"y": 1},
            "refs": [{"url": "cs:wordpress/precise"}],
        }

    def test_load_parses_named_fields(self) -> None:
        doc = load_document('{"url": "precise/wordpress", "note": "precise/wordpress"}', ["url"])
        assert doc["url"] == REF
        assert doc["note"] == "precise/wordpress"

    def test_load_keeps_missing_fields_missing(self) -> None:
        doc = load_document("{}", ["url"])
        assert doc == {}
        assert "url" not in doc

    def test_load_null_field_is_absent_reference(self) -> None:
        assert load_document('{"url": null}', ["url"]) == {"url": None}

    def test_load_rejects_non_objects(self) -> None:
        with pytest.raises(ValueError):
            load_document("[1, 2]", ["url"])

    def test_load_propagates_parse_errors(self) -> None:
        with pytest.raises(ParseError):
            load_document('{"url": "cs:foo-1-2"}', ["url"])

    def test_load_rejects_non_string_fields(self) -> None:
        with pytest.raises(TypeError):
            load_document('{"url": 3}', ["url"])

    def test_dump_then_load(self) -> None:
        ref = Reference("cs", "joe", "foo", 3, "trusty")
        text = dump_document({"url": ref, "name": "x"})
        assert load_document(text, ["url"]) == {"url": ref, "name": "x"}
