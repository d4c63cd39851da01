"""Tests for request body strategies."""

import json

import pytest

from makemcp.content_types import (
    ContentTypeRegistry,
    FormUrlEncodedHandler,
    JsonContentTypeHandler,
    MultipartFormDataHandler,
    PlainTextHandler,
    XmlContentTypeHandler,
)
from makemcp.errors import HandlerBuildError


OBJECT_MEDIA = {
    "schema": {
        "type": "object",
        "required": ["name"],
        "properties": {
            "name": {"type": "string", "description": "Full name"},
            "age": {"type": "integer"},
        },
    }
}


class TestRegistry:
    def test_json_wins_over_xml(self):
        registry = ContentTypeRegistry()
        content = {"application/xml": {}, "application/json": {}}

        assert registry.determine_content_type(content) == "application/json"

    def test_unknown_type_falls_back_to_first_declared(self):
        registry = ContentTypeRegistry()

        assert registry.determine_content_type({"application/octet-stream": {}}) == (
            "application/octet-stream"
        )
        assert registry.determine_content_type({}) == ""

    def test_exact_match_ignores_parameters(self):
        registry = ContentTypeRegistry()

        handler = registry.get_handler("application/json; charset=utf-8")
        assert isinstance(handler, JsonContentTypeHandler)

    def test_wildcard_match(self):
        registry = ContentTypeRegistry()

        assert isinstance(registry.get_handler("text/csv"), PlainTextHandler)

    def test_unmatched_uses_json_fallback(self):
        registry = ContentTypeRegistry()

        assert isinstance(registry.get_handler("application/octet-stream"), JsonContentTypeHandler)

    def test_registration_order_sets_priority(self):
        registry = ContentTypeRegistry()
        types = registry.content_types()

        assert types.index("application/json") < types.index("application/xml")
        assert types.index("application/xml") < types.index("text/plain")


class TestExtractParameters:
    def test_json_properties_are_body_prefixed(self):
        properties, required = JsonContentTypeHandler().extract_parameters(OBJECT_MEDIA)

        assert set(properties) == {"body__name", "body__age"}
        assert properties["body__age"].type == "integer"
        assert properties["body__name"].description == "Full name"
        assert required == ["body__name"]

    def test_json_without_properties_emits_nothing(self):
        properties, required = JsonContentTypeHandler().extract_parameters(
            {"schema": {"type": "string"}}
        )

        assert properties == {}
        assert required == []

    def test_xml_unstructured_uses_body(self):
        properties, required = XmlContentTypeHandler().extract_parameters(
            {"schema": {"type": "string"}}
        )

        assert list(properties) == ["body"]
        assert properties["body"].description == "XML request body content"
        assert required == ["body"]

    def test_form_uses_form_prefix(self):
        properties, required = FormUrlEncodedHandler().extract_parameters(OBJECT_MEDIA)

        assert set(properties) == {"form__name", "form__age"}
        assert required == ["form__name"]

    def test_form_fallback_describes_examples(self):
        media = {"example": "a=1", "examples": {"basic": {"value": "b=2"}}}
        properties, _ = FormUrlEncodedHandler().extract_parameters(media)

        description = properties["body"].description
        assert description.startswith("Form URL-encoded request body. ")
        assert '"a=1"' in description
        assert '- basic: "b=2"' in description

    def test_multipart_marks_binary_as_file(self):
        media = {
            "schema": {
                "type": "object",
                "properties": {
                    "upload": {"type": "string", "format": "binary"},
                    "note": {"type": "string"},
                },
            }
        }
        properties, _ = MultipartFormDataHandler().extract_parameters(media)

        assert properties["multipart__upload"].type == "file"
        assert properties["multipart__note"].type == "string"

    def test_plain_text_always_body(self):
        properties, required = PlainTextHandler().extract_parameters(OBJECT_MEDIA)

        assert list(properties) == ["body"]
        assert required == ["body"]


class TestBuildBody:
    def test_empty_body_is_none(self):
        for handler in (
            JsonContentTypeHandler(),
            XmlContentTypeHandler(),
            FormUrlEncodedHandler(),
            MultipartFormDataHandler(),
            PlainTextHandler(),
        ):
            assert handler.build_body({}) is None

    def test_json(self):
        body = JsonContentTypeHandler().build_body({"name": "Ada", "age": 36})

        assert json.loads(body.content) == {"name": "Ada", "age": 36}

    def test_json_unserializable(self):
        with pytest.raises(HandlerBuildError, match="failed to marshal JSON body"):
            JsonContentTypeHandler().build_body({"value": object()})

    def test_xml_string_is_verbatim(self):
        body = XmlContentTypeHandler().build_body({"body": "<root/>"})

        assert body.content == b"<root/>"

    def test_xml_non_string(self):
        with pytest.raises(HandlerBuildError, match="must be a string containing valid XML"):
            XmlContentTypeHandler().build_body({"body": 5})

    def test_xml_structured_sends_json(self):
        body = XmlContentTypeHandler().build_body({"name": "Ada"})

        assert json.loads(body.content) == {"name": "Ada"}

    def test_form_encodes_sorted_fields(self):
        body = FormUrlEncodedHandler().build_body({"form__b": "two words", "form__a": True})

        assert body.content == b"a=true&b=two+words"

    def test_form_without_prefixed_fields(self):
        with pytest.raises(HandlerBuildError, match="no form__ prefixed parameters"):
            FormUrlEncodedHandler().build_body({"name": "Ada"})

    def test_multipart_fields(self):
        body = MultipartFormDataHandler().build_body({"multipart__note": "hi", "multipart__n": 3})

        assert body.content is None
        assert sorted(body.files) == [("n", (None, "3")), ("note", (None, "hi"))]

    def test_multipart_without_prefixed_fields(self):
        with pytest.raises(HandlerBuildError, match="no multipart__ prefixed parameters"):
            MultipartFormDataHandler().build_body({"note": "hi"})

    def test_plain_text_requires_body(self):
        with pytest.raises(HandlerBuildError, match="requires a 'body' parameter"):
            PlainTextHandler().build_body({"name": "Ada"})

    def test_plain_text_requires_string(self):
        with pytest.raises(HandlerBuildError, match="must be a string"):
            PlainTextHandler().build_body({"body": 1})
