"""Tests for the prefixed argument codec."""

from makemcp.params import (
    KNOWN_PREFIXES,
    encode_cookies,
    encode_query,
    format_value,
    split_arguments,
    split_prefix,
    strip_prefix,
)


class TestSplitArguments:
    def test_routes_each_location(self):
        params = split_arguments(
            {
                "path__id": "42",
                "query__limit": 10,
                "header__X-Trace": "t1",
                "cookie__session": "s1",
                "body__name": "Ada",
            }
        )

        assert params.path == {"id": "42"}
        assert params.query == {"limit": 10}
        assert params.header == {"X-Trace": "t1"}
        assert params.cookie == {"session": "s1"}
        assert params.body == {"name": "Ada"}

    def test_form_and_multipart_keep_prefix(self):
        params = split_arguments({"form__a": "1", "multipart__file": "x"})

        assert params.body == {"form__a": "1", "multipart__file": "x"}

    def test_bare_body_key(self):
        params = split_arguments({"body": "<root/>"})

        assert params.body == {"body": "<root/>"}

    def test_unknown_keys_are_dropped(self):
        params = split_arguments({"limit": 5, "other__x": 1, "query__ok": True})

        assert params.query == {"ok": True}
        assert params.path == params.header == params.cookie == params.body == {}

    def test_union_of_locations_matches_known_prefix_entries(self):
        arguments = {
            "path__a": 1,
            "query__b": [1, 2],
            "header__c": "x",
            "cookie__d": "y",
            "body__e": {"nested": True},
            "form__f": "z",
            "multipart__g": "w",
            "stray": "dropped",
            "nope__h": "dropped",
        }
        params = split_arguments(arguments)

        recovered = {}
        for location in ("path", "query", "header", "cookie"):
            for name, value in getattr(params, location).items():
                recovered[f"{location}__{name}"] = value
        for key, value in params.body.items():
            recovered[key if "__" in key else f"body__{key}"] = value

        expected = {k: v for k, v in arguments.items() if split_prefix(k)[0] in KNOWN_PREFIXES}
        assert recovered == expected


class TestSplitPrefix:
    def test_splits_on_first_separator(self):
        assert split_prefix("body__user__name") == ("body", "user__name")

    def test_no_separator(self):
        assert split_prefix("body") == ("", "body")


class TestFormatting:
    def test_format_value(self):
        assert format_value(True) == "true"
        assert format_value(False) == "false"
        assert format_value(10.0) == "10"
        assert format_value(2.5) == "2.5"
        assert format_value("abc") == "abc"
        assert format_value(None) == ""
        assert format_value({"a": [1, 2]}) == '{"a":[1,2]}'

    def test_encode_query_sorts_keys_and_repeats_lists(self):
        assert encode_query({"z": 1, "a": ["x", "y"], "flag": True}) == "a=x&a=y&flag=true&z=1"

    def test_encode_query_escapes(self):
        assert encode_query({"q": "a b&c"}) == "q=a+b%26c"

    def test_encode_cookies(self):
        assert encode_cookies({"session": "s1", "csrf": "c1"}) == "session=s1; csrf=c1"

    def test_strip_prefix(self):
        body = {"form__a": "1", "form__b": "2", "multipart__c": "3"}

        assert strip_prefix(body, "form") == {"a": "1", "b": "2"}
