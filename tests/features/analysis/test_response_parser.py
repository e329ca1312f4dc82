import pytest

from pagegrade.features.analysis.services.utils.response_parser import (
    find_first_json_object,
    parse_json_object,
)


class TestFindFirstJsonObject:
    def test_object_surrounded_by_prose_and_fences(self):
        text = 'Here you go:\n```json\n{"a": {"b": 1}}\n```\nHope that helps {sic}'

        assert find_first_json_object(text) == '{"a": {"b": 1}}'

    def test_braces_inside_strings_are_ignored(self):
        text = '{"text": "a } inside", "escaped": "quote \\" and {"}'

        assert find_first_json_object(text) == text

    def test_unbalanced_prefix_falls_through_to_next_object(self):
        text = '{ never closed {"ok": true}'

        assert find_first_json_object(text) == '{"ok": true}'

    def test_no_object(self):
        assert find_first_json_object("no json here") is None
        assert find_first_json_object("") is None


class TestParseJsonObject:
    def test_returns_dict(self):
        assert parse_json_object('prefix {"score": 80} suffix') == {"score": 80}

    def test_raises_when_missing(self):
        with pytest.raises(ValueError):
            parse_json_object("I cannot analyze this page.")

    def test_raises_on_invalid_json(self):
        with pytest.raises(ValueError):
            parse_json_object("{'single': 'quotes'}")
