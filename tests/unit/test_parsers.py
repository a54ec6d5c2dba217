"""Unit tests for JSON recovery from model output."""

from docverify.utils.parsers import Parsed, Unparseable, parse_first_object, parse_json_object


class TestParseJsonObject:
    def test_strict_json(self):
        assert parse_json_object('{"sex": "Male"}') == Parsed({"sex": "Male"})

    def test_object_embedded_in_prose(self):
        raw = 'Sure! Here is the result:\n```json\n{"firstName": "JUAN"}\n```'
        assert parse_json_object(raw) == Parsed({"firstName": "JUAN"})

    def test_empty_output(self):
        assert isinstance(parse_json_object("   "), Unparseable)
        assert isinstance(parse_json_object(None), Unparseable)

    def test_truncated_object_is_unparseable(self):
        outcome = parse_json_object('{"firstName": "JUAN", "lastName": "DEL')
        assert isinstance(outcome, Unparseable)
        assert outcome.reason == "no JSON object in output"

    def test_non_object_json_is_unparseable(self):
        assert isinstance(parse_json_object("[1, 2, 3]"), Unparseable)

    def test_invalid_braced_text(self):
        outcome = parse_json_object("{not json}")
        assert outcome == Unparseable("invalid JSON object in output")


class TestParseFirstObject:
    def test_returns_first_parseable(self):
        assert parse_first_object(["garbage", '{"a": 1}', '{"b": 2}']) == Parsed({"a": 1})

    def test_no_candidates(self):
        assert isinstance(parse_first_object([]), Unparseable)
