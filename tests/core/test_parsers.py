import pytest

from llmloop.core.exceptions import ParserError, ParserInvariantViolation
from llmloop.core.parsers import (
    JsonParser,
    LineScanner,
    ListNode,
    MarkdownLikeParser,
    MarkdownListParser,
    PlaintextParser,
    ReplyParser,
    YamlParser,
    to_json,
)


class TestMarkdownLikeParser:
    parser = MarkdownLikeParser()

    @pytest.mark.parametrize("reply", ["key: value", "\n\nkey: value", "key: value\n\n", "\n key: value \n"])
    def test_scalar(self, reply):
        assert self.parser.parse_reply(reply) == {"key": "value"}

    def test_key_is_lowercased(self):
        assert self.parser.parse_reply("Name: Tom") == {"name": "Tom"}

    def test_list_and_plaintext(self):
        reply = "**interests**:\n - music\n - sports\nTom is a good person"
        parsed = self.parser.parse_reply(reply)
        assert parsed == {
            "interests": [ListNode(value="music"), ListNode(value="sports")],
            "-": "Tom is a good person",
        }

    def test_quoted_colon_is_plaintext(self):
        reply = 'The book "The Lord of the Rings: The Fellowship of the Ring" is a good book.'
        assert self.parser.parse_reply(reply) == {"-": reply}

    def test_long_prefix_is_plaintext(self):
        reply = "This sentence is long enough that the colon comes much later: really"
        assert self.parser.parse_reply(reply) == {"-": reply}

    def test_plaintext_lines_joined(self):
        assert self.parser.parse_reply("first line\nsecond line") == {"-": "first line\nsecond line"}

    def test_nested_list(self):
        reply = "steps:\n- Step 1:\n  - be careful\n  - be patient\n- Step 2:\n  - Profit"
        steps = self.parser.parse_reply(reply)["steps"]
        assert len(steps) == 2
        assert len(steps[0].children) == 2
        assert len(steps[1].children) == 1
        assert steps[0][1].value == "be patient"
        assert steps[1][0].value == "Profit"

    def test_blank_lines_inside_list(self):
        parsed = self.parser.parse_reply("items:\n- a\n\n- b\nafter")
        assert [n.value for n in parsed["items"]] == ["a", "b"]
        assert parsed["-"] == "after"

    def test_empty_section(self):
        assert self.parser.parse_reply("items:\nname: Tom") == {"items": [], "name": "Tom"}

    def test_indented_section(self):
        parsed = self.parser.parse_reply("items:\n  - a\n    - a1\n  - b")
        assert [n.value for n in parsed["items"]] == ["a", "b"]
        assert parsed["items"][0][0].value == "a1"

    def test_skipped_level_gets_placeholder(self):
        items = self.parser.parse_reply("items:\n- a\n    - deep\n- b")["items"]
        assert [n.value for n in items] == ["a", "b"]
        assert items[0][0].value == ""
        assert items[0][0][0].value == "deep"

    def test_invalid_indentation(self):
        with pytest.raises(ParserError, match="indentation"):
            self.parser.parse_reply("items:\n- a\n      - too deep")

    def test_altname_for_plaintext(self):
        parser = MarkdownLikeParser(altname_for_plaintext=["Notes"])
        parsed = parser.parse_reply("notes:\n- remember this")
        assert [n.value for n in parsed["-"]] == ["remember this"]

    def test_free_text_after_altname_section(self):
        parser = MarkdownLikeParser(altname_for_plaintext=["notes"])
        parsed = parser.parse_reply("notes:\n- remember this\nand this too")
        assert [n.value for n in parsed["-"]] == ["remember this", "and this too"]

    def test_altname_section_after_free_text(self):
        parser = MarkdownLikeParser(altname_for_plaintext=["notes"])
        parsed = parser.parse_reply("intro text\nnotes:\n- remember this")
        assert [n.value for n in parsed["-"]] == ["intro text", "remember this"]

    def test_empty(self):
        assert self.parser.parse_reply("") == {}

    def test_is_reply_parser(self):
        assert isinstance(self.parser, ReplyParser)


class TestListNode:
    def test_leaf_to_json(self):
        assert ListNode(value="name: Tom").to_json() == {"name": "Tom"}

    def test_numeric_values(self):
        assert ListNode(value="age: 42").to_json() == {"age": 42}
        assert ListNode(value="height: 1.8").to_json() == {"height": 1.8}
        assert ListNode(value="version: 1.2.3").to_json() == {"version": "1.2.3"}

    def test_leaf_without_value(self):
        with pytest.raises(ParserError):
            ListNode(value="just text").to_json()

    def test_nested_to_json(self):
        parsed = MarkdownLikeParser().parse_reply("people:\n- Tom:\n  - age: 30\n  - city: Paris")
        assert to_json(parsed["people"]) == [{"Tom": {"age": 30, "city": "Paris"}}]

    def test_to_json_scalar(self):
        assert to_json("text") == "text"


class TestLineScanner:
    def test_no_progress(self):
        scanner = LineScanner("a\nb")
        scanner.advance()
        with pytest.raises(ParserInvariantViolation):
            scanner.advance()

    def test_next_line(self):
        scanner = LineScanner("a\nb")
        assert scanner.next_line() == "a"
        assert scanner.next_line() == "b"
        assert not scanner


class TestMarkdownListParser:
    def test_parse(self):
        reply = "Here you go:\n- one\n* two\n  + three\nnot an item"
        assert MarkdownListParser().parse_reply(reply) == ["one", "two", "three"]


class TestJsonParser:
    body = '{"name": "Tom", "tags": [1, 2]}'

    def test_bare(self):
        assert JsonParser().parse_reply(self.body) == {"name": "Tom", "tags": [1, 2]}

    def test_fenced(self):
        fenced = f"```json\n{self.body}\n```"
        assert JsonParser().parse_reply(fenced) == JsonParser().parse_reply(self.body)

    def test_untagged_fence(self):
        assert JsonParser().parse_reply(f"```\n{self.body}\n```") == {"name": "Tom", "tags": [1, 2]}

    def test_invalid(self):
        with pytest.raises(ParserError):
            JsonParser().parse_reply("not json")

    def test_repair(self):
        reply = 'Sure! Here it is: {"name": "Tom", "tags": [1, 2],} Anything else?'
        assert JsonParser(repair=True).parse_reply(reply) == {"name": "Tom", "tags": [1, 2]}


class TestPlaintextParser:
    def test_identity(self):
        assert PlaintextParser().parse_reply(" keep\nme ") == " keep\nme "


class TestYamlParser:
    def test_parse(self):
        assert YamlParser().parse_reply("```yaml\nname: Tom\nage: 3\n```") == {"name": "Tom", "age": 3}

    def test_invalid(self):
        with pytest.raises(ParserError):
            YamlParser().parse_reply("key: [unclosed")
