"""Parsers that turn a model reply into structured data.

MarkdownLikeParser reads a markdown-like layout (it is not a full markdown parser):

    interest:
    - music
    - sports

    Other interests are not important.

is parsed as

    {
        "interest": [ListNode("music"), ListNode("sports")],
        "-": "Other interests are not important.",
    }

`key: value` lines become scalar entries, `key:` lines open a (possibly nested) list section,
and everything else is collected as free text under the "-" key.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Iterable, Protocol, Union

import json_repair
from pydantic import BaseModel, Field
from typing_extensions import override, runtime_checkable
import yaml

from .exceptions import ParserError, ParserInvariantViolation
from ..types.base import JSON
from ..utilities.parse import extract_json, strip_code_fence, trim

logger = logging.getLogger(__name__)

PLAINTEXT_KEY = "-"
LIST_MARKERS = ("- ", "* ", "+ ")
SPACES_PER_INDENT = 2
# a ': ' further into the line than this is assumed to be part of a sentence
MAX_KEY_LENGTH = 48


class ListNode(BaseModel):
    """A parsed list item: its own text plus any more deeply indented items."""

    value: str
    children: list[ListNode] = Field(default_factory=list)

    def __getitem__(self, idx: int) -> ListNode:
        return self.children[idx]

    def to_json(self) -> dict[str, JSON]:
        """Convert the subtree to nested key/value objects.

        A node with children becomes `{value: {...children...}}` (trailing ':' dropped);
        a leaf must read `key: value`, and numeric values are converted to numbers.
        """
        if self.children:
            merged: dict[str, JSON] = {}
            for child in self.children:
                merged.update(child.to_json())
            return {self.value.removesuffix(":"): merged}

        key, sep, value = self.value.partition(": ")
        if not sep:
            raise ParserError(f"Invalid node. No value: {self.value!r}")
        return {key: _to_number(value)}


ParsedNode = Union[str, list[ListNode]]


def _to_number(value: str) -> int | float | str:
    """Parse a fully numeric string as a number; otherwise return it unchanged."""
    for cast in (int, float):
        try:
            return cast(value)
        except ValueError:
            continue
    return value


def _merge_plaintext(previous: ParsedNode | None, addition: ParsedNode) -> ParsedNode:
    """Add free text or an alternate-plaintext section to the "-" entry.

    Text joins text with newlines. Once a list is involved, text lines become leaf nodes.
    """
    if previous is None or previous == []:
        return addition
    if addition == []:
        return previous
    if isinstance(previous, str) and isinstance(addition, str):
        return previous + "\n" + addition

    def as_nodes(value: ParsedNode) -> list[ListNode]:
        return [ListNode(value=value)] if isinstance(value, str) else value

    return as_nodes(previous) + as_nodes(addition)


def to_json(data: ParsedNode | ListNode) -> JSON:
    """Convert a parsed value (scalar, list of nodes, or node) to plain JSON data."""
    if isinstance(data, str):
        return data
    if isinstance(data, ListNode):
        return data.to_json()
    return [node.to_json() for node in data]


class LineScanner:
    """Line-oriented cursor over the unconsumed part of a text.

    `advance()` must be called once per parser iteration; it fails if the previous iteration
    did not consume anything.
    """

    def __init__(self, text: str):
        self.remaining = text
        self._last_size: int | None = None

    def __bool__(self) -> bool:
        return bool(self.remaining)

    def advance(self) -> None:
        if self._last_size is not None and len(self.remaining) >= self._last_size:
            raise ParserInvariantViolation("Parser stuck in infinite loop. THIS IS A BUG.")
        self._last_size = len(self.remaining)

    def peek_line(self) -> str:
        return self.remaining.split("\n", 1)[0]

    def consume_line(self) -> None:
        _, sep, rest = self.remaining.partition("\n")
        self.remaining = rest if sep else ""

    def next_line(self) -> str:
        line = self.peek_line()
        self.consume_line()
        return line


@runtime_checkable
class ReplyParser(Protocol):
    """Protocol for objects that interpret a model reply."""

    def parse_reply(self, reply: str) -> Any:
        """Parse the reply text."""
        ...


class MarkdownLikeParser(ReplyParser):
    """Parse `key: value` lines, `key:` list sections, and free text.

    Parameters
    ----------
    altname_for_plaintext : Iterable[str]
        Section names (lower-case) whose content belongs with the free text under "-".
    """

    def __init__(self, altname_for_plaintext: Iterable[str] = ()):
        self.altname_for_plaintext = {name.lower() for name in altname_for_plaintext}

    @override
    def parse_reply(self, reply: str) -> dict[str, ParsedNode]:
        parsed: dict[str, ParsedNode] = {}
        scanner = LineScanner(reply)

        while scanner:
            scanner.advance()
            trimmed = trim(scanner.next_line())
            if not trimmed:
                continue

            if trimmed.endswith(":"):
                key = trim(trimmed[:-1], " *_").lower()
                items = self._parse_list(scanner)
                if key in self.altname_for_plaintext:
                    parsed[PLAINTEXT_KEY] = _merge_plaintext(parsed.get(PLAINTEXT_KEY), items)
                else:
                    parsed[key] = items
                continue

            # HACK: a colon may separate a key from its value ("name: Tom") or be part of a sentence
            # ('The book "The Lord of the Rings: The Fellowship of the Ring" is a good book.').
            # Only short prefixes without quotes are treated as keys.
            sep_pos = trimmed.find(": ")
            if 0 <= sep_pos < MAX_KEY_LENGTH and not any(q in trimmed[:sep_pos] for q in "\"'"):
                parsed[trimmed[:sep_pos].lower()] = trimmed[sep_pos + 2 :]
                continue

            parsed[PLAINTEXT_KEY] = _merge_plaintext(parsed.get(PLAINTEXT_KEY), trimmed)

        return parsed

    @staticmethod
    def _parse_list(scanner: LineScanner) -> list[ListNode]:
        """Consume the '- ' items following a section header."""
        root = ListNode(value="")
        # root followed by the path to the most recent item
        stack = [root]
        base_spaces: int | None = None

        while scanner:
            line = scanner.peek_line()
            trimmed = trim(line)
            if not trimmed:
                scanner.consume_line()
                continue
            if not trimmed.startswith("- "):
                break

            leading_spaces = len(line) - len(line.lstrip(" "))
            if base_spaces is None:
                base_spaces = leading_spaces
            indent_level = max(leading_spaces - base_spaces, 0) // SPACES_PER_INDENT
            if indent_level > len(stack):
                raise ParserError(f"Invalid list indentation: {line!r}")
            if indent_level == len(stack):
                # one skipped level hangs under an empty placeholder
                placeholder = ListNode(value="")
                stack[-1].children.append(placeholder)
                stack.append(placeholder)

            del stack[indent_level + 1 :]
            node = ListNode(value=trimmed[2:])
            stack[-1].children.append(node)
            stack.append(node)
            scanner.consume_line()

        return root.children


class MarkdownListParser(ReplyParser):
    """Collect every bulleted line ('- ', '* ', '+ ') as a flat list, ignoring structure."""

    @override
    def parse_reply(self, reply: str) -> list[str]:
        items = []
        scanner = LineScanner(reply)
        while scanner:
            scanner.advance()
            trimmed = trim(scanner.next_line())
            if trimmed.startswith(LIST_MARKERS):
                items.append(trimmed[2:])
        return items


class JsonParser(ReplyParser):
    """Parse a JSON reply, optionally wrapped in a ```json fence.

    Parameters
    ----------
    repair : bool
        If True, locate the first JSON structure in the reply and repair malformed JSON
        instead of failing.
    """

    def __init__(self, repair: bool = False):
        self.repair = repair

    @override
    def parse_reply(self, reply: str) -> JSON:
        body = strip_code_fence(reply)
        try:
            return json.loads(body)
        except json.JSONDecodeError as e:
            if not self.repair:
                raise ParserError(f"Reply is not valid JSON: {e}") from e

        logger.debug("Repairing malformed JSON reply")
        return json_repair.loads(extract_json(body))


class PlaintextParser(ReplyParser):
    """Return the reply unchanged."""

    @override
    def parse_reply(self, reply: str) -> str:
        return reply


class YamlParser(ReplyParser):
    """Parse a YAML reply, optionally wrapped in a ```yaml fence."""

    @override
    def parse_reply(self, reply: str) -> Any:
        try:
            return yaml.safe_load(strip_code_fence(reply, lang="yaml"))
        except yaml.YAMLError as e:
            raise ParserError(f"Reply is not valid YAML: {e}") from e
