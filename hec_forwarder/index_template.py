"""Dynamic index templates.

A template is literal text interleaved with two kinds of references::

    ${source}                        the configured source name
    ${record['kubernetes']['pod']}   a nested lookup into the event record

Subscripts are quoted strings (single or double quotes, ``\\`` escapes the
next character) or non-negative integers for list positions. Anything else
inside ``${...}`` is rejected when the template is compiled. Rendering only
walks the record; no expression is ever evaluated.
"""

from collections.abc import Mapping
from dataclasses import dataclass

from hec_forwarder.errors import ConfigError, NormalizationError


@dataclass(frozen=True)
class Literal:
    text: str


@dataclass(frozen=True)
class SourceRef:
    pass


@dataclass(frozen=True)
class RecordPath:
    keys: tuple


Node = Literal | SourceRef | RecordPath


class _Parser:
    """Recursive-descent parser over the template grammar."""

    def __init__(self, pattern: str):
        self._text = pattern
        self._pos = 0

    def parse(self) -> list[Node]:
        nodes: list[Node] = []
        literal: list[str] = []
        while self._pos < len(self._text):
            if self._text.startswith("${", self._pos):
                if literal:
                    nodes.append(Literal("".join(literal)))
                    literal = []
                self._pos += 2
                nodes.append(self._parse_reference())
            else:
                literal.append(self._text[self._pos])
                self._pos += 1
        if literal:
            nodes.append(Literal("".join(literal)))
        return nodes

    def _parse_reference(self) -> Node:
        self._skip_spaces()
        name = self._parse_identifier()
        if name == "source":
            node: Node = SourceRef()
        elif name == "record":
            keys = []
            self._skip_spaces()
            while self._peek() == "[":
                keys.append(self._parse_subscript())
                self._skip_spaces()
            if not keys:
                raise self._error("'record' needs at least one [key] subscript")
            node = RecordPath(tuple(keys))
        else:
            raise self._error(f"unknown reference {name!r}")
        self._skip_spaces()
        self._expect("}")
        return node

    def _parse_identifier(self) -> str:
        start = self._pos
        while self._pos < len(self._text) and (
            self._text[self._pos].isalnum() or self._text[self._pos] == "_"
        ):
            self._pos += 1
        if start == self._pos:
            raise self._error("expected 'source' or 'record'")
        return self._text[start:self._pos]

    def _parse_subscript(self):
        self._expect("[")
        self._skip_spaces()
        ch = self._peek()
        if ch in ("'", '"'):
            key = self._parse_quoted(ch)
        elif ch is not None and ch.isdigit():
            start = self._pos
            while self._peek() is not None and self._peek().isdigit():
                self._pos += 1
            key = int(self._text[start:self._pos])
        else:
            raise self._error("subscript must be a quoted key or an integer")
        self._skip_spaces()
        self._expect("]")
        return key

    def _parse_quoted(self, quote: str) -> str:
        self._pos += 1
        chars: list[str] = []
        while True:
            ch = self._peek()
            if ch is None:
                raise self._error("unterminated quoted key")
            self._pos += 1
            if ch == "\\":
                escaped = self._peek()
                if escaped is None:
                    raise self._error("unterminated quoted key")
                chars.append(escaped)
                self._pos += 1
            elif ch == quote:
                return "".join(chars)
            else:
                chars.append(ch)

    def _skip_spaces(self):
        while self._peek() == " ":
            self._pos += 1

    def _peek(self) -> str | None:
        if self._pos < len(self._text):
            return self._text[self._pos]
        return None

    def _expect(self, ch: str):
        if self._peek() != ch:
            raise self._error(f"expected {ch!r}")
        self._pos += 1

    def _error(self, reason: str) -> ConfigError:
        return ConfigError(
            f"Malformed dynamic index pattern {self._text!r} at position {self._pos}: {reason}"
        )


def parse_pattern(pattern: str) -> list[Node]:
    """Parse *pattern* into literal and reference nodes.

    Raises:
        ConfigError: If the pattern does not follow the template grammar.
    """
    return _Parser(pattern).parse()


class IndexTemplate:
    """A compiled dynamic index pattern."""

    def __init__(self, pattern: str):
        self.pattern = pattern
        self.nodes = parse_pattern(pattern)

    def render(self, source: str, record) -> str:
        """Resolve every reference against *source* and *record*.

        Raises:
            NormalizationError: If a referenced field is absent or is not a
                scalar value.
        """
        parts = []
        for node in self.nodes:
            if isinstance(node, Literal):
                parts.append(node.text)
            elif isinstance(node, SourceRef):
                parts.append(source)
            else:
                parts.append(self._lookup(record, node.keys))
        return "".join(parts)

    def _lookup(self, record, keys: tuple) -> str:
        value = record
        for depth, key in enumerate(keys):
            path = self._format_path(keys[: depth + 1])
            if isinstance(key, int):
                if not isinstance(value, (list, tuple)):
                    raise NormalizationError(f"{path} is not a list position")
                if key >= len(value):
                    raise NormalizationError(f"{path} is out of range")
            elif not isinstance(value, Mapping):
                raise NormalizationError(f"cannot look up {path}: parent is not a mapping")
            elif key not in value:
                raise NormalizationError(f"{path} is not present in the record")
            value = value[key]

        if value is None:
            return ""
        if isinstance(value, bytes):
            return value.decode("utf-8", errors="replace")
        if isinstance(value, (Mapping, list, tuple)):
            raise NormalizationError(
                f"{self._format_path(keys)} resolved to a {type(value).__name__}, not a scalar"
            )
        return str(value)

    @staticmethod
    def _format_path(keys) -> str:
        return "record" + "".join(f"[{key!r}]" for key in keys)
