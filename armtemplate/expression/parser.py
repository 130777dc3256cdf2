"""Recursive-descent parser for ARM template expressions.

ARM embeds a small expression language inside JSON string values:

- ``[parameters('siteName')]`` - reference to a template parameter
- ``[variables('storageName')]`` - reference to a template variable
- ``[concat('a', variables('b'))]`` - function call, arguments nest
- ``[reference('site', '2022-03-01')]`` - runtime state of a resource
- ``[[literal`` - escaped leading bracket, the literal text ``[literal``
- anything else - a literal string, taken verbatim

Inside a call, arguments are single-quoted strings (``''`` escapes a
quote), numbers, ``true``/``false``, nested calls, or bare tokens. Bare
tokens are accepted as string literals.

Property and index access (``reference(x).properties.y``, ``arr[0]``) is
not part of the supported subset and fails with ``TrailingCharacters``.
"""
import re
from typing import Iterator, List, Tuple

from ..console import print_debug
from .ast import (
    EMPTY,
    ArmExpression,
    FunctionExpression,
    FunctionName,
    LiteralExpression,
    ParameterExpression,
    ReferenceExpression,
    VariableExpression,
)
from .errors import (
    EmptyArgument,
    EmptyFunctionName,
    ExpectedFunctionCall,
    InvalidArgumentCount,
    InvalidNumber,
    RecursionLimit,
    TrailingCharacters,
    UnbalancedParenthesis,
    UnknownFunction,
    UnterminatedString,
)

DEFAULT_MAX_DEPTH = 64
# Each nesting level costs a few interpreter frames.
MAX_DEPTH_CEILING = 256

_NUMBER_RE = re.compile(r"[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")
_NUMBER_START_RE = re.compile(r"[+-]?\.?\d")
# Unbracketed parameters(...) and variables(...) are read like bracketed ones.
_LEGACY_CALL_RE = re.compile(r"\s*(parameters|variables)\s*\(", re.IGNORECASE)

Span = Tuple[int, int]


class ExpressionParser:
    """Parses raw JSON string values into ``ArmExpression`` trees.

    The parser holds configuration only. Each call to ``parse`` works on its
    own reader, so one instance can be shared freely.
    """

    def __init__(self, max_depth: int = DEFAULT_MAX_DEPTH, debug: bool = False):
        """Initialize the parser.

        Args:
            max_depth: Deepest level of nested calls accepted, from 1 to
                ``MAX_DEPTH_CEILING``.
            debug: If True, print each parsed expression.
        """
        if max_depth < 1:
            raise ValueError("max_depth must be at least 1")
        if max_depth > MAX_DEPTH_CEILING:
            raise ValueError(f"max_depth must be at most {MAX_DEPTH_CEILING}")
        self.max_depth = max_depth
        self.debug = debug

    def parse(self, raw: str) -> ArmExpression:
        """Parse one JSON string value.

        Args:
            raw: The string exactly as it appeared in the template.

        Returns:
            ArmExpression: The parsed tree, ``EMPTY`` for an empty string.

        Raises:
            ParseError: If the value is a malformed expression.
            RecursionLimit: If calls nest deeper than ``max_depth``, or deeper
                than the interpreter stack allows.
        """
        try:
            result = _Reader(raw, self.max_depth).expression()
        except RecursionError:
            raise RecursionLimit(self.max_depth, raw, 0) from None
        if self.debug:
            print_debug(f"Parsed {raw!r} -> {result!r}")
        return result


def parse_expression(raw: str, max_depth: int = DEFAULT_MAX_DEPTH) -> ArmExpression:
    """Parse ``raw`` with a default-configured parser."""
    return ExpressionParser(max_depth=max_depth).parse(raw)


def is_plain_text(text: str) -> bool:
    """Whether ``text`` parses back to a string literal equal to itself."""
    if not text or text.startswith(("[", "'")):
        return False
    return not _Reader(text, DEFAULT_MAX_DEPTH).is_legacy_call()


class _Reader:
    """Single-use parse state over one input string.

    Every method works on ``(start, end)`` spans of ``raw`` so that errors
    report positions in the original text.
    """

    def __init__(self, raw: str, max_depth: int):
        self.raw = raw
        self.max_depth = max_depth

    def expression(self) -> ArmExpression:
        raw = self.raw
        if not raw:
            return EMPTY
        if raw.startswith("[["):
            return LiteralExpression.string(raw[1:])
        if raw.startswith("[") and raw.endswith("]"):
            start, end = self._strip(1, len(raw) - 1)
            if start == end:
                raise EmptyFunctionName("Empty expression", raw, 1)
            return self.call(start, end, 1)
        if raw.startswith("'") and self._is_single_string(0, len(raw)):
            return self.string(0, len(raw))
        if self.is_legacy_call():
            start, end = self._strip(0, len(raw))
            return self.call(start, end, 1)
        return LiteralExpression.string(raw)

    def is_legacy_call(self) -> bool:
        """Whether the whole input is an unbracketed parameters or variables call.

        The parenthesis opened after the name must close at the last
        non-space character, with every quote in between balanced.
        """
        match = _LEGACY_CALL_RE.match(self.raw)
        if match is None:
            return False
        end = len(self.raw)
        try:
            close_index = self._closing_paren(match.end() - 1, end)
        except (UnbalancedParenthesis, UnterminatedString):
            return False
        return self._strip(close_index + 1, end)[0] == end

    def call(self, start: int, end: int, depth: int) -> ArmExpression:
        """Parse ``name(args)`` spanning exactly ``start:end``."""
        if depth > self.max_depth:
            raise RecursionLimit(self.max_depth, self.raw, start)
        raw = self.raw
        open_index = raw.find("(", start, end)
        if open_index < 0:
            raise ExpectedFunctionCall("Expected a function call", raw, start)
        name = raw[start:open_index].strip()
        if not name:
            raise EmptyFunctionName("Missing function name", raw, start)

        close_index = self._closing_paren(open_index, end)
        trailing = self._strip(close_index + 1, end)[0]
        if trailing < end and raw[trailing] == ")":
            raise UnbalancedParenthesis("Unmatched ')'", raw, trailing)
        if trailing < end:
            raise TrailingCharacters(
                "Unexpected text after call (property access is not supported)",
                raw, close_index + 1,
            )
        spans = self._split_arguments(open_index + 1, close_index)

        lowered = name.lower()
        if lowered == "parameters":
            return ParameterExpression(self._name_argument(name, spans, open_index))
        if lowered == "variables":
            return VariableExpression(self._name_argument(name, spans, open_index))
        if lowered == "reference":
            return self._reference(name, spans, open_index)

        function = FunctionName.lookup(name)
        if function is None:
            raise UnknownFunction(name, raw, start)
        arguments = tuple(self.term(arg_start, arg_end, depth + 1) for arg_start, arg_end in spans)
        return FunctionExpression(function, arguments)

    def term(self, start: int, end: int, depth: int) -> ArmExpression:
        """Parse one argument."""
        start, end = self._strip(start, end)
        raw = self.raw
        if start == end:
            raise EmptyArgument("Missing argument", raw, start)
        text = raw[start:end]
        if text[0] == "'":
            return self.string(start, end)
        lowered = text.lower()
        if lowered == "true" or lowered == "false":
            return LiteralExpression.boolean(lowered == "true")
        if _NUMBER_START_RE.match(text):
            if not _NUMBER_RE.fullmatch(text):
                raise InvalidNumber(f"Invalid number '{text}'", raw, start)
            return LiteralExpression.number(float(text))
        if "(" in text:
            return self.call(start, end, depth)
        return LiteralExpression.string(text)

    def string(self, start: int, end: int) -> LiteralExpression:
        """Parse a quoted string that must span exactly ``start:end``."""
        close = self._quote_end(start, end)
        if close != end - 1:
            raise TrailingCharacters("Unexpected text after string", self.raw, close + 1)
        return LiteralExpression.string(self.raw[start + 1:close].replace("''", "'"))

    def _name_argument(self, function: str, spans: List[Span], position: int) -> str:
        if len(spans) != 1:
            raise InvalidArgumentCount(
                f"{function}() takes 1 argument, got {len(spans)}", self.raw, position
            )
        return self._plain_text(*spans[0])

    def _reference(self, function: str, spans: List[Span], position: int) -> ReferenceExpression:
        if len(spans) not in (1, 2):
            raise InvalidArgumentCount(
                f"{function}() takes 1 or 2 arguments, got {len(spans)}", self.raw, position
            )
        api_version = self._plain_text(*spans[1]) if len(spans) == 2 else None
        return ReferenceExpression(self._plain_text(*spans[0]), api_version)

    def _plain_text(self, start: int, end: int) -> str:
        """Unquoted text of a name argument, or its source text if not a string."""
        start, end = self._strip(start, end)
        if start == end:
            raise EmptyArgument("Missing argument", self.raw, start)
        if self.raw[start] == "'":
            return self.string(start, end).value
        return self.raw[start:end]

    def _split_arguments(self, start: int, end: int) -> List[Span]:
        """Split ``start:end`` on commas outside nested calls and strings."""
        if self._strip(start, end)[0] == end:
            return []
        spans = []
        arg_start = start
        for index, char, depth in self._scan(start, end):
            if char == "," and depth == 0:
                spans.append((arg_start, index))
                arg_start = index + 1
        spans.append((arg_start, end))
        return spans

    def _closing_paren(self, open_index: int, end: int) -> int:
        for index, char, depth in self._scan(open_index, end):
            if char == ")" and depth == 0:
                return index
        raise UnbalancedParenthesis("Unmatched '('", self.raw, open_index)

    def _scan(self, start: int, end: int) -> Iterator[Tuple[int, str, int]]:
        """Yield ``(index, char, depth)`` for characters outside quoted strings.

        ``depth`` is the parenthesis depth after the character is applied.
        Quoted spans are skipped whole. An unclosed quote raises.
        """
        raw = self.raw
        depth = 0
        index = start
        while index < end:
            char = raw[index]
            if char == "'":
                index = self._quote_end(index, end) + 1
                continue
            if char == "(":
                depth += 1
            elif char == ")":
                depth -= 1
            yield index, char, depth
            index += 1

    def _quote_end(self, start: int, end: int) -> int:
        """Index of the quote closing the string that opens at ``start``."""
        raw = self.raw
        index = start + 1
        while index < end:
            if raw[index] == "'":
                if index + 1 < end and raw[index + 1] == "'":
                    index += 2
                    continue
                return index
            index += 1
        raise UnterminatedString("Unterminated string", raw, start)

    def _is_single_string(self, start: int, end: int) -> bool:
        try:
            return self._quote_end(start, end) == end - 1
        except UnterminatedString:
            return False

    def _strip(self, start: int, end: int) -> Span:
        raw = self.raw
        while start < end and raw[start].isspace():
            start += 1
        while end > start and raw[end - 1].isspace():
            end -= 1
        return start, end
