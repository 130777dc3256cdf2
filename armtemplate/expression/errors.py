"""Errors raised while parsing ARM expressions."""
from ..exceptions import ArmTemplateError


class ParseError(ArmTemplateError, ValueError):
    """Base class for malformed expression input.

    Also a ``ValueError`` so that pydantic collects it as a field error when
    it is raised while a template is being decoded.

    Attributes:
        message: Human-readable error message.
        expression: The complete string that was being parsed.
        position: Offset into ``expression`` where the problem was found.
    """

    def __init__(self, message: str, expression: str = "", position: int = 0):
        self.expression = expression
        self.position = position
        if expression:
            full_message = f"{message} at position {position}:\n{expression}\n{' ' * position}^"
        else:
            full_message = message
        super().__init__(full_message)
        self.reason = message


class UnbalancedParenthesis(ParseError):
    """A ``(`` without its ``)``, or a stray ``)``."""


class UnterminatedString(ParseError):
    """A single-quoted string with no closing quote."""


class InvalidNumber(ParseError):
    """A token that starts like a number but is not one."""


class UnknownFunction(ParseError):
    """A call to a function outside the supported set.

    Attributes:
        name: The function name as written.
    """

    def __init__(self, name: str, expression: str = "", position: int = 0):
        self.name = name
        super().__init__(f"Unknown function '{name}'", expression, position)


class EmptyFunctionName(ParseError):
    """A call with nothing before its ``(``."""


class RecursionLimit(ParseError):
    """Calls nested deeper than the parser allows.

    Attributes:
        limit: The configured maximum depth.
    """

    def __init__(self, limit: int, expression: str = "", position: int = 0):
        self.limit = limit
        super().__init__(f"Expression nested deeper than {limit} levels", expression, position)


class ExpectedFunctionCall(ParseError):
    """A bracketed expression whose body is not a call."""


class EmptyArgument(ParseError):
    """An argument list with a missing entry, such as ``concat('a',)``."""


class InvalidArgumentCount(ParseError):
    """A call with the wrong number of arguments for its function."""


class TrailingCharacters(ParseError):
    """Text left over after a complete call or string.

    Property and index access such as ``reference(x).properties`` is not
    supported and is reported this way.
    """
