"""Expression AST produced by the ARM expression parser.

Nodes are frozen dataclasses, so they compare structurally, hash, and cannot
be changed after construction. They carry no source positions or formatting.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union


class FunctionName(str, Enum):
    """Template functions understood by the parser.

    Values are the canonical ARM spelling. Lookup through ``lookup`` ignores
    case, matching how Azure resolves function names.
    """
    CONCAT = "concat"
    RESOURCE_ID = "resourceId"
    COPY_INDEX = "copyIndex"
    FORMAT = "format"
    IF = "if"
    RESOURCE_GROUP = "resourceGroup"
    UNIQUE_STRING = "uniqueString"
    TO_LOWER = "toLower"
    TO_UPPER = "toUpper"
    SUBSCRIPTION = "subscription"
    DEPLOYMENT = "deployment"

    @classmethod
    def lookup(cls, name: str) -> Optional["FunctionName"]:
        """Return the member whose value matches ``name`` ignoring case."""
        return _FUNCTIONS_BY_LOWER_NAME.get(name.lower())


_FUNCTIONS_BY_LOWER_NAME = {member.value.lower(): member for member in FunctionName}


class LiteralKind(str, Enum):
    """Type of a literal constant."""
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"


class ArmExpression:
    """Base class of every expression node."""
    __slots__ = ()


@dataclass(frozen=True)
class LiteralExpression(ArmExpression):
    """A constant string, number or boolean.

    ``kind`` is stored next to the value so that ``true`` and ``1`` stay
    distinct when nodes are compared.
    """
    kind: LiteralKind
    value: Union[str, float, bool]

    @classmethod
    def string(cls, value: str) -> "LiteralExpression":
        return cls(LiteralKind.STRING, value)

    @classmethod
    def number(cls, value: float) -> "LiteralExpression":
        return cls(LiteralKind.NUMBER, float(value))

    @classmethod
    def boolean(cls, value: bool) -> "LiteralExpression":
        return cls(LiteralKind.BOOLEAN, bool(value))


@dataclass(frozen=True)
class FunctionExpression(ArmExpression):
    """A call to one of the known template functions."""
    name: FunctionName
    arguments: Tuple[ArmExpression, ...] = ()


@dataclass(frozen=True)
class ParameterExpression(ArmExpression):
    """``parameters('name')``"""
    name: str


@dataclass(frozen=True)
class VariableExpression(ArmExpression):
    """``variables('name')``"""
    name: str


@dataclass(frozen=True)
class ReferenceExpression(ArmExpression):
    """Runtime state of a deployed resource, ``reference('name', 'apiVersion')``."""
    resource_name: str
    api_version: Optional[str] = None


@dataclass(frozen=True)
class EmptyExpression(ArmExpression):
    """The field held an empty string."""


EMPTY = EmptyExpression()
