"""Pydantic glue that routes expression-typed fields through the parser."""
from typing import Annotated, Any

from pydantic import GetCoreSchemaHandler, ValidationInfo
from pydantic_core import PydanticCustomError, core_schema

from ..expression.ast import ArmExpression, LiteralExpression, LiteralKind
from ..expression.parser import ExpressionParser, is_plain_text
from ..expression.render import render_expression

# Key under which a configured ExpressionParser travels in the validation context.
PARSER_CONTEXT_KEY = "expression_parser"

_default_parser = ExpressionParser()


def decode_expression(value: Any, info: ValidationInfo) -> ArmExpression:
    """Turn one decoded JSON value into an expression tree.

    Args:
        value: The value pydantic found for an expression-typed field.
        info: Validation info, whose context may carry a parser.

    Returns:
        ArmExpression: Parsed tree. JSON numbers and booleans become literals.

    Raises:
        ParseError: If a string value is a malformed expression.
        PydanticCustomError: If the value is not a string, number or boolean.
    """
    if isinstance(value, ArmExpression):
        return value
    # bool before int, since bool is an int subclass.
    if isinstance(value, bool):
        return LiteralExpression.boolean(value)
    if isinstance(value, (int, float)):
        return LiteralExpression.number(value)
    if isinstance(value, str):
        parser = (info.context or {}).get(PARSER_CONTEXT_KEY, _default_parser)
        return parser.parse(value)
    raise PydanticCustomError(
        "arm_expression_type",
        "Expected an ARM expression string, number or boolean, got {type_name}",
        {"type_name": type(value).__name__},
    )


def encode_expression(expression: ArmExpression) -> Any:
    """Serialize an expression tree for JSON output.

    Numbers and booleans go back to JSON numbers and booleans, and strings
    are written bare when that reads back the same. Everything else is
    rendered as ARM expression text.
    """
    if isinstance(expression, LiteralExpression):
        if expression.kind is LiteralKind.STRING:
            text = expression.value
            if text.startswith("["):
                return "[" + text
            if is_plain_text(text):
                return text
        if expression.kind is LiteralKind.BOOLEAN:
            return expression.value
        if expression.kind is LiteralKind.NUMBER:
            number = float(expression.value)
            return int(number) if number.is_integer() else number
    return render_expression(expression)


class _ExpressionSchema:
    """Annotated marker supplying the core schema for expression fields."""

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        return core_schema.with_info_plain_validator_function(
            decode_expression,
            serialization=core_schema.plain_serializer_function_ser_schema(encode_expression),
        )


Expression = Annotated[ArmExpression, _ExpressionSchema]
