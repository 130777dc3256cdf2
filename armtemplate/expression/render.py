"""Render expression trees back to ARM syntax.

Rendering is best effort. Whitespace and quoting follow one fixed style, so
the output need not match the text the tree was parsed from.
"""
from .ast import (
    ArmExpression,
    EmptyExpression,
    FunctionExpression,
    LiteralExpression,
    LiteralKind,
    ParameterExpression,
    ReferenceExpression,
    VariableExpression,
)


def render_expression(expression: ArmExpression) -> str:
    """Render a top-level expression as a JSON string value.

    Calls and references are wrapped in ``[...]``. Literals render bare, so
    a string literal becomes ``'text'`` and parses back to the same node.

    Args:
        expression: Tree to render.

    Returns:
        str: ARM expression text, empty for ``EMPTY``.
    """
    if isinstance(expression, EmptyExpression):
        return ""
    if isinstance(expression, LiteralExpression):
        return _render_term(expression)
    return f"[{_render_term(expression)}]"


def _render_term(expression: ArmExpression) -> str:
    if isinstance(expression, LiteralExpression):
        return _render_literal(expression)
    if isinstance(expression, FunctionExpression):
        arguments = ", ".join(_render_term(argument) for argument in expression.arguments)
        return f"{expression.name.value}({arguments})"
    if isinstance(expression, ParameterExpression):
        return f"parameters({_quote(expression.name)})"
    if isinstance(expression, VariableExpression):
        return f"variables({_quote(expression.name)})"
    if isinstance(expression, ReferenceExpression):
        if expression.api_version is None:
            return f"reference({_quote(expression.resource_name)})"
        return f"reference({_quote(expression.resource_name)}, {_quote(expression.api_version)})"
    if isinstance(expression, EmptyExpression):
        return "''"
    raise TypeError(f"Cannot render {type(expression).__name__}")


def _render_literal(literal: LiteralExpression) -> str:
    if literal.kind is LiteralKind.BOOLEAN:
        return "true" if literal.value else "false"
    if literal.kind is LiteralKind.NUMBER:
        number = float(literal.value)
        if number.is_integer():
            return str(int(number))
        return repr(number)
    return _quote(str(literal.value))


def _quote(text: str) -> str:
    return "'" + text.replace("'", "''") + "'"
