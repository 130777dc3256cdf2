"""ARM template document parser."""
import json
from typing import Any, Dict, Union

from pydantic import ValidationError

from ..console import print_debug
from ..expression.parser import DEFAULT_MAX_DEPTH, ExpressionParser
from .bridge import PARSER_CONTEXT_KEY
from .errors import TemplateDecodeError
from .schema import ArmTemplate


class ArmTemplateParser:
    """Decodes ARM template JSON into ``ArmTemplate`` models."""

    def __init__(self, max_depth: int = DEFAULT_MAX_DEPTH, debug: bool = False):
        """Initialize the parser.

        Args:
            max_depth: Deepest level of nested calls accepted in expressions.
            debug: If True, print verbose debug information.
        """
        self.expression_parser = ExpressionParser(max_depth=max_depth, debug=debug)
        self.debug = debug

    def loads(self, document: Union[str, bytes]) -> ArmTemplate:
        """Decode a template from JSON text.

        Args:
            document: JSON text or UTF-8 bytes.

        Returns:
            ArmTemplate: Validated template.

        Raises:
            json.JSONDecodeError: If the text is not valid JSON.
            TemplateDecodeError: If the JSON does not match the template schema.
        """
        return self.from_dict(json.loads(document))

    def from_dict(self, data: Dict[str, Any]) -> ArmTemplate:
        """Decode a template from an already-parsed JSON object.

        Args:
            data: Top-level template object.

        Returns:
            ArmTemplate: Validated template.

        Raises:
            TemplateDecodeError: If the data does not match the template schema.
                Expression syntax errors are reported here with their field path.
        """
        try:
            template = ArmTemplate.model_validate(
                data, context={PARSER_CONTEXT_KEY: self.expression_parser}
            )
        except ValidationError as e:
            error = TemplateDecodeError.from_validation_error(e)
            if self.debug:
                print_debug(f"Template rejected: {error.message}")
            raise error from e

        if self.debug:
            print_debug(
                f"Decoded template: {len(template.parameters or {})} parameters, "
                f"{len(template.variables)} variables, {len(template.resources)} resources, "
                f"{len(template.outputs or [])} outputs"
            )
        return template
