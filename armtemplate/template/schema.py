"""Pydantic models for ARM template documents."""
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .bridge import Expression


class ArmModel(BaseModel):
    """Common config: frozen, alias or field name accepted, extra keys ignored."""
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class ArmParameter(ArmModel):
    """Template parameter declaration."""
    type: str
    default_value: Optional[Expression] = Field(default=None, alias="defaultValue")
    allowed_values: Optional[Tuple[Any, ...]] = Field(default=None, alias="allowedValues")


class ArmResource(ArmModel):
    """Resource declaration.

    ``depends_on`` lists identifiers of other resources in the same template,
    typically a name or a ``resourceId(...)`` call. They are resolved to
    positions in ``ArmTemplate.resources`` by ``link_dependencies``.
    """
    name: Expression
    type: str
    api_version: str = Field(alias="apiVersion")
    location: Optional[Expression] = None
    depends_on: Optional[Tuple[Expression, ...]] = Field(default=None, alias="dependsOn")


class ArmOutput(ArmModel):
    """Template output."""
    name: str
    value: Expression
    type: Optional[str] = None


class ArmTemplate(ArmModel):
    """Root template schema.

    Sequences are tuples so that a decoded template cannot be changed in
    place. ``variables`` stays a dict.
    """
    schema_uri: Optional[str] = Field(default=None, alias="$schema")
    content_version: Optional[str] = Field(default=None, alias="contentVersion")
    parameters: Optional[Dict[str, ArmParameter]] = None
    variables: Dict[str, Expression] = Field(default_factory=dict)
    resources: Tuple[ArmResource, ...] = Field(default_factory=tuple)
    outputs: Optional[Tuple[ArmOutput, ...]] = None

    @field_validator("outputs", mode="before")
    @classmethod
    def _outputs_from_mapping(cls, value: Any) -> Any:
        """Accept ARM's native ``{"name": {"type": ..., "value": ...}}`` form."""
        if isinstance(value, dict):
            return [
                {**body, "name": name} if isinstance(body, dict) else body
                for name, body in value.items()
            ]
        return value
