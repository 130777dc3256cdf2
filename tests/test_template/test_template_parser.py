"""Tests for the ARM template parser."""
import json

import pytest
from pydantic import ValidationError
from armtemplate.expression.ast import (
    EMPTY,
    FunctionExpression,
    FunctionName,
    LiteralExpression,
    ParameterExpression,
    VariableExpression,
)
from armtemplate.expression.errors import RecursionLimit, UnknownFunction
from armtemplate.template.errors import TemplateDecodeError
from armtemplate.template.parser import ArmTemplateParser
from armtemplate.template.schema import ArmParameter, ArmTemplate

FUNCTION_APP_TEMPLATE = """
{
  "$schema": "https://schema.management.azure.com/schemas/2019-04-01/deploymentTemplate.json#",
  "contentVersion": "1.0.0.0",
  "parameters": {
    "functionAppName": {
      "type": "string",
      "defaultValue": "[format('fnapp{0}', uniqueString(subscription(), resourceGroup()))]"
    },
    "location": {
      "type": "string",
      "defaultValue": "eastus"
    },
    "storageAccountType": {
      "type": "string",
      "defaultValue": "Standard_LRS",
      "allowedValues": ["Standard_LRS", "Standard_GRS"]
    },
    "instanceCount": {"type": "int", "defaultValue": 2},
    "alwaysOn": {"type": "bool", "defaultValue": true}
  },
  "variables": {
    "hostingPlanName": "[parameters('functionAppName')]",
    "storageAccountName": "[concat(uniqueString(parameters('functionAppName')), 'azfunctions')]"
  },
  "resources": [
    {
      "type": "Microsoft.Storage/storageAccounts",
      "apiVersion": "2022-05-01",
      "name": "[variables('storageAccountName')]",
      "location": "[parameters('location')]",
      "sku": {"name": "[parameters('storageAccountType')]"},
      "kind": "Storage"
    },
    {
      "type": "Microsoft.Web/serverfarms",
      "apiVersion": "2022-03-01",
      "name": "[variables('hostingPlanName')]",
      "location": "[parameters('location')]"
    },
    {
      "type": "Microsoft.Web/sites",
      "apiVersion": "2022-03-01",
      "name": "[parameters('functionAppName')]",
      "location": "[parameters('location')]",
      "kind": "functionapp",
      "dependsOn": [
        "[resourceId('Microsoft.Web/serverfarms', variables('hostingPlanName'))]",
        "[resourceId('Microsoft.Storage/storageAccounts', variables('storageAccountName'))]"
      ],
      "properties": {"serverFarmId": "[resourceId('Microsoft.Web/serverfarms', variables('hostingPlanName'))]"}
    }
  ],
  "outputs": [
    {"name": "siteName", "value": "[parameters('functionAppName')]"}
  ]
}
"""


def test_minimal_template():
    """A template with only parameters gets empty variables and resources."""
    template = ArmTemplateParser().loads('{"parameters": {"functionAppName": {"type": "string"}}}')
    assert template == ArmTemplate(
        parameters={"functionAppName": ArmParameter(type="string", default_value=None)},
        variables={},
        resources=(),
        outputs=None,
    )
    assert template.parameters["functionAppName"].default_value is None
    assert template.variables == {}
    assert template.resources == ()
    assert template.outputs is None


def test_function_app_template():
    """A realistic template decodes with every expression parsed."""
    template = ArmTemplateParser().loads(FUNCTION_APP_TEMPLATE)

    assert template.content_version == "1.0.0.0"
    assert template.schema_uri.endswith("deploymentTemplate.json#")
    assert list(template.parameters) == [
        "functionAppName", "location", "storageAccountType", "instanceCount", "alwaysOn",
    ]
    storage_type = template.parameters["storageAccountType"]
    assert storage_type.default_value == LiteralExpression.string("Standard_LRS")
    assert storage_type.allowed_values == ("Standard_LRS", "Standard_GRS")
    assert template.parameters["instanceCount"].default_value == LiteralExpression.number(2)
    assert template.parameters["alwaysOn"].default_value == LiteralExpression.boolean(True)

    assert template.variables["hostingPlanName"] == ParameterExpression("functionAppName")

    assert [resource.type for resource in template.resources] == [
        "Microsoft.Storage/storageAccounts",
        "Microsoft.Web/serverfarms",
        "Microsoft.Web/sites",
    ]
    site = template.resources[2]
    assert site.name == ParameterExpression("functionAppName")
    assert site.api_version == "2022-03-01"
    assert site.location == ParameterExpression("location")
    assert site.depends_on[0] == FunctionExpression(
        FunctionName.RESOURCE_ID,
        (LiteralExpression.string("Microsoft.Web/serverfarms"), VariableExpression("hostingPlanName")),
    )
    assert template.outputs[0].name == "siteName"
    assert template.outputs[0].value == ParameterExpression("functionAppName")


def test_unknown_fields_are_ignored():
    """Fields outside the schema do not fail decoding."""
    template = ArmTemplateParser().loads(
        '{"apiProfile": "x", "functions": [], "resources": '
        '[{"name": "a", "type": "T", "apiVersion": "1", "futureField": {"x": 1}}]}'
    )
    assert template.resources[0].name == LiteralExpression.string("a")
    assert template.resources[0].depends_on is None


def test_loads_accepts_bytes():
    """Templates can be decoded straight from UTF-8 bytes."""
    template = ArmTemplateParser().loads(b'{"variables": {"empty": ""}}')
    assert template.variables == {"empty": EMPTY}


def test_outputs_mapping_form():
    """ARM's native outputs mapping becomes an ordered list."""
    data = {
        "outputs": {
            "hostName": {"type": "string", "value": "[reference('site', '2022-03-01')]"},
            "planName": {"type": "string", "value": "[variables('hostingPlanName')]"},
        }
    }
    template = ArmTemplateParser().from_dict(data)
    assert [output.name for output in template.outputs] == ["hostName", "planName"]
    assert template.outputs[0].type == "string"
    assert template.outputs[1].value == VariableExpression("hostingPlanName")


def test_missing_required_field():
    """Missing required fields are reported with their path."""
    with pytest.raises(TemplateDecodeError) as exc_info:
        ArmTemplateParser().from_dict({"resources": [{"name": "a", "type": "T"}]})
    error = exc_info.value
    assert [issue.path for issue in error.issues] == [("resources", 0, "apiVersion")]
    assert error.issues[0].location == "resources[0].apiVersion"
    assert error.parse_errors == []
    assert isinstance(error.__cause__, ValidationError)


def test_wrong_field_type():
    """Values of the wrong JSON type are rejected."""
    with pytest.raises(TemplateDecodeError) as exc_info:
        ArmTemplateParser().from_dict({"variables": {"settings": {"nested": True}}})
    assert exc_info.value.issues[0].path == ("variables", "settings")


def test_not_an_object():
    """A top-level array is not a template."""
    with pytest.raises(TemplateDecodeError) as exc_info:
        ArmTemplateParser().loads("[]")
    assert exc_info.value.issues[0].location == "<root>"


def test_invalid_json_is_left_to_the_codec():
    """Malformed JSON raises the codec's own error."""
    with pytest.raises(json.JSONDecodeError):
        ArmTemplateParser().loads("{not json")


def test_expression_error_carries_field_path():
    """Expression errors keep the originating ParseError and field path."""
    data = {
        "resources": [
            {"name": "ok", "type": "T", "apiVersion": "1"},
            {"name": "[notAFunction('x')]", "type": "T", "apiVersion": "1"},
        ]
    }
    with pytest.raises(TemplateDecodeError) as exc_info:
        ArmTemplateParser().from_dict(data)
    error = exc_info.value
    assert error.issues[0].path == ("resources", 1, "name")
    [parse_error] = error.parse_errors
    assert isinstance(parse_error, UnknownFunction)
    assert parse_error.name == "notAFunction"
    assert "resources[1].name" in str(error)


def test_max_depth_reaches_expression_fields():
    """The configured recursion limit applies inside templates."""
    data = {"variables": {"deep": "[concat(concat(concat('x')))]"}}
    assert ArmTemplateParser(max_depth=3).from_dict(data).variables["deep"].name is FunctionName.CONCAT
    with pytest.raises(TemplateDecodeError) as exc_info:
        ArmTemplateParser(max_depth=2).from_dict(data)
    assert isinstance(exc_info.value.parse_errors[0], RecursionLimit)


def test_templates_are_frozen():
    """Decoded templates cannot be reassigned."""
    template = ArmTemplateParser().loads('{"resources": []}')
    with pytest.raises(ValidationError):
        template.resources = []


def test_template_sequences_are_immutable():
    """Sequences in a decoded template cannot be changed in place."""
    template = ArmTemplateParser().loads(FUNCTION_APP_TEMPLATE)
    assert isinstance(template.resources, tuple)
    assert isinstance(template.outputs, tuple)
    assert isinstance(template.resources[2].depends_on, tuple)
    assert isinstance(template.parameters["storageAccountType"].allowed_values, tuple)
    with pytest.raises(AttributeError):
        template.resources.append(template.resources[0])


def test_model_dump_renders_expressions():
    """Serializing a template turns expressions back into ARM text."""
    template = ArmTemplateParser().loads(FUNCTION_APP_TEMPLATE)
    dumped = template.model_dump(by_alias=True, exclude_none=True)
    assert dumped["parameters"]["location"]["defaultValue"] == "eastus"
    assert dumped["parameters"]["instanceCount"]["defaultValue"] == 2
    assert dumped["parameters"]["alwaysOn"]["defaultValue"] is True
    assert dumped["variables"]["hostingPlanName"] == "[parameters('functionAppName')]"
    assert dumped["resources"][2]["dependsOn"][0] == (
        "[resourceId('Microsoft.Web/serverfarms', variables('hostingPlanName'))]"
    )
    assert ArmTemplateParser().from_dict(dumped) == template


def test_debug_output(capsys):
    """Debug mode reports what was decoded."""
    ArmTemplateParser(debug=True).loads('{"resources": []}')
    assert "0 resources" in capsys.readouterr().err
