from __future__ import annotations

import pytest

from mcp_toolservers.catalog import ToolDescriptor
from mcp_toolservers.errors import InvalidParamsError
from mcp_toolservers.validation import SchemaValidator, field_label


def _descriptor() -> ToolDescriptor:
    return ToolDescriptor.create(
        "search",
        "Search the web",
        {
            "type": "object",
            "properties": {
                "query": {"type": "string"},
                "count": {"type": "integer", "minimum": 1, "maximum": 20, "default": 10},
                "safe": {"type": "boolean"},
                "order": {"type": "string", "enum": ["asc", "desc"]},
                "filters": {
                    "type": "array",
                    "items": {"type": "object", "properties": {"x": {"type": "number"}}},
                },
            },
            "required": ["query"],
        },
    )


class TestRequiredFields:
    def test_missing_required_field(self):
        with pytest.raises(InvalidParamsError) as exc:
            SchemaValidator().validate(_descriptor(), {})
        assert exc.value.message == "Query is required"

    def test_none_counts_as_missing(self):
        with pytest.raises(InvalidParamsError, match="Query is required"):
            SchemaValidator().validate(_descriptor(), {"query": None})

    @pytest.mark.parametrize("value", ["", "   "])
    def test_empty_string_is_a_value(self, value):
        result = SchemaValidator().validate(_descriptor(), {"query": value})
        assert result["query"] == value

    @pytest.mark.parametrize("value", ["", "   "])
    def test_min_length_rejects_blank(self, value):
        descriptor = ToolDescriptor.create(
            "search",
            "Search the web",
            {"type": "object", "properties": {"query": {"type": "string", "minLength": 1}}, "required": ["query"]},
        )
        with pytest.raises(InvalidParamsError) as exc:
            SchemaValidator().validate(descriptor, {"query": value})
        assert exc.value.message == "Query must not be empty"

    def test_string_length_bounds(self):
        descriptor = ToolDescriptor.create(
            "rename",
            "Rename",
            {"type": "object", "properties": {"name": {"type": "string", "minLength": 3, "maxLength": 5}}},
        )
        with pytest.raises(InvalidParamsError, match="at least 3 characters"):
            SchemaValidator().validate(descriptor, {"name": "ab"})
        with pytest.raises(InvalidParamsError, match="at most 5 characters"):
            SchemaValidator().validate(descriptor, {"name": "abcdef"})
        assert SchemaValidator().validate(descriptor, {"name": "abc"}) == {"name": "abc"}

    def test_none_arguments_treated_as_empty(self):
        with pytest.raises(InvalidParamsError, match="Query is required"):
            SchemaValidator().validate(_descriptor(), None)

    def test_non_object_arguments_rejected(self):
        with pytest.raises(InvalidParamsError, match="must be an object"):
            SchemaValidator().validate(_descriptor(), ["query"])  # type: ignore[arg-type]

    def test_field_label(self):
        assert field_label("query") == "Query"
        assert field_label("issue_number") == "Issue number"


class TestTypesAndConstraints:
    def test_defaults_are_filled(self):
        result = SchemaValidator().validate(_descriptor(), {"query": "mcp"})
        assert result["count"] == 10

    def test_defaults_can_be_disabled(self):
        result = SchemaValidator(apply_defaults=False).validate(_descriptor(), {"query": "mcp"})
        assert "count" not in result

    def test_wrong_type(self):
        with pytest.raises(InvalidParamsError, match="Count must be an integer"):
            SchemaValidator().validate(_descriptor(), {"query": "mcp", "count": "5"})

    def test_boolean_is_not_a_number(self):
        with pytest.raises(InvalidParamsError):
            SchemaValidator().validate(_descriptor(), {"query": "mcp", "count": True})

    def test_integral_float_accepted_as_integer(self):
        result = SchemaValidator().validate(_descriptor(), {"query": "mcp", "count": 5.0})
        assert result["count"] == 5.0

    def test_enum_violation_names_field_and_values(self):
        with pytest.raises(InvalidParamsError) as exc:
            SchemaValidator().validate(_descriptor(), {"query": "mcp", "order": "sideways"})
        assert "order" in exc.value.message
        assert "'asc'" in exc.value.message and "'desc'" in exc.value.message

    def test_bounds(self):
        with pytest.raises(InvalidParamsError, match=">= 1"):
            SchemaValidator().validate(_descriptor(), {"query": "mcp", "count": 0})
        with pytest.raises(InvalidParamsError, match="<= 20"):
            SchemaValidator().validate(_descriptor(), {"query": "mcp", "count": 21})

    def test_extra_fields_pass_through(self):
        result = SchemaValidator().validate(_descriptor(), {"query": "mcp", "lang": "de"})
        assert result["lang"] == "de"

    def test_nested_schemas_not_enforced(self):
        result = SchemaValidator().validate(_descriptor(), {"query": "mcp", "filters": [{"x": "not-a-number"}]})
        assert result["filters"] == [{"x": "not-a-number"}]

    def test_caller_mapping_not_mutated(self):
        arguments = {"query": "mcp"}
        SchemaValidator().validate(_descriptor(), arguments)
        assert arguments == {"query": "mcp"}
