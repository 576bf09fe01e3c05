"""
Declarative argument validation against a tool's input schema.

Validation is shallow: required fields, top-level primitive types, enums,
string lengths and numeric bounds. Nested `items` / `anyOf` / nested `properties` schemas are
documentation for callers and are not enforced recursively.
"""
from __future__ import annotations

import copy
from typing import Any, Dict, Mapping, Optional

from .catalog import ToolDescriptor
from .errors import InvalidParamsError


_TYPE_NAMES = {
    "string": "a string",
    "number": "a number",
    "integer": "an integer",
    "boolean": "a boolean",
    "array": "an array",
    "object": "an object",
    "null": "null",
}


def field_label(name: str) -> str:
    """`issue_number` -> `Issue number`."""
    text = name.replace("_", " ").strip()
    return text[:1].upper() + text[1:] if text else name


def _is_missing(value: Any) -> bool:
    # Empty strings are values; fields that must be non-blank declare minLength
    return value is None


def _matches_type(value: Any, expected: str) -> bool:
    if expected == "string":
        return isinstance(value, str)
    if expected == "boolean":
        return isinstance(value, bool)
    if expected == "number":
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if expected == "integer":
        if isinstance(value, bool):
            return False
        if isinstance(value, int):
            return True
        return isinstance(value, float) and value.is_integer()
    if expected == "array":
        return isinstance(value, (list, tuple))
    if expected == "object":
        return isinstance(value, Mapping)
    if expected == "null":
        return value is None
    # Unknown type keywords are not enforced
    return True


class SchemaValidator:
    """Checks invocation arguments against a ToolDescriptor's input schema."""

    def __init__(self, *, apply_defaults: bool = True) -> None:
        self.apply_defaults = apply_defaults

    def validate(self, descriptor: ToolDescriptor, arguments: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        """
        Validate `arguments` and return a new dict ready for the handler.

        Raises InvalidParamsError on the first violation found. Extra fields
        not declared in the schema are passed through untouched.
        """
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, Mapping):
            raise InvalidParamsError("Tool arguments must be an object")

        result: Dict[str, Any] = dict(arguments)
        properties = descriptor.properties

        for name in descriptor.required:
            if name not in result or _is_missing(result[name]):
                raise InvalidParamsError(f"{field_label(name)} is required")

        for name, prop in properties.items():
            if not isinstance(prop, Mapping):
                continue
            if name not in result or result[name] is None:
                if self.apply_defaults and "default" in prop:
                    result[name] = copy.deepcopy(prop["default"])
                continue
            self._check_field(name, result[name], prop)

        return result

    def _check_field(self, name: str, value: Any, prop: Mapping[str, Any]) -> None:
        expected = prop.get("type")
        if isinstance(expected, str):
            if not _matches_type(value, expected):
                raise InvalidParamsError(
                    f"{field_label(name)} must be {_TYPE_NAMES.get(expected, expected)}"
                )
        elif isinstance(expected, list) and expected:
            if not any(_matches_type(value, t) for t in expected if isinstance(t, str)):
                allowed = ", ".join(str(t) for t in expected)
                raise InvalidParamsError(f"{field_label(name)} must be one of types: {allowed}")

        allowed_values = prop.get("enum")
        if isinstance(allowed_values, list) and value not in allowed_values:
            allowed = ", ".join(repr(v) for v in allowed_values)
            raise InvalidParamsError(
                f"Invalid value for {name}: {value!r} (allowed: {allowed})"
            )

        if isinstance(value, str):
            min_length = prop.get("minLength")
            if min_length is not None and len(value.strip()) < min_length:
                if min_length == 1:
                    raise InvalidParamsError(f"{field_label(name)} must not be empty")
                raise InvalidParamsError(
                    f"{field_label(name)} must be at least {min_length} characters"
                )
            max_length = prop.get("maxLength")
            if max_length is not None and len(value) > max_length:
                raise InvalidParamsError(
                    f"{field_label(name)} must be at most {max_length} characters"
                )

        if isinstance(value, (int, float)) and not isinstance(value, bool):
            minimum = prop.get("minimum")
            if minimum is not None and value < minimum:
                raise InvalidParamsError(f"{field_label(name)} must be >= {minimum}, got {value}")
            maximum = prop.get("maximum")
            if maximum is not None and value > maximum:
                raise InvalidParamsError(f"{field_label(name)} must be <= {maximum}, got {value}")
