"""Unit tests for parameter schema sanitization."""

import pytest
from pydantic import ValidationError

from toolchat_server.mcp.schema import ALLOWED_SCHEMA_KEYS, SchemaNode, sanitize_schema


def _all_keys(schema):
    """Collect every key of a schema and its nested schema nodes."""
    keys = set(schema)
    for child in (schema.get("properties") or {}).values():
        keys |= _all_keys(child)
    if isinstance(schema.get("items"), dict):
        keys |= _all_keys(schema["items"])
    for child in schema.get("anyOf") or []:
        keys |= _all_keys(child)
    return keys


class TestSanitizeSchema:
    """Tests for projecting provider schemas onto the allow-list."""

    def test_drops_disallowed_top_level_keys(self):
        """Test that unknown keys are removed without error."""
        schema = {
            "type": "object",
            "$schema": "http://json-schema.org/draft-07/schema#",
            "additionalProperties": False,
            "title": "Args",
            "properties": {"name": {"type": "string"}},
            "required": ["name"],
        }

        result = sanitize_schema(schema)

        assert result == {
            "type": "object",
            "properties": {"name": {"type": "string"}},
            "required": ["name"],
        }

    def test_preserves_every_allowed_key(self):
        """Test that allow-listed keys keep their values unchanged."""
        schema = {
            "type": "string",
            "description": "A color",
            "enum": ["red", "green"],
            "format": "enum",
            "nullable": True,
            "default": "red",
            "example": "green",
            "minLength": 1,
            "maxLength": 10,
            "pattern": "^[a-z]+$",
        }

        result = sanitize_schema({**schema, "deprecated": True, "examples": ["red"]})

        assert result == schema

    def test_numeric_bounds_keep_their_type(self):
        """Test that integer and float bounds are not coerced."""
        result = sanitize_schema({"type": "number", "minimum": 0, "maximum": 1.5})

        assert result["minimum"] == 0
        assert isinstance(result["minimum"], int)
        assert result["maximum"] == 1.5

    def test_sanitizes_nested_properties(self):
        """Test that sanitization recurses through properties and items."""
        schema = {
            "type": "object",
            "properties": {
                "nodes": {
                    "type": "array",
                    "uniqueItems": True,
                    "items": {
                        "type": "object",
                        "additionalProperties": False,
                        "properties": {"id": {"type": "string", "const": "x"}},
                    },
                }
            },
        }

        result = sanitize_schema(schema)

        assert result == {
            "type": "object",
            "properties": {
                "nodes": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {"id": {"type": "string"}},
                    },
                }
            },
        }

    def test_sanitizes_any_of_branches(self):
        """Test that anyOf branches are sanitized too."""
        schema = {"anyOf": [{"type": "string", "title": "S"}, {"type": "null"}]}

        result = sanitize_schema(schema)

        assert result == {"anyOf": [{"type": "string"}, {"type": "null"}]}

    def test_result_contains_only_allowed_keys(self):
        """Test that no disallowed key survives at any level."""
        schema = {
            "type": "object",
            "x-internal": 1,
            "properties": {
                "a": {"type": "integer", "exclusiveMinimum": 0, "minimum": 1},
                "b": {"type": "array", "items": {"type": "string", "contentEncoding": "base64"}},
            },
            "propertyOrdering": ["a", "b"],
        }

        result = sanitize_schema(schema)

        assert _all_keys(result) <= ALLOWED_SCHEMA_KEYS
        assert result["propertyOrdering"] == ["a", "b"]
        assert result["properties"]["a"]["minimum"] == 1

    def test_explicit_null_default_is_kept(self):
        """Test that a key explicitly set to null is preserved."""
        result = sanitize_schema({"type": "string", "default": None})

        assert result == {"type": "string", "default": None}

    def test_empty_schema(self):
        """Test that a missing schema becomes an empty dict."""
        assert sanitize_schema(None) == {}
        assert sanitize_schema({}) == {}

    def test_malformed_allowed_key_is_dropped(self):
        """Test that an allow-listed key with the wrong shape is dropped alone."""
        result = sanitize_schema(
            {
                "type": "object",
                "description": "Export options",
                "properties": ["not", "a", "dict"],
            }
        )

        assert result == {"type": "object", "description": "Export options"}

    def test_malformed_nested_key_is_dropped_in_place(self):
        """Test that a bad keyword deep in the tree keeps its siblings."""
        result = sanitize_schema(
            {
                "type": "object",
                "properties": {
                    "scale": {"type": "number", "minimum": "small"},
                    "format": {"type": "string"},
                },
            }
        )

        assert result == {
            "type": "object",
            "properties": {
                "scale": {"type": "number"},
                "format": {"type": "string"},
            },
        }

    def test_tuple_items_are_kept(self):
        """Test that the list form of items is accepted and sanitized."""
        result = sanitize_schema(
            {
                "type": "array",
                "items": [{"type": "number", "title": "x"}, {"type": "number"}],
            }
        )

        assert result == {"type": "array", "items": [{"type": "number"}, {"type": "number"}]}

    def test_boolean_subschemas_are_kept(self):
        """Test that true/false schemas and boolean required survive."""
        schema = {
            "type": "object",
            "properties": {"anything": True, "nothing": False},
            "items": False,
            "anyOf": [True, {"type": "object"}],
            "required": True,
        }

        assert sanitize_schema(schema) == schema

    def test_non_object_schema_raises(self):
        """Test that a schema that is not an object at all is rejected."""
        with pytest.raises(ValidationError):
            sanitize_schema("not a schema")


def test_schema_node_ignores_unknown_fields():
    """Test that SchemaNode drops unknown fields at validation time."""
    node = SchemaNode.model_validate({"type": "string", "readOnly": True})

    assert node.to_dict() == {"type": "string"}
