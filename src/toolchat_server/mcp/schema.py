"""Parameter schema projection for model function declarations.

Providers describe tool parameters with full JSON Schema, but the model only
accepts a subset of it. ``SchemaNode`` models exactly that subset; validating
a provider schema through it drops every other key, recursively, through
``properties``, ``items`` and ``anyOf``. An allow-listed key whose value has
an unexpected shape is dropped from its node with a warning, so one odd
keyword never costs the whole tool.
"""

import logging
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidatorFunctionWrapHandler,
    model_validator,
)

logger = logging.getLogger(__name__)

ALLOWED_SCHEMA_KEYS = frozenset(
    {
        "anyOf",
        "type",
        "properties",
        "items",
        "required",
        "nullable",
        "format",
        "description",
        "enum",
        "default",
        "example",
        "maxItems",
        "maxLength",
        "maxProperties",
        "maximum",
        "minItems",
        "minLength",
        "minProperties",
        "minimum",
        "pattern",
        "propertyOrdering",
    }
)


class SchemaNode(BaseModel):
    """A JSON Schema node restricted to the allow-listed keys."""

    any_of: list["SchemaNode | bool"] | None = Field(default=None, alias="anyOf")
    type: str | list[str] | None = None
    properties: dict[str, "SchemaNode | bool"] | None = None
    # A list is the tuple form of older drafts
    items: "SchemaNode | list[SchemaNode | bool] | bool | None" = None
    required: list[str] | bool | None = None
    nullable: bool | None = None
    format: str | None = None
    description: str | None = None
    enum: list[Any] | None = None
    default: Any = None
    example: Any = None
    max_items: int | None = Field(default=None, alias="maxItems")
    max_length: int | None = Field(default=None, alias="maxLength")
    max_properties: int | None = Field(default=None, alias="maxProperties")
    maximum: int | float | None = None
    min_items: int | None = Field(default=None, alias="minItems")
    min_length: int | None = Field(default=None, alias="minLength")
    min_properties: int | None = Field(default=None, alias="minProperties")
    minimum: int | float | None = None
    pattern: str | None = None
    property_ordering: list[str] | None = Field(
        default=None, alias="propertyOrdering"
    )

    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="wrap")
    @classmethod
    def drop_malformed_keys(
        cls, data: Any, handler: ValidatorFunctionWrapHandler
    ) -> "SchemaNode":
        """Retry validation without the keys whose values failed."""
        try:
            return handler(data)
        except ValidationError as e:
            if not isinstance(data, dict):
                raise
            bad_keys = {error["loc"][0] for error in e.errors() if error["loc"]}
            if not bad_keys & data.keys():
                raise
            logger.warning(
                f"Dropping malformed schema keys {sorted(map(str, bad_keys))}: "
                f"{e.errors()[0]['msg']}"
            )
            return handler({k: v for k, v in data.items() if k not in bad_keys})

    def to_dict(self) -> dict[str, Any]:
        """Serialize back to JSON Schema keys, keeping only keys that were set."""
        return self.model_dump(by_alias=True, exclude_unset=True)


SchemaNode.model_rebuild()


def sanitize_schema(schema: dict[str, Any] | None) -> dict[str, Any]:
    """Project a provider JSON Schema onto the allow-listed keys.

    Unknown keys are dropped without error at every nesting level, as are
    allow-listed keys holding a value of the wrong shape (e.g. ``properties``
    that is not an object). Other values are left untouched.

    Args:
        schema: A JSON Schema object, or None.

    Returns:
        The sanitized schema as a plain dict.

    Raises:
        pydantic.ValidationError: If the schema itself is not an object.
    """
    if not schema:
        return {}
    return SchemaNode.model_validate(schema).to_dict()
