"""Shared Pydantic configuration for API-facing models."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CatalogModel(BaseModel):
    """
    Base class for every model that crosses the HTTP boundary.

    Attributes are snake_case in Python and camelCase on the wire; incoming
    payloads may use either spelling.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        str_strip_whitespace=True,
    )
