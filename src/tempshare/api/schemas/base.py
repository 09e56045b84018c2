"""Base schema with camelCase field names on the wire."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Model serialized with camelCase aliases, accepting either form on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
