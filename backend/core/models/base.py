"""Shared pydantic base for wire-facing models."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Model that serializes with camelCase keys and accepts either spelling."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
