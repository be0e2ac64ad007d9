"""Shared pydantic base: camelCase on the wire, snake_case in Python."""
from __future__ import annotations
from typing import Optional
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


def blank_to_none(value: Optional[str]) -> Optional[str]:
    """Clients send empty strings for cleared optional text fields."""
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None
