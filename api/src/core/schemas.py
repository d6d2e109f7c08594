"""Shared Pydantic base for API payloads.

JSON bodies use camelCase on the wire; Python code uses snake_case field
names. Both spellings are accepted on input.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base model for request and response bodies."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class MessageResponse(ApiModel):
    """Generic success/message response."""

    success: bool = True
    message: str
