"""
Response helper utilities shared by the router schemas
"""
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """
    Base model for the public API: camelCase on the wire, snake_case in Python,
    readable straight from SQLAlchemy objects.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class StrictCamelModel(CamelModel):
    """Request bodies reject fields they do not declare"""
    model_config = ConfigDict(extra="forbid")

