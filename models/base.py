"""
Base schemas for all models.
"""

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """
    Base for request/response schemas.

    Features:
        - Auto-trim whitespace from strings
        - Validate on attribute assignment
        - Allow ORM objects (from_attributes)
    """
    model_config = ConfigDict(
        from_attributes=True,
        str_strip_whitespace=True,
        validate_assignment=True
    )


class FrozenSchema(BaseModel):
    """
    Base for facts and derived analytics records.

    Instances are immutable; stages build new instances with
    model_copy(update=...) instead of patching. Strings are kept
    verbatim because product names are grouping keys.
    """
    model_config = ConfigDict(
        from_attributes=True,
        frozen=True,
    )
