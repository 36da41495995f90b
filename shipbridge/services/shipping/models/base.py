"""
Base model for shipping value objects.
"""
from pydantic import BaseModel, ConfigDict


class ValueObject(BaseModel):
    """Immutable base for all shipping domain objects"""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )
