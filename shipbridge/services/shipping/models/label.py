from typing import Any, List, Optional

from pydantic import Field, model_validator

from .base import ValueObject
from .rate import Rate


class Label(ValueObject):
    """A purchased label. ``label_data`` holds the decoded image/document bytes."""
    carrier: Optional[Any] = Field(default=None, exclude=True, repr=False)
    response: Any = Field(default_factory=dict, repr=False)
    rate: Optional[Rate] = None
    tracking_number: Optional[str] = None
    label_id: str
    label_data: Optional[bytes] = Field(default=None, repr=False)
    label_mime: Optional[str] = None

    @model_validator(mode="after")
    def mime_required_with_data(self):
        if self.label_data and not self.label_mime:
            raise ValueError("label_mime is required when label_data is present")
        return self


class LabelResponse(ValueObject):
    """Empty ``labels`` means the carrier produced no label (not a failure)."""
    response: Any = Field(default_factory=dict, repr=False)
    labels: List[Label] = Field(default_factory=list)
