"""
PackageBox

Box catalog entry handed to a box-packing library. Mutable: packers
fill and read these through plain attribute access.
"""

from dataclasses import dataclass


@dataclass
class PackageBox:
    reference: str = ""
    outer_width: int = 0
    outer_length: int = 0
    outer_depth: int = 0
    empty_weight: int = 0
    inner_width: int = 0
    inner_length: int = 0
    inner_depth: int = 0
    max_weight: int = 0
    type: str = ""
    price: float = 0.0
    currency: str = ""

    def set_dimensions(self, reference: str, width, length, depth, weight) -> None:
        """Single-walled box: inner and outer dimensions match, no empty weight."""
        self.reference = str(reference)
        self.outer_width = int(width)
        self.outer_length = int(length)
        self.outer_depth = int(depth)
        self.empty_weight = 0
        self.inner_width = int(width)
        self.inner_length = int(length)
        self.inner_depth = int(depth)
        self.max_weight = int(weight)
