"""
Box packing capability.

The packing algorithm lives outside this package. A packer receives the
shipment's items and a box catalog of ``PackageBox`` values and returns which
items went into which box; ``packages_from_packed_boxes`` turns that result
back into ``Package`` values a carrier can rate.
"""

from dataclasses import dataclass, field
from typing import List, Protocol, Sequence

from .models import Package, PackageBox


@dataclass
class PackedBox:
    box: PackageBox
    items: List[Package] = field(default_factory=list)

    @property
    def weight(self) -> float:
        return self.box.empty_weight + sum(item.weight for item in self.items)

    @property
    def price(self) -> float:
        return sum(item.price for item in self.items)


class BoxPacker(Protocol):
    def pack(self, items: Sequence[Package], boxes: Sequence[PackageBox]) -> List[PackedBox]:
        ...


def box_catalog(entries: Sequence[dict]) -> List[PackageBox]:
    """
    Build PackageBox values from plain catalog rows.

    Each row needs reference, width, length, depth and max_weight; price and
    currency are optional.
    """
    boxes = []
    for entry in entries:
        box = PackageBox(price=float(entry.get("price", 0) or 0), currency=entry.get("currency", "") or "")
        box.set_dimensions(entry["reference"], entry["width"], entry["length"], entry["depth"], entry["max_weight"])
        boxes.append(box)
    return boxes


def packages_from_packed_boxes(packed: Sequence[PackedBox]) -> List[Package]:
    """One Package per packed box, sized by the box's outer dimensions"""
    return [
        Package(
            length=packed_box.box.outer_length,
            width=packed_box.box.outer_width,
            height=packed_box.box.outer_depth,
            weight=packed_box.weight,
            price=packed_box.price,
            reference=packed_box.box.reference or None,
        )
        for packed_box in packed
        if packed_box.items
    ]
