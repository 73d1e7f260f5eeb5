from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

"""Component domain models.

ComponentRecord is the resolved, typed output unit of the pipeline. Records are
frozen: later stages (manufacturer inheritance, catalog matching) produce new
instances with ``dataclasses.replace`` instead of mutating.
"""

__all__ = [
    "CatalogMatch",
    "ComponentRecord",
    "ComponentType",
    "ResolutionStatus",
    "Specifications",
]


class ComponentType(Enum):
    """Canonical mooring component types.

    Norwegian and English spellings from the documents are mapped onto these
    members by the synonym table in ``services.extractor``.
    """
    ANCHOR = "anchor"
    SHACKLE = "shackle"
    CHAIN = "chain"
    ROPE = "rope"
    BUOY = "buoy"
    SWIVEL = "swivel"
    THIMBLE = "thimble"
    CONNECTOR = "connector"
    SINKER = "sinker"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Any) -> ComponentType:
        """Lenient lookup by value; anything unrecognised becomes UNKNOWN."""
        if isinstance(value, ComponentType):
            return value
        text = str(value or "").strip().lower()
        for member in cls:
            if member.value == text:
                return member
        return cls.UNKNOWN


class ResolutionStatus(Enum):
    """How a record's fields were settled.

    State transitions: deterministic → (cache_hit | resolved | fallback)
    """
    DETERMINISTIC = "deterministic"
    CACHE_HIT = "cache_hit"
    RESOLVED = "resolved"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class Specifications:
    """Numeric specifications parsed from a free-text description."""
    weight_kg: float | None = None
    length_m: float | None = None
    diameter_mm: float | None = None
    capacity_t: float | None = None

    @property
    def is_empty(self) -> bool:
        return all(v is None for v in asdict(self).values())

    def merged_with(self, other: Specifications | None) -> Specifications:
        """Fill gaps in self with values from other (self wins where set)."""
        if other is None:
            return self
        return Specifications(
            weight_kg=self.weight_kg if self.weight_kg is not None else other.weight_kg,
            length_m=self.length_m if self.length_m is not None else other.length_m,
            diameter_mm=self.diameter_mm if self.diameter_mm is not None else other.diameter_mm,
            capacity_t=self.capacity_t if self.capacity_t is not None else other.capacity_t,
        )

    def as_dict(self) -> dict[str, float | None]:
        return asdict(self)


@dataclass(frozen=True)
class CatalogMatch:
    """Result of matching one component against the product catalog."""
    matched_product_id: Any | None
    confidence: float
    reason: str

    @property
    def matched(self) -> bool:
        return self.matched_product_id is not None


@dataclass(frozen=True)
class ComponentRecord:
    """One installed component within a position group.

    ``confidence`` is 1.0 for fully deterministic rows and is lowered by the
    ambiguity resolver (fallbacks are <= 0.5).
    """
    sequence: int | None
    component_type: ComponentType
    raw_description: str
    raw_type: str = ""
    subtype: str | None = None
    manufacturer: str | None = None
    tracking_number: str | None = None
    part_number: str | None = None
    specifications: Specifications = field(default_factory=Specifications)
    install_date: str | None = None
    quantity: float = 1
    confidence: float = 1.0
    resolution: ResolutionStatus = ResolutionStatus.DETERMINISTIC
    manufacturer_inherited: bool = False
    catalog_match: CatalogMatch | None = None
    source_row: int | None = None  # 1-based Excel row

    def to_dict(self) -> dict[str, Any]:
        return {
            "sequence": self.sequence,
            "component_type": self.component_type.value,
            "raw_type": self.raw_type,
            "subtype": self.subtype,
            "raw_description": self.raw_description,
            "manufacturer": self.manufacturer,
            "manufacturer_inherited": self.manufacturer_inherited,
            "tracking_number": self.tracking_number,
            "part_number": self.part_number,
            "specifications": self.specifications.as_dict(),
            "install_date": self.install_date,
            "quantity": self.quantity,
            "confidence": self.confidence,
            "resolution": self.resolution.value,
            "catalog_match": asdict(self.catalog_match) if self.catalog_match else None,
            "source_row": self.source_row,
        }
