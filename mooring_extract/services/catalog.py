from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import pandas as pd
from rapidfuzz import fuzz

from ..models.component import CatalogMatch, ComponentRecord, ComponentType, Specifications
from ..models.position_group import PositionGroup
from .extractor import classify_component_type, extract_specifications
from .normalizer import cell_text, parse_number

"""Catalog matcher.

Matches resolved components against a product catalog.

Confidence bands:
- 0.90-1.00  same type, every shared spec within 1 %, description
             token_sort_ratio >= 90
- 0.60-0.89  same type, every shared spec within 10 %
- no match   anything else

At least one spec must be present on both sides, and a single shared spec
outside 10 % rejects the candidate: a wrong match is worse than none.
Supplier equal to the component's manufacturer breaks confidence ties.
"""

__all__ = [
    "CatalogError",
    "CatalogIndex",
    "CatalogProduct",
    "EXACT_SPEC_TOLERANCE",
    "EXACT_SIMILARITY",
    "SPEC_TOLERANCE",
    "load_catalog",
    "match",
    "match_groups",
]

logger = logging.getLogger(__name__)

EXACT_SPEC_TOLERANCE = 0.01
SPEC_TOLERANCE = 0.10
EXACT_SIMILARITY = 90

_SPEC_FIELDS = ("weight_kg", "length_m", "diameter_mm", "capacity_t")

CATALOG_COLUMNS: dict[str, tuple[str, ...]] = {
    "product_id": ("product_id", "id", "varenummer", "artikkelnummer", "uid"),
    "description": ("description", "beskrivelse", "produktnavn", "navn"),
    "supplier": ("supplier", "leverandør", "leverandor", "produsent"),
    "mbl": ("mbl", "mbl_t", "bruddstyrke"),
    "unit": ("unit", "enhet"),
}


class CatalogError(Exception):
    pass


@dataclass(frozen=True)
class CatalogProduct:
    """One catalog product with type and specs derived from its description."""
    product_id: Any
    description: str
    supplier: str | None = None
    mbl: float | None = None
    unit: str | None = None
    component_type: ComponentType = ComponentType.UNKNOWN
    specifications: Specifications = field(default_factory=Specifications)

    @classmethod
    def create(
        cls,
        product_id: Any,
        description: str,
        supplier: str | None = None,
        mbl: float | None = None,
        unit: str | None = None,
    ) -> CatalogProduct:
        return cls(
            product_id=product_id,
            description=description,
            supplier=supplier,
            mbl=mbl,
            unit=unit,
            component_type=classify_component_type(description),
            specifications=extract_specifications(description),
        )


class CatalogIndex:
    """Products bucketed by component type, built once per run."""

    def __init__(self, products: Iterable[CatalogProduct]) -> None:
        self.products = list(products)
        self._by_type: dict[ComponentType, list[CatalogProduct]] = {}
        for product in self.products:
            self._by_type.setdefault(product.component_type, []).append(product)

    def __len__(self) -> int:
        return len(self.products)

    def subset_for(self, component_type: ComponentType) -> list[CatalogProduct]:
        return list(self._by_type.get(component_type, []))

    def match(self, component: ComponentRecord) -> CatalogMatch:
        return match(component, self.subset_for(component.component_type))


def _relative_diff(a: float, b: float) -> float:
    scale = max(abs(a), abs(b))
    return 0.0 if scale == 0 else abs(a - b) / scale


def _shared_spec_diffs(left: Specifications, right: Specifications) -> dict[str, float]:
    diffs: dict[str, float] = {}
    for name in _SPEC_FIELDS:
        a, b = getattr(left, name), getattr(right, name)
        if a is not None and b is not None:
            diffs[name] = _relative_diff(a, b)
    return diffs


def _score(component: ComponentRecord, product: CatalogProduct) -> tuple[float, str] | None:
    """Confidence and reason for one candidate, or None when rejected."""
    if product.component_type is not component.component_type:
        return None
    diffs = _shared_spec_diffs(component.specifications, product.specifications)
    if not diffs:
        return None
    worst = max(diffs.values())
    if worst > SPEC_TOLERANCE:
        return None

    similarity = fuzz.token_sort_ratio(component.raw_description.lower(), product.description.lower())
    if worst <= EXACT_SPEC_TOLERANCE and similarity >= EXACT_SIMILARITY:
        confidence = 0.90 + 0.10 * (similarity - EXACT_SIMILARITY) / (100 - EXACT_SIMILARITY)
        return round(confidence, 4), f"exact: {', '.join(sorted(diffs))} match, description similarity {similarity:.0f}"

    spec_closeness = 1.0 - worst / SPEC_TOLERANCE
    confidence = 0.60 + 0.29 * (0.5 * spec_closeness + 0.5 * similarity / 100)
    spec_list = ", ".join(f"{name} {diff:.1%}" for name, diff in sorted(diffs.items()))
    return round(confidence, 4), f"tolerance: {spec_list}, description similarity {similarity:.0f}"


def match(component: ComponentRecord, catalog_subset: Sequence[CatalogProduct]) -> CatalogMatch:
    """Best catalog product for ``component`` or a null match with a reason."""
    if component.component_type is ComponentType.UNKNOWN:
        return CatalogMatch(None, 0.0, "component type unknown")
    if component.specifications.is_empty:
        return CatalogMatch(None, 0.0, "component has no specifications")
    if not catalog_subset:
        return CatalogMatch(None, 0.0, f"no catalog products of type {component.component_type.value}")

    manufacturer = (component.manufacturer or "").strip().lower()
    best: tuple[float, bool, CatalogProduct, str] | None = None
    for product in catalog_subset:
        scored = _score(component, product)
        if scored is None:
            continue
        confidence, reason = scored
        same_supplier = bool(manufacturer) and (product.supplier or "").strip().lower() == manufacturer
        if best is None or (confidence, same_supplier) > (best[0], best[1]):
            best = (confidence, same_supplier, product, reason)

    if best is None:
        return CatalogMatch(None, 0.0, "no candidate within spec tolerance")
    confidence, same_supplier, product, reason = best
    if same_supplier:
        reason += ", same supplier"
    return CatalogMatch(product.product_id, confidence, reason)


def match_groups(groups: Iterable[PositionGroup], index: CatalogIndex) -> list[PositionGroup]:
    """Annotate every component with its catalog match (groups are replaced)."""
    annotated: list[PositionGroup] = []
    for group in groups:
        components = [replace(c, catalog_match=index.match(c)) for c in group.components]
        annotated.append(replace(group, components=components))
    return annotated


def _resolve_catalog_columns(headers: Iterable[Any]) -> dict[str, str]:
    by_key = {str(h).strip().lower(): h for h in headers}
    resolved: dict[str, str] = {}
    for field_name, synonyms in CATALOG_COLUMNS.items():
        for syn in synonyms:
            if syn in by_key:
                resolved[field_name] = by_key[syn]
                break
    return resolved


def load_catalog(path: Path) -> CatalogIndex:
    """Read a catalog from ``.xlsx`` / ``.csv``.

    Raises:
        CatalogError: missing file, unsupported type, or missing id/description
            columns.
    """
    if not path.exists():
        raise CatalogError(f"catalog not found: {path}")
    suffix = path.suffix.lower()
    try:
        if suffix == ".xlsx":
            df = pd.read_excel(path, dtype=object)
        elif suffix == ".csv":
            df = pd.read_csv(path, dtype=object)
        else:
            raise CatalogError(f"unsupported catalog file type: {suffix}")
    except (OSError, ValueError, ImportError) as e:
        raise CatalogError(f"failed to read catalog {path}: {e}") from e

    columns = _resolve_catalog_columns(df.columns)
    missing = [c for c in ("product_id", "description") if c not in columns]
    if missing:
        raise CatalogError(f"catalog {path.name} missing columns: {', '.join(missing)}")

    def get(record: dict[str, Any], name: str) -> Any:
        col = columns.get(name)
        return record.get(col) if col is not None else None

    products: list[CatalogProduct] = []
    for record in df.to_dict(orient="records"):
        product_id = cell_text(get(record, "product_id"))
        description = cell_text(get(record, "description"))
        if product_id is None or description is None:
            continue
        products.append(
            CatalogProduct.create(
                product_id=product_id,
                description=description,
                supplier=cell_text(get(record, "supplier")),
                mbl=parse_number(get(record, "mbl")),
                unit=cell_text(get(record, "unit")),
            )
        )
    logger.info("catalog loaded path=%s products=%d", path, len(products))
    return CatalogIndex(products)
