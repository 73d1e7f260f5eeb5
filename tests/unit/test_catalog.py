from __future__ import annotations

import pandas as pd
import pytest

from mooring_extract.models.component import ComponentRecord, ComponentType, Specifications
from mooring_extract.models.position_group import PositionGroup, PositionType
from mooring_extract.services.catalog import (
    CatalogError,
    CatalogIndex,
    CatalogProduct,
    load_catalog,
    match,
    match_groups,
)


def _component(description, component_type=ComponentType.ANCHOR, manufacturer=None, **specs):
    return ComponentRecord(
        sequence=1,
        component_type=component_type,
        raw_description=description,
        manufacturer=manufacturer,
        specifications=Specifications(**specs),
    )


@pytest.fixture()
def anchor_catalog():
    return [
        CatalogProduct.create("P-1700", "Softanker 1700 kg", supplier="AQS TOR"),
        CatalogProduct.create("P-1200", "Softanker 1200 kg", supplier="Mørenot"),
    ]


def test_product_type_and_specs_derived_from_description():
    product = CatalogProduct.create("C-30", "Kjetting 30mm - 27,5m")
    assert product.component_type is ComponentType.CHAIN
    assert product.specifications == Specifications(length_m=27.5, diameter_mm=30.0)


def test_exact_match(anchor_catalog):
    result = match(_component("Softanker 1700 kg", weight_kg=1700.0), anchor_catalog)
    assert result.matched_product_id == "P-1700"
    assert result.confidence == 1.0
    assert result.reason.startswith("exact:")


def test_tolerance_match(anchor_catalog):
    result = match(_component("Ploganker Softanker 1750 kg", weight_kg=1750.0), anchor_catalog)
    assert result.matched_product_id == "P-1700"
    assert 0.60 <= result.confidence < 0.90
    assert result.reason.startswith("tolerance:")


def test_spec_outside_tolerance_is_rejected(anchor_catalog):
    result = match(_component("Softanker 1500 kg", weight_kg=1500.0), anchor_catalog)
    assert result.matched_product_id is None
    assert result.confidence == 0.0
    assert result.reason == "no candidate within spec tolerance"


def test_one_bad_spec_rejects_candidate():
    products = [CatalogProduct.create("T-1", "Tau 40mm 220 m")]
    component = _component("Tau 40mm 100 m", ComponentType.ROPE, diameter_mm=40.0, length_m=100.0)
    assert match(component, products).matched_product_id is None


def test_no_shared_spec_is_rejected():
    products = [CatalogProduct.create("S-1", "Sjakkel 35T")]
    component = _component("Sjakkel 22mm", ComponentType.SHACKLE, diameter_mm=22.0)
    assert match(component, products).matched_product_id is None


def test_null_match_reasons(anchor_catalog):
    assert match(_component("Ukjent", ComponentType.UNKNOWN, weight_kg=1.0), anchor_catalog).reason == "component type unknown"
    assert match(_component("Softanker"), anchor_catalog).reason == "component has no specifications"
    assert match(_component("Sjakkel 17T", ComponentType.SHACKLE, capacity_t=17.0), []).reason == (
        "no catalog products of type shackle"
    )


def test_supplier_breaks_ties():
    products = [
        CatalogProduct.create("A", "Sjakkel 17T", supplier="Løvold"),
        CatalogProduct.create("B", "Sjakkel 17T", supplier="Sabik"),
    ]
    component = _component("Sjakkel 17T", ComponentType.SHACKLE, manufacturer="Sabik", capacity_t=17.0)
    result = match(component, products)
    assert result.matched_product_id == "B"
    assert result.reason.endswith(", same supplier")


def test_index_buckets_by_type(anchor_catalog):
    index = CatalogIndex([*anchor_catalog, CatalogProduct.create("S-1", "Sjakkel 17T")])
    assert len(index) == 3
    assert [p.product_id for p in index.subset_for(ComponentType.ANCHOR)] == ["P-1700", "P-1200"]
    assert index.subset_for(ComponentType.BUOY) == []


def test_match_groups_annotates_every_component(anchor_catalog):
    group = PositionGroup(
        document_reference="H01A",
        position_type=PositionType.MOORING_LINE,
        source_sheet="Fortøyning",
        components=[
            _component("Softanker 1700 kg", weight_kg=1700.0),
            _component("Sjakkel 17T", ComponentType.SHACKLE, capacity_t=17.0),
        ],
    )
    [annotated] = match_groups([group], CatalogIndex(anchor_catalog))
    anchor, shackle = annotated.components
    assert anchor.catalog_match.matched_product_id == "P-1700"
    assert shackle.catalog_match.matched is False
    assert group.components[0].catalog_match is None


def test_load_catalog_csv(tmp_path):
    path = tmp_path / "products.csv"
    pd.DataFrame(
        {
            "Varenummer": ["P-1700", "P-30", None],
            "Beskrivelse": ["Softanker 1700 kg", "Kjetting 30mm - 27,5m", "Tom rad"],
            "Leverandør": ["AQS TOR", None, None],
            "MBL": [None, "85,5", None],
        }
    ).to_csv(path, index=False)

    index = load_catalog(path)

    assert len(index) == 2
    anchor, chain = index.products
    assert anchor.product_id == "P-1700"
    assert anchor.supplier == "AQS TOR"
    assert chain.component_type is ComponentType.CHAIN
    assert chain.mbl == 85.5
    assert chain.supplier is None


def test_load_catalog_xlsx(tmp_path):
    path = tmp_path / "products.xlsx"
    pd.DataFrame({"product_id": [606616], "description": ["Softanker 1700 kg"]}).to_excel(path, index=False)
    index = load_catalog(path)
    assert index.products[0].product_id == "606616"


def test_load_catalog_missing_columns(tmp_path):
    path = tmp_path / "products.csv"
    pd.DataFrame({"Navn": ["Softanker"]}).to_csv(path, index=False)
    with pytest.raises(CatalogError, match="product_id"):
        load_catalog(path)


def test_load_catalog_missing_file(tmp_path):
    with pytest.raises(CatalogError, match="not found"):
        load_catalog(tmp_path / "missing.csv")


def test_load_catalog_unsupported_type(tmp_path):
    path = tmp_path / "products.json"
    path.write_text("[]", encoding="utf-8")
    with pytest.raises(CatalogError, match="unsupported"):
        load_catalog(path)


def test_load_catalog_rejects_legacy_xls(tmp_path):
    path = tmp_path / "catalog.xls"
    path.write_bytes(b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1" + b"\x00" * 504)
    with pytest.raises(CatalogError, match="unsupported catalog file type: .xls"):
        load_catalog(path)
