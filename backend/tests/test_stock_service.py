# Overview: Pytest coverage for stock listing filters and tag / barcode lookup.

from decimal import Decimal

import pytest

from jewelstore.models import StockItem
from jewelstore.services import stock_service
from jewelstore.services.stock_service import StockLookupError
from jewelstore.services.tenant_service import NotFoundError

from conftest import make_product


def add_stock(db_session, shop, product, number, *, status="AVAILABLE", huid=None):
    prefix = "G22" if product.metal_type == "GOLD" else "S925"
    item = StockItem(
        shop_id=shop.id,
        product_id=product.id,
        tag_id=f"{prefix}-{number:06d}",
        barcode=f"STK-{product.id:06d}-{number:06d}",
        huid=huid,
        purchase_cost=Decimal("1000"),
        selling_price=Decimal("1200"),
        status=status,
    )
    db_session.add(item)
    db_session.commit()
    return item


@pytest.fixture
def shelf(db_session, shop_a, product_a):
    ring = make_product(shop_a, name="Silver Toe Ring", metal_type="SILVER", purity="925", barcode="TR-1")
    return {
        "necklace": add_stock(db_session, shop_a, product_a, 1, huid="HU12AB"),
        "sold": add_stock(db_session, shop_a, product_a, 2, status="SOLD"),
        "ring": add_stock(db_session, shop_a, ring, 1),
    }


class TestListStock:

    def test_newest_first(self, db_session, shop_a, shelf):
        ids = [s.id for s in stock_service.list_stock(shop_a.id)]
        assert ids == [shelf["ring"].id, shelf["sold"].id, shelf["necklace"].id]

    def test_status_and_metal_filters(self, db_session, shop_a, shelf):
        assert [s.id for s in stock_service.list_stock(shop_a.id, status="SOLD")] == [shelf["sold"].id]
        assert [s.id for s in stock_service.list_stock(shop_a.id, metal_type="SILVER")] == [shelf["ring"].id]
        assert stock_service.list_stock(shop_a.id, purity="22K", status="AVAILABLE").count() == 1

    @pytest.mark.parametrize("term", ["hu12", "toe ring", "g22-000002"])
    def test_search_matches_huid_name_and_tag(self, db_session, shop_a, shelf, term):
        assert stock_service.list_stock(shop_a.id, search=term).count() == 1

    def test_other_shop_sees_nothing(self, db_session, shop_b, shelf):
        assert stock_service.list_stock(shop_b.id).count() == 0


class TestFindByIdentifier:

    def test_by_tag_and_by_barcode(self, db_session, shop_a, shelf):
        necklace = shelf["necklace"]
        assert stock_service.find_by_identifier(shop_a.id, necklace.tag_id).id == necklace.id
        assert stock_service.find_by_identifier(shop_a.id, necklace.barcode.lower()).id == necklace.id

    @pytest.mark.parametrize("value", ["", "NK-001", "G22-12", "STK-1-1", "22K-000001"])
    def test_malformed_value_rejected(self, db_session, shop_a, shelf, value):
        with pytest.raises(StockLookupError):
            stock_service.find_by_identifier(shop_a.id, value)

    def test_unknown_tag(self, db_session, shop_a, shelf):
        with pytest.raises(NotFoundError):
            stock_service.find_by_identifier(shop_a.id, "G22-999999")

    def test_other_shop_tag_is_not_found(self, db_session, shop_b, shelf):
        with pytest.raises(NotFoundError):
            stock_service.find_by_identifier(shop_b.id, shelf["necklace"].tag_id)
