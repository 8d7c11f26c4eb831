# Overview: Pytest coverage for purchase orders and stock receipt with tag generation.

from decimal import Decimal

import pytest

from jewelstore.models import Product, PurchaseOrder, StockItem, TagSequence, Transaction
from jewelstore.services import products_service, purchase_order_service, receive_service, transaction_service
from jewelstore.services.identifier_service import validate_barcode, validate_tag_id
from jewelstore.services.products_service import ProductError
from jewelstore.services.purchase_order_service import PurchaseOrderError
from jewelstore.services.receive_service import ReceiveValidationError
from jewelstore.services.tenant_service import NotFoundError, TenantAccessError

from conftest import make_product


@pytest.fixture
def purchase_order(db_session, shop_a, supplier_a, product_a):
    """PO for 3 units of product_a at 60000 each, less 1000 discount."""
    return purchase_order_service.create_purchase_order(
        shop_id=shop_a.id,
        supplier_id=supplier_a.id,
        items=[{"product_id": product_a.id, "quantity": 3, "unit_price": Decimal("60000"),
                "expected_weight": Decimal("10")}],
        discount_amount=Decimal("1000"),
    )


def receive_line(po, quantity, *, details=None, product_id=None):
    line = po.items[0]
    return {
        "purchaseOrderItemId": line.id,
        "productId": product_id or line.product_id,
        "quantityToReceive": quantity,
        "receiptDetails": details or [{"purchaseCost": 60000}],
    }


class TestPurchaseOrders:

    def test_create_totals_and_number(self, db_session, shop_a, purchase_order):
        assert purchase_order.total_amount == Decimal("179000.00")
        assert purchase_order.status == "PENDING"
        assert purchase_order.order_number == f"PO-{shop_a.id:03d}-00001"

    def test_order_numbers_are_sequential_per_shop(self, db_session, shop_a, supplier_a, product_a, purchase_order):
        second = purchase_order_service.create_purchase_order(
            shop_id=shop_a.id, supplier_id=supplier_a.id,
            items=[{"product_id": product_a.id, "quantity": 1, "unit_price": Decimal("100")}],
        )
        assert second.order_number.endswith("-00002")

    def test_discount_cannot_exceed_subtotal(self, db_session, shop_a, supplier_a, product_a):
        with pytest.raises(PurchaseOrderError):
            purchase_order_service.create_purchase_order(
                shop_id=shop_a.id, supplier_id=supplier_a.id,
                items=[{"product_id": product_a.id, "quantity": 1, "unit_price": Decimal("100")}],
                discount_amount=Decimal("101"),
            )

    def test_foreign_supplier_denied(self, db_session, shop_a, supplier_b, product_a):
        with pytest.raises(TenantAccessError):
            purchase_order_service.create_purchase_order(
                shop_id=shop_a.id, supplier_id=supplier_b.id,
                items=[{"product_id": product_a.id, "quantity": 1, "unit_price": Decimal("100")}],
            )

    def test_status_transitions(self, db_session, shop_a, purchase_order):
        po = purchase_order_service.update_status(
            shop_id=shop_a.id, purchase_order_id=purchase_order.id, status="CONFIRMED"
        )
        assert po.status == "CONFIRMED"
        with pytest.raises(PurchaseOrderError):
            purchase_order_service.update_status(
                shop_id=shop_a.id, purchase_order_id=purchase_order.id, status="PENDING"
            )

    def test_cannot_cancel_after_receipt(self, db_session, shop_a, purchase_order):
        receive_service.receive_stock(
            shop_id=shop_a.id, purchase_order_id=purchase_order.id, items=[receive_line(purchase_order, 1)]
        )
        with pytest.raises(PurchaseOrderError):
            purchase_order_service.update_status(
                shop_id=shop_a.id, purchase_order_id=purchase_order.id, status="CANCELLED"
            )
        with pytest.raises(PurchaseOrderError):
            purchase_order_service.delete_purchase_order(shop_id=shop_a.id, purchase_order_id=purchase_order.id)

    def test_soft_delete_hides_order(self, db_session, shop_a, purchase_order):
        purchase_order_service.delete_purchase_order(shop_id=shop_a.id, purchase_order_id=purchase_order.id)
        with pytest.raises(NotFoundError):
            purchase_order_service.get_purchase_order(shop_a.id, purchase_order.id)
        assert purchase_order_service.list_purchase_orders(shop_a.id).count() == 0


class TestPurchasePayments:

    def test_partial_then_full_payment_books_expenses(self, db_session, shop_a, purchase_order):
        po = purchase_order_service.record_payment(
            shop_id=shop_a.id, purchase_order_id=purchase_order.id,
            amount=Decimal("79000"), payment_method="BANK_TRANSFER", reference_number="NEFT-1182",
        )
        assert po.paid_amount == Decimal("79000.00")
        assert po.payment_status == "PARTIAL"

        po = purchase_order_service.record_payment(
            shop_id=shop_a.id, purchase_order_id=purchase_order.id, amount="100000", payment_method="CASH",
        )
        assert po.paid_amount == po.total_amount
        assert po.payment_status == "PAID"

        rows = db_session.query(Transaction).filter_by(purchase_order_id=purchase_order.id).all()
        assert [(t.transaction_type, t.category) for t in rows] == [("EXPENSE", "PURCHASE")] * 2
        assert sorted(t.amount for t in rows) == [Decimal("79000.00"), Decimal("100000.00")]
        assert {t.reference_number for t in rows} == {"NEFT-1182", purchase_order.order_number}
        assert transaction_service.totals_by_type(shop_a.id) == {"EXPENSE": 179000.0}

    def test_overpayment_rejected(self, db_session, shop_a, purchase_order):
        with pytest.raises(PurchaseOrderError, match="exceeds pending"):
            purchase_order_service.record_payment(
                shop_id=shop_a.id, purchase_order_id=purchase_order.id,
                amount=Decimal("179000.01"), payment_method="CASH",
            )
        assert db_session.query(Transaction).count() == 0
        assert db_session.get(PurchaseOrder, purchase_order.id).paid_amount == Decimal("0.00")

    @pytest.mark.parametrize("amount, method", [(Decimal("0"), "CASH"), (Decimal("-5"), "CASH"), (Decimal("10"), "GOLD")])
    def test_invalid_amount_or_method(self, db_session, shop_a, purchase_order, amount, method):
        with pytest.raises(PurchaseOrderError):
            purchase_order_service.record_payment(
                shop_id=shop_a.id, purchase_order_id=purchase_order.id, amount=amount, payment_method=method,
            )

    def test_cancelled_order_rejects_payment(self, db_session, shop_a, purchase_order):
        purchase_order_service.update_status(
            shop_id=shop_a.id, purchase_order_id=purchase_order.id, status="CANCELLED"
        )
        with pytest.raises(PurchaseOrderError, match="cancelled"):
            purchase_order_service.record_payment(
                shop_id=shop_a.id, purchase_order_id=purchase_order.id, amount=Decimal("10"), payment_method="CASH",
            )

    def test_paid_order_cannot_be_cancelled(self, db_session, shop_a, purchase_order):
        purchase_order_service.record_payment(
            shop_id=shop_a.id, purchase_order_id=purchase_order.id, amount=Decimal("10"), payment_method="CASH",
        )
        with pytest.raises(PurchaseOrderError, match="recorded payments"):
            purchase_order_service.update_status(
                shop_id=shop_a.id, purchase_order_id=purchase_order.id, status="CANCELLED"
            )

    def test_other_shop_cannot_pay(self, db_session, shop_b, purchase_order):
        with pytest.raises(TenantAccessError):
            purchase_order_service.record_payment(
                shop_id=shop_b.id, purchase_order_id=purchase_order.id, amount=Decimal("10"), payment_method="CASH",
            )


class TestReceiveStock:

    def test_partial_then_full_receipt(self, db_session, shop_a, product_a, purchase_order):
        result = receive_service.receive_stock(
            shop_id=shop_a.id,
            purchase_order_id=purchase_order.id,
            items=[receive_line(purchase_order, 2, details=[
                {"purchaseCost": 59000, "sellingPrice": 70000, "huid": "AB12CD"},
                {"purchaseCost": 59500},
            ])],
            received_by="Store Keeper",
        )

        assert result["stockItemsCreated"] == 2
        assert result["purchaseOrder"]["status"] == "PARTIAL"
        first, second = result["stockItems"]
        assert first["tagId"] == "G22-000001"
        assert second["tagId"] == "G22-000002"
        assert first["barcode"] == f"STK-{product_a.id:06d}-000001"
        assert first["sellingPrice"] == 70000.0
        assert first["huid"] == "AB12CD"
        # falls back to the price from the current rate
        assert second["sellingPrice"] == 67300.0
        assert second["purchaseCost"] == 59500.0
        assert all(s["status"] == "AVAILABLE" for s in result["stockItems"])

        result = receive_service.receive_stock(
            shop_id=shop_a.id, purchase_order_id=purchase_order.id, items=[receive_line(purchase_order, 1)]
        )
        assert result["stockItems"][0]["tagId"] == "G22-000003"
        po = db_session.get(PurchaseOrder, purchase_order.id)
        assert po.status == "DELIVERED"
        assert po.actual_delivery_date is not None
        assert po.items[0].received_quantity == 3

    def test_identifiers_are_well_formed_and_unique(self, db_session, shop_a, purchase_order):
        receive_service.receive_stock(
            shop_id=shop_a.id, purchase_order_id=purchase_order.id, items=[receive_line(purchase_order, 3)]
        )
        items = db_session.query(StockItem).filter_by(shop_id=shop_a.id).all()
        assert len({i.tag_id for i in items}) == 3
        assert len({i.barcode for i in items}) == 3
        assert all(validate_tag_id(i.tag_id) and validate_barcode(i.barcode) for i in items)
        seq = db_session.query(TagSequence).filter_by(shop_id=shop_a.id, prefix="G22").one()
        assert seq.next_number == 4

    def test_tag_sequences_are_per_purity(self, db_session, shop_a, supplier_a, gold_rate_a):
        pendant = make_product(shop_a, name="18K Pendant", purity="18K", barcode="PD-18")
        po = purchase_order_service.create_purchase_order(
            shop_id=shop_a.id, supplier_id=supplier_a.id,
            items=[{"product_id": pendant.id, "quantity": 1, "unit_price": Decimal("20000")}],
        )
        result = receive_service.receive_stock(
            shop_id=shop_a.id, purchase_order_id=po.id, items=[receive_line(po, 1)]
        )
        assert result["stockItems"][0]["tagId"] == "G18-000001"
        # no 18K rate: selling price defaults to 0
        assert result["stockItems"][0]["sellingPrice"] == 0.0

    def test_purity_labels_with_same_digits_share_a_counter(self, db_session, shop_a, supplier_a, purchase_order):
        receive_service.receive_stock(
            shop_id=shop_a.id, purchase_order_id=purchase_order.id, items=[receive_line(purchase_order, 1)]
        )
        bangle = make_product(shop_a, name="Plain Bangle", purity="22", barcode="BG-22")
        po = purchase_order_service.create_purchase_order(
            shop_id=shop_a.id, supplier_id=supplier_a.id,
            items=[{"product_id": bangle.id, "quantity": 1, "unit_price": Decimal("30000")}],
        )
        result = receive_service.receive_stock(
            shop_id=shop_a.id, purchase_order_id=po.id, items=[receive_line(po, 1)]
        )
        assert result["stockItems"][0]["tagId"] == "G22-000002"
        tags = [i.tag_id for i in db_session.query(StockItem).filter_by(shop_id=shop_a.id)]
        assert sorted(tags) == ["G22-000001", "G22-000002"]
        assert db_session.query(TagSequence).filter_by(shop_id=shop_a.id).count() == 1

    def test_product_with_stock_keeps_its_tag_prefix(self, db_session, shop_a, product_a, purchase_order):
        receive_service.receive_stock(
            shop_id=shop_a.id, purchase_order_id=purchase_order.id, items=[receive_line(purchase_order, 1)]
        )
        with pytest.raises(ProductError, match="cannot change"):
            products_service.update_product(
                shop_id=shop_a.id, product_id=product_a.id, patch={"purity": "18K"}
            )
        db_session.rollback()
        assert db_session.get(Product, product_a.id).purity == "22K"

        # same digits, same counter: allowed
        product = products_service.update_product(
            shop_id=shop_a.id, product_id=product_a.id, patch={"purity": "22"}
        )
        assert product.purity == "22"

    def test_product_without_stock_may_change_purity(self, db_session, shop_a, product_a):
        product = products_service.update_product(
            shop_id=shop_a.id, product_id=product_a.id, patch={"purity": "18K"}
        )
        assert product.purity == "18K"

    def test_over_receipt_rejected(self, db_session, shop_a, purchase_order):
        with pytest.raises(ReceiveValidationError, match="Only 3 pending"):
            receive_service.receive_stock(
                shop_id=shop_a.id, purchase_order_id=purchase_order.id, items=[receive_line(purchase_order, 4)]
            )
        assert db_session.query(StockItem).count() == 0

    def test_failed_line_rolls_back_whole_receipt(self, db_session, shop_a, purchase_order, product_b):
        good = receive_line(purchase_order, 1)
        bad = receive_line(purchase_order, 1, product_id=product_b.id)
        with pytest.raises(TenantAccessError):
            receive_service.receive_stock(shop_id=shop_a.id, purchase_order_id=purchase_order.id, items=[good, bad])
        assert db_session.query(StockItem).count() == 0
        assert db_session.query(TagSequence).count() == 0
        po = db_session.get(PurchaseOrder, purchase_order.id)
        assert po.items[0].received_quantity == 0
        assert po.status == "PENDING"

    @pytest.mark.parametrize("quantity", [0, -1, "2", None, True])
    def test_invalid_quantity(self, db_session, shop_a, purchase_order, quantity):
        with pytest.raises(ReceiveValidationError, match="Invalid quantity"):
            receive_service.receive_stock(
                shop_id=shop_a.id, purchase_order_id=purchase_order.id,
                items=[receive_line(purchase_order, quantity)],
            )

    def test_negative_purchase_cost(self, db_session, shop_a, purchase_order):
        with pytest.raises(ReceiveValidationError, match="purchaseCost"):
            receive_service.receive_stock(
                shop_id=shop_a.id, purchase_order_id=purchase_order.id,
                items=[receive_line(purchase_order, 1, details=[{"purchaseCost": -5}])],
            )

    def test_unknown_po_item(self, db_session, shop_a, purchase_order):
        line = receive_line(purchase_order, 1)
        line["purchaseOrderItemId"] = 99999
        with pytest.raises(NotFoundError):
            receive_service.receive_stock(shop_id=shop_a.id, purchase_order_id=purchase_order.id, items=[line])

    def test_single_product_mode_needs_one_item(self, db_session, shop_a, purchase_order):
        line = receive_line(purchase_order, 1)
        with pytest.raises(ReceiveValidationError):
            receive_service.receive_stock(
                shop_id=shop_a.id, purchase_order_id=purchase_order.id, items=[line, line],
                single_product_mode=True,
            )

    def test_cancelled_order_cannot_receive(self, db_session, shop_a, purchase_order):
        purchase_order_service.update_status(
            shop_id=shop_a.id, purchase_order_id=purchase_order.id, status="CANCELLED"
        )
        with pytest.raises(ReceiveValidationError):
            receive_service.receive_stock(
                shop_id=shop_a.id, purchase_order_id=purchase_order.id, items=[receive_line(purchase_order, 1)]
            )

    def test_other_shop_cannot_receive(self, db_session, shop_b, purchase_order):
        with pytest.raises(TenantAccessError):
            receive_service.receive_stock(
                shop_id=shop_b.id, purchase_order_id=purchase_order.id, items=[receive_line(purchase_order, 1)]
            )

    def test_items_to_receive(self, db_session, shop_a, purchase_order):
        receive_service.receive_stock(
            shop_id=shop_a.id, purchase_order_id=purchase_order.id, items=[receive_line(purchase_order, 2)]
        )
        pending = receive_service.get_items_to_receive(shop_a.id, purchase_order.id)
        assert len(pending) == 1
        assert pending[0]["pendingQuantity"] == 1
        assert pending[0]["receivedQuantity"] == 2
