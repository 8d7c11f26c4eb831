from __future__ import annotations

from ..extensions import db
from ..money import as_float
from ..time_utils import to_utc_z


class StockItem(db.Model):
    """
    One physical piece on the shelf.

    Every unit received against a purchase order becomes a StockItem with its
    own tag_id and barcode, both unique within the shop.

    STATUS: AVAILABLE -> RESERVED (pending sale) -> SOLD (completed sale).
    Cancelling the order puts RESERVED or SOLD items back to AVAILABLE.
    """
    __tablename__ = "stock_items"
    __table_args__ = (
        db.UniqueConstraint("shop_id", "tag_id", name="uq_stock_items_shop_tag"),
        db.UniqueConstraint("shop_id", "barcode", name="uq_stock_items_shop_barcode"),
        db.Index("ix_stock_items_shop_status", "shop_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    tag_id = db.Column(db.String(32), nullable=False)
    barcode = db.Column(db.String(64), nullable=False)
    huid = db.Column(db.String(16), nullable=True)

    purchase_cost = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    selling_price = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default="AVAILABLE", index=True)

    purchase_order_id = db.Column(db.Integer, db.ForeignKey("purchase_orders.id"), nullable=True, index=True)
    purchase_date = db.Column(db.DateTime(timezone=True), nullable=True)
    sale_date = db.Column(db.DateTime(timezone=True), nullable=True)

    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    product = db.relationship("Product", backref=db.backref("stock_items", lazy=True))
    purchase_order = db.relationship("PurchaseOrder", backref=db.backref("stock_items", lazy=True))

    def to_dict(self, include_product: bool = False) -> dict:
        data = {
            "id": self.id,
            "shopId": self.shop_id,
            "productId": self.product_id,
            "tagId": self.tag_id,
            "barcode": self.barcode,
            "huid": self.huid,
            "purchaseCost": as_float(self.purchase_cost),
            "sellingPrice": as_float(self.selling_price),
            "status": self.status,
            "purchaseOrderId": self.purchase_order_id,
            "purchaseDate": to_utc_z(self.purchase_date),
            "saleDate": to_utc_z(self.sale_date),
            "notes": self.notes,
            "createdAt": to_utc_z(self.created_at),
        }
        if include_product and self.product is not None:
            data["product"] = {
                "id": self.product.id,
                "name": self.product.name,
                "metalType": self.product.metal_type,
                "purity": self.product.purity,
                "netWeight": as_float(self.product.net_weight),
                "grossWeight": as_float(self.product.gross_weight),
            }
        return data


class TagSequence(db.Model):
    """
    Per-shop counter for stock tag numbers, one row per tag prefix (e.g. "G22").

    Incremented inside the receiving transaction so concurrent receipts
    never hand out the same tag.
    """
    __tablename__ = "tag_sequences"
    __table_args__ = (
        db.UniqueConstraint("shop_id", "prefix", name="uq_tag_sequences_shop_prefix"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)
    prefix = db.Column(db.String(16), nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )


class PurchaseOrder(db.Model):
    """
    Order placed with a supplier.

    STATUS: PENDING -> CONFIRMED -> PARTIAL -> DELIVERED, or CANCELLED / CLOSED.
    PARTIAL and DELIVERED are set by stock receipt, not by hand.
    """
    __tablename__ = "purchase_orders"
    __table_args__ = (
        db.UniqueConstraint("shop_id", "order_number", name="uq_purchase_orders_shop_number"),
        db.Index("ix_purchase_orders_shop_status", "shop_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)
    order_number = db.Column(db.String(64), nullable=False)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)

    order_date = db.Column(db.DateTime(timezone=True), nullable=False)
    expected_delivery_date = db.Column(db.DateTime(timezone=True), nullable=True)
    actual_delivery_date = db.Column(db.DateTime(timezone=True), nullable=True)

    payment_method = db.Column(db.String(32), nullable=True)
    discount_amount = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    total_amount = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    paid_amount = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default="PENDING", index=True)
    payment_status = db.Column(db.String(16), nullable=False, default="PENDING")

    reference_number = db.Column(db.String(64), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    shop = db.relationship("Shop", backref=db.backref("purchase_orders", lazy=True))
    supplier = db.relationship("Supplier", backref=db.backref("purchase_orders", lazy=True))
    items = db.relationship(
        "PurchaseOrderItem",
        backref="purchase_order",
        lazy=True,
        order_by="PurchaseOrderItem.id",
        cascade="all, delete-orphan",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "shopId": self.shop_id,
            "orderNumber": self.order_number,
            "supplierId": self.supplier_id,
            "supplierName": self.supplier.name if self.supplier else None,
            "orderDate": to_utc_z(self.order_date),
            "expectedDeliveryDate": to_utc_z(self.expected_delivery_date),
            "actualDeliveryDate": to_utc_z(self.actual_delivery_date),
            "paymentMethod": self.payment_method,
            "discountAmount": as_float(self.discount_amount),
            "totalAmount": as_float(self.total_amount),
            "paidAmount": as_float(self.paid_amount),
            "status": self.status,
            "paymentStatus": self.payment_status,
            "referenceNumber": self.reference_number,
            "notes": self.notes,
            "versionId": self.version_id,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class PurchaseOrderItem(db.Model):
    __tablename__ = "purchase_order_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    purchase_order_id = db.Column(db.Integer, db.ForeignKey("purchase_orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(14, 2), nullable=False)
    expected_weight = db.Column(db.Numeric(12, 3), nullable=True)
    received_quantity = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product")

    @property
    def pending_quantity(self) -> int:
        return self.quantity - (self.received_quantity or 0)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchaseOrderId": self.purchase_order_id,
            "productId": self.product_id,
            "productName": self.product.name if self.product else None,
            "quantity": self.quantity,
            "unitPrice": as_float(self.unit_price),
            "expectedWeight": as_float(self.expected_weight),
            "receivedQuantity": self.received_quantity,
            "pendingQuantity": self.pending_quantity,
        }
