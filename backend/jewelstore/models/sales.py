from __future__ import annotations

from ..extensions import db
from ..money import as_float
from ..time_utils import to_utc_z


class SalesOrder(db.Model):
    """
    Customer invoice.

    STATUS: PENDING (stock RESERVED) -> COMPLETED (stock SOLD), or CANCELLED
    (stock back to AVAILABLE).

    PAYMENT: paid_amount is the running sum of SalesPayment rows and never
    exceeds final_amount. payment_status is PENDING, PARTIAL or PAID.
    """
    __tablename__ = "sales_orders"
    __table_args__ = (
        db.UniqueConstraint("shop_id", "invoice_number", name="uq_sales_orders_shop_invoice"),
        db.Index("ix_sales_orders_shop_status_date", "shop_id", "status", "order_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)
    invoice_number = db.Column(db.String(64), nullable=False)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)

    order_total = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    discount_amount = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    final_amount = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    paid_amount = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    payment_method = db.Column(db.String(32), nullable=True)
    order_type = db.Column(db.String(16), nullable=False, default="RETAIL")
    status = db.Column(db.String(16), nullable=False, default="PENDING", index=True)
    payment_status = db.Column(db.String(16), nullable=False, default="PENDING")

    notes = db.Column(db.Text, nullable=True)
    order_date = db.Column(db.DateTime(timezone=True), nullable=False)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancellation_reason = db.Column(db.String(255), nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    shop = db.relationship("Shop", backref=db.backref("sales_orders", lazy=True))
    customer = db.relationship("Customer", backref=db.backref("sales_orders", lazy=True))
    lines = db.relationship(
        "SalesOrderLine",
        backref="sales_order",
        lazy=True,
        order_by="SalesOrderLine.id",
        cascade="all, delete-orphan",
    )
    payments = db.relationship(
        "SalesPayment",
        backref="sales_order",
        lazy=True,
        order_by="SalesPayment.id",
        cascade="all, delete-orphan",
    )
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def pending_amount(self):
        return self.final_amount - self.paid_amount

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "shopId": self.shop_id,
            "invoiceNumber": self.invoice_number,
            "customerId": self.customer_id,
            "customerName": self.customer.name if self.customer else None,
            "orderTotal": as_float(self.order_total),
            "discountAmount": as_float(self.discount_amount),
            "finalAmount": as_float(self.final_amount),
            "paidAmount": as_float(self.paid_amount),
            "pendingAmount": as_float(self.pending_amount),
            "paymentMethod": self.payment_method,
            "orderType": self.order_type,
            "status": self.status,
            "paymentStatus": self.payment_status,
            "notes": self.notes,
            "orderDate": to_utc_z(self.order_date),
            "completedAt": to_utc_z(self.completed_at),
            "cancelledAt": to_utc_z(self.cancelled_at),
            "cancellationReason": self.cancellation_reason,
            "versionId": self.version_id,
            "createdAt": to_utc_z(self.created_at),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
            data["payments"] = [payment.to_dict() for payment in self.payments]
        return data


class SalesOrderLine(db.Model):
    __tablename__ = "sales_order_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sales_order_id = db.Column(db.Integer, db.ForeignKey("sales_orders.id"), nullable=False, index=True)
    stock_item_id = db.Column(db.Integer, db.ForeignKey("stock_items.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False, default=1)
    unit_price = db.Column(db.Numeric(14, 2), nullable=False)
    line_total = db.Column(db.Numeric(14, 2), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    stock_item = db.relationship("StockItem", backref=db.backref("sales_order_lines", lazy=True))

    def to_dict(self) -> dict:
        item = self.stock_item
        return {
            "id": self.id,
            "salesOrderId": self.sales_order_id,
            "purchaseOrderId": self.purchase_order_id,
            "stockItemId": self.stock_item_id,
            "tagId": item.tag_id if item else None,
            "productId": item.product_id if item else None,
            "productName": item.product.name if item and item.product else None,
            "quantity": self.quantity,
            "unitPrice": as_float(self.unit_price),
            "lineTotal": as_float(self.line_total),
        }


class SalesPayment(db.Model):
    """Immutable payment record against a sales order."""
    __tablename__ = "sales_payments"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sales_order_id = db.Column(db.Integer, db.ForeignKey("sales_orders.id"), nullable=False, index=True)

    amount = db.Column(db.Numeric(14, 2), nullable=False)
    payment_method = db.Column(db.String(32), nullable=False)  # CASH, UPI, CARD, BANK_TRANSFER, CREDIT, EMI
    payment_date = db.Column(db.DateTime(timezone=True), nullable=False)
    reference_number = db.Column(db.String(64), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    recorded_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "salesOrderId": self.sales_order_id,
            "amount": as_float(self.amount),
            "paymentMethod": self.payment_method,
            "paymentDate": to_utc_z(self.payment_date),
            "referenceNumber": self.reference_number,
            "notes": self.notes,
            "recordedByUserId": self.recorded_by_user_id,
        }


class Transaction(db.Model):
    """
    Cash-book entry.

    Completed sales write an INCOME / SALES row and purchase order payments an
    EXPENSE / PURCHASE row. Manual entries carry any other category. Rows are
    never deleted; voiding sets status CANCELLED.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_shop_date", "shop_id", "transaction_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)

    transaction_date = db.Column(db.DateTime(timezone=True), nullable=False)
    transaction_type = db.Column(db.String(16), nullable=False, index=True)  # INCOME, EXPENSE, ...
    amount = db.Column(db.Numeric(14, 2), nullable=False)
    payment_mode = db.Column(db.String(32), nullable=True)
    category = db.Column(db.String(32), nullable=False)  # SALES, PURCHASE, ...
    description = db.Column(db.String(255), nullable=True)
    reference_number = db.Column(db.String(64), nullable=True)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True)
    sales_order_id = db.Column(db.Integer, db.ForeignKey("sales_orders.id"), nullable=True, index=True)
    purchase_order_id = db.Column(db.Integer, db.ForeignKey("purchase_orders.id"), nullable=True, index=True)

    status = db.Column(db.String(16), nullable=False, default="COMPLETED")
    currency = db.Column(db.String(8), nullable=False, default="INR")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shopId": self.shop_id,
            "transactionDate": to_utc_z(self.transaction_date),
            "transactionType": self.transaction_type,
            "amount": as_float(self.amount),
            "paymentMode": self.payment_mode,
            "category": self.category,
            "description": self.description,
            "referenceNumber": self.reference_number,
            "customerId": self.customer_id,
            "salesOrderId": self.sales_order_id,
            "status": self.status,
            "currency": self.currency,
        }
