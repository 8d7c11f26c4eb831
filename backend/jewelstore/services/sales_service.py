# Overview: Sales orders (invoices) over tagged stock items.

"""
Sales Order Service

LIFECYCLE:
- create (createAsPending=True):  order PENDING,   stock AVAILABLE -> RESERVED
- create (default):               order COMPLETED, stock AVAILABLE -> SOLD
- complete:                       PENDING -> COMPLETED, stock RESERVED -> SOLD
- cancel:                         PENDING/COMPLETED -> CANCELLED, stock -> AVAILABLE

Every completion writes one INCOME / SALES Transaction for final_amount.

PRICING: each line is priced when the order is created. A product price
override wins; otherwise the price is computed from the product and the
shop's current rate for its metal and purity. The stock item's stored
selling price is the fallback when no rate exists.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Customer, SalesOrder, SalesOrderLine, StockItem, Transaction
from ..money import ZERO, round_money, to_decimal
from ..time_utils import utcnow
from . import audit_service, transaction_service
from .concurrency import lock_for_update, run_with_retry
from .document_service import DOC_INVOICE, next_document_number
from .payment_service import PAYMENT_METHODS, apply_payment, payment_status_for
from .pricing import calculate_discount, price_for_product
from .rate_service import get_current_rate
from .tenant_service import NotFoundError, ensure_shop_access, get_owned, scoped_query


ORDER_PENDING = "PENDING"
ORDER_COMPLETED = "COMPLETED"
ORDER_CANCELLED = "CANCELLED"
ORDER_STATUSES = (ORDER_PENDING, ORDER_COMPLETED, ORDER_CANCELLED)

ORDER_TYPES = ("RETAIL", "WHOLESALE", "CUSTOM", "EXCHANGE")

STOCK_AVAILABLE = "AVAILABLE"
STOCK_RESERVED = "RESERVED"
STOCK_SOLD = "SOLD"


class SalesOrderError(Exception):
    """Raised for sales order business rule violations."""
    pass


def _load_stock_item(shop_id: int, line: dict) -> StockItem:
    stock_item_id = line.get("stockItemId")
    tag_id = line.get("tagId")
    if stock_item_id is None and not tag_id:
        raise SalesOrderError("Each line needs a stockItemId or tagId")

    query = db.session.query(StockItem)
    if stock_item_id is not None:
        query = query.filter(StockItem.id == stock_item_id)
    else:
        query = query.filter(StockItem.shop_id == shop_id, StockItem.tag_id == tag_id)
    item = lock_for_update(query).first()
    if item is None:
        raise NotFoundError("StockItem", stock_item_id if stock_item_id is not None else tag_id)
    ensure_shop_access(item, shop_id)
    if item.status != STOCK_AVAILABLE:
        raise SalesOrderError(f"Stock item {item.tag_id} is not available (status: {item.status})")
    return item


def _unit_price(shop_id: int, item: StockItem):
    product = item.product
    if product.price_override is not None:
        return round_money(product.price_override)
    rate = get_current_rate(shop_id, product.metal_type, product.purity)
    if rate is not None:
        return price_for_product(product, rate).total_price
    if item.selling_price is not None and to_decimal(item.selling_price) > ZERO:
        return round_money(item.selling_price)
    raise SalesOrderError(f"No current rate for {product.metal_type} {product.purity}; cannot price {item.tag_id}")


def _write_income(order: SalesOrder) -> Transaction:
    return transaction_service.add_entry(
        shop_id=order.shop_id,
        transaction_date=order.completed_at or utcnow(),
        transaction_type="INCOME",
        amount=order.final_amount,
        payment_mode=order.payment_method,
        category="SALES",
        description=f"Sale {order.invoice_number}",
        reference_number=order.invoice_number,
        customer_id=order.customer_id,
        sales_order_id=order.id,
    )


def create_sales_order(
    *,
    shop_id: int,
    lines: list[dict],
    customer_id: int | None = None,
    discount_amount=None,
    discount_percent=None,
    payment_method: str | None = None,
    payment_amount=None,
    payment_reference: str | None = None,
    order_type: str = "RETAIL",
    create_as_pending: bool = False,
    notes: str | None = None,
    user_id: int | None = None,
) -> SalesOrder:
    """
    Create an invoice over one or more stock items.

    lines: [{"stockItemId"?: int, "tagId"?: str}]
    """
    if not lines:
        raise SalesOrderError("At least one line is required")
    if order_type not in ORDER_TYPES:
        raise SalesOrderError(f"orderType must be one of {', '.join(ORDER_TYPES)}")
    if payment_method is not None and payment_method not in PAYMENT_METHODS:
        raise SalesOrderError(f"paymentMethod must be one of {', '.join(PAYMENT_METHODS)}")
    if customer_id is not None:
        get_owned(Customer, customer_id, shop_id)

    def _op() -> SalesOrder:
        now = utcnow()
        order = SalesOrder(
            shop_id=shop_id,
            invoice_number=next_document_number(shop_id=shop_id, document_type=DOC_INVOICE),
            customer_id=customer_id,
            payment_method=payment_method,
            order_type=order_type,
            notes=notes,
            order_date=now,
            created_by_user_id=user_id,
            paid_amount=ZERO,
        )

        seen: set[int] = set()
        total = ZERO
        for raw in lines:
            item = _load_stock_item(shop_id, raw)
            if item.id in seen:
                raise SalesOrderError(f"Stock item {item.tag_id} appears more than once")
            seen.add(item.id)

            price = _unit_price(shop_id, item)
            order.lines.append(SalesOrderLine(
                stock_item_id=item.id,
                quantity=1,
                unit_price=price,
                line_total=price,
            ))
            total += price

            if create_as_pending:
                item.status = STOCK_RESERVED
            else:
                item.status = STOCK_SOLD
                item.sale_date = now

        total = round_money(total)
        discount = calculate_discount(total, discount_percent=discount_percent, discount_amount=discount_amount)
        if discount < 0:
            raise SalesOrderError("Discount must be >= 0")
        if discount > total:
            raise SalesOrderError("Discount cannot exceed the order total")

        order.order_total = total
        order.discount_amount = discount
        order.final_amount = round_money(total - discount)
        order.payment_status = payment_status_for(order.final_amount, ZERO)

        if create_as_pending:
            order.status = ORDER_PENDING
        else:
            order.status = ORDER_COMPLETED
            order.completed_at = now

        db.session.add(order)
        db.session.flush()

        if payment_amount is not None and to_decimal(payment_amount) > ZERO:
            if to_decimal(payment_amount) > order.final_amount:
                raise SalesOrderError("paymentAmount cannot exceed the final amount")
            apply_payment(
                order,
                amount=payment_amount,
                payment_method=payment_method or "CASH",
                reference_number=payment_reference,
                user_id=user_id,
            )

        if order.status == ORDER_COMPLETED:
            _write_income(order)

        audit_service.record(
            shop_id=shop_id,
            user_id=user_id,
            action="CREATE",
            module="SALES",
            entity_type="SalesOrder",
            entity_id=order.id,
            after={
                "invoiceNumber": order.invoice_number,
                "status": order.status,
                "finalAmount": str(order.final_amount),
                "stockItemIds": sorted(seen),
            },
        )
        db.session.commit()
        return order

    order = run_with_retry(_op)
    current_app.logger.info(
        "Sales order created: shop=%s invoice=%s status=%s final=%s",
        shop_id, order.invoice_number, order.status, order.final_amount,
    )
    return order


def get_sales_order(shop_id: int, sales_order_id: int) -> SalesOrder:
    return get_owned(SalesOrder, sales_order_id, shop_id)


def list_sales_orders(
    shop_id: int,
    *,
    status: str | None = None,
    payment_status: str | None = None,
    customer_id: int | None = None,
    search: str | None = None,
    date_from=None,
    date_to=None,
):
    query = scoped_query(SalesOrder, shop_id)
    if status:
        query = query.filter(SalesOrder.status == status)
    if payment_status:
        query = query.filter(SalesOrder.payment_status == payment_status)
    if customer_id is not None:
        query = query.filter(SalesOrder.customer_id == customer_id)
    if search:
        query = query.filter(SalesOrder.invoice_number.contains(search))
    if date_from is not None:
        query = query.filter(SalesOrder.order_date >= date_from)
    if date_to is not None:
        query = query.filter(SalesOrder.order_date <= date_to)
    return query.order_by(SalesOrder.order_date.desc(), SalesOrder.id.desc())


def complete_sales_order(*, shop_id: int, sales_order_id: int, user_id: int | None = None) -> SalesOrder:
    def _op() -> SalesOrder:
        order = get_owned(SalesOrder, sales_order_id, shop_id, lock=True)
        if order.status != ORDER_PENDING:
            raise SalesOrderError(f"Only PENDING orders can be completed (status: {order.status})")

        now = utcnow()
        for line in order.lines:
            item = line.stock_item
            if item.status != STOCK_RESERVED:
                raise SalesOrderError(f"Stock item {item.tag_id} is not reserved (status: {item.status})")
            item.status = STOCK_SOLD
            item.sale_date = now

        order.status = ORDER_COMPLETED
        order.completed_at = now
        _write_income(order)

        audit_service.record(
            shop_id=shop_id,
            user_id=user_id,
            action="UPDATE",
            module="SALES",
            entity_type="SalesOrder",
            entity_id=order.id,
            before={"status": ORDER_PENDING},
            after={"status": ORDER_COMPLETED},
        )
        db.session.commit()
        return order

    order = run_with_retry(_op)
    current_app.logger.info("Sales order completed: shop=%s invoice=%s", shop_id, order.invoice_number)
    return order


def cancel_sales_order(
    *, shop_id: int, sales_order_id: int, reason: str | None = None, user_id: int | None = None
) -> SalesOrder:
    """Cancel an order and put its stock back on the shelf."""
    def _op() -> SalesOrder:
        order = get_owned(SalesOrder, sales_order_id, shop_id, lock=True)
        if order.status == ORDER_CANCELLED:
            raise SalesOrderError("Order is already cancelled")

        before_status = order.status
        for line in order.lines:
            item = line.stock_item
            item.status = STOCK_AVAILABLE
            item.sale_date = None

        db.session.query(Transaction).filter(
            Transaction.sales_order_id == order.id,
            Transaction.status == "COMPLETED",
        ).update({Transaction.status: "CANCELLED"}, synchronize_session=False)

        order.status = ORDER_CANCELLED
        order.cancelled_at = utcnow()
        order.cancellation_reason = reason

        audit_service.record(
            shop_id=shop_id,
            user_id=user_id,
            action="CANCEL",
            module="SALES",
            entity_type="SalesOrder",
            entity_id=order.id,
            before={"status": before_status},
            after={"status": ORDER_CANCELLED},
            note=reason,
        )
        db.session.commit()
        return order

    order = run_with_retry(_op)
    current_app.logger.info("Sales order cancelled: shop=%s invoice=%s", shop_id, order.invoice_number)
    return order
