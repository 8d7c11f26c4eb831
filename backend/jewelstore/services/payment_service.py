# Overview: Payments against sales orders; keeps paid_amount and payment_status in step.

"""
Payment Service

RULES:
- amount must be > 0
- no payments on CANCELLED orders
- no payments once the order is fully paid
- amount may not exceed final_amount - paid_amount

paid_amount and payment_status change in the same transaction as the
SalesPayment insert, with the order row locked.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..models import SalesOrder, SalesPayment
from ..money import ZERO, as_float, round_money, to_decimal
from ..time_utils import utcnow
from . import audit_service
from .concurrency import run_with_retry
from .tenant_service import get_owned


PAYMENT_METHODS = ("CASH", "UPI", "CARD", "BANK_TRANSFER", "CREDIT", "EMI")

PAYMENT_PENDING = "PENDING"
PAYMENT_PARTIAL = "PARTIAL"
PAYMENT_PAID = "PAID"


class PaymentError(Exception):
    """Raised when a payment breaks a payment rule."""
    pass


def payment_status_for(final_amount, paid_amount) -> str:
    """Nothing is owed on a zero-value order, so it is PAID from the start."""
    final = to_decimal(final_amount)
    paid = to_decimal(paid_amount)
    if final <= ZERO or paid >= final:
        return PAYMENT_PAID
    if paid <= ZERO:
        return PAYMENT_PENDING
    return PAYMENT_PARTIAL


def apply_payment(
    order: SalesOrder,
    *,
    amount,
    payment_method: str,
    reference_number: str | None = None,
    notes: str | None = None,
    payment_date: datetime | None = None,
    user_id: int | None = None,
) -> SalesPayment:
    """
    Validate and attach a payment to an order already loaded in the session.

    Does not commit.
    """
    amount = round_money(to_decimal(amount))
    if amount <= ZERO:
        raise PaymentError("Payment amount must be greater than 0")
    if payment_method not in PAYMENT_METHODS:
        raise PaymentError(f"paymentMethod must be one of {', '.join(PAYMENT_METHODS)}")
    if order.status == "CANCELLED":
        raise PaymentError("Cannot record payment for a cancelled order")

    paid = to_decimal(order.paid_amount)
    final = to_decimal(order.final_amount)
    if paid >= final:
        raise PaymentError("Order is already fully paid")

    pending = final - paid
    if amount > pending:
        raise PaymentError(f"Payment amount ({amount}) exceeds pending amount ({pending})")

    payment = SalesPayment(
        amount=amount,
        payment_method=payment_method,
        payment_date=payment_date or utcnow(),
        reference_number=reference_number,
        notes=notes,
        recorded_by_user_id=user_id,
    )
    order.payments.append(payment)
    order.paid_amount = round_money(paid + amount)
    order.payment_status = payment_status_for(final, order.paid_amount)
    return payment


def record_payment(
    *,
    shop_id: int,
    sales_order_id: int,
    amount,
    payment_method: str,
    reference_number: str | None = None,
    notes: str | None = None,
    payment_date: datetime | None = None,
    user_id: int | None = None,
) -> tuple[SalesPayment, SalesOrder]:
    """Record one payment; returns (payment, order)."""
    def _op():
        order = get_owned(SalesOrder, sales_order_id, shop_id, lock=True)
        before = {"paidAmount": str(order.paid_amount), "paymentStatus": order.payment_status}
        payment = apply_payment(
            order,
            amount=amount,
            payment_method=payment_method,
            reference_number=reference_number,
            notes=notes,
            payment_date=payment_date,
            user_id=user_id,
        )
        db.session.flush()
        audit_service.record(
            shop_id=shop_id,
            user_id=user_id,
            action="PAYMENT",
            module="SALES",
            entity_type="SalesOrder",
            entity_id=order.id,
            before=before,
            after={
                "paymentId": payment.id,
                "amount": str(payment.amount),
                "paidAmount": str(order.paid_amount),
                "paymentStatus": order.payment_status,
            },
        )
        db.session.commit()
        return payment, order

    payment, order = run_with_retry(_op)
    current_app.logger.info(
        "Payment recorded: shop=%s invoice=%s amount=%s status=%s",
        shop_id, order.invoice_number, payment.amount, order.payment_status,
    )
    return payment, order


def payment_summary(order: SalesOrder) -> dict:
    total_paid = sum((to_decimal(p.amount) for p in order.payments), Decimal("0"))
    return {
        "finalAmount": as_float(order.final_amount),
        "paidAmount": as_float(order.paid_amount),
        "pendingAmount": as_float(order.pending_amount),
        "paymentStatus": order.payment_status,
        "paymentCount": len(order.payments),
        "totalRecorded": as_float(total_paid),
    }


def list_payments(shop_id: int, sales_order_id: int) -> dict:
    order = get_owned(SalesOrder, sales_order_id, shop_id)
    return {
        "salesOrderId": order.id,
        "invoiceNumber": order.invoice_number,
        "payments": [p.to_dict() for p in order.payments],
        "summary": payment_summary(order),
    }
