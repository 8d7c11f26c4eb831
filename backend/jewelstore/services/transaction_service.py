# Overview: The shop cash book: listing, totals, manual entries and voiding.

"""
Cash book.

Rows come from three places:
- completed sales (INCOME / SALES, written by sales_service)
- purchase order payments (EXPENSE / PURCHASE, written by purchase_order_service)
- manual entries (rent, salaries, old-gold buy-back, ...)

Rows are never deleted. Voiding sets status CANCELLED, and totals only count
COMPLETED rows. Rows tied to an order follow that order and cannot be voided
by hand.
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Customer, Transaction
from ..money import ZERO, as_float, round_money, to_decimal
from ..time_utils import utcnow
from . import audit_service
from .payment_service import PAYMENT_METHODS
from .tenant_service import get_owned, scoped_query

TYPE_INCOME = "INCOME"
TYPE_EXPENSE = "EXPENSE"
TRANSACTION_TYPES = (TYPE_INCOME, TYPE_EXPENSE)

STATUS_COMPLETED = "COMPLETED"
STATUS_CANCELLED = "CANCELLED"


class TransactionError(Exception):
    """Raised when a cash-book entry breaks a cash-book rule."""
    pass


def add_entry(
    *,
    shop_id: int,
    transaction_type: str,
    amount,
    category: str,
    payment_mode: str | None = None,
    description: str | None = None,
    reference_number: str | None = None,
    transaction_date: datetime | None = None,
    customer_id: int | None = None,
    sales_order_id: int | None = None,
    purchase_order_id: int | None = None,
) -> Transaction:
    """
    Validate and add one COMPLETED row to the session.

    Does not commit; callers own the transaction.
    """
    if transaction_type not in TRANSACTION_TYPES:
        raise TransactionError(f"transactionType must be one of {', '.join(TRANSACTION_TYPES)}")
    amount = round_money(to_decimal(amount))
    if amount < ZERO:
        raise TransactionError("Amount must be >= 0")
    if not category:
        raise TransactionError("category is required")
    if payment_mode is not None and payment_mode not in PAYMENT_METHODS:
        raise TransactionError(f"paymentMode must be one of {', '.join(PAYMENT_METHODS)}")

    txn = Transaction(
        shop_id=shop_id,
        transaction_date=transaction_date or utcnow(),
        transaction_type=transaction_type,
        amount=amount,
        payment_mode=payment_mode,
        category=category.upper(),
        description=description,
        reference_number=reference_number,
        customer_id=customer_id,
        sales_order_id=sales_order_id,
        purchase_order_id=purchase_order_id,
        status=STATUS_COMPLETED,
        currency=current_app.config.get("DEFAULT_CURRENCY", "INR"),
    )
    db.session.add(txn)
    return txn


def create_transaction(*, shop_id: int, user_id: int | None = None, **fields) -> Transaction:
    """Manual cash-book entry. Amount must be strictly positive."""
    if to_decimal(fields.get("amount")) <= ZERO:
        raise TransactionError("Amount must be greater than 0")
    if fields.get("customer_id") is not None:
        get_owned(Customer, fields["customer_id"], shop_id)
    txn = add_entry(shop_id=shop_id, **fields)
    db.session.flush()
    audit_service.record(
        shop_id=shop_id,
        user_id=user_id,
        action="CREATE",
        module="TRANSACTIONS",
        entity_type="Transaction",
        entity_id=txn.id,
        after=txn.to_dict(),
    )
    db.session.commit()
    current_app.logger.info(
        "Cash-book entry created: shop=%s id=%s type=%s amount=%s",
        shop_id, txn.id, txn.transaction_type, txn.amount,
    )
    return txn


def void_transaction(
    *, shop_id: int, transaction_id: int, reason: str | None = None, user_id: int | None = None
) -> Transaction:
    txn = get_owned(Transaction, transaction_id, shop_id)
    if txn.status == STATUS_CANCELLED:
        raise TransactionError("Transaction is already cancelled")
    if txn.sales_order_id is not None or txn.purchase_order_id is not None:
        raise TransactionError("Order-linked transactions follow their order and cannot be voided by hand")

    txn.status = STATUS_CANCELLED
    audit_service.record(
        shop_id=shop_id,
        user_id=user_id,
        action="VOID",
        module="TRANSACTIONS",
        entity_type="Transaction",
        entity_id=txn.id,
        before={"status": STATUS_COMPLETED},
        after={"status": STATUS_CANCELLED},
        note=reason,
    )
    db.session.commit()
    current_app.logger.info("Cash-book entry voided: shop=%s id=%s", shop_id, txn.id)
    return txn


def list_transactions(
    shop_id: int,
    *,
    transaction_type: str | None = None,
    category: str | None = None,
    status: str | None = None,
    date_from=None,
    date_to=None,
):
    query = scoped_query(Transaction, shop_id)
    if transaction_type:
        query = query.filter(Transaction.transaction_type == transaction_type)
    if category:
        query = query.filter(Transaction.category == category)
    if status:
        query = query.filter(Transaction.status == status)
    if date_from is not None:
        query = query.filter(Transaction.transaction_date >= date_from)
    if date_to is not None:
        query = query.filter(Transaction.transaction_date <= date_to)
    return query.order_by(Transaction.transaction_date.desc(), Transaction.id.desc())


def totals_by_type(shop_id: int, *, date_from=None, date_to=None) -> dict:
    """Sum of COMPLETED transaction amounts per transaction_type."""
    query = (
        db.session.query(Transaction.transaction_type, func.coalesce(func.sum(Transaction.amount), ZERO))
        .filter(Transaction.shop_id == shop_id, Transaction.status == STATUS_COMPLETED)
    )
    if date_from is not None:
        query = query.filter(Transaction.transaction_date >= date_from)
    if date_to is not None:
        query = query.filter(Transaction.transaction_date <= date_to)
    return {t: as_float(total) for t, total in query.group_by(Transaction.transaction_type).all()}
