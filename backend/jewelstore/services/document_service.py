# Overview: Per-shop sequential numbering for invoices and purchase orders.

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DocumentSequence


DOC_INVOICE = "INVOICE"
DOC_PURCHASE_ORDER = "PURCHASE_ORDER"

DOCUMENT_PREFIXES = {
    DOC_INVOICE: "INV",
    DOC_PURCHASE_ORDER: "PO",
}


class DocumentSequenceError(Exception):
    """Raised when document sequence operations fail."""
    pass


def allocate_sequence_number(*, shop_id: int, document_type: str) -> int:
    """
    Atomically allocate the next number for a shop/type.

    The UPDATE ... SET next_number = next_number + 1 takes the row lock, so
    two transactions can never read the same value. The first allocation
    creates the row; a concurrent first insert loses on the unique
    constraint and falls back to the UPDATE path.

    Must run inside the caller's transaction; does not commit.
    """
    if not shop_id:
        raise DocumentSequenceError("shop_id is required")
    if not document_type:
        raise DocumentSequenceError("document_type is required")

    stmt = (
        update(DocumentSequence)
        .where(
            DocumentSequence.shop_id == shop_id,
            DocumentSequence.document_type == document_type,
        )
        .values(next_number=DocumentSequence.next_number + 1)
        .execution_options(synchronize_session=False)
    )

    result = db.session.execute(stmt)
    if result.rowcount:
        current = (
            db.session.query(DocumentSequence.next_number)
            .filter_by(shop_id=shop_id, document_type=document_type)
            .scalar()
        )
        return current - 1

    try:
        with db.session.begin_nested():
            db.session.add(DocumentSequence(shop_id=shop_id, document_type=document_type, next_number=2))
        return 1
    except IntegrityError:
        result = db.session.execute(stmt)
        if not result.rowcount:
            raise
        current = (
            db.session.query(DocumentSequence.next_number)
            .filter_by(shop_id=shop_id, document_type=document_type)
            .scalar()
        )
        return current - 1


def next_document_number(*, shop_id: int, document_type: str, pad: int = 5) -> str:
    """
    Allocate and format a document number, e.g. INV-001-00042.

    The shop id segment keeps numbers readable when shops are compared side
    by side; uniqueness is per (shop_id, number) in the schema.
    """
    prefix = DOCUMENT_PREFIXES.get(document_type)
    if prefix is None:
        raise DocumentSequenceError(f"Unknown document type: {document_type}")
    number = allocate_sequence_number(shop_id=shop_id, document_type=document_type)
    return f"{prefix}-{shop_id:03d}-{number:0{pad}d}"
