# Overview: Tag ID and barcode generation for received stock items.

"""
Stock identifiers.

TAG ID: <metal code><purity digits>-<sequence>, e.g. G22-000001
- metal code: G (gold), S (silver), P (platinum), X otherwise
- purity digits: the digits of the purity label ("22K" -> 22, "925" -> 925)
- sequence: per shop and tag prefix ("G22"), from a TagSequence counter row.
  Purity labels that reduce to the same digits ("22K", "22") share a counter.

BARCODE: STK-<product id, 6 digits>-<tag sequence, 6 digits>

Sequences are allocated inside the receiving transaction with an atomic
UPDATE, and (shop_id, tag_id) / (shop_id, barcode) are unique in the schema,
so a lost race fails the transaction instead of duplicating a tag.
"""

from __future__ import annotations

import re

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import TagSequence

METAL_CODES = {
    "GOLD": "G",
    "SILVER": "S",
    "PLATINUM": "P",
}

TAG_PATTERN = re.compile(r"^[GSPX]\d{1,4}-\d{6,}$")
BARCODE_PATTERN = re.compile(r"^STK-\d{6,}-\d{6,}$")


def metal_code(metal_type: str) -> str:
    return METAL_CODES.get((metal_type or "").upper(), "X")


def purity_digits(purity: str) -> str:
    digits = re.sub(r"\D", "", purity or "")
    return digits or "00"


def tag_prefix(metal_type: str, purity: str) -> str:
    return f"{metal_code(metal_type)}{purity_digits(purity)}"


def allocate_tag_numbers(*, shop_id: int, prefix: str, count: int) -> list[int]:
    """
    Reserve ``count`` consecutive tag numbers for (shop, tag prefix).

    Must run inside the caller's transaction; does not commit.
    """
    if count <= 0:
        return []

    stmt = (
        update(TagSequence)
        .where(
            TagSequence.shop_id == shop_id,
            TagSequence.prefix == prefix,
        )
        .values(next_number=TagSequence.next_number + count)
        .execution_options(synchronize_session=False)
    )

    def _read_next() -> int:
        return (
            db.session.query(TagSequence.next_number)
            .filter_by(shop_id=shop_id, prefix=prefix)
            .scalar()
        )

    result = db.session.execute(stmt)
    if result.rowcount:
        end = _read_next()
        return list(range(end - count, end))

    try:
        with db.session.begin_nested():
            db.session.add(TagSequence(
                shop_id=shop_id,
                prefix=prefix,
                next_number=count + 1,
            ))
        return list(range(1, count + 1))
    except IntegrityError:
        result = db.session.execute(stmt)
        if not result.rowcount:
            raise
        end = _read_next()
        return list(range(end - count, end))


def format_tag_id(metal_type: str, purity: str, number: int) -> str:
    return f"{tag_prefix(metal_type, purity)}-{number:06d}"


def format_barcode(product_id: int, number: int) -> str:
    return f"STK-{product_id:06d}-{number:06d}"


def generate_identifiers(*, shop_id: int, product, count: int) -> list[tuple[str, str]]:
    """Allocate (tag_id, barcode) pairs for ``count`` units of a product."""
    numbers = allocate_tag_numbers(
        shop_id=shop_id,
        prefix=tag_prefix(product.metal_type, product.purity),
        count=count,
    )
    return [
        (format_tag_id(product.metal_type, product.purity, n), format_barcode(product.id, n))
        for n in numbers
    ]


def validate_tag_id(tag_id: str) -> bool:
    return bool(tag_id) and bool(TAG_PATTERN.match(tag_id))


def validate_barcode(barcode: str) -> bool:
    return bool(barcode) and bool(BARCODE_PATTERN.match(barcode))
