# Overview: Service-layer operations for the metal rate master; encapsulates business logic and database work.

"""
Rate Master Service

A RateMaster row is the price per gram of one metal at one purity, for one
shop. Rates are never edited in place to change history: a new rate is a new
row with a later effective_date.

CURRENT RATE as of T: active, effective_date <= T, valid_until NULL or >= T;
the latest effective_date wins (ties: highest id).

Creating an active rate deactivates the same shop's other active rates for
that metal/purity whose effective_date is not later than the new one, so a
rate scheduled for next week does not switch off today's rate.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal

from flask import current_app
from sqlalchemy import or_

from ..extensions import db
from ..models import Product, RateMaster
from ..money import round_money
from ..time_utils import utcnow
from . import audit_service
from .tenant_service import get_owned, scoped_query


METAL_TYPES = ("GOLD", "SILVER", "PLATINUM")
RATE_SOURCES = ("MARKET", "MANUAL", "API")

RATE_MUTABLE_FIELDS = {
    "metal_type",
    "purity",
    "rate_per_gram",
    "effective_date",
    "valid_until",
    "rate_source",
    "is_active",
    "default_making_charge_percent",
}


class RateError(Exception):
    """Raised for rate master business rule violations."""
    pass


def _current_filter(query, as_of: datetime):
    return query.filter(
        RateMaster.is_active.is_(True),
        RateMaster.effective_date <= as_of,
        or_(RateMaster.valid_until.is_(None), RateMaster.valid_until >= as_of),
    )


def get_current_rate(shop_id: int, metal_type: str, purity: str, as_of: datetime | None = None) -> RateMaster | None:
    """Most recent valid rate for (metal_type, purity) as of ``as_of`` (default now)."""
    as_of = as_of or utcnow()
    query = scoped_query(RateMaster, shop_id).filter(
        RateMaster.metal_type == metal_type,
        RateMaster.purity == purity,
    )
    return (
        _current_filter(query, as_of)
        .order_by(RateMaster.effective_date.desc(), RateMaster.id.desc())
        .first()
    )


def get_all_current_rates(shop_id: int, as_of: datetime | None = None) -> list[RateMaster]:
    """One current rate per (metal_type, purity), ordered by metal then purity."""
    as_of = as_of or utcnow()
    rows = (
        _current_filter(scoped_query(RateMaster, shop_id), as_of)
        .order_by(
            RateMaster.metal_type.asc(),
            RateMaster.purity.asc(),
            RateMaster.effective_date.desc(),
            RateMaster.id.desc(),
        )
        .all()
    )
    seen: dict[tuple[str, str], RateMaster] = {}
    for rate in rows:
        seen.setdefault((rate.metal_type, rate.purity), rate)
    return list(seen.values())


def get_rate(shop_id: int, rate_id: int) -> RateMaster:
    return get_owned(RateMaster, rate_id, shop_id)


def list_rates(shop_id: int, *, metal_type: str | None = None, purity: str | None = None,
               is_active: bool | None = None, rate_source: str | None = None):
    """Filtered query of a shop's rates, newest effective_date first."""
    query = scoped_query(RateMaster, shop_id)
    if metal_type:
        query = query.filter(RateMaster.metal_type == metal_type)
    if purity:
        query = query.filter(RateMaster.purity == purity)
    if is_active is not None:
        query = query.filter(RateMaster.is_active.is_(is_active))
    if rate_source:
        query = query.filter(RateMaster.rate_source == rate_source)
    return query.order_by(RateMaster.effective_date.desc(), RateMaster.id.desc())


def rate_history(shop_id: int, metal_type: str, purity: str):
    """Every rate ever set for a metal/purity, newest first."""
    return list_rates(shop_id, metal_type=metal_type, purity=purity)


def _deactivate_siblings(rate: RateMaster) -> int:
    siblings = (
        scoped_query(RateMaster, rate.shop_id)
        .filter(
            RateMaster.metal_type == rate.metal_type,
            RateMaster.purity == rate.purity,
            RateMaster.is_active.is_(True),
            RateMaster.effective_date <= rate.effective_date,
        )
    )
    if rate.id is not None:
        siblings = siblings.filter(RateMaster.id != rate.id)
    count = 0
    for sibling in siblings.all():
        sibling.is_active = False
        count += 1
    return count


def _check_window(rate: RateMaster) -> None:
    if rate.valid_until is not None and rate.valid_until <= rate.effective_date:
        raise RateError("validUntil must be after effectiveDate")


def create_rate(
    shop_id: int,
    patch: dict,
    *,
    created_by: str | None = None,
    user_id: int | None = None,
    deactivate_previous: bool = True,
) -> RateMaster:
    """
    Create a rate from a validated patch.

    effective_date defaults to now and is_active to True.
    """
    rate = RateMaster(shop_id=shop_id)
    for k, v in patch.items():
        if k in RATE_MUTABLE_FIELDS:
            setattr(rate, k, v)
    if rate.effective_date is None:
        rate.effective_date = utcnow()
    if rate.is_active is None:
        rate.is_active = True
    if rate.rate_source is None:
        rate.rate_source = "MANUAL"
    rate.rate_per_gram = round_money(rate.rate_per_gram)
    rate.created_by = created_by
    _check_window(rate)

    if rate.is_active and deactivate_previous:
        _deactivate_siblings(rate)

    db.session.add(rate)
    db.session.flush()
    audit_service.record(
        shop_id=shop_id,
        user_id=user_id,
        action="CREATE",
        module="RATE_MASTER",
        entity_type="RateMaster",
        entity_id=rate.id,
        after=rate.to_dict(),
    )
    db.session.commit()
    current_app.logger.info(
        "Rate set: shop=%s %s %s = %s/g", shop_id, rate.metal_type, rate.purity, rate.rate_per_gram
    )
    return rate


def update_rate(shop_id: int, rate_id: int, patch: dict, *, updated_by: str | None = None,
                user_id: int | None = None) -> RateMaster:
    """Apply a validated patch. Activating a rate deactivates its older siblings."""
    rate = get_owned(RateMaster, rate_id, shop_id)
    before = rate.to_dict()
    was_active = rate.is_active

    for k, v in patch.items():
        if k in RATE_MUTABLE_FIELDS:
            setattr(rate, k, v)
    if "rate_per_gram" in patch:
        rate.rate_per_gram = round_money(rate.rate_per_gram)
    rate.updated_by = updated_by
    _check_window(rate)

    if rate.is_active and not was_active:
        _deactivate_siblings(rate)

    audit_service.record(
        shop_id=shop_id,
        user_id=user_id,
        action="UPDATE",
        module="RATE_MASTER",
        entity_type="RateMaster",
        entity_id=rate.id,
        before=before,
        after=rate.to_dict(),
    )
    db.session.commit()
    return rate


def delete_rate(shop_id: int, rate_id: int, *, user_id: int | None = None) -> None:
    """Delete a rate that no product was priced from; otherwise deactivate it."""
    rate = get_owned(RateMaster, rate_id, shop_id)
    before = rate.to_dict()
    in_use = db.session.query(Product.id).filter(Product.rate_used_id == rate.id).first() is not None
    if in_use:
        rate.is_active = False
        action = "DEACTIVATE"
    else:
        db.session.delete(rate)
        action = "DELETE"
    audit_service.record(
        shop_id=shop_id,
        user_id=user_id,
        action=action,
        module="RATE_MASTER",
        entity_type="RateMaster",
        entity_id=rate_id,
        before=before,
    )
    db.session.commit()


def is_rate_valid(rate: RateMaster | None, as_of: datetime | None = None) -> bool:
    if rate is None or not rate.is_active:
        return False
    as_of = as_of or utcnow()
    if rate.effective_date > as_of:
        return False
    if rate.valid_until is not None and rate.valid_until < as_of:
        return False
    return True


def rates_expiring_soon(shop_id: int, days: int = 7, as_of: datetime | None = None) -> list[RateMaster]:
    """Active rates whose valid_until falls within the next ``days`` days."""
    now = as_of or utcnow()
    horizon = now + timedelta(days=days)
    return (
        scoped_query(RateMaster, shop_id)
        .filter(
            RateMaster.is_active.is_(True),
            RateMaster.valid_until.isnot(None),
            RateMaster.valid_until >= now,
            RateMaster.valid_until <= horizon,
        )
        .order_by(RateMaster.valid_until.asc())
        .all()
    )


def distinct_purities(shop_id: int, metal_type: str) -> list[str]:
    rows = (
        db.session.query(RateMaster.purity)
        .filter(RateMaster.shop_id == shop_id, RateMaster.metal_type == metal_type)
        .distinct()
        .order_by(RateMaster.purity.asc())
        .all()
    )
    return [r[0] for r in rows]


def rate_statistics(shop_id: int, metal_type: str, purity: str,
                    start: datetime | None = None, end: datetime | None = None) -> dict | None:
    """
    Summary of rate movement over [start, end] by effective_date.

    Defaults to the last 30 days. Returns None when no rate falls in range.
    """
    end = end or utcnow()
    start = start or (end - timedelta(days=30))

    rates = (
        scoped_query(RateMaster, shop_id)
        .filter(
            RateMaster.metal_type == metal_type,
            RateMaster.purity == purity,
            RateMaster.effective_date >= start,
            RateMaster.effective_date <= end,
        )
        .order_by(RateMaster.effective_date.asc(), RateMaster.id.asc())
        .all()
    )
    if not rates:
        return None

    values = [Decimal(r.rate_per_gram) for r in rates]
    first, last = values[0], values[-1]
    change = last - first
    change_percent = (change / first * 100) if first else Decimal("0")

    return {
        "metalType": metal_type,
        "purity": purity,
        "count": len(values),
        "minRate": float(min(values)),
        "maxRate": float(max(values)),
        "avgRate": float(round_money(sum(values) / len(values))),
        "firstRate": float(first),
        "lastRate": float(last),
        "change": float(round_money(change)),
        "changePercent": float(round_money(change_percent)),
        "rates": [{"date": r.to_dict()["effectiveDate"], "rate": float(r.rate_per_gram)} for r in rates],
    }
