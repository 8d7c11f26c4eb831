# Overview: Service-layer operations for suppliers; encapsulates business logic and database work.

from __future__ import annotations

from sqlalchemy import func, or_

from ..extensions import db
from ..models import Supplier
from . import audit_service
from .tenant_service import get_owned, scoped_query

SUPPLIER_MUTABLE_FIELDS = {
    "name", "contact_person", "phone", "email", "address", "city", "gst_number", "is_active",
}


def list_suppliers(shop_id: int, *, search: str | None = None, is_active: bool | None = None):
    query = scoped_query(Supplier, shop_id)
    if search:
        like = f"%{search.lower()}%"
        query = query.filter(or_(
            func.lower(Supplier.name).like(like),
            func.lower(Supplier.contact_person).like(like),
            Supplier.phone.like(f"%{search}%"),
        ))
    if is_active is not None:
        query = query.filter(Supplier.is_active.is_(is_active))
    return query.order_by(Supplier.name.asc(), Supplier.id.asc())


def get_supplier(shop_id: int, supplier_id: int) -> Supplier:
    return get_owned(Supplier, supplier_id, shop_id)


def create_supplier(*, shop_id: int, patch: dict, user_id: int | None = None) -> Supplier:
    supplier = Supplier(shop_id=shop_id)
    for k, v in patch.items():
        if k in SUPPLIER_MUTABLE_FIELDS:
            setattr(supplier, k, v)
    db.session.add(supplier)
    db.session.flush()
    audit_service.record(
        shop_id=shop_id,
        user_id=user_id,
        action="CREATE",
        module="SUPPLIERS",
        entity_type="Supplier",
        entity_id=supplier.id,
        after=supplier.to_dict(),
    )
    db.session.commit()
    return supplier


def update_supplier(*, shop_id: int, supplier_id: int, patch: dict, user_id: int | None = None) -> Supplier:
    supplier = get_owned(Supplier, supplier_id, shop_id)
    before = supplier.to_dict()
    for k, v in patch.items():
        if k in SUPPLIER_MUTABLE_FIELDS:
            setattr(supplier, k, v)
    audit_service.record(
        shop_id=shop_id,
        user_id=user_id,
        action="UPDATE",
        module="SUPPLIERS",
        entity_type="Supplier",
        entity_id=supplier.id,
        before=before,
        after=supplier.to_dict(),
    )
    db.session.commit()
    return supplier
