# Overview: Platform-level shop management (SUPER_ADMIN only).

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Shop
from ..validation import ConflictError
from . import audit_service
from .session_service import revoke_user_sessions

SHOP_MUTABLE_FIELDS = {
    "name", "owner_name", "phone", "email", "address", "city", "gst_number", "is_active",
}


def list_shops(*, include_inactive: bool = True):
    query = db.session.query(Shop).filter(Shop.deleted_at.is_(None))
    if not include_inactive:
        query = query.filter(Shop.is_active.is_(True))
    return query.order_by(Shop.id.asc())


def get_shop(shop_id: int) -> Shop | None:
    shop = db.session.get(Shop, shop_id)
    if shop is None or shop.deleted_at is not None:
        return None
    return shop


def create_shop(*, name: str, code: str, user_id: int | None = None, **fields) -> Shop:
    code = code.strip().upper()
    if db.session.query(Shop.id).filter(Shop.code == code).first() is not None:
        raise ConflictError(f"Shop code {code} already exists")

    shop = Shop(name=name.strip(), code=code, is_active=True)
    for k, v in fields.items():
        if k in SHOP_MUTABLE_FIELDS:
            setattr(shop, k, v)
    db.session.add(shop)
    db.session.flush()
    audit_service.record(
        shop_id=shop.id,
        user_id=user_id,
        action="CREATE",
        module="SHOPS",
        entity_type="Shop",
        entity_id=shop.id,
        after=shop.to_dict(),
    )
    db.session.commit()
    current_app.logger.info("Shop created: id=%s code=%s", shop.id, shop.code)
    return shop


def update_shop(shop: Shop, patch: dict, *, user_id: int | None = None) -> Shop:
    """
    Apply a patch to a shop.

    Deactivating a shop revokes the sessions of all its users.
    """
    before = shop.to_dict()
    was_active = shop.is_active
    for k, v in patch.items():
        if k in SHOP_MUTABLE_FIELDS:
            setattr(shop, k, v)

    if was_active and not shop.is_active:
        for user in shop.users:
            revoke_user_sessions(user.id, "Shop deactivated")

    audit_service.record(
        shop_id=shop.id,
        user_id=user_id,
        action="UPDATE",
        module="SHOPS",
        entity_type="Shop",
        entity_id=shop.id,
        before=before,
        after=shop.to_dict(),
    )
    db.session.commit()
    return shop
