"""
Multi-Tenant Service: Shop Ownership and Scoping Helpers

Centralizes the tenant checks every service runs before reading or writing
shop-owned rows.

SECURITY INVARIANTS:
1. Every authenticated shop user request has g.shop_id set
2. IDs from client input are resolved through get_owned(), which checks shop_id
3. Listing queries go through scoped_query() so they always filter by shop_id

USAGE:
    from jewelstore.services.tenant_service import get_owned, scoped_query

    product = get_owned(Product, product_id, shop_id)
    query = scoped_query(Product, shop_id).filter(Product.is_active.is_(True))
"""

from ..extensions import db
from ..models import Shop


class TenantAccessError(Exception):
    """Raised when a row belongs to a different shop, or no shop context exists."""
    pass


class NotFoundError(Exception):
    """Raised when a shop-owned row does not exist."""

    def __init__(self, entity: str, entity_id=None):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found")


def require_shop(shop_id: int) -> Shop:
    shop = db.session.get(Shop, shop_id)
    if shop is None or shop.deleted_at is not None:
        raise NotFoundError("Shop", shop_id)
    return shop


def ensure_shop_access(row, shop_id: int) -> None:
    """Raise TenantAccessError when a loaded row belongs to another shop."""
    if shop_id is None:
        raise TenantAccessError("Unauthorized: No shop context available")
    if row.shop_id != shop_id:
        raise TenantAccessError("Unauthorized: Resource does not belong to your shop")


def get_owned(model, entity_id: int, shop_id: int, *, include_deleted: bool = False, lock: bool = False):
    """
    Load a shop-owned row by primary key.

    Raises NotFoundError when missing (or soft-deleted) and
    TenantAccessError when the row belongs to another shop.
    """
    query = db.session.query(model).filter(model.id == entity_id)
    if lock:
        query = query.with_for_update()
    row = query.first()
    if row is None:
        raise NotFoundError(model.__name__, entity_id)
    ensure_shop_access(row, shop_id)
    if not include_deleted and getattr(row, "deleted_at", None) is not None:
        raise NotFoundError(model.__name__, entity_id)
    return row


def scoped_query(model, shop_id: int, *, include_deleted: bool = False):
    """
    Create a query filtered to a single shop.

    Soft-deleted rows are excluded unless include_deleted is set.
    """
    if shop_id is None:
        raise TenantAccessError("Unauthorized: No shop context available")
    query = db.session.query(model).filter(model.shop_id == shop_id)
    if not include_deleted and hasattr(model, "deleted_at"):
        query = query.filter(model.deleted_at.is_(None))
    return query
