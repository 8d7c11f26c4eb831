# Overview: Customers and their family members (birthdays and anniversaries for reminders).

from __future__ import annotations

from sqlalchemy import func, or_

from ..extensions import db
from ..models import Customer, FamilyMember
from ..time_utils import utcnow
from ..validation import ConflictError
from . import audit_service
from .tenant_service import NotFoundError, get_owned, scoped_query

CUSTOMER_MUTABLE_FIELDS = {
    "name", "phone", "email", "whatsapp", "address", "city", "date_of_birth",
    "anniversary_date", "customer_type", "is_active", "notes",
}

FAMILY_MEMBER_FIELDS = {"name", "relation", "date_of_birth", "anniversary"}


class CustomerError(Exception):
    """Raised for customer business rule violations."""
    pass


def _check_phone_unique(shop_id: int, phone: str | None, exclude_id: int | None = None) -> None:
    if not phone:
        return
    query = db.session.query(Customer.id).filter(
        Customer.shop_id == shop_id,
        Customer.phone == phone,
    )
    if exclude_id is not None:
        query = query.filter(Customer.id != exclude_id)
    if query.first() is not None:
        raise ConflictError(f"Customer with phone {phone} already exists")


def _build_member(raw: dict) -> FamilyMember:
    if not raw.get("name") or not raw.get("relation"):
        raise CustomerError("Family member name and relation are required")
    member = FamilyMember()
    for k, v in raw.items():
        if k in FAMILY_MEMBER_FIELDS:
            setattr(member, k, v)
    return member


def list_customers(shop_id: int, *, search: str | None = None, customer_type: str | None = None,
                   is_active: bool | None = None):
    query = scoped_query(Customer, shop_id)
    if search:
        like = f"%{search.lower()}%"
        query = query.filter(or_(
            func.lower(Customer.name).like(like),
            Customer.phone.like(f"%{search}%"),
            func.lower(Customer.email).like(like),
        ))
    if customer_type:
        query = query.filter(Customer.customer_type == customer_type)
    if is_active is not None:
        query = query.filter(Customer.is_active.is_(is_active))
    return query.order_by(Customer.name.asc(), Customer.id.asc())


def get_customer(shop_id: int, customer_id: int) -> Customer:
    return get_owned(Customer, customer_id, shop_id)


def create_customer(*, shop_id: int, patch: dict, family_members: list[dict] | None = None,
                    user_id: int | None = None) -> Customer:
    """
    Create a customer, optionally with family members.

    Raises ConflictError when the phone number is already used in the shop.
    """
    _check_phone_unique(shop_id, patch.get("phone"))

    customer = Customer(shop_id=shop_id)
    for k, v in patch.items():
        if k in CUSTOMER_MUTABLE_FIELDS:
            setattr(customer, k, v)
    for raw in family_members or []:
        customer.family_members.append(_build_member(raw))

    db.session.add(customer)
    db.session.flush()
    audit_service.record(
        shop_id=shop_id,
        user_id=user_id,
        action="CREATE",
        module="CUSTOMERS",
        entity_type="Customer",
        entity_id=customer.id,
        after=customer.to_dict(include_family=False),
    )
    db.session.commit()
    return customer


def update_customer(*, shop_id: int, customer_id: int, patch: dict, user_id: int | None = None) -> Customer:
    customer = get_owned(Customer, customer_id, shop_id)
    if "phone" in patch:
        _check_phone_unique(shop_id, patch["phone"], exclude_id=customer.id)

    before = customer.to_dict(include_family=False)
    for k, v in patch.items():
        if k in CUSTOMER_MUTABLE_FIELDS:
            setattr(customer, k, v)

    audit_service.record(
        shop_id=shop_id,
        user_id=user_id,
        action="UPDATE",
        module="CUSTOMERS",
        entity_type="Customer",
        entity_id=customer.id,
        before=before,
        after=customer.to_dict(include_family=False),
    )
    db.session.commit()
    return customer


def delete_customer(*, shop_id: int, customer_id: int, user_id: int | None = None) -> None:
    customer = get_owned(Customer, customer_id, shop_id)
    customer.deleted_at = utcnow()
    customer.is_active = False
    audit_service.record(
        shop_id=shop_id,
        user_id=user_id,
        action="DELETE",
        module="CUSTOMERS",
        entity_type="Customer",
        entity_id=customer.id,
    )
    db.session.commit()


def add_family_member(*, shop_id: int, customer_id: int, member: dict, user_id: int | None = None) -> FamilyMember:
    customer = get_owned(Customer, customer_id, shop_id)
    row = _build_member(member)
    customer.family_members.append(row)
    db.session.flush()
    audit_service.record(
        shop_id=shop_id,
        user_id=user_id,
        action="CREATE",
        module="CUSTOMERS",
        entity_type="FamilyMember",
        entity_id=row.id,
        after=row.to_dict(),
    )
    db.session.commit()
    return row


def remove_family_member(*, shop_id: int, customer_id: int, member_id: int, user_id: int | None = None) -> None:
    customer = get_owned(Customer, customer_id, shop_id)
    member = next((m for m in customer.family_members if m.id == member_id), None)
    if member is None:
        raise NotFoundError("FamilyMember", member_id)
    customer.family_members.remove(member)
    audit_service.record(
        shop_id=shop_id,
        user_id=user_id,
        action="DELETE",
        module="CUSTOMERS",
        entity_type="FamilyMember",
        entity_id=member_id,
    )
    db.session.commit()
