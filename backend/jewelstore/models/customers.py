from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, to_iso_date


class Customer(db.Model):
    """
    Shop customer.

    Phone is unique within a shop. Deleting a customer is a soft delete
    (deleted_at) so past invoices keep their customer.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.UniqueConstraint("shop_id", "phone", name="uq_customers_shop_phone"),
        db.Index("ix_customers_shop_name", "shop_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    whatsapp = db.Column(db.String(32), nullable=True)
    address = db.Column(db.Text, nullable=True)
    city = db.Column(db.String(128), nullable=True)
    date_of_birth = db.Column(db.Date, nullable=True)
    anniversary_date = db.Column(db.Date, nullable=True)

    customer_type = db.Column(db.String(16), nullable=False, default="RETAIL")  # RETAIL, WHOLESALE, VIP
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    shop = db.relationship("Shop", backref=db.backref("customers", lazy=True))
    family_members = db.relationship(
        "FamilyMember",
        backref="customer",
        lazy=True,
        order_by="FamilyMember.id",
        cascade="all, delete-orphan",
    )

    def to_dict(self, include_family: bool = True) -> dict:
        data = {
            "id": self.id,
            "shopId": self.shop_id,
            "name": self.name,
            "phone": self.phone,
            "email": self.email,
            "whatsapp": self.whatsapp,
            "address": self.address,
            "city": self.city,
            "dateOfBirth": to_iso_date(self.date_of_birth),
            "anniversaryDate": to_iso_date(self.anniversary_date),
            "customerType": self.customer_type,
            "isActive": self.is_active,
            "notes": self.notes,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
        if include_family:
            data["familyMembers"] = [m.to_dict() for m in self.family_members]
        return data


class FamilyMember(db.Model):
    __tablename__ = "family_members"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    relation = db.Column(db.String(64), nullable=False)
    date_of_birth = db.Column(db.Date, nullable=True)
    anniversary = db.Column(db.Date, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customerId": self.customer_id,
            "name": self.name,
            "relation": self.relation,
            "dateOfBirth": to_iso_date(self.date_of_birth),
            "anniversary": to_iso_date(self.anniversary),
        }
