from __future__ import annotations

from ..extensions import db
from ..money import as_float
from ..time_utils import to_utc_z


class Supplier(db.Model):
    __tablename__ = "suppliers"
    __table_args__ = (
        db.Index("ix_suppliers_shop_active", "shop_id", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    contact_person = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    address = db.Column(db.Text, nullable=True)
    city = db.Column(db.String(128), nullable=True)
    gst_number = db.Column(db.String(32), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    shop = db.relationship("Shop", backref=db.backref("suppliers", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shopId": self.shop_id,
            "name": self.name,
            "contactPerson": self.contact_person,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "city": self.city,
            "gstNumber": self.gst_number,
            "isActive": self.is_active,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class Product(db.Model):
    """
    Catalog entry for a jewelry design.

    Weights are grams. calculated_price is the last price computed from a
    RateMaster row (rate_used_id); price_override, when set, is a manual
    price that bulk rate updates leave alone.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("shop_id", "barcode", name="uq_products_shop_barcode"),
        db.Index("ix_products_shop_metal_purity", "shop_id", "metal_type", "purity"),
        db.Index("ix_products_shop_active", "shop_id", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    metal_type = db.Column(db.String(16), nullable=False)  # GOLD, SILVER, PLATINUM
    purity = db.Column(db.String(16), nullable=False)  # e.g. 22K, 18K, 925

    gross_weight = db.Column(db.Numeric(12, 3), nullable=False)
    net_weight = db.Column(db.Numeric(12, 3), nullable=False)
    wastage_percent = db.Column(db.Numeric(7, 3), nullable=False, default=0)
    making_charges = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    stone_weight = db.Column(db.Numeric(12, 3), nullable=True)
    stone_value = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    stone_description = db.Column(db.String(255), nullable=True)

    barcode = db.Column(db.String(64), nullable=True)
    huid = db.Column(db.String(16), nullable=True)
    tag_number = db.Column(db.String(64), nullable=True)
    hallmark_number = db.Column(db.String(64), nullable=True)
    bis_compliant = db.Column(db.Boolean, nullable=False, default=False)

    collection_name = db.Column(db.String(128), nullable=True, index=True)
    design = db.Column(db.String(128), nullable=True)
    size = db.Column(db.String(32), nullable=True)

    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True, index=True)
    reorder_level = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    is_custom_order = db.Column(db.Boolean, nullable=False, default=False)

    calculated_price = db.Column(db.Numeric(14, 2), nullable=True)
    price_override = db.Column(db.Numeric(14, 2), nullable=True)
    price_override_reason = db.Column(db.String(255), nullable=True)
    last_price_update = db.Column(db.DateTime(timezone=True), nullable=True)
    rate_used_id = db.Column(db.Integer, db.ForeignKey("rate_master.id"), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    shop = db.relationship("Shop", backref=db.backref("products", lazy=True))
    supplier = db.relationship("Supplier", backref=db.backref("products", lazy=True))
    rate_used = db.relationship("RateMaster", foreign_keys=[rate_used_id])
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} shop_id={self.shop_id}>"

    @property
    def selling_price(self):
        """Override wins over the rate-derived price."""
        if self.price_override is not None:
            return self.price_override
        return self.calculated_price

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shopId": self.shop_id,
            "name": self.name,
            "description": self.description,
            "metalType": self.metal_type,
            "purity": self.purity,
            "grossWeight": as_float(self.gross_weight),
            "netWeight": as_float(self.net_weight),
            "wastagePercent": as_float(self.wastage_percent),
            "makingCharges": as_float(self.making_charges),
            "stoneWeight": as_float(self.stone_weight),
            "stoneValue": as_float(self.stone_value),
            "stoneDescription": self.stone_description,
            "barcode": self.barcode,
            "huid": self.huid,
            "tagNumber": self.tag_number,
            "hallmarkNumber": self.hallmark_number,
            "bisCompliant": self.bis_compliant,
            "collectionName": self.collection_name,
            "design": self.design,
            "size": self.size,
            "supplierId": self.supplier_id,
            "reorderLevel": self.reorder_level,
            "isActive": self.is_active,
            "isCustomOrder": self.is_custom_order,
            "calculatedPrice": as_float(self.calculated_price),
            "priceOverride": as_float(self.price_override),
            "priceOverrideReason": self.price_override_reason,
            "sellingPrice": as_float(self.selling_price),
            "lastPriceUpdate": to_utc_z(self.last_price_update),
            "rateUsedId": self.rate_used_id,
            "versionId": self.version_id,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class RateMaster(db.Model):
    """
    Metal rate per gram for a (metal_type, purity) pair, per shop.

    A rate is "current" as of T when it is active, effective_date <= T and
    valid_until is NULL or >= T. The newest effective_date wins.
    """
    __tablename__ = "rate_master"
    __table_args__ = (
        db.Index("ix_rate_master_lookup", "shop_id", "metal_type", "purity", "is_active", "effective_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)

    metal_type = db.Column(db.String(16), nullable=False)
    purity = db.Column(db.String(16), nullable=False)
    rate_per_gram = db.Column(db.Numeric(12, 2), nullable=False)

    effective_date = db.Column(db.DateTime(timezone=True), nullable=False)
    valid_until = db.Column(db.DateTime(timezone=True), nullable=True)

    rate_source = db.Column(db.String(16), nullable=False, default="MANUAL")  # MARKET, MANUAL, API
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    default_making_charge_percent = db.Column(db.Numeric(7, 3), nullable=True)

    created_by = db.Column(db.String(255), nullable=True)
    updated_by = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    shop = db.relationship("Shop", backref=db.backref("rates", lazy=True))

    def __repr__(self) -> str:
        return (
            f"<RateMaster id={self.id} {self.metal_type} {self.purity} "
            f"rate={self.rate_per_gram} shop_id={self.shop_id}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shopId": self.shop_id,
            "metalType": self.metal_type,
            "purity": self.purity,
            "ratePerGram": as_float(self.rate_per_gram),
            "effectiveDate": to_utc_z(self.effective_date),
            "validUntil": to_utc_z(self.valid_until),
            "rateSource": self.rate_source,
            "isActive": self.is_active,
            "defaultMakingChargePercent": as_float(self.default_making_charge_percent),
            "createdBy": self.created_by,
            "updatedBy": self.updated_by,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
