# Overview: Tests for shop (tenant) isolation across services and routes.

"""
Every shop-owned row is reachable only from its own shop. Cross-shop ids
answer 403, listings never leak other shops' rows, and a deactivated shop
locks its users out.
"""

import pytest

from jewelstore.models import Product, Supplier
from jewelstore.services.tenant_service import (
    NotFoundError,
    TenantAccessError,
    get_owned,
    scoped_query,
)
from jewelstore.time_utils import utcnow


class TestServiceScoping:
    def test_get_owned_returns_own_row(self, product_a, shop_a):
        assert get_owned(Product, product_a.id, shop_a.id).id == product_a.id

    def test_get_owned_other_shop_raises(self, product_a, shop_b):
        with pytest.raises(TenantAccessError):
            get_owned(Product, product_a.id, shop_b.id)

    def test_get_owned_missing_row_raises_not_found(self, shop_a):
        with pytest.raises(NotFoundError):
            get_owned(Product, 99999, shop_a.id)

    def test_get_owned_without_shop_context_raises(self, product_a):
        with pytest.raises(TenantAccessError):
            get_owned(Product, product_a.id, None)

    def test_scoped_query_filters_by_shop(self, supplier_a, supplier_b, shop_a, shop_b):
        names_a = [s.name for s in scoped_query(Supplier, shop_a.id).all()]
        names_b = [s.name for s in scoped_query(Supplier, shop_b.id).all()]
        assert names_a == ["Kalyan Bullion"]
        assert names_b == ["Mehta Traders"]

    def test_scoped_query_hides_soft_deleted(self, db_session, supplier_a, shop_a):
        supplier_a.deleted_at = utcnow()
        db_session.commit()
        assert scoped_query(Supplier, shop_a.id).count() == 0
        assert scoped_query(Supplier, shop_a.id, include_deleted=True).count() == 1

    def test_scoped_query_requires_shop(self):
        with pytest.raises(TenantAccessError):
            scoped_query(Supplier, None)


class TestApiIsolation:
    def test_product_of_other_shop_is_forbidden(self, client, login, owner_b, product_a):
        headers = login(owner_b)
        response = client.get(f"/api/products/{product_a.id}", headers=headers)
        assert response.status_code == 403
        assert response.json["success"] is False
        assert response.json["error"]["code"] == "FORBIDDEN"

    def test_listing_shows_only_own_shop(self, client, login, owner_a, owner_b, product_a, product_b):
        response = client.get("/api/products", headers=login(owner_a))
        assert response.status_code == 200
        barcodes = [p["barcode"] for p in response.json["data"]]
        assert barcodes == ["NK-001"]

        response = client.get("/api/products", headers=login(owner_b))
        barcodes = [p["barcode"] for p in response.json["data"]]
        assert barcodes == ["AN-001"]

    def test_update_product_of_other_shop_is_forbidden(self, client, login, owner_b, product_a):
        response = client.put(
            f"/api/products/{product_a.id}",
            json={"name": "Hijacked"},
            headers=login(owner_b),
        )
        assert response.status_code == 403
        assert product_a.name == "Temple Necklace"

    def test_purchase_order_with_foreign_supplier_is_forbidden(self, client, login, owner_a, product_a, supplier_b):
        response = client.post("/api/purchase-orders", json={
            "supplierId": supplier_b.id,
            "items": [{"productId": product_a.id, "quantity": 1, "unitPrice": 60000}],
        }, headers=login(owner_a))
        assert response.status_code == 403

    def test_super_admin_has_no_shop_data(self, client, login, super_admin, product_a):
        response = client.get("/api/products", headers=login(super_admin))
        assert response.status_code == 403


class TestShopDeactivation:
    def test_deactivated_shop_blocks_login(self, client, db_session, owner_a, shop_a):
        shop_a.is_active = False
        db_session.commit()

        response = client.post("/api/auth/login", json={"username": "owner_a", "password": "Password123!"})
        assert response.status_code == 401
        assert "deactivated" in response.json["error"]["message"]

    def test_deactivated_shop_invalidates_existing_token(self, client, login, super_admin, owner_a, shop_a):
        owner_headers = login(owner_a)
        assert client.get("/api/auth/session", headers=owner_headers).status_code == 200

        response = client.patch(
            f"/api/shops/{shop_a.id}",
            json={"isActive": False},
            headers=login(super_admin),
        )
        assert response.status_code == 200
        assert response.json["data"]["isActive"] is False

        response = client.get("/api/auth/session", headers=owner_headers)
        assert response.status_code == 401

    def test_other_shop_unaffected(self, client, login, db_session, owner_a, owner_b, shop_a):
        headers_b = login(owner_b)
        shop_a.is_active = False
        db_session.commit()
        assert client.get("/api/auth/session", headers=headers_b).status_code == 200
