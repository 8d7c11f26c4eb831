# Overview: End-to-end tests for the JSON API through the Flask test client.

import pytest

from jewelstore.models import AuditLog, StockItem

from conftest import PASSWORD, make_product, make_user


class TestEnvelopeAndAuth:
    def test_health_is_public(self, client, db_session):
        response = client.get("/api/system/health")
        assert response.status_code == 200
        assert response.json["success"] is True
        assert response.json["data"]["status"] == "healthy"
        assert response.json["data"]["checks"]["database"]["status"] == "healthy"

    def test_missing_token_is_401(self, client, db_session):
        response = client.get("/api/products")
        assert response.status_code == 401
        assert response.json == {
            "success": False,
            "error": {"message": "Authentication required", "code": "UNAUTHORIZED"},
        }

    def test_unknown_token_is_401(self, client, db_session):
        response = client.get("/api/products", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_login_returns_token_user_and_permissions(self, client, owner_a):
        response = client.post("/api/auth/login", json={"username": "owner_a", "password": PASSWORD})
        assert response.status_code == 200
        data = response.json["data"]
        assert data["token"]
        assert data["user"]["role"] == "OWNER"
        assert data["shop"]["code"] == "LAKSHMI"
        assert "USER_MANAGE" in data["permissions"]

    def test_wrong_password_is_401(self, client, owner_a):
        response = client.post("/api/auth/login", json={"username": "owner_a", "password": "wrong"})
        assert response.status_code == 401
        assert response.json["error"]["message"] == "Invalid username or password"

    def test_login_requires_both_fields(self, client, db_session):
        response = client.post("/api/auth/login", json={"username": "owner_a"})
        assert response.status_code == 400

    def test_inactive_user_cannot_login(self, client, db_session, shop_a):
        make_user(db_session, username="gone", role="SALES", shop=shop_a, is_active=False)
        response = client.post("/api/auth/login", json={"username": "gone", "password": PASSWORD})
        assert response.status_code == 401

    def test_session_and_logout(self, client, login, sales_a):
        headers = login(sales_a)
        response = client.get("/api/auth/session", headers=headers)
        assert response.status_code == 200
        assert response.json["data"]["role"] == "SALES"
        assert "SALES_CREATE" in response.json["data"]["permissions"]

        response = client.post("/api/auth/logout", headers=headers)
        assert response.status_code == 200
        assert client.get("/api/auth/session", headers=headers).status_code == 401

    def test_cors_header_for_allowed_origin(self, client, db_session):
        response = client.get("/api/system/health", headers={"Origin": "http://localhost:3000"})
        assert response.headers["Access-Control-Allow-Origin"] == "http://localhost:3000"

    def test_no_cors_header_for_unknown_origin(self, client, db_session):
        response = client.get("/api/system/health", headers={"Origin": "http://evil.example"})
        assert "Access-Control-Allow-Origin" not in response.headers


class TestPermissions:
    def test_sales_cannot_set_rates(self, client, login, sales_a):
        response = client.post("/api/rate-master", json={
            "metalType": "GOLD", "purity": "22K", "ratePerGram": 6100,
        }, headers=login(sales_a))
        assert response.status_code == 403
        assert response.json["error"]["errors"][0]["message"] == "Requires RATE_MASTER_EDIT"

    def test_sales_cannot_view_purchase_orders(self, client, login, sales_a):
        assert client.get("/api/purchase-orders", headers=login(sales_a)).status_code == 403

    def test_accounts_cannot_create_sales(self, client, login, accounts_a):
        response = client.post("/api/sales-orders", json={"lines": [{"tagId": "G22-000001"}]},
                               headers=login(accounts_a))
        assert response.status_code == 403

    def test_accounts_can_set_rates(self, client, login, accounts_a):
        response = client.post("/api/rate-master", json={
            "metalType": "GOLD", "purity": "22K", "ratePerGram": 6100,
        }, headers=login(accounts_a))
        assert response.status_code == 201
        assert response.json["data"]["ratePerGram"] == 6100.0
        assert response.json["data"]["createdBy"] == "Accounts A"


class TestProducts:
    def test_create_product_is_priced_from_current_rate(self, client, login, owner_a, gold_rate_a):
        response = client.post("/api/products", json={
            "name": "Temple Necklace",
            "metalType": "GOLD",
            "purity": "22K",
            "grossWeight": 12.5,
            "netWeight": 10,
            "wastagePercent": 8,
            "makingCharges": 2500,
            "barcode": "NK-100",
        }, headers=login(owner_a))
        assert response.status_code == 201
        data = response.json["data"]
        assert data["calculatedPrice"] == 67300.0
        assert data["sellingPrice"] == 67300.0

    def test_invalid_payload_lists_every_field(self, client, login, owner_a):
        response = client.post("/api/products", json={
            "name": "Ring",
            "metalType": "COPPER",
            "grossWeight": -1,
            "netWeight": "heavy",
            "secretField": True,
        }, headers=login(owner_a))
        assert response.status_code == 400
        fields = {e["field"] for e in response.json["error"]["errors"]}
        assert {"purity", "metalType", "grossWeight", "netWeight", "secretField"} <= fields

    def test_duplicate_barcode_is_409(self, client, login, owner_a, product_a):
        response = client.post("/api/products", json={
            "name": "Copy", "metalType": "GOLD", "purity": "22K",
            "grossWeight": 5, "netWeight": 4, "barcode": "NK-001",
        }, headers=login(owner_a))
        assert response.status_code == 409
        assert response.json["error"]["code"] == "CONFLICT"

    def test_pagination_meta(self, client, login, owner_a, shop_a, gold_rate_a):
        for i in range(5):
            make_product(shop_a, barcode=f"P-{i}")
        response = client.get("/api/products?page=2&pageSize=2", headers=login(owner_a))
        assert response.status_code == 200
        assert len(response.json["data"]) == 2
        assert response.json["meta"] == {
            "page": 2,
            "pageSize": 2,
            "totalCount": 5,
            "totalPages": 3,
            "hasNextPage": True,
            "hasPreviousPage": True,
        }

    def test_page_size_is_capped(self, client, login, owner_a, product_a):
        response = client.get("/api/products?pageSize=5000", headers=login(owner_a))
        assert response.json["meta"]["pageSize"] == 100


class TestRates:
    def test_current_rate_lookup(self, client, login, sales_a, gold_rate_a):
        response = client.get("/api/rate-master/current?metalType=GOLD&purity=22K", headers=login(sales_a))
        assert response.status_code == 200
        assert response.json["data"]["ratePerGram"] == 6000.0

    def test_current_rate_missing_is_404(self, client, login, sales_a, gold_rate_a):
        response = client.get("/api/rate-master/current?metalType=PLATINUM&purity=950", headers=login(sales_a))
        assert response.status_code == 404

    def test_purities_for_metal(self, client, login, sales_a, gold_rate_a, owner_b):
        response = client.get("/api/rate-master/purities/gold", headers=login(sales_a))
        assert response.status_code == 200
        assert response.json["data"] == {"metalType": "GOLD", "purities": ["22K"]}

        response = client.get("/api/rate-master/purities/GOLD", headers=login(owner_b))
        assert response.json["data"]["purities"] == []

    def test_bulk_update_preview_then_commit(self, client, login, owner_a, product_a, db_session):
        headers = login(owner_a)
        response = client.post("/api/rate-master", json={
            "metalType": "GOLD", "purity": "22K", "ratePerGram": 6500,
        }, headers=headers)
        assert response.status_code == 201
        rate_id = response.json["data"]["id"]

        response = client.post("/api/rate-master/bulk-update-prices", json={
            "rateId": rate_id, "preview": True,
        }, headers=headers)
        assert response.status_code == 200
        assert response.json["data"]["productsToUpdate"] == 1
        assert response.json["data"]["productsUpdated"] == 0
        assert response.json["message"] == "Preview: 1 products would be updated"
        assert client.get(f"/api/products/{product_a.id}", headers=headers).json["data"]["calculatedPrice"] == 67300.0

        response = client.post("/api/rate-master/bulk-update-prices", json={"rateId": rate_id}, headers=headers)
        assert response.status_code == 200
        assert response.json["data"]["productsUpdated"] == 1
        change = response.json["data"]["priceChanges"][0]
        assert change["newPrice"] == 72700.0
        assert client.get(f"/api/products/{product_a.id}", headers=headers).json["data"]["calculatedPrice"] == 72700.0

    def test_bulk_update_requires_rate_id(self, client, login, owner_a):
        response = client.post("/api/rate-master/bulk-update-prices", json={}, headers=login(owner_a))
        assert response.status_code == 400
        assert response.json["error"]["errors"][0]["field"] == "rateId"

    @pytest.mark.parametrize("filters", [
        {"metalType": ["GOLD"]},
        {"purity": 22},
        {"collectionName": {"name": "Bridal"}},
    ])
    def test_bulk_update_filters_must_be_strings(self, client, login, owner_a, gold_rate_a, filters):
        response = client.post("/api/rate-master/bulk-update-prices", json={
            "rateId": gold_rate_a.id, "productFilters": filters,
        }, headers=login(owner_a))
        assert response.status_code == 400
        assert response.json["error"]["errors"][0]["field"].startswith("productFilters.")

    def test_bulk_update_foreign_rate_is_forbidden(self, client, login, owner_b, gold_rate_a):
        response = client.post("/api/rate-master/bulk-update-prices", json={"rateId": gold_rate_a.id},
                               headers=login(owner_b))
        assert response.status_code == 403


class TestPurchaseToSaleFlow:
    def test_order_receive_sell_and_pay(self, client, login, owner_a, product_a, supplier_a, db_session):
        headers = login(owner_a)

        response = client.post("/api/purchase-orders", json={
            "supplierId": supplier_a.id,
            "items": [{"productId": product_a.id, "quantity": 2, "unitPrice": 60000}],
        }, headers=headers)
        assert response.status_code == 201
        po = response.json["data"]
        assert po["orderNumber"].startswith("PO-")
        assert po["totalAmount"] == 120000.0
        po_item_id = po["items"][0]["id"]

        response = client.get(f"/api/purchase-orders/{po['id']}/receive-stock", headers=headers)
        assert response.json["data"]["items"][0]["pendingQuantity"] == 2

        response = client.post(f"/api/purchase-orders/{po['id']}/receive-stock", json={
            "items": [{
                "purchaseOrderItemId": po_item_id,
                "productId": product_a.id,
                "quantityToReceive": 2,
                "receiptDetails": [{"purchaseCost": 60000}],
            }],
            "receivedBy": "Ravi",
        }, headers=headers)
        assert response.status_code == 201
        assert response.json["message"] == "Stock received successfully"
        result = response.json["data"]
        assert result["stockItemsCreated"] == 2
        assert result["purchaseOrder"]["status"] == "DELIVERED"
        tags = [s["tagId"] for s in result["stockItems"]]
        assert tags == ["G22-000001", "G22-000002"]

        response = client.get("/api/stock/tag/G22-000001", headers=headers)
        assert response.status_code == 200
        assert response.json["data"]["status"] == "AVAILABLE"
        assert client.get("/api/stock/tag/NK-001", headers=headers).status_code == 400
        assert client.get("/api/stock/tag/G22-000009", headers=headers).status_code == 404
        response = client.get("/api/stock?status=AVAILABLE&search=g22", headers=headers)
        assert response.json["meta"]["totalCount"] == 2

        response = client.post("/api/sales-orders", json={
            "lines": [{"tagId": "G22-000001"}],
            "paymentMethod": "CASH",
            "paymentAmount": 30000,
        }, headers=headers)
        assert response.status_code == 201
        order = response.json["data"]
        assert order["invoiceNumber"].startswith("INV-")
        assert order["finalAmount"] == 67300.0
        assert order["paymentStatus"] == "PARTIAL"
        assert order["lines"][0]["tagId"] == "G22-000001"

        sold = db_session.query(StockItem).filter_by(tag_id="G22-000001").one()
        assert sold.status == "SOLD"

        response = client.post(f"/api/sales-orders/{order['id']}/payments", json={
            "amount": 37300, "paymentMethod": "UPI",
        }, headers=headers)
        assert response.status_code == 201
        summary = response.json["data"]["summary"]
        assert summary["paymentStatus"] == "PAID"
        assert summary["pendingAmount"] == 0.0
        assert summary["paymentCount"] == 2

        response = client.post(f"/api/sales-orders/{order['id']}/payments", json={
            "amount": 1, "paymentMethod": "CASH",
        }, headers=headers)
        assert response.status_code == 400

        response = client.get(f"/api/sales-orders/{order['id']}/payments", headers=headers)
        assert len(response.json["data"]["payments"]) == 2

        assert db_session.query(AuditLog).filter_by(module="STOCK").count() == 1

    def test_sell_unknown_tag_is_404(self, client, login, sales_a, product_a):
        response = client.post("/api/sales-orders", json={"lines": [{"tagId": "G22-999999"}]},
                               headers=login(sales_a))
        assert response.status_code == 404

    def test_sales_order_lines_validated(self, client, login, sales_a):
        response = client.post("/api/sales-orders", json={"lines": [{}, "x"]}, headers=login(sales_a))
        assert response.status_code == 400
        fields = [e["field"] for e in response.json["error"]["errors"]]
        assert fields == ["lines[0]", "lines[1]"]

    def test_purchase_order_items_validated(self, client, login, owner_a, supplier_a):
        response = client.post("/api/purchase-orders", json={
            "supplierId": supplier_a.id,
            "items": [{"productId": "abc", "quantity": 1}],
        }, headers=login(owner_a))
        assert response.status_code == 400
        fields = {e["field"] for e in response.json["error"]["errors"]}
        assert fields == {"items[0].productId"}


class TestCustomers:
    def test_create_with_family_and_duplicate_phone(self, client, login, sales_a):
        headers = login(sales_a)
        response = client.post("/api/customers", json={
            "name": "Meena Iyer",
            "phone": "9876543210",
            "customerType": "VIP",
            "familyMembers": [{"name": "Arjun Iyer", "relation": "SON"}],
        }, headers=headers)
        assert response.status_code == 201
        data = response.json["data"]
        assert data["customerType"] == "VIP"
        assert [m["name"] for m in data["familyMembers"]] == ["Arjun Iyer"]

        response = client.post("/api/customers", json={"name": "Someone", "phone": "9876543210"},
                               headers=headers)
        assert response.status_code == 409

    def test_customer_search(self, client, login, sales_a):
        headers = login(sales_a)
        client.post("/api/customers", json={"name": "Meena Iyer", "phone": "9876543210"}, headers=headers)
        client.post("/api/customers", json={"name": "Ravi Kumar", "phone": "9123456789"}, headers=headers)
        response = client.get("/api/customers?search=meena", headers=headers)
        assert [c["name"] for c in response.json["data"]] == ["Meena Iyer"]

    def test_unknown_customer_type_rejected(self, client, login, sales_a):
        response = client.post("/api/customers", json={
            "name": "X", "phone": "9000000000", "customerType": "GOLDEN",
        }, headers=login(sales_a))
        assert response.status_code == 400


class TestUsersAndShops:
    def test_owner_creates_sales_user(self, client, login, owner_a, shop_a):
        response = client.post("/api/users", json={
            "username": "new_sales", "password": PASSWORD, "name": "New Sales", "role": "SALES",
        }, headers=login(owner_a))
        assert response.status_code == 201
        assert response.json["data"]["shopId"] == shop_a.id

        response = client.post("/api/auth/login", json={"username": "new_sales", "password": PASSWORD})
        assert response.status_code == 200

    def test_owner_cannot_create_owner(self, client, login, owner_a):
        response = client.post("/api/users", json={
            "username": "second_owner", "password": PASSWORD, "name": "Second", "role": "OWNER",
        }, headers=login(owner_a))
        assert response.status_code == 403

    def test_weak_password_rejected(self, client, login, owner_a):
        response = client.post("/api/users", json={
            "username": "weak", "password": "abc", "name": "Weak", "role": "SALES",
        }, headers=login(owner_a))
        assert response.status_code == 400
        assert response.json["error"]["errors"][0]["field"] == "password"

    def test_duplicate_username_is_409(self, client, login, owner_a, sales_a):
        response = client.post("/api/users", json={
            "username": "sales_a", "password": PASSWORD, "name": "Dup", "role": "SALES",
        }, headers=login(owner_a))
        assert response.status_code == 409

    def test_sales_cannot_manage_users(self, client, login, sales_a):
        assert client.get("/api/users", headers=login(sales_a)).status_code == 403

    def test_super_admin_creates_shop_with_owner(self, client, login, super_admin):
        response = client.post("/api/shops", json={
            "name": "Sri Balaji Jewellers",
            "code": "BALAJI",
            "city": "Chennai",
            "owner": {"username": "balaji_owner", "password": PASSWORD, "name": "Balaji"},
        }, headers=login(super_admin))
        assert response.status_code == 201
        data = response.json["data"]
        assert data["code"] == "BALAJI"
        assert data["owner"]["role"] == "OWNER"
        assert data["owner"]["shopId"] == data["id"]

        response = client.post("/api/auth/login", json={"username": "balaji_owner", "password": PASSWORD})
        assert response.json["data"]["shop"]["code"] == "BALAJI"

    def test_owner_cannot_manage_shops(self, client, login, owner_a):
        assert client.get("/api/shops", headers=login(owner_a)).status_code == 403


class TestAuditLogs:
    def test_owner_reads_audit_trail(self, client, login, owner_a, product_a, owner_b, product_b):
        response = client.get("/api/audit-logs?module=PRODUCTS", headers=login(owner_a))
        assert response.status_code == 200
        entries = response.json["data"]
        assert [e["entityId"] for e in entries] == [product_a.id]
        assert entries[0]["action"] == "CREATE"

    def test_sales_cannot_read_audit_trail(self, client, login, sales_a):
        assert client.get("/api/audit-logs", headers=login(sales_a)).status_code == 403


class TestCashBookRoutes:
    def _purchase_order(self, client, headers, supplier, product):
        response = client.post("/api/purchase-orders", json={
            "supplierId": supplier.id,
            "items": [{"productId": product.id, "quantity": 1, "unitPrice": 50000}],
        }, headers=headers)
        return response.json["data"]

    def test_purchase_payment_books_expense(self, client, login, accounts_a, supplier_a, product_a):
        headers = login(accounts_a)
        po = self._purchase_order(client, headers, supplier_a, product_a)

        response = client.post(f"/api/purchase-orders/{po['id']}/payments", json={
            "amount": 20000, "paymentMethod": "BANK_TRANSFER", "referenceNumber": "NEFT-77",
        }, headers=headers)
        assert response.status_code == 201
        assert response.json["data"]["paidAmount"] == 20000.0
        assert response.json["data"]["paymentStatus"] == "PARTIAL"

        response = client.get("/api/transactions?category=PURCHASE", headers=headers)
        rows = response.json["data"]
        assert [(t["transactionType"], t["amount"], t["purchaseOrderId"]) for t in rows] == [
            ("EXPENSE", 20000.0, po["id"]),
        ]
        assert response.json["meta"]["totals"] == {"EXPENSE": 20000.0}

        response = client.post(f"/api/purchase-orders/{po['id']}/payments", json={
            "amount": 30000.01, "paymentMethod": "CASH",
        }, headers=headers)
        assert response.status_code == 400

    def test_purchase_payment_validated(self, client, login, owner_a, supplier_a, product_a):
        headers = login(owner_a)
        po = self._purchase_order(client, headers, supplier_a, product_a)
        response = client.post(f"/api/purchase-orders/{po['id']}/payments", json={"amount": -1},
                               headers=headers)
        assert response.status_code == 400
        response = client.post("/api/purchase-orders/99999/payments", json={
            "amount": 10, "paymentMethod": "CASH",
        }, headers=headers)
        assert response.status_code == 404

    def test_manual_entry_and_void(self, client, login, accounts_a):
        headers = login(accounts_a)
        response = client.post("/api/transactions", json={
            "transactionType": "EXPENSE", "amount": 8000, "category": "SALARY", "paymentMode": "CASH",
        }, headers=headers)
        assert response.status_code == 201
        txn = response.json["data"]
        assert txn["status"] == "COMPLETED"

        response = client.post(f"/api/transactions/{txn['id']}/void", json={"reason": "Entered twice"},
                               headers=headers)
        assert response.status_code == 200
        assert response.json["data"]["status"] == "CANCELLED"

        response = client.post(f"/api/transactions/{txn['id']}/void", headers=headers)
        assert response.status_code == 400

    def test_manual_entry_validated(self, client, login, owner_a):
        response = client.post("/api/transactions", json={"transactionType": "EXPENSE"}, headers=login(owner_a))
        assert response.status_code == 400
        fields = {e["field"] for e in response.json["error"]["errors"]}
        assert fields == {"amount", "category"}

        response = client.post("/api/transactions", json={
            "transactionType": "GIFT", "amount": 10, "category": "MISC",
        }, headers=login(owner_a))
        assert response.status_code == 400

    def test_sales_cannot_write_cash_book(self, client, login, sales_a):
        response = client.post("/api/transactions", json={
            "transactionType": "INCOME", "amount": 10, "category": "MISC",
        }, headers=login(sales_a))
        assert response.status_code == 403
