# Overview: Flask API routes for purchase orders and stock receipt.

"""
Purchase order routes.

POST /<id>/receive-stock turns ordered units into tagged stock items. The
body carries one entry per PO line being received:

    {
      "items": [{
        "purchaseOrderItemId": 1,
        "productId": 5,
        "quantityToReceive": 2,
        "receiptDetails": [{"purchaseCost": 52000, "sellingPrice": 61000, "huid": "AB12CD"}]
      }],
      "receivedBy": "Ravi",
      "singleProductMode": false
    }
"""

from flask import Blueprint, g, request

from .. import responses
from ..decorators import require_auth, require_permission
from ..services import purchase_order_service, receive_service
from ..services.purchase_order_service import PO_STATUSES, PurchaseOrderError
from ..services.receive_service import ReceiveValidationError
from ..services.tenant_service import NotFoundError, TenantAccessError
from ..time_utils import parse_iso_datetime
from ..validation import ValidationError, parse_decimal_field, parse_int_field, require_fields

purchase_orders_bp = Blueprint("purchase_orders", __name__, url_prefix="/api/purchase-orders")


def _parse_items(raw_items) -> list[dict]:
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("items must be a non-empty list", field_name="items")

    items = []
    errors = []
    for i, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            errors.append({"field": f"items[{i}]", "message": "must be an object"})
            continue
        try:
            items.append({
                "product_id": parse_int_field(raw, "productId", required=True),
                "quantity": parse_int_field(raw, "quantity", required=True),
                "unit_price": parse_decimal_field(raw, "unitPrice", required=True, minimum=0),
                "expected_weight": parse_decimal_field(raw, "expectedWeight", minimum=0),
            })
        except ValidationError as e:
            errors.extend({"field": f"items[{i}].{err['field']}", "message": err["message"]} for err in e.errors)
    if errors:
        raise ValidationError("Validation failed", errors=errors)
    return items


def _parse_date(payload: dict, name: str):
    raw = payload.get(name)
    if not raw:
        return None
    try:
        return parse_iso_datetime(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an ISO-8601 datetime", field_name=name)


@purchase_orders_bp.get("")
@require_auth
@require_permission("PURCHASE_VIEW")
def list_purchase_orders_route():
    """Query params: status, supplierId, search, page, pageSize"""
    page, page_size = responses.get_pagination_args()
    try:
        query = purchase_order_service.list_purchase_orders(
            g.shop_id,
            status=request.args.get("status"),
            supplier_id=request.args.get("supplierId", type=int),
            search=request.args.get("search"),
        )
        rows, meta = responses.paginate_query(query, page, page_size)
    except TenantAccessError as e:
        return responses.error(str(e), 403, code="FORBIDDEN")
    except Exception:
        return responses.server_error("Failed to list purchase orders")

    return responses.success([po.to_dict(include_items=False) for po in rows], meta=meta)


@purchase_orders_bp.post("")
@require_auth
@require_permission("PURCHASE_CREATE")
def create_purchase_order_route():
    payload = request.get_json(silent=True) or {}
    try:
        require_fields(payload, "supplierId", "items")
        po = purchase_order_service.create_purchase_order(
            shop_id=g.shop_id,
            supplier_id=parse_int_field(payload, "supplierId", required=True),
            items=_parse_items(payload.get("items")),
            order_date=_parse_date(payload, "orderDate"),
            expected_delivery_date=_parse_date(payload, "expectedDeliveryDate"),
            payment_method=payload.get("paymentMethod"),
            discount_amount=parse_decimal_field(payload, "discountAmount", minimum=0),
            reference_number=payload.get("referenceNumber"),
            notes=payload.get("notes"),
            user_id=g.current_user.id,
        )
    except ValidationError as e:
        return responses.error(str(e), 400, code="VALIDATION_ERROR", errors=e.errors)
    except PurchaseOrderError as e:
        return responses.error(str(e), 400, code="VALIDATION_ERROR")
    except NotFoundError as e:
        return responses.error(str(e), 404, code="NOT_FOUND")
    except TenantAccessError as e:
        return responses.error(str(e), 403, code="FORBIDDEN")
    except Exception:
        return responses.server_error("Failed to create purchase order")

    return responses.success(po.to_dict(), 201)


@purchase_orders_bp.get("/pending")
@require_auth
@require_permission("PURCHASE_VIEW")
def pending_purchase_orders_route():
    """Orders that can still receive stock."""
    try:
        orders = purchase_order_service.list_pending_orders(g.shop_id)
    except TenantAccessError as e:
        return responses.error(str(e), 403, code="FORBIDDEN")

    return responses.success([po.to_dict() for po in orders])


@purchase_orders_bp.get("/<int:purchase_order_id>")
@require_auth
@require_permission("PURCHASE_VIEW")
def get_purchase_order_route(purchase_order_id: int):
    try:
        po = purchase_order_service.get_purchase_order(g.shop_id, purchase_order_id)
    except NotFoundError as e:
        return responses.error(str(e), 404, code="NOT_FOUND")
    except TenantAccessError as e:
        return responses.error(str(e), 403, code="FORBIDDEN")

    data = po.to_dict()
    data["stockItems"] = [s.to_dict() for s in po.stock_items]
    return responses.success(data)


@purchase_orders_bp.patch("/<int:purchase_order_id>/status")
@require_auth
@require_permission("PURCHASE_EDIT")
def update_purchase_order_status_route(purchase_order_id: int):
    payload = request.get_json(silent=True) or {}
    status = payload.get("status")
    if status not in PO_STATUSES:
        return responses.error(
            f"status must be one of: {', '.join(PO_STATUSES)}", 400, code="VALIDATION_ERROR",
            errors=[{"field": "status", "message": "invalid status"}],
        )

    try:
        po = purchase_order_service.update_status(
            shop_id=g.shop_id, purchase_order_id=purchase_order_id, status=status, user_id=g.current_user.id
        )
    except PurchaseOrderError as e:
        return responses.error(str(e), 400, code="VALIDATION_ERROR")
    except NotFoundError as e:
        return responses.error(str(e), 404, code="NOT_FOUND")
    except TenantAccessError as e:
        return responses.error(str(e), 403, code="FORBIDDEN")
    except Exception:
        return responses.server_error("Failed to update purchase order status")

    return responses.success(po.to_dict())


@purchase_orders_bp.post("/<int:purchase_order_id>/payments")
@require_auth
@require_permission("PURCHASE_EDIT")
def record_purchase_payment_route(purchase_order_id: int):
    """Body: {amount, paymentMethod, referenceNumber?, notes?, paymentDate?}"""
    payload = request.get_json(silent=True) or {}
    try:
        amount = parse_decimal_field(payload, "amount", required=True, strictly_positive=True)
        method = payload.get("paymentMethod")
        if not method:
            raise ValidationError("paymentMethod is required", field_name="paymentMethod")
        po = purchase_order_service.record_payment(
            shop_id=g.shop_id,
            purchase_order_id=purchase_order_id,
            amount=amount,
            payment_method=method,
            reference_number=payload.get("referenceNumber"),
            notes=payload.get("notes"),
            payment_date=_parse_date(payload, "paymentDate"),
            user_id=g.current_user.id,
        )
    except ValidationError as e:
        return responses.error(str(e), 400, code="VALIDATION_ERROR", errors=e.errors)
    except PurchaseOrderError as e:
        return responses.error(str(e), 400, code="VALIDATION_ERROR")
    except NotFoundError as e:
        return responses.error(str(e), 404, code="NOT_FOUND")
    except TenantAccessError as e:
        return responses.error(str(e), 403, code="FORBIDDEN")
    except Exception:
        return responses.server_error("Failed to record purchase payment")

    return responses.success(po.to_dict(include_items=False), 201)


@purchase_orders_bp.delete("/<int:purchase_order_id>")
@require_auth
@require_permission("PURCHASE_DELETE")
def delete_purchase_order_route(purchase_order_id: int):
    try:
        purchase_order_service.delete_purchase_order(
            shop_id=g.shop_id, purchase_order_id=purchase_order_id, user_id=g.current_user.id
        )
    except PurchaseOrderError as e:
        return responses.error(str(e), 400, code="VALIDATION_ERROR")
    except NotFoundError as e:
        return responses.error(str(e), 404, code="NOT_FOUND")
    except TenantAccessError as e:
        return responses.error(str(e), 403, code="FORBIDDEN")
    except Exception:
        return responses.server_error("Failed to delete purchase order")

    return responses.success({"id": purchase_order_id, "deleted": True})


@purchase_orders_bp.get("/<int:purchase_order_id>/receive-stock")
@require_auth
@require_permission("PURCHASE_VIEW")
def items_to_receive_route(purchase_order_id: int):
    try:
        items = receive_service.get_items_to_receive(g.shop_id, purchase_order_id)
    except NotFoundError as e:
        return responses.error(str(e), 404, code="NOT_FOUND")
    except TenantAccessError as e:
        return responses.error(str(e), 403, code="FORBIDDEN")

    return responses.success({"purchaseOrderId": purchase_order_id, "items": items})


@purchase_orders_bp.post("/<int:purchase_order_id>/receive-stock")
@require_auth
@require_permission("STOCK_MANAGE")
def receive_stock_route(purchase_order_id: int):
    payload = request.get_json(silent=True) or {}
    items = payload.get("items")
    if items is not None and not isinstance(items, list):
        return responses.error("items must be a list", 400, code="VALIDATION_ERROR")

    try:
        result = receive_service.receive_stock(
            shop_id=g.shop_id,
            purchase_order_id=purchase_order_id,
            items=items or [],
            received_by=payload.get("receivedBy"),
            single_product_mode=payload.get("singleProductMode") is True,
            user_id=g.current_user.id,
        )
    except ReceiveValidationError as e:
        return responses.error(str(e), 400, code="VALIDATION_ERROR")
    except NotFoundError as e:
        return responses.error(str(e), 404, code="NOT_FOUND")
    except TenantAccessError as e:
        return responses.error(str(e), 403, code="FORBIDDEN")
    except Exception:
        return responses.server_error("Stock receipt failed")

    return responses.success(result, 201, message="Stock received successfully")
