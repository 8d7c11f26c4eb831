# Overview: Flask API routes for sales orders (invoices) and their payments.

"""
Sales order routes.

Create body:
    {
      "customerId": 3,
      "lines": [{"stockItemId": 10}, {"tagId": "G22-000004"}],
      "discountAmount": 500,          # or "discountPercent": 2
      "paymentMethod": "UPI",
      "paymentAmount": 20000,         # optional first payment
      "orderType": "RETAIL",
      "createAsPending": false,
      "notes": "..."
    }

createAsPending=true reserves the stock and leaves the order PENDING until
POST /<id>/complete.
"""

from flask import Blueprint, g, request

from .. import responses
from ..decorators import require_auth, require_permission
from ..services import payment_service, sales_service
from ..services.payment_service import PaymentError
from ..services.sales_service import ORDER_STATUSES, SalesOrderError
from ..services.tenant_service import NotFoundError, TenantAccessError
from ..time_utils import parse_iso_datetime
from ..validation import ValidationError, parse_decimal_field, parse_int_field

sales_orders_bp = Blueprint("sales_orders", __name__, url_prefix="/api/sales-orders")


def _parse_lines(raw_lines) -> list[dict]:
    if not isinstance(raw_lines, list) or not raw_lines:
        raise ValidationError("lines must be a non-empty list", field_name="lines")
    lines = []
    errors = []
    for i, raw in enumerate(raw_lines):
        if not isinstance(raw, dict):
            errors.append({"field": f"lines[{i}]", "message": "must be an object"})
            continue
        try:
            stock_item_id = parse_int_field(raw, "stockItemId")
        except ValidationError as e:
            errors.extend({"field": f"lines[{i}].stockItemId", "message": err["message"]} for err in e.errors)
            continue
        tag_id = raw.get("tagId")
        if stock_item_id is None and not tag_id:
            errors.append({"field": f"lines[{i}]", "message": "stockItemId or tagId is required"})
            continue
        lines.append({"stockItemId": stock_item_id, "tagId": tag_id})
    if errors:
        raise ValidationError("Validation failed", errors=errors)
    return lines


@sales_orders_bp.get("")
@require_auth
@require_permission("SALES_VIEW")
def list_sales_orders_route():
    """Query params: status, paymentStatus, customerId, search, dateFrom, dateTo, page, pageSize"""
    status = request.args.get("status")
    if status and status not in ORDER_STATUSES:
        return responses.error(f"status must be one of: {', '.join(ORDER_STATUSES)}", 400, code="VALIDATION_ERROR")

    try:
        date_from = parse_iso_datetime(request.args.get("dateFrom"))
        date_to = parse_iso_datetime(request.args.get("dateTo"))
    except ValueError:
        return responses.error("dateFrom/dateTo must be ISO-8601 datetimes", 400, code="VALIDATION_ERROR")

    page, page_size = responses.get_pagination_args()
    try:
        query = sales_service.list_sales_orders(
            g.shop_id,
            status=status,
            payment_status=request.args.get("paymentStatus"),
            customer_id=request.args.get("customerId", type=int),
            search=request.args.get("search"),
            date_from=date_from,
            date_to=date_to,
        )
        rows, meta = responses.paginate_query(query, page, page_size)
    except TenantAccessError as e:
        return responses.error(str(e), 403, code="FORBIDDEN")
    except Exception:
        return responses.server_error("Failed to list sales orders")

    return responses.success([o.to_dict(include_lines=False) for o in rows], meta=meta)


@sales_orders_bp.post("")
@require_auth
@require_permission("SALES_CREATE")
def create_sales_order_route():
    payload = request.get_json(silent=True) or {}
    try:
        order = sales_service.create_sales_order(
            shop_id=g.shop_id,
            lines=_parse_lines(payload.get("lines")),
            customer_id=parse_int_field(payload, "customerId"),
            discount_amount=parse_decimal_field(payload, "discountAmount", minimum=0),
            discount_percent=parse_decimal_field(payload, "discountPercent", minimum=0),
            payment_method=payload.get("paymentMethod"),
            payment_amount=parse_decimal_field(payload, "paymentAmount", minimum=0),
            payment_reference=payload.get("paymentReference"),
            order_type=payload.get("orderType") or "RETAIL",
            create_as_pending=payload.get("createAsPending") is True,
            notes=payload.get("notes"),
            user_id=g.current_user.id,
        )
    except ValidationError as e:
        return responses.error(str(e), 400, code="VALIDATION_ERROR", errors=e.errors)
    except (SalesOrderError, PaymentError) as e:
        return responses.error(str(e), 400, code="VALIDATION_ERROR")
    except NotFoundError as e:
        return responses.error(str(e), 404, code="NOT_FOUND")
    except TenantAccessError as e:
        return responses.error(str(e), 403, code="FORBIDDEN")
    except Exception:
        return responses.server_error("Failed to create sales order")

    return responses.success(order.to_dict(), 201)


@sales_orders_bp.get("/<int:sales_order_id>")
@require_auth
@require_permission("SALES_VIEW")
def get_sales_order_route(sales_order_id: int):
    try:
        order = sales_service.get_sales_order(g.shop_id, sales_order_id)
    except NotFoundError as e:
        return responses.error(str(e), 404, code="NOT_FOUND")
    except TenantAccessError as e:
        return responses.error(str(e), 403, code="FORBIDDEN")

    return responses.success(order.to_dict())


@sales_orders_bp.post("/<int:sales_order_id>/complete")
@require_auth
@require_permission("SALES_EDIT")
def complete_sales_order_route(sales_order_id: int):
    try:
        order = sales_service.complete_sales_order(
            shop_id=g.shop_id, sales_order_id=sales_order_id, user_id=g.current_user.id
        )
    except SalesOrderError as e:
        return responses.error(str(e), 400, code="VALIDATION_ERROR")
    except NotFoundError as e:
        return responses.error(str(e), 404, code="NOT_FOUND")
    except TenantAccessError as e:
        return responses.error(str(e), 403, code="FORBIDDEN")
    except Exception:
        return responses.server_error("Failed to complete sales order")

    return responses.success(order.to_dict())


@sales_orders_bp.post("/<int:sales_order_id>/cancel")
@require_auth
@require_permission("SALES_DELETE")
def cancel_sales_order_route(sales_order_id: int):
    """Body: {"reason"?: str}"""
    payload = request.get_json(silent=True) or {}
    try:
        order = sales_service.cancel_sales_order(
            shop_id=g.shop_id,
            sales_order_id=sales_order_id,
            reason=payload.get("reason"),
            user_id=g.current_user.id,
        )
    except SalesOrderError as e:
        return responses.error(str(e), 400, code="VALIDATION_ERROR")
    except NotFoundError as e:
        return responses.error(str(e), 404, code="NOT_FOUND")
    except TenantAccessError as e:
        return responses.error(str(e), 403, code="FORBIDDEN")
    except Exception:
        return responses.server_error("Failed to cancel sales order")

    return responses.success(order.to_dict())


@sales_orders_bp.get("/<int:sales_order_id>/payments")
@require_auth
@require_permission("SALES_VIEW")
def list_payments_route(sales_order_id: int):
    try:
        result = payment_service.list_payments(g.shop_id, sales_order_id)
    except NotFoundError as e:
        return responses.error(str(e), 404, code="NOT_FOUND")
    except TenantAccessError as e:
        return responses.error(str(e), 403, code="FORBIDDEN")

    return responses.success(result)


@sales_orders_bp.post("/<int:sales_order_id>/payments")
@require_auth
@require_permission("SALES_EDIT")
def record_payment_route(sales_order_id: int):
    """Body: {amount, paymentMethod, referenceNumber?, notes?, paymentDate?}"""
    payload = request.get_json(silent=True) or {}
    try:
        amount = parse_decimal_field(payload, "amount", required=True, strictly_positive=True)
        method = payload.get("paymentMethod")
        if not method:
            raise ValidationError("paymentMethod is required", field_name="paymentMethod")
        payment_date = parse_iso_datetime(payload["paymentDate"]) if payload.get("paymentDate") else None
        payment, order = payment_service.record_payment(
            shop_id=g.shop_id,
            sales_order_id=sales_order_id,
            amount=amount,
            payment_method=method,
            reference_number=payload.get("referenceNumber"),
            notes=payload.get("notes"),
            payment_date=payment_date,
            user_id=g.current_user.id,
        )
    except ValidationError as e:
        return responses.error(str(e), 400, code="VALIDATION_ERROR", errors=e.errors)
    except PaymentError as e:
        return responses.error(str(e), 400, code="VALIDATION_ERROR")
    except NotFoundError as e:
        return responses.error(str(e), 404, code="NOT_FOUND")
    except TenantAccessError as e:
        return responses.error(str(e), 403, code="FORBIDDEN")
    except (TypeError, ValueError):
        return responses.error("paymentDate must be an ISO-8601 datetime", 400, code="VALIDATION_ERROR")
    except Exception:
        return responses.server_error("Failed to record payment")

    return responses.success({
        "payment": payment.to_dict(),
        "order": order.to_dict(include_lines=False),
        "summary": payment_service.payment_summary(order),
    }, 201)
