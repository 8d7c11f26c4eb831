# Overview: Flask API routes for the cash book: listing, manual entries and voiding.

from flask import Blueprint, g, request

from .. import responses
from ..decorators import require_auth, require_permission
from ..services import transaction_service
from ..services.tenant_service import NotFoundError, TenantAccessError
from ..services.transaction_service import TransactionError
from ..time_utils import parse_iso_datetime
from ..validation import ValidationError, parse_decimal_field, parse_int_field, require_fields

transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


@transactions_bp.get("")
@require_auth
@require_permission("TRANSACTION_VIEW")
def list_transactions_route():
    """
    Query params: transactionType, category, status, dateFrom, dateTo,
    page, pageSize. meta also carries totals per transaction type.
    """
    try:
        date_from = parse_iso_datetime(request.args.get("dateFrom"))
        date_to = parse_iso_datetime(request.args.get("dateTo"))
    except ValueError:
        return responses.error("dateFrom/dateTo must be ISO-8601 datetimes", 400, code="VALIDATION_ERROR")

    page, page_size = responses.get_pagination_args()
    try:
        query = transaction_service.list_transactions(
            g.shop_id,
            transaction_type=request.args.get("transactionType"),
            category=request.args.get("category"),
            status=request.args.get("status"),
            date_from=date_from,
            date_to=date_to,
        )
        rows, meta = responses.paginate_query(query, page, page_size)
        meta["totals"] = transaction_service.totals_by_type(g.shop_id, date_from=date_from, date_to=date_to)
    except TenantAccessError as e:
        return responses.error(str(e), 403, code="FORBIDDEN")
    except Exception:
        return responses.server_error("Failed to list transactions")

    return responses.success([t.to_dict() for t in rows], meta=meta)


@transactions_bp.post("")
@require_auth
@require_permission("TRANSACTION_CREATE")
def create_transaction_route():
    """
    Manual cash-book entry.

    Body: {transactionType, amount, category, paymentMode?, description?,
    referenceNumber?, transactionDate?, customerId?}
    """
    payload = request.get_json(silent=True) or {}
    try:
        require_fields(payload, "transactionType", "amount", "category")
        if not isinstance(payload["category"], str):
            raise ValidationError("category must be a string", field_name="category")
        raw_date = payload.get("transactionDate")
        try:
            transaction_date = parse_iso_datetime(raw_date) if raw_date else None
        except (TypeError, ValueError):
            raise ValidationError("transactionDate must be an ISO-8601 datetime", field_name="transactionDate")
        txn = transaction_service.create_transaction(
            shop_id=g.shop_id,
            user_id=g.current_user.id,
            transaction_type=payload["transactionType"],
            amount=parse_decimal_field(payload, "amount", required=True, strictly_positive=True),
            category=payload["category"],
            payment_mode=payload.get("paymentMode"),
            description=payload.get("description"),
            reference_number=payload.get("referenceNumber"),
            transaction_date=transaction_date,
            customer_id=parse_int_field(payload, "customerId"),
        )
    except ValidationError as e:
        return responses.error(str(e), 400, code="VALIDATION_ERROR", errors=e.errors)
    except TransactionError as e:
        return responses.error(str(e), 400, code="VALIDATION_ERROR")
    except NotFoundError as e:
        return responses.error(str(e), 404, code="NOT_FOUND")
    except TenantAccessError as e:
        return responses.error(str(e), 403, code="FORBIDDEN")
    except Exception:
        return responses.server_error("Failed to create transaction")

    return responses.success(txn.to_dict(), 201)


@transactions_bp.post("/<int:transaction_id>/void")
@require_auth
@require_permission("TRANSACTION_CREATE")
def void_transaction_route(transaction_id: int):
    """Body: {reason?}"""
    payload = request.get_json(silent=True) or {}
    try:
        txn = transaction_service.void_transaction(
            shop_id=g.shop_id,
            transaction_id=transaction_id,
            reason=payload.get("reason"),
            user_id=g.current_user.id,
        )
    except TransactionError as e:
        return responses.error(str(e), 400, code="VALIDATION_ERROR")
    except NotFoundError as e:
        return responses.error(str(e), 404, code="NOT_FOUND")
    except TenantAccessError as e:
        return responses.error(str(e), 403, code="FORBIDDEN")
    except Exception:
        return responses.server_error("Failed to void transaction")

    return responses.success(txn.to_dict())
