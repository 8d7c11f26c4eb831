# Overview: Flask API routes for tagged stock items (read-only).

from flask import Blueprint, g, request

from .. import responses
from ..decorators import require_auth, require_permission
from ..services import stock_service
from ..services.stock_service import STOCK_STATUSES, StockLookupError
from ..services.tenant_service import NotFoundError, TenantAccessError

stock_bp = Blueprint("stock", __name__, url_prefix="/api/stock")


@stock_bp.get("")
@require_auth
@require_permission("PRODUCT_VIEW")
def list_stock_route():
    """
    List stock items with their product.

    Query params: status, productId, purchaseOrderId, metalType, purity,
    search (tag id, barcode, HUID or product name), page, pageSize
    """
    status = request.args.get("status")
    if status and status not in STOCK_STATUSES:
        return responses.error(
            f"status must be one of: {', '.join(STOCK_STATUSES)}", 400, code="VALIDATION_ERROR"
        )

    page, page_size = responses.get_pagination_args()
    try:
        query = stock_service.list_stock(
            g.shop_id,
            status=status,
            product_id=request.args.get("productId", type=int),
            purchase_order_id=request.args.get("purchaseOrderId", type=int),
            metal_type=request.args.get("metalType"),
            purity=request.args.get("purity"),
            search=request.args.get("search"),
        )
        rows, meta = responses.paginate_query(query, page, page_size)
    except TenantAccessError as e:
        return responses.error(str(e), 403, code="FORBIDDEN")
    except Exception:
        return responses.server_error("Failed to list stock")

    return responses.success([s.to_dict(include_product=True) for s in rows], meta=meta)


@stock_bp.get("/tag/<tag_id>")
@require_auth
@require_permission("PRODUCT_VIEW")
def get_stock_by_tag_route(tag_id: str):
    """Look up one piece by tag id or barcode."""
    try:
        item = stock_service.find_by_identifier(g.shop_id, tag_id)
    except StockLookupError as e:
        return responses.error(str(e), 400, code="VALIDATION_ERROR")
    except NotFoundError as e:
        return responses.error(str(e), 404, code="NOT_FOUND")
    except TenantAccessError as e:
        return responses.error(str(e), 403, code="FORBIDDEN")

    return responses.success(item.to_dict(include_product=True))
