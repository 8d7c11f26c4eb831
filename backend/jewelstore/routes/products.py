# Overview: Flask API routes for products operations; parses input and returns JSON responses.

"""
Product catalog routes.

MULTI-TENANT: every product operation is scoped to g.shop_id (set by
@require_auth). A product id from another shop answers 403.

Prices: calculatedPrice comes from the shop's current rate; priceOverride,
when set, wins and is never touched by bulk repricing.
"""

from flask import Blueprint, g, request

from .. import responses
from ..decorators import require_auth, require_permission
from ..models import Product
from ..services import price_update_service, products_service
from ..services.products_service import PRODUCT_MUTABLE_FIELDS, ProductError
from ..services.rate_service import METAL_TYPES
from ..services.tenant_service import NotFoundError, TenantAccessError
from ..time_utils import parse_iso_datetime
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    ValidationError,
    validate_payload,
)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=set(PRODUCT_MUTABLE_FIELDS),
    required_on_create={"name", "metal_type", "purity", "gross_weight", "net_weight"},
    non_negative_fields={
        "gross_weight", "net_weight", "wastage_percent", "making_charges",
        "stone_weight", "stone_value", "price_override", "reorder_level",
    },
    choices={"metal_type": METAL_TYPES},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
@require_permission("PRODUCT_VIEW")
def list_products_route():
    """
    List the shop's products.

    Query params: search, metalType, purity, collectionName, supplierId,
    isActive, page, pageSize
    """
    page, page_size = responses.get_pagination_args()
    try:
        query = products_service.list_products(
            g.shop_id,
            search=request.args.get("search"),
            metal_type=request.args.get("metalType"),
            purity=request.args.get("purity"),
            collection_name=request.args.get("collectionName"),
            supplier_id=request.args.get("supplierId", type=int),
            is_active=responses.get_bool_arg("isActive"),
        )
        rows, meta = responses.paginate_query(query, page, page_size)
    except TenantAccessError as e:
        return responses.error(str(e), 403, code="FORBIDDEN")
    except Exception:
        return responses.server_error("Failed to list products")

    return responses.success([p.to_dict() for p in rows], meta=meta)


@products_bp.post("")
@require_auth
@require_permission("PRODUCT_CREATE")
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        product = products_service.create_product(shop_id=g.shop_id, patch=patch, user_id=g.current_user.id)
    except ValidationError as e:
        return responses.error(str(e), 400, code="VALIDATION_ERROR", errors=e.errors)
    except ConflictError as e:
        return responses.error(str(e), 409, code="CONFLICT")
    except ProductError as e:
        return responses.error(str(e), 400, code="VALIDATION_ERROR")
    except NotFoundError as e:
        return responses.error(str(e), 404, code="NOT_FOUND")
    except TenantAccessError as e:
        return responses.error(str(e), 403, code="FORBIDDEN")
    except Exception:
        return responses.server_error("Failed to create product")

    return responses.success(product.to_dict(), 201)


@products_bp.post("/recalculate-prices")
@require_auth
@require_permission("RATE_MASTER_EDIT")
def recalculate_prices_route():
    """
    Reprice products from each one's current rate.

    Body (all optional): productIds, metalType, purity, collectionName,
    onlyOutdated (default true)
    """
    payload = request.get_json(silent=True) or {}
    product_ids = payload.get("productIds")
    if product_ids is not None and (
        not isinstance(product_ids, list) or not all(isinstance(i, int) for i in product_ids)
    ):
        return responses.error(
            "productIds must be a list of integers", 400, code="VALIDATION_ERROR",
            errors=[{"field": "productIds", "message": "productIds must be a list of integers"}],
        )

    try:
        result = price_update_service.recalculate_prices(
            shop_id=g.shop_id,
            product_ids=product_ids,
            metal_type=payload.get("metalType"),
            purity=payload.get("purity"),
            collection_name=payload.get("collectionName"),
            only_outdated=payload.get("onlyOutdated", True) is not False,
            user_id=g.current_user.id,
        )
    except TenantAccessError as e:
        return responses.error(str(e), 403, code="FORBIDDEN")
    except Exception:
        return responses.server_error("Failed to recalculate prices")

    return responses.success(result, message=f"Updated {result['updated']} products")


@products_bp.get("/<int:product_id>")
@require_auth
@require_permission("PRODUCT_VIEW")
def get_product_route(product_id: int):
    try:
        product = products_service.get_product(g.shop_id, product_id)
    except NotFoundError as e:
        return responses.error(str(e), 404, code="NOT_FOUND")
    except TenantAccessError as e:
        return responses.error(str(e), 403, code="FORBIDDEN")

    data = product.to_dict()
    data["supplier"] = product.supplier.to_dict() if product.supplier else None
    data["rateUsed"] = product.rate_used.to_dict() if product.rate_used else None
    return responses.success(data)


@products_bp.put("/<int:product_id>")
@require_auth
@require_permission("PRODUCT_EDIT")
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        product = products_service.update_product(
            shop_id=g.shop_id, product_id=product_id, patch=patch, user_id=g.current_user.id
        )
    except ValidationError as e:
        return responses.error(str(e), 400, code="VALIDATION_ERROR", errors=e.errors)
    except ConflictError as e:
        return responses.error(str(e), 409, code="CONFLICT")
    except ProductError as e:
        return responses.error(str(e), 400, code="VALIDATION_ERROR")
    except NotFoundError as e:
        return responses.error(str(e), 404, code="NOT_FOUND")
    except TenantAccessError as e:
        return responses.error(str(e), 403, code="FORBIDDEN")
    except Exception:
        return responses.server_error("Failed to update product")

    return responses.success(product.to_dict())


@products_bp.delete("/<int:product_id>")
@require_auth
@require_permission("PRODUCT_DELETE")
def delete_product_route(product_id: int):
    try:
        products_service.delete_product(shop_id=g.shop_id, product_id=product_id, user_id=g.current_user.id)
    except NotFoundError as e:
        return responses.error(str(e), 404, code="NOT_FOUND")
    except TenantAccessError as e:
        return responses.error(str(e), 403, code="FORBIDDEN")
    except Exception:
        return responses.server_error("Failed to delete product")

    return responses.success({"id": product_id, "deleted": True})


@products_bp.get("/<int:product_id>/price-breakdown")
@require_auth
@require_permission("PRODUCT_VIEW")
def price_breakdown_route(product_id: int):
    """Query params: asOf (ISO datetime, optional)."""
    as_of_raw = request.args.get("asOf")
    try:
        as_of = parse_iso_datetime(as_of_raw) if as_of_raw else None
        breakdown = price_update_service.get_price_breakdown(g.shop_id, product_id, as_of=as_of)
    except ValueError as e:
        return responses.error(str(e), 400, code="VALIDATION_ERROR")
    except NotFoundError as e:
        return responses.error(str(e), 404, code="NOT_FOUND")
    except TenantAccessError as e:
        return responses.error(str(e), 403, code="FORBIDDEN")
    except Exception:
        return responses.server_error("Failed to build price breakdown")

    return responses.success(breakdown)
