# Overview: Flask API routes for the metal rate master and bulk repricing.

"""
Rate master routes.

Rates are per shop, per (metalType, purity). Setting a new active rate
switches off the older active rates for the same pair; the history stays
queryable.

POST /bulk-update-prices reprices products against one rate. With
preview=true nothing is written; otherwise every changed product and one
audit row are committed together.
"""

from datetime import timedelta

from flask import Blueprint, g, request

from .. import responses
from ..decorators import require_auth, require_permission
from ..models import RateMaster
from ..services import price_update_service, rate_service
from ..services.rate_service import METAL_TYPES, RATE_MUTABLE_FIELDS, RATE_SOURCES, RateError
from ..services.tenant_service import NotFoundError, TenantAccessError
from ..time_utils import parse_iso_datetime, utcnow
from ..validation import ModelValidationPolicy, ValidationError, parse_int_field, validate_payload

RATE_POLICY = ModelValidationPolicy(
    writable_fields=set(RATE_MUTABLE_FIELDS),
    required_on_create={"metal_type", "purity", "rate_per_gram"},
    non_negative_fields={"default_making_charge_percent"},
    positive_fields={"rate_per_gram"},
    choices={"metal_type": METAL_TYPES, "rate_source": RATE_SOURCES},
)

rates_bp = Blueprint("rates", __name__, url_prefix="/api/rate-master")


def _actor_name() -> str:
    user = g.current_user
    return user.name or user.username


@rates_bp.get("")
@require_auth
@require_permission("RATE_MASTER_VIEW")
def list_rates_route():
    """Query params: metalType, purity, isActive, rateSource, page, pageSize"""
    page, page_size = responses.get_pagination_args()
    try:
        query = rate_service.list_rates(
            g.shop_id,
            metal_type=request.args.get("metalType"),
            purity=request.args.get("purity"),
            is_active=responses.get_bool_arg("isActive"),
            rate_source=request.args.get("rateSource"),
        )
        rows, meta = responses.paginate_query(query, page, page_size)
    except TenantAccessError as e:
        return responses.error(str(e), 403, code="FORBIDDEN")
    except Exception:
        return responses.server_error("Failed to list rates")

    return responses.success([r.to_dict() for r in rows], meta=meta)


@rates_bp.post("")
@require_auth
@require_permission("RATE_MASTER_EDIT")
def create_rate_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=RateMaster, payload=payload, policy=RATE_POLICY, partial=False)
        rate = rate_service.create_rate(
            g.shop_id, patch, created_by=_actor_name(), user_id=g.current_user.id
        )
    except ValidationError as e:
        return responses.error(str(e), 400, code="VALIDATION_ERROR", errors=e.errors)
    except RateError as e:
        return responses.error(str(e), 400, code="VALIDATION_ERROR")
    except TenantAccessError as e:
        return responses.error(str(e), 403, code="FORBIDDEN")
    except Exception:
        return responses.server_error("Failed to create rate")

    return responses.success(rate.to_dict(), 201)


@rates_bp.get("/current")
@require_auth
@require_permission("RATE_MASTER_VIEW")
def current_rates_route():
    """
    Current rates.

    With metalType and purity: that one rate (404 when none is current).
    Without: every current rate of the shop, plus rates expiring within 7 days.
    """
    metal_type = request.args.get("metalType")
    purity = request.args.get("purity")

    try:
        as_of = parse_iso_datetime(request.args.get("asOf")) if request.args.get("asOf") else None
    except ValueError:
        return responses.error("asOf must be an ISO-8601 datetime", 400, code="VALIDATION_ERROR")

    try:
        if metal_type and purity:
            rate = rate_service.get_current_rate(g.shop_id, metal_type, purity, as_of=as_of)
            if rate is None:
                return responses.error(f"No current rate for {metal_type} {purity}", 404, code="NOT_FOUND")
            return responses.success(rate.to_dict())

        rates = rate_service.get_all_current_rates(g.shop_id, as_of=as_of)
        expiring = rate_service.rates_expiring_soon(g.shop_id, as_of=as_of)
    except TenantAccessError as e:
        return responses.error(str(e), 403, code="FORBIDDEN")
    except Exception:
        return responses.server_error("Failed to load current rates")

    return responses.success({
        "rates": [r.to_dict() for r in rates],
        "expiringSoon": [r.to_dict() for r in expiring],
    })


@rates_bp.get("/history/<metal_type>/<purity>")
@require_auth
@require_permission("RATE_MASTER_VIEW")
def rate_history_route(metal_type: str, purity: str):
    page, page_size = responses.get_pagination_args()
    try:
        rows, meta = responses.paginate_query(
            rate_service.rate_history(g.shop_id, metal_type, purity), page, page_size
        )
    except TenantAccessError as e:
        return responses.error(str(e), 403, code="FORBIDDEN")
    except Exception:
        return responses.server_error("Failed to load rate history")

    return responses.success([r.to_dict() for r in rows], meta=meta)


@rates_bp.get("/purities/<metal_type>")
@require_auth
@require_permission("RATE_MASTER_VIEW")
def purities_route(metal_type: str):
    """Purity labels the shop has ever rated for a metal."""
    try:
        purities = rate_service.distinct_purities(g.shop_id, metal_type.upper())
    except TenantAccessError as e:
        return responses.error(str(e), 403, code="FORBIDDEN")

    return responses.success({"metalType": metal_type.upper(), "purities": purities})


@rates_bp.get("/statistics/<metal_type>/<purity>")
@require_auth
@require_permission("RATE_MASTER_VIEW")
def rate_statistics_route(metal_type: str, purity: str):
    """Query params: days (default 30)"""
    days = request.args.get("days", default=30, type=int)
    if days is None or days < 1:
        return responses.error("days must be a positive integer", 400, code="VALIDATION_ERROR")

    try:
        end = utcnow()
        stats = rate_service.rate_statistics(
            g.shop_id, metal_type, purity, start=end - timedelta(days=days), end=end
        )
    except TenantAccessError as e:
        return responses.error(str(e), 403, code="FORBIDDEN")
    except Exception:
        return responses.server_error("Failed to compute rate statistics")

    if stats is None:
        return responses.error(f"No rates for {metal_type} {purity} in the last {days} days", 404, code="NOT_FOUND")
    return responses.success(stats)


@rates_bp.post("/bulk-update-prices")
@require_auth
@require_permission("RATE_MASTER_EDIT")
def bulk_update_prices_route():
    """
    Body: {rateId, skipCustomPrices=true, preview=false, performedBy?,
           productFilters?: {metalType?, purity?, collectionName?, productIds?}}
    """
    payload = request.get_json(silent=True) or {}

    try:
        rate_id = parse_int_field(payload, "rateId", required=True)
    except ValidationError as e:
        return responses.error(str(e), 400, code="VALIDATION_ERROR", errors=e.errors)

    filters = payload.get("productFilters") or {}
    if not isinstance(filters, dict):
        return responses.error("productFilters must be an object", 400, code="VALIDATION_ERROR")
    product_ids = filters.get("productIds")
    if product_ids is not None and (
        not isinstance(product_ids, list) or not all(isinstance(i, int) for i in product_ids)
    ):
        return responses.error("productFilters.productIds must be a list of integers", 400, code="VALIDATION_ERROR")
    for name in ("metalType", "purity", "collectionName"):
        if filters.get(name) is not None and not isinstance(filters[name], str):
            return responses.error(
                f"productFilters.{name} must be a string", 400, code="VALIDATION_ERROR",
                errors=[{"field": f"productFilters.{name}", "message": "must be a string"}],
            )

    preview = payload.get("preview") is True
    try:
        result = price_update_service.bulk_update_prices(
            shop_id=g.shop_id,
            rate_id=rate_id,
            product_filters=filters,
            skip_custom_prices=payload.get("skipCustomPrices", True) is not False,
            preview=preview,
            performed_by=payload.get("performedBy") or _actor_name(),
            user_id=g.current_user.id,
        )
    except NotFoundError as e:
        return responses.error(str(e), 404, code="NOT_FOUND")
    except TenantAccessError as e:
        return responses.error(str(e), 403, code="FORBIDDEN")
    except Exception:
        return responses.server_error("Bulk price update failed")

    if preview:
        message = f"Preview: {result['productsToUpdate']} products would be updated"
    else:
        message = f"Updated {result['productsUpdated']} products"
    return responses.success(result, message=message)


@rates_bp.get("/<int:rate_id>")
@require_auth
@require_permission("RATE_MASTER_VIEW")
def get_rate_route(rate_id: int):
    try:
        rate = rate_service.get_rate(g.shop_id, rate_id)
    except NotFoundError as e:
        return responses.error(str(e), 404, code="NOT_FOUND")
    except TenantAccessError as e:
        return responses.error(str(e), 403, code="FORBIDDEN")

    data = rate.to_dict()
    data["isValid"] = rate_service.is_rate_valid(rate)
    return responses.success(data)


@rates_bp.put("/<int:rate_id>")
@require_auth
@require_permission("RATE_MASTER_EDIT")
def update_rate_route(rate_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=RateMaster, payload=payload, policy=RATE_POLICY, partial=True)
        rate = rate_service.update_rate(
            g.shop_id, rate_id, patch, updated_by=_actor_name(), user_id=g.current_user.id
        )
    except ValidationError as e:
        return responses.error(str(e), 400, code="VALIDATION_ERROR", errors=e.errors)
    except RateError as e:
        return responses.error(str(e), 400, code="VALIDATION_ERROR")
    except NotFoundError as e:
        return responses.error(str(e), 404, code="NOT_FOUND")
    except TenantAccessError as e:
        return responses.error(str(e), 403, code="FORBIDDEN")
    except Exception:
        return responses.server_error("Failed to update rate")

    return responses.success(rate.to_dict())


@rates_bp.delete("/<int:rate_id>")
@require_auth
@require_permission("RATE_MASTER_EDIT")
def delete_rate_route(rate_id: int):
    """Rates that priced a product are deactivated instead of deleted."""
    try:
        rate_service.delete_rate(g.shop_id, rate_id, user_id=g.current_user.id)
    except NotFoundError as e:
        return responses.error(str(e), 404, code="NOT_FOUND")
    except TenantAccessError as e:
        return responses.error(str(e), 403, code="FORBIDDEN")
    except Exception:
        return responses.server_error("Failed to delete rate")

    return responses.success({"id": rate_id, "deleted": True})
