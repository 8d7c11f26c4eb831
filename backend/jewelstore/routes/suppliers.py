# Overview: Flask API routes for suppliers; parses input and returns JSON responses.

from flask import Blueprint, g, request

from .. import responses
from ..decorators import require_auth, require_permission
from ..models import Supplier
from ..services import supplier_service
from ..services.supplier_service import SUPPLIER_MUTABLE_FIELDS
from ..services.tenant_service import NotFoundError, TenantAccessError
from ..validation import ModelValidationPolicy, ValidationError, validate_payload

SUPPLIER_POLICY = ModelValidationPolicy(
    writable_fields=set(SUPPLIER_MUTABLE_FIELDS),
    required_on_create={"name"},
)

suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")


@suppliers_bp.get("")
@require_auth
@require_permission("SUPPLIER_VIEW")
def list_suppliers_route():
    page, page_size = responses.get_pagination_args()
    try:
        query = supplier_service.list_suppliers(
            g.shop_id,
            search=request.args.get("search"),
            is_active=responses.get_bool_arg("isActive"),
        )
        rows, meta = responses.paginate_query(query, page, page_size)
    except TenantAccessError as e:
        return responses.error(str(e), 403, code="FORBIDDEN")
    except Exception:
        return responses.server_error("Failed to list suppliers")

    return responses.success([s.to_dict() for s in rows], meta=meta)


@suppliers_bp.post("")
@require_auth
@require_permission("SUPPLIER_CREATE")
def create_supplier_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=False)
        supplier = supplier_service.create_supplier(shop_id=g.shop_id, patch=patch, user_id=g.current_user.id)
    except ValidationError as e:
        return responses.error(str(e), 400, code="VALIDATION_ERROR", errors=e.errors)
    except TenantAccessError as e:
        return responses.error(str(e), 403, code="FORBIDDEN")
    except Exception:
        return responses.server_error("Failed to create supplier")

    return responses.success(supplier.to_dict(), 201)


@suppliers_bp.get("/<int:supplier_id>")
@require_auth
@require_permission("SUPPLIER_VIEW")
def get_supplier_route(supplier_id: int):
    try:
        supplier = supplier_service.get_supplier(g.shop_id, supplier_id)
    except NotFoundError as e:
        return responses.error(str(e), 404, code="NOT_FOUND")
    except TenantAccessError as e:
        return responses.error(str(e), 403, code="FORBIDDEN")

    return responses.success(supplier.to_dict())


@suppliers_bp.put("/<int:supplier_id>")
@require_auth
@require_permission("SUPPLIER_EDIT")
def update_supplier_route(supplier_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=True)
        supplier = supplier_service.update_supplier(
            shop_id=g.shop_id, supplier_id=supplier_id, patch=patch, user_id=g.current_user.id
        )
    except ValidationError as e:
        return responses.error(str(e), 400, code="VALIDATION_ERROR", errors=e.errors)
    except NotFoundError as e:
        return responses.error(str(e), 404, code="NOT_FOUND")
    except TenantAccessError as e:
        return responses.error(str(e), 403, code="FORBIDDEN")
    except Exception:
        return responses.server_error("Failed to update supplier")

    return responses.success(supplier.to_dict())
