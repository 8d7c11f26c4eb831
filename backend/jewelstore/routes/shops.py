# Overview: Flask API routes for platform-level shop management (SUPER_ADMIN).

from flask import Blueprint, current_app, g, request

from .. import responses
from ..decorators import require_auth, require_permission
from ..models import Shop
from ..permissions import Role
from ..services import shop_service, user_service
from ..services.auth_service import PasswordValidationError, validate_password_strength
from ..services.shop_service import SHOP_MUTABLE_FIELDS
from ..validation import ConflictError, ModelValidationPolicy, ValidationError, require_fields, validate_payload

SHOP_POLICY = ModelValidationPolicy(
    writable_fields=set(SHOP_MUTABLE_FIELDS) | {"code"},
    required_on_create={"name", "code"},
)

SHOP_UPDATE_POLICY = ModelValidationPolicy(writable_fields=set(SHOP_MUTABLE_FIELDS))

shops_bp = Blueprint("shops", __name__, url_prefix="/api/shops")


@shops_bp.get("")
@require_auth
@require_permission("SUPER_ADMIN_SHOPS_MANAGE")
def list_shops_route():
    page, page_size = responses.get_pagination_args()
    include_inactive = responses.get_bool_arg("includeInactive")
    try:
        query = shop_service.list_shops(include_inactive=include_inactive is not False)
        rows, meta = responses.paginate_query(query, page, page_size)
    except Exception:
        return responses.server_error("Failed to list shops")

    return responses.success([s.to_dict() for s in rows], meta=meta)


@shops_bp.post("")
@require_auth
@require_permission("SUPER_ADMIN_SHOPS_MANAGE")
def create_shop_route():
    """
    Create a shop, optionally with its first OWNER.

    Body: {name, code, ownerName?, phone?, ..., owner?: {username, password, name}}
    """
    payload = request.get_json(silent=True) or {}
    owner = payload.get("owner")
    if owner is not None and not isinstance(owner, dict):
        return responses.error("owner must be an object", 400, code="VALIDATION_ERROR")

    try:
        patch = validate_payload(
            model=Shop, payload=payload, policy=SHOP_POLICY, partial=False, ignore_fields={"owner"}
        )
        if owner is not None:
            require_fields(owner, "username", "password", "name")
            validate_password_strength(owner["password"])
        shop = shop_service.create_shop(user_id=g.current_user.id, **patch)
        owner_user = None
        if owner is not None:
            owner_user = user_service.create_user(
                actor_role=g.role,
                actor_shop_id=None,
                actor_user_id=g.current_user.id,
                username=owner["username"],
                password=owner["password"],
                name=owner["name"],
                role=Role.OWNER,
                shop_id=shop.id,
                email=owner.get("email"),
                phone=owner.get("phone"),
                bcrypt_rounds=current_app.config.get("BCRYPT_ROUNDS", 12),
            )
    except ValidationError as e:
        return responses.error(str(e), 400, code="VALIDATION_ERROR", errors=e.errors)
    except PasswordValidationError as e:
        return responses.error(str(e), 400, code="VALIDATION_ERROR",
                               errors=[{"field": "owner.password", "message": str(e)}])
    except ConflictError as e:
        return responses.error(str(e), 409, code="CONFLICT")
    except Exception:
        return responses.server_error("Failed to create shop")

    data = shop.to_dict()
    data["owner"] = owner_user.to_dict() if owner_user else None
    return responses.success(data, 201)


@shops_bp.patch("/<int:shop_id>")
@require_auth
@require_permission("SUPER_ADMIN_SHOPS_MANAGE")
def update_shop_route(shop_id: int):
    """Deactivating a shop (isActive=false) logs out all of its users."""
    shop = shop_service.get_shop(shop_id)
    if shop is None:
        return responses.error("Shop not found", 404, code="NOT_FOUND")

    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Shop, payload=payload, policy=SHOP_UPDATE_POLICY, partial=True)
        shop = shop_service.update_shop(shop, patch, user_id=g.current_user.id)
    except ValidationError as e:
        return responses.error(str(e), 400, code="VALIDATION_ERROR", errors=e.errors)
    except Exception:
        return responses.server_error("Failed to update shop")

    return responses.success(shop.to_dict())
