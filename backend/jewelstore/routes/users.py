# Overview: Flask API routes for staff accounts.

"""
User management routes.

SUPER_ADMIN creates OWNER accounts for any shop; an OWNER creates SALES and
ACCOUNTS accounts in their own shop. Listing is limited to the caller's shop
unless the caller is a SUPER_ADMIN.
"""

from flask import Blueprint, current_app, g, request

from .. import responses
from ..decorators import require_any_permission, require_auth
from ..services import user_service
from ..services.auth_service import PasswordValidationError
from ..services.tenant_service import NotFoundError, TenantAccessError
from ..services.user_service import UserManagementError
from ..validation import ConflictError, ValidationError, parse_int_field, require_fields

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_any_permission("USER_MANAGE", "SUPER_ADMIN_USERS_MANAGE")
def list_users_route():
    """Query params: shopId (SUPER_ADMIN only), page, pageSize"""
    page, page_size = responses.get_pagination_args()
    try:
        query = user_service.list_users(
            actor_role=g.role,
            actor_shop_id=g.shop_id,
            shop_id=request.args.get("shopId", type=int),
        )
        rows, meta = responses.paginate_query(query, page, page_size)
    except TenantAccessError as e:
        return responses.error(str(e), 403, code="FORBIDDEN")
    except Exception:
        return responses.server_error("Failed to list users")

    return responses.success([u.to_dict() for u in rows], meta=meta)


@users_bp.post("")
@require_auth
@require_any_permission("USER_MANAGE", "SUPER_ADMIN_USERS_MANAGE")
def create_user_route():
    """Body: {username, password, name, role, shopId?, email?, phone?}"""
    payload = request.get_json(silent=True) or {}
    try:
        require_fields(payload, "username", "password", "name", "role")
        user = user_service.create_user(
            actor_role=g.role,
            actor_shop_id=g.shop_id,
            actor_user_id=g.current_user.id,
            username=payload["username"],
            password=payload["password"],
            name=payload["name"],
            role=payload["role"],
            shop_id=parse_int_field(payload, "shopId"),
            email=payload.get("email"),
            phone=payload.get("phone"),
            bcrypt_rounds=current_app.config.get("BCRYPT_ROUNDS", 12),
        )
    except ValidationError as e:
        return responses.error(str(e), 400, code="VALIDATION_ERROR", errors=e.errors)
    except PasswordValidationError as e:
        return responses.error(str(e), 400, code="VALIDATION_ERROR",
                               errors=[{"field": "password", "message": str(e)}])
    except UserManagementError as e:
        return responses.error(str(e), 400, code="VALIDATION_ERROR")
    except ConflictError as e:
        return responses.error(str(e), 409, code="CONFLICT")
    except NotFoundError as e:
        return responses.error(str(e), 404, code="NOT_FOUND")
    except TenantAccessError as e:
        return responses.error(str(e), 403, code="FORBIDDEN")
    except Exception:
        return responses.server_error("Failed to create user")

    return responses.success(user.to_dict(), 201)


@users_bp.patch("/<int:user_id>")
@require_auth
@require_any_permission("USER_MANAGE", "SUPER_ADMIN_USERS_MANAGE")
def update_user_status_route(user_id: int):
    """Body: {isActive: bool}. Deactivation revokes the user's sessions."""
    payload = request.get_json(silent=True) or {}
    is_active = payload.get("isActive")
    if not isinstance(is_active, bool):
        return responses.error("isActive must be a boolean", 400, code="VALIDATION_ERROR")

    try:
        user = user_service.set_user_active(
            actor_role=g.role,
            actor_shop_id=g.shop_id,
            user_id=user_id,
            is_active=is_active,
            actor_user_id=g.current_user.id,
        )
    except UserManagementError as e:
        return responses.error(str(e), 400, code="VALIDATION_ERROR")
    except NotFoundError as e:
        return responses.error(str(e), 404, code="NOT_FOUND")
    except TenantAccessError as e:
        return responses.error(str(e), 403, code="FORBIDDEN")
    except Exception:
        return responses.server_error("Failed to update user")

    return responses.success(user.to_dict())
