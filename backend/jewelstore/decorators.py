# Overview: Request and permission decorators for API routes.

from functools import wraps

from flask import current_app, g, request

from .permissions import Role, has_permission
from .responses import error
from .services import session_service


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user') and hasattr(g, 'role')


def require_auth(f):
    """
    Require authentication and establish tenant context.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.role: Role captured at login
    - g.shop_id: The shop ID (tenant context), None for SUPER_ADMIN
    - g.session_context: The full SessionContext object

    Returns 401 if the Authorization header is missing, the token is invalid
    or expired, or the user / shop has been deactivated.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return error("Authentication required", 401, code="UNAUTHORIZED")

        token = auth_header.split(" ", 1)[1].strip()

        context = session_service.validate_session(token)

        if not context:
            return error("Invalid or expired token", 401, code="UNAUTHORIZED")

        # Shop users must always carry a shop
        if context.shop_id is None and context.role != Role.SUPER_ADMIN:
            return error("Unauthorized: No shop context available", 401, code="UNAUTHORIZED")

        g.current_user = context.user
        g.role = context.role
        g.shop_id = context.shop_id
        g.session_context = context

        return f(*args, **kwargs)

    return decorated_function


def require_permission(permission_code: str):
    """Require the caller's role to hold a permission from the role map."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return error("Authentication required", 401, code="UNAUTHORIZED")

            if not has_permission(g.role, permission_code):
                current_app.logger.info(
                    "Permission denied: user=%s role=%s permission=%s path=%s",
                    g.current_user.id, g.role, permission_code, request.path,
                )
                return error(
                    "Permission denied",
                    403,
                    code="FORBIDDEN",
                    errors=[{"field": "permission", "message": f"Requires {permission_code}"}],
                )

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_any_permission(*permission_codes):
    """Require any of the specified permissions."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return error("Authentication required", 401, code="UNAUTHORIZED")

            if not any(has_permission(g.role, code) for code in permission_codes):
                return error(
                    "Permission denied",
                    403,
                    code="FORBIDDEN",
                    errors=[{"field": "permission", "message": f"Requires any of: {', '.join(permission_codes)}"}],
                )

            return f(*args, **kwargs)

        return decorated_function
    return decorator
