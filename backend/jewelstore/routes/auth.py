# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

Login issues an opaque bearer token; every other route sends it as
``Authorization: Bearer <token>``. Self-registration does not exist: staff
accounts are created through /api/users or the CLI.
"""

from flask import Blueprint, g, request

from .. import responses
from ..decorators import require_auth
from ..permissions import get_role_permissions
from ..services import auth_service, session_service
from ..services.auth_service import AuthenticationError
from ..time_utils import to_utc_z


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate and create a session token.

    Body: {"username", "password"}
    """
    data = request.get_json(silent=True) or {}
    username = (data.get("username") or "").strip()
    password = data.get("password")

    if not username or not password:
        return responses.error("username and password required", 400, code="VALIDATION_ERROR")

    try:
        user = auth_service.authenticate(username, password)
        session, token = session_service.create_session(
            user,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
    except AuthenticationError as e:
        return responses.error(str(e), 401, code="UNAUTHORIZED")
    except Exception:
        return responses.server_error("Login failed")

    return responses.success({
        "token": token,
        "expiresAt": to_utc_z(session.expires_at),
        "user": user.to_dict(),
        "shop": user.shop.to_dict() if user.shop else None,
        "permissions": get_role_permissions(user.role),
    })


@auth_bp.post("/logout")
@require_auth
def logout_route():
    token = request.headers.get("Authorization", "").split(" ", 1)[1].strip()
    session_service.revoke_session(token, "User logout")
    return responses.success({"loggedOut": True})


@auth_bp.get("/session")
@require_auth
def session_route():
    """Current user, shop and permissions for the presented token."""
    context = g.session_context
    return responses.success({
        "user": context.user.to_dict(),
        "shop": context.user.shop.to_dict() if context.user.shop else None,
        "role": context.role,
        "permissions": get_role_permissions(context.role),
        "expiresAt": to_utc_z(context.session.expires_at),
    })
