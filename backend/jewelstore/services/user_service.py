# Overview: Staff account management with role creation rules.

"""
User Service

WHO CAN CREATE WHOM:
- SUPER_ADMIN creates OWNER users for any shop
- OWNER creates SALES and ACCOUNTS users in their own shop
- nobody else creates users

Listing is shop-scoped: an OWNER sees their own shop's users, a SUPER_ADMIN
sees every user or one shop's users.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import User
from ..permissions import ALL_ROLES, Role, can_create_role
from ..validation import ConflictError
from . import audit_service
from .auth_service import hash_password
from .session_service import revoke_user_sessions
from .tenant_service import NotFoundError, TenantAccessError, require_shop


class UserManagementError(Exception):
    """Raised when a user cannot be created or changed."""
    pass


def list_users(*, actor_role: str, actor_shop_id: int | None, shop_id: int | None = None):
    query = db.session.query(User)
    if actor_role == Role.SUPER_ADMIN:
        if shop_id is not None:
            query = query.filter(User.shop_id == shop_id)
    else:
        if actor_shop_id is None:
            raise TenantAccessError("Unauthorized: No shop context available")
        query = query.filter(User.shop_id == actor_shop_id)
    return query.order_by(User.id.asc())


def create_user(
    *,
    actor_role: str,
    actor_shop_id: int | None,
    username: str,
    password: str,
    name: str,
    role: str,
    shop_id: int | None = None,
    email: str | None = None,
    phone: str | None = None,
    actor_user_id: int | None = None,
    bcrypt_rounds: int = 12,
) -> User:
    """
    Create a staff account.

    An OWNER always creates into their own shop; a SUPER_ADMIN must name the
    shop. Raises PasswordValidationError for weak passwords and ConflictError
    for a taken username.
    """
    if role not in ALL_ROLES:
        raise UserManagementError(f"Unknown role: {role}")
    if not can_create_role(actor_role, role):
        raise TenantAccessError(f"{actor_role} cannot create {role} users")

    if actor_role == Role.SUPER_ADMIN:
        if shop_id is None:
            raise UserManagementError("shopId is required")
        target_shop_id = shop_id
    else:
        target_shop_id = actor_shop_id
        if shop_id is not None and shop_id != actor_shop_id:
            raise TenantAccessError("Unauthorized: Resource does not belong to your shop")
    require_shop(target_shop_id)

    username = (username or "").strip()
    if not username:
        raise UserManagementError("username is required")
    if db.session.query(User.id).filter(User.username == username).first() is not None:
        raise ConflictError(f"Username {username} already exists")

    user = User(
        shop_id=target_shop_id,
        username=username,
        name=name,
        email=email,
        phone=phone,
        role=role,
        password_hash=hash_password(password, rounds=bcrypt_rounds),
        is_active=True,
    )
    db.session.add(user)
    db.session.flush()
    audit_service.record(
        shop_id=target_shop_id,
        user_id=actor_user_id,
        action="CREATE",
        module="USERS",
        entity_type="User",
        entity_id=user.id,
        after=user.to_dict(),
    )
    db.session.commit()
    current_app.logger.info("User created: id=%s role=%s shop=%s", user.id, role, target_shop_id)
    return user


def create_super_admin(*, username: str, password: str, name: str, bcrypt_rounds: int = 12) -> User:
    """Bootstrap-only path; used by the CLI."""
    if db.session.query(User.id).filter(User.username == username).first() is not None:
        raise ConflictError(f"Username {username} already exists")
    user = User(
        shop_id=None,
        username=username,
        name=name,
        role=Role.SUPER_ADMIN,
        password_hash=hash_password(password, rounds=bcrypt_rounds),
        is_active=True,
    )
    db.session.add(user)
    db.session.commit()
    return user


def set_user_active(*, actor_role: str, actor_shop_id: int | None, user_id: int, is_active: bool,
                    actor_user_id: int | None = None) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    if actor_role != Role.SUPER_ADMIN and user.shop_id != actor_shop_id:
        raise TenantAccessError("Unauthorized: Resource does not belong to your shop")
    if user.id == actor_user_id:
        raise UserManagementError("You cannot deactivate your own account")

    user.is_active = is_active
    audit_service.record(
        shop_id=user.shop_id,
        user_id=actor_user_id,
        action="UPDATE",
        module="USERS",
        entity_type="User",
        entity_id=user.id,
        after={"isActive": is_active},
    )
    db.session.commit()
    if not is_active:
        revoke_user_sessions(user.id, "User deactivated")
    return user
