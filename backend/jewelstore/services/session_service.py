# Overview: Service-layer operations for session; encapsulates business logic and database work.

"""
Session Token Management Service

Tokens are random, hashed in the database, and time-limited.

MULTI-TENANT: Sessions capture shop_id and role at creation time. This
establishes the tenant context for every authenticated request without
repeated lookups, and a role change only takes effect on the next login.

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage
- Absolute timeout from SESSION_TTL_HOURS
- Revocable on logout
- Sessions of a deactivated user or shop stop validating
"""

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import SessionToken, User
from ..permissions import Role
from ..time_utils import utcnow


@dataclass
class SessionContext:
    """
    Complete session context returned by validate_session.

    shop_id is None only for SUPER_ADMIN sessions.
    """
    user: User
    session: SessionToken
    shop_id: int | None
    role: str


def generate_token() -> str:
    """64-character hex string (32 bytes of entropy), sent to the client only."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    Hash token for database storage using SHA-256.

    Tokens are already high-entropy, so a fast hash is enough.
    """
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def create_session(
    user: User,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[SessionToken, str]:
    """
    Create new session token for user with tenant context.

    Returns (session_record, plaintext_token). The database stores only the
    hash.
    """
    if user.role != Role.SUPER_ADMIN and not user.shop_id:
        raise ValueError("User must belong to a shop")

    plaintext_token = generate_token()
    now = utcnow()
    ttl = timedelta(hours=current_app.config.get("SESSION_TTL_HOURS", 24))

    session = SessionToken(
        user_id=user.id,
        shop_id=user.shop_id,
        role=user.role,
        token_hash=hash_token(plaintext_token),
        last_used_at=now,
        expires_at=now + ttl,
        user_agent=(user_agent or "")[:255] or None,
        ip_address=ip_address,
        is_revoked=False,
    )

    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def _revoke(session: SessionToken, reason: str) -> None:
    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason
    db.session.commit()


def validate_session(token: str) -> SessionContext | None:
    """
    Validate session token and return SessionContext if valid.

    Returns None if:
    - Token is unknown, expired, or revoked
    - User account is deactivated
    - The user's shop is deactivated or deleted
    """
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()

    if not session:
        return None

    now = utcnow()
    if session.expires_at < now:
        return None

    user = session.user
    if not user or not user.is_active:
        _revoke(session, "User account deactivated")
        return None

    if session.role != Role.SUPER_ADMIN:
        shop = session.shop
        if not shop or not shop.is_active or shop.deleted_at is not None:
            _revoke(session, "Shop deactivated")
            return None

    session.last_used_at = now
    db.session.commit()

    return SessionContext(
        user=user,
        session=session,
        shop_id=session.shop_id,
        role=session.role,
    )


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """Revoke a session by its plaintext token. Returns False if not found."""
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()
    if not session:
        return False
    _revoke(session, reason)
    return True


def revoke_user_sessions(user_id: int, reason: str) -> int:
    """Revoke every open session for a user. Returns how many were revoked."""
    now = utcnow()
    sessions = db.session.query(SessionToken).filter_by(user_id=user_id, is_revoked=False).all()
    for s in sessions:
        s.is_revoked = True
        s.revoked_at = now
        s.revoked_reason = reason
    db.session.commit()
    return len(sessions)
