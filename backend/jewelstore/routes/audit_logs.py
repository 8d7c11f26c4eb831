# Overview: Flask API route for reading the shop's audit trail.

from flask import Blueprint, g, request

from .. import responses
from ..decorators import require_auth, require_permission
from ..services import audit_service

audit_logs_bp = Blueprint("audit_logs", __name__, url_prefix="/api/audit-logs")


@audit_logs_bp.get("")
@require_auth
@require_permission("AUDIT_VIEW")
def list_audit_logs_route():
    """Query params: module, entityType, entityId, page, pageSize"""
    page, page_size = responses.get_pagination_args()
    try:
        query = audit_service.list_entries(
            g.shop_id,
            module=request.args.get("module"),
            entity_type=request.args.get("entityType"),
            entity_id=request.args.get("entityId", type=int),
        )
        rows, meta = responses.paginate_query(query, page, page_size)
    except Exception:
        return responses.server_error("Failed to list audit logs")

    return responses.success([entry.to_dict() for entry in rows], meta=meta)
