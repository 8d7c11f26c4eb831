# Overview: Flask API routes for customers and family members.

from flask import Blueprint, g, request

from .. import responses
from ..decorators import require_auth, require_permission
from ..models import Customer, FamilyMember
from ..services import customer_service
from ..services.customer_service import CUSTOMER_MUTABLE_FIELDS, FAMILY_MEMBER_FIELDS, CustomerError
from ..services.tenant_service import NotFoundError, TenantAccessError
from ..validation import ConflictError, ModelValidationPolicy, ValidationError, validate_payload

CUSTOMER_TYPES = ("RETAIL", "WHOLESALE", "VIP")

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields=set(CUSTOMER_MUTABLE_FIELDS),
    required_on_create={"name", "phone"},
    choices={"customer_type": CUSTOMER_TYPES},
)

FAMILY_MEMBER_POLICY = ModelValidationPolicy(
    writable_fields=set(FAMILY_MEMBER_FIELDS),
    required_on_create={"name", "relation"},
)

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


def _parse_family(raw_members) -> list[dict]:
    if raw_members is None:
        return []
    if not isinstance(raw_members, list):
        raise ValidationError("familyMembers must be a list", field_name="familyMembers")
    return [
        validate_payload(model=FamilyMember, payload=m, policy=FAMILY_MEMBER_POLICY, partial=False)
        for m in raw_members
    ]


@customers_bp.get("")
@require_auth
@require_permission("CUSTOMER_VIEW")
def list_customers_route():
    """Query params: search (name, phone, email), customerType, isActive, page, pageSize"""
    page, page_size = responses.get_pagination_args()
    try:
        query = customer_service.list_customers(
            g.shop_id,
            search=request.args.get("search"),
            customer_type=request.args.get("customerType"),
            is_active=responses.get_bool_arg("isActive"),
        )
        rows, meta = responses.paginate_query(query, page, page_size)
    except TenantAccessError as e:
        return responses.error(str(e), 403, code="FORBIDDEN")
    except Exception:
        return responses.server_error("Failed to list customers")

    return responses.success([c.to_dict(include_family=False) for c in rows], meta=meta)


@customers_bp.post("")
@require_auth
@require_permission("CUSTOMER_CREATE")
def create_customer_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(
            model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False,
            ignore_fields={"familyMembers"},
        )
        members = _parse_family(payload.get("familyMembers"))
        customer = customer_service.create_customer(
            shop_id=g.shop_id, patch=patch, family_members=members, user_id=g.current_user.id
        )
    except ValidationError as e:
        return responses.error(str(e), 400, code="VALIDATION_ERROR", errors=e.errors)
    except ConflictError as e:
        return responses.error(str(e), 409, code="CONFLICT")
    except CustomerError as e:
        return responses.error(str(e), 400, code="VALIDATION_ERROR")
    except TenantAccessError as e:
        return responses.error(str(e), 403, code="FORBIDDEN")
    except Exception:
        return responses.server_error("Failed to create customer")

    return responses.success(customer.to_dict(), 201)


@customers_bp.get("/<int:customer_id>")
@require_auth
@require_permission("CUSTOMER_VIEW")
def get_customer_route(customer_id: int):
    try:
        customer = customer_service.get_customer(g.shop_id, customer_id)
    except NotFoundError as e:
        return responses.error(str(e), 404, code="NOT_FOUND")
    except TenantAccessError as e:
        return responses.error(str(e), 403, code="FORBIDDEN")

    return responses.success(customer.to_dict())


@customers_bp.put("/<int:customer_id>")
@require_auth
@require_permission("CUSTOMER_EDIT")
def update_customer_route(customer_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=True)
        customer = customer_service.update_customer(
            shop_id=g.shop_id, customer_id=customer_id, patch=patch, user_id=g.current_user.id
        )
    except ValidationError as e:
        return responses.error(str(e), 400, code="VALIDATION_ERROR", errors=e.errors)
    except ConflictError as e:
        return responses.error(str(e), 409, code="CONFLICT")
    except NotFoundError as e:
        return responses.error(str(e), 404, code="NOT_FOUND")
    except TenantAccessError as e:
        return responses.error(str(e), 403, code="FORBIDDEN")
    except Exception:
        return responses.server_error("Failed to update customer")

    return responses.success(customer.to_dict())


@customers_bp.delete("/<int:customer_id>")
@require_auth
@require_permission("CUSTOMER_DELETE")
def delete_customer_route(customer_id: int):
    try:
        customer_service.delete_customer(shop_id=g.shop_id, customer_id=customer_id, user_id=g.current_user.id)
    except NotFoundError as e:
        return responses.error(str(e), 404, code="NOT_FOUND")
    except TenantAccessError as e:
        return responses.error(str(e), 403, code="FORBIDDEN")
    except Exception:
        return responses.server_error("Failed to delete customer")

    return responses.success({"id": customer_id, "deleted": True})


@customers_bp.post("/<int:customer_id>/family-members")
@require_auth
@require_permission("CUSTOMER_EDIT")
def add_family_member_route(customer_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        member_patch = validate_payload(
            model=FamilyMember, payload=payload, policy=FAMILY_MEMBER_POLICY, partial=False
        )
        member = customer_service.add_family_member(
            shop_id=g.shop_id, customer_id=customer_id, member=member_patch, user_id=g.current_user.id
        )
    except ValidationError as e:
        return responses.error(str(e), 400, code="VALIDATION_ERROR", errors=e.errors)
    except CustomerError as e:
        return responses.error(str(e), 400, code="VALIDATION_ERROR")
    except NotFoundError as e:
        return responses.error(str(e), 404, code="NOT_FOUND")
    except TenantAccessError as e:
        return responses.error(str(e), 403, code="FORBIDDEN")
    except Exception:
        return responses.server_error("Failed to add family member")

    return responses.success(member.to_dict(), 201)


@customers_bp.delete("/<int:customer_id>/family-members/<int:member_id>")
@require_auth
@require_permission("CUSTOMER_EDIT")
def remove_family_member_route(customer_id: int, member_id: int):
    try:
        customer_service.remove_family_member(
            shop_id=g.shop_id, customer_id=customer_id, member_id=member_id, user_id=g.current_user.id
        )
    except NotFoundError as e:
        return responses.error(str(e), 404, code="NOT_FOUND")
    except TenantAccessError as e:
        return responses.error(str(e), 403, code="FORBIDDEN")
    except Exception:
        return responses.server_error("Failed to remove family member")

    return responses.success({"id": member_id, "deleted": True})
