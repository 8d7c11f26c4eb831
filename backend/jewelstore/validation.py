from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import Boolean, Date, DateTime, Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .money import to_decimal
from .time_utils import parse_iso_date, parse_iso_datetime


# Maximum money value: 9,999,999,999.99 (fits Numeric(14, 2))
MAX_AMOUNT = Decimal("9999999999.99")


class ValidationError(ValueError):
    """
    400-level input problem.

    ``errors`` lists {"field", "message"} items when more than one field is
    at fault; a single-field error still carries a one-item list.
    """

    def __init__(self, message: str, errors: list[dict] | None = None, field_name: str | None = None):
        super().__init__(message)
        if errors is None and field_name is not None:
            errors = [{"field": field_name, "message": message}]
        self.errors = errors or []


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate barcode)."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - non_negative_fields: numeric fields that must be >= 0
    - positive_fields: numeric fields that must be > 0
    - choices: allowed values per field (enums)

    Field names are model attribute names (snake_case). Incoming camelCase
    keys are mapped before checking.
    """
    writable_fields: set[str]
    required_on_create: set[str] = field(default_factory=set)
    non_negative_fields: set[str] = field(default_factory=set)
    positive_fields: set[str] = field(default_factory=set)
    choices: dict[str, tuple] = field(default_factory=dict)


_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


def to_snake(key: str) -> str:
    return _CAMEL_RE.sub("_", key).lower()


def to_camel(key: str) -> str:
    head, *rest = key.split("_")
    return head + "".join(part.title() for part in rest)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type
    name = to_camel(col.key)

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped or 'e' in stripped.lower() or '.' in stripped:
                raise ValidationError(f"{name} must be an integer", field_name=name)
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{name} must be an integer", field_name=name)
        raise ValidationError(f"{name} must be an integer", field_name=name)

    # Decimals (weights, money, percentages)
    if isinstance(coltype, Numeric):
        if isinstance(value, bool):
            raise ValidationError(f"{name} must be a number", field_name=name)
        try:
            dec = to_decimal(value)
        except ValueError:
            raise ValidationError(f"{name} must be a number", field_name=name)
        if not dec.is_finite():
            raise ValidationError(f"{name} must be a finite number", field_name=name)
        if abs(dec) > MAX_AMOUNT:
            raise ValidationError(f"{name} is too large", field_name=name)
        return dec

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.lower() in ("true", "false"):
            return value.lower() == "true"
        raise ValidationError(f"{name} must be a boolean", field_name=name)

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{name} must be an ISO-8601 datetime", field_name=name)
            if dt is None:
                raise ValidationError(f"{name} must be an ISO-8601 datetime", field_name=name)
            return dt
        raise ValidationError(f"{name} must be a datetime", field_name=name)

    if isinstance(coltype, Date):
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            try:
                d = parse_iso_date(value)
            except ValueError:
                raise ValidationError(f"{name} must be an ISO-8601 date", field_name=name)
            if d is None:
                raise ValidationError(f"{name} must be an ISO-8601 date", field_name=name)
            return d
        raise ValidationError(f"{name} must be a date", field_name=name)

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
    ignore_fields: set[str] | None = None,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    - sign and enum rules from the policy
    Returns a cleaned patch dict keyed by model attribute name.

    All field problems are collected and raised together as one
    ValidationError.

    ignore_fields: payload keys (camelCase) handled by the caller, such as
    nested collections, which are skipped here.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    ignore = ignore_fields or set()
    data = {to_snake(k): v for k, v in payload.items() if k not in ignore}

    errors: list[dict] = []

    if not partial:
        for f in sorted(policy.required_on_create):
            if data.get(f) is None or data.get(f) == "":
                errors.append({"field": to_camel(f), "message": f"{to_camel(f)} is required"})

    cols = _columns_by_key(model)

    patch: dict = {}

    for k, raw in data.items():
        if k not in policy.writable_fields or k not in cols:
            errors.append({"field": to_camel(k), "message": f"Field not allowed: {to_camel(k)}"})
            continue

        col = cols[k]
        name = to_camel(k)

        if raw is None:
            if not col.nullable:
                if partial or k not in policy.required_on_create:
                    errors.append({"field": name, "message": f"{name} cannot be null"})
                continue
            patch[k] = None
            continue

        try:
            val = _coerce_value(col, raw)
        except ValidationError as e:
            errors.extend(e.errors)
            continue

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                if partial or k not in policy.required_on_create:
                    errors.append({"field": name, "message": f"{name} cannot be blank"})
                continue

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                errors.append({"field": name, "message": f"{name} exceeds max length {col.type.length}"})
                continue

        if k in policy.non_negative_fields and val < 0:
            errors.append({"field": name, "message": f"{name} must be >= 0"})
            continue

        if k in policy.positive_fields and val <= 0:
            errors.append({"field": name, "message": f"{name} must be > 0"})
            continue

        allowed = policy.choices.get(k)
        if allowed and val not in allowed:
            errors.append({"field": name, "message": f"{name} must be one of: {', '.join(allowed)}"})
            continue

        patch[k] = val

    if errors:
        raise ValidationError("Validation failed", errors=errors)

    return patch


def require_fields(payload: dict, *names: str) -> None:
    """Raise a ValidationError listing every missing or blank key."""
    missing = [n for n in names if payload.get(n) in (None, "", [])]
    if missing:
        raise ValidationError(
            "Validation failed",
            errors=[{"field": n, "message": f"{n} is required"} for n in missing],
        )


def parse_decimal_field(payload: dict, name: str, *, required: bool = False, minimum: Decimal | None = None,
                        strictly_positive: bool = False, default=None) -> Decimal | None:
    """Read one numeric key from a JSON body (camelCase name)."""
    raw = payload.get(name)
    if raw is None or raw == "":
        if required:
            raise ValidationError(f"{name} is required", field_name=name)
        return default
    if isinstance(raw, bool):
        raise ValidationError(f"{name} must be a number", field_name=name)
    try:
        value = to_decimal(raw)
    except ValueError:
        raise ValidationError(f"{name} must be a number", field_name=name)
    if not value.is_finite():
        raise ValidationError(f"{name} must be a finite number", field_name=name)
    if strictly_positive and value <= 0:
        raise ValidationError(f"{name} must be > 0", field_name=name)
    if minimum is not None and value < minimum:
        raise ValidationError(f"{name} must be >= {minimum}", field_name=name)
    return value


def parse_int_field(payload: dict, name: str, *, required: bool = False, default=None) -> int | None:
    raw = payload.get(name)
    if raw is None or raw == "":
        if required:
            raise ValidationError(f"{name} is required", field_name=name)
        return default
    if isinstance(raw, bool):
        raise ValidationError(f"{name} must be an integer", field_name=name)
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str) and raw.strip().lstrip("-").isdigit():
        return int(raw.strip())
    raise ValidationError(f"{name} must be an integer", field_name=name)
