from __future__ import annotations

from dataclasses import dataclass, field


class ValidationError(ValueError):
    """400-level input problem."""


INT = "int"
STR = "str"
LIST = "list"


@dataclass(frozen=True)
class PayloadPolicy:
    """
    Central policy layer:
    - fields: what clients are allowed to send, with the expected kind
      (security boundary; anything else is rejected)
    - required: fields that must be present and non-null
    - max_lengths: optional String limits matching the column sizes
    """
    fields: dict[str, str]
    required: set[str] = field(default_factory=set)
    max_lengths: dict[str, int] = field(default_factory=dict)


def _coerce_int(key: str, value):
    # Strict: reject floats, booleans and scientific notation
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        if "e" in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        if "." in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def _coerce_value(key: str, kind: str, value):
    if kind == INT:
        return _coerce_int(key, value)
    if kind == LIST:
        if not isinstance(value, list):
            raise ValidationError(f"{key} must be a list")
        return value
    # Strings; numbers are accepted as text, objects and arrays are not
    if isinstance(value, (dict, list)):
        raise ValidationError(f"{key} must be a string")
    return str(value).strip()


def validate_payload(*, payload, policy: PayloadPolicy) -> dict:
    """
    Validates + normalizes incoming JSON against a policy allowlist.

    Returns a cleaned dict holding only the allowed fields that were sent.
    Emptiness of free-text fields is left to the services, which own the
    domain-specific error (MissingReason, MissingLogistics, ...).
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    missing = sorted(f for f in policy.required if payload.get(f) is None)
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    for k in payload.keys():
        if k not in policy.fields:
            raise ValidationError(f"Field not allowed: {k}")

    cleaned: dict = {}
    for k, raw in payload.items():
        if raw is None:
            cleaned[k] = None
            continue

        val = _coerce_value(k, policy.fields[k], raw)

        limit = policy.max_lengths.get(k)
        if limit and isinstance(val, str) and len(val) > limit:
            raise ValidationError(f"{k} exceeds max length {limit}")

        cleaned[k] = val

    return cleaned


def validate_checkout_items(items: list) -> list[dict]:
    """Each line must be {"product_id": int, "quantity": int}."""
    if not items:
        raise ValidationError("items must contain at least one line")
    lines = []
    for position, item in enumerate(items, start=1):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{position}] must be an object")
        unknown = set(item) - {"product_id", "quantity"}
        if unknown:
            raise ValidationError(f"items[{position}]: field not allowed: {', '.join(sorted(unknown))}")
        if item.get("product_id") is None or item.get("quantity") is None:
            raise ValidationError(f"items[{position}] requires product_id and quantity")
        lines.append({
            "product_id": _coerce_int(f"items[{position}].product_id", item["product_id"]),
            "quantity": _coerce_int(f"items[{position}].quantity", item["quantity"]),
        })
    return lines


def parse_limit(raw, *, default: int | None = None) -> int | None:
    """Query-string limit: absent -> default, otherwise a positive integer."""
    if raw is None or raw == "":
        return default
    value = _coerce_int("limit", raw)
    if value <= 0:
        raise ValidationError("limit must be greater than 0")
    return value
