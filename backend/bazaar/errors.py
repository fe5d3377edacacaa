# Overview: Domain error taxonomy shared by the ledger, alert and QA services.

"""
Every failure raised by the inventory and QA services is a DomainError.

Errors carry a machine-readable ``code`` and a ``details`` dict with enough
structure (counts, field names, current/target state) for the caller to render
a specific message. Nothing in this package swallows them; routes translate
them into HTTP responses.
"""

from __future__ import annotations


class DomainError(Exception):
    """Base class for inventory/QA business failures."""

    code = "domain_error"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "code": self.code,
            "details": self.details,
        }


class NotFound(DomainError):
    code = "not_found"

    def __init__(self, entity: str, entity_id):
        super().__init__(
            f"{entity} {entity_id} not found",
            details={"entity": entity, "id": entity_id},
        )
        self.entity = entity
        self.entity_id = entity_id


class InsufficientStock(DomainError):
    """Requested quantity exceeds what is on hand."""

    code = "insufficient_stock"

    def __init__(
        self,
        *,
        product_id: int,
        available: int,
        requested: int,
        product_name: str | None = None,
        items: list[dict] | None = None,
    ):
        label = product_name or f"product {product_id}"
        details = {
            "product_id": product_id,
            "available": available,
            "requested": requested,
        }
        if items is not None:
            details["items"] = items
        super().__init__(
            f"Insufficient stock for {label}. available: {available}, requested: {requested}",
            details=details,
        )
        self.product_id = product_id
        self.available = available
        self.requested = requested


class MissingField(DomainError):
    """A mandatory justification or attribute was empty."""

    code = "missing_field"

    def __init__(self, field: str, message: str | None = None):
        super().__init__(message or f"{field} is required", details={"field": field})
        self.field = field


class MissingReason(MissingField):
    code = "missing_reason"

    def __init__(self, field: str = "notes", message: str | None = None):
        super().__init__(field, message or f"A reason is required ({field} must not be empty)")


class MissingLogistics(MissingField):
    code = "missing_logistics"

    def __init__(self, field: str = "logistics_method"):
        super().__init__(field, "Logistics method is required")


class InvalidQuantity(DomainError):
    code = "invalid_quantity"

    def __init__(self, field: str, value, message: str | None = None):
        super().__init__(
            message or f"{field} must be greater than 0",
            details={"field": field, "value": value},
        )


class InvalidChoice(DomainError):
    code = "invalid_choice"

    def __init__(self, field: str, value, allowed):
        allowed = sorted(allowed)
        super().__init__(
            f"{field} must be one of: {', '.join(allowed)}",
            details={"field": field, "value": value, "allowed": allowed},
        )


class InvalidTransition(DomainError):
    """A QA operation was attempted from a state that does not permit it."""

    code = "invalid_transition"

    def __init__(
        self,
        *,
        assessment_id: int | None,
        current_status: str,
        attempted_status: str,
        required_status: list[str] | None = None,
    ):
        if required_status:
            must_be = " or ".join(required_status)
            message = (
                f"Cannot move assessment {assessment_id} to {attempted_status}: "
                f"current status is {current_status}, must be {must_be}"
            )
        else:
            message = (
                f"Cannot move assessment {assessment_id} to {attempted_status} "
                f"from {current_status}"
            )
        super().__init__(
            message,
            details={
                "assessment_id": assessment_id,
                "current_status": current_status,
                "attempted_status": attempted_status,
                "required_status": required_status or [],
            },
        )
        self.current_status = current_status
        self.attempted_status = attempted_status


class AssessmentConflict(DomainError):
    code = "assessment_conflict"

    def __init__(self, product_id: int, active_assessment_id: int, status: str):
        super().__init__(
            f"Product {product_id} already has an active QA assessment "
            f"({active_assessment_id}, {status})",
            details={
                "product_id": product_id,
                "assessment_id": active_assessment_id,
                "status": status,
            },
        )


class ExternalWriteFailure(DomainError):
    """The backing store rejected a write after local validation passed."""

    code = "external_write_failure"

    def __init__(self, entity: str, entity_id, field: str, cause: Exception | None = None):
        super().__init__(
            f"Failed to write {field} for {entity} {entity_id}",
            details={"entity": entity, "id": entity_id, "field": field},
        )
        self.__cause__ = cause


class LedgerInvariantError(RuntimeError):
    """
    Internal invariant violation in the stock ledger.

    Not a DomainError: it signals a programming error (e.g. a checkout line
    failing after the whole order was validated) and must never be retried.
    """


# HTTP status per error kind; unlisted DomainErrors are input problems (400)
_HTTP_STATUS = {
    NotFound: 404,
    InsufficientStock: 409,
    AssessmentConflict: 409,
    ExternalWriteFailure: 502,
}


def http_status(exc: DomainError) -> int:
    for kind, status in _HTTP_STATUS.items():
        if isinstance(exc, kind):
            return status
    return 400
