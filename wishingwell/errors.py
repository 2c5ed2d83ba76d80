"""
Error taxonomy for the wells API.

Every error carries a stable ``code`` (the string clients match on), the HTTP
status the API layer answers with, and whether retrying the same request can
succeed.
"""

from __future__ import annotations
from typing import Any, Dict


class WellsError(Exception):
    code = "SERVER_UNKNOWN_ERROR"
    http_status = 500
    retryable = False

    def __init__(self, message: str | None = None, **details: Any):
        super().__init__(message or self.code)
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        return {"success": False, "error": self.code, **self.details}


# --- bad input ---


class ValidationError(WellsError):
    code = "INVALID_FIELD"
    http_status = 400
    retryable = True


class NonPositiveAmount(ValidationError):
    code = "USER_DONATED_NEGATIVE_OR_ZERO_MONEY"


# --- conflicts ---


class ConflictError(WellsError):
    code = "CONFLICT"
    http_status = 409


class DuplicateCampaign(ConflictError):
    code = "USER_ALREADY_HAS_WELL"


class DuplicateLocation(ConflictError):
    code = "LOCATION_ALREADY_USED"


class CampaignNotOpen(ConflictError):
    code = "WELL_NOT_OPEN"


class DuplicateCharge(ConflictError):
    code = "CHARGE_ALREADY_RECORDED"


# --- payment gateway ---


class GatewayError(WellsError):
    code = "GATEWAY_ERROR"
    http_status = 502


class CardDeclined(GatewayError):
    code = "CARD_DECLINED"
    http_status = 402


class InvalidSource(GatewayError):
    code = "INVALID_SOURCE"
    http_status = 400


class GatewayUnavailable(GatewayError):
    code = "GATEWAY_UNAVAILABLE"
    http_status = 503
    retryable = True


class GatewayTimeout(GatewayError):
    """The charge may or may not have gone through; never retry blindly."""

    code = "GATEWAY_TIMEOUT"
    http_status = 504
    retryable = True


# --- lookups / auth ---


class NotFoundError(WellsError):
    code = "NOT_FOUND"
    http_status = 404


class CampaignNotFound(NotFoundError):
    code = "WELL_NOT_FOUND"


class ReconciliationTaskNotFound(NotFoundError):
    code = "RECONCILIATION_TASK_NOT_FOUND"


class NotAuthenticatedError(WellsError):
    code = "USER_NOT_AUTHENTICATED"
    http_status = 401


class InternalError(WellsError):
    code = "SERVER_UNKNOWN_ERROR"
    http_status = 500
