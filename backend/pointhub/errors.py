"""
Error taxonomy for the loyalty engine.

NotFoundError            entity id/code/email did not resolve
ValidationError          malformed input (tier cost, quantities, role, patch)
BusinessRuleViolation    well-formed request refused by a rule
ConflictError            lost a race or hit a uniqueness rule

Every error is scoped to one operation; none is fatal to the process.
Plain lookups (get_user, validate_voucher, ...) return None instead of raising.
"""

from __future__ import annotations


class PointHubError(Exception):
    """Base class; carries a stable machine code and optional details."""
    code = "POINTHUB_ERROR"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code, "details": self.details}


class NotFoundError(PointHubError):
    code = "NOT_FOUND"


class ValidationError(PointHubError, ValueError):
    """400-level input problem."""
    code = "VALIDATION_ERROR"


class BusinessRuleViolation(PointHubError):
    code = "BUSINESS_RULE_VIOLATION"


class ConflictError(PointHubError, ValueError):
    """409-level conflict (double consumption, duplicate email, lost race)."""
    code = "CONFLICT"


# -----------------------------------------------------------------------------
# Not found
# -----------------------------------------------------------------------------

class UserNotFound(NotFoundError):
    code = "USER_NOT_FOUND"


class NoActiveUser(NotFoundError):
    code = "NO_ACTIVE_USER"


class OrderNotFound(NotFoundError):
    code = "ORDER_NOT_FOUND"


class VoucherNotFound(NotFoundError):
    code = "VOUCHER_NOT_FOUND"


class ProductNotFound(NotFoundError):
    code = "PRODUCT_NOT_FOUND"


class CampaignNotFound(NotFoundError):
    code = "CAMPAIGN_NOT_FOUND"


# -----------------------------------------------------------------------------
# Validation
# -----------------------------------------------------------------------------

class InvalidTier(ValidationError):
    code = "INVALID_TIER"


# -----------------------------------------------------------------------------
# Business rules
# -----------------------------------------------------------------------------

class InsufficientPoints(BusinessRuleViolation):
    code = "INSUFFICIENT_POINTS"


class VoucherExpired(BusinessRuleViolation):
    code = "VOUCHER_EXPIRED"


class MinSpendNotMet(BusinessRuleViolation):
    code = "MIN_SPEND_NOT_MET"


class CampaignInactive(BusinessRuleViolation):
    code = "CAMPAIGN_INACTIVE"


class InvalidCredentials(BusinessRuleViolation):
    code = "INVALID_CREDENTIALS"


class OrderNotPayable(BusinessRuleViolation):
    code = "ORDER_NOT_PAYABLE"


class OrderNotCancellable(BusinessRuleViolation):
    code = "ORDER_NOT_CANCELLABLE"


# -----------------------------------------------------------------------------
# Conflicts
# -----------------------------------------------------------------------------

class AlreadyUsed(ConflictError):
    code = "VOUCHER_ALREADY_USED"


class EmailAlreadyRegistered(ConflictError):
    code = "EMAIL_ALREADY_REGISTERED"


class VoucherCodeCollision(ConflictError):
    code = "VOUCHER_CODE_COLLISION"
