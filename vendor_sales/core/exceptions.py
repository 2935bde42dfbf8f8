from typing import Optional, Dict, Any


class AppException(Exception):
    """Base application exception, rendered as {"error_code", "message", "details"}"""
    status_code: int = 400
    error_code: str = "APP_ERROR"
    default_message: str = "Request could not be processed"

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        if error_code is not None:
            self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class AuthenticationError(AppException):
    """Missing, expired or forged bearer token"""
    status_code = 401
    error_code = "AUTH_ERROR"
    default_message = "A valid bearer token is required"


class AuthorizationError(AppException):
    """Role or vendor ownership check failed"""
    status_code = 403
    error_code = "AUTHZ_ERROR"
    default_message = "Not allowed for this role or vendor"


class NotFoundError(AppException):
    status_code = 404
    error_code = "NOT_FOUND"
    default_message = "Sale, product, commission or batch not found"


class ValidationError(AppException):
    """Rejected input: malformed IMEI, blank rejection reason, empty batch selection"""
    status_code = 422
    error_code = "VALIDATION_ERROR"
    default_message = "Invalid input"


class ConflictError(AppException):
    """State conflicts: terminal sales, already claimed commissions"""
    status_code = 409
    error_code = "CONFLICT"
    default_message = "Record was changed by another operation"


class RiskScoringError(AppException):
    """Risk factor could not be evaluated and fail-open is disabled"""
    status_code = 503
    error_code = "RISK_SCORING_UNAVAILABLE"
    default_message = "Risk assessment unavailable"


class InventoryUnavailableError(AppException):
    """Inventory service unreachable or answering garbage"""
    status_code = 503
    error_code = "INVENTORY_UNAVAILABLE"
    default_message = "Inventory service unavailable"
