"""
Exceptions shared by the pattern demos.

Each demo raises these instead of bare Exception so callers can react to
the failure kind and read the structured details.
"""

from typing import Any, Iterable, Optional


class PatternCatalogException(Exception):
    """Base exception for all catalogue errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class UnsupportedTypeException(PatternCatalogException):
    """Raised when a factory or registry is asked for an unknown kind."""

    def __init__(self, kind: str, value: Any, supported: Optional[Iterable[str]] = None):
        message = f"Unsupported {kind}: {value}"
        supported_list = sorted(supported) if supported else []
        if supported_list:
            message += f" (supported: {', '.join(supported_list)})"
        super().__init__(
            message=message,
            details={"kind": kind, "value": str(value), "supported": supported_list},
        )


class ValidationException(PatternCatalogException):
    """Raised when input validation fails."""

    def __init__(self, field: str, value: Any, reason: str):
        message = f"Validation failed for {field}: {reason}"
        super().__init__(
            message=message,
            details={"field": field, "value": str(value), "reason": reason},
        )


class NotConnectedException(PatternCatalogException):
    """Raised when a resource is used before it is connected."""

    def __init__(self, resource: str):
        super().__init__(
            message=f"Not connected to {resource}", details={"resource": resource}
        )


class RateLimitExceededException(PatternCatalogException):
    """Raised when rate limit is exceeded."""

    def __init__(
        self, limit: int, window_seconds: int, retry_after: Optional[int] = None
    ):
        message = f"Rate limit exceeded: {limit} requests per {window_seconds} seconds"
        if retry_after:
            message += f". Retry after {retry_after} seconds"
        super().__init__(
            message=message,
            details={
                "limit": limit,
                "window_seconds": window_seconds,
                "retry_after": retry_after,
            },
        )


class CircuitBreakerOpenException(PatternCatalogException):
    """Raised when circuit breaker is open (too many failures)."""

    def __init__(
        self, service: str, failure_count: int, retry_after: Optional[int] = None
    ):
        message = f"Circuit breaker open for '{service}' after {failure_count} failures"
        if retry_after:
            message += f". Retry after {retry_after} seconds"
        super().__init__(
            message=message,
            details={
                "service": service,
                "failure_count": failure_count,
                "retry_after": retry_after,
            },
        )


class AccessDeniedException(PatternCatalogException):
    """Raised when a principal lacks the role required for an action."""

    def __init__(
        self,
        principal: str,
        required_role: Optional[str] = None,
        action: Optional[str] = None,
    ):
        message = f"Access denied for '{principal}'"
        if action:
            message += f" on {action}"
        if required_role:
            message += f": requires {required_role}"
        super().__init__(
            message=message,
            details={
                "principal": principal,
                "required_role": required_role,
                "action": action,
            },
        )


class ResourceLockedException(PatternCatalogException):
    """Raised when a resource is locked by another transaction."""

    def __init__(self, resource: str, owner: str):
        super().__init__(
            message=f"{resource} is locked by {owner}",
            details={"resource": resource, "owner": owner},
        )


class ResourceNotFoundException(PatternCatalogException):
    """Raised when a named resource does not exist."""

    def __init__(self, resource: str, identifier: Any):
        super().__init__(
            message=f"{resource} not found: {identifier}",
            details={"resource": resource, "identifier": str(identifier)},
        )


class ExternalServiceException(PatternCatalogException):
    """Raised when a (simulated) external service fails."""

    def __init__(self, service: str, reason: Optional[str] = None):
        message = f"External service '{service}' unavailable"
        if reason:
            message += f": {reason}"
        super().__init__(
            message=message, details={"service": service, "reason": reason}
        )


class InvalidStateTransitionException(PatternCatalogException):
    """Raised when an action is not allowed in the current state."""

    def __init__(self, state: str, action: str):
        super().__init__(
            message=f"Cannot {action} while in state '{state}'",
            details={"state": state, "action": action},
        )


class PaymentException(PatternCatalogException):
    """Raised when a payment cannot be completed."""

    def __init__(self, provider: str, reason: str):
        super().__init__(
            message=f"Payment via {provider} failed: {reason}",
            details={"provider": provider, "reason": reason},
        )


class ConfigurationException(PatternCatalogException):
    """Raised when a component is used without the configuration it needs."""

    def __init__(self, key: str, reason: str):
        super().__init__(
            message=f"Configuration error for {key}: {reason}",
            details={"key": key, "reason": reason},
        )
