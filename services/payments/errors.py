"""Error taxonomy for trial checkout session creation."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import status

ERROR_MISSING_FIELD = "missing_field"
ERROR_UNKNOWN_PLAN = "unknown_plan"
ERROR_TENANT_NOT_FOUND = "tenant_not_found"
ERROR_CREATION_FAILED = "creation_failed"
ERROR_TIMEOUT = "timeout"
ERROR_NOT_CONFIGURED = "not_configured"
ERROR_REGISTRY_UNAVAILABLE = "registry_unavailable"


class CheckoutError(RuntimeError):
    """Base class for failures returned to checkout callers.

    ``kind`` is the stable machine-readable reason and ``message`` is safe to
    show to the end user.
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, kind: str, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message

    def to_payload(self) -> Dict[str, str]:
        return {"error": self.message, "code": self.kind}


class ValidationError(CheckoutError):
    status_code = status.HTTP_400_BAD_REQUEST

    @classmethod
    def missing_field(cls) -> "ValidationError":
        return cls(ERROR_MISSING_FIELD, "Missing required fields: tenantId, plan, email")

    @classmethod
    def unknown_plan(cls, plan: str) -> "ValidationError":
        return cls(ERROR_UNKNOWN_PLAN, f"Invalid plan: {plan}")


class NotFoundError(CheckoutError):
    status_code = status.HTTP_404_NOT_FOUND

    @classmethod
    def tenant_not_found(cls) -> "NotFoundError":
        return cls(ERROR_TENANT_NOT_FOUND, "Tenant not found")


class ProviderError(CheckoutError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    @classmethod
    def creation_failed(cls, provider_label: str) -> "ProviderError":
        return cls(ERROR_CREATION_FAILED, f"{provider_label} could not create the checkout session. Please try again.")

    @classmethod
    def timeout(cls, provider_label: str) -> "ProviderError":
        return cls(ERROR_TIMEOUT, f"{provider_label} did not respond in time. Please try again.")

    @classmethod
    def not_configured(cls, provider_label: str) -> "ProviderError":
        error = cls(ERROR_NOT_CONFIGURED, f"{provider_label} checkout is not available right now.")
        error.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return error


class ServiceError(CheckoutError):
    """Failure of an internal dependency (tenant database) before any provider call."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    @classmethod
    def registry_unavailable(cls) -> "ServiceError":
        return cls(ERROR_REGISTRY_UNAVAILABLE, "Checkout is temporarily unavailable. Please try again.")


class ProviderCallError(RuntimeError):
    """Raised by provider adapters when the provider rejects or fails a call.

    Carries the raw provider payload for logging only; it never reaches the
    client.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        payload: Optional[Dict[str, Any]] = None,
        timed_out: bool = False,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload or {}
        self.timed_out = timed_out


class ProviderNotConfiguredError(RuntimeError):
    """Raised when a provider's credentials are missing from the environment."""


__all__ = [
    "CheckoutError",
    "ERROR_CREATION_FAILED",
    "ERROR_MISSING_FIELD",
    "ERROR_NOT_CONFIGURED",
    "ERROR_REGISTRY_UNAVAILABLE",
    "ERROR_TENANT_NOT_FOUND",
    "ERROR_TIMEOUT",
    "ERROR_UNKNOWN_PLAN",
    "NotFoundError",
    "ProviderCallError",
    "ProviderError",
    "ProviderNotConfiguredError",
    "ServiceError",
    "ValidationError",
]
