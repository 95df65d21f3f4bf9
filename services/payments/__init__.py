"""Trial checkout session creation and provider adapters."""

from .base import TrialSessionProvider
from .config import CheckoutSettings, load_checkout_settings
from .errors import CheckoutError, NotFoundError, ProviderError, ServiceError, ValidationError
from .mercadopago_preapproval import MercadoPagoPreapprovalAdapter
from .outcome_resolver import OutcomeState, resolve_outcome
from .session_orchestrator import SessionOrchestrator
from .session_types import ProviderChoice, ReturnRoutes, SessionResult, SubscriptionRequest
from .stripe_checkout import StripeCheckoutAdapter

__all__ = [
    "CheckoutError",
    "CheckoutSettings",
    "MercadoPagoPreapprovalAdapter",
    "NotFoundError",
    "OutcomeState",
    "ProviderChoice",
    "ProviderError",
    "ReturnRoutes",
    "SessionOrchestrator",
    "ServiceError",
    "SessionResult",
    "StripeCheckoutAdapter",
    "SubscriptionRequest",
    "TrialSessionProvider",
    "ValidationError",
    "load_checkout_settings",
    "resolve_outcome",
]
