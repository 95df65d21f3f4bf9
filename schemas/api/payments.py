"""Payment API schemas."""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class TrialSessionCreateRequest(BaseModel):
    """Body accepted by both session-creation endpoints.

    Fields are optional at the schema level so missing values produce the
    checkout ``missing_field`` error rather than a generic 422.
    """

    model_config = ConfigDict(extra="ignore")

    tenantId: Optional[Any] = Field(default=None, description="Tenant identifier starting the trial.")
    plan: Optional[Any] = Field(default=None, description="Plan identifier (starter, pro, business, enterprise).")
    email: Optional[Any] = Field(default=None, description="Customer email forwarded to the provider.")

    def to_payload(self) -> Dict[str, Any]:
        return {"tenantId": self.tenantId, "plan": self.plan, "email": self.email}


class CheckoutSessionResponse(BaseModel):
    sessionId: str = Field(..., description="Stripe Checkout session id.")
    url: str = Field(..., description="Hosted Stripe Checkout URL.")
    provider: str = "stripe"
    sessionOrPreferenceId: str
    redirectUrl: str


class SubscriptionPreferenceResponse(BaseModel):
    preferenceId: str = Field(..., description="Mercado Pago preapproval id.")
    initPoint: str = Field(..., description="Hosted Mercado Pago checkout URL.")
    provider: str = "mercadopago"
    sessionOrPreferenceId: str
    redirectUrl: str


class CheckoutErrorResponse(BaseModel):
    error: str
    code: Optional[str] = None


class ReturnRoutesSchema(BaseModel):
    success: str
    failure: str
    pending: str


class PaymentsConfigResponse(BaseModel):
    stripePublishableKey: Optional[str] = Field(default=None, description="Publishable key for Stripe.js.")
    mercadoPagoPublicKey: Optional[str] = Field(default=None, description="Public key for the Mercado Pago SDK.")
    returnRoutes: ReturnRoutesSchema


class PaymentOutcomeResponse(BaseModel):
    outcome: str = Field(..., description="One of success, failed, pending.")
    title: str
    message: str
