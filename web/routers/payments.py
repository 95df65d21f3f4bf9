"""Trial checkout endpoints backed by Stripe and Mercado Pago."""

from __future__ import annotations

import json
import logging
from typing import Optional, Union

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from schemas.api.payments import (
    CheckoutErrorResponse,
    CheckoutSessionResponse,
    PaymentsConfigResponse,
    ReturnRoutesSchema,
    SubscriptionPreferenceResponse,
    TrialSessionCreateRequest,
)
from services.payments import (
    CheckoutError,
    CheckoutSettings,
    ProviderChoice,
    SessionOrchestrator,
    SessionResult,
    SubscriptionRequest,
)
from web.deps import get_checkout_settings, get_session_orchestrator

router = APIRouter(prefix="/payments", tags=["Payments"])

logger = logging.getLogger(__name__)

_ERROR_RESPONSES = {
    400: {"model": CheckoutErrorResponse, "description": "Missing field or unknown plan."},
    404: {"model": CheckoutErrorResponse, "description": "Tenant not found."},
    500: {"model": CheckoutErrorResponse, "description": "Provider failure or timeout."},
    503: {"model": CheckoutErrorResponse, "description": "Provider not configured."},
}

_REQUEST_BODY = {
    "requestBody": {
        "content": {"application/json": {"schema": TrialSessionCreateRequest.model_json_schema()}},
        "required": True,
    }
}


async def read_trial_session_body(request: Request) -> Optional[TrialSessionCreateRequest]:
    """Parse the session body leniently; anything but a JSON object counts as missing fields."""
    raw = await request.body()
    if not raw:
        return None
    try:
        data = json.loads(raw)
    except (ValueError, UnicodeDecodeError):
        logger.info("Ignoring malformed checkout body on %s", request.url.path)
        return None
    if not isinstance(data, dict):
        return None
    return TrialSessionCreateRequest.model_validate(data)


async def _create_trial_session(
    payload: Optional[TrialSessionCreateRequest],
    provider: ProviderChoice,
    orchestrator: SessionOrchestrator,
) -> Union[SessionResult, JSONResponse]:
    request = SubscriptionRequest.from_payload(payload.to_payload() if payload else None)
    try:
        return await orchestrator.create_session(request, provider)
    except CheckoutError as exc:
        logger.info("Checkout %s rejected (%s): %s", provider.value, exc.kind, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@router.post(
    "/checkout-session",
    response_model=CheckoutSessionResponse,
    responses=_ERROR_RESPONSES,
    openapi_extra=_REQUEST_BODY,
    summary="Create a Stripe Checkout session with a free trial.",
)
async def create_checkout_session(
    payload: Optional[TrialSessionCreateRequest] = Depends(read_trial_session_body),
    orchestrator: SessionOrchestrator = Depends(get_session_orchestrator),
):
    result = await _create_trial_session(payload, ProviderChoice.STRIPE, orchestrator)
    if isinstance(result, JSONResponse):
        return result
    return CheckoutSessionResponse(
        sessionId=result.session_or_preference_id,
        url=result.redirect_url,
        sessionOrPreferenceId=result.session_or_preference_id,
        redirectUrl=result.redirect_url,
    )


@router.post(
    "/subscription",
    response_model=SubscriptionPreferenceResponse,
    responses=_ERROR_RESPONSES,
    openapi_extra=_REQUEST_BODY,
    summary="Create a Mercado Pago subscription preference with a free trial.",
)
async def create_subscription(
    payload: Optional[TrialSessionCreateRequest] = Depends(read_trial_session_body),
    orchestrator: SessionOrchestrator = Depends(get_session_orchestrator),
):
    result = await _create_trial_session(payload, ProviderChoice.MERCADOPAGO, orchestrator)
    if isinstance(result, JSONResponse):
        return result
    return SubscriptionPreferenceResponse(
        preferenceId=result.session_or_preference_id,
        initPoint=result.redirect_url,
        sessionOrPreferenceId=result.session_or_preference_id,
        redirectUrl=result.redirect_url,
    )


@router.get("/config", response_model=PaymentsConfigResponse, summary="Return client-safe checkout configuration.")
def read_payments_config(settings: CheckoutSettings = Depends(get_checkout_settings)) -> PaymentsConfigResponse:
    routes = settings.return_routes
    return PaymentsConfigResponse(
        stripePublishableKey=settings.stripe_publishable_key,
        mercadoPagoPublicKey=settings.mercadopago_public_key,
        returnRoutes=ReturnRoutesSchema(success=routes.success, failure=routes.failure, pending=routes.pending),
    )


__all__ = ["router"]
