"""Return routes the payment providers redirect the browser to after checkout."""

from __future__ import annotations

from fastapi import APIRouter

from schemas.api.payments import PaymentOutcomeResponse
from services.payments.outcome_resolver import describe_outcome

router = APIRouter(prefix="/payment", tags=["Payments"])


@router.get(
    "/{route}",
    response_model=PaymentOutcomeResponse,
    summary="Resolve the terminal checkout state for a provider return route.",
)
def read_payment_outcome(route: str) -> PaymentOutcomeResponse:
    # Provider query parameters (session_id, preapproval_id, ...) are not needed here.
    view = describe_outcome(route)
    return PaymentOutcomeResponse(outcome=view.outcome.value, title=view.title, message=view.message)


__all__ = ["router"]
