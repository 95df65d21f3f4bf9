"""Client-side trigger that starts a trial checkout exactly once per intent."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

import httpx

from core.logging import get_logger

logger = get_logger(__name__)

_DEFAULT_ERROR = "Failed to start checkout"
_REDIRECT_KEYS = ("redirectUrl", "url", "initPoint")


class InitiatorState(str, Enum):
    IDLE = "idle"
    REQUESTING = "requesting"
    REDIRECTING = "redirecting"


@dataclass(frozen=True, slots=True)
class Redirect:
    """Terminal instruction for the hosting shell to navigate the browser to ``url``."""

    url: str


class CheckoutInitiator:
    """Single-flight session request for one tenant/plan/email intent.

    ``submit`` is ignored while a request is in flight and after a redirect has
    been issued. A failed request returns the initiator to ``IDLE`` with the
    server's message in ``error`` so the user can retry.
    """

    def __init__(
        self,
        endpoint_url: str,
        *,
        tenant_id: str,
        plan: str,
        email: str,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.endpoint_url = endpoint_url
        self.tenant_id = tenant_id
        self.plan = plan
        self.email = email
        self._timeout = timeout
        self._transport = transport
        self.state = InitiatorState.IDLE
        self.error: Optional[str] = None

    @property
    def enabled(self) -> bool:
        return self.state is InitiatorState.IDLE

    async def submit(self) -> Optional[Redirect]:
        if not self.enabled:
            logger.debug("Ignoring checkout submit while %s", self.state.value)
            return None
        self.state = InitiatorState.REQUESTING
        self.error = None
        try:
            url = await self._request_session()
        except _InitiatorFailure as exc:
            self.error = str(exc)
            self.state = InitiatorState.IDLE
            return None
        except Exception:
            logger.exception("Checkout request to %s failed unexpectedly", self.endpoint_url)
            self.error = _DEFAULT_ERROR
            self.state = InitiatorState.IDLE
            return None
        self.state = InitiatorState.REDIRECTING
        return Redirect(url=url)

    def dismiss_error(self) -> None:
        self.error = None

    async def _request_session(self) -> str:
        body = {"tenantId": self.tenant_id, "plan": self.plan, "email": self.email}
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(self.endpoint_url, json=body)
        except httpx.TimeoutException as exc:
            logger.warning("Checkout request timed out: %s", exc)
            raise _InitiatorFailure("The request timed out. Please try again.") from exc
        except httpx.HTTPError as exc:
            logger.warning("Checkout request failed: %s", exc)
            raise _InitiatorFailure(_DEFAULT_ERROR) from exc

        payload = _json_or_empty(response)
        if response.status_code >= 400:
            message = payload.get("error")
            raise _InitiatorFailure(message if isinstance(message, str) and message else _DEFAULT_ERROR)

        for key in _REDIRECT_KEYS:
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value
        raise _InitiatorFailure(_DEFAULT_ERROR)


class _InitiatorFailure(RuntimeError):
    pass


def _json_or_empty(response: httpx.Response) -> Dict[str, Any]:
    try:
        payload = response.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}


__all__ = ["CheckoutInitiator", "InitiatorState", "Redirect"]
