"""Provider adapter contract for trial-bearing checkout sessions."""

from __future__ import annotations

from abc import ABC, abstractmethod

from services.plan_catalog_service import PlanDefinition

from .session_types import ProviderChoice, ReturnRoutes, SessionResult


class TrialSessionProvider(ABC):
    """Create a provider-hosted checkout that starts a trial subscription."""

    provider: ProviderChoice

    @abstractmethod
    async def create_trial_session(
        self,
        tenant_id: str,
        plan: PlanDefinition,
        email: str,
        return_routes: ReturnRoutes,
        *,
        idempotency_key: str,
    ) -> SessionResult:
        """Create the provider session and map its native response to a ``SessionResult``.

        Implementations raise ``ProviderCallError`` when the provider rejects the
        call and ``ProviderNotConfiguredError`` when credentials are missing.
        """
