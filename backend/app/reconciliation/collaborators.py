"""Collaborator capabilities consumed by the reconciliation engine.

Each capability is one async call returning a response model, or None when
nothing usable came back. The engine never sees which backend served it.
"""

import logging
from typing import Protocol

from backend.app.config import Settings, get_settings
from backend.app.models.services import (
    CostEstimateRequest,
    CostEstimateResponse,
    GapScheduleRequest,
    GapScheduleResponse,
    TransportCostRequest,
    TransportCostResponse,
)

logger = logging.getLogger(__name__)


class CollaboratorClient(Protocol):
    """Protocol for collaborator implementations."""

    async def fill_gap(self, request: GapScheduleRequest) -> GapScheduleResponse | None:
        """Suggest filler items for an unscheduled window."""
        ...

    async def estimate_costs(self, request: CostEstimateRequest) -> CostEstimateResponse | None:
        """Estimate costs for a batch of activities (index-aligned)."""
        ...

    async def estimate_transport(
        self, request: TransportCostRequest
    ) -> TransportCostResponse | None:
        """Price local transport along an ordered route."""
        ...


def get_collaborator_client(settings: Settings | None = None) -> CollaboratorClient:
    """Factory: HTTP service if configured, then OpenAI, then deterministic stub."""
    from backend.app.adapters.services import HttpServicesClient
    from backend.app.llm.client import DeterministicStubClient, OpenAIClient

    settings = settings or get_settings()

    if settings.collaborator_base_url:
        logger.info("Using HTTP collaborator services at %s", settings.collaborator_base_url)
        return HttpServicesClient(base_url=settings.collaborator_base_url)

    api_key = settings.openai_api_key
    if api_key and api_key.get_secret_value():
        logger.info("Using OpenAI client for collaborator calls")
        return OpenAIClient(api_key=api_key.get_secret_value(), model=settings.openai_model)

    logger.warning("No collaborator configured, using deterministic stub client")
    return DeterministicStubClient()
