"""HTTP adapter for remote collaborator services.

Posts the collaborator contracts as JSON to a service exposing
``/api/generate-gap-schedule``, ``/api/estimate-activity-cost`` and
``/api/calculate-transport-cost``.
"""

from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from backend.app.models.services import (
    CostEstimateRequest,
    CostEstimateResponse,
    GapScheduleRequest,
    GapScheduleResponse,
    TransportCostRequest,
    TransportCostResponse,
)
from backend.app.reconciliation.errors import CollaboratorError

ResponseT = TypeVar("ResponseT", bound=BaseModel)

GAP_SCHEDULE_PATH = "/api/generate-gap-schedule"
ACTIVITY_COST_PATH = "/api/estimate-activity-cost"
TRANSPORT_COST_PATH = "/api/calculate-transport-cost"


class HttpServicesClient:
    """Collaborator client backed by a remote HTTP service."""

    def __init__(
        self,
        base_url: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = 20.0,
    ) -> None:
        """Initialize adapter.

        Args:
            base_url: Service base URL (no trailing path)
            client: Optional httpx client (for testing with mocks)
            timeout: Per-request timeout in seconds when creating a client
        """
        self._base_url = base_url.rstrip("/")
        self._client = client
        self._timeout = timeout

    async def _post(
        self, path: str, request: BaseModel, response_model: type[ResponseT]
    ) -> ResponseT:
        """POST ``request`` and parse the reply.

        Raises:
            CollaboratorError: On network/HTTP errors or an unparseable body
        """
        body: dict[str, Any] = request.model_dump(mode="json", by_alias=True, exclude_none=True)

        close_client = False
        client = self._client
        if client is None:
            client = httpx.AsyncClient(timeout=self._timeout)
            close_client = True

        try:
            response = await client.post(f"{self._base_url}{path}", json=body)
            response.raise_for_status()
            return response_model.model_validate(response.json())
        except (httpx.HTTPError, ValueError, ValidationError) as e:
            raise CollaboratorError(f"{path} failed: {type(e).__name__}") from e
        finally:
            if close_client:
                await client.aclose()

    async def fill_gap(self, request: GapScheduleRequest) -> GapScheduleResponse | None:
        return await self._post(GAP_SCHEDULE_PATH, request, GapScheduleResponse)

    async def estimate_costs(self, request: CostEstimateRequest) -> CostEstimateResponse | None:
        return await self._post(ACTIVITY_COST_PATH, request, CostEstimateResponse)

    async def estimate_transport(
        self, request: TransportCostRequest
    ) -> TransportCostResponse | None:
        return await self._post(TRANSPORT_COST_PATH, request, TransportCostResponse)
