"""Upstream plan ingestion."""

import logging
import time
from typing import Any

from pydantic import ValidationError

from backend.app.models.plan import Plan
from backend.app.reconciliation.errors import PlanStructureError
from backend.app.reconciliation.normalizer import settle_plan

logger = logging.getLogger(__name__)


def generate_plan_id() -> str:
    return f"plan-{int(time.time() * 1000)}"


def ingest_plan(raw: Any) -> Plan:
    """Validate a raw upstream plan and return it settled.

    Raises:
        PlanStructureError: Not an object, or missing/contradictory
            days, items or budget
    """
    if not isinstance(raw, dict):
        raise PlanStructureError(f"plan must be a JSON object, got {type(raw).__name__}")

    data = dict(raw)
    if not data.get("planId") and not data.get("plan_id"):
        data["planId"] = generate_plan_id()
        logger.info("Assigned generated id %s to incoming plan", data["planId"])

    try:
        plan = Plan.model_validate(data)
    except ValidationError as e:
        errors = e.errors(include_url=False, include_context=False, include_input=False)
        raise PlanStructureError(f"malformed plan ({e.error_count()} error(s))", errors) from e

    return settle_plan(plan)
