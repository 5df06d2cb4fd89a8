"""Structured logging for collaborator calls."""

import logging
from typing import Any

from backend.app.tools.executor import CallContext

logger = logging.getLogger(__name__)


class StructuredCollaboratorLogger:
    """Structured logger for collaborator calls."""

    def log_call(
        self,
        ctx: CallContext,
        outcome: str,
        latency_ms: float,
        error_reason: str | None = None,
    ) -> None:
        """Log a collaborator call with structured data."""
        log_data: dict[str, Any] = {
            "plan_id": ctx.plan_id,
            "collaborator": ctx.collaborator,
            "outcome": outcome,
            "latency_ms": round(latency_ms, 2),
        }

        if error_reason:
            log_data["error_reason"] = error_reason

        log_msg = f"Collaborator call: {ctx.collaborator} - {outcome}"

        if outcome == "success":
            logger.info(log_msg, extra={"structured": log_data})
        else:
            logger.warning(log_msg, extra={"structured": log_data})
