"""Logging setup and structured answer logging."""

import logging
from typing import Any

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once for the process."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


class StructuredAnswerLogger:
    """Structured logger for answer orchestrator state transitions."""

    def log_transition(
        self,
        answer_id: str,
        conversation_id: str | None,
        state: str,
        latency_ms: float | None = None,
        **details: Any,
    ) -> None:
        """Log a state transition with structured data."""
        log_data: dict[str, Any] = {
            "answer_id": answer_id,
            "conversation_id": conversation_id,
            "state": state,
        }
        if latency_ms is not None:
            log_data["latency_ms"] = round(latency_ms, 2)
        log_data.update(details)

        log_msg = f"Answer {answer_id}: {state}"

        if state in ("failed", "no_context"):
            logger.warning(log_msg, extra={"structured": log_data})
        else:
            logger.info(log_msg, extra={"structured": log_data})
