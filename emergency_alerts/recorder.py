"""
Persists the outcome of every dispatch attempt.

The record store is secondary telemetry: a failed write is logged and
counted, never raised to the dispatch caller.
"""

import logging
from typing import Optional

from sqlalchemy.orm import sessionmaker

from emergency_alerts.gateway import DeliveryResult
from emergency_alerts.metrics import record_store_failure
from emergency_alerts.schemas import AlertRequest
from emergency_alerts.storage import add_alert_record

logger = logging.getLogger(__name__)

STATUS_SENT = "sent"
STATUS_FAILED = "failed"


class OutcomeRecorder:
    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def record(
        self,
        outcome: DeliveryResult,
        request: AlertRequest,
        composed: Optional[str],
    ) -> None:
        """Write exactly one alert record reflecting the outcome (best-effort)."""
        if outcome.ok:
            fields = {
                "status": STATUS_SENT,
                "gateway_message_id": outcome.message_id,
                "gateway_status": outcome.status,
            }
        else:
            fields = {
                "status": STATUS_FAILED,
                "error": outcome.reason or "Unknown delivery failure",
            }

        # Closing the session rolls back anything left uncommitted
        try:
            with self.session_factory() as db:
                add_alert_record(
                    db,
                    phone_number=request.phone_number,
                    message=composed,
                    **fields,
                )
        except Exception:
            record_store_failure()
            logger.exception(
                f"Failed to record {fields['status']} alert for {request.phone_number}"
            )
