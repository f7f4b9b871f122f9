"""
Alert dispatch pipeline.

    RECEIVED -> VALIDATED -> COMPOSED -> DELIVERED{sent|failed} -> RECORDED

Validation failures raise InvalidArgument before anything is sent or written.
Once delivery has been attempted exactly one record is written, whatever
the outcome, and only then is a delivery failure raised as Internal.
"""

import logging
from collections.abc import Mapping
from typing import Any, Union

from pydantic import ValidationError

from emergency_alerts.composer import compose_message
from emergency_alerts.errors import InvalidArgument, Internal
from emergency_alerts.gateway import DeliveryResult, SmsGatewayClient
from emergency_alerts.recorder import OutcomeRecorder
from emergency_alerts.schemas import AlertRequest, DispatchResponse

logger = logging.getLogger(__name__)

REQUIRED_FIELDS_MESSAGE = "Phone number and message are required"


def _describe_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"])
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)


def parse_alert_request(payload: Union[AlertRequest, Mapping, None]) -> AlertRequest:
    """
    Validate a raw payload into an AlertRequest.

    Raises:
        InvalidArgument: payload absent, not an object, badly typed, or
            missing phoneNumber/message
    """
    if payload is None:
        raise InvalidArgument("No data received")

    if isinstance(payload, AlertRequest):
        request = payload
    elif isinstance(payload, Mapping):
        try:
            request = AlertRequest.model_validate(dict(payload))
        except ValidationError as e:
            raise InvalidArgument(f"Invalid alert payload: {_describe_validation_error(e)}")
    else:
        raise InvalidArgument("Alert payload must be a JSON object")

    phone_number = (request.phone_number or "").strip()
    message = (request.message or "").strip()
    if not phone_number or not message:
        logger.warning(
            "Validation failed",
            extra={"has_phone_number": bool(phone_number), "has_message": bool(message)},
        )
        raise InvalidArgument(REQUIRED_FIELDS_MESSAGE)

    # The trimmed number is what gets sent and recorded
    return request.model_copy(update={"phone_number": phone_number})


class AlertDispatchPipeline:
    """
    Sole write-side entry point. Holds no per-request state, so one instance
    serves concurrent requests.

    Args:
        gateway: client used for the single outbound delivery call
        recorder: writes the outcome record
        from_number: sender identity passed to the gateway
    """

    def __init__(self, gateway: SmsGatewayClient, recorder: OutcomeRecorder, from_number: str):
        self.gateway = gateway
        self.recorder = recorder
        self.from_number = from_number

    def dispatch(self, payload: Any) -> DispatchResponse:
        request = parse_alert_request(payload)

        composed = compose_message(request)
        logger.info(f"Sending SMS to {request.phone_number}")

        try:
            outcome = self.gateway.send(request.phone_number, self.from_number, composed)
        except Exception as e:
            # Any failure here still ends as a recorded attempt
            logger.exception("Unexpected error from gateway client")
            outcome = DeliveryResult.failed(str(e) or e.__class__.__name__)

        self.recorder.record(outcome, request, composed)

        if not outcome.ok:
            logger.error(
                f"SMS to {request.phone_number} failed: {outcome.reason}",
                extra={"gateway_http_status": outcome.http_status},
            )
            raise Internal(f"SMS failed: {outcome.reason}")

        logger.info(f"SMS sent to {request.phone_number}: {outcome.message_id}")
        return DispatchResponse(
            success=True,
            message_id=outcome.message_id,
            status=outcome.status,
        )
