"""
HTTP client for the outbound SMS gateway (Twilio-compatible REST API).

    POST {base_url}/Accounts/{account_sid}/Messages.json
    Authorization: Basic account_sid:auth_token
    Content-Type: application/x-www-form-urlencoded
    To=...&From=...&Body=...

Every outcome, including timeouts and transport errors, is returned as a
DeliveryResult. Nothing raises past send().
"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GatewayCredentials:
    account_sid: str
    auth_token: str


@dataclass(frozen=True)
class DeliveryResult:
    """Classified gateway response."""
    ok: bool
    message_id: Optional[str] = None
    status: Optional[str] = None
    reason: Optional[str] = None
    http_status: Optional[int] = None

    @classmethod
    def sent(cls, message_id: str, status: Optional[str], http_status: int) -> "DeliveryResult":
        return cls(ok=True, message_id=message_id, status=status, http_status=http_status)

    @classmethod
    def failed(cls, reason: str, http_status: Optional[int] = None) -> "DeliveryResult":
        return cls(ok=False, reason=reason, http_status=http_status)


class SmsGatewayClient:
    """
    Synchronous gateway client. One instance is shared by the application and
    closed on shutdown.

    Args:
        credentials: Basic-auth account identifier and secret
        base_url: API root, e.g. https://api.twilio.com/2010-04-01
        timeout: Seconds before a call is abandoned and reported as failed
        transport: Optional httpx transport (tests use httpx.MockTransport)
    """

    def __init__(
        self,
        credentials: GatewayCredentials,
        base_url: str,
        timeout: float = 5.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.credentials = credentials
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._http_client = httpx.Client(
            timeout=timeout,
            auth=(credentials.account_sid, credentials.auth_token),
            transport=transport,
        )

    @property
    def messages_url(self) -> str:
        return f"{self.base_url}/Accounts/{self.credentials.account_sid}/Messages.json"

    def close(self) -> None:
        """Close HTTP client."""
        if not self._http_client.is_closed:
            self._http_client.close()

    def send(self, to: str, from_: str, body: str) -> DeliveryResult:
        """
        Send one SMS.

        Returns:
            DeliveryResult with ok=True, message_id and status on acceptance,
            or ok=False and a human-readable reason otherwise.
        """
        logger.info(f"Calling gateway API for {to}")

        try:
            response = self._http_client.post(
                self.messages_url,
                data={"To": to, "From": from_, "Body": body},
            )
        except httpx.TimeoutException as e:
            logger.error(f"Gateway request timed out after {self.timeout}s: {e}")
            return DeliveryResult.failed(f"Gateway request timed out after {self.timeout}s")
        except httpx.HTTPError as e:
            logger.error(f"Gateway request failed: {e}")
            return DeliveryResult.failed(f"Gateway request failed: {e}")

        return self._classify(response)

    def _classify(self, response: httpx.Response) -> DeliveryResult:
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if not isinstance(payload, dict):
            payload = {}

        if not response.is_success:
            logger.error(f"Gateway error: HTTP {response.status_code} {payload}")
            if payload.get("message"):
                reason = str(payload["message"])
            elif payload.get("code") is not None:
                reason = f"Gateway API failed with code {payload['code']}"
            else:
                reason = f"Gateway API failed: HTTP {response.status_code}"
            return DeliveryResult.failed(reason, http_status=response.status_code)

        if payload.get("error_code") is not None:
            reason = payload.get("error_message") or f"Gateway rejected message with code {payload['error_code']}"
            logger.error(f"Gateway accepted request but reported error: {payload}")
            return DeliveryResult.failed(str(reason), http_status=response.status_code)

        sid = payload.get("sid")
        if not sid:
            logger.error(f"Gateway response missing message sid: {response.text[:200]}")
            return DeliveryResult.failed(
                "Gateway response did not include a message id",
                http_status=response.status_code,
            )

        logger.info(f"SMS accepted by gateway: {sid}")
        return DeliveryResult.sent(str(sid), payload.get("status"), response.status_code)
