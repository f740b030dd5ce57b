"""
Approval Gates
==============

Implementations of the human-approval checkpoint consulted before any
remediation content is produced.

- AutoApproveGate: always approves. Placeholder for local use, not a policy.
- MessageMarkerApprovalGate: approves when the request's first line carries
  the ``APPROVAL: APPROVED`` marker.
- WebhookApprovalGate: asks an external approval service over HTTP.
"""

from typing import Optional

import httpx

from src.config import ApprovalMode, Settings
from src.core import ApprovalServiceException, ConfigurationException
from src.shared.infrastructure.logging import get_logger
from src.triage.application import IApprovalGate
from src.triage.domain import ResponderPromptBuilder

logger = get_logger(__name__)


class AutoApproveGate(IApprovalGate):
    """Approves every request."""

    async def request_approval(self, message: str) -> bool:
        logger.warning("Auto-approving change request", extra={"approval_message": message})
        return True


class MessageMarkerApprovalGate(IApprovalGate):
    """
    Approval carried in the request itself.

    The operator approves a change by starting the message with a line
    containing ``APPROVAL: APPROVED``. Built per request.
    """

    def __init__(self, raw_text: str, marker: str = ResponderPromptBuilder.APPROVAL_MARKER):
        self._raw_text = raw_text or ""
        self._marker = marker

    async def request_approval(self, message: str) -> bool:
        lines = self._raw_text.strip().splitlines()
        first_line = lines[0] if lines else ""
        return self._marker in first_line


class WebhookApprovalGate(IApprovalGate):
    """
    Approval gate backed by an external approval service.

    POSTs ``{"message", "correlation_id"}`` and expects
    ``{"approved": true|false}``. Any failure to obtain a decision is fatal
    for the request; it is never read as approval.
    """

    def __init__(
        self,
        url: str,
        client: httpx.AsyncClient,
        correlation_id: Optional[str] = None
    ):
        self._url = url
        self._client = client
        self._correlation_id = correlation_id

    async def request_approval(self, message: str) -> bool:
        payload = {"message": message, "correlation_id": self._correlation_id}

        try:
            response = await self._client.post(self._url, json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise ApprovalServiceException(
                f"Approval service returned {e.response.status_code}",
                {"url": self._url}
            ) from e
        except httpx.HTTPError as e:
            raise ApprovalServiceException(
                f"Approval service unreachable: {str(e)}",
                {"url": self._url}
            ) from e
        except ValueError as e:
            raise ApprovalServiceException(
                "Approval service returned invalid JSON",
                {"url": self._url}
            ) from e

        approved = data.get("approved") if isinstance(data, dict) else None
        if not isinstance(approved, bool):
            raise ApprovalServiceException(
                "Approval response missing boolean 'approved'",
                {"url": self._url}
            )

        logger.info(
            "Approval service answered",
            extra={"correlation_id": self._correlation_id, "approved": approved}
        )
        return approved


class ApprovalGateFactory:
    """
    Builds the configured approval gate for each request.

    Holds the shared HTTP client used by webhook gates.
    """

    def __init__(
        self,
        mode: ApprovalMode,
        webhook_url: Optional[str] = None,
        timeout_seconds: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        self.mode = ApprovalMode(mode)
        self._webhook_url = webhook_url
        self._timeout = timeout_seconds
        self._http_client = http_client

        if self.mode == ApprovalMode.WEBHOOK and not webhook_url:
            raise ConfigurationException(
                "approval_webhook_url is required when triage_approval_mode is 'webhook'"
            )

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
        return self._http_client

    def create(self, raw_text: str, correlation_id: Optional[str] = None) -> IApprovalGate:
        if self.mode == ApprovalMode.MESSAGE_MARKER:
            return MessageMarkerApprovalGate(raw_text)
        if self.mode == ApprovalMode.WEBHOOK:
            return WebhookApprovalGate(self._webhook_url, self._get_client(), correlation_id)
        return AutoApproveGate()

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None


def build_approval_gate_factory(config: Settings) -> ApprovalGateFactory:
    """Approval gate factory for the configured ``triage_approval_mode``."""
    return ApprovalGateFactory(
        mode=ApprovalMode(config.triage_approval_mode),
        webhook_url=config.approval_webhook_url,
        timeout_seconds=config.approval_timeout_seconds
    )
