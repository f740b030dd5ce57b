"""Tests for the approval gate implementations."""

import json

import httpx
import pytest

from src.config import ApprovalMode
from src.core import ApprovalServiceException, ConfigurationException
from src.triage.infrastructure import (
    ApprovalGateFactory,
    AutoApproveGate,
    MessageMarkerApprovalGate,
    WebhookApprovalGate,
)

WEBHOOK_URL = "https://approvals.example.internal/api/approve"


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestAutoApproveGate:

    async def test_always_approves(self):
        assert await AutoApproveGate().request_approval("confirm backups") is True


class TestMessageMarkerApprovalGate:
    """Approval carried on the first line of the request."""

    async def test_marker_on_first_line(self):
        gate = MessageMarkerApprovalGate("APPROVAL: APPROVED\nvlan trunk down, apply the fix")
        assert await gate.request_approval("confirm") is True

    async def test_marker_inside_first_line(self):
        gate = MessageMarkerApprovalGate("CHG-1234 APPROVAL: APPROVED by NOC\nproceed")
        assert await gate.request_approval("confirm") is True

    async def test_marker_on_later_line_ignored(self):
        gate = MessageMarkerApprovalGate("vlan trunk down, apply the fix\nAPPROVAL: APPROVED")
        assert await gate.request_approval("confirm") is False

    async def test_no_marker(self):
        assert await MessageMarkerApprovalGate("go ahead").request_approval("confirm") is False


class TestWebhookApprovalGate:
    """Approval service over HTTP."""

    async def test_posts_message_and_reads_decision(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"approved": True})

        async with _client(handler) as client:
            gate = WebhookApprovalGate(WEBHOOK_URL, client, correlation_id="abc-123")
            assert await gate.request_approval("confirm backups") is True

        assert seen["url"] == WEBHOOK_URL
        assert seen["body"] == {"message": "confirm backups", "correlation_id": "abc-123"}

    async def test_decline(self):
        async with _client(lambda r: httpx.Response(200, json={"approved": False})) as client:
            assert await WebhookApprovalGate(WEBHOOK_URL, client).request_approval("m") is False

    @pytest.mark.parametrize("response", [
        httpx.Response(500, json={"error": "down"}),
        httpx.Response(200, json={"approved": "yes"}),
        httpx.Response(200, json={"status": "ok"}),
        httpx.Response(200, content=b"not json"),
    ])
    async def test_bad_answers_are_fatal(self, response):
        async with _client(lambda r: response) as client:
            with pytest.raises(ApprovalServiceException):
                await WebhookApprovalGate(WEBHOOK_URL, client).request_approval("m")

    async def test_transport_failure_is_fatal(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler) as client:
            with pytest.raises(ApprovalServiceException):
                await WebhookApprovalGate(WEBHOOK_URL, client).request_approval("m")


class TestApprovalGateFactory:
    """Gate selection by approval mode."""

    def test_auto(self):
        assert isinstance(ApprovalGateFactory(ApprovalMode.AUTO).create("x"), AutoApproveGate)

    def test_message_marker(self):
        gate = ApprovalGateFactory("message_marker").create("APPROVAL: APPROVED\napply")
        assert isinstance(gate, MessageMarkerApprovalGate)

    async def test_webhook_shares_client(self):
        factory = ApprovalGateFactory(ApprovalMode.WEBHOOK, webhook_url=WEBHOOK_URL)
        first = factory.create("x", correlation_id="1")
        second = factory.create("y", correlation_id="2")
        assert isinstance(first, WebhookApprovalGate)
        assert first._client is second._client
        await factory.close()

    def test_webhook_requires_url(self):
        with pytest.raises(ConfigurationException):
            ApprovalGateFactory(ApprovalMode.WEBHOOK)
