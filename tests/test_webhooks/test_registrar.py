"""Tests for webhook registrar module."""

from typing import Any

import pytest

from transcript_bridge.config import Settings
from transcript_bridge.webhooks.registrar import WebhookRegistrar, WebhookSubscription

CALLBACK_URL = "https://bridge.example.com/hooks/se"

# ============================================================================
# Fixtures
# ============================================================================


class FakeWebhookService:
    """In-memory stand-in for the remote webhook API."""

    def __init__(self) -> None:
        self.webhooks: list[dict[str, Any]] = []
        self.list_calls: list[dict[str, Any]] = []
        self.add_calls: list[dict[str, Any]] = []

    async def list_webhooks(self, webhook: dict[str, Any]) -> dict[str, Any]:
        self.list_calls.append(webhook)
        return {
            "webhooks": [
                w
                for w in self.webhooks
                if w["owner"] == webhook["owner"]
                and w["event"] == webhook["event"]
                and w["states"]["enabled"] == webhook["states"]["enabled"]
            ]
        }

    async def add_webhook(self, webhook: dict[str, Any]) -> dict[str, Any]:
        self.add_calls.append(webhook)
        created = {
            "_id": f"wh-{len(self.webhooks) + 1}",
            "states": {"enabled": True},
            **webhook,
        }
        self.webhooks.append(created)
        return {"webhook": created}


@pytest.fixture
def service():
    """Fake remote webhook API."""
    return FakeWebhookService()


@pytest.fixture
def settings():
    """Settings with owner and secret."""
    return Settings(owner="owner-1", webhook_secret="whsec_registrar")


@pytest.fixture
def registrar(service, settings):
    """Create test registrar."""
    return WebhookRegistrar(service, settings)


# ============================================================================
# ensure_webhook Tests
# ============================================================================


class TestEnsureWebhook:
    """Tests for ensure_webhook."""

    @pytest.mark.asyncio
    async def test_creates_when_absent(self, registrar, service):
        """Test a subscription is created when none exists."""
        webhook = await registrar.ensure_webhook(CALLBACK_URL)

        assert isinstance(webhook, WebhookSubscription)
        assert webhook.id == "wh-1"
        assert webhook.url == CALLBACK_URL
        assert service.add_calls == [
            {
                "owner": "owner-1",
                "event": {"type": "operation.complete"},
                "url": CALLBACK_URL,
                "secret": "whsec_registrar",
            }
        ]

    @pytest.mark.asyncio
    async def test_idempotent(self, registrar, service):
        """Test calling twice creates exactly one subscription."""
        first = await registrar.ensure_webhook(CALLBACK_URL)
        second = await registrar.ensure_webhook(CALLBACK_URL)

        assert len(service.add_calls) == 1
        assert len(service.webhooks) == 1
        assert second.id == first.id

    @pytest.mark.asyncio
    async def test_list_filter(self, registrar, service):
        """Test the list call filters by owner, event type and enabled state."""
        await registrar.ensure_webhook(CALLBACK_URL)

        assert service.list_calls[0] == {
            "owner": "owner-1",
            "event": {"type": "operation.complete"},
            "states": {"enabled": True},
        }

    @pytest.mark.asyncio
    async def test_url_must_match_exactly(self, registrar, service):
        """Test a different URL leads to a new subscription."""
        await registrar.ensure_webhook(CALLBACK_URL)
        await registrar.ensure_webhook(CALLBACK_URL + "/")

        assert len(service.add_calls) == 2

    @pytest.mark.asyncio
    async def test_disabled_subscription_not_reused(self, registrar, service):
        """Test a disabled subscription for the same URL is not reused."""
        service.webhooks.append(
            {
                "_id": "wh-old",
                "owner": "owner-1",
                "event": {"type": "operation.complete"},
                "url": CALLBACK_URL,
                "states": {"enabled": False},
            }
        )

        webhook = await registrar.ensure_webhook(CALLBACK_URL)

        assert webhook.id != "wh-old"
        assert len(service.add_calls) == 1


class TestFindWebhook:
    """Tests for find_webhook."""

    @pytest.mark.asyncio
    async def test_find_missing(self, registrar):
        """Test lookup with no subscriptions."""
        assert await registrar.find_webhook(CALLBACK_URL) is None

    @pytest.mark.asyncio
    async def test_find_existing(self, registrar, service):
        """Test lookup of an existing subscription."""
        await registrar.ensure_webhook(CALLBACK_URL)

        found = await registrar.find_webhook(CALLBACK_URL)

        assert found is not None
        assert found.url == CALLBACK_URL
