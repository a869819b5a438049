"""Webhook registration.

Makes sure the remote service has an enabled ``operation.complete``
subscription pointing at this bridge before the server starts taking
callbacks.
"""

from __future__ import annotations

from typing import Any, Protocol

import structlog
from pydantic import BaseModel, ConfigDict, Field

from transcript_bridge.config import Settings
from transcript_bridge.webhooks.events import EventType

logger = structlog.get_logger(__name__)


class WebhookService(Protocol):
    """Remote calls the registrar needs."""

    async def list_webhooks(self, webhook: dict[str, Any]) -> dict[str, Any]: ...

    async def add_webhook(self, webhook: dict[str, Any]) -> dict[str, Any]: ...


class WebhookSubscription(BaseModel):
    """A webhook subscription held by the remote service."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str | None = Field(default=None, alias="_id", description="Subscription identifier")
    url: str = Field(..., description="Callback URL")
    owner: str | None = Field(default=None, description="Owning account")
    event: dict[str, Any] = Field(default_factory=dict, description="Event filter")
    states: dict[str, Any] = Field(default_factory=dict, description="Enabled/disabled state")


class WebhookRegistrar:
    """Idempotently ensures a webhook subscription exists.

    The uniqueness key is (owner, event type, URL): an enabled subscription
    with exactly the same URL is reused, anything else leads to a new one.
    """

    def __init__(
        self,
        service: WebhookService,
        settings: Settings,
        *,
        event_type: EventType = EventType.OPERATION_COMPLETE,
    ) -> None:
        self._service = service
        self._settings = settings
        self._event_type = event_type
        self._logger = logger.bind(component="webhook_registrar")

    async def find_webhook(self, url: str) -> WebhookSubscription | None:
        """Find an enabled subscription for ``url``.

        Args:
            url: Callback URL to look for (exact match).

        Returns:
            The matching subscription, or None.
        """
        result = await self._service.list_webhooks(
            {
                "owner": self._settings.owner,
                "event": {"type": self._event_type.value},
                "states": {"enabled": True},
            }
        )

        for raw in result.get("webhooks") or []:
            if raw.get("url") == url:
                return WebhookSubscription.model_validate(raw)
        return None

    async def ensure_webhook(self, url: str) -> WebhookSubscription:
        """Return the subscription for ``url``, creating it if absent.

        Args:
            url: Callback URL the remote service should deliver to.

        Returns:
            Existing or newly created subscription.
        """
        existing = await self.find_webhook(url)
        if existing is not None:
            self._logger.info(
                "webhook_exists",
                webhook_id=existing.id,
                url=url,
            )
            return existing

        result = await self._service.add_webhook(
            {
                "owner": self._settings.owner,
                "event": {"type": self._event_type.value},
                "url": url,
                "secret": self._settings.webhook_secret,
            }
        )
        webhook = WebhookSubscription.model_validate({"url": url, **result["webhook"]})

        self._logger.info(
            "webhook_registered",
            webhook_id=webhook.id,
            url=url,
            event_type=self._event_type.value,
        )
        return webhook
