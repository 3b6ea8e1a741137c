#!/usr/bin/env python3
"""Discord webhook notifier for consent events."""

import logging

import requests

from consent_service.config import ConsentConfig
from consent_service.models.consent_event import DeliveryOutcome

logger = logging.getLogger(__name__)


class DiscordNotifier:
    """Post a chat message when a consent is recorded."""

    target = "discord"

    def __init__(self, config: ConsentConfig) -> None:
        self.webhook_url = config.discord_webhook_url
        self.timeout = config.timeout

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url)

    def send_consent_notification(self, *, content: str) -> DeliveryOutcome:
        """Send a consent notification.

        Args:
            content: Message text shown in the channel.

        Returns:
            DeliveryOutcome; attempted is False when no webhook is configured.
        """

        outcome = DeliveryOutcome(target=self.target)
        if not self.enabled:
            return outcome

        outcome.attempted = True
        try:
            response = requests.post(
                self.webhook_url,
                json={"content": content},
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
            outcome.status_code = response.status_code
            response.raise_for_status()
            outcome.delivered = True
        except Exception as e:
            outcome.error = f"{type(e).__name__}: {e}"
            logger.error(f"Discord webhook error: {outcome.error}", exc_info=True)

        return outcome
