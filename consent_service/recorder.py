#!/usr/bin/env python3
"""
Consent Recorder - captures client metadata for a consent submission and
forwards it to the Supabase table and the Discord channel
"""

import hashlib
import logging
from typing import List, Mapping, Optional

from consent_service.config import ConsentConfig
from consent_service.models.consent_event import ConsentEvent, DeliveryOutcome, utc_timestamp
from consent_service.tools.discord_notifier import DiscordNotifier
from consent_service.tools.supabase_tools import SupabaseConsentTools

logger = logging.getLogger(__name__)


def client_identifier_from(forwarded_chain: str, remote_addr: Optional[str]) -> Optional[str]:
    """First hop of X-Forwarded-For, else the socket peer address"""
    if forwarded_chain:
        return forwarded_chain.split(",")[0].strip()
    return remote_addr or None


def hash_identifier(identifier: str, salt: str = "") -> str:
    """Salted SHA-256 hex digest of an identifier"""
    return hashlib.sha256((identifier + salt).encode("utf-8")).hexdigest()


class ConsentRecorder:
    """Records one consent submission per call"""

    def __init__(self, config: ConsentConfig):
        """Initialize recorder

        Args:
            config: Request-scoped configuration
        """
        self.config = config
        self.supabase = SupabaseConsentTools(config)
        self.notifier = DiscordNotifier(config)

    def build_event(self, headers: Mapping[str, str], remote_addr: Optional[str]) -> ConsentEvent:
        """
        Capture client metadata

        Args:
            headers: Request headers (case-insensitive mapping)
            remote_addr: Transport-level peer address, if known

        Returns:
            ConsentEvent with the identifier hashed when HASH_IP is enabled
        """
        forwarded_chain = headers.get("X-Forwarded-For") or ""
        client_identifier = client_identifier_from(forwarded_chain, remote_addr)
        user_agent = headers.get("User-Agent") or ""
        timestamp = utc_timestamp()

        stored_identifier = client_identifier
        if self.config.hash_ip and client_identifier:
            stored_identifier = hash_identifier(client_identifier, self.config.hash_salt)

        return ConsentEvent(
            client_identifier=client_identifier,
            stored_identifier=stored_identifier,
            forwarded_chain=forwarded_chain or None,
            user_agent=user_agent,
            timestamp=timestamp,
        )

    def deliver(self, event: ConsentEvent) -> List[DeliveryOutcome]:
        """
        Send the event to Supabase, then to Discord

        Neither call raises; failures are logged and reported in the outcomes.
        """
        outcomes = [self.supabase.insert_consent(event.to_record())]
        if self.notifier.enabled:
            outcomes.append(self.notifier.send_consent_notification(content=event.to_message()))

        for outcome in outcomes:
            logger.debug(f"Delivery outcome: {outcome.to_dict()}")
        return outcomes

    def record(self, headers: Mapping[str, str], remote_addr: Optional[str]) -> ConsentEvent:
        """Build the event for a validated request and deliver it"""
        event = self.build_event(headers, remote_addr)
        self.deliver(event)
        return event
