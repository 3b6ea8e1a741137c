#!/usr/bin/env python3
"""
Supabase Tools for Consent Recording
Inserts consent records through the Supabase REST (PostgREST) endpoint
"""

import logging
from typing import Any, Dict

import requests

from consent_service.config import SUPABASE_INSERT_PATH, ConsentConfig
from consent_service.models.consent_event import DeliveryOutcome

logger = logging.getLogger(__name__)


class SupabaseConsentTools:
    """Tools for consent-related Supabase operations"""

    target = "supabase"

    def __init__(self, config: ConsentConfig):
        """Initialize from request configuration

        Args:
            config: Request-scoped configuration carrying the service role key
        """
        self.url = config.supabase_url
        self.service_role_key = config.supabase_key
        self.prefer_return = config.prefer_return
        self.timeout = config.timeout

    @property
    def enabled(self) -> bool:
        return bool(self.url and self.service_role_key)

    @property
    def insert_url(self) -> str:
        return f"{self.url}{SUPABASE_INSERT_PATH}"

    def _headers(self) -> Dict[str, str]:
        # Service role key goes in both headers; PostgREST checks apikey, RLS checks the bearer
        return {
            "Content-Type": "application/json",
            "apikey": self.service_role_key,
            "Authorization": f"Bearer {self.service_role_key}",
            "Prefer": f"return={self.prefer_return}",
        }

    def insert_consent(self, record: Dict[str, Any]) -> DeliveryOutcome:
        """
        Insert a consent record

        Args:
            record: Row with ip, forwarded_for, user_agent and consent_time

        Returns:
            DeliveryOutcome describing the attempt; never raises
        """
        outcome = DeliveryOutcome(target=self.target)
        if not self.enabled:
            logger.warning("SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY not set; skipping DB insert")
            return outcome

        outcome.attempted = True
        try:
            response = requests.post(
                self.insert_url,
                json=record,
                headers=self._headers(),
                timeout=self.timeout,
            )
            outcome.status_code = response.status_code
            response.raise_for_status()
            outcome.delivered = True
            logger.info(f"Consent record inserted (status {response.status_code})")
        except Exception as e:
            outcome.error = f"{type(e).__name__}: {e}"
            logger.error(f"Supabase insert error: {outcome.error}", exc_info=True)

        return outcome
