#!/usr/bin/env python3
"""
Consent Event Model - Data structures for a single consent submission
"""

from dataclasses import dataclass, asdict, field
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional


def _is_truthy(value: Any) -> bool:
    """Truthiness as the browser client sees it: empty containers still count."""
    if value is None or value is False:
        return False
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        # NaN compares unequal to itself
        return value == value and value != 0
    if isinstance(value, str):
        return value != ""
    return True


def utc_timestamp(now: Optional[datetime] = None) -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. 2026-10-19T08:15:30.123Z"""
    if now is None:
        now = datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass
class ConsentPayload:
    """Validated request body"""
    consent: bool
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_body(cls, body: Any) -> "ConsentPayload":
        """Create from a decoded request body; anything but a mapping carries no consent"""
        if not isinstance(body, Mapping):
            return cls(consent=False)

        extra = {key: value for key, value in body.items() if key != "consent"}
        return cls(consent=_is_truthy(body.get("consent")), extra=extra)


@dataclass(frozen=True)
class ConsentEvent:
    """Client metadata captured for one consent submission"""
    client_identifier: Optional[str]
    stored_identifier: Optional[str]
    forwarded_chain: Optional[str]
    user_agent: str
    timestamp: str

    def to_record(self) -> Dict[str, Any]:
        """Row inserted into the consent table"""
        return {
            "ip": self.stored_identifier,
            "forwarded_for": self.forwarded_chain,
            "user_agent": self.user_agent,
            "consent_time": self.timestamp,
        }

    def to_message(self) -> str:
        """Human-readable notification text"""
        return (
            "New consent recorded\n"
            f"IP: {self.stored_identifier or 'N/A'}\n"
            f"Forwarded: {self.forwarded_chain or 'N/A'}\n"
            f"UA: {self.user_agent}\n"
            f"Time: {self.timestamp}"
        )


@dataclass
class DeliveryOutcome:
    """Result of one outbound call"""
    target: str  # supabase, discord
    attempted: bool = False
    delivered: bool = False
    status_code: Optional[int] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
