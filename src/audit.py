"""Simple in-memory audit log for checkout events."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional


@dataclass
class AuditEntry:
    event: str
    account_id: str
    campaign_id: Optional[str]
    details: str
    at: datetime


class AuditLogger:
    def __init__(self) -> None:
        self._entries: List[AuditEntry] = []

    def log(
        self,
        event: str,
        account_id: str,
        campaign_id: Optional[str],
        details: str,
        at: Optional[datetime] = None,
    ) -> None:
        self._entries.append(
            AuditEntry(
                event=event,
                account_id=account_id,
                campaign_id=campaign_id,
                details=details,
                at=at or datetime.now(timezone.utc),
            )
        )

    def entries(self, event: Optional[str] = None) -> List[AuditEntry]:
        if event is None:
            return list(self._entries)
        return [entry for entry in self._entries if entry.event == event]
