"""Per-account record of promotions already redeemed."""
from __future__ import annotations

from typing import Dict, FrozenSet, Iterable, List, Set

from campaigns import Campaign


class RedemptionLedger:
    def __init__(self) -> None:
        self._redeemed: Dict[str, Set[str]] = {}

    def redeem(self, account_id: str, campaign_ids: Iterable[str]) -> None:
        self._redeemed.setdefault(account_id, set()).update(campaign_ids)

    def has_redeemed(self, account_id: str, campaign_id: str) -> bool:
        return campaign_id in self._redeemed.get(account_id, set())

    def redeemed(self, account_id: str) -> FrozenSet[str]:
        return frozenset(self._redeemed.get(account_id, set()))

    def restore(self, account_id: str, campaign_ids: Iterable[str]) -> None:
        # Give promotions back when the order they were spent on is not placed.
        current = self._redeemed.get(account_id)
        if not current:
            return
        current.difference_update(campaign_ids)

    def mark_used(self, campaigns: Iterable[Campaign], account_id: str) -> List[Campaign]:
        """Copies of ``campaigns`` with ``used`` set for those this account redeemed."""
        redeemed = self._redeemed.get(account_id, set())
        return [
            campaign.with_used() if campaign.id in redeemed else campaign
            for campaign in campaigns
        ]
