"""Campaign records, record parsing and the in-memory campaign repository."""
from __future__ import annotations

import json
import logging
import math
import re
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, FrozenSet, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

from catalog import unwrap_collection

logger = logging.getLogger(__name__)

CODE_PATTERN = re.compile(r"[A-Z0-9]+")


class ScopeType(Enum):
    ALL_PRODUCTS = "ALL_PRODUCTS"
    SPECIFIC_PRODUCTS = "SPECIFIC_PRODUCTS"
    ORDER_TOTAL = "ORDER_TOTAL"


class ProportionType(Enum):
    PERCENTAGE = "PERCENTAGE"
    ABSOLUTE = "ABSOLUTE"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Union[str, datetime]) -> datetime:
    """Return an aware datetime; naive values and ``Z`` suffixes are read as UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    else:
        raise TypeError(f"Unsupported timestamp: {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def resolve_now(now: Union[str, datetime, None] = None) -> datetime:
    return utcnow() if now is None else parse_timestamp(now)


def _number(value: Any) -> float:
    # bool is an int subclass but never a valid amount.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"Expected a number, got {value!r}")
    if not math.isfinite(value):
        raise ValueError(f"Expected a finite number, got {value!r}")
    return value


def _field(record: Mapping[str, Any], *names: str) -> Any:
    for name in names:
        if record.get(name) is not None:
            return record[name]
    raise KeyError(names[0])


@dataclass(frozen=True)
class Campaign:
    id: str
    name: str
    code: str
    start_date: datetime
    end_date: datetime
    discount_amount: float
    proportion_type: ProportionType
    scope_type: ScopeType
    product_ids: FrozenSet[str] = field(default_factory=frozenset)
    min_order_value: float = 0.0
    description: str = ""
    used: bool = False

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Campaign id is required")
        if self.code and not CODE_PATTERN.fullmatch(self.code):
            raise ValueError(f"Invalid promotion code: {self.code}")
        object.__setattr__(self, "start_date", parse_timestamp(self.start_date))
        object.__setattr__(self, "end_date", parse_timestamp(self.end_date))
        object.__setattr__(self, "proportion_type", ProportionType(self.proportion_type))
        object.__setattr__(self, "scope_type", ScopeType(self.scope_type))
        if isinstance(self.product_ids, (str, bytes)):
            raise TypeError(f"Campaign {self.id} product ids must be a collection, not a string")
        object.__setattr__(self, "product_ids", frozenset(str(pid) for pid in self.product_ids))
        if self.start_date > self.end_date:
            raise ValueError(f"Campaign {self.id} ends before it starts")
        if _number(self.discount_amount) < 0:
            raise ValueError(f"Campaign {self.id} has a negative discount")
        if self.proportion_type is ProportionType.PERCENTAGE and self.discount_amount > 100:
            raise ValueError(f"Campaign {self.id} discounts more than 100%")
        if _number(self.min_order_value) < 0:
            raise ValueError(f"Campaign {self.id} has a negative minimum order value")

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> Optional["Campaign"]:
        """Build a campaign from an API/fixture record, or ``None`` if it is malformed.

        Accepts the camelCase shape served by the promotions endpoint
        (``promotionName``, ``promotionType``, ``startDate`` ...) as well as
        the snake_case attribute names.
        """
        try:
            return cls(
                id=str(_field(record, "id")),
                name=str(record.get("promotionName") or record.get("name") or ""),
                code=str(record.get("promotionCode") or record.get("code") or ""),
                start_date=_field(record, "startDate", "start_date"),
                end_date=_field(record, "endDate", "end_date"),
                discount_amount=_field(record, "discountAmount", "discount_amount"),
                proportion_type=_field(record, "proportionType", "proportion_type"),
                scope_type=_field(record, "promotionType", "scopeType", "scope_type"),
                product_ids=record.get("productIds") or record.get("product_ids") or (),
                min_order_value=_number(
                    record.get("minOrderValue") or record.get("min_order_value") or 0
                ),
                description=str(record.get("description") or ""),
                used=bool(record.get("isUsed") or record.get("used") or False),
            )
        except (KeyError, TypeError, ValueError) as exc:
            logger.debug("Skipping malformed campaign record %r: %s", record.get("id"), exc)
            return None

    def is_active(self, at: datetime) -> bool:
        return self.start_date <= parse_timestamp(at) <= self.end_date

    def covers_product(self, product_id: str) -> bool:
        if self.scope_type is ScopeType.ALL_PRODUCTS:
            return True
        if self.scope_type is ScopeType.SPECIFIC_PRODUCTS:
            return str(product_id) in self.product_ids
        return False

    def discount_for(self, price: float) -> float:
        """Monetary value of this campaign against ``price`` (not clamped)."""
        if self.proportion_type is ProportionType.PERCENTAGE:
            return price * self.discount_amount / 100
        return self.discount_amount

    def apply_to(self, price: float) -> float:
        return max(0.0, price - self.discount_for(price))

    @property
    def is_percentage(self) -> bool:
        return self.proportion_type is ProportionType.PERCENTAGE

    def with_used(self, used: bool = True) -> "Campaign":
        return replace(self, used=used)


def parse_campaigns(records: Any) -> List[Campaign]:
    """Turn a list of campaigns and/or raw records into valid campaigns.

    Anything that is not a list or tuple yields an empty list; entries that
    cannot be parsed are dropped.
    """
    if not isinstance(records, (list, tuple)):
        if records is not None:
            logger.debug("Ignoring campaign collection of type %s", type(records).__name__)
        return []

    campaigns: List[Campaign] = []
    for entry in records:
        if isinstance(entry, Campaign):
            campaigns.append(entry)
        elif isinstance(entry, Mapping):
            campaign = Campaign.from_record(entry)
            if campaign is not None:
                campaigns.append(campaign)
        else:
            logger.debug("Ignoring non-campaign entry %r", entry)
    return campaigns


class CampaignRepository:
    """Immutable, in-memory set of campaigns loaded from fixtures or the API."""

    def __init__(self, campaigns: Optional[Iterable[Campaign]] = None) -> None:
        self._campaigns: Tuple[Campaign, ...] = tuple(campaigns or ())

    @classmethod
    def from_records(cls, payload: Any) -> "CampaignRepository":
        return cls(parse_campaigns(unwrap_collection(payload)))

    @classmethod
    def from_json(cls, text: str) -> "CampaignRepository":
        return cls.from_records(json.loads(text))

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "CampaignRepository":
        return cls.from_json(Path(path).read_text(encoding="utf-8"))

    def __iter__(self) -> Iterator[Campaign]:
        return iter(self._campaigns)

    def __len__(self) -> int:
        return len(self._campaigns)

    def all(self) -> List[Campaign]:
        return list(self._campaigns)

    def get(self, campaign_id: str) -> Campaign:
        for campaign in self._campaigns:
            if campaign.id == campaign_id:
                return campaign
        raise KeyError(f"Unknown campaign: {campaign_id}")

    def find(self, campaign_ids: Iterable[str]) -> List[Campaign]:
        """Campaigns for ``campaign_ids`` in the order asked for; unknown ids are skipped."""
        by_id = {campaign.id: campaign for campaign in self._campaigns}
        return [by_id[cid] for cid in campaign_ids if cid in by_id]

    def active(self, now: Union[str, datetime, None] = None) -> List[Campaign]:
        at = resolve_now(now)
        return [campaign for campaign in self._campaigns if campaign.is_active(at)]

    def with_campaign(self, campaign: Campaign) -> "CampaignRepository":
        """Return a repository with ``campaign`` added, replacing any with the same id."""
        kept = [existing for existing in self._campaigns if existing.id != campaign.id]
        return CampaignRepository([*kept, campaign])

    def without_campaign(self, campaign_id: str) -> "CampaignRepository":
        return CampaignRepository(c for c in self._campaigns if c.id != campaign_id)
