"""Promotion rules: which campaigns apply to a product, which one wins, and
which selected campaigns may still be submitted with an order."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Sequence, Union

from campaigns import Campaign, ScopeType, parse_campaigns, resolve_now
from cart import Cart, CartItem

logger = logging.getLogger(__name__)

Timestamp = Union[str, datetime, None]


@dataclass(frozen=True)
class PricedResult:
    original_price: float
    final_price: float
    applied_campaign: Optional[Campaign] = None

    @property
    def has_active_promotion(self) -> bool:
        return self.applied_campaign is not None

    @property
    def discount(self) -> float:
        return self.original_price - self.final_price

    @property
    def discount_percent(self) -> int:
        if self.original_price <= 0:
            return 0
        # Half-up, as shown on the product card badge.
        return int(math.floor(self.discount / self.original_price * 100 + 0.5))

    @property
    def badge(self) -> Optional[str]:
        if not self.has_active_promotion:
            return None
        return f"-{self.discount_percent}%"

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "hasActivePromotion": self.has_active_promotion,
            "originalPrice": self.original_price,
            "finalPrice": self.final_price,
        }
        campaign = self.applied_campaign
        if campaign is not None:
            data["promotionInfo"] = {
                "promotionId": campaign.id,
                "promotionName": campaign.name,
                "discountAmount": campaign.discount_amount,
                "isPercentage": campaign.is_percentage,
            }
        return data


def find_applicable_campaigns(product_id: str, campaigns: Any, now: Timestamp = None) -> List[Campaign]:
    """Active ALL_PRODUCTS campaigns plus active SPECIFIC_PRODUCTS campaigns naming the product.

    ORDER_TOTAL campaigns never apply to a single product. Input order is kept.
    """
    at = resolve_now(now)
    return [
        campaign
        for campaign in parse_campaigns(campaigns)
        if campaign.is_active(at) and campaign.covers_product(product_id)
    ]


def select_best_campaign(candidates: Sequence[Campaign], original_price: float) -> Optional[Campaign]:
    """Pick the campaign saving the most money; the first one wins a tie."""
    if not candidates:
        return None
    best = candidates[0]
    best_discount = best.discount_for(original_price)
    for campaign in candidates[1:]:
        discount = campaign.discount_for(original_price)
        if discount > best_discount:
            best, best_discount = campaign, discount
    return best


def price_product(
    product_id: str,
    original_price: float,
    campaigns: Any,
    now: Timestamp = None,
) -> PricedResult:
    candidates = find_applicable_campaigns(product_id, campaigns, now)
    winner = select_best_campaign(candidates, original_price)
    if winner is None:
        return PricedResult(original_price=original_price, final_price=original_price)

    if len(candidates) > 1:
        logger.debug(
            "Product %s: %s wins over %d other campaign(s)",
            product_id,
            winner.id,
            len(candidates) - 1,
        )
    return PricedResult(
        original_price=original_price,
        final_price=winner.apply_to(original_price),
        applied_campaign=winner,
    )


def _cart_product_ids(cart_items: Any) -> FrozenSet[str]:
    if isinstance(cart_items, Cart):
        return cart_items.product_ids
    if not isinstance(cart_items, (list, tuple)):
        return frozenset()

    ids = set()
    for item in cart_items:
        if isinstance(item, CartItem):
            ids.add(str(item.product_id))
        elif isinstance(item, Mapping):
            # Cart API items nest the product: {"product": {"id": ...}, "quantity": ...}
            product = item.get("product")
            product_id = item.get("productId")
            if product_id is None:
                product_id = item.get("product_id")
            if product_id is None and isinstance(product, Mapping):
                product_id = product.get("id")
            if product_id is not None:
                ids.add(str(product_id))
    return frozenset(ids)


def _is_valid_total(order_total: Any) -> bool:
    if isinstance(order_total, bool) or not isinstance(order_total, (int, float)):
        return False
    return math.isfinite(order_total) and order_total >= 0


def filter_valid_promotions_for_order(
    selected_campaigns: Any,
    cart_items: Any,
    order_total: float,
    now: Timestamp = None,
) -> List[str]:
    """Ids of the selected campaigns that may still be sent with the order.

    Keeps at most one campaign per scope type. A SPECIFIC_PRODUCTS campaign
    must match something in the cart, and when it covers every product in the
    cart it replaces the ALL_PRODUCTS campaign. An ORDER_TOTAL campaign needs
    ``order_total`` to reach its minimum order value.
    """
    campaigns = parse_campaigns(selected_campaigns)
    cart_ids = _cart_product_ids(cart_items)
    if not campaigns or not cart_ids or not _is_valid_total(order_total):
        return []

    at = resolve_now(now)
    by_scope: Dict[ScopeType, Campaign] = {}
    for campaign in campaigns:
        if campaign.used or not campaign.is_active(at):
            continue
        by_scope.setdefault(campaign.scope_type, campaign)

    dropped = set()
    specific = by_scope.get(ScopeType.SPECIFIC_PRODUCTS)
    if specific is not None:
        if not specific.product_ids & cart_ids:
            dropped.add(ScopeType.SPECIFIC_PRODUCTS)
        elif cart_ids <= specific.product_ids:
            dropped.add(ScopeType.ALL_PRODUCTS)

    order_level = by_scope.get(ScopeType.ORDER_TOTAL)
    if order_level is not None and order_total < order_level.min_order_value:
        dropped.add(ScopeType.ORDER_TOTAL)

    return [campaign.id for scope, campaign in by_scope.items() if scope not in dropped]
