"""Pricing helpers for product cards and carts."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Sequence, Tuple

from campaigns import Campaign, CampaignRepository, ScopeType
from cart import Cart, CartItem
from catalog import CatalogService
from promotions import PricedResult, Timestamp, filter_valid_promotions_for_order, price_product


@dataclass(frozen=True)
class CartLine:
    item: CartItem
    pricing: PricedResult

    @property
    def subtotal(self) -> float:
        return self.item.line_total

    @property
    def total(self) -> float:
        return self.pricing.final_price * self.item.quantity


@dataclass(frozen=True)
class CartQuote:
    lines: Tuple[CartLine, ...]
    promotion_ids: Tuple[str, ...] = ()
    order_campaign: Optional[Campaign] = None
    order_discount: float = 0.0

    @property
    def subtotal(self) -> float:
        return sum(line.subtotal for line in self.lines)

    @property
    def item_total(self) -> float:
        return sum(line.total for line in self.lines)

    @property
    def item_discount(self) -> float:
        return self.subtotal - self.item_total

    @property
    def total(self) -> float:
        return max(0.0, self.item_total - self.order_discount)


class PricingService:
    """Prices catalog products and carts against the loaded campaigns."""

    def __init__(self, catalog: CatalogService, campaigns: CampaignRepository) -> None:
        self._catalog = catalog
        self._campaigns = campaigns

    def quote_product(self, product_id: str, now: Timestamp = None) -> PricedResult:
        product = self._catalog.get(product_id)
        return price_product(product.id, product.price, self._campaigns.all(), now)

    def quote_products(self, product_ids: Iterable[str], now: Timestamp = None) -> Dict[str, PricedResult]:
        return {product_id: self.quote_product(product_id, now) for product_id in product_ids}

    def quote_cart(
        self,
        cart: Cart,
        selected: Sequence[Campaign] = (),
        now: Timestamp = None,
    ) -> CartQuote:
        """Price every line at the price it was added for, then gate ``selected``.

        The order-level discount is an estimate for display; the order
        endpoint applies the submitted promotions itself.
        """
        campaigns = self._campaigns.all()
        lines = tuple(
            CartLine(item=item, pricing=price_product(item.product_id, item.unit_price, campaigns, now))
            for item in cart
        )
        item_total = sum(line.total for line in lines)
        promotion_ids = tuple(
            filter_valid_promotions_for_order(list(selected), cart, item_total, now)
        )

        order_campaign = next(
            (
                campaign
                for campaign in selected
                if campaign.id in promotion_ids and campaign.scope_type is ScopeType.ORDER_TOTAL
            ),
            None,
        )
        order_discount = 0.0
        if order_campaign is not None:
            order_discount = min(item_total, order_campaign.discount_for(item_total))

        return CartQuote(
            lines=lines,
            promotion_ids=promotion_ids,
            order_campaign=order_campaign,
            order_discount=order_discount,
        )
