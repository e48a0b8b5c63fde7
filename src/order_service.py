"""Checkout: gate the customer's promotions and submit the order."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Protocol, Tuple

from audit import AuditLogger
from campaigns import CampaignRepository, resolve_now
from cart import Cart
from pricing import CartQuote, PricingService
from promotions import Timestamp
from redemptions import RedemptionLedger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrderLine:
    product_id: str
    quantity: int
    unit_price: float
    final_unit_price: float


@dataclass(frozen=True)
class OrderRequest:
    account_id: str
    lines: Tuple[OrderLine, ...]
    promotion_ids: Tuple[str, ...]
    total: float


class OrderGateway(Protocol):
    def submit(self, request: OrderRequest) -> str:  # pragma: no cover - interface
        ...


@dataclass
class CheckoutResult:
    status: str
    order_id: Optional[str] = None
    quote: Optional[CartQuote] = None
    request: Optional[OrderRequest] = None
    reason: Optional[str] = None


class CheckoutService:
    """Coordinates cart pricing, promotion gating, redemption tracking and order submission."""

    def __init__(
        self,
        campaigns: CampaignRepository,
        pricing: PricingService,
        gateway: OrderGateway,
        ledger: RedemptionLedger,
        audit: AuditLogger,
    ) -> None:
        self._campaigns = campaigns
        self._pricing = pricing
        self._gateway = gateway
        self._ledger = ledger
        self._audit = audit

    def place_order(
        self,
        account_id: str,
        cart: Cart,
        selected_campaign_ids: Iterable[str] = (),
        now: Timestamp = None,
    ) -> CheckoutResult:
        """Return the checkout outcome; only promotions that survive the gate are submitted."""
        at = resolve_now(now)
        if not len(cart):
            self._audit.log("checkout_rejected", account_id, None, "empty_cart", at=at)
            return CheckoutResult(status="empty_cart", reason="cart_is_empty")

        selected = self._ledger.mark_used(self._campaigns.find(selected_campaign_ids), account_id)
        quote = self._pricing.quote_cart(cart, selected, at)

        for campaign in selected:
            if campaign.id not in quote.promotion_ids:
                reason = "already_used" if campaign.used else "not_applicable"
                self._audit.log("promotion_dropped", account_id, campaign.id, reason, at=at)

        request = OrderRequest(
            account_id=account_id,
            lines=tuple(
                OrderLine(
                    product_id=line.item.product_id,
                    quantity=line.item.quantity,
                    unit_price=line.item.unit_price,
                    final_unit_price=line.pricing.final_price,
                )
                for line in quote.lines
            ),
            promotion_ids=quote.promotion_ids,
            total=quote.total,
        )

        self._ledger.redeem(account_id, request.promotion_ids)
        try:
            order_id = self._gateway.submit(request)
        except Exception as exc:
            self._ledger.restore(account_id, request.promotion_ids)
            self._audit.log("order_failed", account_id, None, str(exc), at=at)
            logger.warning("Order submission failed for %s: %s", account_id, exc)
            return CheckoutResult(status="submit_failed", quote=quote, request=request, reason=str(exc))

        for campaign_id in request.promotion_ids:
            self._audit.log("promotion_redeemed", account_id, campaign_id, f"order={order_id}", at=at)
        self._audit.log(
            "order_placed",
            account_id,
            None,
            f"order={order_id}, total={request.total}, promotions={len(request.promotion_ids)}",
            at=at,
        )
        logger.info("Placed order %s for %s (total=%s)", order_id, account_id, request.total)
        return CheckoutResult(status="placed", order_id=order_id, quote=quote, request=request)
