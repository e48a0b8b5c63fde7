from __future__ import annotations

from typing import List

import pytest

from audit import AuditLogger
from campaigns import CampaignRepository, ProportionType, ScopeType
from cart import Cart
from catalog import CatalogService
from conftest import NOW, make_campaign
from order_service import CheckoutService, OrderRequest
from pricing import PricingService
from redemptions import RedemptionLedger

PHONE = "galaxy-s24-ultra"
HUB = "smartthings-hub"


class RecordingGateway:
    def __init__(self, fail_with: Exception = None) -> None:
        self.requests: List[OrderRequest] = []
        self._fail_with = fail_with

    def submit(self, request: OrderRequest) -> str:
        if self._fail_with is not None:
            raise self._fail_with
        self.requests.append(request)
        return f"order-{len(self.requests)}"


@pytest.fixture
def campaigns() -> CampaignRepository:
    return CampaignRepository(
        [
            make_campaign("summer", amount=20),
            make_campaign("phones", scope=ScopeType.SPECIFIC_PRODUCTS, amount=10, product_ids=[PHONE]),
            make_campaign(
                "basket",
                scope=ScopeType.ORDER_TOTAL,
                proportion=ProportionType.ABSOLUTE,
                amount=500000,
                min_order_value=1000000,
            ),
        ]
    )


@pytest.fixture
def ledger() -> RedemptionLedger:
    return RedemptionLedger()


@pytest.fixture
def audit() -> AuditLogger:
    return AuditLogger()


def make_service(campaigns, ledger, audit, gateway) -> CheckoutService:
    pricing = PricingService(CatalogService(), campaigns)
    return CheckoutService(campaigns, pricing, gateway, ledger, audit)


def test_place_order_submits_surviving_promotions(campaigns, ledger, audit):
    gateway = RecordingGateway()
    service = make_service(campaigns, ledger, audit, gateway)
    cart = Cart().add_item(PHONE, 31990000).add_item(HUB, 2990000)

    result = service.place_order("acct-1", cart, ["summer", "phones", "basket", "unknown"], NOW)

    assert result.status == "placed"
    assert result.order_id == "order-1"
    request = gateway.requests[0]
    assert request.promotion_ids == ("summer", "phones", "basket")
    assert request.total == pytest.approx(result.quote.item_total - 500000)
    assert [line.product_id for line in request.lines] == [PHONE, HUB]
    assert request.lines[0].final_unit_price == pytest.approx(25592000)
    assert ledger.redeemed("acct-1") == frozenset({"summer", "phones", "basket"})
    assert len(audit.entries("promotion_redeemed")) == 3
    assert len(audit.entries("order_placed")) == 1
    assert audit.entries("order_placed")[0].at == NOW


def test_redeemed_promotions_are_not_submitted_twice(campaigns, ledger, audit):
    gateway = RecordingGateway()
    service = make_service(campaigns, ledger, audit, gateway)
    cart = Cart().add_item(HUB, 2990000)

    service.place_order("acct-1", cart, ["summer"], NOW)
    second = service.place_order("acct-1", cart, ["summer"], NOW)

    assert second.status == "placed"
    assert gateway.requests[1].promotion_ids == ()
    dropped = audit.entries("promotion_dropped")
    assert [(entry.campaign_id, entry.details) for entry in dropped] == [("summer", "already_used")]


def test_inapplicable_promotion_is_dropped_and_audited(campaigns, ledger, audit):
    gateway = RecordingGateway()
    service = make_service(campaigns, ledger, audit, gateway)

    result = service.place_order("acct-1", Cart().add_item(HUB, 2990000), ["phones"], NOW)

    assert result.request.promotion_ids == ()
    assert audit.entries("promotion_dropped")[0].details == "not_applicable"
    assert ledger.redeemed("acct-1") == frozenset()


def test_empty_cart_is_rejected(campaigns, ledger, audit):
    gateway = RecordingGateway()
    result = make_service(campaigns, ledger, audit, gateway).place_order("acct-1", Cart(), ["summer"], NOW)
    assert result.status == "empty_cart"
    assert gateway.requests == []
    assert audit.entries()[0].event == "checkout_rejected"


def test_gateway_failure_restores_redemptions(campaigns, ledger, audit):
    gateway = RecordingGateway(fail_with=RuntimeError("order endpoint unavailable"))
    service = make_service(campaigns, ledger, audit, gateway)

    result = service.place_order("acct-1", Cart().add_item(PHONE, 31990000), ["summer"], NOW)

    assert result.status == "submit_failed"
    assert result.reason == "order endpoint unavailable"
    assert result.request.promotion_ids == ("summer",)
    assert ledger.redeemed("acct-1") == frozenset()
    assert audit.entries("order_failed")[0].details == "order endpoint unavailable"
