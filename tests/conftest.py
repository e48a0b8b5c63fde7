from __future__ import annotations

from datetime import datetime, timezone

import pytest

from campaigns import Campaign, ProportionType, ScopeType

NOW = datetime(2025, 6, 20, 12, 0, tzinfo=timezone.utc)


def make_campaign(
    campaign_id: str = "promo-1",
    *,
    scope: ScopeType = ScopeType.ALL_PRODUCTS,
    proportion: ProportionType = ProportionType.PERCENTAGE,
    amount: float = 10,
    product_ids=(),
    min_order_value: float = 0,
    start: str = "2025-06-01T00:00:00Z",
    end: str = "2025-07-31T23:59:59Z",
    used: bool = False,
) -> Campaign:
    return Campaign(
        id=campaign_id,
        name=f"Campaign {campaign_id}",
        code=campaign_id.upper().replace("-", ""),
        start_date=start,
        end_date=end,
        discount_amount=amount,
        proportion_type=proportion,
        scope_type=scope,
        product_ids=frozenset(product_ids),
        min_order_value=min_order_value,
        used=used,
    )


@pytest.fixture
def api_record() -> dict:
    return {
        "id": "galaxy-ai-launch",
        "promotionName": "Galaxy AI Launch",
        "promotionCode": "GALAXYAI",
        "description": "5,000,000 off the Galaxy flagship phones",
        "startDate": "2025-06-01T00:00:00Z",
        "endDate": "2025-07-15T23:59:59Z",
        "discountAmount": 5000000,
        "promotionType": "SPECIFIC_PRODUCTS",
        "proportionType": "ABSOLUTE",
        "minOrderValue": 20000000,
        "productIds": ["galaxy-s24-ultra"],
    }
