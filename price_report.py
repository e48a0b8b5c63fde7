#!/usr/bin/env python3
"""
Price report over catalog and campaign fixtures.

Prices every product against the active campaigns and, when a cart file is
given, quotes the cart and lists which selected promotions survive checkout.

Env:
  PROMO_CAMPAIGNS_FILE  default campaigns fixture (bare list or paginated page)
  PROMO_PRODUCTS_FILE   default products fixture
"""
from __future__ import annotations

import argparse
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from campaigns import CampaignRepository, resolve_now
from cart import Cart
from catalog import CatalogService, unwrap_collection
from pricing import CartQuote, PricingService

ROOT = Path(__file__).resolve().parent
ARTIFACTS_DIR = ROOT / "reports"
DATA_DIR = ROOT / "data"

logger = logging.getLogger("price_report")


def load_cart(path: Path, catalog: CatalogService) -> Cart:
    """Cart file entries: ``{"productId": ..., "quantity": ...}``, priced from the catalog."""
    cart = Cart()
    for entry in unwrap_collection(json.loads(path.read_text(encoding="utf-8"))):
        try:
            product = catalog.get(str(entry["productId"]))
        except KeyError as exc:
            raise SystemExit(f"Bad cart entry in {path}: {exc}")
        cart = cart.add_item(product.id, product.price, int(entry.get("quantity", 1)))
    return cart


def product_rows(pricing: PricingService, catalog: CatalogService, now: str) -> List[Dict[str, Any]]:
    rows = []
    for product in catalog.all():
        result = pricing.quote_product(product.id, now)
        row = {"productId": product.id, "productName": product.name, "badge": result.badge}
        row.update(result.to_dict())
        rows.append(row)
    return rows


def cart_summary(quote: CartQuote) -> Dict[str, Any]:
    return {
        "subtotal": quote.subtotal,
        "itemDiscount": quote.item_discount,
        "orderDiscount": quote.order_discount,
        "total": quote.total,
        "promotionIds": list(quote.promotion_ids),
    }


def render_text(rows: List[Dict[str, Any]], cart: Optional[Dict[str, Any]]) -> str:
    lines = []
    for row in rows:
        label = row["promotionInfo"]["promotionName"] if row["hasActivePromotion"] else "-"
        lines.append(
            f"{row['productName']:<32} {row['originalPrice']:>14,.0f} "
            f"{row['finalPrice']:>14,.0f} {row['badge'] or '':>5}  {label}"
        )
    if cart is not None:
        lines.append("")
        lines.append(f"Cart subtotal:   {cart['subtotal']:>14,.0f}")
        lines.append(f"Item discounts:  {cart['itemDiscount']:>14,.0f}")
        lines.append(f"Order discount:  {cart['orderDiscount']:>14,.0f}")
        lines.append(f"Total:           {cart['total']:>14,.0f}")
        lines.append(f"Promotions kept: {', '.join(cart['promotionIds']) or '<none>'}")
    return "\n".join(lines)


def write_artifact(filename: str, content: str) -> Path:
    ARTIFACTS_DIR.mkdir(exist_ok=True)
    path = ARTIFACTS_DIR / filename
    path.write_text(content, encoding="utf-8")
    return path


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument(
        "--campaigns",
        type=Path,
        default=Path(os.getenv("PROMO_CAMPAIGNS_FILE", DATA_DIR / "campaigns.json")),
    )
    parser.add_argument(
        "--products",
        type=Path,
        default=Path(os.getenv("PROMO_PRODUCTS_FILE", DATA_DIR / "products.json")),
    )
    parser.add_argument("--cart", type=Path, help="JSON list of {productId, quantity}")
    parser.add_argument("--promotions", default="", help="Comma-separated campaign ids selected at checkout")
    parser.add_argument("--now", help="ISO timestamp to price at (default: current time)")
    parser.add_argument("--json", action="store_true", help="Print JSON instead of a table")
    parser.add_argument("--save", action="store_true", help="Also write the JSON report under reports/")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    for path in (args.campaigns, args.products, args.cart):
        if path is not None and not path.exists():
            raise SystemExit(f"File not found: {path}")

    now = resolve_now(args.now).isoformat()
    catalog = CatalogService.from_file(args.products)
    campaigns = CampaignRepository.from_file(args.campaigns)
    pricing = PricingService(catalog, campaigns)
    logger.debug("Loaded %d campaign(s), pricing at %s", len(campaigns), now)

    rows = product_rows(pricing, catalog, now)
    cart = None
    if args.cart is not None:
        selected_ids = [cid.strip() for cid in args.promotions.split(",") if cid.strip()]
        quote = pricing.quote_cart(load_cart(args.cart, catalog), campaigns.find(selected_ids), now)
        cart = cart_summary(quote)

    report = {"pricedAt": now, "products": rows, "cart": cart}
    payload = json.dumps(report, indent=2, ensure_ascii=False)
    print(payload if args.json else render_text(rows, cart))
    if args.save:
        saved = write_artifact("price_report.json", payload)
        print(f"\nSaved report to {saved}")


if __name__ == "__main__":
    main()
