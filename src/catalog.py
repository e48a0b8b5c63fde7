"""Product catalog the storefront prices against."""
from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union


def unwrap_collection(payload: Any) -> List[Any]:
    """Return the items of a bare JSON list or of a paginated ``{"data": [...]}`` page."""
    if isinstance(payload, Mapping):
        payload = payload.get("data")
    if isinstance(payload, (list, tuple)):
        return list(payload)
    return []


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    price: float

    def __post_init__(self) -> None:
        if self.price < 0:
            raise ValueError(f"Product {self.id} has a negative price")

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Product":
        return cls(
            id=str(record["id"]),
            name=str(record.get("productName") or record.get("name") or ""),
            price=record["price"],
        )


class CatalogService:
    def __init__(self, products: Optional[Dict[str, Product]] = None) -> None:
        self._products: Dict[str, Product] = products if products is not None else {
            "galaxy-s24-ultra": Product(
                id="galaxy-s24-ultra",
                name="Samsung Galaxy S24 Ultra",
                price=31990000,
            ),
            "galaxy-z-fold5": Product(
                id="galaxy-z-fold5",
                name="Samsung Galaxy Z Fold5",
                price=40990000,
            ),
            "smartthings-hub": Product(
                id="smartthings-hub",
                name="SmartThings Hub",
                price=2990000,
            ),
        }

    @classmethod
    def from_records(cls, payload: Any) -> "CatalogService":
        products = [Product.from_record(record) for record in unwrap_collection(payload)]
        return cls({product.id: product for product in products})

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "CatalogService":
        return cls.from_records(json.loads(Path(path).read_text(encoding="utf-8")))

    def get(self, product_id: str) -> Product:
        if product_id not in self._products:
            raise KeyError(f"Unknown product: {product_id}")
        return self._products[product_id]

    def all(self) -> List[Product]:
        return list(self._products.values())
