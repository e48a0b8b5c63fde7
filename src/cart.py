"""Cart domain objects used for quoting and checkout."""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import FrozenSet, Iterable, Iterator, List, Optional, Tuple


@dataclass(frozen=True)
class CartItem:
    product_id: str
    unit_price: float
    quantity: int

    def __post_init__(self) -> None:
        if self.quantity <= 0:
            raise ValueError("Quantity must be positive")
        if self.unit_price < 0:
            raise ValueError(f"Negative price for {self.product_id}")

    @property
    def line_total(self) -> float:
        return self.unit_price * self.quantity


class Cart:
    """Immutable cart; every change returns a new cart.

    ``unit_price`` is the price captured when the product was first added,
    later additions of the same product only increase the quantity.
    """

    def __init__(self, items: Optional[Iterable[CartItem]] = None) -> None:
        self._items: Tuple[CartItem, ...] = tuple(items or ())

    def __iter__(self) -> Iterator[CartItem]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def add_item(self, product_id: str, unit_price: float, quantity: int = 1) -> "Cart":
        if quantity <= 0:
            raise ValueError("Quantity must be positive")
        items = list(self._items)
        for index, item in enumerate(items):
            if item.product_id == product_id:
                items[index] = replace(item, quantity=item.quantity + quantity)
                return Cart(items)
        items.append(CartItem(product_id=product_id, unit_price=unit_price, quantity=quantity))
        return Cart(items)

    def remove_item(self, product_id: str, quantity: int) -> "Cart":
        if not self.has_enough(product_id, quantity):
            raise ValueError(f"Not enough {product_id} in cart")
        items: List[CartItem] = []
        for item in self._items:
            if item.product_id != product_id:
                items.append(item)
            elif item.quantity > quantity:
                items.append(replace(item, quantity=item.quantity - quantity))
        return Cart(items)

    def has_enough(self, product_id: str, quantity: int) -> bool:
        return self.get_quantity(product_id) >= quantity

    def get_quantity(self, product_id: str) -> int:
        for item in self._items:
            if item.product_id == product_id:
                return item.quantity
        return 0

    @property
    def items(self) -> List[CartItem]:
        return list(self._items)

    @property
    def product_ids(self) -> FrozenSet[str]:
        return frozenset(str(item.product_id) for item in self._items)

    @property
    def subtotal(self) -> float:
        return sum(item.line_total for item in self._items)
