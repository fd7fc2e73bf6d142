"""SparePart class for inventory items."""

from typing import Any, Optional


class SparePart:
    """
    An inventory item. stock is the on-hand quantity.

    cost and stock may be left as None on an update to keep the stored
    values.
    """

    def __init__(
        self,
        part_number: str,
        name: str,
        price: float,
        cost: Optional[float] = None,
        stock: Optional[int] = None,
        category: Optional[str] = None,
        vendor_id: Any = None,
        barcode: Optional[str] = None,
        id: Any = None,
        initial_stock: Optional[int] = None,
        last_restock_date: Optional[str] = None,
        created_at: Optional[str] = None,
        updated_at: Optional[str] = None,
    ):
        self.id = id
        self.part_number = part_number
        self.name = name
        self.category = category
        self.vendor_id = vendor_id
        self.barcode = barcode
        self.price = price
        self.cost = cost
        self.stock = stock
        self.initial_stock = initial_stock
        self.last_restock_date = last_restock_date
        self.created_at = created_at
        self.updated_at = updated_at

    @property
    def in_stock(self) -> bool:
        return (self.stock or 0) > 0
