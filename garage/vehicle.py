"""Vehicle class for customer cars."""

from typing import Any, Optional


class Vehicle:
    """A customer's vehicle. customer_id is a weak reference."""

    def __init__(
        self,
        customer_id: Any,
        brand: str,
        model: str,
        plate_number: str,
        year: Optional[int] = None,
        id: Any = None,
        created_at: Optional[str] = None,
        updated_at: Optional[str] = None,
    ):
        self.id = id
        self.customer_id = customer_id
        self.brand = brand
        self.model = model
        self.year = year
        self.plate_number = plate_number
        self.created_at = created_at
        self.updated_at = updated_at

    @property
    def label(self) -> str:
        """Human-readable vehicle label, e.g. 'Toyota Corolla (ABC-123)'."""
        return f"{self.brand} {self.model} ({self.plate_number})"

    @classmethod
    def unknown(cls, id: Any = None) -> "Vehicle":
        """Placeholder for a reference that no longer resolves."""
        return cls(customer_id=None, brand="?", model="", plate_number="?", id=id)
