"""Vendor and VendorPayment classes."""

from typing import Any, Optional


class Vendor:
    """
    A parts supplier.

    credit is what the shop owes the vendor. It is a running balance and
    goes negative when the vendor has been overpaid.
    """

    def __init__(
        self,
        name: str,
        credit: float = 0,
        phone: Optional[str] = None,
        notes: Optional[str] = None,
        id: Any = None,
        created_at: Optional[str] = None,
        updated_at: Optional[str] = None,
    ):
        self.id = id
        self.name = name
        self.credit = credit
        self.phone = phone
        self.notes = notes
        self.created_at = created_at
        self.updated_at = updated_at


class VendorPayment:
    """A payment made to a vendor. Never edited or deleted."""

    def __init__(
        self,
        vendor_id: Any,
        amount: float,
        date: str,
        notes: str = "",
        id: Any = None,
    ):
        self.id = id
        self.vendor_id = vendor_id
        self.amount = amount
        self.notes = notes
        self.date = date
