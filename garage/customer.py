"""Customer class for shop clients."""

from typing import Any, Dict, Optional


class Customer:
    """A shop customer. Fields beyond name and mobile are kept in extra."""

    def __init__(
        self,
        name: str,
        mobile: Optional[str] = None,
        id: Any = None,
        extra: Optional[Dict[str, Any]] = None,
        created_at: Optional[str] = None,
        updated_at: Optional[str] = None,
    ):
        self.id = id
        self.name = name
        self.mobile = mobile
        self.extra = extra or {}
        self.created_at = created_at
        self.updated_at = updated_at

    @classmethod
    def unknown(cls, id: Any = None) -> "Customer":
        """Placeholder for a reference that no longer resolves."""
        return cls(name="Unknown", mobile="", id=id)
