"""
Domain dataclasses used across the application.
"""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class PromotionRule:
    """One quantity-break pricing tier."""
    min_quantity: int
    price_per_unit: str        # decimal-as-string, e.g. "9.00"

    @classmethod
    def from_dict(cls, data: dict) -> "PromotionRule":
        """Validate one stored or submitted tier; malformed input raises ValueError."""
        if not isinstance(data, dict):
            raise ValueError(f"Promotion rule must be an object: {data!r}")
        min_qty = data.get("minQuantity", data.get("min_quantity"))
        price = data.get("pricePerUnit", data.get("price_per_unit"))
        if min_qty is None or price is None:
            raise ValueError(f"Promotion rule needs minQuantity and pricePerUnit: {data!r}")
        if isinstance(min_qty, bool) or (isinstance(min_qty, float) and not min_qty.is_integer()):
            raise ValueError(f"Invalid minQuantity: {min_qty!r}")
        try:
            min_qty = int(min_qty)
        except (TypeError, ValueError, OverflowError):
            raise ValueError(f"Invalid minQuantity: {min_qty!r}")
        if min_qty < 1:
            raise ValueError(f"minQuantity must be at least 1, got {min_qty}")
        if isinstance(price, (bool, list, dict)):
            raise ValueError(f"Invalid pricePerUnit: {price!r}")
        return cls(min_quantity=min_qty, price_per_unit=str(price))

    def to_dict(self) -> dict:
        return {"minQuantity": self.min_quantity, "pricePerUnit": self.price_per_unit}


@dataclass
class Product:
    """Catalog entry as read from the products table."""
    id: str
    name: str
    slug: str
    price: str
    promotion_rules: List[PromotionRule] = field(default_factory=list)
    category: Optional[str] = None
    short_description: Optional[str] = None
    in_stock: bool = True
    is_active: bool = True

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "price": self.price,
            "category": self.category,
            "shortDescription": self.short_description,
            "inStock": self.in_stock,
            "isActive": self.is_active,
            "promotionRules": [r.to_dict() for r in self.promotion_rules],
        }


@dataclass
class Order:
    """Order header as shown in the back office."""
    id: str
    user_id: str
    status: str
    total: str
    created_at: Optional[str] = None
    customer_email: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "status": self.status,
            "total": self.total,
            "createdAt": self.created_at,
            "customerEmail": self.customer_email,
        }


@dataclass
class AuthUser:
    """Result of the auth-status query for a signed-in visitor."""
    user_id: str
    email: str
    first_name: str
    last_name: str
    status: str                # "pending", "approved" or "rejected"
    role: str                  # "customer" or "admin"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def to_dict(self) -> dict:
        return {
            "id": self.user_id,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "status": self.status,
            "role": self.role,
        }


@dataclass(frozen=True)
class AccessContext:
    """Per-request facts the access gate decides on.

    ``None`` for ``location`` or ``authenticated`` means that source has not
    resolved yet.
    """
    location: Optional[str] = None           # "portugal", "international"
    authenticated: Optional[bool] = None
    approval_status: Optional[str] = None    # only read on the Portugal path
    is_admin: bool = False
