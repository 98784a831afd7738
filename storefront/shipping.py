"""
Hard-coded shipping rules by destination and cart subtotal.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from storefront.config import EU_COUNTRIES, FREE_SHIPPING_THRESHOLD
from storefront.pricing import Money, to_decimal


@dataclass(frozen=True)
class ShippingOption:
    id: str
    name: str
    description: str
    price: str
    estimated_days: str
    sort_order: int = 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "estimatedDays": self.estimated_days,
            "sortOrder": self.sort_order,
            "isActive": True,
        }


def _free(description: str) -> ShippingOption:
    return ShippingOption("free-shipping", "Envio Grátis", description, "0.00", "", -10)


def shipping_options_for(country_code: Optional[str], region: Optional[str],
                         subtotal: Money) -> List[ShippingOption]:
    """Options available for a destination, ordered by sort order.

    *region* is accepted for the checkout form's address shape; Portuguese
    addresses (mainland or islands) all ship free, so it does not change
    the result today.
    """
    cc = (country_code or "").strip().upper()

    if cc == "BR":
        return [_free("Disponível para entregas no Brasil")]
    if cc == "PT":
        # free for any Portuguese address
        return [_free("Disponível para entregas em Portugal")]

    amount = to_decimal(subtotal)
    if amount.is_nan():
        amount = Decimal("0")

    options: List[ShippingOption] = []
    if amount >= FREE_SHIPPING_THRESHOLD:
        options.append(_free("Disponível apenas para pedidos acima de €500"))

    if cc in EU_COUNTRIES:
        options.append(ShippingOption(
            "dhl-eu-ground", "DHL UE - Via Terrestre",
            "Disponível apenas para países da União Europeia", "19.00",
            "Entrega 3-5 dias úteis", 2,
        ))
        options.append(ShippingOption(
            "dhl-eu-air", "DHL UE - Via Aérea",
            "Disponível apenas para países da União Europeia", "25.00",
            "Entrega 1-2 dias úteis", 3,
        ))

    return sorted(options, key=lambda o: o.sort_order)


def find_shipping_option(options: List[ShippingOption], option_id: Optional[str]) -> Optional[ShippingOption]:
    if not option_id:
        return None
    for opt in options:
        if opt.id == option_id:
            return opt
    return None
