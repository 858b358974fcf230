# bookings/pricing.py

"""
Server-side price computation for a stay.

Totals are always recomputed here from the listing's nightly price and the
number of nights; whatever the client sends is ignored. Add-on surcharges are
delegated to a pluggable strategy. The default charges nothing for add-ons
because no surcharge formula has been agreed on yet.
"""
from dataclasses import dataclass
from typing import Dict, Mapping, Optional


@dataclass(frozen=True)
class PriceQuote:
    number_of_nights: int
    base_price: float
    add_ons_price: float

    @property
    def total_price(self) -> float:
        return round(self.base_price + self.add_ons_price, 2)

    def as_breakdown(self) -> Dict[str, float]:
        return {
            "base_price": self.base_price,
            "add_ons_price": self.add_ons_price,
            "total_price": self.total_price,
            "number_of_nights": self.number_of_nights,
        }


class PricingStrategy:
    """Base strategy: nights x nightly price, plus whatever ``add_ons_price`` adds."""

    def quote(self, listing: Mapping, nights: int, guests: int, add_ons: Optional[Mapping] = None) -> PriceQuote:
        base = round(float(listing.get("price", 0)) * nights, 2)
        surcharge = round(self.add_ons_price(listing, nights, guests, add_ons or {}), 2)
        return PriceQuote(number_of_nights=nights, base_price=base, add_ons_price=surcharge)

    def add_ons_price(self, listing: Mapping, nights: int, guests: int, add_ons: Mapping) -> float:
        raise NotImplementedError


class NightlyRatePricing(PricingStrategy):
    """Default pricing. Selected add-ons are recorded but not charged."""

    def add_ons_price(self, listing, nights, guests, add_ons):
        return 0.0


class AddOnPricing(PricingStrategy):
    """
    Opt-in pricing that charges a flat per-night rate for each selected add-on.

    ``rates`` maps add-on names (``breakfast``, ``parking``, ...) to the amount
    charged per night. Add-ons without a rate are free.
    """

    def __init__(self, rates: Mapping[str, float]):
        for name, rate in rates.items():
            if rate < 0:
                raise ValueError(f"Add-on rate for '{name}' cannot be negative")
        self.rates = dict(rates)

    def add_ons_price(self, listing, nights, guests, add_ons):
        total = 0.0
        for name, selected in add_ons.items():
            if selected:
                total += self.rates.get(name, 0.0) * nights
        return total


DEFAULT_PRICING = NightlyRatePricing()


def get_pricing_strategy() -> PricingStrategy:
    """FastAPI dependency returning the pricing strategy for new bookings."""
    return DEFAULT_PRICING
