"""Classify prices into a five-tier color ramp."""

from dataclasses import dataclass
from typing import Iterable, Optional

import numpy as np

from woolmap.core.aggregation import RegionStats

# Light to dark.
TIER_COLORS: tuple[str, ...] = ("#dbeafe", "#bfdbfe", "#93c5fd", "#60a5fa", "#3b82f6")
TIER_THRESHOLDS: tuple[float, ...] = (0.2, 0.4, 0.6, 0.8)
FALLBACK_COLOR = "#e5e7eb"


@dataclass(frozen=True)
class PriceRange:
    min_price: float
    max_price: float

    @property
    def span(self) -> float:
        return self.max_price - self.min_price


def collect_nonzero_prices(stats: Iterable[RegionStats]) -> list[float]:
    """Pool certified and non-certified averages across all regions, skipping zeros."""
    prices = []
    for region_stats in stats:
        for price in (region_stats.certified_avg, region_stats.non_certified_avg):
            if price > 0:
                prices.append(price)
    return prices


def compute_price_range(stats: Iterable[RegionStats]) -> Optional[PriceRange]:
    """Return the pooled price range, or None when it cannot be normalized against."""
    prices = np.asarray(collect_nonzero_prices(stats), dtype=float)
    if prices.size == 0:
        return None
    price_range = PriceRange(
        min_price=float(prices.min()), max_price=float(prices.max())
    )
    if price_range.span <= 0:
        return None
    return price_range


def classify_tier(price: float, price_range: PriceRange) -> int:
    """Bucket a price into tier 0 (lightest) to 4 (darkest)."""
    ratio = (price - price_range.min_price) / price_range.span
    # The hover boost can push a price past the maximum.
    ratio = float(np.clip(ratio, 0.0, 1.0))
    for tier, threshold in enumerate(TIER_THRESHOLDS):
        if ratio < threshold:
            return tier
    return len(TIER_THRESHOLDS)


class ColorClassifier:
    """
    Maps prices to tier colors for one displayed set of regions.

    Build a new classifier whenever the displayed stats change; a degenerate range
    (no positive prices, or all prices equal) colors everything with FALLBACK_COLOR.
    """

    def __init__(self, price_range: Optional[PriceRange]) -> None:
        self.price_range = price_range

    @classmethod
    def from_stats(cls, stats: Iterable[RegionStats]) -> "ColorClassifier":
        return cls(compute_price_range(stats))

    @property
    def is_degenerate(self) -> bool:
        return self.price_range is None

    def tier_for(self, price: float) -> Optional[int]:
        """Tier index for a price; None when the price is uncolored."""
        if self.price_range is None or price <= 0:
            return None
        return classify_tier(price, self.price_range)

    def color_for(self, price: float) -> str:
        tier = self.tier_for(price)
        if tier is None:
            return FALLBACK_COLOR
        return TIER_COLORS[tier]
