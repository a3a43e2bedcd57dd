"""Reduce per-producer auction sales into per-region price statistics."""

import logging
from dataclasses import asdict, dataclass
from typing import Any, Iterable, Optional

import pandas as pd

from woolmap.core.regions import EXCLUDED_REGION_NAME, RECOGNIZED_REGION_NAMES
from woolmap.core.schema import SchemaColumns as C

logger = logging.getLogger(__name__)

# Upstream publishes the top 10 lots per province.
TOP_N_PER_REGION = 10


@dataclass(frozen=True)
class RegionStats:
    """Summary of one region's sales for the current auction."""

    certified_avg: float = 0.0
    non_certified_avg: float = 0.0
    has_non_certified: bool = False

    @property
    def display_metric(self) -> float:
        """The price a region is colored by: certified average, else non-certified."""
        if self.certified_avg > 0:
            return self.certified_avg
        return self.non_certified_avg

    @property
    def has_data(self) -> bool:
        return self.certified_avg > 0 or self.non_certified_avg > 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _mean_or_zero(prices: pd.Series) -> float:
    if prices.empty:
        return 0.0
    return float(prices.mean())


def aggregate_region_stats(
    sales_df: Optional[pd.DataFrame],
    region_names: Iterable[str] = RECOGNIZED_REGION_NAMES,
    top_n: int = TOP_N_PER_REGION,
) -> dict[str, RegionStats]:
    """
    Compute RegionStats for every recognized region.

    Rows are expected to arrive ranked. Only the first `top_n` rows per region in input
    order are used; the rows are not re-sorted. Sales in unrecognized regions, and in the
    excluded neighbouring territory, are dropped.

    Args:
        sales_df: Sale DataFrame conforming to ProducerSaleSchema, or None
        region_names: Regions to report on
        top_n: Maximum number of sales considered per region

    Returns:
        One RegionStats per recognized region name, zero-filled when it has no sales
    """
    names = [name for name in region_names if name != EXCLUDED_REGION_NAME]
    stats = {name: RegionStats() for name in names}
    if sales_df is None or sales_df.empty:
        return stats

    recognized = sales_df[sales_df[C.REGION].isin(names)]
    dropped_count = len(sales_df) - len(recognized)
    if dropped_count:
        dropped_regions = sorted(
            set(sales_df[C.REGION].dropna().astype(str)) - set(names)
        )
        logger.debug(f"Dropped {dropped_count} sales outside the map: {dropped_regions=}")

    top_rows = recognized.groupby(C.REGION, sort=False).head(top_n)
    for name, group in top_rows.groupby(C.REGION, sort=False):
        is_certified = group[C.CERTIFIED].astype(bool)
        non_certified_prices = group.loc[~is_certified, C.PRICE]
        stats[str(name)] = RegionStats(
            certified_avg=_mean_or_zero(group.loc[is_certified, C.PRICE]),
            non_certified_avg=_mean_or_zero(non_certified_prices),
            has_non_certified=not non_certified_prices.empty,
        )

    logger.info(
        f"Aggregated {len(top_rows)} of {len(sales_df)} sales into {len(stats)} regions"
    )
    return stats
