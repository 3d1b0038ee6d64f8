"""Reach Calculator - Audience and impression aggregation across channels.

Estimates total and unique reach for a multi-publication package:
- Within a publication, each channel counts its largest item audience once
- Channel audiences are summed across publications for total reach
- An overlap factor chosen from the package composition de-duplicates
  total reach into unique reach

The heuristic is deterministic and does not depend on the order of
publications or items.
"""

import math
from dataclasses import dataclass, field
from typing import Optional

from ..models.inventory import PublicationSelection
from .pricing_calculator import round_half_up


@dataclass
class OverlapConfig:
    """Share of audience kept after de-duplication, by package composition."""

    single_pub_multi_channel: float = 0.60
    multi_pub_same_geo: float = 0.75
    multi_pub_diff_geo: float = 0.90
    default: float = 0.70


DEFAULT_OVERLAP_CONFIG = OverlapConfig()


@dataclass
class ReachSummary:
    """Reach estimate for a package."""

    estimated_total_reach: float
    estimated_unique_reach: int
    total_monthly_impressions: Optional[int] = None
    total_monthly_exposures: Optional[int] = None
    channel_audiences: dict[str, float] = field(default_factory=dict)
    calculation_method: str = "audience"  # impressions, audience, mixed
    overlap_factor: float = 0.70
    publications_count: int = 0
    channels_count: int = 0


def _overlap_factor(
    publications_count: int,
    channels_count: int,
    config: OverlapConfig,
) -> float:
    if publications_count == 1 and channels_count > 1:
        return config.single_pub_multi_channel
    if publications_count > 1:
        # Geography is not modelled yet, so assume a shared market
        return config.multi_pub_same_geo
    return config.default


def calculate_package_reach(
    publications: list[PublicationSelection],
    overlap_config: OverlapConfig = DEFAULT_OVERLAP_CONFIG,
) -> ReachSummary:
    """Calculate reach for a set of publication selections.

    Args:
        publications: Publications with their selected inventory
        overlap_config: Overlap factors by package composition

    Returns:
        ReachSummary with total/unique reach, impressions and exposures
    """
    publications = publications or []
    impressions: list[float] = []
    exposures: list[float] = []
    channel_totals: dict[str, list[float]] = {}
    all_channels: set[str] = set()

    for pub in publications:
        channel_max: dict[str, float] = {}

        for item in pub.active_items():
            all_channels.add(item.channel)
            item_impressions = item.impressions()
            item_audience = item.audience_size()

            if item_impressions:
                impressions.append(item_impressions)
                exposures.append(item_impressions)
            elif item_audience:
                # e.g. 15K subscribers x 8 sends = 120K exposures
                exposures.append(item_audience * item.frequency)

            if item_audience:
                channel_max[item.channel] = max(channel_max.get(item.channel, 0.0), item_audience)

        for channel, audience in channel_max.items():
            channel_totals.setdefault(channel, []).append(audience)

    channel_audiences = {
        channel: math.fsum(audiences) for channel, audiences in sorted(channel_totals.items())
    }
    total_audience = math.fsum(channel_audiences.values())
    total_impressions = math.fsum(impressions)
    total_exposures = math.fsum(exposures)

    overlap_factor = _overlap_factor(len(publications), len(all_channels), overlap_config)

    if total_impressions > 0 and total_audience > 0:
        calculation_method = "mixed"
    elif total_impressions > 0:
        calculation_method = "impressions"
    else:
        calculation_method = "audience"

    return ReachSummary(
        estimated_total_reach=total_audience,
        estimated_unique_reach=round_half_up(total_audience * overlap_factor),
        total_monthly_impressions=round_half_up(total_impressions) if total_impressions > 0 else None,
        total_monthly_exposures=round_half_up(total_exposures) if total_exposures > 0 else None,
        channel_audiences=channel_audiences,
        calculation_method=calculation_method,
        overlap_factor=overlap_factor,
        publications_count=len(publications),
        channels_count=len(all_channels),
    )


def format_reach_number(reach: float) -> str:
    """Format a reach figure for display (e.g. 1.2M, 15.0K)."""
    if reach >= 1_000_000:
        return f"{reach / 1_000_000:.1f}M"
    if reach >= 1_000:
        return f"{reach / 1_000:.1f}K"
    return f"{reach:,.0f}"
