# Author: Green Mountain Systems AI Inc.
# Donated to IAB Tech Lab

"""Pricing Calculator - Inventory cost and campaign duration.

Pure functions that turn inventory line items into costs:
- Monthly cost per item from its hub price and pricing model
- Campaign cost for a (possibly fractional) duration in months
- Publication and campaign totals over non-excluded items
- Budget checks and summary statistics

Missing data resolves to zero instead of raising, so validators built on
top of these functions must tolerate zero baselines.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable

from ..models.core import PricingModel, ensure_utc
from ..models.inventory import InventoryItemBase, PublicationSelection

# Pricing models billed as price x occurrences per month
_OCCURRENCE_MODELS = {
    PricingModel.FLAT.value,
    PricingModel.MONTHLY.value,
    PricingModel.PER_WEEK.value,
    PricingModel.PER_DAY.value,
    PricingModel.PER_SEND.value,
    PricingModel.PER_SPOT.value,
    PricingModel.PER_POST.value,
    PricingModel.PER_AD.value,
    PricingModel.PER_EPISODE.value,
    PricingModel.PER_STORY.value,
}

# Assumed click-through rate for CPC items
CPC_CLICK_THROUGH_RATE = 0.01


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up."""
    return int(math.floor(value + 0.5))


@dataclass
class CampaignDuration:
    """Duration derived from a campaign's flight dates."""

    duration_weeks: int
    duration_months: float


@dataclass
class BudgetCheck:
    """Result of checking publications against a budget."""

    valid: bool
    total_cost: float
    percentage_used: float
    overage: float


@dataclass
class SummaryStats:
    """Summary statistics for a set of publications."""

    total_outlets: int
    total_channels: int
    total_units: int
    monthly_cost: float
    total_cost: float
    channel_breakdown: dict[str, float] = field(default_factory=dict)


def calculate_duration(start_date: datetime, end_date: datetime) -> CampaignDuration:
    """Derive duration in weeks and months from flight dates.

    Spans under 28 days are priced as a fraction of a 4-week month; longer
    spans round to the nearest whole month (minimum 1).

    Args:
        start_date: Campaign start
        end_date: Campaign end

    Returns:
        CampaignDuration with weeks and months
    """
    diff = ensure_utc(end_date) - ensure_utc(start_date)
    diff_days = diff.total_seconds() / 86400
    duration_weeks = math.ceil(diff_days / 7)

    if diff_days < 28:
        duration_months = duration_weeks / 4
    else:
        duration_months = float(max(1, round_half_up(diff_days / 30)))

    return CampaignDuration(
        duration_weeks=duration_weeks,
        duration_months=duration_months,
    )


def item_monthly_cost(item: InventoryItemBase, frequency: int = 0) -> float:
    """Calculate the monthly cost of a single inventory item.

    Args:
        item: Inventory item with pricing
        frequency: Occurrences per month; defaults to the item's own frequency.
            For CPM/CPV/CPC items this is the percentage of impressions bought.

    Returns:
        Monthly cost, or 0 when the item has no usable pricing
    """
    if not item.item_pricing or not item.item_pricing.hub_price:
        return 0.0

    price = item.item_pricing.hub_price
    model = (item.item_pricing.pricing_model or "").lower()
    item_frequency = frequency or item.frequency

    if model in _OCCURRENCE_MODELS:
        return price * item_frequency

    if model in (PricingModel.CPM.value, PricingModel.CPV.value, PricingModel.CPC.value):
        if not item.monthly_impressions:
            return price * item_frequency

        share = item.monthly_impressions * (item_frequency / 100)
        if model == PricingModel.CPM.value:
            return price * share / 1000
        if model == PricingModel.CPV.value:
            return price * share / 100
        return price * share * CPC_CLICK_THROUGH_RATE

    # Unknown model, use simple multiplication
    return price * item_frequency


def item_cost(item: InventoryItemBase, duration_months: float = 1) -> float:
    """Cost of an item over the campaign duration (fractional months allowed)."""
    return item_monthly_cost(item) * duration_months


def publication_total(publication: PublicationSelection, duration_months: float = 1) -> float:
    """Sum of item costs for one publication, skipping excluded items."""
    return math.fsum(item_cost(item, duration_months) for item in publication.active_items())


def campaign_total(
    publications: Iterable[PublicationSelection],
    duration_months: float = 1,
) -> float:
    """Sum of publication totals across a campaign."""
    return math.fsum(publication_total(pub, duration_months) for pub in publications or [])


def validate_budget(
    publications: list[PublicationSelection],
    budget: float,
    duration_months: float = 1,
) -> BudgetCheck:
    """Check whether publications fit within a budget."""
    total_cost = campaign_total(publications, duration_months)
    percentage_used = (total_cost / budget) * 100 if budget > 0 else 0.0
    overage = max(0.0, total_cost - budget)

    return BudgetCheck(
        valid=total_cost <= budget,
        total_cost=total_cost,
        percentage_used=percentage_used,
        overage=overage,
    )


def calculate_summary_stats(
    publications: list[PublicationSelection],
    duration_months: float = 1,
) -> SummaryStats:
    """Summarize outlets, channels, units and cost for a set of publications."""
    channels: set[str] = set()
    channel_breakdown: dict[str, float] = {}
    total_units = 0

    for pub in publications:
        for item in pub.active_items():
            channels.add(item.channel)
            total_units += item.frequency
            channel_breakdown[item.channel] = (
                channel_breakdown.get(item.channel, 0.0) + item_monthly_cost(item)
            )

    monthly_cost = campaign_total(publications, 1)

    return SummaryStats(
        total_outlets=len(publications),
        total_channels=len(channels),
        total_units=total_units,
        monthly_cost=monthly_cost,
        total_cost=monthly_cost * duration_months,
        channel_breakdown=channel_breakdown,
    )
