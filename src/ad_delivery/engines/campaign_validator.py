# Author: Green Mountain Systems AI Inc.
# Donated to IAB Tech Lab

"""Campaign Metrics Validator - Drift detection for stored snapshots.

Recomputes a campaign's pricing and reach from its source inventory and
compares the fresh figures against the snapshot stored on the campaign.
Validation is advisory: every failure, including unexpected exceptions,
comes back as a result object and never propagates to the caller.
"""

import logging
from typing import Any, Optional, Union

from ..config import Settings, get_settings
from ..models.campaign import Campaign
from ..models.results import (
    PricingRecalculation,
    PricingValidationResult,
    ReachRecalculation,
    ReachValidationResult,
    RecalculatedMetrics,
)
from .pricing_calculator import campaign_total, publication_total
from .reach_calculator import calculate_package_reach

logger = logging.getLogger(__name__)

CampaignInput = Union[Campaign, dict[str, Any]]


def percent_discrepancy(stored: float, calculated: float) -> float:
    """Absolute difference as a percentage of the stored value (0 if no baseline)."""
    if stored <= 0:
        return 0.0
    return abs(calculated - stored) / stored * 100


class CampaignMetricsValidator:
    """Validator comparing recomputed campaign metrics to stored values.

    Example:
        validator = CampaignMetricsValidator()
        result = validator.validate_pricing(campaign)
        if not result.is_valid:
            logger.warning(result.message)
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        pricing_tolerance_percent: Optional[float] = None,
        reach_tolerance_percent: Optional[float] = None,
    ) -> None:
        """Initialize the validator.

        Args:
            settings: Application settings (defaults to cached settings)
            pricing_tolerance_percent: Override for allowed pricing drift
            reach_tolerance_percent: Override for allowed reach drift
        """
        self._settings = settings or get_settings()
        self.pricing_tolerance_percent = (
            pricing_tolerance_percent
            if pricing_tolerance_percent is not None
            else self._settings.pricing_tolerance_percent
        )
        self.reach_tolerance_percent = (
            reach_tolerance_percent
            if reach_tolerance_percent is not None
            else self._settings.reach_tolerance_percent
        )

    def _duration_months(self, campaign: Campaign) -> float:
        return campaign.timeline.duration_months or self._settings.default_duration_months

    @staticmethod
    def _as_campaign(campaign: CampaignInput) -> Campaign:
        if isinstance(campaign, Campaign):
            return campaign
        return Campaign.model_validate(campaign)

    @staticmethod
    def _publications(campaign: Campaign) -> list:
        if not campaign.selected_inventory:
            return []
        return campaign.selected_inventory.publications

    def validate_pricing(self, campaign: CampaignInput) -> PricingValidationResult:
        """Recalculate pricing and compare with the stored subtotal.

        Args:
            campaign: Campaign model or raw campaign document

        Returns:
            PricingValidationResult; valid when drift is under the tolerance
        """
        try:
            campaign = self._as_campaign(campaign)
            publications = self._publications(campaign)
            if not publications:
                return PricingValidationResult(
                    is_valid=True,
                    message="No inventory to validate",
                )

            calculated_total = campaign_total(publications, self._duration_months(campaign))

            pricing = campaign.pricing
            stored_total = (pricing.subtotal or pricing.final_price or 0.0) if pricing else 0.0
            discrepancy = abs(calculated_total - stored_total)
            percent_diff = percent_discrepancy(stored_total, calculated_total)
            is_valid = percent_diff < self.pricing_tolerance_percent

            return PricingValidationResult(
                is_valid=is_valid,
                stored_total=stored_total,
                calculated_total=calculated_total,
                discrepancy=discrepancy,
                message=(
                    "Pricing validation passed"
                    if is_valid
                    else (
                        f"Pricing discrepancy: stored=${stored_total:.2f}, "
                        f"calculated=${calculated_total:.2f} ({percent_diff:.2f}% diff)"
                    )
                ),
            )
        except Exception as e:
            logger.exception("Error validating campaign pricing")
            return PricingValidationResult(
                is_valid=False,
                message=f"Validation error: {e}",
            )

    def validate_reach(self, campaign: CampaignInput) -> ReachValidationResult:
        """Recalculate unique reach and compare with the stored estimate.

        Stored reach is read from `estimatedPerformance.reach.min`, falling
        back to `.max`.

        Args:
            campaign: Campaign model or raw campaign document

        Returns:
            ReachValidationResult; valid when drift is under the tolerance
        """
        try:
            campaign = self._as_campaign(campaign)
            publications = self._publications(campaign)
            if not publications:
                return ReachValidationResult(
                    is_valid=True,
                    message="No inventory to validate",
                )

            calculated_reach = float(calculate_package_reach(publications).estimated_unique_reach)

            stored_reach = 0.0
            performance = campaign.estimated_performance
            if performance and performance.reach:
                stored_reach = performance.reach.min or performance.reach.max or 0.0

            discrepancy = abs(calculated_reach - stored_reach)
            percent_diff = percent_discrepancy(stored_reach, calculated_reach)
            is_valid = percent_diff < self.reach_tolerance_percent

            return ReachValidationResult(
                is_valid=is_valid,
                stored_reach=stored_reach,
                calculated_reach=calculated_reach,
                discrepancy=discrepancy,
                message=(
                    "Reach validation passed"
                    if is_valid
                    else (
                        f"Reach discrepancy: stored={stored_reach:,.0f}, "
                        f"calculated={calculated_reach:,.0f} ({percent_diff:.2f}% diff)"
                    )
                ),
            )
        except Exception as e:
            logger.exception("Error validating campaign reach")
            return ReachValidationResult(
                is_valid=False,
                message=f"Validation error: {e}",
            )

    def recalculate_metrics(self, campaign: CampaignInput) -> RecalculatedMetrics:
        """Recompute pricing and reach for persistence.

        Does not persist anything; the caller decides whether to overwrite
        the stored snapshot. On failure the figures are zero and ``error``
        carries the message.
        """
        try:
            campaign = self._as_campaign(campaign)
            publications = self._publications(campaign)
            duration_months = self._duration_months(campaign)

            reach = calculate_package_reach(publications)

            return RecalculatedMetrics(
                pricing=PricingRecalculation(
                    subtotal=campaign_total(publications, duration_months),
                    publication_totals={
                        pub.publication_id: publication_total(pub, duration_months)
                        for pub in publications
                    },
                ),
                reach=ReachRecalculation(
                    estimated_unique_reach=reach.estimated_unique_reach,
                    estimated_total_reach=reach.estimated_total_reach,
                    total_monthly_impressions=reach.total_monthly_impressions,
                    total_monthly_exposures=reach.total_monthly_exposures,
                ),
            )
        except Exception as e:
            logger.exception("Error recalculating campaign metrics")
            return RecalculatedMetrics(
                pricing=PricingRecalculation(subtotal=0),
                reach=ReachRecalculation(estimated_unique_reach=0, estimated_total_reach=0),
                error=f"Recalculation error: {e}",
            )
