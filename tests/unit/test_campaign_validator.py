# Author: Green Mountain Systems AI Inc.
# Donated to IAB Tech Lab

"""Unit tests for the campaign metrics validator."""

import pytest

from ad_delivery.engines.campaign_validator import (
    CampaignMetricsValidator,
    percent_discrepancy,
)
from ad_delivery.models.campaign import Campaign


def _monthly_publication(price: float) -> dict:
    return {
        "publicationId": 7,
        "inventoryItems": [
            {
                "itemPath": "distributionChannels.newsletters[0].advertisingOpportunities[0]",
                "channel": "newsletter",
                "itemPricing": {"hubPrice": price, "pricingModel": "monthly"},
            }
        ],
    }


class TestPricingValidation:
    """Tests for validate_pricing."""

    @pytest.fixture
    def validator(self, settings):
        """Create a validator with default tolerances."""
        return CampaignMetricsValidator(settings)

    def test_matching_campaign_passes(self, validator, make_campaign):
        """Test a campaign whose snapshot matches its inventory."""
        result = validator.validate_pricing(make_campaign())

        assert result.is_valid is True
        assert result.calculated_total == pytest.approx(7000)
        assert result.message == "Pricing validation passed"

    def test_small_drift_within_tolerance(self, validator, make_campaign):
        """Test 0.5% drift passes the 1% tolerance."""
        campaign = make_campaign(
            publications=[_monthly_publication(1005)],
            timeline={"durationMonths": 1},
            pricing={"subtotal": 1000},
        )

        result = validator.validate_pricing(campaign)

        assert result.is_valid is True
        assert result.discrepancy == pytest.approx(5)

    def test_large_drift_fails(self, validator, make_campaign):
        """Test 2% drift fails with a descriptive message."""
        campaign = make_campaign(
            publications=[_monthly_publication(1020)],
            timeline={"durationMonths": 1},
            pricing={"subtotal": 1000},
        )

        result = validator.validate_pricing(campaign)

        assert result.is_valid is False
        assert result.message == (
            "Pricing discrepancy: stored=$1000.00, calculated=$1020.00 (2.00% diff)"
        )

    def test_final_price_used_without_subtotal(self, validator, make_campaign):
        """Test final price is the fallback stored total."""
        campaign = make_campaign(pricing={"finalPrice": 7000})

        assert validator.validate_pricing(campaign).stored_total == 7000

    def test_no_stored_pricing_is_valid(self, validator, make_campaign):
        """Test a missing baseline is not treated as drift."""
        campaign = make_campaign(pricing=None)

        result = validator.validate_pricing(campaign)

        assert result.is_valid is True
        assert result.stored_total == 0

    def test_missing_duration_uses_default(self, validator, make_campaign):
        """Test campaigns without a duration are priced for the default month."""
        campaign = make_campaign(timeline={}, pricing={"subtotal": 3500})

        result = validator.validate_pricing(campaign)

        assert result.calculated_total == pytest.approx(3500)
        assert result.is_valid is True

    def test_no_inventory(self, validator, make_campaign):
        """Test campaigns without publications have nothing to validate."""
        result = validator.validate_pricing(make_campaign(publications=[]))

        assert result.is_valid is True
        assert result.message == "No inventory to validate"

    def test_malformed_campaign_is_reported(self, validator, make_campaign):
        """Test errors come back as an invalid result instead of raising."""
        result = validator.validate_pricing(make_campaign(status="not-a-status"))

        assert result.is_valid is False
        assert result.message.startswith("Validation error:")

    def test_accepts_model(self, validator, make_campaign):
        """Test a Campaign model is accepted as well as a document."""
        campaign = Campaign.from_document(make_campaign())

        assert validator.validate_pricing(campaign).is_valid is True


class TestReachValidation:
    """Tests for validate_reach."""

    @pytest.fixture
    def validator(self, settings):
        """Create a validator with default tolerances."""
        return CampaignMetricsValidator(settings)

    def test_matching_campaign_passes(self, validator, make_campaign):
        """Test a matching reach snapshot."""
        result = validator.validate_reach(make_campaign())

        assert result.is_valid is True
        assert result.calculated_reach == 56250

    def test_drift_within_tolerance(self, validator, make_campaign, radio_publication):
        """Test 5% drift passes the 10% tolerance."""
        campaign = make_campaign(
            publications=[radio_publication],
            estimatedPerformance={"reach": {"min": 10000}},
        )

        result = validator.validate_reach(campaign)

        assert result.calculated_reach == 10500
        assert result.is_valid is True

    def test_drift_beyond_tolerance(self, validator, make_campaign, radio_publication):
        """Test 15% drift fails."""
        campaign = make_campaign(
            publications=[radio_publication],
            estimatedPerformance={"reach": {"min": 9130}},
        )

        result = validator.validate_reach(campaign)

        assert result.is_valid is False
        assert result.message.startswith("Reach discrepancy: stored=9,130, calculated=10,500")

    def test_max_used_without_min(self, validator, make_campaign):
        """Test reach.max is the fallback stored reach."""
        campaign = make_campaign(estimatedPerformance={"reach": {"max": 56250}})

        assert validator.validate_reach(campaign).stored_reach == 56250

    def test_custom_tolerance(self, settings, make_campaign, radio_publication):
        """Test tolerance overrides."""
        validator = CampaignMetricsValidator(settings, reach_tolerance_percent=20)
        campaign = make_campaign(
            publications=[radio_publication],
            estimatedPerformance={"reach": {"min": 9130}},
        )

        assert validator.validate_reach(campaign).is_valid is True


class TestRecalculateMetrics:
    """Tests for recalculate_metrics."""

    def test_recalculate(self, settings, make_campaign):
        """Test fresh subtotal, per-publication totals and reach."""
        metrics = CampaignMetricsValidator(settings).recalculate_metrics(make_campaign())

        assert metrics.pricing.subtotal == pytest.approx(7000)
        assert metrics.pricing.publication_totals == {
            101: pytest.approx(6000),
            102: pytest.approx(1000),
        }
        assert metrics.reach.estimated_unique_reach == 56250
        assert metrics.reach.estimated_total_reach == 75000
        assert metrics.error is None

    def test_malformed_campaign_is_reported(self, settings):
        """Test a publication without an id yields zeroed figures and an error."""
        metrics = CampaignMetricsValidator(settings).recalculate_metrics(
            {"selectedInventory": {"publications": [{"inventoryItems": []}]}}
        )

        assert metrics.error.startswith("Recalculation error:")
        assert metrics.pricing.subtotal == 0
        assert metrics.pricing.publication_totals == {}
        assert metrics.reach.estimated_unique_reach == 0


class TestPercentDiscrepancy:
    """Tests for percent_discrepancy."""

    def test_zero_baseline(self):
        """Test a zero stored value yields zero discrepancy."""
        assert percent_discrepancy(0, 500) == 0

    def test_relative_to_stored(self):
        """Test the difference is relative to the stored value."""
        assert percent_discrepancy(200, 150) == pytest.approx(25)
