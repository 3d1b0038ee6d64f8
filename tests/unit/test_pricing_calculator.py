"""Unit tests for the pricing calculator."""

from datetime import datetime, timedelta, timezone

import pytest

from ad_delivery.engines.pricing_calculator import (
    calculate_duration,
    calculate_summary_stats,
    campaign_total,
    item_cost,
    item_monthly_cost,
    publication_total,
    round_half_up,
    validate_budget,
)
from ad_delivery.models.inventory import PublicationSelection, WebsiteItem


def _publication(items: list[dict], publication_id: int = 1) -> PublicationSelection:
    return PublicationSelection.model_validate(
        {"publicationId": publication_id, "inventoryItems": items}
    )


def _item(pricing_model: str, price: float = 100, **fields) -> WebsiteItem:
    data = {"channel": "website", "itemPricing": {"hubPrice": price, "pricingModel": pricing_model}}
    data.update(fields)
    return WebsiteItem.model_validate(data)


class TestRoundHalfUp:
    """Tests for round_half_up."""

    def test_halves_round_up(self):
        """Test .5 rounds away from zero for positive values."""
        assert round_half_up(0.5) == 1
        assert round_half_up(2.5) == 3
        assert round_half_up(2.4999) == 2


class TestCalculateDuration:
    """Tests for calculate_duration."""

    START = datetime(2026, 1, 1, tzinfo=timezone.utc)

    @pytest.mark.parametrize("days", [1, 7, 10, 14, 21, 27])
    def test_short_spans_are_fractions_of_four_week_months(self, days):
        """Test spans under 28 days use weeks / 4."""
        duration = calculate_duration(self.START, self.START + timedelta(days=days))

        assert duration.duration_months == duration.duration_weeks / 4

    def test_two_weeks(self):
        """Test a 14 day span is half a month."""
        duration = calculate_duration(self.START, self.START + timedelta(days=14))

        assert duration.duration_weeks == 2
        assert duration.duration_months == 0.5

    @pytest.mark.parametrize(
        "days,months",
        [(28, 1), (30, 1), (44, 1), (45, 2), (60, 2), (90, 3), (365, 12)],
    )
    def test_long_spans_round_to_whole_months(self, days, months):
        """Test spans of 28 days or more round days / 30 to a whole month."""
        duration = calculate_duration(self.START, self.START + timedelta(days=days))

        assert duration.duration_months == months
        assert duration.duration_months >= 1

    def test_naive_dates_are_treated_as_utc(self):
        """Test naive and aware datetimes can be mixed."""
        duration = calculate_duration(datetime(2026, 1, 1), self.START + timedelta(days=7))

        assert duration.duration_weeks == 1


class TestItemCost:
    """Tests for per-item pricing."""

    def test_occurrence_models_multiply_by_frequency(self):
        """Test per-occurrence models charge price x frequency."""
        for model in ("flat", "monthly", "per_send", "per_spot", "per_ad", "per_episode"):
            assert item_monthly_cost(_item(model, 100, currentFrequency=3)) == 300

    def test_quantity_used_when_no_frequency(self):
        """Test quantity stands in for a missing frequency."""
        assert item_monthly_cost(_item("per_post", 25, quantity=4)) == 100

    def test_cpm_with_impressions(self):
        """Test CPM buys a percentage share of monthly impressions."""
        item = _item("cpm", 20, currentFrequency=50, monthlyImpressions=100000)

        assert item_monthly_cost(item) == pytest.approx(1000)

    def test_cpv_and_cpc(self):
        """Test CPV divides by 100 and CPC assumes a 1% click-through."""
        cpv = _item("cpv", 2, currentFrequency=100, monthlyImpressions=10000)
        cpc = _item("cpc", 3, currentFrequency=100, monthlyImpressions=10000)

        assert item_monthly_cost(cpv) == pytest.approx(200)
        assert item_monthly_cost(cpc) == pytest.approx(300)

    def test_cpm_without_impressions_falls_back(self):
        """Test CPM items without impression data charge price x frequency."""
        assert item_monthly_cost(_item("cpm", 15, currentFrequency=2)) == 30

    def test_unknown_model_multiplies(self):
        """Test an unrecognized pricing model uses simple multiplication."""
        assert item_monthly_cost(_item("per_banana", 10, currentFrequency=2)) == 20

    def test_missing_pricing_is_free(self):
        """Test items without a price cost nothing."""
        assert item_monthly_cost(WebsiteItem(channel="website")) == 0
        assert item_monthly_cost(_item("flat", 0)) == 0

    def test_item_cost_scales_with_fractional_duration(self):
        """Test the duration multiplier accepts fractional months."""
        item = _item("monthly", 400)

        assert item_cost(item, 0.5) == 200
        assert item_cost(item, 3) == 1200


class TestTotals:
    """Tests for publication and campaign totals."""

    def test_publication_total_skips_excluded_items(self, website_item, print_item):
        """Test excluded items are not priced."""
        excluded = {**print_item, "isExcluded": True}

        assert publication_total(_publication([website_item, print_item])) == pytest.approx(3000)
        assert publication_total(_publication([website_item, excluded])) == pytest.approx(1000)

    def test_campaign_total(self, tribune_publication, radio_publication):
        """Test campaign total sums publications over the duration."""
        publications = [
            PublicationSelection.model_validate(tribune_publication),
            PublicationSelection.model_validate(radio_publication),
        ]

        assert campaign_total(publications, 2) == pytest.approx(7000)

    def test_campaign_total_is_order_independent(self, website_item, print_item, radio_item):
        """Test reordering publications or items does not change the total."""
        odd_item = {
            "itemPath": "odd",
            "channel": "newsletter",
            "currentFrequency": 3,
            "itemPricing": {"hubPrice": 0.1, "pricingModel": "per_send"},
        }
        first = [
            _publication([website_item, print_item, odd_item], 1),
            _publication([radio_item], 2),
        ]
        second = [
            _publication([radio_item], 2),
            _publication([odd_item, print_item, website_item], 1),
        ]

        assert campaign_total(first, 1.75) == campaign_total(second, 1.75)
        assert campaign_total(first, 1.75) == campaign_total(first, 1.75)

    def test_empty_campaign_total_is_zero(self):
        """Test no publications means a zero total."""
        assert campaign_total([], 3) == 0
        assert campaign_total(None, 3) == 0


class TestBudgetAndSummary:
    """Tests for budget checks and summary statistics."""

    def test_validate_budget(self, tribune_publication):
        """Test budget usage and overage."""
        publications = [PublicationSelection.model_validate(tribune_publication)]

        within = validate_budget(publications, 5000, 1)
        over = validate_budget(publications, 2500, 1)

        assert within.valid is True
        assert within.percentage_used == pytest.approx(60)
        assert over.valid is False
        assert over.overage == pytest.approx(500)

    def test_summary_stats(self, tribune_publication, radio_publication):
        """Test outlets, channels, units and cost breakdown."""
        publications = [
            PublicationSelection.model_validate(tribune_publication),
            PublicationSelection.model_validate(radio_publication),
        ]

        stats = calculate_summary_stats(publications, 2)

        assert stats.total_outlets == 2
        assert stats.total_channels == 3
        assert stats.total_units == 64
        assert stats.monthly_cost == pytest.approx(3500)
        assert stats.total_cost == pytest.approx(7000)
        assert stats.channel_breakdown["print"] == pytest.approx(2000)
