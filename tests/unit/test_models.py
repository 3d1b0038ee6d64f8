# Author: Green Mountain Systems AI Inc.
# Donated to IAB Tech Lab

"""Unit tests for Ad Delivery System models."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from ad_delivery.models import (
    Campaign,
    InsertionOrder,
    OrderStatus,
    PlacementStatus,
    PublicationSelection,
)
from ad_delivery.models.inventory import (
    EventsItem,
    NewsletterItem,
    OtherItem,
    PrintItem,
    SocialMediaItem,
    WebsiteItem,
)

from conftest import PRINT_PATH, WEBSITE_PATH


def _item(channel, **fields):
    publication = PublicationSelection.model_validate(
        {"publicationId": 1, "inventoryItems": [{"channel": channel, **fields}]}
    )
    return publication.inventory_items[0]


class TestInventoryItems:
    """Tests for the channel-tagged inventory item union."""

    @pytest.mark.parametrize(
        "channel,expected",
        [
            ("website", WebsiteItem),
            ("Newsletter", NewsletterItem),
            ("email", NewsletterItem),
            ("print", PrintItem),
            ("social", SocialMediaItem),
            ("events", EventsItem),
            ("billboard", OtherItem),
        ],
    )
    def test_channel_selects_variant(self, channel, expected):
        """Test each channel is parsed into its own item type."""
        assert isinstance(_item(channel), expected)

    def test_missing_channel_is_other(self):
        """Test items without a channel fall through to the generic variant."""
        item = PublicationSelection.model_validate(
            {"publicationId": 1, "inventoryItems": [{"itemPath": "x"}]}
        ).inventory_items[0]

        assert isinstance(item, OtherItem)
        assert item.channel == "other"

    def test_channel_audience(self):
        """Test each channel reads its own audience metric."""
        assert _item("print", audienceMetrics={"circulation": 20000}).audience_size() == 20000
        assert _item("newsletter", audienceMetrics={"subscribers": 900}).audience_size() == 900
        assert _item("events", audienceMetrics={"expectedAttendees": 300}).audience_size() == 300
        assert _item("print", audienceMetrics={"subscribers": 900}).audience_size() is None

    def test_website_page_views_are_impressions(self):
        """Test website page views count as impressions before monthlyImpressions."""
        item = _item("website", monthlyImpressions=5, audienceMetrics={"monthlyPageViews": 80000})

        assert item.impressions() == 80000

    def test_placement_id_and_frequency(self):
        """Test the placement key falls back to the source path and frequency to quantity."""
        item = _item("print", sourcePath="src.path", quantity=3)

        assert item.placement_id == "src.path"
        assert item.frequency == 3
        assert _item("print").frequency == 1


class TestDocuments:
    """Tests for camelCase document round trips."""

    def test_campaign_document(self, make_campaign):
        """Test campaign documents keep their camelCase keys and storage id."""
        document = make_campaign()

        campaign = Campaign.from_document(document)
        stored = campaign.to_document()

        assert campaign.id == "cmp-0001"
        assert campaign.timeline.start_date.tzinfo is not None
        assert stored["_id"] == "cmp-0001"
        assert stored["campaignId"] == "campaign-test-0001"
        assert "selectedInventory" in stored
        assert "deletedAt" not in stored

    def test_naive_dates_become_utc(self, make_campaign):
        """Test naive timestamps are read as UTC."""
        campaign = Campaign.from_document(
            make_campaign(timeline={"startDate": "2026-03-01T00:00:00"})
        )

        assert campaign.timeline.start_date == datetime(2026, 3, 1, tzinfo=timezone.utc)

    def test_order_document(self, make_order):
        """Test order statuses parse into enums and serialize back to strings."""
        order = InsertionOrder.from_document(make_order())

        assert order.status == OrderStatus.CONFIRMED
        assert order.placement_statuses[WEBSITE_PATH] == PlacementStatus.ACCEPTED
        assert order.find_placement(PRINT_PATH).channel == "print"
        assert order.find_placement("nope") is None
        assert order.to_document()["placementStatuses"][PRINT_PATH] == "accepted"

    def test_unknown_status_rejected(self, make_order):
        """Test invalid statuses fail validation."""
        with pytest.raises(ValidationError):
            InsertionOrder.from_document(make_order(status="archived"))

    def test_snake_case_construction(self):
        """Test models accept attribute names as well as aliases."""
        order = InsertionOrder(campaign_id="c-1", order_total=10)

        assert order.to_document() == {
            "campaignId": "c-1",
            "status": "draft",
            "orderTotal": 10.0,
            "placementStatuses": {},
            "placementStatusHistory": [],
            "statusHistory": [],
            "deliveryGoals": {},
            "version": 0,
        }
