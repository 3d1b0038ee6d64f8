"""Pytest configuration and fixtures for Ad Delivery System tests."""

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

import pytest

from ad_delivery.config import Settings
from ad_delivery.storage.memory_backend import MemoryBackend

WEBSITE_PATH = "distributionChannels.website[0].advertisingOpportunities[0]"
PRINT_PATH = "distributionChannels.print[0].advertisingOpportunities[0]"
RADIO_PATH = "distributionChannels.radio[0].shows[0].advertisingOpportunities[0]"

FIXED_NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now() -> datetime:
    """A fixed 'current time' for time-dependent rules."""
    return FIXED_NOW


@pytest.fixture
def clock(now: datetime) -> Callable[[], datetime]:
    """Clock returning the fixed time."""
    return lambda: now


@pytest.fixture
def settings() -> Settings:
    """Settings that ignore the environment and use in-memory storage."""
    return Settings(_env_file=None, storage_type="memory", store_timeout_seconds=1.0)


@pytest.fixture
async def store():
    """A connected in-memory storage backend."""
    backend = MemoryBackend()
    await backend.connect()
    yield backend
    await backend.disconnect()


@pytest.fixture
def website_item() -> dict:
    """CPM website placement buying half of 100K monthly impressions ($1,000/month)."""
    return {
        "itemPath": WEBSITE_PATH,
        "itemName": "Homepage Leaderboard",
        "channel": "website",
        "currentFrequency": 50,
        "monthlyImpressions": 100000,
        "itemPricing": {"hubPrice": 20, "pricingModel": "cpm"},
        "audienceMetrics": {"monthlyVisitors": 40000},
    }


@pytest.fixture
def print_item() -> dict:
    """Four print ads per month at $500 each."""
    return {
        "itemPath": PRINT_PATH,
        "itemName": "Half Page",
        "channel": "print",
        "currentFrequency": 4,
        "itemPricing": {"hubPrice": 500, "pricingModel": "per_ad"},
        "audienceMetrics": {"circulation": 20000},
    }


@pytest.fixture
def radio_item() -> dict:
    """Ten radio spots per month at $50 each."""
    return {
        "itemPath": RADIO_PATH,
        "itemName": "Morning Drive :30",
        "channel": "radio",
        "currentFrequency": 10,
        "itemPricing": {"hubPrice": 50, "pricingModel": "per_spot"},
        "audienceMetrics": {"listeners": 15000},
    }


@pytest.fixture
def tribune_publication(website_item: dict, print_item: dict) -> dict:
    """Publication with a website and a print placement."""
    return {
        "publicationId": 101,
        "publicationName": "Daily Tribune",
        "inventoryItems": [website_item, print_item],
    }


@pytest.fixture
def radio_publication(radio_item: dict) -> dict:
    """Publication with a single radio placement."""
    return {
        "publicationId": 102,
        "publicationName": "Westside Radio",
        "inventoryItems": [radio_item],
    }


@pytest.fixture
def make_campaign(now: datetime, tribune_publication: dict, radio_publication: dict) -> Callable[..., dict]:
    """Factory for campaign documents.

    The default campaign runs from 30 days ago to 30 days from now, is
    priced over 2 months ($7,000) and has a unique reach of 56,250.
    """

    def factory(
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        status: str = "approved",
        publications: Optional[list] = None,
        **overrides: Any,
    ) -> dict:
        document = {
            "_id": "cmp-0001",
            "campaignId": "campaign-test-0001",
            "hubId": "chicago-hub",
            "basicInfo": {"name": "Spring Push"},
            "timeline": {
                "startDate": (start or now - timedelta(days=30)).isoformat(),
                "endDate": (end or now + timedelta(days=30)).isoformat(),
                "durationMonths": 2,
            },
            "status": status,
            "selectedInventory": {
                "publications": publications
                if publications is not None
                else [tribune_publication, radio_publication],
            },
            "pricing": {"subtotal": 7000},
            "estimatedPerformance": {"reach": {"min": 56250, "max": 75000}},
        }
        document.update(overrides)
        return document

    return factory


@pytest.fixture
def make_order(now: datetime, tribune_publication: dict) -> Callable[..., dict]:
    """Factory for insertion order documents on the Daily Tribune publication."""

    def factory(
        order_id: str = "order-0001",
        status: str = "confirmed",
        placement_statuses: Optional[dict] = None,
        delivery_goals: Optional[dict] = None,
        publication: Optional[dict] = None,
        **overrides: Any,
    ) -> dict:
        publication = publication or tribune_publication
        document = {
            "_id": order_id,
            "campaignId": "campaign-test-0001",
            "campaignObjectId": "cmp-0001",
            "campaignName": "Spring Push",
            "publicationId": publication["publicationId"],
            "publicationName": publication["publicationName"],
            "status": status,
            "selectedInventory": {"publications": [publication]},
            "placementStatuses": placement_statuses
            if placement_statuses is not None
            else {WEBSITE_PATH: "accepted", PRINT_PATH: "accepted"},
            "deliveryGoals": delivery_goals or {},
            "statusHistory": [],
            "placementStatusHistory": [],
            "createdAt": (now - timedelta(days=40)).isoformat(),
            "version": 0,
        }
        document.update(overrides)
        return document

    return factory
