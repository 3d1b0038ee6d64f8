"""Inventory item models.

A placement is one line of ad inventory. Items from every channel share a
common base; channel-specific subclasses know where that channel keeps its
audience and impression figures. `InventoryItem` is the tagged union used
wherever items appear inside campaigns and orders. Channels without a
dedicated variant fall through to `OtherItem`.
"""

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import Discriminator, Field, Tag, field_validator

from .core import DocumentModel


class ItemPricing(DocumentModel):
    """Hub pricing attached to an inventory item."""

    hub_price: Optional[float] = None
    pricing_model: Optional[str] = None


class PerformanceMetrics(DocumentModel):
    """Item-level performance figures (take priority over channel metrics)."""

    audience_size: Optional[float] = None
    impressions_per_month: Optional[float] = None


class AudienceMetrics(DocumentModel):
    """Channel-level audience figures copied from the publication profile."""

    monthly_visitors: Optional[float] = None
    monthly_page_views: Optional[float] = None
    circulation: Optional[float] = None
    subscribers: Optional[float] = None
    followers: Optional[float] = None
    listeners: Optional[float] = None
    average_attendance: Optional[float] = None
    expected_attendees: Optional[float] = None


class InventoryItemBase(DocumentModel):
    """Fields shared by every inventory item regardless of channel."""

    item_path: Optional[str] = None
    source_path: Optional[str] = None
    item_name: Optional[str] = None
    source_name: Optional[str] = None
    channel: str = "other"
    is_excluded: bool = False
    current_frequency: Optional[int] = None
    quantity: Optional[int] = None
    item_pricing: Optional[ItemPricing] = None
    monthly_impressions: Optional[float] = None
    performance_metrics: Optional[PerformanceMetrics] = None
    audience_metrics: Optional[AudienceMetrics] = None

    @field_validator("channel", mode="before")
    @classmethod
    def _normalize_channel(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @property
    def placement_id(self) -> Optional[str]:
        """Stable path used as the placement key everywhere."""
        return self.item_path or self.source_path

    @property
    def frequency(self) -> int:
        """Occurrences per month (falls back to quantity, then 1)."""
        return self.current_frequency or self.quantity or 1

    def channel_audience(self) -> Optional[float]:
        """Audience size from the channel-level metric for this channel."""
        return None

    def channel_impressions(self) -> Optional[float]:
        """Impressions from the channel-level metric for this channel."""
        return None

    def audience_size(self) -> Optional[float]:
        """Audience size, preferring item-level metrics."""
        if self.performance_metrics and self.performance_metrics.audience_size:
            return self.performance_metrics.audience_size
        return self.channel_audience() or None

    def impressions(self) -> Optional[float]:
        """Monthly impressions, preferring item-level metrics."""
        if self.performance_metrics and self.performance_metrics.impressions_per_month:
            return self.performance_metrics.impressions_per_month
        channel_value = self.channel_impressions()
        if channel_value:
            return channel_value
        return self.monthly_impressions or None


class WebsiteItem(InventoryItemBase):
    channel: Literal["website"] = "website"

    def channel_audience(self) -> Optional[float]:
        return self.audience_metrics.monthly_visitors if self.audience_metrics else None

    def channel_impressions(self) -> Optional[float]:
        return self.audience_metrics.monthly_page_views if self.audience_metrics else None


class NewsletterItem(InventoryItemBase):
    channel: Literal["newsletter", "email"] = "newsletter"

    def channel_audience(self) -> Optional[float]:
        return self.audience_metrics.subscribers if self.audience_metrics else None


class StreamingItem(InventoryItemBase):
    channel: Literal["streaming"] = "streaming"


class PrintItem(InventoryItemBase):
    channel: Literal["print"] = "print"

    def channel_audience(self) -> Optional[float]:
        return self.audience_metrics.circulation if self.audience_metrics else None


class RadioItem(InventoryItemBase):
    channel: Literal["radio"] = "radio"

    def channel_audience(self) -> Optional[float]:
        return self.audience_metrics.listeners if self.audience_metrics else None


class PodcastItem(InventoryItemBase):
    channel: Literal["podcast"] = "podcast"

    def channel_audience(self) -> Optional[float]:
        return self.audience_metrics.listeners if self.audience_metrics else None


class SocialMediaItem(InventoryItemBase):
    channel: Literal["social_media", "social"] = "social_media"

    def channel_audience(self) -> Optional[float]:
        return self.audience_metrics.followers if self.audience_metrics else None


class EventsItem(InventoryItemBase):
    channel: Literal["events"] = "events"

    def channel_audience(self) -> Optional[float]:
        if not self.audience_metrics:
            return None
        return self.audience_metrics.average_attendance or self.audience_metrics.expected_attendees


class OtherItem(InventoryItemBase):
    """Any channel without a dedicated variant."""


_CHANNEL_TAGS = {
    "website": "website",
    "newsletter": "newsletter",
    "email": "newsletter",
    "streaming": "streaming",
    "print": "print",
    "radio": "radio",
    "podcast": "podcast",
    "social_media": "social_media",
    "social": "social_media",
    "events": "events",
}


def _channel_tag(value: Any) -> str:
    if isinstance(value, dict):
        channel = value.get("channel")
    else:
        channel = getattr(value, "channel", None)
    return _CHANNEL_TAGS.get(str(channel or "").strip().lower(), "other")


InventoryItem = Annotated[
    Union[
        Annotated[WebsiteItem, Tag("website")],
        Annotated[NewsletterItem, Tag("newsletter")],
        Annotated[StreamingItem, Tag("streaming")],
        Annotated[PrintItem, Tag("print")],
        Annotated[RadioItem, Tag("radio")],
        Annotated[PodcastItem, Tag("podcast")],
        Annotated[SocialMediaItem, Tag("social_media")],
        Annotated[EventsItem, Tag("events")],
        Annotated[OtherItem, Tag("other")],
    ],
    Discriminator(_channel_tag),
]


class PublicationSelection(DocumentModel):
    """Inventory selected from one publication."""

    publication_id: int
    publication_name: Optional[str] = None
    inventory_items: list[InventoryItem] = Field(default_factory=list)
    publication_total: Optional[float] = None

    def active_items(self) -> list[InventoryItemBase]:
        """Items that are not excluded from the buy."""
        return [item for item in self.inventory_items if not item.is_excluded]


class SelectedInventory(DocumentModel):
    """Inventory selections across publications."""

    publications: list[PublicationSelection] = Field(default_factory=list)
    total_publications: Optional[int] = None
    total: Optional[float] = None
