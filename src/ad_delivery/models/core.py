# Author: Green Mountain Systems AI Inc.
# Donated to IAB Tech Lab

"""Core enums and base document model for the delivery domain.

Stored documents use camelCase keys (the shape the dashboard and the
document store share), while Python code works with snake_case attributes.
`DocumentModel` bridges the two with an alias generator.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


# =============================================================================
# Enums
# =============================================================================


class CampaignStatus(str, Enum):
    """Lifecycle status of a campaign."""

    DRAFT = "draft"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class OrderStatus(str, Enum):
    """Status of a publication insertion order."""

    DRAFT = "draft"
    SENT = "sent"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    IN_PRODUCTION = "in_production"
    DELIVERED = "delivered"


class PlacementStatus(str, Enum):
    """Status of a single placement within an insertion order."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    IN_PRODUCTION = "in_production"
    DELIVERED = "delivered"
    SUSPENDED = "suspended"


class Channel(str, Enum):
    """Medium a placement runs on."""

    WEBSITE = "website"
    NEWSLETTER = "newsletter"
    PRINT = "print"
    RADIO = "radio"
    PODCAST = "podcast"
    SOCIAL_MEDIA = "social_media"
    EVENTS = "events"
    STREAMING = "streaming"
    OTHER = "other"


class PricingModel(str, Enum):
    """Pricing models found on inventory items."""

    FLAT = "flat"
    MONTHLY = "monthly"
    PER_WEEK = "per_week"
    PER_DAY = "per_day"
    PER_SEND = "per_send"
    PER_SPOT = "per_spot"
    PER_POST = "per_post"
    PER_AD = "per_ad"
    PER_EPISODE = "per_episode"
    PER_STORY = "per_story"
    CPM = "cpm"
    CPV = "cpv"
    CPC = "cpc"


class CompletionRuleType(str, Enum):
    """How a placement proves it has run."""

    IMPRESSIONS_OR_END_DATE = "impressions_or_end_date"
    PROOF_COUNT = "proof_count"


class ProofScope(str, Enum):
    """Which proofs count toward a placement's tally."""

    ORDER_WIDE = "order_wide"  # placement proofs plus order-level proofs
    PLACEMENT = "placement"  # placement proofs only


SYSTEM_ACTOR = "system"


# =============================================================================
# Helpers
# =============================================================================


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(ensure_utc)]


class DocumentModel(BaseModel):
    """Base for models persisted as camelCase documents."""

    model_config = ConfigDict(
        populate_by_name=True,
        alias_generator=to_camel,
    )

    def to_document(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible document."""
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)

    @classmethod
    def from_document(cls, data: dict[str, Any]):
        """Build a model from a stored document."""
        return cls.model_validate(data)
