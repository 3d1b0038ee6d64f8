"""Campaign document models."""

from typing import Optional

from pydantic import Field

from .core import CampaignStatus, DocumentModel, UtcDatetime
from .inventory import SelectedInventory


class BasicInfo(DocumentModel):
    name: str = ""
    advertiser_name: Optional[str] = None
    description: Optional[str] = None


class Timeline(DocumentModel):
    """Flight dates plus the derived duration used for pricing."""

    start_date: Optional[UtcDatetime] = None
    end_date: Optional[UtcDatetime] = None
    duration_weeks: Optional[int] = None
    duration_months: Optional[float] = None


class CampaignPricing(DocumentModel):
    """Last computed pricing snapshot."""

    subtotal: Optional[float] = None
    final_price: Optional[float] = None
    publication_totals: dict[str, float] = Field(default_factory=dict)


class ReachRange(DocumentModel):
    min: Optional[float] = None
    max: Optional[float] = None


class EstimatedPerformance(DocumentModel):
    """Last computed reach snapshot."""

    reach: Optional[ReachRange] = None
    estimated_unique_reach: Optional[float] = None
    estimated_total_reach: Optional[float] = None
    total_monthly_impressions: Optional[float] = None
    total_monthly_exposures: Optional[float] = None


class Approval(DocumentModel):
    """Approval workflow metadata."""

    requested_by: Optional[str] = None
    requested_at: Optional[UtcDatetime] = None
    approved_by: Optional[str] = None
    approved_at: Optional[UtcDatetime] = None
    rejected_by: Optional[str] = None
    rejected_at: Optional[UtcDatetime] = None
    rejection_reason: Optional[str] = None


class Execution(DocumentModel):
    launch_date: Optional[UtcDatetime] = None
    completion_date: Optional[UtcDatetime] = None


class CampaignMetadata(DocumentModel):
    created_by: Optional[str] = None
    created_at: Optional[UtcDatetime] = None
    updated_by: Optional[str] = None
    updated_at: Optional[UtcDatetime] = None
    version: int = 1
    tags: list[str] = Field(default_factory=list)


class Campaign(DocumentModel):
    """An advertising buy spanning one or more publications.

    `id` is the internal storage identifier; `campaign_id` is the stable
    external identifier that orders refer to.
    """

    id: Optional[str] = Field(default=None, alias="_id")
    campaign_id: str = ""
    hub_id: Optional[str] = None
    basic_info: BasicInfo = Field(default_factory=BasicInfo)
    timeline: Timeline = Field(default_factory=Timeline)
    selected_inventory: Optional[SelectedInventory] = None
    pricing: Optional[CampaignPricing] = None
    estimated_performance: Optional[EstimatedPerformance] = None
    status: CampaignStatus = CampaignStatus.DRAFT
    approval: Optional[Approval] = None
    execution: Optional[Execution] = None
    metadata: Optional[CampaignMetadata] = None
    deleted_at: Optional[UtcDatetime] = None
    deleted_by: Optional[str] = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None
