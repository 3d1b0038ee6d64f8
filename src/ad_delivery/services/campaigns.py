"""Campaign Service - Campaign persistence and lifecycle.

Creation derives the campaign duration from its flight dates and runs both
metric validators; validation problems are logged as warnings and never
block persistence.
"""

import logging
import secrets
import string
import uuid
from datetime import datetime
from typing import Any, Callable, Optional, Union

from ..config import Settings
from ..engines.campaign_validator import CampaignMetricsValidator
from ..engines.pricing_calculator import calculate_duration
from ..models.campaign import (
    Approval,
    Campaign,
    CampaignMetadata,
    CampaignPricing,
    EstimatedPerformance,
    Execution,
    ReachRange,
)
from ..models.core import SYSTEM_ACTOR, CampaignStatus, utc_now
from ..storage.base import StorageBackend
from .base import StoreBackedService

logger = logging.getLogger(__name__)

_BASE36_DIGITS = string.digits + string.ascii_lowercase


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


def generate_campaign_id(now: datetime) -> str:
    """`campaign-<base36 epoch millis>-<6 random base36 chars>`."""
    timestamp = _to_base36(int(now.timestamp() * 1000))
    suffix = "".join(secrets.choice(_BASE36_DIGITS) for _ in range(6))
    return f"campaign-{timestamp}-{suffix}"


class CampaignService(StoreBackedService):
    """Create, read and move campaigns through their lifecycle."""

    def __init__(
        self,
        store: StorageBackend,
        validator: Optional[CampaignMetricsValidator] = None,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        super().__init__(store, settings, clock)
        self.validator = validator or CampaignMetricsValidator(self._settings)

    async def _save(self, campaign: Campaign) -> None:
        await self._call(self._store.set_campaign(campaign.id, campaign.to_document()))

    async def create(self, data: Union[Campaign, dict[str, Any]], user_id: str) -> Campaign:
        """Persist a new campaign.

        Args:
            data: Campaign model or document without identifiers
            user_id: Creator, recorded in the metadata

        Returns:
            The stored campaign with its generated identifiers
        """
        campaign = data.model_copy(deep=True) if isinstance(data, Campaign) else Campaign.model_validate(data)
        now = self._clock()

        campaign.id = uuid.uuid4().hex
        campaign.campaign_id = generate_campaign_id(now)

        timeline = campaign.timeline
        if timeline.start_date and timeline.end_date:
            duration = calculate_duration(timeline.start_date, timeline.end_date)
            timeline.duration_weeks = duration.duration_weeks
            timeline.duration_months = duration.duration_months

        tags = campaign.metadata.tags if campaign.metadata else []
        campaign.metadata = CampaignMetadata(
            created_by=user_id,
            created_at=now,
            updated_at=now,
            version=1,
            tags=tags,
        )

        await self._save(campaign)

        if campaign.selected_inventory and campaign.selected_inventory.publications:
            pricing = self.validator.validate_pricing(campaign)
            reach = self.validator.validate_reach(campaign)
            if not pricing.is_valid:
                logger.warning(f"[Campaign {campaign.campaign_id}] {pricing.message}")
            if not reach.is_valid:
                logger.warning(f"[Campaign {campaign.campaign_id}] {reach.message}")
            logger.info(
                f"[Campaign {campaign.campaign_id}] Validation complete: "
                f"pricing={'PASS' if pricing.is_valid else 'WARN'}, "
                f"reach={'PASS' if reach.is_valid else 'WARN'}"
            )

        return campaign

    async def get(self, campaign_ref: str) -> Optional[Campaign]:
        """Get a live campaign by storage id or campaign id."""
        campaign = await self._load_campaign(campaign_ref)
        if campaign is None or campaign.is_deleted:
            return None
        return campaign

    async def list_campaigns(self, hub_id: Optional[str] = None) -> list[Campaign]:
        """Live campaigns, optionally for one hub."""
        campaigns = []
        for document in await self._call(self._store.list_campaigns()):
            campaign = Campaign.from_document(document)
            if campaign.is_deleted:
                continue
            if hub_id and campaign.hub_id != hub_id:
                continue
            campaigns.append(campaign)
        return campaigns

    def _touch(self, campaign: Campaign, user_id: str, now: datetime) -> None:
        metadata = campaign.metadata or CampaignMetadata()
        metadata.updated_by = user_id
        metadata.updated_at = now
        metadata.version = (metadata.version or 1) + 1
        campaign.metadata = metadata

    async def update(
        self,
        campaign_ref: str,
        updates: dict[str, Any],
        user_id: str,
    ) -> Optional[Campaign]:
        """Merge top-level document fields (camelCase) into a campaign, recomputing duration."""
        campaign = await self.get(campaign_ref)
        if campaign is None:
            return None

        merged = {**campaign.to_document(), **updates}
        updated = Campaign.model_validate(merged)
        timeline = updated.timeline
        if timeline.start_date and timeline.end_date:
            duration = calculate_duration(timeline.start_date, timeline.end_date)
            timeline.duration_weeks = duration.duration_weeks
            timeline.duration_months = duration.duration_months

        self._touch(updated, user_id, self._clock())
        await self._save(updated)
        return updated

    async def update_status(
        self,
        campaign_ref: str,
        status: Union[CampaignStatus, str],
        user_id: str,
        approved_by: Optional[str] = None,
        rejected_by: Optional[str] = None,
        rejection_reason: Optional[str] = None,
    ) -> Optional[Campaign]:
        """Move a campaign to a new lifecycle status, stamping approval and execution metadata.

        Returns:
            The updated campaign, or None if it does not exist
        """
        campaign = await self.get(campaign_ref)
        if campaign is None:
            return None

        status = CampaignStatus(status)
        now = self._clock()
        campaign.status = status
        approval = campaign.approval or Approval()

        if status == CampaignStatus.APPROVED and approved_by:
            approval.approved_by = approved_by
            approval.approved_at = now
        elif status == CampaignStatus.PENDING_APPROVAL:
            approval.requested_by = user_id
            approval.requested_at = now
        elif rejected_by:
            approval.rejected_by = rejected_by
            approval.rejected_at = now
            if rejection_reason:
                approval.rejection_reason = rejection_reason
        campaign.approval = approval

        if status == CampaignStatus.ACTIVE:
            campaign.execution = campaign.execution or Execution()
            campaign.execution.launch_date = now
        elif status == CampaignStatus.COMPLETED:
            campaign.execution = campaign.execution or Execution()
            campaign.execution.completion_date = now

        metadata = campaign.metadata or CampaignMetadata()
        metadata.updated_by = user_id
        metadata.updated_at = now
        campaign.metadata = metadata

        await self._save(campaign)
        logger.info(f"Campaign {campaign.campaign_id} status -> {status.value}")
        return campaign

    async def refresh_metrics(
        self,
        campaign_ref: str,
        user_id: str = SYSTEM_ACTOR,
    ) -> Optional[Campaign]:
        """Recalculate pricing and reach and overwrite the stored snapshot."""
        campaign = await self.get(campaign_ref)
        if campaign is None:
            return None

        metrics = self.validator.recalculate_metrics(campaign)
        if metrics.error:
            logger.warning(
                f"[Campaign {campaign.campaign_id}] Metrics not refreshed: {metrics.error}"
            )
            return campaign

        pricing = campaign.pricing or CampaignPricing()
        pricing.subtotal = metrics.pricing.subtotal
        pricing.publication_totals = {
            str(publication_id): total
            for publication_id, total in metrics.pricing.publication_totals.items()
        }
        campaign.pricing = pricing

        reach = metrics.reach
        performance = campaign.estimated_performance or EstimatedPerformance()
        performance.estimated_unique_reach = reach.estimated_unique_reach
        performance.estimated_total_reach = reach.estimated_total_reach
        performance.total_monthly_impressions = reach.total_monthly_impressions
        performance.total_monthly_exposures = reach.total_monthly_exposures
        performance.reach = ReachRange(
            min=reach.estimated_unique_reach,
            max=reach.estimated_total_reach,
        )
        campaign.estimated_performance = performance

        self._touch(campaign, user_id, self._clock())
        await self._save(campaign)
        logger.info(
            f"[Campaign {campaign.campaign_id}] Metrics refreshed: "
            f"subtotal={pricing.subtotal:.2f}, reach={reach.estimated_unique_reach:,.0f}"
        )
        return campaign

    async def delete(self, campaign_ref: str, user_id: str) -> bool:
        """Soft-delete a campaign. Returns False if it was not found."""
        campaign = await self.get(campaign_ref)
        if campaign is None:
            return False

        now = self._clock()
        campaign.deleted_at = now
        campaign.deleted_by = user_id
        metadata = campaign.metadata or CampaignMetadata()
        metadata.updated_at = now
        campaign.metadata = metadata
        await self._save(campaign)
        return True

    async def count_by_status(self, hub_id: Optional[str] = None) -> dict[str, int]:
        """Number of live campaigns per status, zero-filled."""
        counts = {status.value: 0 for status in CampaignStatus}
        for campaign in await self.list_campaigns(hub_id):
            counts[campaign.status.value] += 1
        return counts
