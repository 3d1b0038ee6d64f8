# Author: Green Mountain Systems AI Inc.
# Donated to IAB Tech Lab

"""Placement Completion Service - Automatic placement delivery.

Placements are completed automatically once they have demonstrably run:

- Digital placements (website, newsletter, streaming) complete when their
  impressions goal is met, or unconditionally once the campaign has ended.
- Offline placements (print, radio, podcast, social, events) complete when
  enough proofs of performance have been uploaded.

Checks are opportunistic: an accepted placement inside the campaign window
is promoted to in_production before it is considered for completion.
Every write is a versioned save, so a concurrent writer turns a check into a
retryable failure instead of a lost update.
"""

import asyncio
import logging
from datetime import datetime

from ..engines.completion_rules import get_completion_rule, is_digital_channel
from ..engines.placement_state_machine import (
    StaleTransitionError,
    apply_transition,
    campaign_has_ended,
    detect_activity,
    plan_delivery,
    within_campaign_window,
)
from ..engines.pricing_calculator import round_half_up
from ..models.campaign import Campaign
from ..models.core import SYSTEM_ACTOR, CompletionRuleType, PlacementStatus, ProofScope
from ..models.inventory import InventoryItemBase
from ..models.order import InsertionOrder
from ..models.results import (
    CampaignEndSweepResult,
    CompletionCheckResult,
    CompletionProgress,
    CompletionRule,
    OrderCheckSummary,
    PlacementTransition,
)
from .base import (
    CONFLICT_REASON,
    STORE_TIMEOUT_REASON,
    ConcurrentUpdateError,
    StoreBackedService,
)

logger = logging.getLogger(__name__)


def _format_count(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def _progress(delivered: float, goal: float) -> CompletionProgress:
    percent = round_half_up(delivered / goal * 100) if goal > 0 else 0
    return CompletionProgress(delivered=delivered, goal=goal, percent=percent)


class PlacementCompletionService(StoreBackedService):
    """Checks placements against their channel's completion rule.

    Example:
        service = PlacementCompletionService(store)
        result = await service.check_and_complete_if_ready(order_id, path, "print")
        if result.retryable:
            ...  # try again on the next sweep
    """

    @property
    def proof_scope(self) -> ProofScope:
        return ProofScope(self._settings.proof_scope)

    def get_completion_rule(self, channel: str) -> CompletionRule:
        """Get the completion rule for a channel (unknown channels need one proof)."""
        return get_completion_rule(channel)

    async def _commit(
        self,
        order: InsertionOrder,
        transition: PlacementTransition,
    ) -> InsertionOrder:
        """Apply a planned transition and write it back with a version check."""
        updated = apply_transition(order, transition, self._clock(), SYSTEM_ACTOR)
        await self._save_order(order, updated)

        logger.info(
            f"Placement {transition.placement_id} on order {order.id}: "
            f"{transition.from_status.value if transition.from_status else 'pending'}"
            f" -> {transition.to_status.value}"
        )
        if transition.changes_order_status:
            logger.info(
                f"Order {order.id} status {order.status.value} -> {updated.status.value}"
            )
        return updated

    async def check_and_complete_if_ready(
        self,
        order_id: str,
        placement_id: str,
        channel: str,
    ) -> CompletionCheckResult:
        """Check one placement and mark it delivered if its rule is satisfied.

        Args:
            order_id: Insertion order storage ID
            placement_id: Placement path (item path or source path)
            channel: Placement channel, case-insensitive

        Returns:
            CompletionCheckResult. Never raises: store timeouts and version
            conflicts come back as retryable failures, anything else as a
            failure carrying the error message.
        """
        try:
            return await self._check(order_id, placement_id, channel)
        except asyncio.TimeoutError:
            logger.warning(f"Store timeout checking placement {placement_id} on order {order_id}")
            return CompletionCheckResult(completed=False, reason=STORE_TIMEOUT_REASON, retryable=True)
        except (ConcurrentUpdateError, StaleTransitionError) as e:
            logger.warning(f"Concurrent update on order {order_id}: {e}")
            return CompletionCheckResult(completed=False, reason=CONFLICT_REASON, retryable=True)
        except Exception as e:
            logger.exception(f"Error checking placement {placement_id} on order {order_id}: {e}")
            return CompletionCheckResult(completed=False, reason=str(e) or "Unknown error")

    async def _check(
        self,
        order_id: str,
        placement_id: str,
        channel: str,
    ) -> CompletionCheckResult:
        order = await self._load_order(order_id)
        if order is None:
            return CompletionCheckResult(completed=False, reason="Order not found")

        current = order.placement_statuses.get(placement_id)
        if current == PlacementStatus.DELIVERED:
            return CompletionCheckResult(
                completed=False, already_delivered=True, reason="Already delivered"
            )
        if current == PlacementStatus.SUSPENDED:
            return CompletionCheckResult(completed=False, reason="Placement is suspended")

        campaign = await self._load_campaign(order.campaign_id)
        if campaign is None:
            return CompletionCheckResult(completed=False, reason="Campaign not found")

        now = self._clock()
        if current == PlacementStatus.ACCEPTED:
            in_window = within_campaign_window(campaign, now, self._settings.grace_period_days)
            if not in_window:
                logger.info(
                    f"Skipping activity promotion for {placement_id}: campaign hasn't started yet"
                )
                return CompletionCheckResult(
                    completed=False,
                    reason="Campaign has not started yet (outside grace period)",
                )
            activity = detect_activity(order, placement_id, in_window)
            if activity is not None:
                order = await self._commit(order, activity)

        if order.placement_statuses.get(placement_id) != PlacementStatus.IN_PRODUCTION:
            status = current.value if current else PlacementStatus.PENDING.value
            return CompletionCheckResult(
                completed=False,
                reason=f"Placement status is {status}, must be accepted or in_production",
            )

        placement = order.find_placement(placement_id)
        if placement is None:
            return CompletionCheckResult(completed=False, reason="Placement not found in order")

        rule = self.get_completion_rule(channel or placement.channel)
        if rule.type == CompletionRuleType.IMPRESSIONS_OR_END_DATE:
            return await self._check_digital(order, campaign, placement_id, now)
        return await self._check_offline(order, placement_id, placement, rule)

    async def _check_digital(
        self,
        order: InsertionOrder,
        campaign: Campaign,
        placement_id: str,
        now: datetime,
    ) -> CompletionCheckResult:
        """Impressions goal met, or the campaign end date has passed."""
        stored_goal = order.delivery_goals.get(placement_id)
        goal = stored_goal.goal_value if stored_goal else 0
        delivered = await self._call(self._store.sum_impressions(order.id, placement_id))
        progress = _progress(delivered, goal) if goal > 0 else None

        if goal > 0 and delivered >= goal:
            reason = "Impressions goal achieved"
        elif campaign_has_ended(campaign, now):
            reason = "Campaign ended"
        else:
            if goal > 0:
                reason = (
                    f"Waiting for impressions goal "
                    f"({_format_count(delivered)}/{_format_count(goal)}) or campaign end"
                )
            else:
                reason = "Waiting for campaign to end"
            return CompletionCheckResult(completed=False, reason=reason, progress=progress)

        await self._mark_delivered(order, placement_id, reason)
        return CompletionCheckResult(completed=True, reason=reason, progress=progress)

    async def _check_offline(
        self,
        order: InsertionOrder,
        placement_id: str,
        placement: InventoryItemBase,
        rule: CompletionRule,
    ) -> CompletionCheckResult:
        """Enough proofs uploaded for the placement's expected occurrences."""
        expected = placement.frequency if rule.uses_frequency else 1
        uploaded = await self._call(
            self._store.count_proofs(
                order.id,
                placement_id,
                include_order_level=self.proof_scope == ProofScope.ORDER_WIDE,
            )
        )

        if uploaded >= expected:
            reason = f"All proofs uploaded ({uploaded}/{expected})"
            await self._mark_delivered(order, placement_id, reason)
            return CompletionCheckResult(
                completed=True,
                reason=reason,
                progress=CompletionProgress(delivered=uploaded, goal=expected, percent=100),
            )

        return CompletionCheckResult(
            completed=False,
            reason=f"Waiting for proofs ({uploaded}/{expected})",
            progress=_progress(uploaded, expected),
        )

    async def _mark_delivered(self, order: InsertionOrder, placement_id: str, reason: str) -> None:
        transition = plan_delivery(order, placement_id, reason)
        if transition is None:
            raise StaleTransitionError(f"Placement {placement_id} is no longer in production")
        await self._commit(order, transition)

    async def check_all_placements_in_order(self, order_id: str) -> OrderCheckSummary:
        """Run the completion check on every non-excluded placement of an order."""
        summary = OrderCheckSummary()
        try:
            order = await self._load_order(order_id)
            if order is None:
                return summary

            for item in order.inventory_items():
                if item.is_excluded or not item.placement_id:
                    continue

                summary.checked += 1
                result = await self.check_and_complete_if_ready(
                    order_id, item.placement_id, item.channel or "other"
                )
                summary.results[item.placement_id] = result
                if result.completed:
                    summary.completed += 1
        except asyncio.TimeoutError:
            logger.warning(f"Store timeout loading order {order_id}")
        except Exception as e:
            logger.exception(f"Error checking placements for order {order_id}: {e}")
        return summary

    async def check_digital_placements_for_campaign_end(self, order_id: str) -> CampaignEndSweepResult:
        """Complete in-production digital placements once the campaign has ended.

        Intended for scheduled sweeps; catches placements that never reached
        their impressions goal.
        """
        sweep = CampaignEndSweepResult()
        try:
            order = await self._load_order(order_id)
            if order is None:
                return sweep

            campaign = await self._load_campaign(order.campaign_id)
            if campaign is None or not campaign_has_ended(campaign, self._clock()):
                return sweep

            for item in order.inventory_items():
                if item.is_excluded or not is_digital_channel(item.channel):
                    continue
                placement_id = item.placement_id
                if not placement_id:
                    continue
                if order.placement_statuses.get(placement_id) != PlacementStatus.IN_PRODUCTION:
                    continue

                sweep.checked += 1
                result = await self.check_and_complete_if_ready(order_id, placement_id, item.channel)
                if result.completed:
                    sweep.completed += 1
        except asyncio.TimeoutError:
            logger.warning(f"Store timeout during campaign-end sweep of order {order_id}")
        except Exception as e:
            logger.exception(f"Error in campaign-end sweep of order {order_id}: {e}")
        return sweep
