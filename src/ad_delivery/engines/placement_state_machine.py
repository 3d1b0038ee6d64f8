# Author: Green Mountain Systems AI Inc.
# Donated to IAB Tech Lab

"""Placement State Machine - Deciding and applying placement transitions.

Placement lifecycle:
    pending -> accepted -> in_production -> delivered
    (suspended is reachable from any non-terminal state)

Transitions are handled in two phases so the decision logic can be tested
without a data store:

1. Plan: `detect_activity`, `plan_delivery` and `plan_manual_change` look
   at an order and return a `PlacementTransition`, or None when nothing
   should change.
2. Apply: `apply_transition` returns a new order with the placement status,
   both audit logs and the derived order status updated, and its version
   bumped for optimistic concurrency.
"""

from datetime import datetime, timedelta
from typing import Optional, Union

from ..models.campaign import Campaign
from ..models.core import SYSTEM_ACTOR, OrderStatus, PlacementStatus
from ..models.order import InsertionOrder, PlacementStatusHistoryEntry, StatusHistoryEntry
from ..models.results import PlacementTransition
from .order_status import derive_order_status, status_path

ACTIVITY_NOTES = "Auto-marked: Activity detected (performance data or proof submitted)"
ACTIVITY_ORDER_NOTES = "Auto-updated: Activity detected on placement"
ALL_DELIVERED_ORDER_NOTES = "Auto-completed: All placements delivered"
WENT_LIVE_ORDER_NOTES = "Auto-updated: Placement went live"
AUTO_CONFIRM_ORDER_NOTES = "Auto-confirmed: All placements accepted"


class StaleTransitionError(ValueError):
    """Raised when a transition no longer matches the order it is applied to."""


def campaign_window_opens_at(campaign: Campaign, grace_period_days: int = 7) -> Optional[datetime]:
    """Earliest moment placement activity counts: start date minus the grace period."""
    if not campaign.timeline.start_date:
        return None
    return campaign.timeline.start_date - timedelta(days=grace_period_days)


def within_campaign_window(
    campaign: Campaign,
    now: datetime,
    grace_period_days: int = 7,
) -> bool:
    """Whether `now` is past the pre-flight lockout. Campaigns without a start are always open."""
    opens_at = campaign_window_opens_at(campaign, grace_period_days)
    return opens_at is None or now >= opens_at


def campaign_has_ended(campaign: Campaign, now: datetime) -> bool:
    end_date = campaign.timeline.end_date
    return end_date is not None and end_date <= now


def detect_activity(
    order: InsertionOrder,
    placement_id: str,
    within_window: bool,
) -> Optional[PlacementTransition]:
    """Plan the accepted -> in_production promotion for a placement.

    The order follows to in_production only when it is confirmed.
    """
    if order.placement_statuses.get(placement_id) != PlacementStatus.ACCEPTED:
        return None
    if not within_window:
        return None

    order_steps = [OrderStatus.IN_PRODUCTION] if order.status == OrderStatus.CONFIRMED else []
    return PlacementTransition(
        placement_id=placement_id,
        from_status=PlacementStatus.ACCEPTED,
        to_status=PlacementStatus.IN_PRODUCTION,
        notes=ACTIVITY_NOTES,
        order_steps=order_steps,
        order_notes=ACTIVITY_ORDER_NOTES if order_steps else None,
    )


def _order_steps_after(
    order: InsertionOrder,
    placement_id: str,
    new_status: PlacementStatus,
) -> tuple[list[OrderStatus], Optional[str]]:
    updated_statuses = {**order.placement_statuses, placement_id: new_status}
    target = derive_order_status(updated_statuses, order.status)
    if target is None or target == order.status:
        return [], None

    steps = status_path(order.status, target) or []
    if not steps:
        return [], None

    notes = ALL_DELIVERED_ORDER_NOTES if target == OrderStatus.DELIVERED else WENT_LIVE_ORDER_NOTES
    return steps, notes


def plan_delivery(
    order: InsertionOrder,
    placement_id: str,
    reason: str,
) -> Optional[PlacementTransition]:
    """Plan the in_production -> delivered transition and its effect on the order."""
    if order.placement_statuses.get(placement_id) != PlacementStatus.IN_PRODUCTION:
        return None

    order_steps, order_notes = _order_steps_after(order, placement_id, PlacementStatus.DELIVERED)
    return PlacementTransition(
        placement_id=placement_id,
        from_status=PlacementStatus.IN_PRODUCTION,
        to_status=PlacementStatus.DELIVERED,
        notes=f"Auto-completed: {reason}",
        order_steps=order_steps,
        order_notes=order_notes,
    )


def plan_manual_change(
    order: InsertionOrder,
    placement_id: str,
    new_status: PlacementStatus,
    notes: Optional[str] = None,
) -> PlacementTransition:
    """Plan a user-requested placement change.

    The caller validates the change against the placement transition table.
    A sent order whose placements are now all accepted (or further along)
    is auto-confirmed; otherwise the derivation rule applies.
    """
    current = order.placement_statuses.get(placement_id)
    updated_statuses = {**order.placement_statuses, placement_id: new_status}

    order_steps: list[OrderStatus] = []
    order_notes: Optional[str] = None

    if new_status == PlacementStatus.ACCEPTED and order.status == OrderStatus.SENT:
        placement_ids = [
            item.placement_id
            for item in order.inventory_items()
            if item.placement_id and not item.is_excluded
        ]
        accepted_or_beyond = {
            PlacementStatus.ACCEPTED,
            PlacementStatus.IN_PRODUCTION,
            PlacementStatus.DELIVERED,
        }
        if placement_ids and all(
            updated_statuses.get(pid) in accepted_or_beyond for pid in placement_ids
        ):
            order_steps = [OrderStatus.CONFIRMED]
            order_notes = AUTO_CONFIRM_ORDER_NOTES
    else:
        order_steps, order_notes = _order_steps_after(order, placement_id, new_status)

    return PlacementTransition(
        placement_id=placement_id,
        from_status=current,
        to_status=new_status,
        notes=notes or f"Status changed to {new_status.value}",
        order_steps=order_steps,
        order_notes=order_notes,
    )


def _stamp_order_status(
    order: InsertionOrder,
    status: OrderStatus,
    now: datetime,
    changed_by: str,
    notes: Optional[str],
) -> None:
    order.status = status
    order.status_history.append(
        StatusHistoryEntry(status=status, timestamp=now, changed_by=changed_by, notes=notes)
    )
    if status == OrderStatus.SENT:
        order.sent_at = now
    elif status == OrderStatus.CONFIRMED:
        order.confirmation_date = now


def apply_transition(
    order: InsertionOrder,
    transition: PlacementTransition,
    now: datetime,
    changed_by: str = SYSTEM_ACTOR,
) -> InsertionOrder:
    """Return a copy of `order` with `transition` applied.

    Raises:
        StaleTransitionError: If the placement is no longer in the status
            the transition was planned from.
    """
    current = order.placement_statuses.get(transition.placement_id)
    if current != transition.from_status:
        raise StaleTransitionError(
            f"Placement {transition.placement_id} is {current}, "
            f"expected {transition.from_status}"
        )

    updated = order.model_copy(deep=True)
    updated.placement_statuses[transition.placement_id] = transition.to_status
    updated.placement_status_history.append(
        PlacementStatusHistoryEntry(
            placement_id=transition.placement_id,
            status=transition.to_status,
            timestamp=now,
            changed_by=changed_by,
            notes=transition.notes,
        )
    )
    for step in transition.order_steps:
        _stamp_order_status(updated, step, now, changed_by, transition.order_notes)

    updated.updated_at = now
    updated.version = order.version + 1
    return updated


def apply_order_status(
    order: InsertionOrder,
    new_status: Union[OrderStatus, str],
    now: datetime,
    changed_by: str,
    notes: Optional[str] = None,
) -> InsertionOrder:
    """Return a copy of `order` moved to `new_status` (already validated by the guard)."""
    updated = order.model_copy(deep=True)
    _stamp_order_status(updated, OrderStatus(new_status), now, changed_by, notes)
    updated.updated_at = now
    updated.version = order.version + 1
    return updated
