# Author: Green Mountain Systems AI Inc.
# Donated to IAB Tech Lab

"""Order Status Guard - Legal status transitions for insertion orders.

Order lifecycle:
    draft -> sent -> confirmed -> in_production -> delivered
                  \\-> rejected -> draft
    confirmed -> rejected

Also holds the manual placement transition table and the rule that derives
an order's status from its placements.
"""

from typing import Iterable, Mapping, Optional, Union

from ..models.core import OrderStatus, PlacementStatus
from ..models.results import TransitionValidation

VALID_STATUS_TRANSITIONS: dict[OrderStatus, tuple[OrderStatus, ...]] = {
    OrderStatus.DRAFT: (OrderStatus.SENT,),
    OrderStatus.SENT: (OrderStatus.CONFIRMED, OrderStatus.REJECTED),
    OrderStatus.CONFIRMED: (OrderStatus.IN_PRODUCTION, OrderStatus.REJECTED),
    OrderStatus.REJECTED: (OrderStatus.DRAFT,),
    OrderStatus.IN_PRODUCTION: (OrderStatus.DELIVERED,),
    OrderStatus.DELIVERED: (),
}

# Manual (user-triggered) placement transitions. Leaving `suspended` is only
# possible through this table; the completion engine never un-suspends.
VALID_PLACEMENT_TRANSITIONS: dict[PlacementStatus, tuple[PlacementStatus, ...]] = {
    PlacementStatus.PENDING: (
        PlacementStatus.ACCEPTED,
        PlacementStatus.REJECTED,
        PlacementStatus.SUSPENDED,
    ),
    PlacementStatus.ACCEPTED: (
        PlacementStatus.IN_PRODUCTION,
        PlacementStatus.PENDING,
        PlacementStatus.SUSPENDED,
    ),
    PlacementStatus.REJECTED: (PlacementStatus.PENDING,),
    PlacementStatus.IN_PRODUCTION: (
        PlacementStatus.DELIVERED,
        PlacementStatus.SUSPENDED,
    ),
    PlacementStatus.SUSPENDED: (
        PlacementStatus.PENDING,
        PlacementStatus.ACCEPTED,
    ),
    PlacementStatus.DELIVERED: (),
}

# Order statuses the derivation rule never moves an order out of
_EXPLICIT_ONLY_STATUSES = frozenset(
    {OrderStatus.DRAFT, OrderStatus.SENT, OrderStatus.REJECTED, OrderStatus.DELIVERED}
)


def _format_allowed(allowed: Iterable) -> str:
    names = [status.value for status in allowed]
    return ", ".join(names) if names else "none"


def validate_status_transition(
    current: Union[OrderStatus, str],
    new: Union[OrderStatus, str],
) -> TransitionValidation:
    """Check whether an order may move from `current` to `new`.

    Args:
        current: Current order status
        new: Requested order status

    Returns:
        TransitionValidation with an error naming the allowed alternatives
    """
    try:
        current = OrderStatus(current)
        new = OrderStatus(new)
    except ValueError as e:
        return TransitionValidation(valid=False, error=f"Unknown order status: {e}")

    if current == new:
        return TransitionValidation(valid=False, error="Status is already set to this value")

    allowed = VALID_STATUS_TRANSITIONS[current]
    if new not in allowed:
        return TransitionValidation(
            valid=False,
            error=(
                f"Cannot transition from {current.value} to {new.value}. "
                f"Allowed transitions: {_format_allowed(allowed)}"
            ),
        )

    return TransitionValidation(valid=True)


def validate_placement_transition(
    current: Optional[Union[PlacementStatus, str]],
    new: Union[PlacementStatus, str],
) -> TransitionValidation:
    """Check a manual placement status change. A missing status counts as pending."""
    try:
        current = PlacementStatus(current) if current else PlacementStatus.PENDING
        new = PlacementStatus(new)
    except ValueError as e:
        return TransitionValidation(valid=False, error=f"Unknown placement status: {e}")

    if current == new:
        return TransitionValidation(valid=False, error="Placement status is already set to this value")

    allowed = VALID_PLACEMENT_TRANSITIONS[current]
    if new not in allowed:
        return TransitionValidation(
            valid=False,
            error=(
                f"Cannot move placement from {current.value} to {new.value}. "
                f"Allowed transitions: {_format_allowed(allowed)}"
            ),
        )

    return TransitionValidation(valid=True)


def status_path(current: OrderStatus, target: OrderStatus) -> Optional[list[OrderStatus]]:
    """Shortest sequence of legal order transitions from `current` to `target`.

    Returns an empty list when already at the target and None when the
    target cannot be reached.
    """
    if current == target:
        return []

    frontier: list[list[OrderStatus]] = [[current]]
    visited = {current}
    while frontier:
        path = frontier.pop(0)
        for step in VALID_STATUS_TRANSITIONS[path[-1]]:
            if step in visited:
                continue
            if step == target:
                return path[1:] + [step]
            visited.add(step)
            frontier.append(path + [step])
    return None


def derive_order_status(
    placement_statuses: Mapping[str, Union[PlacementStatus, str]],
    current: Union[OrderStatus, str],
) -> Optional[OrderStatus]:
    """Derive an order's status from its placements.

    Suspended placements are treated as resolved. Among the rest:
    - all delivered -> delivered
    - any in production or delivered while the order is confirmed -> in_production
    Otherwise None, meaning leave the status as it is. Orders in draft, sent
    or rejected only move through explicit transitions, and delivered is a
    fixed point.
    """
    current = OrderStatus(current)
    if current in _EXPLICIT_ONLY_STATUSES:
        return None

    active = [
        PlacementStatus(status)
        for status in placement_statuses.values()
        if PlacementStatus(status) != PlacementStatus.SUSPENDED
    ]
    if not active:
        return None

    if all(status == PlacementStatus.DELIVERED for status in active):
        return OrderStatus.DELIVERED

    is_live = any(
        status in (PlacementStatus.IN_PRODUCTION, PlacementStatus.DELIVERED) for status in active
    )
    if is_live and current == OrderStatus.CONFIRMED:
        return OrderStatus.IN_PRODUCTION

    return None
