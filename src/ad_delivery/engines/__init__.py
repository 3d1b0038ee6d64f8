# Author: Green Mountain Systems AI Inc.
# Donated to IAB Tech Lab

"""Business logic engines for the Ad Delivery System."""

from .campaign_validator import CampaignMetricsValidator, percent_discrepancy
from .completion_rules import (
    COMPLETION_RULES,
    DIGITAL_CHANNELS,
    compute_delivery_goals,
    get_completion_rule,
    is_digital_channel,
)
from .order_status import (
    VALID_PLACEMENT_TRANSITIONS,
    VALID_STATUS_TRANSITIONS,
    derive_order_status,
    status_path,
    validate_placement_transition,
    validate_status_transition,
)
from .placement_state_machine import (
    StaleTransitionError,
    apply_order_status,
    apply_transition,
    campaign_has_ended,
    detect_activity,
    plan_delivery,
    plan_manual_change,
    within_campaign_window,
)
from .pricing_calculator import (
    calculate_duration,
    calculate_summary_stats,
    campaign_total,
    item_cost,
    item_monthly_cost,
    publication_total,
    round_half_up,
    validate_budget,
)
from .reach_calculator import calculate_package_reach

__all__ = [
    "COMPLETION_RULES",
    "CampaignMetricsValidator",
    "DIGITAL_CHANNELS",
    "StaleTransitionError",
    "VALID_PLACEMENT_TRANSITIONS",
    "VALID_STATUS_TRANSITIONS",
    "apply_order_status",
    "apply_transition",
    "calculate_duration",
    "calculate_summary_stats",
    "calculate_package_reach",
    "campaign_has_ended",
    "campaign_total",
    "compute_delivery_goals",
    "derive_order_status",
    "detect_activity",
    "get_completion_rule",
    "is_digital_channel",
    "item_cost",
    "item_monthly_cost",
    "percent_discrepancy",
    "plan_delivery",
    "plan_manual_change",
    "status_path",
    "publication_total",
    "round_half_up",
    "validate_placement_transition",
    "validate_status_transition",
    "validate_budget",
    "within_campaign_window",
]
