"""Completion rules per channel.

Digital channels complete when their impressions goal is met or the
campaign ends; every other channel completes once enough proofs of
performance have been uploaded.
"""

from typing import Iterable

from ..models.core import Channel, CompletionRuleType, PricingModel
from ..models.inventory import InventoryItemBase
from ..models.order import DeliveryGoal
from ..models.results import CompletionRule
from .pricing_calculator import round_half_up

_DIGITAL_DESCRIPTION = "Completes when impressions goal met or campaign ends"

COMPLETION_RULES: dict[str, CompletionRule] = {
    Channel.WEBSITE.value: CompletionRule(
        type=CompletionRuleType.IMPRESSIONS_OR_END_DATE,
        description=_DIGITAL_DESCRIPTION,
    ),
    Channel.NEWSLETTER.value: CompletionRule(
        type=CompletionRuleType.IMPRESSIONS_OR_END_DATE,
        description=_DIGITAL_DESCRIPTION,
    ),
    Channel.STREAMING.value: CompletionRule(
        type=CompletionRuleType.IMPRESSIONS_OR_END_DATE,
        description=_DIGITAL_DESCRIPTION,
    ),
    Channel.PRINT.value: CompletionRule(
        type=CompletionRuleType.PROOF_COUNT,
        uses_frequency=True,
        description="Completes when all tear sheets uploaded",
    ),
    Channel.RADIO.value: CompletionRule(
        type=CompletionRuleType.PROOF_COUNT,
        uses_frequency=True,
        description="Completes when all affidavits/attestations uploaded",
    ),
    Channel.PODCAST.value: CompletionRule(
        type=CompletionRuleType.PROOF_COUNT,
        uses_frequency=True,
        description="Completes when all episode proofs uploaded",
    ),
    Channel.SOCIAL_MEDIA.value: CompletionRule(
        type=CompletionRuleType.PROOF_COUNT,
        uses_frequency=True,
        description="Completes when all post proofs uploaded",
    ),
    # Events typically have a single report
    Channel.EVENTS.value: CompletionRule(
        type=CompletionRuleType.PROOF_COUNT,
        uses_frequency=False,
        description="Completes when event report uploaded",
    ),
}

# Unrecognized channels need a single proof so they never deadlock completion
DEFAULT_COMPLETION_RULE = CompletionRule(
    type=CompletionRuleType.PROOF_COUNT,
    uses_frequency=False,
    description="Completes when proof uploaded",
)

DIGITAL_CHANNELS = frozenset(
    channel
    for channel, rule in COMPLETION_RULES.items()
    if rule.type == CompletionRuleType.IMPRESSIONS_OR_END_DATE
)


def get_completion_rule(channel: str) -> CompletionRule:
    """Get the completion rule for a channel (case-insensitive)."""
    return COMPLETION_RULES.get((channel or "").strip().lower(), DEFAULT_COMPLETION_RULE)


def is_digital_channel(channel: str) -> bool:
    return (channel or "").strip().lower() in DIGITAL_CHANNELS


def compute_delivery_goals(
    items: Iterable[InventoryItemBase],
    duration_months: float = 1,
) -> dict[str, DeliveryGoal]:
    """Impressions goals for the digital placements that carry impression data.

    The goal is the item's monthly impressions over the flight. CPM items buy
    a share of those impressions, expressed as a percentage frequency.
    """
    goals: dict[str, DeliveryGoal] = {}
    for item in items:
        if item.is_excluded or not item.placement_id or not is_digital_channel(item.channel):
            continue

        monthly = item.impressions()
        if not monthly:
            continue

        model = (item.item_pricing.pricing_model or "").lower() if item.item_pricing else ""
        if model == PricingModel.CPM.value:
            monthly = monthly * item.frequency / 100

        goal_value = round_half_up(monthly * duration_months)
        if goal_value <= 0:
            continue
        goals[item.placement_id] = DeliveryGoal(
            goal_type="impressions",
            goal_value=goal_value,
            description=f"{goal_value:,} impressions over {duration_months:g} month(s)",
        )
    return goals
