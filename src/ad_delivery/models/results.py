"""Result models returned by the delivery engines and services.

Every public operation reports its outcome through one of these models
instead of raising. Callers branch on the boolean flag (`is_valid`,
`valid`, `completed`, `success`) and may show the message strings to users.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field

from .core import CompletionRuleType, OrderStatus, PlacementStatus


class PricingValidationResult(BaseModel):
    is_valid: bool
    stored_total: float = 0
    calculated_total: float = 0
    discrepancy: float = 0
    message: str


class ReachValidationResult(BaseModel):
    is_valid: bool
    stored_reach: float = 0
    calculated_reach: float = 0
    discrepancy: float = 0
    message: str


class PricingRecalculation(BaseModel):
    subtotal: float
    publication_totals: dict[int, float] = Field(default_factory=dict)


class ReachRecalculation(BaseModel):
    estimated_unique_reach: float
    estimated_total_reach: float
    total_monthly_impressions: Optional[float] = None
    total_monthly_exposures: Optional[float] = None


class RecalculatedMetrics(BaseModel):
    """Fresh pricing and reach figures; persisting them is the caller's call."""

    pricing: PricingRecalculation
    reach: ReachRecalculation
    error: Optional[str] = None


class CompletionRule(BaseModel):
    type: CompletionRuleType
    uses_frequency: bool = False
    description: str


class CompletionProgress(BaseModel):
    delivered: float
    goal: float
    percent: int


class CompletionCheckResult(BaseModel):
    """Outcome of checking one placement for automatic completion."""

    completed: bool
    reason: Optional[str] = None
    already_delivered: bool = False
    progress: Optional[CompletionProgress] = None
    retryable: bool = False


class OrderCheckSummary(BaseModel):
    checked: int = 0
    completed: int = 0
    results: dict[str, CompletionCheckResult] = Field(default_factory=dict)


class CampaignEndSweepResult(BaseModel):
    checked: int = 0
    completed: int = 0


class TransitionValidation(BaseModel):
    valid: bool
    error: Optional[str] = None


class PlacementTransition(BaseModel):
    """A planned placement status change and its effect on the order.

    `order_steps` lists the order statuses to pass through, in order;
    it is empty when the order status stays as it is.
    """

    placement_id: str
    from_status: Optional[PlacementStatus] = None
    to_status: PlacementStatus
    notes: str
    order_steps: list[OrderStatus] = Field(default_factory=list)
    order_notes: Optional[str] = None

    @property
    def changes_order_status(self) -> bool:
        return bool(self.order_steps)


class OperationResult(BaseModel):
    """Outcome of a store-backed mutation."""

    success: bool
    error: Optional[str] = None
    data: dict[str, Any] = Field(default_factory=dict)
